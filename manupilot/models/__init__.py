"""
Data models for the ManuPilot sourcing API.

SQLAlchemy ORM models backing the SQL data store:
- Sourcing (partners, projects, RFQ submissions, responses, quotes, reviews)
- Account (notifications, NDA acceptances, sample QC items, sample photos)
"""

from manupilot.models.sourcing import (
    Partner,
    Project,
    RFQSubmission,
    RFQResponse,
    Quote,
    PartnerReview,
    PartnerType,
    RFQStatus,
    QuoteStatus,
)

from manupilot.models.account import (
    Notification,
    NdaAcceptance,
    SampleQCItem,
    SamplePhoto,
    QCResult,
)

# Collection name -> model, as addressed through the data store
COLLECTIONS = {
    model.__tablename__: model
    for model in (
        Partner,
        Project,
        RFQSubmission,
        RFQResponse,
        Quote,
        PartnerReview,
        Notification,
        NdaAcceptance,
        SampleQCItem,
        SamplePhoto,
    )
}

__all__ = [
    "Partner",
    "Project",
    "RFQSubmission",
    "RFQResponse",
    "Quote",
    "PartnerReview",
    "PartnerType",
    "RFQStatus",
    "QuoteStatus",
    "Notification",
    "NdaAcceptance",
    "SampleQCItem",
    "SamplePhoto",
    "QCResult",
    "COLLECTIONS",
]
