"""
Services module for the ManuPilot sourcing API.

Contains business logic for:
- Sourcing (supplier matching, RFQs, quote normalization, quotes)
- Projects (readiness and feasibility scoring)
- Sample QC, notifications and NDA acceptance
- Partner reviews
"""

from manupilot.services.nda_service import NdaService, first_forwarded_hop
from manupilot.services.notification_service import NotificationService
from manupilot.services.qc_service import QCService, ChecklistGenerationError, PhotoAnalysisError
from manupilot.services.review_service import ReviewService

__all__ = [
    "NdaService",
    "first_forwarded_hop",
    "NotificationService",
    "QCService",
    "ChecklistGenerationError",
    "PhotoAnalysisError",
    "ReviewService",
]
