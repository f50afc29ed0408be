"""
Sourcing models.

Supplier directory, buyer projects, RFQ submissions, supplier responses,
structured quotes and partner reviews.
"""

from decimal import Decimal
from enum import Enum

from sqlalchemy import Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from manupilot.database.base import Base


class PartnerType(str, Enum):
    """Directory counterparty kinds."""
    MANUFACTURER = "manufacturer"
    AGENT = "agent"
    SHIPPER = "shipper"
    LEGAL = "legal"


class RFQStatus(str, Enum):
    """RFQ submission lifecycle."""
    SUBMITTED = "submitted"
    IN_REVIEW = "in_review"
    COMPLETED = "completed"


class QuoteStatus(str, Enum):
    """Buyer decision on a structured quote."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Partner(Base):
    """
    Supplier, agent, shipper or legal partner in the directory.

    Owned by the admin directory process. Sourcing services only write
    ``rating``, recomputed from partner reviews.
    """

    __tablename__ = "partners"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text)
    capabilities: Mapped[list[str]] = mapped_column(ARRAY(String), default=list)
    region: Mapped[str | None] = mapped_column(String(100))
    rating: Mapped[Decimal | None] = mapped_column(Numeric(3, 2))
    image_url: Mapped[str | None] = mapped_column(String(500))
    logo_url: Mapped[str | None] = mapped_column(String(500))


class Project(Base):
    """Buyer product project; ``specs`` feeds the readiness check."""

    __tablename__ = "projects"

    user_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(100))
    specs: Mapped[dict] = mapped_column(JSONB, default=dict)


class RFQSubmission(Base):
    """
    One buyer request for quote.

    ``matched_partner_ids`` is written once at submission and is a
    point-in-time snapshot of the manufacturer directory.
    """

    __tablename__ = "rfq_submissions"

    project_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    user_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False), index=True)
    rfq_data: Mapped[dict] = mapped_column(JSONB, default=dict)
    status: Mapped[str] = mapped_column(String(20), default=RFQStatus.SUBMITTED.value)
    matched_partner_ids: Mapped[list[str]] = mapped_column(ARRAY(String), default=list)


class RFQResponse(Base):
    """
    Free-text supplier reply to an RFQ.

    ``extracted_metrics`` and ``ai_analysis`` are written together by the
    quote normalizer.
    """

    __tablename__ = "rfq_responses"

    rfq_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    manufacturer_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False))
    submitted_by_user_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False))
    raw_text: Mapped[str | None] = mapped_column(Text)
    pricing_data: Mapped[dict | None] = mapped_column(JSONB)
    extracted_metrics: Mapped[dict | None] = mapped_column(JSONB)
    ai_analysis: Mapped[dict | None] = mapped_column(JSONB)


class Quote(Base):
    """Structured supplier quote, one per (rfq, partner)."""

    __tablename__ = "quotes"

    rfq_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    partner_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False)
    submitted_by_user_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False))

    unit_price: Mapped[float] = mapped_column(Numeric(15, 4, asdecimal=False), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    total_price: Mapped[float] = mapped_column(Numeric(15, 2, asdecimal=False), nullable=False)
    lead_time_days: Mapped[int] = mapped_column(Integer, nullable=False)
    moq: Mapped[int] = mapped_column(Integer, nullable=False)
    production_capacity: Mapped[str | None] = mapped_column(String(255))
    payment_terms: Mapped[str | None] = mapped_column(String(255))
    shipping_terms: Mapped[str | None] = mapped_column(String(255))
    notes: Mapped[str | None] = mapped_column(Text)
    validity_days: Mapped[int] = mapped_column(Integer, default=30)
    status: Mapped[str] = mapped_column(String(20), default=QuoteStatus.PENDING.value)

    __table_args__ = (
        UniqueConstraint("rfq_id", "partner_id", name="uq_quote_rfq_partner"),
    )


class PartnerReview(Base):
    """A buyer's 1-5 rating of a partner; one per (partner, user)."""

    __tablename__ = "reviews"

    partner_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    review_text: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        UniqueConstraint("partner_id", "user_id", name="uq_review_partner_user"),
    )
