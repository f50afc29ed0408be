"""
Account models: notifications, NDA consent, sample QC items and sample
photos.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from manupilot.database.base import Base, utcnow


class QCResult(str, Enum):
    """Inspection outcome of one QC checklist item."""
    PASS = "pass"
    FAIL = "fail"
    NOT_CHECKED = "not_checked"


class Notification(Base):
    """In-app notification for one user."""

    __tablename__ = "notifications"

    user_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str | None] = mapped_column(Text)
    link: Mapped[str | None] = mapped_column(String(500))
    read: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class NdaAcceptance(Base):
    """Recorded consent to one NDA version."""

    __tablename__ = "nda_acceptances"

    user_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False)
    nda_version: Mapped[str] = mapped_column(String(20), nullable=False)
    typed_name: Mapped[str | None] = mapped_column(String(255))
    ip_address: Mapped[str | None] = mapped_column(String(64))
    user_agent: Mapped[str | None] = mapped_column(String(500))
    accepted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "nda_version", name="uq_nda_user_version"),
    )


class SampleQCItem(Base):
    """One QC check against a physical sample."""

    __tablename__ = "sample_qc"

    sample_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    criteria: Mapped[str] = mapped_column(Text, nullable=False)
    result: Mapped[str] = mapped_column(String(20), default=QCResult.NOT_CHECKED.value)
    comment: Mapped[str | None] = mapped_column(Text)


class SamplePhoto(Base):
    """Photo of a physical sample; ``ai_analysis`` caches the visual inspection."""

    __tablename__ = "sample_photos"

    sample_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    photo_url: Mapped[str] = mapped_column(String(1000), nullable=False)
    ai_analysis: Mapped[dict | None] = mapped_column(JSONB)
