"""
NDA acceptance service.

Users accept the current NDA version once; repeated acceptance returns
the original record.
"""

from dataclasses import dataclass
from datetime import datetime

from manupilot.config.settings import settings
from manupilot.database.base import utcnow
from manupilot.database.store import DataStore, DuplicateRecordError, Row
from manupilot.utils.logging import ServiceLogger, audit_logger

# Column widths on nda_acceptances
MAX_IP_LENGTH = 64
MAX_USER_AGENT_LENGTH = 500


def first_forwarded_hop(forwarded_for: str | None) -> str | None:
    """Originating client from an ``X-Forwarded-For`` chain."""
    if not forwarded_for:
        return None
    hop = forwarded_for.split(",")[0].strip()
    return hop or None


def _clip(value: str | None, length: int) -> str | None:
    return value[:length] if value else value


@dataclass
class NdaStatus:
    has_signed: bool
    nda_version: str
    accepted_at: datetime | None = None

    def to_dict(self) -> dict:
        status = {"has_signed": self.has_signed, "nda_version": self.nda_version}
        if self.accepted_at is not None:
            status["accepted_at"] = self.accepted_at
        return status


class NdaService:
    """Tracks acceptance of the current NDA version per user."""

    def __init__(self, store: DataStore, nda_version: str | None = None):
        self.store = store
        self.nda_version = nda_version or settings.sourcing.nda_version
        self.logger = ServiceLogger("nda")

    def _key(self, user_id: str) -> dict:
        return {"user_id": user_id, "nda_version": self.nda_version}

    async def _find(self, user_id: str) -> Row | None:
        rows = await self.store.select("nda_acceptances", self._key(user_id), limit=1)
        return rows[0] if rows else None

    async def get_status(self, user_id: str) -> NdaStatus:
        acceptance = await self._find(user_id)
        return NdaStatus(
            has_signed=acceptance is not None,
            nda_version=self.nda_version,
            accepted_at=acceptance.get("accepted_at") if acceptance else None,
        )

    async def accept(
        self,
        user_id: str,
        typed_name: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> Row:
        """
        Record acceptance of the current NDA version.

        Accepting again returns the existing record unchanged. The client
        address and user agent are cut to their column widths.
        """
        ip_address = _clip(ip_address, MAX_IP_LENGTH)
        user_agent = _clip(user_agent, MAX_USER_AGENT_LENGTH)
        try:
            record = await self.store.insert(
                "nda_acceptances",
                {
                    **self._key(user_id),
                    "typed_name": typed_name or None,
                    "ip_address": ip_address,
                    "user_agent": user_agent,
                    "accepted_at": utcnow(),
                },
            )
        except DuplicateRecordError:
            existing = await self._find(user_id)
            if existing is None:
                raise
            return existing

        audit_logger.log_consent(
            action="nda_accepted",
            user_id=user_id,
            document_version=self.nda_version,
            record_id=record["id"],
            ip_address=ip_address,
        )
        return record

    async def reset(self, user_id: str) -> int:
        """Withdraw the user's acceptance of the current version."""
        count = await self.store.delete("nda_acceptances", self._key(user_id))

        audit_logger.log_consent(
            action="nda_reset",
            user_id=user_id,
            document_version=self.nda_version,
            deleted=count,
        )
        return count
