"""
RFQ submission service.

Handles RFQ intake with supplier matching, RFQ lookup and status
workflow, and the manufacturer responses attached to an RFQ.
"""

from dataclasses import dataclass
from typing import Any

from manupilot.database.store import DataStore, Row
from manupilot.models.sourcing import RFQStatus
from manupilot.services.project.readiness import ProjectService
from manupilot.services.sourcing.matching_service import MatchResult, SupplierMatchingService
from manupilot.utils.logging import ServiceLogger, audit_logger


@dataclass
class SubmissionResult:
    """Persisted RFQ together with the partners it was matched to."""
    rfq: Row
    matches: MatchResult


async def find_owned_rfq(store: DataStore, rfq_id: str, user_id: str) -> Row | None:
    """Return the RFQ if it belongs to one of the user's projects."""
    rfq = await store.get("rfq_submissions", rfq_id)
    if rfq is None:
        return None
    if await ProjectService(store).get_project(rfq["project_id"], user_id) is None:
        return None
    return rfq


def _manufacturer_summary(partner: Row | None) -> Row | None:
    if partner is None:
        return None
    return {
        "id": partner["id"],
        "name": partner.get("name"),
        "logo_url": partner.get("logo_url"),
    }


class RFQService:
    """
    Service for RFQ submissions and their responses.

    Provides:
    - Submission with best-effort supplier matching
    - RFQ listing and lookup, scoped to the caller's projects
    - Status transitions
    - Manufacturer response intake
    """

    def __init__(self, store: DataStore, matcher: SupplierMatchingService | None = None):
        self.store = store
        self.matcher = matcher or SupplierMatchingService(store)
        self.projects = ProjectService(store)
        self.logger = ServiceLogger("rfq")

    async def submit_rfq(
        self,
        user_id: str,
        project_id: str | None,
        rfq_data: dict[str, Any] | None,
    ) -> SubmissionResult | None:
        """
        Persist an RFQ and match it against the manufacturer directory.

        Matching runs before the insert so the stored row carries the
        matched partner ids. A failed match yields an RFQ with no matches.

        Args:
            user_id: Submitting user
            project_id: Project the RFQ belongs to
            rfq_data: Free-form RFQ payload (process, materials, title, ...)

        Returns:
            SubmissionResult with the stored row and matched partners, or
            None if the project does not belong to the user

        Raises:
            ValueError: If project_id or rfq_data is missing
        """
        if not project_id or not rfq_data:
            raise ValueError("Missing required fields")

        if await self.projects.get_project(project_id, user_id) is None:
            return None

        self.logger.log_operation_start("submit_rfq", project_id=project_id, user_id=user_id)

        matches = await self.matcher.find_matches(rfq_data)

        rfq = await self.store.insert(
            "rfq_submissions",
            {
                "project_id": project_id,
                "user_id": user_id,
                "rfq_data": rfq_data,
                "status": RFQStatus.SUBMITTED.value,
                "matched_partner_ids": matches.partner_ids,
            },
        )

        self.logger.log_operation_complete(
            "submit_rfq",
            rfq_id=rfq["id"],
            total_matches=len(matches),
        )

        return SubmissionResult(rfq=rfq, matches=matches)

    async def list_rfqs(self, project_id: str, user_id: str) -> list[Row] | None:
        """List one of the user's project RFQs, newest first."""
        if await self.projects.get_project(project_id, user_id) is None:
            return None
        return await self.store.select(
            "rfq_submissions",
            {"project_id": project_id},
            order_by="created_at",
            descending=True,
        )

    async def get_rfq(self, rfq_id: str, user_id: str) -> Row | None:
        return await find_owned_rfq(self.store, rfq_id, user_id)

    async def update_status(self, rfq_id: str, status: str, user_id: str) -> Row | None:
        """
        Move an RFQ to a new workflow status.

        Raises:
            ValueError: If the status is not a known RFQ status
        """
        try:
            new_status = RFQStatus(status)
        except ValueError:
            raise ValueError(f"Invalid RFQ status: {status}")

        existing = await self.get_rfq(rfq_id, user_id)
        if existing is None:
            return None

        updated = await self.store.replace("rfq_submissions", rfq_id, {"status": new_status.value})

        audit_logger.log_status_change(
            resource_type="rfq_submission",
            resource_id=rfq_id,
            old_status=existing.get("status"),
            new_status=new_status.value,
            user_id=user_id,
        )

        return updated

    async def get_matched_partners(self, rfq_id: str, user_id: str) -> list[Row] | None:
        """
        Resolve the partners recorded on an RFQ, in their stored order.

        Partners removed from the directory since submission are skipped.
        """
        rfq = await self.get_rfq(rfq_id, user_id)
        if rfq is None:
            return None

        partner_ids = rfq.get("matched_partner_ids") or []
        if not partner_ids:
            return []

        partners = await self.store.select("partners", {"id__in": partner_ids})
        by_id = {p["id"]: p for p in partners}
        return [by_id[pid] for pid in partner_ids if pid in by_id]

    async def submit_response(
        self,
        rfq_id: str,
        manufacturer_id: str | None,
        user_id: str | None,
        raw_text: str | None = None,
        pricing_data: dict[str, Any] | None = None,
    ) -> Row | None:
        """
        Attach a manufacturer response to an RFQ.

        The raw quote text is kept in ``pricing_data`` when no structured
        pricing is supplied, so it stays available for re-analysis.

        Manufacturers reply to RFQs they do not own, so only the RFQ's
        existence is checked.

        Returns:
            The stored response, or None if the RFQ does not exist
        """
        if not raw_text and not pricing_data:
            raise ValueError("Missing required fields")

        if await self.store.get("rfq_submissions", rfq_id) is None:
            return None

        response = await self.store.insert(
            "rfq_responses",
            {
                "rfq_id": rfq_id,
                "manufacturer_id": manufacturer_id,
                "submitted_by_user_id": user_id,
                "raw_text": raw_text,
                "pricing_data": pricing_data or {"raw_text": raw_text},
            },
        )

        self.logger.log_operation_complete(
            "submit_response",
            rfq_id=rfq_id,
            response_id=response["id"],
        )
        return response

    async def list_responses(self, rfq_id: str, user_id: str) -> list[Row] | None:
        """List responses for an RFQ with a manufacturer summary, newest first."""
        if await self.get_rfq(rfq_id, user_id) is None:
            return None

        responses = await self.store.select(
            "rfq_responses",
            {"rfq_id": rfq_id},
            order_by="created_at",
            descending=True,
        )

        manufacturer_ids = list({r["manufacturer_id"] for r in responses if r.get("manufacturer_id")})
        partners = {}
        if manufacturer_ids:
            rows = await self.store.select("partners", {"id__in": manufacturer_ids})
            partners = {p["id"]: p for p in rows}

        return [
            {**r, "manufacturer": _manufacturer_summary(partners.get(r.get("manufacturer_id")))}
            for r in responses
        ]
