"""
Structured supplier quote service.

One quote per (RFQ, partner) pair; a resubmission overwrites the
previous terms and reopens the quote for review. Partners quote any
existing RFQ; reading and reviewing quotes is limited to the owner of
the RFQ's project.
"""

from typing import Any

from manupilot.config.settings import settings
from manupilot.database.store import DataStore, Row
from manupilot.models.sourcing import QuoteStatus
from manupilot.services.sourcing.rfq_service import find_owned_rfq
from manupilot.utils.logging import ServiceLogger, audit_logger

QUOTE_KEY = ("rfq_id", "partner_id")

LIST_PARTNER_FIELDS = ("id", "name", "region", "rating", "image_url")
DETAIL_PARTNER_FIELDS = (*LIST_PARTNER_FIELDS, "capabilities")

# Statuses a reviewer may set explicitly
REVIEW_STATUSES = (QuoteStatus.ACCEPTED, QuoteStatus.REJECTED)


def _partner_summary(partner: Row | None, fields: tuple[str, ...]) -> Row | None:
    if partner is None:
        return None
    return {name: partner.get(name) for name in fields}


class QuoteService:
    """
    Service for structured quotes submitted against RFQs.

    Provides:
    - Quote submission (upsert on RFQ and partner)
    - Quote listing with partner summaries (RFQ owner only)
    - Accept/reject review (RFQ owner only)
    """

    def __init__(self, store: DataStore):
        self.store = store
        self.logger = ServiceLogger("quote")

    async def submit_quote(
        self,
        rfq_id: str,
        partner_id: str,
        unit_price: float,
        lead_time_days: int,
        moq: int,
        submitted_by_user_id: str | None = None,
        currency: str = "USD",
        validity_days: int | None = None,
        **terms: Any,
    ) -> Row | None:
        """
        Create or replace a partner's quote for an RFQ.

        Args:
            rfq_id: RFQ being quoted
            partner_id: Quoting partner
            unit_price: Price per unit
            lead_time_days: Production lead time
            moq: Minimum order quantity
            submitted_by_user_id: Submitting user
            currency: ISO currency code
            validity_days: Days the quote stays valid
            **terms: payment_terms, shipping_terms, production_capacity, notes

        Returns:
            The stored quote row, or None if the RFQ does not exist

        Raises:
            ValueError: If a required field is missing or not positive
        """
        if not rfq_id or not partner_id or not unit_price or not lead_time_days or not moq:
            raise ValueError("Required fields: rfq_id, partner_id, unit_price, lead_time_days, moq")
        if min(unit_price, lead_time_days, moq) <= 0:
            raise ValueError("unit_price, lead_time_days and moq must be positive")

        if await self.store.get("rfq_submissions", rfq_id) is None:
            return None

        self.logger.log_operation_start("submit_quote", rfq_id=rfq_id, partner_id=partner_id)

        values = {
            "rfq_id": rfq_id,
            "partner_id": partner_id,
            "submitted_by_user_id": submitted_by_user_id,
            "unit_price": unit_price,
            "currency": currency or "USD",
            "total_price": round(unit_price * moq, 2),
            "lead_time_days": lead_time_days,
            "moq": moq,
            "validity_days": validity_days or settings.sourcing.default_quote_validity_days,
            "status": QuoteStatus.PENDING.value,
            "payment_terms": terms.get("payment_terms"),
            "shipping_terms": terms.get("shipping_terms"),
            "production_capacity": terms.get("production_capacity"),
            "notes": terms.get("notes"),
        }

        quote = await self.store.upsert("quotes", values, on_conflict=QUOTE_KEY)

        self.logger.log_operation_complete(
            "submit_quote",
            quote_id=quote["id"],
            total_price=quote["total_price"],
        )
        return quote

    async def _attach_partners(self, quotes: list[Row], fields: tuple[str, ...]) -> list[Row]:
        partner_ids = list({q["partner_id"] for q in quotes})
        partners = {}
        if partner_ids:
            rows = await self.store.select("partners", {"id__in": partner_ids})
            partners = {p["id"]: p for p in rows}

        return [
            {**q, "partner": _partner_summary(partners.get(q["partner_id"]), fields)}
            for q in quotes
        ]

    async def list_quotes(self, rfq_id: str, user_id: str) -> list[Row] | None:
        """List an RFQ's quotes with partner summaries, newest first."""
        if await find_owned_rfq(self.store, rfq_id, user_id) is None:
            return None

        quotes = await self.store.select(
            "quotes",
            {"rfq_id": rfq_id},
            order_by="created_at",
            descending=True,
        )
        return await self._attach_partners(quotes, LIST_PARTNER_FIELDS)

    async def _get_owned(self, quote_id: str, user_id: str) -> Row | None:
        quote = await self.store.get("quotes", quote_id)
        if quote is None:
            return None
        if await find_owned_rfq(self.store, quote["rfq_id"], user_id) is None:
            return None
        return quote

    async def get_quote(self, quote_id: str, user_id: str) -> Row | None:
        quote = await self._get_owned(quote_id, user_id)
        if quote is None:
            return None
        [detailed] = await self._attach_partners([quote], DETAIL_PARTNER_FIELDS)
        return detailed

    async def set_status(self, quote_id: str, status: str, user_id: str) -> Row | None:
        """
        Accept or reject a quote.

        Raises:
            ValueError: If the status is not accepted or rejected
        """
        if status not in {s.value for s in REVIEW_STATUSES}:
            raise ValueError("Invalid status")

        existing = await self._get_owned(quote_id, user_id)
        if existing is None:
            return None

        updated = await self.store.replace("quotes", quote_id, {"status": status})

        audit_logger.log_status_change(
            resource_type="quote",
            resource_id=quote_id,
            old_status=existing.get("status"),
            new_status=status,
            user_id=user_id,
        )
        return updated
