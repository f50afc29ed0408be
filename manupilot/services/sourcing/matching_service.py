"""
Supplier matching for RFQ submissions.

Reduces the manufacturer directory to the partners whose declared
capabilities or description mention the RFQ's process, materials or
title keywords.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable

from manupilot.config.settings import settings
from manupilot.database.store import DataStore, DataStoreError, Row
from manupilot.models.sourcing import PartnerType
from manupilot.utils.logging import ServiceLogger

TITLE_KEYS = ("title", "projectTitle", "project_title")


@dataclass
class MatchResult:
    """Matching partners in directory order."""
    partners: list[Row] = field(default_factory=list)

    @property
    def partner_ids(self) -> list[str]:
        return [p["id"] for p in self.partners]

    def __len__(self) -> int:
        return len(self.partners)


def _explicit_terms(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if str(v).strip()]
    text = str(value)
    return [text] if text.strip() else []


def build_search_terms(rfq_data: dict[str, Any], min_token_length: int = 4) -> list[str]:
    """
    Collect lowercase search terms for an RFQ.

    Terms are the explicit process and materials values plus every
    whitespace-delimited title token of at least ``min_token_length``
    characters. Order is preserved, duplicates dropped.
    """
    title = next((rfq_data[k] for k in TITLE_KEYS if rfq_data.get(k)), "")

    raw_terms = [
        *_explicit_terms(rfq_data.get("process")),
        *_explicit_terms(rfq_data.get("materials")),
        *(word for word in str(title).split() if len(word) >= min_token_length),
    ]

    return list(dict.fromkeys(term.lower() for term in raw_terms))


def partner_matches(partner: Row, terms: Iterable[str]) -> bool:
    """True when any term is a substring of a capability or the description."""
    capabilities = [str(c).lower() for c in (partner.get("capabilities") or [])]
    description = (partner.get("description") or "").lower()

    return any(
        term in description or any(term in cap for cap in capabilities)
        for term in terms
    )


def match_partners(
    rfq_data: dict[str, Any],
    partners: Iterable[Row],
    min_token_length: int = 4,
) -> MatchResult:
    """
    Match an RFQ against a directory snapshot.

    Only manufacturers are eligible. An RFQ without search terms matches
    nothing.
    """
    terms = build_search_terms(rfq_data, min_token_length)
    if not terms:
        return MatchResult()

    return MatchResult(partners=[
        partner for partner in partners
        if partner.get("type") == PartnerType.MANUFACTURER.value
        and partner_matches(partner, terms)
    ])


class SupplierMatchingService:
    """
    Best-effort matcher over the live manufacturer directory.

    A directory read failure is logged and yields zero matches; it never
    blocks the RFQ submission.
    """

    def __init__(self, store: DataStore, min_token_length: int | None = None):
        self.store = store
        self.min_token_length = min_token_length or settings.sourcing.min_title_token_length
        self.logger = ServiceLogger("supplier_matching")

    async def find_matches(self, rfq_data: dict[str, Any]) -> MatchResult:
        self.logger.log_operation_start("find_matches")

        try:
            partners = await self.store.select(
                "partners",
                {"type": PartnerType.MANUFACTURER.value},
            )
        except DataStoreError as e:
            self.logger.log_operation_failed("find_matches", e)
            return MatchResult()

        result = match_partners(rfq_data, partners, self.min_token_length)

        self.logger.log_operation_complete(
            "find_matches",
            candidates=len(partners),
            total_matches=len(result),
        )
        return result
