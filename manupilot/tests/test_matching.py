"""
Tests for supplier matching.
"""

import pytest

from manupilot.database import DataStoreError, InMemoryDataStore
from manupilot.services.sourcing.matching_service import (
    SupplierMatchingService,
    build_search_terms,
    match_partners,
    partner_matches,
)


def manufacturer(pid, capabilities=(), description=""):
    return {
        "id": pid,
        "type": "manufacturer",
        "capabilities": list(capabilities),
        "description": description,
    }


class TestBuildSearchTerms:
    """Tests for search term construction."""

    def test_explicit_fields_and_long_title_tokens(self):
        terms = build_search_terms({
            "title": "Foldable Camp Table",
            "process": "CNC",
            "materials": "Aluminum",
        })
        assert terms == ["cnc", "aluminum", "foldable", "camp", "table"]

    def test_short_title_tokens_are_dropped(self):
        terms = build_search_terms({"title": "A big red cup", "process": "", "materials": ""})
        assert terms == []

    def test_token_of_exactly_four_characters_is_kept(self):
        assert build_search_terms({"title": "camp"}) == ["camp"]
        assert build_search_terms({"title": "cup"}) == []

    def test_alternate_title_keys(self):
        assert build_search_terms({"projectTitle": "Garden Hose"}) == ["garden", "hose"]
        assert build_search_terms({"project_title": "Garden Hose"}) == ["garden", "hose"]

    def test_list_valued_materials(self):
        terms = build_search_terms({"materials": ["Steel", " ", "Oak"]})
        assert terms == ["steel", "oak"]

    def test_duplicates_removed_in_order(self):
        terms = build_search_terms({"materials": "steel", "title": "Steel Shelf"})
        assert terms == ["steel", "shelf"]

    def test_blank_process_is_ignored(self):
        assert build_search_terms({"process": "   "}) == []


class TestMatchPartners:
    """Tests for the substring matching predicate."""

    def test_camp_table_matches_aluminum_extrusion_only(self):
        partners = [
            manufacturer("p1", ["Aluminum Extrusion"]),
            manufacturer("p2", ["Textile Cut & Sew"]),
        ]
        result = match_partners(
            {"title": "Foldable Camp Table", "process": "", "materials": "aluminum"},
            partners,
        )
        assert result.partner_ids == ["p1"]

    def test_blank_rfq_matches_nothing(self):
        partners = [
            manufacturer("p1", ["Aluminum Extrusion"]),
            manufacturer("p2", [], "We make everything"),
        ]
        result = match_partners({"title": "", "process": "", "materials": ""}, partners)
        assert result.partner_ids == []
        assert len(result) == 0

    def test_description_substring_matches(self):
        partners = [manufacturer("p1", [], "Experts in INJECTION moulding")]
        result = match_partners({"process": "injection"}, partners)
        assert result.partner_ids == ["p1"]

    def test_non_manufacturers_are_never_matched(self):
        partners = [
            {"id": "a1", "type": "agent", "capabilities": ["Aluminum"], "description": ""},
            manufacturer("p1", ["aluminum"]),
        ]
        result = match_partners({"materials": "aluminum"}, partners)
        assert result.partner_ids == ["p1"]

    def test_source_order_preserved(self):
        partners = [
            manufacturer("p3", ["steel"]),
            manufacturer("p1", ["steel"]),
            manufacturer("p2", ["steel"]),
        ]
        result = match_partners({"materials": "steel"}, partners)
        assert result.partner_ids == ["p3", "p1", "p2"]

    def test_matching_is_idempotent(self):
        partners = [manufacturer(f"p{i}", ["steel" if i % 2 else "wood"]) for i in range(10)]
        rfq = {"title": "Steel Bench", "materials": "steel"}
        assert match_partners(rfq, partners).partner_ids == match_partners(rfq, partners).partner_ids

    def test_no_stemming(self):
        partners = [manufacturer("p1", ["Welding"])]
        assert match_partners({"process": "welded"}, partners).partner_ids == []

    def test_missing_capabilities_and_description(self):
        partner = {"id": "p1", "type": "manufacturer", "capabilities": None, "description": None}
        assert partner_matches(partner, ["steel"]) is False

    def test_predicate_soundness_and_completeness(self):
        terms = ["alu", "sew"]
        partners = [
            manufacturer("p1", ["Aluminum Extrusion"]),
            manufacturer("p2", ["Textile Cut & Sew"]),
            manufacturer("p3", ["Plastic"], "injection moulding"),
            manufacturer("p4", [], "SEWING and ALU frames"),
        ]
        for partner in partners:
            expected = any(
                term in cap.lower() for term in terms for cap in partner["capabilities"]
            ) or any(term in partner["description"].lower() for term in terms)
            assert partner_matches(partner, terms) is expected


class FailingStore(InMemoryDataStore):
    async def select(self, *args, **kwargs):
        raise DataStoreError("connection refused")


class TestSupplierMatchingService:
    """Tests for the store-backed matcher."""

    @pytest.mark.asyncio
    async def test_find_matches_reads_manufacturers(self, store, partners):
        service = SupplierMatchingService(store)

        result = await service.find_matches({"title": "Aluminum Camp Chair"})

        assert [p["name"] for p in result.partners] == ["Shenzhen Alu Works"]

    @pytest.mark.asyncio
    async def test_directory_failure_yields_no_matches(self):
        service = SupplierMatchingService(FailingStore())

        result = await service.find_matches({"materials": "aluminum"})

        assert result.partner_ids == []
