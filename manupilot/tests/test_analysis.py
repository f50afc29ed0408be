"""
Tests for quote analysis and normalization.
"""

import json

import httpx
import pytest

from conftest import OTHER_USER_ID, USER_ID
from manupilot.services.sourcing.analysis_service import (
    FALLBACK_FLAG,
    FALLBACK_SUMMARY,
    LLMQuoteAnalyzer,
    QuoteNormalizer,
    RuleBasedQuoteAnalyzer,
    coerce_analysis,
)
from manupilot.utils.ai_client import ScriptedCompletionClient

SCENARIO_TEXT = "We can do $12/unit, MOQ 500, 30 day lead time, 30% deposit"


def model_reply(**overrides):
    reply = {
        "metrics": {
            "unit_price": 12,
            "moq": 500,
            "lead_time_days": 30,
            "payment_terms": "30% deposit",
            "currency": "USD",
        },
        "score": 72,
        "flags": ["Price significantly higher than target"],
        "summary": "Workable quote but 20% above target price.",
    }
    reply.update(overrides)
    return json.dumps(reply)


@pytest.fixture
def response_row(store, project):
    [rfq] = store.seed("rfq_submissions", [{"project_id": project["id"], "user_id": USER_ID}])
    [row] = store.seed("rfq_responses", [{
        "rfq_id": rfq["id"],
        "manufacturer_id": None,
        "raw_text": SCENARIO_TEXT,
        "pricing_data": {"raw_text": SCENARIO_TEXT},
        "extracted_metrics": None,
        "ai_analysis": None,
    }])
    return row


class TestCoerceAnalysis:
    """Tests for shaping model output."""

    def test_numeric_strings_are_coerced(self):
        analysis = coerce_analysis({
            "metrics": {"unit_price": "$1,250.50", "moq": "500 pcs", "lead_time_days": "30"},
            "score": "85",
            "flags": [],
            "summary": "ok",
        })
        assert analysis.metrics["unit_price"] == 1250.5
        assert analysis.metrics["moq"] == 500
        assert analysis.metrics["lead_time_days"] == 30
        assert analysis.metrics["currency"] is None
        assert analysis.score == 85

    def test_score_is_clamped(self):
        assert coerce_analysis({"metrics": {}, "score": 140}).score == 100
        assert coerce_analysis({"metrics": {}, "score": -5}).score == 0

    @pytest.mark.parametrize("payload", [
        [],
        {"score": 50},
        {"metrics": {}, "score": "n/a"},
        {"metrics": {}, "score": 50, "flags": "too high"},
    ])
    def test_wrong_shape_raises(self, payload):
        with pytest.raises(ValueError):
            coerce_analysis(payload)


class TestLLMQuoteAnalyzer:
    """Tests for the completion-backed analyzer."""

    @pytest.mark.asyncio
    async def test_sends_system_and_user_messages(self, completion_client):
        completion_client.queue(model_reply())
        analyzer = LLMQuoteAnalyzer(completion_client)

        analysis = await analyzer.analyze(SCENARIO_TEXT, target_price=10, target_moq=500)

        [call] = completion_client.calls
        roles = [m["role"] for m in call["messages"]]
        assert roles == ["system", "user"]
        assert SCENARIO_TEXT in call["messages"][1]["content"]
        assert "Target Price: 10" in call["messages"][1]["content"]
        assert analysis.score == 72
        assert analysis.failed is False

    @pytest.mark.asyncio
    async def test_json_wrapped_in_prose_is_recovered(self, completion_client):
        completion_client.queue(f"Here you go:\n```json\n{model_reply()}\n```")

        analysis = await LLMQuoteAnalyzer(completion_client).analyze(SCENARIO_TEXT)

        assert analysis.metrics["unit_price"] == 12

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", [
        "this is not json",
        "",
        json.dumps({"metrics": "none"}),
        httpx.ConnectError("connection refused"),
    ])
    async def test_failures_return_fallback(self, completion_client, reply):
        completion_client.queue(reply)

        analysis = await LLMQuoteAnalyzer(completion_client).analyze(SCENARIO_TEXT)

        assert analysis.metrics == {}
        assert analysis.score == 0
        assert analysis.flags == [FALLBACK_FLAG]
        assert analysis.summary == FALLBACK_SUMMARY


class TestRuleBasedQuoteAnalyzer:
    """Tests for deterministic extraction and scoring."""

    @pytest.fixture
    def analyzer(self):
        return RuleBasedQuoteAnalyzer()

    @pytest.mark.asyncio
    async def test_price_above_target(self, analyzer):
        analysis = await analyzer.analyze(SCENARIO_TEXT, target_price=10, target_moq=500)

        assert analysis.metrics == {
            "unit_price": 12.0,
            "moq": 500,
            "lead_time_days": 30,
            "payment_terms": "30% deposit",
            "currency": "USD",
        }
        assert "Price exceeds target by 20%" in analysis.flags
        assert analysis.score == 80

    @pytest.mark.asyncio
    async def test_quote_within_targets_scores_full(self, analyzer):
        analysis = await analyzer.analyze(SCENARIO_TEXT, target_price=15, target_moq=1000)

        assert analysis.flags == []
        assert analysis.score == 100

    def test_currency_code_and_weeks(self, analyzer):
        metrics = analyzer.extract_metrics(
            "Unit price: 3.40 USD. Minimum order quantity 2,000. Lead time 6 weeks. Payment net 30."
        )
        assert metrics["unit_price"] == 3.4
        assert metrics["currency"] == "USD"
        assert metrics["moq"] == 2000
        assert metrics["lead_time_days"] == 42
        assert metrics["payment_terms"].lower() == "net 30"

    def test_thousands_separator_in_price(self, analyzer):
        metrics = analyzer.extract_metrics("€1,250.00 per unit, 45 days production")
        assert metrics["unit_price"] == 1250.0
        assert metrics["currency"] == "EUR"
        assert metrics["lead_time_days"] == 45

    @pytest.mark.asyncio
    async def test_text_without_terms(self, analyzer):
        analysis = await analyzer.analyze("Thanks for reaching out, we will get back to you.")

        assert analysis.metrics["unit_price"] is None
        assert analysis.score == 45
        assert "Unit price not stated" in analysis.flags
        assert analysis.summary == "No pricing terms could be identified in the quote."

    @pytest.mark.asyncio
    async def test_long_lead_time_and_high_moq(self, analyzer):
        analysis = await analyzer.analyze(
            "$9/unit, MOQ 2000, 90 day lead time, 30% deposit",
            target_price=10,
            target_moq=1000,
        )
        assert "Unusually long lead time" in analysis.flags
        assert "MOQ exceeds target by 100%" in analysis.flags
        assert analysis.score == 70

    @pytest.mark.asyncio
    async def test_non_positive_targets_are_ignored(self, analyzer):
        analysis = await analyzer.analyze(SCENARIO_TEXT, target_price=-10, target_moq=-500)

        assert analysis.flags == []
        assert analysis.score == 100


class TestQuoteNormalizer:
    """Tests for persisting analysis onto responses."""

    @pytest.mark.asyncio
    async def test_persists_metrics_and_analysis(self, store, completion_client, response_row):
        completion_client.queue(model_reply())
        normalizer = QuoteNormalizer(store, LLMQuoteAnalyzer(completion_client))

        result = await normalizer.normalize(response_row["id"], SCENARIO_TEXT, 10, 500)

        stored = await store.get("rfq_responses", response_row["id"])
        assert stored["extracted_metrics"]["unit_price"] == 12
        assert stored["ai_analysis"] == {
            "score": 72,
            "flags": ["Price significantly higher than target"],
            "summary": "Workable quote but 20% above target price.",
        }
        assert result.record["id"] == response_row["id"]

    @pytest.mark.asyncio
    async def test_network_error_writes_fallback(self, store, completion_client, response_row):
        completion_client.queue(httpx.ConnectTimeout("timed out"))
        normalizer = QuoteNormalizer(store, LLMQuoteAnalyzer(completion_client))

        result = await normalizer.normalize(response_row["id"], SCENARIO_TEXT, 10, 500)

        stored = await store.get("rfq_responses", response_row["id"])
        assert stored["ai_analysis"]["score"] == 0
        assert stored["ai_analysis"]["flags"] == [FALLBACK_FLAG]
        assert stored["extracted_metrics"] == {}
        assert result.analysis.failed

    @pytest.mark.asyncio
    async def test_rerun_overwrites_previous_analysis(self, store, completion_client, response_row):
        completion_client.queue(
            model_reply(score=40, flags=["first"]),
            model_reply(score=90, flags=["second"], metrics={"unit_price": 11}),
        )
        normalizer = QuoteNormalizer(store, LLMQuoteAnalyzer(completion_client))

        await normalizer.normalize(response_row["id"], SCENARIO_TEXT)
        await normalizer.normalize(response_row["id"], SCENARIO_TEXT)

        stored = await store.get("rfq_responses", response_row["id"])
        assert stored["ai_analysis"]["score"] == 90
        assert stored["ai_analysis"]["flags"] == ["second"]
        assert stored["extracted_metrics"]["unit_price"] == 11
        assert stored["extracted_metrics"]["moq"] is None
        assert await store.count("rfq_responses") == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response_id, raw_text", [
        (None, SCENARIO_TEXT),
        ("", SCENARIO_TEXT),
        ("some-id", None),
        ("some-id", "   "),
    ])
    async def test_missing_input_rejected_before_completion(
        self, store, completion_client, response_id, raw_text
    ):
        normalizer = QuoteNormalizer(store, LLMQuoteAnalyzer(completion_client))

        with pytest.raises(ValueError):
            await normalizer.normalize(response_id, raw_text)

        assert completion_client.calls == []

    @pytest.mark.asyncio
    async def test_owner_can_normalize(self, store, completion_client, response_row):
        completion_client.queue(model_reply())
        normalizer = QuoteNormalizer(store, LLMQuoteAnalyzer(completion_client))

        result = await normalizer.normalize(response_row["id"], SCENARIO_TEXT, user_id=USER_ID)

        assert result.analysis.score == 72

    @pytest.mark.asyncio
    async def test_other_user_cannot_overwrite_analysis(self, store, completion_client, response_row):
        normalizer = QuoteNormalizer(store, LLMQuoteAnalyzer(completion_client))

        result = await normalizer.normalize(response_row["id"], SCENARIO_TEXT, user_id=OTHER_USER_ID)

        assert result is None
        assert completion_client.calls == []
        stored = await store.get("rfq_responses", response_row["id"])
        assert stored["ai_analysis"] is None

    @pytest.mark.asyncio
    async def test_unknown_response_returns_none(self, store, completion_client):
        normalizer = QuoteNormalizer(store, LLMQuoteAnalyzer(completion_client))

        assert await normalizer.normalize("missing", SCENARIO_TEXT) is None
        assert completion_client.calls == []
