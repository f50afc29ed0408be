"""
Supplier quote normalization.

Turns a free-text supplier reply into structured metrics plus a
buyer-facing score, flags and summary, and stores them on the
``rfq_responses`` row.

The scoring strategy is pluggable:
- ``LLMQuoteAnalyzer`` asks the completion service (production)
- ``RuleBasedQuoteAnalyzer`` extracts terms with regular expressions
  and scores them arithmetically (deterministic)

Analyzers never raise; any failure produces the fallback analysis.
"""

import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from manupilot.database.store import DataStore, Row
from manupilot.services.sourcing.rfq_service import find_owned_rfq
from manupilot.utils.ai_client import CompletionClient, load_json_response, prompt_builder
from manupilot.utils.logging import ServiceLogger

METRIC_FIELDS = ("unit_price", "moq", "lead_time_days", "payment_terms", "currency")

FALLBACK_FLAG = "AI Analysis Failed"
FALLBACK_SUMMARY = "Could not analyze quote due to an error."


@dataclass
class QuoteAnalysis:
    """Normalized view of one supplier quote."""
    metrics: dict[str, Any] = field(default_factory=dict)
    score: int = 0
    flags: list[str] = field(default_factory=list)
    summary: str = ""

    @property
    def failed(self) -> bool:
        return FALLBACK_FLAG in self.flags

    def analysis_dict(self) -> dict[str, Any]:
        """The ``ai_analysis`` column payload."""
        return {"score": self.score, "flags": list(self.flags), "summary": self.summary}

    def to_dict(self) -> dict[str, Any]:
        return {"metrics": dict(self.metrics), **self.analysis_dict()}


def fallback_analysis() -> QuoteAnalysis:
    return QuoteAnalysis(metrics={}, score=0, flags=[FALLBACK_FLAG], summary=FALLBACK_SUMMARY)


def _to_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = re.search(r"-?\d[\d,]*(?:\.\d+)?", value)
        if match:
            return float(match.group().replace(",", ""))
    return None


def _to_int(value: Any) -> int | None:
    number = _to_number(value)
    return int(round(number)) if number is not None else None


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def coerce_analysis(payload: Any) -> QuoteAnalysis:
    """
    Validate and coerce a model response into a ``QuoteAnalysis``.

    Raises:
        ValueError: If the payload does not have the expected shape
    """
    if not isinstance(payload, dict):
        raise ValueError("Analysis payload is not an object")

    raw_metrics = payload.get("metrics")
    if not isinstance(raw_metrics, dict):
        raise ValueError("Analysis payload has no metrics object")

    raw_score = payload.get("score")
    score = _to_number(raw_score)
    if score is None:
        raise ValueError(f"Invalid score: {raw_score!r}")

    raw_flags = payload.get("flags") or []
    if not isinstance(raw_flags, list):
        raise ValueError("Flags must be a list")

    metrics = {
        "unit_price": _to_number(raw_metrics.get("unit_price")),
        "moq": _to_int(raw_metrics.get("moq")),
        "lead_time_days": _to_int(raw_metrics.get("lead_time_days")),
        "payment_terms": _to_text(raw_metrics.get("payment_terms")),
        "currency": _to_text(raw_metrics.get("currency")),
    }

    return QuoteAnalysis(
        metrics=metrics,
        score=max(0, min(100, int(round(score)))),
        flags=[str(f) for f in raw_flags if str(f).strip()],
        summary=str(payload.get("summary") or ""),
    )


class QuoteAnalyzer(ABC):
    """Scoring strategy for supplier quotes."""

    name: str = "base"

    @abstractmethod
    async def analyze(
        self,
        raw_text: str,
        target_price: float | None = None,
        target_moq: int | None = None,
    ) -> QuoteAnalysis:
        """Analyze quote text. Must not raise."""


class LLMQuoteAnalyzer(QuoteAnalyzer):
    """
    Delegates extraction and scoring to the completion service.

    The score is whatever the model returns, clamped to 0-100.
    """

    name = "llm"

    def __init__(self, client: CompletionClient, model: str | None = None):
        self.client = client
        self.model = model
        self.logger = ServiceLogger("quote_analysis")

    async def analyze(
        self,
        raw_text: str,
        target_price: float | None = None,
        target_moq: int | None = None,
    ) -> QuoteAnalysis:
        messages = [
            {"role": "system", "content": prompt_builder.JSON_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": prompt_builder.quote_analysis_prompt(raw_text, target_price, target_moq),
            },
        ]

        try:
            content = await self.client.complete_json(messages, model=self.model)
            return coerce_analysis(load_json_response(content))
        except Exception as e:
            self.logger.log_operation_failed("analyze_quote", e)
            return fallback_analysis()


# Currency symbols and codes recognised in quote text
CURRENCY_SYMBOLS = {"$": "USD", "€": "EUR", "£": "GBP", "¥": "CNY"}
CURRENCY_CODES = ("USD", "EUR", "GBP", "CNY", "RMB", "INR", "JPY")

_AMOUNT = r"(\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)"
_UNIT = r"(?:/\s*|per\s+|a\s+)(?:unit|pc|pcs|piece|ea|each)\b"

PRICE_PATTERNS = (
    re.compile(rf"(?P<sym>[$€£¥])\s*{_AMOUNT}\s*{_UNIT}", re.IGNORECASE),
    re.compile(rf"{_AMOUNT}\s*(?P<code>{'|'.join(CURRENCY_CODES)})\s*{_UNIT}", re.IGNORECASE),
    re.compile(rf"unit\s*price\s*(?:of|is|:)?\s*(?P<sym>[$€£¥])?\s*{_AMOUNT}", re.IGNORECASE),
    re.compile(rf"(?P<sym>[$€£¥])\s*{_AMOUNT}\s*(?:each|ea)\b", re.IGNORECASE),
)
MOQ_PATTERNS = (
    re.compile(r"\bmoq\b\s*(?:of|is|:|=)?\s*(\d{1,3}(?:,\d{3})+|\d+)", re.IGNORECASE),
    re.compile(r"minimum\s+order(?:\s+quantity)?\s*(?:of|is|:)?\s*(\d{1,3}(?:,\d{3})+|\d+)", re.IGNORECASE),
    re.compile(r"(\d{1,3}(?:,\d{3})+|\d+)\s*(?:units|pcs|pieces)\s*(?:minimum|min\.?)", re.IGNORECASE),
)
LEAD_TIME_PATTERNS = (
    re.compile(r"(\d+)\s*[- ]?\s*(day|week)s?\s*(?:lead\s*time|production|turnaround|delivery)", re.IGNORECASE),
    re.compile(r"lead\s*time\s*(?:of|is|:)?\s*(\d+)\s*[- ]?\s*(day|week)s?", re.IGNORECASE),
)
PAYMENT_PATTERNS = (
    re.compile(r"\d{1,3}\s*%\s*(?:deposit|upfront|advance|down)[^,.;\n]*", re.IGNORECASE),
    re.compile(r"\bnet\s*\d+\b", re.IGNORECASE),
    re.compile(r"\b(?:T/T|L/C|letter of credit|paypal|wire transfer)\b[^,.;\n]*", re.IGNORECASE),
)

LONG_LEAD_TIME_DAYS = 60


def _first_match(patterns, text: str) -> re.Match | None:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match
    return None


def _amount_group(match: re.Match) -> int:
    # The amount is always the first unnamed group
    named = set(match.re.groupindex.values())
    return next(i for i in range(1, match.re.groups + 1) if i not in named)


class RuleBasedQuoteAnalyzer(QuoteAnalyzer):
    """
    Deterministic extraction and scoring.

    Score starts at 100 and loses points for missing terms and for
    exceeding the buyer's targets.
    """

    name = "rules"

    def extract_metrics(self, raw_text: str) -> dict[str, Any]:
        metrics: dict[str, Any] = {name: None for name in METRIC_FIELDS}

        price = _first_match(PRICE_PATTERNS, raw_text)
        if price:
            groups = price.groupdict()
            metrics["unit_price"] = _to_number(price.group(_amount_group(price)))
            if groups.get("sym"):
                metrics["currency"] = CURRENCY_SYMBOLS[groups["sym"]]
            elif groups.get("code"):
                code = groups["code"].upper()
                metrics["currency"] = "CNY" if code == "RMB" else code

        if metrics["currency"] is None:
            code = re.search(rf"\b({'|'.join(CURRENCY_CODES)})\b", raw_text, re.IGNORECASE)
            if code:
                metrics["currency"] = "CNY" if code.group(1).upper() == "RMB" else code.group(1).upper()

        moq = _first_match(MOQ_PATTERNS, raw_text)
        if moq:
            metrics["moq"] = _to_int(moq.group(1))

        lead = _first_match(LEAD_TIME_PATTERNS, raw_text)
        if lead:
            days = int(lead.group(1))
            metrics["lead_time_days"] = days * 7 if lead.group(2).lower() == "week" else days

        terms = _first_match(PAYMENT_PATTERNS, raw_text)
        if terms:
            metrics["payment_terms"] = terms.group().strip()

        return metrics

    async def analyze(
        self,
        raw_text: str,
        target_price: float | None = None,
        target_moq: int | None = None,
    ) -> QuoteAnalysis:
        metrics = self.extract_metrics(raw_text)
        score = 100
        flags: list[str] = []

        unit_price = metrics["unit_price"]
        moq = metrics["moq"]
        lead_time = metrics["lead_time_days"]

        if unit_price is None:
            score -= 25
            flags.append("Unit price not stated")
        elif target_price is not None and 0 < target_price < unit_price:
            over_pct = (unit_price - target_price) / target_price * 100
            score -= min(40, int(round(over_pct)))
            flags.append(f"Price exceeds target by {over_pct:.0f}%")

        if moq is None:
            score -= 10
            flags.append("MOQ not stated")
        elif target_moq is not None and 0 < target_moq < moq:
            over_pct = (moq - target_moq) / target_moq * 100
            score -= min(20, int(round(over_pct / 2)))
            flags.append(f"MOQ exceeds target by {over_pct:.0f}%")

        if lead_time is None:
            score -= 10
            flags.append("Lead time not stated")
        elif lead_time > LONG_LEAD_TIME_DAYS:
            score -= 10
            flags.append("Unusually long lead time")

        if metrics["payment_terms"] is None:
            score -= 10
            flags.append("Vague payment terms")

        return QuoteAnalysis(
            metrics=metrics,
            score=max(0, min(100, score)),
            flags=flags,
            summary=self._summarize(metrics),
        )

    @staticmethod
    def _summarize(metrics: dict[str, Any]) -> str:
        parts = []
        if metrics["unit_price"] is not None:
            currency = f" {metrics['currency']}" if metrics["currency"] else ""
            parts.append(f"{metrics['unit_price']:g}{currency} per unit")
        if metrics["moq"] is not None:
            parts.append(f"MOQ {metrics['moq']}")
        if metrics["lead_time_days"] is not None:
            parts.append(f"{metrics['lead_time_days']} day lead time")
        if metrics["payment_terms"]:
            parts.append(metrics["payment_terms"])

        if not parts:
            return "No pricing terms could be identified in the quote."
        return f"Quote offers {', '.join(parts)}."


@dataclass
class NormalizationResult:
    analysis: QuoteAnalysis
    record: Row


class QuoteNormalizer:
    """
    Runs a quote analyzer and stores the result on the response row.

    Re-running for the same response replaces the previous analysis
    (last write wins, no merge).
    """

    def __init__(self, store: DataStore, analyzer: QuoteAnalyzer):
        self.store = store
        self.analyzer = analyzer
        self.logger = ServiceLogger("quote_normalizer")

    async def normalize(
        self,
        response_id: str | None,
        raw_text: str | None,
        target_price: float | None = None,
        target_moq: int | None = None,
        user_id: str | None = None,
    ) -> NormalizationResult | None:
        """
        Analyze quote text and persist metrics and analysis.

        When ``user_id`` is given the response's RFQ must sit on one of
        that user's projects.

        Returns:
            The analysis and updated row, or None if the response does not
            exist or is not visible to the user

        Raises:
            ValueError: If the response id or quote text is missing
        """
        if not response_id or not raw_text or not raw_text.strip():
            raise ValueError("Missing required fields: response_id, raw_text")

        existing = await self.store.get("rfq_responses", response_id)
        if existing is None:
            return None
        if user_id is not None and await find_owned_rfq(self.store, existing["rfq_id"], user_id) is None:
            return None

        start_time = time.time()
        self.logger.log_operation_start(
            "normalize_quote",
            response_id=response_id,
            analyzer=self.analyzer.name,
        )

        analysis = await self.analyzer.analyze(raw_text, target_price, target_moq)

        record = await self.store.replace(
            "rfq_responses",
            response_id,
            {
                "extracted_metrics": analysis.metrics,
                "ai_analysis": analysis.analysis_dict(),
            },
        )
        if record is None:
            return None

        self.logger.log_operation_complete(
            "normalize_quote",
            duration_ms=(time.time() - start_time) * 1000,
            response_id=response_id,
            score=analysis.score,
            failed=analysis.failed,
        )
        return NormalizationResult(analysis=analysis, record=record)
