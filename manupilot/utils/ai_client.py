"""
Completion client for the hosted language model.

Provides one call type: role-tagged messages in, one JSON-formatted text
completion out. Handlers receive a client instance through dependency
injection; there is no module-level client.
"""

import json
import re
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Iterable

import httpx
from pydantic import SecretStr
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from manupilot.config.settings import AISettings

Message = dict[str, Any]


class CompletionError(Exception):
    """The completion service answered without usable content."""


class CompletionClient(ABC):
    """Interface for JSON-mode chat completions."""

    @abstractmethod
    async def complete_json(
        self,
        messages: list[Message],
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """
        Submit messages with a JSON-response directive.

        Returns:
            The raw text of the first completion choice

        Raises:
            httpx.HTTPError: Transport or HTTP status failure
            CompletionError: Empty or missing content
        """


class OpenAICompletionClient(CompletionClient):
    """
    Client for OpenAI-compatible ``/chat/completions`` endpoints.

    A single attempt is made unless ``max_attempts`` is raised; only
    transport and HTTP status errors are retried.
    """

    def __init__(
        self,
        api_key: SecretStr | None,
        base_url: str = "https://api.openai.com/v1",
        default_model: str = "gpt-4o",
        temperature: float | None = None,
        max_tokens: int | None = None,
        timeout: float = 60.0,
        max_attempts: int = 1,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.default_model = default_model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.transport = transport

    @classmethod
    def from_settings(cls, ai_settings: AISettings) -> "OpenAICompletionClient":
        return cls(
            api_key=ai_settings.api_key,
            base_url=ai_settings.base_url,
            default_model=ai_settings.default_model,
            temperature=ai_settings.temperature,
            max_tokens=ai_settings.max_tokens,
            timeout=ai_settings.request_timeout_seconds,
            max_attempts=ai_settings.max_attempts,
        )

    async def complete_json(
        self,
        messages: list[Message],
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> str:
        request_body: dict[str, Any] = {
            "model": model or self.default_model,
            "messages": messages,
            "response_format": {"type": "json_object"},
        }

        max_tokens = max_tokens or self.max_tokens
        if max_tokens:
            request_body["max_tokens"] = max_tokens

        if self.temperature is not None:
            request_body["temperature"] = self.temperature

        content = ""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(httpx.HTTPError),
            reraise=True,
        ):
            with attempt:
                content = await self._post(request_body)

        return content

    async def _post(self, request_body: dict[str, Any]) -> str:
        async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                headers={
                    "Authorization": f"Bearer {self.api_key.get_secret_value() if self.api_key else ''}",
                    "Content-Type": "application/json",
                },
                json=request_body,
            )
            response.raise_for_status()
            result = response.json()

        try:
            content = result["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise CompletionError("Malformed completion payload") from e

        if not content:
            raise CompletionError("No content received from completion service")

        return content


class ScriptedCompletionClient(CompletionClient):
    """
    In-process client that replays queued completions.

    Each queued item is either the text to return or an exception to raise.
    Every call is recorded in ``calls``.
    """

    def __init__(self, responses: Iterable[str | Exception] = ()):
        self._responses: deque[str | Exception] = deque(responses)
        self.calls: list[dict[str, Any]] = []

    def queue(self, *responses: str | Exception) -> None:
        self._responses.extend(responses)

    async def complete_json(
        self,
        messages: list[Message],
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> str:
        self.calls.append({"messages": messages, "model": model, "max_tokens": max_tokens})

        if not self._responses:
            raise CompletionError("No scripted completion left")

        response = self._responses.popleft()
        if isinstance(response, Exception):
            raise response
        return response


def load_json_response(text: str) -> Any:
    """
    Parse a completion as JSON.

    Falls back to the outermost ``{...}`` block when the model wrapped the
    object in prose or a code fence.

    Raises:
        ValueError: If no JSON document can be recovered
    """
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        json_match = re.search(r"\{.*\}", text or "", re.DOTALL)
        if json_match:
            try:
                return json.loads(json_match.group())
            except json.JSONDecodeError:
                pass
        raise ValueError(f"Failed to parse JSON from response: {(text or '')[:200]}")


class PromptBuilder:
    """
    Helper class for building structured prompts.

    Provides the fixed instruction templates used by the sourcing services.
    """

    JSON_SYSTEM_PROMPT = "You are a helpful assistant that outputs JSON."
    QC_SYSTEM_PROMPT = "You are a helpful manufacturing assistant. Output valid JSON."

    @staticmethod
    def quote_analysis_prompt(
        raw_text: str,
        target_price: float | None = None,
        target_moq: int | None = None,
    ) -> str:
        """Build prompt for supplier quote extraction and scoring."""
        return f"""
You are a procurement expert. Analyze the following manufacturer quote response and extract key metrics.

Context:
- Target Price: {target_price if target_price and target_price > 0 else 'N/A'}
- Target MOQ: {target_moq if target_moq and target_moq > 0 else 'N/A'}

Quote Text:
\"\"\"
{raw_text}
\"\"\"

Tasks:
1. Extract structured metrics: Unit Price, MOQ, Lead Time (in days), Payment Terms, Currency.
2. Score the quote from 0-100 based on how well it meets the targets (if provided) and general professionalism.
3. Flag any potential issues (e.g., "Price significantly higher than target", "Unusually long lead time", "Vague payment terms").
4. Provide a brief 1-sentence summary.

Output JSON format:
{{
  "metrics": {{
    "unit_price": number | null,
    "moq": number | null,
    "lead_time_days": number | null,
    "payment_terms": string | null,
    "currency": string | null
  }},
  "score": number,
  "flags": string[],
  "summary": string
}}
"""

    @staticmethod
    def qc_checklist_prompt(
        playbook: dict[str, Any],
        min_items: int = 6,
        max_items: int = 10,
    ) -> str:
        """Build prompt for sample QC checklist generation."""
        free = playbook.get("free") or {}
        materials = ", ".join(free.get("materials") or []) or "Standard"
        constraints = playbook.get("constraints") or {}

        return f"""
You are a Quality Control Expert for manufacturing.
Generate a checklist of {min_items}-{max_items} critical quality control (QC) checks for the following product.

Product: {playbook.get('productName', 'Unnamed product')}
Category: {playbook.get('category', 'General')}
Core Description: {playbook.get('coreProduct', '')}
Materials: {materials}
Target Market: {constraints.get('markets') or 'Global'}

The checks should be specific, actionable, and cover:
1. Visual/Cosmetic (defects, finish)
2. Functional (does it work?)
3. Structural/Durability (strength, assembly)
4. Safety/Compliance (if applicable)

Return a JSON object with a single key "items" containing an array of strings.
Example: {{ "items": ["Check for sharp edges", "Verify logo alignment"] }}
"""

    @staticmethod
    def photo_inspection_prompt(context: str | None = None) -> str:
        """Build prompt for visual inspection of a sample photo."""
        return f"""
You are a Manufacturing Quality Control Expert.
Analyze this photo of a product sample.

Context: {context or 'General product inspection'}

Please provide:
1. A brief description of what you see.
2. Any visible defects or quality issues (scratches, misalignment, color issues, etc.).
3. A "Pass" or "Fail" recommendation based on visual inspection.

Return a JSON object with keys: "description", "defects" (array of strings), "recommendation" (string), "confidence" (number 0-100).
"""


prompt_builder = PromptBuilder()
