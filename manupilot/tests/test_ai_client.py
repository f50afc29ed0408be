"""
Tests for the completion client.
"""

import json

import httpx
import pytest
from pydantic import SecretStr

from manupilot.utils.ai_client import (
    CompletionError,
    OpenAICompletionClient,
    ScriptedCompletionClient,
    load_json_response,
    prompt_builder,
)


def completion_payload(content):
    return {"choices": [{"index": 0, "message": {"role": "assistant", "content": content}}]}


class RecordingTransport:
    """Mock transport replaying queued handlers and recording requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_client(transport, **kwargs):
    return OpenAICompletionClient(
        api_key=SecretStr("sk-test"),
        base_url="https://llm.example.com/v1/",
        transport=httpx.MockTransport(transport),
        **kwargs,
    )


class TestOpenAICompletionClient:
    """Tests for the OpenAI-compatible HTTP client."""

    @pytest.mark.asyncio
    async def test_request_shape(self):
        transport = RecordingTransport(httpx.Response(200, json=completion_payload('{"ok": true}')))
        client = make_client(transport, default_model="gpt-4o", max_tokens=500)

        content = await client.complete_json([{"role": "user", "content": "hi"}])

        assert content == '{"ok": true}'
        [request] = transport.requests
        assert str(request.url) == "https://llm.example.com/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        body = json.loads(request.content)
        assert body["model"] == "gpt-4o"
        assert body["response_format"] == {"type": "json_object"}
        assert body["max_tokens"] == 500
        assert "temperature" not in body

    @pytest.mark.asyncio
    async def test_model_override(self):
        transport = RecordingTransport(httpx.Response(200, json=completion_payload("{}")))
        client = make_client(transport)

        await client.complete_json([{"role": "user", "content": "hi"}], model="gpt-4o-mini")

        assert json.loads(transport.requests[0].content)["model"] == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_single_attempt_by_default(self):
        transport = RecordingTransport(httpx.Response(500, json={"error": "boom"}))
        client = make_client(transport)

        with pytest.raises(httpx.HTTPStatusError):
            await client.complete_json([{"role": "user", "content": "hi"}])

        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_retries_transport_errors_when_configured(self):
        transport = RecordingTransport(
            httpx.ConnectError("refused"),
            httpx.Response(200, json=completion_payload("{}")),
        )
        client = make_client(transport, max_attempts=2)

        assert await client.complete_json([{"role": "user", "content": "hi"}]) == "{}"
        assert len(transport.requests) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {"choices": []},
        {"error": "no choices"},
        completion_payload(None),
        completion_payload(""),
    ])
    async def test_unusable_payload(self, payload):
        client = make_client(RecordingTransport(httpx.Response(200, json=payload)))

        with pytest.raises(CompletionError):
            await client.complete_json([{"role": "user", "content": "hi"}])


class TestScriptedCompletionClient:

    @pytest.mark.asyncio
    async def test_replays_in_order_and_records_calls(self):
        client = ScriptedCompletionClient(["first", ValueError("second")])

        assert await client.complete_json([{"role": "user", "content": "a"}]) == "first"
        with pytest.raises(ValueError):
            await client.complete_json([{"role": "user", "content": "b"}], model="m")
        with pytest.raises(CompletionError):
            await client.complete_json([])

        assert [c["model"] for c in client.calls] == [None, "m", None]


class TestLoadJsonResponse:

    def test_plain_json(self):
        assert load_json_response('{"a": 1}') == {"a": 1}

    def test_fenced_json(self):
        assert load_json_response('```json\n{"a": [1, 2]}\n```') == {"a": [1, 2]}

    @pytest.mark.parametrize("text", ["", "nope", "{not json}", None])
    def test_unrecoverable(self, text):
        with pytest.raises(ValueError):
            load_json_response(text)


class TestPromptBuilder:

    def test_quote_prompt_embeds_text_and_targets(self):
        prompt = prompt_builder.quote_analysis_prompt("MOQ 500", target_price=None, target_moq=500)

        assert "MOQ 500" in prompt
        assert "Target Price: N/A" in prompt
        assert "Target MOQ: 500" in prompt
        assert '"lead_time_days": number | null' in prompt

    def test_qc_prompt_defaults(self):
        prompt = prompt_builder.qc_checklist_prompt({"productName": "Camp Table"}, min_items=6, max_items=10)

        assert "Product: Camp Table" in prompt
        assert "Materials: Standard" in prompt
        assert "Target Market: Global" in prompt
        assert "6-10" in prompt
