"""Provider request shaping and error handling against mocked HTTP transports."""
from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ai.providers import GoogleProvider, OpenAIProvider, get_provider  # noqa: E402
from ai.providers.base import CompletionFailure  # noqa: E402


def _patch_transport(monkeypatch, handler) -> list[httpx.Request]:
    seen: list[httpx.Request] = []
    real_client = httpx.AsyncClient

    def _recording(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    def _client(**kwargs):
        return real_client(transport=httpx.MockTransport(_recording), **kwargs)

    monkeypatch.setattr(httpx, "AsyncClient", _client)
    return seen


def test_get_provider_ignores_models_from_other_vendors():
    provider = get_provider("google", "key", reasoning_model="gpt-4o", utility_model="gemini-2.0-flash-lite")
    assert isinstance(provider, GoogleProvider)
    assert provider.get_reasoning_model() == GoogleProvider.DEFAULT_REASONING_MODEL
    assert provider.get_utility_model() == "gemini-2.0-flash-lite"
    assert isinstance(get_provider("openai", "key"), OpenAIProvider)
    with pytest.raises(ValueError):
        get_provider("carrier-pigeon", "key")


def test_google_chat_maps_roles_and_system_instruction(monkeypatch):
    def handler(request):
        return httpx.Response(200, json={
            "candidates": [{"content": {"parts": [{"text": "Hello "}, {"text": "there"}]}}],
            "usageMetadata": {"promptTokenCount": 12, "candidatesTokenCount": 3},
        })

    seen = _patch_transport(monkeypatch, handler)
    provider = GoogleProvider(api_key="k")
    result = asyncio.run(provider.chat(
        messages=[{"role": "user", "content": "hi"}, {"role": "assistant", "content": "yo"}],
        model="gemini-2.5-flash",
        system="be brief",
        json_response=True,
    ))

    assert result["content"] == "Hello there"
    assert result["tokens_in"] == 12
    body = json.loads(seen[0].content)
    assert [c["role"] for c in body["contents"]] == ["user", "model"]
    assert body["system_instruction"]["parts"][0]["text"] == "be brief"
    assert body["generationConfig"]["responseMimeType"] == "application/json"
    assert body["generationConfig"]["thinkingConfig"] == {"thinkingBudget": 0}


def test_google_media_part_is_attached_to_last_user_turn(monkeypatch):
    seen = _patch_transport(monkeypatch, lambda request: httpx.Response(200, json={"candidates": []}))
    provider = GoogleProvider(api_key="k")

    result = asyncio.run(provider.chat_with_media(
        messages=[{"role": "user", "content": "analyze"}],
        media_bytes=b"%PDF-1.4",
        mime_type="application/pdf",
        model="gemini-2.0-flash",
    ))

    assert result["content"] == ""
    parts = json.loads(seen[0].content)["contents"][0]["parts"]
    assert parts[0]["inline_data"]["mime_type"] == "application/pdf"
    assert parts[1]["text"] == "analyze"
    assert "generationConfig" not in json.loads(seen[0].content)


@pytest.mark.parametrize("status_code", [429, 500])
def test_non_success_status_raises_completion_failure(monkeypatch, status_code):
    _patch_transport(monkeypatch, lambda request: httpx.Response(status_code, text="nope"))
    with pytest.raises(CompletionFailure):
        asyncio.run(GoogleProvider(api_key="k").chat([{"role": "user", "content": "hi"}], model="gemini-2.0-flash"))
    with pytest.raises(CompletionFailure):
        asyncio.run(OpenAIProvider(api_key="k").chat([{"role": "user", "content": "hi"}], model="gpt-4o-mini"))


def test_transport_error_raises_completion_failure(monkeypatch):
    def handler(request):
        raise httpx.ConnectError("offline", request=request)

    _patch_transport(monkeypatch, handler)
    with pytest.raises(CompletionFailure):
        asyncio.run(OpenAIProvider(api_key="k").chat([{"role": "user", "content": "hi"}], model="gpt-4o-mini"))


def test_openai_prepends_system_and_requests_json(monkeypatch):
    def handler(request):
        return httpx.Response(200, json={
            "model": "gpt-4o-mini",
            "choices": [{"message": {"content": "{\"ok\": true}"}}],
            "usage": {"prompt_tokens": 5, "completion_tokens": 2},
        })

    seen = _patch_transport(monkeypatch, handler)
    result = asyncio.run(OpenAIProvider(api_key="k").chat(
        [{"role": "user", "content": "hi"}],
        model="gpt-4o-mini",
        system="sys",
        json_response=True,
    ))

    body = json.loads(seen[0].content)
    assert body["messages"][0] == {"role": "system", "content": "sys"}
    assert body["response_format"] == {"type": "json_object"}
    assert seen[0].headers["Authorization"] == "Bearer k"
    assert result["content"] == "{\"ok\": true}"
