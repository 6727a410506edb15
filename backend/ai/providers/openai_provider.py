import base64
from typing import Any

import httpx

from ai.providers.base import AIProvider, CompletionFailure


class OpenAIProvider(AIProvider):
    """OpenAI / GPT AI provider."""

    BASE_URL = "https://api.openai.com/v1/chat/completions"
    DEFAULT_REASONING_MODEL = "gpt-4o"
    DEFAULT_UTILITY_MODEL = "gpt-4o-mini"
    DEFAULT_MAX_COMPLETION_TOKENS = 4096

    def __init__(
        self,
        api_key: str,
        reasoning_model: str | None = None,
        utility_model: str | None = None,
        timeout_seconds: float = 120,
    ):
        super().__init__(api_key, reasoning_model, utility_model, timeout_seconds)
        self._headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _payload(self, messages: list[dict], model: str, system: str, json_response: bool) -> dict[str, Any]:
        # Prepend system message if provided
        full_messages = list(messages)
        if system:
            full_messages.insert(0, {"role": "system", "content": system})
        payload: dict[str, Any] = {
            "model": model,
            "messages": full_messages,
            "max_completion_tokens": self.DEFAULT_MAX_COMPLETION_TOKENS,
        }
        if json_response:
            payload["response_format"] = {"type": "json_object"}
        return payload

    @staticmethod
    def _media_part(media_bytes: bytes, mime_type: str) -> dict:
        data_url = f"data:{mime_type};base64,{base64.b64encode(media_bytes).decode('utf-8')}"
        if mime_type.startswith("image/"):
            return {"type": "image_url", "image_url": {"url": data_url}}
        return {"type": "file", "file": {"filename": "upload", "file_data": data_url}}

    # ------------------------------------------------------------------
    # chat
    # ------------------------------------------------------------------
    async def chat(
        self,
        messages: list[dict],
        model: str,
        system: str = "",
        json_response: bool = False,
    ) -> dict:
        return await self._complete(self._payload(messages, model, system, json_response))

    async def chat_with_media(
        self,
        messages: list[dict],
        media_bytes: bytes,
        mime_type: str,
        model: str,
        system: str = "",
        json_response: bool = False,
    ) -> dict:
        converted = []
        attached = False
        for msg in reversed(messages):
            text = msg.get("content", "")
            if msg["role"] == "user" and not attached:
                converted.append({
                    "role": "user",
                    "content": [self._media_part(media_bytes, mime_type), {"type": "text", "text": text}],
                })
                attached = True
            else:
                converted.append({"role": msg["role"], "content": text})
        converted.reverse()
        return await self._complete(self._payload(converted, model, system, json_response))

    async def _complete(self, payload: dict) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                resp = await client.post(self.BASE_URL, headers=self._headers, json=payload)
        except httpx.HTTPError as e:
            raise CompletionFailure(f"OpenAI API transport error: {e}") from e
        if resp.status_code != 200:
            raise CompletionFailure(f"OpenAI API error {resp.status_code}: {resp.text}")
        try:
            data = resp.json()
        except ValueError as e:
            raise CompletionFailure("OpenAI API returned a non-JSON body") from e

        choice = (data.get("choices") or [{}])[0]
        content = choice.get("message", {}).get("content") or ""
        usage = data.get("usage", {})

        return {
            "content": content,
            "tokens_in": usage.get("prompt_tokens", 0),
            "tokens_out": usage.get("completion_tokens", 0),
            "model": data.get("model", payload["model"]),
        }
