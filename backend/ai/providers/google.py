import base64

import httpx

from ai.providers.base import AIProvider, CompletionFailure


class GoogleProvider(AIProvider):
    """Google Gemini AI provider."""

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
    DEFAULT_REASONING_MODEL = "gemini-2.5-flash"
    DEFAULT_UTILITY_MODEL = "gemini-2.0-flash"

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _endpoint(self, model: str) -> str:
        return f"{self.BASE_URL}/{model}:generateContent?key={self.api_key}"

    @staticmethod
    def _convert_messages(messages: list[dict]) -> list[dict]:
        """Convert OpenAI-style messages to Gemini format."""
        contents = []
        for msg in messages:
            role = msg["role"]
            # Gemini uses "user" and "model" roles
            if role == "assistant":
                role = "model"
            text = msg.get("content", "")
            contents.append({
                "role": role,
                "parts": [{"text": text if isinstance(text, str) else str(text)}],
            })
        return contents

    @staticmethod
    def _build_payload(contents: list[dict], system: str, json_response: bool, model: str) -> dict:
        payload: dict = {"contents": contents}
        if system:
            payload["system_instruction"] = {
                "parts": [{"text": system}],
            }
        generation_config: dict = {}
        if "2.5-flash" in model:
            # Latency over depth for flash models
            generation_config["thinkingConfig"] = {"thinkingBudget": 0}
        if json_response:
            generation_config["responseMimeType"] = "application/json"
        if generation_config:
            payload["generationConfig"] = generation_config
        return payload

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
        payload = self._build_payload(self._convert_messages(messages), system, json_response, model)
        return await self._generate(payload, model)

    async def chat_with_media(
        self,
        messages: list[dict],
        media_bytes: bytes,
        mime_type: str,
        model: str,
        system: str = "",
        json_response: bool = False,
    ) -> dict:
        media_part = {
            "inline_data": {
                "mime_type": mime_type,
                "data": base64.b64encode(media_bytes).decode("utf-8"),
            }
        }
        contents = self._convert_messages(messages)
        # Attach the document to the last user turn
        for content in reversed(contents):
            if content["role"] == "user":
                content["parts"].insert(0, media_part)
                break
        else:
            contents.append({"role": "user", "parts": [media_part]})

        payload = self._build_payload(contents, system, json_response, model)
        return await self._generate(payload, model)

    async def _generate(self, payload: dict, model: str) -> dict:
        url = self._endpoint(model)
        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                resp = await client.post(
                    url,
                    headers={"Content-Type": "application/json"},
                    json=payload,
                )
        except httpx.HTTPError as e:
            raise CompletionFailure(f"Google API transport error: {e}") from e
        if resp.status_code != 200:
            raise CompletionFailure(f"Google API error {resp.status_code}: {resp.text}")
        try:
            data = resp.json()
        except ValueError as e:
            raise CompletionFailure("Google API returned a non-JSON body") from e

        # Extract text from response
        content = ""
        candidates = data.get("candidates", [])
        if candidates:
            parts = candidates[0].get("content", {}).get("parts", [])
            for part in parts:
                content += part.get("text", "")

        usage = data.get("usageMetadata", {})
        return {
            "content": content,
            "tokens_in": usage.get("promptTokenCount", 0),
            "tokens_out": usage.get("candidatesTokenCount", 0),
            "model": model,
        }
