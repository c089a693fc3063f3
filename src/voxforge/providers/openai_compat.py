"""OpenAI-style ``/chat/completions`` provider, used as the alternate reasoning lane."""

from typing import Any

import httpx

from voxforge.providers.base import Messages, ModelResponse


def _message_text(content: Any) -> str:
    # Content is either a plain string or a list of typed parts.
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return ""
    parts = []
    for part in content:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and isinstance(part.get("text"), str):
            parts.append(part["text"])
    return "".join(parts)


class OpenAICompatProvider:
    def __init__(
        self,
        model: str,
        *,
        api_key: str = "",
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 120,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.model = model
        self._api_key = api_key.strip()
        self._base_url = base_url.rstrip("/")
        self._timeout = max(10.0, float(timeout_seconds))
        self._transport = transport

    def _client(self, timeout: float | None = None) -> httpx.AsyncClient:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=timeout or self._timeout,
            transport=self._transport,
        )

    async def generate(
        self,
        messages: Messages,
        temperature: float = 0.7,
        max_tokens: int = 4096,
    ) -> ModelResponse:
        async with self._client() as client:
            response = await client.post(
                "/chat/completions",
                json={
                    "model": self.model,
                    "messages": messages,
                    "temperature": temperature,
                    "max_tokens": max_tokens,
                },
            )
            response.raise_for_status()
        payload = response.json()
        choices = payload.get("choices") if isinstance(payload, dict) else None
        choice = choices[0] if isinstance(choices, list) and choices else None
        if not isinstance(choice, dict) or not isinstance(choice.get("message"), dict):
            raise RuntimeError("chat completion response has no message")
        return ModelResponse(
            text=_message_text(choice["message"].get("content")),
            model=str(payload.get("model", "")),
            stop_reason=str(choice.get("finish_reason") or ""),
        )

    async def health_check(self) -> bool:
        try:
            async with self._client(timeout=10) as client:
                response = await client.get("/models")
        except httpx.HTTPError:
            return False
        return response.status_code < 400
