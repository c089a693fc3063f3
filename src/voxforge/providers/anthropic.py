"""Anthropic Messages API provider adapter."""

from typing import Any

import httpx

from voxforge.providers.base import Messages, ModelResponse

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider:
    def __init__(
        self,
        model: str,
        *,
        api_key: str,
        base_url: str = "https://api.anthropic.com/v1",
        timeout_seconds: float = 120,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.model = model
        self._api_key = api_key.strip()
        self._base_url = base_url.rstrip("/")
        self._timeout = max(10.0, float(timeout_seconds))
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self._api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

    @staticmethod
    def _split_system(messages: Messages) -> tuple[str, list[dict[str, str]]]:
        system_parts: list[str] = []
        chat: list[dict[str, str]] = []
        for message in messages:
            role = message.get("role", "user")
            content = message.get("content", "")
            if role == "system":
                system_parts.append(content)
            else:
                chat_role = "assistant" if role == "assistant" else "user"
                chat.append({"role": chat_role, "content": content})
        return "\n\n".join(part for part in system_parts if part), chat

    @staticmethod
    def _parse_response(payload: dict[str, Any]) -> ModelResponse:
        content = payload.get("content")
        if not isinstance(content, list):
            raise RuntimeError("anthropic response missing content")
        chunks = [
            str(block.get("text", ""))
            for block in content
            if isinstance(block, dict) and block.get("type") == "text"
        ]
        return ModelResponse(
            text="".join(chunks),
            model=str(payload.get("model", "")),
            stop_reason=str(payload.get("stop_reason") or ""),
        )

    async def generate(
        self,
        messages: Messages,
        temperature: float = 0.7,
        max_tokens: int = 4096,
    ) -> ModelResponse:
        if not self._api_key:
            raise RuntimeError("ANTHROPIC_API_KEY is not set")
        system, chat = self._split_system(messages)
        body: dict[str, object] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": chat,
        }
        if system:
            body["system"] = system
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.post(
                f"{self._base_url}/messages", json=body, headers=self._headers()
            )
            response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise RuntimeError("anthropic response is not an object")
        return self._parse_response(payload)

    async def health_check(self) -> bool:
        return bool(self._api_key)
