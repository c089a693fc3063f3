"""Voice session provider client (assistants, calls and function tools)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from voxforge.config import Settings
from voxforge.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class VoiceClient:
    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = settings.voice_api_base_url.rstrip("/")
        self._api_key = settings.voice_api_key.strip()
        self._timeout = max(5, int(settings.voice_timeout_seconds))
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.request(
                    method, url, json=body, params=params, headers=self._headers()
                )
        except httpx.HTTPError as exc:
            raise ExternalServiceError(f"voice {method} {path} failed: {exc}") from exc
        if response.status_code >= 400:
            raise ExternalServiceError(
                f"voice {method} {path} failed ({response.status_code}): {response.text[:300]}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ExternalServiceError(f"voice {method} {path} returned non-JSON body") from exc

    async def get_assistant(self, assistant_id: str) -> dict[str, Any]:
        payload = await self._request("GET", f"/assistant/{assistant_id}")
        if not isinstance(payload, dict):
            raise ExternalServiceError("voice assistant response is not an object")
        return payload

    async def update_assistant(self, assistant_id: str, patch: dict[str, Any]) -> dict[str, Any]:
        payload = await self._request("PATCH", f"/assistant/{assistant_id}", body=patch)
        logger.info("Updated assistant %s: %s", assistant_id, ", ".join(sorted(patch)))
        return payload if isinstance(payload, dict) else {}

    async def get_call(self, call_id: str) -> dict[str, Any]:
        payload = await self._request("GET", f"/call/{call_id}")
        if not isinstance(payload, dict):
            raise ExternalServiceError("voice call response is not an object")
        return payload

    async def list_recent_calls(self, assistant_id: str, limit: int = 5) -> list[dict[str, Any]]:
        payload = await self._request(
            "GET", "/call", params={"assistantId": assistant_id, "limit": limit}
        )
        if not isinstance(payload, list):
            return []
        return [item for item in payload if isinstance(item, dict)]

    async def create_outbound_call(
        self,
        assistant_id: str,
        customer_number: str,
        phone_number_id: str = "",
    ) -> str:
        body: dict[str, Any] = {
            "assistantId": assistant_id,
            "customer": {"number": customer_number},
        }
        if phone_number_id:
            body["phoneNumberId"] = phone_number_id
        payload = await self._request("POST", "/call/phone", body=body)
        call_id = str(payload.get("id", "")) if isinstance(payload, dict) else ""
        if not call_id:
            raise ExternalServiceError("voice call creation returned no id")
        logger.info("Outbound call created: %s", call_id)
        return call_id

    async def create_tool(self, function: dict[str, Any], server_url: str) -> str:
        body = {"type": "function", "function": function, "server": {"url": server_url}}
        payload = await self._request("POST", "/tool", body=body)
        tool_id = str(payload.get("id", "")) if isinstance(payload, dict) else ""
        if not tool_id:
            raise ExternalServiceError("voice tool creation returned no id")
        logger.info("Created voice tool %s: %s", function.get("name"), tool_id)
        return tool_id

    async def add_tool_to_assistant(self, assistant_id: str, tool_id: str) -> list[str]:
        # PATCH replaces the whole model object, so the current one is carried over.
        assistant = await self.get_assistant(assistant_id)
        model = assistant.get("model")
        current_model = dict(model) if isinstance(model, dict) else {}
        existing = current_model.get("toolIds")
        tool_ids = [str(item) for item in existing] if isinstance(existing, list) else []
        if tool_id not in tool_ids:
            tool_ids.append(tool_id)
        current_model["toolIds"] = tool_ids
        await self.update_assistant(assistant_id, {"model": current_model})
        return tool_ids
