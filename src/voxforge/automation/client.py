"""Automation platform client (workflow CRUD and webhook trigger)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from voxforge.config import Settings
from voxforge.errors import AutomationNotConfiguredError, ExternalServiceError

logger = logging.getLogger(__name__)


class AutomationClient:
    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_url = settings.automation_api_url.strip().rstrip("/")
        self._api_key = settings.automation_api_key.strip()
        self._webhook_url = settings.automation_webhook_url.strip()
        self._timeout = max(5, int(settings.automation_timeout_seconds))
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._api_url and self._api_key)

    def _headers(self) -> dict[str, str]:
        return {"X-N8N-API-KEY": self._api_key, "Content-Type": "application/json"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        body: dict[str, Any] | None = None,
    ) -> Any:
        if not self.configured:
            raise AutomationNotConfiguredError(
                "automation platform not configured (AUTOMATION_API_URL or AUTOMATION_API_KEY missing)"
            )
        url = f"{self._api_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.request(method, url, json=body, headers=self._headers())
        except httpx.HTTPError as exc:
            raise ExternalServiceError(f"automation {method} {path} failed: {exc}") from exc
        if response.status_code >= 400:
            raise ExternalServiceError(
                f"automation {method} {path} failed ({response.status_code}): {response.text[:300]}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError:
            return {}

    async def create_workflow(self, workflow: dict[str, Any]) -> dict[str, Any]:
        payload = await self._request("POST", "/workflows", body=workflow)
        if not isinstance(payload, dict) or not payload.get("id"):
            raise ExternalServiceError("automation workflow creation returned no id")
        logger.info("Created workflow %s: %s", payload.get("name"), payload.get("id"))
        return payload

    async def activate_workflow(self, workflow_id: str) -> None:
        await self._request("POST", f"/workflows/{workflow_id}/activate")
        logger.info("Activated workflow %s", workflow_id)

    async def get_workflow(self, workflow_id: str) -> dict[str, Any]:
        payload = await self._request("GET", f"/workflows/{workflow_id}")
        return payload if isinstance(payload, dict) else {}

    async def list_workflows(self) -> list[dict[str, Any]]:
        payload = await self._request("GET", "/workflows")
        items = payload.get("data") if isinstance(payload, dict) else payload
        if not isinstance(items, list):
            return []
        return [item for item in items if isinstance(item, dict)]

    def webhook_url(self, trigger_path: str) -> str:
        base = self._api_url.replace("/api/v1", "").rstrip("/")
        return f"{base}/webhook/{trigger_path.strip('/')}"

    async def trigger(self, payload: dict[str, Any]) -> Any:
        """POST a payload to the generic automation webhook."""
        if not self._webhook_url:
            logger.warning("AUTOMATION_WEBHOOK_URL not set, skipping trigger")
            return {"skipped": True}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._webhook_url, json=payload)
        except httpx.HTTPError as exc:
            raise ExternalServiceError(f"automation webhook failed: {exc}") from exc
        if response.status_code >= 400:
            raise ExternalServiceError(
                f"automation webhook failed ({response.status_code})",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError:
            return {"status": response.status_code, "body": response.text}
