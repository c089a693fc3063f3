"""WhatsApp channel adapter over the Whapi gateway."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from voxforge.channels.base import InboundMessage
from voxforge.config import Settings

logger = logging.getLogger(__name__)


def to_chat_id(recipient: str) -> str:
    if "@" in recipient:
        return recipient
    digits = "".join(ch for ch in recipient if ch.isdigit())
    return f"{digits or recipient}@s.whatsapp.net"


class WhapiAdapter:
    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = settings.whapi_base_url.rstrip("/")
        self._token = settings.whapi_token.strip()
        self._transport = transport

    @property
    def channel_type(self) -> str:
        return "whatsapp"

    @property
    def enabled(self) -> bool:
        return bool(self._base_url and self._token)

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def send_text(self, recipient: str, text: str) -> dict[str, Any]:
        if not self.enabled:
            logger.warning("Whapi not configured, dropping message to %s", recipient)
            return {"sent": False, "id": None}
        url = f"{self._base_url}/messages/text"
        payload = {"to": to_chat_id(recipient), "body": text}
        try:
            async with httpx.AsyncClient(timeout=20, transport=self._transport) as client:
                response = await client.post(url, json=payload, headers=self._headers())
        except httpx.HTTPError as exc:
            logger.error("Whapi send to %s failed: %s", recipient, exc)
            return {"sent": False, "id": None}
        if response.status_code >= 400:
            logger.error("Whapi send failed (%s): %s", response.status_code, response.text[:200])
            return {"sent": False, "id": None}
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        message = data.get("message")
        message_id = message.get("id") if isinstance(message, dict) else None
        return {"sent": bool(data.get("sent", True)), "id": message_id}

    def parse_inbound(self, payload: dict[str, Any]) -> list[InboundMessage]:
        messages: list[InboundMessage] = []
        raw_messages = payload.get("messages")
        if not isinstance(raw_messages, list):
            return messages
        for msg in raw_messages:
            if not isinstance(msg, dict):
                continue
            # Skip the gateway echoing our own outgoing messages.
            if msg.get("from_me") is True:
                continue
            text_obj = msg.get("text")
            text = str(text_obj.get("body") or "") if isinstance(text_obj, dict) else ""
            if not text:
                continue
            sender = str(msg.get("from") or "unknown")
            messages.append(
                InboundMessage(
                    external_msg_id=str(msg.get("id") or ""),
                    sender_id=sender,
                    chat_id=str(msg.get("chat_id") or sender),
                    text=text,
                    raw=msg,
                )
            )
        return messages
