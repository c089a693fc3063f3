"""Messaging channel seam shared by the WhatsApp adapter and the operator notifier."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass(slots=True, frozen=True)
class InboundMessage:
    external_msg_id: str
    sender_id: str
    chat_id: str
    text: str
    raw: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class ChannelAdapter(Protocol):
    @property
    def channel_type(self) -> str: ...

    async def send_text(self, recipient: str, text: str) -> dict[str, Any]:
        """Deliver ``text``. Returns ``{"sent": bool, "id": str | None}`` and never raises."""
        ...

    def parse_inbound(self, payload: dict[str, Any]) -> list[InboundMessage]: ...
