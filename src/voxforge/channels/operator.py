"""Operator notification channel."""

import logging

from voxforge.channels.base import ChannelAdapter

logger = logging.getLogger(__name__)

OPERATOR_PREFIX = "Agent: "


class OperatorNotifier:
    def __init__(self, channel: ChannelAdapter, contact: str) -> None:
        self._channel = channel
        self._contact = contact.strip()

    @property
    def configured(self) -> bool:
        return bool(self._contact)

    async def notify(self, text: str) -> bool:
        if not self._contact:
            logger.warning("OPERATOR_CONTACT not set, operator message: %s", text)
            return False
        result = await self._channel.send_text(self._contact, f"{OPERATOR_PREFIX}{text}")
        sent = bool(result.get("sent"))
        if not sent:
            logger.warning("Operator notification was not delivered")
        return sent
