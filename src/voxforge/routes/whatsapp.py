"""Inbound WhatsApp webhook."""

import logging

from fastapi import APIRouter, Depends, Request

from voxforge.errors import VoxforgeError
from voxforge.ratelimit import limiter, webhook_rate
from voxforge.services import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/whatsapp", tags=["whatsapp"])


@router.post("/incoming")
@limiter.limit(webhook_rate)
async def incoming(
    request: Request,
    services: Services = Depends(get_services),
) -> dict[str, object]:
    payload = await request.json()
    if not isinstance(payload, dict):
        return {"ok": True, "processed": 0}
    processed = 0
    for message in services.channel.parse_inbound(payload):
        logger.info("WhatsApp message from %s", message.sender_id)
        try:
            decided = await services.brain.decide(
                message.text, channel="whatsapp", caller=message.sender_id
            )
        except VoxforgeError as exc:
            logger.warning("Brain failed for message %s: %s", message.external_msg_id, exc)
            continue
        if decided.result:
            await services.channel.send_text(message.chat_id, decided.result)
        processed += 1
    return {"ok": True, "processed": processed}
