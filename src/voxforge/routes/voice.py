"""Voice provider webhook routes."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from voxforge.errors import VoxforgeError
from voxforge.ratelimit import limiter, webhook_rate
from voxforge.services import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/voice", tags=["voice"])


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _arguments(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str) and raw.strip():
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError:
            return {}
        return decoded if isinstance(decoded, dict) else {}
    return {}


@router.post("/tool-calls", response_model=None)
@limiter.limit(webhook_rate)
async def tool_calls(
    request: Request,
    services: Services = Depends(get_services),
) -> dict[str, Any] | JSONResponse:
    payload = await request.json()
    message = _as_dict(_as_dict(payload).get("message"))
    if message.get("type") != "tool-calls":
        return JSONResponse(status_code=400, content={"error": "expected tool-calls message type"})

    caller = _as_dict(_as_dict(message.get("call")).get("customer")).get("number")
    results: list[dict[str, str]] = []
    for call in message.get("toolCallList") or []:
        if not isinstance(call, dict):
            continue
        function = _as_dict(call.get("function"))
        name = str(function.get("name") or "")
        args = _arguments(function.get("arguments"))
        logger.info("Capability call: %s", name)
        if name and name in services.registry:
            result = await services.runtime.invoke(name, args)
        else:
            logger.info("Capability %s not found, asking the brain", name)
            try:
                decided = await services.brain.decide(
                    f'Capability "{name}" was called with {json.dumps(args)} but does not '
                    "exist. Handle this request.",
                    channel="voice",
                    caller=str(caller) if caller else None,
                )
                result = decided.result or "Unable to process"
            except VoxforgeError as exc:
                logger.warning("Brain fallback for %s failed: %s", name, exc)
                result = "Unable to process"
        results.append({"toolCallId": str(call.get("id") or ""), "result": result})
    return {"results": results}


@router.post("/server-message")
@limiter.limit(webhook_rate)
async def server_message(
    request: Request,
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    payload = await request.json()
    message = _as_dict(_as_dict(payload).get("message"))
    message_type = str(message.get("type") or "")
    logger.info("Server message: %s", message_type)
    if message_type != "end-of-call-report":
        return {"ok": True}

    call = _as_dict(message.get("call"))
    call_id = str(call.get("id") or "")
    profile_id = str(call.get("assistantId") or services.profile_id)
    ended_reason = str(message.get("endedReason") or "")
    contact = _as_dict(call.get("customer")).get("number")
    contact = str(contact) if contact else None
    logger.info("Interaction %s ended: %s", call_id, ended_reason or "unknown")

    if not (call_id and profile_id and ended_reason in services.settings.trigger_reasons):
        return {"ok": True, "improvement": "ignored"}

    pipeline = services.pipeline

    async def run() -> Any:
        return await pipeline.run_for_outcome(call_id, profile_id, contact)

    services.runner.submit(profile_id, run, name=f"improve:{call_id}")
    logger.info("Unsatisfactory ending (%s), self-improvement scheduled", ended_reason)
    return {"ok": True, "improvement": "scheduled"}
