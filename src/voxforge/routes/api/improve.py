"""Manual improvement trigger, reset and state inspection."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field

from voxforge.errors import PipelineAbort, ProviderError, VoxforgeError
from voxforge.improve.types import ImprovementRecord, RunState
from voxforge.profile.baseline import BASELINE, reset_to_baseline
from voxforge.routes.api.errors import error_response, missing_profile
from voxforge.services import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter(tags=["api-improve"])


class ImproveRequest(BaseModel):
    outcome_id: str = Field(
        default="", validation_alias=AliasChoices("outcome_id", "outcomeId", "callId")
    )
    transcript: str = ""
    contact: str | None = Field(
        default=None, validation_alias=AliasChoices("contact", "customerNumber")
    )


class BrainRequest(BaseModel):
    message: str = ""
    channel: str = "test"
    caller: str | None = None


@router.post("/improve", response_model=None)
async def improve(
    body: ImproveRequest,
    services: Services = Depends(get_services),
) -> dict[str, Any] | JSONResponse:
    profile_id = services.profile_id
    if not profile_id:
        return missing_profile()
    pipeline = services.pipeline
    if body.outcome_id.strip():
        outcome_id = body.outcome_id.strip()

        async def run() -> ImprovementRecord:
            return await pipeline.run_for_outcome(outcome_id, profile_id, body.contact)

    elif body.transcript.strip():
        transcript = body.transcript

        async def run() -> ImprovementRecord:
            return await pipeline.run_for_transcript(transcript, profile_id, body.contact)

    else:
        return error_response(400, "Provide outcome_id or transcript")

    try:
        record = await services.runner.run_exclusive(profile_id, run)
    except (PipelineAbort, ProviderError) as exc:
        logger.warning("Manual improvement aborted: %s", exc)
        return error_response(500, str(exc), state=RunState.ABORTED.value)
    return record.to_dict()


@router.post("/reset", response_model=None)
async def reset(services: Services = Depends(get_services)) -> dict[str, Any] | JSONResponse:
    profile_id = services.profile_id
    if not profile_id:
        return missing_profile()
    try:
        result = await services.runner.run_exclusive(
            profile_id,
            lambda: reset_to_baseline(
                profile_id, services.tuning, services.registry, services.history
            ),
        )
    except VoxforgeError as exc:
        return error_response(500, str(exc))
    return {
        "ok": True,
        "message": "Reset to baseline. Instructions are weak, synthesized capabilities "
        "cleared, history wiped.",
        "baseline": BASELINE.to_dict(),
        **result,
    }


@router.get("/baseline")
def baseline() -> dict[str, Any]:
    return {"baseline": BASELINE.to_dict()}


@router.get("/state")
async def state(services: Services = Depends(get_services)) -> dict[str, Any]:
    current: dict[str, Any] | None = None
    if services.profile_id:
        try:
            profile = await services.tuning.fetch(services.profile_id)
            current = {"schema": profile.schema_name, **profile.snapshot()}
        except VoxforgeError as exc:
            logger.warning("State read of profile %s failed: %s", services.profile_id, exc)
    return {
        "baseline": BASELINE.to_dict(),
        "current": current,
        "synthesizedCapabilities": [
            item.summary() for item in services.registry.list_synthesized()
        ],
        "improvements": [record.summary() for record in services.history.list()],
    }


@router.get("/prompt")
async def prompt(services: Services = Depends(get_services)) -> dict[str, Any]:
    instructions: str | None = None
    if services.profile_id:
        try:
            instructions = (await services.tuning.fetch(services.profile_id)).instructions
        except VoxforgeError as exc:
            logger.warning("Prompt read failed: %s", exc)
    return {"profileId": services.profile_id or None, "instructions": instructions}


@router.post("/test/brain", response_model=None)
async def test_brain(
    body: BrainRequest,
    services: Services = Depends(get_services),
) -> dict[str, Any] | JSONResponse:
    if not body.message.strip():
        return error_response(400, "message required")
    try:
        decided = await services.brain.decide(
            body.message, channel=body.channel, caller=body.caller
        )
    except VoxforgeError as exc:
        return error_response(500, str(exc))
    return decided.to_dict()
