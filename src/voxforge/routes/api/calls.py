"""Outbound call creation, recent call listing and call lookup."""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field

from voxforge.errors import VoxforgeError
from voxforge.routes.api.errors import error_response, missing_profile
from voxforge.services import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/calls", tags=["api-calls"])


class CreateCallRequest(BaseModel):
    contact: str = Field(
        default="", validation_alias=AliasChoices("contact", "customerNumber")
    )
    phone_number_id: str = Field(
        default="", validation_alias=AliasChoices("phone_number_id", "phoneNumberId")
    )


@router.post("/create", response_model=None)
async def create_call(
    body: CreateCallRequest,
    services: Services = Depends(get_services),
) -> dict[str, str] | JSONResponse:
    if not services.profile_id:
        return missing_profile()
    if not body.contact.strip():
        return error_response(400, "contact required")
    try:
        call_id = await services.voice.create_outbound_call(
            services.profile_id,
            body.contact.strip(),
            body.phone_number_id or services.settings.voice_phone_number_id,
        )
    except VoxforgeError as exc:
        logger.warning("Outbound call failed: %s", exc)
        return error_response(500, str(exc))
    return {"callId": call_id}


@router.get("", response_model=None)
async def list_calls(
    limit: int = Query(default=5, ge=1, le=100),
    services: Services = Depends(get_services),
) -> dict[str, object] | JSONResponse:
    if not services.profile_id:
        return missing_profile()
    try:
        items = await services.voice.list_recent_calls(services.profile_id, limit=limit)
    except VoxforgeError as exc:
        return error_response(500, str(exc))
    return {"count": len(items), "items": items}


@router.get("/{call_id}", response_model=None)
async def get_call(
    call_id: str,
    services: Services = Depends(get_services),
) -> dict[str, object] | JSONResponse:
    try:
        return await services.voice.get_call(call_id)
    except VoxforgeError as exc:
        return error_response(500, str(exc))
