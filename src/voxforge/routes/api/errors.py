"""JSON error responses for control routes."""

from typing import Any

from fastapi.responses import JSONResponse


def error_response(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


def missing_profile() -> JSONResponse:
    return error_response(400, "VOICE_ASSISTANT_ID not set")
