"""Voxforge HTTP service: webhooks, control API and app lifespan."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from voxforge.config import get_settings, validate_settings_for_env
from voxforge.improve.runner import PipelineRunner
from voxforge.logging import configure_logging
from voxforge.ratelimit import limiter
from voxforge.routes.api import router as api_router
from voxforge.routes.health import router as health_router
from voxforge.routes.voice import router as voice_router
from voxforge.routes.whatsapp import router as whatsapp_router
from voxforge.services import get_services

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    validate_settings_for_env(settings)
    configure_logging(settings.log_level)
    services = get_services()
    if not services.runner.accepting:
        # A previous lifespan shut this runner down; it cannot take new work.
        services.runner = PipelineRunner(services.notifier)
    logger.info(
        "Voxforge ready: %d capabilities, profile %s",
        len(services.registry),
        services.profile_id or "NOT SET",
    )
    if not settings.automation_configured:
        logger.warning("Automation platform not configured; deployments will be skipped")
    yield
    await services.runner.shutdown(timeout_s=float(settings.pipeline_shutdown_timeout_seconds))


app = FastAPI(title="Voxforge", version="0.1.0", lifespan=lifespan)
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={"error": "rate limit exceeded", "detail": str(exc.detail)},
    )


app.include_router(health_router)
app.include_router(voice_router)
app.include_router(whatsapp_router)
app.include_router(api_router)
