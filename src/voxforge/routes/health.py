"""Health routes."""

import time

from fastapi import APIRouter, Depends

from voxforge.services import Services, get_services

router = APIRouter(tags=["health"])

_started_at = time.monotonic()


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/health")
async def health(services: Services = Depends(get_services)) -> dict[str, object]:
    capabilities = [item.summary() for item in services.registry.list_all()]
    improvements = [record.summary() for record in services.history.list()]
    return {
        "status": "ok",
        "uptime": round(time.monotonic() - _started_at, 3),
        "capabilityCount": len(capabilities),
        "capabilities": capabilities,
        "improvementCount": len(improvements),
        "improvements": improvements,
        "pipelineRunsInFlight": services.runner.in_flight,
        "reasoningLanes": await services.gateway.router.health(),
    }
