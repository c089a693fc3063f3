"""Capability and improvement-history listings."""

from fastapi import APIRouter, Depends

from voxforge.services import Services, get_services

router = APIRouter(tags=["api-capabilities"])


@router.get("/capabilities")
def list_capabilities(services: Services = Depends(get_services)) -> dict[str, object]:
    items = [item.summary() for item in services.registry.list_all()]
    return {"count": len(items), "items": items}


@router.get("/improvements")
def list_improvements(
    outcome_id: str | None = None,
    services: Services = Depends(get_services),
) -> dict[str, object]:
    records = [record.to_dict() for record in services.history.list(outcome_id)]
    return {"count": len(records), "items": records}
