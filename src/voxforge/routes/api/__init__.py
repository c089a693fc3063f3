"""Control API router aggregation."""

from fastapi import APIRouter

from voxforge.routes.api import calls, capabilities, improve

router = APIRouter(tags=["api"])
router.include_router(capabilities.router)
router.include_router(improve.router)
router.include_router(calls.router)
