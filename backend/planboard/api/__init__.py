"""API router package."""

from fastapi import APIRouter

from planboard.api.v1 import health, lookups, relations, rollups

router = APIRouter()

# Include all API routers
router.include_router(health.router, tags=["Health"])
router.include_router(relations.router, prefix="/relations", tags=["Relations"])
router.include_router(lookups.router, prefix="/lookup-fields", tags=["Lookup Fields"])
router.include_router(rollups.router, prefix="/rollup-fields", tags=["Rollup Fields"])
