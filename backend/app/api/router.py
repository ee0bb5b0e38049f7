"""
Top-level API router that aggregates all sub-routers.
"""

from fastapi import APIRouter

from app.api.pvgis import router as pvgis_router

router = APIRouter()
router.include_router(pvgis_router)
