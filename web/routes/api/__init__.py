"""
API routes split by concern.

Each sub-module defines its own APIRouter which is composed
into the top-level router exposed by this package (mounted at /api).
The health router is mounted at the root by web.main.
"""
from fastapi import APIRouter

from .records import router as records_router
from .analytics import router as analytics_router
from .health import router as health_router

router = APIRouter(tags=["api"])

router.include_router(records_router)
router.include_router(analytics_router)

__all__ = ["router", "health_router"]
