"""API v1: simulator control, released-times feed and meta endpoints."""

from fastapi import APIRouter

from .feed import router as feed_router
from .meta import router as meta_router
from .simulator import router as simulator_router

router = APIRouter(prefix="/api/v1", tags=["api_v1"])
router.include_router(simulator_router)
router.include_router(feed_router)
router.include_router(meta_router)

api_v1_router = router
