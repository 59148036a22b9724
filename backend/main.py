import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import get_settings
from core.database import init_database, dispose_database
from core.logging import setup_logging
from routes.api_v1 import api_v1_router
from routes.legacy_feed import router as legacy_feed_router
from simulator.params import SimulationParams
from simulator.service import init_simulator_service, shutdown_simulator_service
from simulator.store import SqlTimingStore
from version import get_version

settings = get_settings()
setup_logging(settings)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, version=get_version())

# CORS: defined here only, before any routers.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

app.include_router(api_v1_router)
app.include_router(legacy_feed_router)


def default_params() -> SimulationParams:
    """Replay defaults from settings, clamped like per-run options."""
    return SimulationParams.from_options(
        {
            "batch_min": settings.batch_min,
            "batch_max": settings.batch_max,
            "interval_seconds": settings.interval_seconds,
            "overlap_threshold": settings.overlap_threshold,
            "order_variation": settings.order_variation,
        }
    )


@app.on_event("startup")
async def on_startup() -> None:
    """Application startup hook."""
    manager = await init_database(settings.database_url)
    init_simulator_service(
        SqlTimingStore(manager),
        defaults=default_params(),
        default_event_id=settings.default_event_id,
    )
    logger.info("CORS allow_origins=%s", settings.cors_origins)
    logger.info("Application startup complete")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    """Application shutdown hook."""
    await shutdown_simulator_service()
    await dispose_database()
    logger.info("Application shutdown complete")


@app.get("/health")
async def health() -> dict:
    """Simple health check endpoint."""
    return {"status": "ok", "service": "timing-replay-simulator", "version": get_version()}


@app.get("/")
async def info() -> dict:
    """Service description and the control endpoints."""
    return {
        "name": settings.app_name,
        "version": get_version(),
        "endpoints": {
            "POST /api/v1/simulator/init": "Load an event and prepare a run",
            "POST /api/v1/simulator/start": "Start automatic release",
            "POST /api/v1/simulator/pause": "Pause / resume",
            "POST /api/v1/simulator/resume": "Resume",
            "POST /api/v1/simulator/stop": "Stop (progress kept)",
            "POST /api/v1/simulator/reset": "Reset progress",
            "POST /api/v1/simulator/drain": "Release one batch on demand",
            "GET /api/v1/simulator/status": "Detailed status",
            "GET /api/v1/simulator/log": "Event log",
            "GET /api/v1/feed/{event_id}/times": "Released times",
            "GET /health": "Health check",
        },
    }
