"""Health check and metrics endpoints."""
import time

from fastapi import APIRouter, Depends
from fastapi.responses import ORJSONResponse

from core.config import AppConfig
from core.exceptions import StoreError
from core.observability import MetricsCollector, Timer, get_correlation_id, get_logger
from web.schemas import HealthResponse
from ._deps import START_TIME, get_config, get_metrics, get_store_or_none

router = APIRouter(tags=["health"])
logger = get_logger(__name__)


@router.get("/health", response_model=HealthResponse)
async def health_check(
    store=Depends(get_store_or_none),
    config: AppConfig = Depends(get_config),
):
    """Liveness and store reachability probe."""
    try:
        if store is None:
            raise StoreError("Store is not connected")
        with Timer("health_check_db") as timer:
            timestamp = await store.now()
    except StoreError as e:
        logger.warning(f"Health check failed: {e}")
        return ORJSONResponse(
            status_code=500,
            content={"status": "unhealthy", "error": str(e)},
        )

    return {
        "status": "healthy",
        "database": "connected",
        "timestamp": timestamp,
        "version": config.version,
        "uptime_seconds": int(time.time() - START_TIME),
        "latency_ms": round(timer.elapsed_ms, 2),
    }


@router.get("/api/metrics")
async def get_metrics_endpoint(metrics: MetricsCollector = Depends(get_metrics)):
    """Request counts, error counts and timings since startup."""
    return {
        "uptime_seconds": int(time.time() - START_TIME),
        "correlation_id": get_correlation_id(),
        **metrics.get_stats(),
    }
