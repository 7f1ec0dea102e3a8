"""Observability API endpoints.

Provides metrics, health checks, and readiness probes for monitoring.
"""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..infrastructure.storage.storage_config import StorageConfig
from ..dependencies import get_storage_config
from .health import HealthStatus, check_store_health, get_overall_health

router = APIRouter(tags=["Observability"])


@router.get("/metrics", include_in_schema=False)
def metrics():
    """Expose Prometheus metrics in text exposition format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/health", summary="Health check endpoint")
def health_check(config: StorageConfig = Depends(get_storage_config)):
    """Report component health; 503 if any component is unhealthy."""
    components = {"entry_store": check_store_health(config.root)}
    overall_status = get_overall_health(components)

    response_data = {
        "status": overall_status.value,
        "components": {
            name: {
                "status": comp.status.value,
                "message": comp.message,
                "latency_ms": comp.latency_ms,
            }
            for name, comp in components.items()
        },
    }
    status_code = 200 if overall_status != HealthStatus.UNHEALTHY else 503
    return JSONResponse(content=response_data, status_code=status_code)


@router.get("/ready", summary="Readiness check endpoint")
def readiness_check(config: StorageConfig = Depends(get_storage_config)):
    """Ready once the entry store can be written."""
    store_health = check_store_health(config.root)
    if store_health.status == HealthStatus.HEALTHY:
        return {"status": "ready", "message": "Application is ready to serve traffic"}

    return JSONResponse(
        content={"status": "not_ready", "message": store_health.message},
        status_code=503,
    )
