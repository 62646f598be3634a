from fastapi import APIRouter, Request, Response
from datetime import datetime, timezone
from clinic_api.models.schemas import HealthResponse
from clinic_api.utils.prometheus_metrics import get_metrics, get_metrics_content_type

router = APIRouter()

@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Health check endpoint"""

    services = {}

    # Check database
    services["database"] = "healthy" if request.app.state.db.ping() else "error"

    # Check object storage
    try:
        services["storage"] = "healthy" if await request.app.state.storage.ping() else "error"
    except Exception:
        services["storage"] = "error"

    # Overall status
    overall_status = "healthy" if all(status != "error" for status in services.values()) else "degraded"

    return HealthResponse(
        status=overall_status,
        timestamp=datetime.now(timezone.utc),
        version=request.app.state.settings.version,
        services=services
    )

@router.get("/metrics")
async def prometheus_metrics(request: Request):
    """Prometheus metrics endpoint"""
    if not request.app.state.settings.prometheus_enabled:
        return {"message": "Metrics disabled"}

    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )
