from fastapi import APIRouter, Request

from webapps.config.settings import Settings
from webapps.routers.counter import get_hit_counter

router = APIRouter()


@router.get("/health")
def health_check(request: Request):
    """
    Health check endpoint for monitoring API status.

    The counter variant also reports whether Redis answers a PING.
    """
    settings: Settings = request.app.state.settings

    health_status = {
        "status": "ok",
        "variant": settings.app_variant,
    }

    if settings.app_variant == "counter":
        try:
            get_hit_counter(request).ping()
            health_status["redis"] = "ready"
        except Exception as e:
            health_status["redis"] = f"error: {str(e)}"
            health_status["status"] = "degraded"

    return health_status
