"""
Health check routes for communication service
"""

from datetime import datetime

from fastapi import APIRouter, Request
import structlog

from app.services.route_table import get_route_table
from app.services.schema_registry import get_schema_registry
from app.utils.config import get_app_config

logger = structlog.get_logger(__name__)

router = APIRouter()


def _broker_status(request: Request) -> str:
    publisher = getattr(request.app.state, "publisher", None)
    if publisher is None:
        return "not_initialized"
    try:
        return "connected" if publisher.is_connected() else "disconnected"
    except Exception as e:
        logger.error("Broker status check failed", error=str(e))
        return "disconnected"


@router.get("/health")
async def health_check(request: Request):
    """Health check endpoint"""
    app_config = get_app_config()
    return {
        "service": app_config.service_name,
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "broker": _broker_status(request),
        "version": app_config.service_version
    }


@router.get("/health/detailed")
async def detailed_health_check(request: Request):
    """Detailed health check with component status"""
    app_config = get_app_config()
    broker_status = _broker_status(request)

    health_data = {
        "service": app_config.service_name,
        "status": "healthy" if broker_status == "connected" else "degraded",
        "timestamp": datetime.utcnow().isoformat(),
        "version": app_config.service_version,
        "components": {
            "broker": {"status": broker_status},
            "routes": {"status": "healthy", "count": len(get_route_table())},
            "operations": {"status": "healthy", "count": len(get_schema_registry())},
        }
    }
    return health_data
