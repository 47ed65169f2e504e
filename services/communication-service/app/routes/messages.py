"""
Message API Routes
One POST endpoint per downstream microservice plus the service check
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
import structlog

from app.models.messages import ErrorResponse, MessageSentResponse, RouteEntry, ServiceCheckResponse
from app.services.gateway import DispatchGateway
from app.services.route_table import get_route_table
from app.utils.config import get_app_config

logger = structlog.get_logger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Malformed envelope or invalid message"},
    403: {"model": ErrorResponse, "description": "Missing or invalid API key"},
    503: {"model": ErrorResponse, "description": "Message broker unavailable"},
}


def get_gateway(request: Request) -> DispatchGateway:
    """Dependency to get the dispatch gateway"""
    return request.app.state.gateway


@router.get("/check", response_model=ServiceCheckResponse)
async def check_service():
    """Service check, does not require an API key"""
    return ServiceCheckResponse(
        message=f"{get_app_config().service_display_name} is working properly!"
    )


def _route_handler(entry: RouteEntry):
    async def send_message(
        request: Request,
        x_api_key: Optional[str] = Header(None),
        gateway: DispatchGateway = Depends(get_gateway),
    ):
        body = await request.body()
        gateway.dispatch(entry, x_api_key, request.headers.get("content-type"), body)
        return MessageSentResponse()

    send_message.__doc__ = (
        f"Validate an operation envelope and forward it to {entry.destination.kind.value} "
        f"'{entry.destination.name}'"
    )
    return send_message


for route_entry in get_route_table():
    router.add_api_route(
        f"/{route_entry.route_name}",
        _route_handler(route_entry),
        methods=["POST"],
        status_code=201,
        response_model=MessageSentResponse,
        responses=ERROR_RESPONSES,
        name=f"send_{route_entry.route_name.replace('/', '_').replace('-', '_')}",
    )
