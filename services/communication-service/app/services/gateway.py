"""
Dispatch Gateway
Runs one inbound request through authentication, envelope checks and
validation, then hands the accepted message to the publisher
"""

import hmac
import json
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import structlog

from app.models.messages import OutboundMessage, RouteEntry
from app.services.route_table import RouteTable, get_route_table
from app.services.validation import INVALID_OPERATION_ID, ValidationEngine, is_blank
from app.utils.broker import Publisher
from app.utils import exceptions
from app.utils.exceptions import (
    AuthError,
    GatewayError,
    MalformedRequest,
    Outcome,
    PublishFailure,
    SchemaViolation,
    UnknownOrDisallowedOperation,
)

logger = structlog.get_logger(__name__)

JSON_MEDIA_TYPE = "application/json"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def is_json_content_type(content_type: Optional[str]) -> bool:
    """Compare the media type only, ignoring parameters such as charset"""
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == JSON_MEDIA_TYPE


def serialize_payload(payload: Dict[str, Any]) -> bytes:
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


class DispatchGateway:
    """
    Orchestrates one request end-to-end

    Checks run in a fixed order and the first failure is terminal:
    API key, non-empty body, JSON content type, operationId present,
    operationId whitelisted for the route, message present, message valid.
    Only then is the message timestamped and published.
    """

    def __init__(
        self,
        publisher: Publisher,
        api_key: str,
        engine: Optional[ValidationEngine] = None,
        route_table: Optional[RouteTable] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.publisher = publisher
        self._api_key = api_key or ""
        self.engine = engine or ValidationEngine()
        self.route_table = route_table or get_route_table()
        self.clock = clock

    def dispatch(
        self,
        route: RouteEntry,
        api_key: Optional[str],
        content_type: Optional[str],
        body: bytes,
    ) -> OutboundMessage:
        """Validate and publish one request, raising GatewayError on rejection"""
        try:
            envelope = self._check_request(route, api_key, content_type, body)
        except GatewayError as e:
            logger.warning(
                "Message rejected",
                route=route.route_name,
                outcome=e.outcome.value,
                status_code=e.status_code,
                reason=e.reason,
            )
            raise

        outbound = OutboundMessage(
            envelope=envelope,
            date=self.clock(),
            destination=route.destination,
        )
        try:
            self.publisher.publish(outbound.destination, serialize_payload(outbound.to_payload()))
        except PublishFailure as e:
            logger.error(
                "Message publish failed",
                route=route.route_name,
                operation_id=envelope["operationId"],
                destination=outbound.destination.name,
                outcome=e.outcome.value,
                error=e.detail,
            )
            raise

        logger.info(
            "Message published",
            route=route.route_name,
            operation_id=envelope["operationId"],
            destination_kind=outbound.destination.kind.value,
            destination=outbound.destination.name,
            outcome=Outcome.ACCEPTED.value,
        )
        return outbound

    def is_authenticated(self, api_key: Optional[str]) -> bool:
        if not self._api_key or not api_key:
            return False
        return hmac.compare_digest(api_key.encode("utf-8"), self._api_key.encode("utf-8"))

    def _check_request(
        self,
        route: RouteEntry,
        api_key: Optional[str],
        content_type: Optional[str],
        body: bytes,
    ) -> Dict[str, Any]:
        if not self.is_authenticated(api_key):
            raise AuthError()

        if not body or not body.strip():
            raise MalformedRequest(exceptions.NO_DATA, Outcome.EMPTY_BODY)

        if not is_json_content_type(content_type):
            raise MalformedRequest(exceptions.NOT_JSON_OBJECT, Outcome.BAD_CONTENT_TYPE)

        try:
            envelope = json.loads(body)
        except (ValueError, RecursionError):
            raise MalformedRequest(exceptions.NOT_JSON_OBJECT, Outcome.BAD_CONTENT_TYPE)
        if not isinstance(envelope, dict):
            raise MalformedRequest(exceptions.NOT_JSON_OBJECT, Outcome.BAD_CONTENT_TYPE)

        operation_id = envelope.get("operationId")
        if is_blank(operation_id):
            raise MalformedRequest(exceptions.MISSING_OPERATION_ID, Outcome.MISSING_OPERATION_ID)

        if not self.route_table.is_operation_allowed(route, operation_id):
            raise UnknownOrDisallowedOperation()

        message = envelope.get("message")
        if message is None or message == "":
            raise MalformedRequest(exceptions.MISSING_MESSAGE, Outcome.MISSING_MESSAGE)

        result = self.engine.validate(operation_id, message)
        if not result.accepted:
            if result.reason == INVALID_OPERATION_ID:
                # Whitelisted but unknown to the registry
                raise UnknownOrDisallowedOperation(result.reason)
            raise SchemaViolation(result.reason)

        return envelope
