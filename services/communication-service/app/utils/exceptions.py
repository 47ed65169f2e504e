"""
Gateway exceptions
Every rejection the gateway can produce, with its HTTP status and wire text
"""

from enum import Enum


class Outcome(str, Enum):
    """Terminal outcome of one dispatch"""
    ACCEPTED = "accepted"
    UNAUTHORIZED = "unauthorized"
    EMPTY_BODY = "empty_body"
    BAD_CONTENT_TYPE = "bad_content_type"
    MISSING_OPERATION_ID = "missing_operation_id"
    INVALID_OPERATION_ID = "invalid_operation_id"
    MISSING_MESSAGE = "missing_message"
    INVALID_MESSAGE = "invalid_message"
    PUBLISH_FAILED = "publish_failed"


UNAUTHORIZED = "Unauthorized. You need a valid API key"
NO_DATA = "No data was sent"
NOT_JSON_OBJECT = "The content must be a JSON object"
MISSING_OPERATION_ID = "The content must contain the operationId property"
INVALID_OPERATION_ID = "Invalid operationId"
MISSING_MESSAGE = "The content must contain the message property"
BROKER_UNAVAILABLE = "Message broker unavailable"


class GatewayError(Exception):
    """Base class for rejections surfaced to the caller"""
    status_code = 400

    def __init__(self, reason: str, outcome: Outcome):
        super().__init__(reason)
        self.reason = reason
        self.outcome = outcome


class AuthError(GatewayError):
    """Missing or wrong API key"""
    status_code = 403

    def __init__(self):
        super().__init__(UNAUTHORIZED, Outcome.UNAUTHORIZED)


class MalformedRequest(GatewayError):
    """Empty body, wrong content type, or a missing envelope property"""
    pass


class UnknownOrDisallowedOperation(GatewayError):
    """operationId unknown to the registry or not whitelisted for the route"""

    def __init__(self, reason: str = INVALID_OPERATION_ID):
        super().__init__(reason, Outcome.INVALID_OPERATION_ID)


class SchemaViolation(GatewayError):
    """Message failed its operation rule"""

    def __init__(self, reason: str):
        super().__init__(reason, Outcome.INVALID_MESSAGE)


class PublishFailure(GatewayError):
    """Broker rejected the publish or could not be reached"""
    status_code = 503

    def __init__(self, detail: str = ""):
        super().__init__(BROKER_UNAVAILABLE, Outcome.PUBLISH_FAILED)
        self.detail = detail
