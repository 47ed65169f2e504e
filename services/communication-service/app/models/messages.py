"""
Message gateway data models
Operation rules, route entries and the envelopes that flow through the gateway
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FieldKind(str, Enum):
    """Shape a field value must have once it is present"""
    ANY = "any"
    ARRAY = "array"
    INTEGER = "integer"
    OBJECT_ARRAY = "object_array"


class FieldRule(BaseModel):
    """Constraint on a single message field"""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Field name inside the message object")
    required: bool = Field(default=True, description="Field must be present and non-empty")
    nullable: bool = Field(default=False, description="Explicit null satisfies the presence check")
    kind: FieldKind = Field(default=FieldKind.ANY, description="Expected value shape")
    non_empty: bool = Field(default=False, description="Arrays must hold at least one element")
    choices: Optional[Tuple[str, ...]] = Field(None, description="Allowed literal values")
    minimum: Optional[int] = Field(None, description="Inclusive lower bound for integers")
    maximum: Optional[int] = Field(None, description="Inclusive upper bound for integers")
    items: Tuple["FieldRule", ...] = Field(default=(), description="Rules applied to every element of an object array")


class RuleCheck(BaseModel):
    """Group of field rules reported together under one requirement text"""
    model_config = ConfigDict(frozen=True)

    field_rules: Tuple[FieldRule, ...] = Field(..., min_length=1)
    requirement: str = Field(..., min_length=1, description="Human readable requirement, without trailing period")


class OperationRule(BaseModel):
    """Validation rule for one operationId"""
    model_config = ConfigDict(frozen=True)

    operation_id: str = Field(..., min_length=1)
    checks: Tuple[RuleCheck, ...] = Field(..., min_length=1)

    @property
    def required_fields(self) -> List[str]:
        """Ordered names of the fields that must be present"""
        names: List[str] = []
        for check in self.checks:
            for field_rule in check.field_rules:
                if field_rule.required and field_rule.name not in names:
                    names.append(field_rule.name)
        return names

    @property
    def field_constraints(self) -> Dict[str, FieldRule]:
        """Field rules that constrain a value beyond presence"""
        return {
            field_rule.name: field_rule
            for check in self.checks
            for field_rule in check.field_rules
            if field_rule.kind != FieldKind.ANY or field_rule.choices
        }


class ValidationResult(BaseModel):
    """Outcome of validating a message against its operation rule"""
    model_config = ConfigDict(frozen=True)

    accepted: bool
    reason: str = ""


class DestinationKind(str, Enum):
    """Broker destination types"""
    QUEUE = "queue"
    TOPIC = "topic"


class Destination(BaseModel):
    """Resolved broker destination"""
    model_config = ConfigDict(frozen=True)

    kind: DestinationKind
    name: str = Field(..., min_length=1)


class RouteEntry(BaseModel):
    """Inbound route bound to one broker destination and an operationId whitelist"""
    model_config = ConfigDict(frozen=True)

    route_name: str = Field(..., min_length=1, description="HTTP path segment of the downstream service")
    queue_name: Optional[str] = Field(None, description="Point-to-point queue destination")
    topic: Optional[str] = Field(None, description="Routing key on the topic exchange")
    allowed_operation_ids: FrozenSet[str] = Field(..., min_length=1)

    @model_validator(mode="after")
    def validate_single_destination(self):
        """Exactly one of queue_name and topic must be set"""
        if bool(self.queue_name) == bool(self.topic):
            raise ValueError(
                f"Route '{self.route_name}' must define exactly one of queue_name or topic"
            )
        return self

    @property
    def destination(self) -> Destination:
        if self.queue_name:
            return Destination(kind=DestinationKind.QUEUE, name=self.queue_name)
        return Destination(kind=DestinationKind.TOPIC, name=self.topic)


class OutboundMessage(BaseModel):
    """Accepted envelope plus the server acceptance timestamp"""
    model_config = ConfigDict(frozen=True)

    envelope: Dict[str, Any]
    date: datetime
    destination: Destination

    def to_payload(self) -> Dict[str, Any]:
        """Envelope fields followed by the ISO-8601 UTC ``date``"""
        payload = dict(self.envelope)
        payload["date"] = self.date.isoformat(timespec="milliseconds").replace("+00:00", "Z")
        return payload


class MessageSentResponse(BaseModel):
    """Body returned when a message is accepted"""
    message: str = Field(default="Message sent successfully")


class ErrorResponse(BaseModel):
    """Body returned for every rejected request"""
    error: str


class ServiceCheckResponse(BaseModel):
    """Body of the messages health check"""
    message: str
