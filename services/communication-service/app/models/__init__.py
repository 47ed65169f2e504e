"""
Data models for communication service
"""

from .messages import (
    Destination,
    DestinationKind,
    FieldKind,
    FieldRule,
    OperationRule,
    OutboundMessage,
    RouteEntry,
    RuleCheck,
    ValidationResult,
)

__all__ = [
    "Destination",
    "DestinationKind",
    "FieldKind",
    "FieldRule",
    "OperationRule",
    "OutboundMessage",
    "RouteEntry",
    "RuleCheck",
    "ValidationResult",
]
