"""
Validation Engine
Generic interpreter for the declarative operation rules
"""

import json
from typing import Any, Dict, Optional

from app.models.messages import FieldKind, FieldRule, OperationRule, ValidationResult
from app.services.schema_registry import SchemaRegistry, get_schema_registry

INVALID_OPERATION_ID = "Invalid operationId"


def is_blank(value: Any) -> bool:
    """Null, empty strings and empty collections count as absent"""
    if value is None:
        return True
    if isinstance(value, (str, list, dict)):
        return len(value) == 0
    return False


def _is_integer(value: Any) -> bool:
    # JSON true/false decode to bool, which is an int subclass
    return isinstance(value, int) and not isinstance(value, bool)


def _satisfies_kind(rule: FieldRule, value: Any) -> bool:
    if rule.kind == FieldKind.ARRAY:
        if not isinstance(value, list):
            return False
        return not (rule.non_empty and not value)

    if rule.kind == FieldKind.INTEGER:
        if not _is_integer(value):
            return False
        if rule.minimum is not None and value < rule.minimum:
            return False
        if rule.maximum is not None and value > rule.maximum:
            return False
        return True

    if rule.kind == FieldKind.OBJECT_ARRAY:
        if not isinstance(value, list) or (rule.non_empty and not value):
            return False
        return all(
            isinstance(item, dict) and all(field_rule_passes(nested, item) for nested in rule.items)
            for item in value
        )

    return True


def field_rule_passes(rule: FieldRule, message: Dict[str, Any]) -> bool:
    """Evaluate one field rule against a message object"""
    if rule.name not in message:
        return not rule.required

    value = message[rule.name]
    if value is None:
        return rule.nullable or not rule.required
    if rule.required and is_blank(value):
        return False

    if rule.choices is not None:
        if not isinstance(value, str) or value not in rule.choices:
            return False

    return _satisfies_kind(rule, value)


def decode_message(message: Any) -> Dict[str, Any]:
    """
    Normalize a message value into an object

    JSON-encoded strings are decoded; anything that is not an object
    afterwards is treated as an object without fields.
    """
    if isinstance(message, str):
        try:
            message = json.loads(message)
        except (ValueError, RecursionError):
            return {}
    if not isinstance(message, dict):
        return {}
    return message


class ValidationEngine:
    """Pure accept/reject decision for a message and its operationId"""

    def __init__(self, registry: Optional[SchemaRegistry] = None):
        self.registry = registry or get_schema_registry()

    def validate(self, operation_id: str, message: Any) -> ValidationResult:
        rule = self.registry.get_rule(operation_id) if isinstance(operation_id, str) else None
        if rule is None:
            return ValidationResult(accepted=False, reason=INVALID_OPERATION_ID)
        return self.apply_rule(rule, message)

    @staticmethod
    def apply_rule(rule: OperationRule, message: Any) -> ValidationResult:
        """Run a rule's checks in order and stop at the first failure"""
        body = decode_message(message)
        for check in rule.checks:
            if not all(field_rule_passes(field_rule, body) for field_rule in check.field_rules):
                return ValidationResult(
                    accepted=False,
                    reason=f"Invalid message for operationId: {rule.operation_id}. {check.requirement}.",
                )
        return ValidationResult(accepted=True)
