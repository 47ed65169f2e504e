"""
Schema Registry
One validation rule per known operationId, fixed at import time
"""

from types import MappingProxyType
from typing import Iterable, Mapping, Optional

import structlog

from app.models.messages import FieldKind, FieldRule, OperationRule, RuleCheck

logger = structlog.get_logger(__name__)

PLAN_TIERS = ("FREE", "ADVANCED", "PRO")

USER_PROFILE_FIELDS = ("firstName", "lastName", "username", "email", "profilePicture")


def _required(*names: str) -> RuleCheck:
    fields = tuple(FieldRule(name=name) for name in names)
    if len(names) == 1:
        requirement = f"Missing {names[0]}"
    else:
        requirement = f"{' and '.join(names)} are required"
    return RuleCheck(field_rules=fields, requirement=requirement)


def _optional_array(name: str) -> RuleCheck:
    return RuleCheck(
        field_rules=(FieldRule(name=name, required=False, kind=FieldKind.ARRAY),),
        requirement=f"{name} must be an array",
    )


def _rule(operation_id: str, *checks: RuleCheck) -> OperationRule:
    return OperationRule(operation_id=operation_id, checks=checks)


DEFAULT_RULES = (
    _rule(
        "requestAppUsers",
        RuleCheck(
            field_rules=(FieldRule(name="usernames", kind=FieldKind.ARRAY, non_empty=True),),
            requirement="Missing usernames or usernames is not an array or is empty",
        ),
    ),
    _rule(
        "notificationNewPlanPayment",
        RuleCheck(
            field_rules=(
                FieldRule(name="username"),
                FieldRule(name="plan", choices=PLAN_TIERS),
            ),
            requirement=(
                "Missing username or plan, or invalid value for plan "
                f"({', '.join(PLAN_TIERS)})"
            ),
        ),
    ),
    _rule("notificationUserDeletion", _required("username")),
    _rule("publishNewCourseAccess", _required("username", "courseId")),
    _rule("publishNewMaterialAccess", _required("username", "materialId")),
    _rule(
        "responseAppClassesAndMaterials",
        _required("courseId"),
        _optional_array("classIds"),
        _optional_array("materialIds"),
    ),
    _rule("notificationNewClass", _required("classId", "courseId")),
    _rule("notificationDeleteClass", _required("classId")),
    _rule("notificationAssociateMaterial", _required("materialId", "courseId")),
    _rule("notificationDisassociateMaterial", _required("materialId", "courseId")),
    _rule("requestMaterialReviews", _required("materialId")),
    _rule(
        "responseMaterialReviews",
        RuleCheck(
            field_rules=(
                FieldRule(name="materialId"),
                FieldRule(name="review", nullable=True),
            ),
            requirement="materialId and review are required",
        ),
        RuleCheck(
            field_rules=(
                FieldRule(name="review", nullable=True, kind=FieldKind.INTEGER, minimum=1, maximum=5),
            ),
            requirement="Invalid review value (must be a number between 1 and 5 or null)",
        ),
    ),
    _rule(
        "responseAppUsers",
        RuleCheck(
            field_rules=(FieldRule(name="users", kind=FieldKind.ARRAY, non_empty=True),),
            requirement="users must be an array with at least one element",
        ),
        RuleCheck(
            field_rules=(
                FieldRule(
                    name="users",
                    kind=FieldKind.OBJECT_ARRAY,
                    non_empty=True,
                    items=tuple(FieldRule(name=name) for name in USER_PROFILE_FIELDS)
                    + (FieldRule(name="plan", choices=PLAN_TIERS),),
                ),
            ),
            requirement=(
                "Missing properties in user object "
                f"({', '.join(USER_PROFILE_FIELDS + ('plan',))}) or invalid plan value "
                f"(must be {', '.join(PLAN_TIERS[:-1])} or {PLAN_TIERS[-1]})"
            ),
        ),
    ),
    _rule("requestAppClassesAndMaterials", _required("courseId")),
    _rule(
        "notificationDeleteCourse",
        _required("courseId"),
        _optional_array("classIds"),
        _optional_array("materialIds"),
    ),
)


class SchemaRegistry:
    """Read-only lookup of operation rules by operationId"""

    def __init__(self, rules: Iterable[OperationRule] = DEFAULT_RULES):
        by_id = {}
        for rule in rules:
            if rule.operation_id in by_id:
                raise ValueError(f"Duplicate rule for operationId '{rule.operation_id}'")
            by_id[rule.operation_id] = rule
        self._rules: Mapping[str, OperationRule] = MappingProxyType(by_id)

    def get_rule(self, operation_id: str) -> Optional[OperationRule]:
        """Return the rule for an operationId, or None when it is unknown"""
        return self._rules.get(operation_id)

    def __contains__(self, operation_id: object) -> bool:
        return isinstance(operation_id, str) and operation_id in self._rules

    def __len__(self) -> int:
        return len(self._rules)


_schema_registry: Optional[SchemaRegistry] = None


def get_schema_registry() -> SchemaRegistry:
    """Get schema registry instance"""
    global _schema_registry
    if _schema_registry is None:
        _schema_registry = SchemaRegistry()
        logger.info("Schema registry loaded", operations=len(_schema_registry))
    return _schema_registry
