"""
Unit tests for the schema registry and validation engine
"""

import json

import pytest

from app.models.messages import FieldKind, FieldRule, OperationRule, RuleCheck
from app.services.schema_registry import DEFAULT_RULES, SchemaRegistry, get_schema_registry
from app.services.validation import ValidationEngine, decode_message, is_blank

USER_OBJECT_REASON = (
    "Invalid message for operationId: responseAppUsers. Missing properties in user object "
    "(firstName, lastName, username, email, profilePicture, plan) or invalid plan value "
    "(must be FREE, ADVANCED or PRO)."
)

MISSING_FIELD_REASONS = {
    "requestAppUsers": "Missing usernames or usernames is not an array or is empty",
    "notificationNewPlanPayment": "Missing username or plan, or invalid value for plan (FREE, ADVANCED, PRO)",
    "notificationUserDeletion": "Missing username",
    "publishNewCourseAccess": "username and courseId are required",
    "publishNewMaterialAccess": "username and materialId are required",
    "responseAppClassesAndMaterials": "Missing courseId",
    "notificationNewClass": "classId and courseId are required",
    "notificationDeleteClass": "Missing classId",
    "notificationAssociateMaterial": "materialId and courseId are required",
    "notificationDisassociateMaterial": "materialId and courseId are required",
    "requestMaterialReviews": "Missing materialId",
    "responseMaterialReviews": "materialId and review are required",
    "responseAppUsers": "users must be an array with at least one element",
    "requestAppClassesAndMaterials": "Missing courseId",
    "notificationDeleteCourse": "Missing courseId",
}

REVIEW_VALUE_REASON = (
    "Invalid message for operationId: responseMaterialReviews. "
    "Invalid review value (must be a number between 1 and 5 or null)."
)


@pytest.fixture
def engine():
    return ValidationEngine(SchemaRegistry())


class TestSchemaRegistry:
    """Test rule lookup"""

    def test_every_operation_registered(self):
        registry = get_schema_registry()
        assert len(registry) == 15
        assert "requestAppUsers" in registry
        assert "notificationDeleteCourse" in registry

    def test_unknown_operation_returns_none(self):
        registry = SchemaRegistry()
        assert registry.get_rule("deleteEverything") is None
        assert 42 not in registry

    def test_duplicate_rule_rejected(self):
        with pytest.raises(ValueError):
            SchemaRegistry(DEFAULT_RULES + DEFAULT_RULES[:1])

    def test_required_fields_are_ordered(self):
        rule = SchemaRegistry().get_rule("responseMaterialReviews")
        assert rule.required_fields == ["materialId", "review"]
        assert rule.field_constraints["review"].kind == FieldKind.INTEGER

    def test_rules_are_immutable(self):
        rule = SchemaRegistry().get_rule("requestAppUsers")
        with pytest.raises(Exception):
            rule.operation_id = "other"


class TestPresence:
    """Test blank detection"""

    @pytest.mark.parametrize("value", [None, "", [], {}])
    def test_blank_values(self, value):
        assert is_blank(value)

    @pytest.mark.parametrize("value", [0, False, "x", [0], {"a": 1}])
    def test_present_values(self, value):
        assert not is_blank(value)

    def test_decode_message(self):
        assert decode_message('{"username": "u"}') == {"username": "u"}
        assert decode_message("not json") == {}
        assert decode_message(["username"]) == {}

    def test_decode_deeply_nested_string(self):
        depth = 100000
        assert decode_message("[" * depth + "]" * depth) == {}


class TestValidationEngine:
    """Test the generic rule interpreter"""

    def test_all_valid_messages_accepted(self, engine, valid_messages):
        for operation_id, message in valid_messages.items():
            result = engine.validate(operation_id, message)
            assert result.accepted, (operation_id, result.reason)
            assert result.reason == ""

    def test_every_operation_has_a_missing_field_reason(self, valid_messages):
        registry = SchemaRegistry()
        assert len(MISSING_FIELD_REASONS) == len(registry)
        assert all(operation_id in registry for operation_id in MISSING_FIELD_REASONS)
        assert set(MISSING_FIELD_REASONS) == set(valid_messages)

    @pytest.mark.parametrize("operation_id", sorted(MISSING_FIELD_REASONS))
    def test_missing_required_field_rejected_with_exact_reason(self, engine, valid_messages, operation_id):
        message = valid_messages[operation_id]
        rule = SchemaRegistry().get_rule(operation_id)
        expected = f"Invalid message for operationId: {operation_id}. {MISSING_FIELD_REASONS[operation_id]}."
        assert rule.required_fields
        for field_name in rule.required_fields:
            broken = {k: v for k, v in message.items() if k != field_name}
            result = engine.validate(operation_id, broken)
            assert not result.accepted
            assert result.reason == expected

    def test_unknown_operation(self, engine):
        result = engine.validate("unknownOperation", {"username": "u"})
        assert not result.accepted
        assert result.reason == "Invalid operationId"

    def test_request_app_users_reason(self, engine):
        for message in ({"usernames": []}, {"usernames": "a,b"}, {}):
            result = engine.validate("requestAppUsers", message)
            assert result.reason == (
                "Invalid message for operationId: requestAppUsers. "
                "Missing usernames or usernames is not an array or is empty."
            )

    def test_plan_enumeration(self, engine):
        reason = (
            "Invalid message for operationId: notificationNewPlanPayment. "
            "Missing username or plan, or invalid value for plan (FREE, ADVANCED, PRO)."
        )
        for plan in ("FREE", "ADVANCED", "PRO"):
            assert engine.validate("notificationNewPlanPayment", {"username": "u", "plan": plan}).accepted
        for plan in ("BASIC", "FREEE", "free", 1, None):
            result = engine.validate("notificationNewPlanPayment", {"username": "u", "plan": plan})
            assert result.reason == reason

    def test_two_field_requirement_text(self, engine):
        result = engine.validate("publishNewCourseAccess", {"username": "u"})
        assert result.reason == (
            "Invalid message for operationId: publishNewCourseAccess. username and courseId are required."
        )

    def test_single_field_requirement_text(self, engine):
        result = engine.validate("notificationDeleteClass", {"courseId": "c"})
        assert result.reason == "Invalid message for operationId: notificationDeleteClass. Missing classId."

    @pytest.mark.parametrize("review", [1, 2, 5, None])
    def test_review_accepted(self, engine, review):
        result = engine.validate("responseMaterialReviews", {"materialId": "m", "review": review})
        assert result.accepted

    @pytest.mark.parametrize("review", [0, 6, 8, -1, "4", 4.5, True])
    def test_review_rejected(self, engine, review):
        result = engine.validate("responseMaterialReviews", {"materialId": "m", "review": review})
        assert not result.accepted
        assert result.reason == REVIEW_VALUE_REASON

    def test_review_key_required(self, engine):
        result = engine.validate("responseMaterialReviews", {"materialId": "m"})
        assert result.reason == (
            "Invalid message for operationId: responseMaterialReviews. materialId and review are required."
        )

    @pytest.mark.parametrize("field_name", ["classIds", "materialIds"])
    def test_optional_arrays(self, engine, field_name):
        base = {"courseId": "c"}
        assert engine.validate("responseAppClassesAndMaterials", base).accepted
        assert engine.validate("responseAppClassesAndMaterials", {**base, field_name: None}).accepted
        assert engine.validate("responseAppClassesAndMaterials", {**base, field_name: []}).accepted

        result = engine.validate("notificationDeleteCourse", {**base, field_name: "class-1"})
        assert result.reason == (
            f"Invalid message for operationId: notificationDeleteCourse. {field_name} must be an array."
        )

    def test_course_id_checked_before_arrays(self, engine):
        result = engine.validate("responseAppClassesAndMaterials", {"classIds": "x"})
        assert result.reason == (
            "Invalid message for operationId: responseAppClassesAndMaterials. Missing courseId."
        )

    def test_users_must_be_non_empty(self, engine):
        result = engine.validate("responseAppUsers", {"users": []})
        assert result.reason == (
            "Invalid message for operationId: responseAppUsers. "
            "users must be an array with at least one element."
        )

    @pytest.mark.parametrize(
        "field_name", ["firstName", "lastName", "username", "email", "profilePicture", "plan"]
    )
    def test_user_object_missing_property(self, engine, sample_user, field_name):
        user = {k: v for k, v in sample_user.items() if k != field_name}
        result = engine.validate("responseAppUsers", {"users": [sample_user, user]})
        assert result.reason == USER_OBJECT_REASON

    def test_user_object_invalid_plan(self, engine, sample_user):
        result = engine.validate("responseAppUsers", {"users": [{**sample_user, "plan": "FREEE"}]})
        assert result.reason == USER_OBJECT_REASON

    def test_user_object_not_an_object(self, engine):
        result = engine.validate("responseAppUsers", {"users": ["ada"]})
        assert result.reason == USER_OBJECT_REASON

    def test_json_string_message_decoded(self, engine):
        assert engine.validate("notificationUserDeletion", json.dumps({"username": "u"})).accepted
        assert not engine.validate("notificationUserDeletion", "username").accepted

    def test_zero_and_false_are_present(self, engine):
        assert engine.validate("notificationDeleteClass", {"classId": 0}).accepted
        assert engine.validate("notificationDeleteClass", {"classId": False}).accepted

    def test_first_failing_check_wins(self):
        rule = OperationRule(
            operation_id="sample",
            checks=(
                RuleCheck(field_rules=(FieldRule(name="a"),), requirement="Missing a"),
                RuleCheck(field_rules=(FieldRule(name="b"),), requirement="Missing b"),
            ),
        )
        result = ValidationEngine.apply_rule(rule, {})
        assert result.reason == "Invalid message for operationId: sample. Missing a."
