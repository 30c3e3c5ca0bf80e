import pytest

from taxbook_core.rules.builders import (
    FieldRule,
    allowed_values_rule,
    create_authorization_rule,
    create_constraint_rule,
    create_validation_rule,
    declared_transition_rule,
    email_format_rule,
    numeric_range_rule,
    required_field_rule,
    string_length_rule,
    url_format_rule,
    valid_state_rule,
)
from taxbook_core.rules.types import Operation, Rule, RuleContext, RuleType
from taxbook_core.workflows.machines import APPOINTMENT_MACHINE


def _ctx(data, previous=None, operation="create", **kw):
    return RuleContext(entity="Client", operation=operation, data=data, previous_data=previous, **kw)


def _passes(rule, data, **kw):
    return rule.evaluate(_ctx(data, **kw)).is_ok


def test_factory_defaults():
    v = create_validation_rule("v", "v", "Client", "name", lambda val, ctx: True, "m")
    c = create_constraint_rule("c", "c", "Client", lambda data, ctx: True, "m")
    a = create_authorization_rule("a", "a", "Client", "update", lambda ctx: True)

    assert (v.type, v.priority, v.field) == (RuleType.VALIDATION, 100, "name")
    assert (c.type, c.priority) == (RuleType.CONSTRAINT, 50)
    assert (a.type, a.priority, a.operation, a.message) == (
        RuleType.AUTHORIZATION,
        200,
        Operation.UPDATE,
        "Not authorized",
    )


def test_validation_predicate_receives_field_value_and_context():
    seen = []
    rule = create_validation_rule(
        "v", "v", "Client", "name", lambda val, ctx: seen.append((val, ctx.entity)) or True, "m"
    )
    rule.evaluate(_ctx({"name": "Ada"}))
    assert seen == [("Ada", "Client")]


def test_constraint_predicate_can_compare_against_previous_data():
    rule = create_constraint_rule(
        "no-rename",
        "no-rename",
        "Client",
        lambda data, ctx: ctx.previous_data is None or data["name"] == ctx.previous_value("name"),
        "name is frozen",
    )
    assert _passes(rule, {"name": "A"})
    assert _passes(rule, {"name": "A"}, previous={"name": "A"})
    assert not _passes(rule, {"name": "B"}, previous={"name": "A"})


@pytest.mark.parametrize("value, ok", [("x", True), (0, True), (False, True), ("", False), (None, False)])
def test_required_field(value, ok):
    rule = required_field_rule("Client", "email")
    assert rule.id == "Client-email-required"
    assert _passes(rule, {"email": value}) is ok


def test_required_field_missing_key_fails():
    assert not _passes(required_field_rule("Client", "email"), {})


@pytest.mark.parametrize(
    "value, ok",
    [
        ("", True),
        (None, True),
        ("ada@example.com", True),
        ("ada@example", False),
        ("ada example.com", False),
        ("@example.com", False),
    ],
)
def test_email_format(value, ok):
    rule = email_format_rule("Client")
    assert rule.id == "Client-email-format"
    assert _passes(rule, {"email": value}) is ok


def test_string_length_is_inclusive_and_skips_empty():
    rule = string_length_rule("Client", "tax_id_last4", 4, 4)
    assert rule.id == "Client-tax_id_last4-length"
    assert _passes(rule, {"tax_id_last4": "1234"})
    assert not _passes(rule, {"tax_id_last4": "123"})
    assert not _passes(rule, {"tax_id_last4": "12345"})
    assert _passes(rule, {})


def test_numeric_range_is_inclusive_and_skips_empty():
    rule = numeric_range_rule("Service", "duration_minutes", 5, 480)
    assert rule.id == "Service-duration_minutes-range"
    assert _passes(rule, {"duration_minutes": 5})
    assert _passes(rule, {"duration_minutes": 480})
    assert not _passes(rule, {"duration_minutes": 4})
    assert not _passes(rule, {"duration_minutes": 481})
    assert not _passes(rule, {"duration_minutes": "lots"})
    assert _passes(rule, {"duration_minutes": None})


def test_url_format_accepts_http_and_https_only():
    rule = url_format_rule("Document", "file_url")
    assert _passes(rule, {"file_url": "https://files.example.com/w2.pdf"})
    assert _passes(rule, {"file_url": ""})
    assert not _passes(rule, {"file_url": "ftp://files.example.com/w2.pdf"})
    assert not _passes(rule, {"file_url": "not a url"})


def test_allowed_values():
    rule = allowed_values_rule("Client", "preferred_contact", ["email", "phone", "text"])
    assert _passes(rule, {"preferred_contact": "phone"})
    assert _passes(rule, {})
    assert not _passes(rule, {"preferred_contact": "fax"})


def test_valid_state_and_declared_transition_follow_the_machine():
    valid = valid_state_rule(APPOINTMENT_MACHINE)
    declared = declared_transition_rule(APPOINTMENT_MACHINE)

    assert _passes(valid, {"status": "draft"})
    assert not _passes(valid, {"status": "archived"})

    assert _passes(declared, {"status": "confirmed"})
    assert _passes(declared, {"status": "confirmed"}, previous={"status": "draft"})
    assert _passes(declared, {"status": "draft"}, previous={"status": "draft"})

    result = declared.evaluate(_ctx({"status": "completed"}, previous={"status": "draft"}))
    assert result.is_err
    assert result.error.context == {"current_state": "draft", "attempted_state": "completed"}
    assert declared.depends_on == (valid.id,)


def test_authorization_rule_only_gates_its_operation():
    rule = create_authorization_rule(
        "owner", "owner", "Client", Operation.DELETE, lambda ctx: ctx.has_role("ADMIN")
    )
    assert _passes(rule, {}, operation="update")
    assert not _passes(rule, {}, operation="delete")
    assert _passes(rule, {}, operation="delete", user_roles=("ADMIN",))


def test_built_rules_describe_their_parameters():
    rule = numeric_range_rule("Service", "buffer_minutes", 0, 240)
    described = rule.describe()

    assert described["kind"] == "numeric_range"
    assert described["type"] == "validation"
    assert described["params"] == {"minimum": 0, "maximum": 240}
    assert described["field"] == "buffer_minutes"

    states = valid_state_rule(APPOINTMENT_MACHINE).describe()
    assert states["kind"] == "valid_state"
    assert "no_show" in states["params"]["states"]


def test_rules_are_immutable():
    rule = required_field_rule("Client", "email")
    with pytest.raises(Exception):
        rule.priority = 1


def test_base_rule_shapes_cannot_be_used_directly():
    with pytest.raises(TypeError):
        FieldRule(id="f", name="f", entity="Client", field="email")

    bare = Rule(id="r", name="r", type="constraint", entity="Client")
    with pytest.raises(NotImplementedError):
        bare.check(_ctx({}))
