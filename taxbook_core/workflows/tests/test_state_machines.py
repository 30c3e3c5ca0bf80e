import pytest

from taxbook_core.appointments.models import AppointmentStatus
from taxbook_core.documents.models import DocumentStatus
from taxbook_core.workflows.machines import (
    APPOINTMENT_MACHINE,
    DOCUMENT_MACHINE,
    StateMachine,
    StateMachineDefinitionError,
    Transition,
    UnknownEntityKind,
    get_allowed_transitions,
    get_state_machine,
    validate_transition,
)


def test_validate_transition():
    assert validate_transition("Appointment", "draft", "confirm") is True
    assert validate_transition("Appointment", "confirmed", "confirm") is False
    assert validate_transition("Appointment", "draft", "teleport") is False
    assert validate_transition("Appointment", None, "confirm") is False


def test_to_state_is_deterministic_and_never_raises():
    confirm = APPOINTMENT_MACHINE.transition("confirm")
    assert confirm.to_state("draft") == "confirmed"
    assert confirm.to_state("draft") == confirm.to_state("draft")
    assert confirm.to_state("completed") is None
    assert confirm.to_state(None) is None


@pytest.mark.parametrize(
    "kind, state, expected",
    [
        ("Appointment", "draft", ["confirm", "cancelDraft"]),
        ("Appointment", "confirmed", ["start", "cancel", "markNoShow"]),
        ("Appointment", "in_progress", ["complete"]),
        ("Appointment", "completed", []),
        ("Document", "requested", ["upload"]),
        ("Document", "uploaded", ["review"]),
        ("Document", "reviewed", ["accept", "reject"]),
        ("Document", "rejected", ["reupload"]),
        ("Document", "accepted", []),
    ],
)
def test_allowed_transitions(kind, state, expected):
    assert get_allowed_transitions(kind, state) == expected


def test_lookup_is_case_insensitive_and_rejects_unknown_kinds():
    assert get_state_machine("appointment") is APPOINTMENT_MACHINE
    assert get_state_machine("DOCUMENT") is DOCUMENT_MACHINE
    with pytest.raises(UnknownEntityKind):
        get_state_machine("Invoice")


def test_terminal_states():
    assert APPOINTMENT_MACHINE.terminal_states() == ["completed", "cancelled", "no_show"]
    assert DOCUMENT_MACHINE.terminal_states() == ["accepted"]


def test_model_choices_mirror_machine_states():
    assert tuple(AppointmentStatus.values) == APPOINTMENT_MACHINE.states
    assert tuple(DocumentStatus.values) == DOCUMENT_MACHINE.states
    assert AppointmentStatus.DRAFT == APPOINTMENT_MACHINE.initial_state
    assert DocumentStatus.REQUESTED == DOCUMENT_MACHINE.initial_state


def test_definitions_are_checked_on_construction():
    with pytest.raises(StateMachineDefinitionError):
        StateMachine(
            entity="Broken",
            states=("a", "b"),
            initial_state="a",
            transitions=(Transition.simple("go", ["a"], "c"),),
        )

    with pytest.raises(StateMachineDefinitionError):
        StateMachine(entity="Broken", states=("a",), initial_state="z")

    with pytest.raises(StateMachineDefinitionError):
        StateMachine(
            entity="Broken",
            states=("a", "b"),
            initial_state="a",
            transitions=(Transition.simple("go", ["a"], "b"), Transition.simple("go", ["b"], "a")),
        )


def test_transition_with_several_sources():
    t = Transition(name="reset", table={"b": "a", "c": "a"})
    assert t.sources == frozenset({"b", "c"})
    assert t.to_state("c") == "a"
    assert not t.allows("a")
