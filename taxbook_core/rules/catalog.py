# taxbook_core/rules/catalog.py
"""
Default booking rules, registered once when the rules app loads.

Rules never query the database. Facts that need a query (overlapping
bookings, the day's appointment count, accepted documents) are computed by
the service layer and passed in `RuleContext.metadata`:

    overlapping_appointments  list of ids of live bookings overlapping this one
    daily_appointment_count   live bookings already on that day (this one excluded)
    daily_capacity            practitioner's limit for that day
    requires_documents        the booked service needs documents first
    has_accepted_documents    the client has at least one accepted document
"""
from __future__ import annotations

from datetime import date, datetime, time
from typing import Any, Optional

from django.utils.dateparse import parse_date, parse_datetime, parse_time

from taxbook_core.common.permissions import ROLE_ADMIN
from taxbook_core.rules.builders import (
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
from taxbook_core.rules.registry import RuleRegistry
from taxbook_core.rules.types import Operation, Rule, RuleContext
from taxbook_core.workflows.machines import APPOINTMENT_MACHINE, DOCUMENT_MACHINE

SUBSCRIPTION_TIERS = ("free", "pro", "firm")
CONTACT_METHODS = ("email", "phone", "text")
FILING_STATUSES = (
    "single",
    "married_filing_jointly",
    "married_filing_separately",
    "head_of_household",
    "qualifying_widow",
)
DOCUMENT_TYPES = (
    "w2",
    "1099_misc",
    "1099_nec",
    "1099_int",
    "1099_div",
    "1099_b",
    "1099_r",
    "1098",
    "property_tax",
    "charitable_donations",
    "medical_expenses",
    "business_expenses",
    "prior_return",
    "id_verification",
    "other",
)


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def _as_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str):
        parsed = parse_datetime(value)
        if parsed is None:
            d = parse_date(value)
            return datetime.combine(d, time.min) if d else None
        return parsed
    return None


def _as_time(value: Any) -> Optional[time]:
    if isinstance(value, time):
        return value
    if isinstance(value, str):
        return parse_time(value)
    return None


def ends_after_starts(data, context: RuleContext) -> bool:
    starts = _as_datetime(context.value("starts_at"))
    ends = _as_datetime(context.value("ends_at"))
    if starts is None or ends is None:
        # missing values belong to the required-field rules
        return True
    if (starts.tzinfo is None) != (ends.tzinfo is None):
        return True
    return ends > starts


def end_time_after_start_time(data, context: RuleContext) -> bool:
    start = _as_time(context.value("start_time"))
    end = _as_time(context.value("end_time"))
    if start is None or end is None:
        return True
    return end > start


def no_overlapping_bookings(data, context: RuleContext) -> bool:
    return not context.metadata.get("overlapping_appointments")


def within_daily_capacity(value, context: RuleContext) -> bool:
    count = context.metadata.get("daily_appointment_count")
    capacity = context.metadata.get("daily_capacity")
    if count is None or capacity is None:
        return True
    return count < capacity


def documents_collected(value, context: RuleContext) -> bool:
    if not context.metadata.get("requires_documents"):
        return True
    return bool(context.metadata.get("has_accepted_documents"))


def is_owner_or_admin(context: RuleContext) -> bool:
    if context.has_role(ROLE_ADMIN):
        return True
    owner = context.previous_value("user_id") or context.value("user_id")
    return context.user_id is not None and owner is not None and str(owner) == str(context.user_id)


def _owner_rules(entity: str) -> list[Rule]:
    return [
        create_authorization_rule(
            f"{entity}-{op.value}-owner-or-admin",
            f"Only the owner or an admin may {op.value} a {entity}",
            entity,
            op,
            is_owner_or_admin,
            f"You can't {op.value} this {entity.lower()}",
        )
        for op in (Operation.UPDATE, Operation.DELETE, Operation.TRANSITION)
    ]


# ---------------------------------------------------------------------
# Per-entity rule sets
# ---------------------------------------------------------------------
def profile_rules() -> list[Rule]:
    entity = "Profile"
    rules: list[Rule] = [
        required_field_rule(entity, f)
        for f in (
            "user_id",
            "email",
            "name",
            "timezone",
            "subscription_tier",
            "max_daily_appointments",
            "max_daily_appointments_tax_season",
        )
    ]
    rules.append(email_format_rule(entity))
    rules.append(allowed_values_rule(entity, "subscription_tier", SUBSCRIPTION_TIERS))
    return rules


def client_rules() -> list[Rule]:
    entity = "Client"
    rules: list[Rule] = [
        required_field_rule(entity, f) for f in ("user_id", "name", "email", "preferred_contact")
    ]
    rules += [
        email_format_rule(entity),
        allowed_values_rule(entity, "preferred_contact", CONTACT_METHODS),
        allowed_values_rule(entity, "filing_status", FILING_STATUSES),
        string_length_rule(entity, "tax_id_last4", 4, 4),
    ]
    return rules


def service_rules() -> list[Rule]:
    entity = "Service"
    rules: list[Rule] = [
        required_field_rule(entity, f)
        for f in (
            "user_id",
            "name",
            "duration_minutes",
            "tax_season_only",
            "requires_documents",
            "is_active",
            "buffer_minutes",
        )
    ]
    rules += [
        numeric_range_rule(entity, "duration_minutes", 5, 480),
        numeric_range_rule(entity, "buffer_minutes", 0, 240),
    ]
    return rules


def availability_rules() -> list[Rule]:
    entity = "Availability"
    rules: list[Rule] = [
        required_field_rule(entity, f)
        for f in ("user_id", "day_of_week", "start_time", "end_time", "is_tax_season")
    ]
    rules += [
        numeric_range_rule(entity, "day_of_week", 0, 6),
        create_constraint_rule(
            "Availability-end-after-start",
            "Availability window ends after it starts",
            entity,
            end_time_after_start_time,
            "end_time must be after start_time",
            field="end_time",
        ),
    ]
    return rules


def appointment_rules() -> list[Rule]:
    entity = "Appointment"
    rules: list[Rule] = [
        required_field_rule(entity, f)
        for f in (
            "user_id",
            "client_id",
            "service_id",
            "starts_at",
            "ends_at",
            "status",
            "reminder_sent_24h",
            "reminder_sent_1h",
        )
    ]
    rules += [
        valid_state_rule(APPOINTMENT_MACHINE),
        declared_transition_rule(APPOINTMENT_MACHINE),
        create_constraint_rule(
            "Appointment-ends-after-starts",
            "Appointment ends after it starts",
            entity,
            ends_after_starts,
            "ends_at must be after starts_at",
            field="ends_at",
        ),
        create_constraint_rule(
            "Appointment-prevent-double-booking",
            "prevent_double_booking",
            entity,
            no_overlapping_bookings,
            "This time overlaps another booking",
            description="No double-booking same practitioner",
            field="starts_at",
            depends_on=("Appointment-ends-after-starts",),
        ),
        create_validation_rule(
            "Appointment-check-daily-capacity",
            "check_daily_capacity",
            entity,
            "starts_at",
            within_daily_capacity,
            "Daily appointment limit reached for this day",
            description="Tax season capacity limits",
        ),
        create_validation_rule(
            "Appointment-check-documents-required",
            "check_documents_required",
            entity,
            "service_id",
            documents_collected,
            "This service requires accepted documents before booking",
            description="Document collection required before certain services",
        ),
    ]
    rules += _owner_rules(entity)
    return rules


def document_rules() -> list[Rule]:
    entity = "Document"
    rules: list[Rule] = [
        required_field_rule(entity, f) for f in ("user_id", "client_id", "document_type", "status")
    ]
    rules += [
        url_format_rule(entity, "file_url"),
        allowed_values_rule(entity, "document_type", DOCUMENT_TYPES),
        numeric_range_rule(entity, "tax_year", 1900, 2100),
        valid_state_rule(DOCUMENT_MACHINE),
        declared_transition_rule(DOCUMENT_MACHINE),
    ]
    rules += _owner_rules(entity)
    return rules


def default_rules() -> list[Rule]:
    return [
        *profile_rules(),
        *client_rules(),
        *service_rules(),
        *availability_rules(),
        *appointment_rules(),
        *document_rules(),
    ]


def register_default_rules(registry: RuleRegistry) -> RuleRegistry:
    registry.register_many(default_rules())
    return registry
