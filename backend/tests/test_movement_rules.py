"""
Movement rules tests.

Verifies:
- Every (location, mode) cell of the movement table
- Destination location per mode
- Mode parsing and rejection messages
"""

import pytest

from asset_tracker.services.movement_rules import (
    TRANSITIONS,
    Location,
    Mode,
    is_transition_allowed,
    location_after,
    parse_mode,
    validate_transition,
)
from asset_tracker.validation import ConflictError, ValidationError


@pytest.mark.parametrize(
    "location,mode,allowed",
    [
        ("NO_MOVEMENT", "IN", True),
        ("NO_MOVEMENT", "OUT", True),
        ("NO_MOVEMENT", "MAINT", False),
        ("NO_MOVEMENT", "OK", False),
        ("AT_PLANT", "IN", False),
        ("AT_PLANT", "OUT", True),
        ("AT_PLANT", "MAINT", True),
        ("AT_PLANT", "OK", False),
        ("AT_CUSTOMER", "IN", True),
        ("AT_CUSTOMER", "OUT", False),
        ("AT_CUSTOMER", "MAINT", False),
        ("AT_CUSTOMER", "OK", False),
        ("AT_MAINTENANCE", "IN", False),
        ("AT_MAINTENANCE", "OUT", False),
        ("AT_MAINTENANCE", "MAINT", False),
        ("AT_MAINTENANCE", "OK", True),
    ],
)
def test_transition_table(location, mode, allowed):
    assert is_transition_allowed(Location(location), Mode(mode)) is allowed
    if allowed:
        validate_transition(Location(location), Mode(mode))
    else:
        with pytest.raises(ConflictError) as exc_info:
            validate_transition(Location(location), Mode(mode))
        assert exc_info.value.kind == "INVALID_TRANSITION"


def test_table_covers_every_cell():
    assert len(TRANSITIONS) == len(Location) * len(Mode)


@pytest.mark.parametrize(
    "mode,expected",
    [
        (Mode.IN, Location.AT_PLANT),
        (Mode.OK, Location.AT_PLANT),
        (Mode.OUT, Location.AT_CUSTOMER),
        (Mode.MAINT, Location.AT_MAINTENANCE),
    ],
)
def test_location_after(mode, expected):
    assert location_after(mode) is expected


def test_parse_mode_normalizes_case_and_whitespace():
    assert parse_mode(" out ") is Mode.OUT


def test_parse_mode_rejects_unknown():
    with pytest.raises(ValidationError):
        parse_mode("TRANSFER")


def test_maintenance_hold_message_mentions_ok():
    with pytest.raises(ConflictError) as exc_info:
        validate_transition(Location.AT_MAINTENANCE, Mode.OUT)
    assert "OK" in exc_info.value.message
