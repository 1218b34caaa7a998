# Overview: Asset movement state machine; pure decision table over location and mode.

"""
Movement rules for scanned assets.

An asset is always in exactly one logical Location. Each scan session has a
Mode; a scan is legal only if the (current location, mode) cell of
TRANSITIONS allows it, and an accepted scan moves the asset to
location_after(mode).

    current \\ mode   IN    OUT   MAINT  OK
    NO_MOVEMENT      yes   yes   no     no
    AT_PLANT         no    yes   yes    no
    AT_CUSTOMER      yes   no    no     no
    AT_MAINTENANCE   no    no    no     yes

Every cell is spelled out below; adding a Mode or Location without
extending the table fails at import time.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Tuple

from ..validation import ConflictError, ValidationError


class Mode(str, Enum):
    IN = "IN"          # receipt at plant
    OUT = "OUT"        # dispatch to customer
    MAINT = "MAINT"    # enter maintenance hold
    OK = "OK"          # maintenance-clearing verification


class Location(str, Enum):
    NO_MOVEMENT = "NO_MOVEMENT"
    AT_PLANT = "AT_PLANT"
    AT_CUSTOMER = "AT_CUSTOMER"
    AT_MAINTENANCE = "AT_MAINTENANCE"


class SessionStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"


# Modes whose sessions are tied to a unique, quantity-bearing document
DOCUMENT_MODES = frozenset({Mode.IN, Mode.OUT})

TRANSITIONS: Dict[Tuple[Location, Mode], bool] = {
    (Location.NO_MOVEMENT, Mode.IN): True,
    (Location.NO_MOVEMENT, Mode.OUT): True,
    (Location.NO_MOVEMENT, Mode.MAINT): False,
    (Location.NO_MOVEMENT, Mode.OK): False,

    (Location.AT_PLANT, Mode.IN): False,
    (Location.AT_PLANT, Mode.OUT): True,
    (Location.AT_PLANT, Mode.MAINT): True,
    (Location.AT_PLANT, Mode.OK): False,

    (Location.AT_CUSTOMER, Mode.IN): True,
    (Location.AT_CUSTOMER, Mode.OUT): False,
    (Location.AT_CUSTOMER, Mode.MAINT): False,
    (Location.AT_CUSTOMER, Mode.OK): False,

    (Location.AT_MAINTENANCE, Mode.IN): False,
    (Location.AT_MAINTENANCE, Mode.OUT): False,
    (Location.AT_MAINTENANCE, Mode.MAINT): False,
    (Location.AT_MAINTENANCE, Mode.OK): True,
}

_MISSING = [(loc, mode) for loc in Location for mode in Mode if (loc, mode) not in TRANSITIONS]
if _MISSING:
    raise RuntimeError(f"Movement table is missing cells: {_MISSING}")

_LOCATION_AFTER: Dict[Mode, Location] = {
    Mode.IN: Location.AT_PLANT,
    Mode.OK: Location.AT_PLANT,
    Mode.OUT: Location.AT_CUSTOMER,
    Mode.MAINT: Location.AT_MAINTENANCE,
}

_REJECTION_REASONS: Dict[Tuple[Location, Mode], str] = {
    (Location.AT_PLANT, Mode.IN): "asset is already at plant",
    (Location.AT_CUSTOMER, Mode.OUT): "asset is already dispatched",
    (Location.AT_MAINTENANCE, Mode.IN): "asset is held for maintenance and must be cleared with OK first",
    (Location.AT_MAINTENANCE, Mode.OUT): "asset is held for maintenance and must be cleared with OK first",
}


def parse_mode(value) -> Mode:
    try:
        return Mode(str(value).strip().upper())
    except ValueError:
        raise ValidationError(
            f"Invalid mode '{value}'. Must be one of: {', '.join(m.value for m in Mode)}"
        )


def location_after(mode: Mode) -> Location:
    """Location an asset occupies after an accepted scan in this mode."""
    return _LOCATION_AFTER[mode]


def is_transition_allowed(location: Location, mode: Mode) -> bool:
    return TRANSITIONS[(Location(location), Mode(mode))]


def _rejection_reason(location: Location, mode: Mode) -> str:
    reason = _REJECTION_REASONS.get((location, mode))
    if reason:
        return reason
    if mode is Mode.OK:
        return "OK is only valid for an asset under maintenance"
    if mode is Mode.MAINT:
        return "asset must be at plant to enter maintenance"
    return f"{mode.value} not allowed from {location.value}"


def validate_transition(location: Location, mode: Mode) -> None:
    """
    Raises:
        ConflictError(INVALID_TRANSITION): if the table rejects the move
    """
    location = Location(location)
    mode = Mode(mode)
    if not TRANSITIONS[(location, mode)]:
        raise ConflictError(
            f"Invalid movement: {_rejection_reason(location, mode)} ({location.value} -> {mode.value})",
            kind="INVALID_TRANSITION",
        )
