from __future__ import annotations

from typing import Any


class TrackerError(Exception):
    """
    Base class for every rejection the service reports to a caller.

    `kind` is a stable machine-readable code clients branch on; the message
    is for the operator.
    """
    status_code = 400
    default_kind = "ERROR"

    def __init__(self, message: str, kind: str | None = None):
        super().__init__(message)
        self.message = message
        self.kind = kind or self.default_kind

    def to_dict(self) -> dict:
        return {"error": self.message, "error_kind": self.kind}


class ValidationError(TrackerError):
    """400-level input problem."""
    status_code = 400
    default_kind = "VALIDATION"


class NotFoundError(TrackerError):
    """404-level unknown asset / session / document."""
    status_code = 404
    default_kind = "NOT_FOUND"


class ConflictError(TrackerError):
    """409-level business rule conflict (duplicate scan, invalid movement, ...)."""
    status_code = 409
    default_kind = "CONFLICT"


class ForbiddenError(TrackerError):
    """403-level: the caller may not act on this resource."""
    status_code = 403
    default_kind = "FORBIDDEN"


class StoreError(TrackerError):
    """Backing store failure. Reported to clients without internal detail."""
    status_code = 500
    default_kind = "STORE_FAILURE"


def require_payload(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def require_fields(payload: dict, *fields: str) -> None:
    missing = [f for f in fields if payload.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def normalize_code(value: Any, field: str) -> str:
    """Trim and uppercase an identity code (asset, plant, asset type)."""
    if value is None:
        raise ValidationError(f"{field} is required")
    code = str(value).strip().upper()
    if not code:
        raise ValidationError(f"{field} cannot be blank")
    if len(code) > 64:
        raise ValidationError(f"{field} exceeds max length 64")
    return code


def optional_text(value: Any, field: str, max_length: int = 255) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text or None


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion: rejects floats, booleans, decimals and
    scientific notation.
    """
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def coerce_bool(value: Any, field: str, default: bool = False) -> bool:
    """Strict boolean coercion: only JSON true/false; strings and numbers are rejected."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    raise ValidationError(f"{field} must be true or false")


def coerce_positive_int(value: Any, field: str) -> int:
    number = coerce_int(value, field)
    if number <= 0:
        raise ValidationError(f"{field} must be > 0")
    return number


def coerce_optional_positive_int(value: Any, field: str) -> int | None:
    if value is None or value == "":
        return None
    return coerce_positive_int(value, field)
