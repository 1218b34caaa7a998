# Overview: Request authentication and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .models import Plant
from .services import token_service
from .services.plant_service import get_plant_by_code
from .validation import ForbiddenError, ValidationError


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid bearer token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.token: The plaintext bearer token (for logout)

    Returns 401 if the header is missing, the token is unknown, revoked or
    expired, or the user was deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Session expired", "error_kind": "AUTH_REQUIRED"}), 401

        user = token_service.validate_token(token)
        if not user:
            return jsonify({"error": "Invalid or expired token", "error_kind": "AUTH_INVALID"}), 401

        g.current_user = user
        g.token = token
        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Require the authenticated user to hold the admin role. Use after @require_auth."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = getattr(g, "current_user", None)
        if user is None:
            return jsonify({"error": "Authentication required", "error_kind": "AUTH_REQUIRED"}), 401
        if not user.is_admin:
            return jsonify({"error": "Admin access only", "error_kind": "FORBIDDEN"}), 403
        return f(*args, **kwargs)

    return decorated_function


class PlantAccessDenied(ForbiddenError):
    """Operator tried to act on a plant other than their own."""


def resolve_plant(plant_code: str | None) -> Plant:
    """
    Plant a request acts on.

    Operators default to (and are restricted to) their own plant; admins
    must name the plant explicitly.
    """
    user = g.current_user
    if not plant_code:
        if user.is_admin or user.plant is None:
            raise ValidationError("Plant not selected")
        return user.plant

    plant = get_plant_by_code(plant_code)
    if not user.is_admin and plant.id != user.plant_id:
        raise PlantAccessDenied(f"No access to plant {plant.code}")
    return plant


def ensure_plant_access(plant_id: int) -> None:
    user = g.current_user
    if not user.is_admin and user.plant_id != plant_id:
        raise PlantAccessDenied("No access to this plant")
