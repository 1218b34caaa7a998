# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..services import auth_service, token_service
from ..time_utils import to_utc_z
from ..validation import require_payload

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and issue a bearer token.

    Token must be included in Authorization header for protected routes.
    """
    data = require_payload(request.get_json(silent=True))
    username = data.get("username")
    password = data.get("password")

    if not username or not password:
        return jsonify({"error": "username and password required", "error_kind": "VALIDATION"}), 400

    user = auth_service.authenticate(username, password)
    if not user:
        return jsonify({"error": "Invalid credentials", "error_kind": "BAD_CREDENTIALS"}), 401

    record, token = token_service.create_token(user)
    return jsonify({
        "token": token,
        "expires_at": to_utc_z(record.expires_at),
        "user": user.to_dict(),
        "role": user.role,
        "plant_code": user.plant.code if user.plant else None,
        "force_password_change": user.force_password_change,
    }), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    token_service.revoke_token(g.token)
    return jsonify({"ok": True}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    """Change own password; every existing token (including this one) is revoked."""
    data = require_payload(request.get_json(silent=True))
    auth_service.change_password(
        g.current_user,
        data.get("current_password"),
        data.get("new_password"),
    )
    return jsonify({"ok": True}), 200
