# Overview: Flask API routes for administration of users, plants and assets.

"""
Admin-only endpoints. Everything here is plain data access; none of it
touches movement history or session state.
"""

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, require_admin
from ..services import asset_service, auth_service, plant_service
from ..validation import require_payload, require_fields, ValidationError

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


# =================================================
# USERS
# =================================================

@admin_bp.get("/users")
@require_auth
@require_admin
def list_users_route():
    return jsonify({"users": [u.to_dict() for u in auth_service.list_users()]}), 200


@admin_bp.post("/users")
@require_auth
@require_admin
def create_user_route():
    """
    Request body:
    {
        "username": str,
        "password": str,
        "role": "admin" | "operator",
        "plant_code": str (required for operators)
    }
    """
    data = require_payload(request.get_json(silent=True))
    require_fields(data, "username", "password", "role")

    plant_id = None
    if data.get("plant_code"):
        plant_id = plant_service.get_plant_by_code(data["plant_code"]).id

    user = auth_service.create_user(
        username=data["username"],
        password=data["password"],
        role=data["role"],
        plant_id=plant_id,
    )
    return jsonify({"user": user.to_dict()}), 201


@admin_bp.post("/users/<int:user_id>/toggle")
@require_auth
@require_admin
def toggle_user_route(user_id: int):
    user = auth_service.toggle_user(user_id)
    return jsonify({"user": user.to_dict()}), 200


@admin_bp.post("/users/<int:user_id>/reset-password")
@require_auth
@require_admin
def reset_password_route(user_id: int):
    data = require_payload(request.get_json(silent=True))
    user = auth_service.reset_password(user_id, data.get("new_password"))
    return jsonify({"user": user.to_dict()}), 200


# =================================================
# PLANTS
# =================================================

@admin_bp.get("/plants")
@require_auth
@require_admin
def list_plants_route():
    include_inactive = request.args.get("active_only", "false").lower() != "true"
    plants = plant_service.list_plants(include_inactive=include_inactive)
    return jsonify({"plants": [p.to_dict() for p in plants]}), 200


@admin_bp.post("/plants")
@require_auth
@require_admin
def create_plant_route():
    data = require_payload(request.get_json(silent=True))
    require_fields(data, "code", "name")
    plant = plant_service.create_plant(data["code"], data["name"], data.get("address"))
    return jsonify({"plant": plant.to_dict()}), 201


@admin_bp.post("/plants/<code>/toggle")
@require_auth
@require_admin
def toggle_plant_route(code: str):
    plant = plant_service.toggle_plant(code)
    return jsonify({"plant": plant.to_dict()}), 200


# =================================================
# ASSETS
# =================================================

@admin_bp.post("/assets")
@require_auth
@require_admin
def provision_assets_route():
    """
    Request body:
    {
        "asset_type": str,
        "customer": str,
        "plant_code": str,
        "quantity": int (unless asset_codes given),
        "asset_codes": [str] (optional explicit codes),
        "description": str (optional),
        "pm_cycle": int (optional)
    }
    """
    data = require_payload(request.get_json(silent=True))
    require_fields(data, "asset_type", "customer", "plant_code")

    asset_codes = data.get("asset_codes")
    if asset_codes is not None and not isinstance(asset_codes, list):
        raise ValidationError("asset_codes must be a list")

    plant = plant_service.get_plant_by_code(data["plant_code"])
    assets = asset_service.provision_assets(
        asset_type=data["asset_type"],
        customer=data["customer"],
        plant_id=plant.id,
        quantity=data.get("quantity"),
        description=data.get("description"),
        pm_cycle=data.get("pm_cycle"),
        asset_codes=asset_codes,
    )
    return jsonify({"created": len(assets), "assets": [a.to_dict() for a in assets]}), 201


@admin_bp.get("/assets/search")
@require_auth
@require_admin
def search_assets_route():
    plant_id = None
    if request.args.get("plant_code"):
        plant_id = plant_service.get_plant_by_code(request.args["plant_code"]).id

    assets = asset_service.search_assets(
        asset_code=request.args.get("asset_code"),
        plant_id=plant_id,
        asset_type=request.args.get("asset_type"),
    )
    return jsonify({"assets": [a.to_dict() for a in assets]}), 200


@admin_bp.post("/assets/<asset_code>/toggle")
@require_auth
@require_admin
def toggle_asset_route(asset_code: str):
    asset = asset_service.toggle_asset(asset_code)
    return jsonify({"asset": asset.to_dict()}), 200
