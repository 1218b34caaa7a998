# Overview: Flask API routes for asset status: PM due list and location.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, resolve_plant, ensure_plant_access
from ..services import asset_service, location_service, pm_service

assets_bp = Blueprint("assets", __name__, url_prefix="/api/assets")


@assets_bp.get("/pm-pending")
@require_auth
def pm_pending_route():
    """Active assets of a plant whose duty cycle has reached the PM threshold."""
    plant = resolve_plant(request.args.get("plant_code"))
    assets = pm_service.list_pm_due(plant.id)
    return jsonify({"assets": [pm_service.pm_due_to_dict(a) for a in assets]}), 200


@assets_bp.get("/<asset_code>/location")
@require_auth
def asset_location_route(asset_code: str):
    """Stored location next to the one derived from movement history."""
    asset = asset_service.get_asset_by_code(asset_code)
    ensure_plant_access(asset.plant_id)
    last = location_service.latest_movement(asset.id, asset.plant_id)
    derived = location_service.location_from_movement(last)
    return jsonify({
        "asset": asset.to_dict(),
        "current_location": asset.current_location,
        "derived_location": derived.value,
        "last_movement": last.to_dict() if last else None,
        "pm_due": pm_service.is_pm_due(asset),
    }), 200
