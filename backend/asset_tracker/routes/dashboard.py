# Overview: Flask API route for the plant dashboard projection.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, resolve_plant
from ..services import dashboard_service

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/summary")
@require_auth
def summary_route():
    plant = resolve_plant(request.args.get("plant_code"))
    return jsonify(dashboard_service.plant_summary(plant.id)), 200
