# Overview: Flask API routes for challan data and transport details of a completed document.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, resolve_plant
from ..services import challan_service
from ..validation import require_payload, require_fields

challan_bp = Blueprint("challan", __name__, url_prefix="/api/challan")


@challan_bp.get("/by-invoice/<path:document_no>")
@require_auth
def challan_by_invoice_route(document_no: str):
    plant = resolve_plant(request.args.get("plant_code"))
    return jsonify(challan_service.challan_for_document(plant.id, document_no)), 200


@challan_bp.post("/save-transport")
@require_auth
def save_transport_route():
    """
    Fill in transport details after scanning has completed.

    Request body:
    {
        "invoice": str,
        "plant_code": str (optional for operators),
        "transporter", "transport_mode", "vehicle_no", "ship_to_address": str (optional)
    }

    Returns:
        200: {"ok": true, "session": {...}}
        404: No completed session for the document
    """
    data = require_payload(request.get_json(silent=True))
    require_fields(data, "invoice")
    plant = resolve_plant(data.get("plant_code"))

    session = challan_service.save_transport(
        plant.id,
        data["invoice"],
        transporter=data.get("transporter"),
        transport_mode=data.get("transport_mode"),
        vehicle_no=data.get("vehicle_no"),
        ship_to_address=data.get("ship_to_address"),
    )
    return jsonify({"ok": True, "session": session.to_dict()}), 200
