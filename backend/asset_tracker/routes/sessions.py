# Overview: Flask API routes for scan sessions; start, activate, close and inspect.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, resolve_plant, ensure_plant_access
from ..services import scan_session_service
from ..validation import coerce_bool, require_payload, require_fields

sessions_bp = Blueprint("sessions", __name__, url_prefix="/api/sessions")


@sessions_bp.post("/start")
@require_auth
def start_session_route():
    """
    Start a scan session.

    Request body:
    {
        "mode": "IN" | "OUT" | "MAINT" | "OK",
        "plant_code": str (optional for operators),
        "document_no": str (required for IN/OUT),
        "target_qty": int (required for IN/OUT),
        "ship_to_address", "transporter", "transport_mode", "vehicle_no": str (optional),
        "draft": bool (optional)
    }

    Returns:
        201: Session created
        400: Invalid request
        409: Duplicate document number
    """
    data = require_payload(request.get_json(silent=True))
    require_fields(data, "mode")
    plant = resolve_plant(data.get("plant_code"))

    session = scan_session_service.start_session(
        mode=data["mode"],
        plant_id=plant.id,
        actor=g.current_user.username,
        document_no=data.get("document_no"),
        target_qty=data.get("target_qty"),
        ship_to_address=data.get("ship_to_address"),
        transporter=data.get("transporter"),
        transport_mode=data.get("transport_mode"),
        vehicle_no=data.get("vehicle_no"),
        draft=coerce_bool(data.get("draft"), "draft"),
    )
    return jsonify({"session_id": session.id, "session": session.to_dict()}), 201


@sessions_bp.post("/<int:session_id>/activate")
@require_auth
def activate_session_route(session_id: int):
    ensure_plant_access(scan_session_service.get_session(session_id).plant_id)
    session = scan_session_service.activate_session(session_id)
    return jsonify({"session": session.to_dict()}), 200


@sessions_bp.post("/<int:session_id>/close")
@require_auth
def close_session_route(session_id: int):
    """
    Close an active session; short sessions get a remark.

    Returns:
        200: {"completed_with_remark": bool, "remark": str | null, ...}
        409: Session already completed or still draft
    """
    ensure_plant_access(scan_session_service.get_session(session_id).plant_id)
    outcome = scan_session_service.close_session(session_id)
    return jsonify(outcome.to_dict()), 200


@sessions_bp.get("/<int:session_id>")
@require_auth
def get_session_route(session_id: int):
    session = scan_session_service.get_session(session_id)
    ensure_plant_access(session.plant_id)
    return jsonify({"session": session.to_dict()}), 200


@sessions_bp.get("")
@require_auth
def list_sessions_route():
    plant = resolve_plant(request.args.get("plant_code"))
    sessions = scan_session_service.list_sessions(
        plant.id,
        status=request.args.get("status"),
        mode=request.args.get("mode"),
    )
    return jsonify({"sessions": [s.to_dict() for s in sessions]}), 200
