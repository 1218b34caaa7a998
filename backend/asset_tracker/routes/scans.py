# Overview: Flask API route for recording an asset scan.

from flask import Blueprint, current_app, request, jsonify, g

from ..decorators import require_auth, resolve_plant, ensure_plant_access
from ..services import scan_session_service
from ..validation import TrackerError, require_payload, require_fields, coerce_int

scans_bp = Blueprint("scans", __name__, url_prefix="/api")


@scans_bp.post("/scan")
@require_auth
def scan_route():
    """
    Record one asset scan into a session.

    Request body:
    {
        "session_id": int,
        "asset_code": str,
        "plant_code": str (optional; must match the session's plant)
    }

    Returns:
        200: {"accepted": true, "scanned_qty", "remaining_qty", "status", ...}
        4xx: {"accepted": false, "error", "error_kind", "scanned_qty", "remaining_qty"}

    Rejections carry the session's current quantities once the caller is
    known to have access to the session; otherwise they are null.
    """
    session = None
    try:
        data = require_payload(request.get_json(silent=True))
        require_fields(data, "session_id", "asset_code")
        session_id = coerce_int(data["session_id"], "session_id")

        plant_id = None
        if data.get("plant_code"):
            plant_id = resolve_plant(data["plant_code"]).id
        found = scan_session_service.get_session(session_id)
        ensure_plant_access(found.plant_id)
        session = found

        outcome = scan_session_service.record_scan(
            session_id,
            data["asset_code"],
            g.current_user.username,
            plant_id=plant_id,
        )
    except TrackerError as exc:
        if exc.status_code >= 500:
            raise
        current_app.logger.info("Scan rejected: %s (%s)", exc.message, exc.kind)
        body = exc.to_dict()
        body["accepted"] = False
        body["scanned_qty"] = session.scanned_qty if session is not None else None
        body["remaining_qty"] = session.remaining_qty if session is not None else None
        return jsonify(body), exc.status_code

    return jsonify(outcome.to_dict()), 200
