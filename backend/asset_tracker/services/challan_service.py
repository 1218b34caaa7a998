# Overview: Challan (delivery note) data for a completed document; no rendering.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Asset, Plant, Scan, ScanSession
from ..validation import NotFoundError, ValidationError, optional_text
from .concurrency import lock_for_update, run_atomic
from .movement_rules import SessionStatus


def _completed_session_query(plant_id: int, document_no: str):
    doc = str(document_no or "").strip()
    if not doc:
        raise ValidationError("Document number required")
    return db.session.query(ScanSession).filter(
        ScanSession.plant_id == plant_id,
        ScanSession.document_no == doc,
        ScanSession.status == SessionStatus.COMPLETED.value,
    )


def challan_for_document(plant_id: int, document_no: str) -> dict:
    """
    Challan lines for a completed session, grouped by asset type and description.

    Raises:
        NotFoundError(DOCUMENT_NOT_FOUND): no completed session with scans
    """
    session = _completed_session_query(plant_id, document_no).filter(
        ScanSession.scanned_qty > 0,
    ).order_by(ScanSession.id.desc()).first()
    if not session:
        raise NotFoundError(
            "Challan can be generated only after scanning completion",
            kind="DOCUMENT_NOT_FOUND",
        )

    plant = db.session.get(Plant, plant_id)

    items = (
        db.session.query(
            Asset.asset_type,
            Asset.description,
            func.count(Scan.id).label("qty"),
        )
        .join(Asset, Asset.id == Scan.asset_id)
        .filter(Scan.session_id == session.id)
        .group_by(Asset.asset_type, Asset.description)
        .order_by(Asset.asset_type, Asset.description)
        .all()
    )

    return {
        "document_no": session.document_no,
        "mode": session.mode,
        "total_qty": session.scanned_qty,
        "target_qty": session.target_qty,
        "remark": session.remark,
        "plant_code": plant.code,
        "plant_name": plant.name,
        "plant_address": plant.address or "",
        "transporter": session.transporter,
        "transport_mode": session.transport_mode,
        "vehicle_no": session.vehicle_no,
        "ship_to_address": session.ship_to_address,
        "items": [
            {"asset_type": row.asset_type, "description": row.description, "qty": row.qty}
            for row in items
        ],
    }


def save_transport(
    plant_id: int,
    document_no: str,
    *,
    transporter: str | None = None,
    transport_mode: str | None = None,
    vehicle_no: str | None = None,
    ship_to_address: str | None = None,
) -> ScanSession:
    """
    Record transport details on a completed document before printing its challan.

    Fields left as None keep their current value.

    Raises:
        NotFoundError(DOCUMENT_NOT_FOUND): no completed session for the document
    """
    def _op():
        session = (
            lock_for_update(_completed_session_query(plant_id, document_no))
            .populate_existing()
            .order_by(ScanSession.id.desc())
            .first()
        )
        if not session:
            raise NotFoundError("Session not completed", kind="DOCUMENT_NOT_FOUND")

        values = {
            "transporter": optional_text(transporter, "transporter", 120),
            "transport_mode": optional_text(transport_mode, "transport_mode", 64),
            "vehicle_no": optional_text(vehicle_no, "vehicle_no", 64),
            "ship_to_address": optional_text(ship_to_address, "ship_to_address", 1000),
        }
        for field, value in values.items():
            if value is not None:
                setattr(session, field, value)
        return session

    return run_atomic(_op)
