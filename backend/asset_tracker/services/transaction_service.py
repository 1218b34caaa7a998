# Overview: Movement history listing and short-quantity document report.

from __future__ import annotations

from ..extensions import db
from ..models import Asset, Scan, ScanSession
from ..time_utils import parse_iso_datetime, to_utc_z
from ..validation import ValidationError, normalize_code
from .movement_rules import SessionStatus, parse_mode


def _parse_bound(value: str | None, field: str):
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")


def list_movements(
    plant_id: int,
    *,
    asset_code: str | None = None,
    document_no: str | None = None,
    start: str | None = None,
    end: str | None = None,
    mode: str | None = None,
    limit: int = 500,
) -> list[dict]:
    start_dt = _parse_bound(start, "from")
    end_dt = _parse_bound(end, "to")

    query = (
        db.session.query(Scan, Asset, ScanSession)
        .join(Asset, Asset.id == Scan.asset_id)
        .join(ScanSession, ScanSession.id == Scan.session_id)
        .filter(Scan.plant_id == plant_id)
    )
    if asset_code:
        query = query.filter(Asset.asset_code == normalize_code(asset_code, "asset"))
    if document_no:
        query = query.filter(ScanSession.document_no == document_no.strip())
    if mode:
        query = query.filter(Scan.mode == parse_mode(mode).value)
    if start_dt:
        query = query.filter(Scan.movement_time >= start_dt)
    if end_dt:
        query = query.filter(Scan.movement_time <= end_dt)

    rows = query.order_by(Scan.movement_time.desc(), Scan.id.desc()).limit(limit).all()
    return [
        {
            "asset_code": asset.asset_code,
            "asset_type": asset.asset_type,
            "description": asset.description,
            "mode": scan.mode,
            "document_no": session.document_no,
            "session_id": session.id,
            "actor": scan.actor,
            "movement_time": to_utc_z(scan.movement_time),
        }
        for scan, asset, session in rows
    ]


def short_quantity_documents(plant_id: int, *, document_no: str | None = None) -> list[dict]:
    """Completed sessions of the plant that were closed below their target."""
    query = db.session.query(ScanSession).filter(
        ScanSession.plant_id == plant_id,
        ScanSession.status == SessionStatus.COMPLETED.value,
        ScanSession.target_qty > 0,
        ScanSession.scanned_qty < ScanSession.target_qty,
    )
    if document_no:
        query = query.filter(ScanSession.document_no == document_no.strip())

    return [
        {
            "session_id": session.id,
            "document_no": session.document_no,
            "mode": session.mode,
            "target_qty": session.target_qty,
            "scanned_qty": session.scanned_qty,
            "remark": session.remark,
            "created_by": session.created_by,
            "created_at": to_utc_z(session.created_at),
        }
        for session in query.order_by(ScanSession.created_at.desc(), ScanSession.id.desc()).all()
    ]
