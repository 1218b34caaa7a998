# Overview: Location resolver; derives asset locations from the movement history.

"""
The scans table is the audit trail of every accepted movement. These
functions re-derive an asset's location from it without touching the
explicit Asset.current_location projection, so the two can be compared.
"""

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Asset, Scan
from .movement_rules import Location, Mode, location_after


def latest_movement(asset_id: int, plant_id: int) -> Scan | None:
    """
    Most recent movement record for an asset at a plant.

    Ties on movement_time go to the record inserted last (highest id).
    """
    return (
        db.session.query(Scan)
        .filter(Scan.asset_id == asset_id, Scan.plant_id == plant_id)
        .order_by(Scan.movement_time.desc(), Scan.id.desc())
        .first()
    )


def location_from_movement(movement: Scan | None) -> Location:
    if movement is None:
        return Location.NO_MOVEMENT
    return location_after(Mode(movement.mode))


def resolve_location(asset_id: int, plant_id: int) -> Location:
    return location_from_movement(latest_movement(asset_id, plant_id))


def movement_exists(session_id: int, asset_id: int) -> bool:
    return db.session.query(
        db.session.query(Scan).filter_by(session_id=session_id, asset_id=asset_id).exists()
    ).scalar()


def latest_movements_for_plant(plant_id: int) -> dict[int, Scan]:
    """
    Last movement per asset at a plant, keyed by asset id.

    Read-side projection for dashboards. Picks the row with the highest id
    among those sharing the latest movement_time, matching latest_movement().
    """
    latest_time = (
        db.session.query(
            Scan.asset_id.label("asset_id"),
            func.max(Scan.movement_time).label("movement_time"),
        )
        .filter(Scan.plant_id == plant_id)
        .group_by(Scan.asset_id)
        .subquery()
    )
    latest_id = (
        db.session.query(func.max(Scan.id).label("id"))
        .join(
            latest_time,
            (Scan.asset_id == latest_time.c.asset_id)
            & (Scan.movement_time == latest_time.c.movement_time),
        )
        .filter(Scan.plant_id == plant_id)
        .group_by(Scan.asset_id)
        .subquery()
    )
    rows = db.session.query(Scan).join(latest_id, Scan.id == latest_id.c.id).all()
    return {row.asset_id: row for row in rows}


def find_location_drift(plant_id: int | None = None) -> list[dict]:
    """
    Compare each asset's stored current_location with its history.

    Returns one entry per asset whose projection disagrees with the log.
    """
    query = db.session.query(Asset)
    if plant_id is not None:
        query = query.filter(Asset.plant_id == plant_id)

    drift = []
    for asset in query.order_by(Asset.id).all():
        derived = resolve_location(asset.id, asset.plant_id)
        if asset.current_location != derived.value:
            drift.append({
                "asset_id": asset.id,
                "asset_code": asset.asset_code,
                "stored": asset.current_location,
                "derived": derived.value,
            })
    return drift
