# Overview: Dashboard projection over the latest movement per asset (read-only).

"""
The dashboard is a read-side projection recomputed on every request from
the movement history. It is never consulted when validating a scan; the
asset's stored current_location is.
"""

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import Asset
from ..time_utils import format_aging, utcnow
from .location_service import latest_movements_for_plant, location_from_movement
from .movement_rules import Location
from .pm_service import is_pm_due

TOP_N = 5

_OVERALL_BUCKETS = {
    Location.AT_CUSTOMER: "at_customer",
    Location.AT_PLANT: "at_plant",
    Location.AT_MAINTENANCE: "at_maint",
    Location.NO_MOVEMENT: "no_move",
}


def _aging_minutes(now: datetime, since: datetime | None) -> int:
    if since is None:
        return 0
    return int((now - since).total_seconds() // 60)


def plant_summary(plant_id: int, *, now: datetime | None = None) -> dict:
    now = now or utcnow()
    last_moves = latest_movements_for_plant(plant_id)
    assets = db.session.query(Asset).filter(
        Asset.plant_id == plant_id,
        Asset.is_active.is_(True),
    ).order_by(Asset.asset_code).all()

    overall: dict[tuple, dict] = {}
    top_aging = []
    top_maint = []
    total_pending_maint = 0
    total_under_maint = 0

    for asset in assets:
        last = last_moves.get(asset.id)
        location = location_from_movement(last)
        aging = _aging_minutes(now, last.movement_time if last else None)

        if location is Location.AT_CUSTOMER:
            top_aging.append((aging, asset))

        if is_pm_due(asset):
            total_pending_maint += 1
            top_maint.append((aging, asset))

        if location is Location.AT_MAINTENANCE:
            total_under_maint += 1

        key = (asset.customer, asset.description, asset.asset_type)
        group = overall.setdefault(key, {
            "customer": asset.customer,
            "description": asset.description or "-",
            "asset_type": asset.asset_type,
            "at_customer": 0,
            "at_plant": 0,
            "at_maint": 0,
            "no_move": 0,
        })
        group[_OVERALL_BUCKETS[location]] += 1

    def _top(rows):
        rows.sort(key=lambda row: row[0], reverse=True)
        return [
            {"asset_code": asset.asset_code, "customer": asset.customer, "aging": format_aging(aging)}
            for aging, asset in rows[:TOP_N]
        ]

    return {
        "top_aging": _top(top_aging),
        "top_maint": _top(top_maint),
        "total_pending_maint": total_pending_maint,
        "total_under_maint": total_under_maint,
        "overall": list(overall.values()),
    }
