# Overview: Preventive-maintenance due evaluation over the asset ledger (read-only).

from __future__ import annotations

from ..extensions import db
from ..models import Asset
from ..time_utils import to_utc_z


def is_pm_due(asset: Asset) -> bool:
    """
    An asset is PM-due once its duty cycle reaches its threshold.

    The boundary is inclusive; assets without a positive threshold are
    never due.
    """
    if asset.pm_cycle is None or asset.pm_cycle <= 0:
        return False
    return asset.duty_cycle >= asset.pm_cycle


def pm_due_filter():
    """SQL form of is_pm_due(); NULL thresholds drop out of the comparison."""
    return db.and_(
        Asset.pm_cycle.isnot(None),
        Asset.pm_cycle > 0,
        Asset.duty_cycle >= Asset.pm_cycle,
    )


def _pm_due_query(plant_id: int):
    return db.session.query(Asset).filter(
        Asset.plant_id == plant_id,
        Asset.is_active.is_(True),
        pm_due_filter(),
    )


def list_pm_due(plant_id: int) -> list[Asset]:
    return _pm_due_query(plant_id).order_by(Asset.asset_code).all()


def count_pm_due(plant_id: int) -> int:
    return _pm_due_query(plant_id).count()


def pm_due_to_dict(asset: Asset) -> dict:
    return {
        "asset_code": asset.asset_code,
        "description": asset.description or "-",
        "asset_type": asset.asset_type,
        "customer": asset.customer,
        "duty_cycle": asset.duty_cycle,
        "pm_cycle": asset.pm_cycle,
        "last_ok_at": to_utc_z(asset.last_ok_at) if asset.last_ok_at else None,
        "status": "PM DUE",
    }
