# Overview: Asset directory lookups and administrative provisioning.

from __future__ import annotations

import time

from ..extensions import db
from ..models import Asset
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    coerce_optional_positive_int,
    coerce_positive_int,
    normalize_code,
    optional_text,
)
from .concurrency import lock_for_update, run_atomic
from .plant_service import get_active_plant

MAX_PROVISION_BATCH = 1000


def find_active_asset(asset_code: str, plant_id: int, *, lock: bool = False) -> Asset | None:
    """Active asset with this code whose home plant is plant_id, else None."""
    query = db.session.query(Asset).filter_by(
        asset_code=normalize_code(asset_code, "asset_code"),
        plant_id=plant_id,
        is_active=True,
    )
    if lock:
        query = lock_for_update(query).populate_existing()
    return query.first()


def get_asset_by_code(asset_code: str) -> Asset:
    asset = db.session.query(Asset).filter_by(asset_code=normalize_code(asset_code, "asset_code")).first()
    if not asset:
        raise NotFoundError(f"Asset {asset_code} not found", kind="ASSET_NOT_FOUND")
    return asset


def _generated_codes(asset_type: str, quantity: int) -> list[str]:
    stamp = int(time.time() * 1000)
    return [f"{asset_type}-{stamp}-{i}" for i in range(1, quantity + 1)]


def provision_assets(
    *,
    asset_type: str,
    customer: str,
    plant_id: int,
    quantity: int | None = None,
    description: str | None = None,
    pm_cycle=None,
    asset_codes: list[str] | None = None,
) -> list[Asset]:
    """
    Create a batch of assets for one customer at one plant.

    Codes are either supplied explicitly or generated as
    <TYPE>-<epoch millis>-<n>. New assets start with duty cycle 0 and
    no movement history.

    Raises:
        ValidationError: bad quantity / threshold / codes
        ConflictError(DUPLICATE_ASSET): a code already exists
    """
    def _op():
        type_code = normalize_code(asset_type, "asset_type")
        customer_name = optional_text(customer, "customer", 120)
        if not customer_name:
            raise ValidationError("customer is required")
        threshold = coerce_optional_positive_int(pm_cycle, "pm_cycle")
        get_active_plant(plant_id)

        if asset_codes:
            codes = [normalize_code(code, "asset_code") for code in asset_codes]
            if len(set(codes)) != len(codes):
                raise ValidationError("asset_codes contains duplicates")
        else:
            count = coerce_positive_int(quantity, "quantity")
            if count > MAX_PROVISION_BATCH:
                raise ValidationError(f"quantity cannot exceed {MAX_PROVISION_BATCH}")
            codes = _generated_codes(type_code, count)

        existing = db.session.query(Asset.asset_code).filter(Asset.asset_code.in_(codes)).all()
        if existing:
            taken = ", ".join(sorted(row.asset_code for row in existing))
            raise ConflictError(f"Asset codes already exist: {taken}", kind="DUPLICATE_ASSET")

        assets = [
            Asset(
                asset_code=code,
                asset_type=type_code,
                customer=customer_name,
                plant_id=plant_id,
                description=(description or "").strip(),
                pm_cycle=threshold,
                duty_cycle=0,
                is_active=True,
            )
            for code in codes
        ]
        db.session.add_all(assets)
        db.session.flush()
        return assets

    return run_atomic(_op)


def search_assets(
    *,
    asset_code: str | None = None,
    plant_id: int | None = None,
    asset_type: str | None = None,
) -> list[Asset]:
    query = db.session.query(Asset)
    if asset_code:
        query = query.filter(Asset.asset_code == normalize_code(asset_code, "asset_code"))
    if plant_id is not None:
        query = query.filter(Asset.plant_id == plant_id)
    if asset_type:
        query = query.filter(Asset.asset_type == normalize_code(asset_type, "asset_type"))
    return query.order_by(Asset.asset_code).all()


def toggle_asset(asset_code: str) -> Asset:
    """Activate / deactivate an asset. Assets are never deleted."""
    def _op():
        asset = get_asset_by_code(asset_code)
        asset.is_active = not asset.is_active
        return asset

    return run_atomic(_op)
