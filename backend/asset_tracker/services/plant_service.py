# Overview: Service-layer operations for plants; simple administrative data access.

from __future__ import annotations

from ..extensions import db
from ..models import Plant
from ..validation import ConflictError, NotFoundError, normalize_code, optional_text, ValidationError
from .concurrency import run_atomic


def get_plant_by_code(code: str) -> Plant:
    plant = db.session.query(Plant).filter_by(code=normalize_code(code, "plant")).first()
    if not plant:
        raise NotFoundError(f"Plant {code} not found", kind="PLANT_NOT_FOUND")
    return plant


def get_active_plant(plant_id: int) -> Plant:
    plant = db.session.get(Plant, plant_id)
    if not plant or not plant.is_active:
        raise NotFoundError(f"Plant {plant_id} not found or inactive", kind="PLANT_NOT_FOUND")
    return plant


def create_plant(code: str, name: str, address: str | None = None) -> Plant:
    def _op():
        plant_code = normalize_code(code, "code")
        plant_name = optional_text(name, "name", 120)
        if not plant_name:
            raise ValidationError("name is required")

        if db.session.query(Plant).filter_by(code=plant_code).first():
            raise ConflictError(f"Plant {plant_code} already exists", kind="DUPLICATE_PLANT")

        plant = Plant(code=plant_code, name=plant_name, address=(address or "").strip(), is_active=True)
        db.session.add(plant)
        db.session.flush()
        return plant

    return run_atomic(_op)


def list_plants(*, include_inactive: bool = True) -> list[Plant]:
    query = db.session.query(Plant)
    if not include_inactive:
        query = query.filter(Plant.is_active.is_(True))
    return query.order_by(Plant.code).all()


def toggle_plant(code: str) -> Plant:
    def _op():
        plant = get_plant_by_code(code)
        plant.is_active = not plant.is_active
        return plant

    return run_atomic(_op)
