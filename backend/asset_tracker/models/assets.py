from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Asset(db.Model):
    """
    Asset ledger entry for one physical, barcoded asset.

    DUTY CYCLE:
    - duty_cycle counts IN scans since the last OK verification
    - only an IN scan increments it, only an OK scan resets it to 0
    - pm_cycle NULL means the asset is not tracked for preventive maintenance

    current_location is the authoritative location for movement validation.
    It is written in the same transaction as each accepted scan; the scans
    table is the audit trail it can always be re-derived from.

    Assets are never deleted, only deactivated.
    """
    __tablename__ = "assets"
    __table_args__ = (
        db.Index("ix_assets_plant_active", "plant_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Scanned identity, always uppercase (e.g., "BIN-1718000000000-1")
    asset_code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    asset_type = db.Column(db.String(64), nullable=False, index=True)
    customer = db.Column(db.String(120), nullable=False)
    plant_id = db.Column(db.Integer, db.ForeignKey("plants.id"), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False, default="")

    pm_cycle = db.Column(db.Integer, nullable=True)
    duty_cycle = db.Column(db.Integer, nullable=False, default=0)
    last_ok_at = db.Column(db.DateTime(timezone=True), nullable=True)

    current_location = db.Column(db.String(16), nullable=False, default="NO_MOVEMENT", index=True)
    last_moved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    status = db.Column(db.String(32), nullable=False, default="AVAILABLE")
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    plant = db.relationship("Plant", backref=db.backref("assets", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "asset_code": self.asset_code,
            "asset_type": self.asset_type,
            "customer": self.customer,
            "plant_id": self.plant_id,
            "plant_code": self.plant.code if self.plant else None,
            "description": self.description,
            "pm_cycle": self.pm_cycle,
            "duty_cycle": self.duty_cycle,
            "last_ok_at": to_utc_z(self.last_ok_at) if self.last_ok_at else None,
            "current_location": self.current_location,
            "last_moved_at": to_utc_z(self.last_moved_at) if self.last_moved_at else None,
            "status": self.status,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
