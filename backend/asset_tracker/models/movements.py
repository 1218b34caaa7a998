from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class ScanSession(db.Model):
    """
    A batch of expected scans against one document, plant and mode.

    LIFECYCLE:
    1. draft: prepared (transport details filled in), not yet scannable
    2. active: accepting scans
    3. completed: terminal; reached target_qty or closed explicitly

    scanned_qty only ever grows, by exactly one per accepted scan, and is
    advanced with a conditional UPDATE so concurrent scans cannot lose
    increments.

    DOCUMENT NUMBERS: document_key mirrors document_no for IN/OUT sessions
    and stays NULL otherwise, so the unique constraint forbids reusing an
    IN/OUT document number at a plant while MAINT/OK sessions may repeat.
    """
    __tablename__ = "scan_sessions"
    __table_args__ = (
        db.UniqueConstraint("plant_id", "document_key", name="uq_scan_sessions_plant_document"),
        db.Index("ix_scan_sessions_plant_status", "plant_id", "status"),
        db.Index("ix_scan_sessions_document_no", "document_no"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    plant_id = db.Column(db.Integer, db.ForeignKey("plants.id"), nullable=False, index=True)

    # IN, OUT, MAINT, OK
    mode = db.Column(db.String(8), nullable=False, index=True)

    document_no = db.Column(db.String(64), nullable=True)
    document_key = db.Column(db.String(64), nullable=True)

    # NULL target means unbounded: never auto-completes
    target_qty = db.Column(db.Integer, nullable=True)
    scanned_qty = db.Column(db.Integer, nullable=False, default=0)

    # draft, active, completed
    status = db.Column(db.String(16), nullable=False, default="active", index=True)
    remark = db.Column(db.Text, nullable=True)

    # Transport details printed on the challan
    ship_to_address = db.Column(db.Text, nullable=True)
    transporter = db.Column(db.String(120), nullable=True)
    transport_mode = db.Column(db.String(64), nullable=True)
    vehicle_no = db.Column(db.String(64), nullable=True)

    created_by = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    plant = db.relationship("Plant")
    scans = db.relationship("Scan", back_populates="session", lazy=True, order_by="Scan.id")

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def remaining_qty(self) -> int | None:
        if self.target_qty is None:
            return None
        return max(self.target_qty - self.scanned_qty, 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "plant_id": self.plant_id,
            "plant_code": self.plant.code if self.plant else None,
            "mode": self.mode,
            "document_no": self.document_no,
            "target_qty": self.target_qty,
            "scanned_qty": self.scanned_qty,
            "remaining_qty": self.remaining_qty,
            "status": self.status,
            "remark": self.remark,
            "ship_to_address": self.ship_to_address,
            "transporter": self.transporter,
            "transport_mode": self.transport_mode,
            "vehicle_no": self.vehicle_no,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
        }


class Scan(db.Model):
    """
    Immutable movement record: one accepted scan of one asset in one session.

    The (session_id, asset_id) unique constraint is what makes a duplicate
    scan fail even when two requests race past the application check.
    id doubles as insertion order for breaking movement_time ties.
    """
    __tablename__ = "scans"
    __table_args__ = (
        db.UniqueConstraint("session_id", "asset_id", name="uq_scans_session_asset"),
        db.Index("ix_scans_asset_plant_time", "asset_id", "plant_id", "movement_time"),
        db.Index("ix_scans_plant_time", "plant_id", "movement_time"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey("scan_sessions.id"), nullable=False, index=True)
    asset_id = db.Column(db.Integer, db.ForeignKey("assets.id"), nullable=False, index=True)
    plant_id = db.Column(db.Integer, db.ForeignKey("plants.id"), nullable=False)
    mode = db.Column(db.String(8), nullable=False)

    # Acting username, recorded as given by the trust boundary
    actor = db.Column(db.String(64), nullable=False)
    movement_time = db.Column(db.DateTime(timezone=True), nullable=False)

    session = db.relationship("ScanSession", back_populates="scans")
    asset = db.relationship("Asset")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "asset_id": self.asset_id,
            "asset_code": self.asset.asset_code if self.asset else None,
            "plant_id": self.plant_id,
            "mode": self.mode,
            "actor": self.actor,
            "movement_time": to_utc_z(self.movement_time),
        }
