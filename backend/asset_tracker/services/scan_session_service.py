# backend/asset_tracker/services/scan_session_service.py
"""
Scan sessions: batches of asset scans against one document.

LIFECYCLE:
1. draft: created with draft=True, must be activated explicitly
2. active: accepts scans
3. completed: terminal; reached target_qty or closed (possibly short)

SCAN PRE-CONDITION: a scan is only accepted into an `active` session.
Draft sessions are never promoted implicitly by a scan, so the first scan
of a document always counts against a session the operator opened.

ATOMICITY: record_scan() is one transaction. The movement record insert,
the asset update and the session counter update either all commit or all
roll back. Concurrency is handled by the store:
- (session, asset) unique constraint rejects racing duplicate scans
- the asset update is a compare-and-set on current_location
- the counter update is conditional on status/target, so increments are
  never lost and a session never goes past its target
"""
from __future__ import annotations

from dataclasses import asdict, dataclass

from flask import current_app
from sqlalchemy import and_, case, or_, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Asset, Scan, ScanSession
from ..time_utils import utcnow
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    coerce_optional_positive_int,
    normalize_code,
    optional_text,
)
from .asset_service import find_active_asset
from .concurrency import lock_for_update, run_atomic
from .location_service import movement_exists
from .movement_rules import (
    DOCUMENT_MODES,
    Location,
    Mode,
    SessionStatus,
    location_after,
    parse_mode,
    validate_transition,
)
from .plant_service import get_active_plant


@dataclass(frozen=True)
class ScanOutcome:
    accepted: bool
    session_id: int
    asset_code: str
    scanned_qty: int
    remaining_qty: int | None
    status: str
    location: str
    duty_cycle: int
    error_kind: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class CloseOutcome:
    session_id: int
    status: str
    completed_with_remark: bool
    remark: str | None

    def to_dict(self) -> dict:
        return asdict(self)


def short_quantity_remark(deficit: int) -> str:
    return f"{deficit} qty short against document"


def get_session(session_id: int) -> ScanSession:
    session = db.session.get(ScanSession, session_id)
    if not session:
        raise NotFoundError(f"Session {session_id} not found", kind="SESSION_NOT_FOUND")
    return session


def _locked_session(session_id: int) -> ScanSession:
    session = (
        lock_for_update(db.session.query(ScanSession).filter_by(id=session_id))
        .populate_existing()
        .first()
    )
    if not session:
        raise NotFoundError(f"Session {session_id} not found", kind="SESSION_NOT_FOUND")
    return session


def _require_active(session: ScanSession) -> None:
    if session.status == SessionStatus.COMPLETED.value:
        raise ConflictError(f"Session {session.id} is already completed", kind="SESSION_CLOSED")
    if session.status != SessionStatus.ACTIVE.value:
        raise ConflictError(
            f"Session {session.id} is {session.status}; activate it before scanning",
            kind="SESSION_NOT_ACTIVE",
        )


def list_sessions(
    plant_id: int,
    *,
    status: str | None = None,
    mode: str | None = None,
    limit: int = 100,
) -> list[ScanSession]:
    query = db.session.query(ScanSession).filter(ScanSession.plant_id == plant_id)
    if status:
        try:
            query = query.filter(ScanSession.status == SessionStatus(status.lower()).value)
        except ValueError:
            raise ValidationError(f"Invalid status '{status}'")
    if mode:
        query = query.filter(ScanSession.mode == parse_mode(mode).value)
    return query.order_by(ScanSession.created_at.desc(), ScanSession.id.desc()).limit(limit).all()


def start_session(
    *,
    mode: str,
    plant_id: int,
    actor: str,
    document_no: str | None = None,
    target_qty=None,
    ship_to_address: str | None = None,
    transporter: str | None = None,
    transport_mode: str | None = None,
    vehicle_no: str | None = None,
    draft: bool = False,
) -> ScanSession:
    """
    Open a scan session.

    IN/OUT sessions need a document number and a target quantity; the
    document number may be used once per plant, ever. MAINT/OK sessions
    may be ad-hoc (no document) and unbounded (no target).

    Raises:
        ValidationError: missing/malformed fields
        NotFoundError(PLANT_NOT_FOUND): unknown or inactive plant
        ConflictError(DUPLICATE_DOCUMENT): document already used at this plant
    """
    def _op():
        session_mode = parse_mode(mode)
        get_active_plant(plant_id)
        doc = optional_text(document_no, "document_no", 64)
        target = coerce_optional_positive_int(target_qty, "target_qty")

        if session_mode in DOCUMENT_MODES:
            if not doc:
                raise ValidationError("Document number required")
            if target is None:
                raise ValidationError("target_qty must be > 0")

            exists = db.session.query(ScanSession.id).filter_by(
                plant_id=plant_id,
                document_key=doc,
            ).first()
            if exists:
                raise ConflictError(
                    f"Document {doc} already used at this plant",
                    kind="DUPLICATE_DOCUMENT",
                )

        session = ScanSession(
            plant_id=plant_id,
            mode=session_mode.value,
            document_no=doc,
            document_key=doc if session_mode in DOCUMENT_MODES else None,
            target_qty=target,
            scanned_qty=0,
            status=(SessionStatus.DRAFT if draft else SessionStatus.ACTIVE).value,
            ship_to_address=optional_text(ship_to_address, "ship_to_address", 1000),
            transporter=optional_text(transporter, "transporter", 120),
            transport_mode=optional_text(transport_mode, "transport_mode", 64),
            vehicle_no=optional_text(vehicle_no, "vehicle_no", 64),
            created_by=actor,
        )
        db.session.add(session)
        try:
            db.session.flush()
        except IntegrityError:
            raise ConflictError(
                f"Document {doc} already used at this plant",
                kind="DUPLICATE_DOCUMENT",
            )
        return session

    session = run_atomic(_op)
    current_app.logger.info(
        "Session %s started: mode=%s plant=%s document=%s target=%s status=%s by=%s",
        session.id, session.mode, session.plant_id, session.document_no,
        session.target_qty, session.status, actor,
    )
    return session


def activate_session(session_id: int) -> ScanSession:
    """Promote a draft session to active (draft -> active only)."""
    def _op():
        session = _locked_session(session_id)
        if session.status != SessionStatus.DRAFT.value:
            raise ConflictError(
                f"Only draft sessions can be activated (session {session_id} is {session.status})",
                kind="SESSION_NOT_DRAFT",
            )
        session.status = SessionStatus.ACTIVE.value
        return session

    return run_atomic(_op)


def record_scan(
    session_id: int,
    asset_code: str,
    actor: str,
    *,
    plant_id: int | None = None,
) -> ScanOutcome:
    """
    Accept one asset scan into a session.

    Side effects on acceptance, in order:
    1. movement record appended
    2. asset moved to the mode's location; IN adds one duty cycle,
       OK resets the duty cycle and stamps last_ok_at
    3. session scanned_qty + 1, completed when the target is reached

    Raises:
        ValidationError: missing actor / asset code
        NotFoundError(SESSION_NOT_FOUND | ASSET_NOT_FOUND)
        ConflictError: SESSION_CLOSED, SESSION_NOT_ACTIVE, PLANT_MISMATCH,
            QUANTITY_COMPLETE, DUPLICATE_SCAN, INVALID_TRANSITION,
            CONCURRENT_UPDATE
    """
    def _op():
        if not actor:
            raise ValidationError("Acting user is required")
        code = normalize_code(asset_code, "asset_code")

        session = _locked_session(session_id)
        _require_active(session)

        if plant_id is not None and plant_id != session.plant_id:
            raise ConflictError("Plant mismatch: session belongs to another plant", kind="PLANT_MISMATCH")

        if session.target_qty is not None and session.scanned_qty >= session.target_qty:
            raise ConflictError("Quantity already completed", kind="QUANTITY_COMPLETE")

        asset = find_active_asset(code, session.plant_id, lock=True)
        if not asset:
            raise NotFoundError(f"Asset {code} not in master data for this plant", kind="ASSET_NOT_FOUND")

        if movement_exists(session.id, asset.id):
            raise ConflictError(f"Duplicate scan: {code} already scanned in this session", kind="DUPLICATE_SCAN")

        mode = Mode(session.mode)
        current = Location(asset.current_location)
        validate_transition(current, mode)

        now = utcnow()
        db.session.add(Scan(
            session_id=session.id,
            asset_id=asset.id,
            plant_id=session.plant_id,
            mode=mode.value,
            actor=actor,
            movement_time=now,
        ))
        try:
            db.session.flush()
        except IntegrityError:
            raise ConflictError(f"Duplicate scan: {code} already scanned in this session", kind="DUPLICATE_SCAN")

        asset_values = {
            "current_location": location_after(mode).value,
            "last_moved_at": now,
            "version_id": Asset.version_id + 1,
        }
        if mode is Mode.IN:
            asset_values["duty_cycle"] = Asset.duty_cycle + 1
        elif mode is Mode.OK:
            asset_values["duty_cycle"] = 0
            asset_values["last_ok_at"] = now

        moved = db.session.execute(
            update(Asset)
            .where(Asset.id == asset.id, Asset.current_location == current.value)
            .values(**asset_values)
            .execution_options(synchronize_session=False)
        )
        if moved.rowcount != 1:
            raise ConflictError(f"Asset {code} was moved by another scan", kind="CONCURRENT_UPDATE")

        reaches_target = and_(
            ScanSession.target_qty.isnot(None),
            ScanSession.scanned_qty + 1 >= ScanSession.target_qty,
        )
        counted = db.session.execute(
            update(ScanSession)
            .where(
                ScanSession.id == session.id,
                ScanSession.status == SessionStatus.ACTIVE.value,
                or_(ScanSession.target_qty.is_(None), ScanSession.scanned_qty < ScanSession.target_qty),
            )
            .values(
                scanned_qty=ScanSession.scanned_qty + 1,
                status=case((reaches_target, SessionStatus.COMPLETED.value), else_=ScanSession.status),
                completed_at=case((reaches_target, now), else_=ScanSession.completed_at),
                version_id=ScanSession.version_id + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if counted.rowcount != 1:
            db.session.refresh(session)
            _require_active(session)
            raise ConflictError("Quantity already completed", kind="QUANTITY_COMPLETE")

        db.session.refresh(session)
        db.session.refresh(asset)

        return ScanOutcome(
            accepted=True,
            session_id=session.id,
            asset_code=asset.asset_code,
            scanned_qty=session.scanned_qty,
            remaining_qty=session.remaining_qty,
            status=session.status,
            location=asset.current_location,
            duty_cycle=asset.duty_cycle,
        )

    outcome = run_atomic(_op)
    current_app.logger.info(
        "Scan accepted: session=%s asset=%s location=%s qty=%s/%s status=%s by=%s",
        outcome.session_id, outcome.asset_code, outcome.location, outcome.scanned_qty,
        outcome.remaining_qty, outcome.status, actor,
    )
    return outcome


def close_session(session_id: int) -> CloseOutcome:
    """
    Close an active session.

    A session closed before its target gets a short-quantity remark.
    Closing twice is an error, never a silent success.

    Raises:
        NotFoundError(SESSION_NOT_FOUND)
        ConflictError(SESSION_CLOSED | SESSION_NOT_ACTIVE)
    """
    def _op():
        session = _locked_session(session_id)
        _require_active(session)

        remark = None
        if session.target_qty is not None and session.scanned_qty < session.target_qty:
            remark = short_quantity_remark(session.target_qty - session.scanned_qty)
            session.remark = remark

        session.status = SessionStatus.COMPLETED.value
        session.completed_at = utcnow()

        return CloseOutcome(
            session_id=session.id,
            status=session.status,
            completed_with_remark=remark is not None,
            remark=remark,
        )

    outcome = run_atomic(_op)
    current_app.logger.info(
        "Session %s closed%s", outcome.session_id, f" ({outcome.remark})" if outcome.remark else ""
    )
    return outcome
