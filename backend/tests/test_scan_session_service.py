"""
Scan session tests.

Verifies:
- Quantity tracking and completion at the target
- Duplicate, cross-plant and out-of-order scans are rejected without side effects
- Duty cycle accounting for IN and OK scans
- Closing short sessions records a remark; closing twice fails
- Draft sessions must be activated before scanning
"""

import pytest
from sqlalchemy import update

from asset_tracker.models import Scan, ScanSession
from asset_tracker.services import location_service, scan_session_service
from asset_tracker.validation import ConflictError, NotFoundError, ValidationError


def _scan(session, asset_code, actor="op1", **kwargs):
    return scan_session_service.record_scan(session.id, asset_code, actor, **kwargs)


def _scan_count(db_session):
    return db_session.query(Scan).count()


# =============================================================================
# QUANTITY TRACKING
# =============================================================================


class TestQuantityTracking:

    def test_session_completes_when_target_reached(self, open_session, make_assets):
        make_assets("BIN-1", "BIN-2", "BIN-3")
        session = open_session("IN", "INV-100", 3)

        first = _scan(session, "BIN-1")
        assert first.accepted is True
        assert first.scanned_qty == 1
        assert first.remaining_qty == 2
        assert first.status == "active"

        _scan(session, "BIN-2")
        last = _scan(session, "BIN-3")
        assert last.scanned_qty == 3
        assert last.remaining_qty == 0
        assert last.status == "completed"

        stored = scan_session_service.get_session(session.id)
        assert stored.status == "completed"
        assert stored.completed_at is not None

    def test_scan_into_completed_session_rejected(self, db_session, open_session, make_assets):
        make_assets("BIN-1", "BIN-2")
        session = open_session("IN", "INV-101", 1)
        _scan(session, "BIN-1")

        with pytest.raises(ConflictError) as exc_info:
            _scan(session, "BIN-2")
        assert exc_info.value.kind == "SESSION_CLOSED"
        assert scan_session_service.get_session(session.id).scanned_qty == 1
        assert _scan_count(db_session) == 1

    def test_unbounded_session_never_autocompletes(self, open_session, make_assets):
        make_assets("BIN-1", "BIN-2")
        in_session = open_session("IN", "INV-102", 2)
        _scan(in_session, "BIN-1")
        _scan(in_session, "BIN-2")

        maint = open_session("MAINT")
        _scan(maint, "BIN-1")
        outcome = _scan(maint, "BIN-2")
        assert outcome.remaining_qty is None
        assert outcome.status == "active"


# =============================================================================
# REJECTIONS
# =============================================================================


class TestRejections:

    def test_duplicate_scan_in_same_session(self, db_session, open_session, make_assets):
        make_assets("BIN-1")
        session = open_session("OUT", "DC-1", 5)
        _scan(session, "BIN-1")

        with pytest.raises(ConflictError) as exc_info:
            _scan(session, "BIN-1")
        assert exc_info.value.kind == "DUPLICATE_SCAN"
        assert scan_session_service.get_session(session.id).scanned_qty == 1
        assert _scan_count(db_session) == 1

    def test_invalid_transition_leaves_no_trace(self, db_session, open_session, asset):
        session = open_session("IN", "INV-200", 2)
        _scan(session, "BIN-1")
        again = open_session("IN", "INV-201", 2)

        with pytest.raises(ConflictError) as exc_info:
            _scan(again, "BIN-1")
        assert exc_info.value.kind == "INVALID_TRANSITION"

        assert asset.current_location == "AT_PLANT"
        assert asset.duty_cycle == 1
        assert scan_session_service.get_session(again.id).scanned_qty == 0
        assert _scan_count(db_session) == 1

    def test_maintenance_requires_asset_at_plant(self, open_session, asset):
        session = open_session("MAINT")
        with pytest.raises(ConflictError) as exc_info:
            _scan(session, "BIN-1")
        assert exc_info.value.kind == "INVALID_TRANSITION"
        assert asset.current_location == "NO_MOVEMENT"

    def test_unknown_asset(self, open_session, asset):
        session = open_session("IN", "INV-300", 1)
        with pytest.raises(NotFoundError) as exc_info:
            _scan(session, "NOPE-1")
        assert exc_info.value.kind == "ASSET_NOT_FOUND"

    def test_asset_of_other_plant_not_found(self, open_session, other_plant, asset):
        session = open_session("IN", "INV-301", 1, plant_id=other_plant.id)
        with pytest.raises(NotFoundError):
            _scan(session, "BIN-1")

    def test_plant_mismatch(self, db_session, open_session, other_plant, asset):
        session = open_session("IN", "INV-302", 1)
        with pytest.raises(ConflictError) as exc_info:
            _scan(session, "BIN-1", plant_id=other_plant.id)
        assert exc_info.value.kind == "PLANT_MISMATCH"
        assert asset.current_location == "NO_MOVEMENT"
        assert _scan_count(db_session) == 0

    def test_missing_actor(self, open_session, asset):
        session = open_session("IN", "INV-303", 1)
        with pytest.raises(ValidationError):
            _scan(session, "BIN-1", actor="")

    def test_unknown_session(self, asset):
        with pytest.raises(NotFoundError) as exc_info:
            scan_session_service.record_scan(9999, "BIN-1", "op1")
        assert exc_info.value.kind == "SESSION_NOT_FOUND"

    def test_inactive_asset_rejected(self, open_session, asset):
        from asset_tracker.services import asset_service

        asset_service.toggle_asset("BIN-1")
        session = open_session("IN", "INV-304", 1)
        with pytest.raises(NotFoundError):
            _scan(session, "BIN-1")


# =============================================================================
# DUTY CYCLE
# =============================================================================


class TestDutyCycle:

    def test_in_scan_increments_duty_cycle(self, open_session, asset):
        _scan(open_session("IN", "INV-1", 1), "BIN-1")
        assert asset.duty_cycle == 1
        assert asset.current_location == "AT_PLANT"

        _scan(open_session("OUT", "DC-1", 1), "BIN-1")
        assert asset.duty_cycle == 1
        assert asset.current_location == "AT_CUSTOMER"

        outcome = _scan(open_session("IN", "INV-2", 1), "BIN-1")
        assert outcome.duty_cycle == 2
        assert asset.duty_cycle == 2

    def test_ok_scan_resets_duty_cycle(self, db_session, open_session, asset):
        _scan(open_session("IN", "INV-1", 1), "BIN-1")
        _scan(open_session("MAINT"), "BIN-1")
        assert asset.current_location == "AT_MAINTENANCE"
        assert asset.duty_cycle == 1

        ok_session = open_session("OK")
        outcome = _scan(ok_session, "BIN-1")
        assert outcome.location == "AT_PLANT"
        assert outcome.duty_cycle == 0

        movement = db_session.query(Scan).filter_by(session_id=ok_session.id).one()
        assert asset.duty_cycle == 0
        assert asset.last_ok_at == movement.movement_time

    def test_ok_scan_stamps_last_ok_even_from_zero(self, db_session, open_session, asset):
        _scan(open_session("IN", "INV-1", 1), "BIN-1")
        _scan(open_session("MAINT"), "BIN-1")
        first_ok = open_session("OK")
        _scan(first_ok, "BIN-1")
        first_stamp = asset.last_ok_at
        assert asset.duty_cycle == 0

        _scan(open_session("MAINT"), "BIN-1")
        assert asset.duty_cycle == 0
        second_ok = open_session("OK")
        outcome = _scan(second_ok, "BIN-1")

        movement = db_session.query(Scan).filter_by(session_id=second_ok.id).one()
        assert outcome.duty_cycle == 0
        assert asset.duty_cycle == 0
        assert asset.last_ok_at == movement.movement_time
        assert asset.last_ok_at >= first_stamp
        assert movement.id > db_session.query(Scan).filter_by(session_id=first_ok.id).one().id

    def test_stored_location_matches_history(self, open_session, asset):
        _scan(open_session("OUT", "DC-1", 1), "BIN-1")
        assert location_service.resolve_location(asset.id, asset.plant_id).value == asset.current_location
        assert location_service.find_location_drift() == []


# =============================================================================
# SESSION LIFECYCLE
# =============================================================================


class TestSessionLifecycle:

    def test_close_short_session_records_remark(self, open_session, make_assets):
        make_assets("BIN-1", "BIN-2", "BIN-3")
        session = open_session("OUT", "DC-500", 5)
        for code in ("BIN-1", "BIN-2", "BIN-3"):
            _scan(session, code)

        outcome = scan_session_service.close_session(session.id)
        assert outcome.completed_with_remark is True
        assert outcome.remark == "2 qty short against document"

        stored = scan_session_service.get_session(session.id)
        assert stored.status == "completed"
        assert stored.remark == "2 qty short against document"

    def test_close_twice_fails(self, open_session):
        session = open_session("OUT", "DC-501", 5)
        scan_session_service.close_session(session.id)

        with pytest.raises(ConflictError) as exc_info:
            scan_session_service.close_session(session.id)
        assert exc_info.value.kind == "SESSION_CLOSED"

    def test_close_rereads_session_held_in_memory(self, db_session, open_session):
        session = open_session("OUT", "DC-502", 5)
        cached = scan_session_service.get_session(session.id)
        assert cached.status == "active"

        # Another writer completes the row behind the cached instance
        db_session.execute(
            update(ScanSession)
            .where(ScanSession.id == session.id)
            .values(status="completed")
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(ConflictError) as exc_info:
            scan_session_service.close_session(session.id)
        assert exc_info.value.kind == "SESSION_CLOSED"

    def test_close_unbounded_session_has_no_remark(self, open_session):
        session = open_session("MAINT")
        outcome = scan_session_service.close_session(session.id)
        assert outcome.completed_with_remark is False
        assert outcome.remark is None

    def test_draft_session_rejects_scans_until_activated(self, open_session, asset):
        session = open_session("IN", "INV-600", 1, draft=True)
        assert session.status == "draft"

        with pytest.raises(ConflictError) as exc_info:
            _scan(session, "BIN-1")
        assert exc_info.value.kind == "SESSION_NOT_ACTIVE"
        assert asset.current_location == "NO_MOVEMENT"

        scan_session_service.activate_session(session.id)
        outcome = _scan(session, "BIN-1")
        assert outcome.status == "completed"

    def test_activate_only_from_draft(self, open_session):
        session = open_session("IN", "INV-601", 1)
        with pytest.raises(ConflictError) as exc_info:
            scan_session_service.activate_session(session.id)
        assert exc_info.value.kind == "SESSION_NOT_DRAFT"


# =============================================================================
# SESSION START
# =============================================================================


class TestStartSession:

    def test_document_number_unique_per_plant(self, db_session, open_session, other_plant):
        open_session("IN", "INV-700", 2)
        with pytest.raises(ConflictError) as exc_info:
            open_session("OUT", "INV-700", 2)
        assert exc_info.value.kind == "DUPLICATE_DOCUMENT"
        assert db_session.query(ScanSession).count() == 1

        open_session("IN", "INV-700", 2, plant_id=other_plant.id)
        assert db_session.query(ScanSession).count() == 2

    def test_maintenance_sessions_may_share_a_reference(self, open_session):
        first = open_session("MAINT", "PM-BATCH")
        second = open_session("MAINT", "PM-BATCH")
        assert first.id != second.id

    @pytest.mark.parametrize(
        "document_no,target_qty",
        [(None, 5), ("INV-800", None), ("INV-800", 0), ("INV-800", "2.5"), ("INV-800", True)],
    )
    def test_document_modes_need_document_and_target(self, open_session, document_no, target_qty):
        with pytest.raises(ValidationError):
            open_session("IN", document_no, target_qty)

    def test_invalid_mode(self, open_session):
        with pytest.raises(ValidationError):
            open_session("TRANSFER", "X-1", 1)

    def test_inactive_plant(self, open_session, other_plant):
        from asset_tracker.services import plant_service

        plant_service.toggle_plant("P02")
        with pytest.raises(NotFoundError) as exc_info:
            open_session("IN", "INV-900", 1, plant_id=other_plant.id)
        assert exc_info.value.kind == "PLANT_NOT_FOUND"

    def test_list_sessions_filters(self, plant, open_session):
        open_session("IN", "INV-1", 1)
        open_session("MAINT", draft=True)
        assert len(scan_session_service.list_sessions(plant.id)) == 2
        assert [s.mode for s in scan_session_service.list_sessions(plant.id, status="draft")] == ["MAINT"]
        assert [s.mode for s in scan_session_service.list_sessions(plant.id, mode="in")] == ["IN"]
