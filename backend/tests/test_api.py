"""
HTTP API tests.

Verifies:
- Unauthenticated requests return 401
- Operators are confined to their own plant (403)
- Admin endpoints are denied to operators
- End-to-end scan flow through the API
"""

import pytest

from asset_tracker.models import ScanSession


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/sessions/start"),
            ("GET", "/api/sessions"),
            ("POST", "/api/scan"),
            ("GET", "/api/dashboard/summary"),
            ("GET", "/api/transactions"),
            ("GET", "/api/assets/pm-pending"),
            ("GET", "/api/admin/users"),
            ("GET", "/api/auth/me"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.json["error_kind"] == "AUTH_REQUIRED"

    def test_bad_token(self, client, db_session):
        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401
        assert resp.json["error_kind"] == "AUTH_INVALID"


# =============================================================================
# AUTH
# =============================================================================


class TestAuth:

    def test_login_and_me(self, client, operator, login):
        headers = login("op1")
        resp = client.get("/api/auth/me", headers=headers)
        assert resp.status_code == 200
        assert resp.json["user"]["plant_code"] == "P01"

    def test_wrong_password(self, client, operator):
        resp = client.post("/api/auth/login", json={"username": "op1", "password": "wrong-one"})
        assert resp.status_code == 401
        assert resp.json["error_kind"] == "BAD_CREDENTIALS"

    def test_logout_revokes_token(self, client, operator, login):
        headers = login("op1")
        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_change_password_revokes_tokens(self, client, operator, login):
        headers = login("op1")
        resp = client.post("/api/auth/change-password", headers=headers, json={
            "current_password": "secret123",
            "new_password": "newsecret1",
        })
        assert resp.status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

        fresh = login("op1", "newsecret1")
        assert client.get("/api/auth/me", headers=fresh).json["user"]["force_password_change"] is False

    def test_change_password_wrong_current(self, client, operator, login):
        resp = client.post("/api/auth/change-password", headers=login("op1"), json={
            "current_password": "not-it",
            "new_password": "newsecret1",
        })
        assert resp.status_code == 400
        assert resp.json["error_kind"] == "BAD_CREDENTIALS"


# =============================================================================
# SCAN FLOW
# =============================================================================


class TestScanFlow:

    def test_full_document_flow(self, client, operator, make_assets, login):
        make_assets("BIN-1", "BIN-2")
        headers = login("op1")

        resp = client.post("/api/sessions/start", headers=headers, json={
            "mode": "out",
            "document_no": "DC-1",
            "target_qty": 3,
            "transporter": "Fast Freight",
        })
        assert resp.status_code == 201
        session_id = resp.json["session_id"]
        assert resp.json["session"]["plant_code"] == "P01"

        resp = client.post("/api/scan", headers=headers, json={"session_id": session_id, "asset_code": "bin-1"})
        assert resp.status_code == 200
        assert resp.json["accepted"] is True
        assert resp.json["remaining_qty"] == 2

        resp = client.post("/api/scan", headers=headers, json={"session_id": session_id, "asset_code": "BIN-1"})
        assert resp.status_code == 409
        assert resp.json == {
            "accepted": False,
            "error": "Duplicate scan: BIN-1 already scanned in this session",
            "error_kind": "DUPLICATE_SCAN",
            "scanned_qty": 1,
            "remaining_qty": 2,
        }

        client.post("/api/scan", headers=headers, json={"session_id": session_id, "asset_code": "BIN-2"})
        resp = client.post(f"/api/sessions/{session_id}/close", headers=headers)
        assert resp.status_code == 200
        assert resp.json["remark"] == "1 qty short against document"

        resp = client.post(f"/api/sessions/{session_id}/close", headers=headers)
        assert resp.status_code == 409
        assert resp.json["error_kind"] == "SESSION_CLOSED"

        resp = client.get("/api/challan/by-invoice/DC-1", headers=headers)
        assert resp.status_code == 200
        assert resp.json["total_qty"] == 2

        resp = client.get("/api/transactions?invoice=DC-1", headers=headers)
        assert len(resp.json["transactions"]) == 2
        assert resp.json["short_qty"][0]["remark"] == "1 qty short against document"

        resp = client.get("/api/assets/BIN-1/location", headers=headers)
        assert resp.json["current_location"] == resp.json["derived_location"] == "AT_CUSTOMER"

    def test_duplicate_document_conflict(self, client, operator, login):
        headers = login("op1")
        body = {"mode": "IN", "document_no": "INV-1", "target_qty": 1}
        assert client.post("/api/sessions/start", headers=headers, json=body).status_code == 201
        resp = client.post("/api/sessions/start", headers=headers, json=body)
        assert resp.status_code == 409
        assert resp.json["error_kind"] == "DUPLICATE_DOCUMENT"

    def test_validation_error(self, client, operator, login):
        resp = client.post("/api/sessions/start", headers=login("op1"), json={"mode": "IN", "target_qty": 2})
        assert resp.status_code == 400
        assert resp.json["error_kind"] == "VALIDATION"

    def test_invalid_transition_reported(self, client, operator, asset, login):
        headers = login("op1")
        session_id = client.post("/api/sessions/start", headers=headers, json={"mode": "MAINT"}).json["session_id"]
        resp = client.post("/api/scan", headers=headers, json={"session_id": session_id, "asset_code": "BIN-1"})
        assert resp.status_code == 409
        assert resp.json["accepted"] is False
        assert resp.json["error_kind"] == "INVALID_TRANSITION"

    @pytest.mark.parametrize("draft", ["false", "true", 0, 1, "no"])
    def test_draft_flag_must_be_boolean(self, client, db_session, operator, login, draft):
        resp = client.post("/api/sessions/start", headers=login("op1"), json={"mode": "MAINT", "draft": draft})
        assert resp.status_code == 400
        assert resp.json["error_kind"] == "VALIDATION"
        assert db_session.query(ScanSession).count() == 0

    def test_draft_false_starts_active(self, client, operator, login):
        resp = client.post("/api/sessions/start", headers=login("op1"), json={"mode": "MAINT", "draft": False})
        assert resp.status_code == 201
        assert resp.json["session"]["status"] == "active"

    def test_draft_activation(self, client, operator, asset, login):
        headers = login("op1")
        session_id = client.post("/api/sessions/start", headers=headers, json={
            "mode": "IN", "document_no": "INV-5", "target_qty": 1, "draft": True,
        }).json["session_id"]

        resp = client.post("/api/scan", headers=headers, json={"session_id": session_id, "asset_code": "BIN-1"})
        assert resp.json["error_kind"] == "SESSION_NOT_ACTIVE"

        assert client.post(f"/api/sessions/{session_id}/activate", headers=headers).status_code == 200
        resp = client.post("/api/scan", headers=headers, json={"session_id": session_id, "asset_code": "BIN-1"})
        assert resp.json["status"] == "completed"


# =============================================================================
# PLANT ISOLATION (403)
# =============================================================================


class TestPlantIsolation:

    def test_operator_cannot_name_other_plant(self, client, operator, other_plant, login):
        resp = client.get("/api/dashboard/summary?plant_code=P02", headers=login("op1"))
        assert resp.status_code == 403

    def test_operator_cannot_scan_into_other_plant_session(
        self, client, operator, other_operator, asset, login
    ):
        session_id = client.post("/api/sessions/start", headers=login("op1"), json={
            "mode": "IN", "document_no": "INV-1", "target_qty": 1,
        }).json["session_id"]

        resp = client.post("/api/scan", headers=login("op2"), json={"session_id": session_id, "asset_code": "BIN-1"})
        assert resp.status_code == 403
        assert resp.json == {
            "accepted": False,
            "error": "No access to this plant",
            "error_kind": "FORBIDDEN",
            "scanned_qty": None,
            "remaining_qty": None,
        }
        assert client.get(f"/api/sessions/{session_id}", headers=login("op1")).json["session"]["scanned_qty"] == 0

    def test_admin_plant_mismatch(self, client, admin_user, operator, other_plant, asset, login):
        session_id = client.post("/api/sessions/start", headers=login("op1"), json={
            "mode": "IN", "document_no": "INV-1", "target_qty": 1,
        }).json["session_id"]

        resp = client.post("/api/scan", headers=login("admin"), json={
            "session_id": session_id, "asset_code": "BIN-1", "plant_code": "P02",
        })
        assert resp.status_code == 409
        assert resp.json["error_kind"] == "PLANT_MISMATCH"

    def test_admin_must_select_plant(self, client, admin_user, plant, login):
        resp = client.get("/api/dashboard/summary", headers=login("admin"))
        assert resp.status_code == 400
        resp = client.get("/api/dashboard/summary?plant_code=P01", headers=login("admin"))
        assert resp.status_code == 200


# =============================================================================
# ADMIN
# =============================================================================


class TestAdmin:

    def test_operator_denied(self, client, operator, login):
        headers = login("op1")
        assert client.get("/api/admin/users", headers=headers).status_code == 403
        resp = client.post("/api/admin/plants", headers=headers, json={"code": "P09", "name": "X"})
        assert resp.status_code == 403

    def test_provision_and_search_assets(self, client, admin_user, plant, login):
        headers = login("admin")
        resp = client.post("/api/admin/assets", headers=headers, json={
            "asset_type": "bin",
            "customer": "ACME",
            "plant_code": "P01",
            "quantity": 3,
            "pm_cycle": 10,
        })
        assert resp.status_code == 201
        assert resp.json["created"] == 3
        codes = [a["asset_code"] for a in resp.json["assets"]]
        assert all(code.startswith("BIN-") for code in codes)
        assert {a["current_location"] for a in resp.json["assets"]} == {"NO_MOVEMENT"}

        resp = client.get("/api/admin/assets/search?plant_code=P01&asset_type=BIN", headers=headers)
        assert len(resp.json["assets"]) == 3

    def test_duplicate_asset_codes(self, client, admin_user, asset, login):
        resp = client.post("/api/admin/assets", headers=login("admin"), json={
            "asset_type": "BIN", "customer": "ACME", "plant_code": "P01", "asset_codes": ["BIN-1"],
        })
        assert resp.status_code == 409
        assert resp.json["error_kind"] == "DUPLICATE_ASSET"

    def test_user_lifecycle(self, client, admin_user, plant, login):
        headers = login("admin")
        resp = client.post("/api/admin/users", headers=headers, json={
            "username": "op9", "password": "secret123", "role": "operator", "plant_code": "P01",
        })
        assert resp.status_code == 201
        user_id = resp.json["user"]["id"]

        resp = client.post("/api/admin/users", headers=headers, json={
            "username": "op9", "password": "secret123", "role": "operator", "plant_code": "P01",
        })
        assert resp.json["error_kind"] == "DUPLICATE_USER"

        op_headers = login("op9")
        client.post(f"/api/admin/users/{user_id}/toggle", headers=headers)
        assert client.get("/api/auth/me", headers=op_headers).status_code == 401

    def test_operator_needs_plant(self, client, admin_user, login):
        resp = client.post("/api/admin/users", headers=login("admin"), json={
            "username": "op9", "password": "secret123", "role": "operator",
        })
        assert resp.status_code == 400

    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"


# =============================================================================
# CHALLAN
# =============================================================================


class TestChallanTransport:

    def test_save_transport_after_completion(self, client, operator, asset, login):
        headers = login("op1")
        session_id = client.post("/api/sessions/start", headers=headers, json={
            "mode": "OUT", "document_no": "DC-40", "target_qty": 1,
        }).json["session_id"]

        body = {"invoice": "DC-40", "transporter": "Fast Freight", "vehicle_no": "KA01AB1234"}
        resp = client.post("/api/challan/save-transport", headers=headers, json=body)
        assert resp.status_code == 404
        assert resp.json["error_kind"] == "DOCUMENT_NOT_FOUND"

        client.post("/api/scan", headers=headers, json={"session_id": session_id, "asset_code": "BIN-1"})
        resp = client.post("/api/challan/save-transport", headers=headers, json=body)
        assert resp.status_code == 200
        assert resp.json["ok"] is True

        challan = client.get("/api/challan/by-invoice/DC-40", headers=headers).json
        assert challan["transporter"] == "Fast Freight"
        assert challan["vehicle_no"] == "KA01AB1234"

    def test_save_transport_requires_invoice(self, client, operator, login):
        resp = client.post("/api/challan/save-transport", headers=login("op1"), json={"transporter": "X"})
        assert resp.status_code == 400

    def test_save_transport_other_plant_forbidden(self, client, operator, other_plant, login):
        resp = client.post("/api/challan/save-transport", headers=login("op1"), json={
            "invoice": "DC-40", "plant_code": "P02",
        })
        assert resp.status_code == 403
        assert resp.json["error_kind"] == "FORBIDDEN"
