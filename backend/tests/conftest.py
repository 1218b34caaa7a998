"""
Pytest fixtures for asset tracker backend tests.

Provides an in-memory database, plants, assets, users and a test client.
"""

import pytest

from asset_tracker import create_app
from asset_tracker.extensions import db
from asset_tracker.services import asset_service, auth_service, plant_service, scan_session_service

PASSWORD = "secret123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def plant(db_session):
    """Home plant P01."""
    return plant_service.create_plant("P01", "Main Plant", "1 Industrial Road")


@pytest.fixture(scope='function')
def other_plant(db_session):
    """Second plant P02."""
    return plant_service.create_plant("P02", "North Plant")


@pytest.fixture(scope='function')
def make_assets(plant):
    """Factory: explicit-code assets at the home plant."""
    def _make(*codes, pm_cycle=None, asset_type="BIN", description="Plastic bin"):
        return asset_service.provision_assets(
            asset_type=asset_type,
            customer="ACME",
            plant_id=plant.id,
            description=description,
            pm_cycle=pm_cycle,
            asset_codes=list(codes),
        )
    return _make


@pytest.fixture(scope='function')
def asset(make_assets):
    return make_assets("BIN-1")[0]


@pytest.fixture(scope='function')
def admin_user(db_session):
    return auth_service.create_user("admin", PASSWORD, "admin")


@pytest.fixture(scope='function')
def operator(plant):
    return auth_service.create_user("op1", PASSWORD, "operator", plant.id)


@pytest.fixture(scope='function')
def other_operator(other_plant):
    return auth_service.create_user("op2", PASSWORD, "operator", other_plant.id)


@pytest.fixture(scope='function')
def open_session(plant):
    """Factory: start a session at the home plant as op1."""
    def _open(mode, document_no=None, target_qty=None, plant_id=None, **kwargs):
        return scan_session_service.start_session(
            mode=mode,
            plant_id=plant_id or plant.id,
            actor="op1",
            document_no=document_no,
            target_qty=target_qty,
            **kwargs,
        )
    return _open


@pytest.fixture(scope='function')
def login(client):
    """Factory: log in and return Authorization headers."""
    def _login(username: str, password: str = PASSWORD) -> dict:
        response = client.post('/api/auth/login', json={
            'username': username,
            'password': password
        })
        assert response.status_code == 200, response.json
        return {'Authorization': f"Bearer {response.json['token']}"}
    return _login
