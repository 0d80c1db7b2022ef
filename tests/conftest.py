"""Shared pytest fixtures."""

from datetime import date

import pytest

from health_portal.app import create_app
from health_portal.config import TestingConfig
from health_portal.extensions import db, get_storage
from health_portal.storage import MemoryStorage


class SqlTestingConfig(TestingConfig):
    STORAGE_BACKEND = "sql"


@pytest.fixture
def app():
    """App backed by the in-memory storage."""
    return create_app(TestingConfig)


@pytest.fixture
def sql_app():
    """App backed by SQLite in memory, tables created for the test."""
    app = create_app(SqlTestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture(params=["memory", "sql"])
def storage(request):
    """Each storage backend in turn. The SQL one runs inside an app context."""
    if request.param == "memory":
        yield MemoryStorage()
        return
    request.getfixturevalue("sql_app")
    yield get_storage()


def _make_user(storage, username, doctor=False, license_number=None, **overrides):
    fields = {
        "username": username,
        "password_hash": "not-a-real-hash",
        "full_name": username.capitalize() + " Example",
        "date_of_birth": date(1985, 4, 12),
        "gender": "female",
        "blood_type": "O+",
        "is_doctor": doctor,
        "license_number": license_number if doctor else None,
        "specialization": "Cardiology" if doctor else None,
        "hospital": "General Hospital" if doctor else None,
    }
    fields.update(overrides)
    return storage.create_user(**fields)


def _registration_payload(username, doctor=False, license_number=None):
    payload = {
        "username": username,
        "password": "s3cret-pass",
        "full_name": username.capitalize() + " Example",
        "date_of_birth": "1985-04-12",
        "gender": "female",
        "blood_type": "A-",
    }
    if doctor:
        payload.update({
            "is_doctor": True,
            "license_number": license_number,
            "specialization": "Cardiology",
            "hospital": "General Hospital",
        })
    return payload


@pytest.fixture
def register(client):
    """Register an account through the API and return (user, auth headers)."""

    def _register(username, doctor=False, license_number=None):
        payload = _registration_payload(username, doctor, license_number)
        url = "/api/doctors/register" if doctor else "/api/register"
        res = client.post(url, json=payload)
        assert res.status_code == 201, res.get_json()
        body = res.get_json()
        return body["user"], {"Authorization": f"Bearer {body['access_token']}"}

    return _register


@pytest.fixture
def make_user():
    """Create an account directly in a storage backend."""
    return _make_user


@pytest.fixture
def registration_payload():
    return _registration_payload
