"""Test configuration.

Environment variables are set before anything from hydrowatch is imported,
so settings pick up the in-memory database, the mock payment gateway and a
throwaway upload directory. The project root is added to sys.path so tests
run without an editable install.
"""

import os
import sys
import tempfile
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

UPLOAD_DIR = tempfile.mkdtemp(prefix="hydrowatch-uploads-")
WEBHOOK_SECRET = "whsec_test_secret"

os.environ.update({
    "ENVIRONMENT": "test",
    "USE_MOCK_DB": "true",
    "MOCK_DB_PATH": "",
    "PAYMENT_PROVIDER": "mock",
    "STRIPE_WEBHOOK_SECRET": WEBHOOK_SECRET,
    "UPLOAD_DIR": UPLOAD_DIR,
    "JWT_SECRET": "test-jwt-secret",
    "MAIL_ENABLED": "false",
    "FRONTEND_URL": "http://frontend.test",
    "GOOGLE_MAPS_API_KEY": "maps-test-key",
})
for name in ("ADMIN_EMAIL", "ADMIN_PASSWORD", "ISSUE_STRICT_TRANSITIONS"):
    os.environ.pop(name, None)

from fastapi.testclient import TestClient  # noqa: E402

from hydrowatch.config.firebase import get_db  # noqa: E402
from hydrowatch.main import app  # noqa: E402
from hydrowatch.services.auth_service import get_auth_service  # noqa: E402
from hydrowatch.services.mail_service import get_mail_service  # noqa: E402
from hydrowatch.services.payments import get_payment_gateway  # noqa: E402


@pytest.fixture(autouse=True)
def clean_state():
    get_db().reset()
    get_mail_service().outbox.clear()
    get_payment_gateway().reset()
    yield


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def register_user(client):
    """Factory: sign a citizen up and return {id, email, token, headers}."""

    def _register(name="Alice", email="alice@example.com", password="secret1"):
        resp = client.post("/api/auth/signup", json={"name": name, "email": email, "password": password})
        assert resp.status_code == 201, resp.text
        token = resp.json()["token"]
        headers = {"Authorization": f"Bearer {token}"}
        me = client.get("/api/auth/me", headers=headers).json()
        return {"id": me["id"], "email": email, "token": token, "headers": headers}

    return _register


@pytest.fixture
def citizen(register_user):
    return register_user()


@pytest.fixture
def admin(client):
    user = get_auth_service().ensure_admin("admin@example.com", "adminpass", "Admin")
    resp = client.post("/api/auth/login", json={"email": "admin@example.com", "password": "adminpass"})
    assert resp.status_code == 200, resp.text
    token = resp.json()["token"]
    return {"id": user["id"], "email": user["email"], "token": token, "headers": {"Authorization": f"Bearer {token}"}}


@pytest.fixture
def create_service(client, admin):
    """Factory: create a water service as the administrator and return its JSON."""

    def _create(name="Plant1", lat=10.0, lng=10.0, type="distribution", capacity=100, **extra):
        body = {"name": name, "location": {"lat": lat, "lng": lng}, "type": type, "capacity": capacity}
        body.update(extra)
        resp = client.post("/api/water-services", json=body, headers=admin["headers"])
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _create


@pytest.fixture
def create_issue(client, citizen):
    """Factory: report an issue as the citizen and return its JSON."""

    def _create(lat=10.001, lng=10.001, headers=None, **fields):
        body = {
            "title": "Burst main",
            "description": "Water everywhere",
            "category": "leak",
            "priority": "high",
            "location": {"lat": lat, "lng": lng},
        }
        body.update(fields)
        resp = client.post("/api/issues", json=body, headers=headers or citizen["headers"])
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _create
