"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import copy
import os
import tempfile

# Must be set before anything under app/ is imported.
os.environ.setdefault("ACCESS_DATA_DIR", tempfile.mkdtemp(prefix="access-tests-"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.main import app  # noqa: E402
from app.services.access_control import AccessControlResolver  # noqa: E402
from app.services.container import resolver as app_resolver  # noqa: E402
from app.services.container import store  # noqa: E402


DEMO_PASSWORDS = {
    "admin": "admin123",
    "subadmin": "subadmin123",
    "hr_alisha": "hr123",
    "lead_rohan": "lead123",
    "emp_priya": "employee123",
    "emp_arjun": "employee456",
    "emp_neha": "employee789",
    "bd_karan": "bizdev123",
}

_STORE_TABLES = (
    "users",
    "team_memberships",
    "permission_overrides",
    "attendance",
    "leave_requests",
    "payroll",
    "clients",
    "tickets",
)


@pytest.fixture
def resolver() -> AccessControlResolver:
    """A resolver over the shipped catalog and role table."""
    return AccessControlResolver()


@pytest.fixture
def client():
    """Test client whose store and role table are restored after each test."""
    saved_tables = {name: copy.deepcopy(getattr(store, name)) for name in _STORE_TABLES}
    saved_roles = app_resolver.role_permissions()
    with TestClient(app) as test_client:
        yield test_client
    with store.lock:
        for name, table in saved_tables.items():
            setattr(store, name, table)
    app_resolver.replace_role_permissions(saved_roles)


_token_cache: dict[str, str] = {}


@pytest.fixture
def login(client: TestClient):
    """Return a callable giving bearer headers for a demo username."""

    def _login(username: str) -> dict[str, str]:
        if username not in _token_cache:
            response = client.post(
                "/auth/token",
                data={"username": username, "password": DEMO_PASSWORDS[username]},
            )
            assert response.status_code == 200, response.text
            _token_cache[username] = response.json()["access_token"]
        return {"Authorization": f"Bearer {_token_cache[username]}"}

    return _login
