"""
Backend-specific test fixtures and configuration.

These fixtures wire the services to the mock database, the fake clock and
the fast policy, and build a TestClient whose dependencies use them.
"""

from unittest.mock import patch

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient


# =============================================================================
# Service Fixtures
# =============================================================================

@pytest.fixture
def auth_service(mock_auth_db, policy, clock):
    from accountguard.services.auth_service import AuthService
    return AuthService(mock_auth_db, policy=policy, clock=clock)


@pytest.fixture
def recovery_service(mock_auth_db, policy, clock):
    from accountguard.services.recovery_service import RecoveryService
    return RecoveryService(mock_auth_db, policy=policy, clock=clock)


@pytest.fixture
def two_factor_service(mock_auth_db, policy, clock):
    from accountguard.services.two_factor_service import TwoFactorService
    return TwoFactorService(mock_auth_db, policy=policy, clock=clock)


@pytest.fixture
def account_store(mock_auth_db, clock):
    from accountguard.services.account_store import AccountStore
    return AccountStore(mock_auth_db, clock=clock)


@pytest_asyncio.fixture
async def registered_account(auth_service, test_account_data):
    """An active, unlocked account using the test password."""
    return await auth_service.register_account(
        test_account_data["email"],
        test_account_data["password"],
    )


@pytest.fixture
def make_account(auth_service, test_password):
    """
    Factory registering accounts.

    Usage:
        account = await make_account("a@example.com", role=AccountRole.ADMIN)
    """
    async def _make(email: str, password: str = None, **kwargs):
        return await auth_service.register_account(email, password or test_password, **kwargs)
    return _make


@pytest.fixture
def raw_accounts(mock_auth_db):
    """The raw accounts collection, for asserting on stored documents."""
    return mock_auth_db["accounts"]


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def app(mock_async_mongo_client, mock_auth_db, auth_service, recovery_service, two_factor_service):
    """
    FastAPI app with the service dependencies pointing at the mock database.
    """
    from accountguard.dependencies.auth import (
        get_auth_db,
        get_auth_service,
        get_recovery_service,
        get_two_factor_service,
    )
    from accountguard.main import app

    app.dependency_overrides[get_auth_db] = lambda: mock_auth_db
    app.dependency_overrides[get_auth_service] = lambda: auth_service
    app.dependency_overrides[get_recovery_service] = lambda: recovery_service
    app.dependency_overrides[get_two_factor_service] = lambda: two_factor_service
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app, mock_async_mongo_client):
    """TestClient with startup index creation pointed at the mock client."""
    async def get_mongo():
        return mock_async_mongo_client

    with patch("accountguard.main.get_mongo_client", side_effect=get_mongo), \
         patch("accountguard.main.close_connections"):
        with TestClient(app) as c:
            yield c


@pytest.fixture
def bearer():
    """Build an ``Authorization`` header for a token."""
    def _headers(token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}
    return _headers


# =============================================================================
# Response Assertion Helpers
# =============================================================================

@pytest.fixture
def assert_error_response():
    """Helper to assert error response structure."""
    def _assert(response, status_code: int, detail_contains: str = None):
        assert response.status_code == status_code
        data = response.json()
        assert "detail" in data
        if detail_contains:
            assert detail_contains.lower() in data["detail"].lower()
    return _assert
