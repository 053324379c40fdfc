"""
Global test fixtures for accountguard.

This module provides shared fixtures for all tests including:
- Mock MongoDB (mongomock-motor)
- A controllable clock
- A fast security policy (low bcrypt cost, fixed secrets)
- Account factories
"""

import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest
import pytest_asyncio

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from accountguard.config import AuthPolicy  # noqa: E402
from accountguard.core.timeutils import utcnow  # noqa: E402


# =============================================================================
# Clock
# =============================================================================

class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    """
    Clock frozen at the current second.

    Starts at real time because JWT expiry is checked against the wall clock.
    """
    return FakeClock(utcnow().replace(microsecond=0))


# =============================================================================
# Policy
# =============================================================================

@pytest.fixture
def policy() -> AuthPolicy:
    """Default thresholds with a cheap bcrypt cost and test secrets."""
    return AuthPolicy(
        bcrypt_rounds=4,
        access_secret="test-access-secret",
        refresh_secret="test-refresh-secret",
    )


# =============================================================================
# MongoDB Fixtures (mongomock-motor)
# =============================================================================

@pytest_asyncio.fixture
async def mock_async_mongo_client():
    """
    Create an async mock MongoDB client using mongomock-motor.
    """
    from mongomock_motor import AsyncMongoMockClient
    client = AsyncMongoMockClient()
    yield client
    client.close()


@pytest_asyncio.fixture
async def mock_auth_db(mock_async_mongo_client):
    """Provide mock auth_db database with the real indexes."""
    from accountguard.database.indexes import create_indexes

    db = mock_async_mongo_client["auth_db"]
    await create_indexes(db)
    yield db


# =============================================================================
# Account Fixtures
# =============================================================================

@pytest.fixture
def test_password() -> str:
    return "SecurePassword123!"


@pytest.fixture
def test_account_data(test_password) -> dict:
    """Basic account data for registration."""
    return {
        "email": "learner@example.com",
        "password": test_password,
    }


@pytest.fixture
def assert_datetime_close():
    """
    Helper asserting two datetimes are within a tolerance.

    Usage:
        def test_something(assert_datetime_close):
            assert_datetime_close(account.lock_until, expected, seconds=1)
    """
    def _assert_close(actual: datetime, expected: datetime, seconds: float = 1.0):
        assert actual is not None, "datetime is None"
        delta = abs((actual - expected).total_seconds())
        assert delta <= seconds, f"{actual} differs from {expected} by {delta}s"

    return _assert_close
