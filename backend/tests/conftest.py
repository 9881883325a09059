import logging
import os
from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

# Set test environment variables
os.environ.update(
    {
        "CONSUMER_KEY": "test_key",
        "CONSUMER_SECRET": "test_secret",
        "MPESA_BASE_URL": "https://sandbox.safaricom.co.ke",
        "SHORT_CODE": "600638",
        "CONFIRMATION_URL": "https://merchant.example.com/api/c2b/confirmation",
        "VALIDATION_URL": "https://merchant.example.com/api/c2b/validation",
        "ALLOWED_ORIGINS": "https://merchant.example.com",
    }
)
for name in ("ACCOUNT_REFERENCE_PATTERN", "TOKEN_SINGLE_FLIGHT", "RESPONSE_TYPE"):
    os.environ.pop(name, None)

# Import app modules after setting environment variables
from mpesa_c2b.core.config import Settings, get_settings
from mpesa_c2b.main import app, get_auth_client
from mpesa_c2b.services.daraja_auth import AuthClient, TokenCache

logger = logging.getLogger(__name__)

BASE_URL = "https://sandbox.safaricom.co.ke"
OAUTH_URL = f"{BASE_URL}/oauth/v1/generate"
REGISTER_URL = f"{BASE_URL}/mpesa/c2b/v1/registerurl"


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def auth_client(settings: Settings, clock: FakeClock) -> AuthClient:
    return AuthClient.from_settings(settings, cache=TokenCache(clock=clock))


@pytest.fixture
def oauth_route(respx_mock):
    return respx_mock.get(OAUTH_URL, params={"grant_type": "client_credentials"})


@pytest.fixture
def client(auth_client: AuthClient):
    """Test client whose auth client has a fresh cache and a fake clock."""
    app.dependency_overrides[get_auth_client] = lambda: auth_client
    with TestClient(app) as test_client:
        logger.info("Test client created")
        yield test_client
    app.dependency_overrides.clear()
