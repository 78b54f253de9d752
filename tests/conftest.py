"""
Shared pytest fixtures for the delivery-control test suite.
"""
import pytest

from delivery_control.core.config import Settings
from delivery_control.models.schemas import Platform
from tests.helpers import ANOTAAI_URL, DELIVERYVIP_URL, FakePlatformClient, RecordingTransport


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        BEARER_TOKEN="test-bearer",
        ANOTAAI_API_URL=ANOTAAI_URL,
        ANOTAAI_EMAIL="partner@example.com",
        ANOTAAI_PASSWORD="s3cret",
        ANOTAAI_TOKEN_RENEWAL_SECONDS=3600,
        DELIVERYVIP_API_URL=DELIVERYVIP_URL,
        DELIVERYVIP_CLIENT_ID="client-id",
        DELIVERYVIP_CLIENT_SECRET="client-secret",
        DELIVERYVIP_TOKEN_RENEWAL_SECONDS=7200,
        PLATFORM_HTTP_TIMEOUT_SECONDS=5,
    )


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def fake_clients() -> dict[Platform, FakePlatformClient]:
    return {
        Platform.ANOTAAI: FakePlatformClient(
            Platform.ANOTAAI,
            stores={"s1": True, "s2": False, "s3": True},
        ),
        Platform.DELIVERYVIP: FakePlatformClient(
            Platform.DELIVERYVIP,
            stores={"m1": False, "m2": True},
        ),
    }
