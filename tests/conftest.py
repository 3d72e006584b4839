"""Pytest configuration and fixtures."""

from datetime import datetime, timezone
from typing import Any

import pytest

from sbgateway.common.settings import Settings
from sbgateway.gateway.signer import Credentials, Signer

BASE_URL = "https://shopback.test/posi"


@pytest.fixture
def settings() -> Settings:
    """Create test settings."""
    return Settings(
        shopback_access_key="test-access-key",
        shopback_access_key_secret="test-secret-key",
        shopback_base_url=BASE_URL,
        http_timeout=5.0,
    )


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(access_key="test-access-key", access_key_secret="test-secret-key")


@pytest.fixture
def signer(credentials: Credentials) -> Signer:
    return Signer(credentials)


@pytest.fixture
def fixed_timestamp() -> datetime:
    """Signing time used by deterministic tests."""
    return datetime(2022, 8, 15, 14, 59, 47, 585000, tzinfo=timezone.utc)


@pytest.fixture
def create_order_payload() -> dict[str, Any]:
    """Valid dynamic QR order request."""
    return {
        "posId": "pos-001",
        "country": "SG",
        "amount": 1000,
        "currency": "SGD",
        "referenceId": "order-123",
        "qrType": "dynamic",
        "partner": {
            "merchantId": "merchant-42",
            "merchantCategoryCode": 5812,
        },
        "orderMetadata": {
            "terminalReference": "T-9",
        },
        "webhookUrl": "https://merchant.example/hooks/shopback",
    }
