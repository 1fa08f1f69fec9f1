# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
import os
import sys
from typing import Any, Callable, Dict

import pytest


def _add_project_paths_to_syspath() -> None:
    root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    for path in (
        root,
        os.path.join(root, "packages", "dagpay-merchant", "src"),
        os.path.join(root, "server", "src"),
    ):
        if path not in sys.path:
            sys.path.insert(0, path)


_add_project_paths_to_syspath()


# Import after adding to syspath
from dagpay_merchant import Environment, EnvironmentRegistry, sign_status


LIVE_SECRET = "livesecret"
TEST_SECRET = "topsecret"


@pytest.fixture
def test_env(monkeypatch) -> None:
    """Single-environment configuration, as in a merchant's .env file."""
    for key in list(os.environ):
        if key.startswith("DAGPAY_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("DAGPAY_API_BASE_URL", "https://test-api.dagpay.io/api")
    monkeypatch.setenv("DAGPAY_USER_ID", "user-1")
    monkeypatch.setenv("DAGPAY_ENVIRONMENT_ID", "env-test")
    monkeypatch.setenv("DAGPAY_SECRET", TEST_SECRET)


@pytest.fixture
def environment() -> Environment:
    return Environment(
        name="test",
        api_base_url="https://test-api.dagpay.io/api",
        user_id="user-1",
        environment_id="env-test",
        secret=TEST_SECRET,
    )


@pytest.fixture
def live_environment() -> Environment:
    return Environment(
        name="live",
        api_base_url="https://api.dagpay.io/api/",
        user_id="user-1",
        environment_id="env-live",
        secret=LIVE_SECRET,
    )


@pytest.fixture
def registry(environment: Environment, live_environment: Environment) -> EnvironmentRegistry:
    return EnvironmentRegistry([live_environment, environment])


@pytest.fixture
def sample_status() -> Dict[str, Any]:
    """Unsigned invoice status record as the gateway delivers it."""
    return {
        "id": "5b0d4bb7c2d2a90011f5b7a4",
        "userId": "user-1",
        "environmentId": "env-test",
        "coinAmount": 12.3456,
        "currencyAmount": 0.1,
        "currency": "EUR",
        "description": "iPhone X",
        "data": '{"sessionId": "foobar"}',
        "paymentId": "8F3A64C1D2B7E09A5C3F1E2D4B6A8C0E",
        "qrCodeUrl": "https://test.dagpay.io/qr/5b0d4bb7c2d2a90011f5b7a4.png",
        "paymentUrl": "https://test.dagpay.io/invoice/5b0d4bb7c2d2a90011f5b7a4",
        "state": "PENDING",
        "createdDate": "2018-05-29T12:00:00.000Z",
        "updatedDate": "2018-05-29T12:00:05.000Z",
        "expiryDate": "2018-05-29T12:15:00.000Z",
        "validForSeconds": 900,
        "statusDelivered": False,
        "statusDeliveryAttempts": 1,
        "statusLastAttemptDate": "2018-05-29T12:00:05.000Z",
        "statusDeliveredDate": None,
        "date": "2018-05-29T12:00:05.120Z",
        "nonce": "0B1C2D3E4F5A6B7C8D9E0F1A2B3C4D5E",
    }


@pytest.fixture
def signed_status(sample_status: Dict[str, Any]) -> Callable[..., Dict[str, Any]]:
    """Factory: status payload signed with ``secret`` after applying overrides."""

    def make(secret: str = TEST_SECRET, **overrides: Any) -> Dict[str, Any]:
        payload = {**sample_status, **overrides}
        payload["signature"] = sign_status(payload, secret)
        return payload

    return make
