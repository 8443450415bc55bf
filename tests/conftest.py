"""Test configuration and fixtures."""

import os
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from core.dependencies import get_provider
from payments.paypal_client import PayPalClient
from payments.paypal_provider import create_provider

TEST_ENV = {
    "PAYPAL_CLIENT_ID": "test_client_id",
    "PAYPAL_SECRET": "test_secret",
    "PAYPAL_SANDBOX": "true",
    "PAYPAL_CAPTURE": "false",
    "PAYPAL_AUTH_WEBHOOK_ID": "WH-TEST",
    "APP_NAME": "Test Provider",
    "ENVIRONMENT": "development",
}


def make_order(
    status="CREATED",
    order_id="ORDER-1",
    authorizations=("AUTH-1",),
    captures=(),
    currency="USD",
    value="10.00",
    invoice_id=None,
    custom_id="sess_1",
):
    """Build a PayPal order payload the way the Orders API returns it."""
    order = {
        "id": order_id,
        "status": status,
        "intent": "AUTHORIZE",
        "purchase_units": [
            {
                "reference_id": "default",
                "custom_id": custom_id,
                "amount": {"currency_code": currency, "value": value},
                "payments": {
                    "authorizations": [
                        {"id": auth_id, "status": "CREATED"}
                        for auth_id in authorizations
                    ],
                    "captures": [
                        {"id": cap_id, "status": "COMPLETED"} for cap_id in captures
                    ],
                },
            }
        ],
        "links": [
            {
                "href": f"https://api-m.sandbox.paypal.com/v2/checkout/orders/{order_id}",
                "rel": "self",
                "method": "GET",
            }
        ],
    }
    if invoice_id:
        order["invoice_id"] = invoice_id
    return order


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Setup test environment variables before each test."""
    original_env = dict(os.environ)
    os.environ.update(TEST_ENV)

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def paypal_api():
    """PayPal capability set with every remote call mocked."""
    api = MagicMock(spec=PayPalClient)
    api.get_order.return_value = make_order()
    api.create_order.return_value = make_order()
    api.patch_order.return_value = None
    api.capture_authorized_payment.return_value = {"id": "CAP-1"}
    api.cancel_authorized_payment.return_value = None
    api.refund_payment.return_value = {"id": "REF-1", "status": "COMPLETED"}
    api.get_authorization_payment.return_value = {"id": "AUTH-1", "status": "CREATED"}
    api.verify_webhook.return_value = True
    return api


@pytest.fixture
def provider_options():
    return {
        "clientId": "test_client_id",
        "clientSecret": "test_secret",
        "sandbox": True,
        "capture": False,
        "auth_webhook_id": "WH-TEST",
    }


@pytest.fixture
def provider(provider_options, paypal_api):
    return create_provider(provider_options, client=paypal_api)


@pytest.fixture
def capture_provider(provider_options, paypal_api):
    return create_provider({**provider_options, "capture": True}, client=paypal_api)


@pytest.fixture
def client(provider):
    """Test client whose provider talks to the mocked PayPal API."""
    from main import app

    with TestClient(app) as test_client:
        app.dependency_overrides[get_provider] = lambda: provider
        yield test_client
    app.dependency_overrides.clear()
