"""Test the metrics module."""

from unittest.mock import MagicMock, patch

import pytest
from conftest import make_order

from core.metrics import init_metrics, provider_errors, webhook_actions
from payments.exceptions import RemoteCallError


def test_provider_errors_counter_with_labels():
    metric = provider_errors.labels(code="UNPROCESSABLE_ENTITY")
    initial = metric._value._value
    metric.inc()
    assert metric._value._value == initial + 1


@pytest.mark.asyncio
async def test_failed_operation_increments_error_counter(provider, paypal_api):
    paypal_api.capture_authorized_payment.side_effect = RemoteCallError(
        "Already captured", code="AUTHORIZATION_ALREADY_CAPTURED"
    )
    metric = provider_errors.labels(code="AUTHORIZATION_ALREADY_CAPTURED")
    initial = metric._value._value

    await provider.capture_payment(make_order())

    assert metric._value._value == initial + 1


@pytest.mark.asyncio
async def test_authorize_status_failure_counted_once(provider, paypal_api):
    paypal_api.get_order.side_effect = RemoteCallError("boom", code="AUTHORIZE_TIMEOUT")
    metric = provider_errors.labels(code="AUTHORIZE_TIMEOUT")
    initial = metric._value._value

    with patch("payments.paypal_provider.log") as mock_log:
        result = await provider.authorize_payment(make_order())

    assert result.error == "An error occurred in authorize_payment"
    assert metric._value._value == initial + 1
    mock_log.error.assert_called_once()


@pytest.mark.asyncio
async def test_webhook_action_counter(provider):
    metric = webhook_actions.labels(action="captured")
    initial = metric._value._value

    await provider.get_webhook_action_and_data(
        {"event": "succeeded", "data": make_order(captures=("CAP-1",))}
    )

    assert metric._value._value == initial + 1


def test_metrics_naming_convention():
    assert provider_errors._name == "paypal_provider_errors"
    assert webhook_actions._name == "paypal_webhook_actions"


def test_init_metrics_with_app():
    """Test metrics initialization with FastAPI app."""
    mock_app = MagicMock()

    with patch("core.metrics.Instrumentator") as mock_instrumentator:
        mock_inst = MagicMock()
        mock_instrumentator.return_value = mock_inst
        mock_inst.instrument.return_value = mock_inst
        mock_inst.expose.return_value = mock_inst

        result = init_metrics(mock_app)

        mock_instrumentator.assert_called_once()
        mock_inst.instrument.assert_called_with(mock_app)
        mock_inst.expose.assert_called_with(
            mock_app, endpoint="/metrics", include_in_schema=False
        )
        assert result == mock_inst


def test_metrics_export():
    from prometheus_client import generate_latest

    result = generate_latest()

    assert isinstance(result, bytes)
    assert b"paypal_provider_errors_total" in result
