"""
Prometheus metrics for the PayPal provider service.

Counters are updated by the provider itself; init_metrics exposes them
together with the HTTP metrics at /metrics.
"""

from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator

provider_errors = Counter(
    "paypal_provider_errors_total",
    "Provider operations that ended in a PaymentProviderError",
    ["code"],
)

webhook_actions = Counter(
    "paypal_webhook_actions_total",
    "Webhooks interpreted, by resulting host action",
    ["action"],
)


def init_metrics(app):
    """
    Initialize Prometheus metrics instrumentation for the FastAPI app.

    Args:
        app: FastAPI application instance

    Returns:
        Instrumentator instance
    """
    inst = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
    )
    inst.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)
    return inst
