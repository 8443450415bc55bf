"""
PayPal Payment Provider - Application Entry Point

This module builds the FastAPI application that hosts the PayPal payment
provider: it loads settings, constructs the provider once at startup and
exposes the PayPal webhook receiver alongside health and metrics endpoints.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from api import webhooks
from api.middleware import log_api_entry
from core.dependencies import clear_settings, get_settings, init_provider, init_settings
from core.logging import configure_logging
from core.metrics import init_metrics
from core.settings import Settings

log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI application startup and shutdown events."""
    # Startup
    init_settings()
    # Missing credentials abort startup
    init_provider()
    log.info("app.started", environment=get_settings().ENVIRONMENT)

    yield
    # Shutdown
    clear_settings()


app = FastAPI(
    title="PayPal Payment Provider",
    description="Payment-session lifecycle adapter over the PayPal Orders API.",
    version="1.0.0",
    lifespan=lifespan,
)

# Initialize Prometheus metrics
init_metrics(app)

# Add logging middleware
app.middleware("http")(log_api_entry)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    return JSONResponse(
        status_code=500,
        content={"detail": str(exc)},
    )


@app.get("/healthz")
async def health_check(settings: Settings = Depends(get_settings)):
    """Health check endpoint to verify API status."""
    return {
        "status": "ok",
        "app_name": settings.APP_NAME,
        "paypal_mode": "sandbox" if settings.PAYPAL_SANDBOX else "live",
        "environment": settings.ENVIRONMENT,
    }


API_PREFIX = "/api/v1"

app.include_router(webhooks.router, prefix=API_PREFIX)


def main():
    configure_logging()
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
