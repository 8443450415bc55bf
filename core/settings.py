from typing import Any, Literal

from dotenv import load_dotenv
from pydantic import ConfigDict
from pydantic_settings import BaseSettings

# Load .env file automatically
load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # PayPal
    PAYPAL_CLIENT_ID: str | None = None
    PAYPAL_SECRET: str | None = None
    PAYPAL_SANDBOX: bool = True
    PAYPAL_CAPTURE: bool = False
    PAYPAL_AUTH_WEBHOOK_ID: str | None = None
    PAYPAL_TIMEOUT_SECONDS: float = 30.0

    # App settings
    APP_NAME: str = "PayPal Payment Provider"
    ENVIRONMENT: Literal["development", "test", "production"] = "development"

    model_config = ConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    def paypal_options(self) -> dict[str, Any]:
        """Raw provider options, to be checked by payments.options.validate_options."""
        return {
            "clientId": self.PAYPAL_CLIENT_ID,
            "clientSecret": self.PAYPAL_SECRET,
            "sandbox": self.PAYPAL_SANDBOX,
            "capture": self.PAYPAL_CAPTURE,
            "auth_webhook_id": self.PAYPAL_AUTH_WEBHOOK_ID,
            "timeout": self.PAYPAL_TIMEOUT_SECONDS,
        }
