from core.settings import Settings
from payments.paypal_provider import PayPalProvider, create_provider

# Settings singleton
_settings = None
# Provider singleton, built from settings at startup
_provider = None


def get_settings() -> Settings:
    """Dependency that provides application settings."""
    assert (
        _settings is not None
    ), "Settings not initialized. Make sure startup() was called."
    return _settings


def get_provider() -> PayPalProvider:
    """Dependency that provides the PayPal provider."""
    assert (
        _provider is not None
    ), "Provider not initialized. Make sure startup() was called."
    return _provider


def init_settings():
    """Initialize settings singleton."""
    global _settings
    _settings = Settings()


def init_provider():
    """
    Initialize the provider singleton from settings.

    Raises ConfigurationError when PayPal credentials are missing.
    """
    global _provider
    _provider = create_provider(get_settings().paypal_options())


def clear_settings():
    """Clear settings and provider singletons."""
    global _settings, _provider
    _settings = None
    _provider = None
