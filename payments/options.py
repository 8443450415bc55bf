from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

REQUIRED_OPTIONS = {"client_id": "clientId", "client_secret": "clientSecret"}


class PayPalOptions(BaseModel):
    """Provider options, accepted in either camelCase or snake_case."""

    client_id: str | None = Field(default=None, alias="clientId")
    client_secret: str | None = Field(default=None, alias="clientSecret")
    sandbox: bool = True
    capture: bool = False
    auth_webhook_id: str | None = None
    # older configuration spelling
    auth_webhook_id_legacy: str | None = Field(default=None, alias="authWebhookId")
    timeout: float = 30.0

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    @property
    def webhook_id(self) -> str | None:
        return self.auth_webhook_id or self.auth_webhook_id_legacy or None

    @property
    def intent(self) -> str:
        return "CAPTURE" if self.capture else "AUTHORIZE"


@dataclass
class OptionsResult:
    options: PayPalOptions | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.options is not None and not self.errors


def validate_options(raw: Mapping[str, Any] | PayPalOptions) -> OptionsResult:
    """
    Build PayPalOptions from a raw mapping.

    Returns an OptionsResult carrying either the options or the list of
    problems found (missing required fields, invalid values). Never raises.
    """
    if isinstance(raw, PayPalOptions):
        options = raw
    else:
        try:
            options = PayPalOptions.model_validate(dict(raw))
        except ValidationError as e:
            return OptionsResult(
                errors=[
                    f"Invalid option `{'.'.join(map(str, err['loc']))}`: {err['msg']}"
                    for err in e.errors()
                ]
            )

    errors = [
        f"Required option `{alias}` is missing in PayPal provider"
        for name, alias in REQUIRED_OPTIONS.items()
        if not getattr(options, name)
    ]
    if errors:
        return OptionsResult(errors=errors)
    return OptionsResult(options=options)
