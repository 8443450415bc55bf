"""
PayPal Order Models

Pydantic models for the parts of a PayPal Orders v2 payload the provider
reads, plus the result and error shapes it hands back to the host. Unknown
fields are kept so a snapshot round-trips unchanged through the host's
storage.
"""

from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PaypalOrderStatus(str, Enum):
    CREATED = "CREATED"
    SAVED = "SAVED"
    APPROVED = "APPROVED"
    PAYER_ACTION_REQUIRED = "PAYER_ACTION_REQUIRED"
    VOIDED = "VOIDED"
    COMPLETED = "COMPLETED"


class PaymentSessionStatus(str, Enum):
    PENDING = "pending"
    REQUIRES_MORE = "requires_more"
    AUTHORIZED = "authorized"
    CAPTURED = "captured"
    CANCELED = "canceled"
    ERROR = "error"


class PaymentAction(str, Enum):
    AUTHORIZED = "authorized"
    SUCCESSFUL = "captured"
    FAILED = "failed"
    NOT_SUPPORTED = "not_supported"


class Money(BaseModel):
    currency_code: str
    value: str

    model_config = ConfigDict(extra="allow")


class Link(BaseModel):
    href: str | None = None
    rel: str | None = None
    method: str | None = None


class PaymentReference(BaseModel):
    """An authorization, capture or refund attached to a purchase unit."""

    id: str
    status: str | None = None
    amount: Money | None = None
    links: list[Link] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")


class Payments(BaseModel):
    authorizations: list[PaymentReference] = Field(default_factory=list)
    captures: list[PaymentReference] = Field(default_factory=list)
    refunds: list[PaymentReference] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")


class PurchaseUnit(BaseModel):
    reference_id: str | None = None
    custom_id: str | None = None  # host payment session id
    invoice_id: str | None = None
    amount: Money | None = None
    payments: Payments = Field(default_factory=Payments)

    model_config = ConfigDict(extra="allow")


class PaypalOrder(BaseModel):
    id: str | None = None
    status: str | None = None
    intent: str | None = None
    invoice_id: str | None = None
    purchase_units: list[PurchaseUnit] = Field(default_factory=list)
    links: list[Link] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")

    @property
    def is_captured(self) -> bool:
        return any(pu.payments.captures for pu in self.purchase_units)


class PaymentProviderError(BaseModel):
    """The single error shape returned by every failing provider operation."""

    error: str
    code: str = "unknown"
    detail: str = ""


class PaymentSessionResponse(BaseModel):
    data: PaypalOrder


class AuthorizePaymentResult(BaseModel):
    status: PaymentSessionStatus
    data: PaypalOrder


class WebhookActionData(BaseModel):
    amount: Decimal
    session_id: str


class WebhookActionResult(BaseModel):
    action: PaymentAction
    data: WebhookActionData | None = None


SessionData = PaypalOrder | dict[str, Any]
