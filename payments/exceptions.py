"""
PayPal Provider Exceptions

Every failure the adapter can produce is one of these. Only
ConfigurationError escapes the provider; the rest are converted into a
PaymentProviderError at the operation boundary.
"""

import os


class PayPalError(Exception):
    code = "unknown"

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail if detail is not None else message


class ConfigurationError(PayPalError):
    code = "configuration_error"

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(
            "Invalid PayPal provider configuration", detail=os.linesep.join(errors)
        )


class UnsupportedCurrencyError(PayPalError):
    code = "unsupported_currency"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Currency {currency} is not supported by Paypal")


class AmountTooLongError(PayPalError):
    code = "amount_too_long"

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Amount string exceeds 32 character limit: {value}")


class UncapturedRefundError(PayPalError):
    code = "uncaptured_refund"

    def __init__(self):
        super().__init__("Cannot refund an uncaptured payment")


class InvalidDataUpdateError(PayPalError):
    code = "invalid_data"

    def __init__(self):
        super().__init__("Cannot update amount, use update_payment instead")


class MultiplePurchaseUnitsError(PayPalError):
    code = "multiple_purchase_units"

    def __init__(self, count: int):
        self.count = count
        super().__init__(
            f"Orders with {count} purchase units are not supported, expected one"
        )


class MissingPaymentError(PayPalError):
    """Raised when the order carries no order id, authorization or capture to act on."""

    code = "missing_payment"


class RemoteCallError(PayPalError):
    """
    A failed call against the PayPal REST API.

    Carries the provider-shaped triple (error, code, detail) so it can be
    nested by build_error like any other provider error.
    """

    def __init__(
        self,
        error: str,
        code: str | None = None,
        detail: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(error, detail=detail or "")
        self.error = error
        self.code = code or "unknown"
        self.status_code = status_code

    @classmethod
    def from_response(cls, response) -> "RemoteCallError":
        """Build an error from a PayPal error body (name, message, details[])."""
        try:
            body = response.json() or {}
        except ValueError:
            body = {}

        details = [
            ": ".join(filter(None, [d.get("issue"), d.get("description")]))
            for d in body.get("details") or []
        ]
        if body.get("debug_id"):
            details.append(f"debug_id: {body['debug_id']}")

        return cls(
            body.get("message")
            or body.get("error_description")
            or f"PayPal request failed with status {response.status_code}",
            code=body.get("name") or body.get("error") or str(response.status_code),
            detail=os.linesep.join(details) or response.text,
            status_code=response.status_code,
        )
