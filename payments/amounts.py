"""
PayPal amount formatting.

PayPal expects money as {"value": "<fixed point string>", "currency_code": "XXX"}
with a per-currency number of decimal places and a 32 character limit on the
value string.

https://developer.paypal.com/api/rest/reference/currency-codes/
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, localcontext
from types import MappingProxyType

from payments.exceptions import AmountTooLongError, UnsupportedCurrencyError
from payments.models import Money

MAX_VALUE_LENGTH = 32


@dataclass(frozen=True)
class CurrencyOptions:
    decimal: bool = True
    places: int = 2

    @property
    def precision(self) -> int:
        return self.places if self.decimal else 0


_DEFAULT = CurrencyOptions()

# PayPal's documentation wins over ISO-4217 where they disagree (HUF, TWD).
PAYPAL_CURRENCY_CODES = MappingProxyType(
    {
        "AUD": _DEFAULT,
        "BRL": _DEFAULT,
        "CAD": _DEFAULT,
        "CNY": _DEFAULT,
        "CZK": _DEFAULT,
        "DKK": _DEFAULT,
        "EUR": _DEFAULT,
        "HKD": _DEFAULT,
        "HUF": CurrencyOptions(decimal=False),
        "ILS": _DEFAULT,
        "JPY": CurrencyOptions(decimal=False),
        "MYR": _DEFAULT,
        "MXN": _DEFAULT,
        "TWD": CurrencyOptions(decimal=False),
        "NZD": _DEFAULT,
        "NOK": _DEFAULT,
        "PHP": _DEFAULT,
        "PLN": _DEFAULT,
        "GBP": _DEFAULT,
        "RUB": _DEFAULT,
        "SGD": _DEFAULT,
        "SEK": _DEFAULT,
        "CHF": _DEFAULT,
        "THB": _DEFAULT,
        "USD": _DEFAULT,
    }
)


def _to_decimal(amount) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, float):
        # str() keeps the shortest repr, so 0.1 stays 0.1 instead of its binary expansion
        return Decimal(str(amount))
    return Decimal(amount)


def convert_amount(amount, currency: str) -> Money:
    """
    Convert an amount to the format required by PayPal for the given currency.

    Args:
        amount: int, float, Decimal or numeric string
        currency: 3-letter ISO-4217 code, case-insensitive

    Returns:
        Money with the fixed-point value string and upper-cased currency code

    Raises:
        UnsupportedCurrencyError: currency is not in PAYPAL_CURRENCY_CODES
        AmountTooLongError: rendered value is longer than 32 characters

    Example:
        >>> convert_amount(10, "usd")
        Money(currency_code='USD', value='10.00')
    """
    currency_code = currency.upper()
    options = PAYPAL_CURRENCY_CODES.get(currency_code)
    if options is None:
        raise UnsupportedCurrencyError(currency)

    precision = options.precision
    number = _to_decimal(amount)
    with localcontext() as ctx:
        # enough digits for quantize to never overflow the context
        ctx.prec = max(ctx.prec, number.adjusted() + precision + 2)
        quantum = Decimal(1).scaleb(-precision)
        rounded = number.quantize(quantum, rounding=ROUND_HALF_UP)
        value = f"{rounded:.{precision}f}"

    if len(value) > MAX_VALUE_LENGTH:
        raise AmountTooLongError(value)

    return Money(currency_code=currency_code, value=value)
