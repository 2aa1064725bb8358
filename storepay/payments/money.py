"""Currency amount helpers. Gateways that speak minor units go through to_minor_units."""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

# ISO 4217 currencies without a minor unit (Stripe sends these as-is)
ZERO_DECIMAL_CURRENCIES = frozenset({
    "BIF", "CLP", "DJF", "GNF", "JPY", "KMF", "KRW", "MGA",
    "PYG", "RWF", "UGX", "VND", "VUV", "XAF", "XOF", "XPF",
})

_TWO_PLACES = Decimal("0.01")


def as_decimal(amount: Union[Decimal, int, float, str]) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    # float goes through str so 19.99 stays 19.99
    return Decimal(str(amount))


def to_minor_units(amount: Union[Decimal, int, float, str], currency: str = "INR") -> int:
    """Convert a major-unit amount (rupees) to minor units (paise), rounding half up."""
    value = as_decimal(amount)
    if currency.upper() in ZERO_DECIMAL_CURRENCIES:
        return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return int((value.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP) * 100).to_integral_value())


def format_major(amount: Union[Decimal, int, float, str]) -> str:
    """Two-decimal string, e.g. '100.00', as PayU, Paytm and Cashfree expect."""
    return str(as_decimal(amount).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))
