"""
Money helpers.

All ledger arithmetic is done in Decimal and rounded to the minor unit
of the currency (cents for USD, whole yen for JPY).
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from splitledger.config import get_settings


# ISO 4217 decimal places for the currencies we see in practice.
# Anything not listed falls back to 2.
MINOR_UNITS: dict[str, int] = {
    "USD": 2,
    "EUR": 2,
    "GBP": 2,
    "INR": 2,
    "CAD": 2,
    "AUD": 2,
    "CHF": 2,
    "CNY": 2,
    "JPY": 0,
    "KRW": 0,
    "VND": 0,
    "BHD": 3,
    "KWD": 3,
    "OMR": 3,
}

CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "INR": "₹",
    "JPY": "¥",
}

ZERO = Decimal("0")

Number = Union[Decimal, int, float, str]


def decimal_places(currency: str) -> int:
    """Number of decimal places used by a currency."""
    code = currency.upper()
    overrides = get_settings().ledger.minor_unit_overrides
    if code in overrides:
        return overrides[code]
    return MINOR_UNITS.get(code, 2)


def minor_unit(currency: str) -> Decimal:
    """Smallest representable amount, e.g. Decimal('0.01') for USD."""
    return Decimal(1).scaleb(-decimal_places(currency))


def to_decimal(value: Number) -> Decimal:
    """
    Convert user input to Decimal.

    Floats go through str() so 0.1 becomes Decimal('0.1') and not
    the binary approximation.
    """
    if isinstance(value, Decimal):
        return value
    try:
        if isinstance(value, float):
            return Decimal(str(value))
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise ValueError(f"Not a valid amount: {value!r}") from e


def quantize(amount: Number, currency: str) -> Decimal:
    """Round half-up to the currency's minor unit."""
    return to_decimal(amount).quantize(minor_unit(currency), rounding=ROUND_HALF_UP)


def format_amount(amount: Number, currency: str) -> str:
    """Human-readable amount, e.g. '$1,234.50'."""
    value = quantize(amount, currency)
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    places = decimal_places(currency)
    body = f"{abs(value):,.{places}f}"
    sign = "-" if value < 0 else ""
    if symbol:
        return f"{sign}{symbol}{body}"
    return f"{sign}{body} {currency.upper()}"
