"""Shared utilities used across the storefront booking core."""

from datetime import datetime, timezone
from typing import Union

CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}


def parse_utc_instant(value: Union[str, datetime]) -> datetime:
    """Parse an ISO-8601 instant into an aware UTC datetime.

    Accepts a trailing ``Z``. Naive values are taken to be UTC, which is
    what the API always sends.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_price(price_minor: int, currency: str = "ALL") -> str:
    """Format an amount in minor currency units for display.

    Whole amounts drop the fraction digits.

    Examples:
        >>> format_price(1500, "USD")
        '$15'
        >>> format_price(1550, "USD")
        '$15.50'
        >>> format_price(150000, "ALL")
        'ALL 1,500'
    """
    major, minor = divmod(abs(price_minor), 100)
    amount = f"{major:,}" if minor == 0 else f"{major:,}.{minor:02d}"
    sign = "-" if price_minor < 0 else ""
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol:
        return f"{sign}{symbol}{amount}"
    return f"{sign}{currency.upper()} {amount}"
