"""Currency helpers for XAF (Central African CFA franc)."""

import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

CURRENCY_SYMBOL = "FCFA"
CURRENCY_CODE = "XAF"

# French grouping uses a narrow no-break space
THOUSANDS_SEPARATOR = "\u202f"

_CURRENCY_MARKERS = re.compile(r"FCFA|XAF|F\s*CFA", re.IGNORECASE)
_LEADING_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

Amount = Union[int, float, Decimal]


def _format_whole(amount: Amount) -> str:
    rounded = Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    value = int(rounded)
    sign = "-" if value < 0 else ""
    return sign + f"{abs(value):,}".replace(",", THOUSANDS_SEPARATOR)


def format_xaf(amount: Amount, show_symbol: bool = True) -> str:
    """
    Format an amount in whole francs.

    Args:
        amount: Amount in XAF
        show_symbol: Append the FCFA symbol

    Returns:
        e.g. "50 000 FCFA", or "50 000" without the symbol
    """
    formatted = _format_whole(amount)
    if show_symbol:
        return f"{formatted} {CURRENCY_SYMBOL}"
    return formatted


def format_xaf_with_symbol(amount: Amount) -> str:
    """Format an amount with the ISO code, e.g. "50 000 XAF"."""
    return f"{_format_whole(amount)} {CURRENCY_CODE}"


def parse_xaf(currency_string: str) -> float:
    """Parse a formatted amount back to a number. Unparseable input gives 0."""
    cleaned = _CURRENCY_MARKERS.sub("", currency_string)
    cleaned = re.sub(r"\s", "", cleaned).replace(",", "")
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return 0.0
    return float(match.group(0))
