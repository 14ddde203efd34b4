# src/scrapers/price_parsing.py

"""Shared price parsing for the extraction tiers."""

import re
from decimal import Decimal, InvalidOperation

_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]+")


def parse_price(value: object) -> Decimal | None:
    """Parse a price from a number or a string like ``'$1,299.00'``.

    Everything except digits, dots and minus signs is stripped before
    parsing, so thousands separators and currency text are ignored.
    Returns ``None`` when nothing numeric remains.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        text = str(value)
    else:
        text = _NON_NUMERIC_RE.sub("", str(value))
    if not text:
        return None
    try:
        price = Decimal(text)
    except InvalidOperation:
        return None
    if not price.is_finite():
        return None
    return price
