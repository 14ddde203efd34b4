# src/models/scraped_data.py

"""Transient extraction records produced during one scrape cycle."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass
class ExtractedFields:
    """Partial record from a single extraction tier.

    Every field is independently optional; ``None`` means the tier
    did not find it.
    """

    title: str | None = None
    price: Decimal | None = None
    is_available: bool | None = None

    def is_empty(self) -> bool:
        """Return True when the tier found nothing at all."""
        return (
            not self.title
            and self.price is None
            and self.is_available is None
        )


@dataclass
class ScrapedData:
    """Normalized record merged from all extraction tiers."""

    title: str = ""
    price: Decimal | None = None
    is_available: bool = False
