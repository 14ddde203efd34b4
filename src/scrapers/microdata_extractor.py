# src/scrapers/microdata_extractor.py

"""Tier 2: schema.org Product microdata (itemscope/itemprop attributes)."""

import logging

from bs4 import BeautifulSoup, Tag

from src.models.scraped_data import ExtractedFields
from src.scrapers.price_parsing import parse_price

logger = logging.getLogger("price_watch.extract")


def _attr(element: Tag, name: str) -> str:
    """Read a single attribute as a string (empty when absent)."""
    value = element.get(name)
    if isinstance(value, list):
        return " ".join(value)
    return value or ""


def extract_from_microdata(
    soup: BeautifulSoup,
) -> ExtractedFields | None:
    """Extract fields from the first Product-scoped element, or None."""
    try:
        scope = soup.select_one('[itemscope][itemtype*="Product"]')
        if scope is None:
            return None

        fields = ExtractedFields()

        name_el = scope.select_one('[itemprop="name"]')
        if name_el is not None:
            title = name_el.get_text().strip()
            if title:
                fields.title = title

        offers_el = scope.select_one('[itemprop="offers"]')
        if offers_el is not None:
            price_el = offers_el.select_one('[itemprop="price"]')
            if price_el is not None:
                # Machine-readable content wins over display text
                raw = _attr(price_el, "content") or price_el.get_text()
                fields.price = parse_price(raw)

            avail_el = offers_el.select_one(
                '[itemprop="availability"]'
            )
            if avail_el is not None:
                availability = (
                    _attr(avail_el, "href")
                    or _attr(avail_el, "content")
                    or avail_el.get_text()
                ).lower()
                fields.is_available = (
                    "instock" in availability
                    or "available" in availability
                )

        return None if fields.is_empty() else fields
    except Exception as exc:
        logger.debug(
            "Microdata extraction failed: %s", exc, exc_info=True,
        )
        return None
