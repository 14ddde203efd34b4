# src/scrapers/ld_json_extractor.py

"""Tier 1: schema.org Product data embedded as JSON-LD script blocks."""

import json
import logging
from collections.abc import Iterator
from typing import Any

from bs4 import BeautifulSoup

from src.models.scraped_data import ExtractedFields
from src.scrapers.price_parsing import parse_price

logger = logging.getLogger("price_watch.extract")

_PRODUCT_TYPES: frozenset[str] = frozenset({
    "product",
    "schema:product",
    "http://schema.org/product",
    "https://schema.org/product",
})


def _is_product(item: dict[str, Any]) -> bool:
    """Check whether a JSON-LD node declares the Product type."""
    declared: Any = item.get("@type")
    types = declared if isinstance(declared, list) else [declared]
    return any(
        isinstance(t, str) and t.strip().lower() in _PRODUCT_TYPES
        for t in types
    )


def _iter_nodes(data: Any) -> Iterator[dict[str, Any]]:
    """Yield top-level nodes, descending into ``@graph`` containers."""
    items: list[Any] = data if isinstance(data, list) else [data]
    for item in items:
        if not isinstance(item, dict):
            continue
        node: dict[str, Any] = item
        yield node
        graph: Any = node.get("@graph")
        if isinstance(graph, list):
            yield from _iter_nodes(graph)


def _first_offer(offers: Any) -> dict[str, Any] | None:
    """Return the first listed offer, if any."""
    if isinstance(offers, list):
        offers = offers[0] if offers else None
    return offers if isinstance(offers, dict) else None


def _product_fields(product: dict[str, Any]) -> ExtractedFields:
    """Pull title, price and availability out of one Product node."""
    fields = ExtractedFields()

    name: Any = product.get("name")
    if isinstance(name, str) and name.strip():
        fields.title = name.strip()

    offer = _first_offer(product.get("offers"))
    if offer is None:
        return fields

    # AggregateOffer carries lowPrice instead of price
    raw_price: Any = offer.get("price") or offer.get("lowPrice")
    if raw_price:
        fields.price = parse_price(raw_price)

    availability: Any = offer.get("availability")
    if isinstance(availability, str) and availability:
        lowered = availability.lower()
        fields.is_available = (
            "instock" in lowered or "available" in lowered
        )
    return fields


def extract_from_ld_json(
    soup: BeautifulSoup,
) -> ExtractedFields | None:
    """Return the first embedded Product's fields, or None.

    Blocks that are not valid JSON are skipped.  Data is never merged
    across multiple products or script blocks.
    """
    try:
        scripts = soup.find_all(
            "script", attrs={"type": "application/ld+json"}
        )
        for script in scripts:
            json_text = script.get_text()
            if not json_text or not json_text.strip():
                continue
            try:
                data: Any = json.loads(json_text)
            except ValueError:
                logger.debug("Skipping malformed JSON-LD block")
                continue

            for node in _iter_nodes(data):
                if not _is_product(node):
                    continue
                fields = _product_fields(node)
                if not fields.is_empty():
                    return fields
        return None
    except Exception as exc:
        logger.debug(
            "JSON-LD extraction failed: %s", exc, exc_info=True,
        )
        return None
