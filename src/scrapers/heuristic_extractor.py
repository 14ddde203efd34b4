# src/scrapers/heuristic_extractor.py

"""Tier 3: best-effort extraction from visible text and common selectors.

Used when a page carries no structured product data, or only part of
it.  Nothing here relies on a specific site's markup; the selector
lists cover the class and test-attribute names that storefront themes
commonly use.
"""

import logging
import re
from decimal import Decimal, InvalidOperation

from bs4 import (
    BeautifulSoup,
    CData,
    Comment,
    Declaration,
    Doctype,
    NavigableString,
    ProcessingInstruction,
    Tag,
)

from src.models.scraped_data import ExtractedFields

logger = logging.getLogger("price_watch.extract")

TITLE_SELECTORS: list[str] = [
    "h1",
    "h1.title",
    "h1.product-title",
    "h1.product-name",
    ".product-title",
    ".product-name",
    ".title",
    '[data-testid*="title"]',
    '[data-cy*="title"]',
]

PRICE_SELECTORS: list[str] = [
    ".price",
    ".product-price",
    ".current-price",
    ".sale-price",
    '[class*="price"]',
    '[data-testid*="price"]',
    '[data-cy*="price"]',
    ".cost",
    ".amount",
    ".value",
]

AVAILABILITY_SELECTORS: list[str] = [
    ".availability",
    ".stock-status",
    ".inventory-status",
    '[class*="stock"]',
    '[class*="availability"]',
    '[class*="inventory"]',
    '[data-testid*="stock"]',
    '[data-testid*="availability"]',
]

IN_STOCK_KEYWORDS: tuple[str, ...] = (
    "in stock",
    "available",
    "limited stock",
    "low stock",
    "back in stock",
)
OUT_OF_STOCK_KEYWORDS: tuple[str, ...] = (
    "out of stock",
    "unavailable",
    "sold out",
)
AVAILABILITY_KEYWORDS: tuple[str, ...] = (
    IN_STOCK_KEYWORDS + OUT_OF_STOCK_KEYWORDS
)

# Currency symbol before or after the amount: "$49.99", "75,000.00 ¥"
HEURISTIC_PRICE_RE = re.compile(
    r"[$£€¥₹]\s*([0-9,]+\.?[0-9]*)|([0-9,]+\.?[0-9]*)\s*[$£€¥₹]"
)

_MIN_TITLE_LENGTH = 3

_NON_VISIBLE_TAGS: frozenset[str] = frozenset({
    "script", "style", "noscript", "template",
})

# Markup nodes that are strings to bs4 but never rendered as text
_NON_TEXT_STRINGS = (
    Comment, CData, Declaration, Doctype, ProcessingInstruction,
)


def match_price(text: str) -> Decimal | None:
    """Return the first positive currency-adjacent amount in *text*."""
    for match in HEURISTIC_PRICE_RE.finditer(text):
        raw = (match.group(1) or match.group(2)).replace(",", "")
        try:
            value = Decimal(raw)
        except InvalidOperation:
            continue
        if value > 0:
            return value
    return None


def _body_text(soup: BeautifulSoup) -> str:
    """Visible text of the document body.

    Script, style and template contents are excluded, as are comments
    and other markup-level strings.
    """
    root: Tag = soup.body or soup
    parts = [
        str(s)
        for s in root.find_all(string=True)
        if isinstance(s, NavigableString)
        and not isinstance(s, _NON_TEXT_STRINGS)
        and (s.parent is None or s.parent.name not in _NON_VISIBLE_TAGS)
    ]
    return " ".join(parts)


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str:
    """Return the stripped ``content`` of the first matching meta tag."""
    tag = soup.find("meta", attrs=attrs)
    if not isinstance(tag, Tag):
        return ""
    content = tag.get("content")
    return content.strip() if isinstance(content, str) else ""


def _extract_title(soup: BeautifulSoup) -> str:
    for selector in TITLE_SELECTORS:
        element = soup.select_one(selector)
        if element is None:
            continue
        text = element.get_text().strip()
        if len(text) > _MIN_TITLE_LENGTH:
            return text

    title = (
        _meta_content(soup, property="og:title")
        or _meta_content(soup, name="title")
    )
    if title:
        return title
    title_tag = soup.find("title")
    return title_tag.get_text().strip() if title_tag else ""


def _extract_price(
    soup: BeautifulSoup, body_text: str,
) -> Decimal | None:
    for selector in PRICE_SELECTORS:
        for element in soup.select(selector):
            price = match_price(element.get_text().strip())
            if price is not None:
                return price
    # Nothing under a price-like selector: scan the whole page
    return match_price(body_text)


def _has_keyword(text: str) -> bool:
    return any(k in text for k in AVAILABILITY_KEYWORDS)


def classify_availability(text: str) -> bool:
    """In stock when an in-stock keyword matches and no out-of-stock one."""
    lowered = text.lower()
    return (
        any(k in lowered for k in IN_STOCK_KEYWORDS)
        and not any(k in lowered for k in OUT_OF_STOCK_KEYWORDS)
    )


def _availability_evidence(
    soup: BeautifulSoup, body_text: str,
) -> str:
    """Text to classify for stock, or an empty string when there is none.

    The first stock-status element with any text wins, keywords or not.
    Only without one is the body searched for vocabulary keywords.
    """
    for selector in AVAILABILITY_SELECTORS:
        element = soup.select_one(selector)
        if element is None:
            continue
        text = element.get_text().lower().strip()
        if text:
            return text

    lowered_body = body_text.lower()
    if _has_keyword(lowered_body):
        return lowered_body
    return ""


def extract_from_heuristics(
    soup: BeautifulSoup,
) -> ExtractedFields | None:
    """Best-effort title, price and availability, or None if nothing found.

    When the page has no stock-status text and no stock keywords, a
    priced item is assumed to be available; without a price
    availability stays unset.
    """
    try:
        body_text = _body_text(soup)
        fields = ExtractedFields()

        title = _extract_title(soup)
        if title:
            fields.title = title

        fields.price = _extract_price(soup, body_text)

        evidence = _availability_evidence(soup, body_text)
        if evidence:
            fields.is_available = classify_availability(evidence)
        elif fields.price is not None:
            fields.is_available = True

        return None if fields.is_empty() else fields
    except Exception as exc:
        logger.debug(
            "Heuristic extraction failed: %s", exc, exc_info=True,
        )
        return None
