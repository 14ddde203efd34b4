# src/scrapers/listing_scraper.py

"""Fetch a listing page and merge the three extraction tiers."""

import logging
from collections.abc import Callable

from bs4 import BeautifulSoup

from src.models.scraped_data import ExtractedFields, ScrapedData
from src.scrapers.fetcher import PageFetcher
from src.scrapers.heuristic_extractor import extract_from_heuristics
from src.scrapers.ld_json_extractor import extract_from_ld_json
from src.scrapers.microdata_extractor import extract_from_microdata

logger = logging.getLogger("price_watch.extract")

Extractor = Callable[[BeautifulSoup], ExtractedFields | None]

# Highest priority first
EXTRACTION_TIERS: list[tuple[str, Extractor]] = [
    ("ld_json", extract_from_ld_json),
    ("microdata", extract_from_microdata),
    ("heuristics", extract_from_heuristics),
]


def _is_complete(merged: ExtractedFields) -> bool:
    return (
        bool(merged.title)
        and merged.price is not None
        and merged.is_available is not None
    )


def merge_extracted(
    merged: ExtractedFields, extracted: ExtractedFields,
) -> None:
    """Fill fields of *merged* that are still unresolved, in place."""
    if not merged.title and extracted.title:
        merged.title = extracted.title
    if merged.price is None and extracted.price is not None:
        merged.price = extracted.price
    if merged.is_available is None and extracted.is_available is not None:
        merged.is_available = extracted.is_available


def extract_listing_data(
    html: str | bytes,
    tiers: list[tuple[str, Extractor]] | None = None,
) -> ScrapedData:
    """Parse *html* once and merge tiers field by field.

    A lower tier never overwrites a field already filled by a higher
    one.  Tiers keep running while any field is unresolved.
    """
    soup = BeautifulSoup(html, "lxml")
    merged = ExtractedFields()

    for name, extractor in tiers or EXTRACTION_TIERS:
        if _is_complete(merged):
            break
        extracted = extractor(soup)
        if extracted is None:
            logger.debug("Tier %s found nothing", name)
            continue
        logger.debug("Tier %s found %s", name, extracted)
        merge_extracted(merged, extracted)

    return ScrapedData(
        title=merged.title or "",
        price=merged.price,
        is_available=bool(merged.is_available),
    )


def scrape_listing_data(
    url: str, fetcher: PageFetcher | None = None,
) -> ScrapedData:
    """Fetch *url* and extract its normalized listing record.

    Raises:
        FetchError: the page could not be retrieved.
    """
    page = (fetcher or PageFetcher()).fetch(url)
    data = extract_listing_data(page.body)
    logger.info(
        "Scraped %s: title=%r price=%s available=%s",
        url,
        data.title[:60],
        data.price,
        data.is_available,
    )
    return data
