# tests/test_microdata_extractor.py

"""Tests for tier 2 (microdata) extraction."""

import unittest
from decimal import Decimal

from bs4 import BeautifulSoup

from src.scrapers.microdata_extractor import extract_from_microdata


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")


class TestExtractFromMicrodata(unittest.TestCase):
    """itemscope/itemprop Product parsing."""

    def test_extracts_product(self) -> None:
        """Content attribute and link href are preferred."""
        soup = _soup("""
            <div itemscope itemtype="https://schema.org/Product">
              <h1 itemprop="name">Test Microdata Product</h1>
              <div itemprop="offers" itemscope
                   itemtype="https://schema.org/Offer">
                <span itemprop="price" content="25.99">$25.99</span>
                <link itemprop="availability"
                      href="https://schema.org/InStock">
              </div>
            </div>
        """)
        result = extract_from_microdata(soup)
        assert result is not None
        self.assertEqual(result.title, "Test Microdata Product")
        self.assertEqual(result.price, Decimal("25.99"))
        self.assertTrue(result.is_available)

    def test_price_from_text(self) -> None:
        """Without a content attribute the text is stripped and parsed."""
        soup = _soup("""
            <div itemscope itemtype="https://schema.org/Product">
              <h1 itemprop="name">Product Name</h1>
              <div itemprop="offers">
                <span itemprop="price">$15.50</span>
                <span itemprop="availability">InStock</span>
              </div>
            </div>
        """)
        result = extract_from_microdata(soup)
        assert result is not None
        self.assertEqual(result.price, Decimal("15.50"))
        self.assertTrue(result.is_available)

    def test_no_product_scope_returns_none(self) -> None:
        """No Product itemscope means no data."""
        self.assertIsNone(
            extract_from_microdata(_soup("<div>No microdata here</div>"))
        )

    def test_out_of_stock(self) -> None:
        """OutOfStock text maps to unavailable."""
        soup = _soup("""
            <div itemscope itemtype="https://schema.org/Product">
              <span itemprop="name">Out of Stock Product</span>
              <div itemprop="offers">
                <span itemprop="price">99.99</span>
                <span itemprop="availability">OutOfStock</span>
              </div>
            </div>
        """)
        result = extract_from_microdata(soup)
        assert result is not None
        self.assertEqual(result.title, "Out of Stock Product")
        self.assertEqual(result.price, Decimal("99.99"))
        self.assertFalse(result.is_available)

    def test_empty_product_scope_returns_none(self) -> None:
        """A Product scope with no usable properties yields no data."""
        soup = _soup("""
            <div itemscope itemtype="https://schema.org/Product">
              <p>Nothing labelled here</p>
            </div>
        """)
        self.assertIsNone(extract_from_microdata(soup))

    def test_title_only(self) -> None:
        """Missing offers leave price and availability unset."""
        soup = _soup("""
            <div itemscope itemtype="http://schema.org/Product">
              <span itemprop="name">Just a name</span>
            </div>
        """)
        result = extract_from_microdata(soup)
        assert result is not None
        self.assertEqual(result.title, "Just a name")
        self.assertIsNone(result.price)
        self.assertIsNone(result.is_available)


if __name__ == "__main__":
    unittest.main()
