# tests/test_heuristic_extractor.py

"""Tests for tier 3 (heuristic) extraction."""

import unittest
from decimal import Decimal

from bs4 import BeautifulSoup

from src.scrapers.heuristic_extractor import (
    HEURISTIC_PRICE_RE,
    classify_availability,
    extract_from_heuristics,
    match_price,
)


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")


class TestPricePattern(unittest.TestCase):
    """Currency-adjacent price regex."""

    def test_symbol_before_amount(self) -> None:
        """'$49.99' and '€75.00' match."""
        self.assertEqual(match_price("$49.99"), Decimal("49.99"))
        self.assertEqual(match_price("€75.00"), Decimal("75.00"))
        self.assertEqual(match_price("£ 12"), Decimal("12"))

    def test_symbol_after_amount(self) -> None:
        """'75,000.00 ¥' matches with separators stripped."""
        self.assertEqual(
            match_price("75,000.00 ¥"), Decimal("75000.00")
        )
        self.assertEqual(match_price("1,499₹"), Decimal("1499"))

    def test_rejects_non_numeric(self) -> None:
        """A symbol next to text is not a price."""
        self.assertIsNone(match_price("$abc"))
        self.assertIsNone(match_price("price on request"))
        self.assertIsNone(HEURISTIC_PRICE_RE.search("USD only"))

    def test_rejects_zero(self) -> None:
        """Only positive values are accepted."""
        self.assertIsNone(match_price("$0.00"))

    def test_skips_zero_for_later_positive(self) -> None:
        """A free-shipping zero does not hide the real price."""
        self.assertEqual(
            match_price("Shipping $0.00 Total $19.00"), Decimal("19.00")
        )


class TestClassifyAvailability(unittest.TestCase):
    """Keyword-based stock classification."""

    def test_in_stock(self) -> None:
        self.assertTrue(classify_availability("In Stock"))
        self.assertTrue(classify_availability("only low stock left"))

    def test_out_of_stock_wins(self) -> None:
        """Any out-of-stock keyword makes the item unavailable."""
        self.assertFalse(classify_availability("Sold Out"))
        self.assertFalse(classify_availability("Currently unavailable"))


class TestExtractFromHeuristics(unittest.TestCase):
    """Selector and text-pattern extraction."""

    def test_title_price_and_stock_from_selectors(self) -> None:
        """h1, .price and .stock-status are read."""
        soup = _soup("""
            <html><body>
              <h1>Heuristic Product Title</h1>
              <div class="price">$49.99</div>
              <div class="stock-status">In Stock</div>
            </body></html>
        """)
        result = extract_from_heuristics(soup)
        assert result is not None
        self.assertEqual(result.title, "Heuristic Product Title")
        self.assertEqual(result.price, Decimal("49.99"))
        self.assertTrue(result.is_available)

    def test_title_from_og_meta(self) -> None:
        """og:title is used when no title selector matches."""
        soup = _soup("""
            <html><head>
              <meta property="og:title" content="Meta Title Product">
              <title>Page Title</title>
            </head><body>
              <span class="product-price">$12.34</span>
              <span class="availability">available</span>
            </body></html>
        """)
        result = extract_from_heuristics(soup)
        assert result is not None
        self.assertEqual(result.title, "Meta Title Product")
        self.assertEqual(result.price, Decimal("12.34"))
        self.assertTrue(result.is_available)

    def test_title_falls_back_to_document_title(self) -> None:
        """The <title> element is the last resort."""
        soup = _soup("""
            <html><head><title> Page Title </title></head>
            <body><p>nothing else</p></body></html>
        """)
        result = extract_from_heuristics(soup)
        assert result is not None
        self.assertEqual(result.title, "Page Title")
        self.assertIsNone(result.price)
        self.assertIsNone(result.is_available)

    def test_short_heading_skipped(self) -> None:
        """Headings of three characters or fewer are ignored."""
        soup = _soup("""
            <html><body>
              <h1>Hi</h1>
              <div class="product-name">Longer Product Name</div>
            </body></html>
        """)
        result = extract_from_heuristics(soup)
        assert result is not None
        self.assertEqual(result.title, "Longer Product Name")

    def test_euro_price(self) -> None:
        """Other currency symbols are recognised."""
        soup = _soup("""
            <html><body>
              <h1>Euro Product</h1>
              <div class="price">€75.00</div>
              <div>In Stock</div>
            </body></html>
        """)
        result = extract_from_heuristics(soup)
        assert result is not None
        self.assertEqual(result.price, Decimal("75.00"))
        self.assertTrue(result.is_available)

    def test_sold_out(self) -> None:
        """Out-of-stock keywords make the item unavailable."""
        soup = _soup("""
            <html><body>
              <h1>Sold Out Product</h1>
              <div class="price">$99.99</div>
              <div class="stock-status">Sold Out</div>
            </body></html>
        """)
        result = extract_from_heuristics(soup)
        assert result is not None
        self.assertFalse(result.is_available)

    def test_price_from_body_text(self) -> None:
        """With no price selector the whole body is scanned."""
        soup = _soup("""
            <html><body>
              <h1>Product with Text Price</h1>
              <p>The current price is $33.50 for this item.</p>
              <div>Limited Stock</div>
            </body></html>
        """)
        result = extract_from_heuristics(soup)
        assert result is not None
        self.assertEqual(result.price, Decimal("33.50"))
        self.assertTrue(result.is_available)

    def test_priced_item_without_stock_signal_is_available(self) -> None:
        """No stock keywords plus a price defaults to available."""
        soup = _soup("""
            <html><body>
              <h1>Simple Product</h1>
              <div class="price">$19.99</div>
            </body></html>
        """)
        result = extract_from_heuristics(soup)
        assert result is not None
        self.assertTrue(result.is_available)

    def test_no_price_no_signal_leaves_availability_unset(self) -> None:
        """Without price or keywords availability stays None."""
        soup = _soup("""
            <html><body><h1>Mystery Product</h1></body></html>
        """)
        result = extract_from_heuristics(soup)
        assert result is not None
        self.assertIsNone(result.is_available)

    def test_unavailable_in_body_is_not_in_stock(self) -> None:
        """'unavailable' contains 'available' but reads as out of stock."""
        soup = _soup("""
            <html><body>
              <h1>Discontinued Widget</h1>
              <p>This item is currently unavailable.</p>
            </body></html>
        """)
        result = extract_from_heuristics(soup)
        assert result is not None
        self.assertFalse(result.is_available)

    def test_stock_status_without_keyword_is_classified(self) -> None:
        """Stock-status text is used even with no vocabulary keyword."""
        soup = _soup("""
            <html><body>
              <h1>Backordered Lamp</h1>
              <div class="price">$10.00</div>
              <div class="stock-status">Ships in 3 weeks</div>
              <p>Available in three colours.</p>
            </body></html>
        """)
        result = extract_from_heuristics(soup)
        assert result is not None
        self.assertEqual(result.price, Decimal("10.00"))
        self.assertFalse(result.is_available)

    def test_empty_stock_status_falls_back_to_body(self) -> None:
        """An empty stock-status element is not evidence."""
        soup = _soup("""
            <html><body>
              <h1>Desk Lamp</h1>
              <span class="stock-icon"></span>
              <p>Sold out online</p>
            </body></html>
        """)
        result = extract_from_heuristics(soup)
        assert result is not None
        self.assertFalse(result.is_available)

    def test_comments_not_scanned(self) -> None:
        """An old price left in an HTML comment is not visible text."""
        soup = _soup("""
            <html><body>
              <h1>Nice Widget</h1>
              <!-- was $99.00, in stock -->
              <p>Call us</p>
            </body></html>
        """)
        result = extract_from_heuristics(soup)
        assert result is not None
        self.assertEqual(result.title, "Nice Widget")
        self.assertIsNone(result.price)
        self.assertIsNone(result.is_available)

    def test_script_text_not_scanned(self) -> None:
        """Prices inside scripts are not visible text."""
        soup = _soup("""
            <html><body>
              <script>var tracking = "$999.00";</script>
              <p>Nothing to see</p>
            </body></html>
        """)
        self.assertIsNone(extract_from_heuristics(soup))

    def test_nothing_useful_returns_none(self) -> None:
        """A page with no markers yields no data."""
        self.assertIsNone(
            extract_from_heuristics(_soup("<div>No useful content</div>"))
        )


if __name__ == "__main__":
    unittest.main()
