# tests/test_price_validator.py

"""Tests for PriceValidator."""

import unittest
from decimal import Decimal

from src.filters.price_validator import PriceValidator
from src.models.price_record import PriceRecord


def _r(vendor: str = "Drogasil", price: str = "10.00") -> PriceRecord:
    """Create a minimal PriceRecord."""
    return PriceRecord(
        source_name="test", vendor_label=vendor, price=Decimal(price)
    )


class TestPriceValidator(unittest.TestCase):
    """PriceValidator.validate unit tests."""

    def test_empty_list_returns_empty(self) -> None:
        """An empty input returns an empty list and zero dropped."""
        valid, dropped = PriceValidator.validate([])
        self.assertEqual(valid, [])
        self.assertEqual(dropped, 0)

    def test_valid_records_pass_through(self) -> None:
        records = [_r("Drogasil", "12.90"), _r("Panvel", "9.99")]
        valid, dropped = PriceValidator.validate(records)
        self.assertEqual(len(valid), 2)
        self.assertEqual(dropped, 0)

    def test_blank_vendor_dropped(self) -> None:
        """Empty and whitespace-only vendor labels are dropped."""
        records = [_r(""), _r("   "), _r("Drogasil")]
        valid, dropped = PriceValidator.validate(records)
        self.assertEqual([r.vendor_label for r in valid], ["Drogasil"])
        self.assertEqual(dropped, 2)

    def test_zero_and_negative_prices_dropped(self) -> None:
        records = [_r(price="0"), _r(price="-3.50"), _r(price="0.01")]
        valid, dropped = PriceValidator.validate(records)
        self.assertEqual(len(valid), 1)
        self.assertEqual(valid[0].price, Decimal("0.01"))
        self.assertEqual(dropped, 2)

    def test_order_preserved(self) -> None:
        records = [_r("C", "3"), _r("", "1"), _r("A", "1"), _r("B", "2")]
        valid, _ = PriceValidator.validate(records)
        self.assertEqual([r.vendor_label for r in valid], ["C", "A", "B"])


if __name__ == "__main__":
    unittest.main()
