# tests/test_base_source.py

"""Tests for the shared source search pipeline and helpers."""

import random
import unittest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from src.errors import MalformedResponse, SourceUnavailable
from src.models.price_record import PriceRecord
from src.sources.base_source import (
    parse_items,
    parse_json_response,
    parse_price,
    run_source_search,
    synthetic_records,
)
from src.storage.price_cache import PriceCache

VENDORS: list[tuple[str, float]] = [
    ("Drogasil", 1.10),
    ("Droga Raia", 1.05),
    ("Ultrafarma", 0.95),
]


def _resp(status: int = 200, body: object = None) -> MagicMock:
    """Build a fake HTTP response."""
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body if body is not None else {}
    return resp


def _live_record(vendor: str = "Drogasil", price: str = "12.90") -> PriceRecord:
    return PriceRecord(
        source_name="cliquefarma",
        vendor_label=vendor,
        price=Decimal(price),
    )


class TestSyntheticRecords(unittest.TestCase):
    """synthetic_records generator."""

    def test_one_record_per_vendor_in_order(self) -> None:
        records = synthetic_records(
            "cliquefarma", VENDORS, "RJ", random.Random(1),
            base_min=15.0, base_span=10.0,
        )
        self.assertEqual(
            [r.vendor_label for r in records],
            ["Drogasil", "Droga Raia", "Ultrafarma"],
        )
        for r in records:
            self.assertTrue(r.is_synthetic)
            self.assertEqual(r.region, "RJ")
            self.assertEqual(r.source_name, "cliquefarma")
            self.assertTrue(r.available)

    def test_prices_follow_vendor_factors(self) -> None:
        """All vendors share one base, so factor order is price order."""
        records = synthetic_records(
            "cliquefarma", VENDORS, "SP", random.Random(7),
            base_min=15.0, base_span=10.0,
        )
        prices = [r.price for r in records]
        self.assertGreater(prices[0], prices[1])
        self.assertGreater(prices[1], prices[2])
        for price in prices:
            self.assertGreaterEqual(price, Decimal("14.25"))
            self.assertLessEqual(price, Decimal("27.50"))
            self.assertEqual(price, price.quantize(Decimal("0.01")))

    def test_seeded_rng_is_reproducible(self) -> None:
        first = synthetic_records(
            "exa", VENDORS, "SP", random.Random(3), 12.0, 16.0,
        )
        second = synthetic_records(
            "exa", VENDORS, "SP", random.Random(3), 12.0, 16.0,
        )
        self.assertEqual(
            [r.price for r in first], [r.price for r in second]
        )

    def test_partial_availability(self) -> None:
        rng = MagicMock()
        # base draw, then one availability draw per vendor
        rng.random.side_effect = [0.5, 0.1, 0.95, 0.3]
        records = synthetic_records(
            "regional_survey", VENDORS, "SP", rng, 13.0, 14.0,
            availability=0.9,
        )
        self.assertEqual(
            [r.available for r in records], [True, False, True]
        )


class TestParseJsonResponse(unittest.TestCase):
    """parse_json_response error mapping."""

    def test_returns_object_body(self) -> None:
        data = parse_json_response(_resp(body={"results": []}), "exa")
        self.assertEqual(data, {"results": []})

    def test_non_200_is_unavailable(self) -> None:
        with self.assertRaises(SourceUnavailable) as ctx:
            parse_json_response(_resp(status=503), "exa")
        self.assertNotIsInstance(ctx.exception, MalformedResponse)
        self.assertEqual(ctx.exception.context["status"], 503)

    def test_invalid_json_is_malformed(self) -> None:
        resp = _resp()
        resp.json.side_effect = ValueError("Expecting value")
        with self.assertRaises(MalformedResponse):
            parse_json_response(resp, "exa")

    def test_non_object_body_is_malformed(self) -> None:
        with self.assertRaises(MalformedResponse):
            parse_json_response(_resp(body=[1, 2]), "exa")


class TestParsePrice(unittest.TestCase):
    """parse_price coercion."""

    def test_numeric_values(self) -> None:
        self.assertEqual(parse_price(12.9), 12.9)
        self.assertEqual(parse_price("8.50"), 8.5)
        self.assertEqual(parse_price(7), 7.0)

    def test_unparseable_is_zero(self) -> None:
        self.assertEqual(parse_price(None), 0.0)
        self.assertEqual(parse_price("R$ abc"), 0.0)
        self.assertEqual(parse_price({}), 0.0)

    def test_non_finite_is_zero(self) -> None:
        self.assertEqual(parse_price(float("inf")), 0.0)
        self.assertEqual(parse_price("-Infinity"), 0.0)
        self.assertEqual(parse_price(float("nan")), 0.0)
        self.assertEqual(parse_price("NaN"), 0.0)


class TestParseItems(unittest.TestCase):
    """parse_items per-item isolation."""

    @staticmethod
    def _parse(item: dict) -> PriceRecord | None:
        if item.get("skip"):
            return None
        return PriceRecord(
            source_name="cliquefarma",
            vendor_label=item["vendor"],
            price=item["price"],
        )

    def test_bad_items_skipped_good_items_kept(self) -> None:
        items = [
            {"vendor": "Drogasil", "price": "8.90"},
            {"vendor": "Droga Raia", "price": "Infinity"},
            "Pague Menos",
            {"price": "9.10"},
            {"vendor": "Panvel", "price": "NaN"},
            {"vendor": "Ultrafarma", "price": "abc"},
            {"skip": True},
            {"vendor": "Panvel", "price": 10.5},
        ]
        with self.assertLogs("pharma_prices.cliquefarma", "WARNING") as logs:
            records = parse_items(items, self._parse, "cliquefarma")

        self.assertEqual(
            [(r.vendor_label, r.price) for r in records],
            [("Drogasil", Decimal("8.90")), ("Panvel", Decimal("10.50"))],
        )
        self.assertEqual(len(logs.records), 5)
        self.assertIn("Skipped malformed item 1", logs.output[0])

    def test_non_list_is_malformed(self) -> None:
        with self.assertRaises(MalformedResponse):
            parse_items({"vendor": "Drogasil"}, self._parse, "cliquefarma")

    def test_empty_list(self) -> None:
        self.assertEqual(parse_items([], self._parse, "cliquefarma"), [])


class TestRunSourceSearch(unittest.IsolatedAsyncioTestCase):
    """Cache-first pipeline with retry and synthetic fallback."""

    def setUp(self) -> None:
        self.cache = PriceCache(enabled=True)
        self.synthetic = [
            PriceRecord(
                source_name="cliquefarma",
                vendor_label="Drogasil",
                price=Decimal("20.00"),
                is_synthetic=True,
            )
        ]
        self.synthesize = MagicMock(return_value=self.synthetic)

    async def _run(
        self, fetch: AsyncMock, live: bool = True,
    ) -> list[PriceRecord]:
        return await run_source_search(
            "cliquefarma",
            self.cache,
            "Dipirona",
            "SP",
            fetch=fetch,
            synthesize=self.synthesize,
            live=live,
            max_attempts=3,
        )

    async def test_live_success_is_cached(self) -> None:
        fetch = AsyncMock(return_value=[_live_record()])
        records = await self._run(fetch)
        self.assertEqual(len(records), 1)
        self.assertFalse(records[0].is_synthetic)
        self.synthesize.assert_not_called()
        cached = self.cache.get(
            PriceCache.make_key("cliquefarma", "dipirona", "SP")
        )
        self.assertEqual(cached, records)

    async def test_cache_hit_skips_fetch(self) -> None:
        fetch = AsyncMock(return_value=[_live_record()])
        await self._run(fetch)
        await self._run(fetch)
        self.assertEqual(fetch.await_count, 1)

    async def test_not_live_uses_synthetic_without_fetch(self) -> None:
        fetch = AsyncMock()
        records = await self._run(fetch, live=False)
        fetch.assert_not_awaited()
        self.assertEqual(records, self.synthetic)

    async def test_exhausted_retries_fall_back_to_synthetic(self) -> None:
        fetch = AsyncMock(side_effect=ConnectionError("refused"))
        records = await self._run(fetch)
        self.assertEqual(fetch.await_count, 3)
        self.assertEqual(records, self.synthetic)
        self.assertTrue(all(r.is_synthetic for r in records))

    async def test_fallback_result_is_cached(self) -> None:
        fetch = AsyncMock(side_effect=ConnectionError("refused"))
        await self._run(fetch)
        await self._run(fetch)
        self.assertEqual(fetch.await_count, 3)
        self.assertEqual(self.synthesize.call_count, 1)

    async def test_malformed_response_not_retried(self) -> None:
        fetch = AsyncMock(
            side_effect=MalformedResponse("cliquefarma returned list")
        )
        records = await self._run(fetch)
        self.assertEqual(fetch.await_count, 1)
        self.assertEqual(records, self.synthetic)

    async def test_invalid_records_dropped(self) -> None:
        fetch = AsyncMock(
            return_value=[
                _live_record("Drogasil", "12.90"),
                _live_record("Droga Raia", "0"),
                _live_record("  ", "9.90"),
            ]
        )
        records = await self._run(fetch)
        self.assertEqual([r.vendor_label for r in records], ["Drogasil"])

    async def test_unexpected_error_returns_empty(self) -> None:
        """A broken synthetic generator degrades to no prices."""
        self.synthesize.side_effect = RuntimeError("bug")
        records = await self._run(AsyncMock(), live=False)
        self.assertEqual(records, [])


if __name__ == "__main__":
    unittest.main()
