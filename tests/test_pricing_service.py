# tests/test_pricing_service.py

"""Tests for the PricingService request and admin surface."""

import random
import unittest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from src.errors import InvalidRequestError, NotFoundError
from src.models.catalog_product import CatalogProduct
from src.models.price_analysis import CompetitivePosition
from src.services.price_aggregator import PriceAggregator
from src.services.pricing_service import PricingService
from src.sources.cliquefarma_source import CliqueFarmaSource
from src.storage.catalog_store import SqliteCatalogStore
from src.storage.price_cache import PriceCache

PHARMACY = "550e8400-e29b-41d4-a716-446655440000"

API_BODY = {
    "results": [
        {"pharmacy_name": "Drogasil", "price": 8.90},
        {"pharmacy_name": "Droga Raia", "price": 9.50},
        {"pharmacy_name": "Ultrafarma", "price": 13.90},
    ]
}


class TestPricingService(unittest.IsolatedAsyncioTestCase):
    """Full request path with a fake HTTP transport."""

    async def asyncSetUp(self) -> None:
        resp = MagicMock()
        resp.status_code = 200
        resp.json.return_value = API_BODY
        self.transport = MagicMock()
        self.transport.get = AsyncMock(return_value=resp)
        self.transport.close = AsyncMock()

        cache = PriceCache(enabled=True)
        source = CliqueFarmaSource(
            cache=cache, transport=self.transport, rng=random.Random(1),
        )
        source.api_key = "key"
        source.use_synthetic = False
        aggregator = PriceAggregator(
            cache=cache, transport=self.transport, sources=[source],
        )

        self.store = SqliteCatalogStore(":memory:")
        self.store.add_product(
            PHARMACY,
            CatalogProduct(
                id="123e4567-e89b-12d3-a456-426614174000",
                name="Dipirona Monoidratada 500mg",
                sell_price=Decimal("12.50"),
                cost_price=Decimal("8.00"),
                current_stock=150,
                active_ingredient="Dipirona Monoidratada",
            ),
        )
        self.service = PricingService(
            store=self.store, aggregator=aggregator, pharmacy_id=PHARMACY,
        )

    async def asyncTearDown(self) -> None:
        await self.service.close()

    async def test_analyze_payload(self) -> None:
        analysis = await self.service.analyze(
            {"term": "dipirona", "region": "sp"}
        )
        self.assertEqual(analysis.market_average_price, Decimal("10.77"))
        self.assertIs(
            analysis.competitive_position, CompetitivePosition.ABOVE
        )
        self.assertFalse(analysis.has_synthetic_data)
        params = self.transport.get.await_args.kwargs["params"]
        self.assertEqual(params["location"], "SP")
        self.assertEqual(params["q"], "Dipirona Monoidratada 500mg")

    async def test_repeat_analysis_served_from_cache(self) -> None:
        await self.service.analyze({"term": "dipirona"})
        await self.service.analyze({"term": "Dipirona"})
        self.assertEqual(self.transport.get.await_count, 1)

    async def test_clear_cache_forces_fresh_fetch(self) -> None:
        await self.service.analyze({"term": "dipirona"})
        removed = self.service.clear_cache()
        self.assertEqual(removed, 1)
        await self.service.analyze({"term": "dipirona"})
        self.assertEqual(self.transport.get.await_count, 2)

    async def test_analysis_recorded_in_history(self) -> None:
        await self.service.analyze({"term": "dipirona"})
        history = await self.service.history()
        self.assertEqual(len(history), 1)
        self.assertEqual(history[0]["sources"], ["cliquefarma"])
        self.assertEqual(history[0]["competitive_position"], "above")

    async def test_missing_term_rejected(self) -> None:
        for payload in ({}, {"term": ""}, {"term": "   "}, {"term": 42}):
            with self.subTest(payload=payload):
                with self.assertRaises(InvalidRequestError) as ctx:
                    await self.service.analyze(payload)
                self.assertEqual(ctx.exception.context["field"], "term")
        self.transport.get.assert_not_awaited()

    async def test_bad_region_rejected(self) -> None:
        with self.assertRaises(InvalidRequestError):
            await self.service.analyze(
                {"term": "dipirona", "region": "São Paulo"}
            )

    async def test_unknown_product_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            await self.service.analyze({"term": "omeprazol"})
        self.transport.get.assert_not_awaited()


if __name__ == "__main__":
    unittest.main()
