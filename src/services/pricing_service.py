# src/services/pricing_service.py

"""Application-level entry points: analysis requests and cache admin."""

import asyncio
import logging
from typing import Any

from src.config.settings import Settings
from src.models.analysis_request import AnalysisRequest
from src.models.price_analysis import PriceAnalysis
from src.services.price_aggregator import PriceAggregator
from src.services.price_analyzer import PriceAnalyzer
from src.storage.catalog_store import SqliteCatalogStore
from src.storage.price_cache import PriceCache

logger = logging.getLogger("pharma_prices.service")


class PricingService:
    """Wires cache, aggregator, analyzer and store for one process.

    One instance lives as long as the application, so every request it
    serves shares the same price cache.
    """

    def __init__(
        self,
        store: SqliteCatalogStore | None = None,
        aggregator: PriceAggregator | None = None,
        pharmacy_id: str | None = None,
    ) -> None:
        self.store = store if store is not None else SqliteCatalogStore()
        self.aggregator = (
            aggregator if aggregator is not None
            else PriceAggregator(cache=PriceCache())
        )
        self.pharmacy_id = pharmacy_id or Settings.DEFAULT_PHARMACY_ID
        self.analyzer = PriceAnalyzer(
            self.store, self.aggregator, self.pharmacy_id
        )

    async def analyze(self, payload: dict[str, Any]) -> PriceAnalysis:
        """Validate ``{"term": ..., "region": ...}`` and run an analysis.

        Raises:
            InvalidRequestError: missing term or malformed region.
            NotFoundError: no catalog product matches the term.
        """
        request = AnalysisRequest.from_payload(payload)
        return await self.analyzer.analyze(request.term, request.region)

    def clear_cache(self) -> int:
        """Administrative reset of the price cache."""
        removed = self.aggregator.clear_cache()
        logger.info("Price cache cleared via admin surface")
        return removed

    async def history(
        self,
        product_id: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Past analyses for this pharmacy, newest first."""
        return await asyncio.to_thread(
            self.store.list_analyses,
            self.pharmacy_id,
            product_id,
            limit,
            offset,
        )

    async def close(self) -> None:
        """Release the HTTP transport and the database connection."""
        await self.aggregator.close()
        self.store.close()
