# src/sources/cliquefarma_source.py

"""CliqueFarma price comparison API client."""

import logging
import random
from typing import Any

from src.config.settings import Settings
from src.models.price_record import PriceRecord
from src.sources.base_source import (
    parse_items,
    parse_json_response,
    parse_price,
    run_source_search,
    synthetic_records,
)
from src.sources.http_transport import HttpTransport
from src.storage.price_cache import PriceCache


class CliqueFarmaSource:
    """Client for the CliqueFarma REST search API (bearer-token auth)."""

    source_id = "cliquefarma"
    SEARCH_PATH = "/v1/search"
    RESULT_LIMIT = 10
    SYNTHETIC_VENDORS: list[tuple[str, float]] = [
        ("Drogasil", 1.10),
        ("Droga Raia", 1.05),
        ("Ultrafarma", 0.95),
    ]

    def __init__(
        self,
        cache: PriceCache,
        transport: HttpTransport,
        rng: random.Random | None = None,
    ) -> None:
        self.logger = logging.getLogger("pharma_prices.cliquefarma")
        self.settings = Settings()
        self.cache = cache
        self.transport = transport
        self.rng = rng or random.Random()
        self.api_key: str = self.settings.CLIQUEFARMA_API_KEY
        self.base_url: str = self.settings.CLIQUEFARMA_BASE_URL
        self.use_synthetic: bool = self.settings.USE_SYNTHETIC_DATA

    @property
    def live(self) -> bool:
        """True when real network calls should be attempted."""
        return bool(self.api_key) and not self.use_synthetic

    async def search(
        self, term: str, region: str = "SP",
    ) -> list[PriceRecord]:
        """Search CliqueFarma for ``term`` in ``region``."""
        return await run_source_search(
            self.source_id,
            self.cache,
            term,
            region,
            fetch=lambda: self._fetch(term, region),
            synthesize=lambda: self._synthesize(region),
            live=self.live,
            max_attempts=self.settings.MAX_RETRIES,
        )

    async def _fetch(self, term: str, region: str) -> list[PriceRecord]:
        resp = await self.transport.get(
            f"{self.base_url}{self.SEARCH_PATH}",
            params={
                "q": term,
                "location": region,
                "limit": self.RESULT_LIMIT,
            },
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )
        data = parse_json_response(resp, self.source_id)
        records = parse_items(
            data.get("results") or [],
            lambda item: self._parse_item(item, region),
            self.source_id,
        )
        self.logger.info(
            "[cliquefarma] %d results for '%s'", len(records), term,
        )
        return records

    def _parse_item(
        self, item: dict[str, Any], region: str,
    ) -> PriceRecord:
        """Map one API result into a PriceRecord."""
        return PriceRecord(
            source_name=self.source_id,
            vendor_label=str(item.get("pharmacy_name") or "N/A"),
            price=parse_price(item.get("price")),
            available=item.get("available") is not False,
            region=str(item.get("state") or region),
            origin_url=item.get("url"),
        )

    def _synthesize(self, region: str) -> list[PriceRecord]:
        return synthetic_records(
            self.source_id,
            self.SYNTHETIC_VENDORS,
            region,
            self.rng,
            base_min=15.0,
            base_span=10.0,
        )
