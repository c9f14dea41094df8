# src/sources/consultaremedios_source.py

"""Consulta Remédios product search API client."""

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


class ConsultaRemediosSource:
    """Client for the Consulta Remédios product API (``X-API-Key`` auth).

    Each product in the response is nested under the pharmacy selling it,
    so vendor and state come from ``product["pharmacy"]``.
    """

    source_id = "consultaremedios"
    SEARCH_PATH = "/v1/products/search"
    RESULT_LIMIT = 8
    SYNTHETIC_VENDORS: list[tuple[str, float]] = [
        ("Pague Menos", 1.08),
        ("Farmácia São João", 1.15),
        ("Drogaria Pacheco", 0.92),
    ]

    def __init__(
        self,
        cache: PriceCache,
        transport: HttpTransport,
        rng: random.Random | None = None,
    ) -> None:
        self.logger = logging.getLogger("pharma_prices.consultaremedios")
        self.settings = Settings()
        self.cache = cache
        self.transport = transport
        self.rng = rng or random.Random()
        self.api_key: str = self.settings.CONSULTAREMEDIOS_API_KEY
        self.base_url: str = self.settings.CONSULTAREMEDIOS_BASE_URL
        self.use_synthetic: bool = self.settings.USE_SYNTHETIC_DATA

    @property
    def live(self) -> bool:
        """True when real network calls should be attempted."""
        return bool(self.api_key) and not self.use_synthetic

    async def search(
        self, term: str, region: str = "SP",
    ) -> list[PriceRecord]:
        """Search Consulta Remédios for ``term`` in ``region``."""
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
                "name": term,
                "state": region,
                "limit": self.RESULT_LIMIT,
            },
            headers={
                "X-API-Key": self.api_key,
                "Content-Type": "application/json",
            },
        )
        data = parse_json_response(resp, self.source_id)
        records = parse_items(
            data.get("products") or [],
            lambda product: self._parse_product(product, region),
            self.source_id,
        )
        self.logger.info(
            "[consultaremedios] %d products for '%s'",
            len(records),
            term,
        )
        return records

    def _parse_product(
        self, product: dict[str, Any], region: str,
    ) -> PriceRecord:
        """Map one API product into a PriceRecord."""
        pharmacy: dict[str, Any] = product.get("pharmacy") or {}
        return PriceRecord(
            source_name=self.source_id,
            vendor_label=str(pharmacy.get("name") or "N/A"),
            price=parse_price(product.get("price")),
            available=product.get("in_stock") is not False,
            region=str(pharmacy.get("state") or region),
            origin_url=product.get("url"),
        )

    def _synthesize(self, region: str) -> list[PriceRecord]:
        return synthetic_records(
            self.source_id,
            self.SYNTHETIC_VENDORS,
            region,
            self.rng,
            base_min=14.0,
            base_span=12.0,
        )
