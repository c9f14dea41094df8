# src/sources/regional_survey_source.py

"""Regional pharmacy price survey (synthetic, no provider behind it)."""

import random

from src.models.price_record import PriceRecord
from src.sources.base_source import run_source_search, synthetic_records
from src.sources.http_transport import HttpTransport
from src.storage.price_cache import PriceCache

# Per-state vendor tables; unknown states use SP's
_STATE_VENDORS: dict[str, list[tuple[str, float]]] = {
    "SP": [
        ("Drogaria São Paulo", 1.02),
        ("Farmácia Popular", 1.12),
        ("Droga Mais", 0.98),
        ("Farmácia Preço Bom", 0.89),
    ],
    "RJ": [
        ("Drogaria Venâncio", 1.05),
        ("Farmácia Globo", 1.08),
        ("Drogaria Moderna", 0.96),
    ],
    "MG": [
        ("Drogaria Araujo", 1.03),
        ("Farmácia Indiana", 0.94),
        ("Drogaria Nissei", 1.01),
    ],
}


class RegionalSurveySource:
    """Estimated street prices of local pharmacy chains per state.

    There is no provider to call, so every record it returns is synthetic.
    """

    source_id = "regional_survey"
    AVAILABILITY = 0.9

    def __init__(
        self,
        cache: PriceCache,
        transport: HttpTransport | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.cache = cache
        self.rng = rng or random.Random()

    @staticmethod
    def vendors_for(region: str) -> list[tuple[str, float]]:
        """Vendor/factor table for a state code."""
        return _STATE_VENDORS.get(region.upper(), _STATE_VENDORS["SP"])

    async def search(
        self, term: str, region: str = "SP",
    ) -> list[PriceRecord]:
        """Return the survey estimate for ``region``."""
        return await run_source_search(
            self.source_id,
            self.cache,
            term,
            region,
            fetch=self._no_fetch,
            synthesize=lambda: self._synthesize(region),
            live=False,
        )

    async def _no_fetch(self) -> list[PriceRecord]:
        return []

    def _synthesize(self, region: str) -> list[PriceRecord]:
        return synthetic_records(
            self.source_id,
            self.vendors_for(region),
            region,
            self.rng,
            base_min=13.0,
            base_span=14.0,
            availability=self.AVAILABILITY,
        )
