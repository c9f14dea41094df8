# src/models/price_analysis.py

"""Competitive price analysis result and market statistics."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from src.models.catalog_product import CatalogProduct
from src.models.price_record import PriceRecord


class CompetitivePosition(str, Enum):
    """Where the local price sits relative to the market average."""

    BELOW = "below"
    AVERAGE = "average"
    ABOVE = "above"


@dataclass(frozen=True)
class PriceStatistics:
    """Summary statistics over a set of valid external prices."""

    count: int
    min: Decimal
    max: Decimal
    average: Decimal
    median: Decimal
    standard_deviation: Decimal


@dataclass(frozen=True)
class PriceAnalysis:
    """Immutable result of comparing one local product to the market."""

    local_product: CatalogProduct
    external_prices: tuple[PriceRecord, ...]
    market_average_price: Decimal
    competitive_position: CompetitivePosition
    recommendation_text: str
    current_margin_percent: Decimal
    price_delta_percent: Decimal
    analyzed_at: datetime = field(default_factory=datetime.now)

    @property
    def market_min_price(self) -> Decimal | None:
        """Cheapest external price, if any."""
        if not self.external_prices:
            return None
        return min(r.price for r in self.external_prices)

    @property
    def market_max_price(self) -> Decimal | None:
        """Most expensive external price, if any."""
        if not self.external_prices:
            return None
        return max(r.price for r in self.external_prices)

    @property
    def source_names(self) -> list[str]:
        """Distinct sources that contributed prices, in discovery order."""
        return list(dict.fromkeys(r.source_name for r in self.external_prices))

    @property
    def has_synthetic_data(self) -> bool:
        """True when any external price was fabricated, not fetched."""
        return any(r.is_synthetic for r in self.external_prices)
