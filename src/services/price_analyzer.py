# src/services/price_analyzer.py

"""Competitive price analysis of one catalog product against the market."""

import asyncio
import logging
from decimal import Decimal
from fractions import Fraction

from src.config.settings import Settings
from src.errors import NotFoundError
from src.models.catalog_product import CatalogProduct
from src.models.price_analysis import CompetitivePosition, PriceAnalysis
from src.models.price_record import PriceRecord, to_money
from src.services.price_aggregator import PriceAggregator
from src.storage.catalog_store import CatalogStore

logger = logging.getLogger("pharma_prices.analyzer")


def market_average(
    records: list[PriceRecord], fallback: Decimal,
) -> Fraction:
    """Exact arithmetic mean of external prices, or ``fallback`` if none.

    Kept as a ``Fraction`` so a repeating mean (20/3) is not rounded
    before the gap is measured against it.
    """
    if not records:
        return Fraction(fallback)
    total = sum((Fraction(r.price) for r in records), Fraction(0))
    return total / len(records)


def price_delta_percent(
    local: Decimal, average: Fraction | Decimal,
) -> Fraction:
    """Exact signed gap of the local price over the market average, in %."""
    avg = Fraction(average)
    if avg <= 0:
        return Fraction(0)
    return (Fraction(local) - avg) / avg * 100


def to_decimal(value: Fraction) -> Decimal:
    """Decimal rendering of an exact ratio (exact when it terminates)."""
    return Decimal(value.numerator) / Decimal(value.denominator)


def classify_position(
    delta_percent: Fraction | Decimal,
    threshold: float = Settings.POSITION_THRESHOLD_PCT,
) -> CompetitivePosition:
    """Map a percentage gap to below / average / above.

    The threshold itself belongs to the outer bands: exactly -5% is
    ``below`` and exactly +5% is ``above``.
    """
    delta = Fraction(delta_percent)
    limit = Fraction(str(threshold))
    if delta <= -limit:
        return CompetitivePosition.BELOW
    if delta >= limit:
        return CompetitivePosition.ABOVE
    return CompetitivePosition.AVERAGE


def build_recommendation(
    position: CompetitivePosition,
    delta_percent: Decimal,
    average: Decimal,
) -> str:
    """Pricing advice for a position, gap size and market average."""
    gap = f"{abs(delta_percent):.1f}%"
    target = f"R$ {to_money(average):.2f}"

    if position is CompetitivePosition.BELOW:
        if abs(delta_percent) > Decimal(str(Settings.BELOW_SEVERITY_PCT)):
            return (
                f"Your price is {gap} below the market. Consider raising "
                f"it to {target} to improve your margin."
            )
        return (
            f"Your price is competitive, {gap} below the market. A good "
            "strategy for attracting customers."
        )

    if position is CompetitivePosition.ABOVE:
        if abs(delta_percent) > Decimal(str(Settings.ABOVE_SEVERITY_PCT)):
            return (
                f"Your price is {gap} above the market. Consider lowering "
                f"it to {target} to be more competitive."
            )
        return (
            f"Your price is {gap} above the market. Make sure the added "
            "value justifies the difference."
        )

    return (
        f"Your price is aligned with the market ({gap} difference). "
        "Balanced positioning."
    )


class PriceAnalyzer:
    """Compares a pharmacy's own price for a drug with market prices.

    The local product must exist in the pharmacy's catalog; external
    prices come from the aggregator and may be partly synthetic.  Each
    analysis is written to the store as an audit record, and a failed
    write never affects the returned result.
    """

    def __init__(
        self,
        store: CatalogStore,
        aggregator: PriceAggregator,
        pharmacy_id: str | None = None,
    ) -> None:
        self._store = store
        self._aggregator = aggregator
        self.pharmacy_id = pharmacy_id or Settings.DEFAULT_PHARMACY_ID

    async def _find_local_product(self, term: str) -> CatalogProduct:
        product = await asyncio.to_thread(
            self._store.find_catalog_product, self.pharmacy_id, term,
        )
        if product is None:
            raise NotFoundError(
                f"Product '{term}' not found in the pharmacy catalog",
                context={"pharmacy_id": self.pharmacy_id, "term": term},
            )
        return product

    async def _persist(self, analysis: PriceAnalysis) -> None:
        try:
            await asyncio.to_thread(
                self._store.persist_analysis, self.pharmacy_id, analysis,
            )
        except Exception as exc:
            logger.error(
                "Failed to persist analysis of %s: %s",
                analysis.local_product.id,
                exc,
                exc_info=True,
            )

    async def analyze(
        self, term: str, region: str = Settings.DEFAULT_REGION,
    ) -> PriceAnalysis:
        """Analyse the catalog product matching ``term`` in ``region``.

        Raises:
            NotFoundError: no catalog product matches ``term``.
        """
        product = await self._find_local_product(term)
        logger.info(
            "Found catalog product %s (%s) at R$ %s",
            product.id,
            product.name,
            product.sell_price,
        )

        external = await self._aggregator.search_all_sources(
            product.name, region
        )
        average = market_average(external, product.sell_price)
        exact_delta = price_delta_percent(product.sell_price, average)
        position = (
            classify_position(exact_delta)
            if external
            else CompetitivePosition.AVERAGE
        )

        delta = to_decimal(exact_delta)
        average_price = to_decimal(average)

        analysis = PriceAnalysis(
            local_product=product,
            external_prices=tuple(external),
            market_average_price=to_money(average_price),
            competitive_position=position,
            recommendation_text=build_recommendation(
                position, delta, average_price
            ),
            current_margin_percent=product.margin_percent,
            price_delta_percent=delta,
        )
        logger.info(
            "Analysis of %s: %d external prices, average R$ %s, %s "
            "(%.1f%%)",
            product.name,
            len(external),
            analysis.market_average_price,
            position.value,
            delta,
        )

        await self._persist(analysis)
        return analysis
