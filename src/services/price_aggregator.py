# src/services/price_aggregator.py

"""Fans a drug query out to every price source and merges the results."""

import asyncio
import importlib
import logging
import statistics
from dataclasses import dataclass, field
from typing import Any

from src.config.settings import Settings
from src.filters.deduplicator import PriceDeduplicator
from src.filters.price_validator import PriceValidator
from src.models.price_analysis import PriceStatistics
from src.models.price_record import PriceRecord, to_money
from src.sources.base_source import SourceClient
from src.sources.http_transport import HttpTransport
from src.storage.price_cache import PriceCache

logger = logging.getLogger("pharma_prices.aggregator")


@dataclass
class AggregationResult:
    """Merged prices for one query plus what happened on the way."""

    term: str
    region: str
    records: list[PriceRecord] = field(
        default_factory=lambda: list[PriceRecord]()
    )
    invalid_count: int = 0
    deduplicated_count: int = 0
    errors: list[str] = field(
        default_factory=lambda: list[str]()
    )


def _load_source_class(dotted_path: str) -> type[Any]:
    """Dynamically import a source class from its dotted module path."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls: type[Any] = getattr(module, class_name)
    return cls


def build_sources(
    cache: PriceCache,
    transport: HttpTransport,
    registry: list[dict[str, str]] | None = None,
) -> list[SourceClient]:
    """Instantiate every registered source with the shared collaborators."""
    sources: list[SourceClient] = []
    for entry in registry or Settings.AVAILABLE_SOURCES:
        source_cls = _load_source_class(entry["client"])
        sources.append(source_cls(cache=cache, transport=transport))
    return sources


class PriceAggregator:
    """Coordinates concurrent source queries, validation and dedup.

    The cache is injected, not global: sources built here share it, and
    :meth:`clear_cache` is the only way callers reach it.
    """

    def __init__(
        self,
        cache: PriceCache | None = None,
        transport: HttpTransport | None = None,
        sources: list[SourceClient] | None = None,
    ) -> None:
        self.cache = cache if cache is not None else PriceCache()
        self.transport = (
            transport if transport is not None else HttpTransport()
        )
        self.sources: list[SourceClient] = (
            sources
            if sources is not None
            else build_sources(self.cache, self.transport)
        )

    # ── Private helpers ──────────────────────────────────

    async def _run_sources(
        self, term: str, region: str,
    ) -> tuple[list[PriceRecord], list[str]]:
        """Query every source concurrently; one failure never blocks others.

        Returns the raw records in source order and the error messages of
        sources that raised.
        """
        batches = await asyncio.gather(
            *(source.search(term, region) for source in self.sources),
            return_exceptions=True,
        )

        records: list[PriceRecord] = []
        errors: list[str] = []
        for source, batch in zip(self.sources, batches):
            source_id = getattr(source, "source_id", type(source).__name__)
            if isinstance(batch, BaseException):
                errors.append(f"{source_id}: {batch}")
                logger.error(
                    "Source %s failed for '%s': %s",
                    source_id,
                    term,
                    batch,
                    exc_info=batch,
                )
                continue
            records.extend(batch)

        return records, errors

    # ── Public API ───────────────────────────────────────

    async def aggregate(
        self, term: str, region: str = "SP",
    ) -> AggregationResult:
        """Search all sources and return records with a run report."""
        result = AggregationResult(term=term, region=region)
        raw, result.errors = await self._run_sources(term, region)

        valid, result.invalid_count = PriceValidator.validate(raw)
        unique, result.deduplicated_count = (
            PriceDeduplicator.deduplicate(valid)
        )
        # sorted() is stable: equal prices keep discovery order
        result.records = sorted(unique, key=lambda r: r.price)

        logger.info(
            "Aggregated %d prices for '%s' in %s from %d sources "
            "(%d invalid, %d duplicates, %d errors)",
            len(result.records),
            term,
            region,
            len(self.sources),
            result.invalid_count,
            result.deduplicated_count,
            len(result.errors),
        )
        return result

    async def search_all_sources(
        self, term: str, region: str = "SP",
    ) -> list[PriceRecord]:
        """Deduplicated prices from every source, cheapest first."""
        result = await self.aggregate(term, region)
        return result.records

    @staticmethod
    def get_statistics(
        records: list[PriceRecord],
    ) -> PriceStatistics | None:
        """Summary statistics over positive prices, ``None`` if there are none."""
        prices = sorted(r.price for r in records if r.price > 0)
        if not prices:
            return None
        return PriceStatistics(
            count=len(prices),
            min=prices[0],
            max=prices[-1],
            average=to_money(statistics.mean(prices)),
            median=to_money(statistics.median(prices)),
            standard_deviation=to_money(statistics.pstdev(prices)),
        )

    def clear_cache(self) -> int:
        """Empty the shared price cache; returns entries removed."""
        return self.cache.clear()

    async def close(self) -> None:
        """Release the HTTP transport."""
        await self.transport.close()
