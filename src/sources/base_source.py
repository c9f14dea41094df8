# src/sources/base_source.py

"""Capability interface and shared search pipeline for price sources.

Every provider adapter is a plain class satisfying :class:`SourceClient`.
Instead of a base class, adapters hand their provider-specific pieces
(a network fetch and a synthetic generator) to :func:`run_source_search`,
which owns caching, retries, fallback and validation.
"""

import logging
import math
import random
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol

from curl_cffi import requests as curl_requests

from src.errors import MalformedResponse, SourceUnavailable
from src.filters.price_validator import PriceValidator
from src.models.price_record import PriceRecord, to_money
from src.sources.retry import retry_with_backoff
from src.storage.price_cache import PriceCache


class SourceClient(Protocol):
    """One external price provider."""

    source_id: str

    async def search(
        self, term: str, region: str = "SP",
    ) -> list[PriceRecord]:
        """Return normalised prices for ``term``; never raises."""
        ...


def synthetic_records(
    source_id: str,
    vendors: Sequence[tuple[str, float]],
    region: str,
    rng: random.Random,
    base_min: float,
    base_span: float,
    availability: float = 1.0,
) -> list[PriceRecord]:
    """Fabricate one price per vendor from a shared randomised base.

    Each vendor's price is ``base * factor`` where the base is drawn once
    from ``[base_min, base_min + base_span)``.  Records are tagged as
    synthetic so they are never mistaken for market data.
    """
    base = base_min + rng.random() * base_span
    return [
        PriceRecord(
            source_name=source_id,
            vendor_label=label,
            price=to_money(base * factor),
            available=(
                True if availability >= 1.0
                else rng.random() < availability
            ),
            region=region,
            is_synthetic=True,
        )
        for label, factor in vendors
    ]


def parse_json_response(
    resp: curl_requests.Response, source_id: str,
) -> dict[str, Any]:
    """Return the JSON object body of a 200 response.

    Raises:
        SourceUnavailable: non-200 status.
        MalformedResponse: body is not a JSON object.
    """
    if resp.status_code != 200:
        raise SourceUnavailable(
            f"{source_id} returned HTTP {resp.status_code}",
            context={"source": source_id, "status": resp.status_code},
        )
    try:
        data = resp.json()
    except ValueError as exc:
        raise MalformedResponse(
            f"{source_id} returned invalid JSON",
            context={"source": source_id},
        ) from exc
    if not isinstance(data, dict):
        raise MalformedResponse(
            f"{source_id} returned {type(data).__name__}, expected object",
            context={"source": source_id},
        )
    return data


def parse_price(value: Any) -> float:
    """Best-effort numeric price; 0.0 (invalid) when unparseable.

    Infinity and NaN count as unparseable.
    """
    try:
        price = float(value)
    except (TypeError, ValueError):
        return 0.0
    return price if math.isfinite(price) else 0.0


def parse_items(
    items: Any,
    parse: Callable[[dict[str, Any]], PriceRecord | None],
    source_id: str,
) -> list[PriceRecord]:
    """Normalise a response list item by item.

    An item that cannot be normalised is logged and skipped so the rest
    of the batch survives.  ``parse`` may return ``None`` to skip an item
    silently.

    Raises:
        MalformedResponse: ``items`` is not a list.
    """
    if not isinstance(items, list):
        raise MalformedResponse(
            f"{source_id} returned {type(items).__name__}, expected list",
            context={"source": source_id},
        )
    logger = logging.getLogger(f"pharma_prices.{source_id}")
    records: list[PriceRecord] = []
    for index, item in enumerate(items):
        try:
            if not isinstance(item, dict):
                raise TypeError(
                    f"expected object, got {type(item).__name__}"
                )
            record = parse(item)
        except (
            TypeError, ValueError, LookupError, AttributeError,
            ArithmeticError,
        ) as exc:
            logger.warning(
                "[%s] Skipped malformed item %d: %s", source_id, index, exc,
            )
            continue
        if record is not None:
            records.append(record)
    return records


async def run_source_search(
    source_id: str,
    cache: PriceCache,
    term: str,
    region: str,
    fetch: Callable[[], Awaitable[list[PriceRecord]]],
    synthesize: Callable[[], list[PriceRecord]],
    live: bool,
    max_attempts: int | None = None,
) -> list[PriceRecord]:
    """Cache-first search with retry and synthetic fallback.

    1. A fresh cache entry is returned without touching the network.
    2. When ``live`` is false (no credential, or synthetic mode) the
       synthetic generator is used directly.
    3. Otherwise ``fetch`` runs under exponential backoff; once retries
       are exhausted the synthetic generator takes over.
    Valid records (real or synthetic) are cached before returning.  Any
    unexpected error is logged and yields an empty list.
    """
    logger = logging.getLogger(f"pharma_prices.{source_id}")
    key = PriceCache.make_key(source_id, term, region)
    try:
        cached = cache.get(key)
        if cached is not None:
            logger.info("[%s] Cache hit for '%s'", source_id, key)
            return cached

        if not live:
            logger.info(
                "[%s] Not configured for live data, using synthetic "
                "prices for '%s'",
                source_id,
                term,
            )
            records = synthesize()
        else:
            try:
                records = await retry_with_backoff(
                    fetch, source_id, max_attempts
                )
            except SourceUnavailable as exc:
                logger.error(
                    "[%s] %s, falling back to synthetic prices",
                    source_id,
                    exc,
                    exc_info=True,
                )
                records = synthesize()

        records, _ = PriceValidator.validate(records)
        cache.set(key, records)
        return records
    except Exception as exc:
        logger.error(
            "[%s] Search failed: %s", source_id, exc, exc_info=True,
        )
        return []
