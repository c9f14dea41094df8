# src/storage/price_cache.py

"""In-memory TTL cache of per-source price results."""

import logging
import threading
import time
from dataclasses import dataclass

from src.config.settings import Settings
from src.models.price_record import PriceRecord

logger = logging.getLogger("pharma_prices.cache")


@dataclass
class CacheEntry:
    """Records fetched for one (source, term, region) fingerprint."""

    key: str
    records: list[PriceRecord]
    stored_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        """True once more than ``ttl`` seconds have passed since storing."""
        return now - self.stored_at > self.ttl


class PriceCache:
    """Process-local cache shared by every source client.

    Expiry is lazy: an entry past its TTL is dropped by the ``get`` that
    finds it.  The cache is an optimisation only, so a disabled cache
    (``enabled=False``) always misses and never stores.
    """

    def __init__(
        self,
        default_ttl: float | None = None,
        enabled: bool | None = None,
    ) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._default_ttl: float = (
            default_ttl
            if default_ttl is not None
            else Settings.PRICE_CACHE_TTL
        )
        self.enabled: bool = (
            enabled if enabled is not None
            else Settings.PRICE_CACHE_ENABLED
        )

    @staticmethod
    def make_key(source: str, term: str, region: str) -> str:
        """Build the fingerprint for a source query.

        The term is case-folded so ``Dipirona`` and ``dipirona`` share
        an entry.
        """
        return (
            f"{source}:{term.strip().lower()}:{region.strip().upper()}"
        )

    def get(self, key: str) -> list[PriceRecord] | None:
        """Return the cached records, or ``None`` on miss or expiry."""
        if not self.enabled:
            return None
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(time.time()):
                del self._entries[key]
                logger.debug("Evicted expired cache entry '%s'", key)
                return None
            return list(entry.records)

    def set(
        self,
        key: str,
        records: list[PriceRecord],
        ttl: float | None = None,
    ) -> None:
        """Store records under ``key``, replacing any previous entry."""
        if not self.enabled:
            return
        entry = CacheEntry(
            key=key,
            records=list(records),
            stored_at=time.time(),
            ttl=ttl if ttl is not None else self._default_ttl,
        )
        with self._lock:
            self._entries[key] = entry
        logger.info("Cached %d records for '%s'", len(records), key)

    def clear(self) -> int:
        """Purge all cached entries.

        Returns the number of entries that were removed.
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info("Cache manually purged (%d entries removed)", count)
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
