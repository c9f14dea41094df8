# src/filters/deduplicator.py

"""Price record deduplication within each source."""

import logging

from src.models.price_record import PriceRecord

logger = logging.getLogger("pharma_prices.filters")


class PriceDeduplicator:
    """Keep one record per vendor per source.

    A vendor reported by two different sources is kept twice, once per
    source, so cross-source comparisons stay visible.
    """

    @staticmethod
    def _identity(record: PriceRecord) -> tuple[str, str]:
        return (record.vendor_label, record.source_name)

    @staticmethod
    def deduplicate(
        records: list[PriceRecord],
    ) -> tuple[list[PriceRecord], int]:
        """Remove repeated (vendor, source) pairs, keeping the first seen.

        Returns the deduplicated list, in discovery order, and the count
        of removed duplicates.
        """
        if not records:
            return [], 0

        seen: set[tuple[str, str]] = set()
        kept: list[PriceRecord] = []
        removed = 0

        for record in records:
            identity = PriceDeduplicator._identity(record)
            if identity in seen:
                removed += 1
                continue
            seen.add(identity)
            kept.append(record)

        if removed:
            logger.info(
                "Deduplication removed %d duplicate price records",
                removed,
            )

        return kept, removed
