# src/filters/price_validator.py

"""Price record validation: drop records that must not be compared."""

import logging

from src.models.price_record import PriceRecord

logger = logging.getLogger("pharma_prices.filters")


class PriceValidator:
    """Validate price records and drop those with missing essentials."""

    @staticmethod
    def validate(
        records: list[PriceRecord],
    ) -> tuple[list[PriceRecord], int]:
        """Drop records with blank vendor labels or non-positive prices.

        Returns the valid records and the count of dropped items.
        """
        valid: list[PriceRecord] = []
        dropped = 0

        for record in records:
            if not record.vendor_label.strip():
                logger.debug(
                    "Dropped record with empty vendor "
                    "(source=%s, url=%s)",
                    record.source_name,
                    record.origin_url,
                )
                dropped += 1
                continue
            if record.price <= 0:
                logger.debug(
                    "Dropped record with zero/negative "
                    "price (vendor=%s, source=%s)",
                    record.vendor_label,
                    record.source_name,
                )
                dropped += 1
                continue
            valid.append(record)

        if dropped:
            logger.info(
                "Validation dropped %d invalid price records",
                dropped,
            )

        return valid, dropped
