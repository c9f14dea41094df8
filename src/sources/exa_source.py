# src/sources/exa_source.py

"""Exa web search over Brazilian online pharmacies.

Exa returns ranked documents, not prices, so each hit is mined for a
vendor name (from its URL) and a ``R$ 12,34``-style amount (from its
title and text).
"""

import logging
import random
import re
from decimal import Decimal
from typing import Any
from urllib.parse import urlparse

from src.config.settings import Settings
from src.models.price_record import PriceRecord, to_money
from src.sources.base_source import (
    parse_items,
    parse_json_response,
    run_source_search,
    synthetic_records,
)
from src.sources.http_transport import HttpTransport
from src.storage.price_cache import PriceCache

# "R$ 12,34", "R$1.234,56", "R$ 15" (Brazilian thousands/decimal marks).
# Without a thousands group, ".dd" is read as cents: "R$ 12.90" is 12.90.
_BRL_PRICE_RE = re.compile(
    r"R\$\s*(\d{1,3}(?:\.\d{3})+|\d+)"
    r"(?:,(\d{1,2})|\.(\d{2})(?!\d))?"
)

_DOCUMENT_PRICE_FACTORS: list[float] = [1.0, 1.06, 0.94, 1.12]


def extract_brl_price(
    text: str,
    min_price: float = Settings.MIN_PLAUSIBLE_PRICE,
    max_price: float = Settings.MAX_PLAUSIBLE_PRICE,
) -> Decimal | None:
    """Return the first BRL amount in ``text`` within the plausible range.

    Amounts outside ``[min_price, max_price]`` (shipping thresholds,
    instalment totals, kit prices) are skipped.
    """
    for match in _BRL_PRICE_RE.finditer(text):
        whole = match.group(1).replace(".", "")
        cents = (match.group(2) or match.group(3) or "0").ljust(2, "0")
        value = Decimal(f"{whole}.{cents}")
        if Decimal(str(min_price)) <= value <= Decimal(str(max_price)):
            return value
    return None


def vendor_from_document(
    url: str,
    title: str,
    domain_labels: dict[str, str] | None = None,
) -> str:
    """Resolve a vendor label from a document's URL or title.

    Known pharmacy domains map to their display label; otherwise the
    primary segment of the host name is used (``www.farmax.com.br`` ->
    ``Farmax``).
    """
    labels = (
        domain_labels if domain_labels is not None
        else Settings.PHARMACY_DOMAINS
    )
    host = (urlparse(url).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]

    for domain, label in labels.items():
        if host == domain or host.endswith(f".{domain}"):
            return label

    lowered_title = title.lower()
    for domain, label in labels.items():
        if domain.split(".")[0] in lowered_title:
            return label

    if not host:
        return "N/A"
    return host.split(".")[0].capitalize()


class ExaSearchSource:
    """Ranked-document search restricted to known pharmacy domains."""

    source_id = "exa"
    SYNTHETIC_VENDORS: list[tuple[str, float]] = [
        ("Drogasil", 1.04),
        ("Panvel", 0.97),
        ("Drogaria Araujo", 1.09),
        ("Farmácias Nissei", 0.93),
    ]

    def __init__(
        self,
        cache: PriceCache,
        transport: HttpTransport,
        rng: random.Random | None = None,
    ) -> None:
        self.logger = logging.getLogger("pharma_prices.exa")
        self.settings = Settings()
        self.cache = cache
        self.transport = transport
        self.rng = rng or random.Random()
        self.api_key: str = self.settings.EXA_API_KEY
        self.base_url: str = self.settings.EXA_BASE_URL
        self.use_synthetic: bool = self.settings.USE_SYNTHETIC_DATA

    @property
    def live(self) -> bool:
        """True when real network calls should be attempted."""
        return bool(self.api_key) and not self.use_synthetic

    async def search(
        self, term: str, region: str = "SP",
    ) -> list[PriceRecord]:
        """Search pharmacy pages for prices of ``term``."""
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

    def _build_payload(self, term: str, region: str) -> dict[str, Any]:
        return {
            "query": f"{term} preço farmácia {region}",
            "numResults": self.settings.EXA_NUM_RESULTS,
            "includeDomains": list(self.settings.PHARMACY_DOMAINS),
            "contents": {"text": {"maxCharacters": 2000}},
        }

    async def _fetch(self, term: str, region: str) -> list[PriceRecord]:
        resp = await self.transport.post(
            f"{self.base_url}{self.settings.EXA_SEARCH_PATH}",
            self._build_payload(term, region),
            headers={
                "x-api-key": self.api_key,
                "Content-Type": "application/json",
            },
        )
        data = parse_json_response(resp, self.source_id)
        results = data.get("results") or []
        records = parse_items(
            results,
            lambda doc: self._parse_document(doc, region),
            self.source_id,
        )
        documents: list[dict[str, Any]] = [
            doc for doc in results if isinstance(doc, dict)
        ]

        self.logger.info(
            "[exa] %d documents, %d with prices for '%s'",
            len(documents),
            len(records),
            term,
        )
        if records:
            return records
        if documents:
            return self._synthesize_from_documents(documents, region)
        return self._synthesize(region)

    def _parse_document(
        self, doc: dict[str, Any], region: str,
    ) -> PriceRecord | None:
        """Extract a priced record from one search hit, if it has one."""
        url = str(doc.get("url") or "")
        title = str(doc.get("title") or "")
        text = str(doc.get("text") or "")
        price = extract_brl_price(f"{title}\n{text}")
        if price is None:
            return None
        return PriceRecord(
            source_name=self.source_id,
            vendor_label=vendor_from_document(url, title),
            price=price,
            available=True,
            region=region,
            origin_url=url or None,
        )

    def _synthesize_from_documents(
        self, documents: list[dict[str, Any]], region: str,
    ) -> list[PriceRecord]:
        """Estimate prices when hits exist but none shows an amount.

        One record per document (up to four), labelled with the vendor
        the document came from.
        """
        base = 12.0 + self.rng.random() * 16.0
        records: list[PriceRecord] = []
        for doc, factor in zip(documents, _DOCUMENT_PRICE_FACTORS):
            url = str(doc.get("url") or "")
            records.append(
                PriceRecord(
                    source_name=self.source_id,
                    vendor_label=vendor_from_document(
                        url, str(doc.get("title") or "")
                    ),
                    price=to_money(base * factor),
                    available=True,
                    region=region,
                    origin_url=url or None,
                    is_synthetic=True,
                )
            )
        self.logger.warning(
            "[exa] No parseable prices, estimated %d from documents",
            len(records),
        )
        return records

    def _synthesize(self, region: str) -> list[PriceRecord]:
        return synthetic_records(
            self.source_id,
            self.SYNTHETIC_VENDORS,
            region,
            self.rng,
            base_min=12.0,
            base_span=16.0,
        )
