# src/storage/catalog_store.py

"""Pharmacy catalog lookup and price-analysis audit trail (SQLite)."""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Protocol

from src.config.settings import Settings
from src.errors import PersistenceFailure
from src.models.catalog_product import CatalogProduct
from src.models.price_analysis import PriceAnalysis

logger = logging.getLogger("pharma_prices.catalog")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS catalog_products (
    id                TEXT    PRIMARY KEY,
    pharmacy_id       TEXT    NOT NULL,
    name              TEXT    NOT NULL,
    barcode           TEXT,
    active_ingredient TEXT,
    manufacturer      TEXT,
    sell_price        TEXT    NOT NULL,
    cost_price        TEXT    NOT NULL,
    current_stock     INTEGER NOT NULL DEFAULT 0,
    active            INTEGER NOT NULL DEFAULT 1
);

CREATE INDEX IF NOT EXISTS idx_catalog_pharmacy
    ON catalog_products(pharmacy_id, active);

CREATE TABLE IF NOT EXISTS price_analyses (
    id                   INTEGER PRIMARY KEY AUTOINCREMENT,
    pharmacy_id          TEXT    NOT NULL,
    product_id           TEXT    NOT NULL,
    local_price          TEXT    NOT NULL,
    market_average_price TEXT    NOT NULL,
    market_min_price     TEXT,
    market_max_price     TEXT,
    competitive_position TEXT    NOT NULL,
    price_delta_percent  TEXT    NOT NULL,
    margin_percent       TEXT    NOT NULL,
    sources              TEXT    NOT NULL,
    external_prices      TEXT    NOT NULL,
    recommendation       TEXT    NOT NULL,
    has_synthetic_data   INTEGER NOT NULL DEFAULT 0,
    created_at           TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_analyses_pharmacy_date
    ON price_analyses(pharmacy_id, created_at);
"""

_PRODUCT_COLUMNS = (
    "id, name, sell_price, cost_price, current_stock, "
    "active_ingredient, manufacturer, barcode"
)


def _casefold(value: str | None) -> str:
    return value.casefold() if value else ""


class CatalogStore(Protocol):
    """Storage collaborator consumed by the price analyzer."""

    def find_catalog_product(
        self, pharmacy_id: str, term: str,
    ) -> CatalogProduct | None:
        """First active product matching ``term``, or ``None``."""
        ...

    def persist_analysis(
        self, pharmacy_id: str, analysis: PriceAnalysis,
    ) -> None:
        """Write an audit record; raises ``PersistenceFailure``."""
        ...


class SqliteCatalogStore:
    """SQLite-backed catalog and audit store."""

    def __init__(
        self, db_path: Path | str | None = None,
    ) -> None:
        path = db_path or Settings.CATALOG_DB_PATH
        if str(path) != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(
            str(path), check_same_thread=False,
        )
        self._conn.row_factory = sqlite3.Row
        # SQLite's own lower() only folds ASCII ("Ácido" would not match)
        self._conn.create_function(
            "casefold", 1, _casefold, deterministic=True,
        )
        self._conn.executescript(_SCHEMA)
        logger.debug("SqliteCatalogStore opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # ── Catalog ──────────────────────────────────────────

    def add_product(
        self, pharmacy_id: str, product: CatalogProduct,
    ) -> None:
        """Insert or replace a catalog product."""
        self._conn.execute(
            "INSERT OR REPLACE INTO catalog_products "
            "(id, pharmacy_id, name, barcode, active_ingredient, "
            "manufacturer, sell_price, cost_price, current_stock) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                product.id,
                pharmacy_id,
                product.name,
                product.barcode,
                product.active_ingredient,
                product.manufacturer,
                str(product.sell_price),
                str(product.cost_price),
                product.current_stock,
            ),
        )
        self._conn.commit()

    def find_catalog_product(
        self, pharmacy_id: str, term: str,
    ) -> CatalogProduct | None:
        """Find the first active product matching ``term``.

        Matches a case-insensitive substring of the name or active
        ingredient, or the exact barcode.
        """
        needle = term.strip()
        if not needle:
            return None
        row = self._conn.execute(
            f"SELECT {_PRODUCT_COLUMNS} FROM catalog_products "
            "WHERE pharmacy_id = ? AND active = 1 AND ("
            "instr(casefold(name), ?) > 0 "
            "OR instr(casefold(active_ingredient), ?) > 0 "
            "OR barcode = ?) "
            "ORDER BY rowid LIMIT 1",
            (pharmacy_id, needle.casefold(), needle.casefold(), needle),
        ).fetchone()
        if row is None:
            logger.info(
                "No catalog product for '%s' (pharmacy=%s)",
                term,
                pharmacy_id,
            )
            return None
        return CatalogProduct(
            id=row["id"],
            name=row["name"],
            sell_price=row["sell_price"],
            cost_price=row["cost_price"],
            current_stock=row["current_stock"],
            active_ingredient=row["active_ingredient"],
            manufacturer=row["manufacturer"],
            barcode=row["barcode"],
        )

    # ── Audit trail ──────────────────────────────────────

    def persist_analysis(
        self, pharmacy_id: str, analysis: PriceAnalysis,
    ) -> None:
        """Append one analysis to the audit trail.

        Raises:
            PersistenceFailure: the insert failed.
        """
        external = [
            {
                "source": r.source_name,
                "vendor": r.vendor_label,
                "price": str(r.price),
                "available": r.available,
                "region": r.region,
                "url": r.origin_url,
                "synthetic": r.is_synthetic,
            }
            for r in analysis.external_prices
        ]
        market_min = analysis.market_min_price
        market_max = analysis.market_max_price
        try:
            self._conn.execute(
                "INSERT INTO price_analyses "
                "(pharmacy_id, product_id, local_price, "
                "market_average_price, market_min_price, "
                "market_max_price, competitive_position, "
                "price_delta_percent, margin_percent, sources, "
                "external_prices, recommendation, has_synthetic_data, "
                "created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    pharmacy_id,
                    analysis.local_product.id,
                    str(analysis.local_product.sell_price),
                    str(analysis.market_average_price),
                    str(market_min) if market_min is not None else None,
                    str(market_max) if market_max is not None else None,
                    analysis.competitive_position.value,
                    str(analysis.price_delta_percent),
                    str(analysis.current_margin_percent),
                    json.dumps(analysis.source_names),
                    json.dumps(external, ensure_ascii=False),
                    analysis.recommendation_text,
                    int(analysis.has_synthetic_data),
                    analysis.analyzed_at.isoformat(),
                ),
            )
            self._conn.commit()
        except sqlite3.Error as exc:
            raise PersistenceFailure(
                f"Could not save analysis: {exc}",
                context={
                    "pharmacy_id": pharmacy_id,
                    "product_id": analysis.local_product.id,
                },
            ) from exc
        logger.info(
            "Saved analysis of %s (pharmacy=%s)",
            analysis.local_product.id,
            pharmacy_id,
        )

    def list_analyses(
        self,
        pharmacy_id: str,
        product_id: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Past analyses for a pharmacy, newest first."""
        sql = (
            "SELECT a.id, a.product_id, p.name AS product_name, "
            "a.local_price, a.market_average_price, a.market_min_price, "
            "a.market_max_price, a.competitive_position, "
            "a.price_delta_percent, a.margin_percent, a.sources, "
            "a.recommendation, a.has_synthetic_data, a.created_at "
            "FROM price_analyses a "
            "LEFT JOIN catalog_products p ON p.id = a.product_id "
            "WHERE a.pharmacy_id = ?"
        )
        params: list[Any] = [pharmacy_id]
        if product_id is not None:
            sql += " AND a.product_id = ?"
            params.append(product_id)
        sql += " ORDER BY a.created_at DESC, a.id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        rows = self._conn.execute(sql, params).fetchall()
        history: list[dict[str, Any]] = []
        for row in rows:
            item = dict(row)
            item["sources"] = json.loads(item["sources"])
            item["has_synthetic_data"] = bool(item["has_synthetic_data"])
            history.append(item)
        return history
