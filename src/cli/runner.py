# src/cli/runner.py

"""Headless CLI runner and interactive session around PricingService."""

import json
import logging
import sys
from decimal import Decimal
from typing import Any

from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from src.config.settings import Settings
from src.errors import InvalidRequestError, NotFoundError
from src.models.catalog_product import CatalogProduct
from src.models.price_analysis import CompetitivePosition, PriceAnalysis
from src.services.price_aggregator import PriceAggregator
from src.services.pricing_service import PricingService
from src.storage.catalog_store import SqliteCatalogStore

logger = logging.getLogger("pharma_prices.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)

_POSITION_STYLES: dict[CompetitivePosition, str] = {
    CompetitivePosition.BELOW: "green",
    CompetitivePosition.AVERAGE: "yellow",
    CompetitivePosition.ABOVE: "red",
}

DEMO_PRODUCTS: list[CatalogProduct] = [
    CatalogProduct(
        id="123e4567-e89b-12d3-a456-426614174000",
        name="Dipirona Monoidratada 500mg",
        sell_price=Decimal("12.50"),
        cost_price=Decimal("8.00"),
        current_stock=150,
        active_ingredient="Dipirona Monoidratada",
        manufacturer="EMS",
        barcode="7891234567890",
    ),
    CatalogProduct(
        id="123e4567-e89b-12d3-a456-426614174001",
        name="Paracetamol 750mg",
        sell_price=Decimal("8.90"),
        cost_price=Decimal("5.50"),
        current_stock=200,
        active_ingredient="Paracetamol",
        manufacturer="Medley",
        barcode="7891234567891",
    ),
]


def _money(value: Decimal | None) -> str | None:
    return None if value is None else f"{value:.2f}"


def analysis_to_dict(
    analysis: PriceAnalysis,
) -> dict[str, Any]:
    """Serialise an analysis to plain JSON-safe types."""
    product = analysis.local_product
    stats = PriceAggregator.get_statistics(list(analysis.external_prices))
    return {
        "local_product": {
            "id": product.id,
            "name": product.name,
            "sell_price": _money(product.sell_price),
            "cost_price": _money(product.cost_price),
            "current_stock": product.current_stock,
            "active_ingredient": product.active_ingredient,
            "manufacturer": product.manufacturer,
        },
        "external_prices": [
            {
                "source": r.source_name,
                "vendor": r.vendor_label,
                "price": _money(r.price),
                "available": r.available,
                "region": r.region,
                "url": r.origin_url,
                "synthetic": r.is_synthetic,
            }
            for r in analysis.external_prices
        ],
        "market_average_price": _money(analysis.market_average_price),
        "competitive_position": analysis.competitive_position.value,
        "price_delta_percent": f"{analysis.price_delta_percent:.1f}",
        "recommendation": analysis.recommendation_text,
        "current_margin_percent": (
            f"{analysis.current_margin_percent:.1f}"
        ),
        "has_synthetic_data": analysis.has_synthetic_data,
        "statistics": None if stats is None else {
            "count": stats.count,
            "min": _money(stats.min),
            "max": _money(stats.max),
            "average": _money(stats.average),
            "median": _money(stats.median),
            "standard_deviation": _money(stats.standard_deviation),
        },
        "analyzed_at": analysis.analyzed_at.isoformat(),
    }


def _print_analysis(analysis: PriceAnalysis) -> None:
    """Render an analysis as a Rich summary plus a price table."""
    console = Console()
    product = analysis.local_product
    style = _POSITION_STYLES[analysis.competitive_position]

    console.print(
        f"[bold]{product.name}[/bold]  "
        f"R$ {product.sell_price:.2f}  "
        f"[dim]margin {analysis.current_margin_percent:.1f}%[/dim]"
    )
    console.print(
        f"Market average R$ {analysis.market_average_price:.2f}  "
        f"[{style}]{analysis.competitive_position.value} "
        f"({analysis.price_delta_percent:+.1f}%)[/{style}]"
    )
    console.print(f"[italic]{analysis.recommendation_text}[/italic]")
    if analysis.has_synthetic_data:
        console.print(
            "[yellow]⚠ Some market prices are estimates, "
            "not live quotes.[/yellow]"
        )

    table = Table(
        title="Market Prices",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("Vendor", max_width=40)
    table.add_column("Price", justify="right", style="green")
    table.add_column("Available", justify="center")
    table.add_column("Source", style="magenta")
    table.add_column("Data", justify="center")

    for idx, r in enumerate(analysis.external_prices, 1):
        table.add_row(
            str(idx),
            r.vendor_label,
            f"R$ {r.price:.2f}",
            "yes" if r.available else "no",
            r.source_name,
            "estimate" if r.is_synthetic else "live",
        )

    console.print(table)


async def _analyze_terms(
    service: PricingService,
    terms: list[str],
    region: str,
) -> tuple[list[PriceAnalysis], int]:
    """Analyse each term in turn; returns successes and failure count."""
    analyses: list[PriceAnalysis] = []
    failures = 0
    for term in terms:
        try:
            analyses.append(
                await service.analyze({"term": term, "region": region})
            )
        except NotFoundError as exc:
            failures += 1
            _err.print(f"[red]{exc}[/red]")
        except InvalidRequestError as exc:
            failures += 1
            _err.print(f"[red]Invalid request: {exc}[/red]")
    return analyses, failures


async def cli_analyze(
    query: str,
    region: str,
    pharmacy_id: str | None,
    output_format: str,
) -> int:
    """Run headless analyses and return an exit code (0=ok, 1=fail).

    ``query`` may hold several terms separated by ``;``; they are analysed
    sequentially and share the price cache.
    """
    terms = [t.strip() for t in query.split(";") if t.strip()]
    if not terms:
        _err.print("[red]No search term given.[/red]")
        return 1

    logger.info(
        "CLI analysis: terms=%s, region=%s, format=%s",
        terms,
        region,
        output_format,
    )
    service = PricingService(pharmacy_id=pharmacy_id)
    try:
        _err.print(
            f"[bold]Analysing:[/bold] {', '.join(terms)}  "
            f"[dim]region={region.upper()}[/dim]"
        )
        analyses, failures = await _analyze_terms(service, terms, region)
    finally:
        await service.close()

    if output_format == "table":
        for analysis in analyses:
            _print_analysis(analysis)
    else:
        json.dump(
            [analysis_to_dict(a) for a in analyses],
            sys.stdout,
            ensure_ascii=False,
            indent=2,
        )
        sys.stdout.write("\n")

    return 1 if failures else 0


async def run_interactive(
    region: str, pharmacy_id: str | None,
) -> int:
    """Prompt for drug names until the user quits.

    ``:clear`` empties the price cache, ``:history`` lists recent
    analyses and ``:quit`` exits.
    """
    service = PricingService(pharmacy_id=pharmacy_id)
    _err.print(
        "[bold cyan]pharma_prices[/bold cyan] "
        "[dim](:clear, :history, :quit)[/dim]"
    )
    try:
        while True:
            line = Prompt.ask("[bold]Drug[/bold]", console=_err).strip()
            if not line:
                continue
            if line == ":quit":
                break
            if line == ":clear":
                removed = service.clear_cache()
                _err.print(f"[dim]Cache cleared ({removed} entries)[/dim]")
                continue
            if line == ":history":
                _print_history(await service.history())
                continue
            analyses, _ = await _analyze_terms(service, [line], region)
            for analysis in analyses:
                _print_analysis(analysis)
    except (EOFError, KeyboardInterrupt):
        _err.print()
    finally:
        await service.close()
    return 0


def _print_history(history: list[dict[str, Any]]) -> None:
    table = Table(
        title="Analysis History",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("When", style="dim")
    table.add_column("Product")
    table.add_column("Local", justify="right")
    table.add_column("Market avg", justify="right")
    table.add_column("Position", justify="center")
    table.add_column("Sources", style="magenta")

    for item in history:
        table.add_row(
            item["created_at"][:19],
            item["product_name"] or item["product_id"],
            item["local_price"],
            item["market_average_price"],
            item["competitive_position"],
            ", ".join(item["sources"]) or "—",
        )
    Console().print(table)


async def run_history(
    pharmacy_id: str | None, limit: int, output_format: str,
) -> int:
    """Print the most recent analyses for a pharmacy."""
    service = PricingService(pharmacy_id=pharmacy_id)
    try:
        history = await service.history(limit=limit)
    finally:
        await service.close()

    if not history:
        _err.print("[yellow]No analyses recorded yet.[/yellow]")
        return 0
    if output_format == "table":
        _print_history(history)
    else:
        json.dump(history, sys.stdout, ensure_ascii=False, indent=2)
        sys.stdout.write("\n")
    return 0


def run_seed_demo(pharmacy_id: str | None) -> int:
    """Insert the demo catalog products for a pharmacy."""
    target = pharmacy_id or Settings.DEFAULT_PHARMACY_ID
    store = SqliteCatalogStore()
    try:
        for product in DEMO_PRODUCTS:
            store.add_product(target, product)
    finally:
        store.close()
    _err.print(
        f"[green]✓ Seeded {len(DEMO_PRODUCTS)} demo products "
        f"for pharmacy {target}[/green]"
    )
    return 0


async def run_health_check() -> int:
    """Run configuration/connectivity checks on all sources."""
    from src.services.health_checker import HealthChecker

    _err.print("[bold]Running price source health check...[/bold]")
    aggregator = PriceAggregator()
    try:
        checker = HealthChecker(aggregator.sources, aggregator.transport)
        results = await checker.check_all()
    finally:
        await aggregator.close()

    table = Table(
        title="Source Health Check",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Source", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Latency", justify="right")
    table.add_column("Notes", style="dim")

    any_down = False
    for r in results:
        if r.status == "ok":
            status = "[green]✅ OK[/green]"
        elif r.status == "slow":
            status = "[yellow]⚠️  SLOW[/yellow]"
        elif r.status == "synthetic":
            status = "[cyan]◌ SYNTHETIC[/cyan]"
        else:
            status = "[red]❌ DOWN[/red]"
            any_down = True

        latency = (
            f"{r.latency_ms:.0f}ms"
            if r.latency_ms > 0
            else "—"
        )
        table.add_row(
            r.source_id, status, latency, r.message,
        )

    Console().print(table)
    return 1 if any_down else 0
