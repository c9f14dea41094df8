# main.py

"""Entry point for the pharma_prices engine (interactive or headless CLI)."""

import argparse
import asyncio
import logging
import sys

from src.config.logging_config import setup_logging
from src.config.settings import Settings

logger = logging.getLogger("pharma_prices.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    valid_ids = ", ".join(s["id"] for s in Settings.AVAILABLE_SOURCES)

    parser = argparse.ArgumentParser(
        prog="pharma_prices",
        description=(
            "Pharmacy price discovery and competitive analysis engine."
        ),
        epilog=f"Price sources: {valid_ids}",
    )
    parser.add_argument(
        "query",
        nargs="?",
        default=None,
        help=(
            "Drug name, active ingredient or barcode. Separate several "
            "with ';'. Omit to start an interactive session."
        ),
    )
    parser.add_argument(
        "-r",
        "--region",
        default=Settings.DEFAULT_REGION,
        help="Two-letter state code (default: %(default)s).",
    )
    parser.add_argument(
        "-p",
        "--pharmacy",
        default=None,
        dest="pharmacy_id",
        help="Pharmacy ID (default: PHARMACY_ID from the environment).",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="json",
        dest="output_format",
        help="Output format (default: json).",
    )
    parser.add_argument(
        "--history",
        type=int,
        nargs="?",
        const=20,
        default=None,
        metavar="N",
        help="Show the N most recent analyses (default N: 20).",
    )
    parser.add_argument(
        "--seed-demo",
        action="store_true",
        default=False,
        dest="seed_demo",
        help="Insert demo catalog products for the pharmacy.",
    )
    parser.add_argument(
        "--health",
        action="store_true",
        default=False,
        help="Run a connectivity health check on all price sources.",
    )
    return parser


def _run_interactive(args: argparse.Namespace) -> None:
    """Start the interactive prompt session."""
    from src.cli.runner import run_interactive

    try:
        exit_code = asyncio.run(
            run_interactive(
                region=args.region, pharmacy_id=args.pharmacy_id,
            )
        )
    except Exception:
        logger.critical("Fatal error in interactive session", exc_info=True)
        raise
    finally:
        logger.info("pharma_prices interactive session shutting down")
    sys.exit(exit_code)


def _run_cli(args: argparse.Namespace) -> None:
    """Run headless analyses and exit."""
    from src.cli.runner import cli_analyze

    exit_code = asyncio.run(
        cli_analyze(
            query=args.query,
            region=args.region,
            pharmacy_id=args.pharmacy_id,
            output_format=args.output_format,
        )
    )
    sys.exit(exit_code)


def _run_history(args: argparse.Namespace) -> None:
    """Print recent analyses from the audit trail."""
    from src.cli.runner import run_history

    exit_code = asyncio.run(
        run_history(
            pharmacy_id=args.pharmacy_id,
            limit=args.history,
            output_format=args.output_format,
        )
    )
    sys.exit(exit_code)


def _run_seed_demo(args: argparse.Namespace) -> None:
    """Seed the demo catalog."""
    from src.cli.runner import run_seed_demo

    sys.exit(run_seed_demo(args.pharmacy_id))


def _run_health_check() -> None:
    """Run price source connectivity health check."""
    from src.cli.runner import run_health_check

    exit_code = asyncio.run(run_health_check())
    sys.exit(exit_code)


def main() -> None:
    """Route to the interactive session (no query) or the headless CLI."""
    log_file = setup_logging()
    logger.info("pharma_prices starting, log file: %s", log_file)

    parser = _build_parser()
    args = parser.parse_args()

    if args.seed_demo:
        _run_seed_demo(args)
    elif args.health:
        _run_health_check()
    elif args.history is not None:
        _run_history(args)
    elif args.query is None:
        _run_interactive(args)
    else:
        _run_cli(args)


if __name__ == "__main__":
    main()
