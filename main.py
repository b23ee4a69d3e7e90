# main.py

"""Entry point for the ratewatch command-line interface."""

import argparse
import asyncio
import logging
import sys

from ratewatch.config.logging_config import setup_logging
from ratewatch.config.settings import Settings
from ratewatch.services.updates_timeline import UPDATE_TYPES

logger = logging.getLogger("ratewatch.main")


def _add_format_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="table",
        dest="output_format",
        help="Output format (default: table).",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="ratewatch",
        description="Mortgage rate history: snapshots, trends and changes.",
        epilog=f"Rate types: {', '.join(Settings.RATE_TYPE_KEYS)}",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    snapshot = sub.add_parser(
        "snapshot", help="Show a lender's rates at a point in time.",
    )
    snapshot.add_argument("lender", help="Lender ID, e.g. aib.")
    snapshot.add_argument(
        "--at", default=None, help="Date (YYYY-MM-DD). Default: now.",
    )
    _add_format_option(snapshot)

    series = sub.add_parser(
        "series", help="Show how one rate moved over time.",
    )
    series.add_argument("lender", help="Lender ID.")
    series.add_argument("rate_id", help="Rate ID.")
    series.add_argument(
        "--chart",
        action="store_true",
        default=False,
        help="Also export an HTML chart and open it.",
    )
    _add_format_option(series)

    changes = sub.add_parser(
        "changes", help="List rate updates across lenders.",
    )
    changes.add_argument(
        "-l", "--lenders", default=None,
        help="Comma-separated lender IDs (default: all).",
    )
    changes.add_argument("--start", default=None, help="Window start.")
    changes.add_argument("--end", default=None, help="Window end.")
    changes.add_argument(
        "-t",
        "--type",
        choices=list(UPDATE_TYPES),
        default="all",
        dest="change_type",
        help="Kind of change to show (default: all).",
    )
    _add_format_option(changes)

    compare = sub.add_parser(
        "compare", help="Compare rates between two dates.",
    )
    compare.add_argument("--start", required=True, help="Start date.")
    compare.add_argument(
        "--end", default=None, help="End date (default: current rates).",
    )
    compare.add_argument(
        "-l", "--lenders", default=None,
        help="Comma-separated lender IDs (default: all).",
    )
    compare.add_argument(
        "--rate-type", default=None, help="e.g. variable or fixed-3.",
    )
    compare.add_argument(
        "--buyer",
        choices=["all", "pdh", "btl"],
        default="all",
        help="Buyer category (default: all).",
    )
    compare.add_argument(
        "--max-ltv", type=float, default=None, help="Maximum LTV cap.",
    )
    compare.add_argument(
        "-q", "--search", default=None,
        help="Filter by rate or lender name.",
    )
    compare.add_argument(
        "--status", default=None,
        help="Comma-separated statuses to show (default: all but unchanged).",
    )
    _add_format_option(compare)

    sub.add_parser(
        "validate", help="Check history files against current rates.",
    )
    return parser


def _dispatch(args: argparse.Namespace) -> int:
    """Run the selected sub-command and return its exit code."""
    from ratewatch.cli import runner

    if args.command == "snapshot":
        coro = runner.run_snapshot(args.lender, args.at, args.output_format)
    elif args.command == "series":
        coro = runner.run_series(
            args.lender, args.rate_id, args.output_format, chart=args.chart,
        )
    elif args.command == "changes":
        coro = runner.run_changes(
            args.lenders,
            args.start,
            args.end,
            args.change_type,
            args.output_format,
        )
    elif args.command == "compare":
        coro = runner.run_compare(
            start=args.start,
            end=args.end,
            lender_csv=args.lenders,
            rate_type=args.rate_type,
            buyer_category=args.buyer,
            max_ltv=args.max_ltv,
            search=args.search,
            status_csv=args.status,
            output_format=args.output_format,
        )
    else:
        coro = runner.run_validate()
    return asyncio.run(coro)


def main() -> None:
    """Parse arguments and run the requested command."""
    log_file = setup_logging()
    logger.info("ratewatch starting, log file: %s", log_file)

    parser = _build_parser()
    args = parser.parse_args()

    try:
        exit_code = _dispatch(args)
    except Exception:
        logger.critical("Fatal error during %s", args.command, exc_info=True)
        raise
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
