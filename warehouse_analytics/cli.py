"""
Command Line Entry Point

Usage:
    warehouse-analytics generate --output-dir data/raw --orders 5000
    warehouse-analytics run --raw-path data/raw --output-path data/curated --format csv
"""

import argparse
import sys
from datetime import date
from typing import List, Optional

from warehouse_analytics.config import get_settings
from warehouse_analytics.config.logging import configure_logging, get_logger


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date (expected YYYY-MM-DD): {value}")


def build_parser() -> argparse.ArgumentParser:
    """Argument parser with the run and generate sub-commands"""
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="warehouse-analytics",
        description="Sales warehouse analytics and reports",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"{settings.app_name} {settings.version}",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override log level (DEBUG, INFO, WARNING, ERROR)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Load the CSV files and build every analytical table")
    run.add_argument("--raw-path", default=None, help="Directory holding the source CSV files")
    run.add_argument("--output-path", default=None, help="Directory receiving the analytical tables")
    run.add_argument("--format", dest="output_format", choices=["parquet", "csv"], default=None)
    run.add_argument("--as-of", type=_parse_date, default=None, help="Report date (default: today)")

    generate = subparsers.add_parser("generate", help="Write a synthetic sales warehouse as CSV")
    generate.add_argument("--output-dir", default=None, help="Directory receiving the CSV files")
    generate.add_argument("--customers", type=int, default=1000)
    generate.add_argument("--products", type=int, default=300)
    generate.add_argument("--orders", type=int, default=10000)
    generate.add_argument("--seed", type=int, default=42)

    return parser


def _run(args: argparse.Namespace) -> int:
    from warehouse_analytics.pipeline import AnalyticsPipeline

    log = get_logger(__name__)
    pipeline = AnalyticsPipeline(
        output_path=args.output_path,
        output_format=args.output_format,
        as_of=args.as_of,
    )
    run = pipeline.run_from_csv(args.raw_path)

    for name, result in run.validation.items():
        log.info(f"Validation {name}: {result.status.value}", success_rate=round(result.success_rate, 1))

    if run.failed_analyses:
        log.error("Some analyses failed", tables=run.failed_analyses)
        return 1
    return 0


def _generate(args: argparse.Namespace) -> int:
    from warehouse_analytics.data import generate_dataset

    generate_dataset(
        output_dir=args.output_dir,
        n_customers=args.customers,
        n_products=args.products,
        n_orders=args.orders,
        seed=args.seed,
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    settings = get_settings()
    get_logger(__name__).info(
        f"Starting {settings.app_name} {args.command}",
        version=settings.version,
        env=settings.app_env,
    )

    commands = {
        "run": _run,
        "generate": _generate,
    }
    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
