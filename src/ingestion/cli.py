"""Command line entry points for vintage ingestion.

Usage:
    python -m src.ingestion.cli init-db
    python -m src.ingestion.cli ingest-one bordeaux 2020
    python -m src.ingestion.cli ingest-range mendoza 2010 2020 --skip-existing
    python -m src.ingestion.cli backfill --start 1960 --end 2024
    python -m src.ingestion.cli refresh
    python -m src.ingestion.cli show bordeaux --start 2015
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence

from src.shared.api.errors import ConfigurationError
from src.shared.config.logging import configure_logging, get_logger
from src.shared.config.settings import get_settings
from src.shared.db.connection import DatabaseManager
from src.shared.db.migrate import init_schema
from src.shared.db.repositories.vintage import VintageRepository
from src.ingestion.orchestrator import IngestionStats, create_ingestor

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_CONFIG_ERROR = 2
EXIT_DB_UNAVAILABLE = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="grapeyear",
        description="Ingest weather data and score wine vintages",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    parser.add_argument(
        "--log-format",
        choices=["json", "console"],
        default=None,
        help="Override LOG_FORMAT",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create missing database tables")

    one = sub.add_parser("ingest-one", help="Ingest a single vintage (narrow window)")
    one.add_argument("region", help="Region slug")
    one.add_argument("year", type=int, help="Vintage year")

    rng = sub.add_parser("ingest-range", help="Ingest a span of vintages for one region")
    rng.add_argument("region", help="Region slug")
    rng.add_argument("start", type=int, help="First vintage year")
    rng.add_argument("end", type=int, help="Last vintage year")
    rng.add_argument("--skip-existing", action="store_true", help="Leave stored years untouched")

    back = sub.add_parser("backfill", help="Ingest a span of vintages for every region")
    back.add_argument("--start", type=int, default=None, help="First vintage year")
    back.add_argument("--end", type=int, default=None, help="Last vintage year")
    back.add_argument("--regions", nargs="+", default=None, help="Restrict to these slugs")
    back.add_argument("--skip-existing", action="store_true", help="Resume an interrupted run")

    refresh = sub.add_parser("refresh", help="Re-ingest the current and previous vintage")
    refresh.add_argument("--years", type=int, nargs="+", default=None, help="Explicit years")

    show = sub.add_parser("show", help="Print stored vintages for a region")
    show.add_argument("region", help="Region slug")
    show.add_argument("--start", type=int, default=None)
    show.add_argument("--end", type=int, default=None)

    return parser


def _print_stats(stats: IngestionStats) -> None:
    print(json.dumps(stats.to_dict(), indent=2, default=str))


def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    db = DatabaseManager(settings.database_url)
    try:
        if not db.health_check():
            print(f"Database unreachable: {db.dialect}", file=sys.stderr)
            return EXIT_DB_UNAVAILABLE

        if args.command == "init-db":
            created = init_schema(db)
            print(f"Created {created} table(s).")
            return EXIT_OK

        if args.command == "show":
            repo = VintageRepository(db)
            for vintage in repo.list_for_region(args.region, args.start, args.end):
                print(
                    f"{vintage.year}  {vintage.score:>3}  {vintage.quality:<12} "
                    f"GDD {vintage.growing_degree_days:>5}  rain {vintage.total_rainfall_mm:>6.1f}mm"
                )
            return EXIT_OK

        ingestor = create_ingestor(settings, db)
        if args.command == "ingest-one":
            stats = ingestor.ingest_single(args.region, args.year)
        elif args.command == "ingest-range":
            stats = ingestor.ingest_range(
                args.region, args.start, args.end, skip_existing=args.skip_existing
            )
        elif args.command == "backfill":
            stats = ingestor.backfill_all(
                args.start if args.start is not None else settings.backfill_start_year,
                args.end if args.end is not None else settings.backfill_end_year,
                skip_existing=args.skip_existing,
                region_ids=args.regions,
            )
        else:
            stats = ingestor.refresh_recent(args.years)

        _print_stats(stats)
        return EXIT_OK
    finally:
        db.close()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(log_level=args.log_level, log_format=args.log_format)

    logger.info("cli_command_started", command=args.command)
    try:
        return run(args)
    except ConfigurationError as exc:
        logger.error("cli_configuration_error", error=str(exc))
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR


if __name__ == "__main__":
    sys.exit(main())
