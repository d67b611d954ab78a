"""
Station Data Orchestrator

Command line entry point: looks up the station, retrieves the requested
range chunk by chunk and writes one CSV per run.
"""
import sys
import argparse
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .api_client import CodisClient, RetryPolicy
from .config import (
    LOGS_DIR,
    LOG_FORMAT,
    LOG_DATE_FORMAT,
    MAX_RETRIES,
    OUTPUT_DIR,
)
from .dates import parse_date
from .exceptions import (
    DateParseError,
    FetchError,
    InvalidRangeError,
    PipelineError,
    StationNotFoundError,
)
from .station_pipeline import StationPipeline, StationQuery
from .stations import filter_active_automatic, find_station

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_BAD_INPUT = 2


def setup_logging(verbose: bool = False, log_to_file: bool = True):
    """
    Configure logging for the orchestrator.

    Args:
        verbose: If True, set DEBUG level; otherwise INFO
        log_to_file: Also write a human-readable log and a JSON log under LOGS_DIR

    Returns:
        Tuple of (human log file path, JSON log file path), or (None, None)
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    if not log_to_file:
        return None, None

    LOGS_DIR.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    log_file = LOGS_DIR / f"station_data_{timestamp}.log"
    json_log_file = LOGS_DIR / f"station_data_{timestamp}.json"

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
    logging.getLogger().addHandler(file_handler)

    # Structured events from the pipeline go to the JSON log
    from .station_pipeline import structured_logger as pipeline_logger
    pipeline_logger.setup_json_logging(json_log_file)

    logging.info(f"Logging to: {log_file}")
    logging.info(f"JSON logs: {json_log_file}")

    return log_file, json_log_file


def build_client(args: argparse.Namespace) -> CodisClient:
    """Create an API client from CLI options"""
    policy = RetryPolicy(max_retries=args.max_retries, max_elapsed=args.max_elapsed)
    return CodisClient(policy=policy)


def run_fetch(args: argparse.Namespace) -> int:
    """Handle the `fetch` command"""
    logger = logging.getLogger(__name__)

    try:
        query = StationQuery(args.station, parse_date(args.start), parse_date(args.end))
    except (DateParseError, InvalidRangeError) as e:
        print(f"Error: {e}")
        return EXIT_BAD_INPUT

    with build_client(args) as client:
        station = None
        try:
            if not args.no_validate:
                station = find_station(filter_active_automatic(client.fetch_station_list()),
                                       query.station_id)
                logger.info(f"Station {station.station_id} - {station.station_name} "
                            f"({station.county_name} {station.area})")

            pipeline = StationPipeline(client=client, output_dir=args.output_dir)
            output_path = pipeline.run(query, station)

        except (StationNotFoundError, InvalidRangeError) as e:
            print(f"Error: {e}")
            return EXIT_BAD_INPUT
        except FetchError as e:
            logger.error(f"[FAIL] Could not load station list: {e}")
            return EXIT_FAILED
        except PipelineError as e:
            logger.error(f"[FAIL] {e}")
            return EXIT_FAILED

    print(f"Saved {pipeline.total_records} records to {output_path}")
    return EXIT_OK


def run_stations(args: argparse.Namespace) -> int:
    """Handle the `stations` command"""
    logger = logging.getLogger(__name__)

    with build_client(args) as client:
        try:
            stations = filter_active_automatic(client.fetch_station_list())
        except FetchError as e:
            logger.error(f"[FAIL] Could not load station list: {e}")
            return EXIT_FAILED

    print(f"{'StationID':<10} {'StationName':<20} {'County':<10} {'Area':<10} {'Start':<10}")
    for s in stations:
        print(f"{s.station_id:<10} {s.station_name:<20} {s.county_name:<10} "
              f"{s.area:<10} {s.start_date:<10}")
    print(f"\nTOTAL: {len(stations)} active automatic stations")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codis-fetch",
        description="CODiS station data retrieval",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # One year for a single station
  codis-fetch fetch --station C0A520 --start 2024-01-01 --end 2024-12-31

  # Long range (split into 366-day chunks automatically)
  codis-fetch fetch --station C0A520 --start 2015/1/1 --end 2024/12/31 --output-dir data

  # List active automatic stations
  codis-fetch stations
        """
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        '--max-retries',
        type=int,
        default=MAX_RETRIES,
        help=f'Retries after a transient failure (default: {MAX_RETRIES})'
    )
    common.add_argument(
        '--max-elapsed',
        type=float,
        default=None,
        help='Stop retrying a request after this many seconds (default: no limit)'
    )
    common.add_argument(
        '--no-log-file',
        action='store_true',
        help='Log to stdout only'
    )
    common.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging (DEBUG level)'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    fetch = subparsers.add_parser('fetch', parents=[common],
                                  help='Download observations for one station to CSV')
    fetch.add_argument(
        '--station',
        type=str,
        required=True,
        help='Station ID (e.g., "C0A520")'
    )
    fetch.add_argument(
        '--start',
        type=str,
        required=True,
        help='First day (YYYY-MM-DD, YYYY/MM/DD, YYYY-M-D or YYYY/M/D)'
    )
    fetch.add_argument(
        '--end',
        type=str,
        required=True,
        help='Last day (same formats as --start)'
    )
    fetch.add_argument(
        '--output-dir',
        type=Path,
        default=OUTPUT_DIR,
        help='Directory for the CSV file (default: current directory)'
    )
    fetch.add_argument(
        '--no-validate',
        action='store_true',
        help='Do not check the station against the station list'
    )
    fetch.set_defaults(handler=run_fetch)

    stations = subparsers.add_parser('stations', parents=[common],
                                     help='List active automatic stations')
    stations.set_defaults(handler=run_stations)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the station data orchestrator"""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose, log_to_file=not args.no_log_file)

    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
