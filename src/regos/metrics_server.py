"""
Prometheus metrics sidecar for a Regos database.

Counters and histograms are filled in by the process doing the work. The
registrations-per-status gauge is different: it only moves when someone
takes a stats snapshot. Pointed at a database with --db, this server takes
that snapshot on start and again every --refresh seconds, so dashboards see
registrations drift into "expired" even when nobody is reading them.

Usage:
    python -m regos.metrics_server --db regos.db --port 9090 --refresh 30
"""

import argparse
import time
from pathlib import Path

from regos.kernel.logging import configure_logging, get_logger
from regos.kernel.metrics import start_metrics_server
from regos.platform import Regos

logger = get_logger(__name__)


def positive_seconds(value: str) -> int:
    seconds = int(value)
    if seconds < 1:
        raise argparse.ArgumentTypeError("refresh interval must be at least 1 second")
    return seconds


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Regos Metrics Server")
    parser.add_argument(
        "--port",
        type=int,
        default=9090,
        help="Port to listen on (default: 9090)",
    )
    parser.add_argument(
        "--addr",
        type=str,
        default="0.0.0.0",
        help="Address to bind (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Regos database whose status counts are published (default: none)",
    )
    parser.add_argument(
        "--refresh",
        type=positive_seconds,
        default=30,
        help="Seconds between status snapshots when --db is set (default: 30)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Output logs in JSON format (default: False)",
    )
    return parser


def publish_status_counts(db_path: Path) -> dict[str, int]:
    """
    Take one stats snapshot of the database

    Opening the façade and calling stats() updates the status gauge as a
    side effect; the database is closed again straight after.

    Returns:
        Effective status → registration count
    """
    regos = Regos(db_path)
    try:
        counts = regos.stats()["registrations_by_status"]
    finally:
        regos.close()

    logger.debug("Status gauges refreshed", db=str(db_path), **counts)
    return counts


def main(argv: list[str] | None = None) -> None:
    """Start the Prometheus metrics server and block until interrupted"""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Never create a database just to report on it
    if args.db is not None and not args.db.exists():
        parser.error(f"database not found at {args.db} (run 'regos init' first)")

    configure_logging(json_output=args.json_logs, log_level=args.log_level)

    logger.info(
        "Starting Prometheus metrics server",
        port=args.port,
        endpoint=f"http://{args.addr}:{args.port}/metrics",
        db=str(args.db) if args.db is not None else None,
    )
    start_metrics_server(port=args.port, addr=args.addr)

    try:
        while True:
            if args.db is not None:
                publish_status_counts(args.db)
                time.sleep(args.refresh)
            else:
                time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Shutting down metrics server")


if __name__ == "__main__":
    main()
