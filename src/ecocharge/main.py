# File: src/ecocharge/main.py
"""
Command-line entry point for the EcoCharge engine

Subcommands:
1. search - list stations matching the given filters
2. quote - price a session at a station
3. slots - list the bookable start times
4. stats - operator usage statistics

The catalog is read from --catalog or ECOCHARGE_CATALOG_PATH. Output is JSON.
"""

from typing import Optional, List, Dict, Any
import argparse
import json
import logging
import os
import sys

from . import __version__
from .config import EngineConfig
from .application.booking_service import BookingService
from .application.station_finder import StationFinder
from .application.admin_service import AdminService
from .domain.exceptions import ChargingServiceError
from .infrastructure.factories import ServiceFactory


def setup_logging(level: str = "INFO", log_dir: Optional[str] = None) -> logging.Logger:
    """Setup application logging configuration"""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(os.path.join(log_dir, 'ecocharge.log')))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )
    return logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ecocharge", description="EV charging station reservation and pricing")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--catalog", help="JSON file with stations and users")
    parser.add_argument("--log-level", help="Logging level (default from ECOCHARGE_LOG_LEVEL or INFO)")
    parser.add_argument("--log-dir", help="Also write logs to <dir>/ecocharge.log")

    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser("search", help="Find stations")
    search.add_argument("--text", dest="free_text", help="Match station name or address")
    search.add_argument("--connector", dest="connector_type", help="Require an available connector type")
    search.add_argument("--price", dest="price_range", choices=["low", "medium", "high"])
    search.add_argument("--status", choices=["online", "maintenance", "offline"])
    search.add_argument("--amenity", dest="amenities", action="append", default=[],
                        help="Required amenity (repeatable)")

    quote = subparsers.add_parser("quote", help="Price a charging session")
    quote.add_argument("station_id")
    quote.add_argument("--connector", dest="connector_type", required=True)
    quote.add_argument("--time", default=None, help="Start slot, HH:MM")
    quote.add_argument("--duration", default="2", help="Hours")
    quote.add_argument("--battery", dest="battery_size", required=True, help="Battery size in kWh")

    subparsers.add_parser("slots", help="List bookable start times")
    subparsers.add_parser("stats", help="Usage statistics")

    return parser


def run(args: argparse.Namespace, config: EngineConfig) -> Dict[str, Any]:
    """Execute one subcommand and return its JSON-ready result"""
    factory = ServiceFactory(config)

    if args.command == "slots":
        return {"slots": BookingService(config).time_slots}

    catalog = factory.create_catalog(args.catalog)

    if args.command == "search":
        finder = StationFinder(catalog)
        query = {
            "free_text": args.free_text,
            "connector_type": args.connector_type,
            "price_range": args.price_range,
            "status": args.status,
            "amenities": args.amenities
        }
        return {"stations": [s.to_dict() for s in finder.search(query)], "facets": finder.facets()}

    if args.command == "quote":
        service = factory.create_booking_service()
        form = {
            "connector_type": args.connector_type,
            "time": args.time,
            "duration": args.duration,
            "vehicle": {"battery_size": args.battery_size}
        }
        result = service.quote(form, catalog.get_station(args.station_id))
        data = result.to_dict()
        data["currency"] = config.currency
        return data

    return AdminService(catalog).statistics().to_dict()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = EngineConfig.from_env()
    logger = setup_logging(args.log_level or config.log_level, args.log_dir)

    if args.command != "slots" and not (args.catalog or config.catalog_path):
        parser.error("a catalog is required (--catalog or ECOCHARGE_CATALOG_PATH)")

    try:
        result = run(args, config)
    except ChargingServiceError as e:
        logger.error(str(e))
        return 1
    except (OSError, ValueError) as e:
        logger.error(f"Could not load catalog: {e}")
        return 1

    print(json.dumps(result, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
