import argparse
import asyncio
import json
import logging
import sys

from .cache import ResultCache
from .router import Router, canonical_state, supported_states
from .service import lookup
from .settings import get_settings


class JsonLogFormatter(logging.Formatter):
    def format(self, record):
        payload = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(level=None, log_json=False):
    handler = logging.StreamHandler(sys.stderr)
    if log_json:
        handler.setFormatter(JsonLogFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger("brw")
    root.handlers[:] = [handler]
    root.setLevel((level or "WARNING").upper())
    root.propagate = False


def emit(payload):
    print(json.dumps(payload, ensure_ascii=False))


async def _run_lookup(args, cache):
    async with Router() as router:
        coro = lookup(args.lat, args.lon, args.state, cache=cache, router=router)
        try:
            result = await asyncio.wait_for(coro, timeout=args.timeout)
        except asyncio.TimeoutError:
            return {"status": "not_found", "state": args.state, "error": "timeout"}
        return result.to_dict()


async def _run_health(states):
    async with Router() as router:
        return await router.health_report(states)


def build_parser():
    parser = argparse.ArgumentParser(
        description="Bodenrichtwert lookup for German federal states",
    )
    parser.add_argument(
        "--lat",
        type=float,
        default=None,
        help="Latitude (WGS84)",
    )
    parser.add_argument(
        "--lon",
        type=float,
        default=None,
        help="Longitude (WGS84)",
    )
    parser.add_argument(
        "--state",
        default=None,
        help="Federal state name or two-letter code (e.g. Hamburg, NW)",
    )
    parser.add_argument(
        "--health",
        nargs="?",
        const="",
        default=None,
        metavar="STATE",
        help="Run health checks for all states or one state",
    )
    parser.add_argument(
        "--list-states",
        action="store_true",
        help="Print the supported states",
    )
    parser.add_argument(
        "--cache-stats",
        action="store_true",
        help="Print cache statistics",
    )
    parser.add_argument(
        "--cache-cleanup",
        action="store_true",
        help="Remove expired cache entries",
    )
    parser.add_argument(
        "--cache-clear",
        action="store_true",
        help="Remove all cache entries",
    )
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Bypass the result cache for this lookup",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=60.0,
        help="Overall deadline for one lookup in seconds",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, etc.)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit log records as JSON lines on stderr",
    )
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, args.log_json)

    if args.list_states:
        emit({"states": supported_states()})
        return 0

    if args.health is not None:
        states = None
        if args.health:
            state = canonical_state(args.health)
            if state is None:
                parser.error(f"unknown state: {args.health}")
            states = [state]
        report = asyncio.run(_run_health(states))
        emit({"healthy": all(report.values()), "states": report})
        return 0 if all(report.values()) else 1

    if args.cache_stats or args.cache_cleanup or args.cache_clear:
        cache = ResultCache()
        if args.cache_cleanup:
            emit({"removed": cache.cleanup()})
        if args.cache_clear:
            emit({"removed": cache.clear()})
        if args.cache_stats:
            emit(cache.stats())
        return 0

    if args.lat is None or args.lon is None or not args.state:
        parser.error("--lat, --lon and --state are required for a lookup")

    cache = None
    if get_settings().cache_enabled and not args.no_cache:
        cache = ResultCache()
    try:
        payload = asyncio.run(_run_lookup(args, cache))
    finally:
        if cache is not None:
            cache.close()
    emit(payload)
    return 0 if payload.get("status") == "success" else 2


if __name__ == "__main__":
    sys.exit(main())
