import argparse
import json
import sys
import time

import structlog
from prometheus_client import start_http_server

from usagelens.cli import parse_args
from usagelens.config import Config
from usagelens.errors import UsageLensError
from usagelens.logging import setup_logging
from usagelens.metrics import register_metrics
from usagelens.service import UsageService

logger = structlog.get_logger()


def _parse_listen_address(addr: "str") -> "tuple[str, int]":
    """
    parses listen address in format ':9186' or '0.0.0.0:9186'.
    """
    if addr.startswith(":"):
        return ("0.0.0.0", int(addr[1:]))

    host, port = addr.rsplit(":", 1)
    return (host, int(port))


def _run_query(service: "UsageService", args: "argparse.Namespace") -> "object":
    command = args.command
    if command == "stats":
        return service.get_usage_stats(args.days).to_dict()
    if command == "today":
        return service.get_today_usage_stats().to_dict()
    if command == "range":
        return service.get_usage_by_date_range(args.start_date, args.end_date).to_dict()
    if command == "details":
        return [r.to_dict() for r in service.get_usage_details(args.project, args.date_prefix)]
    if command == "sessions":
        return [
            r.to_dict()
            for r in service.get_session_stats(args.since, args.until, args.order)
        ]
    if command == "endpoints":
        return [r.to_dict() for r in service.get_usage_by_api_base_url()]
    if command == "active":
        return [s.to_dict() for s in service.get_active_sessions()]
    if command == "burn-rate":
        return service.get_burn_rate_analysis().to_dict()

    raise ValueError(f"unknown command: {command}")


def _serve(config: "Config", service: "UsageService") -> "None":
    register_metrics(service)
    host, port = _parse_listen_address(config.listen_address)
    start_http_server(port, addr=host)
    logger.info("metrics_server_started", host=host, port=port)

    try:
        while True:
            time.sleep(3600)
    except KeyboardInterrupt:
        logger.info("shutdown_complete")


def main(argv: "list[str] | None" = None) -> "int":
    try:
        config, args = parse_args(argv)
    except UsageLensError as exc:
        print(f"usagelens: {exc}", file=sys.stderr)
        return 2

    setup_logging(config.log_level, json_logs=args.json_logs)
    service = UsageService(config)

    if args.command == "serve":
        _serve(config, service)
        return 0

    try:
        result = _run_query(service, args)
    except UsageLensError as exc:
        logger.error("query_failed", command=args.command, error=str(exc))
        print(f"usagelens: {exc}", file=sys.stderr)
        return 2

    json.dump(result, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
