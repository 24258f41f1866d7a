import argparse
from pathlib import Path

from usagelens.config import Config


def _build_parser() -> "argparse.ArgumentParser":
    parser = argparse.ArgumentParser(
        prog="usagelens",
        description="Usage and cost analytics for AI coding assistant session logs",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default="warning",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: warning)",
    )
    parser.add_argument(
        "--log.json",
        dest="json_logs",
        action="store_true",
        help="Emit logs as JSON lines",
    )
    parser.add_argument(
        "--claude-dir",
        dest="claude_dir",
        type=Path,
        default=None,
        help="Directory holding projects/ (default: ~/.claude)",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    stats = sub.add_parser("stats", help="Aggregate usage, optionally for the last N days")
    stats.add_argument("--days", type=int, default=None)

    sub.add_parser("today", help="Aggregate usage for today")

    date_range = sub.add_parser("range", help="Aggregate usage between two dates")
    date_range.add_argument("start_date", help="YYYY-MM-DD or RFC3339")
    date_range.add_argument("end_date", help="YYYY-MM-DD or RFC3339")

    details = sub.add_parser("details", help="List individual usage records")
    details.add_argument("--project", default=None)
    details.add_argument("--date", dest="date_prefix", default=None)

    sessions = sub.add_parser("sessions", help="Per-session usage rows")
    sessions.add_argument("--since", default=None, help="YYYYMMDD")
    sessions.add_argument("--until", default=None, help="YYYYMMDD")
    sessions.add_argument("--order", choices=["asc", "desc"], default=None)

    sub.add_parser("endpoints", help="Usage by API base URL")
    sub.add_parser("active", help="Session window state")
    sub.add_parser("burn-rate", help="Burn rate analysis")

    serve = sub.add_parser("serve", help="Expose usage as Prometheus metrics")
    serve.add_argument(
        "--web.listen-address",
        dest="listen_address",
        default=":9186",
        help="Address to listen on (default: :9186)",
    )

    return parser


def parse_args(
    argv: "list[str] | None" = None,
) -> "tuple[Config, argparse.Namespace]":
    args = _build_parser().parse_args(argv)
    config = Config.from_env(claude_dir=args.claude_dir)
    config.log_level = args.log_level
    if args.command == "serve":
        config.listen_address = args.listen_address
    return config, args
