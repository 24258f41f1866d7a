from pathlib import Path

import structlog

from usagelens.dedup import DeduplicationStore
from usagelens.models import UsageRecord
from usagelens.parser import load_json_object, parse_line
from usagelens.walker import LogFile, discover_log_files

logger = structlog.get_logger()


def earliest_timestamp(lines: "list[str]") -> "str | None":
    """
    returns the smallest timestamp string among the parseable
    lines, or None when no line carries one.
    """
    earliest: "str | None" = None
    for line in lines:
        raw = load_json_object(line)
        if raw is None:
            continue
        ts = raw.get("timestamp")
        if isinstance(ts, str) and (earliest is None or ts < earliest):
            earliest = ts
    return earliest


def logged_project_path(lines: "list[str]") -> "str | None":
    """
    returns the first cwd recorded anywhere in the file. A file
    belongs to one project, so it applies to every line.
    """
    for line in lines:
        raw = load_json_object(line)
        if raw is None:
            continue
        cwd = raw.get("cwd")
        if isinstance(cwd, str) and cwd:
            return cwd
    return None


class LogCollector:
    """
    LogCollector is responsible for turning the log directory tree
    into the canonical record stream. It reads every discovered file
    once, replays the files in order of their earliest timestamp
    through a shared DeduplicationStore so results do not depend on
    filesystem order, and returns all accepted records sorted by
    timestamp.
    """

    def __init__(self, claude_dir: "Path", api_base_url: "str") -> "None":
        self._claude_dir = claude_dir
        self._api_base_url = api_base_url

    def collect(self) -> "list[UsageRecord]":
        """
        runs one full scan. Each call starts from a fresh
        deduplication state.
        """
        log_files = discover_log_files(self._claude_dir)
        loaded = [(log_file, self._read_lines(log_file.path)) for log_file in log_files]

        # files without any timestamp go last, keeping discovery order
        keyed = [(earliest_timestamp(lines), log_file, lines) for log_file, lines in loaded]
        keyed.sort(key=lambda item: (item[0] is None, item[0] or ""))

        store = DeduplicationStore()
        records: "list[UsageRecord]" = []
        for _, log_file, lines in keyed:
            records.extend(self._parse_file(log_file, lines, store))

        records.sort(key=lambda r: r.timestamp)

        logger.debug(
            "scan_complete",
            files=len(log_files),
            records=len(records),
            dedup_keys=len(store),
        )
        return records

    @staticmethod
    def _read_lines(path: "Path") -> "list[str]":
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.warning("log_file_unreadable", path=str(path), error=str(exc))
            return []
        return text.splitlines()

    def _parse_file(
        self,
        log_file: "LogFile",
        lines: "list[str]",
        store: "DeduplicationStore",
    ) -> "list[UsageRecord]":
        session_id = log_file.path.parent.name or "unknown"
        project_path = logged_project_path(lines) or log_file.project_name

        records: "list[UsageRecord]" = []
        skipped = 0
        duplicates = 0
        for line in lines:
            entry = parse_line(
                line,
                session_id=session_id,
                project_path=project_path,
                api_base_url=self._api_base_url,
            )
            if entry is None:
                skipped += 1
                continue

            if not store.admit(entry):
                duplicates += 1
                continue

            records.append(entry.record)

        if duplicates:
            logger.debug(
                "duplicate_entries_skipped",
                path=str(log_file.path),
                count=duplicates,
            )
        logger.debug(
            "log_file_parsed",
            path=str(log_file.path),
            records=len(records),
            skipped=skipped,
        )
        return records


def collect_records(claude_dir: "Path", api_base_url: "str") -> "list[UsageRecord]":
    return LogCollector(claude_dir, api_base_url).collect()
