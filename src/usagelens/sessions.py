from datetime import datetime
from typing import Iterable

from usagelens.models import SessionInfo, UsageRecord
from usagelens.parser import parse_timestamp

# fixed quota window that starts with a session's first record
SESSION_WINDOW_HOURS = 5

_SECONDS_PER_HOUR = 3600


def elapsed_hours(start: "datetime", now: "datetime") -> "float":
    return (now - start).total_seconds() / _SECONDS_PER_HOUR


def session_starts(records: "Iterable[UsageRecord]") -> "dict[str, datetime]":
    """
    maps each session id to the earliest timestamp among its records.
    """
    starts: "dict[str, datetime]" = {}
    for record in records:
        ts = parse_timestamp(record.timestamp)
        if ts is None:
            continue
        current = starts.get(record.session_id)
        if current is None or ts < current:
            starts[record.session_id] = ts
    return starts


def is_session_active(start: "datetime", now: "datetime") -> "bool":
    """
    a session stays active until its window has elapsed, no matter
    how much later activity it sees.
    """
    return elapsed_hours(start, now) < SESSION_WINDOW_HOURS


def count_active_sessions(starts: "dict[str, datetime]", now: "datetime") -> "int":
    return sum(1 for start in starts.values() if is_session_active(start, now))


class _SessionTotals:
    __slots__ = ("project_path", "tokens", "cost", "last_activity")

    def __init__(self, record: "UsageRecord") -> "None":
        self.project_path = record.project_path
        self.tokens = 0
        self.cost = 0.0
        self.last_activity = record.timestamp


def active_sessions(
    records: "Iterable[UsageRecord]",
    now: "datetime",
) -> "list[SessionInfo]":
    """
    reports every session with its window state. Active sessions come
    first, each group ordered by descending remaining time.
    """
    records = list(records)
    starts = session_starts(records)

    totals: "dict[str, _SessionTotals]" = {}
    for record in records:
        session = totals.get(record.session_id)
        if session is None:
            session = totals[record.session_id] = _SessionTotals(record)
        session.tokens += record.total_tokens
        session.cost += record.cost
        if record.timestamp > session.last_activity:
            session.last_activity = record.timestamp

    sessions: "list[SessionInfo]" = []
    for session_id, session in totals.items():
        start = starts.get(session_id)
        if start is None:
            continue

        remaining = SESSION_WINDOW_HOURS - elapsed_hours(start, now)
        sessions.append(
            SessionInfo(
                session_id=session_id,
                project_path=session.project_path,
                start_time=start.isoformat(),
                last_activity=session.last_activity,
                total_tokens=session.tokens,
                total_cost=session.cost,
                time_remaining_hours=max(remaining, 0.0),
                is_active=remaining > 0,
            )
        )

    sessions.sort(
        key=lambda s: (not s.is_active, -s.time_remaining_hours, s.session_id)
    )
    return sessions
