from datetime import datetime, timedelta
from typing import Iterable

from usagelens.models import BurnRateReport, UsageRecord
from usagelens.parser import parse_timestamp
from usagelens.sessions import (
    SESSION_WINDOW_HOURS,
    count_active_sessions,
    elapsed_hours,
    session_starts,
)

BURN_RATE_WINDOW_MINUTES = 60

HIGH_BURN_RATE_TOKENS_PER_MINUTE = 100.0
HIGH_UTILIZATION_PERCENT = 80.0
MAX_CONCURRENT_SESSIONS = 3

NO_DATA_MESSAGE = "No usage data available"
NO_RECENT_ACTIVITY_MESSAGE = "No recent activity detected"
HIGH_BURN_RATE_MESSAGE = (
    "High burn rate detected. Consider optimizing prompts or using smaller models."
)
HIGH_UTILIZATION_MESSAGE = (
    "Sessions are nearing expiration. "
    "Plan token-intensive tasks around session resets."
)
TOO_MANY_SESSIONS_MESSAGE = (
    "Multiple active sessions detected. "
    "Consider consolidating work into fewer sessions."
)
NOMINAL_MESSAGE = "Usage patterns look optimal."


def recommendations(
    burn_rate: "float",
    session_utilization: "float",
    active_count: "int",
) -> "list[str]":
    advice: "list[str]" = []
    if burn_rate > HIGH_BURN_RATE_TOKENS_PER_MINUTE:
        advice.append(HIGH_BURN_RATE_MESSAGE)
    if session_utilization > HIGH_UTILIZATION_PERCENT:
        advice.append(HIGH_UTILIZATION_MESSAGE)
    if active_count > MAX_CONCURRENT_SESSIONS:
        advice.append(TOO_MANY_SESSIONS_MESSAGE)

    return advice or [NOMINAL_MESSAGE]


def session_utilization(starts: "Iterable[datetime]", now: "datetime") -> "float":
    """
    average share of the session window used across the given session
    starts, as a percentage capped at 100.
    """
    # starts after now (clock skew) count as not yet elapsed
    ages = [max(elapsed_hours(start, now), 0.0) for start in starts]
    if not ages:
        return 0.0
    average = sum(ages) / len(ages)
    return min(average / SESSION_WINDOW_HOURS * 100.0, 100.0)


def _idle_report(message: "str") -> "BurnRateReport":
    return BurnRateReport(
        current_burn_rate=0.0,
        estimated_depletion_time=None,
        session_utilization=0.0,
        recommendations=(message,),
    )


def burn_rate(
    records: "Iterable[UsageRecord]",
    now: "datetime",
) -> "BurnRateReport":
    """
    estimates token velocity over the trailing window and derives
    advisory messages from it. No depletion time is projected.
    """
    records = list(records)
    if not records:
        return _idle_report(NO_DATA_MESSAGE)

    window_start = now - timedelta(minutes=BURN_RATE_WINDOW_MINUTES)
    recent_tokens = 0
    has_recent = False
    for record in records:
        ts = parse_timestamp(record.timestamp)
        if ts is not None and window_start < ts <= now:
            recent_tokens += record.total_tokens
            has_recent = True

    if not has_recent:
        return _idle_report(NO_RECENT_ACTIVITY_MESSAGE)

    rate = recent_tokens / BURN_RATE_WINDOW_MINUTES
    starts = session_starts(records)
    utilization = session_utilization(starts.values(), now)
    active_count = count_active_sessions(starts, now)

    return BurnRateReport(
        current_burn_rate=rate,
        estimated_depletion_time=None,
        session_utilization=utilization,
        recommendations=tuple(recommendations(rate, utilization, active_count)),
    )
