from datetime import datetime
from typing import Callable

import structlog

from usagelens.aggregator import (
    UsageFilter,
    aggregate,
    aggregate_by_api_base_url,
    parse_date_boundary,
    session_usage,
)
from usagelens.burn_rate import burn_rate
from usagelens.collector import LogCollector
from usagelens.config import Config
from usagelens.errors import InvalidQueryError
from usagelens.models import (
    AggregateResult,
    ApiBaseUrlUsage,
    BurnRateReport,
    ProjectUsage,
    SessionInfo,
    UsageRecord,
)
from usagelens.sessions import active_sessions

logger = structlog.get_logger()


def local_now() -> "datetime":
    return datetime.now().astimezone()


class UsageService:
    """
    UsageService exposes the read-only usage queries. Every call runs
    its own full scan of the log directory; nothing is cached between
    calls. Date validation happens before any scan so a caller gets
    either a complete result or an error, never both.
    """

    def __init__(
        self,
        config: "Config",
        clock: "Callable[[], datetime] | None" = None,
    ) -> "None":
        self._config = config
        self._clock = clock or local_now

    def _scan(self) -> "list[UsageRecord]":
        logger.debug(
            "scan_start",
            claude_dir=str(self._config.claude_dir),
            api_base_url=self._config.api_base_url,
        )
        collector = LogCollector(self._config.claude_dir, self._config.api_base_url)
        return collector.collect()

    def get_usage_stats(self, days: "int | None" = None) -> "AggregateResult":
        if days is not None and days < 0:
            raise InvalidQueryError(f"days must be non-negative, got {days}")
        return aggregate(self._scan(), UsageFilter(days=days), self._clock())

    def get_usage_by_date_range(
        self,
        start_date: "str",
        end_date: "str",
    ) -> "AggregateResult":
        usage_filter = UsageFilter(
            start_date=parse_date_boundary(start_date, "start"),
            end_date=parse_date_boundary(end_date, "end"),
        )
        return aggregate(self._scan(), usage_filter, self._clock())

    def get_usage_details(
        self,
        project: "str | None" = None,
        date_prefix: "str | None" = None,
    ) -> "list[UsageRecord]":
        usage_filter = UsageFilter(project=project, date_prefix=date_prefix)
        return usage_filter.apply(self._scan(), self._clock())

    def get_today_usage_stats(self) -> "AggregateResult":
        now = self._clock()
        return aggregate(self._scan(), UsageFilter(on_date=now.date()), now)

    def get_session_stats(
        self,
        since: "str | None" = None,
        until: "str | None" = None,
        order: "str | None" = None,
    ) -> "list[ProjectUsage]":
        return session_usage(self._scan(), since=since, until=until, order=order)

    def get_usage_by_api_base_url(self) -> "list[ApiBaseUrlUsage]":
        return aggregate_by_api_base_url(self._scan())

    def get_active_sessions(self) -> "list[SessionInfo]":
        return active_sessions(self._scan(), self._clock())

    def get_burn_rate_analysis(self) -> "BurnRateReport":
        return burn_rate(self._scan(), self._clock())
