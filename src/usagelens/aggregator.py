from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable

from usagelens.errors import InvalidDateError
from usagelens.models import (
    AggregateResult,
    ApiBaseUrlUsage,
    DailyUsage,
    ModelUsage,
    ProjectUsage,
    UsageRecord,
)
from usagelens.parser import parse_timestamp

SORT_ASC = "asc"
SORT_DESC = "desc"


def parse_date_boundary(value: "str", label: "str") -> "date":
    """
    parses an explicit range boundary, either YYYY-MM-DD or a full
    RFC3339 datetime.
    """
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        pass

    parsed = parse_timestamp(value)
    if parsed is None:
        raise InvalidDateError(label, value)
    return parsed.date()


def parse_compact_date(value: "str | None") -> "date | None":
    """
    parses YYYYMMDD. Unparseable values mean "no bound".
    """
    if not value or len(value) != 8 or not value.isdigit():
        return None
    try:
        return date(int(value[:4]), int(value[4:6]), int(value[6:]))
    except ValueError:
        return None


def utc_day(timestamp: "str") -> "str":
    """
    returns the UTC calendar date of a timestamp as YYYY-MM-DD.
    """
    parsed = parse_timestamp(timestamp)
    if parsed is None:
        return timestamp.split("T", 1)[0]
    return parsed.astimezone(timezone.utc).date().isoformat()


def _local_date(record: "UsageRecord", now: "datetime") -> "date | None":
    parsed = parse_timestamp(record.timestamp)
    if parsed is None:
        return None
    return parsed.astimezone(now.tzinfo).date()


@dataclass(frozen=True, slots=True)
class UsageFilter:
    """
    UsageFilter selects the records a query folds over. Date based
    bounds compare the record's calendar date in the timezone of the
    query's current time.
    """

    # keep records from the last N calendar days, today included
    days: "int | None" = None
    start_date: "date | None" = None
    end_date: "date | None" = None
    on_date: "date | None" = None
    project: "str | None" = None
    # raw prefix match on the timestamp string, e.g. "2025-01-02"
    date_prefix: "str | None" = None

    @property
    def uses_dates(self) -> "bool":
        return (
            self.days is not None
            or self.start_date is not None
            or self.end_date is not None
            or self.on_date is not None
        )

    def matches(self, record: "UsageRecord", now: "datetime") -> "bool":
        if self.project is not None and record.project_path != self.project:
            return False
        if self.date_prefix is not None and not record.timestamp.startswith(
            self.date_prefix
        ):
            return False
        if not self.uses_dates:
            return True

        day = _local_date(record, now)
        if day is None:
            return False

        today = now.date()
        if self.days is not None and (today - day).days > self.days:
            return False
        if self.start_date is not None and day < self.start_date:
            return False
        if self.end_date is not None and day > self.end_date:
            return False
        if self.on_date is not None and day != self.on_date:
            return False
        return True

    def apply(
        self,
        records: "Iterable[UsageRecord]",
        now: "datetime",
    ) -> "list[UsageRecord]":
        return [r for r in records if self.matches(r, now)]


class _TokenTotals:
    """
    mutable accumulator shared by the model and endpoint views.
    """

    __slots__ = (
        "cost",
        "input_tokens",
        "output_tokens",
        "cache_creation_tokens",
        "cache_read_tokens",
    )

    def __init__(self) -> "None":
        self.cost = 0.0
        self.input_tokens = 0
        self.output_tokens = 0
        self.cache_creation_tokens = 0
        self.cache_read_tokens = 0

    def add(self, record: "UsageRecord") -> "None":
        self.cost += record.cost
        self.input_tokens += record.input_tokens
        self.output_tokens += record.output_tokens
        self.cache_creation_tokens += record.cache_creation_tokens
        self.cache_read_tokens += record.cache_read_tokens

    @property
    def total_tokens(self) -> "int":
        return (
            self.input_tokens
            + self.output_tokens
            + self.cache_creation_tokens
            + self.cache_read_tokens
        )


class _DailyTotals:
    __slots__ = ("cost", "tokens", "models")

    def __init__(self) -> "None":
        self.cost = 0.0
        self.tokens = 0
        # dict keeps first-seen order
        self.models: "dict[str, None]" = {}


class _ProjectTotals:
    __slots__ = ("cost", "tokens", "last_used")

    def __init__(self, first_timestamp: "str") -> "None":
        self.cost = 0.0
        self.tokens = 0
        self.last_used = first_timestamp


def _by_cost_desc(key: "str", cost: "float") -> "tuple[float, str]":
    # equal costs fall back to the dimension key
    return (-cost, key)


def _model_view(
    totals: "dict[str, _TokenTotals]",
    sessions: "dict[str, set[str]]",
) -> "tuple[ModelUsage, ...]":
    rows = [
        ModelUsage(
            model=model,
            total_cost=t.cost,
            total_tokens=t.total_tokens,
            input_tokens=t.input_tokens,
            output_tokens=t.output_tokens,
            cache_creation_tokens=t.cache_creation_tokens,
            cache_read_tokens=t.cache_read_tokens,
            session_count=len(sessions[model]),
        )
        for model, t in totals.items()
    ]
    rows.sort(key=lambda r: _by_cost_desc(r.model, r.total_cost))
    return tuple(rows)


def _api_base_url_view(
    totals: "dict[str, _TokenTotals]",
    sessions: "dict[str, set[str]]",
) -> "tuple[ApiBaseUrlUsage, ...]":
    rows = [
        ApiBaseUrlUsage(
            api_base_url=url,
            total_cost=t.cost,
            total_tokens=t.total_tokens,
            input_tokens=t.input_tokens,
            output_tokens=t.output_tokens,
            cache_creation_tokens=t.cache_creation_tokens,
            cache_read_tokens=t.cache_read_tokens,
            session_count=len(sessions[url]),
        )
        for url, t in totals.items()
    ]
    rows.sort(key=lambda r: _by_cost_desc(r.api_base_url, r.total_cost))
    return tuple(rows)


def project_name(project_path: "str") -> "str":
    return project_path.rsplit("/", 1)[-1]


def aggregate(
    records: "Iterable[UsageRecord]",
    usage_filter: "UsageFilter | None" = None,
    now: "datetime | None" = None,
) -> "AggregateResult":
    """
    folds the (filtered) records into the grand totals and the
    model, day, project and endpoint breakdowns in one pass.

    Session counts are finalised from distinct-session sets after the
    fold, so revisiting a session never counts it twice.
    """
    if usage_filter is not None:
        records = usage_filter.apply(records, now or datetime.now().astimezone())

    total = _TokenTotals()
    all_sessions: "set[str]" = set()

    model_totals: "dict[str, _TokenTotals]" = {}
    daily_totals: "dict[str, _DailyTotals]" = {}
    project_totals: "dict[str, _ProjectTotals]" = {}
    api_totals: "dict[str, _TokenTotals]" = {}

    model_sessions: "dict[str, set[str]]" = defaultdict(set)
    project_sessions: "dict[str, set[str]]" = defaultdict(set)
    api_sessions: "dict[str, set[str]]" = defaultdict(set)

    for record in records:
        total.add(record)
        tokens = record.total_tokens

        all_sessions.add(record.session_id)
        model_sessions[record.model].add(record.session_id)
        project_sessions[record.project_path].add(record.session_id)
        api_sessions[record.api_base_url].add(record.session_id)

        model_totals.setdefault(record.model, _TokenTotals()).add(record)
        api_totals.setdefault(record.api_base_url, _TokenTotals()).add(record)

        day = utc_day(record.timestamp)
        daily = daily_totals.setdefault(day, _DailyTotals())
        daily.cost += record.cost
        daily.tokens += tokens
        daily.models.setdefault(record.model, None)

        project = project_totals.get(record.project_path)
        if project is None:
            project = project_totals[record.project_path] = _ProjectTotals(
                record.timestamp
            )
        project.cost += record.cost
        project.tokens += tokens
        if record.timestamp > project.last_used:
            project.last_used = record.timestamp

    if not all_sessions:
        return AggregateResult.empty()

    by_date = tuple(
        DailyUsage(
            date=day,
            total_cost=d.cost,
            total_tokens=d.tokens,
            models_used=tuple(d.models),
        )
        for day, d in sorted(daily_totals.items(), reverse=True)
    )

    by_project = sorted(
        (
            ProjectUsage(
                project_path=path,
                project_name=project_name(path),
                total_cost=p.cost,
                total_tokens=p.tokens,
                session_count=len(project_sessions[path]),
                last_used=p.last_used,
            )
            for path, p in project_totals.items()
        ),
        key=lambda r: _by_cost_desc(r.project_path, r.total_cost),
    )

    return AggregateResult(
        total_cost=total.cost,
        total_tokens=total.total_tokens,
        total_input_tokens=total.input_tokens,
        total_output_tokens=total.output_tokens,
        total_cache_creation_tokens=total.cache_creation_tokens,
        total_cache_read_tokens=total.cache_read_tokens,
        total_sessions=len(all_sessions),
        by_model=_model_view(model_totals, model_sessions),
        by_date=by_date,
        by_project=tuple(by_project),
        by_api_base_url=_api_base_url_view(api_totals, api_sessions),
    )


def aggregate_by_api_base_url(
    records: "Iterable[UsageRecord]",
) -> "list[ApiBaseUrlUsage]":
    """
    computes the endpoint breakdown on its own, over all records.
    """
    totals: "dict[str, _TokenTotals]" = {}
    sessions: "dict[str, set[str]]" = defaultdict(set)
    for record in records:
        totals.setdefault(record.api_base_url, _TokenTotals()).add(record)
        sessions[record.api_base_url].add(record.session_id)
    return list(_api_base_url_view(totals, sessions))


def session_usage(
    records: "Iterable[UsageRecord]",
    since: "str | None" = None,
    until: "str | None" = None,
    order: "str | None" = None,
) -> "list[ProjectUsage]":
    """
    builds one row per project/session pair. since and until are
    YYYYMMDD strings compared against the timestamp's own calendar
    date; an unparseable bound is ignored.

    In these rows project_name carries the session id and
    session_count the number of records of that session.
    """
    since_date = parse_compact_date(since)
    until_date = parse_compact_date(until)

    rows: "dict[str, _ProjectTotals]" = {}
    keys: "dict[str, tuple[str, str]]" = {}
    counts: "dict[str, int]" = defaultdict(int)
    for record in records:
        parsed = parse_timestamp(record.timestamp)
        if parsed is None:
            continue
        day = parsed.date()
        if since_date is not None and day < since_date:
            continue
        if until_date is not None and day > until_date:
            continue

        key = f"{record.project_path}/{record.session_id}"
        row = rows.get(key)
        if row is None:
            row = rows[key] = _ProjectTotals(record.timestamp)
            keys[key] = (record.project_path, record.session_id)
        row.cost += record.cost
        row.tokens += record.total_tokens
        counts[key] += 1
        if record.timestamp > row.last_used:
            row.last_used = record.timestamp

    result = [
        ProjectUsage(
            project_path=keys[key][0],
            project_name=keys[key][1],
            total_cost=row.cost,
            total_tokens=row.tokens,
            session_count=counts[key],
            last_used=row.last_used,
        )
        for key, row in rows.items()
    ]

    # secondary key first, then the stable primary sort
    result.sort(key=lambda r: (r.project_path, r.project_name))
    result.sort(key=lambda r: r.last_used, reverse=order != SORT_ASC)
    return result
