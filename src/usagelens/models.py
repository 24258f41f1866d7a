from dataclasses import asdict, dataclass


@dataclass(frozen=True, slots=True)
class UsageRecord:
    """
    UsageRecord represents a single accepted log line
    with non-zero token usage.
    """

    # RFC3339 string, the ordering key for every view
    timestamp: "str"
    model: "str"
    input_tokens: "int"
    output_tokens: "int"
    cache_creation_tokens: "int"
    cache_read_tokens: "int"
    cost: "float"
    session_id: "str"
    project_path: "str"
    # endpoint configured at scan time, not at record creation time
    api_base_url: "str"

    @property
    def total_tokens(self) -> "int":
        return (
            self.input_tokens
            + self.output_tokens
            + self.cache_creation_tokens
            + self.cache_read_tokens
        )

    def to_dict(self) -> "dict[str, object]":
        return asdict(self)


@dataclass(frozen=True, slots=True)
class ModelUsage:
    model: "str"
    total_cost: "float"
    total_tokens: "int"
    input_tokens: "int"
    output_tokens: "int"
    cache_creation_tokens: "int"
    cache_read_tokens: "int"
    session_count: "int"

    def to_dict(self) -> "dict[str, object]":
        return asdict(self)


@dataclass(frozen=True, slots=True)
class DailyUsage:
    # YYYY-MM-DD, UTC date of the timestamp
    date: "str"
    total_cost: "float"
    total_tokens: "int"
    # distinct models in first-seen order
    models_used: "tuple[str, ...]"

    def to_dict(self) -> "dict[str, object]":
        data = asdict(self)
        data["models_used"] = list(self.models_used)
        return data


@dataclass(frozen=True, slots=True)
class ProjectUsage:
    """
    ProjectUsage is also reused for the per-session view, where
    project_name holds the session id and session_count the
    number of records in that session.
    """

    project_path: "str"
    project_name: "str"
    total_cost: "float"
    total_tokens: "int"
    session_count: "int"
    last_used: "str"

    def to_dict(self) -> "dict[str, object]":
        return asdict(self)


@dataclass(frozen=True, slots=True)
class ApiBaseUrlUsage:
    api_base_url: "str"
    total_cost: "float"
    total_tokens: "int"
    input_tokens: "int"
    output_tokens: "int"
    cache_creation_tokens: "int"
    cache_read_tokens: "int"
    session_count: "int"

    def to_dict(self) -> "dict[str, object]":
        return asdict(self)


@dataclass(frozen=True, slots=True)
class AggregateResult:
    """
    AggregateResult holds the grand totals and every breakdown
    computed from one filtered record set.
    """

    total_cost: "float"
    total_tokens: "int"
    total_input_tokens: "int"
    total_output_tokens: "int"
    total_cache_creation_tokens: "int"
    total_cache_read_tokens: "int"
    # globally distinct session ids, not a sum of per-view counts
    total_sessions: "int"
    by_model: "tuple[ModelUsage, ...]"
    by_date: "tuple[DailyUsage, ...]"
    by_project: "tuple[ProjectUsage, ...]"
    by_api_base_url: "tuple[ApiBaseUrlUsage, ...]"

    @classmethod
    def empty(cls) -> "AggregateResult":
        return cls(
            total_cost=0.0,
            total_tokens=0,
            total_input_tokens=0,
            total_output_tokens=0,
            total_cache_creation_tokens=0,
            total_cache_read_tokens=0,
            total_sessions=0,
            by_model=(),
            by_date=(),
            by_project=(),
            by_api_base_url=(),
        )

    def to_dict(self) -> "dict[str, object]":
        return {
            "total_cost": self.total_cost,
            "total_tokens": self.total_tokens,
            "total_input_tokens": self.total_input_tokens,
            "total_output_tokens": self.total_output_tokens,
            "total_cache_creation_tokens": self.total_cache_creation_tokens,
            "total_cache_read_tokens": self.total_cache_read_tokens,
            "total_sessions": self.total_sessions,
            "by_model": [m.to_dict() for m in self.by_model],
            "by_date": [d.to_dict() for d in self.by_date],
            "by_project": [p.to_dict() for p in self.by_project],
            "by_api_base_url": [a.to_dict() for a in self.by_api_base_url],
        }


@dataclass(frozen=True, slots=True)
class SessionInfo:
    session_id: "str"
    project_path: "str"
    # RFC3339, earliest record of the session
    start_time: "str"
    last_activity: "str"
    total_tokens: "int"
    total_cost: "float"
    # clamped to >= 0
    time_remaining_hours: "float"
    is_active: "bool"

    def to_dict(self) -> "dict[str, object]":
        return asdict(self)


@dataclass(frozen=True, slots=True)
class BurnRateReport:
    # tokens per minute over the trailing window
    current_burn_rate: "float"
    # never computed, kept for a stable result shape
    estimated_depletion_time: "str | None"
    # percentage of the session window used, capped at 100
    session_utilization: "float"
    recommendations: "tuple[str, ...]"

    def to_dict(self) -> "dict[str, object]":
        data = asdict(self)
        data["recommendations"] = list(self.recommendations)
        return data
