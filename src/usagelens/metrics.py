import time
from typing import Iterator

import structlog
from prometheus_client import REGISTRY, CollectorRegistry
from prometheus_client.core import GaugeMetricFamily, Metric

from usagelens.service import UsageService

logger = structlog.get_logger()

_TOKEN_KINDS = ("input", "output", "cache_creation", "cache_read")


def _families() -> "dict[str, GaugeMetricFamily]":
    """
    creates empty gauge families for one scrape.
     - cost_usd / tokens / model_sessions: per model breakdown.
     - project_cost_usd: per project path.
     - api_base_url_cost_usd: per configured endpoint.
     - sessions / active_sessions: distinct and live sessions.
     - scrape_success / scrape_duration: outcome of the last scan.
     - burn_rate / session_utilization: trailing velocity figures.
    """
    return {
        "cost": GaugeMetricFamily(
            "usagelens_cost_usd",
            "Total cost in USD by model",
            labels=["model"],
        ),
        "tokens": GaugeMetricFamily(
            "usagelens_tokens",
            "Total tokens by model and kind",
            labels=["model", "kind"],
        ),
        "model_sessions": GaugeMetricFamily(
            "usagelens_model_sessions",
            "Distinct sessions by model",
            labels=["model"],
        ),
        "project_cost": GaugeMetricFamily(
            "usagelens_project_cost_usd",
            "Total cost in USD by project",
            labels=["project"],
        ),
        "api_cost": GaugeMetricFamily(
            "usagelens_api_base_url_cost_usd",
            "Total cost in USD by API base URL",
            labels=["api_base_url"],
        ),
        "sessions": GaugeMetricFamily(
            "usagelens_sessions",
            "Distinct sessions across all logs",
        ),
        "active": GaugeMetricFamily(
            "usagelens_active_sessions",
            "Sessions still inside their usage window",
        ),
        "burn_rate": GaugeMetricFamily(
            "usagelens_burn_rate_tokens_per_minute",
            "Tokens per minute over the trailing hour",
        ),
        "utilization": GaugeMetricFamily(
            "usagelens_session_utilization_percent",
            "Average share of the session window used",
        ),
        "success": GaugeMetricFamily(
            "usagelens_scrape_success",
            "Whether the last log scan succeeded",
        ),
        "duration": GaugeMetricFamily(
            "usagelens_scrape_duration_seconds",
            "Duration of the last log scan",
        ),
    }


class UsageMetricsCollector:
    """
    custom Prometheus collector that rescans the logs on every scrape
    and exposes the aggregate views as gauges.
    """

    def __init__(self, service: "UsageService") -> "None":
        self._service = service

    def describe(self) -> "Iterator[Metric]":
        # avoids a scan when the collector is registered
        return iter(_families().values())

    def collect(self) -> "Iterator[Metric]":
        families = _families()
        scan_start = time.monotonic()

        try:
            stats = self._service.get_usage_stats()
            sessions = self._service.get_active_sessions()
            report = self._service.get_burn_rate_analysis()
        except Exception:
            logger.exception("usage_scan_error")
            families["success"].add_metric([], 0)
            families["duration"].add_metric([], time.monotonic() - scan_start)
            yield families["success"]
            yield families["duration"]
            return

        for model in stats.by_model:
            families["cost"].add_metric([model.model], model.total_cost)
            families["model_sessions"].add_metric([model.model], model.session_count)
            counts = (
                model.input_tokens,
                model.output_tokens,
                model.cache_creation_tokens,
                model.cache_read_tokens,
            )
            for kind, count in zip(_TOKEN_KINDS, counts):
                families["tokens"].add_metric([model.model, kind], count)

        for project in stats.by_project:
            families["project_cost"].add_metric([project.project_path], project.total_cost)

        for endpoint in stats.by_api_base_url:
            families["api_cost"].add_metric([endpoint.api_base_url], endpoint.total_cost)

        families["sessions"].add_metric([], stats.total_sessions)
        families["active"].add_metric([], sum(1 for s in sessions if s.is_active))
        families["burn_rate"].add_metric([], report.current_burn_rate)
        families["utilization"].add_metric([], report.session_utilization)
        families["success"].add_metric([], 1)
        families["duration"].add_metric([], time.monotonic() - scan_start)

        yield from families.values()


def register_metrics(
    service: "UsageService",
    registry: "CollectorRegistry" = REGISTRY,
) -> "UsageMetricsCollector":
    collector = UsageMetricsCollector(service)
    registry.register(collector)
    return collector
