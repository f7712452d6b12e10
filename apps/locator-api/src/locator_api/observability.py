from __future__ import annotations

from contextvars import ContextVar
from dataclasses import asdict, dataclass
from typing import Protocol

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

_trace_id_ctx: ContextVar[str] = ContextVar("trace_id", default="")


def set_trace_id(trace_id: str) -> None:
    _trace_id_ctx.set(trace_id)


def get_trace_id() -> str:
    return _trace_id_ctx.get()


@dataclass(frozen=True)
class ApiRequestMetric:
    method: str
    path: str
    status_code: int
    duration_ms: float
    trace_id: str


class ApiMetricCollector(Protocol):
    def observe(self, metric: ApiRequestMetric) -> None: ...


class InMemoryApiMetricsCollector(ApiMetricCollector):
    def __init__(self) -> None:
        self._metrics: list[ApiRequestMetric] = []

    def observe(self, metric: ApiRequestMetric) -> None:
        self._metrics.append(metric)

    def snapshot(self) -> list[dict]:
        return [asdict(item) for item in self._metrics]


class PrometheusApiMetricsCollector(ApiMetricCollector):
    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()
        self._request_counter = Counter(
            "locator_http_requests_total",
            "Total locator API HTTP requests",
            labelnames=("method", "route", "status_code"),
            registry=self._registry,
        )
        self._latency_histogram = Histogram(
            "locator_http_request_duration_ms",
            "Locator API HTTP request latency in milliseconds",
            labelnames=("method", "route"),
            buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 3000),
            registry=self._registry,
        )

    def observe(self, metric: ApiRequestMetric) -> None:
        self._request_counter.labels(metric.method, metric.path, str(metric.status_code)).inc()
        self._latency_histogram.labels(metric.method, metric.path).observe(metric.duration_ms)

    def render(self) -> str:
        return generate_latest(self._registry).decode("utf-8")


class CompositeApiMetricsCollector(ApiMetricCollector):
    def __init__(self, collectors: list[ApiMetricCollector]) -> None:
        self._collectors = collectors

    def observe(self, metric: ApiRequestMetric) -> None:
        for collector in self._collectors:
            collector.observe(metric)


class SearchMetrics:
    """Prometheus counters for the search pipeline."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()
        self._cache_counter = Counter(
            "pharmacy_search_cache_total",
            "Search cache lookups by result",
            labelnames=("result",),
            registry=self._registry,
        )
        self._travel_time_failures = Counter(
            "pharmacy_travel_time_failures_total",
            "Travel-time enrichment calls that degraded to no data",
            registry=self._registry,
        )
        self._search_latency = Histogram(
            "pharmacy_search_duration_ms",
            "End-to-end search latency in milliseconds",
            buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 3000, 6000),
            registry=self._registry,
        )

    def record_cache(self, hit: bool) -> None:
        self._cache_counter.labels("hit" if hit else "miss").inc()

    def record_travel_time_failure(self) -> None:
        self._travel_time_failures.inc()

    def observe_search(self, duration_ms: float) -> None:
        self._search_latency.observe(duration_ms)

    def render(self) -> str:
        return generate_latest(self._registry).decode("utf-8")
