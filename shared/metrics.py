"""
Shared metrics configuration for the portfolio showcase services.
"""

from typing import Dict, Any, Optional

from prometheus_client import Counter, Histogram, Info, CollectorRegistry, generate_latest


class MetricsCollector:
    """Centralized metrics collector for services.

    Every collector owns its registry so that several collectors (one per
    service instance, or one per test) never clash on metric names.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

        if self.service_name == "showcase":
            self._setup_showcase_metrics()

    def _setup_showcase_metrics(self):
        """Set up showcase-specific metrics."""
        self._metrics["resource_cache_reads_total"] = Counter(
            "resource_cache_reads_total",
            "Total resource cache reads",
            ["resource", "result"],
            registry=self.registry
        )

        self._metrics["resource_cache_writes_total"] = Counter(
            "resource_cache_writes_total",
            "Total resource cache writes",
            ["resource", "result"],
            registry=self.registry
        )

        self._metrics["resource_fetches_total"] = Counter(
            "resource_fetches_total",
            "Total resource fetches against the portfolio API",
            ["resource", "outcome"],
            registry=self.registry
        )

        self._metrics["resource_fetch_duration_seconds"] = Histogram(
            "resource_fetch_duration_seconds",
            "Resource fetch duration in seconds",
            ["resource"],
            registry=self.registry
        )

        self._metrics["resource_stale_responses_total"] = Counter(
            "resource_stale_responses_total",
            "Fetch results discarded because a later request superseded them",
            ["resource"],
            registry=self.registry
        )

    def render(self) -> bytes:
        """Render the collector's registry in Prometheus text format."""
        return generate_latest(self.registry)

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_health_check(self, status: str):
        """Record health check metrics."""
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_error(self, error_type: str, service: Optional[str] = None):
        """Record error metrics."""
        service_name = service or self.service_name
        self._metrics["errors_total"].labels(error_type=error_type, service=service_name).inc()

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).inc()

    def observe_histogram(self, metric_name: str, value: float, **labels):
        """Observe a histogram metric."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).observe(value)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
