"""
Prometheus metrics for the Bearer Gate.
"""

import time
from contextlib import contextmanager
from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, Info, generate_latest


class MetricsCollector:
    """Metrics for one gate instance.

    Each collector owns its registry so several gates (and test cases) can
    live in one process.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

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

        self._metrics["auth_requests_total"] = Counter(
            "auth_requests_total",
            "Authentication attempts by outcome",
            ["outcome", "error"],
            registry=self.registry
        )

        self._metrics["jwks_refresh_total"] = Counter(
            "jwks_refresh_total",
            "Total JWKS refreshes",
            ["status"],
            registry=self.registry
        )

        self._metrics["jwks_refresh_duration_seconds"] = Histogram(
            "jwks_refresh_duration_seconds",
            "JWKS refresh duration in seconds",
            registry=self.registry
        )

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

    def record_auth(self, outcome: str, error: str = ""):
        """Record one authentication decision (``authenticated``, ``anonymous`` or ``rejected``)."""
        self._metrics["auth_requests_total"].labels(outcome=outcome, error=error).inc()

    def record_jwks_refresh(self, status: str, duration: float):
        self._metrics["jwks_refresh_total"].labels(status=status).inc()
        self._metrics["jwks_refresh_duration_seconds"].observe(duration)

    @contextmanager
    def time_jwks_refresh(self):
        """Time a trust-material refresh and count it as ok or error."""
        start_time = time.perf_counter()
        try:
            yield
        except Exception:
            self.record_jwks_refresh("error", time.perf_counter() - start_time)
            raise
        self.record_jwks_refresh("ok", time.perf_counter() - start_time)

    def sample(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Current value of a sample, 0.0 when it was never recorded."""
        value = self.registry.get_sample_value(name, labels or {})
        return value or 0.0

    def export(self) -> bytes:
        """Render the registry in Prometheus text format."""
        return generate_latest(self.registry)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
