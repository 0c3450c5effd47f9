"""
Prometheus metrics for the Lightrate client.
"""

import threading
from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter


class ClientMetrics:
    """Counters describing how often the local token cache saves an API call.

    Each client gets its own registry unless one is supplied, so several
    clients can live in one process without duplicate-metric errors.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up client metrics."""
        self._metrics["local_token_hits_total"] = Counter(
            "lightrate_local_token_hits_total",
            "Token requests served from a local bucket",
            registry=self.registry
        )

        self._metrics["remote_fetches_total"] = Counter(
            "lightrate_remote_fetches_total",
            "Token batches requested from the Lightrate API",
            ["result"],
            registry=self.registry
        )

        self._metrics["tokens_granted_total"] = Counter(
            "lightrate_tokens_granted_total",
            "Tokens granted by the Lightrate API",
            registry=self.registry
        )

        self._metrics["buckets_created_total"] = Counter(
            "lightrate_buckets_created_total",
            "Local token buckets created",
            registry=self.registry
        )

        self._metrics["api_errors_total"] = Counter(
            "lightrate_api_errors_total",
            "Errors raised by the Lightrate API",
            ["error_type"],
            registry=self.registry
        )

    def increment_counter(self, metric_name: str, amount: float = 1, **labels):
        """Increment a counter metric."""
        with self._lock:
            metric = self._metrics.get(metric_name)
            if metric is None:
                raise KeyError(f"Unknown metric: {metric_name}")
            if labels:
                metric.labels(**labels).inc(amount)
            else:
                metric.inc(amount)

    def record_local_hit(self):
        self.increment_counter("local_token_hits_total")

    def record_remote_fetch(self, result: str, tokens_granted: int):
        self.increment_counter("remote_fetches_total", result=result)
        if tokens_granted > 0:
            self.increment_counter("tokens_granted_total", tokens_granted)

    def record_bucket_created(self):
        self.increment_counter("buckets_created_total")

    def record_error(self, error_type: str):
        self.increment_counter("api_errors_total", error_type=error_type)

    def get_value(self, name: str, **labels) -> float:
        """Current value of a sample, 0.0 when it has not been emitted yet."""
        value = self.registry.get_sample_value(name, labels or None)
        return value or 0.0
