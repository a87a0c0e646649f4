"""
Metrics Collection

Prometheus-backed metrics for indexing, storage and aggregation. Each
collector owns a private ``CollectorRegistry`` so several collectors (for
example one per test) never clash on metric names.

Recent values are also kept in a ring buffer so that they can be read
back in-process without scraping.
"""

import json
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import structlog
from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    push_to_gateway,
)


@dataclass
class MetricValue:
    """Represents a single metric value with metadata."""
    name: str
    value: Union[int, float]
    timestamp: datetime
    labels: Dict[str, str] = field(default_factory=dict)


class MetricsCollector:
    """
    Metrics collection for the tile pyramid pipeline.

    Known metric names are registered with Prometheus up front; unknown names
    are still buffered locally and show up in JSON exports.
    """

    BUILTIN_METRICS = [
        ('counter', 'records_indexed_total',
         'Total number of points indexed into tile stacks', []),
        ('counter', 'records_inserted_total',
         'Total number of indexed records written to the store', ['store']),
        ('counter', 'ingestion_runs_total',
         'Total number of ingestion runs', ['source_type', 'status']),
        ('counter', 'aggregation_queries_total',
         'Total number of tile aggregation queries', ['status']),
        ('histogram', 'indexing_duration_seconds',
         'Duration of batch indexing operations', []),
        ('histogram', 'aggregation_duration_seconds',
         'Duration of tile aggregation queries', ['zoom_level']),
        ('gauge', 'aggregation_tiles',
         'Number of non-empty tiles in the last aggregation', ['zoom_level']),
    ]

    def __init__(
        self,
        enable_prometheus: bool = True,
        prometheus_gateway: Optional[str] = None,
        namespace: str = "tile_pyramid",
        buffer_size: int = 10000
    ):
        """
        Initialize the metrics collector.

        Args:
            enable_prometheus: Register and update Prometheus metrics
            prometheus_gateway: Optional pushgateway address
            namespace: Prometheus namespace prefix
            buffer_size: Number of recent values kept in memory
        """
        self.enable_prometheus = enable_prometheus
        self.prometheus_gateway = prometheus_gateway
        self.namespace = namespace

        self.logger = structlog.get_logger(component="MetricsCollector")

        self.metrics_buffer = deque(maxlen=buffer_size)
        self.lock = threading.RLock()
        self.start_time = time.time()
        self.collection_errors = 0

        self.prometheus_registry = CollectorRegistry()
        self.prometheus_counters: Dict[str, Counter] = {}
        self.prometheus_histograms: Dict[str, Histogram] = {}
        self.prometheus_gauges: Dict[str, Gauge] = {}

        if self.enable_prometheus:
            for metric_type, name, description, labels in self.BUILTIN_METRICS:
                self._create_prometheus_metric(metric_type, name, description, labels)

    @classmethod
    def from_config(cls, config) -> "MetricsCollector":
        return cls(
            enable_prometheus=config.metrics.enable_prometheus,
            prometheus_gateway=config.metrics.prometheus_gateway,
            namespace=config.metrics.namespace,
        )

    def _create_prometheus_metric(
        self,
        metric_type: str,
        name: str,
        description: str,
        labels: List[str]
    ) -> None:
        kwargs = dict(namespace=self.namespace, registry=self.prometheus_registry)
        if metric_type == 'counter':
            self.prometheus_counters[name] = Counter(name, description, labels, **kwargs)
        elif metric_type == 'histogram':
            self.prometheus_histograms[name] = Histogram(name, description, labels, **kwargs)
        elif metric_type == 'gauge':
            self.prometheus_gauges[name] = Gauge(name, description, labels, **kwargs)
        else:
            raise ValueError(f"Unsupported metric type: {metric_type}")

    def _buffer(self, name: str, value: Union[int, float], labels: Dict[str, str]) -> None:
        self.metrics_buffer.append(MetricValue(
            name=name,
            value=value,
            timestamp=datetime.now(timezone.utc),
            labels=dict(labels),
        ))

    def _observe(self, registry: Dict[str, Any], method: str, name: str,
                 value: Union[int, float], labels: Optional[Dict[str, str]]) -> None:
        labels = labels or {}
        try:
            with self.lock:
                self._buffer(name, value, labels)
                if self.enable_prometheus and name in registry:
                    metric = registry[name]
                    if labels:
                        metric = metric.labels(**labels)
                    getattr(metric, method)(value)
        except Exception as e:
            self.collection_errors += 1
            self.logger.error("Failed to record metric", metric_name=name, error=str(e))

    def increment_counter(
        self,
        name: str,
        value: Union[int, float] = 1,
        labels: Optional[Dict[str, str]] = None
    ) -> None:
        """Increment a counter metric."""
        self._observe(self.prometheus_counters, 'inc', name, value, labels)

    def record_histogram(
        self,
        name: str,
        value: Union[int, float],
        labels: Optional[Dict[str, str]] = None
    ) -> None:
        """Record an observation in a histogram metric."""
        self._observe(self.prometheus_histograms, 'observe', name, value, labels)

    def set_gauge(
        self,
        name: str,
        value: Union[int, float],
        labels: Optional[Dict[str, str]] = None
    ) -> None:
        """Set a gauge metric."""
        self._observe(self.prometheus_gauges, 'set', name, value, labels)

    def record_timing(
        self,
        name: str,
        duration: float,
        labels: Optional[Dict[str, str]] = None
    ) -> None:
        """Record a duration in seconds."""
        self.record_histogram(name, duration, labels)

    def get_values(self, name: str, labels: Optional[Dict[str, str]] = None) -> List[float]:
        """Buffered values for a metric, optionally restricted to exact labels."""
        with self.lock:
            return [
                m.value for m in self.metrics_buffer
                if m.name == name and (labels is None or m.labels == labels)
            ]

    def get_system_health(self) -> Dict[str, Any]:
        with self.lock:
            collected = len(self.metrics_buffer)
        error_rate = self.collection_errors / max(collected, 1)
        return {
            'status': 'degraded' if error_rate > 0.1 else 'healthy',
            'uptime_seconds': time.time() - self.start_time,
            'metrics_buffer_size': collected,
            'metrics_collection_errors': self.collection_errors,
            'prometheus_enabled': self.enable_prometheus,
        }

    def push_to_prometheus_gateway(self, job_name: str = "tile_pyramid") -> bool:
        """Push metrics to the Prometheus pushgateway, if one is configured."""
        if not self.enable_prometheus or not self.prometheus_gateway:
            return False

        try:
            push_to_gateway(
                self.prometheus_gateway,
                job=job_name,
                registry=self.prometheus_registry
            )
            self.logger.info(
                "Pushed metrics to Prometheus gateway",
                gateway=self.prometheus_gateway,
                job=job_name
            )
            return True
        except Exception as e:
            self.logger.error("Failed to push metrics to Prometheus gateway", error=str(e))
            return False

    def export_metrics(self, format: str = "json") -> str:
        """Export metrics as JSON (buffered values) or Prometheus text format."""
        if format.lower() == "json":
            with self.lock:
                recent = [
                    {
                        'name': m.name,
                        'value': m.value,
                        'timestamp': m.timestamp.isoformat(),
                        'labels': m.labels,
                    }
                    for m in self.metrics_buffer
                ]
            return json.dumps({
                'export_timestamp': datetime.now(timezone.utc).isoformat(),
                'metrics_count': len(recent),
                'metrics': recent,
            }, indent=2)

        if format.lower() == "prometheus":
            return generate_latest(self.prometheus_registry).decode('utf-8')

        raise ValueError(f"Unsupported export format: {format}")
