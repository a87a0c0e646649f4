"""
Monitoring Module

Prometheus metrics for indexing throughput, store writes and aggregation
latency.
"""

from .metrics import MetricsCollector, MetricValue

__all__ = [
    "MetricsCollector",
    "MetricValue"
]
