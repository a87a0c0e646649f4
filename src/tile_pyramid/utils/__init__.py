"""Configuration and logging helpers."""

from .config import Config, DatabaseConfig, IndexingConfig, AWSConfig, MetricsConfig
from .logging_config import configure_logging

__all__ = [
    "Config",
    "DatabaseConfig",
    "IndexingConfig",
    "AWSConfig",
    "MetricsConfig",
    "configure_logging",
]
