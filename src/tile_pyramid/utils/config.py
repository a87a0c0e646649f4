"""
Configuration

Explicit configuration tree passed into the indexer, stores, ingesters and
entry points. Nothing in the core reads process-wide settings; only
``Config.from_env`` looks at the environment.
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

ENV_PREFIX = "TILE_PYRAMID_"


def _env_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class DatabaseConfig:
    """Record store settings. ``memory://`` selects the in-process store."""
    url: str = "sqlite:///tile_pyramid.db"
    records_table: str = "records"
    tiles_table: str = "record_tiles"
    chunk_size: int = 1000
    echo: bool = False


@dataclass
class IndexingConfig:
    """Zoom range baked into every indexed record."""
    min_zoom: int = 0
    max_zoom: int = 13
    max_workers: int = 4

    def __post_init__(self):
        if not (0 <= self.min_zoom <= self.max_zoom):
            raise ValueError(
                f"Invalid zoom range [{self.min_zoom}, {self.max_zoom}]"
            )
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")


@dataclass
class AWSConfig:
    region: str = "us-west-2"
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None


@dataclass
class MetricsConfig:
    enable_prometheus: bool = True
    prometheus_gateway: Optional[str] = None
    namespace: str = "tile_pyramid"


@dataclass
class Config:
    """Top-level configuration object."""
    environment: str = "development"
    log_level: str = "INFO"
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    indexing: IndexingConfig = field(default_factory=IndexingConfig)
    aws: AWSConfig = field(default_factory=AWSConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """
        Build a configuration from ``TILE_PYRAMID_*`` environment variables.

        Recognized variables: ENVIRONMENT, LOG_LEVEL, DATABASE_URL,
        RECORDS_TABLE, TILES_TABLE, CHUNK_SIZE, MIN_ZOOM, MAX_ZOOM,
        MAX_WORKERS, AWS_REGION, ENABLE_PROMETHEUS, PROMETHEUS_GATEWAY. The standard
        AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY are read as well.
        """
        env = os.environ if environ is None else environ

        def get(name: str, default: Optional[str] = None) -> Optional[str]:
            return env.get(f"{ENV_PREFIX}{name}", default)

        defaults = DatabaseConfig()
        database = DatabaseConfig(
            url=get("DATABASE_URL", defaults.url),
            records_table=get("RECORDS_TABLE", defaults.records_table),
            tiles_table=get("TILES_TABLE", defaults.tiles_table),
            chunk_size=int(get("CHUNK_SIZE", str(defaults.chunk_size))),
        )

        indexing_defaults = IndexingConfig()
        indexing = IndexingConfig(
            min_zoom=int(get("MIN_ZOOM", str(indexing_defaults.min_zoom))),
            max_zoom=int(get("MAX_ZOOM", str(indexing_defaults.max_zoom))),
            max_workers=int(get("MAX_WORKERS", str(indexing_defaults.max_workers))),
        )

        aws = AWSConfig(
            region=get("AWS_REGION", AWSConfig.region),
            access_key_id=env.get("AWS_ACCESS_KEY_ID"),
            secret_access_key=env.get("AWS_SECRET_ACCESS_KEY"),
        )

        metrics = MetricsConfig(
            enable_prometheus=_env_bool(get("ENABLE_PROMETHEUS"), True),
            prometheus_gateway=get("PROMETHEUS_GATEWAY"),
        )

        return cls(
            environment=get("ENVIRONMENT", "development"),
            log_level=get("LOG_LEVEL", "INFO"),
            database=database,
            indexing=indexing,
            aws=aws,
            metrics=metrics,
        )
