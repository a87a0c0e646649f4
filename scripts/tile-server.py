#!/usr/bin/env python3
"""
Tile Count Server launcher

Serves per-zoom tile counts from the configured record store over HTTP.
Store and metrics settings come from the TILE_PYRAMID_* environment; bind address
from HOST and PORT.
"""

import os

import structlog
import uvicorn

from tile_pyramid.monitoring.metrics import MetricsCollector
from tile_pyramid.processing.tile_aggregator import TileAggregator
from tile_pyramid.server import create_app
from tile_pyramid.storage import create_store
from tile_pyramid.utils.config import Config
from tile_pyramid.utils.logging_config import configure_logging

PORT = int(os.getenv("PORT", "8000"))
HOST = os.getenv("HOST", "0.0.0.0")


def build_app():
    config = Config.from_env()
    configure_logging(config.log_level)

    metrics = MetricsCollector.from_config(config)
    store = create_store(config, metrics_collector=metrics)
    aggregator = TileAggregator(store, metrics_collector=metrics)

    structlog.get_logger(component="server").info(
        "Starting tile count server",
        host=HOST,
        port=PORT,
        store=store.store_type
    )
    return create_app(store, aggregator, metrics)


if __name__ == "__main__":
    uvicorn.run(
        build_app(),
        host=HOST,
        port=PORT,
        log_level="info",
        access_log=True
    )
