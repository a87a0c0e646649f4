"""
Command-line entry point.

Optionally bulk-loads points (the bundled NYC 311 noise sample or a CSV file),
then aggregates the stored tile stacks at one zoom level and prints the
resulting GeoJSON FeatureCollection.

Usage:
    tile-pyramid --insert --level 12
    tile-pyramid --level 10 --database-url sqlite:///points.db --output counts.geojson
"""

import argparse
import dataclasses
import sys
from typing import List, Optional

import structlog

from .data_ingestion import CSVPointIngester, demo_data_path
from .exceptions import TilePyramidError
from .export import GeoJSONWriter
from .monitoring.metrics import MetricsCollector
from .processing.tile_aggregator import TileAggregator
from .storage import create_store
from .tiling.pyramid_indexer import TilePyramidIndexer
from .utils.config import Config
from .utils.logging_config import configure_logging

DEFAULT_LEVEL = 12
PUSH_JOB_NAME = "tile_pyramid_cli"

logger = structlog.get_logger(component="cli")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="tile-pyramid",
        description="Index points into a Web Mercator tile pyramid and aggregate tile counts",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        "--insert", action="store_true",
        help="Bulk-load points before aggregating (bundled demo data unless --csv is given)"
    )
    parser.add_argument(
        "--level", type=int, default=DEFAULT_LEVEL,
        help="Zoom level to aggregate"
    )
    parser.add_argument(
        "--csv", type=str, default=None,
        help="CSV file with Latitude/Longitude columns to load with --insert"
    )
    parser.add_argument(
        "--database-url", type=str, default=None,
        help="Record store URL (memory:// or a SQLAlchemy URL); overrides TILE_PYRAMID_DATABASE_URL"
    )
    parser.add_argument(
        "--min-zoom", type=int, default=None,
        help="Lowest zoom level indexed for inserted points"
    )
    parser.add_argument(
        "--max-zoom", type=int, default=None,
        help="Highest zoom level indexed for inserted points"
    )
    parser.add_argument(
        "--output", type=str, default="-",
        help="Destination: '-' for stdout, a .geojson/.csv path or s3://bucket/key"
    )
    parser.add_argument(
        "--log-level", type=str, default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (logs go to stderr)"
    )

    args = parser.parse_args(argv)
    if args.csv and not args.insert:
        parser.error("--csv requires --insert")
    return args


def build_config(args: argparse.Namespace, environ=None) -> Config:
    """Environment configuration with command line overrides applied."""
    config = Config.from_env(environ)

    if args.database_url:
        config.database = dataclasses.replace(config.database, url=args.database_url)
    if args.min_zoom is not None or args.max_zoom is not None:
        config.indexing = dataclasses.replace(
            config.indexing,
            min_zoom=config.indexing.min_zoom if args.min_zoom is None else args.min_zoom,
            max_zoom=config.indexing.max_zoom if args.max_zoom is None else args.max_zoom,
        )
    if args.log_level:
        config.log_level = args.log_level
    return config


def run(args: argparse.Namespace, config: Config, stdout=None) -> str:
    """Insert (optionally), aggregate and write; returns where the output went."""
    metrics = MetricsCollector.from_config(config)
    indexer = TilePyramidIndexer.from_config(config, metrics)

    with create_store(config, metrics_collector=metrics) as store:
        if args.insert:
            source = args.csv or demo_data_path()
            ingester = CSVPointIngester(config, store, indexer=indexer, metrics_collector=metrics)
            result = ingester.ingest(source)
            logger.info(
                "Inserted records",
                source=str(source),
                records=result['stats']['records_processed']
            )

        aggregator = TileAggregator(store, metrics_collector=metrics)
        collection = aggregator.aggregate(args.level)

    writer = GeoJSONWriter(aws_config=config.aws, stream=stdout)
    destination = writer.write(collection, args.output)

    metrics.push_to_prometheus_gateway(PUSH_JOB_NAME)
    return destination


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level or "INFO")

    try:
        config = build_config(args)
        configure_logging(config.log_level)
        destination = run(args, config)
    except (TilePyramidError, ValueError, OSError) as e:
        logger.error("Run failed", error=str(e), error_type=type(e).__name__)
        return 1

    logger.info("Run completed", level=args.level, destination=destination)
    return 0


if __name__ == "__main__":
    sys.exit(main())
