"""
Tile Count Server

A FastAPI application serving per-zoom tile counts as GeoJSON. Read-only:
records are loaded through the CLI or an ingester, never over HTTP.
"""

from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST

from . import __version__
from .exceptions import CollaboratorFailure, MalformedKey
from .monitoring.metrics import MetricsCollector
from .processing.tile_aggregator import TileAggregator
from .storage.base_store import RecordStore

GEOJSON_MEDIA_TYPE = "application/geo+json"

logger = structlog.get_logger(component="server")


def create_app(
    store: RecordStore,
    aggregator: Optional[TileAggregator] = None,
    metrics_collector: Optional[MetricsCollector] = None
) -> FastAPI:
    """
    Build the HTTP application around an existing store.

    Args:
        store: Record store to aggregate from
        aggregator: Aggregator to use; one over ``store`` is built when omitted
        metrics_collector: Collector exposed on ``/metrics``; defaults to the
            aggregator's
    """
    aggregator = aggregator or TileAggregator(store, metrics_collector=metrics_collector)
    metrics = metrics_collector or aggregator.metrics

    app = FastAPI(
        title="Tile Pyramid Aggregator",
        description="Per-zoom Web Mercator tile counts as GeoJSON",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.state.store = store
    app.state.aggregator = aggregator
    app.state.metrics = metrics

    @app.exception_handler(CollaboratorFailure)
    async def collaborator_failure_handler(request: Request, exc: CollaboratorFailure):
        logger.error("Record store failure", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.exception_handler(MalformedKey)
    async def malformed_key_handler(request: Request, exc: MalformedKey):
        logger.error("Malformed tile key in store", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": "tile-pyramid-aggregator",
            "version": __version__,
            "store": store.store_type,
            "metrics": metrics.get_system_health(),
        }

    @app.get("/aggregate/{z}")
    def aggregate(z: int):
        """Tile counts at zoom ``z``; empty when no records reach that zoom."""
        collection = aggregator.aggregate(z)
        logger.info("Serving aggregation", z=z, tiles=len(collection))
        return Response(content=collection.to_json(indent=None), media_type=GEOJSON_MEDIA_TYPE)

    @app.get("/metrics")
    def prometheus_metrics():
        return Response(
            content=metrics.export_metrics("prometheus"),
            media_type=CONTENT_TYPE_LATEST
        )

    return app
