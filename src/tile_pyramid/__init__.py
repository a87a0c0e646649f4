"""
Tile Pyramid Aggregator

Indexes geographic point records into a stack of Web Mercator tiles (one per
zoom level) and answers per-tile point counts for a zoom level, emitted as a
GeoJSON FeatureCollection positioned at tile centers.
"""

__version__ = "1.0.0"

from .exceptions import (
    TilePyramidError,
    InvalidCoordinate,
    MalformedKey,
    CollaboratorFailure,
)
from .models import (
    GeoPoint,
    TileCoordinate,
    TileMembership,
    IndexedRecord,
    TileCount,
    Feature,
    FeatureCollection,
)
from .tiling.tile_math import point_to_tile, tile_to_center
from .tiling.pyramid_indexer import TilePyramidIndexer, build_stack
from .processing.tile_aggregator import TileAggregator

__all__ = [
    "TilePyramidError",
    "InvalidCoordinate",
    "MalformedKey",
    "CollaboratorFailure",
    "GeoPoint",
    "TileCoordinate",
    "TileMembership",
    "IndexedRecord",
    "TileCount",
    "Feature",
    "FeatureCollection",
    "point_to_tile",
    "tile_to_center",
    "TilePyramidIndexer",
    "build_stack",
    "TileAggregator",
]
