"""
Processing Module

Per-zoom aggregation of stored tile stacks into GeoJSON tile-count features.
"""

from .tile_aggregator import TileAggregator

__all__ = [
    "TileAggregator"
]
