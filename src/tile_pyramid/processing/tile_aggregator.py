"""
Tile Aggregator

Answers "how many records fall in each tile at zoom z" against a record
store and turns the grouped counts into displayable GeoJSON features placed
at tile centers.

Every non-negative zoom is answered by the store, since the indexed range is
a property of the stored records rather than of this process. A zoom no
record was indexed at yields an empty collection. A tile key that fails to
decode aborts the whole aggregation: skipping it would silently under-count.
"""

import time
from typing import List, Optional

import geopandas as gpd
import pandas as pd
import structlog

from ..exceptions import MalformedKey
from ..models import Feature, FeatureCollection, TileCoordinate, TileCount
from ..monitoring.metrics import MetricsCollector
from ..storage.base_store import RecordStore
from ..tiling.tile_math import WGS84_EPSG, tile_to_center


class TileAggregator:
    """Per-zoom tile counts projected back to geographic features."""

    def __init__(
        self,
        store: RecordStore,
        metrics_collector: Optional[MetricsCollector] = None
    ):
        """
        Initialize the aggregator.

        Args:
            store: Record store holding indexed records
            metrics_collector: Optional metrics collector for monitoring
        """
        self.store = store
        self.metrics = metrics_collector or MetricsCollector()
        self.logger = structlog.get_logger(component="TileAggregator")

    def count_tiles(self, zoom: int) -> List[TileCount]:
        """Grouped (key, count) rows at ``zoom``; empty when no record reaches it."""
        if zoom < 0:
            self.logger.info("Negative zoom, returning no tiles", zoom=zoom)
            return []
        return self.store.aggregate_by_tile_key(zoom)

    def aggregate(self, zoom: int) -> FeatureCollection:
        """
        Build the FeatureCollection of tile counts at ``zoom``.

        Raises:
            MalformedKey: a stored key does not decode to a tile at ``zoom``
            CollaboratorFailure: the store query failed
        """
        start_time = time.perf_counter()
        labels = {'zoom_level': str(zoom)}

        try:
            counts = self.count_tiles(zoom)
            features = [self._to_feature(tile_count, zoom) for tile_count in counts]
        except Exception:
            self.metrics.increment_counter('aggregation_queries_total', labels={'status': 'error'})
            raise

        duration = time.perf_counter() - start_time
        self.metrics.increment_counter('aggregation_queries_total', labels={'status': 'success'})
        self.metrics.record_timing('aggregation_duration_seconds', duration, labels)
        self.metrics.set_gauge('aggregation_tiles', len(features), labels)

        collection = FeatureCollection.from_features(features)
        self.logger.info(
            "Aggregated tile counts",
            zoom=zoom,
            tiles=len(collection),
            records=collection.total_count,
            duration_seconds=round(duration, 6)
        )
        return collection

    def _to_feature(self, tile_count: TileCount, zoom: int) -> Feature:
        tile = TileCoordinate.from_key(tile_count.key)
        if tile.z != zoom:
            raise MalformedKey(tile_count.key, f"zoom {tile.z} returned for a query at zoom {zoom}")
        return Feature(
            geometry=tile_to_center(tile),
            count=int(tile_count.count),
            tile_key=tile_count.key,
        )

    @staticmethod
    def to_geodataframe(collection: FeatureCollection) -> gpd.GeoDataFrame:
        """Tabular view of a collection: one row per tile, point geometry at the center."""
        rows = []
        for feature in collection:
            tile = TileCoordinate.from_key(feature.tile_key)
            rows.append({
                'tile_key': feature.tile_key,
                'x': tile.x,
                'y': tile.y,
                'z': tile.z,
                'count': feature.count,
                'longitude': feature.geometry.longitude,
                'latitude': feature.geometry.latitude,
            })

        columns = ['tile_key', 'x', 'y', 'z', 'count', 'longitude', 'latitude']
        frame = pd.DataFrame(rows, columns=columns)
        return gpd.GeoDataFrame(
            frame,
            geometry=gpd.points_from_xy(frame['longitude'], frame['latitude']),
            crs=f"EPSG:{WGS84_EPSG}",
        )
