"""
Tile Pyramid Indexer

Computes, for each point, the ordered stack of tile memberships over a fixed
zoom range. The stack is stored next to the point so that per-zoom counting
becomes a plain group-by on tile keys.

Indexing a batch is an independent map over points with no shared mutable
state, so batches are mapped over a thread pool. The work is pure Python and
holds the GIL, so the pool bounds concurrency rather than adding speedup. A
batch is all-or-nothing; the first invalid point aborts it.
"""

import concurrent.futures
import secrets
import time
from typing import Iterable, List, Optional, Sequence, Tuple

import structlog

from ..models import GeoPoint, IndexedRecord, TileMembership
from ..monitoring.metrics import MetricsCollector
from .tile_math import point_to_tile

DEFAULT_MIN_ZOOM = 0
DEFAULT_MAX_ZOOM = 13
MAX_SUPPORTED_ZOOM = 30


def validate_zoom_range(min_zoom: int, max_zoom: int) -> None:
    if not (0 <= min_zoom <= max_zoom <= MAX_SUPPORTED_ZOOM):
        raise ValueError(
            f"Zoom range must satisfy 0 <= min_zoom <= max_zoom <= {MAX_SUPPORTED_ZOOM}, "
            f"got [{min_zoom}, {max_zoom}]"
        )


def build_stack(point: GeoPoint, min_zoom: int, max_zoom: int) -> Tuple[TileMembership, ...]:
    """
    Tile memberships of ``point`` for every zoom in ``[min_zoom, max_zoom]``.

    The result has ``max_zoom - min_zoom + 1`` entries in ascending zoom
    order and is fully determined by its inputs. ``InvalidCoordinate``
    propagates from the projection; no partial stack is ever returned.
    """
    validate_zoom_range(min_zoom, max_zoom)
    return tuple(
        TileMembership.of(point_to_tile(point, z))
        for z in range(min_zoom, max_zoom + 1)
    )


def new_record_id() -> str:
    """24 hex characters, timestamp-prefixed like a document-store object id."""
    return f"{int(time.time()):08x}{secrets.token_hex(8)}"


class TilePyramidIndexer:
    """Builds IndexedRecords for a fixed zoom range."""

    def __init__(
        self,
        min_zoom: int = DEFAULT_MIN_ZOOM,
        max_zoom: int = DEFAULT_MAX_ZOOM,
        max_workers: int = 4,
        metrics_collector: Optional[MetricsCollector] = None
    ):
        validate_zoom_range(min_zoom, max_zoom)
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")

        self.min_zoom = min_zoom
        self.max_zoom = max_zoom
        self.max_workers = max_workers
        self.metrics = metrics_collector or MetricsCollector()

        self.logger = structlog.get_logger(
            component="TilePyramidIndexer",
            min_zoom=min_zoom,
            max_zoom=max_zoom
        )

    @classmethod
    def from_config(cls, config, metrics_collector: Optional[MetricsCollector] = None):
        return cls(
            min_zoom=config.indexing.min_zoom,
            max_zoom=config.indexing.max_zoom,
            max_workers=config.indexing.max_workers,
            metrics_collector=metrics_collector,
        )

    @property
    def zoom_levels(self) -> range:
        return range(self.min_zoom, self.max_zoom + 1)

    @property
    def stack_size(self) -> int:
        return self.max_zoom - self.min_zoom + 1

    def build_stack(self, point: GeoPoint) -> Tuple[TileMembership, ...]:
        return build_stack(point, self.min_zoom, self.max_zoom)

    def index_point(self, point: GeoPoint, record_id: Optional[str] = None) -> IndexedRecord:
        """Create a record for ``point`` with its full tile stack."""
        return IndexedRecord(
            id=record_id if record_id is not None else new_record_id(),
            location=point,
            tiles=self.build_stack(point),
        )

    def index_points(
        self,
        points: Iterable[GeoPoint],
        record_ids: Optional[Sequence[str]] = None
    ) -> List[IndexedRecord]:
        """
        Index a batch of points over the worker pool (GIL-bound, not a speedup).

        Args:
            points: Points to index
            record_ids: Optional ids, one per point; generated when omitted

        Returns:
            Records in input order

        Raises:
            InvalidCoordinate: if any point is invalid; nothing is returned
        """
        points = list(points)
        if record_ids is None:
            record_ids = [new_record_id() for _ in points]
        elif len(record_ids) != len(points):
            raise ValueError(
                f"Got {len(record_ids)} record ids for {len(points)} points"
            )

        start_time = time.perf_counter()

        if len(points) <= 1 or self.max_workers == 1:
            records = [self.index_point(p, rid) for p, rid in zip(points, record_ids)]
        else:
            with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                # list() re-raises the first failure in input order
                records = list(executor.map(self.index_point, points, record_ids))

        duration = time.perf_counter() - start_time
        self.metrics.increment_counter('records_indexed_total', len(records))
        self.metrics.record_timing('indexing_duration_seconds', duration)

        self.logger.info(
            "Indexed point batch",
            records=len(records),
            duration_seconds=round(duration, 6)
        )
        return records
