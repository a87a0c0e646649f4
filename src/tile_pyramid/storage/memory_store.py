"""
In-process record store.

Keeps records in memory and answers aggregations by scanning every
membership at the requested zoom and grouping with pandas. Used for tests,
demos and the ``memory://`` database URL.
"""

import threading
from typing import Dict, List, Sequence

import pandas as pd

from ..exceptions import CollaboratorFailure
from ..models import IndexedRecord, TileCount
from ..monitoring.metrics import MetricsCollector
from .base_store import RecordStore

MEMBERSHIP_COLUMNS = ['record_id', 'z', 'x', 'y', 'tile_key']


class MemoryRecordStore(RecordStore):
    """Record store backed by a dict of records and a membership table."""

    store_type = "memory"

    def __init__(self, metrics_collector: MetricsCollector = None):
        super().__init__(metrics_collector)
        self._lock = threading.RLock()
        self._records: Dict[str, IndexedRecord] = {}
        self._membership_rows: List[tuple] = []

    def insert_many(self, records: Sequence[IndexedRecord]) -> int:
        records = list(records)
        with self._lock:
            seen = set()
            for record in records:
                if record.id in self._records or record.id in seen:
                    raise CollaboratorFailure(
                        'insert_many', KeyError(f"duplicate record id {record.id}")
                    )
                seen.add(record.id)

            for record in records:
                self._records[record.id] = record
                self._membership_rows.extend(
                    (record.id, m.z, m.x, m.y, m.key) for m in record.tiles
                )

        self._record_insert(len(records))
        return len(records)

    def memberships(self) -> pd.DataFrame:
        """Snapshot of every stored membership as a DataFrame."""
        with self._lock:
            rows = list(self._membership_rows)
        return pd.DataFrame(rows, columns=MEMBERSHIP_COLUMNS)

    def aggregate_by_tile_key(self, zoom: int) -> List[TileCount]:
        frame = self.memberships()
        at_zoom = frame[frame['z'] == zoom]
        if at_zoom.empty:
            return []

        counts = at_zoom.groupby('tile_key', sort=True).size()
        return [TileCount(key=str(key), count=int(count)) for key, count in counts.items()]

    def get(self, record_id: str) -> IndexedRecord:
        with self._lock:
            return self._records[record_id]

    def count_records(self) -> int:
        with self._lock:
            return len(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
            self._membership_rows.clear()
