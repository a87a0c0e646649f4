"""
Record Store Interface

Boundary between the indexing/aggregation core and the persistence engine.
A store persists indexed records with their tile stacks and answers one
query primitive: count records per tile key at a given zoom.

Stores may group natively (a database GROUP BY) or scan and group in
process; both satisfy the same contract. Backend errors surface as
``CollaboratorFailure`` and are never retried here.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence

import structlog

from ..models import IndexedRecord, TileCount
from ..monitoring.metrics import MetricsCollector


class RecordStore(ABC):
    """Abstract base class for record stores."""

    store_type = "base"

    def __init__(self, metrics_collector: MetricsCollector = None):
        self.metrics = metrics_collector or MetricsCollector()
        self.logger = structlog.get_logger(store_type=self.store_type)

    @abstractmethod
    def insert_many(self, records: Sequence[IndexedRecord]) -> int:
        """
        Persist records with their tile stacks.

        Args:
            records: Indexed records to insert

        Returns:
            Number of records inserted

        Raises:
            CollaboratorFailure: if the write fails
        """

    @abstractmethod
    def aggregate_by_tile_key(self, zoom: int) -> List[TileCount]:
        """
        Count records per tile key among memberships at ``zoom``.

        Raises:
            CollaboratorFailure: if the query fails
        """

    @abstractmethod
    def count_records(self) -> int:
        """Total number of stored records."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every stored record."""

    def close(self) -> None:
        """Release backend resources."""

    def _record_insert(self, inserted: int) -> None:
        self.metrics.increment_counter(
            'records_inserted_total', inserted, {'store': self.store_type}
        )
        self.logger.info("Inserted records", records=inserted)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
