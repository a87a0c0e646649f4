"""
Base Data Ingester

Common extract -> validate -> transform -> load workflow for point sources.
Transform turns raw points into indexed records (point plus tile stack) and
load bulk-inserts them into the record store.

A batch is all-or-nothing: an invalid point or a store failure aborts the
run and is re-raised to the caller after the failure has been recorded.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import structlog

from ..models import IndexedRecord
from ..monitoring.metrics import MetricsCollector
from ..storage.base_store import RecordStore
from ..tiling.pyramid_indexer import TilePyramidIndexer
from ..utils.config import Config


class BaseDataIngester(ABC):
    """
    Abstract base class for point ingestion.

    Provides:
    - Configuration and collaborator wiring
    - Structured logging and metrics
    - Run statistics
    """

    source_type = "base"

    def __init__(
        self,
        config: Config,
        store: RecordStore,
        indexer: Optional[TilePyramidIndexer] = None,
        metrics_collector: Optional[MetricsCollector] = None
    ):
        """
        Initialize the ingester.

        Args:
            config: Configuration object
            store: Record store receiving indexed records
            indexer: Indexer to use; built from ``config.indexing`` when omitted
            metrics_collector: Optional metrics collector for monitoring
        """
        self.config = config
        self.store = store
        self.metrics = metrics_collector or MetricsCollector()
        self.indexer = indexer or TilePyramidIndexer.from_config(config, self.metrics)

        self.logger = structlog.get_logger(
            ingester_type=self.__class__.__name__,
            config_env=config.environment
        )
        self.stats = self._empty_stats()

    @staticmethod
    def _empty_stats() -> Dict[str, Any]:
        return {
            'records_processed': 0,
            'records_failed': 0,
            'start_time': None,
            'end_time': None,
            'errors': []
        }

    @abstractmethod
    def extract(self, source: Any) -> Any:
        """
        Extract raw points from the source.

        Args:
            source: Data source specification (path, buffer, ...)

        Returns:
            Extracted data in the ingester's native format
        """

    @abstractmethod
    def validate(self, data: Any) -> bool:
        """
        Check the extracted data for completeness and coordinate range.

        Returns:
            True if the data can be indexed, False otherwise
        """

    @abstractmethod
    def transform(self, data: Any) -> List[IndexedRecord]:
        """Index the extracted points into records."""

    def load(self, records: Sequence[IndexedRecord]) -> int:
        """Bulk-insert records into the store and return how many were inserted."""
        self.logger.info("Loading records into store", records=len(records))
        return self.store.insert_many(records)

    def ingest(self, source: Any, validate_data: bool = True) -> Dict[str, Any]:
        """
        Complete ingestion workflow: extract, validate, transform, and load.

        Args:
            source: Data source specification
            validate_data: Whether to run validation before indexing

        Returns:
            Dictionary containing the run result and statistics

        Raises:
            ValueError: extraction produced nothing or validation failed
            InvalidCoordinate: a point could not be indexed
            CollaboratorFailure: the store rejected the batch
        """
        self.stats = self._empty_stats()
        self.stats['start_time'] = time.time()
        extracted = 0

        try:
            self.logger.info("Starting data ingestion", source=str(source))

            data = self.extract(source)
            if data is None:
                raise ValueError("Data extraction returned None")
            extracted = len(data)

            if validate_data and not self.validate(data):
                raise ValueError("Data validation failed")

            records = self.transform(data)
            inserted = self.load(records)

        except Exception as e:
            self.stats['end_time'] = time.time()
            self.stats['records_failed'] = extracted
            self.stats['errors'].append(str(e))
            self.metrics.increment_counter(
                'ingestion_runs_total',
                labels={'source_type': self.source_type, 'status': 'failure'}
            )
            self.logger.error(
                "Data ingestion failed",
                error=str(e),
                duration_seconds=self.stats['end_time'] - self.stats['start_time']
            )
            raise

        self.stats['end_time'] = time.time()
        self.stats['records_processed'] = inserted
        self.metrics.increment_counter(
            'ingestion_runs_total',
            labels={'source_type': self.source_type, 'status': 'success'}
        )
        self.logger.info(
            "Data ingestion completed successfully",
            records_processed=inserted,
            duration_seconds=self.stats['end_time'] - self.stats['start_time']
        )

        return {
            'success': True,
            'stats': dict(self.stats),
            'message': 'Ingestion completed successfully'
        }
