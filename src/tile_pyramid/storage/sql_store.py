"""
Relational record store.

Persists each record in a ``records`` table and its tile stack in a
``record_tiles`` table (one row per zoom level). Aggregation is pushed down to
the database as ``SELECT tile_key, COUNT(*) ... WHERE z = :zoom GROUP BY
tile_key`` served by an index on ``(z, tile_key)``.

Works with any SQLAlchemy URL; tests use in-memory SQLite.
"""

from typing import List, Sequence

from sqlalchemy import (
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    delete,
    func,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from ..exceptions import CollaboratorFailure
from ..models import IndexedRecord, TileCount
from ..monitoring.metrics import MetricsCollector
from .base_store import RecordStore


def _chunks(items: list, size: int):
    for start in range(0, len(items), size):
        yield items[start:start + size]


class SqlRecordStore(RecordStore):
    """Record store over an SQLAlchemy engine."""

    store_type = "sql"

    def __init__(
        self,
        url: str,
        records_table: str = "records",
        tiles_table: str = "record_tiles",
        chunk_size: int = 1000,
        echo: bool = False,
        engine: Engine = None,
        metrics_collector: MetricsCollector = None
    ):
        super().__init__(metrics_collector)
        self.url = url
        self.chunk_size = max(1, chunk_size)

        try:
            self.engine = engine or self._create_engine(url, echo)
            self.metadata = MetaData()
            self.records = Table(
                records_table, self.metadata,
                Column('id', String(64), primary_key=True),
                Column('longitude', Float, nullable=False),
                Column('latitude', Float, nullable=False),
            )
            self.tiles = Table(
                tiles_table, self.metadata,
                Column('record_id', String(64), ForeignKey(f"{records_table}.id"), nullable=False),
                Column('z', Integer, nullable=False),
                Column('x', Integer, nullable=False),
                Column('y', Integer, nullable=False),
                Column('tile_key', String(48), nullable=False),
                Index(f"ix_{tiles_table}_z_tile_key", 'z', 'tile_key'),
            )
            self.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise CollaboratorFailure('connect', e) from e

        self.logger.info(
            "SQL record store ready",
            dialect=self.engine.dialect.name,
            records_table=records_table,
            tiles_table=tiles_table
        )

    @classmethod
    def from_config(cls, config, metrics_collector: MetricsCollector = None) -> "SqlRecordStore":
        db = config.database
        return cls(
            url=db.url,
            records_table=db.records_table,
            tiles_table=db.tiles_table,
            chunk_size=db.chunk_size,
            echo=db.echo,
            metrics_collector=metrics_collector,
        )

    @staticmethod
    def _create_engine(url: str, echo: bool) -> Engine:
        if url in ("sqlite://", "sqlite:///:memory:"):
            # Single shared connection so every thread sees the same in-memory database
            return create_engine(
                url,
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_engine(url, echo=echo)

    def insert_many(self, records: Sequence[IndexedRecord]) -> int:
        records = list(records)
        if not records:
            return 0

        record_rows = [
            {'id': r.id, 'longitude': r.location.longitude, 'latitude': r.location.latitude}
            for r in records
        ]
        tile_rows = [
            {'record_id': r.id, 'z': m.z, 'x': m.x, 'y': m.y, 'tile_key': m.key}
            for r in records
            for m in r.tiles
        ]

        try:
            with self.engine.begin() as conn:
                for chunk in _chunks(record_rows, self.chunk_size):
                    conn.execute(self.records.insert(), chunk)
                for chunk in _chunks(tile_rows, self.chunk_size):
                    conn.execute(self.tiles.insert(), chunk)
        except SQLAlchemyError as e:
            self.logger.error("Insert failed", records=len(records), error=str(e))
            raise CollaboratorFailure('insert_many', e) from e

        self._record_insert(len(records))
        return len(records)

    def aggregate_by_tile_key(self, zoom: int) -> List[TileCount]:
        count = func.count().label('count')
        stmt = (
            select(self.tiles.c.tile_key, count)
            .where(self.tiles.c.z == zoom)
            .group_by(self.tiles.c.tile_key)
            .order_by(self.tiles.c.tile_key)
        )
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).all()
        except SQLAlchemyError as e:
            self.logger.error("Aggregation query failed", zoom=zoom, error=str(e))
            raise CollaboratorFailure('aggregate_by_tile_key', e) from e

        return [TileCount(key=str(key), count=int(n)) for key, n in rows]

    def count_records(self) -> int:
        try:
            with self.engine.connect() as conn:
                return int(conn.execute(select(func.count()).select_from(self.records)).scalar_one())
        except SQLAlchemyError as e:
            raise CollaboratorFailure('count_records', e) from e

    def clear(self) -> None:
        try:
            with self.engine.begin() as conn:
                conn.execute(delete(self.tiles))
                conn.execute(delete(self.records))
        except SQLAlchemyError as e:
            raise CollaboratorFailure('clear', e) from e

    def close(self) -> None:
        self.engine.dispose()
