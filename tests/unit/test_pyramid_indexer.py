"""
Unit Tests for the Tile Pyramid Indexer

Stack construction, batch indexing over the thread pool and the
all-or-nothing behaviour on invalid input.
"""

import unittest
from pathlib import Path

import pytest

import sys
sys.path.append(str(Path(__file__).parent.parent.parent / "src"))

from tile_pyramid.exceptions import InvalidCoordinate
from tile_pyramid.models import GeoPoint
from tile_pyramid.monitoring.metrics import MetricsCollector
from tile_pyramid.tiling.pyramid_indexer import (
    MAX_SUPPORTED_ZOOM,
    TilePyramidIndexer,
    build_stack,
    new_record_id,
)
from tile_pyramid.tiling.tile_math import parent_tile, point_to_tile
from tile_pyramid.utils.config import Config, IndexingConfig

NYC = GeoPoint(longitude=-73.99, latitude=40.73)


class TestBuildStack(unittest.TestCase):

    def test_length_and_order(self):
        tiles = build_stack(NYC, 0, 13)
        self.assertEqual(len(tiles), 14)
        self.assertEqual([m.z for m in tiles], list(range(0, 14)))

    def test_partial_range(self):
        tiles = build_stack(NYC, 5, 12)
        self.assertEqual(len(tiles), 8)
        self.assertEqual(tiles[0].z, 5)
        self.assertEqual(tiles[-1].key, "1206-1539-12")

    def test_single_level(self):
        tiles = build_stack(NYC, 12, 12)
        self.assertEqual(len(tiles), 1)

    def test_each_level_matches_projection(self):
        for membership in build_stack(NYC, 0, 13):
            self.assertEqual(membership.tile, point_to_tile(NYC, membership.z))
            self.assertEqual(membership.key, membership.tile.key)

    def test_stack_nests(self):
        tiles = build_stack(NYC, 0, 18)
        for coarse, fine in zip(tiles, tiles[1:]):
            self.assertEqual(parent_tile(fine.tile, coarse.z), coarse.tile)

    def test_deterministic(self):
        self.assertEqual(build_stack(NYC, 0, 13), build_stack(NYC, 0, 13))

    def test_invalid_range(self):
        for min_zoom, max_zoom in [(5, 4), (-1, 3), (0, MAX_SUPPORTED_ZOOM + 1)]:
            with self.assertRaises(ValueError):
                build_stack(NYC, min_zoom, max_zoom)

    def test_invalid_point_yields_no_stack(self):
        with self.assertRaises(InvalidCoordinate):
            build_stack(GeoPoint(0.0, 86.0), 0, 13)


class TestTilePyramidIndexer(unittest.TestCase):

    def setUp(self):
        self.metrics = MetricsCollector()
        self.indexer = TilePyramidIndexer(0, 13, max_workers=4, metrics_collector=self.metrics)

    def test_index_point(self):
        record = self.indexer.index_point(NYC, record_id="nyc")
        self.assertEqual(record.id, "nyc")
        self.assertEqual(record.location, NYC)
        self.assertEqual(len(record.tiles), self.indexer.stack_size)
        self.assertEqual(record.membership_at(12).key, "1206-1539-12")

    def test_generated_ids_unique(self):
        records = self.indexer.index_points([NYC] * 50)
        ids = {r.id for r in records}
        self.assertEqual(len(ids), 50)
        self.assertTrue(all(len(i) == 24 for i in ids))

    def test_batch_preserves_order(self):
        points = [GeoPoint(-74.0 + i * 0.01, 40.7) for i in range(40)]
        ids = [f"p{i}" for i in range(40)]
        records = self.indexer.index_points(points, record_ids=ids)
        self.assertEqual([r.id for r in records], ids)
        self.assertEqual([r.location for r in records], points)
        for record in records:
            self.assertEqual(record.tiles, build_stack(record.location, 0, 13))

    def test_batch_is_all_or_nothing(self):
        points = [NYC, GeoPoint(0.0, 0.0), GeoPoint(200.0, 0.0), NYC]
        with self.assertRaises(InvalidCoordinate):
            self.indexer.index_points(points)
        self.assertEqual(self.metrics.get_values('records_indexed_total'), [])

    def test_record_ids_length_mismatch(self):
        with self.assertRaises(ValueError):
            self.indexer.index_points([NYC, NYC], record_ids=["only-one"])

    def test_empty_batch(self):
        self.assertEqual(self.indexer.index_points([]), [])

    def test_metrics_recorded(self):
        self.indexer.index_points([NYC] * 3)
        self.assertEqual(self.metrics.get_values('records_indexed_total'), [3])
        self.assertEqual(len(self.metrics.get_values('indexing_duration_seconds')), 1)

    def test_serial_and_parallel_agree(self):
        points = [GeoPoint(-73.9 - i * 0.003, 40.6 + i * 0.002) for i in range(25)]
        ids = [str(i) for i in range(25)]
        serial = TilePyramidIndexer(0, 13, max_workers=1).index_points(points, ids)
        parallel = self.indexer.index_points(points, ids)
        self.assertEqual(serial, parallel)

    def test_from_config(self):
        config = Config(indexing=IndexingConfig(min_zoom=3, max_zoom=9, max_workers=2))
        indexer = TilePyramidIndexer.from_config(config)
        self.assertEqual(list(indexer.zoom_levels), list(range(3, 10)))
        self.assertEqual(indexer.max_workers, 2)

    def test_invalid_workers(self):
        with pytest.raises(ValueError):
            TilePyramidIndexer(0, 13, max_workers=0)


def test_new_record_id_is_hex():
    record_id = new_record_id()
    assert len(record_id) == 24
    int(record_id, 16)


if __name__ == '__main__':
    unittest.main()
