"""Unit tests for the tile pyramid value types and GeoJSON output model."""

import json
import unittest
from dataclasses import FrozenInstanceError
from pathlib import Path

import sys
sys.path.append(str(Path(__file__).parent.parent.parent / "src"))

from tile_pyramid.exceptions import MalformedKey
from tile_pyramid.models import (
    Feature,
    FeatureCollection,
    GeoPoint,
    IndexedRecord,
    TileCoordinate,
    TileMembership,
)


def stack(*tiles):
    return tuple(TileMembership.of(TileCoordinate(*t)) for t in tiles)


class TestTileCoordinate(unittest.TestCase):

    def test_out_of_range_rejected(self):
        for args in [(2, 0, 1), (0, 2, 1), (-1, 0, 3), (0, 0, -1)]:
            with self.assertRaises(ValueError, msg=str(args)):
                TileCoordinate(*args)

    def test_immutable(self):
        tile = TileCoordinate(1, 1, 1)
        with self.assertRaises(FrozenInstanceError):
            tile.x = 0

    def test_from_key_out_of_range(self):
        with self.assertRaises(MalformedKey):
            TileCoordinate.from_key("8-0-3")


class TestTileMembership(unittest.TestCase):

    def test_key_must_match_tile(self):
        with self.assertRaises(MalformedKey):
            TileMembership(tile=TileCoordinate(1, 0, 1), key="0-0-1")

    def test_document_shape(self):
        membership = TileMembership.of(TileCoordinate(3, 5, 3))
        self.assertEqual(membership.to_document(), {'x': 3, 'y': 5, 'z': 3, 'key': '3-5-3'})
        self.assertEqual(TileMembership.from_document(membership.to_document()), membership)


class TestIndexedRecord(unittest.TestCase):

    def setUp(self):
        self.record = IndexedRecord(
            id="r1",
            location=GeoPoint(-73.99, 40.73),
            tiles=stack((0, 0, 0), (0, 0, 1), (1, 1, 2)),
        )

    def test_zoom_range(self):
        self.assertEqual(self.record.min_zoom, 0)
        self.assertEqual(self.record.max_zoom, 2)

    def test_membership_at(self):
        self.assertEqual(self.record.membership_at(2).key, "1-1-2")
        self.assertIsNone(self.record.membership_at(3))

    def test_tiles_coerced_to_tuple(self):
        record = IndexedRecord(id="r2", location=GeoPoint(0, 0), tiles=list(stack((0, 0, 0))))
        self.assertIsInstance(record.tiles, tuple)

    def test_empty_stack_rejected(self):
        with self.assertRaises(ValueError):
            IndexedRecord(id="r3", location=GeoPoint(0, 0), tiles=())

    def test_non_contiguous_stack_rejected(self):
        with self.assertRaises(ValueError):
            IndexedRecord(id="r4", location=GeoPoint(0, 0), tiles=stack((0, 0, 0), (1, 1, 2)))

    def test_descending_stack_rejected(self):
        with self.assertRaises(ValueError):
            IndexedRecord(id="r5", location=GeoPoint(0, 0), tiles=stack((0, 0, 1), (0, 0, 0)))

    def test_document(self):
        document = self.record.to_document()
        self.assertEqual(document['_id'], "r1")
        self.assertEqual(document['location'], {'type': 'Point', 'coordinates': [-73.99, 40.73]})
        self.assertEqual([level['z'] for level in document['levels']], [0, 1, 2])
        self.assertEqual(IndexedRecord.from_document(document), self.record)


class TestFeatureCollection(unittest.TestCase):

    def setUp(self):
        self.collection = FeatureCollection.from_features([
            Feature(geometry=GeoPoint(-73.98, 40.72), count=3, tile_key="1206-1539-12"),
            Feature(geometry=GeoPoint(-0.13, 51.5), count=1, tile_key="2046-1362-12"),
        ])

    def test_counts(self):
        self.assertEqual(len(self.collection), 2)
        self.assertEqual(self.collection.total_count, 4)
        self.assertEqual(
            self.collection.counts_by_key(),
            {"1206-1539-12": 3, "2046-1362-12": 1}
        )

    def test_geojson_shape(self):
        data = self.collection.to_dict()
        self.assertEqual(data['type'], 'FeatureCollection')
        feature = data['features'][0]
        self.assertEqual(feature['type'], 'Feature')
        self.assertEqual(feature['properties'], {'count': 3, 'tileKey': '1206-1539-12'})
        self.assertEqual(feature['geometry'], {'type': 'Point', 'coordinates': [-73.98, 40.72]})

    def test_json_uses_two_space_indent(self):
        text = self.collection.to_json()
        self.assertTrue(text.startswith('{\n  "type": "FeatureCollection"'))
        self.assertEqual(json.loads(text), self.collection.to_dict())

    def test_empty_collection(self):
        self.assertEqual(
            json.loads(FeatureCollection().to_json()),
            {'type': 'FeatureCollection', 'features': []}
        )


if __name__ == '__main__':
    unittest.main()
