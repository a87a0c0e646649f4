"""
Unit Tests for the Command Line Entry Point

Runs ``main`` end to end against in-memory and SQLite stores; the
FeatureCollection is read back from captured stdout.
"""

import json
import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import pytest
from prometheus_client import generate_latest

import sys
sys.path.append(str(Path(__file__).parent.parent.parent / "src"))

from tile_pyramid.cli import build_config, main, parse_args
from tile_pyramid.exceptions import CollaboratorFailure


@pytest.fixture
def temp_dir():
    path = Path(tempfile.mkdtemp())
    yield path
    shutil.rmtree(path)


def read_collection(capsys):
    return json.loads(capsys.readouterr().out)


def test_insert_demo_and_aggregate(capsys):
    assert main(["--insert", "--level", "12", "--database-url", "memory://"]) == 0

    collection = read_collection(capsys)
    assert collection['type'] == 'FeatureCollection'
    assert sum(f['properties']['count'] for f in collection['features']) == 250
    for feature in collection['features']:
        assert feature['properties']['tileKey'].endswith('-12')
        assert feature['geometry']['type'] == 'Point'


def test_aggregate_without_insert_is_empty(capsys):
    assert main(["--database-url", "memory://"]) == 0
    assert read_collection(capsys) == {'type': 'FeatureCollection', 'features': []}


def test_level_outside_indexed_range(capsys):
    assert main(["--insert", "--level", "20", "--database-url", "memory://"]) == 0
    assert read_collection(capsys)['features'] == []


def test_persistent_store_is_idempotent(capsys, temp_dir):
    url = f"sqlite:///{temp_dir / 'points.db'}"
    assert main(["--insert", "--level", "10", "--database-url", url]) == 0
    first = read_collection(capsys)

    assert main(["--level", "10", "--database-url", url]) == 0
    second = read_collection(capsys)

    assert first == second
    assert sum(f['properties']['count'] for f in first['features']) == 250


def test_level_indexed_by_an_earlier_run(capsys, temp_dir):
    url = f"sqlite:///{temp_dir / 'deep.db'}"
    assert main(["--insert", "--max-zoom", "15", "--level", "15", "--database-url", url]) == 0
    capsys.readouterr()

    assert main(["--level", "15", "--database-url", url]) == 0
    collection = read_collection(capsys)
    assert sum(f['properties']['count'] for f in collection['features']) == 250


def test_pushes_metrics_when_gateway_configured(capsys):
    with patch.dict(os.environ, {"TILE_PYRAMID_PROMETHEUS_GATEWAY": "pushgateway:9091"}), \
            patch('tile_pyramid.monitoring.metrics.push_to_gateway') as mock_push:
        assert main(["--insert", "--database-url", "memory://"]) == 0

    mock_push.assert_called_once()
    args, kwargs = mock_push.call_args
    assert args == ("pushgateway:9091",)
    assert kwargs['job'] == "tile_pyramid_cli"
    assert b"tile_pyramid_records_indexed_total 250.0" in generate_latest(kwargs['registry'])


def test_no_push_without_gateway(capsys):
    with patch.dict(os.environ, {}, clear=False), \
            patch('tile_pyramid.monitoring.metrics.push_to_gateway') as mock_push:
        os.environ.pop("TILE_PYRAMID_PROMETHEUS_GATEWAY", None)
        assert main(["--database-url", "memory://"]) == 0
    mock_push.assert_not_called()


def test_insert_csv(capsys, temp_dir):
    csv_path = temp_dir / "points.csv"
    csv_path.write_text("Latitude,Longitude\n40.73,-73.99\n40.7301,-73.9901\n51.5074,-0.1278\n")

    assert main(["--insert", "--csv", str(csv_path), "--database-url", "memory://"]) == 0
    counts = sorted(f['properties']['count'] for f in read_collection(capsys)['features'])
    assert counts == [1, 2]


def test_output_file(capsys, temp_dir):
    output = temp_dir / "out" / "z12.geojson"
    assert main([
        "--insert", "--database-url", "memory://", "--output", str(output)
    ]) == 0

    assert capsys.readouterr().out == ""
    assert json.loads(output.read_text())['type'] == 'FeatureCollection'


def test_invalid_csv_exits_with_error(capsys, temp_dir):
    csv_path = temp_dir / "bad.csv"
    csv_path.write_text("Latitude,Longitude\n95.0,-73.99\n")

    assert main(["--insert", "--csv", str(csv_path), "--database-url", "memory://"]) == 1
    assert capsys.readouterr().out == ""


def test_missing_csv_exits_with_error(capsys, temp_dir):
    assert main([
        "--insert", "--csv", str(temp_dir / "missing.csv"), "--database-url", "memory://"
    ]) == 1


def test_store_failure_exits_with_error(capsys):
    with patch('tile_pyramid.cli.create_store', side_effect=CollaboratorFailure('connect')):
        assert main(["--database-url", "memory://"]) == 1


def test_csv_requires_insert():
    with pytest.raises(SystemExit) as exc_info:
        parse_args(["--csv", "points.csv"])
    assert exc_info.value.code == 2


def test_bad_level_argument():
    with pytest.raises(SystemExit) as exc_info:
        main(["--level", "twelve"])
    assert exc_info.value.code == 2


class TestBuildConfig(unittest.TestCase):

    def test_defaults(self):
        args = parse_args([])
        self.assertEqual(args.level, 12)
        self.assertFalse(args.insert)
        self.assertEqual(args.output, "-")

    def test_overrides(self):
        args = parse_args([
            "--database-url", "memory://", "--min-zoom", "4", "--max-zoom", "14",
            "--log-level", "DEBUG"
        ])
        config = build_config(args, environ={"TILE_PYRAMID_MAX_ZOOM": "10"})
        self.assertEqual(config.database.url, "memory://")
        self.assertEqual((config.indexing.min_zoom, config.indexing.max_zoom), (4, 14))
        self.assertEqual(config.log_level, "DEBUG")

    def test_environment_used_without_overrides(self):
        config = build_config(parse_args([]), environ={"TILE_PYRAMID_MAX_ZOOM": "10"})
        self.assertEqual(config.indexing.max_zoom, 10)

    def test_invalid_zoom_override(self):
        with self.assertRaises(ValueError):
            build_config(parse_args(["--min-zoom", "9", "--max-zoom", "3"]), environ={})


if __name__ == '__main__':
    unittest.main()
