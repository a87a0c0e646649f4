"""
CSV Point Ingester

Loads latitude/longitude rows from CSV into the record store. The bundled
demo file is a sample of NYC 311 noise complaints with a
``Latitude,Longitude`` header.

Blank lines and rows with neither coordinate are ignored; a row with only one
coordinate, a non-numeric value or an out-of-range point fails validation
for the whole file.
"""

from importlib import resources
from pathlib import Path
from typing import IO, List, Optional, Union

import geopandas as gpd
import numpy as np
import pandas as pd

from ..models import GeoPoint, IndexedRecord
from ..tiling.tile_math import MAX_LATITUDE, MAX_LONGITUDE, WGS84_EPSG
from .base_ingester import BaseDataIngester

DEMO_DATA_FILE = "nyc311_noise_sample.csv"

CsvSource = Union[str, Path, IO[str]]


def demo_data_path() -> Path:
    """Location of the bundled NYC 311 noise sample."""
    return Path(str(resources.files("tile_pyramid.data").joinpath(DEMO_DATA_FILE)))


def resolve_column(columns: pd.Index, wanted: str) -> str:
    """Find a column by case-insensitive name."""
    for column in columns:
        if str(column).strip().lower() == wanted.lower():
            return column
    raise ValueError(f"Missing required column '{wanted}' (found: {list(columns)})")


class CSVPointIngester(BaseDataIngester):
    """Ingests point rows from CSV files."""

    source_type = "csv"

    def __init__(
        self,
        config,
        store,
        indexer=None,
        metrics_collector=None,
        latitude_column: str = "Latitude",
        longitude_column: str = "Longitude"
    ):
        super().__init__(config, store, indexer, metrics_collector)
        self.latitude_column = latitude_column
        self.longitude_column = longitude_column

    def extract(self, source: CsvSource) -> gpd.GeoDataFrame:
        """Read the CSV into a GeoDataFrame of points in EPSG:4326."""
        if isinstance(source, (str, Path)) and not Path(source).exists():
            raise FileNotFoundError(f"CSV file not found: {source}")

        frame = pd.read_csv(source, dtype=str, skip_blank_lines=True, on_bad_lines='skip')
        lat_col = resolve_column(frame.columns, self.latitude_column)
        lon_col = resolve_column(frame.columns, self.longitude_column)

        raw = frame[[lat_col, lon_col]].rename(columns={lat_col: 'latitude', lon_col: 'longitude'})
        raw = raw.apply(lambda column: column.str.strip())
        raw = raw.replace('', np.nan)
        raw = raw.dropna(how='all').reset_index(drop=True)

        numeric = raw.apply(pd.to_numeric, errors='coerce')
        gdf = gpd.GeoDataFrame(
            {
                'latitude': numeric['latitude'],
                'longitude': numeric['longitude'],
                'raw_latitude': raw['latitude'],
                'raw_longitude': raw['longitude'],
            },
            geometry=gpd.points_from_xy(
                numeric['longitude'].fillna(0.0), numeric['latitude'].fillna(0.0)
            ),
            crs=f"EPSG:{WGS84_EPSG}",
        )

        self.logger.info("Extracted CSV points", source=str(source), rows=len(gdf))
        return gdf

    def validate(self, data: gpd.GeoDataFrame) -> bool:
        if data.empty:
            self.logger.warning("CSV contains no points")
            return False

        unparsable = data['latitude'].isna() | data['longitude'].isna()
        if unparsable.any():
            self.logger.error(
                "CSV contains missing or non-numeric coordinates",
                rows=[int(i) for i in data.index[unparsable][:10]]
            )
            return False

        out_of_range = (
            ~np.isfinite(data['latitude']) | ~np.isfinite(data['longitude'])
            | (data['latitude'].abs() > MAX_LATITUDE)
            | (data['longitude'].abs() > MAX_LONGITUDE)
        )
        if out_of_range.any():
            self.logger.error(
                "CSV contains coordinates outside the Web Mercator range",
                rows=[int(i) for i in data.index[out_of_range][:10]]
            )
            return False

        return True

    def transform(self, data: gpd.GeoDataFrame) -> List[IndexedRecord]:
        points = [
            GeoPoint(longitude=float(lon), latitude=float(lat))
            for lon, lat in zip(data['longitude'], data['latitude'])
        ]
        return self.indexer.index_points(points)


def load_points(source: CsvSource, latitude_column: str = "Latitude",
                longitude_column: str = "Longitude") -> List[GeoPoint]:
    """Read points from CSV without indexing or storing them."""
    frame = pd.read_csv(source, skip_blank_lines=True, on_bad_lines='skip')
    lat_col = resolve_column(frame.columns, latitude_column)
    lon_col = resolve_column(frame.columns, longitude_column)
    frame = frame[[lat_col, lon_col]].dropna(how='all')
    return [
        GeoPoint(longitude=float(lon), latitude=float(lat))
        for lat, lon in zip(frame[lat_col], frame[lon_col])
    ]


def load_demo_points(limit: Optional[int] = None) -> List[GeoPoint]:
    points = load_points(demo_data_path())
    return points if limit is None else points[:limit]
