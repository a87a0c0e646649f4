"""
Export Module

Destinations for aggregated tile-count FeatureCollections.
"""

from .geojson_writer import GeoJSONWriter, parse_s3_path

__all__ = [
    "GeoJSONWriter",
    "parse_s3_path"
]
