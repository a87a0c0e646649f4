"""
Data Ingestion Module

Point sources feeding the tile pyramid indexer and record store.
"""

from .base_ingester import BaseDataIngester
from .csv_ingestion import CSVPointIngester, demo_data_path, load_demo_points, load_points

__all__ = [
    "BaseDataIngester",
    "CSVPointIngester",
    "demo_data_path",
    "load_demo_points",
    "load_points"
]
