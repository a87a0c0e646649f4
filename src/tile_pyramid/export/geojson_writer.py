"""
GeoJSON Writer

Writes an aggregated FeatureCollection to its destination:

- ``-`` or ``None``: standard output
- ``s3://bucket/key``: S3 object via ``put_object``
- ``*.csv``: one row per tile, through pandas
- anything else: a GeoJSON file, parent directories created as needed
"""

import sys
from pathlib import Path
from typing import IO, Optional, Union

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from ..exceptions import CollaboratorFailure
from ..models import FeatureCollection
from ..processing.tile_aggregator import TileAggregator
from ..utils.config import AWSConfig

STDOUT = "-"
S3_SCHEME = "s3://"
GEOJSON_CONTENT_TYPE = "application/geo+json"

Destination = Union[str, Path, None]


def parse_s3_path(s3_path: str):
    """Split ``s3://bucket/key`` into ``(bucket, key)``."""
    bucket, _, key = s3_path[len(S3_SCHEME):].partition('/')
    if not bucket or not key:
        raise ValueError(f"S3 destination needs a bucket and a key: {s3_path}")
    return bucket, key


class GeoJSONWriter:
    """Routes a FeatureCollection to stdout, a file or S3."""

    def __init__(self, s3_client=None, aws_config: Optional[AWSConfig] = None,
                 stream: Optional[IO[str]] = None, indent: int = 2):
        self._s3_client = s3_client
        self.aws_config = aws_config or AWSConfig()
        self.stream = stream
        self.indent = indent
        self.logger = structlog.get_logger(component="GeoJSONWriter")

    @property
    def s3_client(self):
        if self._s3_client is None:
            self._s3_client = boto3.client(
                's3',
                region_name=self.aws_config.region,
                aws_access_key_id=self.aws_config.access_key_id,
                aws_secret_access_key=self.aws_config.secret_access_key
            )
        return self._s3_client

    def write(self, collection: FeatureCollection, destination: Destination = None) -> str:
        """
        Write ``collection`` and return a description of where it went.

        Raises:
            CollaboratorFailure: the S3 upload failed
            OSError: the local file could not be written
        """
        if destination is None or str(destination) == STDOUT:
            return self._write_stream(collection)

        target = str(destination)
        if target.startswith(S3_SCHEME):
            return self._write_s3(collection, target)
        if target.lower().endswith('.csv'):
            return self._write_csv(collection, Path(target))
        return self._write_file(collection, Path(target))

    def _write_stream(self, collection: FeatureCollection) -> str:
        stream = self.stream or sys.stdout
        stream.write(collection.to_json(indent=self.indent))
        stream.write("\n")
        stream.flush()
        return "stdout"

    def _write_file(self, collection: FeatureCollection, path: Path) -> str:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(collection.to_json(indent=self.indent) + "\n", encoding="utf-8")
        self.logger.info("Wrote GeoJSON file", path=str(path), features=len(collection))
        return str(path)

    def _write_csv(self, collection: FeatureCollection, path: Path) -> str:
        path.parent.mkdir(parents=True, exist_ok=True)
        frame = TileAggregator.to_geodataframe(collection).drop(columns='geometry')
        frame.to_csv(path, index=False)
        self.logger.info("Wrote tile count CSV", path=str(path), rows=len(frame))
        return str(path)

    def _write_s3(self, collection: FeatureCollection, s3_path: str) -> str:
        bucket, key = parse_s3_path(s3_path)
        try:
            self.s3_client.put_object(
                Bucket=bucket,
                Key=key,
                Body=collection.to_json(indent=self.indent).encode('utf-8'),
                ContentType=GEOJSON_CONTENT_TYPE
            )
        except (BotoCoreError, ClientError) as e:
            self.logger.error("S3 upload failed", error=str(e), s3_path=s3_path)
            raise CollaboratorFailure('put_object', e) from e

        self.logger.info("Uploaded GeoJSON to S3", s3_path=s3_path, features=len(collection))
        return s3_path
