"""
Data Model

Value types flowing through the tile pyramid: input points, tile coordinates,
per-zoom tile memberships, indexed records, aggregation rows and the GeoJSON
output features.

All tile-related types are immutable. Derived values (tile centers, bounds)
are never cached on the instances; they are recomputed on demand by
``tiling.tile_math``.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from shapely.geometry import Point, mapping

from .exceptions import MalformedKey
from .tiling.tile_key import decode_tile_key, encode_tile_key


@dataclass(frozen=True)
class GeoPoint:
    """WGS84 point in degrees. Range checks live in ``tile_math.validate_point``."""
    longitude: float
    latitude: float

    @property
    def coordinates(self) -> List[float]:
        """GeoJSON coordinate order: [longitude, latitude]."""
        return [self.longitude, self.latitude]

    def to_geojson(self) -> Dict[str, Any]:
        geometry = mapping(Point(self.longitude, self.latitude))
        return {'type': geometry['type'], 'coordinates': list(geometry['coordinates'])}

    @classmethod
    def from_geojson(cls, geometry: Dict[str, Any]) -> "GeoPoint":
        if geometry.get('type') != 'Point':
            raise ValueError(f"Expected a Point geometry, got {geometry.get('type')!r}")
        longitude, latitude = geometry['coordinates'][:2]
        return cls(longitude=float(longitude), latitude=float(latitude))


@dataclass(frozen=True)
class TileCoordinate:
    """Slippy-map tile index. Invariant: 0 <= x, y < 2**z."""
    x: int
    y: int
    z: int

    def __post_init__(self):
        if self.z < 0:
            raise ValueError(f"Zoom must be non-negative, got {self.z}")
        n = 1 << self.z
        if not (0 <= self.x < n) or not (0 <= self.y < n):
            raise ValueError(
                f"Tile ({self.x}, {self.y}) out of range at zoom {self.z} (0..{n - 1})"
            )

    @property
    def key(self) -> str:
        return encode_tile_key(self.x, self.y, self.z)

    @classmethod
    def from_key(cls, key: str) -> "TileCoordinate":
        """Decode a tile key, raising ``MalformedKey`` on any inconsistency."""
        x, y, z = decode_tile_key(key)
        try:
            return cls(x=x, y=y, z=z)
        except ValueError as e:
            raise MalformedKey(key, str(e)) from e


@dataclass(frozen=True)
class TileMembership:
    """Membership of one point in one tile at a single zoom level."""
    tile: TileCoordinate
    key: str

    def __post_init__(self):
        if self.key != self.tile.key:
            raise MalformedKey(self.key, f"does not encode tile {self.tile}")

    @classmethod
    def of(cls, tile: TileCoordinate) -> "TileMembership":
        return cls(tile=tile, key=tile.key)

    @property
    def x(self) -> int:
        return self.tile.x

    @property
    def y(self) -> int:
        return self.tile.y

    @property
    def z(self) -> int:
        return self.tile.z

    def to_document(self) -> Dict[str, Any]:
        return {'x': self.x, 'y': self.y, 'z': self.z, 'key': self.key}

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "TileMembership":
        tile = TileCoordinate(
            x=int(document['x']), y=int(document['y']), z=int(document['z'])
        )
        return cls(tile=tile, key=document['key'])


@dataclass(frozen=True)
class IndexedRecord:
    """
    A stored point together with its precomputed tile stack.

    ``tiles`` covers every zoom from ``min_zoom`` to ``max_zoom`` inclusive in
    ascending order. It is computed once when the record is created; a changed
    location means a new record.
    """
    id: str
    location: GeoPoint
    tiles: Tuple[TileMembership, ...]

    def __post_init__(self):
        tiles = tuple(self.tiles)
        object.__setattr__(self, 'tiles', tiles)
        if not tiles:
            raise ValueError(f"Record {self.id} has an empty tile stack")
        first_zoom = tiles[0].z
        for offset, membership in enumerate(tiles):
            if membership.z != first_zoom + offset:
                raise ValueError(
                    f"Record {self.id} tile stack is not contiguous and ascending "
                    f"at position {offset} (zoom {membership.z})"
                )

    @property
    def min_zoom(self) -> int:
        return self.tiles[0].z

    @property
    def max_zoom(self) -> int:
        return self.tiles[-1].z

    def membership_at(self, zoom: int) -> Optional[TileMembership]:
        """Return the membership at ``zoom`` or None when outside the stored range."""
        if not (self.min_zoom <= zoom <= self.max_zoom):
            return None
        return self.tiles[zoom - self.min_zoom]

    def to_document(self) -> Dict[str, Any]:
        return {
            '_id': self.id,
            'location': self.location.to_geojson(),
            'levels': [membership.to_document() for membership in self.tiles],
        }

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "IndexedRecord":
        return cls(
            id=str(document['_id']),
            location=GeoPoint.from_geojson(document['location']),
            tiles=tuple(TileMembership.from_document(d) for d in document['levels']),
        )


@dataclass(frozen=True)
class TileCount:
    """Number of records in one tile at the queried zoom."""
    key: str
    count: int


@dataclass(frozen=True)
class Feature:
    """A tile center carrying the tile's record count."""
    geometry: GeoPoint
    count: int
    tile_key: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': 'Feature',
            'properties': {'count': self.count, 'tileKey': self.tile_key},
            'geometry': self.geometry.to_geojson(),
        }


@dataclass
class FeatureCollection:
    """Ordered features; rebuilt on every query."""
    features: List[Feature] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.features)

    def __iter__(self) -> Iterator[Feature]:
        return iter(self.features)

    @property
    def total_count(self) -> int:
        return sum(feature.count for feature in self.features)

    def counts_by_key(self) -> Dict[str, int]:
        return {feature.tile_key: feature.count for feature in self.features}

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': 'FeatureCollection',
            'features': [feature.to_dict() for feature in self.features],
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_features(cls, features: Sequence[Feature]) -> "FeatureCollection":
        return cls(features=list(features))
