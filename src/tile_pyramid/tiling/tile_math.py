"""
Tile Math

Pure Web Mercator (EPSG:3857) slippy-map conversions between WGS84 points and
integer tile coordinates. Functions here hold no state and are safe to call
from any number of threads.

Tile (0, 0) is the north-west corner; x grows eastward and y southward.
"""

import math
import numbers
from typing import Tuple

from ..exceptions import InvalidCoordinate
from ..models import GeoPoint, TileCoordinate

WGS84_EPSG = 4326

MAX_LONGITUDE = 180.0
MAX_LATITUDE = 85.05


def validate_point(point: GeoPoint) -> None:
    """
    Raise ``InvalidCoordinate`` unless the point is inside the Web Mercator
    valid range (|lon| <= 180, |lat| <= 85.05, both finite).
    """
    lon, lat = point.longitude, point.latitude
    if not (math.isfinite(lon) and math.isfinite(lat)):
        raise InvalidCoordinate(lon, lat, "coordinates must be finite")
    if not -MAX_LONGITUDE <= lon <= MAX_LONGITUDE:
        raise InvalidCoordinate(lon, lat, f"longitude outside [-{MAX_LONGITUDE}, {MAX_LONGITUDE}]")
    if not -MAX_LATITUDE <= lat <= MAX_LATITUDE:
        raise InvalidCoordinate(lon, lat, f"latitude outside [-{MAX_LATITUDE}, {MAX_LATITUDE}]")


def _check_zoom(z: int) -> int:
    if isinstance(z, bool) or not isinstance(z, numbers.Integral) or z < 0:
        raise ValueError(f"Zoom must be a non-negative integer, got {z!r}")
    return int(z)


def point_to_tile(point: GeoPoint, z: int) -> TileCoordinate:
    """
    Project a point to the tile containing it at zoom ``z``.

    Both indices are clamped to ``[0, 2**z - 1]`` so that the antimeridian
    (lon = 180) and the latitude limits land in the edge tiles instead of
    one past them.

    Raises:
        InvalidCoordinate: the point is outside the valid range.
    """
    validate_point(point)
    z = _check_zoom(z)

    n = 1 << z
    x = math.floor((point.longitude + 180.0) / 360.0 * n)

    lat_rad = math.radians(point.latitude)
    y = math.floor((1.0 - math.asinh(math.tan(lat_rad)) / math.pi) / 2.0 * n)

    x = min(max(x, 0), n - 1)
    y = min(max(y, 0), n - 1)
    return TileCoordinate(x=x, y=y, z=z)


def tile_to_center(tile: TileCoordinate) -> GeoPoint:
    """
    Geographic center of a tile: the midpoint of its bounds in degrees.

    This is the display anchor of the tile, not any original point. North of
    the equator it sits south of the Mercator midpoint.
    """
    west, south, east, north = tile_bounds(tile)
    return GeoPoint(longitude=(west + east) / 2.0, latitude=(south + north) / 2.0)


def tile_bounds(tile: TileCoordinate) -> Tuple[float, float, float, float]:
    """Tile extent in degrees as (west, south, east, north)."""
    n = float(1 << tile.z)

    west = tile.x / n * 360.0 - 180.0
    east = (tile.x + 1) / n * 360.0 - 180.0

    north = math.degrees(math.atan(math.sinh(math.pi * (1 - 2 * tile.y / n))))
    south = math.degrees(math.atan(math.sinh(math.pi * (1 - 2 * (tile.y + 1) / n))))

    return (west, south, east, north)


def parent_tile(tile: TileCoordinate, z: int) -> TileCoordinate:
    """Ancestor of ``tile`` at the coarser zoom ``z``."""
    z = _check_zoom(z)
    if z > tile.z:
        raise ValueError(f"Parent zoom {z} is finer than tile zoom {tile.z}")
    shift = tile.z - z
    return TileCoordinate(x=tile.x >> shift, y=tile.y >> shift, z=z)
