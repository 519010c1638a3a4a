from __future__ import annotations

import math
from typing import Any, Dict, Iterator, Optional, Sequence, Tuple


EARTH_RADIUS_M = 6_371_000.0
METERS_PER_DEGREE = 111_000.0
MIN_BBOX_RADIUS_M = 400.0
MAX_BBOX_RADIUS_M = 2000.0

LonLat = Tuple[float, float]


def haversine_m(a: Sequence[float], b: Sequence[float]) -> float:
    """Great-circle distance in meters between two (lon, lat) points."""
    lon1, lat1 = math.radians(a[0]), math.radians(a[1])
    lon2, lat2 = math.radians(b[0]), math.radians(b[1])
    d_lat = lat2 - lat1
    d_lon = lon2 - lon1
    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(min(1.0, h)))


def iter_vertices(geometry: Dict[str, Any]) -> Iterator[LonLat]:
    """Yield every vertex of every ring of a Polygon or MultiPolygon."""
    gtype = geometry.get("type")
    coords = geometry.get("coordinates") or []
    if gtype == "Polygon":
        polygons = [coords]
    elif gtype == "MultiPolygon":
        polygons = coords
    else:
        return
    for polygon in polygons:
        for ring in polygon:
            for vertex in ring:
                yield float(vertex[0]), float(vertex[1])


def bounding_box(geometry: Dict[str, Any]) -> Optional[Tuple[float, float, float, float]]:
    """Return (min_lon, min_lat, max_lon, max_lat), or None for an empty geometry."""
    min_x, min_y, max_x, max_y = 180.0, 90.0, -180.0, -90.0
    seen = False
    for x, y in iter_vertices(geometry):
        seen = True
        min_x, min_y = min(min_x, x), min(min_y, y)
        max_x, max_y = max(max_x, x), max(max_y, y)
    if not seen:
        return None
    return min_x, min_y, max_x, max_y


def bbox_centroid(geometry: Dict[str, Any]) -> Optional[LonLat]:
    box = bounding_box(geometry)
    if box is None:
        return None
    min_x, min_y, max_x, max_y = box
    return (min_x + max_x) / 2, (min_y + max_y) / 2


def approximate_radius_m(geometry: Dict[str, Any]) -> Optional[float]:
    """Half-diagonal of the area's bounding box, as a rough search radius."""
    box = bounding_box(geometry)
    if box is None:
        return None
    min_x, min_y, max_x, max_y = box
    center = ((min_x + max_x) / 2, (min_y + max_y) / 2)
    return haversine_m(center, (max_x, max_y))


def radius_from_bbox(bbox: Sequence[float]) -> float:
    """Flat-earth radius estimate from a provider bbox (lat_min, lat_max, lon_min, lon_max)."""
    lat_min, lat_max, lon_min, lon_max = (float(v) for v in bbox)
    d_lat = (lat_max - lat_min) * METERS_PER_DEGREE
    d_lon = (lon_max - lon_min) * METERS_PER_DEGREE * math.cos(math.radians((lat_max + lat_min) / 2))
    half_diag = math.sqrt(d_lat * d_lat + d_lon * d_lon) / 2
    return float(max(MIN_BBOX_RADIUS_M, min(MAX_BBOX_RADIUS_M, round(half_diag))))
