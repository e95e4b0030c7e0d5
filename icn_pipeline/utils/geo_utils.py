"""
Geographic utility functions.

Distance calculations, coordinate normalisation, bounding boxes.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping, Optional, Tuple

Coord = Tuple[float, float]  # (lat, lon)


def haversine_distance(coord1: Coord, coord2: Coord) -> float:
    """
    Calculate the great-circle distance between two points in meters.

    Args:
        coord1: (lat, lon) in degrees.
        coord2: (lat, lon) in degrees.

    Returns:
        Distance in meters.
    """
    R = 6_371_000  # Earth radius in meters

    lat1, lon1 = math.radians(coord1[0]), math.radians(coord1[1])
    lat2, lon2 = math.radians(coord2[0]), math.radians(coord2[1])

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.asin(math.sqrt(a))

    return R * c


def _to_float(value: Any) -> Optional[float]:
    """Parse a number, accepting comma decimal separators ("-37,81")."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        result = float(value)
    else:
        text = str(value).strip().replace(",", ".")
        if not text:
            return None
        try:
            result = float(text)
        except ValueError:
            return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def normalise_lat_lng(record: Mapping[str, Any]) -> Optional[Coord]:
    """
    Extract a (lat, lon) pair from a loosely-shaped record.

    Accepts ``latitude``/``longitude``, ``lat``/``lng``/``lon``, or a
    ``coordinates`` pair, which is always read as GeoJSON ``[lng, lat]``.
    An obviously swapped pair (|lat| > 90 but |lon| <= 90) is swapped back.

    Returns:
        (lat, lon), or None if missing or out of range.
    """
    lat = _to_float(record.get("latitude", record.get("lat")))
    lon = _to_float(record.get("longitude", record.get("lng", record.get("lon"))))

    if lat is None or lon is None:
        pair = record.get("coordinates")
        if isinstance(pair, (list, tuple)) and len(pair) >= 2:
            lon, lat = _to_float(pair[0]), _to_float(pair[1])

    if lat is None or lon is None:
        return None

    if abs(lat) > 90 and abs(lon) <= 90:
        lat, lon = lon, lat

    if abs(lat) > 90 or abs(lon) > 180:
        return None
    return (lat, lon)


def bbox_for_companies(companies: Iterable) -> Optional[Tuple[float, float, float, float]]:
    """
    Return the (south, west, north, east) bounding box of located companies.

    Companies still at (0, 0) are ignored. Returns None if none are located.
    """
    coords = [
        (c.latitude, c.longitude) for c in companies
        if c.latitude != 0.0 or c.longitude != 0.0
    ]
    if not coords:
        return None
    lats = [lat for lat, _ in coords]
    lons = [lon for _, lon in coords]
    return (min(lats), min(lons), max(lats), max(lons))
