"""Coordinate parsing and distance search (no I/O).

AEMET's station inventory encodes positions as ``DDMMSS`` plus a hemisphere
letter (``"394924N"``, ``"031245W"``); the municipality list uses decimal
strings. Both normalize to signed decimal degrees here.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0

T = TypeVar("T")

_HEMISPHERES = {"N": 1.0, "E": 1.0, "S": -1.0, "W": -1.0}


def normalize_coordinate(raw: Any) -> float:
    """Convert an AEMET coordinate to signed decimal degrees.

    Accepts numbers, decimal strings (``"40.4168"``) and ``DDMMSS[NSEW]``
    strings. Malformed input degrades to ``0.0`` instead of raising.

    >>> round(normalize_coordinate("394924N"), 6)
    39.823333
    """
    if isinstance(raw, bool):
        return 0.0
    if isinstance(raw, int | float):
        return float(raw) if math.isfinite(raw) else 0.0
    if not isinstance(raw, str):
        return 0.0

    text = raw.strip()
    if "." in text:
        try:
            value = float(text)
        except ValueError:
            logger.warning("Could not normalize coordinate %r", raw)
            return 0.0
        return value if math.isfinite(value) else 0.0

    digits, hemisphere = text[:-1], text[-1:].upper()
    if hemisphere not in _HEMISPHERES or len(digits) != 6 or not digits.isdigit():
        logger.warning("Could not normalize coordinate %r", raw)
        return 0.0

    degrees = int(digits[0:2])
    minutes = int(digits[2:4])
    seconds = int(digits[4:6])
    return _HEMISPHERES[hemisphere] * (degrees + minutes / 60 + seconds / 3600)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def find_nearest(
    candidates: Iterable[T],
    lat: float,
    lon: float,
    position: Callable[[T], tuple[float, float] | None],
) -> tuple[T, float] | None:
    """
    Find the candidate closest to ``(lat, lon)``.

    Only a strictly smaller distance replaces the current best, so among
    equally distant candidates the first one in input order wins.

    Args:
        candidates: Items to rank (stations, municipalities...).
        lat: Query latitude.
        lon: Query longitude.
        position: Returns ``(lat, lon)`` for a candidate, or None to skip it.

    Returns:
        ``(candidate, distance_km)``, or None if no candidate has a position.
    """
    best: T | None = None
    best_distance = math.inf
    for candidate in candidates:
        pos = position(candidate)
        if pos is None:
            continue
        distance = haversine_km(lat, lon, pos[0], pos[1])
        if distance < best_distance:
            best, best_distance = candidate, distance

    if best is None:
        return None
    return best, best_distance
