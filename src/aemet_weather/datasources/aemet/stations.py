"""Station inventory, municipality list and climate record parsing.

Turns the loose JSON records served by the data URLs into ``schemas`` models.
Records that cannot be parsed are skipped with a warning rather than failing
the whole list.
"""

from __future__ import annotations

import logging
import unicodedata
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from aemet_weather.datasources.aemet.client import normalize_province
from aemet_weather.datasources.aemet.geo import normalize_coordinate
from aemet_weather.errors import ApiError
from aemet_weather.schemas import (
    ClimateObservation,
    GeoPosition,
    Municipality,
    WeatherStation,
    parse_decimal,
)

logger = logging.getLogger(__name__)


def _geoposition(lat_raw: Any, lon_raw: Any) -> GeoPosition | None:
    if lat_raw in (None, "") or lon_raw in (None, ""):
        return None
    try:
        return GeoPosition(
            latitude=normalize_coordinate(lat_raw),
            longitude=normalize_coordinate(lon_raw),
        )
    except PydanticValidationError:
        return None


def parse_station(record: dict[str, Any]) -> WeatherStation:
    """Build a ``WeatherStation`` from an inventory record."""
    return WeatherStation(
        station_id=str(record.get("indicativo") or ""),
        name=str(record.get("nombre") or ""),
        province=normalize_province(record.get("provincia")),
        altitude=parse_decimal(record.get("altitud")) or 0.0,
        geoposition=_geoposition(record.get("latitud"), record.get("longitud")),
    )


def parse_stations(payload: Any) -> list[WeatherStation]:
    """
    Parse the station inventory.

    Raises:
        ApiError: The payload is not a list of stations.
    """
    if not isinstance(payload, list):
        raise ApiError("Unexpected data format: expected a list of stations")
    return [parse_station(r) for r in payload if isinstance(r, dict)]


def parse_municipality(record: dict[str, Any]) -> Municipality | None:
    """Build a ``Municipality`` from a master-list record (None if it has no code).

    The list identifies municipalities as ``"id28079"``; the forecast
    endpoints expect the bare 5-digit code.
    """
    raw_id = str(record.get("id") or record.get("codigo") or "")
    code = raw_id.removeprefix("id")
    if not code:
        return None
    return Municipality(
        code=code,
        name=str(record.get("nombre") or ""),
        province=record.get("provincia") or None,
        geoposition=_geoposition(record.get("latitud_dec"), record.get("longitud_dec")),
    )


def parse_municipalities(payload: Any) -> list[Municipality]:
    if not isinstance(payload, list):
        raise ApiError("Unexpected data format: expected a list of municipalities")
    municipalities = []
    for record in payload:
        if isinstance(record, dict) and (m := parse_municipality(record)) is not None:
            municipalities.append(m)
    return municipalities


def parse_climate_observations(payload: Any) -> list[ClimateObservation]:
    """Parse daily climate values, normalizing province names."""
    if not isinstance(payload, list):
        raise ApiError("Unexpected data format: expected a list of daily values")

    observations = []
    for record in payload:
        if not isinstance(record, dict):
            continue
        try:
            obs = ClimateObservation.model_validate(record)
        except PydanticValidationError as exc:
            logger.warning(
                "Skipping malformed climate record %s: %s", record.get("indicativo"), exc
            )
            continue
        obs.province = normalize_province(obs.province)
        observations.append(obs)
    return observations


def fold(text: str) -> str:
    """Lower-case and strip accents for forgiving comparisons."""
    decomposed = unicodedata.normalize("NFD", text.casefold())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def search_stations(stations: list[WeatherStation], query: str) -> list[WeatherStation]:
    """Stations whose name or province contains ``query`` (accent/case-insensitive)."""
    needle = fold(query)
    return [s for s in stations if needle in fold(s.name) or needle in fold(s.province)]
