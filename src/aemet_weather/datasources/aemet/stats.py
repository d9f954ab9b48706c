"""Pure aggregation functions for climate observations (no I/O).

Wind direction is averaged on the circle::

    mean = atan2(mean(sin θ), mean(cos θ))   normalized to [0, 360)

so that 350° and 10° average to 0°, not 180°.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from aemet_weather.datasources.aemet.client import normalize_province
from aemet_weather.datasources.aemet.models import (
    ClimateSummary,
    InsolationSummary,
    Period,
    PrecipitationSummary,
    PressureSummary,
    SeriesStats,
    SnowSummary,
    TemperatureSummary,
    WindSummary,
)
from aemet_weather.errors import DataNotFoundError
from aemet_weather.schemas import ClimateObservation, WeatherStation


def circular_mean_degrees(values: Iterable[float]) -> float:
    """Mean of angles in degrees, correct across the 0/360 boundary.

    Returns 0.0 for empty input.
    """
    angles = [math.radians(v) for v in values]
    if not angles:
        return 0.0
    mean_sin = sum(math.sin(a) for a in angles) / len(angles)
    mean_cos = sum(math.cos(a) for a in angles) / len(angles)
    degrees = math.degrees(math.atan2(mean_sin, mean_cos)) % 360
    # -1e-15 % 360 rounds to 360.0
    return 0.0 if degrees >= 360 else degrees


def average(values: list[float]) -> float:
    """Arithmetic mean, 0.0 for an empty list."""
    return sum(values) / len(values) if values else 0.0


def series_stats(values: Iterable[float | None], fallback: float = 0.0) -> SeriesStats:
    """Stats over the non-None values; ``fallback`` everywhere when none remain."""
    present = [v for v in values if v is not None]
    if not present:
        return SeriesStats(max=fallback, min=fallback, mean=fallback, total=fallback)
    return SeriesStats(
        max=max(present),
        min=min(present),
        mean=average(present),
        total=sum(present),
        count=len(present),
    )


def unique_stations(observations: Iterable[ClimateObservation]) -> list[WeatherStation]:
    """Stations referenced by the observations, first occurrence order."""
    seen: dict[str, WeatherStation] = {}
    for obs in observations:
        if obs.station_id not in seen:
            seen[obs.station_id] = WeatherStation(
                station_id=obs.station_id,
                name=obs.name,
                province=obs.province,
                altitude=obs.altitude or 0.0,
            )
    return list(seen.values())


def summarize_climate(
    observations: list[ClimateObservation],
    province: str,
    start: str,
    end: str,
) -> ClimateSummary:
    """
    Aggregate daily observations of every station in ``province``.

    Args:
        observations: Daily values for all stations (any province).
        province: Province to keep, compared after normalization.
        start: Period start as requested.
        end: Period end as requested.

    Raises:
        DataNotFoundError: No observation belongs to the province.
    """
    wanted = normalize_province(province).casefold()
    rows = [o for o in observations if normalize_province(o.province).casefold() == wanted]
    if not rows:
        raise DataNotFoundError(f"No data available for {province}")

    tmax = series_stats(o.tmax for o in rows)
    tmin = series_stats(o.tmin for o in rows)
    tmean = series_stats(o.tmean for o in rows)
    prec = series_stats(o.precipitation for o in rows)
    pres_max = series_stats(o.pressure_max for o in rows)
    pres_min = series_stats(o.pressure_min for o in rows)
    speed = series_stats(o.wind_speed for o in rows)
    gust = series_stats(o.wind_gust for o in rows)
    inso = series_stats(o.insolation for o in rows)
    snow = series_stats(o.snow for o in rows)

    return ClimateSummary(
        province=normalize_province(province),
        stations=unique_stations(rows),
        period=Period(start=start, end=end, days=len({o.date for o in rows})),
        temperature=TemperatureSummary(max=tmax.max, min=tmin.min, mean=tmean.mean),
        precipitation=PrecipitationSummary(
            total=prec.total,
            max_daily=prec.max,
            rainy_days=sum(1 for o in rows if (o.precipitation or 0) > 0),
        ),
        pressure=PressureSummary(
            max=pres_max.max,
            min=pres_min.min,
            mean_max=pres_max.mean,
            mean_min=pres_min.mean,
        ),
        wind=WindSummary(
            mean_speed=speed.mean,
            max_gust=gust.max,
            predominant_direction=circular_mean_degrees(
                o.wind_direction for o in rows if o.wind_direction is not None
            ),
        ),
        insolation=InsolationSummary(total=inso.total, daily_mean=inso.mean),
        snow=SnowSummary(
            total=snow.total,
            snow_days=sum(1 for o in rows if (o.snow or 0) > 0),
        ),
    )
