"""Forecast extraction from AEMET municipality prediction trees (no I/O).

Daily and hourly forecasts share one shape::

    [{"nombre": "Madrid", "provincia": "Madrid",
      "prediccion": {"dia": [
          {"fecha": "2024-05-01T00:00:00",
           "estadoCielo": [{"value": "12", "periodo": "12-18", "descripcion": "..."}],
           "temperatura": {"maxima": 24, "minima": 11}},   # daily
          ...]}}]

In hourly trees every variable is a list of ``{"value", "periodo"}`` entries
keyed by hour (``"13"``) or by a range of hours (``"1319"``).

Extraction of a day summary never raises: missing data yields the sentinel
``DailyForecast`` (sky state "11", "Unknown", 0/0).
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta
from typing import Any

from aemet_weather.datasources.aemet.client import (
    DAYTIME_END_HOUR,
    DAYTIME_START_HOUR,
    DEFAULT_SKY_STATE,
    UNKNOWN_DESCRIPTION,
    sky_state_description,
)
from aemet_weather.errors import DataNotFoundError, ValidationError
from aemet_weather.schemas import DailyForecast, PeriodSample, SkyState, Wind, parse_decimal

logger = logging.getLogger(__name__)

_LEADING_HOUR = re.compile(r"^\s*(\d+)")


def unwrap_prediction(tree: Any) -> dict[str, Any]:
    """Return the municipality object of a forecast payload ({} if absent).

    The data URL serves a one-element list; a bare object is accepted too.
    """
    if isinstance(tree, list):
        tree = tree[0] if tree else None
    return tree if isinstance(tree, dict) else {}


def prediction_days(tree: Any) -> list[dict[str, Any]]:
    """The ``prediccion.dia`` list of a forecast payload ([] if absent)."""
    prediction = unwrap_prediction(tree).get("prediccion")
    if not isinstance(prediction, dict):
        return []
    days = prediction.get("dia")
    if not isinstance(days, list):
        return []
    return [d for d in days if isinstance(d, dict)]


def period_start_hour(label: Any) -> int | None:
    """Leading hour of a period label: ``"12-18"`` -> 12, ``"07"`` -> 7."""
    if label is None:
        return None
    match = _LEADING_HOUR.match(str(label))
    return int(match.group(1)) if match else None


def get_day_forecast(
    days: Any, when: date | int, today: date | None = None
) -> dict[str, Any] | None:
    """
    Find the raw prediction entry for a date.

    Args:
        days: The ``prediccion.dia`` list.
        when: A date, or a day offset from today (0 = today, 1 = tomorrow...).
        today: Reference date for offsets (defaults to the current date).

    Returns:
        The matching day entry, or None.

    Raises:
        ValidationError: ``days`` is not a list or ``when`` is not a date/offset.
    """
    if isinstance(when, bool):
        raise ValidationError("Invalid date")
    if isinstance(when, int):
        when = (today or date.today()) + timedelta(days=when)
    if not isinstance(when, date):
        raise ValidationError("Invalid date")
    if not isinstance(days, list):
        raise ValidationError("The forecast is not a valid list")

    wanted = when.isoformat()
    for day in days:
        if isinstance(day, dict) and str(day.get("fecha", ""))[:10] == wanted:
            return day
    return None


def predominant_sky_state(entries: Any) -> str:
    """
    Most representative sky-state code of a day.

    Entries whose period starts between 12 and 18 (inclusive) vote; the most
    frequent value wins, the first one seen on ties. Without daytime entries
    the first entry with a value is used. Falls back to the sentinel code.
    """
    if not isinstance(entries, list) or not entries:
        return DEFAULT_SKY_STATE

    daytime = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        hour = period_start_hour(entry.get("periodo"))
        if hour is not None and DAYTIME_START_HOUR <= hour <= DAYTIME_END_HOUR:
            daytime.append(entry)

    if daytime:
        counts: dict[str, int] = {}
        for entry in daytime:
            value = entry.get("value")
            if value:
                counts[str(value)] = counts.get(str(value), 0) + 1

        most_frequent, max_count = DEFAULT_SKY_STATE, 0
        for value, count in counts.items():
            if count > max_count:
                most_frequent, max_count = value, count
        return most_frequent

    for entry in entries:
        if isinstance(entry, dict) and entry.get("value"):
            return str(entry["value"])
    return DEFAULT_SKY_STATE


def _temperature(value: Any) -> float:
    parsed = parse_decimal(value)
    return float(int(parsed)) if parsed is not None else 0.0


def extract_day_forecast(tree: Any, day_offset: int, today: date | None = None) -> DailyForecast:
    """
    Summarize one day of a municipality forecast.

    Args:
        tree: Forecast payload as returned by the data URL.
        day_offset: 0 for today, 1 for tomorrow, 2 for the day after.
        today: Reference date (defaults to the current date).

    Returns:
        The day's predominant sky state and min/max temperature, or the
        sentinel forecast when anything is missing.
    """
    target = (today or date.today()) + timedelta(days=day_offset)
    sentinel = DailyForecast(
        date=target,
        sky_state=DEFAULT_SKY_STATE,
        description=UNKNOWN_DESCRIPTION,
        temp_min=0,
        temp_max=0,
    )

    days = prediction_days(tree)
    if not days:
        logger.warning("No prediction data available")
        return sentinel

    day = get_day_forecast(days, target)
    if day is None:
        logger.warning("No prediction for %s (offset %d)", target, day_offset)
        return sentinel

    states = day.get("estadoCielo")
    if not isinstance(states, list) or not states:
        logger.warning("No sky-state entries for %s", target)
        return sentinel

    sky_state = predominant_sky_state(states)
    temps = day.get("temperatura")
    temps = temps if isinstance(temps, dict) else {}
    return DailyForecast(
        date=target,
        sky_state=sky_state,
        description=sky_state_description(sky_state),
        temp_min=_temperature(temps.get("minima")),
        temp_max=_temperature(temps.get("maxima")),
    )


# ---------------------------------------------------------------------------
# Hourly forecasts
# ---------------------------------------------------------------------------


def select_nearest_period(labels: list[str], hour: int) -> str | None:
    """Label whose hour is closest to ``hour``; the first one wins ties."""
    best: str | None = None
    best_diff: int | None = None
    for label in labels:
        label_hour = period_start_hour(label)
        if label_hour is None:
            continue
        diff = abs(label_hour - hour)
        if best_diff is None or diff < best_diff:
            best, best_diff = label, diff
    return best


def _series(day: dict[str, Any], name: str) -> list[dict[str, Any]]:
    series = day.get(name)
    if not isinstance(series, list):
        return []
    return [e for e in series if isinstance(e, dict)]


def _value_at(day: dict[str, Any], name: str, label: str) -> float | None:
    for entry in _series(day, name):
        if entry.get("periodo") == label:
            return parse_decimal(entry.get("value"))
    return None


def _range_contains(label: str, hour: int) -> bool:
    # "0713" covers 07:00-12:59, "1901" wraps past midnight
    if len(label) != 4 or not label.isdigit():
        return period_start_hour(label) == hour
    start, end = int(label[:2]), int(label[2:])
    if start <= end:
        return start <= hour < end
    return hour >= start or hour < end


def _range_value_at(day: dict[str, Any], name: str, hour: int) -> float | None:
    for entry in _series(day, name):
        label = entry.get("periodo")
        if label is not None and _range_contains(str(label), hour):
            return parse_decimal(entry.get("value"))
    return None


def _wind_at(day: dict[str, Any], label: str) -> Wind:
    wind = Wind()
    for entry in _series(day, "vientoAndRachaMax"):
        if entry.get("periodo") != label:
            continue
        if "direccion" in entry:
            directions = entry.get("direccion") or [""]
            speeds = entry.get("velocidad") or [None]
            wind.direction = str(directions[0])
            wind.speed = parse_decimal(speeds[0])
        elif "value" in entry:
            wind.gust = parse_decimal(entry.get("value"))
    return wind


def find_day_entry(days: list[dict[str, Any]], when: date) -> dict[str, Any] | None:
    """Day entry for ``when``, else the first day (None for an empty list)."""
    return get_day_forecast(days, when) or (days[0] if days else None)


def build_period_sample(day: dict[str, Any], hour: int) -> PeriodSample:
    """
    Collect every hourly variable for the period nearest to ``hour``.

    Raises:
        DataNotFoundError: The day holds no hourly periods.
    """
    labels = [str(e.get("periodo")) for e in _series(day, "temperatura") if "periodo" in e]
    if not labels:
        labels = [str(e.get("periodo")) for e in _series(day, "estadoCielo") if "periodo" in e]
    label = select_nearest_period(labels, hour)
    if label is None:
        raise DataNotFoundError("No hourly periods in the forecast")

    period_hour = period_start_hour(label) or 0
    try:
        day_date = date.fromisoformat(str(day.get("fecha", ""))[:10])
    except ValueError as exc:
        raise DataNotFoundError(f"Forecast day has no valid date: {day.get('fecha')!r}") from exc

    sky = SkyState(value=DEFAULT_SKY_STATE, description=UNKNOWN_DESCRIPTION)
    for entry in _series(day, "estadoCielo"):
        if entry.get("periodo") == label and entry.get("value"):
            code = str(entry["value"])
            sky = SkyState(
                value=code,
                description=entry.get("descripcion") or sky_state_description(code),
            )
            break

    return PeriodSample(
        time=datetime.combine(day_date, time(hour=period_hour % 24)),
        sky_state=sky,
        precipitation=_value_at(day, "precipitacion", label),
        precipitation_probability=_range_value_at(day, "probPrecipitacion", period_hour),
        storm_probability=_range_value_at(day, "probTormenta", period_hour),
        snow=_value_at(day, "nieve", label),
        snow_probability=_range_value_at(day, "probNieve", period_hour),
        temperature=_value_at(day, "temperatura", label),
        feels_like=_value_at(day, "sensTermica", label),
        humidity=_value_at(day, "humedadRelativa", label),
        wind=_wind_at(day, label),
    )
