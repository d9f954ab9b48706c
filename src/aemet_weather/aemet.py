"""
AEMET client facade.

One method per use case; each builds the endpoint URL, runs the two-step fetch
and normalizes the payload into ``schemas`` models. Failures keep their type
and gain a prefix naming the operation::

    from aemet_weather import AemetClient

    client = AemetClient(api_key)
    forecast = client.get_simple_forecast("28079")
    forecast.today.sky_state, forecast.today.temp_max
"""

from __future__ import annotations

import logging
import re
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from aemet_weather.config import DEFAULT_BASE_URL, Settings, get_settings
from aemet_weather.datasources.aemet import alerts, forecast, stations, stats
from aemet_weather.datasources.aemet.client import DEFAULT_TIMEOUT, ENDPOINTS, normalize_province
from aemet_weather.datasources.aemet.fetch import (
    DEFAULT_RETRY_POLICY,
    RetryPolicy,
    fetch_aemet_binary,
    fetch_aemet_data,
)
from aemet_weather.datasources.aemet.geo import find_nearest
from aemet_weather.errors import AemetError, DataNotFoundError, ValidationError
from aemet_weather.schemas import (
    ClimateValues,
    Municipality,
    MunicipalityForecast,
    StationObservation,
    WeatherByCoordinates,
    WeatherStation,
)

if TYPE_CHECKING:
    import requests

    from aemet_weather.datasources.aemet.models import ClimateSummary

logger = logging.getLogger(__name__)

_SIMPLE_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_FULL_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}UTC$")
_MUNICIPALITY_CODE = re.compile(r"^\d{5}$")

#: Daily climate values are published with roughly three days of delay.
CLIMATE_DATA_DELAY_DAYS = 3


@contextmanager
def _operation(context: str) -> Iterator[None]:
    """Prefix any ``AemetError`` raised inside the block with ``context``."""
    try:
        yield
    except AemetError as exc:
        exc.add_context(context)
        raise


def validate_municipality_code(code: str) -> str:
    """Check for a 5-digit INE municipality code."""
    if not isinstance(code, str) or not _MUNICIPALITY_CODE.match(code):
        raise ValidationError("The municipality code must have 5 digits")
    return code


def climate_date_range(start: str, end: str, today: date | None = None) -> tuple[str, str]:
    """
    Validate a climate query period and expand it to AEMET's timestamp format.

    Args:
        start: ``YYYY-MM-DD`` or ``YYYY-MM-DDTHH:MM:SSUTC``.
        end: Same formats; a bare date covers the whole day.
        today: Reference date for the "no future dates" check.

    Returns:
        ``(fechaIni, fechaFin)`` as ``YYYY-MM-DDTHH:MM:SSUTC`` strings.

    Raises:
        ValidationError: Missing, malformed, reversed or future dates.
    """
    if not start or not end:
        raise ValidationError("Both start and end dates are required")

    def expand(value: str, day_time: str) -> str:
        if _SIMPLE_DATE.match(value):
            return f"{value}T{day_time}UTC"
        if _FULL_DATE.match(value):
            return value
        raise ValidationError("Incorrect date format. Use YYYY-MM-DD or YYYY-MM-DDTHH:MM:SSUTC")

    start_ts = expand(start, "00:00:00")
    end_ts = expand(end, "23:59:59")
    try:
        start_day = date.fromisoformat(start[:10])
        end_day = date.fromisoformat(end[:10])
    except ValueError as exc:
        raise ValidationError(f"Invalid date: {exc}") from exc

    today = today or date.today()
    if start_day > today or end_day > today:
        raise ValidationError("Climate data cannot be requested for future dates")
    if start_day > end_day:
        raise ValidationError("The start date is after the end date")
    return start_ts, end_ts


class AemetClient:
    """Client for the AEMET (Agencia Estatal de Meteorología) OpenData API."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        http_session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not api_key:
            raise ValidationError("The API key is required")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_policy = retry_policy
        self._http_session = http_session
        self._sleep = sleep

        # Loaded on first coordinate lookup, shared by later ones
        self._municipalities: list[Municipality] | None = None
        self._municipalities_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> AemetClient:
        """Build a client from environment / ``.env`` settings."""
        settings = settings or get_settings()
        return cls(
            settings.api_key,
            base_url=settings.base_url,
            timeout=settings.timeout,
            retry_policy=RetryPolicy.from_settings(settings),
        )

    # -------------------------------------------------------------------------
    # Plumbing
    # -------------------------------------------------------------------------

    def _url(self, endpoint: str, suffix: str = "") -> str:
        return f"{self.base_url}{ENDPOINTS[endpoint]}{suffix}"

    def _fetch(self, url: str) -> Any:
        return fetch_aemet_data(
            url,
            self.api_key,
            self.timeout,
            policy=self.retry_policy,
            sleep=self._sleep,
            http_session=self._http_session,
        )

    # -------------------------------------------------------------------------
    # Forecasts
    # -------------------------------------------------------------------------

    def _municipality_forecast(self, code: str, *, full: bool) -> MunicipalityForecast:
        payload = self._fetch(self._url("forecast_municipality", code))
        root = forecast.unwrap_prediction(payload)
        return MunicipalityForecast(
            name=root.get("nombre") or "",
            province=root.get("provincia") or "",
            today=forecast.extract_day_forecast(payload, 0),
            tomorrow=forecast.extract_day_forecast(payload, 1),
            next2=forecast.extract_day_forecast(payload, 2),
            attempts=root.get("attempts"),
            forecast=forecast.prediction_days(payload) if full else None,
        )

    def get_simple_forecast(self, municipality_code: str) -> MunicipalityForecast:
        """Today, tomorrow and the day after for a municipality (5-digit INE code)."""
        validate_municipality_code(municipality_code)
        with _operation("Error fetching the forecast"):
            return self._municipality_forecast(municipality_code, full=False)

    def get_forecast(self, municipality_code: str) -> MunicipalityForecast:
        """Like ``get_simple_forecast`` plus the raw prediction days."""
        validate_municipality_code(municipality_code)
        with _operation("Error fetching the full forecast"):
            return self._municipality_forecast(municipality_code, full=True)

    # -------------------------------------------------------------------------
    # Master data and alerts (pass-through)
    # -------------------------------------------------------------------------

    def get_municipalities(self) -> list[Municipality]:
        with _operation("Error fetching municipalities"):
            return stations.parse_municipalities(self._fetch(self._url("municipalities")))

    def get_provinces(self) -> list[dict[str, Any]]:
        with _operation("Error fetching provinces"):
            result: list[dict[str, Any]] = self._fetch(self._url("provinces"))
            return result

    def get_alerts_today(self) -> Any:
        with _operation("Error fetching today's alerts"):
            return self._fetch(self._url("alerts_today"))

    def get_alerts_tomorrow(self) -> Any:
        with _operation("Error fetching tomorrow's alerts"):
            return self._fetch(self._url("alerts_tomorrow"))

    def get_alerts_geojson(self, area: str = "esp") -> dict[str, Any]:
        """Latest CAP alerts for ``area`` ("esp" for all Spain) as GeoJSON."""
        with _operation("Error fetching alerts"):
            outcome = fetch_aemet_binary(
                self._url("alerts_cap_latest", area),
                self.api_key,
                self.timeout,
                policy=self.retry_policy,
                sleep=self._sleep,
                http_session=self._http_session,
            )
            collection = alerts.parse_cap_archive(outcome.data)
            collection["attempts"] = outcome.attempts
            return collection

    # -------------------------------------------------------------------------
    # Stations and climate values
    # -------------------------------------------------------------------------

    def get_weather_stations(self) -> list[WeatherStation]:
        """Every climatological station, with decimal coordinates."""
        with _operation("Error fetching stations"):
            return stations.parse_stations(self._fetch(self._url("climate_stations")))

    def search_weather_stations(self, query: str) -> list[WeatherStation]:
        """Stations whose name or province contains ``query`` (ignores accents/case)."""
        with _operation("Error searching stations"):
            return stations.search_stations(self.get_weather_stations(), query)

    def get_climate_values(
        self,
        start: str,
        end: str,
        station_id: str | None = None,
    ) -> ClimateValues:
        """
        Daily climate values for a period.

        Args:
            start: First day (``YYYY-MM-DD`` or ``YYYY-MM-DDTHH:MM:SSUTC``).
            end: Last day, same formats.
            station_id: Restrict to one station (all stations when None).

        Raises:
            ValidationError: Bad or future dates (before any request).
            DataNotFoundError: No values for the period.
        """
        start_ts, end_ts = climate_date_range(start, end)
        target = f"estacion/{quote(station_id, safe='')}" if station_id else "todasestaciones"
        url = self._url(
            "climate_values_daily",
            f"fechaini/{quote(start_ts, safe='')}/fechafin/{quote(end_ts, safe='')}/{target}",
        )

        with _operation("Error fetching climate values"):
            payload = self._fetch(url)
            values = stations.parse_climate_observations(payload)
            if not values:
                raise DataNotFoundError("No data found for the requested station and period")
            first = values[0]
            return ClimateValues(
                station=WeatherStation(
                    station_id=first.station_id,
                    name=first.name,
                    province=first.province,
                    altitude=first.altitude or 0.0,
                ),
                values=values,
                attempts=payload[0].get("attempts") if isinstance(payload[0], dict) else None,
            )

    def get_climate_summary_by_province(
        self, start: str, end: str, province: str
    ) -> ClimateSummary:
        """Aggregate daily values of every station in ``province`` over a period."""
        data = self.get_climate_values(start, end)
        with _operation("Error building the climate summary"):
            return stats.summarize_climate(data.values, province, start, end)

    def get_station_observation_by_coordinates(
        self,
        lat: float,
        lon: float,
        province: str,
        today: date | None = None,
    ) -> StationObservation:
        """
        Most recent daily observation at the station nearest to a point.

        Only stations in ``province`` are considered. Daily values are
        published with a delay, so the observation is from three days ago.
        """
        with _operation("Error fetching weather data"):
            all_stations = self.get_weather_stations()
            day = (today or date.today()) - timedelta(days=CLIMATE_DATA_DELAY_DAYS)
            climate = self.get_climate_values(day.isoformat(), day.isoformat())

            wanted = stations.fold(normalize_province(province))
            candidates = [s for s in all_stations if stations.fold(s.province) == wanted]
            if not candidates:
                raise DataNotFoundError(f"No stations found in province {province}")

            nearest = find_nearest(
                candidates,
                lat,
                lon,
                lambda s: (s.geoposition.latitude, s.geoposition.longitude)
                if s.geoposition
                else None,
            )
            if nearest is None:
                raise DataNotFoundError("No nearby station found")
            station, distance = nearest

            observations = [v for v in climate.values if v.station_id == station.station_id]
            if not observations:
                raise DataNotFoundError("No data found for the selected station")
            return StationObservation(
                station=station, observation=observations[0], distance_km=distance
            )

    # -------------------------------------------------------------------------
    # Hourly forecast by coordinates
    # -------------------------------------------------------------------------

    def _cached_municipalities(self) -> list[Municipality]:
        """Municipality list, loaded once per client; concurrent callers share one load."""
        if self._municipalities is None:
            with self._municipalities_lock:
                if self._municipalities is None:
                    logger.debug("Loading municipality list")
                    self._municipalities = self.get_municipalities()
        return self._municipalities

    def get_weather_by_coordinates(
        self,
        lat: float,
        lon: float,
        now: datetime | None = None,
    ) -> WeatherByCoordinates:
        """
        Hourly forecast for the municipality nearest to a point.

        Picks the period closest to the current hour of today's forecast.
        """
        with _operation("Error fetching weather by coordinates"):
            nearest = find_nearest(
                self._cached_municipalities(),
                lat,
                lon,
                lambda m: (m.geoposition.latitude, m.geoposition.longitude)
                if m.geoposition
                else None,
            )
            if nearest is None:
                raise DataNotFoundError("No municipality with coordinates found")
            municipality, distance = nearest
            logger.debug("Nearest municipality %s (%.2f km)", municipality.code, distance)

            payload = self._fetch(self._url("forecast_hourly", municipality.code))
            days = forecast.prediction_days(payload)
            now = now or datetime.now()
            day = forecast.find_day_entry(days, now.date())
            if day is None:
                raise DataNotFoundError(f"No hourly forecast for municipality {municipality.code}")

            root = forecast.unwrap_prediction(payload)
            return WeatherByCoordinates(
                municipality_code=municipality.code,
                name=root.get("nombre") or municipality.name,
                province=root.get("provincia") or municipality.province,
                distance_km=distance,
                weather=forecast.build_period_sample(day, now.hour),
                attempts=root.get("attempts"),
            )
