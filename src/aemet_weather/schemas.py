"""
Domain models for the AEMET client.

Pydantic models for data coming from the AEMET OpenData API. These define the
canonical schema: the fetch layer returns loosely typed JSON and the client
normalizes it into these models at the parse boundary. Upstream field names
(Spanish) are accepted as aliases; absent values stay ``None``.
"""

from __future__ import annotations

import datetime as dt
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# =============================================================================
# Parsing helpers
# =============================================================================

#: Upstream marker for trace precipitation ("inapreciable", < 0.1 mm).
TRACE_PRECIPITATION = "Ip"


def parse_decimal(value: Any) -> float | None:
    """Parse an upstream number that may use a comma decimal separator.

    Returns None for absent or unparseable values (never a made-up 0).
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    text = str(value).strip()
    if not text:
        return None
    if text == TRACE_PRECIPITATION:
        return 0.0
    try:
        return float(text.replace(",", "."))
    except ValueError:
        return None


# =============================================================================
# Protocol
# =============================================================================


class Envelope(BaseModel):
    """First-step response: points at the actual data location."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    description: str | None = Field(default=None, alias="descripcion")
    status: int | None = Field(default=None, alias="estado")
    # Usually an absolute URL; some endpoints inline the payload instead
    data_url: str | list[Any] | dict[str, Any] | None = Field(default=None, alias="datos")
    metadata_url: str | None = Field(default=None, alias="metadatos")

    @property
    def points_to_url(self) -> bool:
        return isinstance(self.data_url, str) and self.data_url.startswith(
            ("http://", "https://")
        )


# =============================================================================
# Geographic
# =============================================================================


class GeoPosition(BaseModel):
    """Decimal latitude/longitude."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class WeatherStation(BaseModel):
    """A climatological station from the station inventory."""

    station_id: str = Field(..., description="AEMET station code (indicativo)")
    name: str = ""
    province: str = ""
    altitude: float = 0.0
    geoposition: GeoPosition | None = None


class Municipality(BaseModel):
    """A municipality from the master list, keyed by its 5-digit INE code."""

    code: str
    name: str = ""
    province: str | None = None
    geoposition: GeoPosition | None = None


# =============================================================================
# Forecasts
# =============================================================================


class DailyForecast(BaseModel):
    """Single day summary extracted from a municipality forecast."""

    date: dt.date
    sky_state: str
    description: str
    temp_min: float = 0.0
    temp_max: float = 0.0


class MunicipalityForecast(BaseModel):
    """Today / tomorrow / day-after summary for a municipality."""

    name: str = ""
    province: str = ""
    today: DailyForecast
    tomorrow: DailyForecast
    next2: DailyForecast
    attempts: int | None = None
    forecast: list[dict[str, Any]] | None = Field(
        default=None, description="Raw prediction days (full forecast only)"
    )


class SkyState(BaseModel):
    value: str
    description: str


class Wind(BaseModel):
    direction: str = ""
    speed: float | None = None
    gust: float | None = None


class PeriodSample(BaseModel):
    """Hourly forecast values for one period."""

    time: dt.datetime
    sky_state: SkyState
    precipitation: float | None = None
    precipitation_probability: float | None = None
    storm_probability: float | None = None
    snow: float | None = None
    snow_probability: float | None = None
    temperature: float | None = None
    feels_like: float | None = None
    humidity: float | None = None
    wind: Wind = Field(default_factory=Wind)

    @property
    def hour(self) -> int:
        return self.time.hour


class WeatherByCoordinates(BaseModel):
    """Hourly forecast for the municipality nearest to a point."""

    municipality_code: str
    name: str
    province: str | None = None
    distance_km: float
    weather: PeriodSample
    attempts: int | None = None


# =============================================================================
# Climate observations
# =============================================================================

_DECIMAL_FIELDS = (
    "altitude",
    "tmax",
    "tmin",
    "tmean",
    "precipitation",
    "pressure_max",
    "pressure_min",
    "wind_speed",
    "wind_gust",
    "wind_direction",
    "insolation",
    "snow",
)


class ClimateObservation(BaseModel):
    """One day of observations at one station (all sensors optional)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    date: dt.date = Field(..., alias="fecha")
    station_id: str = Field(default="", alias="indicativo")
    name: str = Field(default="", alias="nombre")
    province: str = Field(default="", alias="provincia")
    altitude: float | None = Field(default=None, alias="altitud")

    tmax: float | None = None
    tmax_time: str | None = Field(default=None, alias="horatmax")
    tmin: float | None = None
    tmin_time: str | None = Field(default=None, alias="horatmin")
    tmean: float | None = Field(default=None, alias="tm")
    precipitation: float | None = Field(default=None, alias="prec")
    pressure_max: float | None = Field(default=None, alias="presMax")
    pressure_min: float | None = Field(default=None, alias="presMin")
    wind_speed: float | None = Field(default=None, alias="velmedia")
    wind_gust: float | None = Field(default=None, alias="racha")
    wind_gust_time: str | None = Field(default=None, alias="horaracha")
    wind_direction: float | None = Field(default=None, alias="dir")
    insolation: float | None = Field(default=None, alias="inso")
    snow: float | None = Field(default=None, alias="nieve")

    @field_validator(*_DECIMAL_FIELDS, mode="before")
    @classmethod
    def _decimal(cls, value: Any) -> float | None:
        return parse_decimal(value)

    @field_validator("date", mode="before")
    @classmethod
    def _date_only(cls, value: Any) -> Any:
        # Some endpoints send "2024-05-01T00:00:00"
        if isinstance(value, str):
            return value[:10]
        return value

    @field_validator("tmax_time", "tmin_time", "wind_gust_time", mode="before")
    @classmethod
    def _time_text(cls, value: Any) -> str | None:
        if value is None or value == "":
            return None
        return str(value)


class ClimateValues(BaseModel):
    """Daily climate values plus the station of the first record."""

    station: WeatherStation
    values: list[ClimateObservation]
    attempts: int | None = None


class StationObservation(BaseModel):
    """Latest observation at the station nearest to a point."""

    station: WeatherStation
    observation: ClimateObservation
    distance_km: float
