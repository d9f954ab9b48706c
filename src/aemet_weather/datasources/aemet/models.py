"""Climate summary data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aemet_weather.schemas import WeatherStation


@dataclass
class SeriesStats:
    """Max / min / mean / total of a series, with a fallback for empty input."""

    max: float = 0.0
    min: float = 0.0
    mean: float = 0.0
    total: float = 0.0
    count: int = 0


@dataclass
class TemperatureSummary:
    max: float
    min: float
    mean: float


@dataclass
class PrecipitationSummary:
    total: float
    max_daily: float
    rainy_days: int


@dataclass
class PressureSummary:
    max: float
    min: float
    mean_max: float
    mean_min: float


@dataclass
class WindSummary:
    mean_speed: float
    max_gust: float
    predominant_direction: float  # circular mean, degrees in [0, 360)


@dataclass
class InsolationSummary:
    total: float
    daily_mean: float


@dataclass
class SnowSummary:
    total: float
    snow_days: int


@dataclass
class Period:
    start: str
    end: str
    days: int


@dataclass
class ClimateSummary:
    """Aggregated daily climate values for every station of a province."""

    province: str
    period: Period
    temperature: TemperatureSummary
    precipitation: PrecipitationSummary
    pressure: PressureSummary
    wind: WindSummary
    insolation: InsolationSummary
    snow: SnowSummary
    stations: list[WeatherStation] = field(default_factory=list)

    @property
    def station_count(self) -> int:
        return len(self.stations)
