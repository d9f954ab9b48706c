"""Tests for climate aggregation."""

from __future__ import annotations

from typing import Any

import pytest

from aemet_weather.datasources.aemet.stats import (
    average,
    circular_mean_degrees,
    series_stats,
    summarize_climate,
    unique_stations,
)
from aemet_weather.errors import DataNotFoundError
from aemet_weather.schemas import ClimateObservation


def _obs(**overrides: Any) -> ClimateObservation:
    record = {
        "fecha": "2024-05-01",
        "indicativo": "3195",
        "nombre": "MADRID, RETIRO",
        "provincia": "MADRID",
        "altitud": "667",
    }
    record.update(overrides)
    return ClimateObservation.model_validate(record)


def _angle_close(actual: float, expected: float, tol: float = 1e-6) -> bool:
    diff = abs(actual - expected) % 360
    return min(diff, 360 - diff) < tol


# =============================================================================
# Circular mean
# =============================================================================


class TestCircularMean:
    """Tests for circular_mean_degrees."""

    def test_wraps_around_north(self) -> None:
        result = circular_mean_degrees([350, 10])
        assert _angle_close(result, 0.0)
        assert 0 <= result < 360

    def test_simple_mean(self) -> None:
        assert circular_mean_degrees([80, 100]) == pytest.approx(90.0)

    def test_west(self) -> None:
        assert circular_mean_degrees([260, 280]) == pytest.approx(270.0)

    def test_single_value(self) -> None:
        assert circular_mean_degrees([225]) == pytest.approx(225.0)

    def test_full_turn_is_zero(self) -> None:
        assert _angle_close(circular_mean_degrees([0, 360]), 0.0)

    def test_empty(self) -> None:
        assert circular_mean_degrees([]) == 0.0

    def test_result_in_range(self) -> None:
        for values in ([359, 1], [0, 0], [180, 190, 200], [355, 356, 357, 3]):
            result = circular_mean_degrees(values)
            assert 0 <= result < 360

    def test_accepts_generator(self) -> None:
        assert circular_mean_degrees(v for v in [90, 90]) == pytest.approx(90.0)


class TestSeriesStats:
    """Tests for series_stats and average."""

    def test_ignores_missing(self) -> None:
        stats = series_stats([1.0, None, 3.0])
        assert stats.max == 3.0
        assert stats.min == 1.0
        assert stats.mean == 2.0
        assert stats.total == 4.0
        assert stats.count == 2

    def test_fallback_when_empty(self) -> None:
        stats = series_stats([None, None], fallback=-1.0)
        assert stats.max == stats.min == stats.mean == stats.total == -1.0
        assert stats.count == 0

    def test_average_empty(self) -> None:
        assert average([]) == 0.0


class TestUniqueStations:
    """Tests for unique_stations."""

    def test_first_occurrence_order(self) -> None:
        rows = [
            _obs(indicativo="B"),
            _obs(indicativo="A"),
            _obs(indicativo="B", fecha="2024-05-02"),
        ]
        assert [s.station_id for s in unique_stations(rows)] == ["B", "A"]


# =============================================================================
# Province summary
# =============================================================================


class TestSummarizeClimate:
    """Tests for summarize_climate."""

    def _rows(self) -> list[ClimateObservation]:
        return [
            _obs(
                tmax="25,4",
                tmin="12,0",
                tm="18,7",
                prec="0,0",
                dir="35",
                velmedia="2,5",
                racha="9,7",
                presMax="945,1",
                presMin="940,0",
                inso="10,2",
            ),
            _obs(
                fecha="2024-05-02",
                tmax="22,0",
                tmin="10,1",
                tm="16,0",
                prec="4,2",
                dir="01",
                velmedia="3,5",
                racha="12,5",
                presMax="944,0",
                presMin="938,5",
                inso="6,0",
            ),
            _obs(
                indicativo="3129",
                nombre="MADRID AEROPUERTO",
                tmax="26,0",
                tmin="11,0",
                tm="18,5",
                prec="Ip",
                dir="99",
                velmedia="4,0",
            ),
            _obs(
                indicativo="0076",
                nombre="BARCELONA AEROPUERTO",
                provincia="BARCELONA",
                tmax="40,0",
                prec="50,0",
            ),
        ]

    def test_filters_province(self) -> None:
        summary = summarize_climate(self._rows(), "Madrid", "2024-05-01", "2024-05-02")
        assert summary.province == "MADRID"
        assert summary.station_count == 2
        assert {s.station_id for s in summary.stations} == {"3195", "3129"}

    def test_temperature(self) -> None:
        summary = summarize_climate(self._rows(), "MADRID", "2024-05-01", "2024-05-02")
        assert summary.temperature.max == pytest.approx(26.0)
        assert summary.temperature.min == pytest.approx(10.1)
        assert summary.temperature.mean == pytest.approx((18.7 + 16.0 + 18.5) / 3)

    def test_precipitation(self) -> None:
        summary = summarize_climate(self._rows(), "MADRID", "2024-05-01", "2024-05-02")
        assert summary.precipitation.total == pytest.approx(4.2)
        assert summary.precipitation.max_daily == pytest.approx(4.2)
        # "Ip" (trace) is 0.0 and does not count as a rainy day
        assert summary.precipitation.rainy_days == 1

    def test_pressure(self) -> None:
        summary = summarize_climate(self._rows(), "MADRID", "2024-05-01", "2024-05-02")
        assert summary.pressure.max == pytest.approx(945.1)
        assert summary.pressure.min == pytest.approx(938.5)

    def test_wind(self) -> None:
        summary = summarize_climate(self._rows(), "MADRID", "2024-05-01", "2024-05-02")
        assert summary.wind.mean_speed == pytest.approx((2.5 + 3.5 + 4.0) / 3)
        assert summary.wind.max_gust == pytest.approx(12.5)
        assert 0 <= summary.wind.predominant_direction < 360

    def test_period(self) -> None:
        summary = summarize_climate(self._rows(), "MADRID", "2024-05-01", "2024-05-02")
        assert summary.period.start == "2024-05-01"
        assert summary.period.end == "2024-05-02"
        assert summary.period.days == 2

    def test_missing_sensor_falls_back(self) -> None:
        rows = [_obs(provincia="SORIA")]
        summary = summarize_climate(rows, "SORIA", "2024-05-01", "2024-05-01")
        assert summary.snow.total == 0.0
        assert summary.insolation.total == 0.0
        assert summary.wind.predominant_direction == 0.0

    def test_province_alias(self) -> None:
        rows = [_obs(provincia="BALEARES")]
        summary = summarize_climate(rows, "Illes Balears", "2024-05-01", "2024-05-01")
        assert summary.province == "ILLES BALEARS"
        assert summary.station_count == 1

    def test_no_rows_for_province(self) -> None:
        with pytest.raises(DataNotFoundError, match="No data available for TERUEL"):
            summarize_climate(self._rows(), "TERUEL", "2024-05-01", "2024-05-02")
