"""Tests for coordinate normalization and nearest-candidate search."""

from __future__ import annotations

import math

import pytest

from aemet_weather.datasources.aemet.geo import (
    EARTH_RADIUS_KM,
    find_nearest,
    haversine_km,
    normalize_coordinate,
)


class TestNormalizeCoordinate:
    """Tests for normalize_coordinate."""

    def test_dms_north(self) -> None:
        assert normalize_coordinate("394924N") == pytest.approx(39 + 49 / 60 + 24 / 3600)

    def test_dms_west_is_negative(self) -> None:
        assert normalize_coordinate("031245W") == pytest.approx(-(3 + 12 / 60 + 45 / 3600))

    def test_dms_south_is_negative(self) -> None:
        assert normalize_coordinate("334500S") == pytest.approx(-33.75)

    def test_dms_east(self) -> None:
        assert normalize_coordinate("021030E") == pytest.approx(2.175)

    def test_lowercase_hemisphere(self) -> None:
        assert normalize_coordinate("400000n") == pytest.approx(40.0)

    def test_decimal_string(self) -> None:
        assert normalize_coordinate("40.4168") == pytest.approx(40.4168)
        assert normalize_coordinate("-3.7038") == pytest.approx(-3.7038)

    def test_number_passthrough(self) -> None:
        assert normalize_coordinate(-3.5) == -3.5
        assert normalize_coordinate(40) == 40.0

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "abc",
            "12345N",
            "1234567N",
            "0041024W",
            "3949X4N",
            "394924Q",
            "1.2.3",
            None,
            [],
            True,
        ],
    )
    def test_malformed_degrades_to_zero(self, raw: object) -> None:
        assert normalize_coordinate(raw) == 0.0

    def test_non_finite_degrades_to_zero(self) -> None:
        assert normalize_coordinate(float("nan")) == 0.0
        assert normalize_coordinate("inf.0") == 0.0

    def test_malformed_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        normalize_coordinate("garbage")
        assert "Could not normalize coordinate" in caplog.text


class TestHaversine:
    """Tests for haversine_km."""

    def test_same_point(self) -> None:
        assert haversine_km(40.4168, -3.7038, 40.4168, -3.7038) == 0.0

    def test_madrid_barcelona(self) -> None:
        # ~505 km great-circle
        assert haversine_km(40.4168, -3.7038, 41.3874, 2.1686) == pytest.approx(505, abs=5)

    def test_symmetric(self) -> None:
        a = haversine_km(28.4636, -16.2518, 43.2630, -2.9350)
        b = haversine_km(43.2630, -2.9350, 28.4636, -16.2518)
        assert a == pytest.approx(b)

    def test_antipodes(self) -> None:
        assert haversine_km(0, 0, 0, 180) == pytest.approx(math.pi * EARTH_RADIUS_KM)

    def test_one_degree_latitude(self) -> None:
        assert haversine_km(0, 0, 1, 0) == pytest.approx(111.19, abs=0.01)


class TestFindNearest:
    """Tests for find_nearest."""

    @staticmethod
    def _pos(item: dict) -> tuple[float, float] | None:
        if "lat" not in item:
            return None
        return item["lat"], item["lon"]

    def test_picks_closest(self) -> None:
        candidates = [
            {"id": "madrid", "lat": 40.4168, "lon": -3.7038},
            {"id": "toledo", "lat": 39.8628, "lon": -4.0273},
            {"id": "sevilla", "lat": 37.3891, "lon": -5.9845},
        ]
        best, distance = find_nearest(candidates, 39.9, -4.0, self._pos)
        assert best["id"] == "toledo"
        assert distance == pytest.approx(haversine_km(39.9, -4.0, 39.8628, -4.0273))

    def test_tie_keeps_first(self) -> None:
        candidates = [
            {"id": "first", "lat": 1.0, "lon": 0.0},
            {"id": "second", "lat": -1.0, "lon": 0.0},
        ]
        best, _ = find_nearest(candidates, 0.0, 0.0, self._pos)
        assert best["id"] == "first"

    def test_exact_duplicates_keep_first(self) -> None:
        candidates = [{"id": i, "lat": 10.0, "lon": 10.0} for i in range(3)]
        best, distance = find_nearest(candidates, 10.0, 10.0, self._pos)
        assert best["id"] == 0
        assert distance == 0.0

    def test_skips_candidates_without_position(self) -> None:
        candidates = [{"id": "nowhere"}, {"id": "somewhere", "lat": 50.0, "lon": 50.0}]
        best, _ = find_nearest(candidates, 0.0, 0.0, self._pos)
        assert best["id"] == "somewhere"

    def test_empty(self) -> None:
        assert find_nearest([], 0.0, 0.0, self._pos) is None

    def test_no_positions(self) -> None:
        assert find_nearest([{"id": "a"}], 0.0, 0.0, self._pos) is None
