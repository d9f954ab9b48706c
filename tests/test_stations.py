"""Tests for station, municipality and climate record parsing."""

from __future__ import annotations

import datetime as dt

import pytest

from aemet_weather.datasources.aemet.client import normalize_province, sky_state_description
from aemet_weather.datasources.aemet.stations import (
    fold,
    parse_climate_observations,
    parse_municipalities,
    parse_station,
    parse_stations,
    search_stations,
)
from aemet_weather.errors import ApiError
from aemet_weather.schemas import ClimateObservation, parse_decimal

RETIRO = {
    "latitud": "402443N",
    "provincia": "MADRID",
    "altitud": "667",
    "indicativo": "3195",
    "nombre": "MADRID, RETIRO",
    "indsinop": "08222",
    "longitud": "034041W",
}


class TestLookupTables:
    """Tests for province and sky-state lookups."""

    def test_province_alias(self) -> None:
        assert normalize_province("BALEARES") == "ILLES BALEARS"
        assert normalize_province("Sta. Cruz de Tenerife") == "SANTA CRUZ DE TENERIFE"

    def test_province_unmapped_kept(self) -> None:
        assert normalize_province("  Atlantis ") == "Atlantis"

    def test_province_empty(self) -> None:
        assert normalize_province(None) == ""
        assert normalize_province("") == ""

    def test_sky_state(self) -> None:
        assert sky_state_description("11") == "Clear"
        assert sky_state_description("11n") == "Clear"
        assert sky_state_description("99") == "Unknown"
        assert sky_state_description(None) == "Unknown"


class TestParseDecimal:
    """Tests for parse_decimal."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("12,5", 12.5), ("-3,0", -3.0), ("7", 7.0), (4, 4.0), ("Ip", 0.0), (" 1,25 ", 1.25)],
    )
    def test_values(self, raw: object, expected: float) -> None:
        assert parse_decimal(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "Varias", True])
    def test_absent(self, raw: object) -> None:
        assert parse_decimal(raw) is None


# =============================================================================
# Stations
# =============================================================================


class TestParseStation:
    """Tests for parse_station / parse_stations."""

    def test_parse(self) -> None:
        station = parse_station(RETIRO)
        assert station.station_id == "3195"
        assert station.name == "MADRID, RETIRO"
        assert station.province == "MADRID"
        assert station.altitude == 667.0
        assert station.geoposition is not None
        assert station.geoposition.latitude == pytest.approx(40 + 24 / 60 + 43 / 3600)
        assert station.geoposition.longitude == pytest.approx(-(3 + 40 / 60 + 41 / 3600))

    def test_province_normalized(self) -> None:
        station = parse_station({**RETIRO, "provincia": "BALEARES"})
        assert station.province == "ILLES BALEARS"

    def test_missing_coordinates(self) -> None:
        station = parse_station({"indicativo": "X1", "nombre": "Nowhere"})
        assert station.geoposition is None
        assert station.altitude == 0.0

    def test_list(self) -> None:
        stations = parse_stations([RETIRO, "junk", {**RETIRO, "indicativo": "3129"}])
        assert [s.station_id for s in stations] == ["3195", "3129"]

    def test_not_a_list(self) -> None:
        with pytest.raises(ApiError, match="expected a list of stations"):
            parse_stations({"data": "oops", "attempts": 1})


class TestSearchStations:
    """Tests for fold and search_stations."""

    def test_fold(self) -> None:
        assert fold("CÁCERES") == "caceres"
        assert fold("A Coruña") == "a coruna"

    def test_search_by_name_ignoring_accents(self) -> None:
        stations = parse_stations(
            [
                RETIRO,
                {**RETIRO, "indicativo": "3469A", "nombre": "CÁCERES", "provincia": "CACERES"},
            ]
        )
        assert [s.station_id for s in search_stations(stations, "caceres")] == ["3469A"]

    def test_search_by_province(self) -> None:
        stations = parse_stations([RETIRO])
        assert len(search_stations(stations, "madrid")) == 1
        assert search_stations(stations, "sevilla") == []


# =============================================================================
# Municipalities
# =============================================================================


class TestParseMunicipalities:
    """Tests for parse_municipalities."""

    def test_strips_id_prefix(self) -> None:
        municipalities = parse_municipalities(
            [
                {
                    "id": "id28079",
                    "nombre": "Madrid",
                    "latitud_dec": "40.4165",
                    "longitud_dec": "-3.70256",
                }
            ]
        )
        assert municipalities[0].code == "28079"
        assert municipalities[0].geoposition is not None
        assert municipalities[0].geoposition.latitude == pytest.approx(40.4165)
        assert municipalities[0].geoposition.longitude == pytest.approx(-3.70256)

    def test_skips_records_without_code(self) -> None:
        assert parse_municipalities([{"nombre": "Ghost"}]) == []

    def test_not_a_list(self) -> None:
        with pytest.raises(ApiError):
            parse_municipalities("oops")


# =============================================================================
# Climate observations
# =============================================================================


class TestParseClimateObservations:
    """Tests for parse_climate_observations."""

    def test_comma_decimals(self) -> None:
        obs = ClimateObservation.model_validate(
            {
                "fecha": "2024-05-01",
                "indicativo": "3195",
                "tmax": "25,4",
                "horatmax": "15:40",
                "prec": "Ip",
                "velmedia": "2,5",
                "presMax": "945,1",
            }
        )
        assert obs.date == dt.date(2024, 5, 1)
        assert obs.tmax == 25.4
        assert obs.tmax_time == "15:40"
        assert obs.precipitation == 0.0
        assert obs.wind_speed == 2.5
        assert obs.pressure_max == 945.1
        assert obs.tmin is None
        assert obs.snow is None

    def test_skips_malformed(self) -> None:
        observations = parse_climate_observations(
            [
                {"fecha": "2024-05-01", "indicativo": "3195", "provincia": "BALEARES"},
                {"indicativo": "no-date"},
                "junk",
            ]
        )
        assert len(observations) == 1
        assert observations[0].province == "ILLES BALEARS"

    def test_not_a_list(self) -> None:
        with pytest.raises(ApiError):
            parse_climate_observations({"datos": None})
