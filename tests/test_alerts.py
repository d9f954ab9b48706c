"""Tests for CAP alert archive parsing."""

from __future__ import annotations

import io
import tarfile

import pytest

from aemet_weather.datasources.aemet.alerts import (
    count_by_level,
    parse_cap_alert,
    parse_cap_archive,
)
from aemet_weather.errors import ApiError

CAP_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<alert xmlns="urn:oasis:names:tc:emergency:cap:1.2">
  <identifier>{identifier}</identifier>
  <sender>aemet@aemet.es</sender>
  <sent>2024-05-01T08:00:00+02:00</sent>
  <status>Actual</status>
  <msgType>Alert</msgType>
  <info>
    <language>en-GB</language>
    <event>Moderate thunderstorm warning</event>
    <severity>Moderate</severity>
    <certainty>Likely</certainty>
    <parameter>
      <valueName>AEMET-Meteoalerta nivel</valueName>
      <value>{level}</value>
    </parameter>
    <area><areaDesc>Sierra de Madrid</areaDesc></area>
  </info>
  <info>
    <language>es-ES</language>
    <event>Aviso de tormentas de nivel {level}</event>
    <severity>Moderate</severity>
    <certainty>Likely</certainty>
    <onset>2024-05-01T14:00:00+02:00</onset>
    <expires>2024-05-01T23:59:59+02:00</expires>
    <headline>Aviso amarillo. Tormentas</headline>
    <description>Tormentas con granizo.</description>
    <instruction>Evite zonas inundables.</instruction>
    <parameter>
      <valueName>AEMET-Meteoalerta nivel</valueName>
      <value>{level}</value>
    </parameter>
    <parameter>
      <valueName>AEMET-Meteoalerta fenomeno</valueName>
      <value>TO;Tormentas</value>
    </parameter>
    <parameter>
      <valueName>AEMET-Meteoalerta probabilidad</valueName>
      <value>40%-70%</value>
    </parameter>
    <area>
      <areaDesc>Sierra de Madrid</areaDesc>
      <polygon>40.9,-4.2 40.9,-3.6 40.5,-3.6 40.5,-4.2 40.9,-4.2</polygon>
    </area>
    <area>
      <areaDesc>Sur de Madrid</areaDesc>
      <polygon>40.3,-3.9 40.3,-3.4 40.0,-3.4</polygon>
    </area>
  </info>
</alert>
"""


def _cap(identifier: str = "2.49.0.0.724.0.ES.1", level: str = "amarillo") -> bytes:
    return CAP_TEMPLATE.format(identifier=identifier, level=level).encode()


def _archive(files: dict[str, bytes], mode: str = "w:gz") -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode=mode) as tar:
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            tar.addfile(info, io.BytesIO(content))
    return buf.getvalue()


class TestParseCapAlert:
    """Tests for parse_cap_alert."""

    def test_one_feature_per_area(self) -> None:
        features = parse_cap_alert(_cap())
        assert [f["properties"]["area"] for f in features] == ["Sierra de Madrid", "Sur de Madrid"]

    def test_prefers_spanish_info(self) -> None:
        props = parse_cap_alert(_cap())[0]["properties"]
        assert props["event"] == "Aviso de tormentas de nivel amarillo"
        assert props["headline"] == "Aviso amarillo. Tormentas"

    def test_properties(self) -> None:
        props = parse_cap_alert(_cap())[0]["properties"]
        assert props["identifier"] == "2.49.0.0.724.0.ES.1"
        assert props["level"] == "amarillo"
        assert props["phenomenon"] == "TO;Tormentas"
        assert props["probability"] == "40%-70%"
        assert props["severity"] == "Moderate"
        assert props["onset"] == "2024-05-01T14:00:00+02:00"

    def test_polygon_lon_lat(self) -> None:
        geometry = parse_cap_alert(_cap())[0]["geometry"]
        assert geometry["type"] == "Polygon"
        ring = geometry["coordinates"][0]
        assert ring[0] == [-4.2, 40.9]
        assert ring[0] == ring[-1]

    def test_ring_is_closed(self) -> None:
        ring = parse_cap_alert(_cap())[1]["geometry"]["coordinates"][0]
        assert len(ring) == 4
        assert ring[0] == ring[-1]

    def test_no_info(self) -> None:
        xml = b'<alert xmlns="urn:oasis:names:tc:emergency:cap:1.2"><status>x</status></alert>'
        assert parse_cap_alert(xml) == []


class TestParseCapArchive:
    """Tests for parse_cap_archive."""

    def test_feature_collection(self) -> None:
        data = _archive({"a.xml": _cap("A"), "b.xml": _cap("B", level="naranja")})

        collection = parse_cap_archive(data)

        assert collection["type"] == "FeatureCollection"
        assert len(collection["features"]) == 4
        assert {f["properties"]["identifier"] for f in collection["features"]} == {"A", "B"}

    def test_uncompressed_tar(self) -> None:
        collection = parse_cap_archive(_archive({"a.xml": _cap()}, mode="w"))
        assert len(collection["features"]) == 2

    def test_skips_non_xml_and_unreadable(self) -> None:
        data = _archive({"README.txt": b"hello", "broken.xml": b"<alert", "ok.xml": _cap()})
        assert len(parse_cap_archive(data)["features"]) == 2

    def test_empty_archive(self) -> None:
        assert parse_cap_archive(_archive({}))["features"] == []

    def test_not_an_archive(self) -> None:
        with pytest.raises(ApiError, match="alerts archive"):
            parse_cap_archive(b"definitely not a tar file")

    def test_count_by_level(self) -> None:
        data = _archive({"a.xml": _cap("A"), "b.xml": _cap("B", level="naranja")})
        assert count_by_level(parse_cap_archive(data)) == {"amarillo": 2, "naranja": 2}
