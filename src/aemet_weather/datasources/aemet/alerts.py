"""Weather alerts: CAP archive to GeoJSON.

``/avisos_cap/ultimoelaborado/area/{area}`` points at a tar archive (usually
gzipped) of CAP 1.2 XML documents, one per alert. Each ``<info>`` block
carries AEMET parameters such as::

    <parameter>
      <valueName>AEMET-Meteoalerta nivel</valueName>
      <value>amarillo</value>
    </parameter>

and an ``<area>`` with a ``"lat,lon lat,lon ..."`` polygon.
"""

from __future__ import annotations

import io
import logging
import tarfile
import xml.etree.ElementTree as ET
from typing import Any

from aemet_weather.errors import ApiError

logger = logging.getLogger(__name__)

CAP_NS = {"cap": "urn:oasis:names:tc:emergency:cap:1.2"}
PREFERRED_LANGUAGE = "es-ES"

_PARAM_PREFIX = "AEMET-Meteoalerta "


def _text(node: ET.Element, path: str) -> str | None:
    found = node.find(path, CAP_NS)
    if found is None or found.text is None:
        return None
    return found.text.strip()


def _parameters(info: ET.Element) -> dict[str, str]:
    params = {}
    for param in info.findall("cap:parameter", CAP_NS):
        name = _text(param, "cap:valueName") or ""
        value = _text(param, "cap:value") or ""
        params[name.removeprefix(_PARAM_PREFIX)] = value
    return params


def _polygon(text: str) -> list[list[float]] | None:
    """CAP ``"lat,lon lat,lon"`` to a closed GeoJSON ring of ``[lon, lat]``."""
    ring = []
    for pair in text.split():
        try:
            lat, lon = (float(v) for v in pair.split(","))
        except ValueError:
            return None
        ring.append([lon, lat])
    if len(ring) < 3:
        return None
    if ring[0] != ring[-1]:
        ring.append(ring[0])
    return ring


def _pick_info(root: ET.Element) -> ET.Element | None:
    infos = root.findall("cap:info", CAP_NS)
    for info in infos:
        if _text(info, "cap:language") == PREFERRED_LANGUAGE:
            return info
    return infos[0] if infos else None


def parse_cap_alert(xml_bytes: bytes) -> list[dict[str, Any]]:
    """Parse one CAP document into GeoJSON features (one per area)."""
    root = ET.fromstring(xml_bytes)
    info = _pick_info(root)
    if info is None:
        return []

    params = _parameters(info)
    base_props = {
        "identifier": _text(root, "cap:identifier"),
        "sent": _text(root, "cap:sent"),
        "event": _text(info, "cap:event"),
        "level": params.get("nivel", ""),
        "phenomenon": params.get("fenomeno", ""),
        "probability": params.get("probabilidad"),
        "severity": _text(info, "cap:severity"),
        "certainty": _text(info, "cap:certainty"),
        "onset": _text(info, "cap:onset"),
        "expires": _text(info, "cap:expires"),
        "headline": _text(info, "cap:headline"),
        "description": _text(info, "cap:description"),
        "instruction": _text(info, "cap:instruction"),
    }

    features = []
    for area in info.findall("cap:area", CAP_NS):
        polygon_text = _text(area, "cap:polygon")
        ring = _polygon(polygon_text) if polygon_text else None
        features.append(
            {
                "type": "Feature",
                "geometry": {"type": "Polygon", "coordinates": [ring]} if ring else None,
                "properties": {**base_props, "area": _text(area, "cap:areaDesc")},
            }
        )
    return features


def parse_cap_archive(data: bytes) -> dict[str, Any]:
    """
    Convert a CAP tar archive into a GeoJSON FeatureCollection.

    Args:
        data: Archive bytes (plain or compressed tar).

    Returns:
        ``{"type": "FeatureCollection", "features": [...]}``

    Raises:
        ApiError: ``data`` is not a readable tar archive.
    """
    features: list[dict[str, Any]] = []
    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:*") as archive:
            for member in archive.getmembers():
                if not member.isfile() or not member.name.lower().endswith(".xml"):
                    continue
                handle = archive.extractfile(member)
                if handle is None:
                    continue
                try:
                    features.extend(parse_cap_alert(handle.read()))
                except ET.ParseError as exc:
                    logger.warning("Skipping unreadable CAP file %s: %s", member.name, exc)
    except tarfile.TarError as exc:
        raise ApiError(f"Could not read the alerts archive: {exc}") from exc

    return {"type": "FeatureCollection", "features": features}


def count_by_level(collection: dict[str, Any]) -> dict[str, int]:
    """Number of alert features per level (amarillo/naranja/rojo/...)."""
    counts: dict[str, int] = {}
    for feature in collection.get("features", []):
        level = (feature.get("properties", {}).get("level") or "unknown").lower()
        counts[level] = counts.get(level, 0) + 1
    return counts
