"""AEMET OpenData data source.

Public API:
  - fetch: fetch_aemet_data, fetch_aemet_binary (two-step fetch with retry)
  - geo: normalize_coordinate, haversine_km, find_nearest
  - stats: circular_mean_degrees, summarize_climate
  - forecast: extract_day_forecast, predominant_sky_state, build_period_sample
  - alerts: parse_cap_archive (CAP tar archive to GeoJSON)
  - client: endpoint paths, sky-state and province tables
"""

from aemet_weather.datasources.aemet.alerts import parse_cap_archive
from aemet_weather.datasources.aemet.client import (
    DEFAULT_SKY_STATE,
    ENDPOINTS,
    normalize_province,
    sky_state_description,
)
from aemet_weather.datasources.aemet.fetch import (
    DEFAULT_RETRY_POLICY,
    BinaryOutcome,
    RetryPolicy,
    annotate_attempts,
    fetch_aemet_binary,
    fetch_aemet_data,
)
from aemet_weather.datasources.aemet.forecast import (
    build_period_sample,
    extract_day_forecast,
    get_day_forecast,
    predominant_sky_state,
    select_nearest_period,
)
from aemet_weather.datasources.aemet.geo import find_nearest, haversine_km, normalize_coordinate
from aemet_weather.datasources.aemet.models import ClimateSummary
from aemet_weather.datasources.aemet.stats import circular_mean_degrees, summarize_climate

__all__ = [
    "DEFAULT_RETRY_POLICY",
    "DEFAULT_SKY_STATE",
    "ENDPOINTS",
    "BinaryOutcome",
    "ClimateSummary",
    "RetryPolicy",
    "annotate_attempts",
    "build_period_sample",
    "circular_mean_degrees",
    "extract_day_forecast",
    "fetch_aemet_binary",
    "fetch_aemet_data",
    "find_nearest",
    "get_day_forecast",
    "haversine_km",
    "normalize_coordinate",
    "normalize_province",
    "parse_cap_archive",
    "predominant_sky_state",
    "select_nearest_period",
    "sky_state_description",
    "summarize_climate",
]
