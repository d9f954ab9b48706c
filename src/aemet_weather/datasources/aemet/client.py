"""AEMET OpenData API constants and lookup tables.

API docs:
  - Portal: https://opendata.aemet.es/centrodedescargas/inicio
  - Swagger: https://opendata.aemet.es/dist/index.html
"""

from aemet_weather.config import DEFAULT_BASE_URL

DEFAULT_TIMEOUT = 10.0  # seconds

# Endpoint paths, appended to the base URL
ENDPOINTS = {
    "forecast_municipality": "/prediccion/especifica/municipio/diaria/",
    "forecast_hourly": "/prediccion/especifica/municipio/horaria/",
    "municipalities": "/maestro/municipios",
    "provinces": "/maestro/provincias",
    "alerts_today": "/prediccion/especifica/avisos/today",
    "alerts_tomorrow": "/prediccion/especifica/avisos/tomorrow",
    "alerts_cap_latest": "/avisos_cap/ultimoelaborado/area/",
    "climate_stations": "/valores/climatologicos/inventarioestaciones/todasestaciones/",
    "climate_values_daily": "/valores/climatologicos/diarios/datos/",
}

#: Sky-state code used when no forecast data is available.
DEFAULT_SKY_STATE = "11"
UNKNOWN_DESCRIPTION = "Unknown"

# Daytime window (inclusive) used to pick the predominant sky state
DAYTIME_START_HOUR = 12
DAYTIME_END_HOUR = 18

# AEMET sky-state codes ("estado del cielo"). A trailing "n" marks the night
# variant of the same code.
SKY_STATES = {
    "11": "Clear",
    "12": "Few clouds",
    "13": "Cloudy intervals",
    "14": "Cloudy",
    "15": "Very cloudy",
    "16": "Overcast",
    "17": "High clouds",
    "23": "Cloudy intervals with rain",
    "24": "Cloudy with rain",
    "25": "Very cloudy with rain",
    "26": "Overcast with rain",
    "33": "Cloudy intervals with snow",
    "34": "Cloudy with snow",
    "35": "Very cloudy with snow",
    "36": "Overcast with snow",
    "43": "Cloudy intervals with light rain",
    "44": "Cloudy with light rain",
    "45": "Very cloudy with light rain",
    "46": "Overcast with light rain",
    "51": "Cloudy intervals with storm",
    "52": "Cloudy with storm",
    "53": "Very cloudy with storm",
    "54": "Overcast with storm",
    "61": "Cloudy intervals with storm and light rain",
    "62": "Cloudy with storm and light rain",
    "63": "Very cloudy with storm and light rain",
    "64": "Overcast with storm and light rain",
    "71": "Cloudy intervals with light snow",
    "72": "Cloudy with light snow",
    "73": "Very cloudy with light snow",
    "74": "Overcast with light snow",
    "81": "Fog",
    "82": "Mist",
    "83": "Haze",
}

# Province spellings used by the station inventory and climate endpoints,
# mapped to the names used everywhere else in the API.
PROVINCE_MAPPING = {
    "A CORUÑA": "A CORUÑA",
    "LA CORUÑA": "A CORUÑA",
    "ARABA/ALAVA": "ÁLAVA",
    "ALAVA": "ÁLAVA",
    "ALBACETE": "ALBACETE",
    "ALICANTE": "ALICANTE",
    "ALMERIA": "ALMERÍA",
    "ASTURIAS": "ASTURIAS",
    "AVILA": "ÁVILA",
    "BADAJOZ": "BADAJOZ",
    "BALEARES": "ILLES BALEARS",
    "ILLES BALEARS": "ILLES BALEARS",
    "BARCELONA": "BARCELONA",
    "BIZKAIA": "BIZKAIA",
    "VIZCAYA": "BIZKAIA",
    "BURGOS": "BURGOS",
    "CACERES": "CÁCERES",
    "CADIZ": "CÁDIZ",
    "CANTABRIA": "CANTABRIA",
    "CASTELLON": "CASTELLÓN",
    "CEUTA": "CEUTA",
    "CIUDAD REAL": "CIUDAD REAL",
    "CORDOBA": "CÓRDOBA",
    "CUENCA": "CUENCA",
    "GIPUZKOA": "GIPUZKOA",
    "GUIPUZCOA": "GIPUZKOA",
    "GIRONA": "GIRONA",
    "GRANADA": "GRANADA",
    "GUADALAJARA": "GUADALAJARA",
    "HUELVA": "HUELVA",
    "HUESCA": "HUESCA",
    "JAEN": "JAÉN",
    "LA RIOJA": "LA RIOJA",
    "LAS PALMAS": "LAS PALMAS",
    "LEON": "LEÓN",
    "LLEIDA": "LLEIDA",
    "LUGO": "LUGO",
    "MADRID": "MADRID",
    "MALAGA": "MÁLAGA",
    "MELILLA": "MELILLA",
    "MURCIA": "MURCIA",
    "NAVARRA": "NAVARRA",
    "OURENSE": "OURENSE",
    "PALENCIA": "PALENCIA",
    "PONTEVEDRA": "PONTEVEDRA",
    "SALAMANCA": "SALAMANCA",
    "STA. CRUZ DE TENERIFE": "SANTA CRUZ DE TENERIFE",
    "SANTA CRUZ DE TENERIFE": "SANTA CRUZ DE TENERIFE",
    "SEGOVIA": "SEGOVIA",
    "SEVILLA": "SEVILLA",
    "SORIA": "SORIA",
    "TARRAGONA": "TARRAGONA",
    "TERUEL": "TERUEL",
    "TOLEDO": "TOLEDO",
    "VALENCIA": "VALENCIA",
    "VALLADOLID": "VALLADOLID",
    "ZAMORA": "ZAMORA",
    "ZARAGOZA": "ZARAGOZA",
}

__all__ = [
    "DAYTIME_END_HOUR",
    "DAYTIME_START_HOUR",
    "DEFAULT_BASE_URL",
    "DEFAULT_SKY_STATE",
    "DEFAULT_TIMEOUT",
    "ENDPOINTS",
    "PROVINCE_MAPPING",
    "SKY_STATES",
    "UNKNOWN_DESCRIPTION",
    "normalize_province",
    "sky_state_description",
]


def sky_state_description(code: str | None) -> str:
    """Human description for a sky-state code ("Unknown" if not recognised)."""
    if not code:
        return UNKNOWN_DESCRIPTION
    if code in SKY_STATES:
        return SKY_STATES[code]
    # Night variants share the day description
    return SKY_STATES.get(code.rstrip("n"), UNKNOWN_DESCRIPTION)


def normalize_province(name: str | None) -> str:
    """Map an upstream province spelling to its canonical name.

    Unmapped names are returned stripped but otherwise unchanged.
    """
    if not name:
        return ""
    cleaned = name.strip()
    return PROVINCE_MAPPING.get(cleaned.upper(), cleaned)
