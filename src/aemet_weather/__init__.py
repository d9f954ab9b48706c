"""AEMET Weather - typed client for the AEMET OpenData REST API.

Architecture::

    services/http.py      Shared requests session and GET transport
    datasources/aemet/    Two-step fetch with retry, parsing, geo/forecast/stats logic
    schemas.py            Pydantic models for API payloads
    aemet.py              AemetClient facade (one method per use case)
    config.py             Settings from AEMET_* environment variables / .env
    cli.py                Command-line interface

Data flow: AemetClient → fetch (envelope → data URL) → parse → schemas models
"""

__version__ = "0.1.0"

from aemet_weather.aemet import AemetClient
from aemet_weather.config import Settings
from aemet_weather.errors import (
    AemetError,
    ApiError,
    DataNotFoundError,
    EmptyResponseError,
    NetworkError,
    RetryExhaustedError,
    TransientNetworkError,
    ValidationError,
)

__all__ = [
    "AemetClient",
    "AemetError",
    "ApiError",
    "DataNotFoundError",
    "EmptyResponseError",
    "NetworkError",
    "RetryExhaustedError",
    "Settings",
    "TransientNetworkError",
    "ValidationError",
    "__version__",
]
