"""
Shared HTTP transport.

Provides a pre-configured ``requests.Session`` and a single ``http_get``
capability used by both steps of the AEMET fetch protocol. The adapter itself
never retries: AEMET retries are owned by the fetch loop so it can count
attempts and apply its own backoff.

Usage::

    from aemet_weather.services.http import http_get

    resp = http_get("https://opendata.aemet.es/opendata/api/maestro/municipios",
                    headers={"api_key": key}, timeout=10)
    resp.status, resp.content_type, resp.text
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from aemet_weather import __version__

logger = logging.getLogger(__name__)

#: Adapter-level retries are disabled; see ``datasources.aemet.fetch.RetryPolicy``.
DEFAULT_RETRY = Retry(
    total=0,
    allowed_methods=["GET", "HEAD", "OPTIONS"],
    raise_on_status=False,
)

DEFAULT_TIMEOUT = 10  # seconds

USER_AGENT = f"aemet-weather/{__version__}"


def create_session(
    retry: Retry | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> requests.Session:
    """
    Build a ``requests.Session`` with the retry adapter mounted.

    Args:
        retry: Custom retry strategy (defaults to ``DEFAULT_RETRY``).
        timeout: Default timeout applied to every request.
    """
    s = requests.Session()
    adapter = HTTPAdapter(max_retries=retry or DEFAULT_RETRY)
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    s.headers["User-Agent"] = USER_AGENT

    # Inject a default timeout so callers that forget ``timeout=`` never hang.
    _original_send = s.send

    def _send_with_timeout(
        prepared: requests.PreparedRequest, **kwargs: object
    ) -> requests.Response:
        kwargs.setdefault("timeout", timeout)
        return _original_send(prepared, **kwargs)  # type: ignore[arg-type]

    s.send = _send_with_timeout  # type: ignore[method-assign]
    return s


#: Module-level session, import and use directly.
session: requests.Session = create_session()


@dataclass
class HttpResponse:
    """Status, headers and body of a completed GET."""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    encoding: str | None = None

    @property
    def content_type(self) -> str:
        """Lower-cased ``Content-Type`` header ('' when absent)."""
        for name, value in self.headers.items():
            if name.lower() == "content-type":
                return value.lower()
        return ""

    @property
    def text(self) -> str:
        """Body decoded as text (AEMET data files are often ISO-8859-15).

        Undecodable bytes become U+FFFD and a warning is logged.
        """
        encoding = self.encoding or "utf-8"
        try:
            return self.body.decode(encoding)
        except UnicodeDecodeError as exc:
            logger.warning(
                "Response body is not valid %s (%s); undecodable bytes replaced", encoding, exc
            )
            return self.body.decode(encoding, errors="replace")

    @property
    def ok(self) -> bool:
        return self.status < 400


def http_get(
    url: str,
    *,
    headers: dict[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    http_session: requests.Session | None = None,
) -> HttpResponse:
    """
    Issue a GET and return the raw response.

    HTTP error statuses are returned, not raised; network failures propagate
    as ``requests.RequestException``.

    Args:
        url: Absolute URL.
        headers: Extra request headers.
        timeout: Timeout in seconds.
        http_session: Session to use (defaults to the module session).
    """
    resp = (http_session or session).get(url, headers=headers or {}, timeout=timeout)
    return HttpResponse(
        status=resp.status_code,
        headers=dict(resp.headers),
        body=resp.content or b"",
        encoding=resp.encoding,
    )
