"""Two-step AEMET fetch with retry.

Every AEMET endpoint answers with a small JSON envelope::

    {"descripcion": "exito", "estado": 200,
     "datos": "https://opendata.aemet.es/opendata/sh/...",
     "metadatos": "https://opendata.aemet.es/opendata/sh/..."}

and the payload itself has to be downloaded from ``datos`` in a second
request. Upstream often labels JSON as ``text/plain`` (ISO-8859-15), sends
200 with an empty body during outages and drops connections under load.

Retry policy: only connection drops matching a transient signature are
retried, and the whole two-step cycle is repeated. Delay before attempt
``n + 1`` is ``min(base * 2 ** (n - 1), cap)``; with the defaults (12
attempts, 1 s base, 10 s cap) a call gives up after roughly 85 s of waiting.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

import requests
from pydantic import ValidationError as PydanticValidationError

from aemet_weather.datasources.aemet.client import DEFAULT_TIMEOUT
from aemet_weather.errors import (
    ApiError,
    EmptyResponseError,
    NetworkError,
    RetryExhaustedError,
    TransientNetworkError,
)
from aemet_weather.schemas import Envelope
from aemet_weather.services.http import HttpResponse, http_get

if TYPE_CHECKING:
    from aemet_weather.config import Settings

logger = logging.getLogger(__name__)

#: Error-message fragments (lower case) that mark a dropped connection.
TRANSIENT_SIGNATURES = (
    "socket hang up",
    "connection reset",
    "connection aborted",
    "remote end closed connection",
)


@dataclass(frozen=True)
class RetryPolicy:
    """How many times, and how patiently, to retry transient failures."""

    max_attempts: int = 12
    base_delay: float = 1.0
    max_delay: float = 10.0
    signatures: tuple[str, ...] = TRANSIENT_SIGNATURES

    def delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        return min(self.base_delay * 2 ** (attempt - 1), self.max_delay)

    def is_transient(self, message: str) -> bool:
        lowered = message.lower()
        return any(sig in lowered for sig in self.signatures)

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        return cls(
            max_attempts=settings.max_attempts,
            base_delay=settings.backoff_base,
            max_delay=settings.backoff_cap,
        )


DEFAULT_RETRY_POLICY = RetryPolicy()


def binary_policy(policy: RetryPolicy) -> RetryPolicy:
    """Archive downloads are large, so read timeouts count as transient too."""
    return replace(policy, signatures=(*policy.signatures, "timed out"))


@dataclass
class BinaryOutcome:
    """Raw bytes of a downloaded file plus the attempts it took."""

    data: bytes
    attempts: int
    content_type: str = ""


# ---------------------------------------------------------------------------
# Response helpers
# ---------------------------------------------------------------------------


def _get(url: str, headers: dict[str, str], timeout: float, **kwargs: Any) -> HttpResponse:
    """GET, translating network exceptions into the client's taxonomy."""
    try:
        return http_get(url, headers=headers, timeout=timeout, **kwargs)
    except requests.RequestException as exc:
        message = str(exc) or exc.__class__.__name__
        # Classified against the active policy in ``_run_with_retry``
        raise TransientNetworkError(message) from exc


def _raise_for_status(resp: HttpResponse) -> None:
    """Raise ``ApiError`` for HTTP error statuses."""
    if resp.ok:
        return
    if "text/html" in resp.content_type:
        # Tomcat error page, nothing structured to report
        if resp.status == 404:
            raise ApiError(
                "Resource not found (404). Check the parameters and that no future data "
                "is being requested.",
                status=resp.status,
            )
        raise ApiError(f"Server error ({resp.status}). Try again later.", status=resp.status)

    description = None
    try:
        body = json.loads(resp.text)
    except ValueError:
        body = None
    if isinstance(body, dict):
        description = body.get("descripcion")
    detail = f": {description}" if description else ""
    raise ApiError(
        f"API request failed with status {resp.status}{detail}",
        status=resp.status,
        description=description,
    )


def _parse_envelope(resp: HttpResponse) -> Envelope:
    """Validate step-one response into an ``Envelope`` (steps 2-4)."""
    _raise_for_status(resp)
    text = resp.text
    if not text.strip():
        raise EmptyResponseError(
            "The API returned an empty response. Check that the URL and API key are correct."
        )
    # Parsed regardless of a text/plain content type
    try:
        raw = json.loads(text)
    except ValueError as exc:
        raise ApiError(f"Malformed API response: {exc}", status=resp.status) from exc
    if not isinstance(raw, dict):
        raise ApiError("Malformed API response: expected a JSON object", status=resp.status)

    try:
        envelope = Envelope.model_validate(raw)
    except PydanticValidationError as exc:
        raise ApiError(f"Malformed API envelope: {exc}", status=resp.status) from exc

    if not envelope.data_url:
        raise ApiError(
            "Data URL not available in the API response "
            f"({envelope.description or 'no description'}, status {envelope.status})",
            status=envelope.status,
            description=envelope.description,
        )
    return envelope


def _decode_payload(resp: HttpResponse) -> Any:
    """Decode the second-step body, accepting JSON mislabelled as text/plain."""
    _raise_for_status(resp)
    text = resp.text
    stripped = text.strip()
    if not stripped:
        raise EmptyResponseError("The data URL returned an empty response")
    if stripped.startswith(("{", "[")):
        try:
            return json.loads(stripped)
        except ValueError as exc:
            raise ApiError(f"Malformed JSON at data URL: {exc}", status=resp.status) from exc
    return text


def annotate_attempts(payload: Any, attempts: int) -> Any:
    """Attach the attempt counter to a payload.

    Dicts get an ``attempts`` key, lists get it on every dict element, and
    anything else is wrapped as ``{"data": payload, "attempts": n}``.
    """
    if isinstance(payload, dict):
        return {**payload, "attempts": attempts}
    if isinstance(payload, list):
        return [
            {**item, "attempts": attempts} if isinstance(item, dict) else item for item in payload
        ]
    return {"data": payload, "attempts": attempts}


def _run_with_retry(
    url: str,
    policy: RetryPolicy,
    sleep: Callable[[float], None],
    cycle: Callable[[int], Any],
) -> Any:
    """Run ``cycle(attempt)`` until it succeeds or a non-transient error occurs."""
    last_error = ""
    for attempt in range(1, policy.max_attempts + 1):
        logger.debug("Attempt %d - GET %s", attempt, url)
        try:
            return cycle(attempt)
        except TransientNetworkError as exc:
            if not policy.is_transient(exc.message):
                raise NetworkError(f"No response received from the API: {exc.message}") from exc
            last_error = exc.message
            if attempt == policy.max_attempts:
                break
            delay = policy.delay(attempt)
            logger.warning(
                "Connection dropped (%s). Retrying %d/%d in %.1fs",
                exc.message,
                attempt,
                policy.max_attempts,
                delay,
            )
            sleep(delay)

    raise RetryExhaustedError(
        f"Retries exhausted ({policy.max_attempts}). Last error: {last_error or 'unknown'}",
        attempts=policy.max_attempts,
        last_error=last_error,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def fetch_aemet_data(
    url: str,
    api_key: str,
    timeout: float = DEFAULT_TIMEOUT,
    *,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    sleep: Callable[[float], None] = time.sleep,
    http_session: requests.Session | None = None,
) -> Any:
    """
    Fetch an AEMET endpoint and download the data it points to.

    Args:
        url: Full endpoint URL (base URL + path).
        api_key: AEMET OpenData API key.
        timeout: Per-request timeout in seconds.
        policy: Retry policy for dropped connections.
        sleep: Wait function (injectable for tests).
        http_session: Session override (defaults to the shared session).

    Returns:
        Parsed payload annotated with ``attempts`` (see ``annotate_attempts``).
        When ``datos`` is not a URL the envelope itself is returned.

    Raises:
        ApiError: HTTP error, malformed envelope or missing data URL.
        EmptyResponseError: 200 with an empty body.
        NetworkError: No response, not a transient drop.
        RetryExhaustedError: Transient drops on every attempt.
    """
    headers = {"api_key": api_key, "accept": "application/json"}
    extra = {"http_session": http_session} if http_session is not None else {}

    def cycle(attempt: int) -> Any:
        envelope = _parse_envelope(_get(url, headers, timeout, **extra))
        if not envelope.points_to_url:
            return annotate_attempts(envelope.model_dump(by_alias=True), attempt)

        logger.debug("Downloading data from %s", envelope.data_url)
        data_resp = _get(
            str(envelope.data_url), {"accept": "application/json"}, timeout, **extra
        )
        try:
            payload = _decode_payload(data_resp)
        except ApiError as exc:
            exc.add_context("Error accessing the data URL")
            raise
        return annotate_attempts(payload, attempt)

    return _run_with_retry(url, policy, sleep, cycle)


def fetch_aemet_binary(
    url: str,
    api_key: str,
    timeout: float = DEFAULT_TIMEOUT,
    *,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    sleep: Callable[[float], None] = time.sleep,
    http_session: requests.Session | None = None,
) -> BinaryOutcome:
    """
    Fetch an AEMET endpoint whose data URL serves a binary file (e.g. a tar).

    Same two-step shape as ``fetch_aemet_data``; the second request is read as
    raw bytes and read timeouts are retried as well.

    Raises:
        EmptyResponseError: The envelope or the downloaded file is empty.
        (plus everything ``fetch_aemet_data`` raises)
    """
    headers = {"api_key": api_key, "accept": "application/json"}
    extra = {"http_session": http_session} if http_session is not None else {}

    def cycle(attempt: int) -> BinaryOutcome:
        envelope = _parse_envelope(_get(url, headers, timeout, **extra))
        if not envelope.points_to_url:
            raise ApiError(
                f"Expected a file URL in the API response, got: {envelope.data_url!r}",
                status=envelope.status,
                description=envelope.description,
            )

        logger.debug("Downloading binary file from %s", envelope.data_url)
        resp = _get(str(envelope.data_url), {}, timeout, **extra)
        _raise_for_status(resp)
        if not resp.body:
            raise EmptyResponseError("Received an empty file from the data URL")
        logger.debug(
            "Downloaded %d bytes (Content-Type: %s)", len(resp.body), resp.content_type
        )
        return BinaryOutcome(data=resp.body, attempts=attempt, content_type=resp.content_type)

    result: BinaryOutcome = _run_with_retry(url, binary_policy(policy), sleep, cycle)
    return result
