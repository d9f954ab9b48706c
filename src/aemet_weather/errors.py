"""
Exception hierarchy for the AEMET client.

Every failure the library raises derives from ``AemetError``. Top-level client
operations add a context prefix (which call failed) without changing the
exception type, so callers can still branch on *why* it failed::

    try:
        client.get_forecast("28079")
    except RetryExhaustedError:
        ...  # upstream kept dropping the connection
    except AemetError as exc:
        print(exc)  # "Error fetching the forecast: ..."

Soft-degrade paths (coordinate parsing, day-forecast extraction) never raise;
they return sentinel values instead.
"""

from __future__ import annotations


class AemetError(Exception):
    """Base class for all client errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.context: str | None = None

    def add_context(self, context: str) -> AemetError:
        """Prefix the message with the operation that failed. Returns self."""
        self.context = f"{context}: {self.context}" if self.context else context
        return self

    def __str__(self) -> str:
        if self.context:
            return f"{self.context}: {self.message}"
        return self.message


class ApiError(AemetError):
    """Upstream answered, but with a failure (HTTP error, bad envelope, no data URL)."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        description: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.description = description


class EmptyResponseError(AemetError):
    """Upstream returned 200 with an empty body."""


class NetworkError(AemetError):
    """No response was received (DNS, refused connection, timeout...)."""


class TransientNetworkError(NetworkError):
    """Connection dropped mid-request; eligible for retry."""


class RetryExhaustedError(NetworkError):
    """Transient failures persisted through every allowed attempt."""

    def __init__(self, message: str, *, attempts: int, last_error: str) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class ValidationError(AemetError):
    """Caller input failed a precondition; raised before any network call."""


class DataNotFoundError(AemetError):
    """The request succeeded but holds no data for the requested selection."""
