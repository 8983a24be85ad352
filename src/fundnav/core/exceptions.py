"""Custom exception hierarchy for fundnav."""

from typing import Any


class FundNavError(Exception):
    """Base exception for all fundnav errors.

    All exceptions carry an optional `context` dict for structured error
    metadata that can be logged or serialized without parsing the message.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class ConfigError(FundNavError):
    """Invalid or missing configuration, including the correction table.

    Raised by load_config() during startup. Should be treated as fatal.

    Context keys:
        field: str — the config field that failed validation
        value: Any — the invalid value
    """


class SourceError(FundNavError):
    """Failed to obtain usable data from the upstream provider.

    Policy: log and keep serving whatever is already cached.
    """


class SourceUnavailable(SourceError):
    """Upstream unreachable or answered with a non-success status.

    Policy: retried inside MfApiClient with bounded backoff; raised only
    once retries are exhausted or the status is not retryable.

    Context keys:
        url: str — the URL that was being fetched
        status_code: int | None — HTTP status, when a response arrived
        error: str | None — transport error text, when none did
    """


class MalformedData(SourceError):
    """Upstream payload was empty or could not be parsed.

    Policy: not retried. The same payload would fail the same way.

    Context keys:
        instrument_id: int | None — the series being parsed
        reason: str — what was wrong with the payload
    """


class NotFound(FundNavError):
    """Unknown instrument id.

    Context keys:
        instrument_id: int
    """


class SearchIndexUnready(FundNavError):
    """A lookup arrived before the first directory build completed."""
