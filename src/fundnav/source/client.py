"""Rate-limited async HTTP client for the upstream mutual fund NAV API."""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx
from aiolimiter import AsyncLimiter

from fundnav.core.config import SourceConfig
from fundnav.core.exceptions import MalformedData, SourceUnavailable
from fundnav.core.models import InstrumentDescriptor, InstrumentId, RawSeries
from fundnav.source.directory import build_directory

logger = logging.getLogger(__name__)

_USER_AGENT = "fundnav/0.1"
_DATE_FORMAT = "%d-%m-%Y"
_RETRYABLE_STATUS = (500, 502, 503, 504)
# Upper bound on a plausible NAV
_MAX_NAV = Decimal("1e15")


class MfApiClient:
    """Async client for an mfapi.in style scheme directory and NAV API.

    Endpoints:
    - ``GET {base_url}``: every scheme as ``{schemeCode, schemeName, isinGrowth, ...}``
    - ``GET {base_url}/{schemeCode}``: ``{"meta": ..., "data": [{"date", "nav"}, ...]}``

    The client only fetches and parses. It keeps no state between calls.
    Use via ``async with MfApiClient(...) as client:``.
    """

    def __init__(
        self,
        config: SourceConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._limiter = AsyncLimiter(max_rate=config.rate_limit, time_period=1.0)
        self._client = httpx.AsyncClient(
            headers={"User-Agent": _USER_AGENT, "Accept": "application/json"},
            timeout=httpx.Timeout(config.request_timeout),
            follow_redirects=True,
            transport=transport,
        )

    async def __aenter__(self) -> MfApiClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client. Called automatically by __aexit__."""
        await self._client.aclose()

    # --- Directory ---

    async def fetch_directory(self) -> list[InstrumentDescriptor]:
        """Fetch, filter, and clean the full scheme directory.

        Raises:
            SourceUnavailable: Network failure or non-success status after retries.
            MalformedData: Response body is not a JSON list.
        """
        url = self._config.base_url
        payload = await self._get_json(url)
        if not isinstance(payload, list):
            raise MalformedData(
                f"Directory payload must be a list, got {type(payload).__name__}",
                context={"url": url, "reason": "not_a_list"},
            )

        descriptors = build_directory(payload)
        logger.info(
            "Fetched directory: %d raw records, %d eligible",
            len(payload), len(descriptors),
        )
        return descriptors

    # --- NAV history ---

    async def fetch_raw_series(self, instrument_id: InstrumentId) -> RawSeries:
        """Fetch the raw NAV history for one scheme.

        Returns:
            Unordered mapping of date to NAV. Upstream sends newest first;
            when a date repeats, the first (newest) record wins.

        Raises:
            SourceUnavailable: Network failure or non-success status after retries.
            MalformedData: Empty history or an unparseable date/NAV.
        """
        url = f"{self._config.base_url}/{instrument_id}"
        payload = await self._get_json(url)
        return parse_raw_series(payload, instrument_id)

    # --- Retry ---

    async def _get_json(self, url: str) -> Any:
        response = await self._request_with_retry(url)
        try:
            return response.json()
        except ValueError as e:
            raise MalformedData(
                f"Response from {url} is not valid JSON",
                context={"url": url, "reason": "invalid_json"},
            ) from e

    async def _request_with_retry(self, url: str) -> httpx.Response:
        """GET with rate limiting and a bounded retry policy.

        Retry policy (at most ``max_retries`` retries in total):
            - HTTP 429: wait for Retry-After (capped at max_retry_after),
              falling back to exponential backoff when absent.
            - HTTP 500/502/503/504: exponential backoff.
            - Connection errors and timeouts: exponential backoff.
            - Other non-200 statuses and non-transport request errors
              (undecodable body, redirect loop): raise immediately.

        Raises:
            SourceUnavailable: If the request cannot be completed.
        """
        max_retries = self._config.max_retries

        for attempt in range(max_retries + 1):
            retries_left = attempt < max_retries
            try:
                async with self._limiter:
                    response = await self._client.get(url)
            except httpx.TransportError as e:
                if retries_left:
                    delay = self._backoff(attempt)
                    logger.warning(
                        "Transport error on %s (%s), retrying in %.1fs (attempt %d/%d)",
                        url, type(e).__name__, delay, attempt + 1, max_retries,
                    )
                    await asyncio.sleep(delay)
                    continue
                raise SourceUnavailable(
                    f"Request failed after {max_retries} retries: {url}",
                    context={"url": url, "error": str(e) or type(e).__name__},
                ) from e
            except httpx.RequestError as e:
                logger.error("Request error on %s: %s", url, e)
                raise SourceUnavailable(
                    f"Request failed: {url}",
                    context={"url": url, "error": str(e) or type(e).__name__},
                ) from e

            if response.status_code == 200:
                return response

            if response.status_code == 429 or response.status_code in _RETRYABLE_STATUS:
                if retries_left:
                    delay = self._retry_delay(response, attempt)
                    logger.warning(
                        "HTTP %d on %s, retrying in %.1fs (attempt %d/%d)",
                        response.status_code, url, delay, attempt + 1, max_retries,
                    )
                    await asyncio.sleep(delay)
                    continue
                raise SourceUnavailable(
                    f"HTTP {response.status_code} after {max_retries} retries: {url}",
                    context={"url": url, "status_code": response.status_code},
                )

            raise SourceUnavailable(
                f"HTTP {response.status_code} from {url}",
                context={"url": url, "status_code": response.status_code},
            )

        # Unreachable: the final attempt always returns or raises.
        raise SourceUnavailable(f"Request failed: {url}", context={"url": url})

    def _backoff(self, attempt: int) -> float:
        return self._config.retry_backoff * (2**attempt)

    def _retry_delay(self, response: httpx.Response, attempt: int) -> float:
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            if retry_after is not None:
                try:
                    return min(float(retry_after), self._config.max_retry_after)
                except ValueError:
                    pass
        return min(self._backoff(attempt), self._config.max_retry_after)


def parse_raw_series(payload: Any, instrument_id: InstrumentId) -> RawSeries:
    """Parse a NAV history payload into a date -> NAV mapping.

    Raises:
        MalformedData: Missing or empty ``data``, or any bad record.
    """
    context: dict[str, Any] = {"instrument_id": instrument_id}
    records = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(records, list) or not records:
        raise MalformedData(
            f"No NAV history for instrument {instrument_id}",
            context={**context, "reason": "empty_payload"},
        )

    raw: RawSeries = {}
    for record in records:
        try:
            day = _parse_date(record["date"])
            value = Decimal(str(record["nav"]).strip())
        except (KeyError, TypeError, AttributeError, ValueError, InvalidOperation) as e:
            raise MalformedData(
                f"Unparseable NAV record for instrument {instrument_id}: {record!r}",
                context={**context, "reason": "bad_record"},
            ) from e
        if not value.is_finite():
            raise MalformedData(
                f"Non-finite NAV for instrument {instrument_id}: {record!r}",
                context={**context, "reason": "bad_record"},
            )
        if abs(value) >= _MAX_NAV:
            raise MalformedData(
                f"Out-of-range NAV for instrument {instrument_id}: {record!r}",
                context={**context, "reason": "bad_record"},
            )
        raw.setdefault(day, value)

    return raw


def _parse_date(value: str) -> date:
    """Parse upstream DD-MM-YYYY dates."""
    return datetime.strptime(value.strip(), _DATE_FORMAT).date()
