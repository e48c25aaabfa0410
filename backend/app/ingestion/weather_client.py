"""
weather_client.py - WeatherAPI.com client for current conditions,
forecasts and CAP-style alerts.

Endpoints used:
    GET {base}/current.json   ?key&q&aqi
    GET {base}/forecast.json  ?key&q&days&alerts&aqi

WeatherAPI.com Reference:
    https://www.weatherapi.com/docs/

Error Handling Strategy
========================
    Level 1 - Network errors (timeout, DNS, connection refused)
        → Retry up to WEATHER_MAX_RETRIES times with exponential backoff
          (backoff, 2·backoff, 4·backoff …)
        → After exhaustion raise UpstreamServiceError (503)

    Level 2 - API errors
        → 429 Too Many Requests: retry
        → 5xx: retry (server-side transient error)
        → other 4xx: fail immediately (unknown location, bad key …)
          with the provider's own message (502)

    Every attempt uses the fixed WEATHER_FETCH_TIMEOUT; callers cannot
    override it per request. A single logical call can therefore take up
    to (WEATHER_MAX_RETRIES + 1) × WEATHER_FETCH_TIMEOUT plus backoff
    (about 31.5 s with the defaults). Set WEATHER_MAX_RETRIES=0 to bound
    it at one timeout.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from backend.app.core.config import settings
from backend.app.core.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

SERVICE_NAME = "weatherapi"


def clamp_days(days: Any, maximum: Optional[int] = None) -> int:
    """Clamp a requested forecast length to [1, maximum]."""
    maximum = maximum or settings.WEATHER_MAX_FORECAST_DAYS
    try:
        value = int(days)
    except (TypeError, ValueError):
        value = 1
    return max(1, min(value, maximum))


def _provider_message(response: httpx.Response) -> str:
    """WeatherAPI errors look like {"error": {"code": 1006, "message": "..."}}."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or f"HTTP {response.status_code}"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return f"HTTP {response.status_code}"


class WeatherAPIClient:
    """Async client with a fixed timeout and bounded retry."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.WEATHER_API_KEY
        self.base_url = (base_url or settings.WEATHER_API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.WEATHER_FETCH_TIMEOUT
        self.max_retries = max_retries if max_retries is not None else settings.WEATHER_MAX_RETRIES
        self.backoff = backoff if backoff is not None else settings.WEATHER_RETRY_BACKOFF
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
        return self._http_client

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    # ── HTTP layer ──

    async def _request(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise UpstreamServiceError(
                SERVICE_NAME, "WEATHER_API_KEY is not configured", unavailable=True,
            )

        query = {"key": self.api_key, **params}
        last_error = ""
        last_status: Optional[int] = None

        for attempt in range(self.max_retries + 1):
            if attempt > 0:
                wait = self.backoff * (2 ** (attempt - 1))
                logger.warning(
                    "Retry %d/%d for %s after %.1fs (%s)",
                    attempt, self.max_retries, endpoint, wait, last_error,
                )
                await asyncio.sleep(wait)

            try:
                response = await self._get_client().get(endpoint, params=query)
            except httpx.TimeoutException:
                last_error, last_status = f"timed out after {self.timeout:g}s", None
                continue
            except httpx.TransportError as e:
                last_error, last_status = f"network error: {e}", None
                continue

            if response.status_code == 200:
                try:
                    body = response.json()
                except ValueError as e:
                    raise UpstreamServiceError(
                        SERVICE_NAME, "invalid JSON in response",
                        upstream_status=200, endpoint=endpoint,
                    ) from e
                if not isinstance(body, dict):
                    raise UpstreamServiceError(
                        SERVICE_NAME, "response body is not a JSON object",
                        upstream_status=200, endpoint=endpoint,
                    )
                return body

            last_status = response.status_code
            last_error = _provider_message(response)

            if response.status_code == 429 or response.status_code >= 500:
                continue

            logger.warning(
                "%s rejected by provider (%d): %s", endpoint, last_status, last_error,
                extra={"upstream_status": last_status},
            )
            raise UpstreamServiceError(
                SERVICE_NAME, last_error, upstream_status=last_status, endpoint=endpoint,
            )

        logger.error(
            "%s failed after %d attempts: %s", endpoint, self.max_retries + 1, last_error,
            extra={"upstream_status": last_status},
        )
        raise UpstreamServiceError(
            SERVICE_NAME,
            f"failed after {self.max_retries + 1} attempts: {last_error}",
            upstream_status=last_status,
            unavailable=True,
            endpoint=endpoint,
        )

    # ── Endpoints ──

    async def get_current(self, query: str, include_aqi: bool = False) -> Dict[str, Any]:
        """Current conditions: `{location, current}`."""
        return await self._request("/current.json", {
            "q": query,
            "aqi": "yes" if include_aqi else "no",
        })

    async def get_forecast(
        self,
        query: str,
        days: int = 3,
        alerts: bool = True,
        include_aqi: bool = False,
    ) -> Dict[str, Any]:
        """Forecast: `{location, current, forecast.forecastday[], alerts.alert[]}`."""
        return await self._request("/forecast.json", {
            "q": query,
            "days": clamp_days(days),
            "alerts": "yes" if alerts else "no",
            "aqi": "yes" if include_aqi else "no",
        })
