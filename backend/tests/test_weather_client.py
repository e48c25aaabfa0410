"""
test_weather_client.py - Tests for the WeatherAPI.com client.

Uses httpx.MockTransport so no request leaves the process.
Covers:
    1. Request construction (endpoint, key, q, days, alerts, aqi)
    2. Day clamping
    3. Retry on timeouts, network errors, 429 and 5xx
    4. Immediate failure on other 4xx with the provider message
    5. Missing API key
"""

from __future__ import annotations

import asyncio
from typing import Callable, List

import httpx
import pytest

from backend.app.core.errors import UpstreamServiceError
from backend.app.ingestion.weather_client import WeatherAPIClient, clamp_days

OK_BODY = {"location": {"name": "Chennai"}, "current": {"temp_c": 33.0}}


def _client(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> WeatherAPIClient:
    options = dict(
        api_key="secret",
        base_url="https://api.test/v1",
        timeout=2.0,
        max_retries=2,
        backoff=0.0,
        transport=httpx.MockTransport(handler),
    )
    options.update(kwargs)
    return WeatherAPIClient(**options)


def _sequence(*responses) -> Callable[[httpx.Request], httpx.Response]:
    """Handler returning (or raising) the given items in order."""
    items = list(responses)
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        item = items.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    handler.seen = seen  # type: ignore[attr-defined]
    return handler


def _run(client: WeatherAPIClient, coro_factory):
    async def scenario():
        try:
            return await coro_factory()
        finally:
            await client.close()
    return asyncio.run(scenario())


# =========================================================================
# Request construction
# =========================================================================

class TestRequests:
    def test_current_request(self):
        handler = _sequence(httpx.Response(200, json=OK_BODY))
        client = _client(handler)

        body = _run(client, lambda: client.get_current("Chennai", include_aqi=True))

        assert body == OK_BODY
        request = handler.seen[0]
        assert request.url.path == "/v1/current.json"
        assert request.url.params["key"] == "secret"
        assert request.url.params["q"] == "Chennai"
        assert request.url.params["aqi"] == "yes"

    def test_forecast_request(self):
        handler = _sequence(httpx.Response(200, json=OK_BODY))
        client = _client(handler)

        _run(client, lambda: client.get_forecast("Chennai", days=5))

        params = handler.seen[0].url.params
        assert handler.seen[0].url.path == "/v1/forecast.json"
        assert params["days"] == "5"
        assert params["alerts"] == "yes"
        assert params["aqi"] == "no"

    def test_forecast_without_alerts(self):
        handler = _sequence(httpx.Response(200, json=OK_BODY))
        client = _client(handler)
        _run(client, lambda: client.get_forecast("Chennai", days=3, alerts=False))
        assert handler.seen[0].url.params["alerts"] == "no"


class TestClampDays:
    @pytest.mark.parametrize("days, expected", [
        (0, 1), (-4, 1), (1, 1), (7, 7), (10, 10), (14, 10), ("3", 3), ("x", 1), (None, 1),
    ])
    def test_clamp(self, days, expected):
        assert clamp_days(days, maximum=10) == expected


# =========================================================================
# Retry behaviour
# =========================================================================

class TestRetry:
    def test_recovers_after_server_error(self):
        handler = _sequence(
            httpx.Response(503, json={}),
            httpx.Response(200, json=OK_BODY),
        )
        client = _client(handler)
        assert _run(client, lambda: client.get_current("Chennai")) == OK_BODY
        assert len(handler.seen) == 2

    def test_recovers_after_timeout_and_rate_limit(self):
        handler = _sequence(
            httpx.ReadTimeout("slow"),
            httpx.Response(429, json={}),
            httpx.Response(200, json=OK_BODY),
        )
        client = _client(handler)
        assert _run(client, lambda: client.get_current("Chennai")) == OK_BODY

    def test_exhaustion_is_unavailable(self):
        handler = _sequence(*[httpx.ConnectError("refused")] * 3)
        client = _client(handler)

        with pytest.raises(UpstreamServiceError) as exc:
            _run(client, lambda: client.get_current("Chennai"))

        assert exc.value.status_code == 503
        assert exc.value.upstream_status is None
        assert "3 attempts" in exc.value.message
        assert len(handler.seen) == 3

    def test_exhausted_server_errors_keep_status(self):
        handler = _sequence(*[httpx.Response(500, json={})] * 3)
        client = _client(handler)
        with pytest.raises(UpstreamServiceError) as exc:
            _run(client, lambda: client.get_current("Chennai"))
        assert exc.value.upstream_status == 500

    def test_client_error_not_retried(self):
        handler = _sequence(
            httpx.Response(400, json={"error": {"code": 1006, "message": "No matching location found."}}),
        )
        client = _client(handler)

        with pytest.raises(UpstreamServiceError) as exc:
            _run(client, lambda: client.get_current("Atlantis"))

        assert len(handler.seen) == 1
        assert exc.value.status_code == 502
        assert exc.value.upstream_status == 400
        assert exc.value.reason == "No matching location found."

    def test_invalid_json(self):
        handler = _sequence(httpx.Response(200, content=b"<html>"))
        client = _client(handler)
        with pytest.raises(UpstreamServiceError):
            _run(client, lambda: client.get_current("Chennai"))

    def test_non_object_body(self):
        handler = _sequence(httpx.Response(200, json=["Chennai"]))
        client = _client(handler)
        with pytest.raises(UpstreamServiceError) as exc:
            _run(client, lambda: client.get_current("Chennai"))
        assert exc.value.status_code == 502
        assert exc.value.reason == "response body is not a JSON object"


# =========================================================================
# Configuration
# =========================================================================

class TestConfiguration:
    def test_missing_key_fails_fast(self):
        handler = _sequence()
        client = _client(handler, api_key="")

        with pytest.raises(UpstreamServiceError) as exc:
            _run(client, lambda: client.get_current("Chennai"))

        assert handler.seen == []
        assert exc.value.status_code == 503
        assert not client.is_configured

    def test_base_url_trailing_slash(self):
        client = _client(_sequence(), base_url="https://api.test/v1/")
        assert client.base_url == "https://api.test/v1"
