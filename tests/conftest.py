"""
Shared fixtures: a fake WeatherAPI.com provider served through
httpx.MockTransport, and a WeatherService wired to it.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest

from backend.app.core.cache import CacheProvider, MemoryCache
from backend.app.ingestion.weather_client import WeatherAPIClient
from backend.app.ingestion.weather_service import WeatherService

BASE_URL = "https://api.test/v1"

LOCATION = {
    "name": "Pune",
    "region": "Maharashtra",
    "country": "India",
    "lat": 18.52,
    "lon": 73.86,
}

CURRENT = {
    "temp_c": 31.0,
    "wind_kph": 12.0,
    "vis_km": 10.0,
    "uv": 6.0,
    "humidity": 70,
    "precip_mm": 0.0,
    "condition": {"text": "Partly cloudy"},
}


def forecast_day(date: str, **day: Any) -> Dict[str, Any]:
    base = {
        "maxtemp_c": 32.0,
        "mintemp_c": 24.0,
        "totalprecip_mm": 2.0,
        "maxwind_kph": 15.0,
        "avghumidity": 70,
        "daily_chance_of_rain": 20,
        "uv": 6.0,
        "condition": {"text": "Sunny"},
    }
    base.update(day)
    return {"date": date, "day": base}


DEFAULT_DAYS = [
    forecast_day("2025-07-01"),
    forecast_day("2025-07-02", totalprecip_mm=120.0),
    forecast_day("2025-07-03", maxwind_kph=70.0),
]

FLOOD_ALERT = {
    "headline": "Flood Warning issued for Pune district",
    "event": "Flood Warning",
    "severity": "Severe",
    "urgency": "Immediate",
    "areas": "Pune; Haveli",
    "effective": "2025-07-01T06:00:00+05:30",
    "expires": "2025-07-02T06:00:00+05:30",
    "desc": "River levels rising.",
    "instruction": "Move to higher ground.",
}

FOG_ALERT = {
    "headline": "Dense fog advisory",
    "event": "Fog Advisory",
    "severity": "Minor",
    "urgency": "Expected",
    "areas": "Pune",
}


class FakeProvider:
    """
    Routes requests to canned payloads.

    Sections: "current" (current.json), "alerts" (forecast.json with
    days=1&alerts=yes) and "forecast" (any other forecast.json call).
    `fail` maps a section to the HTTP status it should answer with.
    """

    def __init__(
        self,
        current: Optional[Dict[str, Any]] = None,
        days: Optional[List[Dict[str, Any]]] = None,
        alerts: Optional[List[Dict[str, Any]]] = None,
        fail: Optional[Dict[str, int]] = None,
    ):
        self.current = CURRENT if current is None else current
        self.days = DEFAULT_DAYS if days is None else days
        self.alerts = [FLOOD_ALERT] if alerts is None else alerts
        self.fail = fail or {}
        self.calls: List[Tuple[str, Dict[str, str]]] = []

    @staticmethod
    def section(request: httpx.Request) -> str:
        if request.url.path.endswith("/current.json"):
            return "current"
        params = request.url.params
        if params.get("days") == "1" and params.get("alerts") == "yes":
            return "alerts"
        return "forecast"

    def handler(self, request: httpx.Request) -> httpx.Response:
        section = self.section(request)
        self.calls.append((section, dict(request.url.params)))

        if section in self.fail:
            return httpx.Response(
                self.fail[section],
                json={"error": {"code": 9999, "message": f"{section} unavailable"}},
            )

        if section == "current":
            return httpx.Response(200, json={"location": LOCATION, "current": self.current})

        days = int(request.url.params.get("days", "1"))
        body = {
            "location": LOCATION,
            "current": self.current,
            "forecast": {"forecastday": self.days[:days]},
        }
        if request.url.params.get("alerts") == "yes":
            body["alerts"] = {"alert": self.alerts}
        return httpx.Response(200, json=body)

    def sections_called(self) -> List[str]:
        return [s for s, _ in self.calls]


def make_service(
    provider: FakeProvider,
    cache: Optional[CacheProvider] = None,
    max_retries: int = 0,
) -> WeatherService:
    client = WeatherAPIClient(
        api_key="test-key",
        base_url=BASE_URL,
        timeout=5.0,
        max_retries=max_retries,
        backoff=0.0,
        transport=httpx.MockTransport(provider.handler),
    )
    if cache is None:
        cache = MemoryCache(ttl=600, stale_retention=86400)
    return WeatherService(client, cache)


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()
