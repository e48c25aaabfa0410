"""
weather_service.py - Weather and disaster-risk operations for one location.

Composes the WeatherAPI client with the advisory cache and the risk engine:

    get_weather_data        current conditions, cache-first, stale fallback
    get_weather_forecast    N-day forecast + classified alerts
    get_weather_alerts      classified alerts only
    get_disaster_alerts     alerts + counts + highest severity
    get_disaster_assessment fan-out → overall risk + recommendations
    get_weather_dashboard   fan-out → current / forecast / alerts
    get_disaster_forecast   forecast threshold risks + summary
    get_emergency_alerts    emergency-only subset of disaster alerts

Fan-out Strategy
================
Sections that need more than one upstream call are fetched concurrently
with `asyncio.gather(..., return_exceptions=True)`.  Every section settles;
a failed section becomes null/empty in the response and one entry in the
`errors` list.  Nothing is cancelled early.

Cache Strategy
==============
    fresh entry        → served, no upstream call
    miss / stale entry → upstream call; on success the snapshot is written
                         in a background task (errors logged, never raised)
    upstream failure   → stale entry served with `is_stale: true`,
                         otherwise the UpstreamServiceError propagates
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Dict, List, Optional, Set, Tuple

from backend.app.core.cache import CacheProvider, CachedWeather, NullCache
from backend.app.core.config import settings
from backend.app.core.errors import LocationRequiredError, RiskServiceError
from backend.app.ingestion.weather_client import WeatherAPIClient, clamp_days
from backend.app.risk.aggregator import generate_risk_assessment
from backend.app.risk.classifiers import (
    classify_alerts,
    filter_emergency_alerts,
    highest_severity,
)
from backend.app.risk.extractors import (
    extract_forecast_risks,
    parse_forecast_days,
    summarize_forecast_risks,
)
from backend.app.risk.models import ClassifiedAlert
from backend.app.risk.safety import assess_weather_safety, condition_recommendations

logger = logging.getLogger(__name__)

ASSESSMENT_FORECAST_DAYS = 3


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_location_query(
    city: Optional[str],
    state: Optional[str] = None,
    country: Optional[str] = None,
) -> str:
    """`"<city>, <state>, <country>"` with empty parts dropped."""
    country = settings.DEFAULT_COUNTRY if country is None else country
    parts = [p.strip() for p in (city, state, country) if p and p.strip()]
    return ", ".join(parts)


def _require_query(query: Optional[str]) -> str:
    query = (query or "").strip()
    if not query:
        raise LocationRequiredError()
    return query


def _coordinates(payload: Dict[str, Any]) -> Dict[str, Optional[float]]:
    location = payload.get("location") if isinstance(payload, dict) else None
    if not isinstance(location, dict):
        location = {}
    return {"lat": location.get("lat"), "lon": location.get("lon")}


def _raw_alerts(payload: Dict[str, Any]) -> List[Any]:
    alerts = payload.get("alerts") if isinstance(payload, dict) else None
    if not isinstance(alerts, dict):
        return []
    entries = alerts.get("alert")
    return entries if isinstance(entries, list) else []


def _error_entry(section: str, exc: BaseException) -> Dict[str, str]:
    message = exc.message if isinstance(exc, RiskServiceError) else str(exc)
    return {"type": section, "message": message}


async def _settle(sections: Dict[str, Awaitable[Any]]) -> Dict[str, Any]:
    """Await every section; failures come back as exception values."""
    names = list(sections)
    results = await asyncio.gather(*sections.values(), return_exceptions=True)
    for name, result in zip(names, results):
        if isinstance(result, BaseException) and not isinstance(result, Exception):
            raise result
        if isinstance(result, Exception) and not isinstance(result, RiskServiceError):
            logger.error("Section %s failed unexpectedly", name, exc_info=result)
    return dict(zip(names, results))


class WeatherService:
    """Location-scoped weather and risk operations."""

    def __init__(self, client: WeatherAPIClient, cache: Optional[CacheProvider] = None):
        self.client = client
        self.cache = cache if cache is not None else NullCache()
        self._pending: Set["asyncio.Task[None]"] = set()

    # ── Cache plumbing ──

    @staticmethod
    def _cache_key(query: str, include_aqi: bool) -> str:
        return f"{query}|aqi" if include_aqi else query

    async def _cache_get(self, key: str) -> Optional[CachedWeather]:
        try:
            return await self.cache.get(key)
        except Exception as e:
            logger.warning("Cache lookup failed for %r: %s", key, e)
            return None

    async def _cache_put(self, key: str, snapshot: Dict[str, Any]) -> None:
        try:
            await self.cache.put(key, snapshot)
        except Exception as e:
            logger.warning("Cache write failed for %r: %s", key, e)

    def _schedule_cache_put(self, key: str, snapshot: Dict[str, Any]) -> None:
        task = asyncio.create_task(self._cache_put(key, snapshot))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def flush(self) -> None:
        """Wait for background cache writes to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ── Current conditions ──

    @staticmethod
    def _weather_body(snapshot: Dict[str, Any], meta: Dict[str, Any]) -> Dict[str, Any]:
        current = snapshot.get("current") or {}
        return {
            "success": True,
            "data": {
                "location": snapshot.get("location") or {},
                "current": current,
                "alerts": [],
                "safety_recommendations": condition_recommendations(current),
            },
            "meta": meta,
        }

    async def get_weather_data(self, query: str, include_aqi: bool = False) -> Dict[str, Any]:
        query = _require_query(query)
        key = self._cache_key(query, include_aqi)

        entry = await self._cache_get(key)
        if entry is not None and entry.is_fresh:
            logger.debug("Weather cache HIT", extra={"query": query, "cache_source": "cache"})
            return self._weather_body(entry.snapshot, {"source": "cache", **entry.meta()})

        try:
            payload = await self.client.get_current(query, include_aqi=include_aqi)
        except RiskServiceError as e:
            if entry is None:
                raise
            logger.warning(
                "Upstream failed, serving stale snapshot from %s: %s",
                entry.cached_at.isoformat(), e.message,
                extra={"query": query, "cache_source": "stale"},
            )
            return self._weather_body(entry.snapshot, {"source": "stale_cache", **entry.meta()})

        snapshot = {
            "location": payload.get("location") or {},
            "current": payload.get("current") or {},
        }
        self._schedule_cache_put(key, snapshot)

        now = datetime.now(timezone.utc)
        return self._weather_body(snapshot, {
            "source": "api",
            "cached_at": now.isoformat(),
            "expires_at": (now + timedelta(seconds=self.cache.ttl)).isoformat(),
            "is_stale": False,
        })

    # ── Forecast & alerts ──

    async def _fetch_alerts(self, query: str) -> Tuple[Dict[str, Any], List[ClassifiedAlert]]:
        payload = await self.client.get_forecast(query, days=1, alerts=True)
        return payload, classify_alerts(_raw_alerts(payload), _coordinates(payload))

    async def get_weather_forecast(self, query: str, days: int = 3) -> Dict[str, Any]:
        query = _require_query(query)
        days = clamp_days(days)
        payload = await self.client.get_forecast(query, days=days, alerts=True)

        forecast = parse_forecast_days(payload)
        alerts = classify_alerts(_raw_alerts(payload), _coordinates(payload))
        return {
            "success": True,
            "data": {
                "location": payload.get("location") or {},
                "current": payload.get("current") or {},
                "forecast": [d.to_dict() for d in forecast],
                "forecast_days": len(forecast),
                "alerts": [a.to_dict() for a in alerts],
            },
        }

    async def get_weather_alerts(self, query: str) -> List[Dict[str, Any]]:
        query = _require_query(query)
        _, alerts = await self._fetch_alerts(query)
        return [a.to_dict() for a in alerts]

    async def get_disaster_alerts(self, query: str) -> Dict[str, Any]:
        query = _require_query(query)
        payload, alerts = await self._fetch_alerts(query)

        logger.info(
            "Disaster alerts: %d", len(alerts),
            extra={"query": query, "alert_count": len(alerts)},
        )
        return {
            "success": True,
            "data": {
                "location": payload.get("location") or {},
                "current_weather": payload.get("current") or {},
                "alerts": [a.to_dict() for a in alerts],
                "alert_count": len(alerts),
                "highest_severity": highest_severity(alerts),
                "has_active_alerts": len(alerts) > 0,
                "last_updated": _now_iso(),
            },
        }

    async def get_emergency_alerts(self, query: str) -> Dict[str, Any]:
        query = _require_query(query)
        payload, alerts = await self._fetch_alerts(query)
        emergencies = filter_emergency_alerts(alerts)
        return {
            "success": True,
            "data": {
                "location": payload.get("location") or {},
                "emergency_alerts": [a.to_dict() for a in emergencies],
                "alert_count": len(emergencies),
                "has_emergencies": len(emergencies) > 0,
                "highest_severity": highest_severity(emergencies),
                "last_updated": _now_iso(),
            },
        }

    async def get_disaster_forecast(self, query: str, days: int = 3) -> Dict[str, Any]:
        query = _require_query(query)
        days = clamp_days(days)
        payload = await self.client.get_forecast(query, days=days, alerts=False)
        risks = extract_forecast_risks(parse_forecast_days(payload))
        return {
            "success": True,
            "data": {
                "location": payload.get("location") or {},
                "forecast_period": f"{days} days",
                "upcoming_risks": [r.to_dict() for r in risks],
                "risk_summary": summarize_forecast_risks(risks),
                "generated_at": _now_iso(),
            },
        }

    # ── Fan-out operations ──

    async def get_disaster_assessment(self, query: str) -> Dict[str, Any]:
        """
        Current conditions, a 3-day forecast and active alerts, fetched
        concurrently and combined into one risk assessment.

        The assessment is null when alerts could not be fetched; a missing
        forecast only drops the upcoming risks.  If all three sections fail
        the first upstream error is raised.
        """
        query = _require_query(query)
        results = await _settle({
            "current_conditions": self.get_weather_data(query),
            "forecast": self.client.get_forecast(
                query, days=ASSESSMENT_FORECAST_DAYS, alerts=False,
            ),
            "alerts": self._fetch_alerts(query),
        })

        failures = {k: v for k, v in results.items() if isinstance(v, Exception)}
        if len(failures) == len(results):
            raise next(iter(failures.values()))

        current = results["current_conditions"]
        current_data = None if "current_conditions" in failures else current["data"]

        forecast_risks = []
        if "forecast" not in failures:
            forecast_risks = extract_forecast_risks(parse_forecast_days(results["forecast"]))

        location: Dict[str, Any] = {}
        active_alerts: List[ClassifiedAlert] = []
        if "alerts" not in failures:
            alerts_payload, active_alerts = results["alerts"]
            location = alerts_payload.get("location") or {}
        if not location and current_data is not None:
            location = current_data.get("location") or {}
        if not location and "forecast" not in failures:
            location = results["forecast"].get("location") or {}

        risk_assessment = None
        if "alerts" not in failures:
            risk_assessment = generate_risk_assessment(
                current_data, active_alerts, forecast_risks,
            ).to_dict()

        errors = [_error_entry(name, exc) for name, exc in failures.items()]
        if errors:
            logger.warning(
                "Assessment partial: %s", ", ".join(failures),
                extra={"query": query},
            )

        return {
            "success": True,
            "data": {
                "location": location,
                "current_conditions": current_data,
                "active_alerts": [a.to_dict() for a in active_alerts],
                "forecast_alerts": [r.to_dict() for r in forecast_risks],
                "risk_assessment": risk_assessment,
                "last_updated": _now_iso(),
                "errors": errors,
            },
        }

    async def get_weather_dashboard(self, query: str) -> Dict[str, Any]:
        query = _require_query(query)
        results = await _settle({
            "current_weather": self.get_weather_data(query),
            "forecast": self.get_weather_forecast(query, ASSESSMENT_FORECAST_DAYS),
            "alerts": self.get_weather_alerts(query),
        })

        current = results["current_weather"]
        current_weather = None
        if not isinstance(current, Exception):
            current_weather = {
                **current["data"],
                "safety_assessment": assess_weather_safety(current["data"]).to_dict(),
            }

        forecast = results["forecast"]
        alerts = results["alerts"]

        return {
            "success": True,
            "data": {
                "location": {"query": query},
                "current_weather": current_weather,
                "forecast": None if isinstance(forecast, Exception) else forecast["data"],
                "alerts": [] if isinstance(alerts, Exception) else alerts,
                "last_updated": _now_iso(),
                "errors": [
                    _error_entry(name, result)
                    for name, result in results.items()
                    if isinstance(result, Exception)
                ],
            },
        }

    # ── Health ──

    async def probe(self) -> Dict[str, Any]:
        """Fetch the health query; raises when the provider is unreachable."""
        await self.client.get_current(settings.WEATHER_HEALTH_QUERY)
        cache_ok = await self.cache.ping()
        return {
            "api_status": "online",
            "cache_status": "operational" if cache_ok else "unavailable",
            "cache_backend": self.cache.name,
            "test_query": settings.WEATHER_HEALTH_QUERY,
            "last_check": _now_iso(),
        }

    async def close(self) -> None:
        await self.flush()
        await self.client.close()
        await self.cache.close()
