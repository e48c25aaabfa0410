"""
Health check aggregation - deep health probe for the service.

Checks:
    • Weather provider configuration (API key, base URL)
    • Cache backend reachability (Redis / memory / none)

Returns a structured health report suitable for:
    - Kubernetes liveness/readiness probes
    - Load balancer health checks
    - Monitoring dashboards
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from backend.app.core.config import settings

if TYPE_CHECKING:
    from backend.app.core.cache import CacheProvider
    from backend.app.ingestion.weather_client import WeatherAPIClient

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"  # partial functionality
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    name: str
    status: HealthStatus = HealthStatus.HEALTHY
    latency_ms: float = 0.0
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.message:
            d["message"] = self.message
        if self.details:
            d["details"] = self.details
        return d


@dataclass
class HealthReport:
    status: HealthStatus = HealthStatus.HEALTHY
    version: str = settings.APP_VERSION
    environment: str = settings.ENVIRONMENT
    timestamp: str = ""
    uptime_seconds: float = 0.0
    components: List[ComponentHealth] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "version": self.version,
            "environment": self.environment,
            "timestamp": self.timestamp or datetime.now(timezone.utc).isoformat(),
            "uptime_seconds": round(self.uptime_seconds, 1),
            "components": [c.to_dict() for c in self.components],
        }


_start_time = time.monotonic()


def _redact(url: str) -> str:
    return url.split("@")[-1] if "@" in url else url


async def check_weather_provider(client: Optional["WeatherAPIClient"]) -> ComponentHealth:
    """
    Configuration check only; the live provider probe is
    `/api/weather/health`, which spends an upstream request.
    """
    comp = ComponentHealth(name="weather_provider")
    start = time.monotonic()

    if client is None:
        comp.status = HealthStatus.UNHEALTHY
        comp.message = "Weather client not initialised"
    elif not client.is_configured:
        comp.status = HealthStatus.UNHEALTHY
        comp.message = "WEATHER_API_KEY is not configured"
        comp.details = {"base_url": client.base_url}
    else:
        comp.message = "Provider configured"
        comp.details = {
            "base_url": client.base_url,
            "timeout_s": client.timeout,
            "max_retries": client.max_retries,
        }

    comp.latency_ms = (time.monotonic() - start) * 1000
    return comp


async def check_cache(cache: Optional["CacheProvider"]) -> ComponentHealth:
    """The cache is advisory, so failures degrade instead of failing."""
    comp = ComponentHealth(name="cache")
    start = time.monotonic()

    if cache is None or cache.name == "none":
        comp.status = HealthStatus.DEGRADED
        comp.message = "Caching disabled; stale fallback unavailable"
        comp.details = {"configured_backend": settings.CACHE_BACKEND}
    else:
        try:
            ok = await cache.ping()
        except Exception as e:
            ok = False
            comp.message = str(e)
        if ok:
            comp.message = f"{cache.name} cache available"
        else:
            comp.status = HealthStatus.DEGRADED
            comp.message = comp.message or f"{cache.name} cache unreachable"
        comp.details = {"backend": cache.name, "ttl_s": cache.ttl}
        if cache.name == "redis":
            comp.details["url"] = _redact(settings.REDIS_URL)

    comp.latency_ms = (time.monotonic() - start) * 1000
    return comp


async def run_health_check(
    client: Optional["WeatherAPIClient"] = None,
    cache: Optional["CacheProvider"] = None,
) -> HealthReport:
    """Run all health checks and aggregate into a report."""
    report = HealthReport(
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime_seconds=time.monotonic() - _start_time,
    )

    report.components.append(await check_weather_provider(client))
    report.components.append(await check_cache(cache))

    statuses = [c.status for c in report.components]
    if HealthStatus.UNHEALTHY in statuses:
        report.status = HealthStatus.UNHEALTHY
    elif HealthStatus.DEGRADED in statuses:
        report.status = HealthStatus.DEGRADED
    else:
        report.status = HealthStatus.HEALTHY

    if report.status != HealthStatus.HEALTHY:
        logger.warning("Health check %s", report.status.value)
    return report
