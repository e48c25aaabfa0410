"""
FastAPI route: Weather - current conditions, forecast and alerts for a
location query.

Every data route takes `q` (city name, "city, state, country",
"lat,lon" …) and answers 400 when it is blank.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from backend.app.api.deps import get_weather_service, parse_flag
from backend.app.api.schemas import ApiResponse, WeatherHealthResponse
from backend.app.core.config import settings
from backend.app.core.errors import RiskServiceError
from backend.app.ingestion.weather_service import WeatherService
from backend.app.risk.safety import assess_weather_safety

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/weather", tags=["weather"])


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/location",
    response_model=ApiResponse,
    response_model_exclude_unset=True,
    summary="Current weather with safety assessment",
)
async def weather_for_location(
    q: Optional[str] = Query(None, description="Location query, e.g. 'Pune, Maharashtra, India'"),
    aqi: Optional[str] = Query(None, description="'true' / '1' / 'yes' to include air quality"),
    service: WeatherService = Depends(get_weather_service),
):
    """
    Current conditions for `q`.

    Served from cache while fresh; a stale snapshot is returned with
    `meta.is_stale = true` when the provider is unreachable.
    """
    weather = await service.get_weather_data(q, include_aqi=parse_flag(aqi))
    return {
        "success": True,
        "data": {
            **weather["data"],
            "safety_assessment": assess_weather_safety(weather["data"]).to_dict(),
        },
        "meta": weather["meta"],
    }


@router.get(
    "/forecast/location",
    response_model=ApiResponse,
    response_model_exclude_unset=True,
    summary="Multi-day forecast",
)
async def forecast_for_location(
    q: Optional[str] = Query(None, description="Location query, e.g. 'Pune, Maharashtra, India'"),
    days: int = Query(3, description=f"Forecast length, clamped to 1–{settings.WEATHER_MAX_FORECAST_DAYS}"),
    service: WeatherService = Depends(get_weather_service),
):
    return await service.get_weather_forecast(q, days)


@router.get(
    "/alerts/location",
    response_model=ApiResponse,
    response_model_exclude_unset=True,
    summary="Classified weather alerts",
)
async def alerts_for_location(
    q: Optional[str] = Query(None, description="Location query, e.g. 'Pune, Maharashtra, India'"),
    service: WeatherService = Depends(get_weather_service),
):
    alerts = await service.get_weather_alerts(q)
    return {
        "success": True,
        "data": {"alerts": alerts, "location": {"query": q}},
    }


@router.get(
    "/dashboard",
    response_model=ApiResponse,
    response_model_exclude_unset=True,
    summary="Current weather, forecast and alerts in one call",
)
async def weather_dashboard(
    q: Optional[str] = Query(None, description="Location query, e.g. 'Pune, Maharashtra, India'"),
    service: WeatherService = Depends(get_weather_service),
):
    """Sections that fail are null / empty and listed in `data.errors`."""
    return await service.get_weather_dashboard(q)


@router.get(
    "/health",
    response_model=WeatherHealthResponse,
    summary="Weather provider probe",
    responses={503: {"model": WeatherHealthResponse}},
)
async def weather_health(service: WeatherService = Depends(get_weather_service)):
    try:
        data = await service.probe()
    except RiskServiceError as e:
        logger.warning("Weather health probe failed: %s", e.message)
        body = WeatherHealthResponse(
            success=False,
            message="Weather service is experiencing issues",
            error=e.message,
            data={
                "api_status": "offline",
                "cache_status": "unknown",
                "last_check": datetime.now(timezone.utc).isoformat(),
            },
        )
        return JSONResponse(status_code=503, content=body.model_dump(exclude_none=True))

    return WeatherHealthResponse(
        success=True,
        message="Weather service is operational",
        data=data,
    )
