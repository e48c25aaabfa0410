"""
FastAPI route: Disasters - classified alerts, risk assessment, forecast
risks and emergency alerts for a location query.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from backend.app.api.deps import get_weather_service
from backend.app.api.schemas import ApiResponse
from backend.app.ingestion.weather_service import WeatherService

router = APIRouter(prefix="/api/disaster", tags=["disasters"])


@router.get(
    "/alerts/location",
    response_model=ApiResponse,
    response_model_exclude_unset=True,
    summary="Active disaster alerts",
)
async def disaster_alerts(
    q: Optional[str] = Query(None, description="Location query, e.g. 'Chennai, Tamil Nadu, India'"),
    service: WeatherService = Depends(get_weather_service),
):
    """Alerts with severity / type / urgency classification and counts."""
    return await service.get_disaster_alerts(q)


@router.get(
    "/assessment/location",
    response_model=ApiResponse,
    response_model_exclude_unset=True,
    summary="Overall disaster risk assessment",
)
async def disaster_assessment(
    q: Optional[str] = Query(None, description="Location query, e.g. 'Chennai, Tamil Nadu, India'"),
    service: WeatherService = Depends(get_weather_service),
):
    """
    Combines current conditions, a 3-day forecast and active alerts.

    **Flow:**
    1. Fetch the three sections concurrently
    2. Classify alerts, extract forecast threshold risks
    3. Derive overall risk and ordered safety recommendations

    `risk_assessment` is null when alerts could not be fetched.
    """
    return await service.get_disaster_assessment(q)


@router.get(
    "/forecast/location",
    response_model=ApiResponse,
    response_model_exclude_unset=True,
    summary="Upcoming forecast risks",
)
async def disaster_forecast(
    q: Optional[str] = Query(None, description="Location query, e.g. 'Chennai, Tamil Nadu, India'"),
    days: int = Query(3, description="Forecast length in days"),
    service: WeatherService = Depends(get_weather_service),
):
    return await service.get_disaster_forecast(q, days)


@router.get(
    "/emergency",
    response_model=ApiResponse,
    response_model_exclude_unset=True,
    summary="Emergency alerts only",
)
async def emergency_alerts(
    q: Optional[str] = Query(None, description="Location query, e.g. 'Chennai, Tamil Nadu, India'"),
    service: WeatherService = Depends(get_weather_service),
):
    """Extreme severity, immediate urgency, or hurricane / tornado / flood."""
    return await service.get_emergency_alerts(q)
