"""FastAPI dependencies shared by the API routers."""

from __future__ import annotations

from typing import Optional

from fastapi import Request

from backend.app.ingestion.weather_service import WeatherService


def get_weather_service(request: Request) -> WeatherService:
    """The WeatherService built during application startup."""
    return request.app.state.weather_service


def parse_flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in {"true", "1", "yes"}
