"""
safety.py - Instantaneous weather safety over live readings.

`assess_weather_safety` grades current conditions as safe / caution /
dangerous.  Three checks force "dangerous" unconditionally (heat > 40 °C,
wind > 60 kph, visibility < 1 km); the rest only move a still-"safe"
grade to "caution".  Every triggered check appends one warning and one
recommendation.

`condition_recommendations` produces the typed advisory cards embedded in
weather responses.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from backend.app.risk.models import SafetyAssessment, SafetyLevel

NO_DATA_WARNING = "Weather data unavailable"
NO_DATA_RECOMMENDATION = "Check local weather reports before heading outdoors"


def _reading(data: Dict[str, Any], key: str) -> Optional[float]:
    value = data.get(key)
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def epa_index(current: Dict[str, Any]) -> Optional[float]:
    """US EPA air-quality index; the provider spells the key with hyphens."""
    air = current.get("air_quality")
    if not isinstance(air, dict):
        return None
    value = _reading(air, "us-epa-index")
    return value if value is not None else _reading(air, "us_epa_index")


def _unwrap(current: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not isinstance(current, dict):
        return {}
    nested = current.get("current")
    return nested if isinstance(nested, dict) else current


def assess_weather_safety(current: Optional[Dict[str, Any]]) -> SafetyAssessment:
    data = _unwrap(current)
    if not data:
        return SafetyAssessment(
            overall_safety=SafetyLevel.UNKNOWN.value,
            warnings=[NO_DATA_WARNING],
            recommendations=[NO_DATA_RECOMMENDATION],
        )

    result = SafetyAssessment()

    def caution(warning: str, recommendation: str) -> None:
        if result.overall_safety == SafetyLevel.SAFE.value:
            result.overall_safety = SafetyLevel.CAUTION.value
        result.warnings.append(warning)
        result.recommendations.append(recommendation)

    def dangerous(warning: str, recommendation: str) -> None:
        result.overall_safety = SafetyLevel.DANGEROUS.value
        result.warnings.append(warning)
        result.recommendations.append(recommendation)

    temp = _reading(data, "temp_c")
    wind = _reading(data, "wind_kph")
    vis = _reading(data, "vis_km")
    uv = _reading(data, "uv")
    humidity = _reading(data, "humidity")
    aqi = epa_index(data)

    # ── Temperature ──
    if temp is not None:
        if temp > 40:
            dangerous("Extreme heat conditions",
                      "Stay indoors in a cool place and drink water frequently")
        elif temp > 35:
            caution("High temperature",
                    "Limit outdoor activity and stay hydrated")
        if temp < 0:
            caution("Freezing temperature",
                    "Dress in warm layers and watch for ice")

    # ── Wind ──
    if wind is not None:
        if wind > 60:
            dangerous("Dangerous wind speeds",
                      "Stay indoors and away from trees and power lines")
        elif wind > 40:
            caution("Strong winds",
                    "Secure loose objects and take care outdoors")

    # ── Visibility ──
    if vis is not None:
        if vis < 1:
            dangerous("Very poor visibility",
                      "Avoid driving unless absolutely necessary")
        elif vis < 2:
            caution("Reduced visibility",
                    "Drive slowly and use fog lights")

    if uv is not None and uv > 7:
        caution("High UV index",
                "Use sunscreen and wear protective clothing")

    if aqi is not None and aqi > 3:
        caution("Poor air quality",
                "Limit outdoor exertion, especially for sensitive groups")

    if humidity is not None and temp is not None and humidity > 80 and temp > 30:
        caution("High heat and humidity",
                "Take frequent breaks in the shade and watch for heat exhaustion")

    return result


def condition_recommendations(current: Optional[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Typed advisory cards `{type, message, icon}` for current conditions."""
    data = _unwrap(current)
    if not data:
        return []

    cards: List[Dict[str, str]] = []

    def card(kind: str, message: str, icon: str) -> None:
        cards.append({"type": kind, "message": message, "icon": icon})

    temp = _reading(data, "temp_c")
    if temp is not None and temp > 35:
        card("warning",
             "Extreme heat warning! Stay hydrated and avoid outdoor activities during peak hours.",
             "🌡️")
    elif temp is not None and temp < 5:
        card("warning",
             "Cold weather alert! Dress warmly and be cautious of icy conditions.",
             "❄️")

    wind = _reading(data, "wind_kph")
    if wind is not None and wind > 50:
        card("warning",
             "High wind speeds detected! Secure loose objects and avoid outdoor activities.",
             "💨")

    precip = _reading(data, "precip_mm")
    if precip is not None and precip > 10:
        card("caution",
             "Heavy rainfall expected! Carry umbrellas and be cautious of flooding.",
             "🌧️")

    vis = _reading(data, "vis_km")
    if vis is not None and vis < 2:
        card("warning",
             "Poor visibility conditions! Drive carefully and use fog lights if necessary.",
             "🌫️")

    uv = _reading(data, "uv")
    if uv is not None and uv > 7:
        card("caution",
             "High UV levels! Use sunscreen and protective clothing when outdoors.",
             "☀️")

    aqi = epa_index(data)
    if aqi is not None and aqi > 3:
        card("warning",
             "Poor air quality detected! Limit outdoor activities, especially for sensitive individuals.",
             "😷")

    return cards
