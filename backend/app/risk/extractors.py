"""
extractors.py - Threshold rules over multi-day forecasts.

Six independent rules per forecast day:

    field               condition          type                  severity
    ─────────────────   ────────────────   ───────────────────   ────────
    max_temp_c          > 40               extreme_heat          high
    min_temp_c          < 0                freezing_conditions   medium
    total_precip_mm     > 100              heavy_rain            high
    total_precip_mm     50 – 100           heavy_rain            medium
    max_wind_kph        > 100              high_winds            high
    max_wind_kph        60 – 100           high_winds            medium

Outer bounds are strict; the medium bands are inclusive on both ends.
Output is sparse (days without a hit are omitted) and preserves input
order, with `day_index` pointing back into the input list.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from backend.app.risk.models import (
    ForecastDay,
    ForecastDayRisk,
    ForecastRiskType,
    RiskItem,
    RiskSeverity,
)

logger = logging.getLogger(__name__)

# ── Thresholds ──
EXTREME_HEAT_C = 40.0
FREEZING_C = 0.0
HEAVY_RAIN_HIGH_MM = 100.0
HEAVY_RAIN_MEDIUM_MM = 50.0
HIGH_WIND_HIGH_KPH = 100.0
HIGH_WIND_MEDIUM_KPH = 60.0


def _num(value: Any, default: Optional[float] = 0.0) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


# ═══════════════════════════════════════════════════════════════════════════
# Provider payload → ForecastDay
# ═══════════════════════════════════════════════════════════════════════════

def parse_forecast_day(entry: Dict[str, Any]) -> ForecastDay:
    day = entry.get("day")
    if not isinstance(day, dict):
        day = {}
    condition = day.get("condition") or {}
    return ForecastDay(
        date=str(entry.get("date") or ""),
        max_temp_c=_num(day.get("maxtemp_c")),
        min_temp_c=_num(day.get("mintemp_c")),
        total_precip_mm=_num(day.get("totalprecip_mm")),
        max_wind_kph=_num(day.get("maxwind_kph")),
        avg_humidity=_num(day.get("avghumidity"), None),
        chance_of_rain=_num(day.get("daily_chance_of_rain"), None),
        uv=_num(day.get("uv"), None),
        condition=condition.get("text") if isinstance(condition, dict) else None,
    )


def parse_forecast_days(payload: Optional[Dict[str, Any]]) -> List[ForecastDay]:
    """Read `forecast.forecastday[]` from a provider forecast response."""
    forecast = payload.get("forecast") if isinstance(payload, dict) else None
    if not isinstance(forecast, dict):
        return []
    entries = forecast.get("forecastday")
    if not isinstance(entries, list):
        return []
    return [parse_forecast_day(e) for e in entries if isinstance(e, dict)]


# ═══════════════════════════════════════════════════════════════════════════
# Rules
# ═══════════════════════════════════════════════════════════════════════════

def _day_risks(day: ForecastDay) -> List[RiskItem]:
    risks: List[RiskItem] = []

    if day.max_temp_c > EXTREME_HEAT_C:
        risks.append(RiskItem(
            ForecastRiskType.EXTREME_HEAT.value, RiskSeverity.HIGH.value,
            f"Extreme heat expected: {day.max_temp_c:g}°C",
        ))

    if day.min_temp_c < FREEZING_C:
        risks.append(RiskItem(
            ForecastRiskType.FREEZING_CONDITIONS.value, RiskSeverity.MEDIUM.value,
            f"Freezing conditions expected: {day.min_temp_c:g}°C",
        ))

    precip = day.total_precip_mm
    if precip > HEAVY_RAIN_HIGH_MM:
        risks.append(RiskItem(
            ForecastRiskType.HEAVY_RAIN.value, RiskSeverity.HIGH.value,
            f"Very heavy rainfall expected: {precip:g}mm",
        ))
    elif HEAVY_RAIN_MEDIUM_MM <= precip <= HEAVY_RAIN_HIGH_MM:
        risks.append(RiskItem(
            ForecastRiskType.HEAVY_RAIN.value, RiskSeverity.MEDIUM.value,
            f"Heavy rainfall expected: {precip:g}mm",
        ))

    wind = day.max_wind_kph
    if wind > HIGH_WIND_HIGH_KPH:
        risks.append(RiskItem(
            ForecastRiskType.HIGH_WINDS.value, RiskSeverity.HIGH.value,
            f"Dangerous winds expected: {wind:g} km/h",
        ))
    elif HIGH_WIND_MEDIUM_KPH <= wind <= HIGH_WIND_HIGH_KPH:
        risks.append(RiskItem(
            ForecastRiskType.HIGH_WINDS.value, RiskSeverity.MEDIUM.value,
            f"Strong winds expected: {wind:g} km/h",
        ))

    return risks


def extract_forecast_risks(days: Sequence[ForecastDay]) -> List[ForecastDayRisk]:
    """Evaluate the six rules on every day; keep only days with a hit."""
    result: List[ForecastDayRisk] = []
    for index, day in enumerate(days):
        risks = _day_risks(day)
        if risks:
            result.append(ForecastDayRisk(date=day.date, day_index=index, risks=risks))
    logger.debug("Forecast risks: %d of %d days flagged", len(result), len(days))
    return result


def summarize_forecast_risks(risks: Sequence[ForecastDayRisk]) -> Dict[str, Any]:
    """Counts and distinct risk types for the disaster-forecast response."""
    risk_types: List[str] = []
    high_days = 0
    for day in risks:
        if any(r.severity == RiskSeverity.HIGH.value for r in day.risks):
            high_days += 1
        for r in day.risks:
            if r.type not in risk_types:
                risk_types.append(r.type)
    return {
        "total_risk_days": len(risks),
        "high_risk_days": high_days,
        "risk_types": risk_types,
    }
