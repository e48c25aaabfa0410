"""
aggregator.py - Combine classified alerts and forecast risks into one
risk judgment with ordered safety recommendations.

═══════════════════════════════════════════════════════════════════════════
ALGORITHM
═══════════════════════════════════════════════════════════════════════════

    Step 1 - overall_risk = "low"

    Step 2 - active alerts present → overall_risk is overwritten from
             highest_severity(active_alerts):

                 extreme → critical
                 major   → high
                 other   → medium

    Step 3 - immediate_risks: one entry per active alert, input order

    Step 4 - upcoming_risks: forecast risk items flattened, each tagged
             with its day's date and day_index

    Step 5 - any upcoming "high" item while overall_risk is still "low"
             → "medium".  Forecast data alone never escalates past medium
             and never lowers a level set in Step 2.

    Step 6 - recommendations, concatenated in this order:

                 1. fixed block for overall_risk
                 2. one line per immediate risk with a known type
                 3. upcoming block (general line + one per distinct type)
                 4. general preparedness lines unless overall_risk is low
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from backend.app.risk.classifiers import highest_severity
from backend.app.risk.models import (
    AlertType,
    ClassifiedAlert,
    ForecastDayRisk,
    ForecastRiskType,
    OverallRisk,
    RiskAssessment,
    RiskSeverity,
    SeverityLevel,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Fixed message sets
# ═══════════════════════════════════════════════════════════════════════════

RISK_LEVEL_MESSAGES: Dict[str, List[str]] = {
    OverallRisk.CRITICAL.value: [
        "CRITICAL: Follow instructions from local authorities immediately",
        "Evacuate to designated shelters if advised to do so",
        "Keep emergency helplines ready: 112 (emergency), 1077 (district control room)",
    ],
    OverallRisk.HIGH.value: [
        "HIGH RISK: Stay indoors and avoid unnecessary travel",
        "Monitor official alerts and news broadcasts continuously",
        "Prepare for a possible evacuation",
    ],
    OverallRisk.MEDIUM.value: [
        "Stay alert and monitor weather updates regularly",
        "Review your emergency plan with family members",
    ],
    OverallRisk.LOW.value: [
        "Weather conditions are currently normal",
        "Continue regular activities while staying informed",
    ],
}

_STORM_MESSAGE = "Secure loose outdoor objects and stay away from windows"

IMMEDIATE_RISK_MESSAGES: Dict[str, str] = {
    AlertType.FLOOD.value:     "Avoid low-lying areas and never walk or drive through flood water",
    AlertType.HURRICANE.value: _STORM_MESSAGE,
    AlertType.STORM.value:     _STORM_MESSAGE,
    AlertType.HEAT.value:      "Stay hydrated and avoid outdoor activity between 11 AM and 4 PM",
    AlertType.COLD.value:      "Wear warm layers and limit time spent outdoors",
    AlertType.WIND.value:      "Stay clear of trees, hoardings and power lines",
}

UPCOMING_GENERAL_MESSAGE = "Prepare for changing weather conditions over the next few days"

UPCOMING_RISK_MESSAGES: Dict[str, str] = {
    ForecastRiskType.HEAVY_RAIN.value:   "Heavy rain is forecast: clear drains and move valuables to higher ground",
    ForecastRiskType.EXTREME_HEAT.value: "Extreme heat is forecast: stock drinking water and plan activities for cooler hours",
    ForecastRiskType.HIGH_WINDS.value:   "High winds are forecast: secure roofs, windows and outdoor items in advance",
}

GENERAL_PREPAREDNESS_MESSAGES: List[str] = [
    "Keep an emergency kit with water, food, medicines and a torch ready",
    "Keep phones charged and arrange backup power",
]

_SEVERITY_TO_RISK = {
    SeverityLevel.EXTREME.value: OverallRisk.CRITICAL.value,
    SeverityLevel.MAJOR.value:   OverallRisk.HIGH.value,
}


# ═══════════════════════════════════════════════════════════════════════════
# Assessment
# ═══════════════════════════════════════════════════════════════════════════

def _immediate_risk(alert: ClassifiedAlert) -> Dict[str, Any]:
    return {
        "type": alert.alert_type,
        "severity": alert.severity_level,
        "description": alert.headline,
        "urgency": alert.urgency_level,
    }


def _flatten_upcoming(forecast_alerts: Sequence[ForecastDayRisk]) -> List[Dict[str, Any]]:
    upcoming: List[Dict[str, Any]] = []
    for day in forecast_alerts:
        for risk in day.risks:
            item = risk.to_dict()
            item["date"] = day.date
            item["day_index"] = day.day_index
            upcoming.append(item)
    return upcoming


def build_recommendations(
    overall_risk: str,
    immediate_risks: Sequence[Dict[str, Any]],
    upcoming_risks: Sequence[Dict[str, Any]],
) -> List[str]:
    recommendations = list(RISK_LEVEL_MESSAGES.get(overall_risk, []))

    for risk in immediate_risks:
        message = IMMEDIATE_RISK_MESSAGES.get(risk["type"])
        if message:
            recommendations.append(message)

    if upcoming_risks:
        recommendations.append(UPCOMING_GENERAL_MESSAGE)
        seen = set()
        for risk in upcoming_risks:
            risk_type = risk["type"]
            if risk_type in seen:
                continue
            seen.add(risk_type)
            message = UPCOMING_RISK_MESSAGES.get(risk_type)
            if message:
                recommendations.append(message)

    if overall_risk != OverallRisk.LOW.value:
        recommendations.extend(GENERAL_PREPAREDNESS_MESSAGES)

    return recommendations


def generate_risk_assessment(
    current_conditions: Optional[Dict[str, Any]],
    active_alerts: Sequence[ClassifiedAlert],
    forecast_alerts: Sequence[ForecastDayRisk],
) -> RiskAssessment:
    """
    Run Steps 1–6 over one location's alerts and forecast risks.

    `current_conditions` is carried for callers that assess alongside live
    readings; the risk level itself is derived from alerts and forecast.
    """
    overall_risk = OverallRisk.LOW.value

    if active_alerts:
        top = highest_severity(active_alerts)
        overall_risk = _SEVERITY_TO_RISK.get(top, OverallRisk.MEDIUM.value)

    immediate_risks = [_immediate_risk(a) for a in active_alerts]
    upcoming_risks = _flatten_upcoming(forecast_alerts)

    if overall_risk == OverallRisk.LOW.value and any(
        r["severity"] == RiskSeverity.HIGH.value for r in upcoming_risks
    ):
        overall_risk = OverallRisk.MEDIUM.value

    assessment = RiskAssessment(
        overall_risk=overall_risk,
        immediate_risks=immediate_risks,
        upcoming_risks=upcoming_risks,
        safety_recommendations=build_recommendations(
            overall_risk, immediate_risks, upcoming_risks,
        ),
    )

    logger.info(
        "Risk assessment: %s (%d active, %d upcoming)",
        overall_risk, len(immediate_risks), len(upcoming_risks),
        extra={"overall_risk": overall_risk, "alert_count": len(immediate_risks)},
    )
    return assessment
