"""
models.py - Data structures shared by the risk assessment engine.

Defines:
    • SeverityLevel / AlertType / UrgencyLevel - closed classifier vocabularies
    • OverallRisk / SafetyLevel / RiskSeverity   - engine output levels
    • RawAlert        - CAP-style alert exactly as the provider sent it
    • ClassifiedAlert - RawAlert + derived categories
    • ForecastDay     - one provider forecast day, reduced to rule inputs
    • RiskItem / ForecastDayRisk - threshold hits for one forecast day
    • RiskAssessment  - aggregate judgment + recommendations
    • SafetyAssessment - instantaneous weather safety

Every type serialises with `to_dict()` into the snake_case JSON the
frontend destructures.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


# ═══════════════════════════════════════════════════════════════════════════
# Vocabularies
# ═══════════════════════════════════════════════════════════════════════════

class SeverityLevel(str, Enum):
    """Normalised alert severity, strongest first."""
    EXTREME  = "extreme"
    MAJOR    = "major"
    MODERATE = "moderate"
    MINOR    = "minor"
    UNKNOWN  = "unknown"


class AlertType(str, Enum):
    FLOOD      = "flood"
    HURRICANE  = "hurricane"
    TORNADO    = "tornado"
    STORM      = "storm"
    HEAT       = "heat"
    COLD       = "cold"
    SNOW       = "snow"
    WIND       = "wind"
    FOG        = "fog"
    FIRE       = "fire"
    EARTHQUAKE = "earthquake"
    WEATHER    = "weather"   # text present, nothing matched
    GENERAL    = "general"   # no text at all


class UrgencyLevel(str, Enum):
    IMMEDIATE = "immediate"
    EXPECTED  = "expected"
    FUTURE    = "future"
    PAST      = "past"
    UNKNOWN   = "unknown"


class OverallRisk(str, Enum):
    LOW      = "low"
    MEDIUM   = "medium"
    HIGH     = "high"
    CRITICAL = "critical"


class RiskSeverity(str, Enum):
    """Severity attached to a single forecast risk item."""
    HIGH   = "high"
    MEDIUM = "medium"


class ForecastRiskType(str, Enum):
    EXTREME_HEAT        = "extreme_heat"
    FREEZING_CONDITIONS = "freezing_conditions"
    HEAVY_RAIN          = "heavy_rain"
    HIGH_WINDS          = "high_winds"


class SafetyLevel(str, Enum):
    SAFE      = "safe"
    CAUTION   = "caution"
    DANGEROUS = "dangerous"
    UNKNOWN   = "unknown"


# Ordinal used to pick the strongest alert; passthrough strings rank as 0
SEVERITY_ORDER: Dict[str, int] = {
    SeverityLevel.EXTREME.value:  4,
    SeverityLevel.MAJOR.value:    3,
    SeverityLevel.MODERATE.value: 2,
    SeverityLevel.MINOR.value:    1,
    SeverityLevel.UNKNOWN.value:  0,
}

NO_SEVERITY = "none"


# ═══════════════════════════════════════════════════════════════════════════
# Alerts
# ═══════════════════════════════════════════════════════════════════════════

def _text(value: Any) -> Optional[str]:
    """Provider fields are free text; anything non-string is stringified."""
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


@dataclass
class RawAlert:
    """A CAP-style alert as received from the weather provider."""

    headline: Optional[str] = None
    event: Optional[str] = None
    severity: Optional[str] = None
    urgency: Optional[str] = None
    areas: Optional[str] = None
    effective: Optional[str] = None
    expires: Optional[str] = None
    desc: Optional[str] = None
    instruction: Optional[str] = None
    msgtype: Optional[str] = None
    category: Optional[str] = None
    certainty: Optional[str] = None
    note: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "RawAlert":
        """Build leniently from a provider dict; unknown keys are ignored."""
        payload = payload or {}
        return cls(**{
            name: _text(payload.get(name))
            for name in cls.__dataclass_fields__
        })

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.__dataclass_fields__}


@dataclass
class ClassifiedAlert:
    """RawAlert plus the derived classifier outputs."""

    raw: RawAlert
    severity_level: str
    alert_type: str
    urgency_level: str
    affected_areas: List[str] = field(default_factory=list)
    coordinates: Optional[Dict[str, Optional[float]]] = None

    @property
    def headline(self) -> Optional[str]:
        return self.raw.headline

    def to_dict(self) -> Dict[str, Any]:
        data = self.raw.to_dict()
        data.update({
            "severity_level": self.severity_level,
            "alert_type": self.alert_type,
            "urgency_level": self.urgency_level,
            "affected_areas": list(self.affected_areas),
            "coordinates": self.coordinates or {"lat": None, "lon": None},
        })
        return data


# ═══════════════════════════════════════════════════════════════════════════
# Forecast risks
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class ForecastDay:
    """
    One calendar day of a forecast, reduced to the fields the risk rules
    read. Neutral defaults never trigger a rule.
    """

    date: str
    max_temp_c: float = 0.0
    min_temp_c: float = 0.0
    total_precip_mm: float = 0.0
    max_wind_kph: float = 0.0
    avg_humidity: Optional[float] = None
    chance_of_rain: Optional[float] = None
    uv: Optional[float] = None
    condition: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "max_temp_c": self.max_temp_c,
            "min_temp_c": self.min_temp_c,
            "total_precip_mm": self.total_precip_mm,
            "max_wind_kph": self.max_wind_kph,
            "avg_humidity": self.avg_humidity,
            "chance_of_rain": self.chance_of_rain,
            "uv": self.uv,
            "condition": self.condition,
        }


@dataclass(frozen=True)
class RiskItem:
    type: str
    severity: str
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "severity": self.severity,
            "description": self.description,
        }


@dataclass
class ForecastDayRisk:
    """Risks found on one forecast day. Only days with ≥1 risk exist."""

    date: str
    day_index: int
    risks: List[RiskItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "day_index": self.day_index,
            "risks": [r.to_dict() for r in self.risks],
        }


# ═══════════════════════════════════════════════════════════════════════════
# Aggregate outputs
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class RiskAssessment:
    overall_risk: str = OverallRisk.LOW.value
    immediate_risks: List[Dict[str, Any]] = field(default_factory=list)
    upcoming_risks: List[Dict[str, Any]] = field(default_factory=list)
    safety_recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall_risk": self.overall_risk,
            "immediate_risks": [dict(r) for r in self.immediate_risks],
            "upcoming_risks": [dict(r) for r in self.upcoming_risks],
            "safety_recommendations": list(self.safety_recommendations),
        }


@dataclass
class SafetyAssessment:
    overall_safety: str = SafetyLevel.SAFE.value
    warnings: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    @property
    def is_safe_for_outdoor_activities(self) -> bool:
        return self.overall_safety == SafetyLevel.SAFE.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall_safety": self.overall_safety,
            "warnings": list(self.warnings),
            "recommendations": list(self.recommendations),
            "is_safe_for_outdoor_activities": self.is_safe_for_outdoor_activities,
        }
