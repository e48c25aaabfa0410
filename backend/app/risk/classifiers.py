"""
classifiers.py - Map free-text provider vocabulary onto closed categories.

Providers send CAP-style alerts whose `severity`, `urgency` and `event`
fields are arbitrary strings.  Each classifier here is an ordered rule
table of `(keywords, category)` pairs evaluated top to bottom; the first
rule with a keyword contained in the lower-cased input wins.

All classifiers are total:

    None / ""        → lowest-information category (unknown / general)
    unmatched text   → severity & urgency pass the lower-cased text through,
                       alert type falls back to "weather"

Ordering matters.  "Severe Thunderstorm Warning" must become `storm`, so
the thunderstorm rule sits above the wind rule and the generic fallback.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from backend.app.risk.models import (
    AlertType,
    ClassifiedAlert,
    NO_SEVERITY,
    RawAlert,
    SEVERITY_ORDER,
    SeverityLevel,
    UrgencyLevel,
)

Rule = Tuple[Tuple[str, ...], str]


# ═══════════════════════════════════════════════════════════════════════════
# Rule tables (priority order, first hit wins)
# ═══════════════════════════════════════════════════════════════════════════

SEVERITY_RULES: Sequence[Rule] = (
    (("extreme", "severe"),  SeverityLevel.EXTREME.value),
    (("major", "moderate"),  SeverityLevel.MAJOR.value),
    (("minor", "low"),       SeverityLevel.MINOR.value),
)

ALERT_TYPE_RULES: Sequence[Rule] = (
    (("flood", "water"),                   AlertType.FLOOD.value),
    (("hurricane", "cyclone", "typhoon"),  AlertType.HURRICANE.value),
    (("tornado",),                         AlertType.TORNADO.value),
    (("thunderstorm", "storm"),            AlertType.STORM.value),
    (("heat", "hot"),                      AlertType.HEAT.value),
    (("cold", "freeze", "frost"),          AlertType.COLD.value),
    (("snow", "blizzard"),                 AlertType.SNOW.value),
    (("wind",),                            AlertType.WIND.value),
    (("fog",),                             AlertType.FOG.value),
    (("fire",),                            AlertType.FIRE.value),
    (("earthquake",),                      AlertType.EARTHQUAKE.value),
)

URGENCY_RULES: Sequence[Rule] = (
    (("immediate",), UrgencyLevel.IMMEDIATE.value),
    (("expected",),  UrgencyLevel.EXPECTED.value),
    (("future",),    UrgencyLevel.FUTURE.value),
    (("past",),      UrgencyLevel.PAST.value),
)

EMERGENCY_TYPES = frozenset({
    AlertType.HURRICANE.value,
    AlertType.TORNADO.value,
    AlertType.FLOOD.value,
})


def _normalise(text: Any) -> str:
    if text is None:
        return ""
    if not isinstance(text, str):
        text = str(text)
    return text.strip().lower()


def match_rules(text: Any, rules: Iterable[Rule]) -> Optional[str]:
    """Return the category of the first matching rule, or None."""
    lowered = _normalise(text)
    if not lowered:
        return None
    for keywords, category in rules:
        if any(k in lowered for k in keywords):
            return category
    return None


# ═══════════════════════════════════════════════════════════════════════════
# Classifiers
# ═══════════════════════════════════════════════════════════════════════════

def categorize_severity(raw: Optional[str]) -> str:
    """Free-text severity → extreme / major / minor, passthrough, or unknown."""
    lowered = _normalise(raw)
    if not lowered:
        return SeverityLevel.UNKNOWN.value
    return match_rules(lowered, SEVERITY_RULES) or lowered


def categorize_alert_type(text: Optional[str]) -> str:
    """Event or headline text → one of the AlertType values."""
    lowered = _normalise(text)
    if not lowered:
        return AlertType.GENERAL.value
    return match_rules(lowered, ALERT_TYPE_RULES) or AlertType.WEATHER.value


def categorize_urgency(raw: Optional[str]) -> str:
    lowered = _normalise(raw)
    if not lowered:
        return UrgencyLevel.UNKNOWN.value
    return match_rules(lowered, URGENCY_RULES) or lowered


def highest_severity(alerts: Sequence[ClassifiedAlert]) -> str:
    """
    Strongest `severity_level` across alerts, "none" for an empty list.

    Stable left fold: on equal ordinals the first alert seen is kept, so a
    passthrough severity (ordinal 0) at the head of the list beats a later
    "unknown".
    """
    best = NO_SEVERITY
    best_rank = -1
    for alert in alerts:
        rank = SEVERITY_ORDER.get(alert.severity_level, 0)
        if rank > best_rank:
            best, best_rank = alert.severity_level, rank
    return best


def split_areas(areas: Optional[str]) -> List[str]:
    if not areas:
        return []
    return [a.strip() for a in areas.split(";") if a.strip()]


def classify_alert(
    raw: RawAlert,
    coordinates: Optional[Dict[str, Optional[float]]] = None,
) -> ClassifiedAlert:
    """Apply the three classifiers to one raw alert."""
    return ClassifiedAlert(
        raw=raw,
        severity_level=categorize_severity(raw.severity),
        alert_type=categorize_alert_type(raw.event or raw.headline),
        urgency_level=categorize_urgency(raw.urgency),
        affected_areas=split_areas(raw.areas),
        coordinates=coordinates,
    )


def classify_alerts(
    payloads: Optional[Iterable[Dict[str, Any]]],
    coordinates: Optional[Dict[str, Optional[float]]] = None,
) -> List[ClassifiedAlert]:
    """Classify a provider `alerts.alert` array, skipping non-dict entries."""
    return [
        classify_alert(RawAlert.from_payload(p), coordinates)
        for p in (payloads or [])
        if isinstance(p, dict)
    ]


def is_emergency_alert(alert: ClassifiedAlert) -> bool:
    return (
        alert.severity_level == SeverityLevel.EXTREME.value
        or alert.urgency_level == UrgencyLevel.IMMEDIATE.value
        or alert.alert_type in EMERGENCY_TYPES
    )


def filter_emergency_alerts(alerts: Sequence[ClassifiedAlert]) -> List[ClassifiedAlert]:
    return [a for a in alerts if is_emergency_alert(a)]
