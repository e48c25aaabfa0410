"""
Tests for the alert classifiers.

Covers:
    • Severity / urgency keyword rules and passthrough
    • Alert type priority order
    • Total-function behaviour on None, empty, unicode and long input
    • highest_severity fold and tie-breaking
    • classify_alert field derivation
    • Emergency filtering
"""

from __future__ import annotations

import pytest

from backend.app.risk.classifiers import (
    ALERT_TYPE_RULES,
    categorize_alert_type,
    categorize_severity,
    categorize_urgency,
    classify_alert,
    classify_alerts,
    filter_emergency_alerts,
    highest_severity,
    is_emergency_alert,
    split_areas,
)
from backend.app.risk.models import ClassifiedAlert, RawAlert


def _alert(severity="unknown", alert_type="weather", urgency="unknown", headline="h"):
    return ClassifiedAlert(
        raw=RawAlert(headline=headline),
        severity_level=severity,
        alert_type=alert_type,
        urgency_level=urgency,
    )


# ═══════════════════════════════════════════════════════════════════════════
# Severity
# ═══════════════════════════════════════════════════════════════════════════

class TestCategorizeSeverity:
    @pytest.mark.parametrize("raw, expected", [
        ("Extreme", "extreme"),
        ("Severe", "extreme"),
        ("Major", "major"),
        ("Moderate", "major"),
        ("Minor", "minor"),
        ("low", "minor"),
    ])
    def test_keyword_rules(self, raw, expected):
        assert categorize_severity(raw) == expected

    def test_falsy_is_unknown(self):
        assert categorize_severity(None) == "unknown"
        assert categorize_severity("") == "unknown"
        assert categorize_severity("   ") == "unknown"

    def test_unmatched_passes_through_lower_cased(self):
        assert categorize_severity("Unusual") == "unusual"

    def test_extreme_checked_before_minor(self):
        # "severe" and "low" both present; the extreme rule is first
        assert categorize_severity("Severe, slow moving") == "extreme"

    def test_unicode_and_long_input(self):
        assert categorize_severity("Ü" * 10_000) == "ü" * 10_000
        assert categorize_severity("अत्यधिक severe") == "extreme"


# ═══════════════════════════════════════════════════════════════════════════
# Alert type
# ═══════════════════════════════════════════════════════════════════════════

class TestCategorizeAlertType:
    @pytest.mark.parametrize("text, expected", [
        ("Flash Flood Warning", "flood"),
        ("High water advisory", "flood"),
        ("Cyclone Alert", "hurricane"),
        ("Typhoon Watch", "hurricane"),
        ("Tornado Warning", "tornado"),
        ("Severe Thunderstorm Warning", "storm"),
        ("Heat Wave", "heat"),
        ("Hot weather advisory", "heat"),
        ("Frost Advisory", "cold"),
        ("Blizzard Warning", "snow"),
        ("Wind Advisory", "wind"),
        ("Dense Fog Advisory", "fog"),
        ("Red Flag Fire Warning", "fire"),
        ("Earthquake Information", "earthquake"),
    ])
    def test_rules(self, text, expected):
        assert categorize_alert_type(text) == expected

    def test_thunderstorm_beats_wind(self):
        assert categorize_alert_type("Thunderstorm with damaging wind") == "storm"

    def test_flood_beats_storm(self):
        assert categorize_alert_type("Storm surge flooding") == "flood"

    def test_unmatched_text_is_weather(self):
        assert categorize_alert_type("Special Statement") == "weather"

    def test_falsy_is_general(self):
        assert categorize_alert_type(None) == "general"
        assert categorize_alert_type("") == "general"

    def test_rule_table_order(self):
        categories = [category for _, category in ALERT_TYPE_RULES]
        assert categories[:4] == ["flood", "hurricane", "tornado", "storm"]
        assert categories.index("storm") < categories.index("wind")


# ═══════════════════════════════════════════════════════════════════════════
# Urgency
# ═══════════════════════════════════════════════════════════════════════════

class TestCategorizeUrgency:
    @pytest.mark.parametrize("raw, expected", [
        ("Immediate", "immediate"),
        ("Expected", "expected"),
        ("Future", "future"),
        ("Past", "past"),
    ])
    def test_rules(self, raw, expected):
        assert categorize_urgency(raw) == expected

    def test_passthrough_and_unknown(self):
        assert categorize_urgency("Soon") == "soon"
        assert categorize_urgency(None) == "unknown"


# ═══════════════════════════════════════════════════════════════════════════
# highest_severity
# ═══════════════════════════════════════════════════════════════════════════

class TestHighestSeverity:
    def test_empty_is_none(self):
        assert highest_severity([]) == "none"

    def test_picks_max_ordinal(self):
        alerts = [_alert("minor"), _alert("extreme"), _alert("major")]
        assert highest_severity(alerts) == "extreme"

    def test_single_unknown(self):
        assert highest_severity([_alert("unknown")]) == "unknown"

    def test_tie_keeps_first_seen(self):
        # passthrough severities share ordinal 0 with unknown
        assert highest_severity([_alert("unusual"), _alert("unknown")]) == "unusual"
        assert highest_severity([_alert("unknown"), _alert("unusual")]) == "unknown"


# ═══════════════════════════════════════════════════════════════════════════
# classify_alert
# ═══════════════════════════════════════════════════════════════════════════

class TestClassifyAlert:
    def test_derives_all_fields(self):
        raw = RawAlert.from_payload({
            "headline": "Flood warning for Pune",
            "event": "Flood Warning",
            "severity": "Severe",
            "urgency": "Immediate",
            "areas": "Pune; Haveli ;; Mulshi",
        })
        alert = classify_alert(raw, {"lat": 18.52, "lon": 73.86})
        assert alert.severity_level == "extreme"
        assert alert.alert_type == "flood"
        assert alert.urgency_level == "immediate"
        assert alert.affected_areas == ["Pune", "Haveli", "Mulshi"]

        data = alert.to_dict()
        assert data["coordinates"] == {"lat": 18.52, "lon": 73.86}
        assert data["headline"] == "Flood warning for Pune"

    def test_type_falls_back_to_headline(self):
        alert = classify_alert(RawAlert(headline="Heat advisory", event=""))
        assert alert.alert_type == "heat"

    def test_empty_alert_degrades(self):
        alert = classify_alert(RawAlert.from_payload({}))
        assert alert.severity_level == "unknown"
        assert alert.alert_type == "general"
        assert alert.urgency_level == "unknown"
        assert alert.affected_areas == []
        assert alert.to_dict()["coordinates"] == {"lat": None, "lon": None}

    def test_classify_alerts_skips_non_dicts(self):
        alerts = classify_alerts([{"event": "Fog"}, "junk", None])
        assert [a.alert_type for a in alerts] == ["fog"]

    def test_split_areas(self):
        assert split_areas(None) == []
        assert split_areas("A;B") == ["A", "B"]


# ═══════════════════════════════════════════════════════════════════════════
# Emergency filter
# ═══════════════════════════════════════════════════════════════════════════

class TestEmergencyAlerts:
    def test_extreme_severity(self):
        assert is_emergency_alert(_alert(severity="extreme"))

    def test_immediate_urgency(self):
        assert is_emergency_alert(_alert(urgency="immediate"))

    @pytest.mark.parametrize("alert_type", ["hurricane", "tornado", "flood"])
    def test_emergency_types(self, alert_type):
        assert is_emergency_alert(_alert(alert_type=alert_type))

    def test_ordinary_alert(self):
        assert not is_emergency_alert(_alert(severity="minor", alert_type="fog"))

    def test_filter_preserves_order(self):
        alerts = [
            _alert(alert_type="flood", headline="a"),
            _alert(alert_type="fog", headline="b"),
            _alert(severity="extreme", headline="c"),
        ]
        assert [a.headline for a in filter_emergency_alerts(alerts)] == ["a", "c"]
