"""
Tests for forecast risk extraction.

Covers:
    • Each threshold rule and its exact boundaries
    • Multiple rules on one day
    • Sparse output with preserved day_index
    • Provider payload parsing with missing fields
    • Risk summary counts
"""

from __future__ import annotations

import pytest

from backend.app.risk.extractors import (
    extract_forecast_risks,
    parse_forecast_days,
    summarize_forecast_risks,
)
from backend.app.risk.models import ForecastDay


def _day(date="2025-07-01", **kwargs) -> ForecastDay:
    return ForecastDay(date=date, **kwargs)


def _types(day: ForecastDay):
    risks = extract_forecast_risks([day])
    if not risks:
        return []
    return [(r.type, r.severity) for r in risks[0].risks]


# ═══════════════════════════════════════════════════════════════════════════
# Threshold rules
# ═══════════════════════════════════════════════════════════════════════════

class TestExtremeHeat:
    def test_exactly_40_does_not_trigger(self):
        assert _types(_day(max_temp_c=40.0)) == []

    def test_just_above_40_triggers(self):
        assert _types(_day(max_temp_c=40.1)) == [("extreme_heat", "high")]

    def test_severity_is_coarse(self):
        assert _types(_day(max_temp_c=55.0)) == [("extreme_heat", "high")]


class TestFreezing:
    def test_zero_does_not_trigger(self):
        assert _types(_day(min_temp_c=0.0)) == []

    def test_below_zero(self):
        assert _types(_day(min_temp_c=-0.5)) == [("freezing_conditions", "medium")]


class TestHeavyRain:
    @pytest.mark.parametrize("precip, expected", [
        (49.9, []),
        (50.0, [("heavy_rain", "medium")]),
        (75.0, [("heavy_rain", "medium")]),
        (100.0, [("heavy_rain", "medium")]),
        (100.1, [("heavy_rain", "high")]),
    ])
    def test_bands(self, precip, expected):
        assert _types(_day(total_precip_mm=precip)) == expected


class TestHighWinds:
    @pytest.mark.parametrize("wind, expected", [
        (59.9, []),
        (60.0, [("high_winds", "medium")]),
        (100.0, [("high_winds", "medium")]),
        (100.5, [("high_winds", "high")]),
    ])
    def test_bands(self, wind, expected):
        assert _types(_day(max_wind_kph=wind)) == expected


class TestExtractForecastRisks:
    def test_multiple_rules_one_day(self):
        day = _day(max_temp_c=42, total_precip_mm=120, max_wind_kph=70)
        assert _types(day) == [
            ("extreme_heat", "high"),
            ("heavy_rain", "high"),
            ("high_winds", "medium"),
        ]

    def test_sparse_output_keeps_day_index(self):
        days = [
            _day("2025-07-01"),
            _day("2025-07-02", total_precip_mm=60),
            _day("2025-07-03"),
            _day("2025-07-04", max_temp_c=45),
        ]
        risks = extract_forecast_risks(days)
        assert [(r.date, r.day_index) for r in risks] == [
            ("2025-07-02", 1),
            ("2025-07-04", 3),
        ]

    def test_empty_input(self):
        assert extract_forecast_risks([]) == []

    def test_descriptions_mention_reading(self):
        risks = extract_forecast_risks([_day(max_temp_c=43)])
        assert "43" in risks[0].risks[0].description


# ═══════════════════════════════════════════════════════════════════════════
# Payload parsing
# ═══════════════════════════════════════════════════════════════════════════

class TestParseForecastDays:
    def test_reads_provider_fields(self):
        payload = {
            "forecast": {
                "forecastday": [
                    {
                        "date": "2025-07-01",
                        "day": {
                            "maxtemp_c": 33.1,
                            "mintemp_c": 25.0,
                            "totalprecip_mm": 64.2,
                            "maxwind_kph": 31.0,
                            "avghumidity": 88,
                            "daily_chance_of_rain": 92,
                            "uv": 4.0,
                            "condition": {"text": "Heavy rain"},
                        },
                    },
                ],
            },
        }
        (day,) = parse_forecast_days(payload)
        assert day.date == "2025-07-01"
        assert day.total_precip_mm == pytest.approx(64.2)
        assert day.avg_humidity == 88
        assert day.condition == "Heavy rain"

    def test_missing_numerics_trigger_nothing(self):
        days = parse_forecast_days({"forecast": {"forecastday": [{"date": "d", "day": {}}]}})
        assert extract_forecast_risks(days) == []
        assert days[0].avg_humidity is None

    def test_non_numeric_values_are_neutral(self):
        days = parse_forecast_days(
            {"forecast": {"forecastday": [{"date": "d", "day": {"maxtemp_c": "n/a"}}]}}
        )
        assert days[0].max_temp_c == 0.0

    @pytest.mark.parametrize("payload", [None, {}, {"forecast": None}, {"forecast": {}}])
    def test_missing_forecast(self, payload):
        assert parse_forecast_days(payload) == []

    @pytest.mark.parametrize("payload", [
        "unavailable",
        {"forecast": "unavailable"},
        {"forecast": ["2025-07-01"]},
        {"forecast": {"forecastday": "none"}},
        {"forecast": {"forecastday": {"date": "2025-07-01"}}},
    ])
    def test_malformed_forecast_is_empty(self, payload):
        assert parse_forecast_days(payload) == []

    @pytest.mark.parametrize("day", ["n/a", None, 42, ["maxtemp_c", 50]])
    def test_malformed_day_is_neutral(self, day):
        days = parse_forecast_days(
            {"forecast": {"forecastday": [{"date": "2025-07-01", "day": day}]}}
        )
        assert len(days) == 1
        assert days[0].date == "2025-07-01"
        assert days[0].max_temp_c == 0.0
        assert days[0].condition is None
        assert extract_forecast_risks(days) == []


# ═══════════════════════════════════════════════════════════════════════════
# Summary
# ═══════════════════════════════════════════════════════════════════════════

class TestSummarizeForecastRisks:
    def test_counts_and_distinct_types(self):
        risks = extract_forecast_risks([
            _day("d1", total_precip_mm=60),
            _day("d2", total_precip_mm=150, max_temp_c=41),
            _day("d3", max_wind_kph=65),
        ])
        summary = summarize_forecast_risks(risks)
        assert summary == {
            "total_risk_days": 3,
            "high_risk_days": 1,
            "risk_types": ["heavy_rain", "extreme_heat", "high_winds"],
        }

    def test_empty(self):
        assert summarize_forecast_risks([]) == {
            "total_risk_days": 0,
            "high_risk_days": 0,
            "risk_types": [],
        }
