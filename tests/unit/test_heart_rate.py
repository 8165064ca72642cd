import pytest

from healthcalc.core.engine.base import FlagLevel
from healthcalc.core.metrics import get_orchestrator
from healthcalc.core.metrics.heart_rate import training_zones


def assess(data):
    return get_orchestrator("heart_rate").assess(data)


def test_karvonen_zones_use_heart_rate_reserve():
    result = assess({"age": 30, "resting_heart_rate": 60}).result
    assert result.reading("resting_heart_rate").category.label == "Normal"
    details = result.details
    assert details["max_heart_rate"] == 190
    assert details["heart_rate_reserve"] == 130
    bounds = [(z["min_bpm"], z["max_bpm"]) for z in details["zones"]]
    assert bounds == [(125, 138), (138, 151), (151, 164), (164, 177), (177, 190)]
    assert [r["zone"] for r in details["recommendations"]] == ["Fat Burn Zone", "Aerobic Zone"]
    assert details["recommendations"][0]["recommendation"] == "Train in 138-151 bpm for optimal fat burning"


def test_age_formula_without_resting_rate():
    result = assess({"age": 40, "calculation_method": "age_formula", "goals": ["recovery"]}).result
    assert result.readings == []
    assert result.details["heart_rate_reserve"] is None
    assert [z["min_bpm"] for z in result.details["zones"]] == [90, 108, 126, 144, 162]
    assert result.details["method"]["name"] == "Age-Based Formula (220 - Age)"


def test_custom_max_is_used():
    result = assess({"age": 40, "calculation_method": "custom_max", "max_heart_rate": 200}).result
    assert result.details["max_heart_rate"] == 200
    assert result.details["zones"][-1]["max_bpm"] == 200
    assert result.details["fitness_insights"][0]["category"] == "Maximum Heart Rate"


@pytest.mark.parametrize("data, errors", [
    ({"age": 30}, {"resting_heart_rate": "Resting heart rate is required for the Karvonen method"}),
    ({"age": 40, "calculation_method": "custom_max", "resting_heart_rate": 60},
     {"max_heart_rate": "Maximum heart rate is required for the custom method"}),
    ({"age": 30, "calculation_method": "custom_max", "max_heart_rate": 140},
     {"max_heart_rate": "Maximum heart rate seems too low for your age"}),
    ({"age": 30, "calculation_method": "custom_max", "max_heart_rate": 170, "resting_heart_rate": 110},
     {}),
])
def test_method_rules(data, errors):
    assert assess(data).errors == errors


def test_resting_rate_must_be_below_max():
    outcome = assess({"age": 80, "calculation_method": "custom_max", "max_heart_rate": 120,
                      "resting_heart_rate": 120})
    assert outcome.errors == {"resting_heart_rate": "Resting heart rate must be lower than maximum heart rate"}


def test_high_resting_rate_is_flagged():
    result = assess({"age": 30, "resting_heart_rate": 105}).result
    assert result.reading("resting_heart_rate").category.label == "High"
    assert [f.kind for f in result.flags] == ["resting_tachycardia"]
    assert result.highest_flag == FlagLevel.WARNING


def test_zero_reserve_falls_back_to_percentage_of_max():
    """Test that zones still come out when the resting rate reaches the predicted maximum."""
    result = assess({"age": 100, "resting_heart_rate": 120}).result
    assert result.unavailable_kinds() == ["heart_rate_reserve"]
    assert result.details["zones"][0]["min_bpm"] == 60
    assert result.details["heart_rate_reserve"] is None


def test_unknown_goal():
    outcome = assess({"age": 30, "resting_heart_rate": 60, "goals": ["sprinting"]})
    assert "sprinting" in outcome.errors["goals"]


def test_training_zones_helper():
    zones = training_zones(200)
    assert zones[2]["min_bpm"] == 140
    assert zones[2]["intensity"] == "Moderate"
    zones = training_zones(200, resting_hr=50, reserve=150)
    assert zones[2]["min_bpm"] == 155
