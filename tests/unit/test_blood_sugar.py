import pytest

from healthcalc.core.engine.base import FlagLevel
from healthcalc.core.engine.classifier import Severity
from healthcalc.core.metrics import get_orchestrator
from healthcalc.core.metrics.blood_sugar import (
    estimated_average_glucose, hba1c_mmol_mol_to_percent, hba1c_percent_to_mmol_mol,
)


def assess(data):
    return get_orchestrator("blood_sugar").assess(data)


def test_severe_hypoglycemia_is_flagged_and_hba1c_still_reported():
    """Test that a fasting value of 45 mg/dL raises a severe flag alongside the HbA1c results."""
    outcome = assess({"fasting_glucose": 45, "hba1c_percent": 6.0})
    assert outcome.is_valid
    result = outcome.result
    fasting = result.reading("fasting_glucose")
    assert fasting.category.label == "Hypoglycemia"
    assert fasting.category.severity == Severity.CRITICAL
    assert [f.kind for f in result.flags] == ["fasting_glucose_severe_hypoglycemia"]
    assert result.highest_flag == FlagLevel.SEVERE
    assert result.reading("hba1c_percent").category.label == "Prediabetes"
    assert result.details["hba1c"]["mmol_mol"] == 42


def test_mild_hypoglycemia_is_urgent_not_severe():
    result = assess({"random_glucose": 60}).result
    assert [f.kind for f in result.flags] == ["random_glucose_hypoglycemia"]
    assert result.highest_flag == FlagLevel.URGENT


def test_every_supplied_reading_is_analyzed_and_flagged():
    result = assess({"fasting_glucose": 50, "post_meal_glucose": 350}).result
    assert result.reading("fasting_glucose").category.label == "Hypoglycemia"
    assert result.reading("post_meal_glucose").category.label == "High"
    assert [f.kind for f in result.flags] == [
        "fasting_glucose_severe_hypoglycemia",
        "post_meal_glucose_hyperglycemia",
    ]


def test_extreme_hyperglycemia():
    result = assess({"random_glucose": 450}).result
    assert result.reading("random_glucose").category.label == "Diabetes Range"
    assert [f.kind for f in result.flags] == ["random_glucose_extreme_hyperglycemia"]


@pytest.mark.parametrize("value,label", [
    (99, "Normal"),
    (100, "Prediabetes"),
    (125, "Prediabetes"),
    (126, "Diabetes Range"),
])
def test_fasting_boundaries(value, label):
    assert assess({"fasting_glucose": value}).result.reading("fasting_glucose").category.label == label


def test_mmol_input():
    result = assess({"fasting_glucose": 5.5, "glucose_unit": "mmol_l"}).result
    fasting = result.reading("fasting_glucose")
    assert fasting.value == pytest.approx(99.1, abs=0.01)
    assert fasting.category.label == "Normal"
    assert fasting.display_unit == "mmol/L"


def test_glucose_analysis_needs_a_reading():
    outcome = assess({"calculation_type": "glucose_analysis"})
    assert "fasting_glucose" in outcome.errors


def test_hba1c_conversion_from_mmol_mol():
    result = assess({"calculation_type": "hba1c_conversion", "hba1c_mmol_mol": 48}).result
    hba1c = result.reading("hba1c_percent")
    assert hba1c.value == pytest.approx(6.54, abs=0.01)
    assert hba1c.category.label == "Diabetes - Good Control"
    assert result.details["hba1c"]["estimated_average_glucose"]["mg_dl"] == round(28.7 * hba1c.value - 46.7)


def test_hba1c_conversion_needs_a_value():
    outcome = assess({"calculation_type": "hba1c_conversion"})
    assert "hba1c_percent" in outcome.errors


def test_very_poor_control_flag():
    result = assess({"calculation_type": "hba1c_conversion", "hba1c_percent": 11}).result
    assert result.reading("hba1c_percent").category.label == "Diabetes - Poor Control"
    assert [f.kind for f in result.flags] == ["hba1c_very_poor_control"]


def test_diabetes_risk_very_high():
    result = assess({
        "calculation_type": "diabetes_risk",
        "age": 50, "gender": "male", "weight": 95, "height": 175,
        "family_history": "both", "physical_activity": "low", "prediabetes": True,
    }).result
    assert result.risk.score == 36
    assert result.risk.tier.code == "very_high"
    assert result.risk.tier.severity == Severity.CRITICAL
    assert result.details["diabetes_risk_percent"] == 55
    assert result.details["bmi"] == 31.0


def test_gestational_history_counts_only_for_women():
    base = {"calculation_type": "diabetes_risk", "age": 30, "weight": 60, "height": 170,
            "gestational_diabetes": True}
    assert assess(dict(base, gender="male")).result.risk.score == 0
    assert assess(dict(base, gender="female")).result.risk.score == 8


def test_diabetes_risk_needs_basic_information():
    outcome = assess({"calculation_type": "diabetes_risk", "age": 50})
    assert "age" in outcome.errors


def test_risk_unavailable_without_demographics():
    result = assess({"fasting_glucose": 90}).result
    assert result.risk is None
    assert result.unavailable_kinds() == ["risk"]


def test_hba1c_conversions():
    assert hba1c_percent_to_mmol_mol(6.5) == pytest.approx(47.5, abs=0.1)
    assert hba1c_mmol_mol_to_percent(hba1c_percent_to_mmol_mol(7.2)) == pytest.approx(7.2)
    assert estimated_average_glucose(7) == pytest.approx(154.2)
