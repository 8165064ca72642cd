import pytest

from healthcalc.core.engine.base import FlagLevel, ReadingSource
from healthcalc.core.metrics import get_orchestrator
from healthcalc.core.metrics.cholesterol import estimate_ten_year_risk


@pytest.fixture
def panel():
    return {
        "total_cholesterol": 200,
        "hdl_cholesterol": 50,
        "triglycerides": 150,
        "age": 50,
        "gender": "male",
    }


def assess(data):
    outcome = get_orchestrator("cholesterol").assess(data)
    assert outcome.is_valid, outcome.errors
    return outcome.result


def test_friedewald_ldl_just_below_triglyceride_limit(panel):
    """Test LDL estimation still applies at triglycerides of 399 mg/dL."""
    panel["triglycerides"] = 399
    result = assess(panel)
    ldl = result.reading("ldl_cholesterol")
    assert ldl.value == pytest.approx(70.2)
    assert ldl.source == ReadingSource.DERIVED
    assert ldl.category.label == "Optimal"
    assert result.unavailable == []


def test_friedewald_ldl_unavailable_at_triglyceride_limit(panel):
    panel["triglycerides"] = 400
    result = assess(panel)
    assert result.reading("ldl_cholesterol") is None
    assert result.reading("ldl_hdl_ratio") is None
    assert result.unavailable_kinds() == ["ldl_cholesterol", "ldl_hdl_ratio"]
    assert "direct LDL measurement" in result.unavailable[0].reason
    assert result.reading("non_hdl_cholesterol").value == 150
    assert result.reading("triglycerides").category.label == "High"


def test_measured_ldl_is_used_even_with_high_triglycerides(panel):
    panel.update(triglycerides=450, ldl_cholesterol=120)
    result = assess(panel)
    ldl = result.reading("ldl_cholesterol")
    assert ldl.value == 120
    assert ldl.source == ReadingSource.MEASURED
    assert result.unavailable == []


def test_ratios(panel):
    result = assess(panel)
    assert result.reading("total_hdl_ratio").value == pytest.approx(4.0)
    assert result.reading("total_hdl_ratio").category.label == "Good"
    assert result.reading("tg_hdl_ratio").value == pytest.approx(3.0)
    assert result.reading("ldl_hdl_ratio").value == pytest.approx(2.4)
    assert [r.kind for r in result.ratios] == ["total_hdl_ratio", "ldl_hdl_ratio", "tg_hdl_ratio"]


def test_mmol_input_is_converted(panel):
    panel.update(total_cholesterol=5.0, hdl_cholesterol=1.3, triglycerides=1.5, cholesterol_unit="mmol_l")
    result = assess(panel)
    total = result.reading("total_cholesterol")
    assert total.value == pytest.approx(193.35)
    assert total.unit == "mg/dL"
    assert total.display_unit == "mmol/L"
    assert total.display_value == pytest.approx(5.0)
    assert result.reading("triglycerides").value == pytest.approx(132.855)
    assert result.reading("ldl_cholesterol").category.label == "Near Optimal"


def test_risk_score_and_treatment(panel):
    result = assess(panel)
    present = {f.name for f in result.risk.present_factors}
    assert present == {"Age (male, 45+)", "Male Gender"}
    assert result.risk.score == 3
    assert result.risk.tier.code == "intermediate"
    assert result.treatment.tier == "medication_consideration"
    assert result.details["statin"]["intensity"] == "moderate"


def test_protective_hdl_lowers_score(panel):
    panel.update(hdl_cholesterol=65, total_cholesterol=180)
    result = assess(panel)
    assert result.risk.score == 2
    assert result.risk.tier.code == "borderline"


def test_prior_cvd_escalates_treatment(panel):
    panel.update(age=30, gender="female", prior_cvd=False)
    assert assess(panel).treatment.tier == "lifestyle"
    panel.update(age=50, prior_cvd=True)
    result = assess(panel)
    assert result.treatment.tier == "medication_indicated"
    assert "prior cardiovascular disease" in result.treatment.reasons


def test_very_high_ldl_flags_familial_hypercholesterolemia(panel):
    panel.update(total_cholesterol=300, hdl_cholesterol=45, triglycerides=100)
    result = assess(panel)
    assert result.reading("ldl_cholesterol").value == pytest.approx(235)
    kinds = [f.kind for f in result.flags]
    assert "familial_hypercholesterolemia" in kinds
    assert result.highest_flag == FlagLevel.URGENT
    assert "Screen for familial hypercholesterolemia" in result.treatment.recommendations


def test_very_high_triglycerides_force_urgent_tier(panel):
    panel["triglycerides"] = 600
    result = assess(panel)
    assert result.reading("triglycerides").category.label == "Very High"
    assert "pancreatitis_risk" in [f.kind for f in result.flags]
    assert result.treatment.tier == "medication_indicated"


def test_cross_field_errors(panel):
    panel.update(systolic_bp=80, diastolic_bp=90, age=35, prior_cvd=True)
    outcome = get_orchestrator("cholesterol").assess(panel)
    assert set(outcome.errors) == {"systolic_bp", "prior_cvd"}


def test_ten_year_risk_estimate():
    assert estimate_ten_year_risk(0) == 1
    assert estimate_ten_year_risk(5) == 15
    assert estimate_ten_year_risk(20) == 40
    assert estimate_ten_year_risk(5, ldl=170, triglycerides=250) == pytest.approx(15 * 1.3 * 1.2)


def test_non_positive_friedewald_estimate_is_unavailable(panel):
    """Test a low total with high HDL gives no LDL rather than a negative one."""
    panel.update(total_cholesterol=120, hdl_cholesterol=100, triglycerides=300)
    result = assess(panel)
    assert result.reading("ldl_cholesterol") is None
    assert result.unavailable_kinds() == ["ldl_cholesterol", "ldl_hdl_ratio"]
    assert "-40" in result.unavailable[0].reason
    assert result.reading("non_hdl_cholesterol").value == 20


def test_friedewald_estimate_of_zero_is_unavailable(panel):
    panel.update(total_cholesterol=150, hdl_cholesterol=100, triglycerides=250)
    result = assess(panel)
    assert result.reading("ldl_cholesterol") is None
    assert "direct LDL measurement" in result.unavailable[0].reason


def test_hdl_must_be_below_total(panel):
    panel.update(total_cholesterol=100, hdl_cholesterol=150)
    outcome = get_orchestrator("cholesterol").assess(panel)
    assert outcome.errors == {"hdl_cholesterol": "HDL cholesterol must be lower than total cholesterol"}
    panel.update(hdl_cholesterol=100)
    outcome = get_orchestrator("cholesterol").assess(panel)
    assert outcome.errors == {"hdl_cholesterol": "HDL cholesterol must be lower than total cholesterol"}
