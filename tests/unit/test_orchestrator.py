import pytest

from healthcalc.core.engine.base import FlagLevel, ReadingSource
from healthcalc.core.engine.classifier import INF, Severity, build_table
from healthcalc.core.engine.errors import ConfigurationError, DomainInvalidError
from healthcalc.core.engine.orchestrator import (
    AssessmentOrchestrator, Derivation, FlagRule, MetricConfig, ReadingSpec, TreatmentOverride,
    TreatmentPolicy, TreatmentTier,
)
from healthcalc.core.engine.scoring import RiskFactorPredicate, RiskModel, above, is_true
from healthcalc.core.engine.units import QuantityKind, Unit, UnitBinding
from healthcalc.core.validation.schema import InputSchema, boolean, choice, number

BINDING = UnitBinding(QuantityKind.GLUCOSE, "unit", {"mg_dl": Unit.MG_DL, "mmol_l": Unit.MMOL_L})

LEVEL_TABLE = build_table("level", [
    (70, "Low", Severity.CRITICAL, "Too low", "<70", ["Eat something"]),
    (100, "Normal", Severity.OK, "Fine", "70-99", ["Carry on"]),
    (INF, "High", Severity.WARNING, "Too high", ">=100", ["See a doctor"]),
])
RATIO_TABLE = build_table("ratio", [(1, "Under"), (INF, "Over")])
RISK_TIERS = build_table("risk", [
    (2, "Low", Severity.OK, "Low risk", "", ["Keep going"]),
    (INF, "High", Severity.WARNING, "High risk", "", ["Act now"]),
])


def _ratio(values):
    if values["level"] > 500:
        raise DomainInvalidError("ratio", "level too high to compare")
    return values["level"] / 100


def make_config(**overrides):
    config = dict(
        name="demo",
        title="Demo",
        schema=InputSchema("demo", [
            number("level", 20, 900, unit=BINDING),
            choice("unit", ["mg_dl", "mmol_l"], default="mg_dl"),
            number("ratio", required=False),
            boolean("smoker"),
        ]),
        readings=[ReadingSpec("level", LEVEL_TABLE, "Level", precision=0)],
        ratios=[ReadingSpec("ratio", RATIO_TABLE, "Ratio", precision=2),
                ReadingSpec("double_ratio", RATIO_TABLE, "Double Ratio", precision=2)],
        derivations=[
            Derivation("ratio", ("level",), _ratio),
            Derivation("double_ratio", ("ratio",), lambda v: v["ratio"] * 2),
        ],
        risk_model=RiskModel("risk", [
            RiskFactorPredicate("Smoker", 2, is_true("smoker")),
            RiskFactorPredicate("High level", 1, above("level", 150)),
        ], RISK_TIERS),
        treatment=TreatmentPolicy(
            tiers=[
                TreatmentTier("watch", "Watch", "Keep watching", ["Recheck yearly"]),
                TreatmentTier("treat", "Treat", "Start treatment", ["Book an appointment"]),
                TreatmentTier("urgent", "Urgent", "Get help now", ["Call emergency services"]),
            ],
            by_risk={"low": "watch", "high": "treat"},
            urgent_tier="urgent",
            overrides=[
                TreatmentOverride("smoker", lambda ctx: ctx.values["smoker"],
                                  recommendations=["Quit smoking"]),
                TreatmentOverride("downgrade attempt", lambda ctx: True, tier="watch"),
            ],
        ),
        flags=[
            FlagRule("very_low", FlagLevel.SEVERE, lambda ctx: ctx.get("level", 100) < 40,
                     "Very low", group="level"),
            FlagRule("low", FlagLevel.URGENT, lambda ctx: ctx.get("level", 100) < 70,
                     "Low", group="level"),
            FlagRule("smoker", FlagLevel.CAUTION, lambda ctx: ctx.values["smoker"],
                     lambda ctx: f"Smoker with level {ctx.get('level'):.0f}"),
        ],
        details=lambda ctx: {"worst": ctx.worst_severity.value},
        disclaimer="Demo only",
    )
    config.update(overrides)
    return MetricConfig(**config)


@pytest.fixture
def orchestrator():
    return AssessmentOrchestrator(make_config())


def test_full_pipeline(orchestrator):
    outcome = orchestrator.assess({"level": 120})
    assert outcome.is_valid
    result = outcome.result
    level = result.reading("level")
    assert level.category.label == "High"
    assert level.recommendations == ["See a doctor"]
    assert level.source == ReadingSource.MEASURED
    ratio = result.reading("ratio")
    assert ratio.value == pytest.approx(1.2)
    assert ratio.source == ReadingSource.DERIVED
    assert result.risk.score == 0
    assert result.risk_narrative == "Low risk"
    assert result.treatment.tier == "watch"
    assert result.flags == []
    assert result.details == {"worst": "warning"}
    assert result.disclaimer == "Demo only"


def test_invalid_input_returns_errors_not_exception(orchestrator):
    outcome = orchestrator.assess({"level": "lots"})
    assert not outcome.is_valid
    assert outcome.result is None
    assert "level" in outcome.errors
    assert outcome.to_dict()["status"] == "invalid"


def test_converted_value_is_canonical_with_display_unit(orchestrator):
    result = orchestrator.assess({"level": 5.5, "unit": "mmol_l"}).result
    level = result.reading("level")
    assert level.value == pytest.approx(99.1, abs=0.01)
    assert level.category.label == "Normal"
    assert level.unit == "mg/dL"
    assert level.display_unit == "mmol/L"
    assert level.display_value == pytest.approx(5.5)


def test_domain_invalid_derivation_is_unavailable_and_blocks_dependents(orchestrator):
    """Test that a failed derivation is reported along with everything depending on it."""
    result = orchestrator.assess({"level": 600}).result
    assert result.reading("ratio") is None
    assert result.unavailable_kinds() == ["ratio", "double_ratio"]
    assert result.unavailable[0].reason == "level too high to compare"
    assert result.reading("level").category.label == "High"


def test_user_supplied_value_wins_over_derivation(orchestrator):
    result = orchestrator.assess({"level": 120, "ratio": 0.5}).result
    assert result.reading("ratio").value == 0.5
    assert result.reading("ratio").source == ReadingSource.MEASURED
    assert result.reading("double_ratio").value == 1.0


def test_critical_reading_forces_urgent_tier(orchestrator):
    result = orchestrator.assess({"level": 50}).result
    assert result.reading("level").category.severity == Severity.CRITICAL
    assert result.treatment.tier == "urgent"
    assert "critical reading" in result.treatment.reasons


def test_override_never_downgrades(orchestrator):
    result = orchestrator.assess({"level": 160, "smoker": True}).result
    assert result.risk.score == 3
    assert result.treatment.tier == "treat"
    assert "Quit smoking" in result.treatment.recommendations
    assert "smoker" in result.treatment.reasons


def test_only_first_flag_in_group_fires(orchestrator):
    result = orchestrator.assess({"level": 30, "smoker": True}).result
    assert [f.kind for f in result.flags] == ["very_low", "smoker"]
    assert result.flags[1].message == "Smoker with level 30"
    assert result.highest_flag == FlagLevel.SEVERE


def test_flags_fire_without_risk_model():
    orchestrator = AssessmentOrchestrator(make_config(risk_model=None, treatment=None))
    result = orchestrator.assess({"level": 60}).result
    assert result.risk is None
    assert result.treatment is None
    assert [f.kind for f in result.flags] == ["low"]


def test_missing_required_risk_fields_marks_risk_unavailable():
    model = RiskModel("risk", [RiskFactorPredicate("Smoker", 2, is_true("smoker"))], RISK_TIERS,
                      required_fields=("age",))
    orchestrator = AssessmentOrchestrator(make_config(risk_model=model, treatment=None))
    result = orchestrator.assess({"level": 90}).result
    assert result.risk is None
    assert "risk" in result.unavailable_kinds()


def test_treatment_policy_must_cover_every_risk_tier():
    config = make_config()
    config.treatment.by_risk.pop("high")
    with pytest.raises(ConfigurationError):
        AssessmentOrchestrator(config)


def test_treatment_policy_rejects_unknown_tier():
    with pytest.raises(ConfigurationError):
        TreatmentPolicy(tiers=[TreatmentTier("a", "A", "")], by_risk={"low": "b"}, urgent_tier="a")


def test_negative_derived_measurement_is_unavailable():
    """Test that a derived value shown in the user's unit must not be negative."""
    config = make_config(
        schema=InputSchema("demo", [
            number("level", 20, 900, unit=BINDING),
            number("offset", 0, 900, unit=BINDING),
            choice("unit", ["mg_dl", "mmol_l"], default="mg_dl"),
            boolean("smoker"),
        ]),
        readings=[ReadingSpec("gap", LEVEL_TABLE, "Gap", binding=BINDING)],
        ratios=[],
        derivations=[Derivation("gap", ("level", "offset"), lambda v: v["level"] - v["offset"])],
        risk_model=None, treatment=None, flags=[],
    )
    orchestrator = AssessmentOrchestrator(config)
    result = orchestrator.assess({"level": 5, "offset": 7, "unit": "mmol_l"}).result
    assert result.reading("gap") is None
    assert result.unavailable_kinds() == ["gap"]
    assert "not a valid measurement" in result.unavailable[0].reason
    result = orchestrator.assess({"level": 7, "offset": 5, "unit": "mmol_l"}).result
    assert result.reading("gap").display_value == pytest.approx(2.0)


def test_default_risk_mapper_is_not_stored_on_config():
    config = make_config()
    AssessmentOrchestrator(config)
    assert config.risk_mapper is None
