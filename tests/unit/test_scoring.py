import pytest

from healthcalc.core.engine.classifier import INF, build_table
from healthcalc.core.engine.errors import ConfigurationError
from healthcalc.core.engine.scoring import (
    RiskFactorPredicate, RiskModel, above, all_of, any_of, at_least, below, between, contains,
    is_true, one_of,
)

TIERS = build_table("demo_risk", [(2, "Low"), (5, "Moderate"), (INF, "High")])


def make_model(**kwargs):
    return RiskModel("demo", [
        RiskFactorPredicate("Older", 2, at_least("age", 50)),
        RiskFactorPredicate("Smoker", 3, is_true("smoker")),
        RiskFactorPredicate("Active", -4, one_of("activity", "high")),
    ], TIERS, **kwargs)


def test_score_sums_present_weights():
    result = make_model().score({"age": 60, "smoker": True})
    assert result.score == 5
    assert result.tier.label == "High"
    assert [f.name for f in result.present_factors] == ["Older", "Smoker"]


def test_score_is_floored_at_zero():
    result = make_model().score({"age": 30, "activity": "high"})
    assert result.score == 0
    assert result.tier.label == "Low"


def test_every_factor_reported_in_declaration_order():
    result = make_model().score({})
    assert [f.name for f in result.factors] == ["Older", "Smoker", "Active"]
    assert not any(f.present for f in result.factors)
    assert result.factors[2].protective


def test_adding_a_positive_factor_never_lowers_the_score():
    model = make_model()
    without = model.score({"age": 60})
    with_smoking = model.score({"age": 60, "smoker": True})
    assert with_smoking.score >= without.score
    assert TIERS.index_of(with_smoking.score) >= TIERS.index_of(without.score)


def test_required_fields():
    model = make_model(required_fields=("age", "gender"))
    assert model.missing_fields({"age": 40}) == ["gender"]
    assert not model.is_applicable({"age": 40})
    assert model.is_applicable({"age": 40, "gender": "male"})


def test_duplicate_factor_names_rejected():
    with pytest.raises(ConfigurationError):
        RiskModel("dup", [
            RiskFactorPredicate("A", 1, is_true("a")),
            RiskFactorPredicate("A", 2, is_true("b")),
        ], TIERS)


def test_non_integer_weight_rejected():
    with pytest.raises(ConfigurationError):
        RiskModel("float", [RiskFactorPredicate("A", 1.5, is_true("a"))], TIERS)


def test_predicates_ignore_missing_values():
    for predicate in (at_least("x", 1), above("x", 1), below("x", 1), between("x", 0, 2)):
        assert predicate({}) is False
        assert predicate({"x": None}) is False


def test_predicate_builders():
    assert between("bmi", 25, 30)({"bmi": 25})
    assert not between("bmi", 25, 30)({"bmi": 30})
    assert contains("conditions", "fever")({"conditions": ("fever", "diabetes")})
    assert not contains("conditions", "fever")({"conditions": None})
    assert all_of(is_true("a"), is_true("b"))({"a": True, "b": True})
    assert not all_of(is_true("a"), is_true("b"))({"a": True})
    assert any_of(is_true("a"), is_true("b"))({"b": True})
    assert not any_of(is_true("a"), is_true("b"))({})
    assert not is_true("a")({"a": "yes"})
