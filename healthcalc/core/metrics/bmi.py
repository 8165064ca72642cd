"""
BMI Assessment

Adult body mass index with WHO categories and the healthy weight range for
the entered height.
"""
from typing import Any, Dict, Mapping

from healthcalc.core.engine.classifier import INF, Severity, build_table
from healthcalc.core.engine.orchestrator import AssessmentContext, Derivation, MetricConfig, ReadingSpec
from healthcalc.core.engine.units import QuantityKind, Unit, UnitBinding
from healthcalc.core.validation.schema import InputSchema, choice, number

HEALTHY_BMI_RANGE = (18.5, 24.9)

WEIGHT_BINDING = UnitBinding(QuantityKind.WEIGHT, "unit_system", {"metric": Unit.KG, "imperial": Unit.LB})
HEIGHT_BINDING = UnitBinding(QuantityKind.HEIGHT, "unit_system", {"metric": Unit.CM, "imperial": Unit.INCH})

BMI_TABLE = build_table("bmi", [
    (18.5, "Underweight", Severity.CAUTION, "Your weight is below the healthy range for your height", "<18.5", [
        "Talk to your healthcare provider about healthy weight gain",
        "Focus on nutrient-dense foods",
    ]),
    (25, "Normal weight", Severity.OK, "Your weight is in the healthy range for your height", "18.5-24.9", [
        "Maintain your current healthy habits",
        "Stay physically active",
    ]),
    (30, "Overweight", Severity.CAUTION, "Your weight is above the healthy range for your height", "25-29.9", [
        "Increase physical activity",
        "Review portion sizes and food choices",
    ]),
    (INF, "Obese", Severity.WARNING, "Your weight is well above the healthy range for your height", ">=30", [
        "Discuss a weight management plan with your healthcare provider",
        "Set gradual, sustainable goals",
    ]),
])


def body_mass_index(weight_kg: float, height_cm: float) -> float:
    """Unrounded BMI in kg/m2."""
    height_m = height_cm / 100
    return weight_kg / (height_m * height_m)


def bmi_from_values(values: Mapping[str, Any]) -> float:
    return body_mass_index(values["weight"], values["height"])


def healthy_weight_range(height_cm: float) -> Dict[str, float]:
    """Weight (kg) bounds for BMI 18.5-24.9 at this height."""
    height_m = height_cm / 100
    low, high = HEALTHY_BMI_RANGE
    return {"min": low * height_m * height_m, "max": high * height_m * height_m}


SCHEMA = InputSchema("bmi", [
    number("weight", 20, 500, unit=WEIGHT_BINDING),
    number("height", 50, 300, unit=HEIGHT_BINDING),
    choice("unit_system", ["metric", "imperial"], default="metric"),
    number("age", 2, 120, required=False),
    choice("gender", ["male", "female"], required=False),
])


def build_details(ctx: AssessmentContext) -> Dict[str, Any]:
    ideal = healthy_weight_range(ctx.values["height"])
    unit = WEIGHT_BINDING.entered_unit(ctx.values)
    return {
        "ideal_weight": {
            "min": round(WEIGHT_BINDING.from_canonical(ideal["min"], ctx.values), 1),
            "max": round(WEIGHT_BINDING.from_canonical(ideal["max"], ctx.values), 1),
            "unit": unit.symbol,
        },
        "bmi_prime": round(ctx.values["bmi"] / 25, 2),
    }


CONFIG = MetricConfig(
    name="bmi",
    title="BMI Calculator",
    description="Adult body mass index and healthy weight range",
    schema=SCHEMA,
    readings=[ReadingSpec("bmi", BMI_TABLE, "Body Mass Index", unit="kg/m2")],
    derivations=[Derivation("bmi", ("weight", "height"), bmi_from_values)],
    details=build_details,
    disclaimer="BMI does not distinguish muscle from fat and is not a diagnostic tool.",
)
