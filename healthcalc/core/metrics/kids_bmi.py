"""
Kids BMI Assessment

BMI-for-age percentile for children 2-19 using sex-specific reference
percentiles, interpolated across age and across percentile columns.
"""
from typing import Any, Dict, Mapping

import numpy as np

from healthcalc.core.engine.base import FlagLevel
from healthcalc.core.engine.classifier import INF, Severity, build_table
from healthcalc.core.engine.orchestrator import (
    AssessmentContext, Derivation, FlagRule, MetricConfig, ReadingSpec,
)
from healthcalc.core.engine.units import QuantityKind, Unit, UnitBinding
from healthcalc.core.metrics.bmi import bmi_from_values
from healthcalc.core.validation.schema import (
    CrossFieldRule, InputSchema, boolean, choice, integer, number,
)

PERCENTILES = np.array([5, 10, 25, 50, 75, 85, 95], dtype=float)
AGE_MONTHS = np.array([24, 36, 48, 60, 84, 120, 156, 192, 228], dtype=float)

# Simplified CDC BMI-for-age reference, one row per AGE_MONTHS entry
BMI_REFERENCE = {
    "male": np.array([
        [14.8, 15.2, 15.8, 16.5, 17.3, 17.8, 19.3],
        [14.3, 14.7, 15.3, 16.0, 16.9, 17.5, 19.2],
        [13.9, 14.3, 14.9, 15.7, 16.8, 17.6, 19.4],
        [13.7, 14.1, 14.7, 15.6, 16.8, 17.7, 19.8],
        [13.6, 14.0, 14.7, 15.7, 17.1, 18.2, 20.6],
        [14.0, 14.5, 15.4, 16.7, 18.4, 19.8, 23.0],
        [15.1, 15.7, 16.9, 18.5, 20.8, 22.6, 26.8],
        [16.6, 17.3, 18.6, 20.5, 23.1, 25.2, 29.7],
        [17.8, 18.6, 20.0, 22.0, 24.8, 27.1, 31.8],
    ]),
    "female": np.array([
        [14.4, 14.8, 15.4, 16.2, 17.1, 17.7, 19.2],
        [13.9, 14.3, 14.9, 15.8, 16.9, 17.6, 19.4],
        [13.6, 14.0, 14.6, 15.5, 16.8, 17.8, 19.9],
        [13.4, 13.8, 14.4, 15.4, 16.8, 18.0, 20.4],
        [13.3, 13.7, 14.4, 15.6, 17.4, 18.9, 22.1],
        [13.8, 14.3, 15.3, 16.9, 19.3, 21.4, 25.6],
        [15.4, 16.0, 17.3, 19.4, 22.1, 24.2, 28.6],
        [16.3, 17.0, 18.4, 20.7, 23.7, 25.9, 30.7],
        [16.8, 17.5, 19.0, 21.3, 24.4, 26.8, 32.0],
    ]),
}

PERCENTILE_TABLE = build_table("bmi_percentile", [
    (5, "Underweight", Severity.CAUTION,
     "Below the 5th percentile for children of the same age and sex", "<5th percentile", [
         "Consult with pediatrician about healthy weight gain strategies",
         "Focus on nutrient-dense, calorie-rich foods",
         "Ensure adequate protein intake for growth",
     ]),
    (85, "Healthy Weight", Severity.OK,
     "Between the 5th and 85th percentile for children of the same age and sex", "5th-85th percentile", [
         "Maintain current healthy eating patterns",
         "Continue regular physical activity",
         "Regular check-ups with healthcare provider",
     ]),
    (95, "Overweight", Severity.CAUTION,
     "Between the 85th and 95th percentile for children of the same age and sex", "85th-95th percentile", [
         "Focus on healthy lifestyle changes for the whole family",
         "Limit sugary drinks and high-calorie snacks",
         "Consult with pediatrician for guidance",
     ]),
    (INF, "Obese", Severity.WARNING,
     "At or above the 95th percentile for children of the same age and sex", ">=95th percentile", [
         "Work with healthcare team to develop weight management plan",
         "Focus on family-based lifestyle interventions",
         "Regular monitoring by healthcare professionals",
     ]),
])


def reference_percentiles(age_months: float, gender: str) -> np.ndarray:
    """BMI values at PERCENTILES for this age, linearly interpolated between reference ages."""
    table = BMI_REFERENCE[gender]
    return np.array([np.interp(age_months, AGE_MONTHS, table[:, i]) for i in range(len(PERCENTILES))])


def bmi_percentile(bmi: float, age_months: float, gender: str) -> float:
    """
    Percentile rank of a BMI value.

    Outside the 5th-95th reference band the rank extrapolates slowly and is
    capped to 1-99.
    """
    reference = reference_percentiles(age_months, gender)
    if bmi < reference[0]:
        return float(max(1.0, 5 - (reference[0] - bmi) / reference[0] * 4))
    if bmi > reference[-1]:
        return float(min(99.0, 95 + (bmi - reference[-1]) / reference[-1] * 4))
    return float(np.interp(bmi, reference, PERCENTILES))


def _percentile_from_values(values: Mapping[str, Any]) -> float:
    age_months = values["age"] * 12 + (values.get("age_months") or 0)
    return bmi_percentile(values["bmi"], age_months, values["gender"])


HEIGHT_BINDING = UnitBinding(QuantityKind.HEIGHT, "height_unit", {"cm": Unit.CM, "in": Unit.INCH})
WEIGHT_BINDING = UnitBinding(QuantityKind.WEIGHT, "weight_unit", {"kg": Unit.KG, "lb": Unit.LB})


def _height_cm(values: Mapping[str, Any]) -> float:
    return HEIGHT_BINDING.to_canonical(values["height"], values)


SCHEMA = InputSchema("kids_bmi", [
    integer("age", 2, 19),
    integer("age_months", 0, 11, required=False, default=0),
    choice("gender", ["male", "female"]),
    number("height", 50, 250, unit=HEIGHT_BINDING),
    choice("height_unit", ["cm", "in"], default="cm"),
    number("weight", 5, 200, unit=WEIGHT_BINDING),
    choice("weight_unit", ["kg", "lb"], default="kg"),
    boolean("recent_growth_concerns"),
], rules=[
    CrossFieldRule("height", ("age", "height", "height_unit"),
                   lambda v: not (v["age"] < 5 and _height_cm(v) > 150),
                   "Height seems unusually high for this age"),
    CrossFieldRule("height", ("age", "height", "height_unit"),
                   lambda v: not (v["age"] > 15 and _height_cm(v) < 120),
                   "Height seems unusually low for this age"),
])

FLAGS = [
    FlagRule(
        "outside_normal_range", FlagLevel.WARNING,
        lambda ctx: ctx.get("bmi_percentile", 50) < 5 or ctx.get("bmi_percentile", 50) > 95,
        "BMI is outside the normal range for age and sex",
        [
            "Schedule an appointment with your pediatrician",
            "Discuss growth patterns and family history",
        ],
    ),
    FlagRule(
        "growth_concerns", FlagLevel.CAUTION,
        lambda ctx: ctx.values.get("recent_growth_concerns") is True,
        "Recent growth concerns noted",
        [
            "Keep detailed growth tracking records",
            "Discuss concerns with healthcare provider",
        ],
    ),
]


def build_details(ctx: AssessmentContext) -> Dict[str, Any]:
    percentile = ctx.values["bmi_percentile"]
    if percentile < 50:
        comparison = f"{round(50 - percentile)} percentile points below average"
    elif percentile > 50:
        comparison = f"{round(percentile - 50)} percentile points above average"
    else:
        comparison = "At the average"
    age = ctx.values["age"]
    return {
        "bmi": round(ctx.values["bmi"], 1),
        "percentile": round(percentile),
        "comparison_to_average": comparison,
        "daily_activity_minutes": 180 if age <= 5 else 60,
        "sleep_hours": "10-14 hours" if age <= 5 else "9-11 hours" if age <= 13 else "8-10 hours",
    }


CONFIG = MetricConfig(
    name="kids_bmi",
    title="Kids BMI Calculator",
    description="BMI-for-age percentile for children and teens",
    schema=SCHEMA,
    readings=[
        ReadingSpec("bmi_percentile", PERCENTILE_TABLE, "BMI Percentile", unit="percentile", precision=0),
    ],
    derivations=[
        Derivation("bmi", ("weight", "height"), bmi_from_values),
        Derivation("bmi_percentile", ("bmi", "age", "gender"), _percentile_from_values),
    ],
    flags=FLAGS,
    details=build_details,
    disclaimer="Children's BMI is interpreted against age and sex references. Ask your pediatrician "
               "about growth concerns.",
)
