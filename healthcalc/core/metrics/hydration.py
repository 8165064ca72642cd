"""
Hydration Assessment

Daily fluid need as a weighted blend of three baseline formulas plus
exercise, climate and condition adjustments. A reported current intake is
classified as a ratio of the computed need.
"""
from typing import Any, Dict, List, Mapping

from healthcalc.core.engine.base import FlagLevel
from healthcalc.core.engine.classifier import INF, Severity, build_table
from healthcalc.core.engine.orchestrator import (
    AssessmentContext, Derivation, FlagRule, MetricConfig, ReadingSpec,
)
from healthcalc.core.engine.units import QuantityKind, Unit, UnitBinding, convert
from healthcalc.core.validation.schema import InputSchema, choice, multi_choice, number

WAKING_HOURS = 16

EXERCISE_LITERS_PER_HOUR = {"low": 0.3, "moderate": 0.5, "high": 0.8}
SWEAT_MULTIPLIERS = {"low": 0.8, "normal": 1.0, "high": 1.3}
CLIMATE_MULTIPLIERS = {"cool": 0.0, "temperate": 0.05, "warm": 0.15, "hot": 0.25, "very_hot": 0.4}
# share of baseline added per condition
CONDITION_MULTIPLIERS = {
    "diabetes": 0.10,
    "kidney_disease": 0.05,
    "heart_disease": 0.05,
    "fever": 0.13,
    "vomiting_diarrhea": 0.20,
}
PREGNANCY_LITERS = {"pregnant": 0.3, "breastfeeding": 0.7}

INTAKE_BINDING = UnitBinding(QuantityKind.VOLUME, "intake_unit", {"L": Unit.LITER, "fl_oz": Unit.FL_OZ})

INTAKE_TABLE = build_table("intake_ratio", [
    (0.9, "Low", Severity.CAUTION, "You drink less than your estimated daily need", "<90% of need", [
        "Increase intake gradually through the day",
        "Keep a water bottle within reach",
    ]),
    (1.1, "Adequate", Severity.OK, "Your intake matches your estimated daily need", "90-110% of need", [
        "Keep up your current drinking habits",
    ]),
    (INF, "High", Severity.CAUTION, "You drink more than your estimated daily need", ">=110% of need", [
        "There is no benefit in drinking well beyond thirst",
        "Watch for signs of overhydration",
    ]),
])


def baseline_need(weight: float, age: float, gender: str) -> float:
    """Liters/day: 40% weight-based, 30% Holliday-Segar, 30% age/gender-adjusted."""
    weight_based = weight * 35 / 1000
    if weight <= 10:
        holliday_segar = weight * 100 / 1000
    elif weight <= 20:
        holliday_segar = (1000 + (weight - 10) * 50) / 1000
    else:
        holliday_segar = (1500 + (weight - 20) * 20) / 1000
    if gender == "male":
        ml_per_kg = 40 if age < 30 else 35 if age < 55 else 30
    else:
        ml_per_kg = 35 if age < 30 else 31 if age < 55 else 27
    age_gender = weight * ml_per_kg / 1000
    return weight_based * 0.4 + holliday_segar * 0.3 + age_gender * 0.3


def activity_adjustment(duration_min: float, intensity: str, sweat_rate: str, weight: float) -> float:
    if not duration_min:
        return 0.0
    weight_factor = 1.1 if weight > 70 else 0.9 if weight < 60 else 1.0
    return (EXERCISE_LITERS_PER_HOUR[intensity] * duration_min / 60
            * SWEAT_MULTIPLIERS[sweat_rate] * weight_factor)


def condition_adjustment(values: Mapping[str, Any], baseline: float) -> float:
    adjustment = sum(baseline * CONDITION_MULTIPLIERS.get(c, 0) for c in values["health_conditions"])
    adjustment += PREGNANCY_LITERS.get(values["pregnancy_breastfeeding"], 0)
    caffeine = values["caffeine"]
    if caffeine > 400:
        adjustment += 0.2
    elif caffeine > 200:
        adjustment += 0.1
    adjustment += values["alcohol"] * 0.1
    return adjustment


def _adjustments(values: Mapping[str, Any]) -> Dict[str, float]:
    baseline = values["baseline_need"]
    return {
        "activity": activity_adjustment(values["exercise_duration"], values["exercise_intensity"],
                                        values["sweat_rate"], values["weight"]),
        "climate": baseline * CLIMATE_MULTIPLIERS[values["climate"]],
        "conditions": condition_adjustment(values, baseline),
    }


def _total_need(values: Mapping[str, Any]) -> float:
    return values["baseline_need"] + sum(_adjustments(values).values())


SCHEMA = InputSchema("hydration", [
    number("weight", 40, 300, label="Weight (kg)"),
    number("height", 100, 250, label="Height (cm)"),
    number("age", 18, 100),
    choice("gender", ["male", "female"]),
    choice("activity_level", ["sedentary", "light", "moderate", "active", "very_active"]),
    choice("climate", list(CLIMATE_MULTIPLIERS)),
    number("exercise_duration", 0, 480, default=0, label="Exercise duration (minutes)"),
    choice("exercise_intensity", list(EXERCISE_LITERS_PER_HOUR), default="moderate"),
    choice("sweat_rate", list(SWEAT_MULTIPLIERS), default="normal"),
    multi_choice("health_conditions", ["none"] + list(CONDITION_MULTIPLIERS)),
    choice("pregnancy_breastfeeding", ["none", "pregnant", "breastfeeding"], default="none"),
    number("caffeine", 0, 2000, default=0, label="Caffeine (mg/day)"),
    number("alcohol", 0, 20, default=0, label="Alcohol (drinks/day)"),
    number("current_intake", 0, 10, required=False, unit=INTAKE_BINDING),
    choice("intake_unit", ["L", "fl_oz"], default="L"),
])

FLAGS = [
    FlagRule(
        "fluid_loss_illness", FlagLevel.CAUTION,
        lambda ctx: any(c in ctx.get("health_conditions", ()) for c in ("fever", "vomiting_diarrhea")),
        "Fever, vomiting or diarrhea increase fluid losses; consider oral rehydration solutions",
        [
            "Sip fluids frequently in small amounts",
            "Seek care if you cannot keep fluids down",
        ],
    ),
    FlagRule(
        "fluid_restriction_conditions", FlagLevel.WARNING,
        lambda ctx: any(c in ctx.get("health_conditions", ()) for c in ("kidney_disease", "heart_disease")),
        "Kidney or heart disease may require a fluid limit set by your doctor",
        [
            "Confirm your daily fluid target with your healthcare provider",
            "Do not increase intake beyond prescribed limits",
        ],
    ),
]


def _schedule(values: Mapping[str, Any], total: float) -> List[Dict[str, str]]:
    duration = values["exercise_duration"]
    schedule = [{"timing": "Upon Waking", "amount": "500-750ml",
                 "reason": "Rehydrate after overnight fluid loss"}]
    if duration > 0:
        schedule.append({"timing": "2-3 hours before exercise", "amount": "400-600ml",
                         "reason": "Ensure optimal hydration status before activity"})
    if duration > 30:
        schedule.append({"timing": "Every 15-20 minutes during exercise", "amount": "150-250ml",
                         "reason": "Replace fluid losses and maintain performance"})
    if duration > 0:
        schedule.append({"timing": "Within 2 hours after exercise", "amount": "150% of fluid lost",
                         "reason": "Fully restore hydration status and aid recovery"})
    schedule.append({"timing": "Throughout the day",
                     "amount": f"{round(total * 1000 / WAKING_HOURS)}ml per hour",
                     "reason": "Maintain steady hydration"})
    return schedule


def _insights(values: Mapping[str, Any]) -> List[Dict[str, str]]:
    insights = []
    if values["weight"] > 90:
        insights.append({"category": "Body Size",
                         "insight": "Your larger body size means you need more fluids."})
    if values["age"] > 65:
        insights.append({"category": "Age Factor",
                         "insight": "Thirst sensation decreases with age. Drink on a schedule "
                                    "and monitor urine color."})
    if values["exercise_duration"] > 60:
        insights.append({"category": "Exercise Duration",
                         "insight": "Consider electrolyte replacement for activities longer than 1 hour."})
    if values["climate"] in ("hot", "very_hot"):
        insights.append({"category": "Climate Impact",
                         "insight": "Hot climates increase fluid losses through sweating and breathing."})
    if values["caffeine"] > 400:
        insights.append({"category": "Caffeine Intake",
                         "insight": "High caffeine intake has a mild diuretic effect."})
    return insights


def build_details(ctx: AssessmentContext) -> Dict[str, Any]:
    values = ctx.values
    total = values["total_need"]
    adjustments = _adjustments(values)
    ounces = convert(total, Unit.LITER, Unit.FL_OZ, QuantityKind.VOLUME)
    details: Dict[str, Any] = {
        "baseline_need_l": round(values["baseline_need"], 2),
        "activity_adjustment_l": round(adjustments["activity"], 2),
        "climate_adjustment_l": round(adjustments["climate"], 2),
        "condition_adjustment_l": round(adjustments["conditions"], 2),
        "total_daily_need_l": round(total, 2),
        "total_daily_need_oz": round(ounces),
        "total_daily_need_cups": round(ounces / 8, 1),
        "hourly_intake_ml": round(total * 1000 / WAKING_HOURS),
        "schedule": _schedule(values, total),
        "insights": _insights(values),
    }
    if values.get("current_intake") is not None:
        details["intake_difference_l"] = round(values["current_intake"] - total, 2)
    return details


CONFIG = MetricConfig(
    name="hydration",
    title="Hydration Calculator",
    description="Daily fluid needs with activity, climate and condition adjustments",
    schema=SCHEMA,
    readings=[ReadingSpec("intake_ratio", INTAKE_TABLE, "Intake vs Need", unit="ratio", precision=2)],
    derivations=[
        Derivation("baseline_need", ("weight", "age", "gender"),
                   lambda v: baseline_need(v["weight"], v["age"], v["gender"])),
        Derivation("total_need", ("baseline_need",), _total_need),
        Derivation("intake_ratio", ("current_intake", "total_need"),
                   lambda v: v["current_intake"] / v["total_need"]),
    ],
    flags=FLAGS,
    details=build_details,
    disclaimer="Fluid needs vary with health status. People with kidney or heart conditions "
               "should follow their clinician's fluid guidance.",
)
