"""
Calorie Assessment

Mifflin-St Jeor BMR, activity-scaled daily energy expenditure, a goal
calorie target with a safety floor, and a macronutrient split.
"""
from typing import Any, Dict, Mapping

from healthcalc.core.engine.base import FlagLevel
from healthcalc.core.engine.orchestrator import (
    AssessmentContext, Derivation, FlagRule, MetricConfig, ReadingSpec,
)
from healthcalc.core.engine.units import QuantityKind, Unit, UnitBinding
from healthcalc.core.metrics.bmi import BMI_TABLE, bmi_from_values
from healthcalc.core.validation.schema import InputSchema, choice, number

ACTIVITY_MULTIPLIERS = {
    "sedentary": 1.2,
    "light": 1.375,
    "moderate": 1.55,
    "very_active": 1.725,
    "extra_active": 1.9,
}

# kcal/day deficit or surplus
WEIGHT_CHANGE_RATES = {"slow": 250, "moderate": 500, "fast": 750}
KCAL_PER_TENTH_KG = 1100

MINIMUM_CALORIES = {"female": 1200, "male": 1500}

MACRO_SPLIT = {
    "protein": (0.25, 4),
    "carbs": (0.45, 4),
    "fat": (0.30, 9),
}

ACTIVITY_INFO = {
    "sedentary": ("Sedentary", "Little to no exercise, desk job"),
    "light": ("Lightly Active", "Light exercise 1-3 days per week"),
    "moderate": ("Moderately Active", "Moderate exercise 3-5 days per week"),
    "very_active": ("Very Active", "Hard exercise 6-7 days per week"),
    "extra_active": ("Extra Active", "Very hard exercise, physical job, or training twice a day"),
}

NUTRITION_TIPS = {
    "lose_weight": [
        {"category": "Protein", "tip": "Prioritize lean protein sources to maintain muscle mass during weight loss"},
        {"category": "Hydration", "tip": "Drink water before meals to help control portion sizes"},
        {"category": "Fiber", "tip": "Include high-fiber foods to increase satiety and support digestion"},
    ],
    "gain_weight": [
        {"category": "Frequency", "tip": "Eat smaller, more frequent meals to increase total calorie intake"},
        {"category": "Protein", "tip": "Include protein with each meal to support muscle growth"},
        {"category": "Healthy Fats", "tip": "Add nuts, oils, and avocados for calorie-dense nutrition"},
    ],
    "maintain_weight": [
        {"category": "Balance", "tip": "Focus on a balanced diet with all macronutrients represented"},
        {"category": "Quality", "tip": "Choose whole, minimally processed foods when possible"},
        {"category": "Consistency", "tip": "Maintain consistent meal timing to support metabolic health"},
    ],
}


def mifflin_st_jeor(weight_kg: float, height_cm: float, age: float, gender: str) -> float:
    """Basal metabolic rate in kcal/day."""
    base = 10 * weight_kg + 6.25 * height_cm - 5 * age
    return base + 5 if gender == "male" else base - 161


def _bmr(values: Mapping[str, Any]) -> float:
    return mifflin_st_jeor(values["weight"], values["height"], values["age"], values["gender"])


def _tdee(values: Mapping[str, Any]) -> float:
    return values["bmr"] * ACTIVITY_MULTIPLIERS[values["activity_level"]]


def _calorie_adjustment(values: Mapping[str, Any]) -> int:
    goal = values["goal"]
    if goal == "maintain_weight":
        return 0
    adjustment = WEIGHT_CHANGE_RATES[values["weight_change_rate"]]
    return -adjustment if goal == "lose_weight" else adjustment


def _unclamped_goal(values: Mapping[str, Any]) -> int:
    return round(round(values["tdee"]) + _calorie_adjustment(values))


def _goal_calories(values: Mapping[str, Any]) -> int:
    return max(_unclamped_goal(values), MINIMUM_CALORIES[values["gender"]])


SCHEMA = InputSchema("calorie", [
    choice("gender", ["male", "female"]),
    number("age", 15, 120),
    number("weight", 30, 300, unit=UnitBinding(QuantityKind.WEIGHT, "weight_unit",
                                                {"kg": Unit.KG, "lb": Unit.LB})),
    choice("weight_unit", ["kg", "lb"], default="kg"),
    number("height", 100, 250, unit=UnitBinding(QuantityKind.HEIGHT, "height_unit",
                                                 {"cm": Unit.CM, "in": Unit.INCH})),
    choice("height_unit", ["cm", "in"], default="cm"),
    choice("activity_level", list(ACTIVITY_MULTIPLIERS)),
    choice("goal", ["lose_weight", "maintain_weight", "gain_weight"], default="maintain_weight"),
    choice("weight_change_rate", list(WEIGHT_CHANGE_RATES), default="moderate"),
])

FLAGS = [
    FlagRule(
        "minimum_calories_applied", FlagLevel.CAUTION,
        lambda ctx: ctx.get("goal_calories") is not None
        and _unclamped_goal(ctx.values) < MINIMUM_CALORIES[ctx.values["gender"]],
        lambda ctx: (
            f"Goal raised to the minimum of {MINIMUM_CALORIES[ctx.values['gender']]} kcal/day; "
            "a larger deficit is not recommended without medical supervision"
        ),
        ["Choose a slower rate of weight change", "Consult a dietitian for very low calorie plans"],
    ),
]


def build_details(ctx: AssessmentContext) -> Dict[str, Any]:
    goal_calories = ctx.values["goal_calories"]
    macros = {}
    for name, (share, kcal_per_gram) in MACRO_SPLIT.items():
        calories = goal_calories * share
        macros[name] = {
            "grams": round(calories / kcal_per_gram),
            "calories": round(calories),
            "percentage": round(share * 100),
        }
    level, description = ACTIVITY_INFO[ctx.values["activity_level"]]
    return {
        "bmr": round(ctx.values["bmr"]),
        "tdee": round(ctx.values["tdee"]),
        "maintenance_calories": round(ctx.values["tdee"]),
        "goal_calories": goal_calories,
        "weekly_weight_change_kg": round(_calorie_adjustment(ctx.values) / KCAL_PER_TENTH_KG, 1),
        "macros": macros,
        "activity": {"level": level, "description": description},
        "nutrition_tips": NUTRITION_TIPS[ctx.values["goal"]],
    }


CONFIG = MetricConfig(
    name="calorie",
    title="Calorie Calculator",
    description="Daily calorie needs and macronutrient targets",
    schema=SCHEMA,
    readings=[ReadingSpec("bmi", BMI_TABLE, "Body Mass Index", unit="kg/m2")],
    derivations=[
        Derivation("bmi", ("weight", "height"), bmi_from_values),
        Derivation("bmr", ("weight", "height", "age", "gender"), _bmr),
        Derivation("tdee", ("bmr", "activity_level"), _tdee),
        Derivation("goal_calories", ("tdee", "goal", "gender"), _goal_calories),
    ],
    flags=FLAGS,
    details=build_details,
    disclaimer="Calorie estimates are approximations; individual needs vary.",
)
