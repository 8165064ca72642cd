"""
BMR Assessment

Basal metabolic rate by Mifflin-St Jeor, Harris-Benedict or Katch-McArdle,
adjusted for thyroid, diabetes, smoking and caffeine, then scaled to daily
energy expenditure and a goal calorie target. The BMR is compared with the
reference BMR of an average adult of the same age and sex.
"""
from typing import Any, Dict, List, Mapping

from healthcalc.core.engine.base import FlagLevel
from healthcalc.core.engine.classifier import INF, Severity, build_table
from healthcalc.core.engine.orchestrator import (
    AssessmentContext, Derivation, FlagRule, MetricConfig, ReadingSpec,
)
from healthcalc.core.engine.units import QuantityKind, Unit, UnitBinding
from healthcalc.core.metrics.calorie import MINIMUM_CALORIES, mifflin_st_jeor
from healthcalc.core.validation.schema import (
    CrossFieldRule, InputSchema, boolean, choice, integer, number,
)

ACTIVITY_MULTIPLIERS = {
    "sedentary": 1.2,
    "lightly_active": 1.375,
    "moderately_active": 1.55,
    "very_active": 1.725,
    "extremely_active": 1.9,
}

THYROID_FACTORS = {"none": 1.0, "hypothyroid": 0.85, "hyperthyroid": 1.20}
DIABETES_FACTOR = 1.05
SMOKING_FACTOR = 1.10
CAFFEINE_PER_DRINK = 0.02
CAFFEINE_CAP = 0.10

# 7700 kcal per kg of body fat, spread over a week
KCAL_PER_KG_PER_DAY = 1100
MUSCLE_GAIN_SURPLUS_SHARE = 0.7
LARGE_SURPLUS_KCAL = 1000

BODY_FAT_LIMITS = {"male": (3, 35), "female": (10, 45)}

# weight kg, height cm of the average adult the BMR is compared with
REFERENCE_BODY = {"male": (70, 175), "female": (60, 165)}

PROTEIN_G_PER_KG = {"gain_muscle": 2.2, "lose_weight": 2.0}
FIBER_G_PER_1000_KCAL = 14

FORMULAS = {
    "mifflin_st_jeor": ("Mifflin-St Jeor equation (most accurate for general population)", "high"),
    "harris_benedict": ("Harris-Benedict equation (revised 1984)", "moderate"),
    "katch_mcardle": ("Katch-McArdle equation (most accurate for lean individuals)", "high"),
}

BMR_RATIO_TABLE = build_table("bmr_ratio", [
    (0.9, "Below Average", Severity.CAUTION, "BMR more than 10% below the average for your age and sex", "<0.9", [
        "Include resistance training 2-3 times per week to build muscle mass",
        "Eat adequate protein to support muscle maintenance",
    ]),
    (1.1, "Average", Severity.OK, "BMR within 10% of the average for your age and sex", "0.9-1.1", [
        "Stay active and keep muscle mass with regular strength training",
    ]),
    (INF, "Above Average", Severity.OK, "BMR more than 10% above the average for your age and sex", ">=1.1", [
        "Match your intake to your higher energy needs",
    ]),
])

ACTIVITY_PLANS = {
    "deficit": [
        {"type": "Brisk Walking", "duration": "45 minutes", "frequency": "5 days/week", "calories_burned": 300},
        {"type": "Strength Training", "duration": "45 minutes", "frequency": "3 days/week", "calories_burned": 250},
        {"type": "High-Intensity Interval Training", "duration": "20 minutes", "frequency": "3 days/week",
         "calories_burned": 400},
    ],
    "surplus": [
        {"type": "Strength Training", "duration": "60 minutes", "frequency": "4 days/week", "calories_burned": 300},
        {"type": "Light Cardio", "duration": "30 minutes", "frequency": "2 days/week", "calories_burned": 200},
    ],
    "maintenance": [
        {"type": "Mixed Cardio", "duration": "30 minutes", "frequency": "4 days/week", "calories_burned": 250},
        {"type": "Strength Training", "duration": "45 minutes", "frequency": "2 days/week", "calories_burned": 200},
    ],
}

NUTRITION_TIPS = [
    {"category": "Meal Timing", "tip": "Eat regular meals every 3-4 hours", "importance": "medium"},
    {"category": "Hydration", "tip": "Drink plenty of water; dehydration can slow metabolism",
     "importance": "high"},
    {"category": "Protein", "tip": "Include protein in every meal to support muscle maintenance",
     "importance": "high"},
    {"category": "Fiber", "tip": "Choose high-fiber foods; they take more energy to digest", "importance": "medium"},
]
GOAL_TIPS = {
    "lose_weight": {"category": "Calorie Cycling",
                    "tip": "Consider 1-2 higher calorie days per week to limit metabolic adaptation",
                    "importance": "medium"},
    "gain_muscle": {"category": "Post-Workout",
                    "tip": "Have protein and carbohydrates within 30 minutes after strength training",
                    "importance": "high"},
}


def harris_benedict(weight_kg: float, height_cm: float, age: float, gender: str) -> float:
    """Revised (1984) Harris-Benedict BMR in kcal/day."""
    if gender == "male":
        return 88.362 + 13.397 * weight_kg + 4.799 * height_cm - 5.677 * age
    return 447.593 + 9.247 * weight_kg + 3.098 * height_cm - 4.330 * age


def katch_mcardle(weight_kg: float, body_fat_percentage: float) -> float:
    lean_mass = weight_kg * (1 - body_fat_percentage / 100)
    return 370 + 21.6 * lean_mass


def reference_bmr(age: float, gender: str) -> float:
    weight, height = REFERENCE_BODY[gender]
    return mifflin_st_jeor(weight, height, age, gender)


def metabolic_factor(values: Mapping[str, Any]) -> float:
    """Combined multiplier for conditions and habits that change metabolic rate."""
    factor = THYROID_FACTORS[values["thyroid_condition"]]
    if values["diabetes_type"] != "none":
        factor *= DIABETES_FACTOR
    if values["smoking_status"] == "current":
        factor *= SMOKING_FACTOR
    factor *= 1 + min(values["caffeine_drinks"] * CAFFEINE_PER_DRINK, CAFFEINE_CAP)
    return factor


def _bmr(values: Mapping[str, Any]) -> float:
    formula = values["formula"]
    if formula == "katch_mcardle":
        bmr = katch_mcardle(values["weight"], values["body_fat_percentage"])
    elif formula == "harris_benedict":
        bmr = harris_benedict(values["weight"], values["height"], values["age"], values["gender"])
    else:
        bmr = mifflin_st_jeor(values["weight"], values["height"], values["age"], values["gender"])
    return bmr * metabolic_factor(values)


def _bmr_ratio(values: Mapping[str, Any]) -> float:
    return values["bmr"] / reference_bmr(values["age"], values["gender"])


def _tdee(values: Mapping[str, Any]) -> float:
    return values["bmr"] * ACTIVITY_MULTIPLIERS[values["activity_level"]]


def _daily_change(values: Mapping[str, Any]) -> float:
    change = values["weight_change_rate"] * KCAL_PER_KG_PER_DAY
    goal = values["goal"]
    if goal == "maintain":
        return 0
    if goal == "lose_weight":
        return -change
    if goal == "gain_muscle":
        return change * MUSCLE_GAIN_SURPLUS_SHARE
    return change


def _unclamped_goal(values: Mapping[str, Any]) -> int:
    return round(values["tdee"] + _daily_change(values))


def _goal_calories(values: Mapping[str, Any]) -> int:
    return max(_unclamped_goal(values), MINIMUM_CALORIES[values["gender"]])


def calorie_goals(tdee: float) -> Dict[str, Any]:
    """Targets at fixed weekly rates of 0.25, 0.5 and 1 kg."""
    return {
        "maintenance": round(tdee),
        "weight_loss": {
            "conservative": round(tdee - 0.25 * KCAL_PER_KG_PER_DAY),
            "moderate": round(tdee - 0.5 * KCAL_PER_KG_PER_DAY),
            "aggressive": round(tdee - KCAL_PER_KG_PER_DAY),
        },
        "weight_gain": {
            "lean": round(tdee + 0.25 * KCAL_PER_KG_PER_DAY),
            "moderate": round(tdee + 0.5 * KCAL_PER_KG_PER_DAY),
            "bulking": round(tdee + KCAL_PER_KG_PER_DAY),
        },
    }


def macro_breakdown(calories: int, weight_kg: float, goal: str) -> Dict[str, Any]:
    """
    Protein from body weight, fat as a share of calories, carbohydrates
    from the remainder.
    """
    protein_g = round(weight_kg * PROTEIN_G_PER_KG.get(goal, 1.8))
    fat_share = 25 if goal == "gain_muscle" else 30
    protein_kcal = protein_g * 4
    fat_kcal = round(calories * fat_share / 100)
    carb_kcal = max(calories - protein_kcal - fat_kcal, 0)
    return {
        "calories": calories,
        "protein": {"grams": protein_g, "percentage": round(protein_kcal / calories * 100)},
        "carbs": {"grams": round(carb_kcal / 4), "percentage": round(carb_kcal / calories * 100)},
        "fat": {"grams": round(fat_kcal / 9), "percentage": fat_share},
        "fiber": round(calories / 1000 * FIBER_G_PER_1000_KCAL),
    }


def metabolic_insights(values: Mapping[str, Any]) -> Dict[str, Any]:
    ratio = values["bmr_ratio"]
    body_fat = values.get("body_fat_percentage")
    lean = body_fat is not None and body_fat < (15 if values["gender"] == "male" else 25)
    activity = values["activity_level"]
    age = values["age"]
    return {
        "metabolic_age": round(age / ratio),
        "comparison": "above average" if ratio > 1.1 else "below average" if ratio < 0.9 else "average",
        "factors": [
            {"factor": "Muscle Mass", "status": "positive" if lean else "neutral"},
            {"factor": "Activity Level",
             "status": "positive" if activity in ("very_active", "extremely_active")
             else "negative" if activity == "sedentary" else "neutral"},
            {"factor": "Age Factor", "status": "positive" if age < 30 else "negative" if age > 50 else "neutral"},
        ],
    }


def nutrition_tips(goal: str) -> List[Dict[str, str]]:
    tips = list(NUTRITION_TIPS)
    if goal in GOAL_TIPS:
        tips.append(GOAL_TIPS[goal])
    return tips


def _body_fat_in_limits(values: Mapping[str, Any]) -> bool:
    low, high = BODY_FAT_LIMITS[values["gender"]]
    return low <= values["body_fat_percentage"] <= high


SCHEMA = InputSchema("bmr", [
    number("age", 10, 120),
    choice("gender", ["male", "female"]),
    number("weight", 20, 500, unit=UnitBinding(QuantityKind.WEIGHT, "weight_unit",
                                                {"kg": Unit.KG, "lb": Unit.LB})),
    choice("weight_unit", ["kg", "lb"], default="kg"),
    number("height", 50, 300, unit=UnitBinding(QuantityKind.HEIGHT, "height_unit",
                                                {"cm": Unit.CM, "in": Unit.INCH})),
    choice("height_unit", ["cm", "in"], default="cm"),
    choice("formula", list(FORMULAS), default="mifflin_st_jeor"),
    number("body_fat_percentage", 3, 50, required=False, label="Body fat percentage"),
    choice("activity_level", list(ACTIVITY_MULTIPLIERS), default="sedentary"),
    choice("goal", ["maintain", "lose_weight", "gain_weight", "gain_muscle"], default="maintain"),
    number("weight_change_rate", 0.25, 2, default=0.5, label="Weekly weight change (kg)"),
    choice("thyroid_condition", list(THYROID_FACTORS), default="none"),
    choice("diabetes_type", ["none", "type1", "type2"], default="none"),
    choice("smoking_status", ["never", "former", "current"], default="never"),
    integer("caffeine_drinks", 0, 20, default=0, label="Caffeinated drinks per day"),
    boolean("include_metabolic_age"),
], rules=[
    CrossFieldRule("body_fat_percentage", ("formula",),
                   lambda v: v["formula"] != "katch_mcardle" or v.get("body_fat_percentage") is not None,
                   "Body fat percentage is required for the Katch-McArdle formula"),
    CrossFieldRule("body_fat_percentage", ("body_fat_percentage", "gender"), _body_fat_in_limits,
                   "Body fat percentage is outside the plausible range for this sex"),
])

FLAGS = [
    FlagRule(
        "minimum_calories_applied", FlagLevel.CAUTION,
        lambda ctx: ctx.get("goal_calories") is not None
        and _unclamped_goal(ctx.values) < MINIMUM_CALORIES[ctx.values["gender"]],
        lambda ctx: f"Goal raised to the minimum of {MINIMUM_CALORIES[ctx.values['gender']]} kcal/day",
        ["Choose a slower rate of weight change"],
    ),
    FlagRule(
        "goal_below_bmr", FlagLevel.WARNING,
        lambda ctx: ctx.get("goal_calories") is not None and ctx.values["goal_calories"] < ctx.values["bmr"] * 0.8,
        "Your target calories are well below your BMR, which may slow metabolism and cause muscle loss",
        [
            "Consider a more moderate calorie deficit",
            "Increase physical activity instead of restricting calories severely",
            "Consult a healthcare provider or registered dietitian",
        ],
    ),
    FlagRule(
        "large_surplus", FlagLevel.WARNING,
        lambda ctx: ctx.get("goal_calories") is not None
        and ctx.values["goal_calories"] > ctx.values["tdee"] + LARGE_SURPLUS_KCAL,
        "A very large calorie surplus may lead to excessive fat gain",
        ["Consider a moderate surplus of 300-500 kcal", "Focus on strength training to promote muscle growth"],
    ),
    FlagRule(
        "older_adult_estimate", FlagLevel.CAUTION,
        lambda ctx: ctx.values["age"] > 65,
        "Metabolic rate estimates may be less accurate for older adults",
        ["Monitor your response to calorie targets", "Maintain muscle mass through strength training"],
    ),
]


def build_details(ctx: AssessmentContext) -> Dict[str, Any]:
    values = ctx.values
    description, reliability = FORMULAS[values["formula"]]
    tdee = values["tdee"]
    goal_calories = values["goal_calories"]
    gap = goal_calories - round(tdee)
    plan = "deficit" if gap < 0 else "surplus" if gap > 0 else "maintenance"
    details: Dict[str, Any] = {
        "bmr": round(values["bmr"]),
        "tdee": round(tdee),
        "formula": values["formula"],
        "method_description": description,
        "reliability": reliability,
        "reference_bmr": round(reference_bmr(values["age"], values["gender"])),
        "calorie_goals": dict(calorie_goals(tdee), goal=goal_calories),
        "macros": {
            "maintenance": macro_breakdown(round(tdee), values["weight"], values["goal"]),
            "goal": macro_breakdown(goal_calories, values["weight"], values["goal"]),
        },
        "activity_recommendations": ACTIVITY_PLANS[plan],
        "nutrition_tips": nutrition_tips(values["goal"]),
    }
    if values["include_metabolic_age"]:
        details["metabolic_insights"] = metabolic_insights(values)
    return details


CONFIG = MetricConfig(
    name="bmr",
    title="BMR Calculator",
    description="Basal metabolic rate, daily energy expenditure and calorie goals",
    schema=SCHEMA,
    readings=[ReadingSpec("bmr_ratio", BMR_RATIO_TABLE, "BMR vs. average", precision=2)],
    derivations=[
        Derivation("bmr", ("weight", "height", "age", "gender", "formula"), _bmr),
        Derivation("bmr_ratio", ("bmr", "age", "gender"), _bmr_ratio),
        Derivation("tdee", ("bmr", "activity_level"), _tdee),
        Derivation("goal_calories", ("tdee", "goal", "gender"), _goal_calories),
    ],
    flags=FLAGS,
    details=build_details,
    disclaimer="BMR formulas estimate average needs; thyroid and other conditions are rough adjustments.",
)
