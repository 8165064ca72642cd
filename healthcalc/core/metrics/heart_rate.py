"""
Heart Rate Zone Assessment

Five training zones from an age-predicted or tested maximum heart rate,
optionally scaled over the heart rate reserve (Karvonen). A supplied
resting heart rate is classified on its own.
"""
from typing import Any, Dict, List, Mapping, Optional

from healthcalc.core.engine.base import FlagLevel
from healthcalc.core.engine.classifier import INF, Severity, build_table
from healthcalc.core.engine.errors import DomainInvalidError
from healthcalc.core.engine.orchestrator import (
    AssessmentContext, Derivation, FlagRule, MetricConfig, ReadingSpec,
)
from healthcalc.core.validation.schema import (
    CrossFieldRule, InputSchema, choice, multi_choice, number,
)

ACTIVITY_LEVELS = ["sedentary", "lightly_active", "moderately_active", "very_active", "extremely_active"]
GOALS = ["fat_burn", "aerobic", "anaerobic", "vo2_max", "recovery"]

TACHYCARDIA_BPM = 100

RESTING_TABLE = build_table("resting_heart_rate", [
    (60, "Excellent", Severity.OK, "Resting heart rate typical of well-trained individuals", "<60 bpm", [
        "Keep up your current training",
    ]),
    (80, "Normal", Severity.OK, "Resting heart rate in the healthy range", "60-79 bpm", [
        "Continue regular exercise to maintain cardiovascular health",
    ]),
    (TACHYCARDIA_BPM, "Elevated", Severity.CAUTION, "Resting heart rate above the ideal range", "80-99 bpm", [
        "Regular aerobic exercise can lower your resting heart rate",
        "Limit caffeine and manage stress",
    ]),
    (INF, "High", Severity.WARNING, "Resting heart rate above 100 bpm", ">=100 bpm", [
        "Recheck after 5 minutes of quiet rest",
        "Discuss a persistently high resting heart rate with your healthcare provider",
    ]),
])

# name, share of max (or reserve), intensity, purpose, typical duration, examples
ZONES = [
    ("Recovery Zone", (50, 60), "Very Light", "Recovery, warm-up, and cool-down", "20-60 minutes",
     ["Walking", "Light stretching", "Easy yoga", "Gentle cycling"]),
    ("Fat Burn Zone", (60, 70), "Light", "Fat burning and aerobic base development", "30-90 minutes",
     ["Brisk walking", "Easy jogging", "Leisure cycling", "Swimming laps"]),
    ("Aerobic Zone", (70, 80), "Moderate", "Cardiovascular fitness and endurance", "20-60 minutes",
     ["Steady running", "Cycling", "Group fitness classes", "Dance workouts"]),
    ("Anaerobic Zone", (80, 90), "Hard", "Lactate threshold and high-intensity performance", "10-40 minutes",
     ["Interval training", "Tempo runs", "Hill climbing", "Circuit training"]),
    ("VO2 Max Zone", (90, 100), "Maximum", "Maximum oxygen uptake and neuromuscular power",
     "30 seconds - 8 minutes",
     ["Sprint intervals", "High-intensity intervals", "Race pace efforts", "Plyometric exercises"]),
]

GOAL_ZONES = {
    "recovery": ("Recovery Zone", "Use {low}-{high} bpm for active recovery days",
                 "This zone promotes recovery while maintaining movement and circulation"),
    "fat_burn": ("Fat Burn Zone", "Train in {low}-{high} bpm for optimal fat burning",
                 "This zone maximizes fat oxidation while remaining sustainable for longer durations"),
    "aerobic": ("Aerobic Zone", "Target {low}-{high} bpm for cardiovascular fitness",
                "This zone improves your cardiovascular system and increases endurance capacity"),
    "anaerobic": ("Anaerobic Zone", "Train at {low}-{high} bpm for power and speed",
                  "This zone improves your lactate threshold and high-intensity performance"),
    "vo2_max": ("VO2 Max Zone", "Short intervals at {low}-{high} bpm for maximum oxygen uptake",
                "This zone maximizes your body's ability to use oxygen and improves peak performance"),
}

METHODS = {
    "age_formula": {
        "name": "Age-Based Formula (220 - Age)",
        "description": "Simple formula using age to estimate maximum heart rate",
        "accuracy": "Moderate (±10-12 bpm)",
    },
    "karvonen": {
        "name": "Karvonen Method (Heart Rate Reserve)",
        "description": "Uses both maximum and resting heart rate for more personalized zones",
        "accuracy": "Good (±5-8 bpm)",
    },
    "custom_max": {
        "name": "Custom Maximum Heart Rate",
        "description": "Uses your actual tested maximum heart rate for precise calculations",
        "accuracy": "Excellent (±2-3 bpm)",
    },
}


def age_predicted_max(age: float) -> float:
    return 220 - age


def _max_heart_rate(values: Mapping[str, Any]) -> Optional[float]:
    if values["calculation_method"] == "custom_max":
        return values.get("max_heart_rate")
    return age_predicted_max(values["age"])


def _heart_rate_reserve(values: Mapping[str, Any]) -> float:
    reserve = values["effective_max_heart_rate"] - values["resting_heart_rate"]
    if reserve <= 0:
        raise DomainInvalidError(
            "heart_rate_reserve",
            "Resting heart rate is not below the maximum heart rate; zones use percentage of maximum",
        )
    return reserve


def training_zones(max_hr: float, resting_hr: Optional[float] = None,
                   reserve: Optional[float] = None) -> List[Dict[str, Any]]:
    """
    Zone bounds in bpm.

    With a reserve the bounds are ``resting + reserve * share`` (Karvonen),
    otherwise ``max * share``.
    """
    zones = []
    for name, (low, high), intensity, purpose, duration, examples in ZONES:
        if reserve is not None:
            min_bpm = round(reserve * low / 100 + resting_hr)
            max_bpm = round(reserve * high / 100 + resting_hr)
        else:
            min_bpm = round(max_hr * low / 100)
            max_bpm = round(max_hr * high / 100)
        zones.append({
            "name": name,
            "min_bpm": min_bpm,
            "max_bpm": max_bpm,
            "min_percentage": low,
            "max_percentage": high,
            "intensity": intensity,
            "purpose": purpose,
            "duration": duration,
            "examples": list(examples),
        })
    return zones


def goal_recommendations(goals, zones: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    by_name = {z["name"]: z for z in zones}
    recommendations = []
    for goal in goals:
        zone_name, text, reason = GOAL_ZONES[goal]
        zone = by_name[zone_name]
        recommendations.append({
            "zone": zone_name,
            "recommendation": text.format(low=zone["min_bpm"], high=zone["max_bpm"]),
            "reason": reason,
        })
    return recommendations


def training_tips(goals, activity_level: str) -> List[Dict[str, str]]:
    tips = []
    if "fat_burn" in goals:
        tips.append({"category": "Fat Burning",
                     "tip": "Exercise in the fat burn zone for 30-60 minutes, 3-5 times per week"})
    if "aerobic" in goals:
        tips.append({"category": "Endurance",
                     "tip": "Keep about 80% of training in the lower zones to build your aerobic base"})
    if "anaerobic" in goals or "vo2_max" in goals:
        tips.append({"category": "High Intensity",
                     "tip": "Limit high-intensity training to 1-3 sessions per week with recovery between"})
    if activity_level in ("sedentary", "lightly_active"):
        tips.append({"category": "Getting Started",
                     "tip": "Start with 20-30 minutes in the recovery and fat burn zones; "
                            "increase duration before intensity"})
    if activity_level in ("very_active", "extremely_active"):
        tips.append({"category": "Advanced Training",
                     "tip": "Include regular recovery sessions to prevent overtraining"})
    tips.append({"category": "Safety",
                 "tip": "Stop exercising if you feel dizzy, chest pain, or unusual shortness of breath"})
    return tips


def fitness_insights(max_hr: float, resting_hr: Optional[float], age: float,
                     activity_level: str) -> List[Dict[str, str]]:
    insights = []
    expected = age_predicted_max(age)
    if max_hr > expected + 10:
        insights.append({"category": "Maximum Heart Rate",
                         "insight": "Your maximum heart rate is higher than average for your age"})
    elif max_hr < expected - 10:
        insights.append({"category": "Maximum Heart Rate",
                         "insight": "Your maximum heart rate is lower than average for your age, "
                                    "which is normal for some individuals"})
    if age > 50:
        insights.append({"category": "Age Considerations",
                         "insight": "Maximum heart rate declines with age; favour consistency over intensity"})
    if activity_level == "sedentary":
        insights.append({"category": "Activity Level",
                         "insight": "A heart rate based program can significantly improve cardiovascular "
                                    "health; begin slowly and progress gradually"})
    return insights


SCHEMA = InputSchema("heart_rate", [
    number("age", 15, 100),
    number("resting_heart_rate", 40, 120, required=False),
    number("max_heart_rate", 120, 220, required=False, label="Maximum heart rate"),
    choice("calculation_method", list(METHODS), default="karvonen"),
    choice("activity_level", ACTIVITY_LEVELS, default="moderately_active"),
    multi_choice("goals", GOALS, default=["fat_burn", "aerobic"]),
], rules=[
    CrossFieldRule("resting_heart_rate", ("calculation_method",),
                   lambda v: v["calculation_method"] != "karvonen" or v.get("resting_heart_rate") is not None,
                   "Resting heart rate is required for the Karvonen method"),
    CrossFieldRule("max_heart_rate", ("calculation_method",),
                   lambda v: v["calculation_method"] != "custom_max" or v.get("max_heart_rate") is not None,
                   "Maximum heart rate is required for the custom method"),
    CrossFieldRule("max_heart_rate", ("max_heart_rate", "age"),
                   lambda v: v["max_heart_rate"] >= age_predicted_max(v["age"]) * 0.8,
                   "Maximum heart rate seems too low for your age"),
    CrossFieldRule("resting_heart_rate", ("resting_heart_rate", "max_heart_rate"),
                   lambda v: v["resting_heart_rate"] < v["max_heart_rate"],
                   "Resting heart rate must be lower than maximum heart rate"),
])

FLAGS = [
    FlagRule(
        "resting_tachycardia", FlagLevel.WARNING,
        lambda ctx: ctx.get("resting_heart_rate", 0) >= TACHYCARDIA_BPM,
        "Resting heart rate of 100 bpm or more; check with your healthcare provider before intense training",
        ["Start in the recovery zone", "Seek care for palpitations, dizziness or chest pain"],
    ),
]


def build_details(ctx: AssessmentContext) -> Dict[str, Any]:
    values = ctx.values
    max_hr = values["effective_max_heart_rate"]
    resting = values.get("resting_heart_rate")
    reserve = values.get("heart_rate_reserve")
    karvonen = values["calculation_method"] == "karvonen" and reserve is not None
    zones = training_zones(max_hr, resting, reserve if karvonen else None)
    return {
        "method": METHODS[values["calculation_method"]],
        "max_heart_rate": round(max_hr),
        "resting_heart_rate": resting,
        "heart_rate_reserve": round(reserve) if reserve is not None else None,
        "zones": zones,
        "recommendations": goal_recommendations(values["goals"], zones),
        "training_tips": training_tips(values["goals"], values["activity_level"]),
        "fitness_insights": fitness_insights(max_hr, resting, values["age"], values["activity_level"]),
    }


CONFIG = MetricConfig(
    name="heart_rate",
    title="Heart Rate Zone Calculator",
    description="Training heart rate zones and resting heart rate",
    schema=SCHEMA,
    readings=[ReadingSpec("resting_heart_rate", RESTING_TABLE, "Resting Heart Rate", unit="bpm", precision=0)],
    derivations=[
        Derivation("effective_max_heart_rate", ("age", "calculation_method"), _max_heart_rate),
        Derivation("heart_rate_reserve", ("effective_max_heart_rate", "resting_heart_rate"),
                   _heart_rate_reserve),
    ],
    flags=FLAGS,
    details=build_details,
    disclaimer="Heart rate zones are estimates; consult a healthcare provider before starting intense exercise.",
)
