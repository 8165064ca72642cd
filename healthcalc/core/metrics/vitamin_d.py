"""
Vitamin D Assessment

Classifies a measured 25(OH)D level or, when none was entered, a level
estimated from lifestyle factors. Deficiency risk is scored separately from
the level so both are available even without a lab result.
"""
from typing import Any, Dict, List, Mapping

from healthcalc.core.engine.base import FlagLevel, Reading, ReadingSource
from healthcalc.core.engine.classifier import INF, Severity, build_table
from healthcalc.core.engine.orchestrator import (
    AssessmentContext, Derivation, FlagRule, MetricConfig, ReadingSpec,
)
from healthcalc.core.engine.scoring import (
    RiskFactorPredicate, RiskModel, above, below, contains, one_of,
)
from healthcalc.core.engine.units import QuantityKind, Unit, UnitBinding
from healthcalc.core.validation.schema import (
    CrossFieldRule, InputSchema, choice, multi_choice, number,
)

LEVEL_BINDING = UnitBinding(QuantityKind.VITAMIN_D, "vitamin_d_unit",
                            {"ng_ml": Unit.NG_ML, "nmol_l": Unit.NMOL_L})

SKIN_TYPES = ["very_fair", "fair", "medium", "olive", "brown", "very_dark"]
DARK_SKIN = ("brown", "very_dark")

LEVEL_TABLE = build_table("vitamin_d_level", [
    (12, "Severe Deficiency", Severity.CRITICAL, "Severely deficient vitamin D levels",
     "<12 ng/mL (<30 nmol/L)", [
         "Immediate medical consultation required",
         "High-dose vitamin D supplementation",
         "Increase sun exposure with proper protection",
         "Include vitamin D-rich foods in diet",
         "Consider underlying causes of deficiency",
     ]),
    (20, "Deficiency", Severity.WARNING, "Insufficient vitamin D levels",
     "12-19 ng/mL (30-49 nmol/L)", [
         "Consult healthcare provider for supplementation",
         "Increase safe sun exposure",
         "Add vitamin D supplements to routine",
         "Include fortified foods in diet",
         "Monitor levels regularly",
     ]),
    (30, "Insufficient", Severity.CAUTION, "Below optimal vitamin D levels",
     "20-29 ng/mL (50-74 nmol/L)", [
         "Consider moderate supplementation",
         "Optimize sun exposure safely",
         "Include vitamin D-rich foods",
         "Monitor seasonal changes",
     ]),
    (50, "Sufficient", Severity.OK, "Adequate vitamin D levels",
     "30-49 ng/mL (75-124 nmol/L)", [
         "Maintain current vitamin D intake",
         "Continue safe sun exposure habits",
         "Monitor during winter months",
     ]),
    (100, "High Normal", Severity.OK, "High but safe vitamin D levels",
     "50-99 ng/mL (125-249 nmol/L)", [
         "Monitor supplement dosage",
         "No need to increase intake further",
         "Regular monitoring recommended",
     ]),
    (INF, "Excessive", Severity.CRITICAL, "Potentially toxic vitamin D levels",
     ">=100 ng/mL (>=250 nmol/L)", [
         "Immediate medical consultation required",
         "Reduce or stop supplementation",
         "Monitor for toxicity symptoms",
         "Check calcium and phosphorus levels",
     ]),
])

RISK_TIERS = build_table("vitamin_d_deficiency_risk", [
    (1, "Very Low", Severity.OK, "Your risk of vitamin D deficiency is very low.", "score 0", [
        "Keep up your current sun, diet and supplement habits",
    ]),
    (3, "Low", Severity.OK, "Your risk of vitamin D deficiency is low.", "score 1-2", [
        "Check your level if symptoms or new risk factors appear",
    ]),
    (5, "Moderate", Severity.CAUTION, "You have a moderate risk of vitamin D deficiency.", "score 3-4", [
        "Consider a vitamin D blood test",
        "Review sun exposure and dietary sources",
    ]),
    (8, "High", Severity.WARNING, "You have a high risk of vitamin D deficiency.", "score 5-7", [
        "Ask your healthcare provider about testing",
        "Daily supplementation is likely beneficial",
    ]),
    (INF, "Very High", Severity.WARNING, "You have a very high risk of vitamin D deficiency.", "score >=8", [
        "Get your vitamin D level tested",
        "Discuss supplementation with your healthcare provider",
    ]),
])

RISK_MODEL = RiskModel("vitamin_d_deficiency_risk", [
    RiskFactorPredicate("Advanced Age", 2, above("age", 65),
                        "Older adults have reduced ability to synthesize vitamin D"),
    RiskFactorPredicate("Young Age", 1, below("age", 18),
                        "Growing children and adolescents have higher vitamin D needs"),
    RiskFactorPredicate("Dark Skin Pigmentation", 3, one_of("skin_type", *DARK_SKIN),
                        "Higher melanin reduces vitamin D synthesis from sun exposure"),
    RiskFactorPredicate("Fair Skin", 0, one_of("skin_type", "very_fair"),
                        "Fair skin synthesizes vitamin D more efficiently from sun exposure"),
    RiskFactorPredicate("Limited Sun Exposure", 3, below("sun_exposure_hours", 1),
                        "Minimal sun exposure significantly reduces vitamin D synthesis"),
    RiskFactorPredicate("Adequate Sun Exposure", 0, above("sun_exposure_hours", 3),
                        "Regular sun exposure supports vitamin D synthesis"),
    RiskFactorPredicate("Winter Season", 2, one_of("season", "winter"),
                        "Reduced UV exposure during winter months decreases vitamin D synthesis"),
    RiskFactorPredicate("High Latitude Location", 2,
                        lambda s: s.get("latitude") is not None and abs(s["latitude"]) > 35,
                        "Living at higher latitudes reduces year-round UV exposure"),
    RiskFactorPredicate("Frequent Sunscreen Use", 1, one_of("sunscreen_use", "always"),
                        "Regular sunscreen use can reduce vitamin D synthesis"),
    RiskFactorPredicate("Obesity", 2, above("bmi", 30),
                        "Higher BMI is associated with lower vitamin D bioavailability"),
    RiskFactorPredicate("Malabsorption Disorder", 3, contains("medical_conditions", "malabsorption"),
                        "Malabsorption conditions significantly impair vitamin D absorption"),
    RiskFactorPredicate("Pregnancy/Breastfeeding", 1,
                        one_of("pregnancy_status", "pregnant", "breastfeeding"),
                        "Increased vitamin D needs during pregnancy and breastfeeding"),
    RiskFactorPredicate("Vitamin D Supplementation", -2,
                        lambda s: s.get("supplement_use") not in (None, "none"),
                        "Regular supplementation helps maintain adequate vitamin D levels"),
    RiskFactorPredicate("High Dietary Intake", -1, one_of("dietary_intake", "high"),
                        "Diet rich in vitamin D sources supports adequate levels"),
], RISK_TIERS)

_SUPPLEMENT_BOOST = {"high_dose": 15, "moderate_dose": 10, "low_dose": 5, "none": 0}

# (upper ng/mL, minimum, optimal, maximum IU/day, duration)
SUPPLEMENT_DOSES = [
    (12, 2000, 4000, 6000, "3-6 months, then maintenance dose"),
    (20, 1000, 2000, 4000, "2-4 months, then maintenance dose"),
    (30, 800, 1000, 2000, "1-3 months, then maintenance dose"),
    (50, 400, 800, 1000, "Maintenance dose"),
]

# minutes of midday exposure and SPF by skin type
SUN_EXPOSURE = {
    "very_fair": (10, 50),
    "fair": (15, 30),
    "medium": (20, 30),
    "olive": (25, 20),
    "brown": (30, 20),
    "very_dark": (40, 15),
}
SEASON_EXPOSURE_FACTOR = {"winter": 1.5, "summer": 0.8}

CONTRAINDICATIONS = {
    "kidney_disease": "Kidney disease - requires medical supervision",
    "sarcoidosis": "Sarcoidosis - may worsen hypercalcemia",
    "hyperparathyroidism": "Hyperparathyroidism - may exacerbate calcium elevation",
}


def estimate_level(values: Mapping[str, Any]) -> float:
    """
    Rough serum level (ng/mL) from lifestyle factors when no lab value is known.

    Starts at 25 ng/mL and is clamped to 10-60.
    """
    level = 25
    sun = values.get("sun_exposure_hours") or 0
    if sun > 4:
        level += 10
    elif sun < 1:
        level -= 10

    skin = values.get("skin_type")
    if skin in ("very_fair", "fair"):
        level += 5
    elif skin in DARK_SKIN:
        level -= 10

    season = values.get("season")
    if season == "winter":
        level -= 8
    elif season == "summer":
        level += 8

    level += _SUPPLEMENT_BOOST.get(values.get("supplement_use"), 0)

    diet = values.get("dietary_intake")
    if diet == "high":
        level += 5
    elif diet == "very_low":
        level -= 5
    return float(max(10, min(60, level)))


def analyze_level(value: float, source: ReadingSource = ReadingSource.MEASURED) -> Reading:
    """Classify a level given in ng/mL."""
    bucket = LEVEL_TABLE.bucket_for(value)
    return Reading(
        kind="current_level",
        value=value,
        unit=Unit.NG_ML.symbol,
        category=bucket.category,
        label="Vitamin D (25-OH)",
        source=source,
        recommendations=list(bucket.recommendations),
    )


def supplementation_guidance(values: Mapping[str, Any], level: float, measured: bool) -> Dict[str, Any]:
    minimum = optimal = maximum = 0.0
    duration = "Ongoing maintenance"
    for upper, low, best, high, band_duration in SUPPLEMENT_DOSES:
        if level < upper:
            minimum, optimal, maximum, duration = low, best, high, band_duration
            break
    if values.get("age", 0) > 65:
        optimal += 400
        maximum += 400
    if values.get("pregnancy_status") in ("pregnant", "breastfeeding"):
        optimal += 400
        maximum += 600
    if (values.get("bmi") or 0) > 30:
        optimal *= 1.5
        maximum *= 1.5
    conditions = values.get("medical_conditions") or ()
    return {
        "recommended": not measured or level < 30,
        "daily_dose": {"minimum": round(minimum), "optimal": round(optimal),
                       "maximum": round(maximum), "unit": "IU"},
        "supplement_type": "Vitamin D3 (cholecalciferol)",
        "timing": "Take with meals containing fat for better absorption",
        "duration": duration,
        "monitoring_advice": "Recheck vitamin D levels in 3-6 months",
        "contraindications": [text for name, text in CONTRAINDICATIONS.items() if name in conditions],
    }


def sun_exposure(values: Mapping[str, Any]) -> Dict[str, Any]:
    minutes, spf = SUN_EXPOSURE[values["skin_type"]]
    minutes *= SEASON_EXPOSURE_FACTOR.get(values["season"], 1.0)
    return {
        "daily_minutes": {"minimum": round(minutes * 0.5), "optimal": round(minutes),
                          "maximum": round(minutes * 2)},
        "spf": spf,
        "time_of_day": "10:00 AM - 3:00 PM, avoiding extended exposure 11:00 AM - 1:00 PM",
    }


def _insights(ctx: AssessmentContext) -> List[Dict[str, str]]:
    values = ctx.values
    insights = []
    if values["season"] == "winter" and ctx.risk_tier != "very_low":
        insights.append({"category": "Seasonal Health",
                         "insight": "Winter months significantly reduce vitamin D synthesis; "
                                    "consider increasing supplementation"})
    if values["skin_type"] in DARK_SKIN:
        insights.append({"category": "Genetic Factors",
                         "insight": "Higher melanin content requires longer sun exposure for "
                                    "adequate vitamin D synthesis"})
    if values["age"] > 65:
        insights.append({"category": "Age-Related Changes",
                         "insight": "Aging reduces the skin's ability to produce vitamin D; "
                                    "regular supplementation is often necessary"})
    if values.get("latitude") is not None and abs(values["latitude"]) > 40:
        insights.append({"category": "Geographic Location",
                         "insight": "Living at higher latitudes limits year-round vitamin D "
                                    "synthesis from sunlight"})
    if values["sun_exposure_hours"] < 1 and values["supplement_use"] == "none":
        insights.append({"category": "Lifestyle Pattern",
                         "insight": "Limited sun exposure combined with no supplementation "
                                    "creates high deficiency risk"})
    return insights


def build_details(ctx: AssessmentContext) -> Dict[str, Any]:
    reading = ctx.readings["current_level"]
    level = reading.value
    winter = ctx.values["season"] == "winter"
    return {
        "level_ng_ml": round(level, 1),
        "level_nmol_l": round(LEVEL_BINDING.from_canonical(level, {"vitamin_d_unit": "nmol_l"}), 1),
        "estimated": reading.source == ReadingSource.ESTIMATED,
        "supplementation": supplementation_guidance(
            ctx.values, level, reading.source == ReadingSource.MEASURED),
        "sun_exposure": sun_exposure(ctx.values),
        "seasonal_variation": {
            "season": ctx.values["season"],
            "expected_change": "Levels typically 10-15% lower" if winter
            else "Levels typically higher with increased sun exposure",
            "recommendation": "Consider increasing supplementation during winter months" if winter
            else "Optimize safe sun exposure during warmer months",
        },
        "insights": _insights(ctx),
    }


SCHEMA = InputSchema("vitamin_d", [
    number("current_level", 5, 200, required=False, unit=LEVEL_BINDING, label="Current vitamin D level"),
    choice("vitamin_d_unit", ["ng_ml", "nmol_l"], default="ng_ml"),
    number("age", 1, 100),
    choice("gender", ["male", "female"]),
    choice("skin_type", SKIN_TYPES, default="fair"),
    number("body_weight", 20, 300, label="Body weight (kg)"),
    number("latitude", -90, 90, required=False),
    choice("season", ["spring", "summer", "fall", "winter"], default="summer"),
    number("sun_exposure_hours", 0, 12, default=2),
    choice("sunscreen_use", ["never", "sometimes", "usually", "always"], default="sometimes"),
    choice("dietary_intake", ["very_low", "low", "moderate", "high"], default="low"),
    choice("supplement_use", ["none", "low_dose", "moderate_dose", "high_dose"], default="none"),
    number("current_supplement_dose", 0, 10000, required=False, label="Current supplement dose (IU)"),
    number("bmi", 15, 50, required=False, label="BMI"),
    choice("pregnancy_status", ["not_pregnant", "pregnant", "breastfeeding"], default="not_pregnant"),
    multi_choice("medical_conditions", ["osteoporosis", "kidney_disease", "liver_disease", "malabsorption",
                                        "hyperparathyroidism", "sarcoidosis", "none"]),
    multi_choice("medications", ["steroids", "anticonvulsants", "weight_loss_drugs", "cholesterol_drugs",
                                 "none"]),
], rules=[
    CrossFieldRule("current_supplement_dose", ("supplement_use",),
                   lambda v: v["supplement_use"] == "none" or bool(v.get("current_supplement_dose")),
                   "Current supplement dose is required when using supplements"),
])

FLAGS = [
    FlagRule(
        "severe_deficiency", FlagLevel.URGENT,
        lambda ctx: ctx.get("current_level", INF) < 12,
        "Severe vitamin D deficiency detected - immediate medical attention recommended",
        [
            "Consult healthcare provider immediately",
            "Consider high-dose vitamin D therapy",
            "Evaluate for underlying causes",
            "Check calcium and phosphorus levels",
        ],
    ),
    FlagRule(
        "excessive_level", FlagLevel.URGENT,
        lambda ctx: ctx.get("current_level", 0) >= 100,
        "Vitamin D levels are in the toxic range",
        [
            "Stop all vitamin D supplementation immediately",
            "Seek immediate medical evaluation",
            "Check calcium and kidney function",
        ],
    ),
    FlagRule(
        "kidney_disease_supplementation", FlagLevel.WARNING,
        lambda ctx: "kidney_disease" in ctx.get("medical_conditions", ())
        and ctx.values.get("supplement_use") != "none",
        "Vitamin D supplementation with kidney disease requires medical supervision",
        [
            "Consult nephrologist before supplementing",
            "Monitor calcium and phosphorus levels",
            "Use only prescribed vitamin D forms",
        ],
    ),
]

CONFIG = MetricConfig(
    name="vitamin_d",
    title="Vitamin D Calculator",
    description="Vitamin D status, deficiency risk and supplementation guidance",
    schema=SCHEMA,
    readings=[ReadingSpec("current_level", LEVEL_TABLE, "Vitamin D (25-OH)")],
    derivations=[
        Derivation("current_level",
                   ("sun_exposure_hours", "skin_type", "season", "supplement_use", "dietary_intake"),
                   estimate_level, source=ReadingSource.ESTIMATED),
    ],
    risk_model=RISK_MODEL,
    flags=FLAGS,
    details=build_details,
    disclaimer="Estimated levels are approximations; only a blood test measures vitamin D.",
)
