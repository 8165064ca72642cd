"""
Body Fat Assessment

Body fat percentage by one of four field methods: US Navy circumferences,
YMCA abdomen circumference, or Jackson-Pollock 3- and 7-site skinfolds.
The percentage is classified against sex-specific categories.
"""
import math
from typing import Any, Dict, List, Mapping, Optional

from healthcalc.core.engine.base import FlagLevel
from healthcalc.core.engine.classifier import INF, Severity, build_table
from healthcalc.core.engine.errors import DomainInvalidError
from healthcalc.core.engine.orchestrator import (
    AssessmentContext, Derivation, FlagRule, MetricConfig, ReadingSpec,
)
from healthcalc.core.engine.units import QuantityKind, Unit, UnitBinding
from healthcalc.core.metrics.bmi import HEIGHT_BINDING, WEIGHT_BINDING, bmi_from_values
from healthcalc.core.validation.schema import CrossFieldRule, InputSchema, choice, number

LENGTH_BINDING = UnitBinding(QuantityKind.LENGTH, "unit_system", {"metric": Unit.CM, "imperial": Unit.INCH})

CM_PER_INCH = 2.54
KG_PER_LB = 0.453592
BONE_MASS_SHARE = 0.15

VERY_LOW_BODY_FAT = {"male": 6, "female": 14}
HIGH_BODY_FAT = {"male": 25, "female": 32}

SKINFOLD_SITES = ["chest", "abdominal", "thigh", "tricep", "subscapular", "suprailiac", "axilla"]

JP3_SITES = {
    "male": ("chest", "abdominal", "thigh"),
    "female": ("tricep", "suprailiac", "thigh"),
}
JP7_SITES = ("chest", "subscapular", "tricep", "suprailiac", "abdominal", "thigh", "axilla")

# density = a - b*S + c*S^2 - d*age, S the skinfold sum in mm
DENSITY_COEFFICIENTS = {
    ("jackson_pollock_3", "male"): (1.10938, 0.0008267, 0.0000016, 0.0002574),
    ("jackson_pollock_3", "female"): (1.0994921, 0.0009929, 0.0000023, 0.0001392),
    ("jackson_pollock_7", "male"): (1.112, 0.00043499, 0.00000055, 0.00028826),
    ("jackson_pollock_7", "female"): (1.097, 0.00046971, 0.00000056, 0.00012828),
}

OBESE_RECOMMENDATIONS = [
    "Create a moderate calorie deficit through balanced nutrition, prioritizing protein",
    "Combine 150+ minutes of moderate cardio with 2-3 strength sessions per week",
    "Get 7-9 hours of sleep and manage stress",
]
AVERAGE_RECOMMENDATIONS = [
    "Add resistance training to increase muscle mass and reduce fat percentage",
    "Favour nutrient-dense whole foods with 0.8-1.2 g protein per kg body weight",
]
FIT_RECOMMENDATIONS = [
    "Maintain your body composition with a consistent exercise routine",
    "Consider periodized training and nutrition to optimize performance",
]
ESSENTIAL_RECOMMENDATIONS = [
    "Your body fat is very low; check with a healthcare provider that this is healthy for you",
    "Ensure adequate calorie and fat intake to support hormone production",
]

MALE_TABLE = build_table("body_fat_male", [
    (6, "Essential Fat", Severity.CAUTION, "Minimum fat needed for physiological functions", "2-5%",
     ESSENTIAL_RECOMMENDATIONS),
    (14, "Athletic", Severity.OK, "Typical for athletes and very fit individuals", "6-13%", FIT_RECOMMENDATIONS),
    (18, "Fitness", Severity.OK, "Fit and healthy range", "14-17%", FIT_RECOMMENDATIONS),
    (25, "Average", Severity.CAUTION, "Average range for the general population", "18-24%",
     AVERAGE_RECOMMENDATIONS),
    (INF, "Obese", Severity.WARNING, "Above the healthy range, may pose health risks", "25%+",
     OBESE_RECOMMENDATIONS),
])

FEMALE_TABLE = build_table("body_fat_female", [
    (14, "Essential Fat", Severity.CAUTION, "Minimum fat needed for physiological functions", "10-13%",
     ESSENTIAL_RECOMMENDATIONS),
    (21, "Athletic", Severity.OK, "Typical for female athletes", "14-20%", FIT_RECOMMENDATIONS),
    (25, "Fitness", Severity.OK, "Fit and healthy range", "21-24%", FIT_RECOMMENDATIONS),
    (32, "Average", Severity.CAUTION, "Average range for the general population", "25-31%",
     AVERAGE_RECOMMENDATIONS),
    (INF, "Obese", Severity.WARNING, "Above the healthy range, may pose health risks", "32%+",
     OBESE_RECOMMENDATIONS),
])

METHODS = {
    "us_navy": {
        "name": "US Navy Method",
        "description": "Uses circumference measurements to estimate body fat percentage",
        "accuracy": "Good (±3-4%)",
        "pros": ["Simple measurements with tape measure", "No special equipment required"],
        "cons": ["Less accurate than skinfold methods", "May overestimate in very lean individuals"],
    },
    "ymca": {
        "name": "YMCA Method",
        "description": "Uses abdominal circumference and weight for estimation",
        "accuracy": "Moderate (±4-5%)",
        "pros": ["Simple single measurement", "Good for tracking changes over time"],
        "cons": ["May not account for muscle mass", "Affected by bloating and posture"],
    },
    "jackson_pollock_3": {
        "name": "Jackson-Pollock 3-Site",
        "description": "Uses skinfold measurements at three sex-specific sites",
        "accuracy": "Very Good (±2-3%)",
        "pros": ["More accurate than circumference methods", "Validated by extensive research"],
        "cons": ["Requires skinfold calipers", "Technique-dependent accuracy"],
    },
    "jackson_pollock_7": {
        "name": "Jackson-Pollock 7-Site",
        "description": "Most comprehensive skinfold method using seven measurement sites",
        "accuracy": "Excellent (±1-2%)",
        "pros": ["Highest accuracy of field methods", "Comprehensive body assessment"],
        "cons": ["Time-consuming measurements", "Requires a trained practitioner"],
    },
}


def us_navy(gender: str, height: float, neck: float, waist: float, hip: Optional[float] = None) -> float:
    """Body fat % from circumferences in cm."""
    if gender == "male":
        return 495 / (1.0324 - 0.19077 * math.log10(waist - neck) + 0.15456 * math.log10(height)) - 450
    return 495 / (1.29579 - 0.35004 * math.log10(waist + hip - neck) + 0.22100 * math.log10(height)) - 450


def ymca(gender: str, weight_kg: float, abdomen_cm: float) -> float:
    """Body fat % from the imperial YMCA equation."""
    weight_lb = weight_kg / KG_PER_LB
    abdomen_in = abdomen_cm / CM_PER_INCH
    constant = 98.42 if gender == "male" else 76.76
    return (4.15 * abdomen_in - 0.082 * weight_lb - constant) / weight_lb * 100


def body_density(method: str, gender: str, skinfold_sum: float, age: float) -> float:
    a, b, c, d = DENSITY_COEFFICIENTS[(method, gender)]
    return a - b * skinfold_sum + c * skinfold_sum ** 2 - d * age


def siri(density: float) -> float:
    """Body fat % from body density."""
    return 495 / density - 450


def required_sites(method: str, gender: str) -> List[str]:
    if method == "us_navy":
        return ["neck", "waist", "hip"] if gender == "female" else ["neck", "waist"]
    if method == "ymca":
        return ["abdomen"]
    if method == "jackson_pollock_3":
        return list(JP3_SITES[gender])
    return list(JP7_SITES)


def _body_fat(values: Mapping[str, Any]) -> float:
    method, gender = values["method"], values["gender"]
    if method == "us_navy":
        result = us_navy(gender, values["height"], values["neck"], values["waist"], values.get("hip"))
    elif method == "ymca":
        result = ymca(gender, values["weight"], values["abdomen"])
    else:
        sites = JP3_SITES[gender] if method == "jackson_pollock_3" else JP7_SITES
        skinfold_sum = sum(values[site] for site in sites)
        result = siri(body_density(method, gender, skinfold_sum, values["age"]))
    if not 0 < result < 75:
        raise DomainInvalidError(
            "body_fat_percentage",
            f"{METHODS[method]['name']} gives {result:.1f}%; check the measurements",
        )
    return result


def _for_gender(gender: str):
    def compute(values: Mapping[str, Any]) -> Optional[float]:
        if values["gender"] != gender:
            return None
        return values.get("body_fat_percentage")
    return compute


def _required_rule(site: str) -> CrossFieldRule:
    label = site.replace("_", " ")
    return CrossFieldRule(
        site, ("method", "gender"),
        lambda v: site not in required_sites(v["method"], v["gender"]) or v.get(site) is not None,
        f"{label.capitalize()} measurement is required for this method",
    )


def body_composition(weight: float, body_fat: float) -> Dict[str, float]:
    """Fat, lean, bone and muscle mass in kg."""
    fat_mass = body_fat / 100 * weight
    lean_mass = weight - fat_mass
    bone_mass = weight * BONE_MASS_SHARE
    return {
        "fat_mass": fat_mass,
        "lean_mass": lean_mass,
        "muscle_mass": lean_mass - bone_mass,
        "bone_mass": bone_mass,
    }


def health_insights(body_fat: float, bmi: float, age: float, gender: str) -> List[Dict[str, str]]:
    insights = []
    if bmi > 25 and body_fat < (18 if gender == "male" else 25):
        insights.append({"category": "Body Composition",
                         "insight": "Your BMI indicates overweight but your body fat is healthy, "
                                    "which suggests higher muscle mass"})
    elif bmi < 25 and body_fat > (20 if gender == "male" else 28):
        insights.append({"category": "Body Composition",
                         "insight": "Your BMI is normal but body fat is elevated; "
                                    "strength training can help build muscle mass"})
    if age > 40:
        insights.append({"category": "Age Factor",
                         "insight": "After 40, maintaining muscle mass becomes increasingly important"})
    if body_fat > HIGH_BODY_FAT[gender]:
        insights.append({"category": "Health Risk",
                         "insight": "Higher body fat is associated with increased risk of cardiovascular "
                                    "disease, diabetes and metabolic syndrome"})
    elif body_fat < VERY_LOW_BODY_FAT[gender]:
        insights.append({"category": "Health Risk",
                         "insight": "Very low body fat can affect hormone production and immune function"})
    return insights


SCHEMA = InputSchema("body_fat", [
    choice("method", list(METHODS), default="us_navy"),
    choice("gender", ["male", "female"]),
    number("age", 18, 100),
    number("weight", 40, 300, unit=WEIGHT_BINDING),
    number("height", 100, 250, unit=HEIGHT_BINDING),
    choice("unit_system", ["metric", "imperial"], default="metric"),
    number("neck", 20, 60, required=False, unit=LENGTH_BINDING),
    number("waist", 50, 150, required=False, unit=LENGTH_BINDING),
    number("hip", 70, 160, required=False, unit=LENGTH_BINDING),
    number("abdomen", 50, 150, required=False, unit=LENGTH_BINDING),
] + [
    number(site, 5, 50, required=False, label=f"{site.capitalize()} skinfold") for site in SKINFOLD_SITES
], rules=[_required_rule(site) for site in ["neck", "waist", "hip", "abdomen"] + SKINFOLD_SITES] + [
    CrossFieldRule("waist", ("waist", "neck"), lambda v: v["waist"] > v["neck"],
                   "Waist circumference must be larger than neck circumference"),
])

FLAGS = [
    FlagRule(
        "very_low_body_fat", FlagLevel.WARNING,
        lambda ctx: ctx.get("body_fat_percentage") is not None
        and ctx.values["body_fat_percentage"] < VERY_LOW_BODY_FAT[ctx.values["gender"]],
        "Body fat below the essential range can affect hormone and immune function",
        ["Consult a healthcare provider or sports nutritionist"],
    ),
]


def build_details(ctx: AssessmentContext) -> Dict[str, Any]:
    values = ctx.values
    body_fat = values.get("body_fat_percentage")
    details: Dict[str, Any] = {
        "methodology": METHODS[values["method"]],
        "bmi": round(values["bmi"], 1),
    }
    if body_fat is None:
        return details
    composition = body_composition(values["weight"], body_fat)
    details["body_fat_percentage"] = round(body_fat, 1)
    details["body_composition"] = {
        name: round(WEIGHT_BINDING.from_canonical(kg, values), 1) for name, kg in composition.items()
    }
    details["body_composition"]["unit"] = WEIGHT_BINDING.entered_unit(values).symbol
    details["health_insights"] = health_insights(body_fat, values["bmi"], values["age"], values["gender"])
    return details


CONFIG = MetricConfig(
    name="body_fat",
    title="Body Fat Calculator",
    description="Body fat percentage and body composition",
    schema=SCHEMA,
    readings=[
        ReadingSpec("body_fat_male", MALE_TABLE, "Body Fat", unit="%"),
        ReadingSpec("body_fat_female", FEMALE_TABLE, "Body Fat", unit="%"),
    ],
    derivations=[
        Derivation("bmi", ("weight", "height"), bmi_from_values),
        Derivation("body_fat_percentage", ("method", "gender", "age", "weight", "height"), _body_fat),
        Derivation("body_fat_male", ("gender",), _for_gender("male")),
        Derivation("body_fat_female", ("gender",), _for_gender("female")),
    ],
    flags=FLAGS,
    details=build_details,
    disclaimer="Body fat estimates from field methods carry measurement error; "
               "DEXA or hydrostatic weighing are more accurate.",
)
