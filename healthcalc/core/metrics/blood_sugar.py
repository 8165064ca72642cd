"""
Blood Sugar Assessment

Fasting, random and post-meal glucose classification, HbA1c conversion with
estimated average glucose, and a type 2 diabetes risk score.

Every supplied reading is analyzed regardless of ``calculation_type``; the
type only decides which inputs are mandatory. Hypo- and hyperglycemia flags
are raised per reading and never depend on the risk score.
"""
from typing import Any, Dict, List

from healthcalc.core.engine.base import FlagLevel
from healthcalc.core.engine.classifier import INF, Severity, build_table
from healthcalc.core.engine.orchestrator import (
    AssessmentContext, Derivation, FlagRule, MetricConfig, ReadingSpec,
)
from healthcalc.core.engine.scoring import (
    RiskFactorPredicate, RiskModel, all_of, at_least, between, is_true, one_of,
)
from healthcalc.core.engine.units import QuantityKind, Unit, UnitBinding
from healthcalc.core.metrics.bmi import bmi_from_values
from healthcalc.core.validation.schema import (
    CrossFieldRule, InputSchema, boolean, choice, number,
)

GLUCOSE_BINDING = UnitBinding(QuantityKind.GLUCOSE, "glucose_unit",
                              {"mg_dl": Unit.MG_DL, "mmol_l": Unit.MMOL_L})
GLUCOSE_FIELDS = ("fasting_glucose", "random_glucose", "post_meal_glucose")
MG_DL_PER_MMOL_L = 18.0182

SEVERE_HYPO = 54
HYPO = 70
VERY_HIGH = 300
EXTREME_HIGH = 400

_HYPO_ADVICE = [
    "Treat immediately with 15g fast-acting carbs",
    "Recheck in 15 minutes",
    "Contact healthcare provider if frequent episodes",
]

FASTING_TABLE = build_table("fasting_glucose", [
    (HYPO, "Hypoglycemia", Severity.CRITICAL, "Low blood sugar", "<70 mg/dL", _HYPO_ADVICE),
    (100, "Normal", Severity.OK, "Normal fasting glucose", "70-99 mg/dL", [
        "Maintain healthy lifestyle",
        "Continue regular monitoring if at risk",
        "Annual screening recommended",
    ]),
    (126, "Prediabetes", Severity.CAUTION, "Impaired fasting glucose", "100-125 mg/dL", [
        "Lifestyle modifications recommended",
        "Weight loss if overweight",
        "Increase physical activity",
        "Follow up with healthcare provider",
    ]),
    (INF, "Diabetes Range", Severity.WARNING, "Meets criteria for diabetes", ">=126 mg/dL", [
        "Consult healthcare provider promptly",
        "Confirm with repeat testing",
        "Monitor blood sugar regularly",
    ]),
])

RANDOM_TABLE = build_table("random_glucose", [
    (HYPO, "Hypoglycemia", Severity.CRITICAL, "Low blood sugar", "<70 mg/dL", _HYPO_ADVICE),
    (140, "Normal", Severity.OK, "Normal random glucose", "<140 mg/dL", [
        "Continue healthy habits",
        "Regular screening if at risk",
    ]),
    (200, "Elevated", Severity.CAUTION, "Elevated random glucose", "140-199 mg/dL", [
        "Further testing recommended",
        "Consider glucose tolerance test",
        "Lifestyle modifications",
    ]),
    (INF, "Diabetes Range", Severity.WARNING, "Meets criteria for diabetes", ">=200 mg/dL", [
        "Seek medical attention",
        "Confirm with additional testing",
    ]),
])

POST_MEAL_TABLE = build_table("post_meal_glucose", [
    (HYPO, "Hypoglycemia", Severity.CRITICAL, "Low blood sugar", "<70 mg/dL", [
        "Treat hypoglycemia immediately",
        "Review meal timing and medication",
        "Consult healthcare provider",
    ]),
    (140, "Normal", Severity.OK, "Normal post-meal glucose", "<140 mg/dL", [
        "Good glucose control",
        "Continue current management",
    ]),
    (200, "Elevated", Severity.CAUTION, "Elevated post-meal glucose", "140-199 mg/dL", [
        "Consider meal composition adjustments",
        "Increase physical activity after meals",
        "Discuss with healthcare provider",
    ]),
    (INF, "High", Severity.WARNING, "High post-meal glucose", ">=200 mg/dL", [
        "Review diabetes management plan",
        "Consider medication adjustment",
        "Consult healthcare provider",
    ]),
])

HBA1C_TABLE = build_table("hba1c", [
    (5.7, "Normal", Severity.OK, "Normal HbA1c", "<5.7%", [
        "Maintain healthy lifestyle",
        "Annual screening recommended",
    ]),
    (6.5, "Prediabetes", Severity.CAUTION, "Increased diabetes risk", "5.7-6.4%", [
        "Intensive lifestyle modifications",
        "Weight loss program if overweight",
        "Monitor every 3-6 months",
    ]),
    (7.0, "Diabetes - Good Control", Severity.CAUTION, "Diabetes with good control", "6.5-6.9%", [
        "Maintain current diabetes management",
        "Regular monitoring and follow-up",
    ]),
    (8.0, "Diabetes - Fair Control", Severity.WARNING, "Diabetes with fair control", "7.0-7.9%", [
        "Review diabetes management plan",
        "Consider medication adjustments",
        "More frequent monitoring",
    ]),
    (INF, "Diabetes - Poor Control", Severity.WARNING, "Diabetes with poor control", ">=8.0%", [
        "Prompt medical consultation",
        "Comprehensive diabetes management review",
        "Risk of complications assessment",
    ]),
])

RISK_TIERS = build_table("diabetes_risk", [
    (11, "Low", Severity.OK, "Your risk of developing type 2 diabetes is low.", "score 0-10", [
        "Continue annual diabetes screening",
        "Maintain healthy diet and regular exercise",
    ]),
    (21, "Moderate", Severity.CAUTION, "Your risk of developing type 2 diabetes is moderate.", "score 11-20", [
        "Diabetes screening every 6-12 months",
        "Achieve and maintain healthy weight",
        "At least 150 minutes moderate exercise weekly",
    ]),
    (31, "High", Severity.WARNING, "Your risk of developing type 2 diabetes is high.", "score 21-30", [
        "Consult healthcare provider for prevention plan",
        "Diabetes screening every 3-6 months",
        "Consider structured diabetes prevention program",
    ]),
    (INF, "Very High", Severity.CRITICAL, "Your risk of developing type 2 diabetes is very high.", "score >30", [
        "Medical consultation recommended soon",
        "Comprehensive diabetes testing",
        "Enroll in intensive lifestyle intervention",
    ]),
])

RISK_PERCENTAGE = {"low": 5, "moderate": 15, "high": 35, "very_high": 55}

HIGH_RISK_ETHNICITIES = ("african_american", "hispanic", "asian", "native_american")

RISK_MODEL = RiskModel("diabetes_risk", [
    RiskFactorPredicate("Age >=45 years", 5, at_least("age", 45)),
    RiskFactorPredicate("Obesity (BMI >=30)", 8, at_least("bmi", 30)),
    RiskFactorPredicate("Overweight (BMI 25-29.9)", 5, between("bmi", 25, 30)),
    RiskFactorPredicate("Both parents with diabetes", 8, one_of("family_history", "both")),
    RiskFactorPredicate("Family history of diabetes", 5, one_of("family_history", "parent", "sibling")),
    RiskFactorPredicate("High-risk ethnicity", 5, one_of("ethnicity", *HIGH_RISK_ETHNICITIES)),
    RiskFactorPredicate("Low physical activity", 5, one_of("physical_activity", "low")),
    RiskFactorPredicate("High blood pressure", 5, one_of("blood_pressure", "high")),
    RiskFactorPredicate("Elevated blood pressure", 3, one_of("blood_pressure", "elevated")),
    RiskFactorPredicate("History of prediabetes", 10, is_true("prediabetes")),
    RiskFactorPredicate("History of gestational diabetes", 8,
                        all_of(is_true("gestational_diabetes"), one_of("gender", "female"))),
    RiskFactorPredicate("History of PCOS", 5,
                        all_of(is_true("pcos_history"), one_of("gender", "female"))),
], RISK_TIERS, required_fields=("age", "gender", "weight", "height"))


def hba1c_percent_to_mmol_mol(percent: float) -> float:
    """IFCC mmol/mol from NGSP percent."""
    return (percent - 2.15) * 10.929


def hba1c_mmol_mol_to_percent(mmol_mol: float) -> float:
    return mmol_mol / 10.929 + 2.15


def estimated_average_glucose(percent: float) -> float:
    """eAG in mg/dL from HbA1c percent."""
    return 28.7 * percent - 46.7


def _require_for_type(calculation_type: str, check):
    return lambda v: v["calculation_type"] != calculation_type or check(v)


SCHEMA = InputSchema("blood_sugar", [
    choice("calculation_type", ["glucose_analysis", "hba1c_conversion", "diabetes_risk"],
           default="glucose_analysis"),
    number("fasting_glucose", 20, 600, required=False, unit=GLUCOSE_BINDING),
    number("random_glucose", 20, 600, required=False, unit=GLUCOSE_BINDING),
    number("post_meal_glucose", 20, 600, required=False, unit=GLUCOSE_BINDING,
           label="Post-meal glucose"),
    choice("glucose_unit", ["mg_dl", "mmol_l"], default="mg_dl"),
    number("hba1c_percent", 3, 20, required=False, label="HbA1c (%)"),
    number("hba1c_mmol_mol", 10, 200, required=False, label="HbA1c (mmol/mol)"),
    number("age", 18, 100, required=False),
    choice("gender", ["male", "female"], required=False),
    number("weight", 40, 300, required=False, label="Weight (kg)"),
    number("height", 100, 250, required=False, label="Height (cm)"),
    choice("family_history", ["none", "parent", "sibling", "both"], default="none"),
    choice("ethnicity", ["caucasian", "african_american", "hispanic", "asian", "native_american", "other"],
           required=False),
    choice("physical_activity", ["low", "moderate", "high"], default="moderate"),
    choice("blood_pressure", ["normal", "elevated", "high"], default="normal"),
    boolean("prediabetes"),
    boolean("gestational_diabetes"),
    boolean("pcos_history", label="PCOS history"),
    number("sleep_hours", 3, 12, required=False, default=7),
], rules=[
    CrossFieldRule("fasting_glucose", ("calculation_type",),
                   _require_for_type("glucose_analysis",
                                     lambda v: any(v.get(f) is not None for f in GLUCOSE_FIELDS)),
                   "At least one glucose reading is required for glucose analysis"),
    CrossFieldRule("hba1c_percent", ("calculation_type",),
                   _require_for_type("hba1c_conversion",
                                     lambda v: v.get("hba1c_percent") is not None
                                     or v.get("hba1c_mmol_mol") is not None),
                   "HbA1c value is required for conversion"),
    CrossFieldRule("age", ("calculation_type",),
                   _require_for_type("diabetes_risk",
                                     lambda v: all(v.get(f) is not None
                                                   for f in ("age", "gender", "weight", "height"))),
                   "Basic information is required for risk assessment"),
])


def _glucose_flags(field: str, label: str) -> List[FlagRule]:
    value = lambda ctx: ctx.values.get(field)  # noqa: E731
    return [
        FlagRule(f"{field}_severe_hypoglycemia", FlagLevel.SEVERE,
                 lambda ctx: value(ctx) is not None and value(ctx) < SEVERE_HYPO,
                 f"Severe hypoglycemia detected ({label}) - immediate action required",
                 ["Treat with 15-20g fast-acting carbs immediately",
                  "Call emergency services if unconscious",
                  "Recheck glucose in 15 minutes",
                  "Seek medical attention"],
                 group=field),
        FlagRule(f"{field}_hypoglycemia", FlagLevel.URGENT,
                 lambda ctx: value(ctx) is not None and value(ctx) < HYPO,
                 f"Hypoglycemia detected ({label}) - treat immediately",
                 ["Consume 15g fast-acting carbs",
                  "Recheck in 15 minutes",
                  "Repeat treatment if still low",
                  "Contact healthcare provider if frequent episodes"],
                 group=field),
        FlagRule(f"{field}_extreme_hyperglycemia", FlagLevel.SEVERE,
                 lambda ctx: value(ctx) is not None and value(ctx) > EXTREME_HIGH,
                 f"Extremely high blood sugar ({label}) - seek immediate medical care",
                 ["Contact emergency services immediately",
                  "Check for ketones if possible",
                  "Stay hydrated"],
                 group=field),
        FlagRule(f"{field}_hyperglycemia", FlagLevel.URGENT,
                 lambda ctx: value(ctx) is not None and value(ctx) > VERY_HIGH,
                 f"Very high blood sugar ({label}) - medical attention needed",
                 ["Contact healthcare provider immediately",
                  "Check blood sugar frequently",
                  "Monitor for symptoms of DKA"],
                 group=field),
    ]


FLAGS = (
    _glucose_flags("fasting_glucose", "fasting")
    + _glucose_flags("random_glucose", "random")
    + _glucose_flags("post_meal_glucose", "post-meal")
    + [
        FlagRule("hba1c_very_poor_control", FlagLevel.CAUTION,
                 lambda ctx: ctx.get("hba1c_percent", 0) > 10,
                 "HbA1c indicates very poor diabetes control",
                 ["Schedule urgent appointment with diabetes specialist",
                  "Assess for diabetes complications",
                  "Intensive blood sugar monitoring required"]),
    ]
)


def _insights(ctx: AssessmentContext) -> List[Dict[str, str]]:
    insights = []
    glucose = [ctx.readings[f] for f in GLUCOSE_FIELDS if f in ctx.readings]
    if any(r.category.severity in (Severity.WARNING, Severity.CRITICAL) for r in glucose):
        insights.append({
            "category": "Blood Sugar Control",
            "insight": "Your glucose readings are outside the normal range. Medical follow-up is "
                       "recommended to prevent complications.",
        })
    elif any(r.category.severity == Severity.CAUTION for r in glucose):
        insights.append({
            "category": "Prediabetes Risk",
            "insight": "Your glucose levels indicate prediabetes risk. Early intervention with "
                       "lifestyle changes can prevent progression to diabetes.",
        })
    if ctx.get("hba1c_percent", 0) >= 7:
        insights.append({
            "category": "Long-term Control",
            "insight": "Your HbA1c suggests diabetes management could be improved.",
        })
    if ctx.risk_tier in ("high", "very_high"):
        insights.append({
            "category": "Prevention Opportunity",
            "insight": "You have multiple risk factors for diabetes. Lifestyle changes can reduce "
                       "your risk by up to 58%.",
        })
    if ctx.values.get("physical_activity") == "low":
        insights.append({
            "category": "Physical Activity",
            "insight": "Regular exercise is one of the most effective ways to prevent diabetes.",
        })
    sleep = ctx.values.get("sleep_hours")
    if sleep is not None and (sleep < 6 or sleep > 9):
        insights.append({
            "category": "Sleep Quality",
            "insight": "Poor sleep affects blood sugar control. Aim for 7-9 hours nightly.",
        })
    return insights


def build_details(ctx: AssessmentContext) -> Dict[str, Any]:
    details: Dict[str, Any] = {
        "calculation_type": ctx.values["calculation_type"],
        "insights": _insights(ctx),
    }
    percent = ctx.values.get("hba1c_percent")
    if percent is not None:
        eag = estimated_average_glucose(percent)
        details["hba1c"] = {
            "percent": round(percent, 1),
            "mmol_mol": round(ctx.values["hba1c_mmol_mol"]),
            "estimated_average_glucose": {
                "mg_dl": round(eag),
                "mmol_l": round(eag / MG_DL_PER_MMOL_L, 1),
            },
        }
    if ctx.risk is not None:
        details["diabetes_risk_percent"] = RISK_PERCENTAGE[ctx.risk.tier.code]
    if ctx.values.get("bmi") is not None:
        details["bmi"] = round(ctx.values["bmi"], 1)
    return details


CONFIG = MetricConfig(
    name="blood_sugar",
    title="Blood Sugar Calculator",
    description="Glucose and HbA1c interpretation with type 2 diabetes risk",
    schema=SCHEMA,
    readings=[
        ReadingSpec("fasting_glucose", FASTING_TABLE, "Fasting Glucose", precision=0),
        ReadingSpec("random_glucose", RANDOM_TABLE, "Random Glucose", precision=0),
        ReadingSpec("post_meal_glucose", POST_MEAL_TABLE, "Post-meal Glucose", precision=0),
        ReadingSpec("hba1c_percent", HBA1C_TABLE, "HbA1c", unit="%"),
    ],
    derivations=[
        Derivation("hba1c_percent", ("hba1c_mmol_mol",),
                   lambda v: hba1c_mmol_mol_to_percent(v["hba1c_mmol_mol"])),
        Derivation("hba1c_mmol_mol", ("hba1c_percent",),
                   lambda v: hba1c_percent_to_mmol_mol(v["hba1c_percent"])),
        Derivation("bmi", ("weight", "height"), bmi_from_values),
    ],
    risk_model=RISK_MODEL,
    flags=FLAGS,
    details=build_details,
    disclaimer="Blood sugar results should be confirmed by a healthcare provider. "
               "This tool does not diagnose diabetes.",
)
