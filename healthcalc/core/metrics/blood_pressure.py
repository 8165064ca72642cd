"""
Blood Pressure Assessment

AHA categories from systolic and diastolic readings. The overall category is
the worse of the two axes; a hypertensive crisis always raises an urgent flag.
"""
from typing import Any, Dict, Mapping

from healthcalc.core.engine.base import FlagLevel
from healthcalc.core.engine.classifier import INF, Severity, build_table
from healthcalc.core.engine.orchestrator import (
    AssessmentContext, Derivation, FlagRule, MetricConfig, ReadingSpec,
    TreatmentOverride, TreatmentPolicy, TreatmentTier,
)
from healthcalc.core.engine.scoring import RiskFactorPredicate, RiskModel, at_least
from healthcalc.core.engine.units import QuantityKind, Unit, UnitBinding
from healthcalc.core.validation.schema import CrossFieldRule, InputSchema, choice, number

CRISIS_SYSTOLIC = 180
CRISIS_DIASTOLIC = 120

PRESSURE_BINDING = UnitBinding(QuantityKind.PRESSURE, "unit", {"mmHg": Unit.MMHG, "kPa": Unit.KPA})

SYSTOLIC_TABLE = build_table("systolic", [
    (120, "Normal", Severity.OK, "Systolic pressure is normal", "<120 mmHg"),
    (130, "Elevated", Severity.CAUTION, "Systolic pressure is elevated", "120-129 mmHg"),
    (140, "Stage 1", Severity.WARNING, "Systolic pressure is in the stage 1 range", "130-139 mmHg"),
    (CRISIS_SYSTOLIC, "Stage 2", Severity.WARNING, "Systolic pressure is in the stage 2 range", "140-179 mmHg"),
    (INF, "Crisis", Severity.CRITICAL, "Systolic pressure is at crisis level", ">=180 mmHg"),
])

DIASTOLIC_TABLE = build_table("diastolic", [
    (80, "Normal", Severity.OK, "Diastolic pressure is normal", "<80 mmHg"),
    (90, "Stage 1", Severity.WARNING, "Diastolic pressure is in the stage 1 range", "80-89 mmHg"),
    (CRISIS_DIASTOLIC, "Stage 2", Severity.WARNING, "Diastolic pressure is in the stage 2 range", "90-119 mmHg"),
    (INF, "Crisis", Severity.CRITICAL, "Diastolic pressure is at crisis level", ">=120 mmHg"),
])

# diastolic has no "elevated" band, so its buckets map onto overall stages 0, 2, 3, 4
_SYSTOLIC_STAGE = [0, 1, 2, 3, 4]
_DIASTOLIC_STAGE = [0, 2, 3, 4]

CATEGORY_TABLE = build_table("blood_pressure_category", [
    (1, "Normal", Severity.OK,
     "Your blood pressure is in the normal range. This is excellent for your heart health "
     "and overall well-being.", "<120 and <80", [
         "Maintain a healthy lifestyle with regular exercise",
         "Follow a balanced diet low in sodium",
         "Monitor your blood pressure regularly",
         "Avoid smoking and limit alcohol consumption",
     ]),
    (2, "Elevated", Severity.CAUTION,
     "Your blood pressure is elevated. Without changes, you may develop high blood pressure "
     "in the future.", "120-129 and <80", [
         "Adopt heart-healthy lifestyle changes",
         "Increase physical activity to 150 minutes per week",
         "Reduce sodium intake to less than 2,300mg daily",
         "Monitor blood pressure monthly",
     ]),
    (3, "Stage 1 Hypertension", Severity.WARNING,
     "You have Stage 1 high blood pressure. Lifestyle changes and possibly medication are "
     "recommended.", "130-139 or 80-89", [
         "See your doctor within 1 month for evaluation",
         "Implement aggressive lifestyle changes",
         "Monitor blood pressure weekly",
         "Follow DASH diet guidelines",
     ]),
    (4, "Stage 2 Hypertension", Severity.WARNING,
     "You have Stage 2 high blood pressure. Medical attention and medication are likely "
     "needed.", ">=140 or >=90", [
         "See your doctor within 1-2 weeks",
         "Medication will likely be prescribed",
         "Monitor blood pressure daily",
         "Make immediate lifestyle changes",
     ]),
    (INF, "Hypertensive Crisis", Severity.CRITICAL,
     "This reading suggests a hypertensive crisis. Seek immediate medical attention or call "
     "emergency services.", ">=180 or >=120", [
         "Seek immediate medical attention",
         "Call emergency services if experiencing symptoms",
         "Rest in a quiet place until help arrives",
     ]),
])

RISK_TIERS = build_table("blood_pressure_risk", [
    (1, "Low", Severity.OK, "Blood pressure poses low cardiovascular risk.", "Normal", [
        "Monitor blood pressure annually",
    ]),
    (2, "Moderate", Severity.CAUTION, "Elevated pressure raises future hypertension risk.", "Elevated", [
        "Focus on lifestyle modifications",
    ]),
    (4, "High", Severity.WARNING, "Hypertension increases heart attack and stroke risk.", "Stage 1-2", [
        "Consult with your healthcare provider",
        "Reduce sodium intake",
    ]),
    (INF, "Critical", Severity.CRITICAL, "This level of blood pressure can cause organ damage.", "Crisis", [
        "Seek emergency care now",
    ]),
])

RISK_MODEL = RiskModel("blood_pressure_risk", [
    RiskFactorPredicate("Above normal", 1, at_least("bp_stage", 1), "Pressure above the normal range"),
    RiskFactorPredicate("Hypertension", 1, at_least("bp_stage", 2), "Stage 1 hypertension or higher"),
    RiskFactorPredicate("Stage 2 hypertension", 1, at_least("bp_stage", 3), "Stage 2 hypertension or higher"),
    RiskFactorPredicate("Hypertensive crisis", 3, at_least("bp_stage", 4), "Crisis-level pressure"),
], RISK_TIERS)


def blood_pressure_stage(values: Mapping[str, Any]) -> int:
    """Overall stage 0-4: the worse of the systolic and diastolic ranks."""
    systolic = _SYSTOLIC_STAGE[SYSTOLIC_TABLE.index_of(values["systolic"])]
    diastolic = _DIASTOLIC_STAGE[DIASTOLIC_TABLE.index_of(values["diastolic"])]
    return max(systolic, diastolic)


SCHEMA = InputSchema("blood_pressure", [
    number("systolic", 50, 300, unit=PRESSURE_BINDING),
    number("diastolic", 30, 200, unit=PRESSURE_BINDING),
    choice("unit", ["mmHg", "kPa"], default="mmHg"),
    number("age", 1, 120, required=False),
    choice("gender", ["male", "female"], required=False),
], rules=[
    CrossFieldRule("systolic", ("systolic", "diastolic"),
                   lambda v: v["systolic"] > v["diastolic"],
                   "Systolic pressure must be higher than diastolic pressure"),
])

TREATMENT = TreatmentPolicy(
    tiers=[
        TreatmentTier("routine_monitoring", "Routine Monitoring", "Keep up your current habits", [
            "Monitor blood pressure annually",
        ]),
        TreatmentTier("lifestyle_changes", "Lifestyle Changes", "Lifestyle changes can prevent hypertension", [
            "Adopt a heart-healthy diet",
            "Limit alcohol and quit smoking",
        ]),
        TreatmentTier("medical_evaluation", "Medical Evaluation", "Schedule an evaluation with your doctor", [
            "Schedule an appointment with your doctor",
            "Consider lifestyle changes and medication",
        ]),
        TreatmentTier("emergency_care", "Emergency Care", "Seek immediate medical care", [
            "Call emergency services immediately",
            "Do not drive yourself to the hospital",
        ]),
    ],
    by_risk={
        "low": "routine_monitoring",
        "moderate": "lifestyle_changes",
        "high": "medical_evaluation",
        "critical": "emergency_care",
    },
    urgent_tier="emergency_care",
    overrides=[
        TreatmentOverride(
            "age 65 or older",
            lambda ctx: ctx.get("age", 0) >= 65,
            recommendations=["Discuss with your doctor about age-specific blood pressure targets"],
        ),
        TreatmentOverride(
            "age 65 or older with normal pressure",
            lambda ctx: ctx.get("age", 0) >= 65 and ctx.get("bp_stage") == 0,
            recommendations=["Continue excellent self-care as blood pressure tends to increase with age"],
        ),
    ],
)

FLAGS = [
    FlagRule(
        "hypertensive_crisis", FlagLevel.URGENT,
        lambda ctx: ctx.get("systolic", 0) >= CRISIS_SYSTOLIC or ctx.get("diastolic", 0) >= CRISIS_DIASTOLIC,
        "EMERGENCY: Blood pressure is at a hypertensive crisis level. "
        "Call emergency services immediately.",
        [
            "Call emergency services immediately",
            "Do not drive yourself to the hospital",
            "Stay calm and rest until help arrives",
            "Take prescribed emergency medication if available",
        ],
    ),
]


def build_details(ctx: AssessmentContext) -> Dict[str, Any]:
    systolic, diastolic = ctx.values["systolic"], ctx.values["diastolic"]
    return {
        "systolic_mmhg": round(systolic),
        "diastolic_mmhg": round(diastolic),
        "pulse_pressure": round(systolic - diastolic),
        "mean_arterial_pressure": round((systolic + 2 * diastolic) / 3),
    }


CONFIG = MetricConfig(
    name="blood_pressure",
    title="Blood Pressure Calculator",
    description="AHA blood pressure category with emergency detection",
    schema=SCHEMA,
    readings=[
        ReadingSpec("systolic", SYSTOLIC_TABLE, "Systolic", precision=0),
        ReadingSpec("diastolic", DIASTOLIC_TABLE, "Diastolic", precision=0),
        ReadingSpec("bp_stage", CATEGORY_TABLE, "Blood Pressure Category", unit="stage", precision=0),
    ],
    derivations=[Derivation("bp_stage", ("systolic", "diastolic"), blood_pressure_stage)],
    risk_model=RISK_MODEL,
    treatment=TREATMENT,
    flags=FLAGS,
    details=build_details,
    disclaimer="A single reading is not a diagnosis. Confirm elevated readings with repeated measurements.",
)
