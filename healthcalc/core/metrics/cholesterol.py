"""
Cholesterol Assessment

Lipid panel classification, Friedewald LDL estimation, lipid ratios and an
additive cardiovascular risk score with statin-intensity guidance.
"""
from typing import Any, Dict, List, Mapping

import numpy as np

from healthcalc.core.engine.base import FlagLevel
from healthcalc.core.engine.classifier import INF, Severity, build_table
from healthcalc.core.engine.errors import DomainInvalidError
from healthcalc.core.engine.orchestrator import (
    AssessmentContext, Derivation, FlagRule, MetricConfig, ReadingSpec,
    TreatmentOverride, TreatmentPolicy, TreatmentTier,
)
from healthcalc.core.engine.scoring import (
    RiskFactorPredicate, RiskModel, above, all_of, at_least, below, is_true, one_of,
)
from healthcalc.core.engine.units import QuantityKind, Unit, UnitBinding
from healthcalc.core.validation.schema import (
    CrossFieldRule, InputSchema, boolean, choice, number,
)

FRIEDEWALD_TG_LIMIT = 400.0

LIPID_UNITS = {"mg_dl": Unit.MG_DL, "mmol_l": Unit.MMOL_L}
CHOLESTEROL_BINDING = UnitBinding(QuantityKind.CHOLESTEROL, "cholesterol_unit", LIPID_UNITS)
TRIGLYCERIDE_BINDING = UnitBinding(QuantityKind.TRIGLYCERIDES, "cholesterol_unit", LIPID_UNITS)


TOTAL_TABLE = build_table("total_cholesterol", [
    (200, "Desirable", Severity.OK, "Optimal total cholesterol", "<200 mg/dL", [
        "Maintain current healthy lifestyle",
        "Continue regular monitoring",
        "Focus on heart-healthy diet",
    ]),
    (240, "Borderline High", Severity.CAUTION, "Borderline high total cholesterol", "200-239 mg/dL", [
        "Adopt heart-healthy diet",
        "Increase physical activity",
        "Consider lifestyle counseling",
    ]),
    (INF, "High", Severity.WARNING, "High total cholesterol", ">=240 mg/dL", [
        "Implement comprehensive lifestyle changes",
        "Consult healthcare provider",
        "Consider medication evaluation",
    ]),
])

LDL_TABLE = build_table("ldl_cholesterol", [
    (100, "Optimal", Severity.OK, "Optimal LDL cholesterol", "<100 mg/dL", [
        "Maintain excellent control",
        "Continue current management",
        "Regular monitoring",
    ]),
    (130, "Near Optimal", Severity.OK, "Near optimal LDL cholesterol", "100-129 mg/dL", [
        "Optimize diet and exercise",
        "Consider risk factor modification",
        "Monitor closely",
    ]),
    (160, "Borderline High", Severity.CAUTION, "Borderline high LDL cholesterol", "130-159 mg/dL", [
        "Implement therapeutic lifestyle changes",
        "Consider medication if high risk",
        "Regular follow-up required",
    ]),
    (190, "High", Severity.WARNING, "High LDL cholesterol", "160-189 mg/dL", [
        "Aggressive lifestyle modifications",
        "Likely medication needed",
        "Consult cardiologist",
    ]),
    (INF, "Very High", Severity.WARNING, "Very high LDL cholesterol", ">=190 mg/dL", [
        "Prompt medical evaluation",
        "High-intensity statin likely needed",
        "Screen for genetic causes",
    ]),
])

HDL_TABLE = build_table("hdl_cholesterol", [
    (40, "Low", Severity.WARNING, "Low HDL cholesterol (major risk factor)", "<40 mg/dL", [
        "Increase physical activity",
        "Quit smoking if applicable",
        "Discuss niacin or fibrate therapy with your provider",
        "Weight loss if overweight",
    ]),
    (60, "Borderline", Severity.CAUTION, "Borderline HDL cholesterol", "40-59 mg/dL", [
        "Regular aerobic exercise",
        "Maintain healthy weight",
        "Monitor regularly",
    ]),
    (INF, "High", Severity.OK, "High HDL cholesterol (protective)", ">=60 mg/dL", [
        "Maintain current lifestyle",
        "Continue regular exercise",
    ]),
])

TRIGLYCERIDES_TABLE = build_table("triglycerides", [
    (150, "Normal", Severity.OK, "Normal triglycerides", "<150 mg/dL", [
        "Maintain current lifestyle",
        "Continue healthy diet",
        "Regular physical activity",
    ]),
    (200, "Borderline High", Severity.CAUTION, "Borderline high triglycerides", "150-199 mg/dL", [
        "Reduce refined carbohydrates",
        "Limit alcohol consumption",
        "Increase omega-3 fatty acids",
    ]),
    (500, "High", Severity.WARNING, "High triglycerides", "200-499 mg/dL", [
        "Significant dietary changes needed",
        "Consider medication",
        "Address insulin resistance",
    ]),
    (INF, "Very High", Severity.CRITICAL, "Very high triglycerides", ">=500 mg/dL", [
        "Immediate medical attention",
        "Risk of pancreatitis",
        "Aggressive treatment needed",
    ]),
])

_NON_HDL_ADVICE = [
    "Focus on reducing total cholesterol",
    "Address all atherogenic lipoproteins",
]

NON_HDL_TABLE = build_table("non_hdl_cholesterol", [
    (130, "Optimal", Severity.OK, "Optimal non-HDL cholesterol", "<130 mg/dL", _NON_HDL_ADVICE),
    (160, "Near Optimal", Severity.OK, "Near optimal non-HDL cholesterol", "130-159 mg/dL", _NON_HDL_ADVICE),
    (190, "Borderline High", Severity.CAUTION, "Borderline high non-HDL cholesterol", "160-189 mg/dL",
     _NON_HDL_ADVICE),
    (INF, "High", Severity.WARNING, "High non-HDL cholesterol", ">=190 mg/dL", _NON_HDL_ADVICE),
])


def _ratio_table(name: str, cutoffs):
    good, fair, borderline = cutoffs
    return build_table(name, [
        (good, "Excellent", Severity.OK, "Excellent ratio", f"<{good:g}"),
        (fair, "Good", Severity.OK, "Good ratio", f"{good:g}-{fair:g}"),
        (borderline, "Borderline", Severity.CAUTION, "Borderline ratio", f"{fair:g}-{borderline:g}"),
        (INF, "Poor", Severity.WARNING, "Poor ratio", f">={borderline:g}"),
    ])


TOTAL_HDL_RATIO_TABLE = _ratio_table("total_hdl_ratio", (3.5, 5, 6))
LDL_HDL_RATIO_TABLE = _ratio_table("ldl_hdl_ratio", (2, 3, 4))
TG_HDL_RATIO_TABLE = _ratio_table("tg_hdl_ratio", (2, 4, 6))

RISK_TIERS = build_table("cardiovascular_risk", [
    (2, "Low", Severity.OK,
     "Your estimated cardiovascular risk is low.", "score 0-1", [
         "Maintain a heart-healthy lifestyle",
         "Recheck lipids every 4-6 years",
     ]),
    (3, "Borderline", Severity.CAUTION,
     "Your estimated cardiovascular risk is borderline.", "score 2", [
         "Intensify lifestyle changes",
         "Discuss risk-enhancing factors with your provider",
     ]),
    (7, "Intermediate", Severity.WARNING,
     "Your estimated cardiovascular risk is intermediate.", "score 3-6", [
         "Discuss statin therapy with your provider",
         "Address each modifiable risk factor",
     ]),
    (INF, "High", Severity.CRITICAL,
     "Your estimated cardiovascular risk is high.", "score >=7", [
         "Medical management is recommended",
         "Aggressive risk factor modification",
     ]),
])


RISK_FACTORS = [
    RiskFactorPredicate("Age (male, 45+)", 2,
                        all_of(at_least("age", 45), one_of("gender", "male")),
                        "Age increases cardiovascular risk"),
    RiskFactorPredicate("Age (female, 45+)", 1,
                        all_of(at_least("age", 45), one_of("gender", "female")),
                        "Age increases cardiovascular risk"),
    RiskFactorPredicate("Male Gender", 1, one_of("gender", "male"),
                        "Male gender is an independent risk factor"),
    RiskFactorPredicate("High HDL", -1, at_least("hdl_cholesterol", 60),
                        "High HDL cholesterol provides cardioprotection"),
    RiskFactorPredicate("Low HDL", 1, below("hdl_cholesterol", 40),
                        "Low HDL cholesterol significantly increases risk"),
    RiskFactorPredicate("Current Smoking", 2, one_of("smoking_status", "current"),
                        "Smoking dramatically increases cardiovascular risk"),
    RiskFactorPredicate("Diabetes", 2, one_of("diabetes_status", "type1", "type2"),
                        "Diabetes significantly increases cardiovascular risk"),
    RiskFactorPredicate("Prediabetes", 1, one_of("diabetes_status", "prediabetes"),
                        "Prediabetes raises cardiovascular risk"),
    RiskFactorPredicate("Family History", 1,
                        one_of("family_history", "premature_cad", "stroke", "both"),
                        "Family history of premature cardiovascular disease"),
    RiskFactorPredicate("Prior CVD", 3, is_true("prior_cvd"),
                        "Previous cardiovascular disease significantly increases risk"),
    RiskFactorPredicate("Elevated LDL", 1, above("ldl_cholesterol", 160),
                        "LDL above 160 mg/dL accelerates atherosclerosis"),
    RiskFactorPredicate("Elevated Triglycerides", 1, above("triglycerides", 200),
                        "Triglycerides above 200 mg/dL add residual risk"),
]

RISK_MODEL = RiskModel("cardiovascular_risk", RISK_FACTORS, RISK_TIERS)


def _friedewald_ldl(values: Mapping[str, Any]) -> float:
    tg = values["triglycerides"]
    if tg >= FRIEDEWALD_TG_LIMIT:
        raise DomainInvalidError(
            "ldl_cholesterol",
            "LDL cannot be estimated when triglycerides are 400 mg/dL or higher; "
            "direct LDL measurement is required",
        )
    ldl = values["total_cholesterol"] - values["hdl_cholesterol"] - tg / 5
    if ldl <= 0:
        raise DomainInvalidError(
            "ldl_cholesterol",
            f"Friedewald estimate of {ldl:g} mg/dL is not a usable LDL value; "
            "direct LDL measurement is required",
        )
    return ldl


DERIVATIONS = [
    Derivation("ldl_cholesterol", ("total_cholesterol", "hdl_cholesterol", "triglycerides"),
               _friedewald_ldl),
    Derivation("non_hdl_cholesterol", ("total_cholesterol", "hdl_cholesterol"),
               lambda v: v["total_cholesterol"] - v["hdl_cholesterol"]),
    Derivation("total_hdl_ratio", ("total_cholesterol", "hdl_cholesterol"),
               lambda v: v["total_cholesterol"] / v["hdl_cholesterol"]),
    Derivation("ldl_hdl_ratio", ("ldl_cholesterol", "hdl_cholesterol"),
               lambda v: v["ldl_cholesterol"] / v["hdl_cholesterol"]),
    Derivation("tg_hdl_ratio", ("triglycerides", "hdl_cholesterol"),
               lambda v: v["triglycerides"] / v["hdl_cholesterol"]),
]


SCHEMA = InputSchema("cholesterol", [
    number("total_cholesterol", 100, 500, unit=CHOLESTEROL_BINDING),
    number("ldl_cholesterol", 30, 400, required=False, unit=CHOLESTEROL_BINDING,
           label="LDL cholesterol"),
    number("hdl_cholesterol", 20, 150, unit=CHOLESTEROL_BINDING, label="HDL cholesterol"),
    number("triglycerides", 30, 1000, unit=TRIGLYCERIDE_BINDING),
    choice("cholesterol_unit", ["mg_dl", "mmol_l"], default="mg_dl"),
    number("age", 20, 100),
    choice("gender", ["male", "female"]),
    choice("smoking_status", ["never", "former", "current"], default="never"),
    choice("diabetes_status", ["none", "prediabetes", "type1", "type2"], default="none"),
    choice("family_history", ["none", "premature_cad", "stroke", "both"], default="none"),
    number("systolic_bp", 70, 250, required=False, label="Systolic blood pressure"),
    number("diastolic_bp", 40, 150, required=False, label="Diastolic blood pressure"),
    choice("physical_activity", ["sedentary", "low", "moderate", "high"], default="moderate"),
    boolean("prior_cvd", label="Prior cardiovascular disease"),
], rules=[
    CrossFieldRule("hdl_cholesterol", ("hdl_cholesterol", "total_cholesterol"),
                   lambda v: v["hdl_cholesterol"] < v["total_cholesterol"],
                   "HDL cholesterol must be lower than total cholesterol"),
    CrossFieldRule("systolic_bp", ("systolic_bp", "diastolic_bp"),
                   lambda v: v["systolic_bp"] > v["diastolic_bp"],
                   "Systolic pressure must be higher than diastolic pressure"),
    CrossFieldRule("prior_cvd", ("age", "prior_cvd"),
                   lambda v: not (v["age"] < 40 and v["prior_cvd"]),
                   "Prior CVD at young age requires specialist consultation"),
])


TREATMENT = TreatmentPolicy(
    tiers=[
        TreatmentTier("lifestyle", "Lifestyle", "Focus on lifestyle modifications first", [
            "Adopt heart-healthy diet (Mediterranean or DASH)",
            "Regular aerobic exercise (150 min/week moderate intensity)",
        ]),
        TreatmentTier("medication_consideration", "Medication Consideration",
                      "Statin therapy should be considered alongside lifestyle changes", [
                          "Discuss statin therapy with your healthcare provider",
                          "Recheck lipid panel in 3-6 months",
                      ]),
        TreatmentTier("medication_indicated", "Medication Indicated",
                      "Lipid-lowering medication is recommended", [
                          "High-intensity statin therapy is recommended",
                          "Follow up with your provider within weeks",
                      ]),
    ],
    by_risk={
        "low": "lifestyle",
        "borderline": "medication_consideration",
        "intermediate": "medication_consideration",
        "high": "medication_indicated",
    },
    urgent_tier="medication_indicated",
    overrides=[
        TreatmentOverride("prior cardiovascular disease",
                          lambda ctx: ctx.values.get("prior_cvd") is True,
                          tier="medication_indicated"),
        TreatmentOverride("LDL at or above 190 mg/dL",
                          lambda ctx: ctx.get("ldl_cholesterol", 0) >= 190,
                          tier="medication_consideration",
                          recommendations=["Screen for familial hypercholesterolemia"]),
    ],
)


FLAGS = [
    FlagRule(
        "familial_hypercholesterolemia", FlagLevel.URGENT,
        lambda ctx: ctx.get("ldl_cholesterol", 0) >= 190,
        "LDL cholesterol >=190 mg/dL indicates possible familial hypercholesterolemia",
        [
            "Immediate consultation with lipid specialist",
            "Family screening recommended",
            "Genetic testing consideration",
            "Aggressive treatment indicated",
        ],
    ),
    FlagRule(
        "pancreatitis_risk", FlagLevel.URGENT,
        lambda ctx: ctx.get("triglycerides", 0) >= 500,
        "Triglycerides >=500 mg/dL - risk of acute pancreatitis",
        [
            "Immediate medical attention required",
            "Consider hospitalization if symptomatic",
            "Aggressive triglyceride-lowering therapy",
            "Strict dietary fat restriction",
        ],
    ),
    FlagRule(
        "high_risk_primary_prevention", FlagLevel.WARNING,
        lambda ctx: ctx.risk_tier == "high" and not ctx.values.get("prior_cvd"),
        "High cardiovascular risk equivalent to coronary disease",
        [
            "Treat as secondary prevention",
            "Aggressive risk factor modification",
            "Consider cardiology consultation",
            "Frequent monitoring required",
        ],
    ),
]


def estimate_ten_year_risk(score: int, ldl: float = None, triglycerides: float = None) -> float:
    """Simplified 10-year event risk (%) from the point score and lipid levels."""
    risk = float(np.clip(score * 3, 1, 40))
    if ldl is not None and ldl > 160:
        risk *= 1.3
    if triglycerides is not None and triglycerides > 200:
        risk *= 1.2
    return risk


_TARGETS = {
    "medication_indicated": (70, "high", "High-intensity statin recommended for very high risk patients"),
    "medication_consideration": (100, "moderate", "Moderate-intensity statin should be considered"),
    "lifestyle": (130, "none", "Focus on lifestyle modifications first"),
}


def _insights(ctx: AssessmentContext) -> List[Dict[str, Any]]:
    insights = []
    if ctx.get("tg_hdl_ratio", 0) > 3:
        insights.append({
            "category": "Metabolic Pattern",
            "insight": "High triglyceride-to-HDL ratio suggests insulin resistance",
        })
    if ctx.risk and sum(1 for f in ctx.risk.present_factors if f.impact_weight >= 2) >= 2:
        insights.append({
            "category": "Risk Clustering",
            "insight": "Multiple high-risk factors present - aggressive intervention needed",
        })
    if ctx.get("age", 99) < 40 and ctx.risk_tier not in (None, "low"):
        insights.append({
            "category": "Early Risk",
            "insight": "Elevated risk at young age may indicate genetic predisposition",
        })
    if ctx.values.get("physical_activity") == "sedentary":
        insights.append({
            "category": "Lifestyle",
            "insight": "Sedentary lifestyle significantly contributes to cardiovascular risk",
        })
    return insights


def build_details(ctx: AssessmentContext) -> Dict[str, Any]:
    details: Dict[str, Any] = {"insights": _insights(ctx)}
    if ctx.risk is not None:
        ten_year = estimate_ten_year_risk(
            ctx.risk.score, ctx.values.get("ldl_cholesterol"), ctx.values.get("triglycerides")
        )
        details["ten_year_risk_percent"] = round(ten_year, 1)
        details["lifetime_risk_percent"] = round(min(ten_year * 2.5, 60))
    tier = ctx.treatment.tier
    ldl_target, intensity, reasoning = _TARGETS[tier]
    if tier == "medication_consideration" and ctx.risk_tier == "borderline" \
            and ctx.get("ldl_cholesterol", 0) < 190:
        ldl_target, intensity = 130, "low"
        reasoning = "Consider statin if lifestyle changes insufficient"
    details["ldl_target_mg_dl"] = ldl_target
    details["statin"] = {"indicated": intensity != "none", "intensity": intensity, "reasoning": reasoning}
    details["monitoring_frequency"] = {
        "high": "Every 6-12 weeks initially, then every 3-6 months",
        "intermediate": "Every 3-6 months",
    }.get(ctx.risk_tier, "Annually")
    details["lifestyle_interventions"] = [
        {"category": "Diet", "intervention": "Adopt heart-healthy diet (Mediterranean or DASH)",
         "expected_benefit": "5-15% LDL reduction"},
        {"category": "Exercise", "intervention": "Regular aerobic exercise (150 min/week moderate intensity)",
         "expected_benefit": "5-10% LDL reduction, HDL increase"},
        {"category": "Weight Management", "intervention": "Achieve and maintain healthy weight",
         "expected_benefit": "5-20% lipid improvement"},
        {"category": "Smoking Cessation",
         "intervention": "Complete smoking cessation" if ctx.values.get("smoking_status") == "current"
         else "Maintain tobacco-free status",
         "expected_benefit": "Significant risk reduction"},
    ]
    return details


CONFIG = MetricConfig(
    name="cholesterol",
    title="Cholesterol Calculator",
    description="Lipid panel interpretation and cardiovascular risk estimate",
    schema=SCHEMA,
    readings=[
        ReadingSpec("total_cholesterol", TOTAL_TABLE, "Total Cholesterol"),
        ReadingSpec("ldl_cholesterol", LDL_TABLE, "LDL Cholesterol"),
        ReadingSpec("hdl_cholesterol", HDL_TABLE, "HDL Cholesterol"),
        ReadingSpec("triglycerides", TRIGLYCERIDES_TABLE, "Triglycerides"),
        ReadingSpec("non_hdl_cholesterol", NON_HDL_TABLE, "Non-HDL Cholesterol",
                    binding=CHOLESTEROL_BINDING),
    ],
    ratios=[
        ReadingSpec("total_hdl_ratio", TOTAL_HDL_RATIO_TABLE, "Total/HDL Ratio", precision=2),
        ReadingSpec("ldl_hdl_ratio", LDL_HDL_RATIO_TABLE, "LDL/HDL Ratio", precision=2),
        ReadingSpec("tg_hdl_ratio", TG_HDL_RATIO_TABLE, "Triglyceride/HDL Ratio", precision=2),
    ],
    derivations=DERIVATIONS,
    risk_model=RISK_MODEL,
    treatment=TREATMENT,
    flags=FLAGS,
    details=build_details,
    disclaimer="This estimate is for education only and is not a diagnosis. "
               "Discuss lipid results with a healthcare provider.",
)
