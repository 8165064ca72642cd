"""
Due Date Assessment

Estimated due date and gestational age from the last menstrual period, a
known conception date or an ultrasound dating scan. Every method is reduced
to an estimated LMP; gestational age counts from it to ``today``.
"""
from datetime import date, timedelta
from typing import Any, Dict, List, Mapping

from healthcalc.core.engine.base import FlagLevel
from healthcalc.core.engine.classifier import INF, Severity, build_table
from healthcalc.core.engine.orchestrator import (
    AssessmentContext, Derivation, FlagRule, MetricConfig, ReadingSpec,
)
from healthcalc.core.validation.schema import (
    CrossFieldRule, InputSchema, choice, date_field, integer,
)

PREGNANCY_DAYS = 280
STANDARD_CYCLE = 28
POST_TERM_WEEKS = 42
MAX_GESTATION_WEEKS = 44

TRIMESTER_TABLE = build_table("trimester", [
    (13, "First Trimester", Severity.OK, "Weeks 0-12: organs form and the heart begins to beat", "<13 weeks", [
        "Take prenatal vitamins with folic acid daily",
        "Schedule your first prenatal visit",
        "Avoid alcohol, smoking and raw or undercooked foods",
    ]),
    (27, "Second Trimester", Severity.OK, "Weeks 13-26: rapid growth and first movements", "13-26 weeks", [
        "Attend your anatomy scan around week 18-20",
        "Stay active with pregnancy-safe exercise",
        "Ask about glucose screening around week 24",
    ]),
    (INF, "Third Trimester", Severity.OK, "Week 27 onward: final growth and preparation for birth", ">=27 weeks", [
        "Attend more frequent prenatal checkups",
        "Prepare your birth plan and hospital bag",
        "Learn the signs of labor",
    ]),
])

MEDICAL_MILESTONES = [
    (8, "First Prenatal Visit", "Initial checkup and dating ultrasound", "checkup"),
    (11, "Genetic Screening Window", "NIPT, CVS testing available", "checkup"),
    (18, "Anatomy Scan", "Detailed fetal anatomy ultrasound", "checkup"),
    (24, "Glucose Screening", "Gestational diabetes testing", "checkup"),
    (28, "Third Trimester Monitoring", "More frequent checkups begin", "checkup"),
    (36, "Group B Strep Test", "GBS screening for delivery", "checkup"),
    (37, "Full Term", "Baby is considered full term", "milestone"),
    (40, "Due Date", "Your estimated due date", "milestone"),
]

DEVELOPMENT_STAGES = [
    (4, "Neural tube forming, heart begins to beat"),
    (8, "All major organs present, fingers and toes forming"),
    (12, "Reflexes developing, external genitals forming"),
    (16, "Hair and nails growing"),
    (20, "Hearing developing, movement felt by mother"),
    (24, "Viable outside womb, lungs developing"),
    (28, "Eyes can open, brain rapidly developing"),
    (32, "Bones hardening, gaining weight rapidly"),
    (36, "Lungs nearly mature, preparing for birth"),
    (40, "Ready for birth"),
]

ACCURACY = {
    "lmp": "Moderate (±14 days)",
    "conception": "High (±7 days)",
    "ultrasound": "High (±5-7 days)",
}

_REQUIRED_DATES = {
    "lmp": ("last_menstrual_period",),
    "conception": ("conception_date",),
    "ultrasound": ("ultrasound_date", "ultrasound_weeks"),
}


def estimated_lmp(values: Mapping[str, Any]) -> date:
    """Start of gestation for the chosen method."""
    method = values["calculation_type"]
    if method == "lmp":
        # longer cycles ovulate later
        return values["last_menstrual_period"] + timedelta(days=values["cycle_length"] - STANDARD_CYCLE)
    if method == "conception":
        return values["conception_date"] - timedelta(days=14)
    gestation = values["ultrasound_weeks"] * 7 + (values.get("ultrasound_days") or 0)
    return values["ultrasound_date"] - timedelta(days=gestation)


def due_date(lmp: date) -> date:
    return lmp + timedelta(days=PREGNANCY_DAYS)


def _gestational_weeks(values: Mapping[str, Any]) -> float:
    return (values["today"] - values["estimated_lmp"]).days / 7


def upcoming_milestones(week: int, horizon: int = 12, limit: int = 4) -> List[Dict[str, Any]]:
    return [
        {"week": w, "title": title, "description": description, "category": category}
        for w, title, description, category in MEDICAL_MILESTONES
        if week <= w <= week + horizon
    ][:limit]


def development_stage(week: int) -> str:
    stage = DEVELOPMENT_STAGES[0][1]
    for stage_week, description in DEVELOPMENT_STAGES:
        if stage_week <= week:
            stage = description
    return stage


def _method_has_dates(values: Mapping[str, Any]) -> bool:
    return all(values.get(f) is not None for f in _REQUIRED_DATES[values["calculation_type"]])


def _not_after_today(field: str) -> CrossFieldRule:
    return CrossFieldRule(field, (field, "today"), lambda v: v[field] <= v["today"],
                          "Date cannot be in the future")


SCHEMA = InputSchema("due_date", [
    choice("calculation_type", ["lmp", "conception", "ultrasound"], default="lmp"),
    date_field("last_menstrual_period", required=False, label="Last menstrual period"),
    date_field("conception_date", required=False),
    date_field("ultrasound_date", required=False),
    integer("ultrasound_weeks", 4, 42, required=False),
    integer("ultrasound_days", 0, 6, required=False, default=0),
    integer("cycle_length", 21, 45, default=STANDARD_CYCLE),
    date_field("today"),
], rules=[
    CrossFieldRule("calculation_type", ("calculation_type",), _method_has_dates,
                   "Required date field is missing for selected calculation type"),
    _not_after_today("last_menstrual_period"),
    _not_after_today("conception_date"),
    _not_after_today("ultrasound_date"),
    CrossFieldRule("calculation_type", ("calculation_type", "today"),
                   lambda v: not _method_has_dates(v)
                   or (v["today"] - estimated_lmp(v)).days <= MAX_GESTATION_WEEKS * 7,
                   f"Dates imply a pregnancy longer than {MAX_GESTATION_WEEKS} weeks"),
])

FLAGS = [
    FlagRule(
        "post_term", FlagLevel.WARNING,
        lambda ctx: ctx.get("gestational_weeks", 0) >= POST_TERM_WEEKS,
        "Pregnancy has reached 42 weeks; post-term pregnancy needs medical monitoring",
        [
            "Contact your healthcare provider today",
            "Discuss monitoring and induction options",
        ],
    ),
]


def build_details(ctx: AssessmentContext) -> Dict[str, Any]:
    values = ctx.values
    lmp = values["estimated_lmp"]
    today = values["today"]
    due = due_date(lmp)
    total_days = (today - lmp).days
    week, day = divmod(max(0, total_days), 7)
    days_remaining = max(0, (due - today).days)
    conception = lmp + timedelta(days=14)
    return {
        "calculation_type": values["calculation_type"],
        "due_date": due.isoformat(),
        "gestational_age": {"weeks": week, "days": day, "total_days": total_days},
        "days_remaining": days_remaining,
        "weeks_remaining": days_remaining // 7,
        "key_dates": {
            "conception": conception.isoformat(),
            "implantation": (conception + timedelta(days=6)).isoformat(),
            "first_trimester_end": (lmp + timedelta(weeks=13)).isoformat(),
            "viability": (lmp + timedelta(weeks=24)).isoformat(),
            "second_trimester_end": (lmp + timedelta(weeks=27)).isoformat(),
            "full_term": (lmp + timedelta(weeks=37)).isoformat(),
        },
        "milestones": upcoming_milestones(week),
        "development": development_stage(week),
        "accuracy": {
            "method": values["calculation_type"],
            "reliability": ACCURACY[values["calculation_type"]],
        },
        "delivery_windows_weeks": {
            "preterm": max(0, 37 - week),
            "full_term": max(0, 39 - week),
            "due_date": max(0, 40 - week),
            "post_term": max(0, POST_TERM_WEEKS - week),
        },
    }


CONFIG = MetricConfig(
    name="due_date",
    title="Due Date Calculator",
    description="Estimated due date, gestational age and pregnancy milestones",
    schema=SCHEMA,
    readings=[ReadingSpec("gestational_weeks", TRIMESTER_TABLE, "Gestational Age", unit="weeks")],
    derivations=[
        Derivation("estimated_lmp", ("calculation_type",), estimated_lmp),
        Derivation("gestational_weeks", ("estimated_lmp", "today"), _gestational_weeks),
    ],
    flags=FLAGS,
    details=build_details,
    disclaimer="Only a small share of babies arrive on the due date; most arrive within two weeks of it.",
)
