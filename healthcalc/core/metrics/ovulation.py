"""
Ovulation Assessment

Cycle dates from the last menstrual period. Ovulation is placed 14 days
before the next expected period; the fertile window is the five days before
ovulation plus ovulation day. ``today`` is an input so results are
reproducible.
"""
from datetime import date, timedelta
from typing import Any, Dict, List, Mapping

from healthcalc.core.engine.classifier import INF, Severity, build_table
from healthcalc.core.engine.orchestrator import AssessmentContext, Derivation, MetricConfig, ReadingSpec
from healthcalc.core.validation.schema import CrossFieldRule, InputSchema, date_field, integer

LUTEAL_PHASE_DAYS = 14
FERTILE_DAYS_BEFORE = 5
FUTURE_CYCLES = 6

# today minus ovulation date, in days
FERTILITY_TABLE = build_table("fertility_status", [
    (-7, "Low - Early Cycle", Severity.OK, "Outside the fertile window", "8+ days before ovulation"),
    (-5, "Medium - Approaching", Severity.OK, "The fertile window starts in a few days",
     "6-7 days before ovulation", [
         "Moderately fertile - consider tracking ovulation signs",
     ]),
    (1, "High - Fertile Window", Severity.OK, "You are in your fertile window",
     "5 days before ovulation to ovulation day", [
         "Peak fertility window - optimal time for conception",
     ]),
    (3, "Medium - Post-ovulation", Severity.OK, "Fertility is declining after ovulation",
     "1-2 days after ovulation", [
         "Moderately fertile - consider tracking ovulation signs",
     ]),
    (INF, "Low - Luteal", Severity.OK, "Outside the fertile window", "3+ days after ovulation"),
])

FERTILITY_LEVEL = {
    "low_early_cycle": "Low",
    "medium_approaching": "Medium",
    "high_fertile_window": "High",
    "medium_post_ovulation": "Medium",
    "low_luteal": "Low",
}

PHASE_RECOMMENDATIONS = {
    "Menstrual": [
        "Stay hydrated and consider iron-rich foods",
        "Light exercise like walking or yoga can help with cramps",
        "Rest and self-care are important during this time",
    ],
    "Follicular": [
        "Start tracking cervical mucus changes",
        "Maintain a healthy diet rich in folate and antioxidants",
        "Consider ovulation predictor kits as you approach ovulation",
    ],
    "Ovulation": [
        "This is your most fertile time",
        "Cervical mucus will be clear and stretchy",
        "Basal body temperature may rise slightly",
    ],
    "Luteal": [
        "Monitor for early pregnancy symptoms if trying to conceive",
        "Reduce stress and maintain regular sleep schedule",
        "Avoid excessive caffeine and alcohol",
    ],
}


def ovulation_date(lmp: date, cycle_length: int) -> date:
    return lmp + timedelta(days=cycle_length - LUTEAL_PHASE_DAYS)


def cycle_dates(lmp: date, cycle_length: int, period_length: int) -> Dict[str, date]:
    ovulation = ovulation_date(lmp, cycle_length)
    next_period = lmp + timedelta(days=cycle_length)
    return {
        "period_start": lmp,
        "period_end": lmp + timedelta(days=period_length - 1),
        "fertile_window_start": ovulation - timedelta(days=FERTILE_DAYS_BEFORE),
        "fertile_window_end": ovulation,
        "ovulation": ovulation,
        "next_period": next_period,
        "luteal_end": next_period - timedelta(days=1),
    }


def current_phase(today: date, dates: Mapping[str, date]) -> str:
    if dates["period_start"] <= today <= dates["period_end"]:
        return "Menstrual"
    if dates["period_start"] <= today < dates["ovulation"]:
        return "Follicular"
    if today == dates["ovulation"]:
        return "Ovulation"
    if dates["ovulation"] < today <= dates["luteal_end"]:
        return "Luteal"
    return "Pre-menstrual"


def future_cycles(lmp: date, cycle_length: int, count: int = FUTURE_CYCLES) -> List[Dict[str, str]]:
    cycles = []
    for i in range(1, count + 1):
        start = lmp + timedelta(days=cycle_length * i)
        ovulation = ovulation_date(start, cycle_length)
        cycles.append({
            "cycle": i + 1,
            "period_start": start.isoformat(),
            "ovulation_date": ovulation.isoformat(),
            "fertile_window_start": (ovulation - timedelta(days=FERTILE_DAYS_BEFORE)).isoformat(),
            "fertile_window_end": ovulation.isoformat(),
        })
    return cycles


def _days_from_ovulation(values: Mapping[str, Any]) -> int:
    ovulation = ovulation_date(values["last_menstrual_period"], values["cycle_length"])
    return (values["today"] - ovulation).days


SCHEMA = InputSchema("ovulation", [
    date_field("last_menstrual_period", label="Last menstrual period"),
    integer("cycle_length", 21, 35, default=28),
    integer("period_length", 3, 8, default=5),
    date_field("today"),
], rules=[
    CrossFieldRule("last_menstrual_period", ("last_menstrual_period", "today"),
                   lambda v: v["last_menstrual_period"] <= v["today"],
                   "Last menstrual period cannot be in the future"),
    CrossFieldRule("period_length", ("period_length", "cycle_length"),
                   lambda v: v["period_length"] < v["cycle_length"] - LUTEAL_PHASE_DAYS,
                   "Period length must end before ovulation"),
])


def build_details(ctx: AssessmentContext) -> Dict[str, Any]:
    values = ctx.values
    today = values["today"]
    dates = cycle_dates(values["last_menstrual_period"], values["cycle_length"], values["period_length"])
    phase = current_phase(today, dates)
    days_until = (dates["ovulation"] - today).days
    recommendations = list(PHASE_RECOMMENDATIONS.get(phase, []))
    if 0 < days_until <= 7:
        recommendations.append(f"Ovulation in {days_until} days - prepare for fertile window")
    return {
        "ovulation_date": dates["ovulation"].isoformat(),
        "fertile_window_start": dates["fertile_window_start"].isoformat(),
        "fertile_window_end": dates["fertile_window_end"].isoformat(),
        "next_period_date": dates["next_period"].isoformat(),
        "current_phase": phase,
        "cycle_day": max(1, (today - values["last_menstrual_period"]).days + 1),
        "days_until_ovulation": max(0, days_until),
        "fertility_status": FERTILITY_LEVEL[ctx.readings["days_from_ovulation"].category.code],
        "phases": {
            "menstrual": {"start": dates["period_start"].isoformat(), "end": dates["period_end"].isoformat()},
            "follicular": {"start": dates["period_start"].isoformat(),
                           "end": (dates["ovulation"] - timedelta(days=1)).isoformat()},
            "ovulation": {"date": dates["ovulation"].isoformat()},
            "luteal": {"start": (dates["ovulation"] + timedelta(days=1)).isoformat(),
                       "end": dates["luteal_end"].isoformat()},
        },
        "future_cycles": future_cycles(values["last_menstrual_period"], values["cycle_length"]),
        "recommendations": recommendations,
    }


CONFIG = MetricConfig(
    name="ovulation",
    title="Ovulation Calculator",
    description="Ovulation date, fertile window and upcoming cycles",
    schema=SCHEMA,
    readings=[
        ReadingSpec("days_from_ovulation", FERTILITY_TABLE, "Fertility Status", unit="days", precision=0),
    ],
    derivations=[
        Derivation("days_from_ovulation", ("last_menstrual_period", "cycle_length", "today"),
                   _days_from_ovulation),
    ],
    details=build_details,
    disclaimer="Cycle predictions assume regular cycles and are not a method of contraception.",
)
