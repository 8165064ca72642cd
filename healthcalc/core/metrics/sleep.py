"""
Sleep Assessment

Bedtime or wake-up suggestions built from 90-minute sleep cycles, a
chronotype from the resulting bedtime and a classified sleep duration.
"""
from datetime import time
from typing import Any, Dict, List, Mapping, Optional

from healthcalc.core.engine.classifier import INF, Severity, build_table
from healthcalc.core.engine.orchestrator import AssessmentContext, Derivation, MetricConfig, ReadingSpec
from healthcalc.core.validation.schema import InputSchema, boolean, choice, integer, number, time_field

CYCLE_MINUTES = 90
RECOMMENDED_CYCLES = (4, 5, 6)
MINUTES_PER_DAY = 24 * 60
_CHRONOTYPE_ORIGIN = 18 * 60

CYCLE_QUALITY = {5: "Excellent", 6: "Good", 4: "Fair"}
_QUALITY_ORDER = ["Excellent", "Good", "Fair"]

DURATION_TABLE = build_table("sleep_duration", [
    (6, "Insufficient", Severity.WARNING, "Less sleep than adults need", "<6 hours", [
        "Move your bedtime earlier in 15-minute steps",
        "Protect a consistent sleep window every night",
    ]),
    (7, "Short", Severity.CAUTION, "Slightly below the recommended amount", "6-7 hours", [
        "Aim for at least 7 hours of sleep",
        "Avoid caffeine 6 hours before bedtime",
    ]),
    (9.5, "Recommended", Severity.OK, "Within the recommended range for adults", "7-9.5 hours", [
        "Keep consistent sleep and wake times",
    ]),
    (INF, "Long", Severity.CAUTION, "More sleep than most adults need", ">=9.5 hours", [
        "Persistent long sleep can signal poor sleep quality",
        "Discuss ongoing fatigue with your healthcare provider",
    ]),
])

# hours after 18:00 that sleep begins
CHRONOTYPE_TABLE = build_table("chronotype", [
    (4, "Early Bird", Severity.OK, "You tend to sleep before 22:00", "bedtime before 22:00"),
    (6, "Intermediate", Severity.OK, "You tend to sleep between 22:00 and midnight", "22:00-23:59"),
    (INF, "Night Owl", Severity.OK, "You tend to sleep after midnight", "bedtime after midnight"),
])

IDEAL_SCHEDULE = {
    "early_bird": ("21:30", "06:00"),
    "intermediate": ("22:30", "07:00"),
    "night_owl": ("23:30", "08:00"),
}

SLEEP_TIPS = [
    "Avoid caffeine 6 hours before bedtime",
    "Keep your bedroom cool (15-19°C)",
    "Use blackout curtains or an eye mask",
    "Establish a consistent bedtime routine",
    "Avoid screens 1 hour before bed",
    "Exercise regularly, but not close to bedtime",
]


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def format_minutes(minutes: int) -> str:
    """HH:MM for a minute offset, wrapping across midnight."""
    minutes = minutes % MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def _option(target: int, sleep_minutes: float, values: Mapping[str, Any], cycles: int, quality: str,
            description: str) -> Dict[str, Any]:
    offset = sleep_minutes + values["fall_asleep_time"]
    if values["calculation_type"] == "bedtime":
        minutes = target - offset
        bedtime = minutes
    else:
        minutes = target + offset
        bedtime = target
    return {
        "time": format_minutes(round(minutes)),
        "cycles": cycles,
        "quality": quality,
        "description": description,
        "sleep_hours": sleep_minutes / 60,
        "_bedtime": round(bedtime),
    }


def sleep_options(values: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """
    Suggested times, best first.

    For ``bedtime`` the target is the wake-up time and suggestions are
    bedtimes; for ``waketime`` it is the bedtime and suggestions are wake-up
    times. Options are ranked by quality, then by number of cycles.
    """
    target = to_minutes(values["target_time"])
    options = []
    if values["include_cycles"]:
        for cycles in RECOMMENDED_CYCLES:
            sleep_minutes = cycles * CYCLE_MINUTES
            options.append(_option(target, sleep_minutes, values, cycles, CYCLE_QUALITY[cycles],
                                   f"{cycles} sleep cycles ({sleep_minutes / 60:.1f} hours of sleep)"))
    else:
        hours = values["sleep_duration"]
        cycles = round(hours * 60 / CYCLE_MINUTES)
        quality = "Excellent" if cycles == 5 else "Good" if cycles >= 4 else "Fair"
        options.append(_option(target, hours * 60, values, cycles, quality,
                               f"{hours:g} hours of sleep (approximately {cycles} cycles)"))
    options.sort(key=lambda o: (_QUALITY_ORDER.index(o["quality"]), -o["cycles"]))
    return options


def _primary_sleep_hours(values: Mapping[str, Any]) -> float:
    return sleep_options(values)[0]["sleep_hours"]


def _chronotype_offset(values: Mapping[str, Any]) -> float:
    bedtime = sleep_options(values)[0]["_bedtime"]
    return ((bedtime - _CHRONOTYPE_ORIGIN) % MINUTES_PER_DAY) / 60


def ideal_sleep_range(age: float) -> Dict[str, int]:
    if age < 18:
        return {"min": 8, "max": 10}
    if age < 65:
        return {"min": 7, "max": 9}
    return {"min": 7, "max": 8}


def duration_quality(hours: float, age: float) -> Optional[str]:
    """excellent/good/fair/poor by distance from the age-specific range."""
    ideal = ideal_sleep_range(age)
    for margin, quality in ((0, "excellent"), (1, "good"), (2, "fair")):
        if ideal["min"] - margin <= hours <= ideal["max"] + margin:
            return quality
    return "poor"


SCHEMA = InputSchema("sleep", [
    choice("calculation_type", ["bedtime", "waketime"], default="bedtime"),
    time_field("target_time"),
    number("sleep_duration", 4, 12, default=8, label="Sleep duration (hours)"),
    number("fall_asleep_time", 5, 60, default=15, label="Fall asleep time (minutes)"),
    boolean("include_cycles", default=True),
    integer("age", 1, 120, required=False),
])


def build_details(ctx: AssessmentContext) -> Dict[str, Any]:
    options = sleep_options(ctx.values)
    primary = options[0]
    chronotype = ctx.readings["chronotype_offset"].category.code
    bedtime, wake_time = IDEAL_SCHEDULE[chronotype]
    details = {
        "calculation_type": ctx.values["calculation_type"],
        "target_time": ctx.values["target_time"].strftime("%H:%M"),
        "recommended_times": [{k: v for k, v in o.items() if not k.startswith("_")} for o in options[:3]],
        "sleep_cycles": {
            "total_cycles": primary["cycles"],
            "cycle_duration": CYCLE_MINUTES,
            "rem_phases": round(primary["cycles"] * 0.25),
            "deep_sleep_phases": round(primary["cycles"] * 0.2),
        },
        "circadian": {"chronotype": chronotype, "ideal_bedtime": bedtime, "ideal_wake_time": wake_time},
        "tips": SLEEP_TIPS,
    }
    if ctx.values.get("age") is not None:
        details["duration_quality"] = duration_quality(primary["sleep_hours"], ctx.values["age"])
        details["ideal_hours"] = ideal_sleep_range(ctx.values["age"])
    return details


CONFIG = MetricConfig(
    name="sleep",
    title="Sleep Calculator",
    description="Bedtime and wake-up times aligned with sleep cycles",
    schema=SCHEMA,
    readings=[
        ReadingSpec("sleep_hours", DURATION_TABLE, "Sleep Duration", unit="hours"),
        ReadingSpec("chronotype_offset", CHRONOTYPE_TABLE, "Chronotype", unit="hours after 18:00"),
    ],
    derivations=[
        Derivation("sleep_hours", ("target_time", "calculation_type"), _primary_sleep_hours),
        Derivation("chronotype_offset", ("target_time", "calculation_type"), _chronotype_offset),
    ],
    details=build_details,
    disclaimer="Cycle lengths vary between people; use these times as a starting point.",
)
