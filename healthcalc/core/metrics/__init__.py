"""
Metric Registry

One MetricConfig per calculator. Every orchestrator is built at import, so
a table/mapper coverage mismatch in any metric fails at startup.
"""
from typing import Dict, List

from healthcalc.core.engine.errors import ConfigurationError
from healthcalc.core.engine.orchestrator import AssessmentOrchestrator, MetricConfig

from . import (
    blood_pressure, blood_sugar, bmi, bmr, body_fat, calorie, cholesterol, due_date, heart_rate,
    hydration, kids_bmi, ovulation, sleep, vitamin_d,
)

METRICS: Dict[str, MetricConfig] = {
    module.CONFIG.name: module.CONFIG
    for module in (
        cholesterol, vitamin_d, blood_sugar, blood_pressure, heart_rate, bmi, kids_bmi,
        body_fat, bmr, calorie, hydration, sleep, ovulation, due_date,
    )
}

ORCHESTRATORS: Dict[str, AssessmentOrchestrator] = {
    name: AssessmentOrchestrator(config) for name, config in METRICS.items()
}


def list_metrics() -> List[str]:
    return list(METRICS)


def get_config(name: str) -> MetricConfig:
    try:
        return METRICS[name]
    except KeyError:
        raise ConfigurationError(f"Unknown metric '{name}'") from None


def get_orchestrator(name: str) -> AssessmentOrchestrator:
    """Orchestrator for ``name``; raises ConfigurationError for unknown metrics."""
    try:
        return ORCHESTRATORS[name]
    except KeyError:
        raise ConfigurationError(f"Unknown metric '{name}'") from None


__all__ = ["METRICS", "ORCHESTRATORS", "get_config", "get_orchestrator", "list_metrics"]
