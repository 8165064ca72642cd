"""
Assessment Service - dispatches raw calculator input to metric orchestrators
"""
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional

from fastapi import HTTPException

from healthcalc.config import settings
from healthcalc.core.engine.base import AssessmentOutcome
from healthcalc.core.engine.errors import ConfigurationError
from healthcalc.core.engine.orchestrator import AssessmentOrchestrator
from healthcalc.core.metrics import METRICS, get_orchestrator
from healthcalc.models.assessment import (
    AssessmentResponse, FieldDescription, InvalidInputResponse, MetricCatalogResponse,
    MetricSchemaResponse, MetricSummary,
)
from healthcalc.utils import get_logger

logger = get_logger(__name__)


class AssessmentService:
    """
    Service class for calculator assessments.
    Decouples the HTTP endpoints from the engine and the metric registry.
    """

    def __init__(self, include_details: Optional[bool] = None):
        self.include_details = settings.include_details if include_details is None else include_details
        logger.info(f"AssessmentService initialized with {len(METRICS)} metrics")

    def _orchestrator(self, metric: str) -> AssessmentOrchestrator:
        try:
            return get_orchestrator(metric)
        except ConfigurationError:
            if metric in METRICS:
                raise
            raise HTTPException(status_code=404, detail=f"Unknown metric: {metric}") from None

    def catalog(self) -> MetricCatalogResponse:
        metrics = [MetricSummary(name=c.name, title=c.title, description=c.description)
                   for c in METRICS.values()]
        return MetricCatalogResponse(count=len(metrics), metrics=metrics)

    def describe(self, metric: str) -> MetricSchemaResponse:
        config = self._orchestrator(metric).config
        return MetricSchemaResponse(
            name=config.name,
            title=config.title,
            fields=[FieldDescription(**info) for info in config.schema.describe()],
            json_schema=config.schema.model.model_json_schema(),
        )

    def prepare_input(self, metric: str, payload: Mapping[str, Any],
                      today: Optional[date] = None) -> Dict[str, Any]:
        """
        Copy of the payload with ``today`` filled in for date-based metrics.

        The engine never reads the clock; the request date is supplied here.
        """
        data = dict(payload)
        schema = self._orchestrator(metric).config.schema
        if "today" in schema.field_names and data.get("today") in (None, ""):
            data["today"] = (today or date.today()).isoformat()
        return data

    async def assess(self, metric: str, payload: Mapping[str, Any]) -> AssessmentOutcome:
        orchestrator = self._orchestrator(metric)
        outcome = orchestrator.assess(self.prepare_input(metric, payload))
        if outcome.is_valid:
            logger.info(
                f"Assessed {metric}: risk={outcome.result.risk.tier.code if outcome.result.risk else None}, "
                f"flags={len(outcome.result.flags)}"
            )
        return outcome

    def to_response(self, outcome: AssessmentOutcome):
        if not outcome.is_valid:
            return InvalidInputResponse(metric=outcome.metric, errors=outcome.errors)
        return AssessmentResponse.from_result(
            outcome.result,
            timestamp=datetime.now().isoformat(),
            include_details=self.include_details,
        )

    def metric_names(self) -> List[str]:
        return list(METRICS)
