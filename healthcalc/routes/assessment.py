"""
FastAPI endpoints for health calculator assessments
Raw calculator input -> validated, classified and scored assessment
"""
from typing import Any, Dict, Union

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse

from healthcalc.config import settings
from healthcalc.models.assessment import (
    AssessmentResponse, InvalidInputResponse, MetricCatalogResponse, MetricSchemaResponse,
)
from healthcalc.services.assessment import AssessmentService

router = APIRouter(prefix=settings.api_prefix, tags=["Health Calculators"])

service = AssessmentService()


@router.get("/metrics", response_model=MetricCatalogResponse)
async def list_metrics():
    """All available calculators."""
    return service.catalog()


@router.get("/metrics/{metric}/schema", response_model=MetricSchemaResponse)
async def metric_schema(metric: str):
    """Input fields, ranges and choices for one calculator."""
    return service.describe(metric)


@router.post(
    "/assess/{metric}",
    response_model=Union[AssessmentResponse, InvalidInputResponse],
    responses={422: {"model": InvalidInputResponse}, 404: {"description": "Unknown metric"}},
)
async def assess(metric: str, payload: Dict[str, Any] = Body(..., examples=[{"systolic": 185, "diastolic": 125}])):
    """
    Run one calculator.

    Invalid input returns 422 with every field error at once.
    """
    outcome = await service.assess(metric, payload)
    response = service.to_response(outcome)
    if isinstance(response, InvalidInputResponse):
        return JSONResponse(status_code=422, content=response.model_dump())
    return response
