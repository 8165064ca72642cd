"""
Assessment API Models

Pydantic request/response models. Presentation colors are assigned here from
domain severities; the engine itself carries no colors.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from healthcalc.core.engine.base import AssessmentResult, Reading
from healthcalc.core.engine.classifier import Category, Severity

SEVERITY_COLORS: Dict[str, str] = {
    Severity.OK.value: "green",
    Severity.CAUTION.value: "yellow",
    Severity.WARNING.value: "orange",
    Severity.CRITICAL.value: "red",
}


def severity_color(severity: str) -> str:
    return SEVERITY_COLORS.get(severity, "gray")


class CategoryResponse(BaseModel):
    """Classification outcome for one reading."""
    code: str
    label: str
    description: str = ""
    severity: str
    color: str
    range: str = ""

    @classmethod
    def from_category(cls, category: Category) -> "CategoryResponse":
        data = category.to_dict()
        return cls(color=severity_color(data["severity"]), **data)


class ReadingResponse(BaseModel):
    kind: str
    label: str
    value: float
    unit: str
    display_value: float
    display_unit: str
    source: str
    category: CategoryResponse
    recommendations: List[str] = []

    @classmethod
    def from_reading(cls, reading: Reading) -> "ReadingResponse":
        data = reading.to_dict()
        data["category"] = CategoryResponse.from_category(reading.category)
        return cls(**data)


class RiskFactorResponse(BaseModel):
    name: str
    present: bool
    impact_weight: int
    description: str = ""


class RiskResponse(BaseModel):
    """Weighted risk score, tier and the factors behind it."""
    score: int
    tier: str
    label: str
    severity: str
    color: str
    narrative: str = ""
    recommendations: List[str] = []
    factors: List[RiskFactorResponse] = []


class TreatmentResponse(BaseModel):
    tier: str
    label: str
    narrative: str
    recommendations: List[str] = []
    reasons: List[str] = []


class FlagResponse(BaseModel):
    kind: str
    level: str
    message: str
    recommendations: List[str] = []


class UnavailableResponse(BaseModel):
    kind: str
    reason: str


class AssessmentResponse(BaseModel):
    """Successful assessment."""
    metric: str
    status: str = "ok"
    timestamp: str
    readings: List[ReadingResponse] = []
    ratios: List[ReadingResponse] = []
    risk: Optional[RiskResponse] = None
    treatment: Optional[TreatmentResponse] = None
    flags: List[FlagResponse] = []
    highest_flag: Optional[str] = None
    unavailable: List[UnavailableResponse] = []
    details: Optional[Dict[str, Any]] = None
    disclaimer: str = ""

    @classmethod
    def from_result(cls, result: AssessmentResult, timestamp: str,
                    include_details: bool = True) -> "AssessmentResponse":
        risk = None
        if result.risk is not None:
            data = result.risk.to_dict()
            risk = RiskResponse(
                color=severity_color(data["severity"]),
                narrative=result.risk_narrative,
                recommendations=list(result.risk_recommendations),
                **data,
            )
        return cls(
            metric=result.metric,
            timestamp=timestamp,
            readings=[ReadingResponse.from_reading(r) for r in result.readings],
            ratios=[ReadingResponse.from_reading(r) for r in result.ratios],
            risk=risk,
            treatment=TreatmentResponse(**result.treatment.to_dict()) if result.treatment else None,
            flags=[FlagResponse(**f.to_dict()) for f in result.flags],
            highest_flag=result.highest_flag.value if result.highest_flag else None,
            unavailable=[UnavailableResponse(**u.to_dict()) for u in result.unavailable],
            details=result.details if include_details else None,
            disclaimer=result.disclaimer,
        )


class InvalidInputResponse(BaseModel):
    """Field errors that prevented an assessment."""
    metric: str
    status: str = "invalid"
    errors: Dict[str, str]


class MetricSummary(BaseModel):
    name: str
    title: str
    description: str = ""


class MetricCatalogResponse(BaseModel):
    count: int
    metrics: List[MetricSummary]


class FieldDescription(BaseModel):
    name: str
    label: str
    kind: str
    required: bool
    default: Optional[Any] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    choices: Optional[List[str]] = None
    canonical_unit: Optional[str] = None
    unit_field: Optional[str] = None


class MetricSchemaResponse(BaseModel):
    name: str
    title: str
    fields: List[FieldDescription]
    json_schema: Dict[str, Any] = Field(default_factory=dict, description="JSON schema of the input model")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    timestamp: str
    metrics: int = Field(..., description="Number of registered metrics")
