"""
Assessment Data Types

Result contracts shared by every metric: readings, warning flags,
unavailable values, treatment plans and the assessment result itself.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from healthcalc.core.engine.classifier import Category
from healthcalc.core.engine.scoring import RiskAssessment


class ReadingSource(str, Enum):
    """Where a reading's value came from."""
    MEASURED = "measured"
    DERIVED = "derived"
    ESTIMATED = "estimated"


class FlagLevel(str, Enum):
    """Urgency of a warning flag, lowest first."""
    CAUTION = "caution"
    WARNING = "warning"
    URGENT = "urgent"
    SEVERE = "severe"


@dataclass
class Reading:
    """
    One classified value.

    ``value`` is always in the canonical unit; ``display_value`` and
    ``display_unit`` reflect what the user entered.
    """
    kind: str
    value: float
    unit: str
    category: Category
    label: str = ""
    source: ReadingSource = ReadingSource.MEASURED
    display_value: Optional[float] = None
    display_unit: Optional[str] = None
    recommendations: List[str] = field(default_factory=list)
    precision: int = 1

    def to_dict(self) -> Dict[str, Any]:
        display_value = self.value if self.display_value is None else self.display_value
        return {
            "kind": self.kind,
            "label": self.label or self.kind,
            "value": round(self.value, self.precision),
            "unit": self.unit,
            "display_value": round(display_value, self.precision),
            "display_unit": self.display_unit or self.unit,
            "source": self.source.value,
            "category": self.category.to_dict(),
            "recommendations": list(self.recommendations),
        }


@dataclass
class WarningFlag:
    """Safety notice raised independently of the risk score."""
    level: FlagLevel
    message: str
    recommendations: List[str] = field(default_factory=list)
    kind: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "level": self.level.value,
            "message": self.message,
            "recommendations": list(self.recommendations),
        }


@dataclass
class UnavailableValue:
    """A value that could not be computed for this input, with the reason."""
    kind: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "reason": self.reason}


@dataclass
class TreatmentPlan:
    """Selected treatment tier with its narrative and recommendations."""
    tier: str
    label: str
    narrative: str
    recommendations: List[str] = field(default_factory=list)
    reasons: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tier": self.tier,
            "label": self.label,
            "narrative": self.narrative,
            "recommendations": list(self.recommendations),
            "reasons": list(self.reasons),
        }


@dataclass
class AssessmentResult:
    """Complete assessment for one metric."""
    metric: str
    readings: List[Reading] = field(default_factory=list)
    ratios: List[Reading] = field(default_factory=list)
    risk: Optional[RiskAssessment] = None
    risk_narrative: str = ""
    risk_recommendations: List[str] = field(default_factory=list)
    treatment: Optional[TreatmentPlan] = None
    flags: List[WarningFlag] = field(default_factory=list)
    unavailable: List[UnavailableValue] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)
    disclaimer: str = ""

    def reading(self, kind: str) -> Optional[Reading]:
        """Reading or ratio by kind, None when absent."""
        for item in self.readings + self.ratios:
            if item.kind == kind:
                return item
        return None

    def unavailable_kinds(self) -> List[str]:
        return [u.kind for u in self.unavailable]

    @property
    def highest_flag(self) -> Optional[FlagLevel]:
        order = list(FlagLevel)
        if not self.flags:
            return None
        return max((f.level for f in self.flags), key=order.index)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metric": self.metric,
            "readings": [r.to_dict() for r in self.readings],
            "ratios": [r.to_dict() for r in self.ratios],
            "risk": self.risk.to_dict() if self.risk else None,
            "risk_narrative": self.risk_narrative,
            "risk_recommendations": list(self.risk_recommendations),
            "treatment": self.treatment.to_dict() if self.treatment else None,
            "flags": [f.to_dict() for f in self.flags],
            "unavailable": [u.to_dict() for u in self.unavailable],
            "details": self.details,
            "disclaimer": self.disclaimer,
        }


@dataclass
class AssessmentOutcome:
    """
    Either a result or the field errors that prevented one.

    Invalid input never raises; ``errors`` maps field name to message.
    """
    metric: str
    result: Optional[AssessmentResult] = None
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors and self.result is not None

    def to_dict(self) -> Dict[str, Any]:
        if not self.is_valid:
            return {"metric": self.metric, "status": "invalid", "errors": dict(self.errors)}
        return {"metric": self.metric, "status": "ok", "result": self.result.to_dict()}
