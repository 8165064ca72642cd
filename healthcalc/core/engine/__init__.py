"""
Assessment engine: unit conversion, threshold classification, weighted risk
scoring, recommendation mapping and the generic orchestrator.
"""
from .errors import AssessmentError, ConfigurationError, DomainInvalidError, UnknownCategoryError
from .units import QuantityKind, Unit, UnitBinding, UnitConverter, canonical_unit, convert
from .classifier import Bucket, Category, Severity, ThresholdTable, build_table, classify
from .scoring import RiskAssessment, RiskFactor, RiskFactorPredicate, RiskModel
from .recommendations import RecommendationEntry, RecommendationMapper
from .base import (
    AssessmentOutcome, AssessmentResult, FlagLevel, Reading, ReadingSource,
    TreatmentPlan, UnavailableValue, WarningFlag,
)
from .orchestrator import (
    AssessmentContext, AssessmentOrchestrator, Derivation, FlagRule, MetricConfig,
    ReadingSpec, TreatmentOverride, TreatmentPolicy, TreatmentTier,
)

__all__ = [
    "AssessmentError", "ConfigurationError", "DomainInvalidError", "UnknownCategoryError",
    "QuantityKind", "Unit", "UnitBinding", "UnitConverter", "canonical_unit", "convert",
    "Bucket", "Category", "Severity", "ThresholdTable", "build_table", "classify",
    "RiskAssessment", "RiskFactor", "RiskFactorPredicate", "RiskModel",
    "RecommendationEntry", "RecommendationMapper",
    "AssessmentOutcome", "AssessmentResult", "FlagLevel", "Reading", "ReadingSource",
    "TreatmentPlan", "UnavailableValue", "WarningFlag",
    "AssessmentContext", "AssessmentOrchestrator", "Derivation", "FlagRule", "MetricConfig",
    "ReadingSpec", "TreatmentOverride", "TreatmentPolicy", "TreatmentTier",
]
