"""Application services."""
from .assessment import AssessmentService

__all__ = ["AssessmentService"]
