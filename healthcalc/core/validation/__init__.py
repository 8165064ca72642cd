"""Declarative input schemas validated through generated pydantic models."""
from .schema import (
    CrossFieldRule, FieldKind, FieldSpec, FormInput, InputSchema, ValidationResult,
    boolean, choice, date_field, integer, multi_choice, number, time_field,
)

__all__ = [
    "CrossFieldRule", "FieldKind", "FieldSpec", "FormInput", "InputSchema", "ValidationResult",
    "boolean", "choice", "date_field", "integer", "multi_choice", "number", "time_field",
]
