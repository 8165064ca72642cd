"""
Input Schema Validation Module

Declarative field specs compiled into one pydantic model per metric.
Validation collects every field error instead of stopping at the first one,
so a form can show them all at once.
"""
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Annotated, Any, Callable, Dict, List, Literal, Mapping, Optional, Sequence, Tuple, Type

from pydantic import (
    AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, ValidationError,
    ValidationInfo, WrapValidator, confloat, conint, create_model, model_validator,
)
from pydantic_core import PydanticCustomError

from healthcalc.core.engine.errors import ConfigurationError
from healthcalc.core.engine.units import UnitBinding
from healthcalc.utils import get_logger

logger = get_logger(__name__)

_TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")
_RANGE_ERRORS = {"greater_than", "greater_than_equal", "less_than", "less_than_equal"}


class FieldKind(str, Enum):
    """Accepted input kinds."""
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    CHOICE = "choice"
    MULTI_CHOICE = "multi_choice"
    DATE = "date"
    TIME = "time"


_KIND_MESSAGES = {
    FieldKind.NUMBER: "{name} must be a number",
    FieldKind.INTEGER: "{name} must be a number",
    FieldKind.BOOLEAN: "{name} must be true or false",
    FieldKind.CHOICE: "{name} must be one of: {choices}",
    FieldKind.MULTI_CHOICE: "{name} must be a list",
    FieldKind.DATE: "{name} must be a date (YYYY-MM-DD)",
    FieldKind.TIME: "{name} must be a time in HH:MM format",
}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _fmt(number: float) -> str:
    return f"{number:g}" if abs(number) >= 1 else f"{number:.2g}"


def _number_input(value: Any) -> Any:
    if isinstance(value, bool):
        raise PydanticCustomError("number_type", "Input should be a number")
    if isinstance(value, str):
        return value.strip()
    return value


def _date_input(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        return value.strip()[:10]
    if isinstance(value, (bool, int, float)):
        raise PydanticCustomError("date_type", "Input should be a date")
    return value


def _clock_input(value: Any) -> time:
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)
    if isinstance(value, str):
        match = _TIME_PATTERN.match(value.strip())
        if match:
            return time(int(match.group(1)), int(match.group(2)))
    raise PydanticCustomError("time_format", "Input should be a time in HH:MM format")


@dataclass(frozen=True)
class FieldSpec:
    """
    One input field.

    For a field with a ``unit`` binding, ``minimum``/``maximum`` are in the
    quantity's canonical unit and are checked after conversion.
    """
    name: str
    kind: FieldKind = FieldKind.NUMBER
    required: bool = True
    default: Any = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    choices: Tuple[str, ...] = ()
    label: str = ""
    unit: Optional[UnitBinding] = None

    @property
    def display_name(self) -> str:
        return self.label or self.name.replace("_", " ").capitalize()

    def range_message(self, minimum: Optional[float], maximum: Optional[float], unit_symbol: str = "") -> str:
        if minimum is not None and maximum is not None:
            return f"{self.display_name} must be between {_fmt(minimum)} and {_fmt(maximum)}{unit_symbol}"
        if minimum is not None:
            return f"{self.display_name} must be at least {_fmt(minimum)}{unit_symbol}"
        return f"{self.display_name} must be at most {_fmt(maximum)}{unit_symbol}"

    def message_for(self, errors: Sequence[Mapping[str, Any]]) -> str:
        """One user-facing message for the pydantic errors raised on this field."""
        types = {e["type"] for e in errors}
        if types & _RANGE_ERRORS:
            return self.range_message(self.minimum, self.maximum)
        if "finite_number" in types:
            return f"{self.display_name} must be a finite number"
        if "int_from_float" in types:
            return f"{self.display_name} must be a whole number"
        if self.kind == FieldKind.MULTI_CHOICE and "literal_error" in types:
            invalid = [str(e["input"]) for e in errors if e["type"] == "literal_error"]
            return f"{self.display_name} contains unknown values: {', '.join(invalid)}"
        return _KIND_MESSAGES[self.kind].format(name=self.display_name, choices=", ".join(self.choices))

    def annotation(self) -> Any:
        """Pydantic type for this field, wrapped so errors are collected per field."""
        if self.kind == FieldKind.NUMBER:
            # unit-bound ranges are checked on the canonical value by the model validator
            if self.unit is not None:
                inner = Annotated[confloat(allow_inf_nan=False), BeforeValidator(_number_input)]
            else:
                inner = Annotated[confloat(ge=self.minimum, le=self.maximum, allow_inf_nan=False),
                                  BeforeValidator(_number_input)]
        elif self.kind == FieldKind.INTEGER:
            inner = Annotated[conint(ge=self.minimum, le=self.maximum), BeforeValidator(_number_input)]
        elif self.kind == FieldKind.BOOLEAN:
            inner = bool
        elif self.kind == FieldKind.CHOICE:
            inner = Literal[self.choices]
        elif self.kind == FieldKind.MULTI_CHOICE:
            choices = self.choices
            inner = Annotated[List[Literal[choices]],
                              AfterValidator(lambda picked: tuple(c for c in choices if c in picked))]
        elif self.kind == FieldKind.DATE:
            inner = Annotated[date, BeforeValidator(_date_input)]
        else:
            inner = Annotated[time, BeforeValidator(_clock_input)]
        return Annotated[inner, WrapValidator(self._collect)]

    def _collect(self, value: Any, handler: Callable[[Any], Any], info: ValidationInfo) -> Any:
        # With a collecting context, a bad field is recorded and left as None
        # so the remaining fields and the cross-field rules still run.
        errors = info.context.get("errors") if info.context else None
        if value is None:
            if self.required:
                if errors is None:
                    raise PydanticCustomError("required", "{name} is required", {"name": self.display_name})
                errors[self.name] = f"{self.display_name} is required"
            return None
        try:
            return handler(value)
        except ValidationError as e:
            if errors is None:
                raise
            errors[self.name] = self.message_for(e.errors())
            return None

    def describe(self) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            "name": self.name,
            "label": self.display_name,
            "kind": self.kind.value,
            "required": self.required,
        }
        if self.default is not None:
            info["default"] = self.default.isoformat() if isinstance(self.default, (date, time)) else self.default
        if self.minimum is not None:
            info["minimum"] = self.minimum
        if self.maximum is not None:
            info["maximum"] = self.maximum
        if self.choices:
            info["choices"] = list(self.choices)
        if self.unit is not None:
            info["canonical_unit"] = self.unit.canonical.value
            if self.unit.unit_field:
                info["unit_field"] = self.unit.unit_field
        return info


@dataclass(frozen=True)
class CrossFieldRule:
    """
    Constraint across fields, reported under ``field``.

    Runs only when every field in ``depends_on`` validated without error and
    has a value. ``check`` returns True when the input is acceptable.
    """
    field: str
    depends_on: Tuple[str, ...]
    check: Callable[[Mapping[str, Any]], bool]
    message: str


@dataclass
class ValidationResult:
    """Typed values (defaults applied) and per-field errors."""
    values: Dict[str, Any] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {"is_valid": self.is_valid, "errors": dict(self.errors)}


class FormInput(BaseModel):
    """Base for the generated per-metric input models."""
    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def drop_blank_values(cls, data: Any) -> Any:
        """Blank strings and nulls count as missing, so defaults apply."""
        if isinstance(data, Mapping):
            return {k: v for k, v in data.items() if not _is_blank(v)}
        return data


def _model_name(name: str) -> str:
    return "".join(part.capitalize() for part in name.split("_")) + "Input"


class InputSchema:
    """Ordered field specs plus cross-field rules for one metric."""

    def __init__(self, name: str, fields: Sequence[FieldSpec], rules: Sequence[CrossFieldRule] = ()):
        names = [f.name for f in fields]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Schema '{name}' declares a field twice")
        self.name = name
        self.fields: Tuple[FieldSpec, ...] = tuple(fields)
        self.rules: Tuple[CrossFieldRule, ...] = tuple(rules)
        self._by_name = {f.name: f for f in self.fields}
        for spec in self.fields:
            if spec.unit is not None and spec.unit.unit_field and spec.unit.unit_field not in self._by_name:
                raise ConfigurationError(
                    f"Schema '{name}': unit field '{spec.unit.unit_field}' of '{spec.name}' is not declared"
                )
        for rule in self.rules:
            unknown = [f for f in (rule.field,) + tuple(rule.depends_on) if f not in self._by_name]
            if unknown:
                raise ConfigurationError(f"Schema '{name}': rule references unknown fields {unknown}")
        self.model = self._build_model()

    def _build_model(self) -> Type[FormInput]:
        schema = self

        def check_cross_fields(model: FormInput, info: ValidationInfo) -> FormInput:
            collected = info.context.get("errors") if info.context else None
            errors = {} if collected is None else collected
            values = dict(model)
            schema._check_ranges(values, errors)
            schema._check_rules(values, errors)
            if collected is None and errors:
                field_name, message = next(iter(errors.items()))
                raise PydanticCustomError("cross_field", "{field}: {message}",
                                          {"field": field_name, "message": message})
            return model

        definitions = {
            spec.name: (spec.annotation(), Field(default=spec.default, validate_default=True))
            for spec in self.fields
        }
        return create_model(
            _model_name(self.name),
            __base__=FormInput,
            __validators__={"check_cross_fields": model_validator(mode="after")(check_cross_fields)},
            **definitions,
        )

    def __getitem__(self, name: str) -> FieldSpec:
        return self._by_name[name]

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    @property
    def unit_fields(self) -> List[FieldSpec]:
        """Fields carrying a unit binding."""
        return [f for f in self.fields if f.unit is not None]

    def describe(self) -> List[Dict[str, Any]]:
        return [f.describe() for f in self.fields]

    def validate(self, raw: Mapping[str, Any]) -> ValidationResult:
        """
        Validate through the metric's input model, collecting every field error.

        Unknown keys are ignored; blank strings count as missing.
        """
        result = ValidationResult()
        context: Dict[str, Dict[str, str]] = {"errors": {}}
        try:
            model = self.model.model_validate(raw, context=context)
        except ValidationError as e:
            for error in e.errors():
                key = str(error["loc"][0]) if error["loc"] else "_input"
                if key == "_input":
                    result.errors[key] = "Input must be an object of field values"
                else:
                    result.errors.setdefault(key, error["msg"])
            return result

        result.values = dict(model)
        result.errors = dict(context["errors"])
        if result.errors:
            logger.debug(f"{self.name}: invalid fields {sorted(result.errors)}")
        return result

    def _check_ranges(self, values: Mapping[str, Any], errors: Dict[str, str]) -> None:
        for spec in self.unit_fields:
            value = values.get(spec.name)
            if value is None or spec.name in errors or (spec.minimum is None and spec.maximum is None):
                continue
            if spec.unit.unit_field and spec.unit.unit_field in errors:
                continue
            canonical_value = spec.unit.to_canonical(value, values) if value >= 0 else value
            in_range = (
                (spec.minimum is None or canonical_value >= spec.minimum - 1e-9)
                and (spec.maximum is None or canonical_value <= spec.maximum + 1e-9)
            )
            if in_range:
                continue
            minimum = spec.unit.from_canonical(spec.minimum, values) if spec.minimum is not None else None
            maximum = spec.unit.from_canonical(spec.maximum, values) if spec.maximum is not None else None
            errors[spec.name] = spec.range_message(
                minimum, maximum, f" {spec.unit.entered_unit(values).symbol}"
            )

    def _check_rules(self, values: Mapping[str, Any], errors: Dict[str, str]) -> None:
        for rule in self.rules:
            if rule.field in errors:
                continue
            if any(d in errors or values.get(d) is None for d in rule.depends_on):
                continue
            if not rule.check(values):
                errors[rule.field] = rule.message


# Field helpers used by metric schemas

def number(name: str, minimum: float = None, maximum: float = None, *, required: bool = True,
           default: Any = None, label: str = "", unit: UnitBinding = None) -> FieldSpec:
    return FieldSpec(name, FieldKind.NUMBER, required, default, minimum, maximum, (), label, unit)


def integer(name: str, minimum: float = None, maximum: float = None, *, required: bool = True,
            default: Any = None, label: str = "") -> FieldSpec:
    return FieldSpec(name, FieldKind.INTEGER, required, default, minimum, maximum, (), label)


def choice(name: str, choices: Sequence[str], *, required: bool = True, default: Any = None,
           label: str = "") -> FieldSpec:
    return FieldSpec(name, FieldKind.CHOICE, required, default, None, None, tuple(choices), label)


def multi_choice(name: str, choices: Sequence[str], *, default: Sequence[str] = (), label: str = "") -> FieldSpec:
    return FieldSpec(name, FieldKind.MULTI_CHOICE, False, tuple(default), None, None, tuple(choices), label)


def boolean(name: str, *, default: bool = False, label: str = "") -> FieldSpec:
    return FieldSpec(name, FieldKind.BOOLEAN, False, default, label=label)


def date_field(name: str, *, required: bool = True, label: str = "") -> FieldSpec:
    return FieldSpec(name, FieldKind.DATE, required, label=label)


def time_field(name: str, *, required: bool = True, label: str = "") -> FieldSpec:
    return FieldSpec(name, FieldKind.TIME, required, label=label)
