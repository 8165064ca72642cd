from datetime import date, time

import pytest
from pydantic import ValidationError

from healthcalc.core.engine.errors import ConfigurationError
from healthcalc.core.engine.units import QuantityKind, Unit, UnitBinding
from healthcalc.core.validation.schema import (
    CrossFieldRule, FormInput, InputSchema, boolean, choice, date_field, integer, multi_choice, number,
    time_field,
)

GLUCOSE = UnitBinding(QuantityKind.GLUCOSE, "glucose_unit", {"mg_dl": Unit.MG_DL, "mmol_l": Unit.MMOL_L})


@pytest.fixture
def schema():
    return InputSchema("demo", [
        number("glucose", 20, 600, unit=GLUCOSE),
        choice("glucose_unit", ["mg_dl", "mmol_l"], default="mg_dl"),
        integer("age", 18, 100),
        choice("gender", ["male", "female"], required=False),
        boolean("smoker"),
        multi_choice("conditions", ["diabetes", "fever", "none"]),
        date_field("visit", required=False),
        time_field("bedtime", required=False),
        number("systolic", 50, 300, required=False),
        number("diastolic", 30, 200, required=False),
    ], rules=[
        CrossFieldRule("systolic", ("systolic", "diastolic"),
                       lambda v: v["systolic"] > v["diastolic"],
                       "Systolic pressure must be higher than diastolic pressure"),
    ])


def test_valid_input_is_typed_with_defaults(schema):
    result = schema.validate({
        "glucose": "95", "age": 40, "smoker": "yes", "conditions": ["fever", "diabetes", "fever"],
        "visit": "2024-03-01", "bedtime": "22:30",
    })
    assert result.is_valid
    values = result.values
    assert values["glucose"] == 95.0
    assert values["glucose_unit"] == "mg_dl"
    assert values["age"] == 40
    assert values["smoker"] is True
    assert values["conditions"] == ("diabetes", "fever")
    assert values["visit"] == date(2024, 3, 1)
    assert values["bedtime"] == time(22, 30)
    assert values["gender"] is None


def test_all_errors_are_collected(schema):
    """Test that validation reports every bad field at once."""
    result = schema.validate({"glucose": "abc", "age": 12.5, "gender": "other", "smoker": "maybe"})
    assert set(result.errors) == {"glucose", "age", "gender", "smoker"}
    assert "number" in result.errors["glucose"]
    assert "whole number" in result.errors["age"]


def test_missing_required_and_blank_strings(schema):
    result = schema.validate({"glucose": "  ", "age": None})
    assert "required" in result.errors["glucose"]
    assert "required" in result.errors["age"]


def test_unknown_keys_are_ignored(schema):
    result = schema.validate({"glucose": 90, "age": 30, "favourite_color": "blue"})
    assert result.is_valid
    assert "favourite_color" not in result.values


def test_range_is_inclusive(schema):
    assert schema.validate({"glucose": 20, "age": 100}).is_valid
    result = schema.validate({"glucose": 19.9, "age": 101})
    assert "between 20 and 600 mg/dL" in result.errors["glucose"]
    assert "between 18 and 100" in result.errors["age"]


def test_range_checked_in_canonical_unit(schema):
    """Test that a converted value is compared with the canonical bounds."""
    assert schema.validate({"glucose": 5.5, "glucose_unit": "mmol_l", "age": 30}).is_valid
    result = schema.validate({"glucose": 40, "glucose_unit": "mmol_l", "age": 30})
    assert "mmol/L" in result.errors["glucose"]


def test_range_skipped_when_unit_field_is_invalid(schema):
    result = schema.validate({"glucose": 5.5, "glucose_unit": "grains", "age": 30})
    assert set(result.errors) == {"glucose_unit"}


def test_cross_field_rule(schema):
    result = schema.validate({"glucose": 90, "age": 30, "systolic": 80, "diastolic": 120})
    assert result.errors == {"systolic": "Systolic pressure must be higher than diastolic pressure"}


def test_cross_field_rule_skipped_when_dependency_invalid(schema):
    result = schema.validate({"glucose": 90, "age": 30, "systolic": 80, "diastolic": 500})
    assert set(result.errors) == {"diastolic"}


def test_cross_field_rule_skipped_when_dependency_missing(schema):
    assert schema.validate({"glucose": 90, "age": 30, "systolic": 80}).is_valid


def test_rejects_non_mapping(schema):
    assert "_input" in schema.validate(["glucose", 90]).errors


@pytest.mark.parametrize("value", ["24:00", "7pm", 730])
def test_bad_time(schema, value):
    result = schema.validate({"glucose": 90, "age": 30, "bedtime": value})
    assert "HH:MM" in result.errors["bedtime"]


def test_bad_multi_choice(schema):
    result = schema.validate({"glucose": 90, "age": 30, "conditions": ["fever", "flu"]})
    assert "flu" in result.errors["conditions"]
    result = schema.validate({"glucose": 90, "age": 30, "conditions": "fever"})
    assert "list" in result.errors["conditions"]


def test_boolean_is_not_a_number(schema):
    assert "number" in schema.validate({"glucose": True, "age": 30}).errors["glucose"]


def test_describe(schema):
    fields = {f["name"]: f for f in schema.describe()}
    assert fields["glucose"]["canonical_unit"] == "mg_dl"
    assert fields["glucose"]["unit_field"] == "glucose_unit"
    assert fields["gender"]["choices"] == ["male", "female"]
    assert fields["smoker"]["default"] is False


def test_schema_configuration_errors():
    with pytest.raises(ConfigurationError):
        InputSchema("dup", [number("a"), number("a")])
    with pytest.raises(ConfigurationError):
        InputSchema("unit", [number("glucose", unit=GLUCOSE)])
    with pytest.raises(ConfigurationError):
        InputSchema("rule", [number("a")], rules=[CrossFieldRule("a", ("b",), lambda v: True, "")])


def test_schema_compiles_to_input_model(schema):
    assert issubclass(schema.model, FormInput)
    assert schema.model.__name__ == "DemoInput"
    properties = schema.model.model_json_schema()["properties"]
    assert set(properties) == set(schema.field_names)


def test_input_model_validates_standalone(schema):
    """Test that the generated model raises pydantic errors when used without collection."""
    model = schema.model.model_validate({"glucose": 95, "age": 40})
    assert model.glucose == 95
    assert model.glucose_unit == "mg_dl"
    assert model.conditions == ()
    with pytest.raises(ValidationError) as exc_info:
        schema.model.model_validate({"glucose": 95, "age": 12})
    assert exc_info.value.errors()[0]["loc"] == ("age",)
    with pytest.raises(ValidationError):
        schema.model.model_validate({"glucose": 95})
    with pytest.raises(ValidationError, match="Systolic pressure must be higher"):
        schema.model.model_validate({"glucose": 95, "age": 40, "systolic": 80, "diastolic": 90})
