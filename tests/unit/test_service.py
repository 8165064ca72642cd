from datetime import date

import pytest
from fastapi import HTTPException

from healthcalc.services.assessment import AssessmentService


@pytest.fixture
def service():
    return AssessmentService(include_details=False)


def test_catalog_lists_every_calculator(service):
    catalog = service.catalog()
    assert catalog.count == 14
    names = [m.name for m in catalog.metrics]
    assert names[0] == "cholesterol"
    assert set(names) == {
        "cholesterol", "vitamin_d", "blood_sugar", "blood_pressure", "heart_rate", "bmi", "kids_bmi",
        "body_fat", "bmr", "calorie", "hydration", "sleep", "ovulation", "due_date",
    }


def test_describe_schema(service):
    schema = service.describe("blood_pressure")
    fields = {f.name: f for f in schema.fields}
    assert fields["systolic"].minimum == 50
    assert fields["systolic"].unit_field == "unit"
    assert fields["unit"].choices == ["mmHg", "kPa"]
    assert set(schema.json_schema["properties"]) == set(fields)


def test_unknown_metric_is_404(service):
    with pytest.raises(HTTPException) as exc_info:
        service.describe("pulse_oximetry")
    assert exc_info.value.status_code == 404


def test_today_is_supplied_for_date_metrics(service):
    data = service.prepare_input("ovulation", {"last_menstrual_period": "2024-01-01"},
                                 today=date(2024, 1, 12))
    assert data["today"] == "2024-01-12"
    assert "today" not in service.prepare_input("bmi", {"weight": 70}, today=date(2024, 1, 12))


def test_explicit_today_is_kept(service):
    data = service.prepare_input("due_date", {"today": "2024-03-01"}, today=date(2024, 5, 1))
    assert data["today"] == "2024-03-01"


@pytest.mark.asyncio
async def test_assess_returns_response(service):
    outcome = await service.assess("bmi", {"weight": 70, "height": 175})
    response = service.to_response(outcome)
    assert response.status == "ok"
    assert response.readings[0].category.color == "green"
    assert response.details is None


@pytest.mark.asyncio
async def test_assess_invalid_input(service):
    outcome = await service.assess("blood_pressure", {"systolic": 80, "diastolic": 120, "age": 200})
    response = service.to_response(outcome)
    assert response.status == "invalid"
    assert set(response.errors) == {"systolic", "age"}


@pytest.mark.asyncio
async def test_assess_unknown_metric(service):
    with pytest.raises(HTTPException):
        await service.assess("pulse_oximetry", {})
