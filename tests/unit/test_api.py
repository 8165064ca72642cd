import pytest
from fastapi.testclient import TestClient

from healthcalc.main import app


@pytest.fixture
def client():
    return TestClient(app)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["metrics"] == 14


def test_root(client):
    assert client.get("/").json()["status"] == "active"


def test_metric_catalog(client):
    data = client.get("/api/v1/metrics").json()
    assert data["count"] == 14
    assert {"name", "title", "description"} <= set(data["metrics"][0])


def test_metric_schema(client):
    response = client.get("/api/v1/metrics/cholesterol/schema")
    assert response.status_code == 200
    names = [f["name"] for f in response.json()["fields"]]
    assert names[:2] == ["total_cholesterol", "ldl_cholesterol"]
    assert response.json()["json_schema"]["title"] == "CholesterolInput"


def test_unknown_metric(client):
    assert client.get("/api/v1/metrics/pulse_oximetry/schema").status_code == 404
    assert client.post("/api/v1/assess/pulse_oximetry", json={}).status_code == 404


def test_assess_blood_pressure_crisis(client):
    response = client.post("/api/v1/assess/blood_pressure", json={"systolic": 185, "diastolic": 125})
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    category = next(r for r in data["readings"] if r["kind"] == "bp_stage")["category"]
    assert category["label"] == "Hypertensive Crisis"
    assert category["color"] == "red"
    assert data["risk"]["tier"] == "critical"
    assert data["treatment"]["tier"] == "emergency_care"
    assert data["flags"][0]["level"] == "urgent"
    assert data["highest_flag"] == "urgent"


def test_assess_invalid_input(client):
    response = client.post("/api/v1/assess/blood_pressure",
                           json={"systolic": 80, "diastolic": 120, "age": 200})
    assert response.status_code == 422
    data = response.json()
    assert data["status"] == "invalid"
    assert set(data["errors"]) == {"systolic", "age"}


def test_assess_cholesterol_reports_unavailable_ldl(client):
    response = client.post("/api/v1/assess/cholesterol", json={
        "total_cholesterol": 200, "hdl_cholesterol": 50, "triglycerides": 400,
        "age": 50, "gender": "male",
    })
    data = response.json()
    assert [u["kind"] for u in data["unavailable"]] == ["ldl_cholesterol", "ldl_hdl_ratio"]
    assert data["details"]["ldl_target_mg_dl"] == 100


def test_assess_ovulation_uses_request_date(client):
    response = client.post("/api/v1/assess/ovulation", json={"last_menstrual_period": "2024-01-01"})
    assert response.status_code == 200
    assert response.json()["details"]["ovulation_date"] == "2024-01-15"


def test_assess_cholesterol_with_negative_ldl_estimate(client):
    response = client.post("/api/v1/assess/cholesterol", json={
        "total_cholesterol": 120, "hdl_cholesterol": 100, "triglycerides": 300,
        "age": 50, "gender": "female",
    })
    assert response.status_code == 200
    data = response.json()
    assert [u["kind"] for u in data["unavailable"]] == ["ldl_cholesterol", "ldl_hdl_ratio"]


def test_assess_cholesterol_hdl_above_total(client):
    response = client.post("/api/v1/assess/cholesterol", json={
        "total_cholesterol": 100, "hdl_cholesterol": 150, "age": 50, "gender": "female",
    })
    assert response.status_code == 422
    assert response.json()["errors"] == {"hdl_cholesterol": "HDL cholesterol must be lower than total cholesterol"}


def test_assess_heart_rate(client):
    response = client.post("/api/v1/assess/heart_rate", json={"age": 30, "resting_heart_rate": 60})
    assert response.status_code == 200
    zones = response.json()["details"]["zones"]
    assert len(zones) == 5
