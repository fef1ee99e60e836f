"""
Tests for the HTTP API
"""
import pytest
from fastapi.testclient import TestClient

from welfare_engine.config import Settings
from welfare_engine.dependencies import build_engine_state
from welfare_engine.main import create_app


PENSION = {
    "name": "Old Age Pension",
    "category": "social_security",
    "eligibility": {
        "age": {"min": 60},
        "predicates": {"income_limit": {"attribute": "income", "op": "<", "value": 50000}}
    },
    "benefits": [{"benefit_type": "financial", "description": "Monthly pension"}],
    "required_documents": ["aadhaar", "age_proof"]
}

HELPDESK = {
    "name": "Common Service Centre",
    "open_to_all": True,
    "benefits": [{"benefit_type": "service", "description": "Assisted applications"}]
}


@pytest.fixture
def client():
    settings = Settings(storage_backend="memory", seed_sample_schemes=False, api_prefix="")
    app = create_app(settings=settings, state=build_engine_state(settings))
    with TestClient(app) as test_client:
        yield test_client


def start_session(client, language="en"):
    response = client.post("/sessions", json={"preferred_language": language})
    assert response.status_code == 201
    return response.json()["session_id"]


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["storage"] == "memory"
    assert data["active_sessions"] == 0


def test_scheme_administration(client):
    response = client.put("/schemes/pension", json=PENSION)
    assert response.status_code == 200
    assert response.json()["version"] == 1

    response = client.put("/schemes/pension", json={"description": "Revised", "base_version": 1})
    assert response.status_code == 200
    assert response.json()["version"] == 2
    assert response.json()["name"] == "Old Age Pension"

    versions = client.get("/schemes/pension/versions").json()
    assert [v["version"] for v in versions] == [1, 2]
    assert client.get("/schemes/pension/versions/1").json()["description"] == ""
    assert [s["scheme_id"] for s in client.get("/schemes").json()] == ["pension"]


def test_stale_write_returns_precondition_failed(client):
    client.put("/schemes/pension", json=PENSION)
    client.put("/schemes/pension", json={"description": "Revised"})

    response = client.put("/schemes/pension", json={"description": "Late", "base_version": 1})
    assert response.status_code == 412
    assert response.json()["error"] == "version_conflict"
    assert response.json()["current_version"] == 2


def test_invalid_scheme_is_rejected(client):
    response = client.put("/schemes/empty", json={"name": "No criteria"})
    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"


def test_status_lifecycle(client):
    client.put("/schemes/pension", json=PENSION)

    response = client.post("/schemes/pension/status", json={"status": "suspended"})
    assert response.status_code == 200
    assert response.json()["version"] == 2
    assert client.get("/schemes").json() == []

    client.post("/schemes/pension/status", json={"status": "inactive"})
    assert client.get("/schemes/pension").status_code == 404
    discontinued = client.get("/schemes/pension", params={"include_inactive": True})
    assert discontinued.json()["status"] == "inactive"

    response = client.post("/schemes/pension/status", json={"status": "active"})
    assert response.status_code == 409
    assert response.json()["error"] == "invalid_transition"


def test_review_flags(client):
    client.put("/schemes/pension", json=PENSION)
    response = client.post("/schemes/pension/flags", json={"description": "Income limit outdated"})
    assert response.status_code == 201

    flags = client.get("/schemes/pension/flags", params={"open_only": True}).json()
    assert [f["description"] for f in flags] == ["Income limit outdated"]
    assert client.get("/schemes/pension").json()["version"] == 1


def test_sensitive_attribute_needs_confirmation(client):
    sid = start_session(client)

    response = client.put(f"/sessions/{sid}/attributes/income", json={"value": 30000})
    assert response.status_code == 202
    assert response.json()["status"] == "requires_confirmation"
    assert client.get(f"/sessions/{sid}/context").json()["attributes"] == {}

    response = client.put(
        f"/sessions/{sid}/attributes/income", json={"value": 30000, "confirmed": True}
    )
    assert response.status_code == 200
    assert response.json()["status"] == "stored"
    assert client.get(f"/sessions/{sid}").json()["confirmed_attributes"] == ["income"]


def test_invalid_attribute_value(client):
    sid = start_session(client)
    response = client.put(f"/sessions/{sid}/attributes/age", json={"value": -3})
    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"


def test_eligibility_flow(client):
    client.put("/schemes/pension", json=PENSION)
    client.put("/schemes/helpdesk", json=HELPDESK)
    sid = start_session(client)
    client.put(f"/sessions/{sid}/attributes/age", json={"value": 65})
    client.put(f"/sessions/{sid}/attributes/state", json={"value": "UP"})

    response = client.get(f"/sessions/{sid}/eligibility")
    assert response.status_code == 200
    data = response.json()
    assert data["total_schemes_checked"] == 2
    assert data["eligible_schemes"] == 2
    assert [r["scheme_id"] for r in data["results"]] == ["helpdesk", "pension"]
    pension = data["results"][1]
    assert pension["confidence"] == 0.5
    assert pension["missing_requirements"] == ["income"]

    explanation = client.get(f"/sessions/{sid}/eligibility/pension/explain").json()
    statuses = {o["criterion"]: o["status"] for o in explanation["outcomes"]}
    assert statuses == {"age": "passed", "predicate:income_limit": "unknown"}

    alternatives = client.post(
        f"/sessions/{sid}/alternatives", json={"excluded_scheme_ids": ["helpdesk"]}
    ).json()
    assert [a["scheme_id"] for a in alternatives] == ["pension"]
    assert alternatives[0]["full_match"] is True


def test_ended_session_is_gone(client):
    sid = start_session(client)
    client.put(f"/sessions/{sid}/attributes/age", json={"value": 40})

    assert client.delete(f"/sessions/{sid}").status_code == 204
    for response in (
        client.get(f"/sessions/{sid}/context"),
        client.get(f"/sessions/{sid}/eligibility"),
        client.put(f"/sessions/{sid}/attributes/age", json={"value": 41}),
        client.delete(f"/sessions/{sid}")
    ):
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"
    assert client.get("/health").json()["active_sessions"] == 0


def test_sample_schemes_seeded_on_startup():
    settings = Settings(storage_backend="memory", seed_sample_schemes=True, api_prefix="")
    app = create_app(settings=settings, state=build_engine_state(settings))
    with TestClient(app) as client:
        ids = {s["scheme_id"] for s in client.get("/schemes").json()}
        assert {"pm_kisan", "old_age_pension", "common_service_centre"} <= ids

        sid = start_session(client, language="hi")
        client.put(f"/sessions/{sid}/attributes/occupation", json={"value": "farmer"})
        client.put(f"/sessions/{sid}/attributes/land_ownership", json={"value": "yes"})
        results = client.get(f"/sessions/{sid}/eligibility").json()["results"]
        kisan = next(r for r in results if r["scheme_id"] == "pm_kisan")
        assert kisan["eligible"] is True
        assert kisan["scheme_name"] == "प्रधानमंत्री किसान सम्मान निधि"
