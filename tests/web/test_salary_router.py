"""Endpoint tests for the salary tab API backed by the in-memory collaborator."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from schoolpay.domain.salary import NO_CLASSES_WARNING, ConflictError, NetworkError, PeriodKey
from schoolpay.main import create_app
from schoolpay.web.dependencies import SalaryRuntime, get_runtime

ANA = "t-ana"
BASE = f"/teachers/{ANA}/salary-calculations"


@pytest.fixture
def client(api, service, estimate) -> TestClient:
    api.schedule(ANA, PeriodKey(2025, 4), [estimate("Business English", "4800")])
    runtime = SalaryRuntime(api, service=service)
    app = create_app()
    app.dependency_overrides[get_runtime] = lambda: runtime
    return TestClient(app)


def _generate(client: TestClient, year: int = 2025, month: int = 3) -> dict:
    response = client.post(BASE, json={"year": year, "month": month})
    assert response.status_code == 201, response.text
    return response.json()["calculation"]


def test_list_starts_empty(client: TestClient) -> None:
    response = client.get(BASE)

    assert response.status_code == 200
    assert response.json() == []


def test_generate_options(client: TestClient) -> None:
    _generate(client)

    payload = client.get(f"{BASE}/generate-options").json()

    assert payload["year"] == 2025
    assert payload["month"] == 1
    assert payload["years"] == [2025, 2024]
    months = {option["month"]: option for option in payload["months"]}
    assert months[3]["generated"] and not months[3]["selectable"]
    assert months[4]["future"]
    assert payload["exhausted"] is False

    previous = client.get(f"{BASE}/generate-options", params={"year": 2024}).json()
    assert previous["year"] == 2024
    assert previous["month"] == 1


def test_generate_returns_pending_calculation(client: TestClient) -> None:
    response = client.post(BASE, json={"year": 2025, "month": 3})

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Successfully generated calculation for March 2025"
    calculation = body["calculation"]
    assert calculation["period"] == "2025-03"
    assert calculation["status"] == "pending"
    assert calculation["calculatedAmount"] == "4800"
    assert calculation["approvedAmount"] is None
    assert calculation["actions"] == ["approve"]

    listed = client.get(BASE).json()
    assert [row["id"] for row in listed] == [calculation["id"]]


@pytest.mark.parametrize(("year", "month"), [(2025, 4), (2025, 13)])
def test_generate_invalid_period(client: TestClient, year: int, month: int) -> None:
    response = client.post(BASE, json={"year": year, "month": month})

    assert response.status_code == 422
    assert response.json()["kind"] == "validation"
    assert "month" in response.json()["fieldErrors"]


@pytest.mark.parametrize("year", [0, 2019, 2101])
def test_generate_year_out_of_range(client: TestClient, year: int) -> None:
    response = client.post(BASE, json={"year": year, "month": 1})

    assert response.status_code == 422
    assert response.json()["kind"] == "validation"
    assert "year" in response.json()["fieldErrors"]


def test_preview_year_out_of_range(client: TestClient) -> None:
    response = client.get(f"/teachers/{ANA}/salary-preview", params={"year": 0, "month": 1})

    assert response.status_code == 422


def test_generate_duplicate_is_validation_error(client: TestClient) -> None:
    _generate(client)

    response = client.post(BASE, json={"year": 2025, "month": 3})

    assert response.status_code == 422


def test_generate_without_lessons_is_rejected(client: TestClient) -> None:
    response = client.post(BASE, json={"year": 2024, "month": 12})

    assert response.status_code == 400
    assert response.json()["code"] == "no_conducted_lessons"


def test_approve_reopen_flow(client: TestClient) -> None:
    calculation = _generate(client)
    url = f"{BASE}/{calculation['id']}"

    missing_reason = client.post(f"{url}/approve", json={"approvedAmount": "4500"})
    assert missing_reason.status_code == 422
    assert "reason" in missing_reason.json()["fieldErrors"]

    approved = client.post(
        f"{url}/approve",
        json={"approvedAmount": "4500", "reason": "One lesson cancelled by school"},
    )
    assert approved.status_code == 200
    assert approved.json()["message"] == "Successfully approved calculation for 4,500.00 MKD"
    assert approved.json()["calculation"]["payoutAmount"] == "4500"

    twice = client.post(f"{url}/approve", json={})
    assert twice.status_code == 409
    assert twice.json()["kind"] == "conflict"

    reopened = client.post(f"{url}/reopen", json={"reason": "Attendance sheet was corrected"})
    assert reopened.status_code == 200

    (row,) = client.get(BASE).json()
    assert row["status"] == "reopened"
    assert row["approvedAmount"] is None
    assert row["lastApprovedAmount"] == "4500"
    assert row["actions"] == ["approve"]


def test_approve_defaults_to_calculated_amount(client: TestClient) -> None:
    calculation = _generate(client)

    response = client.post(f"{BASE}/{calculation['id']}/approve", json={})

    assert response.status_code == 200
    assert response.json()["calculation"]["approvedAmount"] == "4800"


def test_reopen_short_reason(client: TestClient) -> None:
    calculation = _generate(client)
    client.post(f"{BASE}/{calculation['id']}/approve", json={})

    response = client.post(f"{BASE}/{calculation['id']}/reopen", json={"reason": "typo"})

    assert response.status_code == 422
    assert "reason" in response.json()["fieldErrors"]


def test_unknown_calculation(client: TestClient) -> None:
    assert client.post(f"{BASE}/calc-404/approve", json={}).status_code == 409
    assert client.post(f"{BASE}/calc-404/reopen", json={"reason": "x" * 20}).status_code == 409
    assert client.get(f"{BASE}/calc-404").status_code == 409


def test_detail_timeline_newest_first(client: TestClient) -> None:
    calculation = _generate(client)
    client.post(
        f"{BASE}/{calculation['id']}/approve",
        json={"approvedAmount": 4500, "reason": "One lesson cancelled by school"},
    )

    detail = client.get(f"{BASE}/{calculation['id']}").json()

    assert detail["calculation"]["status"] == "approved"
    assert [item["className"] for item in detail["items"]] == ["Business English"]
    labels = {entry["label"] for entry in detail["timeline"]}
    assert labels == {"Generated", "Adjusted", "Approved"}
    adjusted = next(entry for entry in detail["timeline"] if entry["action"] == "adjusted")
    assert adjusted["delta"] == "-300"


def test_preview_states(client: TestClient) -> None:
    _generate(client)
    url = f"/teachers/{ANA}/salary-preview"

    ready = client.get(url, params={"year": 2025, "month": 4})
    assert ready.status_code == 200
    assert ready.json()["state"] == "ready"
    assert ready.json()["totalEstimated"] == "4800"
    assert ready.json()["grandTotal"] == "4800"

    empty = client.get(url, params={"year": 2025, "month": 5}).json()
    assert empty["state"] == "empty"
    assert empty["totalEstimated"] is None
    assert empty["grandTotal"] is None
    assert NO_CLASSES_WARNING in empty["warnings"]

    generated = client.get(url, params={"year": 2025, "month": 3})
    assert generated.status_code == 422


def test_network_failure_is_retryable(client: TestClient, api) -> None:
    async def _down(*args, **kwargs):
        raise NetworkError("connection refused")

    api.list_calculations = _down

    response = client.get(BASE)

    assert response.status_code == 503
    assert response.json()["retryable"] is True
    assert response.json()["banner"] == "connection refused"


def test_uncaught_salary_error_uses_outcome_body() -> None:
    app = create_app()

    @app.get("/boom")
    async def boom() -> None:
        raise ConflictError("Calculation changed on the server", code="cannot_approve_non_pending")

    response = TestClient(app).get("/boom")

    assert response.status_code == 409
    assert response.json()["kind"] == "conflict"
    assert response.json()["code"] == "cannot_approve_non_pending"
