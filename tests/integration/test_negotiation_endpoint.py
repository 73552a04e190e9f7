"""
Integration tests for the negotiation endpoint.
"""

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies import get_negotiation_orchestrator
from src.api.main import app
from src.models.metadata import ResponseMetadata

NEGOTIATE_URL = "/api/v1/negotiation/negotiate"


@pytest.fixture
def payload(example_strategies, to_payload):
    return {
        "scenarioId": "scn-port-closure",
        "impacts": {"costImpact": 250000, "deliveryTimeImpact": 72, "inventoryImpact": 1200},
        "strategies": [to_payload(s) for s in example_strategies],
        "userPreferences": {"prioritizeCost": True},
    }


def test_negotiate_balanced_strategies(client, payload):
    response = client.post(NEGOTIATE_URL, json=payload)

    assert response.status_code == 200
    data = response.json()

    assert [s["strategyId"] for s in data["balancedStrategies"]] == ["A", "C", "D"]
    assert "conflictEscalation" not in data
    assert data["negotiationParameters"]["costWeight"] == pytest.approx(0.6)
    assert len(data["tradeoffVisualizations"]) == 3
    assert data["tradeoffVisualizations"][0]["xAxis"] == "Cost Impact"
    assert data["metadata"]["algorithm"] == "multi-objective-weighted"
    assert data["auditRecordId"].startswith("audit_")


def test_negotiate_escalation(client, payload):
    payload["userPreferences"] = {"maxCostImpact": 100}

    response = client.post(NEGOTIATE_URL, json=payload)

    assert response.status_code == 200
    data = response.json()

    assert "balancedStrategies" not in data
    escalation = data["conflictEscalation"]
    assert escalation["requiresUserInput"] is True
    assert escalation["conflictingObjectives"] == ["cost"]
    assert escalation["explanation"]


def test_negotiate_insufficient_strategies(client, payload):
    payload["strategies"] = payload["strategies"][:2]

    response = client.post(NEGOTIATE_URL, json=payload)

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "NEG_INSUFFICIENT_STRATEGIES"
    assert data["retryable"] is False
    assert data["source"] == "negotiation-engine"


def test_negotiate_duplicates_do_not_count(client, payload):
    payload["strategies"] = [payload["strategies"][0]] * 2 + [payload["strategies"][1]]

    response = client.post(NEGOTIATE_URL, json=payload)

    assert response.status_code == 400
    assert response.json()["code"] == "NEG_INSUFFICIENT_STRATEGIES"


def test_negotiate_schema_error(client, payload):
    payload["strategies"][0]["riskReduction"] = 1.5

    response = client.post(NEGOTIATE_URL, json=payload)

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "NEG_VALIDATION_ERROR"
    assert any("riskReduction" in failure for failure in data["validation_failures"])


def test_negotiate_missing_field(client, payload):
    del payload["impacts"]

    response = client.post(NEGOTIATE_URL, json=payload)

    assert response.status_code == 400
    assert "Ensure all required fields are provided" in response.json()["recovery"]["hints"]


def test_correlation_id_echoed_and_audited(client, payload, audit_sink):
    response = client.post(
        NEGOTIATE_URL,
        json=payload,
        headers={"X-Correlation-Id": "corr-neg-1", "X-User-Id": "planner-7"},
    )

    assert response.headers["X-Correlation-Id"] == "corr-neg-1"
    assert response.json()["metadata"]["requestId"] == "corr-neg-1"

    [record] = audit_sink.records
    assert record.correlation_id == "corr-neg-1"
    assert record.user_id == "planner-7"


def test_body_identity_overrides_headers(client, payload, audit_sink):
    payload["userId"] = "body-user"
    payload["correlationId"] = "body-corr"

    client.post(NEGOTIATE_URL, json=payload, headers={"X-User-Id": "header-user"})

    [record] = audit_sink.records
    assert record.user_id == "body-user"
    assert record.correlation_id == "body-corr"


def test_anonymous_user_by_default(client, payload, audit_sink):
    client.post(NEGOTIATE_URL, json=payload)

    [record] = audit_sink.records
    assert record.user_id == "anonymous"


def test_error_carries_correlation_id(client, payload):
    payload["strategies"] = payload["strategies"][:1]

    response = client.post(NEGOTIATE_URL, json=payload, headers={"X-Correlation-Id": "corr-err"})

    assert response.status_code == 400
    assert response.json()["request_id"] == "corr-err"
    assert response.headers["X-Correlation-Id"] == "corr-err"


def test_oversized_correlation_id_replaced(client, payload, audit_sink):
    oversized = "c" * 201

    response = client.post(NEGOTIATE_URL, json=payload, headers={"X-Correlation-Id": oversized})

    assert response.status_code == 200
    correlation_id = response.headers["X-Correlation-Id"]
    assert correlation_id != oversized
    assert correlation_id.startswith("corr_")
    assert response.json()["metadata"]["requestId"] == correlation_id

    [record] = audit_sink.records
    assert record.correlation_id == correlation_id


def test_response_model_failure_is_server_error(payload):
    class FailingOrchestrator:
        def negotiate(self, request, user_id, correlation_id):
            # Empty request id fails model validation
            return ResponseMetadata(request_id="", computation_time_ms=0)

    app.dependency_overrides[get_negotiation_orchestrator] = lambda: FailingOrchestrator()
    try:
        response = TestClient(app, raise_server_exceptions=False).post(NEGOTIATE_URL, json=payload)
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json()["code"] == "NEG_COMPUTATION_ERROR"
