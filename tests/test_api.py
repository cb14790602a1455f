"""Tests for the HTTP entry point."""

import re
from decimal import Decimal
from http import HTTPStatus
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from sales_service.main import SALES_ENDPOINT, app, emit_request_metrics, get_orchestrator
from sales_service.metrics import MetricsClient


@pytest.fixture
def metrics(monkeypatch):
    metrics_client = Mock(spec=MetricsClient)
    monkeypatch.setattr(app.state, "metrics_client", metrics_client)
    return metrics_client


@pytest.fixture
def test_client(orchestrator, metrics):
    """Test client running the real workflow against the test database."""
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def valid_sale():
    return {
        "customerId": "C1",
        "items": [{"productId": "P1", "quantity": 2}],
        "paymentMethod": "card",
        "deliveryAddress": "Calle 5 #10",
    }


def outcome_recorded(metrics):
    endpoint, duration_ms, status_code = metrics.record_request.call_args.args
    assert endpoint == SALES_ENDPOINT
    assert duration_ms >= 0
    return status_code


def test_health_check(test_client):
    response = test_client.get("/health")
    assert response.status_code == HTTPStatus.OK
    assert response.json() == {"status": "ok"}


def test_submit_sale(test_client, metrics, customer, add_product, ledger, valid_sale):
    add_product("P1", 100, 5)

    response = test_client.post(SALES_ENDPOINT, json=valid_sale)

    assert response.status_code == HTTPStatus.CREATED
    body = response.json()
    assert body["status"] == "completed"
    assert re.fullmatch(r"SALE-[0-9A-F]{6}", body["folio"])
    assert body["documentLocator"].endswith(f"receipt_{body['saleId']}.docx")
    assert Decimal(body["total"]) == Decimal("200")
    assert ledger.stock_of("P1") == 3
    assert outcome_recorded(metrics) == 201


def test_malformed_sale_is_a_400(test_client, metrics):
    response = test_client.post(SALES_ENDPOINT, json={"customerId": "C1", "items": []})

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json()["kind"] == "invalid_request"
    assert response.json()["classification"] == "client"
    assert outcome_recorded(metrics) == 400


def test_invalid_json_is_a_400(test_client):
    response = test_client.post(
        SALES_ENDPOINT, content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json()["kind"] == "invalid_request"


def test_unknown_product_is_a_404(test_client, customer, valid_sale):
    response = test_client.post(SALES_ENDPOINT, json=valid_sale)

    assert response.status_code == HTTPStatus.NOT_FOUND
    assert response.json()["kind"] == "not_found"
    assert response.json()["error"] == "Product not found: P1"


def test_insufficient_stock_is_a_409(test_client, metrics, customer, add_product, ledger, valid_sale):
    add_product("P1", 100, 1)

    response = test_client.post(SALES_ENDPOINT, json=valid_sale)

    assert response.status_code == HTTPStatus.CONFLICT
    assert response.json()["kind"] == "insufficient_stock"
    assert response.json()["compensation"] is None
    assert ledger.stock_of("P1") == 1
    assert outcome_recorded(metrics) == 409


def test_storage_failure_is_a_500(test_client, metrics, customer, add_product, artifact_store, valid_sale):
    add_product("P1", 100, 5)
    artifact_store.bucket = "unavailable"

    response = test_client.post(SALES_ENDPOINT, json=valid_sale)

    assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    body = response.json()
    assert body["kind"] == "storage_failure"
    assert body["classification"] == "server"
    assert body["compensation"] == {"attempted": True, "succeeded": True, "failures": []}
    assert outcome_recorded(metrics) == 500


def test_metric_failure_does_not_change_response(test_client, metrics, customer, add_product, valid_sale):
    add_product("P1", 100, 5)
    metrics.record_request.side_effect = RuntimeError("metrics backend exploded")

    response = test_client.post(SALES_ENDPOINT, json=valid_sale)

    assert response.status_code == HTTPStatus.CREATED


def test_notification_failure_still_returns_success(test_client, notifier, customer, add_product, valid_sale):
    add_product("P1", 100, 5)
    notifier.send.side_effect = ConnectionError("gateway down")

    response = test_client.post(SALES_ENDPOINT, json=valid_sale)

    assert response.status_code == HTTPStatus.CREATED
    assert response.json()["status"] == "completed"


def test_health_is_not_measured(test_client, metrics):
    test_client.get("/health")
    metrics.record_request.assert_not_called()


def test_metrics_are_emitted_once_per_sale_request(test_client, metrics, customer, add_product, valid_sale):
    add_product("P1", 100, 5)

    response = test_client.post(SALES_ENDPOINT, json=valid_sale)

    assert response.status_code == HTTPStatus.CREATED
    metrics.record_request.assert_called_once()
    assert outcome_recorded(metrics) == 201


def test_emit_request_metrics_swallows_errors():
    metrics_client = Mock(spec=MetricsClient)
    metrics_client.record_request.side_effect = TimeoutError("collector slow")

    emit_request_metrics(metrics_client, 5.0, 201)

    metrics_client.record_request.assert_called_once_with(SALES_ENDPOINT, 5.0, 201)
