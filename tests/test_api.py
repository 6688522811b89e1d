"""Tests for the tier price API contract."""

from collections.abc import Generator
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from tierprice.api import create_app, limiter
from tierprice.dependencies import AppResources

HEADERS = {"X-API-Key": "test-api-key"}


@pytest.fixture
def resources(config, repository, locator, indexer, make_row) -> AppResources:
    repository.seed([make_row(7, 42, all_groups=True, customer_group_id=0)])
    return AppResources(
        config=config, repository=repository, locator=locator, indexer=indexer
    )


@pytest.fixture
def client(resources: AppResources) -> Generator[TestClient, None, None]:
    limiter.reset()
    with TestClient(create_app(resources)) as c:
        yield c


def _price(**overrides):
    payload = {
        "sku": "X",
        "customer_group_id": 0,
        "all_groups": True,
        "qty": "5",
        "value": "9.99",
        "percentage_value": None,
    }
    payload.update(overrides)
    return payload


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_requires_api_key(client: TestClient) -> None:
    response = client.post("/tier-prices/information", json={"skus": ["X"]})
    assert response.status_code == 401


def test_bearer_api_key_accepted(client: TestClient) -> None:
    response = client.post(
        "/tier-prices/information",
        json={"skus": ["X"]},
        headers={"Authorization": "Bearer test-api-key"},
    )
    assert response.status_code == 200


def test_get_tier_prices(client: TestClient) -> None:
    response = client.post("/tier-prices/information", json={"skus": ["X"]}, headers=HEADERS)

    assert response.status_code == 200
    (price,) = response.json()
    assert price["sku"] == "X"
    assert price["all_groups"] is True
    assert Decimal(price["value"]) == Decimal("9.99")


def test_get_unknown_sku_maps_contract_error(client: TestClient) -> None:
    response = client.post(
        "/tier-prices/information", json={"skus": ["ghost"]}, headers=HEADERS
    )

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_update_reports_rejected(client: TestClient, indexer) -> None:
    response = client.post(
        "/tier-prices",
        json={"prices": [_price(qty="50")]},
        headers=HEADERS,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["rejected_count"] == 1
    assert body["rejected"][0]["reason_code"] == "NOT_FOUND"
    assert indexer.calls == []


def test_replace_then_get(client: TestClient, indexer) -> None:
    response = client.put(
        "/tier-prices",
        json={"prices": [_price(qty="2", value="4.00"), _price(qty="0")]},
        headers=HEADERS,
    )

    assert response.status_code == 200
    assert [r["reason_code"] for r in response.json()["rejected"]] == ["INVALID_QTY"]
    assert indexer.calls == [[42]]

    prices = client.post(
        "/tier-prices/information", json={"skus": ["X"]}, headers=HEADERS
    ).json()
    assert [Decimal(p["qty"]) for p in prices] == [Decimal("2")]


def test_delete_removes_price(client: TestClient, repository) -> None:
    response = client.post("/tier-prices/delete", json={"prices": [_price()]}, headers=HEADERS)

    assert response.status_code == 200
    assert response.json() == {"rejected": [], "rejected_count": 0}
    assert repository.rows() == []


def test_out_of_range_fields_are_rejected_per_record(
    client: TestClient, repository
) -> None:
    response = client.put(
        "/tier-prices",
        json={
            "prices": [
                _price(qty="2", value="4.00"),
                _price(sku="B", percentage_value="150"),
                _price(qty="-1"),
            ]
        },
        headers=HEADERS,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["rejected_count"] == 2
    assert [r["reason_code"] for r in body["rejected"]] == [
        "INVALID_PERCENTAGE",
        "INVALID_QTY",
    ]
    assert [(row["entity_id"], row["qty"]) for row in repository.rows()] == [
        (42, Decimal("2"))
    ]


def test_malformed_payload_is_unprocessable(client: TestClient) -> None:
    response = client.put(
        "/tier-prices", json={"prices": [_price(qty="many")]}, headers=HEADERS
    )
    assert response.status_code == 422


def test_locator_failure_maps_to_service_unavailable(
    client: TestClient, locator, monkeypatch
) -> None:
    def _fail(skus):
        raise TimeoutError("catalog unavailable")

    monkeypatch.setattr(locator, "resolve", _fail)

    response = client.put("/tier-prices", json={"prices": [_price()]}, headers=HEADERS)

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "LOOKUP_FAILURE"
