"""Tests for the recommendation API endpoints.

The catalog and the forwarder are replaced through FastAPI dependency
overrides, so no aggregator needs to be running.
"""

import pytest
from fastapi.testclient import TestClient

from src.api.main import app
from src.api.metrics import metrics_service
from src.api.routes.recommendations import get_engine, get_forwarder
from src.recommender.catalog import Catalog, Product
from src.recommender.engine import RecommendationEngine

URL = "/api/recommendations"

CATALOG = Catalog.from_products(
    [
        Product(id="A1", category="cat1", stars=4.5),
        Product(id="A2", category="cat1", stars=3.0),
        Product(id="B1", category="cat2", stars=5.0),
        Product(id="B2", category="cat2", stars=2.0),
    ]
)


class FakeForwarder:
    """Records sent batches and returns a canned reply."""

    def __init__(self, reply=b""):
        self.reply = reply
        self.sent = []

    def send(self, items):
        self.sent.append(list(items))
        return self.reply


@pytest.fixture
def forwarder():
    return FakeForwarder()


@pytest.fixture
def client(forwarder):
    """Fixture providing a client with the example catalog and a fake forwarder."""
    metrics_service.reset()
    app.dependency_overrides[get_engine] = lambda: RecommendationEngine(CATALOG)
    app.dependency_overrides[get_forwarder] = lambda: forwarder
    yield TestClient(app)
    app.dependency_overrides.clear()
    metrics_service.reset()


def test_ping_endpoint(client):
    """Test that the /ping endpoint returns correct status and JSON."""
    response = client.get("/ping")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_recommendations_returns_category_winners(client, forwarder):
    """Test the example request end to end through the API."""
    response = client.post(URL, json={"product_ids": "A1,B1"})

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/json"
    assert response.json() == [
        {"id": "A2", "category": "cat1", "stars": 3.0},
        {"id": "B2", "category": "cat2", "stars": 2.0},
    ]
    assert forwarder.sent == [[CATALOG["A2"], CATALOG["B2"]]]


def test_recommendations_empty_result_is_still_forwarded(client, forwarder):
    """Test that an empty result is returned as [] and still forwarded."""
    response = client.post(URL, json={"product_ids": "A1, A2"})

    assert response.status_code == 200
    assert response.json() == []
    assert forwarder.sent == [[]]


def test_recommendations_unknown_ids_are_counted(client):
    """Test that unknown ids do not fail the request and show up in metrics."""
    response = client.post(URL, json={"product_ids": "ZZZ, B1, nope"})

    assert response.status_code == 200
    assert [p["id"] for p in response.json()] == ["B2"]
    assert client.get("/metrics").json()["unknown_id_count"] == 2


def test_recommendations_missing_field_means_no_ids(client):
    """Test that an object without product_ids is treated as an empty list."""
    response = client.post(URL, json={})

    assert response.status_code == 200
    assert response.json() == []


def test_recommendations_extra_fields_are_ignored(client):
    """Test that unrelated keys in the body do not matter."""
    response = client.post(URL, json={"product_ids": "A1", "user": "x"})

    assert response.status_code == 200
    assert [p["id"] for p in response.json()] == ["A2"]


def test_aggregator_reply_is_relayed_verbatim(forwarder, client):
    """Test that a non-empty aggregator reply becomes the response body."""
    forwarder.reply = b'{"stored": 2}'

    response = client.post(URL, json={"product_ids": "A1,B1"})

    assert response.status_code == 200
    assert response.content == b'{"stored": 2}'


def test_forwarding_metrics_are_recorded(client):
    """Test that successful forwards are counted."""
    client.post(URL, json={"product_ids": "A1,B1"})
    client.post(URL, json={"product_ids": "A1"})

    metrics = client.get("/metrics").json()
    assert metrics["forward_count"] == 2
    assert metrics["forward_failures"] == 0
    assert metrics["items_forwarded"] == 3
    assert metrics["max_latency_ms"] >= metrics["min_latency_ms"] >= 0.0


def test_cors_headers_on_post(client):
    """Test that normal responses carry the permissive CORS headers."""
    response = client.post(URL, json={"product_ids": "A1"})

    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["access-control-allow-methods"] == "GET, POST, OPTIONS"
    assert response.headers["access-control-allow-headers"] == "Content-Type"


@pytest.mark.parametrize("path", [URL, URL + "/anything"])
def test_options_preflight_returns_204(client, forwarder, path):
    """Test that OPTIONS under the endpoint is answered before routing."""
    response = client.options(
        path,
        headers={
            "Origin": "http://example.com",
            "Access-Control-Request-Method": "POST",
        },
    )

    assert response.status_code == 204
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["access-control-allow-methods"] == "GET, POST, OPTIONS"
    assert response.headers["access-control-allow-headers"] == "Content-Type"
    assert forwarder.sent == []


def test_request_id_header_is_set(client):
    """Test that the logging middleware tags responses with a request id."""
    response = client.get("/ping")

    assert "x-request-id" in response.headers
