"""Tests for error handling in the CatRec API.

Tests malformed requests, wrong methods, transport failures and a missing
catalog.
"""

import pytest
from fastapi.testclient import TestClient

import src.api.routes.recommendations as recommendations_module
from src.api.main import app
from src.api.metrics import metrics_service
from src.api.routes.recommendations import get_engine, get_forwarder
from src.config import Settings, get_settings
from src.exceptions import ForwardingError
from src.recommender.catalog import Catalog, Product
from src.recommender.engine import RecommendationEngine

URL = "/api/recommendations"

CATALOG = Catalog.from_products(
    [
        Product(id="A1", category="cat1", stars=4.5),
        Product(id="A2", category="cat1", stars=3.0),
    ]
)


class FailingForwarder:
    def send(self, items):
        raise ForwardingError(("localhost", 8080), ConnectionRefusedError("Connection refused"))


class RecordingForwarder:
    def __init__(self):
        self.calls = 0

    def send(self, items):
        self.calls += 1
        return b""


@pytest.fixture
def forwarder():
    return RecordingForwarder()


@pytest.fixture
def client(forwarder):
    metrics_service.reset()
    app.dependency_overrides[get_engine] = lambda: RecommendationEngine(CATALOG)
    app.dependency_overrides[get_forwarder] = lambda: forwarder
    yield TestClient(app)
    app.dependency_overrides.clear()
    metrics_service.reset()


def test_invalid_json_returns_400(client, forwarder):
    """Test that a body that is not JSON is a 400 and nothing is forwarded."""
    response = client.post(
        URL,
        content=b'{"product_ids": "A1"',
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "InvalidRequestError"
    assert data["message"].startswith("Invalid JSON format")
    assert forwarder.calls == 0


@pytest.mark.parametrize(
    "body",
    [
        ["A1", "B1"],
        {"product_ids": 42},
        {"product_ids": ["A1", "B1"]},
        "A1,B1",
    ],
)
def test_wrong_body_shape_returns_400(client, body):
    """Test that JSON of the wrong shape is a 400."""
    response = client.post(URL, json=body)

    assert response.status_code == 400
    assert response.json()["error"] == "InvalidRequestError"


def test_empty_body_returns_400(client):
    """Test that a missing body is a 400."""
    response = client.post(URL, headers={"Content-Type": "application/json"})

    assert response.status_code == 400


@pytest.mark.parametrize("method", ["GET", "PUT", "DELETE", "PATCH"])
def test_non_post_methods_return_405(client, method):
    """Test that only POST is routed to the recommendation endpoint."""
    response = client.request(method, URL)

    assert response.status_code == 405


def test_transport_failure_returns_500(client):
    """Test that an unreachable aggregator turns into a 500 with the cause."""
    app.dependency_overrides[get_forwarder] = lambda: FailingForwarder()

    response = client.post(URL, json={"product_ids": "A1"})

    assert response.status_code == 500
    data = response.json()
    assert data["error"] == "ForwardingError"
    assert data["message"] == "Error connecting to server: Connection refused"
    assert data["details"]["address"] == "localhost:8080"

    metrics = client.get("/metrics").json()
    assert metrics["forward_count"] == 1
    assert metrics["forward_failures"] == 1
    assert metrics["items_forwarded"] == 0


def test_transport_failure_does_not_break_later_requests(client, forwarder):
    """Test that the API keeps serving after a transport failure."""
    app.dependency_overrides[get_forwarder] = lambda: FailingForwarder()
    assert client.post(URL, json={"product_ids": "A1"}).status_code == 500

    app.dependency_overrides[get_forwarder] = lambda: forwarder
    assert client.post(URL, json={"product_ids": "A1"}).status_code == 200


def test_real_forwarder_to_closed_port_returns_500(client):
    """Test the default forwarder against an address nobody listens on."""
    import socket

    from src.transport.forwarder import Forwarder

    with socket.socket() as probe:
        probe.bind(("127.0.0.1", 0))
        port = probe.getsockname()[1]
    app.dependency_overrides[get_forwarder] = lambda: Forwarder(("127.0.0.1", port))

    response = client.post(URL, json={"product_ids": "A1"})

    assert response.status_code == 500
    assert response.json()["message"].startswith("Error connecting to server:")


@pytest.fixture
def missing_catalog(tmp_path):
    """Point the API at a catalog file that does not exist."""
    original_cache = recommendations_module._catalog_cache
    recommendations_module._catalog_cache = None
    app.dependency_overrides[get_settings] = lambda: Settings(
        catalog_path=str(tmp_path / "missing.csv")
    )
    yield
    app.dependency_overrides.clear()
    recommendations_module._catalog_cache = original_cache


def test_missing_catalog_returns_503(missing_catalog):
    """Test that requests fail with 503 when the catalog cannot be loaded."""
    client = TestClient(app)

    response = client.post(URL, json={"product_ids": "A1"})

    assert response.status_code == 503
    assert response.json()["error"] == "CatalogLoadError"


def test_status_reports_unloaded_catalog(missing_catalog):
    """Test that /status works even without a catalog."""
    client = TestClient(app)

    data = client.get("/status").json()

    assert data == {
        "catalog_loaded": False,
        "timestamp_last_loaded": None,
        "num_products": 0,
        "num_categories": 0,
    }


def test_status_reports_loaded_catalog(tmp_path):
    """Test that /status describes the catalog once it is loaded."""
    path = tmp_path / "catalog.csv"
    path.write_text("id,category,stars\nA1,cat1,4.5\nB1,cat2,5.0\n")

    original_cache = recommendations_module._catalog_cache
    recommendations_module._catalog_cache = None
    try:
        recommendations_module.load_catalog_if_needed(str(path))
        data = TestClient(app).get("/status").json()
    finally:
        recommendations_module._catalog_cache = original_cache

    assert data["catalog_loaded"] is True
    assert data["num_products"] == 2
    assert data["num_categories"] == 2
    assert isinstance(data["timestamp_last_loaded"], str)
