"""Tests for the aggregator dashboard and its rendering."""

import pytest
from fastapi.testclient import TestClient

from src.aggregator.dashboard import format_stars, render_dashboard
from src.aggregator.main import app
from src.aggregator.routes.dashboard import get_store
from src.aggregator.store import AccumulationStore
from src.config import Settings, get_settings
from src.recommender.catalog import Product


@pytest.fixture
def store():
    return AccumulationStore()


@pytest.fixture
def client(store):
    """Fixture providing a dashboard client backed by a fresh store."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_settings] = lambda: Settings(dashboard_refresh_seconds=None)
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_render_dashboard_one_row_per_product_in_order():
    """Test that every product becomes a row, in the given order."""
    items = [
        Product(id="B2", category="cat2", stars=2.0),
        Product(id="A2", category="cat1", stars=3.5),
        Product(id="B2", category="cat2", stars=2.0),
    ]

    html = render_dashboard(items)

    assert html.count("<tr>") == 4  # header + 3 rows
    assert html.index("<td>B2</td>") < html.index("<td>A2</td>")
    assert "<td>3.5</td>" in html
    assert "<td>2</td>" in html
    assert "3 products received" in html


def test_render_dashboard_empty():
    """Test that an empty snapshot renders just the header row."""
    html = render_dashboard([])

    assert html.count("<tr>") == 1
    assert "0 products received" in html


def test_render_dashboard_escapes_values():
    """Test that product fields cannot inject markup."""
    html = render_dashboard([Product(id="<script>", category="a&b", stars=1.0)])

    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert "a&amp;b" in html


def test_render_dashboard_refresh_tag():
    """Test the optional auto refresh."""
    assert 'http-equiv="refresh" content="7"' in render_dashboard([], refresh_seconds=7)
    assert "http-equiv" not in render_dashboard([])


def test_format_stars():
    """Test compact rating formatting."""
    assert format_stars(5.0) == "5"
    assert format_stars(4.5) == "4.5"
    assert format_stars(0.0) == "0"
    assert format_stars(4.123456) == "4.123456"
    assert format_stars(1234567.0) == "1234567"


def test_dashboard_endpoint_renders_store(client, store):
    """Test that GET / shows everything in the store."""
    store.append([Product(id="A2", category="cat1", stars=3.0)])
    store.append([Product(id="B2", category="cat2", stars=2.0)])

    response = client.get("/")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert response.text.index("<td>A2</td>") < response.text.index("<td>B2</td>")


def test_dashboard_endpoint_empty_store(client):
    """Test that the dashboard works before any batch arrives."""
    response = client.get("/")

    assert response.status_code == 200
    assert "0 products received" in response.text


def test_ping_reports_counts(client, store):
    """Test that /ping reports accumulated items and batches."""
    store.append([Product(id="A2", category="cat1", stars=3.0)] * 2)

    response = client.get("/ping")

    assert response.json() == {"status": "ok", "items": 2, "batches": 1}
