"""HTTP tests: routers wired to an aggregator over in-memory fakes."""

import pytest
from fastapi.testclient import TestClient

from app.api.deps import activity_repo, get_aggregator
from app.main import app

from conftest import event

CACHE_CONTROL = "public, max-age=60, stale-while-revalidate=300"


@pytest.fixture
def client(aggregator, activity_store):
    app.dependency_overrides[get_aggregator] = lambda: aggregator
    app.dependency_overrides[activity_repo] = lambda: activity_store
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_bundle_for_guest(client):
    res = client.get("/recommendations/guest")
    assert res.status_code == 200
    assert res.headers["cache-control"] == CACHE_CONTROL

    body = res.json()
    assert body["success"] is True
    assert body["userId"] is None
    assert "generatedAt" in body
    data = body["data"]
    assert len(data["popular"]) == 12
    assert [i["product_id"] for i in data["personalized"]] == [i["product_id"] for i in data["popular"]]
    assert data["trending"] == []
    assert body["count"] == 24
    assert data["popular"][0]["product"]["name"] == "Product p00"


def test_bundle_limits_are_clamped(client):
    res = client.get("/recommendations/u1", params={"popularLimit": "1000", "trendingLimit": "abc", "personalizedLimit": "0"})
    assert res.status_code == 200
    data = res.json()["data"]
    assert len(data["popular"]) == 30  # clamped to 50, only 30 products
    assert len(data["personalized"]) == 12


def test_popular_page(client):
    res = client.get("/recommendations/guest/popular", params={"page": "2", "limit": "10"})
    body = res.json()
    assert res.status_code == 200
    assert [i["product_id"] for i in body["data"]] == [f"p{i:02d}" for i in range(10, 20)]
    assert body["total"] == 30
    assert body["pagination"] == {"page": 2, "limit": 10, "total_pages": 3, "has_next": True, "has_prev": True}


def test_trending_page_window(client, activity_store):
    activity_store.events.append(event("s1", "p03"))
    res = client.get("/recommendations/guest/trending", params={"windowDays": "500"})
    assert res.status_code == 200
    assert [i["product_id"] for i in res.json()["data"]] == ["p03"]


def test_mixed_pages_do_not_repeat(client):
    first = client.get("/recommendations/mixed", params={"limit": "12", "offset": "0"}).json()
    second = client.get("/recommendations/mixed", params={"limit": "12", "page": "2"}).json()
    a = {i["product_id"] for i in first["data"]}
    b = {i["product_id"] for i in second["data"]}
    assert len(a) == len(b) == 12
    assert not a & b
    assert second["pagination"]["page"] == 2


def test_mixed_limit_is_capped(client):
    res = client.get("/recommendations/mixed", params={"limit": "500"})
    assert res.json()["pagination"]["limit"] == 48


def test_product_mixed_recommendations(client):
    res = client.get("/products/p00/mixed-recommendations", params={"limit": "48"})
    body = res.json()
    assert res.status_code == 200
    assert res.headers["cache-control"] == CACHE_CONTROL
    assert body["source_product_id"] == "p00"
    assert "p00" not in [i["product_id"] for i in body["data"]]


def test_similar_products(client):
    res = client.get("/products/p01/similar", params={"limit": "3"})
    assert [i["product_id"] for i in res.json()["data"]] == ["p03", "p05", "p07"]


def test_total_failure_is_500(client, signal_store):
    signal_store.fail = True
    res = client.get("/recommendations/guest")
    assert res.status_code == 500
    body = res.json()
    assert body["success"] is False
    assert body["error"] == "Failed to fetch recommendations"
    assert "popular" in body["details"]["failures"]


def test_invalidate_cache(client):
    client.get("/recommendations/guest/popular")
    res = client.delete("/recommendations/cache", params={"prefix": "v1:popular"})
    assert res.json() == {"success": True, "prefix": "v1:popular", "invalidated": 1}


def test_activity_summary(client, activity_store):
    activity_store.events.extend([event("u1", "p01"), event("u1", "p02")])
    res = client.get("/activity/summary", params={"timeframe": "week", "productId": "p01"})
    body = res.json()
    assert res.status_code == 200
    assert body["timeframe"] == "week"
    assert body["counts"]["VIEW"] == 1
    assert body["total"] == 1


def test_health_without_stores(client):
    res = client.get("/health")
    assert res.status_code == 200
    body = res.json()
    assert body["stores"]["redis"] == {"status": "skipped"}
    assert body["stores"]["mongodb"]["status"].startswith("error")
    assert body["status"] == "error"
