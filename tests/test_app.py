import os
import sys
from concurrent.futures import ThreadPoolExecutor

import pytest
from fastapi.testclient import TestClient

# Add the project root to sys.path to resolve module imports correctly
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import config
from app import app
from encoding import encode
from fingerprint import fingerprint


@pytest.fixture
def client():
    """
    Pytest fixture to provide a test client with a fresh, empty link store.
    Entering the TestClient runs the lifespan, which builds a new store each time.
    """
    with TestClient(app) as test_client:
        yield test_client


# ===================================
# 1. Form endpoint
# ===================================

def test_shorten_form(client: TestClient):
    response = client.post("/shorten", data={"url": "https://example.com/a"})
    assert response.status_code == 200
    data = response.json()
    assert data == {
        "short_url": encode(fingerprint(b"https://example.com/a")),
        "original_url": "https://example.com/a",
    }


def test_shorten_form_missing_url(client: TestClient):
    response = client.post("/shorten", data={})
    assert response.status_code == 400
    assert "required" in response.json()["error"]


def test_shorten_form_malformed_url(client: TestClient):
    response = client.post("/shorten", data={"url": "http://example.com/%zz"})
    assert response.status_code == 400
    assert "error" in response.json()


def test_shorten_form_rejects_get(client: TestClient):
    response = client.get("/shorten", follow_redirects=False)
    assert response.status_code == 405
    assert response.json() == {"error": "Method not allowed"}
    assert response.headers["allow"] == "POST"


def test_shorten_form_rejects_other_methods(client: TestClient):
    assert client.put("/shorten", data={"url": "https://example.com"}).status_code == 405
    assert client.delete("/shorten").status_code == 405
    assert client.get("/health").json()["links"] == 0


# ===================================
# 2. JSON API
# ===================================

def test_api_create_link(client: TestClient):
    response = client.post("/api/v1/links", json={"long_url": "https://example.com/a"})
    assert response.status_code == 201
    data = response.json()
    short_code = encode(fingerprint(b"https://example.com/a"))
    assert data["short_code"] == short_code
    assert data["short_url"] == f"{config.BASE_URL.rstrip('/')}/{short_code}"
    assert data["long_url"] == "https://example.com/a"
    assert response.headers["location"] == data["short_url"]
    rels = {link["rel"] for link in data["links"]}
    assert rels == {"redirect", "self"}


def test_api_create_link_is_idempotent(client: TestClient):
    first = client.post("/api/v1/links", json={"long_url": "https://example.com/a"}).json()
    second = client.post("/api/v1/links", json={"long_url": "https://example.com/a"}).json()
    assert first["short_code"] == second["short_code"]
    assert client.get("/health").json()["links"] == 1


def test_api_create_link_empty_url(client: TestClient):
    response = client.post("/api/v1/links", json={"long_url": ""})
    assert response.status_code == 400
    assert response.json()["error"] == "URL cannot be empty"


def test_api_create_link_rejects_unencodable_url(client: TestClient):
    response = client.post(
        "/api/v1/links",
        content='{"long_url": "http://example.com/\\ud800"}',
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json() == {"error": "URL is not valid UTF-8"}
    assert client.get("/health").json()["links"] == 0


def test_api_create_link_rejects_bad_host(client: TestClient):
    response = client.post("/api/v1/links", json={"long_url": "http://exa mple.com/"})
    assert response.status_code == 400
    assert "host name" in response.json()["error"]


def test_api_create_link_malformed_body(client: TestClient):
    response = client.post("/api/v1/links", json={})
    assert response.status_code == 422


def test_api_get_link_details(client: TestClient):
    created = client.post("/api/v1/links", json={"long_url": "https://example.com/details"}).json()
    response = client.get(f"/api/v1/links/{created['short_code']}")
    assert response.status_code == 200
    assert response.json()["long_url"] == "https://example.com/details"


def test_api_get_link_details_not_found(client: TestClient):
    response = client.get("/api/v1/links/doesnotexist")
    assert response.status_code == 404
    assert response.json() == {"error": "Short URL not found"}


# ===================================
# 3. Redirects
# ===================================

def test_redirect_to_long_url(client: TestClient):
    short_code = client.post("/shorten", data={"url": "https://redirect-target.com/page"}).json()["short_url"]
    response = client.get(f"/{short_code}", follow_redirects=False)
    assert response.status_code == 301
    assert response.headers["location"] == "https://redirect-target.com/page"


def test_redirect_not_found(client: TestClient):
    response = client.get("/doesnotexist", follow_redirects=False)
    assert response.status_code == 404
    assert response.json() == {"error": "Short URL not found"}


def test_redirect_well_formed_but_unknown(client: TestClient):
    response = client.get("/1Ab", follow_redirects=False)
    assert response.status_code == 404


def test_redirect_leading_zero_code_not_found(client: TestClient):
    short_code = client.post("/shorten", data={"url": "https://example.com/z"}).json()["short_url"]
    response = client.get(f"/0{short_code}", follow_redirects=False)
    assert response.status_code == 404


def test_root_requires_short_code(client: TestClient):
    response = client.get("/", follow_redirects=False)
    assert response.status_code == 400
    assert response.json() == {"error": "Short code is required"}


def test_unknown_nested_path(client: TestClient):
    response = client.get("/a/b/c")
    assert response.status_code == 404
    assert "error" in response.json()


# ===================================
# 4. Health and isolation
# ===================================

def test_health_check(client: TestClient):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["links"] == 0


def test_store_is_fresh_per_client():
    with TestClient(app) as first:
        first.post("/shorten", data={"url": "https://example.com/a"})
        assert first.get("/health").json()["links"] == 1
    with TestClient(app) as second:
        assert second.get("/health").json()["links"] == 0


def test_concurrent_requests_same_url(client: TestClient):
    def create(_):
        return client.post("/shorten", data={"url": "https://example.com/busy"}).json()["short_url"]

    with ThreadPoolExecutor(max_workers=8) as pool:
        codes = list(pool.map(create, range(24)))

    assert len(set(codes)) == 1
    assert client.get("/health").json()["links"] == 1
