import pytest

from hms_analytics.errors import MissingTokenError
from hms_analytics.routers.deps import get_auth_context

AUTH_HEADERS = {"Authorization": "Bearer test-token"}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_root_envelope(client):
    payload = client.get("/").json()
    assert payload["statusCode"] == 200
    assert payload["data"]["service"] == "hms-analytics"


def test_missing_token_is_unauthorized(client, hospital):
    response = client.get("/api/pharmacy/inventory")
    assert response.status_code == 401
    payload = response.json()
    assert payload["statusCode"] == 401
    assert payload["error"] == "Unauthorized"
    assert payload["message"] == "Missing or invalid Authorization header"
    assert hospital.calls == []


def test_empty_bearer_token_is_unauthorized(client, hospital):
    response = client.get("/api/lab/dashboard", headers={"Authorization": "Bearer   "})
    assert response.status_code == 401
    assert hospital.calls == []


def test_auth_context_dependency_raises_missing_token():
    with pytest.raises(MissingTokenError):
        get_auth_context(authorization="Basic abc")
    assert get_auth_context(authorization="Bearer xyz").token == "xyz"


def test_non_bearer_header_is_unauthorized(client):
    response = client.get("/api/lab/dashboard", headers={"Authorization": "Basic abc"})
    assert response.status_code == 401


def test_token_is_passed_to_client_as_auth_context(client, hospital):
    response = client.get("/api/pharmacy/inventory", headers=AUTH_HEADERS)
    assert response.status_code == 200
    assert hospital.auth.token == "test-token"


def test_upstream_failure_maps_to_bad_gateway(client, hospital):
    hospital.unavailable = True
    response = client.get("/api/pharmacy/inventory", headers=AUTH_HEADERS)
    assert response.status_code == 502
    payload = response.json()
    assert payload["error"] == "BadGateway"
    assert "unreachable" in payload["message"]


def test_validation_error_envelope(client):
    response = client.put(
        "/api/pharmacy/medicines/m1/stock",
        json={"operation": "multiply", "quantity": 3},
        headers=AUTH_HEADERS,
    )
    assert response.status_code == 422
    payload = response.json()
    assert payload["error"] == "ValidationError"
    assert payload["details"]["errors"]
