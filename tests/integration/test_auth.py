"""Integration tests for JWT authentication (SimpleJWT).

Validates:
  - /health is public (plain Django view, no DRF).
  - Protected DRF endpoints return 401 without or with a bad token.
  - The token endpoint issues tokens that unlock /api/v1/me and the
    customer endpoints.
"""

import pytest

pytestmark = pytest.mark.integration


class TestPublicEndpoints:
    """Health check must remain accessible without credentials."""

    def test_health_is_public(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"


class TestProtectedEndpoints:
    """All DRF endpoints require a valid JWT by default (Fail Closed)."""

    def test_no_token_returns_401(self, api_client):
        response = api_client.get("/api/v1/me")
        assert response.status_code == 401

    def test_invalid_token_returns_401(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Bearer invalid.token.here")
        response = api_client.get("/api/v1/me")
        assert response.status_code == 401

    def test_malformed_auth_header_returns_401(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Token some-token")
        response = api_client.get("/api/v1/me")
        assert response.status_code == 401

    def test_401_includes_www_authenticate_header(self, api_client):
        response = api_client.get("/api/v1/me")
        assert response.status_code == 401
        assert "Bearer" in response.get("WWW-Authenticate", "")

    @pytest.mark.parametrize(
        "path", ["/api/v1/customers/individuals/", "/api/v1/customers/companies/"]
    )
    def test_customer_endpoints_require_auth(self, api_client, path):
        assert api_client.get(path).status_code == 401


class TestTokenFlow:
    def _obtain(self, api_client, password="testpass123"):
        return api_client.post(
            "/api/v1/auth/token/",
            {"username": "operator", "password": password},
            format="json",
        )

    def test_obtain_and_use_token(self, api_client, user):
        response = self._obtain(api_client)
        assert response.status_code == 200
        access = response.json()["access"]

        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")
        me = api_client.get("/api/v1/me")

        assert me.status_code == 200
        assert me.json() == {
            "message": "authenticated",
            "user": "operator",
            "is_staff": False,
        }

    def test_wrong_password(self, api_client, user):
        assert self._obtain(api_client, password="wrong").status_code == 401

    def test_refresh(self, api_client, user):
        refresh = self._obtain(api_client).json()["refresh"]

        response = api_client.post(
            "/api/v1/auth/token/refresh/", {"refresh": refresh}, format="json"
        )

        assert response.status_code == 200
        assert "access" in response.json()

    def test_token_unlocks_customer_list(self, api_client, user):
        access = self._obtain(api_client).json()["access"]
        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")

        response = api_client.get("/api/v1/customers/individuals/")

        assert response.status_code == 200
        assert response.json()["count"] == 0
