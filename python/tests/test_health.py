"""Tests for the health endpoint.

The health endpoint is a liveness check that:
- Does not require caller identity or the internal header
- Does not touch the database
- Always returns 200 if the process is running
"""

from fastapi.testclient import TestClient

from playgroup.app import create_app
from playgroup.auth.middleware import IdentityMiddleware


class TestHealthEndpoint:
    """Tests for GET /health"""

    def test_health_returns_ok_envelope(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"data": {"status": "ok"}}
        assert response.headers["content-type"] == "application/json"

    def test_health_skips_internal_header_check(self):
        app = create_app(skip_identity_middleware=True)
        app.add_middleware(
            IdentityMiddleware, requires_internal_header=True, internal_secret="s3cret"
        )

        with TestClient(app) as client:
            response = client.get("/health")

        assert response.status_code == 200
