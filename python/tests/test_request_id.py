"""Tests for X-Request-ID middleware.

Tests cover:
- Request ID generation when missing
- Request ID preservation when valid
- Request ID normalization (UUID lowercase)
- Request ID replacement when invalid
- Request ID presence on identity and internal-header rejections
- Request ID in error response body
"""

from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from playgroup.app import add_request_id_middleware, create_app
from playgroup.auth.middleware import IdentityMiddleware
from playgroup.middleware.request_id import (
    MAX_REQUEST_ID_LENGTH,
    is_valid_request_id,
    normalize_request_id,
)
from tests.helpers import fid_headers


def _build_client(requires_internal_header: bool = False) -> TestClient:
    app = create_app(skip_identity_middleware=True)
    # Identity middleware first (so it runs second)
    app.add_middleware(
        IdentityMiddleware,
        requires_internal_header=requires_internal_header,
        internal_secret="test-secret" if requires_internal_header else None,
    )
    # Request-id middleware LAST (so it runs FIRST, outermost)
    add_request_id_middleware(app, log_requests=False)
    return TestClient(app)


@pytest.fixture
def rid_client() -> TestClient:
    return _build_client()


class TestRequestIdMiddleware:
    def test_request_id_generated_when_missing(self, rid_client: TestClient):
        response = rid_client.get("/health")

        assert response.status_code == 200
        UUID(response.headers["X-Request-ID"])

    def test_request_id_preserved_when_valid(self, rid_client: TestClient):
        response = rid_client.get("/health", headers={"X-Request-ID": "client-req-42"})
        assert response.headers["X-Request-ID"] == "client-req-42"

    def test_request_id_uuid_normalized_to_lowercase(self, rid_client: TestClient):
        upper = "3F2504E0-4F89-11D3-9A0C-0305E82C3301"
        response = rid_client.get("/health", headers={"X-Request-ID": upper})
        assert response.headers["X-Request-ID"] == upper.lower()

    def test_request_id_replaced_when_invalid(self, rid_client: TestClient):
        response = rid_client.get("/health", headers={"X-Request-ID": "bad id with spaces"})

        assert response.headers["X-Request-ID"] != "bad id with spaces"
        UUID(response.headers["X-Request-ID"])

    def test_request_id_replaced_when_too_long(self, rid_client: TestClient):
        too_long = "a" * (MAX_REQUEST_ID_LENGTH + 1)
        response = rid_client.get("/health", headers={"X-Request-ID": too_long})
        assert response.headers["X-Request-ID"] != too_long

    def test_request_id_present_on_identity_rejection(self, rid_client: TestClient):
        response = rid_client.get("/leaderboard", headers=fid_headers(-5))

        assert response.status_code == 401
        assert "X-Request-ID" in response.headers

    def test_error_body_carries_request_id(self, rid_client: TestClient):
        response = rid_client.get(
            "/leaderboard", headers={"X-Playgroup-Fid": "abc", "X-Request-ID": "trace-1"}
        )

        data = response.json()
        assert data["error"]["code"] == "E_UNAUTHENTICATED"
        assert data["error"]["request_id"] == "trace-1"
        assert response.headers["X-Request-ID"] == "trace-1"

    def test_request_id_present_on_internal_header_failure(self):
        client = _build_client(requires_internal_header=True)

        response = client.get("/leaderboard")

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "E_FORBIDDEN"
        assert "X-Request-ID" in response.headers


class TestRequestIdValidation:
    @pytest.mark.parametrize(
        "value",
        ["request.id.with.dots", "with_underscores", "with-hyphens", "a" * MAX_REQUEST_ID_LENGTH],
    )
    def test_valid_tokens(self, value: str):
        assert is_valid_request_id(value)

    @pytest.mark.parametrize(
        "value", ["has space", "semi;colon", "a" * (MAX_REQUEST_ID_LENGTH + 1)]
    )
    def test_invalid_tokens(self, value: str):
        assert not is_valid_request_id(value)

    def test_non_uuid_token_kept_verbatim(self):
        assert normalize_request_id("MiXeD-Case") == "MiXeD-Case"
