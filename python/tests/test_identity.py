"""Tests for caller identity resolution.

Covers the Identity value types, header parsing, the identity middleware's
rejections, and the admin guard.
"""

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import column

from playgroup.auth.identity import (
    LegacyIdentity,
    UserIdentity,
    identity_from_columns,
    parse_identity_headers,
    require_identity,
    resolve_identity,
)
from playgroup.auth.middleware import require_admin
from playgroup.errors import ApiErrorCode, AuthenticationRequiredError, ForbiddenError
from tests.helpers import fid_headers, user_headers


class TestResolveIdentity:
    def test_user_id_wins_over_fid(self):
        user_id = uuid4()
        assert resolve_identity(fid=42, user_id=user_id) == UserIdentity(user_id)

    def test_fid_only(self):
        assert resolve_identity(fid=42) == LegacyIdentity(42)

    @pytest.mark.parametrize("fid", [0, -1, None])
    def test_non_positive_fid_is_absent(self, fid):
        assert resolve_identity(fid=fid) is None

    def test_value_equality(self):
        user_id = uuid4()
        assert UserIdentity(user_id) == UserIdentity(user_id)
        assert LegacyIdentity(7) != LegacyIdentity(8)
        assert LegacyIdentity(7) != UserIdentity(uuid4())

    def test_require_identity_raises_when_missing(self):
        with pytest.raises(AuthenticationRequiredError):
            require_identity(None)

    def test_identity_from_columns(self):
        user_id = uuid4()
        assert identity_from_columns(None, user_id) == UserIdentity(user_id)
        assert identity_from_columns(9, None) == LegacyIdentity(9)
        with pytest.raises(ValueError):
            identity_from_columns(None, None)


class TestColumnMapping:
    def test_legacy_column_values(self):
        assert LegacyIdentity(5).column_values("voter_fid", "voter_user_id") == {
            "voter_fid": 5,
            "voter_user_id": None,
        }

    def test_user_column_values(self):
        user_id = uuid4()
        assert UserIdentity(user_id).column_values("voter_fid", "voter_user_id") == {
            "voter_fid": None,
            "voter_user_id": user_id,
        }

    def test_matches_targets_one_column(self):
        fid_col, uid_col = column("voter_fid"), column("voter_user_id")

        assert "voter_fid" in str(LegacyIdentity(5).matches(fid_col, uid_col))
        assert "voter_user_id" in str(UserIdentity(uuid4()).matches(fid_col, uid_col))

    def test_labels_and_seeds(self):
        user_id = uuid4()
        assert LegacyIdentity(5).label == "fid:5"
        assert LegacyIdentity(5).seed == "5"
        assert UserIdentity(user_id).label == f"user:{user_id}"


class TestParseIdentityHeaders:
    def test_no_headers_is_anonymous(self):
        assert parse_identity_headers(None, None) is None

    def test_fid_header(self):
        assert parse_identity_headers(" 123 ", None) == LegacyIdentity(123)

    def test_user_header_wins(self):
        user_id = uuid4()
        assert parse_identity_headers("123", str(user_id)) == UserIdentity(user_id)

    @pytest.mark.parametrize("fid_header", ["abc", "0", "-4", "1.5"])
    def test_malformed_fid_rejected(self, fid_header: str):
        with pytest.raises(AuthenticationRequiredError):
            parse_identity_headers(fid_header, None)

    def test_malformed_user_id_rejected(self):
        with pytest.raises(AuthenticationRequiredError):
            parse_identity_headers(None, "not-a-uuid")


class TestIdentityMiddleware:
    def test_malformed_header_returns_401(self, client: TestClient):
        response = client.get("/leaderboard", headers=user_headers("nope"))

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "E_UNAUTHENTICATED"

    def test_mutation_without_identity_returns_401(self, client: TestClient):
        # Identity is required before any database work happens
        response = client.post(f"/albums/{uuid4()}/votes")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "E_UNAUTHENTICATED"

    def test_public_paths_ignore_identity_headers(self, client: TestClient):
        response = client.get("/health", headers=fid_headers(-1))
        assert response.status_code == 200


class TestRequireAdmin:
    def test_closed_without_configured_secret(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("PLAYGROUP_ADMIN_SECRET", raising=False)
        with pytest.raises(ForbiddenError):
            require_admin("anything")

    def test_wrong_secret_rejected(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("PLAYGROUP_ADMIN_SECRET", "right")
        with pytest.raises(ForbiddenError) as exc_info:
            require_admin("wrong")
        assert exc_info.value.code == ApiErrorCode.E_FORBIDDEN

    def test_missing_header_rejected(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("PLAYGROUP_ADMIN_SECRET", "right")
        with pytest.raises(ForbiddenError):
            require_admin(None)

    def test_matching_secret_accepted(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("PLAYGROUP_ADMIN_SECRET", "right")
        assert require_admin("right") is None
