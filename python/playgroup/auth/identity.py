"""Caller identity.

Playgroup callers arrive under one of two schemes: a legacy Farcaster ID
(positive integer) or a unified user UUID. Both are modelled as frozen
value types behind the single ``Identity`` alias. Every ledger table stores
identity as a (fid, user_id) column pair with exactly one non-null, and each
variant knows how to express itself against such a pair, so no query path
branches on the scheme.

Usage:
    identity = resolve_identity(fid=None, user_id=viewer_uuid)
    stmt = select(Vote).where(identity.matches(Vote.voter_fid, Vote.voter_user_id))
    db.add(Vote(album_id=album_id, **identity.column_values("voter_fid", "voter_user_id")))
"""

from dataclasses import dataclass
from typing import Any, Union
from uuid import UUID

from sqlalchemy.sql.elements import ColumnElement

from playgroup.errors import AuthenticationRequiredError


@dataclass(frozen=True)
class LegacyIdentity:
    """Caller identified by Farcaster ID."""

    fid: int

    @property
    def label(self) -> str:
        return f"fid:{self.fid}"

    @property
    def seed(self) -> str:
        """Stable string used to derive generated avatars."""
        return str(self.fid)

    def matches(self, fid_column: Any, user_id_column: Any) -> ColumnElement[bool]:
        return fid_column == self.fid

    def column_values(self, fid_key: str, user_id_key: str) -> dict[str, Any]:
        return {fid_key: self.fid, user_id_key: None}


@dataclass(frozen=True)
class UserIdentity:
    """Caller identified by unified user UUID."""

    user_id: UUID

    @property
    def label(self) -> str:
        return f"user:{self.user_id}"

    @property
    def seed(self) -> str:
        return str(self.user_id)

    def matches(self, fid_column: Any, user_id_column: Any) -> ColumnElement[bool]:
        return user_id_column == self.user_id

    def column_values(self, fid_key: str, user_id_key: str) -> dict[str, Any]:
        return {fid_key: None, user_id_key: self.user_id}


Identity = Union[LegacyIdentity, UserIdentity]


def resolve_identity(fid: int | None = None, user_id: UUID | None = None) -> Identity | None:
    """Map raw caller fields to an Identity.

    The unified user ID wins when both are supplied. A non-positive fid is
    treated as absent.
    """
    if user_id is not None:
        return UserIdentity(user_id)
    if fid is not None and fid > 0:
        return LegacyIdentity(fid)
    return None


def require_identity(identity: Identity | None) -> Identity:
    """Return the identity or raise AuthenticationRequiredError."""
    if identity is None:
        raise AuthenticationRequiredError()
    return identity


def identity_from_columns(fid: int | None, user_id: UUID | None) -> Identity:
    """Rebuild the identity stored in a ledger row's (fid, user_id) pair."""
    identity = resolve_identity(fid=fid, user_id=user_id)
    if identity is None:
        raise ValueError("Ledger row carries no identity")
    return identity


def parse_identity_headers(fid_header: str | None, user_id_header: str | None) -> Identity | None:
    """Parse identity headers forwarded by the trusted front end.

    Raises:
        AuthenticationRequiredError: If a header is present but malformed.
    """
    user_id = None
    fid = None

    if user_id_header:
        try:
            user_id = UUID(user_id_header.strip())
        except ValueError:
            raise AuthenticationRequiredError("Invalid user identity header") from None

    if fid_header:
        try:
            fid = int(fid_header.strip())
        except ValueError:
            raise AuthenticationRequiredError("Invalid fid identity header") from None
        if fid <= 0:
            raise AuthenticationRequiredError("Invalid fid identity header")

    return resolve_identity(fid=fid, user_id=user_id)
