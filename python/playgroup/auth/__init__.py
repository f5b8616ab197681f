"""Caller identity module.

This module provides:
- The Identity value types (legacy fid or unified user UUID)
- IdentityMiddleware for FastAPI
- Route dependencies for required/optional identity and admin access
"""

from playgroup.auth.identity import (
    Identity,
    LegacyIdentity,
    UserIdentity,
    identity_from_columns,
    parse_identity_headers,
    require_identity,
    resolve_identity,
)
from playgroup.auth.middleware import (
    IdentityMiddleware,
    get_identity,
    get_optional_identity,
    require_admin,
)

__all__ = [
    "Identity",
    "LegacyIdentity",
    "UserIdentity",
    "identity_from_columns",
    "parse_identity_headers",
    "require_identity",
    "resolve_identity",
    "IdentityMiddleware",
    "get_identity",
    "get_optional_identity",
    "require_admin",
]
