"""FastAPI dependencies for route handlers.

Common dependencies like database sessions and caller identity.
"""

from playgroup.auth.middleware import get_identity, get_optional_identity, require_admin
from playgroup.db.session import get_db, get_session_factory

__all__ = [
    "get_db",
    "get_identity",
    "get_optional_identity",
    "get_session_factory",
    "require_admin",
]
