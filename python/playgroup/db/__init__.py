"""Database module for Playgroup.

Provides engine creation, session management, transaction helpers, and ORM models.
"""

from playgroup.db.engine import create_db_engine, get_engine
from playgroup.db.models import (
    Album,
    AlbumStatus,
    AuthProvider,
    Base,
    Cycle,
    CyclePhase,
    Review,
    User,
    Vote,
)
from playgroup.db.session import get_db, transaction

__all__ = [
    # Engine and session
    "create_db_engine",
    "get_engine",
    "get_db",
    "transaction",
    # Base
    "Base",
    # Enums
    "CyclePhase",
    "AlbumStatus",
    "AuthProvider",
    # Models
    "User",
    "Cycle",
    "Album",
    "Vote",
    "Review",
]
