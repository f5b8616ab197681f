"""Sessions and the transaction boundary for the Playgroup ledger.

Route handlers get one session per request from get_db(). Services never
commit on their own: each vote, submission, review or cycle transition
wraps its lock-check-write sequence in transaction(db).
"""

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from sqlalchemy.orm import Session, sessionmaker

from playgroup.db.engine import get_engine


def create_session_factory(engine: Any = None) -> sessionmaker[Session]:
    """Session factory for an engine; the process engine when none is given.

    expire_on_commit is off so services can build response models from
    rows after transaction() has committed.
    """
    if engine is None:
        engine = get_engine()

    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


_SessionLocal: sessionmaker[Session] | None = None


def get_session_factory() -> sessionmaker[Session]:
    """Process-wide session factory, built on first use."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = create_session_factory()
    return _SessionLocal


def get_db() -> Generator[Session, None, None]:
    """Per-request session for route handlers; tests override this dependency."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Generator[None, None, None]:
    """Commit when the block completes, roll back if it raises.

    Cycle and album row locks taken inside the block are released by that
    commit or rollback, so a transition and a vote on the same album never
    interleave.

        with transaction(db):
            cycle = db.scalars(select(Cycle).with_for_update()...).first()
            ...
    """
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise
