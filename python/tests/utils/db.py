"""Test utilities for database isolation.

Two modes:
- TestDatabaseManager: one connection, outer transaction, session joined via
  savepoints. Service-level commits release the savepoint; the outer
  transaction is rolled back at the end of the test.
- DirectSessionManager: independent committed sessions for race tests.
  Nothing is rolled back automatically; register what to delete.
"""

from typing import Any

from sqlalchemy import Connection, Engine, text
from sqlalchemy.orm import Session

# Tables a race test may register for cleanup. Cycles cascade to albums,
# votes and reviews; users stand alone.
CLEANUP_TABLES = {"cycles", "albums", "users"}


class DirectSessionManager:
    """Independent sessions that see each other's committed data.

    Usage:
        def test_race(self, direct_db: DirectSessionManager):
            cycle_id = create_test_cycle(...)
            direct_db.register_cleanup("cycles", "id", cycle_id)

            with direct_db.session() as s:
                transition_to_listening(s, cycle_id)
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._cleanup_items: list[tuple[str, str, Any]] = []

    def session(self) -> Session:
        """A new session on its own pooled connection. Caller closes it."""
        return Session(self.engine, expire_on_commit=False)

    def register_cleanup(self, table: str, column: str, value: Any) -> None:
        """Delete rows where ``table.column = value`` after the test.

        Deletion runs in reverse registration order.
        """
        if table not in CLEANUP_TABLES:
            raise ValueError(f"Cleanup not supported for table {table!r}")
        self._cleanup_items.append((table, column, value))

    def cleanup(self) -> None:
        if not self._cleanup_items:
            return

        with Session(self.engine) as session:
            for table, column, value in reversed(self._cleanup_items):
                session.execute(
                    text(f"DELETE FROM {table} WHERE {column} = :value"),
                    {"value": value},
                )
            session.commit()
        self._cleanup_items.clear()


class TestDatabaseManager:
    """Context manager yielding a savepoint-isolated session.

    Usage in conftest.py:
        @pytest.fixture
        def db_session(engine):
            with TestDatabaseManager(engine) as session:
                yield session
    """

    __test__ = False

    def __init__(self, engine: Engine):
        self.engine = engine
        self._connection: Connection | None = None
        self._session: Session | None = None

    def __enter__(self) -> Session:
        self._connection = self.engine.connect()
        self._connection.begin()
        self._session = Session(
            bind=self._connection,
            join_transaction_mode="create_savepoint",
            expire_on_commit=False,
        )
        return self._session

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._session:
            self._session.close()
        if self._connection:
            self._connection.rollback()
            self._connection.close()
