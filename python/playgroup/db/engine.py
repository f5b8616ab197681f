"""The Postgres engine behind every Playgroup session.

Row locks and partial unique indexes (one winner per cycle) need
PostgreSQL, reached through the psycopg 3 driver.
"""

from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from playgroup.config import get_settings


def create_db_engine(database_url: str | None = None) -> Engine:
    """Engine for database_url, or for DATABASE_URL from settings.

    pool_pre_ping drops connections the server closed between requests,
    such as after a Postgres restart.
    """
    if database_url is None:
        database_url = get_settings().database_url

    return create_engine(
        database_url,
        pool_pre_ping=True,
        echo=False,
    )


@lru_cache
def get_engine() -> Engine:
    """The engine shared by API requests and scripts/seed_dev.py."""
    return create_db_engine()
