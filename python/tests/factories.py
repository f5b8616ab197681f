"""Test data factories.

Centralizes helper functions that create database rows for tests.
Each factory knows the full schema requirements for its table,
so individual tests don't need to track NOT NULL and CHECK constraints.

Factories commit, so rows survive a service-level rollback of a later
savepoint. Under db_session everything is still discarded at test end.
"""

import json
import random
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.orm import Session

from playgroup.auth.identity import Identity

# Years far from the wall clock, so test cycles never meet real ones
TEST_YEAR = 2091


def random_fid() -> int:
    """A Farcaster ID unlikely to collide with anything else in the database."""
    return random.randint(10_000_000, 2_000_000_000)


# =============================================================================
# Cycles
# =============================================================================


def create_test_cycle(
    session: Session,
    year: int = TEST_YEAR,
    week_number: int = 1,
    phase: str = "voting",
    start_date: datetime | None = None,
    voting_days: int = 5,
    length_days: int = 14,
) -> UUID:
    """Create a cycle. Dates default to a window starting 1 Jan of ``year``."""
    start = start_date or datetime(year, 1, 1, tzinfo=UTC)
    result = session.execute(
        text("""
            INSERT INTO cycles (week_number, year, phase, start_date, end_date, voting_ends_at)
            VALUES (:week_number, :year, :phase, :start_date, :end_date, :voting_ends_at)
            RETURNING id
        """),
        {
            "week_number": week_number,
            "year": year,
            "phase": phase,
            "start_date": start,
            "voting_ends_at": start + timedelta(days=voting_days, hours=22),
            "end_date": start + timedelta(days=length_days, hours=23, minutes=59, seconds=59),
        },
    )
    cycle_id = result.scalar_one()
    session.commit()
    return cycle_id


# =============================================================================
# Albums and votes
# =============================================================================


def create_test_album(
    session: Session,
    cycle_id: UUID,
    submitter: Identity,
    external_id: str | None = None,
    title: str = "Test Album",
    artist: str = "Test Artist",
    username: str = "tester",
    status: str = "voting",
    created_at: datetime | None = None,
    tracks: list[str] | None = None,
) -> UUID:
    """Create an album directly, without the submitter's auto-vote."""
    values = submitter.column_values("submitted_by_fid", "submitted_by_user_id")
    result = session.execute(
        text("""
            INSERT INTO albums (
                external_id, title, artist, cycle_id, tracks,
                submitted_by_fid, submitted_by_user_id, submitted_by_username,
                status, created_at
            )
            VALUES (
                :external_id, :title, :artist, :cycle_id, CAST(:tracks AS jsonb),
                :submitted_by_fid, :submitted_by_user_id, :username,
                :status, COALESCE(CAST(:created_at AS timestamptz), clock_timestamp())
            )
            RETURNING id
        """),
        {
            "external_id": external_id or f"ext-{random.getrandbits(48):012x}",
            "title": title,
            "artist": artist,
            "cycle_id": cycle_id,
            "tracks": None if tracks is None else json.dumps(tracks),
            "username": username,
            "status": status,
            "created_at": created_at,
            **values,
        },
    )
    album_id = result.scalar_one()
    session.commit()
    return album_id


def create_test_vote(session: Session, album_id: UUID, voter: Identity) -> UUID:
    result = session.execute(
        text("""
            INSERT INTO votes (album_id, voter_fid, voter_user_id)
            VALUES (:album_id, :voter_fid, :voter_user_id)
            RETURNING id
        """),
        {"album_id": album_id, **voter.column_values("voter_fid", "voter_user_id")},
    )
    vote_id = result.scalar_one()
    session.commit()
    return vote_id


def create_test_votes(session: Session, album_id: UUID, count: int) -> list[int]:
    """Cast ``count`` votes from fresh legacy voters. Returns their fids."""
    fids = [random_fid() for _ in range(count)]
    for fid in fids:
        session.execute(
            text("INSERT INTO votes (album_id, voter_fid) VALUES (:album_id, :fid)"),
            {"album_id": album_id, "fid": fid},
        )
    session.commit()
    return fids


# =============================================================================
# Users
# =============================================================================


def create_test_user(
    session: Session,
    fid: int | None = None,
    external_auth_id: str | None = None,
    username: str | None = None,
    wallet_address: str | None = None,
) -> UUID:
    """Create a user row. Defaults to a Farcaster user with a random fid."""
    if fid is None and external_auth_id is None:
        fid = random_fid()
    username = username or f"user{random.getrandbits(40):x}"
    result = session.execute(
        text("""
            INSERT INTO users (
                fid, external_auth_id, wallet_address, username, display_name, auth_provider
            )
            VALUES (
                :fid, :external_auth_id, :wallet_address, :username, :username, :auth_provider
            )
            RETURNING id
        """),
        {
            "fid": fid,
            "external_auth_id": external_auth_id,
            "wallet_address": wallet_address,
            "username": username,
            "auth_provider": "farcaster" if fid is not None else "external",
        },
    )
    user_id = result.scalar_one()
    session.commit()
    return user_id
