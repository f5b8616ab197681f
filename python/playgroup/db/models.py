"""SQLAlchemy ORM models for Playgroup.

Defines all database tables using SQLAlchemy 2.x declarative patterns.
Status columns are TEXT with CHECK constraints; the Python enums below
name the allowed values.

The uniqueness constraints declared here are the binding contract for
submission, vote and review idempotency. They are mirrored exactly by
migration 0001.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    SmallInteger,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# =============================================================================
# Enums
# =============================================================================


class CyclePhase(str, PyEnum):
    """Cycle phases. Transitions are monotonic: voting -> listening."""

    voting = "voting"
    listening = "listening"


class AlbumStatus(str, PyEnum):
    """Album lifecycle within its cycle.

    States:
        voting: Candidate while the cycle is in the voting phase
        selected: The cycle's winner (at most one per cycle)
        lost: Any other candidate once the cycle transitioned
    """

    voting = "voting"
    selected = "selected"
    lost = "lost"


class AuthProvider(str, PyEnum):
    """Where a user's primary identity comes from."""

    farcaster = "farcaster"
    external = "external"


# =============================================================================
# Models
# =============================================================================


class User(Base):
    """Unified user record.

    A user is reachable by Farcaster ID, by the external auth provider's
    opaque ID, or by wallet address (used only for account linking).
    """

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    fid: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    external_auth_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    wallet_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    username: Mapped[str] = mapped_column(Text, nullable=False)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    pfp_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    auth_provider: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=text("now()"),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=text("now()"),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("fid", name="uq_users_fid"),
        UniqueConstraint("external_auth_id", name="uq_users_external_auth_id"),
        UniqueConstraint("wallet_address", name="uq_users_wallet_address"),
        UniqueConstraint("username", name="uq_users_username"),
        CheckConstraint(
            "auth_provider IN ('farcaster', 'external')",
            name="ck_users_auth_provider",
        ),
        CheckConstraint(
            "fid IS NOT NULL OR external_auth_id IS NOT NULL",
            name="ck_users_has_identity",
        ),
        CheckConstraint(
            "wallet_address IS NULL OR wallet_address = lower(wallet_address)",
            name="ck_users_wallet_lowercase",
        ),
    )


class Cycle(Base):
    """One voting + listening period."""

    __tablename__ = "cycles"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    phase: Mapped[str] = mapped_column(Text, server_default="voting", nullable=False)
    start_date: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    voting_ends_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    winner_id: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("albums.id", ondelete="SET NULL", use_alter=True, name="fk_cycles_winner_id"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=text("now()"),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("year", "week_number", name="uq_cycles_year_week"),
        CheckConstraint("phase IN ('voting', 'listening')", name="ck_cycles_phase"),
        CheckConstraint("voting_ends_at < end_date", name="ck_cycles_voting_before_end"),
        CheckConstraint("week_number >= 1", name="ck_cycles_week_number_positive"),
    )

    albums: Mapped[list["Album"]] = relationship(
        "Album",
        back_populates="cycle",
        foreign_keys="Album.cycle_id",
        cascade="all, delete-orphan",
    )


class Album(Base):
    """A submitted album: one candidate in one cycle.

    avg_rating, total_reviews, most_loved_track and most_loved_track_votes
    are a cache over the reviews table, rebuilt inside every review
    transaction.
    """

    __tablename__ = "albums"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    external_id: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    artist: Mapped[str] = mapped_column(Text, nullable=False)
    cover_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    external_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    tracks: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)
    genres: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)
    cycle_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("cycles.id", ondelete="CASCADE"),
        nullable=False,
    )
    submitted_by_fid: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    submitted_by_user_id: Mapped[UUID | None] = mapped_column(PG_UUID(as_uuid=True), nullable=True)
    submitted_by_username: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, server_default="voting", nullable=False)

    avg_rating: Mapped[Decimal | None] = mapped_column(Numeric(2, 1), nullable=True)
    total_reviews: Mapped[int] = mapped_column(Integer, server_default="0", nullable=False)
    most_loved_track: Mapped[str | None] = mapped_column(Text, nullable=True)
    most_loved_track_votes: Mapped[int] = mapped_column(Integer, server_default="0", nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=text("clock_timestamp()"),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("cycle_id", "external_id", name="uq_albums_cycle_external"),
        CheckConstraint(
            "status IN ('voting', 'selected', 'lost')",
            name="ck_albums_status",
        ),
        CheckConstraint(
            "num_nonnulls(submitted_by_fid, submitted_by_user_id) = 1",
            name="ck_albums_one_submitter",
        ),
        # At most one winner per cycle
        Index(
            "uix_albums_one_selected_per_cycle",
            "cycle_id",
            unique=True,
            postgresql_where=text("status = 'selected'"),
        ),
        Index("idx_albums_external_status", "external_id", "status"),
        Index("idx_albums_submitted_by_fid", "submitted_by_fid"),
        Index("idx_albums_submitted_by_user_id", "submitted_by_user_id"),
    )

    cycle: Mapped["Cycle"] = relationship(
        "Cycle", back_populates="albums", foreign_keys=[cycle_id]
    )
    votes: Mapped[list["Vote"]] = relationship(
        "Vote", back_populates="album", cascade="all, delete-orphan"
    )
    reviews: Mapped[list["Review"]] = relationship(
        "Review", back_populates="album", cascade="all, delete-orphan"
    )


class Vote(Base):
    """One caller's support for one album. Never mutated or deleted."""

    __tablename__ = "votes"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    album_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("albums.id", ondelete="CASCADE"),
        nullable=False,
    )
    voter_fid: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    voter_user_id: Mapped[UUID | None] = mapped_column(PG_UUID(as_uuid=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=text("now()"),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(
            "num_nonnulls(voter_fid, voter_user_id) = 1",
            name="ck_votes_one_voter",
        ),
        Index(
            "uix_votes_album_voter_fid",
            "album_id",
            "voter_fid",
            unique=True,
            postgresql_where=text("voter_fid IS NOT NULL"),
        ),
        Index(
            "uix_votes_album_voter_user_id",
            "album_id",
            "voter_user_id",
            unique=True,
            postgresql_where=text("voter_user_id IS NOT NULL"),
        ),
    )

    album: Mapped["Album"] = relationship("Album", back_populates="votes")


class Review(Base):
    """One caller's critique of one album. Never mutated."""

    __tablename__ = "reviews"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    album_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("albums.id", ondelete="CASCADE"),
        nullable=False,
    )
    reviewer_fid: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    reviewer_user_id: Mapped[UUID | None] = mapped_column(PG_UUID(as_uuid=True), nullable=True)
    reviewer_username: Mapped[str] = mapped_column(Text, nullable=False)
    reviewer_pfp: Mapped[str | None] = mapped_column(Text, nullable=True)
    rating: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    review_text: Mapped[str] = mapped_column(Text, nullable=False)
    favorite_track: Mapped[str | None] = mapped_column(Text, nullable=True)
    has_listened: Mapped[bool] = mapped_column(Boolean, server_default="false", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=text("clock_timestamp()"),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
        CheckConstraint(
            "num_nonnulls(reviewer_fid, reviewer_user_id) = 1",
            name="ck_reviews_one_reviewer",
        ),
        Index(
            "uix_reviews_album_reviewer_fid",
            "album_id",
            "reviewer_fid",
            unique=True,
            postgresql_where=text("reviewer_fid IS NOT NULL"),
        ),
        Index(
            "uix_reviews_album_reviewer_user_id",
            "album_id",
            "reviewer_user_id",
            unique=True,
            postgresql_where=text("reviewer_user_id IS NOT NULL"),
        ),
    )

    album: Mapped["Album"] = relationship("Album", back_populates="reviews")
