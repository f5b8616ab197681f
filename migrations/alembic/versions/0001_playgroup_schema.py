"""Playgroup schema - users, cycles, albums, votes, reviews

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates the full Playgroup schema. The uniqueness constraints here are the
binding contract for submission, vote and review idempotency; the ORM models
in playgroup.db.models mirror them exactly.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Enable pgcrypto extension for gen_random_uuid()
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    # ==========================================================================
    # users table
    # ==========================================================================
    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("fid", sa.BigInteger(), nullable=True),
        sa.Column("external_auth_id", sa.Text(), nullable=True),
        sa.Column("wallet_address", sa.Text(), nullable=True),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("username", sa.Text(), nullable=False),
        sa.Column("display_name", sa.Text(), nullable=False),
        sa.Column("pfp_url", sa.Text(), nullable=True),
        sa.Column("auth_provider", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("fid", name="uq_users_fid"),
        sa.UniqueConstraint("external_auth_id", name="uq_users_external_auth_id"),
        sa.UniqueConstraint("wallet_address", name="uq_users_wallet_address"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.CheckConstraint(
            "auth_provider IN ('farcaster', 'external')",
            name="ck_users_auth_provider",
        ),
        sa.CheckConstraint(
            "fid IS NOT NULL OR external_auth_id IS NOT NULL",
            name="ck_users_has_identity",
        ),
        sa.CheckConstraint(
            "wallet_address IS NULL OR wallet_address = lower(wallet_address)",
            name="ck_users_wallet_lowercase",
        ),
    )

    # ==========================================================================
    # cycles table (winner_id FK added after albums exists)
    # ==========================================================================
    op.create_table(
        "cycles",
        sa.Column("id", sa.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("phase", sa.Text(), server_default="voting", nullable=False),
        sa.Column("start_date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("end_date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("voting_ends_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("winner_id", sa.UUID(), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        # Concurrent first-touch creation converges via ON CONFLICT on this key
        sa.UniqueConstraint("year", "week_number", name="uq_cycles_year_week"),
        sa.CheckConstraint("phase IN ('voting', 'listening')", name="ck_cycles_phase"),
        sa.CheckConstraint("voting_ends_at < end_date", name="ck_cycles_voting_before_end"),
        sa.CheckConstraint("week_number >= 1", name="ck_cycles_week_number_positive"),
    )

    # ==========================================================================
    # albums table
    # ==========================================================================
    op.create_table(
        "albums",
        sa.Column("id", sa.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("external_id", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("artist", sa.Text(), nullable=False),
        sa.Column("cover_url", sa.Text(), nullable=True),
        sa.Column("external_url", sa.Text(), nullable=True),
        sa.Column("tracks", postgresql.JSONB(), nullable=True),
        sa.Column("genres", postgresql.JSONB(), nullable=True),
        sa.Column("cycle_id", sa.UUID(), nullable=False),
        sa.Column("submitted_by_fid", sa.BigInteger(), nullable=True),
        sa.Column("submitted_by_user_id", sa.UUID(), nullable=True),
        sa.Column("submitted_by_username", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), server_default="voting", nullable=False),
        sa.Column("avg_rating", sa.Numeric(2, 1), nullable=True),
        sa.Column("total_reviews", sa.Integer(), server_default="0", nullable=False),
        sa.Column("most_loved_track", sa.Text(), nullable=True),
        sa.Column("most_loved_track_votes", sa.Integer(), server_default="0", nullable=False),
        # clock_timestamp() so submissions within one transaction still order
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("clock_timestamp()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["cycle_id"], ["cycles.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("cycle_id", "external_id", name="uq_albums_cycle_external"),
        sa.CheckConstraint("status IN ('voting', 'selected', 'lost')", name="ck_albums_status"),
        sa.CheckConstraint(
            "num_nonnulls(submitted_by_fid, submitted_by_user_id) = 1",
            name="ck_albums_one_submitter",
        ),
    )
    op.create_index(
        "uix_albums_one_selected_per_cycle",
        "albums",
        ["cycle_id"],
        unique=True,
        postgresql_where=sa.text("status = 'selected'"),
    )
    op.create_index("idx_albums_external_status", "albums", ["external_id", "status"])
    op.create_index("idx_albums_submitted_by_fid", "albums", ["submitted_by_fid"])
    op.create_index("idx_albums_submitted_by_user_id", "albums", ["submitted_by_user_id"])

    op.create_foreign_key(
        "fk_cycles_winner_id",
        "cycles",
        "albums",
        ["winner_id"],
        ["id"],
        ondelete="SET NULL",
    )

    # ==========================================================================
    # votes table
    # ==========================================================================
    op.create_table(
        "votes",
        sa.Column("id", sa.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("album_id", sa.UUID(), nullable=False),
        sa.Column("voter_fid", sa.BigInteger(), nullable=True),
        sa.Column("voter_user_id", sa.UUID(), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["album_id"], ["albums.id"], ondelete="CASCADE"),
        sa.CheckConstraint("num_nonnulls(voter_fid, voter_user_id) = 1", name="ck_votes_one_voter"),
    )
    op.create_index(
        "uix_votes_album_voter_fid",
        "votes",
        ["album_id", "voter_fid"],
        unique=True,
        postgresql_where=sa.text("voter_fid IS NOT NULL"),
    )
    op.create_index(
        "uix_votes_album_voter_user_id",
        "votes",
        ["album_id", "voter_user_id"],
        unique=True,
        postgresql_where=sa.text("voter_user_id IS NOT NULL"),
    )

    # ==========================================================================
    # reviews table
    # ==========================================================================
    op.create_table(
        "reviews",
        sa.Column("id", sa.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("album_id", sa.UUID(), nullable=False),
        sa.Column("reviewer_fid", sa.BigInteger(), nullable=True),
        sa.Column("reviewer_user_id", sa.UUID(), nullable=True),
        sa.Column("reviewer_username", sa.Text(), nullable=False),
        sa.Column("reviewer_pfp", sa.Text(), nullable=True),
        sa.Column("rating", sa.SmallInteger(), nullable=False),
        sa.Column("review_text", sa.Text(), nullable=False),
        sa.Column("favorite_track", sa.Text(), nullable=True),
        sa.Column("has_listened", sa.Boolean(), server_default="false", nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("clock_timestamp()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["album_id"], ["albums.id"], ondelete="CASCADE"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
        sa.CheckConstraint(
            "num_nonnulls(reviewer_fid, reviewer_user_id) = 1",
            name="ck_reviews_one_reviewer",
        ),
    )
    op.create_index(
        "uix_reviews_album_reviewer_fid",
        "reviews",
        ["album_id", "reviewer_fid"],
        unique=True,
        postgresql_where=sa.text("reviewer_fid IS NOT NULL"),
    )
    op.create_index(
        "uix_reviews_album_reviewer_user_id",
        "reviews",
        ["album_id", "reviewer_user_id"],
        unique=True,
        postgresql_where=sa.text("reviewer_user_id IS NOT NULL"),
    )


def downgrade() -> None:
    op.drop_table("reviews")
    op.drop_table("votes")
    op.drop_constraint("fk_cycles_winner_id", "cycles", type_="foreignkey")
    op.drop_table("albums")
    op.drop_table("cycles")
    op.drop_table("users")
