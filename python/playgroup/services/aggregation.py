"""Read-side aggregations: profiles, archive and leaderboard.

Everything here is derived from the ledgers at read time. Vote counts are
never cached; each listing computes them with one aggregating query.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from playgroup.auth.identity import Identity, LegacyIdentity, UserIdentity
from playgroup.db.models import Album, AlbumStatus, Cycle, Review, Vote
from playgroup.schemas.album import ArchiveAlbumOut
from playgroup.schemas.profile import (
    AlbumSummaryOut,
    LeaderboardEntryOut,
    ProfileOut,
    ProfileReviewOut,
    ProfileStatsOut,
    ProfileSubmissionOut,
    UserInfoOut,
)
from playgroup.services.reviews import round_rating

DEFAULT_LEADERBOARD_LIMIT = 10
MAX_LEADERBOARD_LIMIT = 100


def _as_float(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


# =============================================================================
# Profile
# =============================================================================


def get_user_info(db: Session, identity: Identity) -> UserInfoOut | None:
    """Username (and picture, if known) from the member's submissions, then reviews."""
    username = db.scalar(
        select(Album.submitted_by_username)
        .where(identity.matches(Album.submitted_by_fid, Album.submitted_by_user_id))
        .order_by(Album.created_at.desc())
        .limit(1)
    )
    if username is not None:
        return UserInfoOut(username=username)

    row = db.execute(
        select(Review.reviewer_username, Review.reviewer_pfp)
        .where(identity.matches(Review.reviewer_fid, Review.reviewer_user_id))
        .order_by(Review.created_at.desc())
        .limit(1)
    ).first()
    if row is not None:
        return UserInfoOut(username=row[0], pfp=row[1])

    return None


def get_profile(db: Session, identity: Identity) -> ProfileOut:
    """A member's submissions, reviews and totals.

    A member with no activity gets an empty profile, not a 404.
    """
    vote_count = func.count(Vote.id).label("votes")
    submission_rows = db.execute(
        select(Album, vote_count)
        .outerjoin(Vote, Vote.album_id == Album.id)
        .where(identity.matches(Album.submitted_by_fid, Album.submitted_by_user_id))
        .group_by(Album.id)
        .order_by(Album.created_at.desc())
    ).all()

    review_rows = db.execute(
        select(Review, Album)
        .join(Album, Album.id == Review.album_id)
        .where(identity.matches(Review.reviewer_fid, Review.reviewer_user_id))
        .order_by(Review.created_at.desc())
    ).all()

    submissions = [
        ProfileSubmissionOut(
            id=album.id,
            title=album.title,
            artist=album.artist,
            cover_url=album.cover_url,
            external_url=album.external_url,
            status=album.status,
            votes=votes,
            avg_rating=_as_float(album.avg_rating),
            total_reviews=album.total_reviews,
            created_at=album.created_at,
        )
        for album, votes in submission_rows
    ]
    reviews = [
        ProfileReviewOut(
            id=review.id,
            rating=review.rating,
            text=review.review_text,
            favorite_track=review.favorite_track,
            created_at=review.created_at,
            album=AlbumSummaryOut(
                id=album.id, title=album.title, artist=album.artist, cover_url=album.cover_url
            ),
        )
        for review, album in review_rows
    ]

    avg_rating_given = None
    if reviews:
        total = Decimal(sum(review.rating for review in reviews))
        avg_rating_given = _as_float(round_rating(total / len(reviews)))

    activity: list[datetime] = [s.created_at for s in submissions] + [
        r.created_at for r in reviews
    ]

    return ProfileOut(
        fid=identity.fid if isinstance(identity, LegacyIdentity) else None,
        user_id=identity.user_id if isinstance(identity, UserIdentity) else None,
        user=get_user_info(db, identity),
        submissions=submissions,
        reviews=reviews,
        stats=ProfileStatsOut(
            total_submissions=len(submissions),
            total_wins=sum(1 for s in submissions if s.status == AlbumStatus.selected.value),
            total_reviews=len(reviews),
            avg_rating_given=avg_rating_given,
            total_votes_received=sum(s.votes for s in submissions),
        ),
        member_since=min(activity) if activity else None,
    )


# =============================================================================
# Archive
# =============================================================================


def get_past_winners(db: Session, year: int | None = None) -> list[ArchiveAlbumOut]:
    """Selected albums with their cycle's week, newest first."""
    stmt = (
        select(Album, Cycle.week_number, Cycle.year)
        .join(Cycle, Cycle.id == Album.cycle_id)
        .where(Album.status == AlbumStatus.selected.value)
        .order_by(Album.created_at.desc())
    )
    if year is not None:
        stmt = stmt.where(Cycle.year == year)

    return [
        ArchiveAlbumOut(
            id=album.id,
            title=album.title,
            artist=album.artist,
            cover_url=album.cover_url,
            external_url=album.external_url,
            avg_rating=_as_float(album.avg_rating),
            total_reviews=album.total_reviews,
            cycle_id=album.cycle_id,
            week_number=week_number,
            year=cycle_year,
            most_loved_track=album.most_loved_track,
            most_loved_track_votes=album.most_loved_track_votes,
            submitted_by_username=album.submitted_by_username,
            created_at=album.created_at,
        )
        for album, week_number, cycle_year in db.execute(stmt).all()
    ]


# =============================================================================
# Leaderboard
# =============================================================================


def get_leaderboard(
    db: Session, limit: int = DEFAULT_LEADERBOARD_LIMIT
) -> list[LeaderboardEntryOut]:
    """Submitters ranked by wins, then votes received, then submissions."""
    limit = max(1, min(limit, MAX_LEADERBOARD_LIMIT))

    per_album = (
        select(
            Album.submitted_by_fid.label("fid"),
            Album.submitted_by_user_id.label("user_id"),
            Album.submitted_by_username.label("username"),
            Album.status.label("status"),
            func.count(Vote.id).label("votes"),
        )
        .outerjoin(Vote, Vote.album_id == Album.id)
        .group_by(Album.id)
        .subquery()
    )

    wins = func.count().filter(per_album.c.status == AlbumStatus.selected.value).label("wins")
    votes_received = func.coalesce(func.sum(per_album.c.votes), 0).label("votes_received")
    submissions = func.count().label("submissions")
    username = func.max(per_album.c.username).label("username")

    rows = db.execute(
        select(per_album.c.fid, per_album.c.user_id, username, wins, votes_received, submissions)
        .group_by(per_album.c.fid, per_album.c.user_id)
        .order_by(wins.desc(), votes_received.desc(), submissions.desc(), username.asc())
        .limit(limit)
    ).all()

    return [
        LeaderboardEntryOut(
            fid=row.fid,
            user_id=row.user_id,
            username=row.username,
            wins=row.wins,
            votes_received=int(row.votes_received),
            submissions=row.submissions,
        )
        for row in rows
    ]
