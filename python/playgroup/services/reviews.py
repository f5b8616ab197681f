"""Review ledger.

One review per caller per album. The album row is locked FOR NO KEY UPDATE
for the whole insert + stats rebuild, so concurrent reviewers of the same
album recompute the cached stats one after another and the last writer
always sees every committed review.
"""

from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from playgroup.auth.identity import Identity, identity_from_columns, require_identity
from playgroup.config import get_settings
from playgroup.db.models import Album, Review
from playgroup.db.session import transaction
from playgroup.errors import (
    ApiError,
    ApiErrorCode,
    ConflictError,
    InvalidRequestError,
    NotFoundError,
)
from playgroup.logging import get_logger
from playgroup.schemas.review import AlbumStatsOut, ReviewOut, SubmitReviewRequest
from playgroup.services.constraints import violated_constraint

logger = get_logger(__name__)

DEFAULT_PFP_BASE_URL = "https://api.dicebear.com/9.x/lorelei/svg"

REVIEW_UNIQUE_CONSTRAINTS = ("uix_reviews_album_reviewer_fid", "uix_reviews_album_reviewer_user_id")

MIN_RATING = 1
MAX_RATING = 5

ONE_DECIMAL = Decimal("0.1")


def round_rating(value: Decimal | float | None) -> Decimal | None:
    """Round half-up to one decimal: 4.25 -> 4.3."""
    if value is None:
        return None
    return Decimal(str(value)).quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)


def default_pfp_url(seed: str) -> str:
    return f"{DEFAULT_PFP_BASE_URL}?seed={seed}"


def review_to_out(review: Review, now: datetime) -> ReviewOut:
    identity = identity_from_columns(review.reviewer_fid, review.reviewer_user_id)
    return ReviewOut(
        id=review.id,
        album_id=review.album_id,
        reviewer_fid=review.reviewer_fid,
        reviewer_user_id=review.reviewer_user_id,
        username=review.reviewer_username,
        pfp=review.reviewer_pfp or default_pfp_url(identity.seed),
        rating=review.rating,
        text=review.review_text,
        favorite_track=review.favorite_track,
        has_listened=review.has_listened,
        created_at=review.created_at,
        days_ago=max(0, (now - review.created_at).days),
    )


def map_integrity_error(e: IntegrityError) -> ApiError:
    """Map IntegrityError raised while inserting a review."""
    constraint_name = violated_constraint(e, REVIEW_UNIQUE_CONSTRAINTS)

    if constraint_name in REVIEW_UNIQUE_CONSTRAINTS:
        return ConflictError(ApiErrorCode.E_ALREADY_REVIEWED, "You already reviewed this album")

    logger.error("unknown_integrity_error", constraint=constraint_name, error=str(e))
    return ApiError(ApiErrorCode.E_INTERNAL, "Database constraint violation")


def validate_review(rating: int, text: str) -> None:
    """Raises InvalidRequestError(E_INVALID_RATING | E_REVIEW_TOO_SHORT)."""
    if not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidRequestError(
            ApiErrorCode.E_INVALID_RATING, f"Rating must be between {MIN_RATING} and {MAX_RATING}"
        )

    min_length = get_settings().min_review_length
    if len(text.strip()) < min_length:
        raise InvalidRequestError(
            ApiErrorCode.E_REVIEW_TOO_SHORT, f"Review must be at least {min_length} characters"
        )


def recompute_album_stats(db: Session, album: Album) -> None:
    """Rebuild the album's cached review stats from the reviews table.

    Must run inside the transaction that holds the album row lock.
    """
    avg_rating, total_reviews = db.execute(
        select(func.avg(Review.rating), func.count(Review.id)).where(Review.album_id == album.id)
    ).one()

    track_count = func.count(Review.id)
    top_track = db.execute(
        select(Review.favorite_track, track_count)
        .where(Review.album_id == album.id, Review.favorite_track.is_not(None))
        .group_by(Review.favorite_track)
        .order_by(track_count.desc(), func.min(Review.created_at).asc())
        .limit(1)
    ).first()

    album.avg_rating = round_rating(avg_rating)
    album.total_reviews = total_reviews
    album.most_loved_track = top_track[0] if top_track else None
    album.most_loved_track_votes = top_track[1] if top_track else 0
    db.flush()


def submit_review(
    db: Session,
    album_id: UUID,
    identity: Identity | None,
    req: SubmitReviewRequest,
    now: datetime | None = None,
) -> ReviewOut:
    """Add the caller's review and rebuild the album stats in the same transaction.

    Raises:
        AuthenticationRequiredError: If there is no caller identity.
        InvalidRequestError(E_INVALID_RATING): If rating is outside 1-5.
        InvalidRequestError(E_REVIEW_TOO_SHORT): If the trimmed text is too short.
        NotFoundError(E_ALBUM_NOT_FOUND): If the album doesn't exist.
        ConflictError(E_ALREADY_REVIEWED): If the caller already reviewed it.
    """
    identity = require_identity(identity)
    validate_review(req.rating, req.text)

    try:
        with transaction(db):
            album = db.scalars(
                select(Album)
                .where(Album.id == album_id)
                .with_for_update(key_share=True)
                .execution_options(populate_existing=True)
            ).first()
            if album is None:
                raise NotFoundError(ApiErrorCode.E_ALBUM_NOT_FOUND, "Album not found")

            existing = db.scalar(
                select(Review.id).where(
                    Review.album_id == album_id,
                    identity.matches(Review.reviewer_fid, Review.reviewer_user_id),
                )
            )
            if existing is not None:
                raise ConflictError(
                    ApiErrorCode.E_ALREADY_REVIEWED, "You already reviewed this album"
                )

            review = Review(
                album_id=album_id,
                reviewer_username=req.username,
                reviewer_pfp=req.pfp,
                rating=req.rating,
                review_text=req.text,
                favorite_track=req.favorite_track,
                has_listened=req.has_listened,
                **identity.column_values("reviewer_fid", "reviewer_user_id"),
            )
            db.add(review)
            db.flush()
            db.refresh(review)

            recompute_album_stats(db, album)
    except IntegrityError as e:
        raise map_integrity_error(e) from e

    logger.info(
        "review_submitted",
        review_id=str(review.id),
        album_id=str(album_id),
        reviewer=identity.label,
        rating=req.rating,
    )
    return review_to_out(review, now or datetime.now(UTC))


def list_album_reviews(
    db: Session, album_id: UUID, now: datetime | None = None
) -> list[ReviewOut]:
    """All reviews of an album, newest first."""
    now = now or datetime.now(UTC)
    reviews = db.scalars(
        select(Review)
        .where(Review.album_id == album_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
    ).all()
    return [review_to_out(review, now) for review in reviews]


def get_user_review(
    db: Session, album_id: UUID, identity: Identity | None, now: datetime | None = None
) -> ReviewOut | None:
    identity = require_identity(identity)
    review = db.scalars(
        select(Review).where(
            Review.album_id == album_id,
            identity.matches(Review.reviewer_fid, Review.reviewer_user_id),
        )
    ).first()
    if review is None:
        return None
    return review_to_out(review, now or datetime.now(UTC))


def get_album_stats(db: Session, album_id: UUID) -> AlbumStatsOut:
    """Cached review stats for an album.

    Raises:
        NotFoundError(E_ALBUM_NOT_FOUND): If the album doesn't exist.
    """
    album = db.get(Album, album_id)
    if album is None:
        raise NotFoundError(ApiErrorCode.E_ALBUM_NOT_FOUND, "Album not found")
    return AlbumStatsOut.model_validate(album)
