"""Submission and voting ledgers.

Every check-then-mutate path runs inside ``transaction(db)`` with a row lock
taken before the re-check, and the unique indexes on albums/votes are the
final backstop:

- submit locks the cycle FOR SHARE, so the voting -> listening transition
  (which takes FOR UPDATE on the same row) cannot interleave with it
- cast_vote locks the album FOR SHARE, so the transition's FOR UPDATE on
  the cycle's candidates waits for in-flight votes to commit

Lock order is always cycle -> albums.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from playgroup.auth.identity import Identity, require_identity
from playgroup.config import get_settings
from playgroup.db.models import Album, AlbumStatus, Cycle, CyclePhase, Vote
from playgroup.db.session import transaction
from playgroup.errors import ApiError, ApiErrorCode, ConflictError, NotFoundError
from playgroup.logging import get_logger
from playgroup.schemas.album import (
    AlbumOut,
    SubmissionCountOut,
    SubmissionOut,
    SubmitAlbumRequest,
    VoteOut,
)
from playgroup.services.constraints import violated_constraint

logger = get_logger(__name__)

ALBUM_UNIQUE_CONSTRAINT = "uq_albums_cycle_external"
VOTE_UNIQUE_CONSTRAINTS = ("uix_votes_album_voter_fid", "uix_votes_album_voter_user_id")


@dataclass(frozen=True)
class VoteTally:
    """One voting-phase candidate and its vote count."""

    album_id: UUID
    created_at: datetime
    votes: int


# =============================================================================
# Shared Helpers
# =============================================================================


def days_ago(created_at: datetime, now: datetime) -> int:
    return max(0, (now - created_at).days)


def album_to_out(album: Album) -> AlbumOut:
    return AlbumOut.model_validate(album)


def map_submission_integrity_error(e: IntegrityError) -> ApiError:
    """Map IntegrityError raised while inserting an album and its auto-vote."""
    constraint_name = violated_constraint(e, (ALBUM_UNIQUE_CONSTRAINT, *VOTE_UNIQUE_CONSTRAINTS))

    if constraint_name == ALBUM_UNIQUE_CONSTRAINT or constraint_name in VOTE_UNIQUE_CONSTRAINTS:
        return ConflictError(
            ApiErrorCode.E_DUPLICATE_SUBMISSION, "This album was already submitted this cycle"
        )

    logger.error("unknown_integrity_error", constraint=constraint_name, error=str(e))
    return ApiError(ApiErrorCode.E_INTERNAL, "Database constraint violation")


def map_vote_integrity_error(e: IntegrityError) -> ApiError:
    """Map IntegrityError raised while inserting a vote."""
    constraint_name = violated_constraint(e, VOTE_UNIQUE_CONSTRAINTS)

    if constraint_name in VOTE_UNIQUE_CONSTRAINTS:
        return ConflictError(ApiErrorCode.E_ALREADY_VOTED, "You already voted for this album")

    logger.error("unknown_integrity_error", constraint=constraint_name, error=str(e))
    return ApiError(ApiErrorCode.E_INTERNAL, "Database constraint violation")


def tally_votes(db: Session, cycle_id: UUID) -> list[VoteTally]:
    """Vote counts for the cycle's voting-phase albums.

    Zero-vote albums are included. Ordered by votes desc, then submission
    order (created_at, id), so the first row is the winner.
    """
    vote_count = func.count(Vote.id).label("votes")
    rows = db.execute(
        select(Album.id, Album.created_at, vote_count)
        .outerjoin(Vote, Vote.album_id == Album.id)
        .where(Album.cycle_id == cycle_id, Album.status == AlbumStatus.voting.value)
        .group_by(Album.id)
        .order_by(vote_count.desc(), Album.created_at.asc(), Album.id.asc())
    ).all()
    return [VoteTally(album_id=row[0], created_at=row[1], votes=row[2]) for row in rows]


# =============================================================================
# Submission Ledger
# =============================================================================


def is_past_winner(db: Session, external_id: str) -> bool:
    """True if this catalog album won any earlier cycle."""
    return (
        db.scalar(
            select(Album.id)
            .where(Album.external_id == external_id, Album.status == AlbumStatus.selected.value)
            .limit(1)
        )
        is not None
    )


def submit_album(
    db: Session, cycle_id: UUID, identity: Identity, req: SubmitAlbumRequest
) -> AlbumOut:
    """Add an album to a voting cycle and cast the submitter's vote for it.

    The past-winner check is a read outside the transaction: winners are only
    created by a transition, and a late duplicate of a winner is harmless.

    Raises:
        ConflictError(E_PAST_WINNER): If the album already won a cycle.
        NotFoundError(E_CYCLE_NOT_FOUND): If the cycle doesn't exist.
        ConflictError(E_CYCLE_NOT_VOTING): If the cycle already transitioned.
        ConflictError(E_DUPLICATE_SUBMISSION): If the album is already in this cycle.
    """
    if is_past_winner(db, req.external_id):
        raise ConflictError(ApiErrorCode.E_PAST_WINNER, "This album already won a previous cycle")

    try:
        with transaction(db):
            cycle = db.scalars(
                select(Cycle)
                .where(Cycle.id == cycle_id)
                .with_for_update(read=True)
                .execution_options(populate_existing=True)
            ).first()
            if cycle is None:
                raise NotFoundError(ApiErrorCode.E_CYCLE_NOT_FOUND, "Cycle not found")
            if cycle.phase != CyclePhase.voting.value:
                raise ConflictError(
                    ApiErrorCode.E_CYCLE_NOT_VOTING, "Submissions are closed for this cycle"
                )

            duplicate = db.scalar(
                select(Album.id).where(
                    Album.cycle_id == cycle_id, Album.external_id == req.external_id
                )
            )
            if duplicate is not None:
                raise ConflictError(
                    ApiErrorCode.E_DUPLICATE_SUBMISSION,
                    "This album was already submitted this cycle",
                )

            album = Album(
                external_id=req.external_id,
                title=req.title,
                artist=req.artist,
                cover_url=req.cover_url,
                external_url=req.external_url,
                tracks=req.tracks,
                genres=req.genres,
                cycle_id=cycle_id,
                submitted_by_username=req.username,
                status=AlbumStatus.voting.value,
                **identity.column_values("submitted_by_fid", "submitted_by_user_id"),
            )
            db.add(album)
            db.flush()

            # Submitting counts as a vote for your own album
            db.add(Vote(album_id=album.id, **identity.column_values("voter_fid", "voter_user_id")))
            db.flush()
            db.refresh(album)
    except IntegrityError as e:
        raise map_submission_integrity_error(e) from e

    logger.info(
        "album_submitted",
        album_id=str(album.id),
        cycle_id=str(cycle_id),
        external_id=req.external_id,
        submitter=identity.label,
    )
    return album_to_out(album)


def count_user_submissions(db: Session, cycle_id: UUID, identity: Identity) -> int:
    return db.scalar(
        select(func.count())
        .select_from(Album)
        .where(
            Album.cycle_id == cycle_id,
            identity.matches(Album.submitted_by_fid, Album.submitted_by_user_id),
        )
    )


def get_submission_count(
    db: Session, cycle_id: UUID, identity: Identity | None
) -> SubmissionCountOut:
    """The caller's submission count for a cycle alongside the per-cycle cap."""
    identity = require_identity(identity)
    return SubmissionCountOut(
        cycle_id=cycle_id,
        count=count_user_submissions(db, cycle_id, identity),
        limit=get_settings().max_submissions_per_cycle,
    )


def submit_for_caller(
    db: Session, cycle_id: UUID, identity: Identity | None, req: SubmitAlbumRequest
) -> AlbumOut:
    """Enforce the per-caller cap, then submit.

    The cap is advisory: two concurrent submissions from the same caller can
    both pass the count. The ledger's own invariants do not depend on it.

    Raises:
        AuthenticationRequiredError: If there is no caller identity.
        ConflictError(E_SUBMISSION_LIMIT): If the caller is at the cap.
    """
    identity = require_identity(identity)
    limit = get_settings().max_submissions_per_cycle

    if count_user_submissions(db, cycle_id, identity) >= limit:
        raise ConflictError(
            ApiErrorCode.E_SUBMISSION_LIMIT,
            f"You can submit at most {limit} albums per cycle",
        )

    return submit_album(db, cycle_id, identity, req)


def get_submissions_with_vote_counts(
    db: Session,
    cycle_id: UUID,
    viewer: Identity | None = None,
    now: datetime | None = None,
) -> list[SubmissionOut]:
    """The cycle's voting-phase candidates, most votes first.

    Tied albums are listed earliest submission first, the same order the
    transition uses to break ties, so the top row is the album that would
    win if voting closed now. With a viewer, each row says whether the
    viewer voted for it (one extra query for the whole list).
    """
    now = now or datetime.now(UTC)
    vote_count = func.count(Vote.id).label("votes")
    rows = db.execute(
        select(Album, vote_count)
        .outerjoin(Vote, Vote.album_id == Album.id)
        .where(Album.cycle_id == cycle_id, Album.status == AlbumStatus.voting.value)
        .group_by(Album.id)
        .order_by(vote_count.desc(), Album.created_at.asc(), Album.id.asc())
    ).all()

    voted_ids: set[UUID] = set()
    if viewer is not None and rows:
        voted_ids = set(
            db.scalars(
                select(Vote.album_id).where(
                    Vote.album_id.in_([album.id for album, _ in rows]),
                    viewer.matches(Vote.voter_fid, Vote.voter_user_id),
                )
            )
        )

    return [
        SubmissionOut(
            id=album.id,
            external_id=album.external_id,
            title=album.title,
            artist=album.artist,
            cover_url=album.cover_url,
            external_url=album.external_url,
            genres=album.genres or [],
            votes=votes,
            submitter_fid=album.submitted_by_fid,
            submitter_user_id=album.submitted_by_user_id,
            submitter=album.submitted_by_username,
            created_at=album.created_at,
            days_ago=days_ago(album.created_at, now),
            has_voted=(album.id in voted_ids) if viewer is not None else None,
        )
        for album, votes in rows
    ]


# =============================================================================
# Voting Ledger
# =============================================================================


def cast_vote(db: Session, album_id: UUID, identity: Identity | None) -> VoteOut:
    """Record one vote for a voting-phase album.

    Raises:
        AuthenticationRequiredError: If there is no caller identity.
        ConflictError(E_ALBUM_NOT_VOTABLE): If the album is missing or no longer in voting.
        ConflictError(E_ALREADY_VOTED): If the caller already voted for it.
    """
    identity = require_identity(identity)

    try:
        with transaction(db):
            album = db.scalars(
                select(Album)
                .where(Album.id == album_id)
                .with_for_update(read=True)
                .execution_options(populate_existing=True)
            ).first()
            if album is None or album.status != AlbumStatus.voting.value:
                raise ConflictError(
                    ApiErrorCode.E_ALBUM_NOT_VOTABLE, "Voting is closed for this album"
                )

            existing = db.scalar(
                select(Vote.id).where(
                    Vote.album_id == album_id,
                    identity.matches(Vote.voter_fid, Vote.voter_user_id),
                )
            )
            if existing is not None:
                raise ConflictError(
                    ApiErrorCode.E_ALREADY_VOTED, "You already voted for this album"
                )

            db.add(Vote(album_id=album_id, **identity.column_values("voter_fid", "voter_user_id")))
            db.flush()
    except IntegrityError as e:
        raise map_vote_integrity_error(e) from e

    logger.info("vote_cast", album_id=str(album_id), voter=identity.label)
    return VoteOut(album_id=album_id)
