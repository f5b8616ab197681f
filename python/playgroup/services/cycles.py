"""Cycle state machine.

A cycle is a voting phase followed by a listening phase. There is no
scheduler: reads of the current cycle create the next cycle when the last
one has ended, and flip voting -> listening once voting_ends_at has passed.

The transition is the only writer of album status and cycle winner. It runs
in one transaction that:
1. Locks the cycle row FOR UPDATE and re-checks the phase
2. Locks the cycle's voting albums FOR UPDATE (waits for in-flight votes)
3. Tallies votes from the ledger (zero-vote albums included)
4. Picks the winner: most votes, then earliest submission, then lowest id
5. Marks the winner selected and every other candidate lost
6. Records winner_id and phase=listening

Concurrent triggers serialize on the cycle row lock; every caller after the
first sees phase=listening and gets AlreadyTransitionedError.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, time, timedelta
from uuid import UUID

from sqlalchemy import func, select, text, update
from sqlalchemy.orm import Session

from playgroup.config import get_settings
from playgroup.db.models import Album, AlbumStatus, Cycle, CyclePhase
from playgroup.db.session import transaction
from playgroup.errors import (
    AlreadyTransitionedError,
    ApiErrorCode,
    InvalidRequestError,
    NotFoundError,
)
from playgroup.logging import get_logger
from playgroup.schemas.album import AlbumDetailOut, AlbumOut
from playgroup.schemas.cycle import (
    CountdownOut,
    CycleOut,
    CycleWithCountdownOut,
    TransitionResultOut,
    VoteTallyOut,
)
from playgroup.services.submissions import VoteTally, album_to_out, tally_votes

logger = get_logger(__name__)

END_OF_DAY = time(23, 59, 59, 999999)


@dataclass(frozen=True)
class CycleWindow:
    start_date: datetime
    voting_ends_at: datetime
    end_date: datetime


# =============================================================================
# Pure helpers
# =============================================================================


def compute_cycle_window(
    now: datetime, voting_days: int, length_days: int, cutoff_hour: int
) -> CycleWindow:
    """Dates for a cycle starting today (UTC).

    start_date is today at 00:00, voting_ends_at is start + voting_days at
    cutoff_hour:00, end_date is start + length_days at the last instant of
    that day.
    """
    start = datetime.combine(now.astimezone(UTC).date(), time.min, tzinfo=UTC)
    voting_ends_at = (start + timedelta(days=voting_days)).replace(hour=cutoff_hour)
    end_date = datetime.combine(
        (start + timedelta(days=length_days)).date(), END_OF_DAY, tzinfo=UTC
    )
    return CycleWindow(start_date=start, voting_ends_at=voting_ends_at, end_date=end_date)


def compute_countdown(target: datetime, now: datetime) -> CountdownOut:
    """Whole days/hours/minutes from now until target, floored, never negative."""
    seconds = max(0, (target - now) // timedelta(seconds=1))
    days, seconds = divmod(seconds, 86400)
    hours, seconds = divmod(seconds, 3600)
    return CountdownOut(days=days, hours=hours, minutes=seconds // 60)


def pick_winner(tally: list[VoteTally]) -> UUID | None:
    """Most votes wins; ties go to the earliest submission, then the lowest id."""
    if not tally:
        return None
    top = max(entry.votes for entry in tally)
    tied = [entry for entry in tally if entry.votes == top]
    return min(tied, key=lambda entry: (entry.created_at, str(entry.album_id))).album_id


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _utc_year(now: datetime) -> int:
    return now.astimezone(UTC).year


def _reload_cycle(db: Session, cycle_id: UUID) -> Cycle:
    return db.scalars(
        select(Cycle).where(Cycle.id == cycle_id).execution_options(populate_existing=True)
    ).one()


# =============================================================================
# Current cycle
# =============================================================================


def get_current_cycle(db: Session, now: datetime | None = None) -> Cycle | None:
    """The latest cycle as of now's UTC year, or None.

    That is the greatest week_number of the current year. Until the year's
    first cycle exists it is the last cycle of an earlier year, which may
    still be running across New Year.
    """
    now = now or _utcnow()
    return db.scalars(
        select(Cycle)
        .where(Cycle.year <= _utc_year(now))
        .order_by(Cycle.year.desc(), Cycle.week_number.desc())
        .limit(1)
        .execution_options(populate_existing=True)
    ).first()


def get_or_create_current_cycle(db: Session, now: datetime | None = None) -> Cycle:
    """Return the current cycle, creating the next one when none is active.

    Creation is INSERT ... ON CONFLICT (year, week_number) DO NOTHING
    followed by a re-read, so concurrent first touches converge on one row.
    A predecessor that ended while still in voting is transitioned first so
    its winner is recorded. Week numbers restart at 1 with each UTC year.
    """
    now = now or _utcnow()
    year = _utc_year(now)
    current = get_current_cycle(db, now)
    if current is not None and now <= current.end_date:
        return current

    if current is not None and current.phase == CyclePhase.voting.value:
        try:
            transition_to_listening(db, current.id)
        except AlreadyTransitionedError:
            logger.debug("cycle_transition_already_applied", cycle_id=str(current.id))

    settings = get_settings()
    week_number = 1
    if current is not None and current.year == year:
        week_number = current.week_number + 1
    window = compute_cycle_window(
        now,
        voting_days=settings.cycle_voting_days,
        length_days=settings.cycle_length_days,
        cutoff_hour=settings.cycle_voting_cutoff_hour,
    )

    with transaction(db):
        created_id = db.execute(
            text("""
                INSERT INTO cycles (week_number, year, phase, start_date, end_date, voting_ends_at)
                VALUES (:week_number, :year, 'voting', :start_date, :end_date, :voting_ends_at)
                ON CONFLICT (year, week_number) DO NOTHING
                RETURNING id
            """),
            {
                "week_number": week_number,
                "year": year,
                "start_date": window.start_date,
                "end_date": window.end_date,
                "voting_ends_at": window.voting_ends_at,
            },
        ).scalar()

    if created_id is not None:
        logger.info(
            "cycle_created", cycle_id=str(created_id), year=year, week_number=week_number
        )

    return db.scalars(
        select(Cycle)
        .where(Cycle.year == year, Cycle.week_number == week_number)
        .execution_options(populate_existing=True)
    ).one()


def get_current_with_countdown(
    db: Session, now: datetime | None = None
) -> CycleWithCountdownOut:
    """Current cycle with its countdown, transitioning it first if voting has closed.

    The countdown targets voting_ends_at during voting and end_date during
    listening. The returned phase is never stale.
    """
    now = now or _utcnow()
    cycle = get_or_create_current_cycle(db, now)

    if cycle.phase == CyclePhase.voting.value and now > cycle.voting_ends_at:
        try:
            transition_to_listening(db, cycle.id)
        except AlreadyTransitionedError:
            logger.debug("cycle_transition_already_applied", cycle_id=str(cycle.id))
        cycle = _reload_cycle(db, cycle.id)

    target = cycle.voting_ends_at if cycle.phase == CyclePhase.voting.value else cycle.end_date
    return CycleWithCountdownOut(
        **CycleOut.model_validate(cycle).model_dump(),
        countdown=compute_countdown(target, now),
    )


# =============================================================================
# Transition
# =============================================================================


def transition_to_listening(db: Session, cycle_id: UUID) -> TransitionResultOut:
    """Close voting on a cycle and crown its winner.

    Raises:
        NotFoundError(E_CYCLE_NOT_FOUND): If the cycle doesn't exist.
        AlreadyTransitionedError: If the cycle is no longer in voting.
    """
    with transaction(db):
        cycle = db.scalars(
            select(Cycle)
            .where(Cycle.id == cycle_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).first()
        if cycle is None:
            raise NotFoundError(ApiErrorCode.E_CYCLE_NOT_FOUND, "Cycle not found")
        if cycle.phase != CyclePhase.voting.value:
            raise AlreadyTransitionedError()

        # Candidates are locked before the tally so no vote lands in between
        db.execute(
            select(Album.id)
            .where(Album.cycle_id == cycle_id, Album.status == AlbumStatus.voting.value)
            .with_for_update()
        ).all()

        tally = tally_votes(db, cycle_id)
        winner_id = pick_winner(tally)

        if winner_id is not None:
            db.execute(
                update(Album)
                .where(Album.id == winner_id)
                .values(status=AlbumStatus.selected.value)
            )
            db.execute(
                update(Album)
                .where(
                    Album.cycle_id == cycle_id,
                    Album.status == AlbumStatus.voting.value,
                    Album.id != winner_id,
                )
                .values(status=AlbumStatus.lost.value)
            )

        cycle.winner_id = winner_id
        cycle.phase = CyclePhase.listening.value
        db.flush()

    logger.info(
        "cycle_transitioned",
        cycle_id=str(cycle_id),
        winner_id=str(winner_id) if winner_id else None,
        candidates=len(tally),
    )
    return TransitionResultOut(
        cycle_id=cycle_id,
        winner_id=winner_id,
        tally=[VoteTallyOut(album_id=entry.album_id, votes=entry.votes) for entry in tally],
    )


# =============================================================================
# Admin
# =============================================================================


def reset_cycle(
    db: Session,
    now: datetime | None = None,
    voting_days: int | None = None,
    cycle_length_days: int | None = None,
) -> CycleOut:
    """Force-start a new voting cycle regardless of the previous one's state.

    week_number is the global maximum + 1, so the new cycle becomes the
    current one for this year. Resets are serialized on a table lock.
    """
    now = now or _utcnow()
    settings = get_settings()
    voting_days = voting_days or settings.reset_voting_days
    cycle_length_days = cycle_length_days or settings.reset_cycle_length_days
    if voting_days > cycle_length_days:
        raise InvalidRequestError(message="voting_days must not exceed cycle_length_days")

    window = compute_cycle_window(
        now,
        voting_days=voting_days,
        length_days=cycle_length_days,
        cutoff_hour=settings.cycle_voting_cutoff_hour,
    )

    with transaction(db):
        db.execute(text("LOCK TABLE cycles IN SHARE ROW EXCLUSIVE MODE"))
        max_week = db.scalar(select(func.max(Cycle.week_number))) or 0

        cycle = Cycle(
            week_number=max_week + 1,
            year=_utc_year(now),
            phase=CyclePhase.voting.value,
            start_date=window.start_date,
            end_date=window.end_date,
            voting_ends_at=window.voting_ends_at,
        )
        db.add(cycle)
        db.flush()
        db.refresh(cycle)

    logger.info(
        "cycle_reset", cycle_id=str(cycle.id), year=cycle.year, week_number=cycle.week_number
    )
    return CycleOut.model_validate(cycle)


# =============================================================================
# Reads
# =============================================================================


def get_cycle_winner(db: Session, cycle_id: UUID) -> AlbumOut | None:
    """The cycle's selected album, or None before the transition (or with no candidates).

    Raises:
        NotFoundError(E_CYCLE_NOT_FOUND): If the cycle doesn't exist.
    """
    if db.get(Cycle, cycle_id) is None:
        raise NotFoundError(ApiErrorCode.E_CYCLE_NOT_FOUND, "Cycle not found")

    album = db.scalars(
        select(Album).where(
            Album.cycle_id == cycle_id, Album.status == AlbumStatus.selected.value
        )
    ).first()
    return album_to_out(album) if album is not None else None


def get_album_detail(db: Session, album_id: UUID) -> AlbumDetailOut:
    """One album with its cycle's week number.

    Raises:
        NotFoundError(E_ALBUM_NOT_FOUND): If the album doesn't exist.
    """
    row = db.execute(
        select(Album, Cycle.week_number)
        .join(Cycle, Cycle.id == Album.cycle_id)
        .where(Album.id == album_id)
    ).first()
    if row is None:
        raise NotFoundError(ApiErrorCode.E_ALBUM_NOT_FOUND, "Album not found")

    album, week_number = row
    return AlbumDetailOut(**album_to_out(album).model_dump(), week_number=week_number)
