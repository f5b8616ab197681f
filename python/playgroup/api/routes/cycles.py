"""Cycle and submission API routes.

Routes are transport-only: each calls exactly one service function.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from playgroup.api.deps import get_db, get_optional_identity
from playgroup.auth.identity import Identity
from playgroup.responses import success_response
from playgroup.schemas.album import SubmitAlbumRequest
from playgroup.services import cycles as cycles_service
from playgroup.services import submissions as submissions_service

router = APIRouter(tags=["cycles"])


@router.get("/cycles/current")
def get_current_cycle(db: Annotated[Session, Depends(get_db)]) -> dict:
    """Current cycle with its countdown.

    Creates the next cycle if the last one ended, and closes voting if its
    deadline has passed, before answering.
    """
    result = cycles_service.get_current_with_countdown(db)
    return success_response(result.model_dump(mode="json"))


@router.get("/cycles/{cycle_id}/winner")
def get_cycle_winner(cycle_id: UUID, db: Annotated[Session, Depends(get_db)]) -> dict:
    """The cycle's selected album; null until the cycle transitions.

    Errors:
        E_CYCLE_NOT_FOUND (404): Cycle doesn't exist.
    """
    result = cycles_service.get_cycle_winner(db, cycle_id)
    return success_response({"winner": result.model_dump(mode="json") if result else None})


@router.get("/cycles/{cycle_id}/submissions")
def list_submissions(
    cycle_id: UUID,
    viewer: Annotated[Identity | None, Depends(get_optional_identity)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Voting-phase candidates ordered by votes, with has_voted for identified callers."""
    result = submissions_service.get_submissions_with_vote_counts(db, cycle_id, viewer=viewer)
    return success_response({"submissions": [s.model_dump(mode="json") for s in result]})


@router.get("/cycles/{cycle_id}/submissions/count")
def get_submission_count(
    cycle_id: UUID,
    identity: Annotated[Identity | None, Depends(get_optional_identity)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """How many albums the caller submitted to this cycle.

    Errors:
        E_UNAUTHENTICATED (401): No caller identity.
    """
    result = submissions_service.get_submission_count(db, cycle_id, identity)
    return success_response(result.model_dump(mode="json"))


@router.post("/cycles/{cycle_id}/submissions", status_code=201)
def submit_album(
    cycle_id: UUID,
    request: SubmitAlbumRequest,
    identity: Annotated[Identity | None, Depends(get_optional_identity)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Submit an album to a voting cycle. The submitter's vote is recorded with it.

    Errors:
        E_UNAUTHENTICATED (401): No caller identity.
        E_CYCLE_NOT_FOUND (404): Cycle doesn't exist.
        E_SUBMISSION_LIMIT (409): Caller is at the per-cycle cap.
        E_PAST_WINNER (409): Album already won a cycle.
        E_CYCLE_NOT_VOTING (409): Cycle already transitioned.
        E_DUPLICATE_SUBMISSION (409): Album already in this cycle.
    """
    result = submissions_service.submit_for_caller(db, cycle_id, identity, request)
    return success_response(result.model_dump(mode="json"))
