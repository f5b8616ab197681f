"""Album, vote and review API routes.

Routes are transport-only: each calls exactly one service function.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from playgroup.api.deps import get_db, get_optional_identity
from playgroup.auth.identity import Identity
from playgroup.responses import success_response
from playgroup.schemas.review import SubmitReviewRequest
from playgroup.services import cycles as cycles_service
from playgroup.services import reviews as reviews_service
from playgroup.services import submissions as submissions_service

router = APIRouter(tags=["albums"])


@router.get("/albums/{album_id}")
def get_album(album_id: UUID, db: Annotated[Session, Depends(get_db)]) -> dict:
    """Album detail with its cycle's week number.

    Errors:
        E_ALBUM_NOT_FOUND (404): Album doesn't exist.
    """
    result = cycles_service.get_album_detail(db, album_id)
    return success_response(result.model_dump(mode="json"))


@router.post("/albums/{album_id}/votes", status_code=201)
def cast_vote(
    album_id: UUID,
    identity: Annotated[Identity | None, Depends(get_optional_identity)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Vote for a voting-phase album.

    Errors:
        E_UNAUTHENTICATED (401): No caller identity.
        E_ALBUM_NOT_VOTABLE (409): Album missing or voting closed.
        E_ALREADY_VOTED (409): Caller already voted for it.
    """
    result = submissions_service.cast_vote(db, album_id, identity)
    return success_response(result.model_dump(mode="json"))


# =============================================================================
# Reviews
# =============================================================================


@router.get("/albums/{album_id}/reviews")
def list_reviews(album_id: UUID, db: Annotated[Session, Depends(get_db)]) -> dict:
    result = reviews_service.list_album_reviews(db, album_id)
    return success_response({"reviews": [r.model_dump(mode="json") for r in result]})


@router.get("/albums/{album_id}/reviews/mine")
def get_my_review(
    album_id: UUID,
    identity: Annotated[Identity | None, Depends(get_optional_identity)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """The caller's review of this album, or null."""
    result = reviews_service.get_user_review(db, album_id, identity)
    return success_response({"review": result.model_dump(mode="json") if result else None})


@router.post("/albums/{album_id}/reviews", status_code=201)
def submit_review(
    album_id: UUID,
    request: SubmitReviewRequest,
    identity: Annotated[Identity | None, Depends(get_optional_identity)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Review an album. Album stats are rebuilt in the same transaction.

    Errors:
        E_UNAUTHENTICATED (401): No caller identity.
        E_INVALID_RATING (400): Rating outside 1-5.
        E_REVIEW_TOO_SHORT (400): Review text below the minimum length.
        E_ALBUM_NOT_FOUND (404): Album doesn't exist.
        E_ALREADY_REVIEWED (409): Caller already reviewed it.
    """
    result = reviews_service.submit_review(db, album_id, identity, request)
    return success_response(result.model_dump(mode="json"))


@router.get("/albums/{album_id}/stats")
def get_album_stats(album_id: UUID, db: Annotated[Session, Depends(get_db)]) -> dict:
    result = reviews_service.get_album_stats(db, album_id)
    return success_response(result.model_dump(mode="json"))
