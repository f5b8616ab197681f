"""Archive, leaderboard and profile API routes."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from playgroup.api.deps import get_db
from playgroup.auth.identity import LegacyIdentity, UserIdentity
from playgroup.responses import success_response
from playgroup.services import aggregation as aggregation_service

router = APIRouter(tags=["community"])


@router.get("/archive")
def get_archive(
    db: Annotated[Session, Depends(get_db)],
    year: Annotated[int | None, Query(ge=2000, le=9999)] = None,
) -> dict:
    """Past winners, newest first, optionally for one year."""
    result = aggregation_service.get_past_winners(db, year=year)
    return success_response({"albums": [a.model_dump(mode="json") for a in result]})


@router.get("/leaderboard")
def get_leaderboard(
    db: Annotated[Session, Depends(get_db)],
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> dict:
    result = aggregation_service.get_leaderboard(db, limit=limit)
    return success_response({"entries": [e.model_dump(mode="json") for e in result]})


@router.get("/profiles/fid/{fid}")
def get_profile_by_fid(
    fid: Annotated[int, Path(gt=0)], db: Annotated[Session, Depends(get_db)]
) -> dict:
    result = aggregation_service.get_profile(db, LegacyIdentity(fid))
    return success_response(result.model_dump(mode="json"))


@router.get("/profiles/users/{user_id}")
def get_profile_by_user_id(user_id: UUID, db: Annotated[Session, Depends(get_db)]) -> dict:
    result = aggregation_service.get_profile(db, UserIdentity(user_id))
    return success_response(result.model_dump(mode="json"))
