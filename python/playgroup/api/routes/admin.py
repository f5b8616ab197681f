"""Administrative cycle routes.

Every route here requires X-Playgroup-Admin to match PLAYGROUP_ADMIN_SECRET.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from playgroup.api.deps import get_db, require_admin
from playgroup.responses import success_response
from playgroup.schemas.cycle import ResetCycleRequest
from playgroup.services import cycles as cycles_service

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.post("/cycles/reset", status_code=201)
def reset_cycle(
    db: Annotated[Session, Depends(get_db)],
    request: ResetCycleRequest | None = None,
) -> dict:
    """Force-start a new voting cycle (defaults: 4 voting days, 7-day cycle)."""
    request = request or ResetCycleRequest()
    result = cycles_service.reset_cycle(
        db, voting_days=request.voting_days, cycle_length_days=request.cycle_length_days
    )
    return success_response(result.model_dump(mode="json"))


@router.post("/cycles/{cycle_id}/transition")
def transition_cycle(cycle_id: UUID, db: Annotated[Session, Depends(get_db)]) -> dict:
    """Close voting now and crown the winner.

    Errors:
        E_CYCLE_NOT_FOUND (404): Cycle doesn't exist.
        E_ALREADY_TRANSITIONED (409): Cycle is already in listening.
    """
    result = cycles_service.transition_to_listening(db, cycle_id)
    return success_response(result.model_dump(mode="json"))
