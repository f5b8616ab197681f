"""User provisioning API routes.

The front end calls these after its auth provider signs a member in.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from playgroup.api.deps import get_db, get_optional_identity
from playgroup.auth.identity import Identity
from playgroup.responses import success_response
from playgroup.schemas.profile import ExternalUserRequest, FarcasterUserRequest, UpdateUserRequest
from playgroup.services import users as users_service

router = APIRouter(tags=["users"])


@router.post("/users/farcaster")
def upsert_farcaster_user(
    request: FarcasterUserRequest, db: Annotated[Session, Depends(get_db)]
) -> dict:
    """Find, link or create the user for a Farcaster sign-in.

    Errors:
        E_USERNAME_TAKEN (409): Username held by another user.
    """
    result = users_service.get_or_create_farcaster_user(
        db,
        fid=request.fid,
        username=request.username,
        display_name=request.display_name,
        pfp_url=request.pfp_url,
        wallet_address=request.wallet_address,
    )
    return success_response(result.model_dump(mode="json"))


@router.post("/users/external")
def upsert_external_user(
    request: ExternalUserRequest, db: Annotated[Session, Depends(get_db)]
) -> dict:
    """Find, link or create the user for an external-provider sign-in."""
    result = users_service.get_or_create_external_user(
        db,
        external_auth_id=request.external_auth_id,
        email=request.email,
        wallet_address=request.wallet_address,
        display_name=request.display_name,
    )
    return success_response(result.model_dump(mode="json"))


@router.get("/users/{user_id}")
def get_user(user_id: UUID, db: Annotated[Session, Depends(get_db)]) -> dict:
    result = users_service.get_user(db, user_id)
    return success_response(result.model_dump(mode="json"))


@router.patch("/users/{user_id}")
def update_user(
    user_id: UUID,
    request: UpdateUserRequest,
    caller: Annotated[Identity | None, Depends(get_optional_identity)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Update the caller's own profile.

    Errors:
        E_UNAUTHENTICATED (401): No caller identity.
        E_FORBIDDEN (403): Caller is not this user.
        E_USER_NOT_FOUND (404): User doesn't exist.
        E_USERNAME_TAKEN (409): Username held by another user.
    """
    result = users_service.update_profile_for_caller(
        db,
        caller,
        user_id,
        username=request.username,
        display_name=request.display_name,
        pfp_url=request.pfp_url,
    )
    return success_response(result.model_dump(mode="json"))
