"""User provisioning service.

A member signs in either through Farcaster (numeric fid) or through the
external auth provider (opaque id, optional email and embedded wallet).
Both paths converge on a single ``users`` row:

- existing row for the incoming key -> returned (Farcaster refreshes profile fields)
- wallet matches a row that lacks the incoming key -> key linked onto that row
- otherwise -> new row

Concurrent first sign-ins race on the unique keys. The loser's insert is
rolled back and the flow is re-run, which then finds the winner's row.
"""

import re
from datetime import UTC, datetime
from urllib.parse import quote
from uuid import UUID

from sqlalchemy import bindparam, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from playgroup.auth.identity import Identity, UserIdentity, require_identity
from playgroup.db.models import AuthProvider, User
from playgroup.db.session import transaction
from playgroup.errors import (
    ApiError,
    ApiErrorCode,
    ConflictError,
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
)
from playgroup.logging import get_logger
from playgroup.schemas.profile import UserOut
from playgroup.services.constraints import violated_constraint

logger = get_logger(__name__)

AVATAR_BASE_URL = "https://api.dicebear.com/7.x/identicon/svg"

# Re-runs after losing a creation race on a unique key
MAX_CREATE_ATTEMPTS = 3

# Suffix probing gives up here and falls back to a timestamp suffix
MAX_USERNAME_SUFFIX = 1000

IDENTITY_KEY_CONSTRAINTS = ("uq_users_fid", "uq_users_external_auth_id", "uq_users_wallet_address")
USERNAME_CONSTRAINT = "uq_users_username"

_NON_ALNUM = re.compile(r"[^a-z0-9]")


# =============================================================================
# Pure helpers
# =============================================================================


def generate_avatar_url(seed: str) -> str:
    """Identicon avatar for members without a profile picture."""
    return f"{AVATAR_BASE_URL}?seed={quote(seed, safe='')}"


def derive_username_from_email(email: str) -> str:
    """alice.b@example.com -> aliceb. Falls back to ``user``."""
    base = _NON_ALNUM.sub("", email.split("@")[0].lower())
    return base or "user"


def normalize_wallet(wallet_address: str | None) -> str | None:
    if not wallet_address:
        return None
    return wallet_address.strip().lower() or None


def to_user_out(user: User) -> UserOut:
    return UserOut.model_validate(user)


# =============================================================================
# Lookups
# =============================================================================


def _user_by_fid(db: Session, fid: int) -> User | None:
    return db.scalars(
        select(User).where(User.fid == fid).execution_options(populate_existing=True)
    ).first()


def _user_by_external_id(db: Session, external_auth_id: str) -> User | None:
    return db.scalars(
        select(User)
        .where(User.external_auth_id == external_auth_id)
        .execution_options(populate_existing=True)
    ).first()


def _user_by_wallet(db: Session, wallet_address: str) -> User | None:
    return db.scalars(
        select(User)
        .where(User.wallet_address == wallet_address)
        .execution_options(populate_existing=True)
    ).first()


def ensure_unique_username(
    db: Session, base_username: str, exclude_user_id: UUID | None = None
) -> str:
    """Return base_username, or base_username + N for the smallest free N >= 2.

    A name held by exclude_user_id counts as free, so repeating the lookup
    for a user settles on the name that user already has.
    """
    taken = select(User.id).where(User.username == bindparam("username"))
    if exclude_user_id is not None:
        taken = taken.where(User.id != exclude_user_id)

    username = base_username
    counter = 1
    while db.scalar(taken, {"username": username}) is not None:
        counter += 1
        if counter > MAX_USERNAME_SUFFIX:
            return f"{base_username}{int(datetime.now(UTC).timestamp() * 1000)}"
        username = f"{base_username}{counter}"
    return username


def get_user(db: Session, user_id: UUID) -> UserOut:
    """Fetch one user.

    Raises:
        NotFoundError(E_USER_NOT_FOUND): If no such user.
    """
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError(ApiErrorCode.E_USER_NOT_FOUND, "User not found")
    return to_user_out(user)


# =============================================================================
# Provisioning
# =============================================================================


def map_integrity_error(e: IntegrityError) -> ApiError:
    """Map a users-table IntegrityError that survived the retry loop."""
    constraint_name = violated_constraint(e, (*IDENTITY_KEY_CONSTRAINTS, USERNAME_CONSTRAINT))

    if constraint_name == USERNAME_CONSTRAINT:
        return ConflictError(ApiErrorCode.E_USERNAME_TAKEN, "Username already taken")
    if constraint_name in IDENTITY_KEY_CONSTRAINTS:
        return InvalidRequestError(message="Identity already linked to another user")

    logger.error("unknown_integrity_error", constraint=constraint_name, error=str(e))
    return ApiError(ApiErrorCode.E_INTERNAL, "Database constraint violation")


def _farcaster_once(
    db: Session,
    fid: int,
    username: str,
    display_name: str,
    pfp_url: str | None,
    wallet_address: str | None,
) -> User:
    with transaction(db):
        existing = _user_by_fid(db, fid)
        if existing is not None:
            username = ensure_unique_username(db, username, exclude_user_id=existing.id)
            if (
                existing.username != username
                or existing.display_name != display_name
                or (pfp_url is not None and existing.pfp_url != pfp_url)
            ):
                existing.username = username
                existing.display_name = display_name
                existing.pfp_url = pfp_url or existing.pfp_url
                existing.updated_at = datetime.now(UTC)
                db.flush()
                logger.info("user_profile_refreshed", user_id=str(existing.id), fid=fid)
            return existing

        if wallet_address:
            linked = _user_by_wallet(db, wallet_address)
            if linked is not None and linked.fid is None:
                linked.fid = fid
                linked.username = ensure_unique_username(db, username, exclude_user_id=linked.id)
                linked.display_name = display_name
                linked.pfp_url = pfp_url or linked.pfp_url
                # Farcaster becomes the primary provider once linked
                linked.auth_provider = AuthProvider.farcaster.value
                linked.updated_at = datetime.now(UTC)
                db.flush()
                logger.info("user_linked_farcaster", user_id=str(linked.id), fid=fid)
                return linked

        user = User(
            fid=fid,
            wallet_address=wallet_address,
            username=ensure_unique_username(db, username),
            display_name=display_name,
            pfp_url=pfp_url,
            auth_provider=AuthProvider.farcaster.value,
        )
        db.add(user)
        db.flush()
        db.refresh(user)
        logger.info("user_created", user_id=str(user.id), auth_provider="farcaster")
        return user


def get_or_create_farcaster_user(
    db: Session,
    fid: int,
    username: str,
    display_name: str,
    pfp_url: str | None = None,
    wallet_address: str | None = None,
) -> UserOut:
    """Find, link or create the user for a Farcaster sign-in.

    The Farcaster handle becomes the username. When another user already
    holds it, a numeric suffix is added, so a sign-in never fails on a
    username collision.
    """
    wallet = normalize_wallet(wallet_address)
    last_error: IntegrityError | None = None

    for _ in range(MAX_CREATE_ATTEMPTS):
        try:
            return to_user_out(_farcaster_once(db, fid, username, display_name, pfp_url, wallet))
        except IntegrityError as e:
            last_error = e
            constraint_name = violated_constraint(
                e, (*IDENTITY_KEY_CONSTRAINTS, USERNAME_CONSTRAINT)
            )
            if constraint_name not in (*IDENTITY_KEY_CONSTRAINTS, USERNAME_CONSTRAINT):
                raise map_integrity_error(e) from e
            logger.info("user_create_race_lost", fid=fid, constraint=constraint_name)

    assert last_error is not None
    raise map_integrity_error(last_error) from last_error


def _external_once(
    db: Session,
    external_auth_id: str,
    email: str | None,
    wallet_address: str | None,
    display_name: str | None,
) -> User:
    with transaction(db):
        existing = _user_by_external_id(db, external_auth_id)
        if existing is not None:
            return existing

        if wallet_address:
            linked = _user_by_wallet(db, wallet_address)
            if linked is not None and linked.external_auth_id is None:
                linked.external_auth_id = external_auth_id
                linked.email = email or linked.email
                linked.updated_at = datetime.now(UTC)
                db.flush()
                logger.info("user_linked_external", user_id=str(linked.id))
                return linked

        base = derive_username_from_email(email) if email else "user"
        username = ensure_unique_username(db, base)

        user = User(
            external_auth_id=external_auth_id,
            email=email,
            wallet_address=wallet_address,
            username=username,
            display_name=display_name or username,
            pfp_url=generate_avatar_url(external_auth_id),
            auth_provider=AuthProvider.external.value,
        )
        db.add(user)
        db.flush()
        db.refresh(user)
        logger.info("user_created", user_id=str(user.id), auth_provider="external")
        return user


def get_or_create_external_user(
    db: Session,
    external_auth_id: str,
    email: str | None = None,
    wallet_address: str | None = None,
    display_name: str | None = None,
) -> UserOut:
    """Find, link or create the user for an external-provider sign-in.

    New users get a username derived from the email local part, made unique
    with a numeric suffix, and an identicon avatar.
    """
    wallet = normalize_wallet(wallet_address)
    last_error: IntegrityError | None = None

    for _ in range(MAX_CREATE_ATTEMPTS):
        try:
            return to_user_out(_external_once(db, external_auth_id, email, wallet, display_name))
        except IntegrityError as e:
            # Username collisions are retried too: the next pass picks a fresh suffix
            last_error = e
            constraint_name = violated_constraint(
                e, (*IDENTITY_KEY_CONSTRAINTS, USERNAME_CONSTRAINT)
            )
            if constraint_name not in (*IDENTITY_KEY_CONSTRAINTS, USERNAME_CONSTRAINT):
                raise map_integrity_error(e) from e
            logger.info("user_create_race_lost", constraint=constraint_name)

    assert last_error is not None
    raise map_integrity_error(last_error) from last_error


def update_user_profile(
    db: Session,
    user_id: UUID,
    username: str | None = None,
    display_name: str | None = None,
    pfp_url: str | None = None,
) -> UserOut:
    """Update the supplied profile fields.

    Raises:
        NotFoundError(E_USER_NOT_FOUND): If no such user.
        ConflictError(E_USERNAME_TAKEN): If the new username is held by another user.
    """
    try:
        with transaction(db):
            user = db.scalars(
                select(User)
                .where(User.id == user_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).first()
            if user is None:
                raise NotFoundError(ApiErrorCode.E_USER_NOT_FOUND, "User not found")

            if username is not None:
                user.username = username
            if display_name is not None:
                user.display_name = display_name
            if pfp_url is not None:
                user.pfp_url = pfp_url
            user.updated_at = datetime.now(UTC)
            db.flush()
    except IntegrityError as e:
        raise map_integrity_error(e) from e

    logger.info("user_profile_updated", user_id=str(user_id))
    return to_user_out(user)


def update_profile_for_caller(
    db: Session,
    caller: Identity | None,
    user_id: UUID,
    username: str | None = None,
    display_name: str | None = None,
    pfp_url: str | None = None,
) -> UserOut:
    """Members may only edit their own profile.

    Raises:
        AuthenticationRequiredError: If there is no caller identity.
        ForbiddenError: If the caller is not this user.
    """
    caller = require_identity(caller)
    if caller != UserIdentity(user_id):
        raise ForbiddenError(message="You can only edit your own profile")
    return update_user_profile(
        db, user_id, username=username, display_name=display_name, pfp_url=pfp_url
    )
