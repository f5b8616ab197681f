"""Profile, leaderboard and user schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Profile
# =============================================================================


class ProfileSubmissionOut(BaseModel):
    id: UUID
    title: str
    artist: str
    cover_url: str | None = None
    external_url: str | None = None
    status: str
    votes: int
    avg_rating: float | None = None
    total_reviews: int = 0
    created_at: datetime


class AlbumSummaryOut(BaseModel):
    id: UUID
    title: str
    artist: str
    cover_url: str | None = None


class ProfileReviewOut(BaseModel):
    id: UUID
    rating: int
    text: str
    favorite_track: str | None = None
    created_at: datetime
    album: AlbumSummaryOut


class ProfileStatsOut(BaseModel):
    total_submissions: int
    total_wins: int
    total_reviews: int
    avg_rating_given: float | None = None
    total_votes_received: int


class UserInfoOut(BaseModel):
    """Display info recovered from a member's ledger rows."""

    username: str
    pfp: str | None = None


class ProfileOut(BaseModel):
    """Everything a member has submitted and reviewed, with totals."""

    fid: int | None = None
    user_id: UUID | None = None
    user: UserInfoOut | None = None
    submissions: list[ProfileSubmissionOut]
    reviews: list[ProfileReviewOut]
    stats: ProfileStatsOut
    member_since: datetime | None = None


class LeaderboardEntryOut(BaseModel):
    fid: int | None = None
    user_id: UUID | None = None
    username: str
    wins: int
    votes_received: int
    submissions: int


# =============================================================================
# Users
# =============================================================================


class UserOut(BaseModel):
    id: UUID
    fid: int | None = None
    external_auth_id: str | None = None
    wallet_address: str | None = None
    email: str | None = None
    username: str
    display_name: str
    pfp_url: str | None = None
    auth_provider: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FarcasterUserRequest(BaseModel):
    fid: int = Field(..., gt=0)
    username: str = Field(..., min_length=1, max_length=100)
    display_name: str = Field(..., min_length=1, max_length=100)
    pfp_url: str | None = Field(None, max_length=2048)
    wallet_address: str | None = Field(None, max_length=128)


class ExternalUserRequest(BaseModel):
    external_auth_id: str = Field(..., min_length=1, max_length=255)
    email: str | None = Field(None, max_length=320)
    wallet_address: str | None = Field(None, max_length=128)
    display_name: str | None = Field(None, max_length=100)


class UpdateUserRequest(BaseModel):
    """All fields optional; only supplied fields change."""

    username: str | None = Field(None, min_length=1, max_length=100)
    display_name: str | None = Field(None, min_length=1, max_length=100)
    pfp_url: str | None = Field(None, max_length=2048)
