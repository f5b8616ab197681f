"""Review Pydantic schemas.

Rating bounds and minimum text length are checked by the review service
(so the caller gets E_INVALID_RATING / E_REVIEW_TOO_SHORT rather than a
generic validation error); the request schema only types the fields.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ReviewOut(BaseModel):
    """Response schema for a review."""

    id: UUID
    album_id: UUID
    reviewer_fid: int | None = None
    reviewer_user_id: UUID | None = None
    username: str
    pfp: str
    rating: int
    text: str
    favorite_track: str | None = None
    has_listened: bool
    created_at: datetime
    days_ago: int


class AlbumStatsOut(BaseModel):
    """Cached review aggregates for an album."""

    avg_rating: float | None = None
    total_reviews: int = 0
    most_loved_track: str | None = None
    most_loved_track_votes: int = 0

    model_config = ConfigDict(from_attributes=True)


class SubmitReviewRequest(BaseModel):
    """Request schema for reviewing an album."""

    username: str = Field(..., min_length=1, max_length=100)
    pfp: str | None = Field(None, max_length=2048)
    rating: int
    text: str = Field(..., max_length=10_000)
    favorite_track: str | None = Field(None, max_length=500)
    has_listened: bool = False
