"""Album, submission and vote Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Output Schemas
# =============================================================================


class AlbumOut(BaseModel):
    """Response schema for an album with its cached review stats."""

    id: UUID
    external_id: str
    title: str
    artist: str
    cover_url: str | None = None
    external_url: str | None = None
    tracks: list[str] | None = None
    genres: list[str] | None = None
    cycle_id: UUID
    submitted_by_fid: int | None = None
    submitted_by_user_id: UUID | None = None
    submitted_by_username: str
    status: str
    avg_rating: float | None = None
    total_reviews: int = 0
    most_loved_track: str | None = None
    most_loved_track_votes: int = 0
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AlbumDetailOut(AlbumOut):
    """Album plus the week number of its cycle."""

    week_number: int


class SubmissionOut(BaseModel):
    """A voting-phase candidate with its live vote count.

    has_voted is None when the request carries no caller identity.
    """

    id: UUID
    external_id: str
    title: str
    artist: str
    cover_url: str | None = None
    external_url: str | None = None
    genres: list[str] = Field(default_factory=list)
    votes: int
    submitter_fid: int | None = None
    submitter_user_id: UUID | None = None
    submitter: str
    created_at: datetime
    days_ago: int
    has_voted: bool | None = None


class SubmissionCountOut(BaseModel):
    """How many albums the caller submitted to a cycle, and the cap."""

    cycle_id: UUID
    count: int
    limit: int


class VoteOut(BaseModel):
    """Acknowledgement of a recorded vote."""

    album_id: UUID
    voted: bool = True


class ArchiveAlbumOut(BaseModel):
    """A past winner as shown in the archive."""

    id: UUID
    title: str
    artist: str
    cover_url: str | None = None
    external_url: str | None = None
    avg_rating: float | None = None
    total_reviews: int = 0
    cycle_id: UUID
    week_number: int
    year: int
    most_loved_track: str | None = None
    most_loved_track_votes: int = 0
    submitted_by_username: str
    created_at: datetime


# =============================================================================
# Request Schemas
# =============================================================================


class SubmitAlbumRequest(BaseModel):
    """Request schema for submitting an album to a cycle.

    Metadata comes from the catalog provider via the front end and is
    stored as given.
    """

    external_id: str = Field(..., min_length=1, max_length=128, description="Catalog album ID")
    title: str = Field(..., min_length=1, max_length=500)
    artist: str = Field(..., min_length=1, max_length=500)
    cover_url: str | None = Field(None, max_length=2048)
    external_url: str | None = Field(None, max_length=2048)
    tracks: list[str] | None = None
    genres: list[str] | None = None
    username: str = Field(..., min_length=1, max_length=100, description="Submitter display name")
