"""Pydantic schemas for request/response models.

All schemas are re-exported here for convenient imports.
"""

from playgroup.schemas.album import (
    AlbumDetailOut,
    AlbumOut,
    ArchiveAlbumOut,
    SubmissionCountOut,
    SubmissionOut,
    SubmitAlbumRequest,
    VoteOut,
)
from playgroup.schemas.cycle import (
    CountdownOut,
    CycleOut,
    CycleWithCountdownOut,
    ResetCycleRequest,
    TransitionResultOut,
    VoteTallyOut,
)
from playgroup.schemas.profile import (
    AlbumSummaryOut,
    ExternalUserRequest,
    FarcasterUserRequest,
    LeaderboardEntryOut,
    ProfileOut,
    ProfileReviewOut,
    ProfileStatsOut,
    ProfileSubmissionOut,
    UpdateUserRequest,
    UserInfoOut,
    UserOut,
)
from playgroup.schemas.review import AlbumStatsOut, ReviewOut, SubmitReviewRequest

__all__ = [
    # Cycle schemas
    "CycleOut",
    "CountdownOut",
    "CycleWithCountdownOut",
    "VoteTallyOut",
    "TransitionResultOut",
    "ResetCycleRequest",
    # Album schemas
    "AlbumOut",
    "AlbumDetailOut",
    "SubmissionOut",
    "SubmissionCountOut",
    "VoteOut",
    "ArchiveAlbumOut",
    "SubmitAlbumRequest",
    # Review schemas
    "ReviewOut",
    "AlbumStatsOut",
    "SubmitReviewRequest",
    # Profile schemas
    "ProfileOut",
    "ProfileSubmissionOut",
    "ProfileReviewOut",
    "ProfileStatsOut",
    "AlbumSummaryOut",
    "UserInfoOut",
    "LeaderboardEntryOut",
    # User schemas
    "UserOut",
    "FarcasterUserRequest",
    "ExternalUserRequest",
    "UpdateUserRequest",
]
