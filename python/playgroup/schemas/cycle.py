"""Cycle Pydantic schemas.

Contains response models for the cycle state machine and the request model
for the administrative reset.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Output Schemas
# =============================================================================


class CycleOut(BaseModel):
    """Response schema for a cycle."""

    id: UUID
    week_number: int
    year: int
    phase: str
    start_date: datetime
    end_date: datetime
    voting_ends_at: datetime
    winner_id: UUID | None = None

    model_config = ConfigDict(from_attributes=True)


class CountdownOut(BaseModel):
    """Whole days/hours/minutes until the active deadline. Never negative."""

    days: int
    hours: int
    minutes: int


class CycleWithCountdownOut(CycleOut):
    """Current cycle plus the countdown to voting_ends_at (voting) or end_date (listening)."""

    countdown: CountdownOut


class VoteTallyOut(BaseModel):
    """Final vote count for one candidate at transition time."""

    album_id: UUID
    votes: int


class TransitionResultOut(BaseModel):
    """Outcome of the voting -> listening transition."""

    cycle_id: UUID
    winner_id: UUID | None
    tally: list[VoteTallyOut]


# =============================================================================
# Request Schemas
# =============================================================================


class ResetCycleRequest(BaseModel):
    """Request schema for force-starting a new voting cycle.

    Omitted fields fall back to RESET_VOTING_DAYS / RESET_CYCLE_LENGTH_DAYS.
    """

    voting_days: int | None = Field(None, ge=1, description="Days until voting closes")
    cycle_length_days: int | None = Field(None, ge=1, description="Days until the cycle ends")
