"""Application settings loaded from environment variables.

Environment Configuration:
    PLAYGROUP_ENV: Deployment environment (local | test | staging | prod)
    DATABASE_URL: PostgreSQL connection string (required)
    PLAYGROUP_INTERNAL_SECRET: Shared secret with the front end (required in staging/prod)
    PLAYGROUP_ADMIN_SECRET: Secret for admin routes (admin routes are disabled if unset)

Cycle Configuration:
    CYCLE_VOTING_DAYS: Days from cycle start until voting closes
    CYCLE_VOTING_CUTOFF_HOUR: Hour of day (UTC) at which voting closes
    CYCLE_LENGTH_DAYS: Days from cycle start until the cycle ends

Ledger Configuration:
    MAX_SUBMISSIONS_PER_CYCLE: Per-caller submission cap for one cycle
    MIN_REVIEW_LENGTH: Minimum review text length in characters
"""

from enum import Enum
from functools import lru_cache
from typing import Annotated

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Application configuration.

    Validation rules:
    - DATABASE_URL is always required
    - PLAYGROUP_INTERNAL_SECRET is required in staging and prod only
    - Voting must close strictly before the cycle ends
    """

    playgroup_env: Environment = Field(default=Environment.LOCAL, alias="PLAYGROUP_ENV")
    database_url: Annotated[str, Field(alias="DATABASE_URL")]
    playgroup_internal_secret: str | None = Field(default=None, alias="PLAYGROUP_INTERNAL_SECRET")
    playgroup_admin_secret: str | None = Field(default=None, alias="PLAYGROUP_ADMIN_SECRET")

    # Cycle timing (UTC)
    cycle_voting_days: int = Field(default=5, alias="CYCLE_VOTING_DAYS")
    cycle_voting_cutoff_hour: int = Field(default=22, alias="CYCLE_VOTING_CUTOFF_HOUR")
    cycle_length_days: int = Field(default=14, alias="CYCLE_LENGTH_DAYS")

    # Admin reset uses a shorter one-week cycle
    reset_voting_days: int = Field(default=4, alias="RESET_VOTING_DAYS")
    reset_cycle_length_days: int = Field(default=7, alias="RESET_CYCLE_LENGTH_DAYS")

    # Ledger limits
    max_submissions_per_cycle: int = Field(default=3, alias="MAX_SUBMISSIONS_PER_CYCLE")
    min_review_length: int = Field(default=50, alias="MIN_REVIEW_LENGTH")

    # Logging
    log_json: bool = Field(default=True, alias="LOG_JSON")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Ensure secrets and cycle timing are coherent."""
        if self.playgroup_env in (Environment.STAGING, Environment.PROD):
            if not self.playgroup_internal_secret:
                raise ValueError(
                    "PLAYGROUP_INTERNAL_SECRET is required for "
                    f"PLAYGROUP_ENV={self.playgroup_env.value}"
                )

        if not 0 <= self.cycle_voting_cutoff_hour <= 23:
            raise ValueError("CYCLE_VOTING_CUTOFF_HOUR must be between 0 and 23")

        for name, voting_days, length_days in (
            ("CYCLE", self.cycle_voting_days, self.cycle_length_days),
            ("RESET", self.reset_voting_days, self.reset_cycle_length_days),
        ):
            if voting_days < 1:
                raise ValueError(f"{name}_VOTING_DAYS must be >= 1")
            # votingEndsAt lands on day N at the cutoff hour, endDate on day M at 23:59
            if voting_days > length_days:
                raise ValueError(
                    f"{name}_VOTING_DAYS must not exceed the cycle length ({length_days} days)"
                )

        if self.max_submissions_per_cycle < 1:
            raise ValueError("MAX_SUBMISSIONS_PER_CYCLE must be >= 1")
        if self.min_review_length < 1:
            raise ValueError("MIN_REVIEW_LENGTH must be >= 1")

        return self

    @property
    def requires_internal_header(self) -> bool:
        """Whether requests must include the internal secret header."""
        return self.playgroup_env in (Environment.STAGING, Environment.PROD)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Raises:
        ValidationError: If required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
