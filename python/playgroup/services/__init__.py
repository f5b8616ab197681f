"""Business logic services.

This module contains service-layer functions that implement the ledgers,
the cycle state machine and the read-side aggregations. Services are called
by route handlers and own their transactions.
"""

from playgroup.services.cycles import (
    get_current_with_countdown,
    get_or_create_current_cycle,
    transition_to_listening,
)
from playgroup.services.reviews import submit_review
from playgroup.services.submissions import cast_vote, submit_album, submit_for_caller

__all__ = [
    "get_or_create_current_cycle",
    "get_current_with_countdown",
    "transition_to_listening",
    "submit_album",
    "submit_for_caller",
    "cast_vote",
    "submit_review",
]
