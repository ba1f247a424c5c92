"""
The verdict a state reports for one sync
"""

# Standard
from enum import Enum


class SyncState(Enum):
    """Enum for all possible sync verdicts"""

    # All rendered objects exist and are observed healthy
    READY = "ready"
    # Applied, but at least one object has not reached its healthy condition,
    # or preconditions for rendering are not met yet
    NOT_READY = "notReady"
    # An unrecoverable or unexpected condition
    ERROR = "error"
    # Nothing was requested for this state; anything it created before is
    # left for the parent to clean up
    IGNORE = "ignore"
