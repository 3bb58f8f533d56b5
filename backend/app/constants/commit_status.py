from enum import Enum
from typing import Dict, FrozenSet


class CommitStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


ALLOWED_TRANSITIONS: Dict[CommitStatus, FrozenSet[CommitStatus]] = {
    CommitStatus.PENDING: frozenset({CommitStatus.PROCESSING}),
    CommitStatus.PROCESSING: frozenset({CommitStatus.COMPLETED, CommitStatus.FAILED}),
    CommitStatus.COMPLETED: frozenset(),
    CommitStatus.FAILED: frozenset(),
}

def can_transition(current: str, new: str) -> bool:
    """Return True when a scheduled commit may move from `current` to `new`."""
    return CommitStatus(new) in ALLOWED_TRANSITIONS[CommitStatus(current)]
