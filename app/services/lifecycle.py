"""Session status policy.

Pure functions only: the status of a session is a function of the time elapsed
since it was created, and the persisted status may only move forward.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from app.core.errors import ConfigError


class Status(str, Enum):
    PENDING = "pending"
    AWAITING_USER_ACTION = "userSign"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self in TERMINAL


TERMINAL = frozenset({Status.COMPLETE, Status.FAILED, Status.CANCELLED})

_ALLOWED: dict[Status, set[Status]] = {
    Status.PENDING: {Status.AWAITING_USER_ACTION, Status.COMPLETE, Status.FAILED, Status.CANCELLED},
    Status.AWAITING_USER_ACTION: {Status.COMPLETE, Status.FAILED, Status.CANCELLED},
    Status.COMPLETE: set(),
    Status.FAILED: set(),
    Status.CANCELLED: set(),
}


@dataclass(frozen=True)
class Thresholds:
    sign_after: timedelta
    complete_after: timedelta
    ttl: timedelta

    def __post_init__(self) -> None:
        zero = timedelta(0)
        if self.sign_after <= zero or self.complete_after <= zero or self.ttl <= zero:
            raise ConfigError("Thresholds must be positive", thresholds=repr(self))
        if self.sign_after >= self.complete_after:
            raise ConfigError("Sign threshold must be below the complete threshold", thresholds=repr(self))


def derive_status(now: datetime, created_at: datetime, thresholds: Thresholds) -> Status:
    """
    Maps elapsed time to a status, first match wins.

    When the complete threshold lies beyond the ttl, any session older than
    the ttl is failed and can never complete.
    """
    elapsed = now - created_at
    if elapsed > thresholds.ttl and thresholds.complete_after > thresholds.ttl:
        return Status.FAILED
    if elapsed > thresholds.complete_after:
        return Status.COMPLETE
    if elapsed > thresholds.sign_after:
        return Status.AWAITING_USER_ACTION
    return Status.PENDING


def hint_for(status: Status, hint_code: str) -> str | None:
    return hint_code if status is Status.AWAITING_USER_ACTION else None


def can_transition(current: Status, target: Status) -> bool:
    if current == target:
        return True
    return target in _ALLOWED.get(current, set())


def advance(current: Status, derived: Status) -> Status:
    """Returns the status to persist; never moves backwards or out of a terminal status."""
    if current.terminal:
        return current
    if can_transition(current, derived):
        return derived
    return current
