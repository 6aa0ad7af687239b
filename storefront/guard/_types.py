"""
Submission guard types.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto

from storefront._types import utcnow


# ═══════════════════════════════════════════════════════════════════════════════
# Record
# ═══════════════════════════════════════════════════════════════════════════════


class RecordState(Enum):
    """
    Lifecycle of a guarded submission.

        PENDING → COMPLETED (Ok result, replayed until it expires)
                → (released: the operation failed or was cancelled)
    """

    PENDING = auto()
    COMPLETED = auto()


@dataclass(frozen=True, slots=True)
class SubmissionRecord[T]:
    """
    A claimed key. ``fingerprint`` identifies the submitted payload, so a
    resubmission of the same cart snapshot is told apart from a new one
    under the same key.
    """

    key: str
    state: RecordState
    fingerprint: str
    value: T | None
    created_at: datetime
    expires_at: datetime

    @property
    def is_expired(self) -> bool:
        return utcnow() >= self.expires_at

    @property
    def is_pending(self) -> bool:
        return self.state == RecordState.PENDING

    @property
    def is_completed(self) -> bool:
        return self.state == RecordState.COMPLETED


# ═══════════════════════════════════════════════════════════════════════════════
# Results
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Guarded[T]:
    """Value of a guarded run; ``replayed`` is True when nothing was executed."""

    value: T
    replayed: bool
    key: str


class GuardErrorKind(Enum):
    CONFLICT = auto()  # same key still in flight
    TIMEOUT = auto()  # coalesced wait ran out
    STORE_ERROR = auto()
    EXECUTION = auto()  # the guarded operation returned Error


@dataclass(frozen=True, slots=True)
class GuardError[E]:
    kind: GuardErrorKind
    key: str
    message: str
    original_error: E | None = None


__all__ = (
    "RecordState",
    "SubmissionRecord",
    "Guarded",
    "GuardErrorKind",
    "GuardError",
)
