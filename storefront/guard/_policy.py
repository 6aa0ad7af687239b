"""
Guard policy — what happens to a duplicate submission.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import timedelta
from enum import Enum, auto


class OnDuplicate(Enum):
    """
    What to do when the same submission arrives while the first is in flight.

    REJECT:   answer CONFLICT immediately.
    COALESCE: wait for the first one and hand back its result.
    """

    REJECT = auto()
    COALESCE = auto()


REJECT = OnDuplicate.REJECT
COALESCE = OnDuplicate.COALESCE


@dataclass(frozen=True, slots=True)
class Policy:
    """
    Immutable guard policy.

        policy = (
            Policy()
            .with_ttl(seconds=60)
            .with_on_duplicate(COALESCE)
            .with_wait(seconds=30)
        )

    ``ttl`` bounds both the replay window of a completed submission and the
    lease of a pending one, so a crashed holder cannot block the key forever.
    """

    ttl: timedelta = timedelta(seconds=60)
    on_duplicate: OnDuplicate = OnDuplicate.REJECT
    wait: timedelta = timedelta(seconds=30)
    poll_interval: timedelta = timedelta(milliseconds=50)

    def with_ttl(self, *, seconds: float | None = None, delta: timedelta | None = None) -> Policy:
        return replace(self, ttl=delta if delta is not None else timedelta(seconds=seconds or 0))

    def with_on_duplicate(self, strategy: OnDuplicate) -> Policy:
        return replace(self, on_duplicate=strategy)

    def with_wait(self, *, seconds: float | None = None, delta: timedelta | None = None) -> Policy:
        return replace(self, wait=delta if delta is not None else timedelta(seconds=seconds or 0))

    def with_poll_interval(self, *, seconds: float) -> Policy:
        return replace(self, poll_interval=timedelta(seconds=seconds))


__all__ = ("OnDuplicate", "REJECT", "COALESCE", "Policy")
