"""
Guard — at most one execution per logical submission.

    from storefront import guard as GD

    guard = GD.Guard(GD.MemorySubmissionStore(), GD.Policy().with_ttl(seconds=60))
    result = await guard.run(f"checkout:{email}", fingerprint, place_order)

    match result:
        case Ok(GD.Guarded(value=placed, replayed=True)): ...   # earlier result
        case Ok(GD.Guarded(value=placed)): ...                  # executed now
        case Error(GD.GuardError(kind=GD.GuardErrorKind.CONFLICT)): ...

Only Ok results are kept; a failed or cancelled operation frees the key.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from kungfu import Result

from storefront.guard._types import (
    RecordState,
    SubmissionRecord,
    Guarded,
    GuardErrorKind,
    GuardError,
)
from storefront.guard._policy import OnDuplicate, REJECT, COALESCE, Policy
from storefront.guard._store import StoreError, SubmissionStore, MemorySubmissionStore
from storefront.guard._graph import SubmissionSpec, run_guarded


class Guard:
    def __init__(self, store: SubmissionStore, policy: Policy | None = None) -> None:
        self.store = store
        self.policy = policy or Policy()

    async def run[T, E](
        self,
        key: str,
        fingerprint: str,
        operation: Callable[[], Awaitable[Result[T, E]]],
    ) -> Result[Guarded[T], GuardError[E]]:
        spec = SubmissionSpec(key, fingerprint, operation, self.store, self.policy)
        return await run_guarded(spec)


__all__ = (
    "RecordState",
    "SubmissionRecord",
    "Guarded",
    "GuardErrorKind",
    "GuardError",
    "OnDuplicate",
    "REJECT",
    "COALESCE",
    "Policy",
    "StoreError",
    "SubmissionStore",
    "MemorySubmissionStore",
    "SubmissionSpec",
    "run_guarded",
    "Guard",
)
