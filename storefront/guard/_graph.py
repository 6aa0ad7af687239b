"""
Submission guard as a nodnod graph.

    SubmissionSpec (injected)
         │
         ▼
    FetchRecord
         │
         ├── StoreFailure ────┐
         ├── CompletedRecord ─┤
         ├── PendingRecord ───┼── SubmissionOutcome (@polymorphic)
         └── NoRecord ────────┘             │
                                            ▼
                                       FinalResult

State nodes validate and raise NodeError when they do not apply; each
outcome case depends on exactly one state node. Exceptions from the guarded
operation (cancellation included) release the key and propagate.

Node modules keep runtime annotations: nodnod resolves ``__compose__``
parameters from them.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from kungfu import Error, Ok, Result
from nodnod import NodeError, case, polymorphic

from storefront import graph as G
from storefront._types import utcnow
from storefront.guard._policy import OnDuplicate, Policy
from storefront.guard._store import StoreError, SubmissionStore
from storefront.guard._types import (
    Guarded,
    GuardError,
    GuardErrorKind,
    SubmissionRecord,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Input
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class SubmissionSpec:
    key: str
    fingerprint: str
    operation: Callable[[], Awaitable[Result[Any, Any]]]
    store: SubmissionStore
    policy: Policy


# ═══════════════════════════════════════════════════════════════════════════════
# Fetch
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class FetchRecord:
    def __init__(
        self,
        record: SubmissionRecord[Any] | None,
        spec: SubmissionSpec,
        store_error: StoreError | None = None,
    ) -> None:
        self.record = record
        self.spec = spec
        self.store_error = store_error

    @classmethod
    async def __compose__(cls, spec: SubmissionSpec) -> "FetchRecord":
        match await spec.store.get(spec.key):
            case Ok(record):
                return cls(record, spec)
            case Error(err):
                return cls(None, spec, store_error=err)


# ═══════════════════════════════════════════════════════════════════════════════
# State nodes
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class StoreFailure:
    def __init__(self, error: StoreError, spec: SubmissionSpec) -> None:
        self.error = error
        self.spec = spec

    @classmethod
    def __compose__(cls, fetch: FetchRecord) -> "StoreFailure":
        if fetch.store_error is None:
            raise NodeError("No store error")
        return cls(fetch.store_error, fetch.spec)


@G.node
class CompletedRecord:
    def __init__(self, record: SubmissionRecord[Any], spec: SubmissionSpec) -> None:
        self.record = record
        self.spec = spec

    @property
    def same_submission(self) -> bool:
        return self.record.fingerprint == self.spec.fingerprint

    @classmethod
    def __compose__(cls, fetch: FetchRecord) -> "CompletedRecord":
        record = fetch.record
        if record is None or not record.is_completed:
            raise NodeError("Not completed")
        return cls(record, fetch.spec)


@G.node
class PendingRecord:
    def __init__(self, record: SubmissionRecord[Any], spec: SubmissionSpec) -> None:
        self.record = record
        self.spec = spec

    @property
    def same_submission(self) -> bool:
        return self.record.fingerprint == self.spec.fingerprint

    @classmethod
    def __compose__(cls, fetch: FetchRecord) -> "PendingRecord":
        record = fetch.record
        if record is None or not record.is_pending:
            raise NodeError("Not pending")
        return cls(record, fetch.spec)


@G.node
class NoRecord:
    def __init__(self, spec: SubmissionSpec) -> None:
        self.spec = spec

    @classmethod
    def __compose__(cls, fetch: FetchRecord) -> "NoRecord":
        if fetch.store_error is not None:
            raise NodeError("Store error")
        if fetch.record is not None:
            raise NodeError("Record exists")
        return cls(fetch.spec)


# ═══════════════════════════════════════════════════════════════════════════════
# Outcomes
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class OutcomeOk:
    value: Any
    replayed: bool
    key: str


@dataclass(frozen=True)
class OutcomeError:
    kind: GuardErrorKind
    key: str
    message: str
    original_error: Any | None = None


type Outcome = OutcomeOk | OutcomeError


def _store_error(spec: SubmissionSpec, err: StoreError) -> Outcome:
    logger.error("submission store failed for %s: %s", spec.key, err.message)
    return OutcomeError(GuardErrorKind.STORE_ERROR, spec.key, err.message, err.cause)


def _conflict(spec: SubmissionSpec, message: str) -> Outcome:
    logger.warning("rejected duplicate submission %s: %s", spec.key, message)
    return OutcomeError(GuardErrorKind.CONFLICT, spec.key, message)


async def _execute(spec: SubmissionSpec) -> Outcome:
    """Claim the key, run the operation, keep only an Ok result."""
    match await spec.store.claim(spec.key, spec.fingerprint, spec.policy.ttl):
        case Error(err):
            return _store_error(spec, err)
        case Ok(False):
            if spec.policy.on_duplicate is OnDuplicate.COALESCE:
                return await _await_pending(spec)
            return _conflict(spec, "lost the race for the submission key")
        case Ok(_):
            pass

    try:
        result = await spec.operation()
    except BaseException:
        await spec.store.release(spec.key)
        raise

    match result:
        case Ok(value):
            match await spec.store.complete(spec.key, value, spec.policy.ttl):
                case Error(err):
                    return _store_error(spec, err)
                case Ok(_):
                    return OutcomeOk(value, replayed=False, key=spec.key)
        case Error(err):
            await spec.store.release(spec.key)
            return OutcomeError(GuardErrorKind.EXECUTION, spec.key, "operation returned Error", err)


async def _await_pending(spec: SubmissionSpec) -> Outcome:
    """Poll until the in-flight submission settles or the wait runs out."""
    deadline = utcnow() + spec.policy.wait
    interval = spec.policy.poll_interval.total_seconds()

    while utcnow() < deadline:
        await asyncio.sleep(interval)
        match await spec.store.get(spec.key):
            case Error(err):
                return _store_error(spec, err)
            case Ok(None):
                # the holder failed or was cancelled; the key is free again
                return await _execute(spec)
            case Ok(SubmissionRecord() as record) if record.is_completed:
                if record.fingerprint != spec.fingerprint:
                    return _conflict(spec, "a different submission completed first")
                return OutcomeOk(record.value, replayed=True, key=spec.key)
            case Ok(_):
                continue

    logger.warning("gave up waiting for submission %s after %s", spec.key, spec.policy.wait)
    return OutcomeError(GuardErrorKind.TIMEOUT, spec.key, "timed out waiting for the in-flight submission")


@polymorphic[Outcome]
class SubmissionOutcome:
    @case
    def store_failure(cls, node: StoreFailure) -> Outcome:
        return _store_error(node.spec, node.error)

    @case
    def replay(cls, node: CompletedRecord) -> Outcome:
        if not node.same_submission:
            raise NodeError("Fingerprint differs")
        logger.info("replaying completed submission %s", node.spec.key)
        return OutcomeOk(node.record.value, replayed=True, key=node.spec.key)

    @case
    async def supersede(cls, node: CompletedRecord) -> Outcome:
        """A new payload under a settled key: forget the old result."""
        if node.same_submission:
            raise NodeError("Fingerprint matches")
        match await node.spec.store.release(node.spec.key):
            case Error(err):
                return _store_error(node.spec, err)
            case Ok(_):
                return await _execute(node.spec)

    @case
    def rejected(cls, node: PendingRecord) -> Outcome:
        if node.same_submission and node.spec.policy.on_duplicate is OnDuplicate.COALESCE:
            raise NodeError("Coalescing")
        return _conflict(node.spec, "a submission with this key is in flight")

    @case
    async def coalesce(cls, node: PendingRecord) -> Outcome:
        if not node.same_submission or node.spec.policy.on_duplicate is not OnDuplicate.COALESCE:
            raise NodeError("Not coalescing")
        return await _await_pending(node.spec)

    @case
    async def execute_new(cls, node: NoRecord) -> Outcome:
        return await _execute(node.spec)


# ═══════════════════════════════════════════════════════════════════════════════
# Final
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class FinalResult:
    def __init__(self, outcome: Outcome) -> None:
        self.outcome = outcome

    @classmethod
    def __compose__(cls, outcome: SubmissionOutcome) -> "FinalResult":
        return cls(outcome.value)

    def to_result(self) -> Result[Guarded[Any], GuardError[Any]]:
        match self.outcome:
            case OutcomeOk(value=value, replayed=replayed, key=key):
                return Ok(Guarded(value, replayed, key))
            case OutcomeError(kind=kind, key=key, message=message, original_error=original):
                return Error(GuardError(kind, key, message, original))


_GUARD = G.graph(FinalResult)


async def run_guarded(spec: SubmissionSpec) -> Result[Guarded[Any], GuardError[Any]]:
    node = await _GUARD.run().inject(spec)
    return node.to_result()


__all__ = (
    "SubmissionSpec",
    "Outcome",
    "OutcomeOk",
    "OutcomeError",
    "FetchRecord",
    "StoreFailure",
    "CompletedRecord",
    "PendingRecord",
    "NoRecord",
    "SubmissionOutcome",
    "FinalResult",
    "run_guarded",
)
