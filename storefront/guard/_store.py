"""
Submission store — where claimed keys live.

All methods return Result; the graph turns a StoreError into a STORE_ERROR
outcome instead of raising.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from datetime import timedelta
from typing import Any, Protocol

from kungfu import Error, Ok, Result

from storefront._types import utcnow
from storefront.guard._types import RecordState, SubmissionRecord


@dataclass(frozen=True, slots=True)
class StoreError:
    message: str
    cause: Exception | None = None


class SubmissionStore(Protocol):
    async def get(self, key: str) -> Result[SubmissionRecord[Any] | None, StoreError]:
        """Unexpired record or Ok(None)."""
        ...

    async def claim(
        self,
        key: str,
        fingerprint: str,
        lease: timedelta,
    ) -> Result[bool, StoreError]:
        """
        Atomically create a PENDING record.

        Ok(False) when an unexpired record already holds the key.
        """
        ...

    async def complete(self, key: str, value: Any, ttl: timedelta) -> Result[None, StoreError]: ...

    async def release(self, key: str) -> Result[bool, StoreError]:
        """Drop the record. Ok(True) if it existed."""
        ...


class MemorySubmissionStore:
    """
    In-process store. One lock guards the dict, so ``claim`` is a real
    compare-and-set within one event loop.
    """

    def __init__(self) -> None:
        self._records: dict[str, SubmissionRecord[Any]] = {}
        self._lock = asyncio.Lock()

    def _live(self, key: str) -> SubmissionRecord[Any] | None:
        record = self._records.get(key)
        if record is not None and record.is_expired:
            del self._records[key]
            return None
        return record

    async def get(self, key: str) -> Result[SubmissionRecord[Any] | None, StoreError]:
        async with self._lock:
            return Ok(self._live(key))

    async def claim(self, key: str, fingerprint: str, lease: timedelta) -> Result[bool, StoreError]:
        async with self._lock:
            if self._live(key) is not None:
                return Ok(False)
            now = utcnow()
            self._records[key] = SubmissionRecord(
                key=key,
                state=RecordState.PENDING,
                fingerprint=fingerprint,
                value=None,
                created_at=now,
                expires_at=now + lease,
            )
            return Ok(True)

    async def complete(self, key: str, value: Any, ttl: timedelta) -> Result[None, StoreError]:
        async with self._lock:
            record = self._records.get(key)
            if record is None or not record.is_pending:
                return Error(StoreError(f"no pending record for key: {key}"))
            self._records[key] = replace(
                record,
                state=RecordState.COMPLETED,
                value=value,
                expires_at=utcnow() + ttl,
            )
            return Ok(None)

    async def release(self, key: str) -> Result[bool, StoreError]:
        async with self._lock:
            return Ok(self._records.pop(key, None) is not None)

    def __len__(self) -> int:
        return len(self._records)


__all__ = ("StoreError", "SubmissionStore", "MemorySubmissionStore")
