"""
Error family → HTTP status.
"""

from __future__ import annotations

from kungfu import Error, Ok, Result

from storefront.errors import (
    AuthenticationError,
    GatewayError,
    IntegrityError,
    InvalidTransitionError,
    NotFoundError,
    StockConflictError,
    StorefrontError,
    SubmissionInProgressError,
    ValidationError,
)

# First match wins; subclasses before their bases.
STATUS_FOR: tuple[tuple[type[StorefrontError], int], ...] = (
    (ValidationError, 422),
    (StockConflictError, 409),
    (InvalidTransitionError, 409),
    (SubmissionInProgressError, 409),
    (NotFoundError, 404),
    (AuthenticationError, 401),
    (GatewayError, 502),
    (IntegrityError, 500),
)


def status_for(exc: StorefrontError) -> int:
    for family, status in STATUS_FOR:
        if isinstance(exc, family):
            return status
    return 500


def unwrap_or_raise[T](result: Result[T, object]) -> T:
    """Ok value, or raise the error so the app's handler can map it."""
    match result:
        case Ok(value):
            return value
        case Error(err) if isinstance(err, Exception):
            raise err
        case Error(err):
            raise StorefrontError(str(err))
    raise TypeError(f"not a Result: {result!r}")


__all__ = ("STATUS_FOR", "status_for", "unwrap_or_raise")
