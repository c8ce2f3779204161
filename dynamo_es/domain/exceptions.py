"""Exceptions raised by the DynamoDB persistence layer.

Every failure surfaced by a repository is one of the five
``DynamoAggregateError`` subclasses below. None of them is retried
internally; the caller decides whether to reload and retry, back off,
or give up.
"""

from enum import Enum


class PersistenceErrorKind(str, Enum):
    """Framework-level classification of a persistence failure."""

    OPTIMISTIC_LOCK = "optimistic_lock"
    CONNECTION = "connection"
    DESERIALIZATION = "deserialization"
    UNKNOWN = "unknown"


class PersistenceError(Exception):
    """Storage-agnostic error handed to the command-handling layer.

    Attributes:
        kind: What went wrong, independent of the backing store.
        cause: The underlying exception, if any.
    """

    def __init__(self, kind: PersistenceErrorKind, cause: BaseException | None = None):
        self.kind = kind
        self.cause = cause
        super().__init__(f"{kind.value}: {cause}" if cause is not None else kind.value)


class DynamoAggregateError(Exception):
    """Base class for all DynamoDB persistence errors.

    Attributes:
        cause: The underlying store or transport exception, if any.
    """

    kind: PersistenceErrorKind = PersistenceErrorKind.UNKNOWN

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause

    def into_persistence_error(self) -> PersistenceError:
        """Convert to the framework-level error for this kind."""
        return PersistenceError(self.kind, self.cause or self)


class OptimisticLockError(DynamoAggregateError):
    """Raised when a conditional write's precondition fails.

    Another writer already stored an event at one of the sequence numbers,
    advanced the snapshot, or advanced the view. Reload current state and
    recompute the write before trying again.
    """

    kind = PersistenceErrorKind.OPTIMISTIC_LOCK

    def __init__(self, cause: BaseException | None = None):
        super().__init__("optimistic lock error", cause)


class DynamoConnectionError(DynamoAggregateError):
    """Raised on transport, timeout, throttling or client configuration failures."""

    kind = PersistenceErrorKind.CONNECTION

    def __init__(self, cause: BaseException):
        super().__init__(str(cause), cause)


class DeserializationError(DynamoAggregateError):
    """Raised when a stored record cannot be decoded into its expected shape."""

    kind = PersistenceErrorKind.DESERIALIZATION


class TransactionListTooLongError(DynamoAggregateError):
    """Raised before any network call when a transaction exceeds the item limit.

    Attributes:
        count: Number of operations in the rejected transaction.
        limit: Maximum number of operations allowed per transaction.
    """

    def __init__(self, count: int, limit: int):
        super().__init__(
            f"too many operations for a DynamoDB transaction: {count} (limit {limit})"
        )
        self.count = count
        self.limit = limit


class UnknownError(DynamoAggregateError):
    """Raised for any failure that does not fit another category."""

    def __init__(self, cause: BaseException):
        super().__init__(str(cause), cause)
