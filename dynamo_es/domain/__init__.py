"""Serialized records and errors shared by all repositories.

- SerializedEvent: One immutable, sequenced fact about an aggregate
- SerializedSnapshot / SnapshotUpdate: Compacted aggregate state
- ViewContext: Version gate for materialized views
- DynamoAggregateError and subclasses: The closed error taxonomy
"""

from .event import SerializedEvent, aggregate_key
from .exceptions import (
    DeserializationError,
    DynamoAggregateError,
    DynamoConnectionError,
    OptimisticLockError,
    PersistenceError,
    PersistenceErrorKind,
    TransactionListTooLongError,
    UnknownError,
)
from .snapshot import SerializedSnapshot, SnapshotUpdate
from .view import ViewContext

__all__ = [
    "SerializedEvent",
    "aggregate_key",
    "SerializedSnapshot",
    "SnapshotUpdate",
    "ViewContext",
    "DynamoAggregateError",
    "OptimisticLockError",
    "DynamoConnectionError",
    "DeserializationError",
    "TransactionListTooLongError",
    "UnknownError",
    "PersistenceError",
    "PersistenceErrorKind",
]
