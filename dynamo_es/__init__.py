"""DynamoDB persistence for event sourcing and CQRS.

This package provides an event store, snapshot store and view store on top
of DynamoDB's conditional writes and ``TransactWriteItems``, with
optimistic concurrency control and a closed set of errors.

Usage:
    >>> from dynamo_es import DynamoConfiguration, SerializedEvent
    >>>
    >>> config = DynamoConfiguration(endpoint_url="http://localhost:8000")
    >>> repo = config.event_repository()
    >>>
    >>> await repo.persist([
    ...     SerializedEvent(
    ...         aggregate_type="BankAccount",
    ...         aggregate_id="acc-1",
    ...         sequence=1,
    ...         event_type="AccountOpened",
    ...         event_version="1.0",
    ...         payload={"owner": "Alice"},
    ...     )
    ... ])
    >>> events = await repo.get_events("BankAccount", "acc-1")
"""

from .classifier import classify_error
from .config import DynamoConfiguration
from .domain import (
    DeserializationError,
    DynamoAggregateError,
    DynamoConnectionError,
    OptimisticLockError,
    PersistenceError,
    PersistenceErrorKind,
    SerializedEvent,
    SerializedSnapshot,
    SnapshotUpdate,
    TransactionListTooLongError,
    UnknownError,
    ViewContext,
)
from .event_repository import DynamoEventRepository
from .repository import (
    InMemoryEventRepository,
    InMemoryViewRepository,
    PersistedEventRepository,
    ViewRepository,
)
from .transaction import MAX_TRANSACTION_ITEMS, ConditionalPut, TransactionBuilder, commit_transaction
from .view_repository import DynamoViewRepository

__all__ = [
    # Configuration
    "DynamoConfiguration",
    # Repositories
    "PersistedEventRepository",
    "ViewRepository",
    "DynamoEventRepository",
    "DynamoViewRepository",
    "InMemoryEventRepository",
    "InMemoryViewRepository",
    # Records
    "SerializedEvent",
    "SerializedSnapshot",
    "SnapshotUpdate",
    "ViewContext",
    # Transactions
    "ConditionalPut",
    "TransactionBuilder",
    "commit_transaction",
    "MAX_TRANSACTION_ITEMS",
    # Errors
    "classify_error",
    "DynamoAggregateError",
    "OptimisticLockError",
    "DynamoConnectionError",
    "DeserializationError",
    "TransactionListTooLongError",
    "UnknownError",
    "PersistenceError",
    "PersistenceErrorKind",
]
