"""Repository contracts consumed by the event store and read-model layers."""

from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import AsyncIterator, Sequence
from typing import Generic, TypeVar

from pydantic import BaseModel

from .domain import (
    OptimisticLockError,
    SerializedEvent,
    SerializedSnapshot,
    SnapshotUpdate,
    TransactionListTooLongError,
    ViewContext,
    aggregate_key,
)
from .transaction import MAX_TRANSACTION_ITEMS

V = TypeVar("V", bound=BaseModel)


def validate_batch(
    events: Sequence[SerializedEvent],
    snapshot_update: SnapshotUpdate | None = None,
    aggregate_type: str | None = None,
) -> None:
    """Reject a batch that no store could write as given.

    A sequence number may appear only once per aggregate in one batch, and a
    snapshot update must cover at least one event of the aggregate it
    belongs to.

    Args:
        events: Events to append, in order.
        snapshot_update: Optional snapshot written with the events.
        aggregate_type: Aggregate type of the snapshot; defaults to the type
            of the first event.

    Raises:
        ValueError: If the batch is malformed. Nothing is sent to the store.
    """
    seen: set[tuple[str, int]] = set()
    for event in events:
        key = (event.partition_key, event.sequence)
        if key in seen:
            raise ValueError(
                f"sequence {event.sequence} appears more than once for {event.partition_key}"
            )
        seen.add(key)

    if snapshot_update is None:
        return
    if not events:
        raise ValueError("a snapshot update requires at least one event")
    if aggregate_type is None:
        aggregate_type = events[0].aggregate_type
    for event in events:
        if (
            event.aggregate_type != aggregate_type
            or event.aggregate_id != snapshot_update.aggregate_id
        ):
            raise ValueError(
                f"event {event.partition_key} does not belong to snapshot "
                f"{aggregate_key(aggregate_type, snapshot_update.aggregate_id)}"
            )


class PersistedEventRepository(ABC):
    """Durable storage for serialized events and aggregate snapshots.

    Implementations must make ``persist`` all-or-nothing: either every event
    (and the snapshot, when given) is written, or nothing is and an
    OptimisticLockError (or another DynamoAggregateError) is raised.
    """

    @staticmethod
    def in_memory() -> "PersistedEventRepository":
        """Create an in-memory repository for development/testing."""
        return InMemoryEventRepository()

    @abstractmethod
    async def get_events(self, aggregate_type: str, aggregate_id: str) -> list[SerializedEvent]:
        """Load every event of an aggregate in ascending sequence order.

        Returns an empty list if the aggregate has no events.
        """
        ...

    @abstractmethod
    async def get_last_events(
        self, aggregate_type: str, aggregate_id: str, last_sequence: int
    ) -> list[SerializedEvent]:
        """Load the events after ``last_sequence``, in ascending sequence order."""
        ...

    @abstractmethod
    async def get_snapshot(
        self, aggregate_type: str, aggregate_id: str
    ) -> SerializedSnapshot | None:
        """Load the current snapshot of an aggregate, or None if there is none."""
        ...

    @abstractmethod
    async def persist(
        self,
        events: Sequence[SerializedEvent],
        snapshot_update: SnapshotUpdate | None = None,
    ) -> None:
        """Append events, and optionally replace the snapshot, atomically.

        Args:
            events: Events to append, carrying caller-chosen contiguous sequences.
            snapshot_update: Optional snapshot to write in the same transaction.
                It covers the sequence of the last event in ``events``.

        Raises:
            OptimisticLockError: If any sequence is already taken or the
                snapshot version moved on.
            TransactionListTooLongError: If the events plus the snapshot
                exceed the transaction limit.
            ValueError: If the batch repeats a sequence, or the snapshot has
                no events of its own aggregate to cover.
        """
        ...

    @abstractmethod
    def stream_events(self, aggregate_type: str, aggregate_id: str) -> AsyncIterator[SerializedEvent]:
        """Iterate over every event of an aggregate in ascending sequence order."""
        ...

    @abstractmethod
    def stream_all_events(self, aggregate_type: str) -> AsyncIterator[SerializedEvent]:
        """Iterate over every event of every aggregate of one type."""
        ...


class ViewRepository(ABC, Generic[V]):
    """Storage for version-gated materialized views.

    Example:
        >>> class AccountSummary(BaseModel):
        ...     balance: int = 0
        >>>
        >>> repo = ViewRepository.in_memory()
        >>> await repo.update_view(AccountSummary(balance=10), ViewContext.new("acc-1"))
        >>> view, context = await repo.load_with_context("acc-1")
        >>> context.version
        1
    """

    @staticmethod
    def in_memory() -> "ViewRepository[V]":
        """Create an in-memory view repository for development/testing."""
        return InMemoryViewRepository()

    async def load(self, view_instance_id: str) -> V | None:
        """Load a view, or None if it has never been written."""
        loaded = await self.load_with_context(view_instance_id)
        return loaded[0] if loaded is not None else None

    @abstractmethod
    async def load_with_context(self, view_instance_id: str) -> tuple[V, ViewContext] | None:
        """Load a view together with the context needed to update it."""
        ...

    @abstractmethod
    async def update_view(self, view: V, context: ViewContext) -> None:
        """Write a view if its stored version still equals ``context.version``.

        The stored version becomes ``context.version + 1``.

        Raises:
            OptimisticLockError: If another writer advanced the view first.
        """
        ...


class InMemoryEventRepository(PersistedEventRepository):
    """Process-local repository with the same conditional-write semantics.

    Not safe for use across processes; intended for tests and prototyping.
    """

    def __init__(self, max_transaction_items: int = MAX_TRANSACTION_ITEMS) -> None:
        self.max_transaction_items = max_transaction_items
        self._events: dict[str, dict[int, SerializedEvent]] = defaultdict(dict)
        self._snapshots: dict[str, SerializedSnapshot] = {}

    async def get_events(self, aggregate_type: str, aggregate_id: str) -> list[SerializedEvent]:
        return await self.get_last_events(aggregate_type, aggregate_id, 0)

    async def get_last_events(
        self, aggregate_type: str, aggregate_id: str, last_sequence: int
    ) -> list[SerializedEvent]:
        stream = self._events.get(aggregate_key(aggregate_type, aggregate_id), {})
        return [stream[seq] for seq in sorted(stream) if seq > last_sequence]

    async def get_snapshot(
        self, aggregate_type: str, aggregate_id: str
    ) -> SerializedSnapshot | None:
        return self._snapshots.get(aggregate_key(aggregate_type, aggregate_id))

    async def persist(
        self,
        events: Sequence[SerializedEvent],
        snapshot_update: SnapshotUpdate | None = None,
    ) -> None:
        validate_batch(events, snapshot_update)
        count = len(events) + (1 if snapshot_update is not None else 0)
        if count > self.max_transaction_items:
            raise TransactionListTooLongError(count, self.max_transaction_items)
        if not events:
            return

        # Check every condition before writing anything.
        for event in events:
            if event.sequence in self._events.get(event.partition_key, {}):
                raise OptimisticLockError()

        snapshot_key = None
        if snapshot_update is not None:
            snapshot_key = aggregate_key(events[-1].aggregate_type, snapshot_update.aggregate_id)
            current = self._snapshots.get(snapshot_key)
            if current is not None and current.current_snapshot != snapshot_update.current_snapshot - 1:
                raise OptimisticLockError()

        for event in events:
            self._events[event.partition_key][event.sequence] = event
        if snapshot_update is not None and snapshot_key is not None:
            self._snapshots[snapshot_key] = SerializedSnapshot(
                aggregate_id=snapshot_update.aggregate_id,
                aggregate=snapshot_update.aggregate,
                current_sequence=events[-1].sequence,
                current_snapshot=snapshot_update.current_snapshot,
            )

    async def stream_events(
        self, aggregate_type: str, aggregate_id: str
    ) -> AsyncIterator[SerializedEvent]:
        for event in await self.get_events(aggregate_type, aggregate_id):
            yield event

    async def stream_all_events(self, aggregate_type: str) -> AsyncIterator[SerializedEvent]:
        for stream in list(self._events.values()):
            for sequence in sorted(stream):
                event = stream[sequence]
                if event.aggregate_type == aggregate_type:
                    yield event


class InMemoryViewRepository(ViewRepository[V]):
    """Process-local view repository with the same version gate."""

    def __init__(self) -> None:
        self._views: dict[str, tuple[V, int]] = {}

    async def load_with_context(self, view_instance_id: str) -> tuple[V, ViewContext] | None:
        stored = self._views.get(view_instance_id)
        if stored is None:
            return None
        view, version = stored
        return view.model_copy(deep=True), ViewContext(
            view_instance_id=view_instance_id, version=version
        )

    async def update_view(self, view: V, context: ViewContext) -> None:
        stored = self._views.get(context.view_instance_id)
        if stored is not None and stored[1] != context.version:
            raise OptimisticLockError()
        self._views[context.view_instance_id] = (view.model_copy(deep=True), context.version + 1)
