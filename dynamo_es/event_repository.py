"""DynamoDB implementation of PersistedEventRepository.

Events live in one table, keyed by ``"{aggregate_type}:{aggregate_id}"``
with the event sequence as sort key. Snapshots live in a second table
under the same partition key. DynamoDB offers no optimistic concurrency of
its own, so every write carries a condition:

- each event put requires that nothing exists yet at its exact key, which
  gives "first writer wins" per sequence number
- the snapshot put requires the stored snapshot version to be exactly one
  less than the new one, or no snapshot at all

and all puts of one ``persist`` call go into a single transaction, so a
batch is either written entirely or not at all.
"""

import logging
from collections.abc import AsyncIterator, Sequence
from typing import TYPE_CHECKING, Any

from .codec import (
    AGGREGATE_ID_SEQUENCE,
    AGGREGATE_TYPE,
    AGGREGATE_TYPE_AND_ID,
    CURRENT_SNAPSHOT,
    event_to_item,
    item_to_event,
    item_to_snapshot,
    number_attribute,
    snapshot_to_item,
)
from .domain import SerializedEvent, SerializedSnapshot, SnapshotUpdate, aggregate_key
from .repository import PersistedEventRepository, validate_batch
from .table import DynamoTable
from .transaction import MAX_TRANSACTION_ITEMS, TransactionBuilder

if TYPE_CHECKING:
    from .config import DynamoConfiguration

LOGGER = logging.getLogger(__name__)

DEFAULT_EVENTS_TABLE = "Events"
DEFAULT_SNAPSHOT_TABLE = "Snapshots"

EVENT_CONDITION = f"attribute_not_exists({AGGREGATE_ID_SEQUENCE})"
SNAPSHOT_CONDITION = (
    f"attribute_not_exists({CURRENT_SNAPSHOT}) OR ({CURRENT_SNAPSHOT} = :current_snapshot)"
)


class DynamoEventRepository(PersistedEventRepository):
    """Event and snapshot repository backed by two DynamoDB tables.

    The repository keeps no state besides the client: no cache, no locks.
    Concurrent callers coordinate purely through DynamoDB's conditional
    writes, so callers must read the latest sequence before appending.

    Attributes:
        client: boto3 DynamoDB client
        events: Events table
        snapshots: Snapshots table
        max_transaction_items: Maximum puts per persist call

    Examples:
        >>> repo = DynamoEventRepository(boto3.client("dynamodb"))
        >>>
        >>> # Append events
        >>> await repo.persist([event_1, event_2])
        >>>
        >>> # Append and compact in one transaction
        >>> await repo.persist(
        ...     [event_3],
        ...     SnapshotUpdate(aggregate_id="acc-1", aggregate=state, current_snapshot=1),
        ... )
        >>>
        >>> # Reload
        >>> snapshot = await repo.get_snapshot("BankAccount", "acc-1")
        >>> events = await repo.get_last_events(
        ...     "BankAccount", "acc-1", snapshot.current_sequence
        ... )
    """

    def __init__(
        self,
        client: Any,
        events_table: str = DEFAULT_EVENTS_TABLE,
        snapshot_table: str = DEFAULT_SNAPSHOT_TABLE,
        max_transaction_items: int = MAX_TRANSACTION_ITEMS,
    ) -> None:
        """Initialize the repository.

        Args:
            client: boto3 DynamoDB client
            events_table: Name of the events table
            snapshot_table: Name of the snapshots table
            max_transaction_items: Maximum puts per transaction
        """
        self.client = client
        self.events = DynamoTable(client, events_table)
        self.snapshots = DynamoTable(client, snapshot_table)
        self.max_transaction_items = max_transaction_items

    @classmethod
    def from_config(cls, config: "DynamoConfiguration") -> "DynamoEventRepository":
        """Create a repository from configuration, sharing its client."""
        return cls(
            config.client,
            events_table=config.events_table,
            snapshot_table=config.snapshot_table,
            max_transaction_items=config.max_transaction_items,
        )

    # ========== Writes ==========

    async def persist(
        self,
        events: Sequence[SerializedEvent],
        snapshot_update: SnapshotUpdate | None = None,
    ) -> None:
        if snapshot_update is None:
            await self.insert_events(events)
            return
        validate_batch(events, snapshot_update)
        await self.update_snapshot(events[-1].aggregate_type, snapshot_update, events)

    async def insert_events(self, events: Sequence[SerializedEvent]) -> None:
        """Append events atomically without touching the snapshot.

        Raises:
            OptimisticLockError: If any of the sequence numbers is already taken.
            TransactionListTooLongError: If there are too many events for
                one transaction.
            ValueError: If a sequence appears twice in the batch.
        """
        validate_batch(events)
        if not events:
            return
        transaction, _ = self._build_event_puts(events)
        await transaction.commit(self.client)
        LOGGER.debug(
            "Appended %d event(s) to %s", len(events), events[0].partition_key
        )

    async def update_snapshot(
        self,
        aggregate_type: str,
        snapshot_update: SnapshotUpdate,
        events: Sequence[SerializedEvent],
    ) -> None:
        """Append events and replace the snapshot in one transaction.

        The snapshot put is conditioned on the stored ``CurrentSnapshot``
        being ``snapshot_update.current_snapshot - 1`` (or absent), so two
        concurrent compactions cannot both win.

        Raises:
            OptimisticLockError: If a sequence number is taken or the snapshot
                version moved on.
            ValueError: If ``events`` is empty, repeats a sequence, or holds an
                event of another aggregate. No request is sent.
        """
        validate_batch(events, snapshot_update, aggregate_type)
        transaction, current_sequence = self._build_event_puts(events)
        expected_snapshot = snapshot_update.current_snapshot - 1
        transaction.put(
            self.snapshots.name,
            snapshot_to_item(aggregate_type, snapshot_update, current_sequence),
            SNAPSHOT_CONDITION,
            {":current_snapshot": number_attribute(expected_snapshot)},
        )
        await transaction.commit(self.client)
        LOGGER.debug(
            "Appended %d event(s) and snapshot %d to %s",
            len(events),
            snapshot_update.current_snapshot,
            aggregate_key(aggregate_type, snapshot_update.aggregate_id),
        )

    def _build_event_puts(
        self, events: Sequence[SerializedEvent]
    ) -> tuple[TransactionBuilder, int]:
        transaction = TransactionBuilder(self.max_transaction_items)
        current_sequence = 0
        for event in events:
            current_sequence = event.sequence
            transaction.put(self.events.name, event_to_item(event), EVENT_CONDITION)
        return transaction, current_sequence

    # ========== Reads ==========

    async def get_events(self, aggregate_type: str, aggregate_id: str) -> list[SerializedEvent]:
        items = await self.events.query_all(
            AGGREGATE_TYPE_AND_ID, aggregate_key(aggregate_type, aggregate_id)
        )
        return [item_to_event(item) for item in items]

    async def get_last_events(
        self, aggregate_type: str, aggregate_id: str, last_sequence: int
    ) -> list[SerializedEvent]:
        items = await self.events.query_all(
            AGGREGATE_TYPE_AND_ID,
            aggregate_key(aggregate_type, aggregate_id),
            sort_key=AGGREGATE_ID_SEQUENCE,
            after=last_sequence,
        )
        return [item_to_event(item) for item in items]

    async def get_snapshot(
        self, aggregate_type: str, aggregate_id: str
    ) -> SerializedSnapshot | None:
        item = await self.snapshots.query_first(
            AGGREGATE_TYPE_AND_ID, aggregate_key(aggregate_type, aggregate_id)
        )
        if item is None:
            return None
        return item_to_snapshot(item)

    async def stream_events(
        self, aggregate_type: str, aggregate_id: str
    ) -> AsyncIterator[SerializedEvent]:
        async for item in self.events.query(
            AGGREGATE_TYPE_AND_ID, aggregate_key(aggregate_type, aggregate_id)
        ):
            yield item_to_event(item)

    async def stream_all_events(self, aggregate_type: str) -> AsyncIterator[SerializedEvent]:
        async for item in self.events.scan(AGGREGATE_TYPE, aggregate_type):
            yield item_to_event(item)
