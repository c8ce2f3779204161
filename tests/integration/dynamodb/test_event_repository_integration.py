"""Integration tests for DynamoEventRepository against DynamoDB Local."""

import pytest

from dynamo_es import (
    DynamoEventRepository,
    OptimisticLockError,
    SnapshotUpdate,
    TransactionListTooLongError,
)
from tests.fixtures import ACCOUNT_TYPE, account_event, opened_event


@pytest.mark.integration
@pytest.mark.asyncio
async def test_commit_and_load_events(events: DynamoEventRepository, aggregate_id: str):
    """Test appended events load back in ascending sequence order."""
    appended = [opened_event(aggregate_id), account_event(aggregate_id, 2, amount=75)]

    await events.persist(appended)
    loaded = await events.get_events(ACCOUNT_TYPE, aggregate_id)

    assert loaded == appended


@pytest.mark.integration
@pytest.mark.asyncio
async def test_duplicate_sequence_rejects_whole_batch(
    events: DynamoEventRepository, aggregate_id: str
):
    """Test a batch with one taken sequence writes nothing at all."""
    await events.persist([opened_event(aggregate_id), account_event(aggregate_id, 2)])

    with pytest.raises(OptimisticLockError):
        await events.persist(
            [account_event(aggregate_id, 2, amount=1), account_event(aggregate_id, 3)]
        )

    loaded = await events.get_events(ACCOUNT_TYPE, aggregate_id)
    assert [e.sequence for e in loaded] == [1, 2]
    assert loaded[1].payload == {"amount": 20}


@pytest.mark.integration
@pytest.mark.asyncio
async def test_second_writer_at_same_sequence_loses(
    events: DynamoEventRepository, aggregate_id: str
):
    """Test two writers that both read sequence 1 cannot both append sequence 2."""
    await events.persist([opened_event(aggregate_id)])
    last_seen = (await events.get_events(ACCOUNT_TYPE, aggregate_id))[-1].sequence

    await events.persist([account_event(aggregate_id, last_seen + 1, amount=5)])
    with pytest.raises(OptimisticLockError):
        await events.persist([account_event(aggregate_id, last_seen + 1, amount=7)])

    loaded = await events.get_events(ACCOUNT_TYPE, aggregate_id)
    assert [e.payload for e in loaded] == [{"owner": "Alice"}, {"amount": 5}]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_snapshot_versions(events: DynamoEventRepository, aggregate_id: str):
    """Test the snapshot is only replaced by the next snapshot version."""
    await events.persist(
        [opened_event(aggregate_id)],
        SnapshotUpdate(aggregate_id=aggregate_id, aggregate={"balance": 0}, current_snapshot=1),
    )

    with pytest.raises(OptimisticLockError):
        await events.persist(
            [account_event(aggregate_id, 2)],
            SnapshotUpdate(aggregate_id=aggregate_id, aggregate={"balance": 20}, current_snapshot=1),
        )

    await events.persist(
        [account_event(aggregate_id, 2), account_event(aggregate_id, 3)],
        SnapshotUpdate(aggregate_id=aggregate_id, aggregate={"balance": 50}, current_snapshot=2),
    )

    snapshot = await events.get_snapshot(ACCOUNT_TYPE, aggregate_id)
    assert snapshot is not None
    assert snapshot.aggregate == {"balance": 50}
    assert snapshot.current_sequence == 3
    assert snapshot.current_snapshot == 2

    after_snapshot = await events.get_last_events(ACCOUNT_TYPE, aggregate_id, 1)
    assert [e.sequence for e in after_snapshot] == [2, 3]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_absent_aggregate(events: DynamoEventRepository):
    assert await events.get_events(ACCOUNT_TYPE, "missing") == []
    assert await events.get_snapshot(ACCOUNT_TYPE, "missing") is None


@pytest.mark.integration
@pytest.mark.asyncio
async def test_oversized_batch_is_rejected(events: DynamoEventRepository, aggregate_id: str):
    with pytest.raises(TransactionListTooLongError):
        await events.persist([account_event(aggregate_id, n) for n in range(1, 27)])

    assert await events.get_events(ACCOUNT_TYPE, aggregate_id) == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_stream_all_events_by_type(events: DynamoEventRepository):
    await events.persist([opened_event("acc-a"), account_event("acc-a", 2)])
    await events.persist([opened_event("acc-b", owner="Bob")])

    streamed = [e async for e in events.stream_all_events(ACCOUNT_TYPE)]

    assert sorted((e.aggregate_id, e.sequence) for e in streamed) == [
        ("acc-a", 1),
        ("acc-a", 2),
        ("acc-b", 1),
    ]
