"""Sync queue: ordering, idempotent drain, at-least-once, same-entity and parent blocking."""

import json

import pytest
from sqlalchemy import select

from app.core.enums import SyncEntity, SyncOperation, SyncState
from app.core.models import SyncLog, SyncQueueEntry
from app.sync.queue import ALL_ENTITIES, SyncQueueManager
from app.sync.remote import REPLAY_HEADER, REPLAY_SYNC_QUEUE, RemoteClient


@pytest.fixture()
async def remote_client(remote):
    client = RemoteClient("http://remote.test", api_key="test-key", transport=remote.transport())
    yield client
    await client.aclose()


async def _enqueue(session_factory, *entries) -> None:
    async with session_factory() as db:
        queue = SyncQueueManager(db)
        for operation, entity, entity_id, data in entries:
            await queue.enqueue(operation, entity, entity_id, data)
        await db.commit()


async def _entries(session_factory):
    async with session_factory() as db:
        result = await db.execute(select(SyncQueueEntry).order_by(SyncQueueEntry.id))
        return list(result.scalars().all())


async def _drain(session_factory, remote_client):
    async with session_factory() as db:
        return await SyncQueueManager(db).drain(remote_client)


@pytest.mark.asyncio
async def test_enqueue_is_pending_until_drained(session_factory) -> None:
    await _enqueue(session_factory, (SyncOperation.CREATE, SyncEntity.SCHOOL, 1, {"id": 1, "name": "A"}))
    [entry] = await _entries(session_factory)
    assert entry.state == SyncState.PENDING.value
    assert SyncState(entry.state).wire_value == "no"
    assert entry.synced_at is None
    assert entry.timestamp > 0

    async with session_factory() as db:
        assert await SyncQueueManager(db).pending_count() == 1


@pytest.mark.asyncio
async def test_drain_replays_in_insertion_order(session_factory, remote, remote_client) -> None:
    await _enqueue(
        session_factory,
        (SyncOperation.CREATE, SyncEntity.SCHOOL, 1, {"id": 1, "name": "A"}),
        (SyncOperation.UPDATE, SyncEntity.SCHOOL, 1, {"id": 1, "name": "B"}),
        (SyncOperation.DELETE, SyncEntity.STUDENT, 7, {"id": 7}),
    )

    result = await _drain(session_factory, remote_client)
    assert result.synced == 3
    assert result.ok

    sent = remote.writes()
    assert [(r.method, r.url.path) for r in sent] == [
        ("POST", "/rest/v1/schools"),
        ("PATCH", "/rest/v1/schools"),
        ("DELETE", "/rest/v1/students"),
    ]
    assert sent[1].url.params["id"] == "eq.1"
    assert json.loads(sent[1].content) == {"id": 1, "name": "B"}
    assert all(r.headers[REPLAY_HEADER] == REPLAY_SYNC_QUEUE for r in sent)
    assert all(r.headers["apikey"] == "test-key" for r in sent)

    entries = await _entries(session_factory)
    assert all(SyncState(e.state).wire_value == "yes" for e in entries)
    assert all(e.synced_at is not None for e in entries)


@pytest.mark.asyncio
async def test_second_drain_sends_nothing(session_factory, remote, remote_client) -> None:
    await _enqueue(session_factory, (SyncOperation.CREATE, SyncEntity.FEE, 3, {"id": 3}))
    await _drain(session_factory, remote_client)
    sent = len(remote.requests)

    result = await _drain(session_factory, remote_client)
    assert result.synced == 0
    assert len(remote.requests) == sent


@pytest.mark.asyncio
async def test_network_failure_leaves_entries_pending(session_factory, remote, remote_client) -> None:
    await _enqueue(
        session_factory,
        (SyncOperation.CREATE, SyncEntity.SCHOOL, 1, {"id": 1}),
        (SyncOperation.CREATE, SyncEntity.STUDENT, 2, {"id": 2}),
    )
    remote.online = False
    result = await _drain(session_factory, remote_client)
    assert result.interrupted
    assert result.synced == 0

    entries = await _entries(session_factory)
    assert [e.state for e in entries] == ["pending", "pending"]
    assert entries[0].attempts == 1
    assert entries[0].last_error

    remote.online = True
    result = await _drain(session_factory, remote_client)
    assert result.synced == 2
    assert [r.url.path for r in remote.writes()] == ["/rest/v1/schools", "/rest/v1/students"]


@pytest.mark.asyncio
async def test_rejected_entry_blocks_later_entries_of_same_entity(session_factory, remote, remote_client) -> None:
    await _enqueue(
        session_factory,
        (SyncOperation.CREATE, SyncEntity.STUDENT, 5, {"id": 5}),
        (SyncOperation.UPDATE, SyncEntity.STUDENT, 5, {"id": 5, "grade": "6"}),
        (SyncOperation.CREATE, SyncEntity.SCHOOL, 1, {"id": 1}),
    )
    remote.fail_status[("POST", "students")] = 409

    result = await _drain(session_factory, remote_client)
    assert (result.synced, result.failed, result.skipped) == (1, 1, 1)
    assert not result.ok
    assert [(r.method, r.url.path) for r in remote.writes()] == [
        ("POST", "/rest/v1/students"),
        ("POST", "/rest/v1/schools"),
    ]

    entries = await _entries(session_factory)
    assert [e.state for e in entries] == ["pending", "pending", "synced"]
    assert "409" in entries[0].last_error

    # Once the remote accepts it, the blocked update follows in order.
    remote.fail_status.clear()
    result = await _drain(session_factory, remote_client)
    assert result.synced == 2
    assert [r.method for r in remote.writes()[-2:]] == ["POST", "PATCH"]


@pytest.mark.asyncio
async def test_rejected_parent_holds_back_children(session_factory, remote, remote_client) -> None:
    await _enqueue(
        session_factory,
        (SyncOperation.CREATE, SyncEntity.FEE, 7, {"id": 7, "school_id": 1}),
        (SyncOperation.CREATE, SyncEntity.INSTALLMENT, 11, {"id": 11, "fee_id": 7, "installment_number": 1}),
        (SyncOperation.CREATE, SyncEntity.INSTALLMENT, 12, {"id": 12, "fee_id": 8, "installment_number": 1}),
        (SyncOperation.CREATE, SyncEntity.PAYMENT, 20, {"id": 20, "fee_id": 7, "student_id": 2}),
    )
    remote.fail_status[("POST", "fees")] = 409

    result = await _drain(session_factory, remote_client)
    assert (result.synced, result.failed, result.skipped) == (1, 1, 2)
    assert [(r.method, r.url.path) for r in remote.writes()] == [
        ("POST", "/rest/v1/fees"),
        ("POST", "/rest/v1/installments"),
    ]
    assert json.loads(remote.writes()[1].content)["id"] == 12

    entries = await _entries(session_factory)
    assert [e.state for e in entries] == ["pending", "pending", "synced", "pending"]
    assert entries[1].attempts == 0

    remote.fail_status.clear()
    result = await _drain(session_factory, remote_client)
    assert result.synced == 3
    assert [r.url.path for r in remote.writes()[-3:]] == [
        "/rest/v1/fees",
        "/rest/v1/installments",
        "/rest/v1/payments",
    ]


@pytest.mark.asyncio
async def test_held_back_child_blocks_its_own_children(session_factory, remote, remote_client) -> None:
    await _enqueue(
        session_factory,
        (SyncOperation.CREATE, SyncEntity.STUDENT, 5, {"id": 5, "school_id": 1}),
        (SyncOperation.CREATE, SyncEntity.FEE, 9, {"id": 9, "school_id": 1, "student_id": 5}),
        (SyncOperation.CREATE, SyncEntity.INSTALLMENT, 13, {"id": 13, "fee_id": 9}),
        (SyncOperation.UPDATE, SyncEntity.FEE, 9, {"id": 9, "name": "Tuition"}),
    )
    remote.fail_status[("POST", "students")] = 422

    result = await _drain(session_factory, remote_client)
    assert (result.synced, result.failed, result.skipped) == (0, 1, 3)
    assert [r.url.path for r in remote.writes()] == ["/rest/v1/students"]
    assert all(e.state == "pending" for e in await _entries(session_factory))


@pytest.mark.asyncio
async def test_drain_writes_sync_log(session_factory, remote_client) -> None:
    await _enqueue(
        session_factory,
        (SyncOperation.CREATE, SyncEntity.SCHOOL, 1, {"id": 1}),
        (SyncOperation.CREATE, SyncEntity.STUDENT, 2, {"id": 2}),
        (SyncOperation.CREATE, SyncEntity.STUDENT, 3, {"id": 3}),
    )
    await _drain(session_factory, remote_client)

    async with session_factory() as db:
        rows = (await db.execute(select(SyncLog))).scalars().all()
        counts = {r.entity: r.count for r in rows}
        assert counts == {"school": 1, "student": 2, ALL_ENTITIES: 3}
        assert await SyncQueueManager(db).last_synced_at() is not None


@pytest.mark.asyncio
async def test_list_entries_filters_by_state(session_factory, remote_client) -> None:
    await _enqueue(session_factory, (SyncOperation.CREATE, SyncEntity.SCHOOL, 1, {"id": 1}))
    await _drain(session_factory, remote_client)
    await _enqueue(session_factory, (SyncOperation.UPDATE, SyncEntity.SCHOOL, 1, {"id": 1}))

    async with session_factory() as db:
        queue = SyncQueueManager(db)
        assert len(await queue.list_entries()) == 2
        assert [e.operation for e in await queue.list_entries(state=SyncState.PENDING)] == ["update"]
        assert [e.operation for e in await queue.list_entries(state=SyncState.SYNCED)] == ["create"]
