"""Interception layer: holding failed writes, FIFO replay and retention expiry."""

import json

import pytest

from app.core.exceptions import RemoteUnavailableError
from app.sync.interception import HeldRequestQueue, InterceptingTransport
from app.sync.remote import REPLAY_HEADER, REPLAY_HELD, REPLAY_SYNC_QUEUE, RemoteClient


class Clock:
    def __init__(self, now_ms: int = 1_700_000_000_000) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, minutes: int) -> None:
        self.now_ms += minutes * 60 * 1000


@pytest.fixture()
def clock() -> Clock:
    return Clock()


@pytest.fixture()
def held_queue(session_factory, clock) -> HeldRequestQueue:
    return HeldRequestQueue(session_factory, retention_minutes=60, clock=clock)


@pytest.fixture()
async def remote_client(remote, held_queue):
    client = RemoteClient(
        "http://remote.test",
        api_key="test-key",
        transport=InterceptingTransport(held_queue, remote.transport()),
    )
    yield client
    await client.aclose()


async def _hold_writes(remote, remote_client, *rows) -> None:
    remote.online = False
    for table, row in rows:
        with pytest.raises(RemoteUnavailableError):
            await remote_client.insert(table, row)
    remote.online = True


@pytest.mark.asyncio
async def test_failed_write_is_held(remote, remote_client, held_queue) -> None:
    await _hold_writes(remote, remote_client, ("payments", {"id": 1, "amount": "10.00"}))

    [held] = await held_queue.list_held()
    assert held.method == "POST"
    assert held.url == "http://remote.test/rest/v1/payments"
    assert json.loads(held.body) == {"id": 1, "amount": "10.00"}
    assert held.headers["apikey"] == "test-key"
    assert "content-length" not in {k.lower() for k in held.headers}
    assert held.attempts == 1
    assert "ConnectError" in held.last_error


@pytest.mark.asyncio
async def test_reads_and_replays_are_not_held(remote, remote_client, held_queue) -> None:
    remote.online = False
    assert await remote_client.probe() is False
    with pytest.raises(RemoteUnavailableError):
        await remote_client.insert("fees", {"id": 1}, replay=REPLAY_SYNC_QUEUE)
    assert await held_queue.count() == 0


@pytest.mark.asyncio
async def test_replay_is_fifo(remote, remote_client, held_queue) -> None:
    await _hold_writes(
        remote, remote_client,
        ("fees", {"id": 1}),
        ("installments", {"id": 2}),
        ("payments", {"id": 3}),
    )

    result = await held_queue.replay(remote_client.send)
    assert result.replayed == 3
    assert not result.stopped
    assert [r.url.path.rsplit("/", 1)[-1] for r in remote.writes()] == ["fees", "installments", "payments"]
    assert all(r.headers[REPLAY_HEADER] == REPLAY_HELD for r in remote.writes())
    assert await held_queue.count() == 0


@pytest.mark.asyncio
async def test_replay_stops_on_first_failure(remote, remote_client, held_queue) -> None:
    await _hold_writes(
        remote, remote_client,
        ("fees", {"id": 1}),
        ("installments", {"id": 2}),
        ("payments", {"id": 3}),
    )
    remote.fail_status[("POST", "installments")] = 503

    result = await held_queue.replay(remote_client.send)
    assert result.replayed == 1
    assert result.stopped
    assert result.remaining == 2
    # The payment behind the failed request was never sent.
    assert [r.url.path.rsplit("/", 1)[-1] for r in remote.writes()] == ["fees", "installments"]

    held = await held_queue.list_held()
    assert [h.url.rsplit("/", 1)[-1] for h in held] == ["installments", "payments"]
    assert held[0].attempts == 2

    remote.fail_status.clear()
    result = await held_queue.replay(remote_client.send)
    assert result.replayed == 2
    assert await held_queue.count() == 0


@pytest.mark.asyncio
async def test_replay_network_failure_keeps_batch(remote, remote_client, held_queue) -> None:
    await _hold_writes(remote, remote_client, ("fees", {"id": 1}), ("fees", {"id": 2}))
    remote.online = False

    result = await held_queue.replay(remote_client.send)
    assert result.stopped
    assert result.replayed == 0
    # Replays are tagged, so a failed replay is not held a second time.
    assert await held_queue.count() == 2


@pytest.mark.asyncio
async def test_rejected_request_is_dropped(remote, remote_client, held_queue) -> None:
    await _hold_writes(remote, remote_client, ("fees", {"id": 1}), ("fees", {"id": 2}))
    remote.fail_status[("POST", "fees")] = 400

    result = await held_queue.replay(remote_client.send)
    assert result.rejected == 2
    assert not result.stopped
    assert await held_queue.count() == 0


@pytest.mark.asyncio
async def test_expired_requests_are_reported_as_lost(remote, remote_client, held_queue, clock) -> None:
    await _hold_writes(remote, remote_client, ("fees", {"id": 1}))
    clock.advance(30)
    await _hold_writes(remote, remote_client, ("fees", {"id": 2}))

    clock.advance(31)
    expired = await held_queue.expire()
    assert [json.loads(h.body)["id"] for h in expired] == [1]
    assert await held_queue.count() == 1
    assert await held_queue.lost_write_count() == 1

    clock.advance(60)
    await held_queue.expire()
    assert await held_queue.count() == 0
    assert await held_queue.lost_write_count() == 2
