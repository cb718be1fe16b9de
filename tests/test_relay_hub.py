import asyncio
import json

import pytest

from helpers import FakeServerSocket, wait_for
from transrelay.relay import RelayHub, SessionLockRegistry
from transrelay.store import InMemorySessionStore
from transrelay.store.base import SessionRecord


class SlowFirstRead(InMemorySessionStore):
    """The first get() yields long enough for other writers to queue up behind it."""

    def __init__(self):
        super().__init__()
        self.reads = 0

    async def get(self, session_id):
        self.reads += 1
        if self.reads == 1:
            await asyncio.sleep(0.05)
        return await super().get(session_id)


def _frame(**data):
    return json.dumps({"sessionId": "abc", **data})


@pytest.mark.asyncio
async def test_broadcast_skips_sender_and_reaches_every_other_connection():
    hub = RelayHub(InMemorySessionStore())
    sockets = [FakeServerSocket() for _ in range(3)]
    conns = [hub.register(s) for s in sockets]

    await hub.handle_frame(conns[0], _frame(transcription="hi"))
    await wait_for(lambda: all(len(s.sent) == 1 for s in sockets[1:]))

    assert sockets[0].sent == []
    assert conns[0].session_id == "abc"
    await hub.close_all()
    assert hub.connection_count == 0


@pytest.mark.asyncio
async def test_failed_send_closes_only_that_connection():
    hub = RelayHub(InMemorySessionStore())
    sender = hub.register(FakeServerSocket())
    broken = hub.register(FakeServerSocket(fail=True))
    healthy_socket = FakeServerSocket()
    hub.register(healthy_socket)

    await hub.handle_frame(sender, _frame(transcription="one"))
    await wait_for(lambda: not broken.is_open)
    await hub.handle_frame(sender, _frame(transcription="two"))
    await wait_for(lambda: len(healthy_socket.sent) == 2)

    assert [json.loads(t)["transcription"] for t in healthy_socket.sent] == ["one", "two"]
    await hub.close_all()


@pytest.mark.asyncio
async def test_stalled_connection_drops_frames_without_delaying_others():
    hub = RelayHub(InMemorySessionStore(), send_queue_size=2)
    sender = hub.register(FakeServerSocket())
    gate = asyncio.Event()
    stalled = hub.register(FakeServerSocket(gate=gate))
    fast_socket = FakeServerSocket()
    hub.register(fast_socket)

    for i in range(6):
        await hub.handle_frame(sender, _frame(transcription=str(i)))
        await wait_for(lambda: len(fast_socket.sent) == i + 1)

    assert stalled.dropped == 3
    gate.set()
    await hub.close_all()


@pytest.mark.asyncio
async def test_same_session_merges_follow_receive_order():
    store = SlowFirstRead()
    hub = RelayHub(store)
    a = hub.register(FakeServerSocket())
    b = hub.register(FakeServerSocket())

    await asyncio.gather(
        hub.handle_frame(a, _frame(fullTranslations={"fr": "first"})),
        hub.handle_frame(b, _frame(fullTranslations={"fr": "second"})),
    )

    record = await store.get("abc")
    assert record.translations_by_language["fr"] == "\nfirst\nsecond"
    await hub.close_all()


@pytest.mark.asyncio
async def test_binary_frames_are_decoded_and_invalid_utf8_dropped():
    hub = RelayHub(InMemorySessionStore())
    sender = hub.register(FakeServerSocket())
    other = FakeServerSocket()
    hub.register(other)

    await hub.handle_frame(sender, b"\xff\xfe")
    await hub.handle_frame(sender, _frame(transcription="ok").encode("utf-8"))
    await wait_for(lambda: len(other.sent) == 1)

    assert json.loads(other.sent[0])["transcription"] == "ok"
    await hub.close_all()


@pytest.mark.asyncio
async def test_lock_registry_releases_unused_locks():
    locks = SessionLockRegistry()
    async with locks.hold("abc"):
        assert len(locks) == 1
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_odd_live_only_fields_are_still_relayed_verbatim():
    store = InMemorySessionStore()
    hub = RelayHub(store)
    sender = hub.register(FakeServerSocket())
    other = FakeServerSocket()
    hub.register(other)
    raw = '{"sessionId":"abc","transcription":7,"translations":{"fr":null},"isComplete":"yes","fullTranslations":{"fr":"salut"}}'

    await hub.handle_frame(sender, raw)
    await wait_for(lambda: len(other.sent) == 1)

    assert other.sent == [raw]
    record = await store.get("abc")
    assert record.translations_by_language == {"fr": "\nsalut"}
    await hub.close_all()


@pytest.mark.asyncio
async def test_bad_merge_field_type_drops_frame():
    store = InMemorySessionStore()
    hub = RelayHub(store)
    sender = hub.register(FakeServerSocket())
    other = FakeServerSocket()
    hub.register(other)

    await hub.handle_frame(sender, _frame(languages="fr"))
    await hub.handle_frame(sender, _frame(transcription="after"))
    await wait_for(lambda: len(other.sent) == 1)

    assert json.loads(other.sent[0])["transcription"] == "after"
    assert (await store.get("abc")).target_languages == []
    await hub.close_all()


@pytest.mark.asyncio
async def test_create_session_waits_for_in_flight_merge():
    store = SlowFirstRead()
    await store.put("abc", SessionRecord(translations_by_language={"fr": "\nold"}))
    hub = RelayHub(store)
    sender = hub.register(FakeServerSocket())

    await asyncio.gather(
        hub.handle_frame(sender, _frame(fullTranslations={"fr": "x"})),
        hub.create_session("abc"),
    )

    record = await store.get("abc")
    assert record.translations_by_language == {}
    assert len(hub._locks) == 0
    await hub.close_all()
