import asyncio
import json

from conftest import RecordingListener
from constants import ErrorKind
from domain.entities import default_settings_for
from domain.value_objects import MediaCategory, SourceKind, TransferProgress
from services.event_broadcaster import EventBroadcaster
from services.websocket import ConnectionManager, WebSocketEventListener


class ExplodingListener(RecordingListener):
    async def on_entry_removed(self, entry_id):
        raise RuntimeError("listener bug")


class FakeWebSocket:
    def __init__(self):
        self.sent = []

    async def accept(self):
        pass

    async def send_json(self, data):
        self.sent.append(data)

    async def send_text(self, text):
        self.sent.append(json.loads(text))


def make_entry(registry):
    return registry.create_entry(
        source_kind=SourceKind.LOCAL_FILE,
        name="clip.mp4",
        category=MediaCategory.VIDEO,
        mime_type="video/mp4",
        settings=default_settings_for(MediaCategory.VIDEO),
        size_bytes=3,
        payload=b"abc",
    )


def test_events_reach_every_listener_in_order(registry):
    broadcaster = EventBroadcaster()
    first, second = RecordingListener(), RecordingListener()
    broadcaster.subscribe(first)
    broadcaster.subscribe(second)
    entry = make_entry(registry)

    async def scenario():
        await broadcaster.entry_created(entry)
        await broadcaster.progress(entry.id, TransferProgress(10, 20, 0.5))
        await broadcaster.entry_updated(entry)
        await broadcaster.entry_removed(entry.id)

    asyncio.run(scenario())

    assert first.names() == second.names() == ["created", "progress", "updated", "removed"]


def test_failing_listener_does_not_stop_others(registry):
    broadcaster = EventBroadcaster()
    broken, healthy = ExplodingListener(), RecordingListener()
    broadcaster.subscribe(broken)
    broadcaster.subscribe(healthy)

    asyncio.run(broadcaster.entry_removed("abc"))

    assert healthy.events == [("removed", "abc")]


def test_unsubscribe_stops_delivery():
    broadcaster = EventBroadcaster()
    listener = RecordingListener()
    unsubscribe = broadcaster.subscribe(listener)
    assert broadcaster.listener_count == 1

    unsubscribe()
    unsubscribe()
    asyncio.run(broadcaster.operation_failed(None, ErrorKind.VALIDATION, "bad file"))

    assert broadcaster.listener_count == 0
    assert listener.events == []


def test_websocket_listener_serializes_events(registry):
    entry = make_entry(registry)

    async def scenario():
        manager = ConnectionManager()
        listener = WebSocketEventListener(manager)
        websocket = FakeWebSocket()
        await manager.connect(websocket)

        await listener.on_entry_created(entry)
        await listener.on_progress(entry.id, TransferProgress(5, 10, 0.5))
        await listener.on_operation_failed(entry.id, ErrorKind.CONFLICT, "already converting")
        await listener.on_operation_failed(entry.id, ErrorKind.NETWORK, "HTTP error 404")
        await listener.on_entry_removed(entry.id)

        while len(websocket.sent) < 5:
            await asyncio.sleep(0.001)
        manager.disconnect(websocket)
        return websocket.sent

    sent = asyncio.run(scenario())

    assert [message["type"] for message in sent] == [
        "connection", "entry_created", "entry_progress", "operation_failed", "entry_removed"
    ]
    created = sent[1]["data"]
    assert created["id"] == entry.id
    assert created["size_formatted"] == "3 Bytes"
    assert "payload" not in created
    assert sent[2]["data"]["fraction"] == 0.5
    assert sent[3]["data"]["error_kind"] == "network"
    assert sent[3]["data"]["label"] == "Download Failed"


def test_full_queue_drops_messages_instead_of_blocking():
    async def scenario():
        manager = ConnectionManager(queue_size=1)
        websocket = FakeWebSocket()
        await manager.connect(websocket)
        for index in range(5):
            await manager.broadcast({"type": "entry_removed", "data": {"entry_id": str(index)}})
        queued = manager.send_queues[websocket].qsize()
        manager.disconnect(websocket)
        return queued

    assert asyncio.run(scenario()) == 1
