import pytest

from realtime.broadcaster import ConnectionManager, NEW_USAGE_EVENT


pytestmark = pytest.mark.anyio


class FakeWebSocket:
    def __init__(self, fail: bool = False):
        self.accepted = False
        self.fail = fail
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)


PAYLOAD = {"grado": "3", "tema": "fracciones", "respuesta": "Las fracciones son...", "fecha": "2024-05-01T12:00:00+00:00"}


async def test_connect_accepts_and_registers():
    manager = ConnectionManager()
    ws = FakeWebSocket()

    await manager.connect(ws)

    assert ws.accepted
    assert manager.subscriber_count == 1


async def test_broadcast_reaches_every_connected_subscriber():
    manager = ConnectionManager()
    first, second = FakeWebSocket(), FakeWebSocket()
    await manager.connect(first)
    await manager.connect(second)

    delivered = await manager.broadcast(NEW_USAGE_EVENT, PAYLOAD)

    assert delivered == 2
    expected = {"event": "nuevo-uso", "data": PAYLOAD}
    assert first.sent == [expected]
    assert second.sent == [expected]


async def test_broadcast_without_subscribers_is_silent():
    manager = ConnectionManager()
    assert await manager.broadcast(NEW_USAGE_EVENT, PAYLOAD) == 0


async def test_failed_subscriber_is_dropped_others_still_receive():
    manager = ConnectionManager()
    broken, healthy = FakeWebSocket(fail=True), FakeWebSocket()
    await manager.connect(broken)
    await manager.connect(healthy)

    delivered = await manager.broadcast(NEW_USAGE_EVENT, PAYLOAD)

    assert delivered == 1
    assert healthy.sent == [{"event": NEW_USAGE_EVENT, "data": PAYLOAD}]
    assert manager.subscriber_count == 1
    assert broken not in manager.active_connections


async def test_late_subscriber_gets_no_replay():
    manager = ConnectionManager()
    early = FakeWebSocket()
    await manager.connect(early)
    await manager.broadcast(NEW_USAGE_EVENT, PAYLOAD)

    late = FakeWebSocket()
    await manager.connect(late)

    assert late.sent == []
    assert len(early.sent) == 1


async def test_disconnected_subscriber_receives_nothing():
    manager = ConnectionManager()
    ws = FakeWebSocket()
    await manager.connect(ws)
    manager.disconnect(ws)
    manager.disconnect(ws)

    await manager.broadcast(NEW_USAGE_EVENT, PAYLOAD)

    assert ws.sent == []
    assert manager.subscriber_count == 0
