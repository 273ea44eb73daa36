"""
Tests for the reconnecting notification client.
"""

import json

import pytest
from websockets.datastructures import Headers
from websockets.exceptions import InvalidStatus
from websockets.http11 import Response

from ws_gateway.client import ConnectionStatus, NotificationBuffers, ReconnectPolicy, ReconnectionManager
from ws_gateway.client.reconnect import handshake_status, url_with_token


class FakeConnection:
    """Yields the given frames, then ends with close_code."""

    def __init__(self, frames=(), close_code=1006):
        self._frames = list(frames)
        self.close_code = close_code
        self.sent = []
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._frames:
            raise StopAsyncIteration
        return self._frames.pop(0)

    async def send(self, data):
        self.sent.append(json.loads(data))

    async def close(self):
        self.closed = True


def frame(event, **payload):
    return json.dumps({"event": event, "payload": payload})


class ScriptedConnect:
    """connect() replacement returning scripted connections or raising errors."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.urls = []

    async def __call__(self, url):
        self.urls.append(url)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class TestPolicyAndBuffers:
    def test_backoff_doubles_and_caps(self):
        policy = ReconnectPolicy(base_delay=1.0, factor=2.0, max_delay=5.0)
        assert [policy.delay(n) for n in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_buffers_are_bounded_fifo_per_category(self):
        buffers = NotificationBuffers(capacity=2)
        for order_id in (1, 2, 3):
            buffers.push("new-order", {"id": order_id})
        buffers.push("table-status-changed", {"tableId": 1})
        buffers.push("emergency", {"message": "x"})

        assert [n["payload"]["id"] for n in buffers.recent("orders")] == [2, 3]
        assert len(buffers.recent("tables")) == 1
        assert len(buffers.recent("system")) == 1

        buffers.clear("orders")
        assert buffers.recent("orders") == []

    def test_url_with_token_replaces_existing_token(self):
        assert url_with_token("ws://host/ws?token=old&x=1", "new") == "ws://host/ws?x=1&token=new"
        assert url_with_token("ws://host/ws", None) == "ws://host/ws"


class TestReconnectionManager:
    @pytest.mark.asyncio
    async def test_notifications_are_buffered_and_forwarded(self):
        received = []

        async def on_notification(event, payload):
            received.append(event)

        connection = FakeConnection(
            [frame("connected", userId="1"), frame("new-order", id=7), "garbage"],
            close_code=4002,
        )
        manager = ReconnectionManager(
            "ws://host/ws",
            "tok",
            connect=ScriptedConnect(connection),
            sleep=RecordingSleep(),
            on_notification=on_notification,
        )

        await manager.run()

        assert received == ["new-order"]
        assert manager.buffers.recent("orders")[0]["payload"] == {"id": 7}

    @pytest.mark.asyncio
    async def test_unexpected_drop_reconnects(self):
        connect = ScriptedConnect(FakeConnection(close_code=1006), FakeConnection(close_code=4001))
        sleep = RecordingSleep()
        manager = ReconnectionManager("ws://host/ws", "tok", connect=connect, sleep=sleep)

        await manager.run()

        assert len(connect.urls) == 2
        assert connect.urls[0] == "ws://host/ws?token=tok"
        assert sleep.delays == [manager.policy.delay(0)]
        assert manager.last_close_code == 4001
        assert manager.status == ConnectionStatus.DISCONNECTED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", [4001, 4002, 4003])
    async def test_terminal_close_codes_stop_reconnecting(self, code):
        connect = ScriptedConnect(FakeConnection(close_code=code))
        manager = ReconnectionManager("ws://host/ws", connect=connect, sleep=RecordingSleep())

        await manager.run()

        assert len(connect.urls) == 1
        assert manager.status == ConnectionStatus.DISCONNECTED

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        policy = ReconnectPolicy(base_delay=1.0, factor=2.0, max_delay=30.0, max_attempts=3)
        connect = ScriptedConnect(OSError("refused"), OSError("refused"), OSError("refused"))
        sleep = RecordingSleep()
        manager = ReconnectionManager("ws://host/ws", connect=connect, policy=policy, sleep=sleep)

        await manager.run()

        assert manager.failures == 3
        assert sleep.delays == [1.0, 2.0]
        assert manager.status == ConnectionStatus.DISCONNECTED

    @pytest.mark.asyncio
    async def test_successful_connect_resets_failures(self):
        policy = ReconnectPolicy(max_attempts=2)
        connect = ScriptedConnect(
            OSError("refused"),
            FakeConnection(close_code=1006),
            OSError("refused"),
            FakeConnection(close_code=4001),
        )
        manager = ReconnectionManager("ws://host/ws", connect=connect, policy=policy, sleep=RecordingSleep())

        await manager.run()

        assert len(connect.urls) == 4
        assert manager.last_close_code == 4001

    @pytest.mark.asyncio
    async def test_on_connect_can_join_tables(self):
        connection = FakeConnection(close_code=4001)

        async def on_connect(manager):
            assert await manager.join_table(3)

        manager = ReconnectionManager(
            "ws://host/ws", connect=ScriptedConnect(connection), sleep=RecordingSleep(), on_connect=on_connect
        )
        await manager.run()

        assert connection.sent == [{"event": "join-table", "tableId": 3}]

    @pytest.mark.asyncio
    async def test_send_without_connection_returns_false(self):
        manager = ReconnectionManager("ws://host/ws")
        assert await manager.send({"event": "ping"}) is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 403])
    async def test_rejected_handshake_is_not_retried(self, status_code):
        rejected = InvalidStatus(Response(status_code, "Forbidden", Headers()))
        connect = ScriptedConnect(rejected, FakeConnection(close_code=1006))
        sleep = RecordingSleep()
        manager = ReconnectionManager("ws://host/ws", connect=connect, sleep=sleep)

        await manager.run()

        assert len(connect.urls) == 1
        assert sleep.delays == []
        assert manager.rejected_status == status_code
        assert manager.status == ConnectionStatus.DISCONNECTED

    @pytest.mark.asyncio
    async def test_server_error_handshake_is_retried(self):
        unavailable = InvalidStatus(Response(503, "Service Unavailable", Headers()))
        connect = ScriptedConnect(unavailable, FakeConnection(close_code=4001))
        manager = ReconnectionManager("ws://host/ws", connect=connect, sleep=RecordingSleep())

        await manager.run()

        assert len(connect.urls) == 2
        assert manager.rejected_status is None

    @pytest.mark.asyncio
    async def test_failing_callback_closes_and_disconnects(self):
        connection = FakeConnection([frame("new-order", id=1)], close_code=1006)

        async def on_notification(event, payload):
            raise RuntimeError("handler bug")

        manager = ReconnectionManager(
            "ws://host/ws",
            connect=ScriptedConnect(connection),
            sleep=RecordingSleep(),
            on_notification=on_notification,
        )

        with pytest.raises(RuntimeError, match="handler bug"):
            await manager.run()

        assert connection.closed
        assert manager.status == ConnectionStatus.DISCONNECTED
        assert manager.connected is False

    @pytest.mark.asyncio
    async def test_failing_on_connect_disconnects(self):
        connection = FakeConnection(close_code=1006)

        async def on_connect(manager):
            raise ValueError("bad table id")

        manager = ReconnectionManager(
            "ws://host/ws", connect=ScriptedConnect(connection), sleep=RecordingSleep(), on_connect=on_connect
        )

        with pytest.raises(ValueError):
            await manager.run()

        assert connection.closed
        assert manager.status == ConnectionStatus.DISCONNECTED

    def test_handshake_status(self):
        assert handshake_status(InvalidStatus(Response(403, "Forbidden", Headers()))) == 403
        assert handshake_status(OSError("refused")) is None
