"""
Tests for the event broadcaster, the emitters and the Redis relay.
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import fakeredis
import pytest
from starlette.websockets import WebSocketState

from ws_gateway.broadcaster import EventBroadcaster, build_notification
from ws_gateway.connection_registry import ConnectedUser, ConnectionRegistry
from ws_gateway.emitters import BroadcastResult, LocalEmitter, RedisEmitter, build_emitter
from ws_gateway.redis_subscriber import consume, run_subscriber, validate_message
from ws_gateway.rooms import RoomRouter


def fake_websocket(connected: bool = True):
    ws = MagicMock()
    state = WebSocketState.CONNECTED if connected else WebSocketState.DISCONNECTED
    ws.client_state = state
    ws.application_state = state
    ws.send_json = AsyncMock()
    return ws


class RecordingEmitter:
    """Collects emits instead of sending them."""

    def __init__(self):
        self.calls = []

    async def emit(self, rooms, event, payload):
        self.calls.append((list(rooms), event, payload))
        return BroadcastResult(event=event, rooms=tuple(rooms), recipients=1, delivered=1)


async def connected(registry, rooms, user_id, role, ws=None):
    ws = ws or fake_websocket()
    user = ConnectedUser(user_id=user_id, role=role, name=user_id)
    await registry.register(ws, user)
    rooms.join_role_rooms(user)
    return ws


class TestNotificationShape:
    def test_build_notification_has_all_fields(self):
        notification = build_notification("NEW_ORDER", "New order #1", {"id": 1})
        assert set(notification) == {"type", "message", "data", "timestamp", "priority"}
        assert notification["priority"] == "high"

    def test_explicit_priority_wins(self):
        assert build_notification("NEW_ORDER", "x", priority="medium")["priority"] == "medium"


class TestBroadcasterRouting:
    """Which rooms and events each operation targets."""

    @pytest.mark.asyncio
    async def test_new_order_goes_to_kitchen_high_and_management_medium(self):
        emitter = RecordingEmitter()
        await EventBroadcaster(emitter).notify_new_order({"id": 4, "table": {"number": 2}})

        (kitchen_rooms, event, kitchen), (mgmt_rooms, _, mgmt) = emitter.calls
        assert event == "new-order"
        assert kitchen_rooms == ["kitchen"] and kitchen["priority"] == "high"
        assert mgmt_rooms == ["management"] and mgmt["priority"] == "medium"
        assert kitchen["message"] == "New order #4 - Table 2"

    @pytest.mark.asyncio
    async def test_ready_status_also_alerts_waiters(self):
        emitter = RecordingEmitter()
        await EventBroadcaster(emitter).notify_order_status(8, "READY", 5)

        events = [(rooms, event) for rooms, event, _ in emitter.calls]
        assert events == [(["waiters"], "order-ready"), (["restaurant"], "order-status-changed")]
        status_change = emitter.calls[1][2]
        assert status_change["priority"] == "high"
        assert status_change["data"] == {"orderId": 8, "status": "READY", "estimatedTime": 5}

    @pytest.mark.asyncio
    async def test_other_status_is_a_single_medium_broadcast(self):
        emitter = RecordingEmitter()
        await EventBroadcaster(emitter).notify_order_status(8, "PREPARING")

        assert len(emitter.calls) == 1
        rooms, event, payload = emitter.calls[0]
        assert rooms == ["restaurant"]
        assert payload["priority"] == "medium"
        assert payload["message"] == "Order #8: Order in preparation"

    @pytest.mark.asyncio
    async def test_table_status_targets_waiters_and_management(self):
        emitter = RecordingEmitter()
        await EventBroadcaster(emitter).notify_table_status(3, "OCCUPIED", 12)

        rooms, event, payload = emitter.calls[0]
        assert rooms == ["waiters", "management"]
        assert event == "table-status-changed"
        assert payload["message"] == "Table 12: OCCUPIED"

    @pytest.mark.asyncio
    async def test_emergency_is_critical_for_everyone(self):
        emitter = RecordingEmitter()
        await EventBroadcaster(emitter).notify_emergency("Fire in kitchen")

        rooms, event, payload = emitter.calls[0]
        assert rooms == ["restaurant"]
        assert event == "emergency"
        assert payload["priority"] == "critical"

    @pytest.mark.asyncio
    async def test_low_stock_message_formats(self):
        emitter = RecordingEmitter()
        broadcaster = EventBroadcaster(emitter)
        await broadcaster.notify_low_stock({"name": "Tomato", "stock": 2, "unit": "KG"})
        await broadcaster.notify_low_stock({"name": "Cheese", "stock": 0, "alertType": "OUT_OF_STOCK"})

        low, out = emitter.calls
        assert low[0] == ["management", "kitchen"]
        assert low[2]["message"] == "Low stock: Tomato (2 KG remaining)"
        assert low[2]["data"]["alertType"] == "LOW_STOCK"
        assert out[2]["message"] == "Out of stock: Cheese"

    @pytest.mark.asyncio
    async def test_emitter_failure_is_swallowed(self):
        emitter = MagicMock()
        emitter.emit = AsyncMock(side_effect=RuntimeError("boom"))

        result = await EventBroadcaster(emitter).notify_emergency("x")
        assert result.delivered == 0


class TestLocalEmitter:
    """In-process delivery to room members."""

    @pytest.mark.asyncio
    async def test_only_room_members_receive(self):
        registry = ConnectionRegistry()
        rooms = RoomRouter(registry)
        kitchen_ws = await connected(registry, rooms, "k", "KITCHEN")
        waiter_ws = await connected(registry, rooms, "w", "WAITER")

        result = await LocalEmitter(rooms).emit(["kitchen"], "new-order", {"id": 1})

        assert result.recipients == 1 and result.delivered == 1
        kitchen_ws.send_json.assert_awaited_once_with({"event": "new-order", "payload": {"id": 1}})
        waiter_ws.send_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_user_in_several_rooms_receives_once(self):
        registry = ConnectionRegistry()
        rooms = RoomRouter(registry)
        admin_ws = await connected(registry, rooms, "a", "ADMIN")

        await LocalEmitter(rooms).emit(["kitchen", "management"], "low-stock", {})
        assert admin_ws.send_json.await_count == 1

    @pytest.mark.asyncio
    async def test_failed_send_does_not_stop_fan_out(self):
        registry = ConnectionRegistry()
        rooms = RoomRouter(registry)
        broken = fake_websocket()
        broken.send_json = AsyncMock(side_effect=RuntimeError("socket gone"))
        await connected(registry, rooms, "w1", "WAITER", broken)
        healthy = await connected(registry, rooms, "w2", "WAITER")
        await connected(registry, rooms, "w3", "WAITER", fake_websocket(connected=False))

        result = await LocalEmitter(rooms).emit(["waiters"], "order-ready", {})

        assert result.recipients == 3
        assert result.delivered == 1
        assert result.failed == 2
        healthy.send_json.assert_awaited_once()

    def test_build_emitter_rejects_unknown_transport(self):
        with pytest.raises(ValueError):
            build_emitter("kafka", RoomRouter(ConnectionRegistry()))


class TestRedisRelay:
    """RedisEmitter publishes; the subscriber replays into local sockets."""

    def test_validate_message(self):
        assert validate_message({"rooms": ["kitchen"], "event": "x", "payload": {}}) == (True, None)
        assert validate_message({"rooms": "kitchen", "event": "x", "payload": {}})[0] is False
        assert validate_message({"event": "x"})[0] is False
        assert validate_message([])[0] is False

    @pytest.mark.asyncio
    async def test_consume_skips_bad_messages(self):
        received = []

        async def on_message(data):
            received.append(data)

        async def listen():
            yield {"type": "subscribe", "data": 1}
            yield {"type": "message", "data": "not json"}
            yield {"type": "message", "data": json.dumps({"event": "x"})}
            yield {"type": "message", "data": json.dumps({"rooms": ["kitchen"], "event": "x", "payload": {}})}

        pubsub = MagicMock()
        pubsub.listen = listen
        await consume(pubsub, on_message)

        assert received == [{"rooms": ["kitchen"], "event": "x", "payload": {}}]

    @pytest.mark.asyncio
    async def test_redis_emitter_publishes_envelope(self):
        client = fakeredis.FakeAsyncRedis(decode_responses=True)
        pubsub = client.pubsub()
        await pubsub.subscribe("events")

        async def factory():
            return client

        result = await RedisEmitter("events", client_factory=factory).emit(["kitchen"], "new-order", {"id": 3})

        assert result.recipients == 1
        message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
        assert json.loads(message["data"]) == {"rooms": ["kitchen"], "event": "new-order", "payload": {"id": 3}}
        await pubsub.aclose()

    @pytest.mark.asyncio
    async def test_redis_emitter_reports_publish_failure(self):
        async def factory():
            raise ConnectionError("redis down")

        result = await RedisEmitter("events", client_factory=factory).emit(["kitchen"], "x", {})
        assert result.failed == 1 and result.delivered == 0

    @pytest.mark.asyncio
    async def test_subscriber_relays_published_events_to_local_sockets(self):
        server = fakeredis.FakeServer()
        publisher = fakeredis.FakeAsyncRedis(server=server, decode_responses=True)
        subscriber = fakeredis.FakeAsyncRedis(server=server, decode_responses=True)

        registry = ConnectionRegistry()
        rooms = RoomRouter(registry)
        kitchen_ws = await connected(registry, rooms, "k", "KITCHEN")
        local = LocalEmitter(rooms)

        async def relay(message):
            await local.emit(message["rooms"], message["event"], message["payload"])

        async def sub_factory():
            return subscriber

        task = asyncio.create_task(run_subscriber("events", relay, client_factory=sub_factory))
        try:
            for _ in range(50):
                numsub = await publisher.pubsub_numsub("events")
                if numsub and numsub[0][1]:
                    break
                await asyncio.sleep(0.02)
            await publisher.publish(
                "events", json.dumps({"rooms": ["kitchen"], "event": "new-order", "payload": {"id": 1}})
            )
            for _ in range(50):
                if kitchen_ws.send_json.await_count:
                    break
                await asyncio.sleep(0.02)
        finally:
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        kitchen_ws.send_json.assert_awaited_once_with({"event": "new-order", "payload": {"id": 1}})
