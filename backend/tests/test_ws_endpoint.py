"""
Tests for the /ws endpoint: authentication, client frames and replacement.
"""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from shared.config.settings import settings
from ws_gateway.main import app as gateway_app


def _token(headers):
    return headers["Authorization"].split(" ", 1)[1]


class TestWebSocketAuth:
    """Test connection authentication and close codes."""

    def test_invalid_token_closes_with_4001(self, client):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/ws?token=not-a-jwt") as ws:
                ws.receive_json()
        assert exc_info.value.code == 4001

    def test_guest_disabled_closes_with_4003(self, client, monkeypatch):
        monkeypatch.setattr(settings, "ws_allow_guest", False)
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/ws") as ws:
                ws.receive_json()
        assert exc_info.value.code == 4003

    def test_guest_connection(self, client):
        with client.websocket_connect("/ws?token=dev-token") as ws:
            frame = ws.receive_json()
            assert frame["event"] == "connected"
            assert frame["payload"]["userId"].startswith("dev-user-")
            assert frame["payload"]["role"] == settings.ws_guest_role

    def test_jwt_connection_joins_role_rooms(self, client, waiter_headers, waiter_user):
        with client.websocket_connect(f"/ws?token={_token(waiter_headers)}") as ws:
            payload = ws.receive_json()["payload"]
            assert payload["userId"] == str(waiter_user.id)
            assert payload["rooms"] == ["restaurant", "waiters"]

    def test_second_connection_replaces_first(self, client, kitchen_headers):
        url = f"/ws?token={_token(kitchen_headers)}"
        with client.websocket_connect(url) as first:
            first.receive_json()
            with client.websocket_connect(url) as second:
                assert second.receive_json()["event"] == "connected"

                with pytest.raises(WebSocketDisconnect) as exc_info:
                    first.receive_json()
                assert exc_info.value.code == 4002


class TestClientFrames:
    def test_ping(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"event": "ping"})
            assert ws.receive_json() == {"event": "pong", "payload": {}}

    def test_plain_text_ping(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text("ping")
            assert ws.receive_text() == "pong"

    def test_join_and_leave_table(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"event": "join-table", "payload": {"tableId": 3}})
            assert ws.receive_json() == {"event": "table-joined", "payload": {"tableId": 3, "room": "table-3"}}

            ws.send_json({"event": "leave-table", "tableId": 3})
            assert ws.receive_json()["event"] == "table-left"

    def test_join_table_requires_id(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"event": "join-table"})
            frame = ws.receive_json()
            assert frame["event"] == "error"
            assert frame["payload"]["message"] == "tableId is required"

    def test_invalid_json(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text("{not json")
            assert ws.receive_json()["payload"]["message"] == "Invalid JSON"

    def test_unknown_event(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"event": "dance"})
            assert ws.receive_json()["payload"]["message"] == "Unknown event: dance"

    def test_waiter_cannot_update_order_status(self, client, waiter_headers):
        with client.websocket_connect(f"/ws?token={_token(waiter_headers)}") as ws:
            ws.receive_json()
            ws.send_json({"event": "order-status-update", "orderId": 1, "status": "READY"})
            frame = ws.receive_json()
            assert frame["event"] == "error"
            assert "Insufficient role" in frame["payload"]["message"]

    def test_kitchen_order_status_update_is_broadcast(self, client, kitchen_headers):
        with client.websocket_connect(f"/ws?token={_token(kitchen_headers)}") as ws:
            ws.receive_json()
            ws.send_json({"event": "order-status-update", "orderId": 12, "status": "PREPARING"})

            frame = ws.receive_json()
            assert frame["event"] == "order-status-changed"
            assert frame["payload"]["data"]["orderId"] == 12

    def test_invalid_status_is_rejected(self, client, kitchen_headers):
        with client.websocket_connect(f"/ws?token={_token(kitchen_headers)}") as ws:
            ws.receive_json()
            ws.send_json({"event": "order-status-update", "orderId": 12, "status": "EATEN"})
            assert ws.receive_json()["event"] == "error"

    def test_waiter_table_status_update_is_broadcast(self, client, waiter_headers):
        with client.websocket_connect(f"/ws?token={_token(waiter_headers)}") as ws:
            ws.receive_json()
            ws.send_json(
                {"event": "table-status-update", "payload": {"tableId": 3, "status": "RESERVED", "tableNumber": 3}}
            )

            frame = ws.receive_json()
            assert frame["event"] == "table-status-changed"
            assert frame["payload"]["data"] == {"tableId": 3, "tableNumber": 3, "status": "RESERVED"}

    def test_kitchen_cannot_update_table_status(self, client, kitchen_headers):
        with client.websocket_connect(f"/ws?token={_token(kitchen_headers)}") as ws:
            ws.receive_json()
            ws.send_json({"event": "table-status-update", "tableId": 3, "status": "RESERVED"})
            frame = ws.receive_json()
            assert frame["event"] == "error"

    def test_oversized_message_closes_connection(self, client, monkeypatch):
        monkeypatch.setattr(settings, "ws_max_message_size", 16)
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text("x" * 32)
            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_json()
            assert exc_info.value.code == 1009


class TestGatewayApp:
    def test_health(self):
        with TestClient(gateway_app) as gateway:
            body = gateway.get("/ws/health").json()
        assert body["status"] == "ok"
        assert body["service"] == "ws-gateway"
        assert body["totalConnections"] == 0

    def test_gateway_serves_sockets(self):
        with TestClient(gateway_app) as gateway:
            with gateway.websocket_connect("/ws") as ws:
                assert ws.receive_json()["event"] == "connected"
