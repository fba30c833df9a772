"""Relay smoke tests over the real ASGI app."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from live_chat.app import create_app
from live_chat.config import settings


@pytest.fixture
def client():
    with TestClient(create_app()) as test_client:
        yield test_client


def _sync(ws, stamp: int = 1) -> None:
    """Round-trip a ping so every frame sent before it has been handled."""
    ws.send_json({"type": "ping", "timestamp": stamp})
    assert ws.receive_json() == {"type": "pong", "timestamp": stamp}


def _join_and_subscribe(ws, conversation_id: str, **join) -> None:
    ws.send_json({"type": "join", **join})
    ws.send_json({"type": "subscribe", "conversationId": conversation_id})
    assert ws.receive_json() == {"type": "subscribed", "conversationId": conversation_id}


def test_healthz(client):
    resp = client.get("/healthz")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "connections": 0}
    assert resp.headers["X-Request-ID"]


def test_readyz_without_fanout(client):
    resp = client.get("/readyz")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ready", "fanout": "local"}


def test_connected_frame_carries_client_id(client):
    with client.websocket_connect("/ws/chat") as ws:
        hello = ws.receive_json()

    assert hello["type"] == "connected"
    assert hello["clientId"].startswith("client_")


def test_ping_is_answered_with_pong(client):
    with client.websocket_connect("/ws/chat") as ws:
        ws.receive_json()
        _sync(ws, stamp=1700000000000)


def test_malformed_frame_gets_error_and_connection_survives(client):
    with client.websocket_connect("/ws/chat") as ws:
        ws.receive_json()
        ws.send_text("not json")
        assert ws.receive_json() == {"type": "error", "message": "Invalid message format"}
        _sync(ws)


def test_unknown_type_gets_error(client):
    with client.websocket_connect("/ws/chat") as ws:
        ws.receive_json()
        ws.send_json({"type": "teleport"})
        assert ws.receive_json() == {"type": "error", "message": "Unknown message type: teleport"}


def test_message_is_relayed_to_other_subscribers_only(client):
    with client.websocket_connect("/ws/chat") as alice, client.websocket_connect("/ws/chat") as bob:
        alice.receive_json()
        bob.receive_json()
        _join_and_subscribe(alice, "c1", clientType="visitor", visitorId="v1")
        _join_and_subscribe(bob, "c1", clientType="admin", senderId="u1")

        alice.send_json({
            "type": "message",
            "conversationId": "c1",
            "content": "Is the venue available on Saturday?",
            "senderId": "v1",
            "senderType": "visitor",
        })

        relayed = bob.receive_json()
        assert relayed["type"] == "message"
        assert relayed["content"] == "Is the venue available on Saturday?"
        assert relayed["senderType"] == "visitor"
        assert "timestamp" in relayed

        # The sender's next frame is the pong, so nothing was echoed back.
        _sync(alice)


def test_typing_and_read_are_relayed(client):
    with client.websocket_connect("/ws/chat") as alice, client.websocket_connect("/ws/chat") as bob:
        alice.receive_json()
        bob.receive_json()
        _join_and_subscribe(alice, "c1", clientType="visitor", visitorId="v1")
        _join_and_subscribe(bob, "c1", clientType="admin", senderId="u1")

        bob.send_json({"type": "typing", "conversationId": "c1", "senderId": "u1", "senderType": "admin"})
        assert alice.receive_json() == {
            "type": "typing", "conversationId": "c1", "senderId": "u1", "senderType": "admin",
        }

        alice.send_json({"type": "read", "conversationId": "c1", "messageId": "m1", "senderId": "v1"})
        assert bob.receive_json() == {
            "type": "read", "conversationId": "c1", "messageId": "m1", "senderId": "v1",
        }


def test_internal_message_broadcast(client):
    with client.websocket_connect("/ws/chat") as visitor, client.websocket_connect("/ws/chat") as admin:
        visitor.receive_json()
        admin.receive_json()
        _join_and_subscribe(visitor, "c1", clientType="visitor", visitorId="v1")
        admin.send_json({"type": "join", "clientType": "admin", "senderId": "u1"})
        _sync(admin)

        resp = client.post(
            "/internal/chat/conversations/c1/messages",
            json={"id": "m1", "content": "Thanks, an agent will call you.", "senderType": "admin"},
        )
        assert resp.status_code == 202
        assert resp.json() == {"status": "accepted"}

        message = visitor.receive_json()
        assert message["type"] == "message"
        assert message["id"] == "m1"
        assert message["conversationId"] == "c1"

        note = admin.receive_json()
        assert note == {
            "type": "new_message_notification",
            "conversationId": "c1",
            "preview": "Thanks, an agent will call you.",
        }


def test_internal_live_agent_request_reaches_admins(client):
    with client.websocket_connect("/ws/chat") as admin:
        admin.receive_json()
        admin.send_json({"type": "join", "clientType": "admin", "senderId": "u1"})
        _sync(admin)

        resp = client.post(
            "/internal/chat/conversations/c9/live-agent-request",
            json={"visitorName": "Asha", "visitorPhone": "+91 98000 00000"},
        )
        assert resp.status_code == 202

        frame = admin.receive_json()
        assert frame["type"] == "live_agent_request"
        assert frame["conversationId"] == "c9"
        assert frame["visitorName"] == "Asha"


def test_internal_agent_status(client):
    with client.websocket_connect("/ws/chat") as admin:
        admin.receive_json()
        admin.send_json({"type": "join", "clientType": "admin", "senderId": "u1"})
        _sync(admin)

        resp = client.post(
            "/internal/chat/agent-status",
            json={"agentId": "u2", "agentName": "Ravi", "status": "online"},
        )
        assert resp.status_code == 202
        assert admin.receive_json() == {
            "type": "status", "agentId": "u2", "agentName": "Ravi", "status": "online",
        }


def test_internal_broadcast_validation(client):
    resp = client.post("/internal/chat/agent-status", json={"agentId": "u2", "agentName": "Ravi", "status": "busy"})
    assert resp.status_code == 422

    resp = client.post("/internal/chat/conversations/%20/messages", json={"id": "m1", "content": "x"})
    assert resp.status_code == 422
    assert resp.json() == {"detail": "conversation id must not be blank"}


def test_status_broadcast_rejects_mistyped_frame_fields(client):
    resp = client.post("/internal/chat/conversations/c1/status", json={"status": "closed", "isRead": "maybe"})
    assert resp.status_code == 422
    assert resp.json()["detail"].startswith("invalid status payload: isRead")

    resp = client.post("/internal/chat/conversations/c1/status", json={"status": "closed", "senderId": 5})
    assert resp.status_code == 422
    assert resp.json()["detail"].startswith("invalid status payload: senderId")


def test_status_broadcast_passes_extra_fields_through(client):
    with client.websocket_connect("/ws/chat") as visitor:
        visitor.receive_json()
        _join_and_subscribe(visitor, "c1", clientType="visitor", visitorId="v1")

        resp = client.post(
            "/internal/chat/conversations/c1/status",
            json={"status": "live_agent", "assignedTo": "u1"},
        )
        assert resp.status_code == 202
        assert visitor.receive_json() == {
            "type": "status", "conversationId": "c1", "status": "live_agent", "assignedTo": "u1",
        }


def test_relay_pings_idle_sockets(client, monkeypatch):
    monkeypatch.setattr(settings, "WS_HEARTBEAT_SECONDS", 0.05)

    with client.websocket_connect("/ws/chat") as ws:
        ws.receive_json()
        frame = ws.receive_json()

    assert frame["type"] == "ping"
    assert isinstance(frame["timestamp"], int)


def test_request_id_is_echoed(client):
    resp = client.get("/healthz", headers={"X-Request-ID": "req-42"})

    assert resp.headers["X-Request-ID"] == "req-42"
