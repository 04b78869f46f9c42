"""Tests for the HTTP and websocket surface."""
import pytest
from starlette.websockets import WebSocketDisconnect

from conftest import ALICE, BOB, DAVE, auth_headers


def start_chat(client, user_id=ALICE, other_id=BOB) -> str:
    response = client.post(
        "/api/conversations/direct",
        json={"participant_id": other_id},
        headers=auth_headers(client, user_id)
    )
    assert response.status_code == 200
    return response.json()["id"]


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_security_headers(client):
    response = client.get("/health")

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "SAMEORIGIN"
    assert response.headers["Referrer-Policy"] == "no-referrer"
    assert "connect-src 'self' https://baas.example.com" in response.headers["Content-Security-Policy"]


def test_spa_fallback(client):
    index = client.get("/dashboard/client/messages")
    asset = client.get("/assets/app.js")

    assert index.status_code == 200
    assert "<title>Hivley</title>" in index.text
    assert asset.status_code == 200
    assert "console.log" in asset.text


def test_unknown_api_path_is_json_404(client):
    response = client.get("/api/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"detail": "Not Found"}


def test_unknown_api_path_is_404_for_every_method(client):
    for method in ("post", "put", "patch", "delete"):
        response = getattr(client, method)("/api/does-not-exist")
        assert response.status_code == 404, method
        assert response.json() == {"detail": "Not Found"}


def test_gzip(client, static_dir):
    (static_dir / "assets" / "big.js").write_text("var hivley = 1;\n" * 500)

    response = client.get("/assets/big.js", headers={"Accept-Encoding": "gzip"})

    assert response.headers["content-encoding"] == "gzip"


def test_requires_authentication(client):
    response = client.get("/api/conversations")

    assert response.status_code == 401
    assert response.json()["code"] == "NOT_AUTHENTICATED"


def test_conversation_flow(client):
    conversation_id = start_chat(client)
    assert start_chat(client, BOB, ALICE) == conversation_id

    sent = client.post(
        f"/api/conversations/{conversation_id}/messages",
        json={"content": "  Are you free at 5?  ", "client_generated_id": "tmp-1"},
        headers=auth_headers(client, ALICE)
    )
    assert sent.status_code == 201
    message = sent.json()["message"]
    assert message["content"] == "Are you free at 5?"
    assert message["seq"] == 1

    page = client.get(f"/api/conversations/{conversation_id}/messages", headers=auth_headers(client, BOB))
    assert page.status_code == 200
    assert [m["id"] for m in page.json()["messages"]] == [message["id"]]
    assert page.json()["has_more"] is False

    listed = client.get("/api/conversations", headers=auth_headers(client, BOB)).json()
    assert listed[0]["title"] == "Alice Smith"
    assert listed[0]["unread_count"] == 1

    status = client.put(
        f"/api/messages/{message['id']}/status",
        json={"status": "read"},
        headers=auth_headers(client, BOB)
    )
    assert status.status_code == 200

    listed = client.get("/api/conversations", headers=auth_headers(client, ALICE)).json()
    assert listed[0]["preview"] == "Are you free at 5?"
    assert listed[0]["last_message_status"] == "read"


def test_validation_and_authorization_errors(client):
    conversation_id = start_chat(client)

    empty = client.post(
        f"/api/conversations/{conversation_id}/messages",
        json={"content": "   "},
        headers=auth_headers(client, ALICE)
    )
    outsider = client.get(f"/api/conversations/{conversation_id}/messages", headers=auth_headers(client, DAVE))
    missing = client.get("/api/conversations/nope", headers=auth_headers(client, ALICE))

    assert empty.status_code == 422
    assert empty.json()["code"] == "EMPTY_MESSAGE"
    assert outsider.status_code == 403
    assert outsider.json()["code"] == "NOT_PARTICIPANT"
    assert missing.status_code == 404


def test_edit_delete_and_react(client):
    conversation_id = start_chat(client)
    message_id = client.post(
        f"/api/conversations/{conversation_id}/messages",
        json={"content": "draft"},
        headers=auth_headers(client, ALICE)
    ).json()["message"]["id"]

    edited = client.patch(f"/api/messages/{message_id}", json={"content": "final"}, headers=auth_headers(client, ALICE))
    reacted = client.post(f"/api/messages/{message_id}/reactions", json={"emoji": "👍"}, headers=auth_headers(client, BOB))
    forbidden = client.delete(f"/api/messages/{message_id}", headers=auth_headers(client, BOB))
    deleted = client.delete(f"/api/messages/{message_id}", headers=auth_headers(client, ALICE))

    assert edited.json()["content"] == "final"
    assert reacted.json()["emoji"] == "👍"
    assert forbidden.status_code == 403
    assert deleted.json()["is_deleted"] is True

    listed = client.get("/api/conversations", headers=auth_headers(client, BOB)).json()
    assert listed[0]["preview"] == "Message deleted"


def test_upload_attachments(client):
    conversation_id = start_chat(client)

    response = client.post(
        f"/api/conversations/{conversation_id}/messages/upload",
        data={"content": "see attached"},
        files=[("files", ("notes.txt", b"lecture notes", "text/plain"))],
        headers=auth_headers(client, ALICE)
    )

    assert response.status_code == 201
    result = response.json()
    assert result["attachments"][0]["ok"] is True
    file_path = result["message"]["attachments"][0]["file_path"]
    assert client.get(file_path).content == b"lecture notes"


def test_service_conversation(client):
    response = client.post(
        "/api/conversations/service",
        json={"provider_id": BOB, "service_id": "svc-1", "service_title": "Resume review"},
        headers=auth_headers(client, DAVE)
    )

    assert response.status_code == 200
    assert response.json()["path"] == "/dashboard/client/messages"
    assert response.json()["conversation"]["metadata"]["service_title"] == "Resume review"


def test_group_administration(client):
    created = client.post(
        "/api/conversations",
        json={"type": "group", "title": "Study Group", "participant_ids": [BOB]},
        headers=auth_headers(client, ALICE)
    )
    assert created.status_code == 201
    group_id = created.json()["id"]

    added = client.post(
        f"/api/conversations/{group_id}/participants",
        json={"participant_ids": [DAVE]},
        headers=auth_headers(client, ALICE)
    )
    left = client.delete(f"/api/conversations/{group_id}/participants/{DAVE}", headers=auth_headers(client, DAVE))
    muted = client.patch(
        f"/api/conversations/{group_id}/notifications",
        json={"enabled": False},
        headers=auth_headers(client, BOB)
    )

    assert [p["profile_id"] for p in added.json()] == [DAVE]
    assert left.json() == {"removed": True}
    assert muted.json()["notifications_enabled"] is False


def test_mark_read(client):
    conversation_id = start_chat(client)
    client.post(
        f"/api/conversations/{conversation_id}/messages",
        json={"content": "hello"},
        headers=auth_headers(client, ALICE)
    )

    response = client.post(f"/api/conversations/{conversation_id}/read", headers=auth_headers(client, BOB))

    assert response.json() == {"marked": 1}
    assert client.get("/api/conversations", headers=auth_headers(client, BOB)).json()[0]["unread_count"] == 0


def test_presence(client):
    heartbeat = client.post("/api/presence/heartbeat", json={"status": "online"}, headers=auth_headers(client, BOB))
    presence = client.get(f"/api/presence?ids={BOB}&ids={DAVE}", headers=auth_headers(client, ALICE)).json()
    offline = client.post("/api/presence/offline", headers=auth_headers(client, BOB))

    assert heartbeat.json()["status"] == "online"
    assert presence[BOB]["effective"] == "online"
    assert presence[DAVE]["effective"] == "offline"
    assert offline.status_code == 204


def test_signup_validation(client):
    valid = client.post(
        "/api/auth/validate-signup",
        json={"email": "abc123@psu.edu", "password": "secret1", "full_name": "Alex", "role": "client"}
    )
    invalid = client.post(
        "/api/auth/validate-signup",
        json={"email": "alex@gmail.com", "password": "123", "full_name": "Alex", "role": "client"}
    )

    assert valid.json() == {"valid": True}
    assert invalid.status_code == 422
    assert set(invalid.json()["fields"]) == {"email", "password"}


def test_me(client):
    response = client.get("/api/auth/me", headers=auth_headers(client, ALICE))

    assert response.json()["id"] == ALICE
    assert response.json()["profile"]["full_name"] == "Alice Smith"


def test_websocket_rejects_bad_token_and_outsiders(client):
    conversation_id = start_chat(client)
    outsider_token = auth_headers(client, DAVE)["Authorization"].split()[1]

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"/ws/conversations/{conversation_id}?token=bad"):
            pass
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"/ws/conversations/{conversation_id}?token={outsider_token}"):
            pass


def test_websocket_receives_messages_and_reports_status(client):
    conversation_id = start_chat(client)
    bob_token = auth_headers(client, BOB)["Authorization"].split()[1]

    with client.websocket_connect(f"/ws/conversations/{conversation_id}?token={bob_token}") as ws:
        sent = client.post(
            f"/api/conversations/{conversation_id}/messages",
            json={"content": "live"},
            headers=auth_headers(client, ALICE)
        ).json()["message"]

        event = ws.receive_json()
        assert event["type"] == "message"
        assert event["message"]["id"] == sent["id"]
        assert event["message"]["seq"] == 1

        ws.send_json({"type": "read", "message_id": sent["id"]})
        # Frames are handled in order, so the error reply means the read was stored
        ws.send_json({"type": "ping"})
        assert ws.receive_json()["type"] == "error"

    listed = client.get("/api/conversations", headers=auth_headers(client, ALICE)).json()
    assert listed[0]["last_message_status"] == "read"


def test_websocket_relays_typing(client):
    conversation_id = start_chat(client)
    alice_token = auth_headers(client, ALICE)["Authorization"].split()[1]
    bob_token = auth_headers(client, BOB)["Authorization"].split()[1]

    with client.websocket_connect(f"/ws/conversations/{conversation_id}?token={bob_token}") as bob:
        with client.websocket_connect(f"/ws/conversations/{conversation_id}?token={alice_token}") as alice:
            alice.send_json({"type": "typing", "is_typing": True})
            event = bob.receive_json()

    assert event == {"type": "typing", "conversation_id": conversation_id, "profile_id": ALICE, "is_typing": True}


def test_websocket_answers_malformed_frames(client):
    conversation_id = start_chat(client)
    bob_token = auth_headers(client, BOB)["Authorization"].split()[1]

    with client.websocket_connect(f"/ws/conversations/{conversation_id}?token={bob_token}") as ws:
        ws.send_json([1])
        assert ws.receive_json() == {"type": "error", "message": "Frames must be JSON objects"}

        ws.send_text("{not json")
        assert ws.receive_json()["type"] == "error"

        # The socket stays usable after bad frames
        ws.send_json({"type": "ping"})
        assert ws.receive_json()["message"] == "Unknown frame type: ping"
