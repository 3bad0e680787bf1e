"""Tests for direct-message conversations."""

import pytest
from fastapi.testclient import TestClient


@pytest.fixture()
def conversation(client):
    resp = client.post("/api/conversations", json={"user_id": "rory", "other_user_id": "amy"})
    assert resp.status_code == 200
    return resp.json()


def _send(client, conv_id, sender_id, content, **extra):
    return client.post(
        f"/api/conversations/{conv_id}/messages",
        json={"sender_id": sender_id, "content": content, **extra},
    )


class TestConversation:
    def test_get_or_create_is_order_independent(self, client: TestClient, conversation):
        assert conversation["other_user_id"] == "amy"
        again = client.post("/api/conversations", json={"user_id": "amy", "other_user_id": "rory"})
        assert again.json()["id"] == conversation["id"]
        assert again.json()["other_user_id"] == "rory"

    def test_cannot_message_yourself(self, client: TestClient):
        resp = client.post("/api/conversations", json={"user_id": "amy", "other_user_id": "amy"})
        assert resp.status_code == 400

    def test_list_most_recent_first(self, client: TestClient, conversation):
        other = client.post("/api/conversations", json={"user_id": "amy", "other_user_id": "clara"}).json()
        ids = [c["id"] for c in client.get("/api/conversations?user_id=amy").json()]
        assert ids == [other["id"], conversation["id"]]

        _send(client, conversation["id"], "rory", "ping")
        listed = client.get("/api/conversations?user_id=amy").json()
        assert [c["id"] for c in listed] == [conversation["id"], other["id"]]
        assert listed[0]["unread_count"] == 1

        assert client.get("/api/conversations?user_id=nobody").json() == []


class TestDirectMessages:
    def test_send_and_list(self, client: TestClient, conversation):
        first = _send(client, conversation["id"], "rory", "  hola  ")
        assert first.status_code == 200
        assert first.json()["content"] == "hola"
        assert first.json()["is_read"] is False
        _send(client, conversation["id"], "amy", "https://example.com/a.gif", message_type="gif")

        resp = client.get(f"/api/conversations/{conversation['id']}/messages?user_id=amy")
        data = resp.json()
        assert data["total"] == 2
        assert [m["sender_id"] for m in data["messages"]] == ["rory", "amy"]
        assert data["messages"][1]["message_type"] == "gif"

        page = client.get(f"/api/conversations/{conversation['id']}/messages?user_id=amy&limit=1&offset=1").json()
        assert [m["sender_id"] for m in page["messages"]] == ["amy"]

    def test_content_rules(self, client: TestClient, conversation):
        assert _send(client, conversation["id"], "rory", "   ").status_code == 422
        assert _send(client, conversation["id"], "rory", "not a url", message_type="image").status_code == 422

    def test_outsiders_rejected(self, client: TestClient, conversation):
        assert _send(client, conversation["id"], "clara", "hi").status_code == 403
        url = f"/api/conversations/{conversation['id']}/messages?user_id=clara"
        assert client.get(url).status_code == 403
        read = client.post(f"/api/conversations/{conversation['id']}/read", json={"user_id": "clara"})
        assert read.status_code == 403

    def test_missing_conversation(self, client: TestClient):
        assert client.get("/api/conversations/9999/messages?user_id=amy").status_code == 404
        assert _send(client, 9999, "amy", "hi").status_code == 404

    def test_mark_read_only_touches_incoming(self, client: TestClient, conversation):
        conv_id = conversation["id"]
        _send(client, conv_id, "rory", "one")
        _send(client, conv_id, "rory", "two")
        _send(client, conv_id, "amy", "three")

        resp = client.post(f"/api/conversations/{conv_id}/read", json={"user_id": "amy"})
        assert resp.json() == {"updated": 2}
        assert client.post(f"/api/conversations/{conv_id}/read", json={"user_id": "amy"}).json() == {"updated": 0}

        rory_view = client.get("/api/conversations?user_id=rory").json()[0]
        assert rory_view["unread_count"] == 1
