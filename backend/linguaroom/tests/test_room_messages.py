"""Tests for room chat endpoints."""

import pytest
from fastapi.testclient import TestClient


@pytest.fixture()
def room(make_room):
    return make_room(host_id="amy")


def post(client, room_id, content="Hola!", sender_id="amy", **extra):
    return client.post(
        f"/api/rooms/{room_id}/messages",
        json={"sender_id": sender_id, "content": content, **extra},
    )


class TestSendMessage:
    def test_send_text(self, client: TestClient, room):
        resp = post(client, room["id"], content="  Hola a todos  ")
        assert resp.status_code == 200
        data = resp.json()
        assert data["content"] == "Hola a todos"
        assert data["message_type"] == "text"
        assert data["room_id"] == room["id"]

    def test_send_gif(self, client: TestClient, room):
        resp = post(client, room["id"], content="https://media.giphy.com/media/x/giphy.gif", message_type="gif")
        assert resp.status_code == 200
        assert resp.json()["message_type"] == "gif"

    def test_gif_must_be_url(self, client: TestClient, room):
        resp = post(client, room["id"], content="not a link", message_type="gif")
        assert resp.status_code == 422

    def test_blank_content_rejected(self, client: TestClient, room):
        assert post(client, room["id"], content="   ").status_code == 422

    def test_unknown_type_rejected(self, client: TestClient, room):
        assert post(client, room["id"], message_type="video").status_code == 422

    def test_missing_room(self, client: TestClient):
        assert post(client, 9999).status_code == 404

    def test_closed_room(self, client: TestClient, room):
        client.post(f"/api/rooms/{room['id']}/close", json={"user_id": "amy"})
        assert post(client, room["id"]).status_code == 409


class TestListMessages:
    def test_ascending_order(self, client: TestClient, room):
        for text in ("one", "two", "three"):
            post(client, room["id"], content=text)
        resp = client.get(f"/api/rooms/{room['id']}/messages")
        assert resp.status_code == 200
        data = resp.json()
        assert [m["content"] for m in data["messages"]] == ["one", "two", "three"]
        assert data["total"] == 3

    def test_pagination(self, client: TestClient, room):
        for i in range(5):
            post(client, room["id"], content=f"msg {i}")
        resp = client.get(f"/api/rooms/{room['id']}/messages?limit=2&offset=2")
        data = resp.json()
        assert [m["content"] for m in data["messages"]] == ["msg 2", "msg 3"]
        assert data["total"] == 5

    def test_closed_room_history_still_readable(self, client: TestClient, room):
        post(client, room["id"])
        client.post(f"/api/rooms/{room['id']}/close", json={"user_id": "amy"})
        assert client.get(f"/api/rooms/{room['id']}/messages").json()["total"] == 1

    def test_missing_room(self, client: TestClient):
        assert client.get("/api/rooms/9999/messages").status_code == 404
