from __future__ import annotations

import pytest

from conftest import bearer, register


@pytest.fixture
def alice(client):
    body = register(client, "alice@example.com", full_name="Alice")
    return {"id": body["user"]["id"], "token": body["access_token"]}


@pytest.fixture
def bob(client):
    body = register(client, "bob@example.com", full_name="Bob")
    return {"id": body["user"]["id"], "token": body["access_token"]}


def _send(client, sender, receiver_id: str, content: str = "hello", **extra):
    payload = {"receiverId": receiver_id, "content": content}
    payload.update(extra)
    return client.post("/api/chat/messages", headers=bearer(sender["token"]), json=payload)


def test_send_and_read_thread(client, alice, bob):
    r = _send(client, alice, bob["id"], "Xin chao")
    assert r.status_code == 201
    msg = r.json()
    assert msg["senderId"] == alice["id"]
    assert msg["receiverId"] == bob["id"]
    assert msg["isRead"] is False

    _send(client, bob, alice["id"], "Hi Alice")

    thread = client.get(
        f"/api/chat/messages?withUserId={bob['id']}", headers=bearer(alice["token"])
    ).json()
    assert thread["total"] == 2
    # Newest first.
    assert thread["data"][0]["content"] == "Hi Alice"


def test_send_to_unknown_receiver(client, alice):
    r = _send(client, alice, "no-such-user")
    assert r.status_code == 404


def test_cannot_message_yourself(client, alice):
    r = _send(client, alice, alice["id"])
    assert r.status_code == 400


def test_blank_content_is_rejected(client, alice, bob):
    assert _send(client, alice, bob["id"], "   ").status_code == 400
    assert _send(client, alice, bob["id"], "").status_code == 422


def test_booking_must_belong_to_a_participant(client, alice, bob, customer, service):
    from datetime import date, timedelta

    booking = client.post(
        "/api/bookings",
        headers=bearer(customer["token"]),
        json={
            "serviceId": service["id"],
            "travelDate": (date.today() + timedelta(days=5)).isoformat(),
            "numberOfPeople": 1,
        },
    ).json()

    r = _send(client, alice, bob["id"], bookingId=booking["id"])
    assert r.status_code == 400

    r = _send(client, customer, alice["id"], "about my trip", bookingId=booking["id"])
    assert r.status_code == 201
    assert r.json()["bookingId"] == booking["id"]


def test_conversations_have_last_message_and_unread_count(client, alice, bob):
    _send(client, alice, bob["id"], "one")
    _send(client, alice, bob["id"], "two")

    convos = client.get("/api/chat/conversations", headers=bearer(bob["token"])).json()["data"]
    assert len(convos) == 1
    assert convos[0]["userId"] == alice["id"]
    assert convos[0]["fullName"] == "Alice"
    assert convos[0]["unreadCount"] == 2
    assert convos[0]["lastMessage"]["content"] in ("one", "two")

    # The sender has nothing unread.
    convos = client.get("/api/chat/conversations", headers=bearer(alice["token"])).json()["data"]
    assert convos[0]["unreadCount"] == 0


def test_only_receiver_marks_read(client, alice, bob):
    msg = _send(client, alice, bob["id"]).json()

    r = client.put(f"/api/chat/messages/{msg['id']}/read", headers=bearer(alice["token"]))
    assert r.status_code == 403

    r = client.put(f"/api/chat/messages/{msg['id']}/read", headers=bearer(bob["token"]))
    assert r.status_code == 200
    assert r.json()["isRead"] is True


def test_outsiders_cannot_see_messages(client, alice, bob, customer):
    msg = _send(client, alice, bob["id"]).json()
    r = client.get(f"/api/chat/messages/{msg['id']}", headers=bearer(customer["token"]))
    assert r.status_code == 404

    r = client.get(f"/api/chat/messages/{msg['id']}", headers=bearer(bob["token"]))
    assert r.status_code == 200


def test_admin_can_see_any_message(client, alice, bob, admin):
    msg = _send(client, alice, bob["id"]).json()
    r = client.get(f"/api/chat/messages/{msg['id']}", headers=bearer(admin["token"]))
    assert r.status_code == 200


def test_only_sender_deletes(client, alice, bob):
    msg = _send(client, alice, bob["id"]).json()

    r = client.delete(f"/api/chat/messages/{msg['id']}", headers=bearer(bob["token"]))
    assert r.status_code == 403

    r = client.delete(f"/api/chat/messages/{msg['id']}", headers=bearer(alice["token"]))
    assert r.status_code == 204
    r = client.get(f"/api/chat/messages/{msg['id']}", headers=bearer(alice["token"]))
    assert r.status_code == 404
