from __future__ import annotations

from datetime import date, timedelta

import pytest

from conftest import bearer, register


def _future(days: int = 14) -> str:
    return (date.today() + timedelta(days=days)).isoformat()


def _book(client, token: str, service_id: str, **overrides):
    payload = {"serviceId": service_id, "travelDate": _future(), "numberOfPeople": 2}
    payload.update(overrides)
    return client.post("/api/bookings", headers=bearer(token), json=payload)


@pytest.fixture
def booking(client, customer, service):
    r = _book(client, customer["token"], service["id"], notes="Window seats please")
    assert r.status_code == 201, r.text
    return r.json()


def test_create_booking_computes_total_and_is_pending(booking, service, customer):
    assert booking["status"] == "Pending"
    assert booking["totalPrice"] == 3000000.0
    assert booking["userId"] == customer["id"]
    assert booking["serviceName"] == service["name"]
    assert booking["notes"] == "Window seats please"


def test_bookings_require_auth(client):
    assert client.get("/api/bookings").status_code == 401


def test_create_booking_unknown_service(client, customer):
    r = _book(client, customer["token"], "missing-service")
    assert r.status_code == 404


def test_create_booking_in_the_past(client, customer, service):
    r = _book(client, customer["token"], service["id"], travelDate=_future(-3))
    assert r.status_code == 400


def test_create_booking_over_capacity(client, customer, service):
    r = _book(client, customer["token"], service["id"], numberOfPeople=11)
    assert r.status_code == 400


def test_create_booking_for_inactive_service(client, admin, customer, service):
    client.put(f"/api/services/{service['id']}", headers=bearer(admin["token"]), json={"isActive": False})
    r = _book(client, customer["token"], service["id"])
    assert r.status_code == 400


def test_customers_only_see_their_own_bookings(client, booking, service):
    other = register(client, "other@example.com")
    other_token = other["access_token"]

    r = client.get("/api/bookings", headers=bearer(other_token))
    assert r.json()["total"] == 0

    r = client.get(f"/api/bookings/{booking['id']}", headers=bearer(other_token))
    assert r.status_code == 404

    r = client.delete(f"/api/bookings/{booking['id']}", headers=bearer(other_token))
    assert r.status_code == 404


def test_admin_sees_all_and_can_filter(client, admin, customer, booking, service):
    other = register(client, "second@example.com")
    _book(client, other["access_token"], service["id"])

    all_ = client.get("/api/bookings", headers=bearer(admin["token"])).json()
    assert all_["total"] == 2

    mine = client.get(
        f"/api/bookings?userId={customer['id']}", headers=bearer(admin["token"])
    ).json()
    assert [b["id"] for b in mine["data"]] == [booking["id"]]

    pending = client.get("/api/bookings?status=Pending", headers=bearer(admin["token"])).json()
    assert pending["total"] == 2
    confirmed = client.get("/api/bookings?status=Confirmed", headers=bearer(admin["token"])).json()
    assert confirmed["total"] == 0


def test_update_people_recomputes_total(client, customer, booking):
    r = client.put(
        f"/api/bookings/{booking['id']}",
        headers=bearer(customer["token"]),
        json={"numberOfPeople": 3},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["numberOfPeople"] == 3
    assert body["totalPrice"] == 4500000.0
    assert body["notes"] == booking["notes"]


def test_customer_can_cancel_but_not_confirm(client, customer, booking):
    r = client.put(
        f"/api/bookings/{booking['id']}",
        headers=bearer(customer["token"]),
        json={"status": "Confirmed"},
    )
    assert r.status_code == 403

    r = client.put(
        f"/api/bookings/{booking['id']}",
        headers=bearer(customer["token"]),
        json={"status": "Cancelled"},
    )
    assert r.status_code == 200
    assert r.json()["status"] == "Cancelled"

    # Cancelled bookings are frozen for customers.
    r = client.put(
        f"/api/bookings/{booking['id']}",
        headers=bearer(customer["token"]),
        json={"notes": "changed my mind"},
    )
    assert r.status_code == 400


def test_admin_can_confirm(client, admin, booking):
    r = client.put(
        f"/api/bookings/{booking['id']}",
        headers=bearer(admin["token"]),
        json={"status": "Confirmed"},
    )
    assert r.status_code == 200
    assert r.json()["status"] == "Confirmed"


def test_unknown_status_is_rejected(client, admin, booking):
    r = client.put(
        f"/api/bookings/{booking['id']}",
        headers=bearer(admin["token"]),
        json={"status": "Lost"},
    )
    assert r.status_code == 422


def test_delete_booking(client, customer, booking):
    r = client.delete(f"/api/bookings/{booking['id']}", headers=bearer(customer["token"]))
    assert r.status_code == 204
    r = client.get(f"/api/bookings/{booking['id']}", headers=bearer(customer["token"]))
    assert r.status_code == 404
