from __future__ import annotations

from conftest import bearer


def test_catalogue_is_public(client, service):
    r = client.get("/api/services")
    assert r.status_code == 200
    body = r.json()
    assert body["total"] == 1
    assert body["limit"] == 20 and body["offset"] == 0
    item = body["data"][0]
    assert item["name"] == "Ha Long Bay Cruise"
    assert item["price"] == 1500000.0
    assert item["currency"] == "VND"
    assert item["durationDays"] == 2


def test_get_service_by_id(client, service):
    r = client.get(f"/api/services/{service['id']}")
    assert r.status_code == 200
    assert r.json()["id"] == service["id"]
    assert len(service["id"]) == 36


def test_unknown_service_is_404(client):
    r = client.get("/api/services/does-not-exist")
    assert r.status_code == 404
    assert r.json()["detail"] == "Service not found"


def test_create_requires_auth(client):
    r = client.post("/api/services", json={"name": "X", "price": 1})
    assert r.status_code == 401


def test_partial_update_changes_only_sent_fields(client, admin, service):
    r = client.put(
        f"/api/services/{service['id']}",
        headers=bearer(admin["token"]),
        json={"price": 1750000.5},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["price"] == 1750000.5
    assert body["name"] == service["name"]
    assert body["location"] == service["location"]


def test_update_rejects_null_name(client, admin, service):
    r = client.put(
        f"/api/services/{service['id']}",
        headers=bearer(admin["token"]),
        json={"name": None},
    )
    assert r.status_code == 400


def test_update_unknown_service(client, admin):
    r = client.put("/api/services/nope", headers=bearer(admin["token"]), json={"price": 1})
    assert r.status_code == 404


def test_inactive_services_hidden_from_public(client, admin, service):
    client.put(
        f"/api/services/{service['id']}",
        headers=bearer(admin["token"]),
        json={"isActive": False},
    )

    assert client.get("/api/services").json()["total"] == 0
    assert client.get(f"/api/services/{service['id']}").status_code == 404

    # Admins can still see it.
    r = client.get("/api/services?includeInactive=true", headers=bearer(admin["token"]))
    assert r.json()["total"] == 1
    r = client.get(f"/api/services/{service['id']}", headers=bearer(admin["token"]))
    assert r.status_code == 200
    assert r.json()["isActive"] is False


def test_filters_and_search(client, admin, service):
    client.post(
        "/api/services",
        headers=bearer(admin["token"]),
        json={"name": "Hoi An Food Walk", "category": "Food", "location": "Quang Nam", "price": 300000},
    )

    assert client.get("/api/services?category=Food").json()["total"] == 1
    assert client.get("/api/services?location=Quang%20Ninh").json()["total"] == 1
    found = client.get("/api/services?search=food").json()
    assert [s["name"] for s in found["data"]] == ["Hoi An Food Walk"]


def test_paging(client, admin):
    for i in range(3):
        client.post(
            "/api/services",
            headers=bearer(admin["token"]),
            json={"name": f"Tour {i}", "price": 100 + i},
        )
    r = client.get("/api/services?limit=2&offset=1")
    body = r.json()
    assert body["total"] == 3
    assert [s["name"] for s in body["data"]] == ["Tour 1", "Tour 2"]

    assert client.get("/api/services?limit=500").status_code == 422


def test_delete_service(client, admin, service):
    r = client.delete(f"/api/services/{service['id']}", headers=bearer(admin["token"]))
    assert r.status_code == 204
    assert client.get(f"/api/services/{service['id']}").status_code == 404


def test_delete_service_with_bookings_conflicts(client, admin, customer, service):
    from datetime import date, timedelta

    r = client.post(
        "/api/bookings",
        headers=bearer(customer["token"]),
        json={
            "serviceId": service["id"],
            "travelDate": (date.today() + timedelta(days=10)).isoformat(),
            "numberOfPeople": 1,
        },
    )
    assert r.status_code == 201

    r = client.delete(f"/api/services/{service['id']}", headers=bearer(admin["token"]))
    assert r.status_code == 409


def test_search_treats_like_wildcards_literally(client, admin, service):
    client.post(
        "/api/services",
        headers=bearer(admin["token"]),
        json={"name": "Sapa Trek 50% Off", "location": "Lao_Cai", "price": 900000},
    )

    found = client.get("/api/services?search=%25").json()
    assert [s["name"] for s in found["data"]] == ["Sapa Trek 50% Off"]
    assert client.get("/api/services?search=_").json()["total"] == 0
    assert client.get("/api/services?location=_").json()["total"] == 1
