import pytest

from serenity.api.routes import classes, locations, services
from serenity.core.constants import DEFAULT_OPERATING_HOURS
from factories import add_class, add_location, add_service, booking_payload
from serenity.services import booking_service

LOCATION = {
    "name": "Allentown Studio",
    "address": "1 Hamilton St",
    "city": "Allentown",
    "state": "PA",
    "zip_code": "18101",
    "phone": "(555) 222-3333",
    "email": "allentown@example.com",
    "latitude": 40.6023,
    "longitude": -75.4714,
    "operating_hours": DEFAULT_OPERATING_HOURS,
    "is_primary": False,
    "is_active": True,
}


@pytest.fixture()
def client(make_client):
    return make_client(
        (locations.router, "/api"),
        (services.router, "/api"),
        (classes.router, "/api"),
    )


def test_location_round_trip(client):
    created = client.post("/api/locations", json=LOCATION)
    assert created.status_code == 201
    location_id = created.json()["location"]["id"]

    fetched = client.get(f"/api/locations/{location_id}").json()

    for field, value in LOCATION.items():
        assert fetched[field] == value, field


def test_location_update_and_toggle(client):
    location_id = client.post("/api/locations", json=LOCATION).json()["location"]["id"]

    updated = client.put(f"/api/locations/{location_id}", json={"phone": "(555) 000-0000"})
    assert updated.json()["location"]["phone"] == "(555) 000-0000"
    assert updated.json()["location"]["name"] == LOCATION["name"]

    assert client.put(f"/api/locations/{location_id}", json={}).status_code == 400

    toggled = client.patch(f"/api/locations/{location_id}/toggle-active")
    assert toggled.json()["location"]["is_active"] is False
    assert client.get("/api/locations?active_only=true").json() == []


def test_location_delete_blocked_by_bookings(client, storage):
    location_id = add_location(storage)
    booking_service.create_booking(storage, booking_payload(add_service(storage), location_id))

    response = client.delete(f"/api/locations/{location_id}")

    assert response.status_code == 409
    assert response.json()["detail"]["booking_count"] == 1


def test_location_delete(client):
    location_id = client.post("/api/locations", json=LOCATION).json()["location"]["id"]

    assert client.delete(f"/api/locations/{location_id}").status_code == 200
    assert client.get(f"/api/locations/{location_id}").status_code == 404


def test_invalid_operating_hours(client):
    payload = dict(LOCATION, operating_hours={"funday": {"open": "09:00", "close": "17:00"}})

    assert client.post("/api/locations", json=payload).status_code == 422


def test_service_crud(client):
    created = client.post(
        "/api/services",
        json={
            "service_id": "reflexology",
            "name": "Reflexology",
            "description": "Pressure point therapy for the feet",
            "category": "therapeutic",
            "durations": [30, 60],
            "prices": [45, 80],
        },
    )
    assert created.status_code == 201
    service = created.json()["service"]
    assert (service["duration"], service["price"]) == (30, 45)
    assert service["durations"] == [30, 60]

    listed = client.get("/api/services?category=therapeutic").json()["services"]
    assert [row["service_id"] for row in listed] == ["reflexology"]

    updated = client.put(f"/api/services/{service['id']}", json={"is_popular": True}).json()["service"]
    assert updated["is_popular"] is True

    duplicate = client.post(
        "/api/services",
        json={"service_id": "reflexology", "name": "Again", "description": "x", "category": "x", "duration": 60, "price": 1},
    )
    assert duplicate.status_code == 409


def test_service_validation(client):
    mismatched = {
        "name": "Odd",
        "description": "Lists of different length",
        "category": "relaxation",
        "durations": [30, 60],
        "prices": [45],
    }

    assert client.post("/api/services", json=mismatched).status_code == 422


def test_service_categories_and_delete(client, storage):
    kept = add_service(storage)
    add_service(storage, service_id="deep-tissue", name="Deep Tissue", category="therapeutic")
    removable = add_service(storage, service_id="cupping", name="Cupping", category="therapeutic")
    booking_service.create_booking(storage, booking_payload(kept, add_location(storage)))

    categories = client.get("/api/services/meta/categories").json()["categories"]
    assert categories == [
        {"category": "relaxation", "count": 1},
        {"category": "therapeutic", "count": 2},
    ]

    assert client.delete(f"/api/services/{kept}").status_code == 409
    assert client.delete(f"/api/services/{removable}").status_code == 200
    assert client.get(f"/api/services/{removable}").status_code == 404


def test_class_registration_until_full(client, storage):
    class_id = add_class(storage, add_location(storage), max_participants=1)
    registration = {
        "class_id": class_id,
        "scheduled_date": "2024-11-02",
        "participant_first_name": "Sam",
        "participant_last_name": "Lee",
        "participant_email": "sam@example.com",
        "participant_phone": "555-987-6543",
        "total_amount": 85,
    }

    first = client.post("/api/classes/register", json=registration)
    assert first.status_code == 201
    assert first.json()["next_steps"]["payment_required"] is True

    full = client.post("/api/classes/register", json=dict(registration, participant_email="b@example.com"))
    assert full.status_code == 409
    assert full.json()["detail"] == "Class is full"

    registrations = client.get("/api/classes/registrations?status=pending").json()
    assert registrations["pagination"]["total"] == 1

    registration_id = first.json()["registration"]["id"]
    updated = client.patch(
        f"/api/classes/registrations/{registration_id}/status", json={"status": "confirmed", "payment_status": "paid"}
    )
    assert updated.json()["registration"]["payment_status"] == "paid"

    assert client.delete(f"/api/classes/{class_id}").status_code == 409


def test_class_crud(client, storage):
    location_id = add_location(storage)
    payload = {
        "title": "Massage CE: Cupping Therapy",
        "instructor": "Tiffany Young-Poindexter",
        "class_date": "2024-11-09",
        "start_time": "09:00",
        "end_time": "17:00",
        "location_id": location_id,
        "max_participants": 8,
        "price": 185,
        "category": "massage_ce",
    }

    created = client.post("/api/classes", json=payload)
    assert created.status_code == 201
    class_id = created.json()["class"]["id"]

    assert client.post("/api/classes", json=dict(payload, end_time="08:00")).status_code == 422
    assert client.post("/api/classes", json=dict(payload, location_id=999)).status_code == 404

    updated = client.put(f"/api/classes/{class_id}", json={"max_participants": 10}).json()["class"]
    assert updated["max_participants"] == 10

    listed = client.get("/api/classes?category=massage_ce").json()["classes"]
    assert [row["id"] for row in listed] == [class_id]

    assert client.delete(f"/api/classes/{class_id}").status_code == 200
    assert client.delete(f"/api/classes/{class_id}").status_code == 404


def test_class_capacity_cannot_drop_below_enrollment(client, storage):
    class_id = add_class(storage, add_location(storage), max_participants=3)
    for email in ("a@example.com", "b@example.com"):
        response = client.post(
            "/api/classes/register",
            json={
                "class_id": class_id,
                "scheduled_date": "2024-11-02",
                "participant_first_name": "Sam",
                "participant_last_name": "Lee",
                "participant_email": email,
                "participant_phone": "555-987-6543",
                "total_amount": 85,
            },
        )
        assert response.status_code == 201

    shrunk = client.put(f"/api/classes/{class_id}", json={"max_participants": 1})
    assert shrunk.status_code == 409
    row = storage.execute("SELECT max_participants FROM classes WHERE id = $1", [class_id]).first()
    assert row["max_participants"] == 3

    fitted = client.put(f"/api/classes/{class_id}", json={"max_participants": 2})
    assert fitted.status_code == 200
    assert fitted.json()["class"]["max_participants"] == 2

    assert client.put("/api/classes/9999", json={"max_participants": 5}).status_code == 404
