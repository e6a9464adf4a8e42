import math

import pytest

from serenity.db.sql import build_insert
from serenity.services import listing_service
from factories import add_class, add_location, add_service

STATUSES = ["pending", "confirmed", "cancelled"]


@pytest.fixture()
def bookings(storage):
    location_id = add_location(storage)
    service_id = add_service(storage)
    for index in range(23):
        sql, params = build_insert(
            "bookings",
            {
                "client_first_name": f"Client{index}",
                "client_last_name": "Doe",
                "client_email": f"client{index}@example.com",
                "service_id": service_id,
                "location_id": location_id,
                "appointment_date": "2024-10-21" if index % 2 else "2024-10-22",
                "appointment_time": f"{9 + index // 4:02d}:{(index % 4) * 15:02d}",
                "duration": 60,
                "price": 90,
                "status": STATUSES[index % 3],
            },
            returning=None,
        )
        storage.execute(sql, params)
    return storage


def expected_count(storage, status=None, day=None):
    rows = storage.execute("SELECT status, appointment_date FROM bookings").rows
    return sum(
        1
        for row in rows
        if (status is None or row["status"] == status) and (day is None or row["appointment_date"] == day)
    )


@pytest.mark.parametrize(
    "status, day, page, limit",
    [
        (None, None, 1, 20),
        (None, None, 2, 20),
        ("pending", None, 1, 3),
        ("confirmed", "2024-10-21", 2, 2),
        (None, "2024-10-22", 1, 5),
        ("cancelled", "2024-10-22", 9, 4),
    ],
)
def test_pagination_matches_filtered_count(bookings, status, day, page, limit):
    result = listing_service.list_bookings(bookings, page, limit, status, day)

    total = expected_count(bookings, status, day)
    meta = result["pagination"]
    assert meta == {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit)}
    expected_rows = max(0, min(limit, total - (page - 1) * limit))
    assert len(result["bookings"]) == expected_rows
    for row in result["bookings"]:
        assert status is None or row["status"] == status
        assert day is None or row["appointment_date"] == day


def test_limit_is_clamped(bookings):
    result = listing_service.list_bookings(bookings, 1, 500)

    assert result["pagination"]["limit"] == 100
    assert len(result["bookings"]) == 23


def test_rows_are_joined_with_names(bookings):
    row = listing_service.list_bookings(bookings, 1, 1)["bookings"][0]

    assert row["service_type"] == "Swedish Massage"
    assert row["location"] == "Bethlehem Office"
    assert row["total_amount"] == 90


def test_order_by_appointment(bookings):
    rows = listing_service.list_bookings(bookings, 1, 100, order="appointment")["bookings"]

    keys = [(row["appointment_date"], row["appointment_time"]) for row in rows]
    assert keys == sorted(keys, reverse=True)


def test_list_registrations_filters(storage):
    location_id = add_location(storage)
    cpr = add_class(storage, location_id, max_participants=10)
    cupping = add_class(storage, location_id, title="Massage CE: Cupping Therapy", course_id="cupping-ce")
    for index, (class_id, payment) in enumerate([(cpr, "paid"), (cpr, "pending"), (cupping, "paid")]):
        sql, params = build_insert(
            "class_enrollments",
            {
                "class_id": class_id,
                "participant_first_name": "P",
                "participant_last_name": str(index),
                "participant_email": f"p{index}@example.com",
                "payment_status": payment,
                "total_amount": 85,
            },
            returning=None,
        )
        storage.execute(sql, params)

    paid = listing_service.list_registrations(storage, status="paid")
    cupping_only = listing_service.list_registrations(storage, course_type="Massage CE: Cupping Therapy")

    assert paid["pagination"]["total"] == 2
    assert {row["payment_status"] for row in paid["registrations"]} == {"paid"}
    assert [row["class_id"] for row in cupping_only["registrations"]] == [cupping]
