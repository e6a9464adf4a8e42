from datetime import date
import logging
from typing import Any, Mapping

from ..core.constants import BOOKING_STATUSES, CANCELLED, PAYMENT_STATUSES
from ..core.errors import ConflictError, NotFoundError, ServiceError
from ..db.sql import build_insert, build_update
from ..db.storage import StorageError

logger = logging.getLogger(__name__)

# Same-status updates are always allowed so payment status can change on its own.
ALLOWED_TRANSITIONS = {
    "pending": {"pending", "confirmed", "completed", "cancelled"},
    "confirmed": {"confirmed", "completed", "cancelled"},
    "completed": {"completed"},
    "cancelled": {"cancelled"},
}


class BookingError(ServiceError):
    pass


class BookingNotFoundError(BookingError, NotFoundError):
    pass


class SlotTakenError(BookingError, ConflictError):
    pass


class InvalidTransitionError(BookingError, ConflictError):
    pass


def _require_active(tx, table: str, key: int, label: str) -> None:
    row = tx.execute(f"SELECT id, is_active FROM {table} WHERE id = $1", [key]).first()
    if row is None:
        raise BookingNotFoundError(f"{label} not found")
    if not row["is_active"]:
        raise BookingError(f"{label} is not available")


def slot_is_taken(storage, location_id: int, day: date, time_of_day: str) -> bool:
    existing = storage.execute(
        "SELECT id FROM bookings WHERE appointment_date = $1 AND appointment_time = $2 "
        "AND location_id = $3 AND status <> $4",
        [day, time_of_day, location_id, CANCELLED],
    )
    return bool(existing.rows)


def create_booking(storage, payload: Mapping[str, Any]) -> dict:
    """Check the slot, then insert a ``pending`` booking and return the stored row.

    Both steps share one transaction; the partial unique index on active
    slots turns a lost race into the same ``SlotTakenError``.
    """
    with storage.transaction() as tx:
        _require_active(tx, "services", payload["service_id"], "Service")
        _require_active(tx, "locations", payload["location_id"], "Location")
        if slot_is_taken(tx, payload["location_id"], payload["appointment_date"], payload["appointment_time"]):
            raise SlotTakenError("Time slot is already booked")
        sql, params = build_insert(
            "bookings",
            {
                "client_first_name": payload["client_first_name"],
                "client_last_name": payload["client_last_name"],
                "client_email": payload["client_email"],
                "client_phone": payload.get("client_phone"),
                "service_id": payload["service_id"],
                "location_id": payload["location_id"],
                "appointment_date": payload["appointment_date"],
                "appointment_time": payload["appointment_time"],
                "duration": payload["duration"],
                "price": payload["price"],
                "status": "pending",
                "payment_status": "pending",
                "notes": payload.get("notes") or "",
            },
        )
        try:
            booking = tx.execute(sql, params).first()
        except StorageError as exc:
            if exc.unique_violation:
                raise SlotTakenError("Time slot is already booked") from exc
            raise
    logger.info(
        "Booking %s created for location %s on %s %s",
        booking["id"],
        booking["location_id"],
        booking["appointment_date"],
        booking["appointment_time"],
    )
    return booking


def get_booking(storage, booking_id: int) -> dict:
    booking = storage.execute("SELECT * FROM bookings WHERE id = $1", [booking_id]).first()
    if booking is None:
        raise BookingNotFoundError("Booking not found")
    return booking


def update_status(storage, booking_id: int, status: str, payment_status: str | None = None) -> dict:
    if status not in BOOKING_STATUSES:
        raise BookingError("Invalid status")
    if payment_status is not None and payment_status not in PAYMENT_STATUSES:
        raise BookingError("Invalid payment status")
    patch = {"status": status}
    if payment_status is not None:
        patch["payment_status"] = payment_status
    with storage.transaction() as tx:
        current = get_booking(tx, booking_id)
        if status not in ALLOWED_TRANSITIONS[current["status"]]:
            raise InvalidTransitionError(
                f"Cannot change booking status from {current['status']} to {status}"
            )
        sql, params = build_update("bookings", patch, booking_id)
        try:
            booking = tx.execute(sql, params).first()
        except StorageError as exc:
            if exc.unique_violation:
                raise SlotTakenError("Time slot is already booked") from exc
            raise
    if booking is None:
        raise BookingNotFoundError("Booking not found")
    return booking


def delete_booking(storage, booking_id: int) -> None:
    result = storage.execute("DELETE FROM bookings WHERE id = $1 RETURNING id", [booking_id])
    if not result.rows:
        raise BookingNotFoundError("Booking not found")
