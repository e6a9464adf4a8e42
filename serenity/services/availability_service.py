"""Free appointment slots for a day, derived from location operating hours."""

from datetime import date
import json
from typing import Any, Mapping

from ..core.constants import (
    CANCELLED,
    DEFAULT_APPOINTMENT_DURATION,
    DEFAULT_OPERATING_HOURS,
    SLOT_STEP_MINUTES,
    WEEKDAYS,
)
from ..core.errors import NotFoundError
from ..db.sql import Filter


class LocationNotFoundError(NotFoundError):
    pass


def to_minutes(value: str) -> int:
    hours, minutes = value[:5].split(":")
    return int(hours) * 60 + int(minutes)


def format_minutes(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


def decode_operating_hours(raw: Any) -> dict | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, (bytes, str)):
        return json.loads(raw)
    return dict(raw)


def hours_for_day(operating_hours: Mapping[str, Any], day: date) -> Mapping[str, Any] | None:
    return operating_hours.get(WEEKDAYS[day.weekday()])


def build_slot_grid(
    day_hours: Mapping[str, Any] | None,
    duration: int = DEFAULT_APPOINTMENT_DURATION,
    step: int = SLOT_STEP_MINUTES,
) -> list[str]:
    """Start times every ``step`` minutes whose appointment ends by closing time.

    A missing entry or ``{"closed": true}`` yields no slots.
    """
    if not day_hours or day_hours.get("closed") or not day_hours.get("open") or not day_hours.get("close"):
        return []
    start = to_minutes(day_hours["open"])
    end = to_minutes(day_hours["close"])
    slots = []
    current = start
    while current + duration <= end:
        slots.append(format_minutes(current))
        current += step
    return slots


def _location_hours(storage, location_id: int) -> dict:
    row = storage.execute(
        "SELECT id, operating_hours FROM locations WHERE id = $1", [location_id]
    ).first()
    if row is None:
        raise LocationNotFoundError("Location not found")
    return decode_operating_hours(row["operating_hours"]) or DEFAULT_OPERATING_HOURS


def booked_times(storage, day: date, location_id: int | None = None) -> list[str]:
    where = (
        Filter()
        .equals("appointment_date", day)
        .compare("status", "<>", CANCELLED)
        .equals_if("location_id", location_id)
    )
    rows = storage.execute(f"SELECT appointment_time FROM bookings{where.sql()}", where.params).rows
    return sorted({str(row["appointment_time"])[:5] for row in rows})


def get_availability(
    storage,
    day: date,
    location_id: int | None = None,
    duration: int = DEFAULT_APPOINTMENT_DURATION,
) -> dict:
    # Past dates are answered like any other; rejecting them is the caller's call.
    if location_id is not None:
        operating_hours = _location_hours(storage, location_id)
    else:
        operating_hours = DEFAULT_OPERATING_HOURS
    grid = build_slot_grid(hours_for_day(operating_hours, day), duration)
    booked = booked_times(storage, day, location_id)
    taken = set(booked)
    return {
        "date": day.isoformat(),
        "location_id": location_id if location_id is not None else "all",
        "duration": duration,
        "available_slots": [slot for slot in grid if slot not in taken],
        "booked_slots": booked,
    }
