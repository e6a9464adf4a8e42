"""Paginated admin listings.

The page query and its ``COUNT(*)`` companion are rendered from the same
``Filter``, so ``total`` and ``pages`` always describe the filtered set.
"""

import math
from typing import Any

from ..core.constants import DEFAULT_PAGE_SIZE
from ..db.sql import Filter, clamp_limit, limit_offset

BOOKING_COLUMNS = """
    b.id,
    b.service_id,
    s.name AS service_type,
    b.location_id,
    l.name AS location,
    b.duration,
    b.appointment_date,
    b.appointment_time,
    b.client_first_name,
    b.client_last_name,
    b.client_email,
    b.client_phone,
    b.price AS total_amount,
    b.status,
    b.payment_status,
    b.notes AS special_notes,
    b.created_at,
    b.updated_at
"""
BOOKING_FROM = """
    FROM bookings b
    LEFT JOIN services s ON b.service_id = s.id
    LEFT JOIN locations l ON b.location_id = l.id
"""
BOOKING_ORDER = {
    "created": "b.created_at DESC, b.id DESC",
    "appointment": "b.appointment_date DESC, b.appointment_time DESC, b.id DESC",
}

REGISTRATION_COLUMNS = """
    ce.id,
    ce.class_id,
    c.title AS class_title,
    c.class_date,
    ce.scheduled_date,
    ce.participant_first_name,
    ce.participant_last_name,
    ce.participant_email,
    ce.participant_phone,
    ce.status,
    ce.payment_status,
    ce.total_amount,
    ce.enrollment_date AS created_at
"""
REGISTRATION_FROM = """
    FROM class_enrollments ce
    JOIN classes c ON ce.class_id = c.id
"""


def page_window(page: Any, limit: Any) -> tuple[int, int, int]:
    page = max(int(page or 1), 1)
    limit = clamp_limit(DEFAULT_PAGE_SIZE if limit is None else limit)
    return page, limit, (page - 1) * limit


def pagination(page: int, limit: int, total: int) -> dict:
    return {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit)}


def _paginate(storage, columns: str, source: str, where: Filter, order: str, page, limit):
    page, limit, offset = page_window(page, limit)
    rows = storage.execute(
        f"SELECT {columns} {source}{where.sql()} ORDER BY {order} {limit_offset(limit, offset)}",
        where.params,
    ).rows
    total = int(
        storage.execute(f"SELECT COUNT(*) AS count {source}{where.sql()}", where.params).scalar(0)
    )
    return rows, pagination(page, limit, total)


def list_bookings(
    storage,
    page: int = 1,
    limit: int | None = DEFAULT_PAGE_SIZE,
    status: str | None = None,
    date: str | None = None,
    order: str = "created",
) -> dict:
    where = Filter().equals_if("b.status", status).equals_if("b.appointment_date", date)
    rows, meta = _paginate(storage, BOOKING_COLUMNS, BOOKING_FROM, where, BOOKING_ORDER[order], page, limit)
    return {"bookings": rows, "pagination": meta}


def list_registrations(
    storage,
    page: int = 1,
    limit: int | None = DEFAULT_PAGE_SIZE,
    status: str | None = None,
    course_type: str | None = None,
) -> dict:
    where = Filter().equals_if("ce.payment_status", status).equals_if("c.title", course_type)
    rows, meta = _paginate(
        storage, REGISTRATION_COLUMNS, REGISTRATION_FROM, where, "ce.enrollment_date DESC, ce.id DESC", page, limit
    )
    return {"registrations": rows, "pagination": meta}
