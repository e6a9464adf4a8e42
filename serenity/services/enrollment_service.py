import logging
from typing import Any, Mapping

from ..core.constants import BOOKING_STATUSES, PAYMENT_STATUSES
from ..core.errors import ConflictError, NotFoundError, ServiceError
from ..db.sql import build_insert, build_update

logger = logging.getLogger(__name__)


class EnrollmentError(ServiceError):
    pass


class ClassNotFoundError(EnrollmentError, NotFoundError):
    pass


class RegistrationNotFoundError(EnrollmentError, NotFoundError):
    pass


class ClassFullError(EnrollmentError, ConflictError):
    pass


def enroll(storage, payload: Mapping[str, Any]) -> dict:
    """Insert an enrollment and take one seat, or fail without touching the class.

    The seat is taken with a guarded increment, so a concurrent enrollment
    that fills the class first rolls this one back.
    """
    class_id = payload["class_id"]
    with storage.transaction() as tx:
        info = tx.execute(
            "SELECT id, max_participants, current_participants, is_active FROM classes WHERE id = $1",
            [class_id],
        ).first()
        if info is None:
            raise ClassNotFoundError("Class not found")
        if not info["is_active"]:
            raise EnrollmentError("Class is not open for enrollment")
        if info["current_participants"] >= info["max_participants"]:
            raise ClassFullError("Class is full")
        sql, params = build_insert(
            "class_enrollments",
            {
                "class_id": class_id,
                "scheduled_date": payload["scheduled_date"],
                "participant_first_name": payload["participant_first_name"],
                "participant_last_name": payload["participant_last_name"],
                "participant_email": payload["participant_email"],
                "participant_phone": payload.get("participant_phone"),
                "payment_status": payload.get("payment_status") or "pending",
                "status": "pending",
                "total_amount": payload["total_amount"],
            },
        )
        enrollment = tx.execute(sql, params).first()
        seat = tx.execute(
            "UPDATE classes SET current_participants = current_participants + 1, "
            "updated_at = CURRENT_TIMESTAMP "
            "WHERE id = $1 AND current_participants < max_participants",
            [class_id],
        )
        if not seat.changes:
            raise ClassFullError("Class is full")
    logger.info("Enrollment %s created for class %s", enrollment["id"], class_id)
    return enrollment


def update_registration_status(
    storage, registration_id: int, status: str, payment_status: str | None = None
) -> dict:
    if status not in BOOKING_STATUSES:
        raise EnrollmentError("Invalid status")
    if payment_status is not None and payment_status not in PAYMENT_STATUSES:
        raise EnrollmentError("Invalid payment status")
    patch = {"status": status}
    if payment_status is not None:
        patch["payment_status"] = payment_status
    sql, params = build_update("class_enrollments", patch, registration_id)
    registration = storage.execute(sql, params).first()
    if registration is None:
        raise RegistrationNotFoundError("Registration not found")
    return registration
