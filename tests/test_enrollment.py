from datetime import date

import pytest

from serenity.services import enrollment_service
from factories import add_class, add_location


def registration(class_id, email="sam@example.com"):
    return {
        "class_id": class_id,
        "scheduled_date": date(2024, 11, 2),
        "participant_first_name": "Sam",
        "participant_last_name": "Lee",
        "participant_email": email,
        "participant_phone": "555-987-6543",
        "payment_status": "pending",
        "total_amount": 85.0,
    }


def participants(storage, class_id):
    return storage.execute(
        "SELECT current_participants FROM classes WHERE id = $1", [class_id]
    ).scalar()


def test_enroll_takes_a_seat(storage):
    class_id = add_class(storage, add_location(storage), max_participants=2)

    enrollment = enrollment_service.enroll(storage, registration(class_id))

    assert enrollment["class_id"] == class_id
    assert enrollment["status"] == "pending"
    assert participants(storage, class_id) == 1


def test_full_class_is_left_untouched(storage):
    class_id = add_class(storage, add_location(storage), max_participants=1)
    enrollment_service.enroll(storage, registration(class_id))

    with pytest.raises(enrollment_service.ClassFullError) as info:
        enrollment_service.enroll(storage, registration(class_id, "late@example.com"))

    assert info.value.status_code == 409
    assert participants(storage, class_id) == 1
    assert storage.execute("SELECT COUNT(*) AS count FROM class_enrollments").scalar() == 1


def test_lost_seat_race_rolls_back_the_enrollment(storage):
    class_id = add_class(storage, add_location(storage), max_participants=1)

    class RacingStorage:
        """Fills the class between the capacity read and the guarded increment."""

        def __init__(self, inner):
            self.inner = inner

        def transaction(self):
            inner = self.inner

            class Tx:
                def __init__(self, tx):
                    self.tx = tx

                def execute(self, statement, params=()):
                    if statement.startswith("UPDATE classes"):
                        self.tx.execute(
                            "UPDATE classes SET current_participants = max_participants WHERE id = $1",
                            [class_id],
                        )
                    return self.tx.execute(statement, params)

            class Context:
                def __enter__(self):
                    self.manager = inner.transaction()
                    return Tx(self.manager.__enter__())

                def __exit__(self, *exc_info):
                    return self.manager.__exit__(*exc_info)

            return Context()

    with pytest.raises(enrollment_service.ClassFullError):
        enrollment_service.enroll(RacingStorage(storage), registration(class_id))

    assert storage.execute("SELECT COUNT(*) AS count FROM class_enrollments").scalar() == 0
    assert participants(storage, class_id) == 0


def test_missing_and_inactive_classes(storage):
    class_id = add_class(storage, add_location(storage), is_active=False)

    with pytest.raises(enrollment_service.ClassNotFoundError):
        enrollment_service.enroll(storage, registration(999))
    with pytest.raises(enrollment_service.EnrollmentError, match="not open"):
        enrollment_service.enroll(storage, registration(class_id))


def test_update_registration_status(storage):
    class_id = add_class(storage, add_location(storage))
    enrollment = enrollment_service.enroll(storage, registration(class_id))

    updated = enrollment_service.update_registration_status(storage, enrollment["id"], "confirmed", "paid")

    assert updated["status"] == "confirmed"
    assert updated["payment_status"] == "paid"
    with pytest.raises(enrollment_service.EnrollmentError, match="Invalid status"):
        enrollment_service.update_registration_status(storage, enrollment["id"], "done")
    with pytest.raises(enrollment_service.RegistrationNotFoundError):
        enrollment_service.update_registration_status(storage, 999, "confirmed")
