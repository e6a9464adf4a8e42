"""Schema creation and reference data, run at startup and from ``/api/admin/init``."""

from datetime import date, timedelta
import logging

from ..config import Settings, get_settings
from ..core.constants import DEFAULT_OPERATING_HOURS
from ..db import models  # noqa: F401  registers the tables on Base.metadata
from ..db.session import Base, get_storage
from ..db.sql import build_insert
from .admin import ensure_admin_exists

logger = logging.getLogger(__name__)

DEFAULT_LOCATIONS = [
    {
        "name": "Bethlehem Office",
        "address": "610 West Broad St",
        "city": "Bethlehem",
        "state": "PA",
        "zip_code": "18018",
        "phone": "(555) 123-4567",
        "email": "info@serenitymassage.org",
        "is_primary": True,
        "operating_hours": DEFAULT_OPERATING_HOURS,
    },
    {
        "name": "Hershey Office",
        "address": "24 Northeast Dr",
        "city": "Hershey",
        "state": "PA",
        "zip_code": "17033",
        "phone": "(555) 123-4567",
        "email": "info@serenitymassage.org",
        "is_primary": False,
        "operating_hours": DEFAULT_OPERATING_HOURS,
    },
]

DEFAULT_SERVICES = [
    {
        "service_id": "swedish",
        "name": "Swedish Massage",
        "category": "relaxation",
        "description": "Classic relaxation massage using gentle, flowing strokes to promote overall wellness.",
        "durations": [30, 60, 90],
        "prices": [55.00, 90.00, 125.00],
        "is_popular": True,
    },
    {
        "service_id": "deep-tissue",
        "name": "Deep Tissue Massage",
        "category": "therapeutic",
        "description": "Targets deeper layers of muscle and connective tissue to relieve chronic tension and pain.",
        "durations": [30, 60, 90],
        "prices": [60.00, 100.00, 140.00],
        "is_popular": True,
    },
    {
        "service_id": "prenatal",
        "name": "Prenatal Massage",
        "category": "pregnancy",
        "description": "Specialized massage designed to support the changing needs of expecting mothers.",
        "durations": [45, 60, 75],
        "prices": [75.00, 95.00, 115.00],
        "is_popular": True,
    },
    {
        "service_id": "hot-stone",
        "name": "Hot Stone Massage",
        "category": "relaxation",
        "description": "Heated stone therapy massage.",
        "durations": [90],
        "prices": [120.00],
        "is_popular": False,
    },
    {
        "service_id": "cupping",
        "name": "Cupping Therapy",
        "category": "therapeutic",
        "description": "Traditional cupping treatment.",
        "durations": [45],
        "prices": [70.00],
        "is_popular": False,
    },
]

DEFAULT_CLASSES = [
    {
        "course_id": "cpr-first-aid",
        "title": "CPR/First Aid/AED Certification",
        "description": "American Red Cross certified CPR, First Aid, and AED training",
        "instructor": "Tiffany Young-Poindexter",
        "days_ahead": 14,
        "start_time": "09:00",
        "end_time": "13:00",
        "max_participants": 12,
        "price": 85.00,
        "category": "cpr",
    },
    {
        "course_id": "cupping-ce",
        "title": "Massage CE: Cupping Therapy",
        "description": "Continuing education for massage therapists - Cupping techniques",
        "instructor": "Tiffany Young-Poindexter",
        "days_ahead": 21,
        "start_time": "09:00",
        "end_time": "17:00",
        "max_participants": 8,
        "price": 185.00,
        "category": "massage_ce",
    },
]


def create_schema(storage) -> None:
    Base.metadata.create_all(bind=storage.engine)


def _exists(storage, table: str, column: str, value) -> bool:
    return bool(storage.execute(f"SELECT id FROM {table} WHERE {column} = $1", [value]).rows)


def seed_locations(storage) -> int:
    created = 0
    for location in DEFAULT_LOCATIONS:
        if _exists(storage, "locations", "name", location["name"]):
            continue
        sql, params = build_insert("locations", {**location, "is_active": True}, returning=None)
        storage.execute(sql, params)
        logger.info("Created location: %s", location["name"])
        created += 1
    return created


def seed_services(storage) -> int:
    created = 0
    for service in DEFAULT_SERVICES:
        if _exists(storage, "services", "service_id", service["service_id"]):
            continue
        # canonical duration/price: the 60 minute option when offered, else the first
        index = service["durations"].index(60) if 60 in service["durations"] else 0
        values = {
            **service,
            "duration": service["durations"][index],
            "price": service["prices"][index],
            "is_active": True,
        }
        sql, params = build_insert("services", values, returning=None)
        storage.execute(sql, params)
        logger.info("Created service: %s", service["name"])
        created += 1
    return created


def primary_location_id(storage) -> int | None:
    row = storage.execute(
        "SELECT id FROM locations ORDER BY is_primary DESC, id ASC LIMIT 1"
    ).first()
    return row["id"] if row else None


def seed_classes(storage, today: date | None = None) -> int:
    location_id = primary_location_id(storage)
    if location_id is None:
        logger.warning("No location available; skipping default classes")
        return 0
    today = today or date.today()
    created = 0
    for course in DEFAULT_CLASSES:
        if _exists(storage, "classes", "course_id", course["course_id"]):
            continue
        values = {key: value for key, value in course.items() if key != "days_ahead"}
        values.update(
            class_date=today + timedelta(days=course["days_ahead"]),
            location_id=location_id,
            is_active=True,
        )
        sql, params = build_insert("classes", values, returning=None)
        storage.execute(sql, params)
        logger.info("Created class: %s", course["title"])
        created += 1
    return created


def init_database(storage, settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    create_schema(storage)
    ensure_admin_exists(storage, settings.default_admin_email, settings.default_admin_password)
    seed_locations(storage)
    seed_services(storage)
    seed_classes(storage)
    logger.info("Database schema and reference data are in place")


if __name__ == "__main__":
    from ..core.logs import configure_logging

    configure_logging(get_settings().log_level)
    init_database(get_storage())
