from serenity.core import security
from serenity.services import seed


def counts(storage):
    return {
        table: storage.execute(f"SELECT COUNT(*) AS count FROM {table}").scalar()
        for table in ("users", "locations", "services", "classes")
    }


def test_init_database_seeds_reference_data(storage, settings):
    seed.init_database(storage, settings)

    assert counts(storage) == {
        "users": 1,
        "locations": len(seed.DEFAULT_LOCATIONS),
        "services": len(seed.DEFAULT_SERVICES),
        "classes": len(seed.DEFAULT_CLASSES),
    }
    admin = storage.execute("SELECT * FROM users").first()
    assert admin["email"] == "owner@example.com"
    assert admin["password_hash"] != "seed-password"
    assert security.verify_password("seed-password", admin["password_hash"])


def test_init_database_is_idempotent(storage, settings):
    seed.init_database(storage, settings)
    before = counts(storage)
    admin_hash = storage.execute("SELECT password_hash FROM users").scalar()

    seed.init_database(storage, settings)

    assert counts(storage) == before
    assert storage.execute("SELECT password_hash FROM users").scalar() == admin_hash


def test_services_use_sixty_minute_price(storage):
    seed.seed_services(storage)

    swedish = storage.execute("SELECT * FROM services WHERE service_id = $1", ["swedish"]).first()
    hot_stone = storage.execute("SELECT * FROM services WHERE service_id = $1", ["hot-stone"]).first()
    assert (swedish["duration"], swedish["price"]) == (60, 90.0)
    assert (hot_stone["duration"], hot_stone["price"]) == (90, 120.0)


def test_classes_go_to_primary_location(storage):
    seed.seed_locations(storage)
    seed.seed_classes(storage)

    primary = seed.primary_location_id(storage)
    locations = storage.execute("SELECT DISTINCT location_id FROM classes").rows
    assert locations == [{"location_id": primary}]
    assert storage.execute("SELECT is_primary FROM locations WHERE id = $1", [primary]).scalar() == 1


def test_classes_need_a_location(storage):
    assert seed.seed_classes(storage) == 0
