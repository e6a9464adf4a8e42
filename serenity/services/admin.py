import logging

from ..core import security
from ..db.sql import build_insert

logger = logging.getLogger(__name__)


def get_user_by_email(storage, email: str) -> dict | None:
    return storage.execute(
        "SELECT * FROM users WHERE email = $1", [email.strip().lower()]
    ).first()


def create_admin(storage, email: str, password: str, first_name: str, last_name: str) -> dict:
    sql, params = build_insert(
        "users",
        {
            "email": email.strip().lower(),
            "password_hash": security.get_password_hash(password),
            "first_name": first_name,
            "last_name": last_name,
            "role": "admin",
        },
        returning="id, email, first_name, last_name, role, created_at",
    )
    return storage.execute(sql, params).first()


def ensure_admin_exists(storage, email: str, password: str) -> bool:
    """Create the default admin once; an existing account is never touched."""
    if get_user_by_email(storage, email):
        logger.info("Admin user '%s' already exists", email.lower())
        return False
    create_admin(storage, email, password, "Admin", "User")
    # The only time the seed password is ever disclosed.
    logger.warning(
        "Created default admin user '%s' with password '%s'; change it after first login",
        email.lower(),
        password,
    )
    return True


def change_password(storage, user_id, new_password: str) -> None:
    storage.execute(
        "UPDATE users SET password_hash = $1, updated_at = CURRENT_TIMESTAMP WHERE id = $2",
        [security.get_password_hash(new_password), user_id],
    )
