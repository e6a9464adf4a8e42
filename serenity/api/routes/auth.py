import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ...config import get_settings
from ...core import security
from ...core.rate_limit import LoginAttemptLimiter, login_keys
from ...db import schemas
from ...db.storage import StorageAdapter, StorageError
from ...services import admin as admin_service
from .. import deps

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def public_user(user: dict) -> dict:
    return {key: value for key, value in user.items() if key != "password_hash"}


@router.post("/login")
def login(
    payload: schemas.LoginRequest,
    request: Request,
    storage: StorageAdapter = Depends(deps.get_storage),
    limiter: LoginAttemptLimiter = Depends(deps.get_login_limiter),
):
    client_ip = request.client.host if request.client else None
    keys = login_keys(payload.email, client_ip)
    if any(limiter.is_locked(key) for key in keys):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many failed login attempts. Try again later.",
        )
    user = admin_service.get_user_by_email(storage, payload.email)
    if not user or not security.verify_password(payload.password, user["password_hash"]):
        for key in keys:
            limiter.record_failure(key)
        logger.info("Failed login for %s from %s", payload.email.lower(), client_ip)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    for key in keys:
        limiter.reset(key)
    return {
        "message": "Login successful",
        "token": security.token_for_user(user),
        "user": public_user(user),
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: schemas.RegisterRequest, storage: StorageAdapter = Depends(deps.get_storage)):
    expected = get_settings().admin_registration_key
    if not expected or not secrets.compare_digest(payload.adminKey.encode(), expected.encode()):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid admin registration key")
    if admin_service.get_user_by_email(storage, payload.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")
    try:
        user = admin_service.create_admin(
            storage, payload.email, payload.password, payload.firstName, payload.lastName
        )
    except StorageError as exc:
        if exc.unique_violation:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists") from exc
        raise
    logger.info("Admin user %s registered", user["email"])
    return {
        "message": "Admin user created successfully",
        "token": security.token_for_user(user),
        "user": user,
    }


@router.get("/verify")
def verify(
    current: dict = Depends(deps.get_current_admin),
    storage: StorageAdapter = Depends(deps.get_storage),
):
    user = storage.execute(
        "SELECT id, email, first_name, last_name, role, created_at FROM users WHERE id = $1",
        [current["id"]],
    ).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return {"valid": True, "user": user}


@router.post("/refresh")
def refresh(current: dict = Depends(deps.get_current_admin)):
    # Claims are copied from the presented token; credentials are not checked again.
    return {"message": "Token refreshed successfully", "token": security.token_for_user(current)}


@router.post("/change-password")
def change_password(
    payload: schemas.ChangePasswordRequest,
    current: dict = Depends(deps.get_current_admin),
    storage: StorageAdapter = Depends(deps.get_storage),
):
    user = storage.execute("SELECT id, password_hash FROM users WHERE id = $1", [current["id"]]).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if not security.verify_password(payload.currentPassword, user["password_hash"]):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Current password is incorrect")
    admin_service.change_password(storage, user["id"], payload.newPassword)
    return {"message": "Password changed successfully"}
