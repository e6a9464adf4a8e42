from functools import lru_cache
from typing import Annotated

from fastapi import Cookie, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError

from ..config import get_settings
from ..core import security
from ..core.constants import TOKEN_COOKIE_NAME
from ..core.rate_limit import InMemoryLoginLimiter, LoginAttemptLimiter, RedisLoginLimiter
from ..db.session import get_storage  # noqa: F401  re-exported for routes and overrides

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


@lru_cache(maxsize=1)
def get_login_limiter() -> LoginAttemptLimiter:
    settings = get_settings()
    if settings.redis_url:
        return RedisLoginLimiter.from_url(settings.redis_url)
    return InMemoryLoginLimiter()


def read_token(
    bearer: Annotated[str | None, Depends(oauth2_scheme)],
    cookie: Annotated[str | None, Cookie(alias=TOKEN_COOKIE_NAME)] = None,
) -> str | None:
    return bearer or cookie


def decode_token(token: str) -> dict:
    try:
        payload = security.decode_access_token(token)
    except ExpiredSignatureError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired") from exc
    except JWTError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid token") from exc
    if payload.get("sub") is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid token")
    return payload


def get_current_admin(token: Annotated[str | None, Depends(read_token)]) -> dict:
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Access token required")
    payload = decode_token(token)
    return {"id": int(payload["sub"]), "email": payload.get("email"), "role": payload.get("role")}


def require_roles(*roles: str):
    def dependency(user: Annotated[dict, Depends(get_current_admin)]) -> dict:
        if user["role"] not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
        return user

    return dependency
