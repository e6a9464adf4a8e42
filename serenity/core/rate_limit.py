"""
Failed-login tracking and lockout.

The API depends on the ``LoginAttemptLimiter`` interface only. A single
process uses ``InMemoryLoginLimiter``; deployments running several instances
configure ``REDIS_URL`` so that every instance shares one ``RedisLoginLimiter``.
"""

from dataclasses import dataclass
from datetime import timedelta
import logging
from threading import Lock
import time
from typing import Callable

import redis

from .constants import LOGIN_ATTEMPT_WINDOW, LOGIN_LOCKOUT_DURATION, LOGIN_LOCKOUT_THRESHOLD

logger = logging.getLogger(__name__)


def login_keys(email: str | None, client_ip: str | None) -> list[str]:
    keys = []
    if email:
        keys.append(f"email:{email.strip().lower()}")
    keys.append(f"ip:{client_ip or 'unknown'}")
    return keys


class LoginAttemptLimiter:
    def __init__(
        self,
        threshold: int = LOGIN_LOCKOUT_THRESHOLD,
        window: timedelta = LOGIN_ATTEMPT_WINDOW,
        lockout: timedelta = LOGIN_LOCKOUT_DURATION,
    ) -> None:
        self.threshold = threshold
        self.window_seconds = window.total_seconds()
        self.lockout_seconds = lockout.total_seconds()

    def is_locked(self, key: str) -> bool:
        raise NotImplementedError

    def record_failure(self, key: str) -> None:
        raise NotImplementedError

    def reset(self, key: str) -> None:
        raise NotImplementedError


@dataclass
class _AttemptEntry:
    count: int
    first: float
    lock_until: float = 0.0


class InMemoryLoginLimiter(LoginAttemptLimiter):
    """Process-local limiter.

    Entries are dropped on a successful login; an entry whose window has
    passed is restarted on the next failure rather than swept proactively.
    """

    def __init__(self, *args, clock: Callable[[], float] = time.monotonic, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._clock = clock
        self._entries: dict[str, _AttemptEntry] = {}
        self._lock = Lock()

    def is_locked(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return bool(entry and entry.lock_until and self._clock() < entry.lock_until)

    def record_failure(self, key: str) -> None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _AttemptEntry(count=0, first=now)
            elif now - entry.first > self.window_seconds:
                entry.count = 0
                entry.first = now
            entry.count += 1
            if entry.count >= self.threshold:
                entry.lock_until = now + self.lockout_seconds
                logger.warning("Login locked out for %s after %d failures", key, entry.count)

    def reset(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)


class RedisLoginLimiter(LoginAttemptLimiter):
    def __init__(self, client: redis.Redis, *args, prefix: str = "login", **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisLoginLimiter":
        client = redis.from_url(url, decode_responses=True, socket_connect_timeout=5)
        return cls(client, **kwargs)

    def _count_key(self, key: str) -> str:
        return f"{self.prefix}:fail:{key}"

    def _lock_key(self, key: str) -> str:
        return f"{self.prefix}:lock:{key}"

    def is_locked(self, key: str) -> bool:
        return bool(self.client.exists(self._lock_key(key)))

    def record_failure(self, key: str) -> None:
        count_key = self._count_key(key)
        # The window starts with the first failure; SET NX leaves a running window alone.
        pipe = self.client.pipeline()
        pipe.set(count_key, 0, ex=int(self.window_seconds), nx=True)
        pipe.incr(count_key)
        _, count = pipe.execute()
        if count >= self.threshold:
            self.client.set(self._lock_key(key), count, ex=int(self.lockout_seconds))
            logger.warning("Login locked out for %s after %d failures", key, count)

    def reset(self, key: str) -> None:
        self.client.delete(self._count_key(key), self._lock_key(key))
