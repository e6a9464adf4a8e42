from functools import lru_cache

from sqlalchemy.orm import declarative_base

from ..config import get_settings
from .storage import StorageAdapter, create_storage

Base = declarative_base()


@lru_cache(maxsize=1)
def get_storage() -> StorageAdapter:
    settings = get_settings()
    return create_storage(
        settings.database_url,
        pool_size=settings.db_pool_size,
        statement_timeout_ms=settings.db_statement_timeout_ms,
    )
