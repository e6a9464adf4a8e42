from functools import lru_cache
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field


ENV_FILE_PATH = Path(".env")
DEFAULT_JWT_SECRET = "dev_jwt_secret_change_in_production"


class Settings(BaseModel):
    env: str = Field(default="development", alias="ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    database_url: str = Field(default="sqlite:///./data/serenity.db", alias="DATABASE_URL")
    db_pool_size: int = Field(default=20, alias="DB_POOL_SIZE")
    db_statement_timeout_ms: int = Field(default=0, alias="DB_STATEMENT_TIMEOUT_MS")

    redis_url: str = Field(default="", alias="REDIS_URL")

    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET, alias="JWT_SECRET")
    jwt_expire_min: int = Field(default=1440, alias="JWT_EXPIRE_MIN")

    admin_registration_key: str = Field(default="", alias="ADMIN_REGISTRATION_KEY")
    admin_init_key: str = Field(default="", alias="ADMIN_INIT_KEY")

    default_admin_email: str = Field(default="admin@serenitymassage.org", alias="DEFAULT_ADMIN_EMAIL")
    default_admin_password: str = Field(default="admin123", alias="DEFAULT_ADMIN_PASSWORD")

    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:3002", alias="CORS_ORIGINS"
    )

    class Config:
        populate_by_name = True

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def allowed_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def init_key(self) -> str:
        return self.admin_init_key or self.admin_registration_key


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    load_dotenv(dotenv_path=ENV_FILE_PATH, override=False)
    settings = Settings(**os.environ)
    if settings.is_production and settings.jwt_secret == DEFAULT_JWT_SECRET:
        raise RuntimeError("JWT_SECRET must be set in the production environment.")
    return settings
