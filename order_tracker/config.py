import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

env_path = Path(__file__).parent / '.env'
load_dotenv(dotenv_path=env_path)


class Settings(BaseModel):
    store_backend: str = "sql"  # 'sql' or 'mongo'
    database_url: str = "sqlite:///./orders.db"
    mongodb_uri: str = "mongodb://localhost:27017/orders"

    # Seconds
    poll_interval_s: float = Field(default=1.0, gt=0)
    pending_delay_s: float = Field(default=2.0, ge=0)
    stage_delay_s: float = Field(default=3.0, ge=0)
    cache_evict_grace_s: float = Field(default=0.0, ge=0)  # 0 disables eviction

    cors_origins: List[str] = ["http://localhost:3000"]
    port: int = 5000
    log_level: str = "INFO"

    @field_validator("store_backend")
    @classmethod
    def _known_backend(cls, value: str) -> str:
        value = value.lower()
        if value not in ("sql", "mongo"):
            raise ValueError(f"unknown store backend '{value}'")
        return value

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value):
        if isinstance(value, str):
            return [o.strip() for o in value.split(",") if o.strip()]
        return value


_ENV_KEYS = {
    "store_backend": "STORE_BACKEND",
    "database_url": "DATABASE_URL",
    "mongodb_uri": "MONGODB_URI",
    "poll_interval_s": "POLL_INTERVAL_S",
    "pending_delay_s": "PENDING_DELAY_S",
    "stage_delay_s": "STAGE_DELAY_S",
    "cache_evict_grace_s": "CACHE_EVICT_GRACE_S",
    "cors_origins": "CORS_ORIGINS",
    "port": "PORT",
    "log_level": "LOG_LEVEL",
}


def load_settings(environ=None) -> Settings:
    """Build Settings from the environment; unset keys keep their defaults."""
    environ = os.environ if environ is None else environ
    values = {field: environ[key] for field, key in _ENV_KEYS.items() if environ.get(key)}
    return Settings(**values)
