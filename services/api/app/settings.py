from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Catalog (None -> bundled app/data/formula.json)
    catalog_path: Optional[str] = None

    # Recent conversions
    history_backend: Literal["memory", "redis"] = "memory"
    history_limit: int = 5
    history_max_sessions: int = 1000
    history_ttl_seconds: int = 7 * 24 * 3600
    redis_url: str = "redis://localhost:6379/0"

    # Rate limiting (per-IP)
    rate_limit: str = "100/minute"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://0.0.0.0:3000",
        "http://localhost",
        "http://127.0.0.1",
    ]


settings = Settings()
