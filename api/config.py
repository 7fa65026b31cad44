"""Configuration management using Pydantic settings."""

from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from DROID_ARENA_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DROID_ARENA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Droid Arena API"

    # Battle logs
    log_dir: Path = Path("./battle_logs")
    save_logs: bool = True

    # Battles
    default_seed: int = 42
    round_limit: int = 200
    action_delay_s: float = 0.0

    # Vite dev servers
    cors_origins: List[str] = [
        "http://localhost:5173",
        "http://localhost:5174",
        "http://localhost:5175",
    ]


settings = Settings()
