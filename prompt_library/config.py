"""Application configuration — reads from environment variables and Docker secrets."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


def _read_secret(name: str) -> str | None:
    """Read a Docker secret from /run/secrets/."""
    secret_path = Path(f"/run/secrets/{name}")
    if secret_path.exists():
        return secret_path.read_text().strip()
    return None


class Settings(BaseSettings):
    """Application settings with env var and secret support."""

    data_dir: str = "data"
    export_dir: str = "."
    port: int = 8500
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="PLIB_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Secrets mounted into the container win over the environment
        if secret := _read_secret("plib_data_dir"):
            self.data_dir = secret
        if secret := _read_secret("plib_export_dir"):
            self.export_dir = secret


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
