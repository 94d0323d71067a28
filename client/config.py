"""
client/config.py -- Client configuration via pydantic-settings.

Variables are prefixed with CURIO_ so they never collide with the server's
settings when both run from the same shell:

  CURIO_BASE_URL      API root (default http://localhost:8000)
  CURIO_TIMEOUT       per-request timeout in seconds (default 10)
  CURIO_STORAGE_PATH  SQLite file holding the token and selected collection
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CURIO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str = "http://localhost:8000"
    timeout: float = Field(default=10.0, gt=0)
    storage_path: Path = Path.home() / ".curio" / "client.db"


@lru_cache
def get_client_settings() -> ClientSettings:
    """Return the ClientSettings singleton."""
    return ClientSettings()
