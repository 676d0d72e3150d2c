"""Runtime settings, read from ZKPOOL_* environment variables or a .env file."""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from zkpool.crypto.hasher import available_hashers


class Settings(BaseSettings):
    """Client configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ZKPOOL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Must match the proving circuit and the ledger's tree exactly
    tree_depth: int = Field(default=20, ge=1, le=32)
    hasher: str = "poseidon-sponge"
    root_history_size: int = Field(default=30, ge=1)

    # Seconds; the only suspension points are ledger calls and proving
    ledger_timeout: float = Field(default=30.0, gt=0)
    prover_timeout: float = Field(default=120.0, gt=0)

    database_url: str = "sqlite:///zkpool_notes.db"
    note_encryption_key: Optional[str] = None

    circuit_dir: str = "mixer"
    circuit_name: str = "mixer"
    nargo_bin: str = "nargo"
    bb_bin: str = "bb"

    log_level: str = "INFO"

    @field_validator("hasher")
    @classmethod
    def _known_hasher(cls, value: str) -> str:
        if value not in available_hashers():
            raise ValueError(f"Unknown hasher '{value}'")
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get or create the process settings."""
    return Settings()


def reset_settings() -> None:
    """Drop the cached settings (for testing)."""
    get_settings.cache_clear()
