"""Environment-driven defaults for forestkit."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ForestKitSettings(BaseSettings):
    """Package-wide defaults read from `FORESTKIT_*` environment variables or a `.env` file.

    Explicit function arguments always take precedence over these values.

    Attributes:
        max_workers (int): Worker-pool size used for forest members, folds and
            search configurations when a call does not pass `max_workers`.
            `1` runs everything sequentially.
        default_seed (int): Seed used when a caller does not supply one.
        default_folds (int): Fold count used by the search helpers when no
            fold assignment is supplied.
    """

    model_config = SettingsConfigDict(
        env_prefix="FORESTKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_workers: int = Field(default=1, ge=1, description="Default worker-pool size; 1 means sequential.")
    default_seed: int = Field(default=0, ge=0, description="Seed used when none is supplied.")
    default_folds: int = Field(default=5, ge=2, description="Default number of cross-validation folds.")


def get_settings() -> ForestKitSettings:
    """Load settings from the current environment.

    A fresh instance is returned on every call so environment changes are
    picked up without restarting the process.

    Returns:
        ForestKitSettings: The resolved settings.
    """
    return ForestKitSettings()
