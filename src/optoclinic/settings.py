"""Application settings via environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["Settings"]


class Settings(BaseSettings):
    """Central configuration — all values from environment."""

    model_config = SettingsConfigDict(env_prefix="OPTOCLINIC_")

    # Target environment
    environment: str = "dev"

    # PostgreSQL document store (empty → in-memory)
    pg_dsn: str = ""

    # Collections
    appointments_collection: str = "appointments"
    patients_collection: str = "patients"

    # Clinic clock
    timezone: str = "UTC"
    upcoming_window_days: int = 7

    # Logging
    log_json: bool = True
    log_level: str = "INFO"
