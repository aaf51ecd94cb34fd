"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    backend_base_url: str = "http://localhost:8000"
    csrf_token: str = ""
    cookie_name: str = "pl_checkin_data"
    cookie_ttl_days: float = 7
    cookie_max_bytes: int = 4096
    cookie_secure: bool = False
    cookie_same_site: str = "Lax"
    cookie_obfuscate: bool = False
    max_pets: int = 10
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_same_site(raw: str | None) -> str | None:
    """Normalize a SameSite policy name, returning None when unset."""
    if raw is None:
        return None
    cleaned = raw.strip().lower()
    if cleaned in {"", "-"}:
        return None
    if cleaned not in {"lax", "strict", "none"}:
        raise ValueError(f"Unsupported SameSite policy: {raw}")
    return cleaned
