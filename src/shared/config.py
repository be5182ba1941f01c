"""Runtime configuration.

Settings are read from ``MARKETPLACE_*`` environment variables and an optional
``.env`` file. The defaults suit local development and tests: in-memory SQLite,
the fake payment gateway and console logging.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MARKETPLACE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    env: Literal["development", "test", "production"] = "development"

    # Persistence
    database_url: str = "sqlite://"
    database_echo: bool = False

    # Payments
    payment_gateway: Literal["fake", "stripe"] = "fake"
    stripe_api_key: str | None = None
    # confirm() may involve 3-D Secure round trips
    stripe_timeout_seconds: int = Field(default=80, ge=1)
    currency: str = Field(default="mxn", min_length=3, max_length=3)

    # Presentation hooks
    placeholder_image_url: str = "https://placehold.co/100x100.png?text={text}"
    sign_in_path: str = "/login"
    checkout_path: str = "/checkout"
    cart_path: str = "/cart"
    support_contact: str = "soporte@artisan-market.mx"
    # How long a confirmed or paid-but-unrecorded checkout stays readable
    checkout_retention_seconds: int = Field(default=900, ge=0)

    # Logging
    log_level: str = "INFO"
    log_json: bool = False


_current_settings: Settings | None = None


@lru_cache(maxsize=1)
def _load_settings() -> Settings:
    return Settings()


def get_settings() -> Settings:
    """Return the active settings. Loaded from the environment on first use."""
    if _current_settings is not None:
        return _current_settings
    return _load_settings()


def set_settings(settings: Settings) -> None:
    """Override the active settings (useful for tests)."""
    global _current_settings
    _current_settings = settings


def reset_settings() -> None:
    """Drop any override and reload from the environment on next access."""
    global _current_settings
    _current_settings = None
    _load_settings.cache_clear()
