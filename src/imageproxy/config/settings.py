# src/imageproxy/config/settings.py
"""Typed configuration loaded from the environment and .env files via pydantic-settings.

Constructed once at process start and passed explicitly to the components
that need it; request-handling code never reads the environment.
The env file is chosen by APP_ENV (see ``resolve_env_file``).
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENV_FILES: dict[str, str] = {
    "production": ".env.production",
    "development": ".env.development",
}

DEFAULT_ENV_FILE = ".env"


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


def resolve_env_file(environment: str | None = None) -> str:
    """Pick the env file for a deployment environment.

    Args:
        environment: "production", "development" or anything else for local.
            Defaults to the APP_ENV environment variable.
    """
    if environment is None:
        environment = os.environ.get("APP_ENV", "")
    return _ENV_FILES.get(environment.strip().lower(), DEFAULT_ENV_FILE)


def default_cache_root() -> Path:
    return Path(tempfile.gettempdir()) / "image-proxy" / "images"


class Settings(BaseSettings):
    """Application settings loaded from the environment / env file."""

    model_config = SettingsConfigDict(
        env_file=DEFAULT_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Cache store ===
    cache_backend: Literal["local", "s3"] = "local"
    cache_root: Path = default_cache_root()
    cache_max_age: int = 604800  # Cache-Control max-age, 7 days

    # === S3 ===
    s3_bucket: str = ""
    s3_prefix: str = ""
    s3_region: str = ""
    s3_endpoint_url: str = ""
    s3_public_host: str = "s3.amazonaws.com"
    s3_redirect_on_hit: bool = False

    # === Source fetching ===
    fetch_timeout: float = 30.0

    # === HTTP server ===
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8080
    allowed_origins: str = ""

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("cache_max_age")
    @classmethod
    def validate_cache_max_age(cls, v: int) -> int:  # noqa: N805
        if v < 0:
            raise ValueError("cache_max_age must be >= 0")
        return v

    @field_validator("fetch_timeout")
    @classmethod
    def validate_fetch_timeout(cls, v: float) -> float:  # noqa: N805
        if v <= 0:
            raise ValueError("fetch_timeout must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.s3_redirect_on_hit and self.cache_backend != "s3":
            errors.append("S3_REDIRECT_ON_HIT requires CACHE_BACKEND=s3")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def allowed_origins_list(self) -> list[str]:
        """Parse comma-separated allowed origins."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


def load_settings(environment: str | None = None, **overrides: object) -> Settings:
    """Load settings from the environment's env file with optional overrides.

    Args:
        environment: Deployment environment (defaults to APP_ENV).
        **overrides: Field-level overrides (for testing or the CLI).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(_env_file=resolve_env_file(environment), **overrides)  # type: ignore[arg-type]
