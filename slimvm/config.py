"""Configuration settings for slimvm.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_stage_dir() -> Path:
    """Return the default staging directory."""
    return Path.home() / ".slim"


def _default_syslinux_dir() -> Path:
    """Return the bootloader bundle shipped with the package."""
    return Path(__file__).parent / "resources" / "syslinux"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the SLIM_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="SLIM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    stage_dir: Path = Field(
        default_factory=_default_stage_dir,
        description="Staging directory for intermediate build artifacts",
    )
    syslinux_dir: Path = Field(
        default_factory=_default_syslinux_dir,
        description="Bootloader bundle copied into the ISO isolinux/ directory",
    )

    # Build
    image_name: str = Field(
        default="slim-vm",
        min_length=1,
        description="Tag of the intermediate container image",
    )
    tool_timeout: int | None = Field(
        default=None,
        ge=1,
        description="Timeout for external tools in seconds (unbounded if not set)",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
