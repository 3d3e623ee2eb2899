"""Configuration settings for nix_sysgen.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PROFILE_DIR = Path("/nix/var/nix/profiles/system-manager-profiles")
DEFAULT_GCROOT_PATH = Path("/nix/var/nix/gcroots/system-manager-current")


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the NIX_SYSGEN_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="NIX_SYSGEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Flake
    flake_attr: str = Field(
        default="systemConfigs",
        min_length=1,
        description="Flake output holding one configuration per host",
    )

    # Paths
    profile_dir: Path = Field(
        default=DEFAULT_PROFILE_DIR,
        description="Directory holding the generation profile",
    )
    profile_name: str = Field(
        default="system-manager",
        min_length=1,
        description="Name of the profile inside profile_dir",
    )
    gcroot_path: Path = Field(
        default=DEFAULT_GCROOT_PATH,
        description="GC root pointing at the active generation",
    )

    # External tools
    nix_bin: str = Field(default="nix", description="nix executable")
    nix_env_bin: str = Field(default="nix-env", description="nix-env executable")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    @property
    def profile_path(self) -> Path:
        """Full path of the generation profile."""
        return self.profile_dir / self.profile_name


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
