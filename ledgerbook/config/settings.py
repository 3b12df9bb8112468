"""
Configuration Management for Ledgerbook

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Ledger storage settings are needed at startup. The Gemini settings are only
read when the AI assistant is actually called, so a missing API key never
stops the ledger from starting.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from platformdirs import user_data_dir
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Snapshot file location and write behaviour."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_dir: Optional[Path] = Field(
        default=None,
        description="Directory holding the snapshot file. "
                    "Defaults to the per-user application data directory."
    )
    app_dir_name: str = Field(
        default="ledgerbook",
        min_length=1,
        description="Application directory name under the user data directory"
    )
    file_name: str = Field(
        default="transactions.json",
        min_length=1,
        description="Snapshot file name"
    )

    # Write retries (transient OS errors only)
    save_max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per snapshot write"
    )
    save_retry_wait_seconds: float = Field(
        default=0.5,
        ge=0.0,
        le=10.0,
        description="Base wait between write attempts (exponential)"
    )

    @field_validator("file_name")
    @classmethod
    def validate_file_name(cls, v: str) -> str:
        """The snapshot lives directly inside the data directory."""
        if Path(v).name != v:
            raise ValueError(f"file_name must be a bare file name, got {v!r}")
        return v

    @property
    def resolved_data_dir(self) -> Path:
        """Configured data directory, or the platform default."""
        if self.data_dir is not None:
            return self.data_dir.expanduser()
        return Path(user_data_dir(self.app_dir_name, appauthor=False))

    @property
    def data_file_path(self) -> Path:
        """Full path of the snapshot file."""
        return self.resolved_data_dir / self.file_name


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        min_length=1,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash-latest",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Model temperature"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def effective_log_level(self) -> str:
        """DEBUG when debug mode is on, otherwise the configured level."""
        return "DEBUG" if self.debug_mode else self.log_level


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus an "<name>_error"
    entry for every section that failed. Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("ledger", "gemini", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
