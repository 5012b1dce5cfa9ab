"""
Configuration — typed, validated settings loaded from environment/.env.

Uses pydantic-settings to:
  - Load from environment variables
  - Fall back to .env file
  - Validate types and constraints at startup
  - Keep the default trust-store password out of source control

Only AppSettings is a BaseSettings instance. Sub-settings are plain BaseModel
classes populated via env_nested_delimiter="__", so TRUSTSTORE__PASSWORD maps
to truststore.password, STATE__PATH maps to state.path, etc.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from jks_truststore.domain.models import DEFAULT_CERTIFICATE_TYPE
from jks_truststore.railway import ErrorCode
from jks_truststore.railway.result import Result

# Resolve the .env file relative to the project root (two levels above this file).
_ENV_FILE = Path(__file__).parent.parent.parent / ".env"

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class TrustStoreSettings(BaseModel):
    """Defaults applied to every build that does not override them."""

    password: SecretStr = Field(
        default=SecretStr(""),
        description="Password sealing the JKS store; empty means unsealed",
    )
    certificate_type: str = Field(
        default=DEFAULT_CERTIFICATE_TYPE,
        description="Certificate type written into each trusted entry",
    )

    @field_validator("certificate_type")
    @classmethod
    def validate_certificate_type(cls, value: str) -> str:
        """Reject blank certificate types; Java resolves a CertificateFactory by this name."""
        if not value.strip():
            raise ValueError("certificate_type must not be blank")
        return value.strip()


class StateSettings(BaseModel):
    """Where the CLI persists the id/timestamp/jks triple between runs."""

    path: Path = Field(
        default=Path("truststore.state.json"),
        description="JSON state file path",
    )


class ApiSettings(BaseModel):
    """HTTP surface bind address."""

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000, ge=1, le=65535)


class AppSettings(BaseSettings):
    """
    Root application settings — aggregates all sub-settings.

    Load order (highest priority first):
      1. Environment variables
      2. .env file
      3. Default values
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    truststore: TrustStoreSettings = Field(default_factory=lambda: TrustStoreSettings())
    state: StateSettings = Field(default_factory=lambda: StateSettings())
    api: ApiSettings = Field(default_factory=lambda: ApiSettings())

    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}, got {value!r}")
        return level


def load_settings() -> Result[AppSettings]:
    """Load AppSettings, reporting validation problems as CONFIGURATION_ERROR."""
    return Result.from_computation(
        AppSettings,
        ErrorCode.CONFIGURATION_ERROR,
        "Configuration error",
    )
