"""
Configuration loading and validation for volunteer-manager.

Loads volunteer-manager.toml files and validates settings using Pydantic.
"""

import tomllib
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class ServerConfig(BaseModel):
    """HTTP server settings."""

    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    cors_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    )


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file: Path | None = None

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class ActionsConfig(BaseModel):
    """Behaviour of the action dispatcher and the data table adapter."""

    # Status for requests that fail validation. Existing clients expect 500.
    invalid_request_status: Literal[400, 500] = 500
    log_errors: bool = True
    surface_write_log_errors: bool = False


class ApiKeyConfig(BaseModel):
    """A single API key mapped onto a user identity."""

    key_hash: str = Field(min_length=64, max_length=64)
    user_id: int
    username: str
    privileges: list[str] = Field(default_factory=list)

    @field_validator("key_hash")
    @classmethod
    def validate_key_hash(cls, v: str) -> str:
        """Ensure the hash is a lowercase sha256 hex digest."""
        v = v.lower()
        if any(c not in "0123456789abcdef" for c in v):
            raise ValueError("key_hash must be a sha256 hex digest")
        return v


class PortalConfig(BaseModel):
    """Complete volunteer-manager configuration."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    actions: ActionsConfig = Field(default_factory=ActionsConfig)
    api_keys: list[ApiKeyConfig] = Field(default_factory=list)

    @field_validator("api_keys")
    @classmethod
    def validate_unique_keys(cls, v: list[ApiKeyConfig]) -> list[ApiKeyConfig]:
        """Ensure no API key hash is configured twice."""
        seen: set[str] = set()
        for key in v:
            if key.key_hash in seen:
                raise ValueError(f"Duplicate API key for user {key.username}")
            seen.add(key.key_hash)
        return v

    @classmethod
    def default(cls) -> "PortalConfig":
        """Configuration used when no file is given."""
        return cls()


def load_config(config_path: Path) -> PortalConfig:
    """
    Load configuration from a TOML file.

    Args:
        config_path: Path to volunteer-manager.toml

    Returns:
        Validated PortalConfig

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "rb") as f:
        try:
            config_data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid configuration: {e}") from e

    try:
        config = PortalConfig(**config_data)
    except Exception as e:
        raise ValueError(f"Invalid configuration: {e}") from e

    return config


def create_default_config(output_path: Path) -> None:
    """
    Write a volunteer-manager.toml template with the default settings.

    Args:
        output_path: Where to write volunteer-manager.toml
    """
    template = '''[server]
host = "127.0.0.1"
port = 8000
cors_origins = ["http://localhost:3000", "http://127.0.0.1:3000"]

[logging]
level = "INFO"
# file = "logs/volunteer-manager.log"

[actions]
invalid_request_status = 500  # 400 once all clients handle it
log_errors = true
surface_write_log_errors = false  # audit log failures after a committed mutation

# Map API keys onto users. Generate hashes with: volunteer-manager hash-key <key>
# [[api_keys]]
# key_hash = "<sha256 hex digest>"
# user_id = 1
# username = "admin"
# privileges = ["event-administrator"]
'''

    output_path.write_text(template, encoding="utf-8")
