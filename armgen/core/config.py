"""Configuration management for schema sync runs.

Settings come from environment variables (``ARMGEN_`` prefix), an optional
YAML file and explicit CLI overrides, in increasing order of precedence.
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml

from .exceptions import SyncEnvironmentError


class SyncSettings(BaseSettings):
    """Sync orchestrator configuration."""

    model_config = SettingsConfigDict(env_prefix="ARMGEN_", case_sensitive=False)

    # Environment
    environment: Literal["development", "testing", "production"] = Field(
        default="development", description="Application environment"
    )

    # Corpus
    schemas_dir: Path = Field(
        default=Path("schemas"), description="Root directory of the schema corpus"
    )
    output_dir: Path = Field(
        default=Path("generated"), description="Root directory of generated packages"
    )
    patterns: list[str] = Field(
        default_factory=list,
        description="fnmatch allowlist applied to document paths relative to the root",
    )

    # Execution
    concurrency: int = Field(
        default=4, ge=1, description="Maximum number of documents processed at once"
    )
    document_timeout_seconds: float = Field(
        default=60.0, gt=0, description="Per-document parse and generate timeout"
    )
    dry_run: bool = Field(default=False, description="Diff without writing files")

    # Parsing
    strip_expressions: bool = Field(
        default=True,
        description="Drop template expression branches from unions",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    json_logs: bool = Field(default=False, description="Enable JSON formatted logs")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level '{value}'")
        return level

    @classmethod
    def from_yaml(cls, path: Path | str, **overrides: Any) -> "SyncSettings":
        """Load settings from a YAML file.

        Keys are field names. ``overrides`` with a non-None value take
        precedence over the file.

        Args:
            path: YAML configuration file
            **overrides: Explicit field values

        Returns:
            Validated settings

        Raises:
            SyncEnvironmentError: If the file cannot be read or is not a mapping
        """
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise SyncEnvironmentError(
                "config", f"Cannot load configuration from {path}: {e}", e
            ) from e

        if not isinstance(data, dict):
            raise SyncEnvironmentError(
                "config", f"Configuration file {path} must contain a mapping"
            )

        data.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**data)

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"
