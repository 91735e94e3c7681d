"""Harness configuration using pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from tfharness.domain.models.lifecycle import DEFAULT_OUTPUT_NAMES


class TerraformSettings(BaseSettings):
    """Terraform invocation configuration."""

    binary: str = Field(default="terraform", alias="TFHARNESS_BINARY")
    config_root: Path = Field(default=Path(".."), alias="TFHARNESS_CONFIG_ROOT")
    var_file: str = Field(default="terratests/test.tfvars", alias="TFHARNESS_VAR_FILE")
    deadline_seconds: float = Field(default=1800.0, alias="TFHARNESS_DEADLINE_SECONDS")
    output_names: list[str] = Field(
        default_factory=lambda: list(DEFAULT_OUTPUT_NAMES),
        alias="TFHARNESS_OUTPUT_NAMES",
    )

    @field_validator("deadline_seconds")
    @classmethod
    def _positive_deadline(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("deadline_seconds must be positive")
        return value

    @field_validator("output_names")
    @classmethod
    def _some_outputs(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("at least one output name is required")
        return value

    @property
    def resolved_config_root(self) -> Path:
        """Configuration root as an absolute path, relative paths taken from the cwd."""
        return self.config_root.resolve()

    model_config = {"env_prefix": "TFHARNESS_", "extra": "ignore", "populate_by_name": True}


class ObservabilitySettings(BaseSettings):
    """Observability configuration."""

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    json_logs: bool = Field(default=True, alias="JSON_LOGS")

    model_config = {"env_prefix": "OBS_", "extra": "ignore", "populate_by_name": True}


class Settings(BaseSettings):
    """Main harness settings."""

    terraform: TerraformSettings = Field(default_factory=TerraformSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    model_config = {"env_prefix": "", "extra": "ignore", "populate_by_name": True}


@lru_cache
def get_settings() -> Settings:
    """Get cached harness settings."""
    return Settings()
