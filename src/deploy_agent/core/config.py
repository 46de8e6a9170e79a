"""Configuration management for the deploy agent."""

from typing import Annotated, List, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from deploy_agent.core.exceptions import ConfigurationError


DEFAULT_WORKING_DIR = "/home/application/current"
DEFAULT_APP_ENVS_FILE = "/tmp/app_envs"
DEFAULT_MANIFEST_FILENAMES = ["tsuru.yaml", "tsuru.yml", "app.yaml", "app.yml"]
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Agent configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="DEPLOY_AGENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Filesystem layout
    working_dir: str = Field(DEFAULT_WORKING_DIR, description="Default working directory for commands")
    app_envs_file: str = Field(DEFAULT_APP_ENVS_FILE, description="Shell-sourceable environment file")
    manifest_filenames: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_MANIFEST_FILENAMES),
        description="Candidate manifest file names, first existing wins",
    )
    procfile_name: str = Field("Procfile", description="Process declaration file name")
    diff_filename: str = Field("diff", description="Staged diff artifact name")

    # Command execution
    shell: str = Field("/bin/bash", description="Login shell used to run commands")
    command_timeout: Optional[float] = Field(
        None,
        description="Per-command timeout in seconds, unset means no limit",
    )

    # Control plane
    request_timeout_seconds: float = Field(30.0, description="HTTP timeout for control-plane calls")

    # Observability
    log_level: str = Field("INFO")
    log_format: str = Field("console")

    @field_validator("manifest_filenames", mode="before")
    @classmethod
    def parse_manifest_filenames(cls, v):
        """Parse comma-separated manifest names."""
        if isinstance(v, str):
            return [name.strip() for name in v.split(",") if name.strip()]
        return v

    @field_validator("command_timeout")
    @classmethod
    def validate_command_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("command_timeout must be positive")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got: {v}")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("json", "console"):
            raise ValueError(f"log_format must be 'json' or 'console', got: {v}")
        return v


def load_settings(**overrides) -> Settings:
    """Build settings from the environment, raising ConfigurationError on invalid values."""
    try:
        return Settings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid agent configuration: {e}", code="invalid_config") from e
