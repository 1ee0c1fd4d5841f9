"""Configuration management for directory resources."""

from pathlib import Path

import yaml  # type: ignore[import-untyped]
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GraphConfig(BaseSettings):
    """Directory (Graph) API configuration."""

    model_config = SettingsConfigDict(env_prefix="DIRECTORY_")

    tenant_id: str = Field(default="", description="Directory tenant ID")
    client_id: str = Field(default="", description="Client (application) ID used to authenticate")
    client_secret: str | None = Field(default=None, description="Client secret")
    access_token: str | None = Field(
        default=None,
        description="Pre-acquired bearer token (skips the client credentials flow)",
    )
    endpoint: str = Field(default="https://graph.microsoft.com", description="API endpoint")
    api_version: str = Field(default="v1.0", description="API version path segment")
    authority: str = Field(
        default="https://login.microsoftonline.com",
        description="OAuth2 authority used for the client credentials flow",
    )
    timeout: float = Field(default=30.0, description="Request timeout in seconds")

    @property
    def base_url(self) -> str:
        """Get the full API base URL."""
        return f"{self.endpoint.rstrip('/')}/{self.api_version}"


class ProviderConfig(BaseSettings):
    """Apply engine behaviour configuration."""

    model_config = SettingsConfigDict(env_prefix="PROVIDER_")

    state_file: Path = Field(
        default=Path(".directory-state.json"),
        description="Path to the resource state file",
    )
    parallelism: int = Field(default=10, ge=1, description="Concurrent resource operations")
    replication_max_attempts: int = Field(
        default=20, ge=1, description="Reads attempted while waiting for a new object"
    )
    replication_initial_delay: float = Field(
        default=1.0, ge=0, description="First backoff delay in seconds"
    )
    replication_max_delay: float = Field(
        default=16.0, ge=0, description="Backoff delay cap in seconds"
    )
    replication_consecutive_successes: int = Field(
        default=1, ge=1, description="Successful reads required before an object counts as visible"
    )


class AppConfig(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    graph: GraphConfig = Field(default_factory=GraphConfig)
    provider: ProviderConfig = Field(default_factory=ProviderConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "AppConfig":
        """Load configuration from a YAML file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load application configuration from environment and optional YAML file."""
    if config_path:
        return AppConfig.from_yaml(config_path)
    return AppConfig()
