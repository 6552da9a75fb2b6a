"""
Shared configuration management for the GraphQL edge cache.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="EDGE_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Upstream GraphQL indexer; empty means not configured
    upstream_url: str = Field(default="")
    upstream_timeout_seconds: float = Field(default=10.0)
    progress_timeout_seconds: float = Field(default=8.0)

    # External cache collaborator
    redis_url: str = Field(default="redis://localhost:6379/0")
    cache_namespace: str = Field(default="graphql-edge")
    progress_record_ttl_seconds: int = Field(default=30 * 60)

    # Request limits
    max_query_length: int = Field(default=60_000)
    force_fresh_header: str = Field(default="x-force-fresh")


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
