"""
Configuration for the Showcase service.
"""

from typing import Optional

from pydantic import Field

from shared.config import ServiceConfig


class ShowcaseConfig(ServiceConfig):
    """Showcase service settings (``SHOWCASE_*`` environment variables)."""

    service_name: str = "showcase"
    port: int = 8020

    # Portfolio API
    api_base_url: str = Field(default="http://localhost:3000")
    about_endpoint: str = Field(default="/api/public/about")
    projects_endpoint: str = Field(default="/api/projects")
    request_timeout: float = Field(default=10.0, gt=0)

    # Freshness
    profile_cache_ttl_seconds: int = Field(default=15 * 60, ge=0)
    projects_cache_ttl_seconds: int = Field(default=5 * 60, ge=0)
    error_clear_delay_seconds: float = Field(default=5.0, ge=0)

    # Storage
    cache_namespace: str = Field(default="showcase")
    storage_backend: str = Field(default="file")
    storage_path: str = Field(default=".showcase/storage.json")

    # Connectivity
    connectivity_probe_url: Optional[str] = Field(default=None)
    connectivity_probe_interval: float = Field(default=15.0, gt=0)


def get_showcase_config(**overrides) -> ShowcaseConfig:
    """Build the Showcase configuration, applying explicit overrides."""
    return ShowcaseConfig(**overrides)
