"""
Resource definitions and controller wiring.
"""

from typing import Callable, Optional, TYPE_CHECKING

import httpx

from ..adapters.resource_client import ResourceClient
from ..caching.cache_store import CacheStore, epoch_millis
from ..caching.freshness import FreshnessPolicy
from ..config import ShowcaseConfig, get_showcase_config
from ..models import ResourceDefinition
from .controller import ResourceController

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector
    from ..connectivity.providers import ConnectivityProvider
    from ..storage.backends import KeyValueStorage


def profile_resource(config: Optional[ShowcaseConfig] = None) -> ResourceDefinition:
    """The single public "about" profile: 15 minute TTL, errors auto-clear."""
    config = config or get_showcase_config()
    return ResourceDefinition(
        name="about_user",
        endpoint=config.about_endpoint,
        envelope_key="aboutUser",
        ttl_seconds=config.profile_cache_ttl_seconds,
        many=False,
        error_clear_delay=config.error_clear_delay_seconds or None,
        label="profile",
    )


def projects_resource(config: Optional[ShowcaseConfig] = None) -> ResourceDefinition:
    """The public project list: 5 minute TTL, errors stay until the next event."""
    config = config or get_showcase_config()
    return ResourceDefinition(
        name="projects",
        endpoint=config.projects_endpoint,
        envelope_key="projects",
        ttl_seconds=config.projects_cache_ttl_seconds,
        many=True,
        error_clear_delay=None,
    )


def build_controller(
    resource: ResourceDefinition,
    config: ShowcaseConfig,
    storage: "KeyValueStorage",
    connectivity: "ConnectivityProvider",
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    clock: Callable[[], int] = epoch_millis,
    metrics: Optional["MetricsCollector"] = None,
) -> ResourceController:
    """Wire client, cache store and freshness policy for ``resource``."""
    client = ResourceClient(
        config.api_base_url,
        resource,
        timeout=config.request_timeout,
        transport=transport,
        metrics=metrics,
    )
    cache = CacheStore(
        storage,
        resource.name,
        namespace=config.cache_namespace,
        clock=clock,
        metrics=metrics,
    )
    policy = FreshnessPolicy.from_seconds(resource.ttl_seconds, clock)
    return ResourceController(resource, client, cache, policy, connectivity, metrics=metrics)
