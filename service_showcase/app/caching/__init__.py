"""
Showcase caching package.

Provides the per-resource cache store and the freshness policy that decides
whether a cached payload can be served without a network round trip.
"""

from .cache_store import CacheStore, epoch_millis
from .freshness import FreshnessPolicy, is_fresh

__all__ = ["CacheStore", "epoch_millis", "FreshnessPolicy", "is_fresh"]
