"""
Data models for the Showcase service.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ResourceDefinition:
    """Everything that distinguishes one fetchable, cacheable resource from another."""
    name: str
    endpoint: str
    envelope_key: str
    ttl_seconds: float
    many: bool = False
    error_clear_delay: Optional[float] = None
    label: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.label or self.name.replace("_", " ")

    def has_content(self, payload: Any) -> bool:
        """Whether a cached payload is worth showing (an empty project list is not)."""
        if payload is None:
            return False
        if self.many:
            return isinstance(payload, list) and len(payload) > 0
        return True


@dataclass(frozen=True)
class ResourceState:
    """Snapshot of a resource as seen by the UI layer."""
    data: Any = None
    loading: bool = True
    error: Optional[str] = None
    is_online: bool = True
    using_cache: bool = False

    def evolve(self, **changes: Any) -> "ResourceState":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": self.data,
            "loading": self.loading,
            "error": self.error,
            "isOnline": self.is_online,
            "usingCache": self.using_cache,
        }
