"""
Resources package for the Showcase Service.

- controller: the generic stale-while-revalidate reconciliation controller.
- factory: the profile and project list definitions and controller wiring.
"""

from .controller import (
    ResourceController,
    OFFLINE_WITH_CACHE,
    OFFLINE_NO_CACHE,
    FETCH_FAILED_WITH_CACHE,
)
from .factory import profile_resource, projects_resource, build_controller

__all__ = [
    "ResourceController",
    "OFFLINE_WITH_CACHE",
    "OFFLINE_NO_CACHE",
    "FETCH_FAILED_WITH_CACHE",
    "profile_resource",
    "projects_resource",
    "build_controller",
]
