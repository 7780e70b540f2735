"""
Adapters package for the Showcase Service.

Contains HTTP client wrappers for the portfolio API. These adapters
encapsulate:

- Base URLs, endpoints and response envelopes
- Mapping of HTTP outcomes onto shared errors (NotFound, HttpError, ...)

Adapters never touch the cache; the resource controller decides what to
persist.
"""

from .resource_client import ResourceClient
from .admin_client import AdminClient

__all__ = [
    "ResourceClient",
    "AdminClient",
]
