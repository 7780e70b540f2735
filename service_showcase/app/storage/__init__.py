"""
Storage package for the Showcase Service.

Synchronous key-value backends standing in for browser storage. The cache
store only ever calls ``get``/``set``/``remove`` with string values.
"""

from .backends import KeyValueStorage, MemoryStorage, FileStorage, RedisStorage, create_storage

__all__ = [
    "KeyValueStorage",
    "MemoryStorage",
    "FileStorage",
    "RedisStorage",
    "create_storage",
]
