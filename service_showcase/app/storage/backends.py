"""
Key-value storage backends for the Showcase service.
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Union, TYPE_CHECKING

import redis

from shared.errors import ConfigurationError
from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from ..config import ShowcaseConfig


class KeyValueStorage(ABC):
    """Synchronous string key-value storage."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete ``key``; a missing key is not an error."""


class MemoryStorage(KeyValueStorage):
    """Process-local storage."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return list(self._data.keys())


class FileStorage(KeyValueStorage):
    """JSON document on disk that survives restarts.

    The whole document is loaded on first access and rewritten atomically on
    every change. An unreadable document is logged and replaced by an empty one
    on the next write.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.logger = get_logger("showcase.storage.file")
        self._data: Dict[str, str] = {}
        self._loaded = False

    def _load(self) -> None:
        if self._loaded:
            return
        self._loaded = True

        if not self.path.exists():
            return

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self.logger.warning("Storage file unreadable, starting empty", path=str(self.path), error=str(e))
            return

        if not isinstance(data, dict):
            self.logger.warning("Storage file is not a JSON object, starting empty", path=str(self.path))
            return

        self._data = {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, sort_keys=True)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, key: str) -> Optional[str]:
        self._load()
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._load()
        self._data[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        self._load()
        if self._data.pop(key, None) is not None:
            self._flush()


class RedisStorage(KeyValueStorage):
    """Redis-backed storage, shared by every process pointing at the same server."""

    def __init__(self, redis_url: Optional[str] = None, client: Optional[redis.Redis] = None):
        if client is None and redis_url is None:
            raise ConfigurationError("RedisStorage needs a redis_url or a client")

        self.redis_url = redis_url
        self.client = client or redis.Redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )

    def get(self, key: str) -> Optional[str]:
        value = self.client.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set(self, key: str, value: str) -> None:
        self.client.set(key, value)

    def remove(self, key: str) -> None:
        self.client.delete(key)


def create_storage(config: "ShowcaseConfig") -> KeyValueStorage:
    """Create the storage backend selected by ``config.storage_backend``."""
    backend = config.storage_backend.lower()

    if backend == "memory":
        return MemoryStorage()
    if backend == "file":
        return FileStorage(config.storage_path)
    if backend == "redis":
        return RedisStorage(config.redis_url)

    raise ConfigurationError(
        f"Unknown storage backend: {config.storage_backend}",
        details={"supported": ["memory", "file", "redis"]}
    )
