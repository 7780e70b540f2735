"""
Per-resource cache store over a key-value storage backend.
"""

import json
import time
from typing import Any, Callable, Optional, TYPE_CHECKING

from shared.errors import StorageCorrupt
from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector
    from ..storage import KeyValueStorage


def epoch_millis() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class CacheStore:
    """JSON payload plus write timestamp for one resource.

    Keys are ``<namespace>:<resource>_cache`` and
    ``<namespace>:<resource>_cache_timestamp``. The payload is only ever
    written together with a fresh timestamp. Write failures are logged and
    swallowed; caching is an optimization.
    """

    def __init__(
        self,
        storage: "KeyValueStorage",
        resource: str,
        *,
        namespace: str = "showcase",
        clock: Callable[[], int] = epoch_millis,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.storage = storage
        self.resource = resource
        self.namespace = namespace
        self.clock = clock
        self.metrics = metrics
        self.logger = get_logger("showcase.cache_store")

        prefix = f"{namespace}:" if namespace else ""
        self.payload_key = f"{prefix}{resource}_cache"
        self.timestamp_key = f"{prefix}{resource}_cache_timestamp"

    def read(self) -> Optional[Any]:
        """Return the cached payload, or None when absent or corrupt."""
        try:
            raw = self.storage.get(self.payload_key)
        except Exception as exc:
            self.logger.error("Cache read error", resource=self.resource, error=str(exc))
            self._record("resource_cache_reads_total", "error")
            return None

        if raw is None:
            self._record("resource_cache_reads_total", "miss")
            return None

        try:
            payload = json.loads(raw)
        except (TypeError, ValueError) as exc:
            corrupt = StorageCorrupt(self.payload_key, details={"error": str(exc)})
            self.logger.warning(
                "Clearing corrupt cache entry",
                resource=self.resource,
                code=corrupt.code,
                key=self.payload_key,
                error=str(exc)
            )
            self.clear()
            self._record("resource_cache_reads_total", "corrupt")
            return None

        self._record("resource_cache_reads_total", "hit")
        return payload

    def write(self, payload: Any) -> bool:
        """Persist ``payload`` with the current timestamp. Never raises."""
        payload_written = False
        try:
            serialized = json.dumps(payload)
            self.storage.set(self.payload_key, serialized)
            payload_written = True
            self.storage.set(self.timestamp_key, str(self.clock()))
        except Exception as exc:
            self.logger.warning("Failed to save to cache", resource=self.resource, error=str(exc))
            if payload_written:
                # A payload must never sit next to another write's timestamp
                self.clear()
            self._record("resource_cache_writes_total", "error")
            return False

        self.logger.debug("Cached resource payload", resource=self.resource, key=self.payload_key)
        self._record("resource_cache_writes_total", "ok")
        return True

    def timestamp(self) -> Optional[int]:
        """Epoch millis of the last successful write, if any."""
        try:
            raw = self.storage.get(self.timestamp_key)
        except Exception as exc:
            self.logger.error("Cache timestamp read error", resource=self.resource, error=str(exc))
            return None

        if raw is None:
            return None

        try:
            return int(raw)
        except (TypeError, ValueError):
            return None

    def clear(self) -> None:
        """Remove both entries."""
        try:
            self.storage.remove(self.payload_key)
            self.storage.remove(self.timestamp_key)
        except Exception as exc:
            self.logger.error("Cache clear error", resource=self.resource, error=str(exc))

    def _record(self, metric: str, result: str) -> None:
        if not self.metrics:
            return
        self.metrics.increment_counter(metric, resource=self.resource, result=result)
