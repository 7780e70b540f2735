"""
Public portfolio API client: one GET per resource.
"""

import time
from typing import Any, Optional, TYPE_CHECKING

import httpx

from shared.logging import get_logger
from shared.errors import BadResponseFormat, NotFound, ResourceFetchError, TransportError
from ..models import ResourceDefinition
from .http import DEFAULT_HEADERS, decode_json_response

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class ResourceClient:
    """Fetches one resource envelope from the portfolio API."""

    def __init__(
        self,
        base_url: str,
        resource: ResourceDefinition,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.resource = resource
        self.timeout = timeout
        self.transport = transport
        self.metrics = metrics
        self.logger = get_logger("showcase.resource_client")

    @property
    def url(self) -> str:
        return f"{self.base_url}{self.resource.endpoint}"

    async def fetch(self) -> Optional[Any]:
        """GET the resource and return the unwrapped payload.

        Raises ``NotFound`` on 404, ``BadResponseFormat`` on a non-JSON or
        malformed envelope, ``HttpError`` on other failing statuses and
        ``TransportError`` when no response arrives. A ``null`` single
        resource is returned as None.
        """
        start = time.perf_counter()
        outcome = "error"
        try:
            payload = await self._request()
            outcome = "ok"
            return payload
        except NotFound:
            outcome = "not_found"
            raise
        finally:
            self._record(outcome, time.perf_counter() - start)

    async def _request(self) -> Optional[Any]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(self.url, headers=DEFAULT_HEADERS)
        except httpx.HTTPError as e:
            self.logger.warning("Portfolio API unreachable", url=self.url, error=str(e))
            raise TransportError(
                f"Failed to fetch {self.resource.display_name}: {e.__class__.__name__}",
                details={"url": self.url, "error": str(e)}
            )

        if response.status_code == 404:
            self.logger.info("Resource not found", url=self.url)
            raise NotFound(self.resource.display_name, details={"url": self.url})

        try:
            body = decode_json_response(response)
        except ResourceFetchError as e:
            self.logger.error(
                "Resource request failed",
                url=self.url,
                status_code=response.status_code,
                code=e.code,
                error=e.message
            )
            raise

        payload = self._unwrap(body)
        self.logger.debug("Resource retrieved", url=self.url)
        return payload

    def _unwrap(self, body: Any) -> Optional[Any]:
        key = self.resource.envelope_key
        if not isinstance(body, dict) or key not in body:
            raise BadResponseFormat(
                f"Response is missing '{key}'",
                details={"url": self.url}
            )

        payload = body[key]
        if self.resource.many:
            if not isinstance(payload, list):
                raise BadResponseFormat(f"'{key}' must be a list", details={"url": self.url})
        elif payload is not None and not isinstance(payload, dict):
            raise BadResponseFormat(f"'{key}' must be an object", details={"url": self.url})

        return payload

    def _record(self, outcome: str, duration: float) -> None:
        if not self.metrics:
            return
        self.metrics.increment_counter("resource_fetches_total", resource=self.resource.name, outcome=outcome)
        self.metrics.observe_histogram("resource_fetch_duration_seconds", duration, resource=self.resource.name)
