"""
Admin portfolio API client: profile and project mutations.

Unlike ``ResourceClient`` reads, these calls propagate every failure so the
caller can decide how to handle each action.
"""

from typing import Any, Dict, Mapping, Optional

import httpx

from shared.logging import get_logger
from shared.errors import BadResponseFormat, ResourceFetchError, TransportError
from .http import decode_json_response


class AdminClient:
    """Client for the authenticated mutation endpoints of the portfolio API."""

    def __init__(
        self,
        base_url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.headers = {"Accept": "application/json", **(headers or {})}
        self.timeout = timeout
        self.transport = transport
        self.logger = get_logger("showcase.admin_client")

    async def save_about(self, about: Dict[str, Any]) -> Dict[str, Any]:
        """Create or replace the profile."""
        body = await self._send("POST", "/api/about", json=about)
        self.logger.info("About user saved")
        return self._field(body, "aboutUser")

    async def create_project(self, project: Dict[str, Any]) -> Dict[str, Any]:
        body = await self._send("POST", "/api/projects", json=project)
        created = self._field(body, "project")
        self.logger.info("Project created", project_id=created.get("id"))
        return created

    async def update_project(self, project_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        body = await self._send("PUT", f"/api/projects/{project_id}", json=changes)
        self.logger.info("Project updated", project_id=project_id)
        return self._field(body, "project")

    async def delete_project(self, project_id: str) -> None:
        await self._send("DELETE", f"/api/projects/{project_id}")
        self.logger.info("Project deleted", project_id=project_id)

    async def _send(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(method, url, json=json, headers=self.headers)
        except httpx.HTTPError as e:
            self.logger.error("Portfolio API unreachable", method=method, url=url, error=str(e))
            raise TransportError(details={"url": url, "error": str(e)})

        try:
            return decode_json_response(response)
        except ResourceFetchError as e:
            self.logger.error(
                "Admin request failed",
                method=method,
                url=url,
                status_code=response.status_code,
                code=e.code,
                error=e.message
            )
            raise

    @staticmethod
    def _field(body: Any, key: str) -> Dict[str, Any]:
        if not isinstance(body, dict) or not isinstance(body.get(key), dict):
            raise BadResponseFormat(f"Response is missing '{key}'")
        return body[key]
