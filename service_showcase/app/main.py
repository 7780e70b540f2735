"""
Showcase service for the portfolio application.
"""

import asyncio
from typing import Any, Dict, Optional

import httpx
from fastapi import HTTPException
from pydantic import BaseModel

from shared.base_service import BaseService
from .config import ShowcaseConfig, get_showcase_config
from .connectivity import ConnectivityProvider, ManualConnectivity, ProbeConnectivity
from .resources import ResourceController, build_controller, profile_resource, projects_resource
from .storage import KeyValueStorage, create_storage


class ConnectivityUpdate(BaseModel):
    """Connectivity change pushed by the UI layer."""
    online: bool


class ShowcaseService(BaseService):
    """Showcase service implementation."""

    def __init__(
        self,
        config: Optional[ShowcaseConfig] = None,
        *,
        storage: Optional[KeyValueStorage] = None,
        connectivity: Optional[ConnectivityProvider] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        config = config or get_showcase_config()
        super().__init__(config.service_name, config.port, config=config)

        self.storage = storage or create_storage(config)
        self.connectivity = connectivity or self._default_connectivity(config, transport)

        self.controllers: Dict[str, ResourceController] = {
            "profile": build_controller(
                profile_resource(config), config, self.storage, self.connectivity,
                transport=transport, metrics=self.metrics,
            ),
            "projects": build_controller(
                projects_resource(config), config, self.storage, self.connectivity,
                transport=transport, metrics=self.metrics,
            ),
        }

        self._setup_showcase_routes()

    @staticmethod
    def _default_connectivity(
        config: ShowcaseConfig,
        transport: Optional[httpx.AsyncBaseTransport],
    ) -> ConnectivityProvider:
        if config.connectivity_probe_url:
            return ProbeConnectivity(
                config.connectivity_probe_url,
                interval=config.connectivity_probe_interval,
                timeout=config.request_timeout,
                transport=transport,
            )
        return ManualConnectivity(online=True)

    async def startup(self):
        await self.connectivity.start()
        await asyncio.gather(*(controller.mount() for controller in self.controllers.values()))
        self.logger.info(
            "Showcase resources mounted",
            online=self.connectivity.current(),
            resources=list(self.controllers)
        )

    async def shutdown(self):
        await asyncio.gather(*(controller.dispose() for controller in self.controllers.values()))
        await self.connectivity.stop()

    async def _check_dependencies(self) -> Dict[str, str]:
        return {
            "portfolio_api": "online" if self.connectivity.current() else "offline",
            **{
                name: ("cache" if c.state.using_cache else "live") if c.state.data is not None else "empty"
                for name, c in self.controllers.items()
            },
        }

    def _controller(self, name: str) -> ResourceController:
        controller = self.controllers.get(name)
        if controller is None:
            raise HTTPException(status_code=404, detail=f"Unknown resource: {name}")
        return controller

    def _setup_showcase_routes(self):
        """Set up showcase-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "showcase",
                "message": "Portfolio Showcase - Showcase Service",
                "version": "1.0.0",
                "capabilities": ["stale_while_revalidate", "offline_cache", "connectivity"]
            }

        @self.app.get("/profile")
        async def get_profile() -> Dict[str, Any]:
            return self._controller("profile").state.to_dict()

        @self.app.get("/projects")
        async def get_projects() -> Dict[str, Any]:
            return self._controller("projects").state.to_dict()

        @self.app.post("/{name}/refresh")
        async def refresh(name: str) -> Dict[str, Any]:
            """Force a network refresh of one resource."""
            state = await self._controller(name).refetch()
            return state.to_dict()

        @self.app.post("/connectivity")
        async def set_connectivity(update: ConnectivityUpdate) -> Dict[str, Any]:
            """Push an online/offline transition and wait for the resulting reconciliation."""
            if not isinstance(self.connectivity, ManualConnectivity):
                raise HTTPException(status_code=409, detail="Connectivity is probed, not set manually")

            self.connectivity.set_online(update.online)
            await asyncio.gather(*(c.wait_idle() for c in self.controllers.values()))
            return {name: c.state.to_dict() for name, c in self.controllers.items()}


def create_app():
    """Create showcase service application."""
    service = ShowcaseService()
    return service.app


if __name__ == "__main__":
    service = ShowcaseService()
    service.run()
