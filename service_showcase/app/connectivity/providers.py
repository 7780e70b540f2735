"""
Connectivity providers.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

import httpx

from shared.logging import get_logger

ConnectivityListener = Callable[[bool], None]


class ConnectivityProvider(ABC):
    """Online/offline status plus change notifications."""

    def __init__(self, online: bool = True):
        self._online = online
        self._listeners: List[ConnectivityListener] = []
        self.logger = get_logger(f"showcase.connectivity.{self.__class__.__name__.lower()}")

    def current(self) -> bool:
        return self._online

    def on_change(self, callback: ConnectivityListener) -> Callable[[], None]:
        """Register ``callback``; returns a function that unregisters it."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _update(self, online: bool) -> None:
        if online == self._online:
            return

        self._online = online
        self.logger.info("Connectivity changed", online=online)
        for listener in list(self._listeners):
            try:
                listener(online)
            except Exception as e:
                self.logger.error("Connectivity listener failed", error=str(e))

    @abstractmethod
    async def start(self) -> None:
        """Begin tracking connectivity."""

    @abstractmethod
    async def stop(self) -> None:
        """Stop tracking connectivity."""


class ManualConnectivity(ConnectivityProvider):
    """Connectivity driven explicitly by the caller."""

    def set_online(self, online: bool) -> None:
        self._update(online)

    async def start(self) -> None:
        return None

    async def stop(self) -> None:
        return None


class ProbeConnectivity(ConnectivityProvider):
    """Connectivity inferred by polling a URL.

    Any HTTP response means online; a transport failure means offline.
    """

    def __init__(
        self,
        probe_url: str,
        *,
        interval: float = 15.0,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(online=True)
        self.probe_url = probe_url
        self.interval = interval
        self.timeout = timeout
        self.transport = transport
        self._task: Optional[asyncio.Task] = None

    async def probe(self) -> bool:
        """Run one probe and publish the result."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                await client.head(self.probe_url)
            online = True
        except httpx.HTTPError as e:
            self.logger.debug("Connectivity probe failed", url=self.probe_url, error=str(e))
            online = False

        self._update(online)
        return online

    async def start(self) -> None:
        if self._task is not None:
            return
        await self.probe()
        self._task = asyncio.create_task(self._poll())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _poll(self) -> None:
        while True:
            try:
                await asyncio.sleep(self.interval)
                await self.probe()
            except asyncio.CancelledError:
                break
            except Exception as e:
                # Status stays at its last value until a probe succeeds again
                self.logger.error("Error in connectivity probe loop", url=self.probe_url, error=str(e))
