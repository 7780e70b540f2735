"""
Reconciliation controller: keeps one resource fresh, cached and displayable.
"""

import asyncio
from typing import Any, Awaitable, Callable, List, Optional, Set, TYPE_CHECKING

from shared.errors import NotFound, ShowcaseException
from shared.logging import get_logger
from ..models import ResourceDefinition, ResourceState

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector
    from ..adapters.resource_client import ResourceClient
    from ..caching.cache_store import CacheStore
    from ..caching.freshness import FreshnessPolicy
    from ..connectivity.providers import ConnectivityProvider


OFFLINE_WITH_CACHE = "offline, showing cached data"
OFFLINE_NO_CACHE = "offline, no cached data"
FETCH_FAILED_WITH_CACHE = "failed to fetch latest, showing cached data"

StateListener = Callable[[ResourceState], None]


class ResourceController:
    """Stale-while-revalidate controller for a single resource.

    Entry points are ``mount()``, ``refetch()`` and the connectivity
    notifications. Each of them runs one decision procedure over the current
    connectivity, the cache freshness and the cache contents:

    - offline: serve the cache (or nothing) with an explanatory error;
    - online with a fresh cache: serve the cache immediately and revalidate
      in the background without raising ``loading``;
    - otherwise: fetch in the foreground, falling back to the cache on failure.

    Every initiating event takes a new request id. Results of a fetch whose
    id is no longer the latest are dropped, for the state and the cache
    alike. Network and storage failures end up in ``state.error``; nothing
    raises out of the public methods.

    Background fetches and the error timer are scheduled on the loop
    ``mount()`` ran on, so connectivity notifications may also arrive from
    synchronous code outside that loop's tasks.
    """

    def __init__(
        self,
        resource: ResourceDefinition,
        client: "ResourceClient",
        cache: "CacheStore",
        policy: "FreshnessPolicy",
        connectivity: "ConnectivityProvider",
        *,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.resource = resource
        self.client = client
        self.cache = cache
        self.policy = policy
        self.connectivity = connectivity
        self.metrics = metrics
        self.logger = get_logger("showcase.controller").bind(resource=resource.name)

        self._state = ResourceState(is_online=connectivity.current())
        self._request_id = 0
        self._listeners: List[StateListener] = []
        self._tasks: Set[asyncio.Task] = set()
        self._error_timer: Optional[asyncio.TimerHandle] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._unsubscribe_connectivity: Optional[Callable[[], None]] = None
        self._disposed = False

    @property
    def state(self) -> ResourceState:
        return self._state

    @property
    def disposed(self) -> bool:
        return self._disposed

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` with every new state; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def mount(self) -> ResourceState:
        """Initial load. Subscribes to connectivity changes on first call."""
        if self._disposed:
            return self._state

        self._loop = asyncio.get_running_loop()
        if self._unsubscribe_connectivity is None:
            self._unsubscribe_connectivity = self.connectivity.on_change(self._on_connectivity_change)
            self._apply(is_online=self.connectivity.current())

        await self._reconcile(self._next_request_id(), force_refresh=False)
        return self._state

    async def refetch(self) -> ResourceState:
        """Manual refresh: always goes to the network when online."""
        if self._disposed:
            return self._state

        await self._reconcile(self._next_request_id(), force_refresh=True)
        return self._state

    def handle_online(self) -> None:
        """Connectivity restored: clear the banner and refresh in the background."""
        if self._disposed:
            return

        self.logger.info("Back online, refreshing")
        self._apply(is_online=True, error=None)
        self._spawn(self._reconcile(self._next_request_id(), force_refresh=True))

    def handle_offline(self) -> None:
        """Connectivity lost: keep what is shown, fill from cache if nothing is."""
        if self._disposed:
            return

        self.logger.info("Gone offline")
        self._apply(is_online=False)
        if self._state.data is None:
            self._load_offline()

    async def wait_idle(self) -> None:
        """Wait until background revalidations and reconnect refreshes are done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def dispose(self) -> None:
        """Stop reacting to events; in-flight results are discarded."""
        if self._disposed:
            return

        self._disposed = True
        if self._unsubscribe_connectivity is not None:
            self._unsubscribe_connectivity()
            self._unsubscribe_connectivity = None
        self._cancel_error_timer()

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._listeners.clear()
        self.logger.debug("Controller disposed")

    def _on_connectivity_change(self, online: bool) -> None:
        if online:
            self.handle_online()
        else:
            self.handle_offline()

    async def _reconcile(self, request_id: int, force_refresh: bool) -> None:
        if not self._is_current(request_id):
            return

        try:
            if not self._state.is_online:
                self._load_offline()
                return

            if not force_refresh and self.policy.is_valid(self.cache.timestamp()):
                cached = self.cache.read()
                if self.resource.has_content(cached):
                    self.logger.debug("Serving fresh cache, revalidating in background")
                    self._apply(data=cached, using_cache=True, loading=False)
                    self._spawn(self._revalidate(request_id))
                    return

            await self._fetch_foreground(request_id)
        except Exception as exc:
            self.logger.error("Reconciliation failed", error=str(exc), exc_info=True)
            if self._is_current(request_id):
                self._apply(loading=False, error=self._describe(exc))

    async def _fetch_foreground(self, request_id: int) -> None:
        self._apply(loading=True, error=None)

        try:
            data = await self.client.fetch()
        except NotFound:
            if self._discard_if_stale(request_id):
                return
            self.logger.info("No resource published yet")
            self._apply(data=None, using_cache=False, error=None, loading=False)
            return
        except Exception as exc:
            if self._discard_if_stale(request_id):
                return
            self._fall_back_to_cache(exc)
            return

        if self._discard_if_stale(request_id):
            return

        self._apply(data=data, using_cache=False, error=None, loading=False)
        if data is not None:
            self.cache.write(data)

    async def _revalidate(self, request_id: int) -> None:
        try:
            data = await self.client.fetch()
        except NotFound:
            if self._discard_if_stale(request_id):
                return
            self._apply(data=None, using_cache=False, error=None)
            return
        except Exception as exc:
            # Keep serving the cache; the next event will retry.
            self.logger.warning("Background revalidation failed", error=self._describe(exc))
            return

        if self._discard_if_stale(request_id):
            return

        self.logger.debug("Background revalidation succeeded")
        self._apply(data=data, using_cache=False, error=None)
        if data is not None:
            self.cache.write(data)

    def _load_offline(self) -> None:
        cached = self.cache.read()
        if self.resource.has_content(cached):
            self._apply(data=cached, using_cache=True, error=OFFLINE_WITH_CACHE, loading=False)
        else:
            self._apply(data=None, using_cache=False, error=OFFLINE_NO_CACHE, loading=False)

    def _fall_back_to_cache(self, exc: Exception) -> None:
        message = self._describe(exc)
        cached = self.cache.read()
        if self.resource.has_content(cached):
            self.logger.warning("Fetch failed, showing cached data", error=message)
            self._apply(data=cached, using_cache=True, error=FETCH_FAILED_WITH_CACHE, loading=False)
        else:
            self.logger.error("Fetch failed with no cache to fall back on", error=message)
            self._apply(data=None, using_cache=False, error=message, loading=False)

    def _describe(self, exc: Exception) -> str:
        if isinstance(exc, ShowcaseException):
            return exc.message
        return str(exc) or f"Failed to fetch {self.resource.display_name}"

    def _next_request_id(self) -> int:
        self._request_id += 1
        return self._request_id

    def _is_current(self, request_id: int) -> bool:
        return not self._disposed and request_id == self._request_id

    def _discard_if_stale(self, request_id: int) -> bool:
        if self._is_current(request_id):
            return False

        if not self._disposed:
            self.logger.debug(
                "Discarding superseded response",
                request_id=request_id,
                latest_request_id=self._request_id
            )
            if self.metrics:
                self.metrics.increment_counter("resource_stale_responses_total", resource=self.resource.name)
        return True

    def _spawn(self, coro: Awaitable[Any]) -> None:
        if self._disposed:
            coro.close()
            return

        task = self._event_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _apply(self, **changes: Any) -> None:
        if self._disposed:
            return

        previous = self._state
        self._state = previous.evolve(**changes)
        if self._state == previous:
            return

        self._sync_error_timer(previous)

        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception as exc:
                self.logger.error("State listener failed", error=str(exc))

    def _sync_error_timer(self, previous: ResourceState) -> None:
        current = self._state
        unchanged = current.error == previous.error and current.data is previous.data
        if unchanged and self._error_timer is not None:
            return

        self._cancel_error_timer()

        delay = self.resource.error_clear_delay
        if delay is None or not current.error or current.data is None:
            return

        self._error_timer = self._event_loop().call_later(delay, self._clear_error)

    def _event_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def _clear_error(self) -> None:
        self._error_timer = None
        if self._state.error and self._state.data is not None:
            self._apply(error=None)

    def _cancel_error_timer(self) -> None:
        if self._error_timer is not None:
            self._error_timer.cancel()
            self._error_timer = None
