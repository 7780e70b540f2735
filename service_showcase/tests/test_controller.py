"""
Unit tests for the stale-while-revalidate resource controller.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from service_showcase.app.caching import CacheStore, FreshnessPolicy
from service_showcase.app.connectivity import ManualConnectivity
from service_showcase.app.resources import (
    FETCH_FAILED_WITH_CACHE,
    OFFLINE_NO_CACHE,
    OFFLINE_WITH_CACHE,
    ResourceController,
)
from shared.errors import HttpError, NotFound, TransportError
from shared.metrics import MetricsCollector

MINUTE = 60 * 1000

PROJECT_A = {"id": "a", "projectName": "Project A"}
PROJECT_B = {"id": "b", "projectName": "Project B"}


def make_controller(definition, storage, connectivity, clock, fetch, metrics=None):
    """Wire a controller around a mocked resource client."""
    client = MagicMock()
    client.fetch = fetch
    cache = CacheStore(storage, definition.name, clock=clock, metrics=metrics)
    policy = FreshnessPolicy.from_seconds(definition.ttl_seconds, clock)
    return ResourceController(definition, client, cache, policy, connectivity, metrics=metrics)


class TestControllerOffline:
    """Offline behaviour."""

    @pytest.mark.asyncio
    async def test_offline_serves_cache_without_network(self, projects_definition, storage, clock):
        """Test offline mount with a cache shows it and never fetches."""
        fetch = AsyncMock(return_value=[PROJECT_B])
        controller = make_controller(
            projects_definition, storage, ManualConnectivity(online=False), clock, fetch
        )
        controller.cache.write([PROJECT_A])

        state = await controller.mount()

        assert state.data == [PROJECT_A]
        assert state.using_cache is True
        assert state.is_online is False
        assert state.loading is False
        assert state.error == OFFLINE_WITH_CACHE
        fetch.assert_not_awaited()
        await controller.dispose()

    @pytest.mark.asyncio
    async def test_offline_stale_cache_still_served(self, projects_definition, storage, clock):
        """Test an expired cache is still better than nothing offline."""
        fetch = AsyncMock()
        controller = make_controller(
            projects_definition, storage, ManualConnectivity(online=False), clock, fetch
        )
        controller.cache.write([PROJECT_A])
        clock.advance(60 * MINUTE)

        state = await controller.mount()

        assert state.data == [PROJECT_A]
        assert state.error == OFFLINE_WITH_CACHE
        fetch.assert_not_awaited()
        await controller.dispose()

    @pytest.mark.asyncio
    async def test_offline_without_cache(self, projects_definition, storage, clock):
        """Test offline mount without a cache reports it."""
        fetch = AsyncMock()
        controller = make_controller(
            projects_definition, storage, ManualConnectivity(online=False), clock, fetch
        )

        state = await controller.mount()

        assert state.data is None
        assert state.using_cache is False
        assert state.loading is False
        assert state.error == OFFLINE_NO_CACHE
        fetch.assert_not_awaited()
        await controller.dispose()

    @pytest.mark.asyncio
    async def test_empty_cached_list_counts_as_absent(self, projects_definition, storage, clock):
        """Test an empty cached project list is not shown offline."""
        controller = make_controller(
            projects_definition, storage, ManualConnectivity(online=False), clock, AsyncMock()
        )
        controller.cache.write([])

        state = await controller.mount()

        assert state.data is None
        assert state.error == OFFLINE_NO_CACHE
        await controller.dispose()


class TestControllerStaleWhileRevalidate:
    """Fresh cache handling."""

    @pytest.mark.asyncio
    async def test_fresh_cache_then_background_refresh(self, projects_definition, storage, connectivity, clock):
        """Test the cache is shown at once and replaced by the network value."""
        fetch = AsyncMock(return_value=[PROJECT_A, PROJECT_B])
        controller = make_controller(projects_definition, storage, connectivity, clock, fetch)
        controller.cache.write([PROJECT_A])
        clock.advance(4 * MINUTE)

        seen = []
        controller.subscribe(seen.append)

        state = await controller.mount()

        assert state.data == [PROJECT_A]
        assert state.using_cache is True
        assert state.loading is False

        await controller.wait_idle()

        assert controller.state.data == [PROJECT_A, PROJECT_B]
        assert controller.state.using_cache is False
        assert controller.state.error is None
        assert controller.cache.read() == [PROJECT_A, PROJECT_B]
        assert controller.cache.timestamp() == clock.now
        assert not any(s.loading for s in seen)
        fetch.assert_awaited_once()
        await controller.dispose()

    @pytest.mark.asyncio
    async def test_background_failure_keeps_cache(self, projects_definition, storage, connectivity, clock):
        """Test a failed revalidation leaves the cached state untouched."""
        fetch = AsyncMock(side_effect=HttpError(500, "Failed to fetch projects"))
        controller = make_controller(projects_definition, storage, connectivity, clock, fetch)
        controller.cache.write([PROJECT_A])

        await controller.mount()
        await controller.wait_idle()

        assert controller.state.data == [PROJECT_A]
        assert controller.state.using_cache is True
        assert controller.state.error is None
        assert controller.cache.read() == [PROJECT_A]
        await controller.dispose()

    @pytest.mark.asyncio
    async def test_background_not_found_clears_data(self, profile_definition, storage, connectivity, clock):
        """Test a profile deleted on the server disappears after revalidation."""
        fetch = AsyncMock(side_effect=NotFound("profile"))
        controller = make_controller(profile_definition, storage, connectivity, clock, fetch)
        controller.cache.write({"id": "about-1", "name": "Ada"})

        await controller.mount()
        assert controller.state.data == {"id": "about-1", "name": "Ada"}

        await controller.wait_idle()

        assert controller.state.data is None
        assert controller.state.error is None
        assert controller.state.using_cache is False
        await controller.dispose()

    @pytest.mark.asyncio
    async def test_empty_fresh_cache_fetches_in_foreground(self, projects_definition, storage, connectivity, clock):
        """Test an empty cached list does not short-circuit the fetch."""
        fetch = AsyncMock(return_value=[PROJECT_A])
        controller = make_controller(projects_definition, storage, connectivity, clock, fetch)
        controller.cache.write([])

        state = await controller.mount()

        assert state.data == [PROJECT_A]
        assert state.using_cache is False
        fetch.assert_awaited_once()
        await controller.dispose()


class TestControllerForeground:
    """Foreground fetches and their failures."""

    @pytest.mark.asyncio
    async def test_stale_cache_fetches_and_writes(self, projects_definition, storage, connectivity, clock):
        """Test an expired cache triggers a loading fetch and is rewritten."""
        fetch = AsyncMock(return_value=[PROJECT_B])
        controller = make_controller(projects_definition, storage, connectivity, clock, fetch)
        controller.cache.write([PROJECT_A])
        clock.advance(5 * MINUTE + 1)

        state = await controller.mount()

        assert state.data == [PROJECT_B]
        assert state.using_cache is False
        assert state.loading is False
        fetch.assert_awaited_once()
        assert controller.cache.read() == [PROJECT_B]
        assert controller.cache.timestamp() == clock.now
        await controller.dispose()

    @pytest.mark.asyncio
    async def test_not_found_is_not_an_error(self, profile_definition, storage, connectivity, clock):
        """Test a 404 yields an empty state with no error."""
        controller = make_controller(
            profile_definition, storage, connectivity, clock, AsyncMock(side_effect=NotFound("profile"))
        )

        state = await controller.mount()

        assert state.data is None
        assert state.error is None
        assert state.loading is False
        assert storage.keys() == []
        await controller.dispose()

    @pytest.mark.asyncio
    async def test_server_error_is_an_error(self, profile_definition, storage, connectivity, clock):
        """Test a 500 without cache surfaces the failure message."""
        controller = make_controller(
            profile_definition, storage, connectivity, clock,
            AsyncMock(side_effect=HttpError(500, "Failed to fetch about user info"))
        )

        state = await controller.mount()

        assert state.data is None
        assert state.using_cache is False
        assert state.loading is False
        assert state.error == "Failed to fetch about user info"
        await controller.dispose()

    @pytest.mark.asyncio
    async def test_failure_falls_back_to_cache(self, projects_definition, storage, connectivity, clock):
        """Test a failed fetch with a stale cache shows the cache."""
        controller = make_controller(
            projects_definition, storage, connectivity, clock,
            AsyncMock(side_effect=TransportError())
        )
        controller.cache.write([PROJECT_A])
        clock.advance(10 * MINUTE)

        state = await controller.mount()

        assert state.data == [PROJECT_A]
        assert state.using_cache is True
        assert state.error == FETCH_FAILED_WITH_CACHE
        await controller.dispose()

    @pytest.mark.asyncio
    async def test_unexpected_exception_does_not_escape(self, projects_definition, storage, connectivity, clock):
        """Test arbitrary exceptions from the client become error strings."""
        controller = make_controller(
            projects_definition, storage, connectivity, clock, AsyncMock(side_effect=RuntimeError("boom"))
        )

        state = await controller.mount()

        assert state.error == "boom"
        assert state.data is None
        await controller.dispose()

    @pytest.mark.asyncio
    async def test_null_profile_not_cached(self, profile_definition, storage, connectivity, clock):
        """Test a null profile is shown as empty and not written to the cache."""
        controller = make_controller(
            profile_definition, storage, connectivity, clock, AsyncMock(return_value=None)
        )

        state = await controller.mount()

        assert state.data is None
        assert state.error is None
        assert controller.cache.read() is None
        await controller.dispose()

    @pytest.mark.asyncio
    async def test_refetch_bypasses_fresh_cache(self, projects_definition, storage, connectivity, clock):
        """Test a manual refresh always hits the network."""
        fetch = AsyncMock(return_value=[PROJECT_B])
        controller = make_controller(projects_definition, storage, connectivity, clock, fetch)
        controller.cache.write([PROJECT_A])

        await controller.mount()
        await controller.wait_idle()
        fetch.return_value = [PROJECT_A, PROJECT_B]
        seen = []
        controller.subscribe(seen.append)

        state = await controller.refetch()

        assert fetch.await_count == 2
        assert seen[0].loading is True
        assert state.data == [PROJECT_A, PROJECT_B]
        assert state.using_cache is False
        await controller.dispose()


class TestControllerConnectivity:
    """Connectivity transitions."""

    @pytest.mark.asyncio
    async def test_reconnect_with_unreachable_network(self, projects_definition, storage, clock):
        """Test going online against a dead network falls back to the stale cache."""
        connectivity = ManualConnectivity(online=False)
        fetch = AsyncMock(side_effect=TransportError("Failed to fetch projects: ReadTimeout"))
        controller = make_controller(projects_definition, storage, connectivity, clock, fetch)
        controller.cache.write([PROJECT_A])
        clock.advance(10 * MINUTE)

        await controller.mount()
        assert controller.state.error == OFFLINE_WITH_CACHE

        connectivity.set_online(True)
        assert controller.state.is_online is True
        await controller.wait_idle()

        assert controller.state.error == FETCH_FAILED_WITH_CACHE
        assert controller.state.data == [PROJECT_A]
        assert controller.state.using_cache is True
        assert controller.state.loading is False
        fetch.assert_awaited_once()
        await controller.dispose()

    @pytest.mark.asyncio
    async def test_reconnect_forces_refresh(self, projects_definition, storage, connectivity, clock):
        """Test coming back online refreshes even with a fresh cache."""
        fetch = AsyncMock(return_value=[PROJECT_A])
        controller = make_controller(projects_definition, storage, connectivity, clock, fetch)

        await controller.mount()
        connectivity.set_online(False)
        fetch.return_value = [PROJECT_B]
        connectivity.set_online(True)
        await controller.wait_idle()

        assert fetch.await_count == 2
        assert controller.state.data == [PROJECT_B]
        assert controller.state.using_cache is False
        assert controller.state.error is None
        await controller.dispose()

    @pytest.mark.asyncio
    async def test_going_offline_keeps_shown_data(self, projects_definition, storage, connectivity, clock):
        """Test losing connectivity does not replace what is already shown."""
        controller = make_controller(
            projects_definition, storage, connectivity, clock, AsyncMock(return_value=[PROJECT_A])
        )

        await controller.mount()
        connectivity.set_online(False)

        assert controller.state.is_online is False
        assert controller.state.data == [PROJECT_A]
        assert controller.state.using_cache is False
        assert controller.state.error is None
        await controller.dispose()

    @pytest.mark.asyncio
    async def test_going_offline_loads_cache_when_empty(self, projects_definition, storage, connectivity, clock):
        """Test losing connectivity with nothing shown loads the cache."""
        controller = make_controller(
            projects_definition, storage, connectivity, clock, AsyncMock(side_effect=HttpError(503))
        )

        await controller.mount()
        assert controller.state.data is None

        controller.cache.write([PROJECT_A])
        connectivity.set_online(False)

        assert controller.state.data == [PROJECT_A]
        assert controller.state.using_cache is True
        assert controller.state.error == OFFLINE_WITH_CACHE
        await controller.dispose()


class TestControllerOrdering:
    """Request ordering and lifecycle."""

    @pytest.mark.asyncio
    async def test_superseded_background_result_discarded(self, projects_definition, storage, connectivity, clock):
        """Test a slow revalidation cannot overwrite a later manual refresh."""
        gate = asyncio.Event()
        calls = []

        async def fetch():
            calls.append(len(calls))
            if len(calls) == 1:
                await gate.wait()
                return [PROJECT_A]
            return [PROJECT_B]

        metrics = MetricsCollector("showcase")
        controller = make_controller(
            projects_definition, storage, connectivity, clock, AsyncMock(side_effect=fetch), metrics=metrics
        )
        controller.cache.write([{"id": "old"}])

        await controller.mount()
        await asyncio.sleep(0)
        assert calls == [0]

        await controller.refetch()
        assert controller.state.data == [PROJECT_B]

        gate.set()
        await controller.wait_idle()

        assert controller.state.data == [PROJECT_B]
        assert controller.cache.read() == [PROJECT_B]
        assert metrics.registry.get_sample_value(
            "resource_stale_responses_total", {"resource": "projects"}
        ) == 1.0
        await controller.dispose()

    @pytest.mark.asyncio
    async def test_dispose_discards_in_flight_result(self, projects_definition, storage, connectivity, clock):
        """Test a result arriving after dispose changes nothing."""
        gate = asyncio.Event()

        async def fetch():
            await gate.wait()
            return [PROJECT_A]

        controller = make_controller(
            projects_definition, storage, connectivity, clock, AsyncMock(side_effect=fetch)
        )
        seen = []
        controller.subscribe(seen.append)

        mount = asyncio.create_task(controller.mount())
        await asyncio.sleep(0)
        before = controller.state

        await controller.dispose()
        gate.set()
        await mount

        assert controller.disposed is True
        assert controller.state == before
        assert controller.cache.read() is None
        assert seen == []

    @pytest.mark.asyncio
    async def test_disposed_controller_ignores_events(self, projects_definition, storage, connectivity, clock):
        """Test events after dispose neither fetch nor notify."""
        fetch = AsyncMock(return_value=[PROJECT_A])
        controller = make_controller(projects_definition, storage, connectivity, clock, fetch)
        await controller.dispose()

        await controller.mount()
        await controller.refetch()
        controller.handle_online()
        controller.handle_offline()

        fetch.assert_not_awaited()
        assert controller.state.loading is True

    @pytest.mark.asyncio
    async def test_dispose_unsubscribes_connectivity(self, projects_definition, storage, connectivity, clock):
        """Test connectivity changes after dispose are ignored."""
        controller = make_controller(
            projects_definition, storage, connectivity, clock, AsyncMock(return_value=[PROJECT_A])
        )
        await controller.mount()
        await controller.dispose()

        connectivity.set_online(False)

        assert controller.state.is_online is True

    @pytest.mark.asyncio
    async def test_failing_listener_is_isolated(self, projects_definition, storage, connectivity, clock):
        """Test a raising listener does not break the controller or other listeners."""
        controller = make_controller(
            projects_definition, storage, connectivity, clock, AsyncMock(return_value=[PROJECT_A])
        )

        def broken(state):
            raise RuntimeError("render failed")

        seen = []
        controller.subscribe(broken)
        unsubscribe = controller.subscribe(seen.append)

        state = await controller.mount()
        assert state.data == [PROJECT_A]
        assert seen[-1].data == [PROJECT_A]

        unsubscribe()
        count = len(seen)
        await controller.refetch()
        assert len(seen) == count
        await controller.dispose()


class TestControllerErrorAutoClear:
    """Error banner auto-clear."""

    @pytest.mark.asyncio
    async def test_profile_error_clears_when_data_shown(self, profile_definition, storage, connectivity, clock):
        """Test the profile banner disappears after the configured delay."""
        controller = make_controller(
            profile_definition, storage, connectivity, clock, AsyncMock(side_effect=HttpError(500))
        )
        controller.cache.write({"id": "about-1"})
        clock.advance(20 * MINUTE)

        await controller.mount()
        assert controller.state.error == FETCH_FAILED_WITH_CACHE

        await asyncio.sleep(0.15)

        assert controller.state.error is None
        assert controller.state.data == {"id": "about-1"}
        await controller.dispose()

    @pytest.mark.asyncio
    async def test_profile_error_without_data_stays(self, profile_definition, storage, connectivity, clock):
        """Test an error with nothing to show is not cleared."""
        controller = make_controller(
            profile_definition, storage, connectivity, clock, AsyncMock(side_effect=HttpError(500))
        )

        await controller.mount()
        await asyncio.sleep(0.15)

        assert controller.state.error == "HTTP 500"
        await controller.dispose()

    @pytest.mark.asyncio
    async def test_projects_error_does_not_clear(self, projects_definition, storage, connectivity, clock):
        """Test the project list keeps its banner until the next event."""
        controller = make_controller(
            projects_definition, storage, connectivity, clock, AsyncMock(side_effect=HttpError(500))
        )
        controller.cache.write([PROJECT_A])
        clock.advance(20 * MINUTE)

        await controller.mount()
        await asyncio.sleep(0.15)

        assert controller.state.error == FETCH_FAILED_WITH_CACHE
        await controller.dispose()


class TestControllerEventLoop:
    """Connectivity notifications arriving outside a running loop."""

    def test_sync_connectivity_changes_use_mount_loop(self, profile_definition, storage, connectivity, clock):
        """Test going offline and online from plain code schedules work on the mount loop."""
        loop = asyncio.new_event_loop()
        fetch = AsyncMock(side_effect=NotFound("profile"))
        controller = make_controller(profile_definition, storage, connectivity, clock, fetch)
        try:
            loop.run_until_complete(controller.mount())
            assert controller.state.data is None

            seen = []
            controller.subscribe(seen.append)
            controller.cache.write({"id": "about-1"})

            connectivity.set_online(False)

            assert controller.state.data == {"id": "about-1"}
            assert controller.state.error == OFFLINE_WITH_CACHE
            assert seen[-1] == controller.state

            loop.run_until_complete(asyncio.sleep(0.15))
            assert controller.state.error is None

            fetch.side_effect = None
            fetch.return_value = {"id": "about-1", "name": "Ada"}
            connectivity.set_online(True)
            loop.run_until_complete(controller.wait_idle())

            assert controller.state.data == {"id": "about-1", "name": "Ada"}
            assert controller.state.using_cache is False
        finally:
            loop.run_until_complete(controller.dispose())
            loop.close()
