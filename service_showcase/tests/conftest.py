"""
Shared fixtures for Showcase service tests.
"""

import pytest

from service_showcase.app.connectivity import ManualConnectivity
from service_showcase.app.models import ResourceDefinition
from service_showcase.app.storage import MemoryStorage

T0 = 1_700_000_000_000


class FakeClock:
    """Epoch-millis clock that only moves when told to."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, millis: int) -> None:
        self.now += millis


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def connectivity():
    return ManualConnectivity(online=True)


@pytest.fixture
def projects_definition():
    return ResourceDefinition(
        name="projects",
        endpoint="/api/projects",
        envelope_key="projects",
        ttl_seconds=300,
        many=True,
    )


@pytest.fixture
def profile_definition():
    return ResourceDefinition(
        name="about_user",
        endpoint="/api/public/about",
        envelope_key="aboutUser",
        ttl_seconds=900,
        error_clear_delay=0.05,
        label="profile",
    )
