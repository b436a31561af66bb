"""Shared fixtures for content-acquisition tests."""

from __future__ import annotations

import pytest

from content_acquisition.client import AcquisitionClient
from content_acquisition.config import Settings

BASE_URL = "https://api.firecrawl.test/v2"


class FakeClock:
    """Monotonic clock that only moves when ``sleep`` is awaited."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture()
def settings() -> Settings:
    """Settings with a dummy key pointed at a mocked base URL."""
    return Settings(api_key="test-firecrawl-key", base_url=BASE_URL)


@pytest.fixture()
def unconfigured_settings() -> Settings:
    return Settings(api_key="", base_url=BASE_URL)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
async def client(settings, clock):
    async with AcquisitionClient(settings, sleep=clock.sleep, clock=clock) as c:
        yield c


@pytest.fixture()
async def unconfigured_client(unconfigured_settings, clock):
    async with AcquisitionClient(unconfigured_settings, sleep=clock.sleep, clock=clock) as c:
        yield c


SAMPLE_SCRAPE_RESPONSE = {
    "success": True,
    "data": {
        "markdown": "# Acme\n\nWe make anvils.",
        "html": "<h1>Acme</h1><p>We make anvils.</p>",
        "screenshot": "https://cdn.firecrawl.test/shot.png",
        "metadata": {
            "title": "Acme Corp",
            "description": "Anvils since 1949",
            "ogImage": "https://acme.example/og.png",
            "statusCode": 200,
        },
    },
}
