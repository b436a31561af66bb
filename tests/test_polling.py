"""Tests for content_acquisition.polling module."""

from __future__ import annotations

import httpx
import pytest
import respx

from content_acquisition.errors import (
    ConfigurationError,
    JobFailedError,
    PollingTimeoutError,
)
from content_acquisition.polling import JobPoller
from content_acquisition.transport import Transport

from .conftest import BASE_URL

PENDING = {"status": "pending"}
PROCESSING = {"status": "processing"}


def _done(data) -> httpx.Response:
    return httpx.Response(200, json={"status": "completed", "data": data})


@pytest.fixture()
async def poller(settings, clock):
    async with Transport(settings) as transport:
        yield JobPoller(transport, interval=2.0, sleep=clock.sleep, clock=clock)


class TestJobPoller:
    async def test_returns_payload_on_completion(self, poller, clock):
        with respx.mock(base_url=BASE_URL) as router:
            route = router.get("/extract/job-1").mock(
                side_effect=[
                    httpx.Response(200, json=PENDING),
                    httpx.Response(200, json=PROCESSING),
                    _done({"foo": "bar"}),
                ]
            )
            data = await poller.poll("/extract/job-1", budget=15)

        assert data == {"foo": "bar"}
        assert route.call_count == 3
        assert clock.sleeps == [2.0, 2.0]

    async def test_failed_job_stops_immediately(self, poller):
        with respx.mock(base_url=BASE_URL) as router:
            route = router.get("/extract/job-1").mock(
                side_effect=[
                    httpx.Response(200, json=PENDING),
                    httpx.Response(200, json={"status": "failed", "error": "site blocked"}),
                ]
            )
            with pytest.raises(JobFailedError, match="site blocked"):
                await poller.poll("/extract/job-1", budget=15)

        assert route.call_count == 2

    async def test_cancelled_job_counts_as_failed(self, poller):
        with respx.mock(base_url=BASE_URL) as router:
            router.get("/agent/a-1").mock(
                return_value=httpx.Response(200, json={"status": "cancelled"})
            )
            with pytest.raises(JobFailedError, match="Job cancelled"):
                await poller.poll("/agent/a-1", budget=15)

    async def test_times_out_within_budget(self, poller, clock):
        with respx.mock(base_url=BASE_URL) as router:
            route = router.get("/extract/job-1").mock(
                return_value=httpx.Response(200, json=PENDING)
            )
            with pytest.raises(PollingTimeoutError):
                await poller.poll("/extract/job-1", budget=15)

        assert clock.now == 15.0
        assert route.call_count == 8
        assert all(s <= poller.interval for s in clock.sleeps)

    @pytest.mark.parametrize("budget", [1.0, 3.5, 7.0, 10.0])
    async def test_never_overshoots_budget(self, poller, clock, budget):
        with respx.mock(base_url=BASE_URL) as router:
            router.get("/extract/job-1").mock(return_value=httpx.Response(200, json=PENDING))
            with pytest.raises(PollingTimeoutError):
                await poller.poll("/extract/job-1", budget=budget)

        assert clock.now <= budget + poller.interval

    async def test_transient_errors_do_not_stop_polling(self, poller, clock):
        with respx.mock(base_url=BASE_URL) as router:
            route = router.get("/extract/job-1").mock(
                side_effect=[
                    httpx.ConnectError,
                    httpx.Response(502, text="bad gateway"),
                    httpx.Response(404),
                    httpx.Response(200, text="not json"),
                    _done([1, 2, 3]),
                ]
            )
            data = await poller.poll("/extract/job-1", budget=15)

        assert data == [1, 2, 3]
        assert route.call_count == 5
        assert clock.now == 8.0

    async def test_undecodable_status_body_does_not_stop_polling(self, poller, clock):
        with respx.mock(base_url=BASE_URL) as router:
            route = router.get("/extract/job-1").mock(
                side_effect=[httpx.DecodingError, _done({"ok": True})]
            )
            data = await poller.poll("/extract/job-1", budget=15)

        assert data == {"ok": True}
        assert route.call_count == 2
        assert clock.sleeps == [2.0]

    async def test_completed_without_data_keeps_polling(self, poller):
        with respx.mock(base_url=BASE_URL) as router:
            route = router.get("/extract/job-1").mock(
                side_effect=[
                    httpx.Response(200, json={"status": "completed"}),
                    _done({"ready": True}),
                ]
            )
            data = await poller.poll("/extract/job-1", budget=15)

        assert data == {"ready": True}
        assert route.call_count == 2

    async def test_zero_budget_never_polls(self, poller):
        with respx.mock(base_url=BASE_URL, assert_all_called=False) as router:
            router.get("/extract/job-1").mock(return_value=_done({}))
            with pytest.raises(PollingTimeoutError):
                await poller.poll("/extract/job-1", budget=0)
        assert not router.calls

    async def test_configuration_error_propagates(self, unconfigured_settings, clock):
        poller = JobPoller(
            Transport(unconfigured_settings), interval=2.0, sleep=clock.sleep, clock=clock
        )
        with pytest.raises(ConfigurationError):
            await poller.poll("/extract/job-1", budget=15)
