from __future__ import annotations

import asyncio

import pytest
from conftest import FakeClock

from topic_monitor.core.errors import RemoteClassifierError
from topic_monitor.core.retry import ConnectivityGuard, RetryPolicy
from topic_monitor.llm.ark_client import ArkClientError


async def _fail(exc: Exception):
    raise exc


async def _ok():
    return "fine"


def test_delay_escalates():
    policy = RetryPolicy(base_delay_s=1.0)
    assert [policy.delay_for(n) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]


class TestConnectivityGuard:
    async def test_backoff_then_degrade(self):
        clock = FakeClock(0.0)
        reasons: list[str] = []

        async def on_degraded(reason: str) -> None:
            reasons.append(reason)

        guard = ConnectivityGuard(RetryPolicy(max_attempts=3), clock=clock, on_degraded=on_degraded)
        err = RemoteClassifierError("timeout")

        assert await guard.call(lambda: _fail(err)) is None
        assert guard.retry_at == 1.0
        assert not guard.available()
        assert await guard.call(_ok) is None

        clock.advance(1.0)
        assert await guard.call(lambda: _fail(err)) is None
        assert guard.retry_at == 3.0

        clock.advance(2.0)
        assert await guard.call(lambda: _fail(err)) is None
        assert guard.degraded
        assert len(reasons) == 1

        clock.advance(100.0)
        assert not guard.available()

    async def test_success_resets_failures(self):
        clock = FakeClock(0.0)
        guard = ConnectivityGuard(RetryPolicy(max_attempts=2), clock=clock)
        await guard.call(lambda: _fail(RuntimeError("boom")))
        clock.advance(5)
        assert await guard.call(_ok) == "fine"
        assert guard.consecutive_failures == 0
        await guard.call(lambda: _fail(RuntimeError("boom")))
        assert not guard.degraded

    async def test_permanent_failure_degrades_immediately(self):
        guard = ConnectivityGuard(RetryPolicy(), clock=FakeClock(0.0))
        await guard.call(lambda: _fail(RemoteClassifierError("401 unauthorized", transient=False)))
        assert guard.degraded
        assert guard.consecutive_failures == 1

    async def test_concurrent_failures_count_as_one_attempt(self):
        clock = FakeClock(0.0)
        guard = ConnectivityGuard(RetryPolicy(max_attempts=3), clock=clock)
        gate = asyncio.Event()
        err = RemoteClassifierError("upstream 503")

        async def held():
            await gate.wait()
            raise err

        calls = [asyncio.create_task(guard.call(held)) for _ in range(3)]
        await asyncio.sleep(0)
        gate.set()
        assert await asyncio.gather(*calls) == [None, None, None]
        assert guard.consecutive_failures == 1
        assert guard.retry_at == 1.0
        assert not guard.degraded

        clock.advance(1.0)
        assert await guard.call(lambda: _fail(err)) is None
        assert guard.consecutive_failures == 2
        assert guard.retry_at == 3.0

    async def test_stale_success_does_not_reset_backoff(self):
        clock = FakeClock(0.0)
        guard = ConnectivityGuard(RetryPolicy(), clock=clock)
        gate = asyncio.Event()

        async def slow_ok():
            await gate.wait()
            return "late"

        pending = asyncio.create_task(guard.call(slow_ok))
        await asyncio.sleep(0)
        await guard.call(lambda: _fail(RuntimeError("boom")))
        gate.set()
        assert await pending == "late"
        assert guard.consecutive_failures == 1
        assert not guard.available()

    async def test_timeout_counts_as_failure(self):
        guard = ConnectivityGuard(RetryPolicy(), clock=FakeClock(0.0))

        async def slow():
            await asyncio.sleep(1)

        assert await guard.call(slow, timeout_s=0.01) is None
        assert guard.consecutive_failures == 1


@pytest.mark.parametrize(
    "status, transient",
    [(None, True), (429, True), (500, True), (503, True), (200, True), (401, False), (404, False)],
)
def test_ark_error_classification(status, transient):
    assert ArkClientError("x", status_code=status).transient is transient
