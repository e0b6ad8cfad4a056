import asyncio
from types import SimpleNamespace

import pytest

from translatebot.main import _cache_sweep_loop, _metrics_loop


async def run_briefly(coro, ticks=20):
    task = asyncio.create_task(coro)
    for _ in range(ticks):
        await asyncio.sleep(0.001)
    assert not task.done()
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)


@pytest.mark.asyncio
async def test_cache_sweep_loop_keeps_running_after_error():
    calls = 0

    def sweep_expired():
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("boom")
        return 0

    cache = SimpleNamespace(sweep_expired=sweep_expired)

    await run_briefly(_cache_sweep_loop(cache, 0.001))

    assert calls > 1


@pytest.mark.asyncio
async def test_metrics_loop_keeps_running_after_error():
    reports = []

    def log_metrics():
        reports.append("metrics")
        if len(reports) == 1:
            raise ValueError("bad snapshot")

    metrics = SimpleNamespace(log_metrics=log_metrics)
    rate_limiter = SimpleNamespace(log_stats=lambda: None)
    cache = SimpleNamespace(log_stats=lambda: None)

    await run_briefly(_metrics_loop(metrics, rate_limiter, cache, 0.001))

    assert len(reports) > 1
