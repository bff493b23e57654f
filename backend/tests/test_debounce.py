from __future__ import annotations

import asyncio

from clustering.debounce import DebounceState, ZoomDebouncer


def test_burst_of_values_fires_once_with_the_last_one():
    seen: list[float] = []

    async def run():
        d = ZoomDebouncer(seen.append, delay_s=0.01)
        for z in (10.0, 10.5, 11.0, 12.0):
            d.push(z)
        assert d.is_pending
        await asyncio.sleep(0.05)
        return d

    d = asyncio.run(run())
    assert seen == [12.0]
    assert d.state == DebounceState.computed
    assert d.last_value == 12.0


def test_cancel_drops_pending_value():
    seen: list[float] = []

    async def run():
        d = ZoomDebouncer(seen.append, delay_s=0.01)
        d.push(5.0)
        d.cancel()
        await asyncio.sleep(0.03)
        return d

    d = asyncio.run(run())
    assert seen == []
    assert d.state == DebounceState.idle


def test_flush_runs_immediately_and_only_once():
    seen: list[float] = []

    async def run():
        d = ZoomDebouncer(seen.append, delay_s=0.01)
        d.push(7.0)
        d.flush()
        assert seen == [7.0]
        await asyncio.sleep(0.03)

    asyncio.run(run())
    assert seen == [7.0]
