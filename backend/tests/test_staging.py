from __future__ import annotations

import asyncio

import pytest

from clustering.policy import StagingPolicy
from poi.types import POI, Individual
from render.staging import StagedRenderer, StagingState


def _items(prefix: str, n: int) -> list[Individual]:
    return [Individual(poi=POI(id=f"{prefix}{i}", lat=0.0, lng=float(i))) for i in range(n)]


def test_batches_cover_every_item_in_order():
    batches: list[list[Individual]] = []
    items = _items("a", 5)

    async def run():
        r = StagedRenderer(batches.append, initial_batch=2, batch_size=2, batch_delay_s=0.001)
        r.render(items)
        assert r.state == StagingState.rendering
        assert r.progress == pytest.approx(0.4)
        await asyncio.sleep(0.05)
        return r

    r = asyncio.run(run())
    assert [len(b) for b in batches] == [2, 2, 1]
    assert [it for b in batches for it in b] == items
    assert r.state == StagingState.complete
    assert r.progress == 1.0


def test_new_render_cancels_previous_schedule():
    batches: list[list[Individual]] = []

    async def run():
        r = StagedRenderer(batches.append, initial_batch=1, batch_size=1, batch_delay_s=0.005)
        r.render(_items("old", 4))
        r.render(_items("new", 3))
        await asyncio.sleep(0.1)
        return r

    r = asyncio.run(run())
    ids = [it.id for b in batches for it in b]
    assert ids == ["old0", "new0", "new1", "new2"]
    assert [it.id for it in r.rendered] == ["new0", "new1", "new2"]


def test_force_complete_and_reset():
    batches: list[list[Individual]] = []

    async def run():
        r = StagedRenderer.from_policy(
            StagingPolicy(initial_batch=2, batch_size=1, batch_delay_s=10.0), batches.append
        )
        r.render(_items("a", 6))
        r.force_complete()
        assert r.state == StagingState.complete
        assert len(r.rendered) == 6

        r.reset()
        assert r.state == StagingState.idle
        assert r.rendered == []

    asyncio.run(run())
    assert [len(b) for b in batches] == [2, 4]


def test_small_list_completes_synchronously():
    batches: list[list[Individual]] = []

    async def run():
        r = StagedRenderer(batches.append, initial_batch=50)
        r.render(_items("a", 3))
        return r

    r = asyncio.run(run())
    assert r.state == StagingState.complete
    assert len(batches) == 1
