from __future__ import annotations

import pytest

from clustering.window import in_viewport_mask, max_markers_for_zoom, window
from geo.aoi import BBox
from poi.types import POI, Individual


TIERS = {0: 50, 12: 100, 15: 200}


@pytest.mark.parametrize(
    ("zoom", "expected"),
    [(0, 50), (11.9, 50), (12, 100), (13.5, 100), (15, 200), (21, 200)],
)
def test_max_markers_for_zoom(zoom, expected):
    assert max_markers_for_zoom(zoom, TIERS) == expected


def test_max_markers_requires_tiers():
    with pytest.raises(ValueError):
        max_markers_for_zoom(10, {})


def _ind(pid: str, lat: float, lng: float, *, priority: bool = False) -> Individual:
    return Individual(poi=POI(id=pid, lat=lat, lng=lng), priority=priority)


def test_viewport_mask_includes_edges():
    bounds = BBox(0.0, 0.0, 1.0, 1.0)
    items = [_ind("in", 0.5, 0.5), _ind("edge", 1.0, 0.5), _ind("out", 2.0, 0.5)]
    assert in_viewport_mask(items, bounds) == [True, True, False]


def test_window_prefers_priority_then_viewport():
    bounds = BBox(0.0, 0.0, 1.0, 1.0)
    items = [
        _ind("out1", 5.0, 5.0),
        _ind("in1", 0.5, 0.5),
        _ind("p", 9.0, 9.0, priority=True),
        _ind("in2", 0.6, 0.6),
    ]
    visible, overflow = window(items, 3, bounds)

    assert [it.id for it in visible] == ["p", "in1", "in2"]
    assert [it.id for it in overflow] == ["out1"]


def test_priority_items_are_never_trimmed():
    items = [_ind(f"p{i}", 0, 0, priority=True) for i in range(3)] + [_ind("x", 0, 0)]
    visible, overflow = window(items, 2, None)
    assert [it.id for it in visible] == ["p0", "p1", "p2"]
    assert [it.id for it in overflow] == ["x"]


def test_window_without_bounds_keeps_input_order():
    items = [_ind(str(i), 0, i) for i in range(5)]
    visible, overflow = window(items, 3, None)
    assert [it.id for it in visible] == ["0", "1", "2"]
    assert [it.id for it in overflow] == ["3", "4"]
