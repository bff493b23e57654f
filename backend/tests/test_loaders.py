from __future__ import annotations

import asyncio
import json
import logging

from cache.store import CacheStore
from poi.loaders import load_pois, load_pois_cached, parse_rows


CSV = """id,name,lat,lng,genre,source,url
s1,Ramen Ya,35.6895,139.6917,food,sheet1,https://example.com/1
s2,No Position,,139.70,food,sheet1,
s3,Bad Lat,north,139.70,food,sheet1,
,Unnamed,35.70,139.71,cafe,recommended,
s1,Duplicate,35.71,139.72,food,sheet1,
"""


def test_csv_loader_drops_bad_rows_and_keeps_extras(tmp_path, caplog):
    path = tmp_path / "pois.csv"
    path.write_text(CSV, encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="poi.loaders"):
        pois = load_pois(path)

    assert [p.id for p in pois] == ["s1", "poi-3"]
    assert pois[0].details == {"url": "https://example.com/1"}
    assert pois[1].source == "recommended"
    assert len([r for r in caplog.records if r.levelno == logging.WARNING]) == 3


def test_json_loader_accepts_list_or_wrapped_rows(tmp_path):
    rows = [
        {"id": "j1", "lat": 1.5, "lon": 2.5, "name": "Lon Column"},
        {"id": "j2", "lat": "95", "lng": 0},
    ]
    flat = tmp_path / "flat.json"
    flat.write_text(json.dumps(rows), encoding="utf-8")
    wrapped = tmp_path / "wrapped.json"
    wrapped.write_text(json.dumps({"pois": rows}), encoding="utf-8")

    for path in (flat, wrapped):
        pois = load_pois(path, source="feed")
        assert [(p.id, p.lat, p.lng, p.source) for p in pois] == [("j1", 1.5, 2.5, "feed")]


def test_parse_rows_rejects_non_finite_values():
    assert parse_rows([{"id": "x", "lat": "nan", "lng": 1}, {"id": "y", "lat": True, "lng": 1}]) == []


def test_cached_loader_reads_file_once(tmp_path):
    path = tmp_path / "pois.csv"
    path.write_text(CSV, encoding="utf-8")
    store = CacheStore(max_entries=10, default_ttl=60.0)

    async def run():
        return await asyncio.gather(*(load_pois_cached(path, store) for _ in range(3)))

    results = asyncio.run(run())
    assert all(r is results[0] for r in results)
    assert store.keys() == [f"sheets:{path}"]

    # Later edits are not seen until the entry is dropped.
    path.write_text("id,lat,lng\nz,1,1\n", encoding="utf-8")
    assert asyncio.run(load_pois_cached(path, store)) is results[0]
    store.clear("sheets:*")
    assert [p.id for p in asyncio.run(load_pois_cached(path, store))] == ["z"]
