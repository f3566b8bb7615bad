from __future__ import annotations

import pytest

from redaction_bot.areas import MAX_REQUEST_AREA, Area, AreaWorkList, split_area
from redaction_bot.errors import AreaTooSmallError
from redaction_bot.models import Region


def test_split_bisects_longer_edge_and_keeps_other_extent() -> None:
    area = Area(minlat=0.0, maxlat=1.0, minlon=0.0, maxlon=2.0)
    first, second = split_area(area)
    assert first == Area(minlat=0.0, maxlat=1.0, minlon=0.0, maxlon=1.0)
    assert second == Area(minlat=0.0, maxlat=1.0, minlon=1.0, maxlon=2.0)
    assert first.size + second.size == pytest.approx(area.size)


def test_split_tall_area_along_latitude() -> None:
    area = Area(minlat=10.0, maxlat=10.5, minlon=20.0, maxlon=20.25)
    first, second = split_area(area)
    assert (first.minlat, first.maxlat) == (10.0, 10.25)
    assert (second.minlat, second.maxlat) == (10.25, 10.5)
    assert first.minlon == second.minlon == 20.0
    assert first.maxlon == second.maxlon == 20.25


def test_split_square_area_uses_longitude() -> None:
    first, second = split_area(Area(minlat=0.0, maxlat=1.0, minlon=0.0, maxlon=1.0))
    assert first.maxlon == 0.5
    assert second.minlon == 0.5
    assert first.maxlat == second.maxlat == 1.0


def test_split_union_covers_parent_area() -> None:
    area = Area(minlat=-3.0, maxlat=-2.0, minlon=5.0, maxlon=5.5)
    first, second = split_area(area)
    for lat, lon in [(-3.0, 5.0), (-2.5, 5.25), (-2.0001, 5.4999), (-2.5001, 5.0)]:
        assert area.contains(lat, lon)
        assert first.contains(lat, lon) != second.contains(lat, lon)


def test_split_refuses_area_below_minimum() -> None:
    tiny = Area(minlat=0.0, maxlat=0.0005, minlon=0.0, maxlon=0.0005)
    with pytest.raises(AreaTooSmallError):
        split_area(tiny)


def test_work_list_walks_depth_first() -> None:
    work = AreaWorkList(Area(0.0, 1.0, 0.0, 1.0), max_request_area=0.3, min_split_area=0.001)
    seen = []
    while True:
        area = work.next_area()
        if area is None:
            break
        seen.append(area)
    assert seen == [
        Area(minlat=0.5, maxlat=1.0, minlon=0.5, maxlon=1.0),
        Area(minlat=0.0, maxlat=0.5, minlon=0.5, maxlon=1.0),
        Area(minlat=0.5, maxlat=1.0, minlon=0.0, maxlon=0.5),
        Area(minlat=0.0, maxlat=0.5, minlon=0.0, maxlon=0.5),
    ]


def test_region_cell_decomposes_into_request_sized_areas() -> None:
    work = AreaWorkList(Area.for_region(Region(id=1, lat=10.0, lon=20.0)))
    leaves = []
    while True:
        area = work.next_area()
        if area is None:
            break
        leaves.append(area)
    assert len(leaves) == 128
    assert all(leaf.size <= MAX_REQUEST_AREA for leaf in leaves)
    assert sum(leaf.size for leaf in leaves) == pytest.approx(1.0)


def test_work_list_split_on_demand_pushes_halves() -> None:
    work = AreaWorkList(Area(0.0, 0.05, 0.0, 0.05))
    area = work.next_area()
    assert area is not None
    assert work.next_area() is None
    work.split(area)
    assert len(work) == 2
    assert work.next_area() == Area(minlat=0.0, maxlat=0.05, minlon=0.025, maxlon=0.05)
