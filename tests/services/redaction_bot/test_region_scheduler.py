from __future__ import annotations

import logging
import threading
from pathlib import Path

from redaction_bot.models import Region, RegionStatus
from redaction_bot.scheduler import RegionScheduler
from redaction_bot.tracker import TrackerStore


def _tracker(tmp_path: Path) -> TrackerStore:
    return TrackerStore(f"sqlite:///{(tmp_path / 'tracker.db').as_posix()}")


def _seed_regions(tracker: TrackerStore, rows: list[tuple[int, float, float, str]]) -> None:
    with tracker.transaction() as conn:
        for row in rows:
            tracker.execute(conn, "INSERT INTO regions (id, lat, lon, status) VALUES ({p1}, {p2}, {p3}, {p4})", row)


def test_claim_picks_lowest_unprocessed_region(tmp_path: Path) -> None:
    tracker = _tracker(tmp_path)
    _seed_regions(tracker, [(3, 40.0, 40.0, "unprocessed"), (2, 10.0, 20.0, "unprocessed"), (1, 0.0, 0.0, "complete")])
    scheduler = RegionScheduler(tracker)
    region = scheduler.claim_next()
    assert region is not None
    assert region.id == 2
    assert region.status == RegionStatus.PROCESSING
    assert scheduler.status_of(2) == RegionStatus.PROCESSING
    assert scheduler.status_of(3) == RegionStatus.UNPROCESSED


def test_claim_skips_regions_near_processing_ones(tmp_path: Path) -> None:
    tracker = _tracker(tmp_path)
    _seed_regions(
        tracker,
        [
            (1, 10.0, 20.0, "processing"),
            (2, 11.0, 21.0, "unprocessed"),
            (3, 8.5, 18.5, "unprocessed"),
            (4, 10.0, 22.0, "unprocessed"),
        ],
    )
    region = RegionScheduler(tracker).claim_next()
    assert region is not None
    # 2 and 3 are within two degrees on both axes; 4 is exactly two degrees away in longitude
    assert region.id == 4


def test_claim_returns_none_when_nothing_eligible(tmp_path: Path) -> None:
    tracker = _tracker(tmp_path)
    _seed_regions(tracker, [(1, 10.0, 20.0, "processing"), (2, 10.5, 20.5, "unprocessed")])
    assert RegionScheduler(tracker).claim_next() is None


def test_failed_region_is_not_marked_complete(tmp_path: Path) -> None:
    tracker = _tracker(tmp_path)
    _seed_regions(tracker, [(1, 10.0, 20.0, "unprocessed")])
    scheduler = RegionScheduler(tracker)
    region = scheduler.claim_next()
    assert region is not None
    scheduler.mark_failed(region)
    scheduler.mark_complete(region)
    assert scheduler.status_of(1) == RegionStatus.FAILED


def test_mark_complete(tmp_path: Path) -> None:
    tracker = _tracker(tmp_path)
    _seed_regions(tracker, [(1, 10.0, 20.0, "unprocessed")])
    scheduler = RegionScheduler(tracker)
    region = scheduler.claim_next()
    assert region is not None
    scheduler.mark_complete(region)
    assert scheduler.status_of(1) == RegionStatus.COMPLETE


def test_dry_run_selects_without_claiming(tmp_path: Path) -> None:
    tracker = _tracker(tmp_path)
    _seed_regions(tracker, [(1, 10.0, 20.0, "unprocessed")])
    scheduler = RegionScheduler(tracker, dry_run=True)
    region = scheduler.claim_next()
    assert region is not None and region.id == 1
    scheduler.mark_failed(region)
    assert scheduler.status_of(1) == RegionStatus.UNPROCESSED


def test_concurrent_claims_never_take_conflicting_regions(tmp_path: Path) -> None:
    tracker = _tracker(tmp_path)
    _seed_regions(
        tracker,
        [
            (1, 10.0, 20.0, "unprocessed"),
            (2, 11.0, 21.0, "unprocessed"),
            (3, 30.0, 40.0, "unprocessed"),
        ],
    )
    claimed: list[int | None] = []
    lock = threading.Lock()
    barrier = threading.Barrier(2)

    def worker() -> None:
        scheduler = RegionScheduler(TrackerStore(tracker.locator))
        barrier.wait()
        region = scheduler.claim_next()
        with lock:
            claimed.append(region.id if region else None)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(claimed) == [1, 3]


def test_mark_complete_leaves_failed_region_failed(tmp_path: Path, caplog) -> None:
    tracker = _tracker(tmp_path)
    _seed_regions(tracker, [(1, 10.0, 20.0, "failed"), (2, 40.0, 40.0, "processing")])
    scheduler = RegionScheduler(tracker)
    with caplog.at_level(logging.INFO, logger="redaction_bot.scheduler"):
        scheduler.mark_complete(Region(id=1, lat=10.0, lon=20.0, status=RegionStatus.PROCESSING))
        scheduler.mark_complete(Region(id=2, lat=40.0, lon=40.0, status=RegionStatus.PROCESSING))
    assert scheduler.status_of(1) == RegionStatus.FAILED
    assert scheduler.status_of(2) == RegionStatus.COMPLETE
    messages = [(record.levelno, record.getMessage()) for record in caplog.records]
    assert (logging.WARNING, "RB: region left failed (region_id=1)") in messages
    assert (logging.INFO, "RB: region complete (region_id=2)") in messages
