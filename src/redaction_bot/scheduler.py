"""Region claiming with geographic conflict avoidance."""

from __future__ import annotations

import logging

from .models import Region, RegionStatus
from .tracker import TrackerStore

logger = logging.getLogger(__name__)

CONFLICT_DEGREES = 2

_NEXT_REGION_SQL = """
    SELECT id, lat, lon
    FROM regions AS n
    WHERE n.status = 'unprocessed'
      AND NOT EXISTS (
          SELECT 1
          FROM regions AS bad
          WHERE bad.status = 'processing'
            AND abs(bad.lat - n.lat) < {p1}
            AND abs(bad.lon - n.lon) < {p1}
      )
    ORDER BY n.id
    LIMIT 1
"""


class RegionScheduler:
    def __init__(self, tracker: TrackerStore, *, dry_run: bool = False) -> None:
        self.tracker = tracker
        self.dry_run = dry_run

    def claim_next(self) -> Region | None:
        """Claim the lowest-id unprocessed region clear of every region in progress.

        The conflict scan and the status flip run under one exclusive lock so
        concurrent bots cannot claim neighbouring cells. Dry runs select the
        region without claiming it.
        """
        with self.tracker.transaction() as conn:
            self.tracker.exclusive_lock(conn)
            row = self.tracker.execute(conn, _NEXT_REGION_SQL, (CONFLICT_DEGREES,)).fetchone()
            if row is None:
                return None
            region = Region(id=int(row[0]), lat=float(row[1]), lon=float(row[2]))
            if self.dry_run:
                logger.info("RB: dry run, region selected but not claimed (region_id=%s)", region.id)
                return region
            self.tracker.execute(
                conn,
                "UPDATE regions SET status = {p1} WHERE id = {p2} AND status = {p3}",
                (RegionStatus.PROCESSING.value, region.id, RegionStatus.UNPROCESSED.value),
            )
        logger.info("RB: region claimed (region_id=%s, lat=%s, lon=%s)", region.id, region.lat, region.lon)
        return Region(id=region.id, lat=region.lat, lon=region.lon, status=RegionStatus.PROCESSING)

    def mark_complete(self, region: Region) -> None:
        # a failed region stays failed
        if self.dry_run:
            return
        with self.tracker.transaction() as conn:
            cur = self.tracker.execute(
                conn,
                "UPDATE regions SET status = {p1} WHERE id = {p2} AND status != {p3}",
                (RegionStatus.COMPLETE.value, region.id, RegionStatus.FAILED.value),
            )
            updated = cur.rowcount
        if updated:
            logger.info("RB: region complete (region_id=%s)", region.id)
        else:
            logger.warning("RB: region left failed (region_id=%s)", region.id)

    def mark_failed(self, region: Region) -> None:
        logger.error("RB: marking region failed (region=%s)", region)
        if self.dry_run:
            return
        with self.tracker.transaction() as conn:
            self.tracker.execute(
                conn,
                "UPDATE regions SET status = {p1} WHERE id = {p2}",
                (RegionStatus.FAILED.value, region.id),
            )

    def status_of(self, region_id: int) -> RegionStatus | None:
        with self.tracker.transaction() as conn:
            row = self.tracker.execute(conn, "SELECT status FROM regions WHERE id = {p1}", (region_id,)).fetchone()
        return RegionStatus(row[0]) if row else None
