"""Candidate bookkeeping and the sources that turn an area into a batch."""

from __future__ import annotations

import logging
from typing import Iterable

from .areas import Area
from .errors import AreaSplitRequired, MapRequestError
from .models import CandidateBatch, CandidateStatus, EntityKind
from .osmchange import parse_map_entities
from .remote import RemoteEditService
from .tracker import ID_CHUNK_SIZE, TrackerStore, chunked, in_list

logger = logging.getLogger(__name__)

# map reads answered with these codes are retried on smaller areas
SPLITTABLE_MAP_STATUSES = frozenset({400, 500})


class CandidateStore:
    def __init__(self, tracker: TrackerStore, *, dry_run: bool = False) -> None:
        self.tracker = tracker
        self.dry_run = dry_run

    def list_unprocessed(self, kind: EntityKind, area: Area | None = None, limit: int | None = None) -> set[int]:
        sql = "SELECT osm_id FROM candidates WHERE type = {p1} AND status = {p2}"
        params: list[object] = [kind.value, CandidateStatus.UNPROCESSED.value]
        if area is not None:
            sql += " AND lat >= {p3} AND lat < {p4} AND lon >= {p5} AND lon < {p6}"
            params.extend([area.minlat, area.maxlat, area.minlon, area.maxlon])
        sql += " ORDER BY osm_id"
        if limit is not None:
            sql += f" LIMIT {int(limit)}"
        with self.tracker.transaction() as conn:
            rows = self.tracker.execute(conn, sql, params).fetchall()
        return {int(row[0]) for row in rows}

    def mark_processed(self, kind: EntityKind, ids: Iterable[int]) -> None:
        self._set_status(kind, ids, CandidateStatus.PROCESSED)

    def mark_failed(self, kind: EntityKind, ids: Iterable[int]) -> None:
        self._set_status(kind, ids, CandidateStatus.FAILED)

    def status_of(self, kind: EntityKind, osm_id: int) -> CandidateStatus | None:
        with self.tracker.transaction() as conn:
            row = self.tracker.execute(
                conn,
                "SELECT status FROM candidates WHERE type = {p1} AND osm_id = {p2}",
                (kind.value, osm_id),
            ).fetchone()
        return CandidateStatus(row[0]) if row else None

    def _set_status(self, kind: EntityKind, ids: Iterable[int], status: CandidateStatus) -> None:
        id_list = sorted(int(value) for value in ids)
        if not id_list or self.dry_run:
            return
        with self.tracker.transaction() as conn:
            for chunk in chunked(id_list, ID_CHUNK_SIZE):
                sql = f"UPDATE candidates SET status = {{p1}} WHERE type = {{p2}} AND osm_id IN ({in_list(3, len(chunk))})"
                self.tracker.execute(conn, sql, [status.value, kind.value, *chunk])


class CandidateSource:
    def candidates_for(self, area: Area) -> CandidateBatch:
        raise NotImplementedError


class TrackerCandidateSource(CandidateSource):
    def __init__(self, store: CandidateStore) -> None:
        self.store = store

    def candidates_for(self, area: Area) -> CandidateBatch:
        return CandidateBatch.of(
            nodes=self.store.list_unprocessed(EntityKind.NODE, area),
            ways=self.store.list_unprocessed(EntityKind.WAY, area),
            relations=self.store.list_unprocessed(EntityKind.RELATION, area),
        )


class MapCandidateSource(CandidateSource):
    """Reads live map data for the area and keeps entities that are candidates."""

    def __init__(self, store: CandidateStore, remote: RemoteEditService) -> None:
        self.store = store
        self.remote = remote

    def candidates_for(self, area: Area) -> CandidateBatch:
        try:
            body = self.remote.fetch_map(area)
        except MapRequestError as exc:
            if exc.status_code in SPLITTABLE_MAP_STATUSES:
                logger.debug("RB: map read returned %s, splitting (area=%s)", exc.status_code, area)
                raise AreaSplitRequired(str(area)) from exc
            logger.error("RB: unhandled map response %s\n%s", exc.status_code, exc.body)
            raise
        received = parse_map_entities(body)
        logger.debug(
            "RB: map received %d / %d / %d",
            len(received[EntityKind.NODE]),
            len(received[EntityKind.WAY]),
            len(received[EntityKind.RELATION]),
        )
        selected = {kind: received[kind] & self.store.list_unprocessed(kind) for kind in EntityKind}
        return CandidateBatch.of(
            nodes=selected[EntityKind.NODE],
            ways=selected[EntityKind.WAY],
            relations=selected[EntityKind.RELATION],
        )
