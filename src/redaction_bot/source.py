"""Read-only snapshot of the source dataset held for one run."""

from __future__ import annotations

from contextlib import contextmanager
import logging
import sqlite3
from typing import Any, Iterable, Iterator, Sequence

import psycopg

from .tracker import in_list, is_postgres_dsn, ordered_params, render_sql, sqlite_path

logger = logging.getLogger(__name__)


class SourceSnapshot:
    """One consistent read view of the source database."""

    def __init__(self, connection: Any, backend: str) -> None:
        self.connection = connection
        self.backend = backend

    def execute(self, sql: str, params: Sequence[Any] = ()) -> Any:
        return self.connection.execute(render_sql(sql, self.backend), ordered_params(sql, params))

    def existing_redaction_ids(self, ids: Iterable[int]) -> set[int]:
        wanted = sorted({int(value) for value in ids})
        if not wanted:
            return set()
        rows = self.execute(f"SELECT id FROM redactions WHERE id IN ({in_list(1, len(wanted))})", wanted).fetchall()
        return {int(row[0]) for row in rows}


@contextmanager
def open_source_snapshot(dsn: str) -> Iterator[SourceSnapshot]:
    """Hold a read-only transaction for the duration of the block.

    The transaction is committed on a normal exit and rolled back when the
    block raises; the connection is closed on every path.
    """
    if is_postgres_dsn(dsn):
        conn = psycopg.connect(dsn)
        conn.isolation_level = psycopg.IsolationLevel.REPEATABLE_READ
        conn.read_only = True
        backend = "postgres"
    else:
        conn = sqlite3.connect(sqlite_path(dsn), isolation_level=None)
        conn.execute("BEGIN")
        backend = "sqlite"
    logger.debug("RB: source snapshot opened (backend=%s)", backend)
    try:
        yield SourceSnapshot(conn, backend)
    except BaseException:
        conn.rollback()
        raise
    else:
        conn.commit()
    finally:
        conn.close()
