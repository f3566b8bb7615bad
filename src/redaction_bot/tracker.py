"""Shared tracker store (regions + candidates) over SQLite or Postgres."""

from __future__ import annotations

from contextlib import contextmanager
import re
import sqlite3
from pathlib import Path
from typing import Any, Iterable, Iterator, Sequence

import psycopg

ID_CHUNK_SIZE = 500
SQLITE_BUSY_TIMEOUT_SECONDS = 30.0

_PLACEHOLDER_PATTERN = re.compile(r"\{p(\d+)\}")


def is_postgres_dsn(value: str | None) -> bool:
    if not value:
        return False
    return value.startswith("postgres://") or value.startswith("postgresql://")


def sqlite_path(locator: str) -> str:
    text = str(locator or "").strip()
    if text.startswith("sqlite:///"):
        return text[len("sqlite:///") :]
    if text.startswith("sqlite://"):
        return text[len("sqlite://") :]
    return text


def render_sql(sql: str, backend: str) -> str:
    if backend == "sqlite":
        return _PLACEHOLDER_PATTERN.sub("?", sql)
    if backend == "postgres":
        return _PLACEHOLDER_PATTERN.sub("%s", sql)
    raise ValueError(f"unsupported backend: {backend}")


def ordered_params(sql: str, params: Sequence[Any]) -> tuple[Any, ...]:
    if not params:
        return tuple()
    ordered: list[Any] = []
    for token in _PLACEHOLDER_PATTERN.findall(sql):
        idx = int(token) - 1
        if idx < 0 or idx >= len(params):
            raise ValueError(f"placeholder index out of range: p{token}")
        ordered.append(params[idx])
    return tuple(ordered)


def in_list(first_index: int, count: int) -> str:
    return ", ".join(f"{{p{first_index + offset}}}" for offset in range(count))


def chunked(values: Iterable[Any], size: int) -> Iterator[list[Any]]:
    chunk: list[Any] = []
    for value in values:
        chunk.append(value)
        if len(chunk) >= size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


class TrackerStore:
    """Connection and schema owner for the tracker database."""

    def __init__(self, locator: str) -> None:
        self.locator = str(locator or "").strip()
        if not self.locator:
            raise ValueError("tracker locator is required")
        self.backend = "postgres" if is_postgres_dsn(self.locator) else "sqlite"
        if self.backend == "sqlite":
            Path(sqlite_path(self.locator)).parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    @contextmanager
    def transaction(self) -> Iterator[Any]:
        if self.backend == "postgres":
            with psycopg.connect(self.locator) as conn:
                yield conn
            return
        conn = sqlite3.connect(sqlite_path(self.locator), timeout=SQLITE_BUSY_TIMEOUT_SECONDS)
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def exclusive_lock(self, conn: Any) -> None:
        """Take the region-table lock; must be the first statement of the transaction."""
        if self.backend == "postgres":
            conn.execute("LOCK TABLE regions IN ACCESS EXCLUSIVE MODE")
        else:
            conn.execute("BEGIN IMMEDIATE")

    def execute(self, conn: Any, sql: str, params: Sequence[Any] = ()) -> Any:
        return conn.execute(render_sql(sql, self.backend), ordered_params(sql, params))

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS regions (
                    id BIGINT PRIMARY KEY,
                    lat DOUBLE PRECISION NOT NULL,
                    lon DOUBLE PRECISION NOT NULL,
                    status TEXT NOT NULL DEFAULT 'unprocessed'
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS candidates (
                    type TEXT NOT NULL,
                    osm_id BIGINT NOT NULL,
                    lat DOUBLE PRECISION,
                    lon DOUBLE PRECISION,
                    status TEXT NOT NULL DEFAULT 'unprocessed',
                    PRIMARY KEY (type, osm_id)
                )
                """
            )
