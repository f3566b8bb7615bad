"""Entity, region and edit models shared across the bot."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping


class EntityKind(str, Enum):
    NODE = "node"
    WAY = "way"
    RELATION = "relation"


class RegionStatus(str, Enum):
    UNPROCESSED = "unprocessed"
    PROCESSING = "processing"
    COMPLETE = "complete"
    FAILED = "failed"


class CandidateStatus(str, Enum):
    UNPROCESSED = "unprocessed"
    PROCESSED = "processed"
    FAILED = "failed"


class RedactionMode(str, Enum):
    HIDDEN = "hidden"
    VISIBLE = "visible"


class EditAction(str, Enum):
    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"


@dataclass(frozen=True)
class Region:
    id: int
    lat: float
    lon: float
    status: RegionStatus = RegionStatus.UNPROCESSED


@dataclass(frozen=True)
class EntityRef:
    kind: EntityKind
    id: int
    version: int | None = None


@dataclass(frozen=True)
class RelationMember:
    kind: EntityKind
    ref: int
    role: str = ""


@dataclass(frozen=True)
class EntityElement:
    ref: EntityRef
    tags: Mapping[str, str] = field(default_factory=dict)
    lat: float | None = None
    lon: float | None = None
    nodes: tuple[int, ...] = ()
    members: tuple[RelationMember, ...] = ()


@dataclass(frozen=True)
class EditOperation:
    action: EditAction
    element: EntityElement


@dataclass(frozen=True)
class Redaction:
    """Hide (or mark visible) one historical version of an entity."""

    entity: EntityRef
    mode: RedactionMode


@dataclass(frozen=True)
class CandidateBatch:
    nodes: frozenset[int] = frozenset()
    ways: frozenset[int] = frozenset()
    relations: frozenset[int] = frozenset()

    @classmethod
    def of(cls, nodes=(), ways=(), relations=()) -> "CandidateBatch":
        return cls(nodes=frozenset(nodes), ways=frozenset(ways), relations=frozenset(relations))

    def ids_for(self, kind: EntityKind) -> frozenset[int]:
        if kind == EntityKind.NODE:
            return self.nodes
        if kind == EntityKind.WAY:
            return self.ways
        return self.relations

    @property
    def total(self) -> int:
        return len(self.nodes) + len(self.ways) + len(self.relations)

    def is_empty(self) -> bool:
        return self.total == 0

    def describe(self) -> str:
        return f"{len(self.nodes)} / {len(self.ways)} / {len(self.relations)}"
