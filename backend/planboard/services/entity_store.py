"""Entity store: read-only access to entities by kind and id.

Each entity kind is served by an ``EntityAccessor`` registered in an
``EntityStore``. The relation graph resolves relation endpoints through the
store and never writes entities.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.db.base import BaseModel
from planboard.models.project import Block, Project, Section, Subtask, Task
from planboard.types import EntityKind, EntityRef

logger = structlog.get_logger()

# Generic key/value view of an entity row
EntityRecord = dict[str, Any]

ENTITY_MODELS: dict[EntityKind, type[BaseModel]] = {
    EntityKind.PROJECT: Project,
    EntityKind.BLOCK: Block,
    EntityKind.SECTION: Section,
    EntityKind.TASK: Task,
    EntityKind.SUBTASK: Subtask,
}


class EntityAccessor(ABC):
    """Fetches entities of a single kind."""

    @property
    @abstractmethod
    def kind(self) -> EntityKind:
        """The entity kind served by this accessor."""
        pass

    @abstractmethod
    async def fetch(self, entity_id: int) -> EntityRecord | None:
        """Return the entity's current field values, or None if not found."""
        pass

    async def fetch_many(self, entity_ids: Iterable[int]) -> dict[int, EntityRecord]:
        """Fetch several entities; missing ids are absent from the result."""
        records: dict[int, EntityRecord] = {}
        for entity_id in dict.fromkeys(entity_ids):
            record = await self.fetch(entity_id)
            if record is not None:
                records[entity_id] = record
        return records


class ModelAccessor(EntityAccessor):
    """Accessor backed by a SQLAlchemy model."""

    def __init__(self, db: AsyncSession, kind: EntityKind, model: type[BaseModel]):
        self.db = db
        self._kind = kind
        self.model = model

    @property
    def kind(self) -> EntityKind:
        return self._kind

    async def fetch(self, entity_id: int) -> EntityRecord | None:
        result = await self.db.execute(select(self.model).where(self.model.id == entity_id))
        row = result.scalar_one_or_none()
        return row.to_dict() if row is not None else None

    async def fetch_many(self, entity_ids: Iterable[int]) -> dict[int, EntityRecord]:
        ids = list(dict.fromkeys(entity_ids))
        if not ids:
            return {}
        result = await self.db.execute(select(self.model).where(self.model.id.in_(ids)))
        return {row.id: row.to_dict() for row in result.scalars().all()}


class EntityStore:
    """Registry mapping entity kinds to their accessors."""

    def __init__(self, accessors: Iterable[EntityAccessor] = ()):
        self._accessors: dict[EntityKind, EntityAccessor] = {}
        for accessor in accessors:
            self.register(accessor)

    @classmethod
    def default(cls, db: AsyncSession | None) -> "EntityStore":
        """Store with a SQLAlchemy accessor for every entity kind."""
        if db is None:
            return cls()
        return cls(ModelAccessor(db, kind, model) for kind, model in ENTITY_MODELS.items())

    def register(self, accessor: EntityAccessor) -> None:
        self._accessors[accessor.kind] = accessor

    def accessor_for(self, kind: EntityKind | str) -> EntityAccessor | None:
        try:
            return self._accessors.get(EntityKind(kind))
        except ValueError:
            return None

    async def fetch(self, ref: EntityRef) -> EntityRecord | None:
        accessor = self.accessor_for(ref.kind)
        if accessor is None:
            logger.debug("entity_accessor_missing", kind=str(ref.kind))
            return None
        return await accessor.fetch(ref.id)

    async def fetch_many(self, refs: Iterable[EntityRef]) -> dict[EntityRef, EntityRecord]:
        """Resolve references with one batched fetch per kind."""
        by_kind: dict[EntityKind, list[int]] = {}
        for ref in refs:
            by_kind.setdefault(ref.kind, []).append(ref.id)

        resolved: dict[EntityRef, EntityRecord] = {}
        for kind, ids in by_kind.items():
            accessor = self.accessor_for(kind)
            if accessor is None:
                logger.debug("entity_accessor_missing", kind=kind.value)
                continue
            for entity_id, record in (await accessor.fetch_many(ids)).items():
                resolved[EntityRef(kind, entity_id)] = record
        return resolved
