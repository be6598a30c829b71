"""Relation graph: typed, optionally bidirectional relations between entities."""

from dataclasses import dataclass, field
from typing import Any, Literal

import structlog
from sqlalchemy import and_, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.db.guards import require_backend, soft_fail
from planboard.models.relation import EntityRelation
from planboard.services.entity_store import EntityRecord, EntityStore
from planboard.types import EntityKind, EntityRef, RelationType

logger = structlog.get_logger()

# Reverse relation mapping; None means the relation is one-way provenance
REVERSE_RELATIONS: dict[RelationType, RelationType | None] = {
    RelationType.PARENT_CHILD: RelationType.PARENT_CHILD,
    RelationType.BLOCKS: RelationType.BLOCKED_BY,
    RelationType.BLOCKED_BY: RelationType.BLOCKS,
    RelationType.RELATED_TO: RelationType.RELATED_TO,
    RelationType.DUPLICATE_OF: RelationType.DUPLICATE_OF,
    RelationType.DEPENDS_ON: RelationType.REQUIRED_BY,
    RelationType.REQUIRED_BY: RelationType.DEPENDS_ON,
    RelationType.SUBTASK_OF: RelationType.PARENT_CHILD,
    RelationType.LINKED: RelationType.LINKED,
    RelationType.CLONED_FROM: None,
    RelationType.MOVED_FROM: None,
}


def reverse_of(relation_type: RelationType | str) -> RelationType | None:
    """Canonical reverse of a relation type."""
    return REVERSE_RELATIONS[RelationType(relation_type)]


@dataclass
class RelationSet:
    """Relations touching an entity.

    Attributes:
        outgoing: Rows where the entity is the source
        incoming: Rows where the entity is the target of a bidirectional edge
    """
    outgoing: list[EntityRelation] = field(default_factory=list)
    incoming: list[EntityRelation] = field(default_factory=list)

    @property
    def all(self) -> list[EntityRelation]:
        return [*self.outgoing, *self.incoming]


@dataclass
class RelatedEntity:
    """A relation paired with the resolved entity on its far side."""
    relation: EntityRelation
    entity: EntityRecord
    ref: EntityRef
    direction: Literal["outgoing", "incoming"] = "outgoing"


class RelationGraph:
    """Service for creating, querying and deleting entity relations."""

    def __init__(self, db: AsyncSession | None, entity_store: EntityStore | None = None):
        self.db = db
        self.entity_store = entity_store if entity_store is not None else EntityStore.default(db)

    # =========================================================================
    # Writes
    # =========================================================================

    @require_backend
    async def create_relation(
        self,
        source: EntityRef,
        target: EntityRef,
        relation_type: RelationType | str,
        actor_id: int,
        is_bidirectional: bool = True,
        metadata: dict[str, Any] | None = None,
    ) -> EntityRelation:
        """Store one source→target row; the reverse type is derived, never stored as a row.

        Types without a reverse (cloned_from, moved_from) are always stored
        one-way, whatever ``is_bidirectional`` says.
        """
        relation_type = RelationType(relation_type)
        reverse = reverse_of(relation_type) if is_bidirectional else None
        is_bidirectional = reverse is not None

        relation = EntityRelation(
            source_type=source.kind.value,
            source_id=source.id,
            target_type=target.kind.value,
            target_id=target.id,
            relation_type=relation_type.value,
            is_bidirectional=is_bidirectional,
            reverse_relation_type=reverse.value if reverse else None,
            created_by=actor_id,
            extra_data=metadata or None,
        )
        self.db.add(relation)
        await self.db.commit()
        await self.db.refresh(relation)

        logger.info(
            "relation_created",
            relation_id=relation.id,
            source=str(source),
            target=str(target),
            relation_type=relation_type.value,
            is_bidirectional=is_bidirectional,
        )
        return relation

    @soft_fail(default=lambda: False)
    async def delete_relation(self, relation_id: int) -> bool:
        result = await self.db.execute(
            delete(EntityRelation).where(EntityRelation.id == relation_id)
        )
        await self.db.commit()

        deleted = result.rowcount > 0
        if deleted:
            logger.info("relation_deleted", relation_id=relation_id)
        return deleted

    @soft_fail(default=lambda: 0)
    async def unlink(
        self,
        source: EntityRef,
        target: EntityRef,
        relation_type: RelationType | str | None = None,
    ) -> int:
        """Delete every source→target relation (of one type, if given)."""
        result = await self.db.execute(
            delete(EntityRelation).where(self._pair_clause(source, target, relation_type))
        )
        await self.db.commit()

        count = result.rowcount
        if count > 0:
            logger.info(
                "relations_unlinked",
                source=str(source),
                target=str(target),
                relation_type=RelationType(relation_type).value if relation_type else None,
                count=count,
            )
        return count

    # =========================================================================
    # Reads
    # =========================================================================

    @soft_fail(default=lambda: None)
    async def get_relation(self, relation_id: int) -> EntityRelation | None:
        result = await self.db.execute(
            select(EntityRelation).where(EntityRelation.id == relation_id)
        )
        return result.scalar_one_or_none()

    @soft_fail(default=RelationSet)
    async def get_relations(self, ref: EntityRef) -> RelationSet:
        """Outgoing rows, plus incoming rows of bidirectional edges.

        Unidirectional edges (cloned_from, moved_from) are invisible from the
        target side.
        """
        outgoing = await self.db.execute(
            select(EntityRelation)
            .where(
                and_(
                    EntityRelation.source_type == ref.kind.value,
                    EntityRelation.source_id == ref.id,
                )
            )
            .order_by(EntityRelation.id)
        )
        incoming = await self.db.execute(
            select(EntityRelation)
            .where(
                and_(
                    EntityRelation.target_type == ref.kind.value,
                    EntityRelation.target_id == ref.id,
                    EntityRelation.is_bidirectional.is_(True),
                )
            )
            .order_by(EntityRelation.id)
        )
        return RelationSet(
            outgoing=list(outgoing.scalars().all()),
            incoming=list(incoming.scalars().all()),
        )

    @soft_fail(default=list)
    async def get_related_entities(
        self,
        ref: EntityRef,
        relation_type: RelationType | str | None = None,
        include_reverse: bool = False,
    ) -> list[RelatedEntity]:
        """Resolve the entities on the far side of ``ref``'s relations.

        Walks outgoing edges, filtered by ``relation_type`` when given. With
        ``include_reverse``, incoming bidirectional edges whose reverse type
        matches are walked too, so ``A blocks B`` reaches A from B as
        ``blocked_by``. Edges whose entity no longer resolves are dropped.
        """
        relation_type = RelationType(relation_type) if relation_type else None

        query = select(EntityRelation).where(
            and_(
                EntityRelation.source_type == ref.kind.value,
                EntityRelation.source_id == ref.id,
            )
        )
        if relation_type:
            query = query.where(EntityRelation.relation_type == relation_type.value)
        result = await self.db.execute(query.order_by(EntityRelation.id))
        edges: list[tuple[EntityRelation, EntityRef, str]] = [
            (relation, relation.target, "outgoing") for relation in result.scalars().all()
        ]

        if include_reverse:
            query = select(EntityRelation).where(
                and_(
                    EntityRelation.target_type == ref.kind.value,
                    EntityRelation.target_id == ref.id,
                    EntityRelation.is_bidirectional.is_(True),
                )
            )
            if relation_type:
                query = query.where(EntityRelation.reverse_relation_type == relation_type.value)
            result = await self.db.execute(query.order_by(EntityRelation.id))
            edges.extend(
                (relation, relation.source, "incoming") for relation in result.scalars().all()
            )

        if not edges:
            return []

        records = await self.entity_store.fetch_many(far for _, far, _ in edges)

        related = [
            RelatedEntity(relation=relation, entity=records[far], ref=far, direction=direction)
            for relation, far, direction in edges
            if far in records
        ]
        if len(related) < len(edges):
            logger.debug(
                "dangling_relations_skipped",
                entity=str(ref),
                skipped=len(edges) - len(related),
            )
        return related

    @soft_fail(default=lambda: False)
    async def relation_exists(
        self,
        source: EntityRef,
        target: EntityRef,
        relation_type: RelationType | str | None = None,
    ) -> bool:
        result = await self.db.execute(
            select(EntityRelation.id)
            .where(self._pair_clause(source, target, relation_type))
            .limit(1)
        )
        return result.first() is not None

    # =========================================================================
    # Task conveniences
    # =========================================================================

    async def get_blocking_tasks(self, task_id: int) -> list[RelatedEntity]:
        """Tasks blocking this task."""
        return await self.get_related_entities(
            EntityRef(EntityKind.TASK, task_id), RelationType.BLOCKED_BY
        )

    async def get_blocked_tasks(self, task_id: int) -> list[RelatedEntity]:
        """Tasks this task blocks."""
        return await self.get_related_entities(
            EntityRef(EntityKind.TASK, task_id), RelationType.BLOCKS
        )

    async def get_dependencies(self, task_id: int) -> list[RelatedEntity]:
        return await self.get_related_entities(
            EntityRef(EntityKind.TASK, task_id), RelationType.DEPENDS_ON
        )

    async def get_dependents(self, task_id: int) -> list[RelatedEntity]:
        return await self.get_related_entities(
            EntityRef(EntityKind.TASK, task_id), RelationType.REQUIRED_BY
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _pair_clause(
        source: EntityRef,
        target: EntityRef,
        relation_type: RelationType | str | None,
    ):
        conditions = [
            EntityRelation.source_type == source.kind.value,
            EntityRelation.source_id == source.id,
            EntityRelation.target_type == target.kind.value,
            EntityRelation.target_id == target.id,
        ]
        if relation_type:
            conditions.append(EntityRelation.relation_type == RelationType(relation_type).value)
        return and_(*conditions)
