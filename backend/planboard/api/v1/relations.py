"""Entity relations API endpoints."""

from datetime import datetime

import structlog
from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from planboard.api.v1.auth import CurrentUser
from planboard.db.session import DBSession
from planboard.exceptions import RelationNotFoundError
from planboard.models.relation import EntityRelation
from planboard.services.relation_graph import RelatedEntity, RelationGraph
from planboard.types import EntityKind, EntityRef, RelationType

router = APIRouter()
logger = structlog.get_logger()


# Request/Response Models
class RelationMetadata(BaseModel):
    """Optional presentation data carried by a relation."""

    label: str | None = None
    color: str | None = None
    notes: str | None = None
    strength: int | None = Field(None, ge=1, le=10)


class RelationCreate(BaseModel):
    """Create a relation between two entities."""

    source_type: EntityKind
    source_id: int
    target_type: EntityKind
    target_id: int
    relation_type: RelationType
    is_bidirectional: bool = True
    metadata: RelationMetadata | None = None


class LinkRequest(BaseModel):
    """Link or unlink two entities."""

    source_type: EntityKind
    source_id: int
    target_type: EntityKind
    target_id: int
    relation_type: RelationType | None = None


class RelationResponse(BaseModel):
    """Relation response model."""

    id: int
    source_type: str
    source_id: int
    target_type: str
    target_id: int
    relation_type: str
    is_bidirectional: bool
    reverse_relation_type: str | None
    metadata: dict | None
    created_by: int
    created_at: datetime | None


class RelationSetResponse(BaseModel):
    outgoing: list[RelationResponse]
    incoming: list[RelationResponse]
    all: list[RelationResponse]


class RelatedEntityResponse(BaseModel):
    relation: RelationResponse
    entity_type: str
    entity_id: int
    direction: str
    entity: dict


def relation_dict(relation: EntityRelation) -> dict:
    """Relation as a response dict; ``extra_data`` is exposed as ``metadata``."""
    return {
        "id": relation.id,
        "source_type": relation.source_type,
        "source_id": relation.source_id,
        "target_type": relation.target_type,
        "target_id": relation.target_id,
        "relation_type": relation.relation_type,
        "is_bidirectional": relation.is_bidirectional,
        "reverse_relation_type": relation.reverse_relation_type,
        "metadata": relation.extra_data,
        "created_by": relation.created_by,
        "created_at": relation.created_at,
    }


def related_dict(related: RelatedEntity) -> dict:
    return {
        "relation": relation_dict(related.relation),
        "entity_type": related.ref.kind.value,
        "entity_id": related.ref.id,
        "direction": related.direction,
        "entity": related.entity,
    }


# Task routes are declared before the generic /{entity_type}/{entity_id} routes
@router.get("/tasks/{task_id}/blocking", response_model=list[RelatedEntityResponse])
async def get_blocking_tasks(task_id: int, current_user: CurrentUser, db: DBSession) -> list[dict]:
    """Tasks blocking this task."""
    related = await RelationGraph(db).get_blocking_tasks(task_id)
    return [related_dict(r) for r in related]


@router.get("/tasks/{task_id}/blocked", response_model=list[RelatedEntityResponse])
async def get_blocked_tasks(task_id: int, current_user: CurrentUser, db: DBSession) -> list[dict]:
    """Tasks blocked by this task."""
    related = await RelationGraph(db).get_blocked_tasks(task_id)
    return [related_dict(r) for r in related]


@router.get("/tasks/{task_id}/dependencies", response_model=list[RelatedEntityResponse])
async def get_task_dependencies(task_id: int, current_user: CurrentUser, db: DBSession) -> list[dict]:
    related = await RelationGraph(db).get_dependencies(task_id)
    return [related_dict(r) for r in related]


@router.get("/tasks/{task_id}/dependents", response_model=list[RelatedEntityResponse])
async def get_task_dependents(task_id: int, current_user: CurrentUser, db: DBSession) -> list[dict]:
    related = await RelationGraph(db).get_dependents(task_id)
    return [related_dict(r) for r in related]


@router.post("/", response_model=RelationResponse, status_code=status.HTTP_201_CREATED)
async def create_relation(
    relation_data: RelationCreate,
    current_user: CurrentUser,
    db: DBSession,
) -> dict:
    """Create a relation between two entities."""
    relation = await RelationGraph(db).create_relation(
        source=EntityRef(relation_data.source_type, relation_data.source_id),
        target=EntityRef(relation_data.target_type, relation_data.target_id),
        relation_type=relation_data.relation_type,
        actor_id=current_user,
        is_bidirectional=relation_data.is_bidirectional,
        metadata=(
            relation_data.metadata.model_dump(exclude_none=True)
            if relation_data.metadata
            else None
        ),
    )
    return relation_dict(relation)


@router.post("/link")
async def link_entities(
    link_data: LinkRequest,
    current_user: CurrentUser,
    db: DBSession,
) -> dict:
    """Link two entities unless an identical relation already exists."""
    graph = RelationGraph(db)
    source = EntityRef(link_data.source_type, link_data.source_id)
    target = EntityRef(link_data.target_type, link_data.target_id)
    relation_type = link_data.relation_type or RelationType.RELATED_TO

    if await graph.relation_exists(source, target, relation_type):
        return {"success": False, "message": "Relation already exists"}

    relation = await graph.create_relation(source, target, relation_type, actor_id=current_user)
    return {"success": True, "relation_id": relation.id}


@router.post("/unlink")
async def unlink_entities(
    link_data: LinkRequest,
    current_user: CurrentUser,
    db: DBSession,
) -> dict:
    """Remove every relation from source to target, optionally of one type."""
    removed = await RelationGraph(db).unlink(
        EntityRef(link_data.source_type, link_data.source_id),
        EntityRef(link_data.target_type, link_data.target_id),
        link_data.relation_type,
    )
    return {"success": db is not None, "removed": removed}


@router.delete("/{relation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_relation(relation_id: int, current_user: CurrentUser, db: DBSession) -> None:
    """Delete a relation."""
    if not await RelationGraph(db).delete_relation(relation_id):
        raise RelationNotFoundError(relation_id)


@router.get("/{entity_type}/{entity_id}", response_model=RelationSetResponse)
async def get_relations(
    entity_type: EntityKind,
    entity_id: int,
    current_user: CurrentUser,
    db: DBSession,
) -> dict:
    """All relations touching an entity."""
    relations = await RelationGraph(db).get_relations(EntityRef(entity_type, entity_id))
    return {
        "outgoing": [relation_dict(r) for r in relations.outgoing],
        "incoming": [relation_dict(r) for r in relations.incoming],
        "all": [relation_dict(r) for r in relations.all],
    }


@router.get("/{entity_type}/{entity_id}/related", response_model=list[RelatedEntityResponse])
async def get_related_entities(
    entity_type: EntityKind,
    entity_id: int,
    current_user: CurrentUser,
    db: DBSession,
    relation_type: RelationType | None = Query(None),
    include_reverse: bool = Query(False),
) -> list[dict]:
    """Entities related to an entity, with their current field values."""
    related = await RelationGraph(db).get_related_entities(
        EntityRef(entity_type, entity_id),
        relation_type,
        include_reverse=include_reverse,
    )
    return [related_dict(r) for r in related]
