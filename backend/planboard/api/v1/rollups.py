"""Rollup field API endpoints."""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from planboard.api.v1.auth import CurrentUser
from planboard.db.session import DBSession
from planboard.exceptions import FieldNotFoundError
from planboard.models.derived_field import RollupField
from planboard.services.rollup import RollupService
from planboard.types import (
    AggregationFunction,
    EntityRef,
    OwnerKind,
    RelationType,
    RollupDisplayFormat,
)

router = APIRouter()


# Request/Response Models
class FilterConditionIn(BaseModel):
    field: str = Field(..., min_length=1)
    operator: str = Field(..., min_length=1)
    value: str | int | float | bool | None = None


class RollupFieldCreate(BaseModel):
    """Create a rollup field; omit ``entity_id`` for a template."""

    entity_type: OwnerKind
    entity_id: int | None = None
    name: str = Field(..., min_length=1, max_length=100)
    display_name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    source_relation_type: RelationType
    source_property: str = Field(..., min_length=1, max_length=100)
    aggregation_function: AggregationFunction
    filter_conditions: list[FilterConditionIn] = Field(default_factory=list)
    display_format: RollupDisplayFormat = RollupDisplayFormat.NUMBER
    decimal_places: int = Field(0, ge=0, le=10)
    prefix: str | None = Field(None, max_length=20)
    suffix: str | None = Field(None, max_length=20)
    progress_bar_max: int | None = Field(None, gt=0)
    progress_bar_color: str | None = None
    sort_order: int = 0


class RollupFieldResponse(BaseModel):
    """Rollup field response model."""

    id: int
    entity_type: str
    entity_id: int | None
    is_template: bool
    name: str
    display_name: str
    description: str | None
    source_relation_type: str
    source_property: str
    aggregation_function: str
    filter_conditions: list | None
    display_format: str
    decimal_places: int
    prefix: str | None
    suffix: str | None
    progress_bar_max: int | None
    progress_bar_color: str | None
    last_calculated_at: datetime | None
    is_visible: bool
    sort_order: int
    created_by: int
    created_at: datetime | None


class RollupValueResponse(BaseModel):
    field_id: int
    value: Any
    formatted: str


def rollup_field_dict(field: RollupField) -> dict:
    return {
        "id": field.id,
        "entity_type": field.entity_type,
        "entity_id": field.entity_id,
        "is_template": field.is_template,
        "name": field.name,
        "display_name": field.display_name,
        "description": field.description,
        "source_relation_type": field.source_relation_type,
        "source_property": field.source_property,
        "aggregation_function": field.aggregation_function,
        "filter_conditions": field.filter_conditions,
        "display_format": field.display_format,
        "decimal_places": field.decimal_places,
        "prefix": field.prefix,
        "suffix": field.suffix,
        "progress_bar_max": field.progress_bar_max,
        "progress_bar_color": field.progress_bar_color,
        "last_calculated_at": field.last_calculated_at,
        "is_visible": field.is_visible,
        "sort_order": field.sort_order,
        "created_by": field.created_by,
        "created_at": field.created_at,
    }


@router.post("/", response_model=RollupFieldResponse, status_code=status.HTTP_201_CREATED)
async def create_rollup_field(
    field_data: RollupFieldCreate,
    current_user: CurrentUser,
    db: DBSession,
) -> dict:
    """Create a rollup field."""
    field = await RollupService(db).create_rollup_field(
        entity_type=field_data.entity_type,
        entity_id=field_data.entity_id,
        name=field_data.name,
        display_name=field_data.display_name,
        description=field_data.description,
        source_relation_type=field_data.source_relation_type.value,
        source_property=field_data.source_property,
        aggregation_function=field_data.aggregation_function,
        filter_conditions=[c.model_dump() for c in field_data.filter_conditions],
        display_format=field_data.display_format,
        decimal_places=field_data.decimal_places,
        prefix=field_data.prefix,
        suffix=field_data.suffix,
        progress_bar_max=field_data.progress_bar_max,
        progress_bar_color=field_data.progress_bar_color,
        sort_order=field_data.sort_order,
        created_by=current_user,
    )
    return rollup_field_dict(field)


@router.get("/", response_model=list[RollupFieldResponse])
async def list_rollup_fields(
    current_user: CurrentUser,
    db: DBSession,
    entity_type: OwnerKind = Query(...),
    entity_id: int | None = Query(None),
) -> list[dict]:
    """Visible rollup fields for an entity kind, or for one entity."""
    fields = await RollupService(db).get_rollup_fields(entity_type, entity_id)
    return [rollup_field_dict(f) for f in fields]


@router.get("/resolve", response_model=RollupFieldResponse | None)
async def resolve_rollup_field(
    current_user: CurrentUser,
    db: DBSession,
    entity_type: OwnerKind = Query(...),
    entity_id: int = Query(...),
    name: str = Query(..., min_length=1),
) -> dict | None:
    field = await RollupService(db).resolve_rollup_field(entity_type, entity_id, name)
    return rollup_field_dict(field) if field else None


@router.get("/{field_id}/value", response_model=RollupValueResponse)
async def get_rollup_value(
    field_id: int,
    current_user: CurrentUser,
    db: DBSession,
    entity_type: OwnerKind = Query(...),
    entity_id: int = Query(...),
    refresh: bool = Query(False, description="Skip the cache and recompute"),
) -> dict:
    """Rollup value on an entity, served from cache while fresh."""
    result = await RollupService(db).get_or_calculate_rollup(
        field_id, EntityRef.of(entity_type, entity_id), refresh=refresh
    )
    if result is None:
        raise FieldNotFoundError("rollup", field_id)
    return {"field_id": field_id, **result.to_dict()}


@router.get("/{field_id}/cached", response_model=RollupValueResponse | None)
async def get_cached_rollup_value(
    field_id: int,
    current_user: CurrentUser,
    db: DBSession,
    entity_type: OwnerKind | None = Query(None),
    entity_id: int | None = Query(None),
) -> dict | None:
    """Cached rollup value, or null when absent or expired."""
    anchor = EntityRef.of(entity_type, entity_id) if entity_type and entity_id is not None else None
    cached = await RollupService(db).get_cached_value(field_id, anchor)
    return {"field_id": field_id, **cached.to_dict()} if cached else None


@router.delete("/{field_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_rollup_field(field_id: int, current_user: CurrentUser, db: DBSession) -> None:
    if not await RollupService(db).delete_rollup_field(field_id):
        raise FieldNotFoundError("rollup", field_id)
