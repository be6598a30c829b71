"""Lookup field API endpoints."""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from planboard.api.v1.auth import CurrentUser
from planboard.db.session import DBSession
from planboard.exceptions import FieldNotFoundError
from planboard.models.derived_field import LookupField
from planboard.services.lookup import LookupService
from planboard.types import EntityRef, LookupAggregation, LookupDisplayFormat, OwnerKind, RelationType

router = APIRouter()


# Request/Response Models
class LookupFormatOptions(BaseModel):
    date_format: str | None = None
    number_format: str | None = None
    prefix: str | None = None
    suffix: str | None = None
    max_items: int | None = Field(None, ge=1)
    empty_text: str | None = None


class LookupFieldCreate(BaseModel):
    """Create a lookup field; omit ``entity_id`` for a template."""

    entity_type: OwnerKind
    entity_id: int | None = None
    name: str = Field(..., min_length=1, max_length=100)
    display_name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    relation_type: RelationType
    source_property: str = Field(..., min_length=1, max_length=100)
    display_format: LookupDisplayFormat = LookupDisplayFormat.TEXT
    aggregation: LookupAggregation = LookupAggregation.FIRST
    format_options: LookupFormatOptions | None = None
    sort_order: int = 0


class LookupFieldResponse(BaseModel):
    """Lookup field response model."""

    id: int
    entity_type: str
    entity_id: int | None
    is_template: bool
    name: str
    display_name: str
    description: str | None
    relation_type: str
    source_property: str
    display_format: str
    aggregation: str
    format_options: dict | None
    is_visible: bool
    sort_order: int
    created_by: int
    created_at: datetime | None


def lookup_field_dict(field: LookupField) -> dict:
    return {
        "id": field.id,
        "entity_type": field.entity_type,
        "entity_id": field.entity_id,
        "is_template": field.is_template,
        "name": field.name,
        "display_name": field.display_name,
        "description": field.description,
        "relation_type": field.relation_type,
        "source_property": field.source_property,
        "display_format": field.display_format,
        "aggregation": field.aggregation,
        "format_options": field.format_options,
        "is_visible": field.is_visible,
        "sort_order": field.sort_order,
        "created_by": field.created_by,
        "created_at": field.created_at,
    }


@router.post("/", response_model=LookupFieldResponse, status_code=status.HTTP_201_CREATED)
async def create_lookup_field(
    field_data: LookupFieldCreate,
    current_user: CurrentUser,
    db: DBSession,
) -> dict:
    """Create a lookup field."""
    field = await LookupService(db).create_lookup_field(
        entity_type=field_data.entity_type,
        entity_id=field_data.entity_id,
        name=field_data.name,
        display_name=field_data.display_name,
        description=field_data.description,
        relation_type=field_data.relation_type.value,
        source_property=field_data.source_property,
        display_format=field_data.display_format,
        aggregation=field_data.aggregation,
        format_options=(
            field_data.format_options.model_dump(exclude_none=True)
            if field_data.format_options
            else None
        ),
        sort_order=field_data.sort_order,
        created_by=current_user,
    )
    return lookup_field_dict(field)


@router.get("/", response_model=list[LookupFieldResponse])
async def list_lookup_fields(
    current_user: CurrentUser,
    db: DBSession,
    entity_type: OwnerKind = Query(...),
    entity_id: int | None = Query(None),
) -> list[dict]:
    """Visible lookup fields for an entity kind, or for one entity."""
    fields = await LookupService(db).get_lookup_fields(entity_type, entity_id)
    return [lookup_field_dict(f) for f in fields]


@router.get("/resolve", response_model=LookupFieldResponse | None)
async def resolve_lookup_field(
    current_user: CurrentUser,
    db: DBSession,
    entity_type: OwnerKind = Query(...),
    entity_id: int = Query(...),
    name: str = Query(..., min_length=1),
) -> dict | None:
    """Definition that applies to an entity by name (concrete over template)."""
    field = await LookupService(db).resolve_lookup_field(entity_type, entity_id, name)
    return lookup_field_dict(field) if field else None


@router.get("/{field_id}/value")
async def get_lookup_value(
    field_id: int,
    current_user: CurrentUser,
    db: DBSession,
    entity_type: OwnerKind = Query(...),
    entity_id: int = Query(...),
) -> dict[str, Any]:
    """Calculate a lookup field's value on an entity."""
    service = LookupService(db)
    field = await service.get_lookup_field(field_id)
    if field is None:
        raise FieldNotFoundError("lookup", field_id)

    value = await service.calculate_lookup(field, EntityRef.of(entity_type, entity_id))
    return {"field_id": field_id, "value": value}


@router.delete("/{field_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_lookup_field(field_id: int, current_user: CurrentUser, db: DBSession) -> None:
    if not await LookupService(db).delete_lookup_field(field_id):
        raise FieldNotFoundError("lookup", field_id)
