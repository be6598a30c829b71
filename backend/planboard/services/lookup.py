"""Lookup field service: definitions and calculation.

A lookup surfaces a property of the entities related to an anchor entity.
Lookups are not cached; they are computed fresh on every call.
"""

from collections.abc import Sequence
from datetime import date, datetime
from typing import Any

import structlog
from sqlalchemy import and_, delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.config import get_settings
from planboard.db.guards import require_backend, soft_fail
from planboard.models.derived_field import LookupField
from planboard.services.properties import (
    as_integral,
    format_date,
    format_datetime,
    format_grouped,
    get_property_value,
    stringify,
    to_fixed,
    to_number,
)
from planboard.services.relation_graph import RelationGraph
from planboard.types import EntityRef, LookupAggregation, LookupDisplayFormat, OwnerKind

logger = structlog.get_logger()


def shadow_templates(fields: Sequence[Any], entity_id: int | None) -> list[Any]:
    """Drop templates that a concrete definition of the same name overrides."""
    if entity_id is None:
        return list(fields)
    concrete_names = {f.name for f in fields if f.entity_id == entity_id}
    return [f for f in fields if f.entity_id is not None or f.name not in concrete_names]


def format_number(number: float, number_format: str | None = None) -> str:
    """Apply a ``format()`` spec such as ``",.2f"``; grouped default otherwise."""
    if number_format:
        try:
            return format(number, number_format)
        except ValueError:
            logger.debug("lookup_number_format_invalid", number_format=number_format)
    return format_grouped(number)


class LookupService:
    """Service for lookup field definitions and their values."""

    def __init__(self, db: AsyncSession | None, graph: RelationGraph | None = None):
        self.db = db
        self.graph = graph if graph is not None else RelationGraph(db)
        self.settings = get_settings()

    # =========================================================================
    # Field Definition CRUD
    # =========================================================================

    @require_backend
    async def create_lookup_field(
        self,
        entity_type: OwnerKind | str,
        name: str,
        display_name: str,
        relation_type: str,
        source_property: str,
        created_by: int,
        entity_id: int | None = None,
        description: str | None = None,
        display_format: LookupDisplayFormat | str = LookupDisplayFormat.TEXT,
        aggregation: LookupAggregation | str = LookupAggregation.FIRST,
        format_options: dict[str, Any] | None = None,
        sort_order: int = 0,
    ) -> LookupField:
        field = LookupField(
            entity_type=OwnerKind(entity_type).value,
            entity_id=entity_id,
            name=name,
            display_name=display_name,
            description=description,
            relation_type=relation_type,
            source_property=source_property,
            display_format=LookupDisplayFormat(display_format).value,
            aggregation=LookupAggregation(aggregation).value,
            format_options=format_options or None,
            sort_order=sort_order,
            created_by=created_by,
        )
        self.db.add(field)
        await self.db.commit()
        await self.db.refresh(field)

        logger.info(
            "lookup_field_created",
            field_id=field.id,
            entity_type=field.entity_type,
            entity_id=entity_id,
            relation_type=relation_type,
        )
        return field

    @soft_fail(default=lambda: None)
    async def get_lookup_field(self, field_id: int) -> LookupField | None:
        result = await self.db.execute(select(LookupField).where(LookupField.id == field_id))
        return result.scalar_one_or_none()

    @soft_fail(default=list)
    async def get_lookup_fields(
        self,
        entity_type: OwnerKind | str,
        entity_id: int | None = None,
    ) -> list[LookupField]:
        """Visible fields for an entity kind.

        With ``entity_id``, returns the entity's concrete fields plus the
        templates they do not override.
        """
        query = select(LookupField).where(
            and_(
                LookupField.entity_type == OwnerKind(entity_type).value,
                LookupField.is_visible.is_(True),
            )
        )
        if entity_id is not None:
            query = query.where(
                or_(LookupField.entity_id.is_(None), LookupField.entity_id == entity_id)
            )
        result = await self.db.execute(query.order_by(LookupField.sort_order, LookupField.id))
        return shadow_templates(result.scalars().all(), entity_id)

    @soft_fail(default=lambda: None)
    async def resolve_lookup_field(
        self,
        entity_type: OwnerKind | str,
        entity_id: int,
        name: str,
    ) -> LookupField | None:
        """Concrete definition for the entity if present, else the template."""
        result = await self.db.execute(
            select(LookupField).where(
                and_(
                    LookupField.entity_type == OwnerKind(entity_type).value,
                    LookupField.name == name,
                    or_(LookupField.entity_id == entity_id, LookupField.entity_id.is_(None)),
                )
            )
            .order_by(LookupField.id)
        )
        candidates = result.scalars().all()
        concrete = [f for f in candidates if f.entity_id == entity_id]
        templates = [f for f in candidates if f.entity_id is None]
        if concrete:
            return concrete[0]
        return templates[0] if templates else None

    @soft_fail(default=lambda: False)
    async def delete_lookup_field(self, field_id: int) -> bool:
        result = await self.db.execute(delete(LookupField).where(LookupField.id == field_id))
        await self.db.commit()

        deleted = result.rowcount > 0
        if deleted:
            logger.info("lookup_field_deleted", field_id=field_id)
        return deleted

    # =========================================================================
    # Calculation
    # =========================================================================

    async def calculate_lookup_by_id(self, field_id: int, anchor: EntityRef) -> Any:
        """Load a definition and calculate it; None when it does not exist."""
        field = await self.get_lookup_field(field_id)
        if field is None:
            return None
        return await self.calculate_lookup(field, anchor)

    async def calculate_lookup(self, field: LookupField, anchor: EntityRef) -> Any:
        """Value of ``field`` on ``anchor``."""
        options = field.format_options or {}
        empty_text = options.get("empty_text") or None

        related = await self.graph.get_related_entities(anchor, field.relation_type)
        if not related:
            return empty_text

        values = [
            value
            for value in (get_property_value(r.entity, field.source_property) for r in related)
            if value is not None
        ]
        if not values:
            return empty_text

        result = self._apply_aggregation(values, field)
        logger.debug(
            "lookup_calculated",
            field_id=field.id,
            entity=str(anchor),
            related=len(related),
            values=len(values),
        )
        return result

    def _apply_aggregation(self, values: list[Any], field: LookupField) -> Any:
        options = field.format_options or {}
        try:
            aggregation = LookupAggregation(field.aggregation or LookupAggregation.FIRST)
        except ValueError:
            aggregation = LookupAggregation.FIRST

        if aggregation == LookupAggregation.LAST:
            return self.format_value(values[-1], field)

        if aggregation == LookupAggregation.ALL:
            return [self.format_value(v, field) for v in values]

        if aggregation == LookupAggregation.COUNT:
            return len(values)

        if aggregation == LookupAggregation.COMMA_LIST:
            max_items = options.get("max_items") or self.settings.lookup_default_max_items
            items = [stringify(self.format_value(v, field)) for v in values[:max_items]]
            remainder = len(values) - max_items
            more = f" +{remainder} more" if remainder > 0 else ""
            return ", ".join(items) + more

        if aggregation == LookupAggregation.UNIQUE:
            unique: dict[str, Any] = {}
            for value in values:
                unique.setdefault(stringify(value), value)
            return [self.format_value(v, field) for v in unique.values()]

        return self.format_value(values[0], field)

    @staticmethod
    def format_value(value: Any, field: LookupField) -> Any:
        """Render one value for the field's display format.

        ``progress_bar``, ``badge`` and ``link`` produce ``{"value", "type"}``
        structures for the presentation layer.
        """
        options = field.format_options or {}
        if value is None:
            return options.get("empty_text") or None

        try:
            display_format = LookupDisplayFormat(field.display_format or LookupDisplayFormat.TEXT)
        except ValueError:
            display_format = LookupDisplayFormat.TEXT

        if display_format in (LookupDisplayFormat.DATE, LookupDisplayFormat.DATETIME):
            if not isinstance(value, date):
                return value
            if options.get("date_format"):
                return value.strftime(options["date_format"])
            if display_format == LookupDisplayFormat.DATETIME and isinstance(value, datetime):
                return format_datetime(value)
            return format_date(value)

        if display_format == LookupDisplayFormat.NUMBER:
            number = to_number(value)
            if number is None:
                return value
            number_text = format_number(number, options.get("number_format"))
            return f"{options.get('prefix') or ''}{number_text}{options.get('suffix') or ''}"

        if display_format == LookupDisplayFormat.CURRENCY:
            number = to_number(value)
            if number is None:
                return value
            return f"{options.get('prefix') or '$'}{to_fixed(number, 2)}"

        if display_format == LookupDisplayFormat.PERCENTAGE:
            number = to_number(value)
            if number is None:
                return value
            return f"{to_fixed(number, 1)}%"

        if display_format == LookupDisplayFormat.PROGRESS_BAR:
            number = to_number(value)
            if number is None:
                return value
            return {"value": as_integral(number), "type": "progress_bar"}

        if display_format in (LookupDisplayFormat.BADGE, LookupDisplayFormat.LINK):
            return {"value": value, "type": display_format.value}

        return stringify(value)
