"""Rollup field service: definitions, calculation and the result cache."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import orjson
import structlog
from sqlalchemy import and_, delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from planboard.config import get_settings
from planboard.db.guards import require_backend, soft_fail
from planboard.models.derived_field import RollupField
from planboard.services.lookup import shadow_templates
from planboard.services.properties import get_property_value, to_jsonable
from planboard.services.relation_graph import RelationGraph
from planboard.services.rollup_functions import (
    FilterCondition,
    aggregate,
    format_rollup_value,
    matches_all,
)
from planboard.types import AggregationFunction, EntityRef, OwnerKind, RollupDisplayFormat

logger = structlog.get_logger()


@dataclass
class RollupResult:
    """A rollup's aggregate and its display string.

    Attributes:
        value: JSON-compatible aggregate (dates as ISO-8601 strings)
        formatted: Display string for the field's display format
    """
    value: Any
    formatted: str

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "formatted": self.formatted}


def _as_utc(moment: datetime) -> datetime:
    # SQLite drops tzinfo on round-trip
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=timezone.utc)


class RollupService:
    """Service for rollup field definitions and their values."""

    def __init__(self, db: AsyncSession | None, graph: RelationGraph | None = None):
        self.db = db
        self.graph = graph if graph is not None else RelationGraph(db)
        self.settings = get_settings()

    # =========================================================================
    # Field Definition CRUD
    # =========================================================================

    @require_backend
    async def create_rollup_field(
        self,
        entity_type: OwnerKind | str,
        name: str,
        display_name: str,
        source_relation_type: str,
        source_property: str,
        aggregation_function: AggregationFunction | str,
        created_by: int,
        entity_id: int | None = None,
        description: str | None = None,
        filter_conditions: list[dict[str, Any]] | None = None,
        display_format: RollupDisplayFormat | str = RollupDisplayFormat.NUMBER,
        decimal_places: int = 0,
        prefix: str | None = None,
        suffix: str | None = None,
        progress_bar_max: int | None = None,
        progress_bar_color: str | None = None,
        sort_order: int = 0,
    ) -> RollupField:
        field = RollupField(
            entity_type=OwnerKind(entity_type).value,
            entity_id=entity_id,
            name=name,
            display_name=display_name,
            description=description,
            source_relation_type=source_relation_type,
            source_property=source_property,
            aggregation_function=AggregationFunction(aggregation_function).value,
            filter_conditions=filter_conditions or None,
            display_format=RollupDisplayFormat(display_format).value,
            decimal_places=decimal_places,
            prefix=prefix,
            suffix=suffix,
            progress_bar_max=progress_bar_max,
            progress_bar_color=progress_bar_color,
            sort_order=sort_order,
            created_by=created_by,
        )
        self.db.add(field)
        await self.db.commit()
        await self.db.refresh(field)

        logger.info(
            "rollup_field_created",
            field_id=field.id,
            entity_type=field.entity_type,
            entity_id=entity_id,
            aggregation_function=field.aggregation_function,
        )
        return field

    @soft_fail(default=lambda: None)
    async def get_rollup_field(self, field_id: int) -> RollupField | None:
        result = await self.db.execute(select(RollupField).where(RollupField.id == field_id))
        return result.scalar_one_or_none()

    @soft_fail(default=list)
    async def get_rollup_fields(
        self,
        entity_type: OwnerKind | str,
        entity_id: int | None = None,
    ) -> list[RollupField]:
        query = select(RollupField).where(
            and_(
                RollupField.entity_type == OwnerKind(entity_type).value,
                RollupField.is_visible.is_(True),
            )
        )
        if entity_id is not None:
            query = query.where(
                or_(RollupField.entity_id.is_(None), RollupField.entity_id == entity_id)
            )
        result = await self.db.execute(query.order_by(RollupField.sort_order, RollupField.id))
        return shadow_templates(result.scalars().all(), entity_id)

    @soft_fail(default=lambda: None)
    async def resolve_rollup_field(
        self,
        entity_type: OwnerKind | str,
        entity_id: int,
        name: str,
    ) -> RollupField | None:
        result = await self.db.execute(
            select(RollupField)
            .where(
                and_(
                    RollupField.entity_type == OwnerKind(entity_type).value,
                    RollupField.name == name,
                    or_(RollupField.entity_id == entity_id, RollupField.entity_id.is_(None)),
                )
            )
            .order_by(RollupField.id)
        )
        candidates = result.scalars().all()
        for candidate in candidates:
            if candidate.entity_id == entity_id:
                return candidate
        return candidates[0] if candidates else None

    @soft_fail(default=lambda: False)
    async def delete_rollup_field(self, field_id: int) -> bool:
        result = await self.db.execute(delete(RollupField).where(RollupField.id == field_id))
        await self.db.commit()

        deleted = result.rowcount > 0
        if deleted:
            logger.info("rollup_field_deleted", field_id=field_id)
        return deleted

    # =========================================================================
    # Calculation
    # =========================================================================

    async def calculate_rollup(self, field: RollupField, anchor: EntityRef) -> RollupResult:
        """Aggregate ``field`` over ``anchor``'s related entities and cache it."""
        related = await self.graph.get_related_entities(anchor, field.source_relation_type)
        records = [r.entity for r in related]

        conditions = [FilterCondition.from_dict(c) for c in field.filter_conditions or []]
        if conditions:
            records = [record for record in records if matches_all(record, conditions)]
            values = [get_property_value(record, field.source_property) for record in records]
        else:
            values = [
                value
                for value in (get_property_value(record, field.source_property) for record in records)
                if value is not None
            ]

        value = aggregate(
            field.aggregation_function,
            values,
            total=len(records),
            decimal_places=field.decimal_places or 0,
        )
        formatted = format_rollup_value(
            value,
            display_format=field.display_format,
            decimal_places=field.decimal_places or 0,
            prefix=field.prefix,
            suffix=field.suffix,
            progress_bar_max=field.progress_bar_max,
        )
        result = RollupResult(value=to_jsonable(value), formatted=formatted)

        logger.debug(
            "rollup_calculated",
            field_id=field.id,
            entity=str(anchor),
            function=field.aggregation_function,
            related=len(related),
            matched=len(records),
        )

        await self._store_cache(field, anchor, result)
        return result

    async def calculate_rollup_by_id(
        self, field_id: int, anchor: EntityRef
    ) -> RollupResult | None:
        field = await self.get_rollup_field(field_id)
        if field is None:
            return None
        return await self.calculate_rollup(field, anchor)

    @soft_fail(default=lambda: None)
    async def get_cached_value(
        self, field_id: int, anchor: EntityRef | None = None
    ) -> RollupResult | None:
        """Cached result if it has not expired.

        With ``anchor``, entries computed for another entity (a template shared
        across entities) are treated as a miss.
        """
        result = await self.db.execute(
            select(RollupField.cached_value, RollupField.cache_expires_at).where(
                RollupField.id == field_id
            )
        )
        row = result.first()
        if row is None or row.cached_value is None or row.cache_expires_at is None:
            return None
        if _as_utc(row.cache_expires_at) <= datetime.now(timezone.utc):
            return None

        cached = orjson.loads(row.cached_value)
        if anchor is not None and (
            cached.get("entity_type") != anchor.kind.value or cached.get("entity_id") != anchor.id
        ):
            return None
        return RollupResult(value=cached.get("value"), formatted=cached.get("formatted", ""))

    async def get_or_calculate_rollup(
        self,
        field_id: int,
        anchor: EntityRef,
        refresh: bool = False,
    ) -> RollupResult | None:
        """Serve a fresh cache entry for ``anchor``, otherwise recompute.

        Concurrent misses may both recompute; the result is the same either way.
        """
        if not refresh:
            cached = await self.get_cached_value(field_id, anchor)
            if cached is not None:
                logger.debug("rollup_cache_hit", field_id=field_id, entity=str(anchor))
                return cached
        return await self.calculate_rollup_by_id(field_id, anchor)

    @soft_fail(default=lambda: None)
    async def _store_cache(self, field: RollupField, anchor: EntityRef, result: RollupResult) -> None:
        now = datetime.now(timezone.utc)
        field.cached_value = orjson.dumps({
            **result.to_dict(),
            "entity_type": anchor.kind.value,
            "entity_id": anchor.id,
        }).decode()
        field.last_calculated_at = now
        field.cache_expires_at = now + timedelta(seconds=self.settings.rollup_cache_ttl_seconds)
        await self.db.commit()
