"""Lookup and rollup field definitions.

A definition with ``entity_id = None`` is a template that applies to every
entity of ``entity_type``; a concrete definition of the same name wins.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from planboard.db.base import BaseModel, JSONType


class LookupField(BaseModel):
    """Surfaces a property of related entities on the owner entity."""

    __tablename__ = "lookup_fields"
    __table_args__ = (
        Index("lf_entity_idx", "entity_type", "entity_id"),
        Index("lf_relation_type_idx", "relation_type"),
    )

    # Owner entity (where the field is displayed)
    entity_type: Mapped[str] = mapped_column(String(20), nullable=False)
    entity_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    relation_type: Mapped[str] = mapped_column(String(50), nullable=False)
    source_property: Mapped[str] = mapped_column(String(100), nullable=False)

    display_format: Mapped[str] = mapped_column(String(20), nullable=False, default="text")
    aggregation: Mapped[str] = mapped_column(String(20), nullable=False, default="first")
    # date_format, number_format, prefix, suffix, max_items, empty_text
    format_options: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    is_visible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_by: Mapped[int] = mapped_column(Integer, nullable=False)

    @property
    def is_template(self) -> bool:
        return self.entity_id is None

    def __repr__(self) -> str:
        return f"<LookupField id={self.id} {self.entity_type}.{self.name}>"


class RollupField(BaseModel):
    """Aggregates a property across related entities, with a cached result."""

    __tablename__ = "rollup_fields"
    __table_args__ = (
        Index("rf_entity_idx", "entity_type", "entity_id"),
    )

    entity_type: Mapped[str] = mapped_column(String(20), nullable=False)
    entity_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    source_relation_type: Mapped[str] = mapped_column(String(50), nullable=False)
    source_property: Mapped[str] = mapped_column(String(100), nullable=False)
    aggregation_function: Mapped[str] = mapped_column(String(30), nullable=False)
    # [{"field": ..., "operator": ..., "value": ...}]
    filter_conditions: Mapped[list | None] = mapped_column(JSONType, nullable=True)

    display_format: Mapped[str] = mapped_column(String(20), nullable=False, default="number")
    decimal_places: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    prefix: Mapped[str | None] = mapped_column(String(20), nullable=True)
    suffix: Mapped[str | None] = mapped_column(String(20), nullable=True)
    progress_bar_max: Mapped[int | None] = mapped_column(Integer, nullable=True)
    progress_bar_color: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # Cache columns, written only by the rollup engine
    cached_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_calculated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cache_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    is_visible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_by: Mapped[int] = mapped_column(Integer, nullable=False)

    @property
    def is_template(self) -> bool:
        return self.entity_id is None

    def __repr__(self) -> str:
        return f"<RollupField id={self.id} {self.entity_type}.{self.name} {self.aggregation_function}>"
