"""Initial schema: project hierarchy, entity relations, lookup and rollup fields.

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Project hierarchy
    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("icon", sa.String(64), nullable=True),
        sa.Column("color", sa.String(32), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="active"),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("target_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("extra_data", postgresql.JSONB, nullable=False, server_default="{}"),
        *_timestamps(),
    )

    op.create_table(
        "blocks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("number", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("duration", sa.String(64), nullable=True),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("extra_data", postgresql.JSONB, nullable=False, server_default="{}"),
        *_timestamps(),
    )

    op.create_table(
        "sections",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("block_id", sa.Integer(), sa.ForeignKey("blocks.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("extra_data", postgresql.JSONB, nullable=False, server_default="{}"),
        *_timestamps(),
    )

    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("section_id", sa.Integer(), sa.ForeignKey("sections.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="not_started"),
        sa.Column("priority", sa.String(20), nullable=True),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("estimated_hours", sa.Numeric(8, 2), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("extra_data", postgresql.JSONB, nullable=False, server_default="{}"),
        *_timestamps(),
    )

    op.create_table(
        "subtasks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("task_id", sa.Integer(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="not_started"),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )

    # Entity relations (polymorphic endpoints, no foreign keys)
    op.create_table(
        "entity_relations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("source_type", sa.String(20), nullable=False),
        sa.Column("source_id", sa.Integer(), nullable=False),
        sa.Column("target_type", sa.String(20), nullable=False),
        sa.Column("target_id", sa.Integer(), nullable=False),
        sa.Column("relation_type", sa.String(50), nullable=False),
        sa.Column("is_bidirectional", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("reverse_relation_type", sa.String(50), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("extra_data", postgresql.JSONB, nullable=True),
        *_timestamps(),
    )
    op.create_index("er_source_idx", "entity_relations", ["source_type", "source_id"])
    op.create_index("er_target_idx", "entity_relations", ["target_type", "target_id"])
    op.create_index("er_relation_type_idx", "entity_relations", ["relation_type"])
    op.create_index("er_created_by_idx", "entity_relations", ["created_by"])

    # Lookup fields
    op.create_table(
        "lookup_fields",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("entity_type", sa.String(20), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("relation_type", sa.String(50), nullable=False),
        sa.Column("source_property", sa.String(100), nullable=False),
        sa.Column("display_format", sa.String(20), nullable=False, server_default="text"),
        sa.Column("aggregation", sa.String(20), nullable=False, server_default="first"),
        sa.Column("format_options", postgresql.JSONB, nullable=True),
        sa.Column("is_visible", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_by", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index("lf_entity_idx", "lookup_fields", ["entity_type", "entity_id"])
    op.create_index("lf_relation_type_idx", "lookup_fields", ["relation_type"])

    # Rollup fields
    op.create_table(
        "rollup_fields",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("entity_type", sa.String(20), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("source_relation_type", sa.String(50), nullable=False),
        sa.Column("source_property", sa.String(100), nullable=False),
        sa.Column("aggregation_function", sa.String(30), nullable=False),
        sa.Column("filter_conditions", postgresql.JSONB, nullable=True),
        sa.Column("display_format", sa.String(20), nullable=False, server_default="number"),
        sa.Column("decimal_places", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("prefix", sa.String(20), nullable=True),
        sa.Column("suffix", sa.String(20), nullable=True),
        sa.Column("progress_bar_max", sa.Integer(), nullable=True),
        sa.Column("progress_bar_color", sa.String(32), nullable=True),
        sa.Column("cached_value", sa.Text(), nullable=True),
        sa.Column("last_calculated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cache_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_visible", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_by", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index("rf_entity_idx", "rollup_fields", ["entity_type", "entity_id"])


def downgrade() -> None:
    op.drop_index("rf_entity_idx", table_name="rollup_fields")
    op.drop_table("rollup_fields")
    op.drop_index("lf_relation_type_idx", table_name="lookup_fields")
    op.drop_index("lf_entity_idx", table_name="lookup_fields")
    op.drop_table("lookup_fields")
    op.drop_index("er_created_by_idx", table_name="entity_relations")
    op.drop_index("er_relation_type_idx", table_name="entity_relations")
    op.drop_index("er_target_idx", table_name="entity_relations")
    op.drop_index("er_source_idx", table_name="entity_relations")
    op.drop_table("entity_relations")
    op.drop_table("subtasks")
    op.drop_table("tasks")
    op.drop_table("sections")
    op.drop_table("blocks")
    op.drop_table("projects")
