"""
Tests for lookup fields: definition store and calculation.
"""

from __future__ import annotations

import pytest
import pytest_asyncio

from planboard.models import Task
from planboard.services.lookup import LookupService
from planboard.types import EntityKind, EntityRef

from tests.conftest import TEST_ACTOR_ID


@pytest_asyncio.fixture
async def service(db):
    return LookupService(db)


@pytest_asyncio.fixture
async def make_field(service, project_with_tasks):
    """Create a project lookup over its parent_child tasks."""

    async def _make(source_property: str, **kwargs):
        kwargs.setdefault("relation_type", "parent_child")
        return await service.create_lookup_field(
            entity_type="project",
            entity_id=project_with_tasks.project,
            name=kwargs.pop("name", source_property.replace(".", "_")),
            display_name=kwargs.pop("display_name", source_property),
            source_property=source_property,
            created_by=TEST_ACTOR_ID,
            **kwargs,
        )

    return _make


async def calc(service, field, seed):
    return await service.calculate_lookup(field, seed.project_ref)


# ── aggregation ─────────────────────────────────────────────────────────────


async def test_defaults_are_text_and_first(service, make_field, project_with_tasks):
    field = await make_field("title")
    assert field.display_format == "text"
    assert field.aggregation == "first"
    assert await calc(service, field, project_with_tasks) == "Schema"


async def test_last(service, make_field, project_with_tasks):
    field = await make_field("title", aggregation="last")
    assert await calc(service, field, project_with_tasks) == "Release"


async def test_all_formats_each_value(service, make_field, project_with_tasks):
    field = await make_field("priority", aggregation="all")
    assert await calc(service, field, project_with_tasks) == ["high", "medium", "low", "high"]


async def test_count_drops_missing_values(service, make_field, project_with_tasks):
    field = await make_field("estimated_hours", aggregation="count")
    assert await calc(service, field, project_with_tasks) == 3


async def test_comma_list_truncates_with_remainder(service, make_field, project_with_tasks):
    field = await make_field("title", aggregation="comma_list", format_options={"max_items": 2})
    assert await calc(service, field, project_with_tasks) == "Schema, API +2 more"


async def test_comma_list_default_limit(service, make_field, project_with_tasks):
    field = await make_field("title", aggregation="comma_list")
    assert await calc(service, field, project_with_tasks) == "Schema, API, Docs, Release"


async def test_unique_preserves_first_occurrence(service, make_field, project_with_tasks):
    field = await make_field("priority", aggregation="unique")
    assert await calc(service, field, project_with_tasks) == ["high", "medium", "low"]


async def test_nested_property_path(service, make_field, project_with_tasks):
    field = await make_field("extra_data.owner.name", aggregation="all")
    assert await calc(service, field, project_with_tasks) == ["Ada", "Grace"]


# ── empty results ───────────────────────────────────────────────────────────


async def test_no_related_entities_yields_empty_text(service, seed):
    field = await service.create_lookup_field(
        entity_type="task",
        name="blockers",
        display_name="Blockers",
        relation_type="blocked_by",
        source_property="title",
        created_by=TEST_ACTOR_ID,
        format_options={"empty_text": "Nothing blocking"},
    )
    assert await service.calculate_lookup(field, seed.task(0)) == "Nothing blocking"


async def test_no_related_entities_without_empty_text_is_none(service, seed):
    field = await service.create_lookup_field(
        entity_type="task",
        name="blockers",
        display_name="Blockers",
        relation_type="blocked_by",
        source_property="title",
        created_by=TEST_ACTOR_ID,
    )
    assert await service.calculate_lookup(field, seed.task(0)) is None


async def test_all_values_missing_yields_empty_text(service, make_field, project_with_tasks):
    field = await make_field("summary", format_options={"empty_text": "-"})
    assert await calc(service, field, project_with_tasks) == "-"


# ── display formats ─────────────────────────────────────────────────────────


async def test_date_format(service, make_field, project_with_tasks):
    field = await make_field("deadline", display_format="date")
    assert await calc(service, field, project_with_tasks) == "3/1/2026"


async def test_date_format_pattern(service, make_field, project_with_tasks):
    field = await make_field("deadline", display_format="date", format_options={"date_format": "%Y-%m-%d"})
    assert await calc(service, field, project_with_tasks) == "2026-03-01"


async def test_datetime_format(service, make_field, project_with_tasks):
    field = await make_field("deadline", display_format="datetime", aggregation="last")
    assert await calc(service, field, project_with_tasks) == "3/4/2026, 12:00:00 PM"


async def test_number_format_with_affixes(service, make_field, project_with_tasks):
    field = await make_field(
        "extra_data.points",
        display_format="number",
        format_options={"prefix": "~", "suffix": " pts"},
    )
    assert await calc(service, field, project_with_tasks) == "~3 pts"


async def test_currency_format(service, make_field, project_with_tasks):
    field = await make_field("estimated_hours", display_format="currency")
    assert await calc(service, field, project_with_tasks) == "$2.50"


async def test_percentage_format(service, make_field, project_with_tasks):
    field = await make_field("extra_data.points", display_format="percentage", aggregation="last")
    assert await calc(service, field, project_with_tasks) == "1.0%"


async def test_progress_bar_format(service, make_field, project_with_tasks):
    field = await make_field("extra_data.points", display_format="progress_bar")
    assert await calc(service, field, project_with_tasks) == {"value": 3, "type": "progress_bar"}


async def test_badge_and_link_formats(service, make_field, project_with_tasks):
    badge = await make_field("status", name="status_badge", display_format="badge")
    link = await make_field("title", name="title_link", display_format="link")
    assert await calc(service, badge, project_with_tasks) == {"value": "completed", "type": "badge"}
    assert await calc(service, link, project_with_tasks) == {"value": "Schema", "type": "link"}


async def test_non_numeric_under_number_format_is_unchanged(service, make_field, project_with_tasks):
    field = await make_field("status", display_format="number")
    assert await calc(service, field, project_with_tasks) == "completed"


# ── definition store ────────────────────────────────────────────────────────


async def test_calculate_by_id(service, make_field, project_with_tasks):
    field = await make_field("title")
    assert await service.calculate_lookup_by_id(field.id, project_with_tasks.project_ref) == "Schema"
    assert await service.calculate_lookup_by_id(9999, project_with_tasks.project_ref) is None


async def test_concrete_definition_shadows_template(service, seed):
    template = await service.create_lookup_field(
        entity_type="project",
        name="owner",
        display_name="Owner",
        relation_type="parent_child",
        source_property="extra_data.owner.name",
        created_by=TEST_ACTOR_ID,
    )
    concrete = await service.create_lookup_field(
        entity_type="project",
        entity_id=seed.project,
        name="owner",
        display_name="Owner (custom)",
        relation_type="parent_child",
        source_property="title",
        created_by=TEST_ACTOR_ID,
    )
    other = await service.create_lookup_field(
        entity_type="project",
        name="priorities",
        display_name="Priorities",
        relation_type="parent_child",
        source_property="priority",
        created_by=TEST_ACTOR_ID,
        sort_order=-1,
    )

    assert template.is_template and not concrete.is_template

    for_entity = await service.get_lookup_fields("project", seed.project)
    assert [f.id for f in for_entity] == [other.id, concrete.id]

    for_kind = await service.get_lookup_fields("project")
    assert {f.id for f in for_kind} == {template.id, concrete.id, other.id}

    assert (await service.resolve_lookup_field("project", seed.project, "owner")).id == concrete.id
    assert (await service.resolve_lookup_field("project", seed.project + 1, "owner")).id == template.id
    assert await service.resolve_lookup_field("project", seed.project, "missing") is None


async def test_hidden_fields_are_not_listed(db, service, seed):
    field = await service.create_lookup_field(
        entity_type="task",
        name="hidden",
        display_name="Hidden",
        relation_type="related_to",
        source_property="title",
        created_by=TEST_ACTOR_ID,
    )
    field.is_visible = False
    await db.commit()

    assert await service.get_lookup_fields("task") == []
    assert (await service.get_lookup_field(field.id)).id == field.id


async def test_delete_lookup_field(service, seed):
    field = await service.create_lookup_field(
        entity_type="block",
        name="tasks",
        display_name="Tasks",
        relation_type="parent_child",
        source_property="title",
        created_by=TEST_ACTOR_ID,
    )
    assert await service.delete_lookup_field(field.id) is True
    assert await service.get_lookup_field(field.id) is None
    assert await service.delete_lookup_field(field.id) is False


async def test_invalid_owner_kind_is_rejected(service, seed):
    with pytest.raises(ValueError):
        await service.create_lookup_field(
            entity_type="subtask",
            name="x",
            display_name="X",
            relation_type="related_to",
            source_property="title",
            created_by=TEST_ACTOR_ID,
        )


async def test_lookup_follows_blocked_by_relations(service, seed):
    field = await service.create_lookup_field(
        entity_type="task",
        name="blocked_by_titles",
        display_name="Blocked by",
        relation_type="blocked_by",
        source_property="title",
        created_by=TEST_ACTOR_ID,
    )
    await service.graph.create_relation(seed.task(1), seed.task(0), "blocked_by", actor_id=TEST_ACTOR_ID)
    assert await service.calculate_lookup(field, EntityRef(EntityKind.TASK, seed.tasks[1])) == "Schema"


async def test_number_format_spec(service, make_field, project_with_tasks):
    field = await make_field(
        "extra_data.points",
        display_format="number",
        format_options={"number_format": ".2f", "suffix": " pts"},
    )
    assert await calc(service, field, project_with_tasks) == "3.00 pts"


async def test_invalid_number_format_falls_back_to_grouping(service, make_field, project_with_tasks):
    field = await make_field("extra_data.points", display_format="number", format_options={"number_format": "q"})
    assert await calc(service, field, project_with_tasks) == "3"


async def test_resolve_picks_oldest_template_of_a_name(service, seed):
    first, second = [
        await service.create_lookup_field(
            entity_type="section",
            name="titles",
            display_name=f"Titles {index}",
            relation_type="parent_child",
            source_property="title",
            created_by=TEST_ACTOR_ID,
        )
        for index in range(2)
    ]
    resolved = await service.resolve_lookup_field("section", seed.section, "titles")
    assert resolved.id == min(first.id, second.id)


async def test_large_values_in_numeric_formats(db, service, seed):
    task = Task(section_id=seed.section, title="Backlog", status="not_started", extra_data={"points": 1e30})
    db.add(task)
    await db.commit()
    await service.graph.create_relation(
        seed.task(0), EntityRef(EntityKind.TASK, task.id), "related_to", actor_id=TEST_ACTOR_ID
    )

    async def lookup(display_format):
        field = await service.create_lookup_field(
            entity_type="task",
            name=f"points_{display_format}",
            display_name="Points",
            relation_type="related_to",
            source_property="extra_data.points",
            display_format=display_format,
            created_by=TEST_ACTOR_ID,
        )
        return await service.calculate_lookup(field, seed.task(0))

    assert await lookup("currency") == "$1" + "0" * 30 + ".00"
    assert await lookup("percentage") == "1" + "0" * 30 + ".0%"
    assert await lookup("progress_bar") == {"value": 1e30, "type": "progress_bar"}
