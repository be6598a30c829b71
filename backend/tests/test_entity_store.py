"""
Tests for the entity store and its accessors.
"""

from __future__ import annotations

from planboard.services.entity_store import EntityAccessor, EntityStore
from planboard.types import EntityKind, EntityRef


class StaticAccessor(EntityAccessor):
    """In-memory accessor that records how it was called."""

    def __init__(self, kind: EntityKind, records: dict[int, dict]):
        self._kind = kind
        self.records = records
        self.fetch_calls: list[int] = []

    @property
    def kind(self) -> EntityKind:
        return self._kind

    async def fetch(self, entity_id: int) -> dict | None:
        self.fetch_calls.append(entity_id)
        return self.records.get(entity_id)


async def test_fetch_returns_row_as_record(db, seed):
    store = EntityStore.default(db)
    record = await store.fetch(seed.task(0))
    assert record["title"] == "Schema"
    assert record["status"] == "completed"
    assert record["extra_data"]["owner"]["name"] == "Ada"


async def test_fetch_missing_row_is_none(db, seed):
    store = EntityStore.default(db)
    assert await store.fetch(EntityRef(EntityKind.TASK, 9999)) is None


async def test_fetch_many_batches_per_kind(db, seed):
    store = EntityStore.default(db)
    refs = [seed.task(0), seed.project_ref, seed.task(2), EntityRef(EntityKind.BLOCK, 9999)]
    records = await store.fetch_many(refs)
    assert set(records) == {seed.task(0), seed.project_ref, seed.task(2)}
    assert records[seed.project_ref]["name"] == "Launch"


async def test_default_store_without_backend_is_empty():
    store = EntityStore.default(None)
    assert store.accessor_for(EntityKind.TASK) is None
    assert await store.fetch(EntityRef(EntityKind.TASK, 1)) is None
    assert await store.fetch_many([EntityRef(EntityKind.TASK, 1)]) == {}


async def test_registered_accessor_serves_its_kind():
    accessor = StaticAccessor(EntityKind.SUBTASK, {7: {"title": "Check"}})
    store = EntityStore([accessor])
    assert await store.fetch(EntityRef(EntityKind.SUBTASK, 7)) == {"title": "Check"}
    assert store.accessor_for("subtask") is accessor
    assert store.accessor_for("milestone") is None


async def test_base_fetch_many_dedupes_ids():
    accessor = StaticAccessor(EntityKind.TASK, {1: {"title": "a"}, 2: {"title": "b"}})
    store = EntityStore([accessor])
    refs = [EntityRef(EntityKind.TASK, i) for i in (1, 2, 1, 3)]
    records = await store.fetch_many(refs)
    assert len(records) == 2
    assert accessor.fetch_calls == [1, 2, 3]
