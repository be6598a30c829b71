"""Business logic services."""

from planboard.services.entity_store import EntityAccessor, EntityStore, ModelAccessor
from planboard.services.lookup import LookupService
from planboard.services.relation_graph import RelatedEntity, RelationGraph, RelationSet
from planboard.services.rollup import RollupResult, RollupService

__all__ = [
    "EntityAccessor",
    "EntityStore",
    "LookupService",
    "ModelAccessor",
    "RelatedEntity",
    "RelationGraph",
    "RelationSet",
    "RollupResult",
    "RollupService",
]
