"""SQLAlchemy models package."""

from planboard.models.project import Block, Project, Section, Subtask, Task
from planboard.models.relation import EntityRelation
from planboard.models.derived_field import LookupField, RollupField

__all__ = [
    # Project hierarchy
    "Project",
    "Block",
    "Section",
    "Task",
    "Subtask",
    # Relations
    "EntityRelation",
    # Derived fields
    "LookupField",
    "RollupField",
]
