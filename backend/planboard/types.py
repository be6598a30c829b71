"""Shared value types and enumerations."""

from dataclasses import dataclass
from enum import Enum


# =============================================================================
# Enums
# =============================================================================


class EntityKind(str, Enum):
    """Kinds of entity that can sit at either end of a relation."""
    PROJECT = "project"
    BLOCK = "block"
    SECTION = "section"
    TASK = "task"
    SUBTASK = "subtask"


class OwnerKind(str, Enum):
    """Kinds of entity that can own lookup and rollup fields."""
    PROJECT = "project"
    BLOCK = "block"
    SECTION = "section"
    TASK = "task"


class RelationType(str, Enum):
    """Closed set of relation types."""
    PARENT_CHILD = "parent_child"
    BLOCKS = "blocks"
    BLOCKED_BY = "blocked_by"
    RELATED_TO = "related_to"
    DUPLICATE_OF = "duplicate_of"
    DEPENDS_ON = "depends_on"
    REQUIRED_BY = "required_by"
    SUBTASK_OF = "subtask_of"
    LINKED = "linked"
    CLONED_FROM = "cloned_from"
    MOVED_FROM = "moved_from"


class LookupAggregation(str, Enum):
    """How a lookup reduces values from several related entities."""
    FIRST = "first"
    LAST = "last"
    ALL = "all"
    COUNT = "count"
    COMMA_LIST = "comma_list"
    UNIQUE = "unique"


class LookupDisplayFormat(str, Enum):
    TEXT = "text"
    BADGE = "badge"
    AVATAR = "avatar"
    DATE = "date"
    DATETIME = "datetime"
    PROGRESS_BAR = "progress_bar"
    LINK = "link"
    LIST = "list"
    NUMBER = "number"
    CURRENCY = "currency"
    PERCENTAGE = "percentage"


class AggregationFunction(str, Enum):
    """Rollup aggregation functions."""
    # Count functions
    COUNT = "count"
    COUNT_VALUES = "count_values"
    COUNT_UNIQUE = "count_unique"
    COUNT_CHECKED = "count_checked"
    COUNT_UNCHECKED = "count_unchecked"
    # Numeric functions
    SUM = "sum"
    AVERAGE = "average"
    MEDIAN = "median"
    MIN = "min"
    MAX = "max"
    RANGE = "range"
    # Percentage functions
    PERCENT_EMPTY = "percent_empty"
    PERCENT_NOT_EMPTY = "percent_not_empty"
    PERCENT_CHECKED = "percent_checked"
    PERCENT_UNCHECKED = "percent_unchecked"
    # Date functions
    EARLIEST_DATE = "earliest_date"
    LATEST_DATE = "latest_date"
    DATE_RANGE_DAYS = "date_range_days"
    # Text functions
    SHOW_ORIGINAL = "show_original"
    CONCATENATE = "concatenate"


class RollupDisplayFormat(str, Enum):
    NUMBER = "number"
    PERCENTAGE = "percentage"
    CURRENCY = "currency"
    DURATION = "duration"
    DATE = "date"
    PROGRESS_BAR = "progress_bar"
    TEXT = "text"
    FRACTION = "fraction"


# =============================================================================
# Value types
# =============================================================================


@dataclass(frozen=True)
class EntityRef:
    """Address of an entity: its kind and numeric id."""
    kind: EntityKind
    id: int

    @classmethod
    def of(cls, kind: str | EntityKind, entity_id: int) -> "EntityRef":
        return cls(EntityKind(kind), int(entity_id))

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"
