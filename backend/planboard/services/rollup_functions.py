"""Rollup filter operators, aggregation functions and result formatting.

Aggregations take the extracted value list and ``total``, the number of
related entities that passed the filters. Values that cannot be coerced for
a numeric or date aggregation are dropped, never raised on.
"""

import statistics
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from planboard.services.properties import (
    as_integral,
    format_date,
    get_property_value,
    is_checked,
    is_empty,
    round_half_up,
    strict_equals,
    stringify,
    to_datetime,
    to_fixed,
    to_number,
)
from planboard.types import AggregationFunction, RollupDisplayFormat

SECONDS_PER_DAY = 86_400


# =============================================================================
# Filters
# =============================================================================


def _numeric_compare(compare: Callable[[float, float], bool]) -> Callable[[Any, Any], bool]:
    def evaluate(field_value: Any, condition_value: Any) -> bool:
        left, right = to_number(field_value), to_number(condition_value)
        if left is None or right is None:
            return False
        return compare(left, right)

    return evaluate


FILTER_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "equals": strict_equals,
    "not_equals": lambda v, c: not strict_equals(v, c),
    "contains": lambda v, c: stringify(c) in stringify(v),
    "not_contains": lambda v, c: stringify(c) not in stringify(v),
    "greater_than": _numeric_compare(lambda a, b: a > b),
    "less_than": _numeric_compare(lambda a, b: a < b),
    "greater_or_equal": _numeric_compare(lambda a, b: a >= b),
    "less_or_equal": _numeric_compare(lambda a, b: a <= b),
    "is_empty": lambda v, c: is_empty(v),
    "is_not_empty": lambda v, c: not is_empty(v),
    "is_checked": lambda v, c: is_checked(v),
    "is_unchecked": lambda v, c: not is_checked(v),
}

OPERATOR_ALIASES = {
    "=": "equals",
    "!=": "not_equals",
    ">": "greater_than",
    "<": "less_than",
    ">=": "greater_or_equal",
    "<=": "less_or_equal",
    "gt": "greater_than",
    "lt": "less_than",
    "gte": "greater_or_equal",
    "lte": "less_or_equal",
}


@dataclass(frozen=True)
class FilterCondition:
    field: str
    operator: str
    value: Any = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FilterCondition":
        return cls(field=data.get("field", ""), operator=data.get("operator", ""), value=data.get("value"))

    def matches(self, record: Any) -> bool:
        operator = OPERATOR_ALIASES.get(self.operator, self.operator)
        evaluate = FILTER_OPERATORS.get(operator)
        if evaluate is None:
            # Unknown operators do not exclude anything
            return True
        return evaluate(get_property_value(record, self.field), self.value)


def matches_all(record: Any, conditions: Sequence[FilterCondition]) -> bool:
    """Conjunctive filter: every condition must hold."""
    return all(condition.matches(record) for condition in conditions)


# =============================================================================
# Aggregations
# =============================================================================


def _numbers(values: Sequence[Any]) -> list[float]:
    return [n for n in (to_number(v) for v in values) if n is not None]


def _dates(values: Sequence[Any]) -> list[datetime]:
    return [d for d in (to_datetime(v) for v in values) if d is not None]


def _percent(matching: int, total: int) -> float:
    return (matching / total) * 100 if total > 0 else 0


def _sum(values, total):
    return sum(_numbers(values))


def _average(values, total):
    numbers = _numbers(values)
    return statistics.fmean(numbers) if numbers else 0


def _median(values, total):
    numbers = _numbers(values)
    return statistics.median(numbers) if numbers else 0


def _min(values, total):
    numbers = _numbers(values)
    return min(numbers) if numbers else 0


def _max(values, total):
    numbers = _numbers(values)
    return max(numbers) if numbers else 0


def _range(values, total):
    numbers = _numbers(values)
    return max(numbers) - min(numbers) if numbers else 0


def _earliest(values, total):
    dates = _dates(values)
    return min(dates) if dates else None


def _latest(values, total):
    dates = _dates(values)
    return max(dates) if dates else None


def _date_range_days(values, total):
    dates = _dates(values)
    if len(dates) < 2:
        return 0
    seconds = (max(dates) - min(dates)).total_seconds()
    return int(round_half_up(seconds / SECONDS_PER_DAY))


AGGREGATIONS: dict[AggregationFunction, Callable[[Sequence[Any], int], Any]] = {
    # Count functions
    AggregationFunction.COUNT: lambda values, total: total,
    AggregationFunction.COUNT_VALUES: lambda values, total: sum(1 for v in values if not is_empty(v)),
    AggregationFunction.COUNT_UNIQUE: lambda values, total: len({stringify(v) for v in values}),
    AggregationFunction.COUNT_CHECKED: lambda values, total: sum(1 for v in values if is_checked(v)),
    AggregationFunction.COUNT_UNCHECKED: lambda values, total: sum(1 for v in values if not is_checked(v)),
    # Numeric functions
    AggregationFunction.SUM: _sum,
    AggregationFunction.AVERAGE: _average,
    AggregationFunction.MEDIAN: _median,
    AggregationFunction.MIN: _min,
    AggregationFunction.MAX: _max,
    AggregationFunction.RANGE: _range,
    # Percentage functions
    AggregationFunction.PERCENT_EMPTY: lambda values, total: _percent(
        sum(1 for v in values if is_empty(v)), total
    ),
    AggregationFunction.PERCENT_NOT_EMPTY: lambda values, total: _percent(
        sum(1 for v in values if not is_empty(v)), total
    ),
    AggregationFunction.PERCENT_CHECKED: lambda values, total: _percent(
        sum(1 for v in values if is_checked(v)), total
    ),
    AggregationFunction.PERCENT_UNCHECKED: lambda values, total: _percent(
        sum(1 for v in values if not is_checked(v)), total
    ),
    # Date functions
    AggregationFunction.EARLIEST_DATE: _earliest,
    AggregationFunction.LATEST_DATE: _latest,
    AggregationFunction.DATE_RANGE_DAYS: _date_range_days,
    # Text functions
    AggregationFunction.SHOW_ORIGINAL: lambda values, total: list(values),
    AggregationFunction.CONCATENATE: lambda values, total: ", ".join(stringify(v) for v in values),
}

PERCENT_FUNCTIONS = frozenset({
    AggregationFunction.PERCENT_EMPTY,
    AggregationFunction.PERCENT_NOT_EMPTY,
    AggregationFunction.PERCENT_CHECKED,
    AggregationFunction.PERCENT_UNCHECKED,
})


def aggregate(
    function: AggregationFunction | str,
    values: Sequence[Any],
    total: int,
    decimal_places: int = 0,
) -> Any:
    """Apply an aggregation function.

    Percentages are rounded to ``decimal_places``; integral float results are
    returned as ints.
    """
    function = AggregationFunction(function)
    result = AGGREGATIONS[function](values, total)

    if function in PERCENT_FUNCTIONS:
        result = float(round_half_up(result, decimal_places))
    if isinstance(result, float):
        result = as_integral(result)
    return result


# =============================================================================
# Formatting
# =============================================================================


def format_rollup_value(
    value: Any,
    display_format: RollupDisplayFormat | str | None = None,
    decimal_places: int = 0,
    prefix: str | None = None,
    suffix: str | None = None,
    progress_bar_max: int | None = None,
) -> str:
    """Render an aggregate for display."""
    if value is None:
        return ""

    display_format = RollupDisplayFormat(display_format or RollupDisplayFormat.NUMBER)
    number = to_number(value) if not isinstance(value, (list, tuple)) else None

    if display_format == RollupDisplayFormat.NUMBER:
        if number is None:
            return stringify(value)
        return f"{prefix or ''}{to_fixed(number, decimal_places)}{suffix or ''}"

    if display_format == RollupDisplayFormat.PERCENTAGE:
        if number is None:
            return stringify(value)
        return f"{to_fixed(number, decimal_places)}%"

    if display_format == RollupDisplayFormat.CURRENCY:
        if number is None:
            return stringify(value)
        return f"{prefix or '$'}{to_fixed(number, 2)}"

    if display_format == RollupDisplayFormat.DURATION:
        if number is None:
            return stringify(value)
        hours = int(number // 1)
        minutes = int(round_half_up((number - hours) * 60))
        return f"{hours}h {minutes}m"

    if display_format == RollupDisplayFormat.DATE:
        parsed = to_datetime(value)
        return format_date(parsed) if parsed is not None else stringify(value)

    if display_format == RollupDisplayFormat.PROGRESS_BAR:
        if number is None:
            return stringify(value)
        maximum = progress_bar_max or 100
        return f"{round_half_up(number / maximum * 100)}%"

    # fraction, text
    return stringify(value)
