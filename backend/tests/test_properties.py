"""
Tests for property access and value coercion.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from planboard.services.properties import (
    format_date,
    format_datetime,
    format_grouped,
    get_property_value,
    is_checked,
    is_empty,
    round_half_up,
    strict_equals,
    stringify,
    to_datetime,
    to_fixed,
    to_jsonable,
    to_number,
)


class TestGetPropertyValue:
    def test_top_level_key(self):
        assert get_property_value({"status": "done"}, "status") == "done"

    def test_nested_path(self):
        record = {"extra_data": {"owner": {"name": "Ada"}}}
        assert get_property_value(record, "extra_data.owner.name") == "Ada"

    def test_none_mid_path_yields_none(self):
        assert get_property_value({"extra_data": None}, "extra_data.owner.name") is None

    def test_missing_key_yields_none(self):
        assert get_property_value({"title": "x"}, "priority") is None

    def test_attribute_access(self):
        class Row:
            title = "Schema"

        assert get_property_value(Row(), "title") == "Schema"

    def test_empty_path(self):
        assert get_property_value({"a": 1}, "") is None


class TestPredicates:
    @pytest.mark.parametrize("value", [None, ""])
    def test_is_empty(self, value):
        assert is_empty(value)

    @pytest.mark.parametrize("value", [0, False, " ", [], "x"])
    def test_is_not_empty(self, value):
        assert not is_empty(value)

    @pytest.mark.parametrize("value", [True, "completed", "done"])
    def test_is_checked(self, value):
        assert is_checked(value)

    @pytest.mark.parametrize("value", [False, "in_progress", "Done", 1, None])
    def test_is_not_checked(self, value):
        assert not is_checked(value)

    def test_strict_equals_does_not_conflate_bool_and_int(self):
        assert not strict_equals(True, 1)
        assert not strict_equals(0, False)
        assert strict_equals(True, True)

    def test_strict_equals_numbers_across_types(self):
        assert strict_equals(3, 3.0)
        assert strict_equals(Decimal("2.5"), 2.5)

    def test_strict_equals_does_not_cast_strings(self):
        assert not strict_equals("3", 3)
        assert strict_equals("high", "high")


class TestCoercion:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(3, 3.0), ("4.5", 4.5), (" 7 ", 7.0), (Decimal("1.25"), 1.25), (True, 1.0)],
    )
    def test_to_number(self, value, expected):
        assert to_number(value) == expected

    @pytest.mark.parametrize("value", [None, "", "abc", "nan", "inf", float("nan"), [1]])
    def test_to_number_rejects_non_numeric(self, value):
        assert to_number(value) is None

    def test_to_datetime_naive_is_utc(self):
        parsed = to_datetime(datetime(2026, 1, 2, 3, 4))
        assert parsed.tzinfo == timezone.utc

    def test_to_datetime_parses_iso_string(self):
        parsed = to_datetime("2026-03-01T10:00:00+00:00")
        assert parsed == datetime(2026, 3, 1, 10, tzinfo=timezone.utc)

    def test_to_datetime_from_date(self):
        assert to_datetime(date(2026, 3, 1)) == datetime(2026, 3, 1, tzinfo=timezone.utc)

    def test_to_datetime_rejects_garbage(self):
        assert to_datetime("next tuesday") is None
        assert to_datetime(5) is None

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, ""),
            (True, "true"),
            (3.0, "3"),
            (2.5, "2.5"),
            (Decimal("4.00"), "4"),
            (["a", 1], "a, 1"),
            ({"k": 1}, '{"k":1}'),
        ],
    )
    def test_stringify(self, value, expected):
        assert stringify(value) == expected

    def test_to_jsonable_dates_and_decimals(self):
        value = {"when": datetime(2026, 3, 1, tzinfo=timezone.utc), "hours": Decimal("2.5")}
        assert to_jsonable(value) == {"when": "2026-03-01T00:00:00+00:00", "hours": 2.5}


class TestFormatting:
    def test_round_half_up_is_not_bankers(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(0.125, 2) == Decimal("0.13")

    def test_to_fixed_pads_decimals(self):
        assert to_fixed(3, 2) == "3.00"
        assert to_fixed(66.666, 1) == "66.7"

    def test_format_grouped(self):
        assert format_grouped(1234567) == "1,234,567"
        assert format_grouped(1234.5) == "1,234.5"

    def test_large_values_keep_all_digits(self):
        assert round_half_up(1e30, 10) == Decimal("1E+30")
        assert to_fixed(1e30, 10) == "1" + "0" * 30 + "." + "0" * 10
        assert to_fixed(-1e25, 2) == "-1" + "0" * 25 + ".00"
        assert format_grouped(1e18) == "1,000,000,000,000,000,000"

    def test_format_date(self):
        assert format_date(date(2026, 3, 1)) == "3/1/2026"

    def test_format_datetime(self):
        assert format_datetime(datetime(2026, 3, 1, 14, 5, 9)) == "3/1/2026, 2:05:09 PM"
        assert format_datetime(datetime(2026, 3, 1, 0, 0, 0)) == "3/1/2026, 12:00:00 AM"
