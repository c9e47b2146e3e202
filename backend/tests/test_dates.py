"""
Tests for date helpers in dates.py.
"""
import pytest
import sys
import os
from datetime import date

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dates import (
    Weekday,
    date_string,
    format_date_for_display,
    is_iso_date,
    next_weekday,
    offset_date,
    parse_date_expression,
    week_start_monday,
)

WEDNESDAY = date(2024, 1, 3)
SUNDAY = date(2024, 1, 7)


class TestDateString:
    def test_zero_padded(self):
        assert date_string(date(2024, 3, 5)) == "2024-03-05"

    def test_offset_rolls_over_month_and_year(self):
        """Calendar rollover is handled by date arithmetic."""
        assert offset_date(1, today=date(2023, 12, 31)) == "2024-01-01"
        assert offset_date(1, today=date(2024, 2, 28)) == "2024-02-29"
        assert offset_date(-1, today=date(2024, 3, 1)) == "2024-02-29"

    def test_offset_zero_is_today(self):
        assert offset_date(0, today=WEDNESDAY) == "2024-01-03"

    def test_is_iso_date(self):
        assert is_iso_date("2024-01-31")
        assert not is_iso_date("2024-02-30")
        assert not is_iso_date("tomorrow")
        assert not is_iso_date(None)
        assert not is_iso_date("2024-1-5")
        assert not is_iso_date("2024-01-5")
        assert not is_iso_date(" 2024-01-05")


class TestWeekdays:
    def test_weekday_is_monday_first(self):
        assert Weekday.of("2024-01-01") == Weekday.MONDAY
        assert Weekday.of("2024-01-07") == Weekday.SUNDAY

    def test_next_weekday_includes_today(self):
        assert next_weekday(Weekday.WEDNESDAY, today=WEDNESDAY) == "2024-01-03"

    def test_next_weekday_later_this_week(self):
        assert next_weekday(Weekday.FRIDAY, today=WEDNESDAY) == "2024-01-05"

    def test_next_weekday_wraps_to_next_week(self):
        assert next_weekday(Weekday.MONDAY, today=WEDNESDAY) == "2024-01-08"

    def test_week_start_monday_current_week(self):
        assert week_start_monday(0, Weekday.MONDAY, today=WEDNESDAY) == "2024-01-01"
        assert week_start_monday(0, Weekday.SUNDAY, today=WEDNESDAY) == "2024-01-07"

    def test_week_start_monday_from_sunday(self):
        """Sunday belongs to the week that started the previous Monday."""
        assert week_start_monday(0, Weekday.MONDAY, today=SUNDAY) == "2024-01-01"

    def test_week_offsets(self):
        assert week_start_monday(1, Weekday.MONDAY, today=WEDNESDAY) == "2024-01-08"
        assert week_start_monday(-1, Weekday.FRIDAY, today=WEDNESDAY) == "2023-12-29"

    def test_invalid_weekday_rejected(self):
        with pytest.raises(ValueError):
            next_weekday(7, today=WEDNESDAY)


class TestParseDateExpression:
    @pytest.mark.parametrize("expression,expected", [
        ("today", "2024-01-03"),
        ("Tonight", "2024-01-03"),
        ("tomorrow", "2024-01-04"),
        ("next week", "2024-01-10"),
        ("friday", "2024-01-05"),
        ("Mon", "2024-01-08"),
        ("next monday", "2024-01-08"),
        ("next wednesday", "2024-01-10"),
        ("2024-02-01", "2024-02-01"),
    ])
    def test_known_phrases(self, expression, expected):
        assert parse_date_expression(expression, today=WEDNESDAY) == expected

    def test_unknown_phrase_returns_none(self):
        assert parse_date_expression("in a fortnight", today=WEDNESDAY) is None
        assert parse_date_expression("", today=WEDNESDAY) is None

    def test_abbreviation_must_be_whole_word(self):
        """'mon' inside 'month' is not a weekday."""
        assert parse_date_expression("end of month", today=WEDNESDAY) is None


class TestFormatDateForDisplay:
    def test_today_and_tomorrow(self):
        assert format_date_for_display("2024-01-03", today=WEDNESDAY) == "Today"
        assert format_date_for_display("2024-01-04", today=WEDNESDAY) == "Tomorrow"

    def test_other_dates(self):
        assert format_date_for_display("2024-01-08", today=WEDNESDAY) == "Monday, Jan 8"
