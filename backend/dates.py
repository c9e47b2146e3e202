from datetime import date, datetime, timedelta
from enum import IntEnum
from typing import Optional, Union

DateLike = Union[date, str]


class Weekday(IntEnum):
    """Weekday index used everywhere in the planner: Monday=0 ... Sunday=6.

    Matches date.weekday(), so no conversion is needed for Python dates.
    Anything arriving with a different convention must be converted before
    it reaches a Task.
    """
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def of(cls, value: DateLike) -> "Weekday":
        return cls(to_date(value).weekday())


WEEKDAY_NAMES = {
    "monday": Weekday.MONDAY, "mon": Weekday.MONDAY,
    "tuesday": Weekday.TUESDAY, "tue": Weekday.TUESDAY,
    "wednesday": Weekday.WEDNESDAY, "wed": Weekday.WEDNESDAY,
    "thursday": Weekday.THURSDAY, "thu": Weekday.THURSDAY,
    "friday": Weekday.FRIDAY, "fri": Weekday.FRIDAY,
    "saturday": Weekday.SATURDAY, "sat": Weekday.SATURDAY,
    "sunday": Weekday.SUNDAY, "sun": Weekday.SUNDAY,
}


def _today(today: Optional[date] = None) -> date:
    return today if today is not None else date.today()


def to_date(value: DateLike) -> date:
    """Parse a YYYY-MM-DD string (or pass a date through)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value, "%Y-%m-%d").date()


def is_iso_date(value: Optional[str]) -> bool:
    """True only for a real calendar date written exactly as YYYY-MM-DD."""
    if not isinstance(value, str) or not value:
        return False
    try:
        return date_string(to_date(value)) == value
    except ValueError:
        return False


def date_string(value: date) -> str:
    """Format a date as YYYY-MM-DD from its calendar fields."""
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def offset_date(offset: int = 0, today: Optional[date] = None) -> str:
    """Date string for today + offset days (0 = today, 1 = tomorrow, ...)."""
    return date_string(_today(today) + timedelta(days=offset))


def next_weekday(target: int, today: Optional[date] = None) -> str:
    """Next date whose weekday is target, counting today as a match."""
    current = _today(today)
    days_until = (Weekday(target) - current.weekday()) % 7
    return date_string(current + timedelta(days=days_until))


def week_start_monday(week_offset: int = 0, day_index: int = 0, today: Optional[date] = None) -> str:
    """
    Map a (week, weekday) coordinate to a date string.

    Weeks start on Monday; week_offset 0 is the current week and day_index
    follows Weekday (0 = Monday).
    """
    current = _today(today)
    monday = current - timedelta(days=current.weekday())
    return date_string(monday + timedelta(days=week_offset * 7 + Weekday(day_index)))


def parse_date_expression(expression: Optional[str], today: Optional[date] = None) -> Optional[str]:
    """
    Resolve a small set of relative phrases to a date string.

    Supports ISO dates, "today"/"tonight", "tomorrow", "next week", weekday
    names ("friday" = next Friday, today included) and "next <weekday>"
    (that weekday in the following week). Returns None for anything else.
    """
    if not expression:
        return None

    expr = expression.lower().strip()
    if is_iso_date(expr):
        return expr

    if expr in ("today", "tonight"):
        return offset_date(0, today)
    if expr == "tomorrow":
        return offset_date(1, today)
    if expr == "next week":
        return offset_date(7, today)

    words = expr.replace(",", " ").split()
    for i, word in enumerate(words):
        weekday = WEEKDAY_NAMES.get(word)
        if weekday is None:
            continue
        if i > 0 and words[i - 1] == "next":
            return week_start_monday(1, weekday, today)
        return next_weekday(weekday, today)

    return None


def format_date_for_display(date_str: str, today: Optional[date] = None) -> str:
    """Human label for a date: Today, Tomorrow or e.g. "Monday, Jan 1"."""
    if date_str == offset_date(0, today):
        return "Today"
    if date_str == offset_date(1, today):
        return "Tomorrow"
    value = to_date(date_str)
    return f"{value:%A}, {value:%b} {value.day}"
