import math
import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from dates import Weekday, is_iso_date, parse_date_expression

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
NUMERIC_ID_PATTERN = re.compile(r"^-?\d+(\.\d+)?([eE][+-]?\d+)?$")


class Category(str, Enum):
    WORK = "work"
    PERSONAL = "personal"
    HEALTH = "health"
    EDUCATION = "education"
    FINANCE = "finance"
    HOME = "home"
    SOCIAL = "social"
    HOBBY = "hobby"
    UNCATEGORIZED = "Uncategorized"

    @classmethod
    def coerce(cls, raw: Any) -> "Category":
        """Map a free-form label onto a category, Uncategorized if unknown."""
        if isinstance(raw, cls):
            return raw
        label = str(raw or "").strip().lower()
        for member in cls:
            if member.value.lower() == label:
                return member
        return cls.UNCATEGORIZED


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def coerce(cls, raw: Any) -> "Priority":
        if isinstance(raw, cls):
            return raw
        label = str(raw or "").strip().lower()
        for member in cls:
            if member.value == label:
                return member
        return cls.MEDIUM


class Repeat(str, Enum):
    EVERYDAY = "everyday"
    DAYS = "days"


def _format_numeric_id(number: float) -> str:
    if not math.isfinite(number):
        raise ValueError(f"Invalid task id: {number!r}")
    if float(number).is_integer():
        return str(int(number))
    return repr(float(number))


def normalize_task_id(raw: Any) -> str:
    """
    Convert a task identifier to its canonical string form.

    Older data stored ids as JSON numbers (or numeric strings such as
    "1704067200000.25"); those collapse to the same string regardless of
    which representation was persisted.
    """
    if raw is None or isinstance(raw, bool):
        raise ValueError(f"Invalid task id: {raw!r}")
    if isinstance(raw, (int, float)):
        return _format_numeric_id(raw)
    text = str(raw).strip()
    if not text:
        raise ValueError("Task id must not be empty")
    if NUMERIC_ID_PATTERN.match(text):
        return _format_numeric_id(float(text))
    return text


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def is_valid_time(value: Optional[str]) -> bool:
    return bool(value) and TIME_PATTERN.match(value) is not None


class TaskFields(BaseModel):
    """Editable task fields shared by Task and TaskCreate."""
    model_config = ConfigDict(populate_by_name=True)

    title: str
    details: str = ""
    category: Category = Category.UNCATEGORIZED
    priority: Priority = Priority.MEDIUM
    time_start: Optional[str] = Field(default=None, alias="timeStart")
    time_end: Optional[str] = Field(default=None, alias="timeEnd")
    date: Optional[str] = None
    due_date: Optional[str] = Field(default=None, alias="dueDate")
    repeat: Optional[Repeat] = None
    days: list[Weekday] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def _title_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be empty")
        return value

    @field_validator("details", mode="before")
    @classmethod
    def _details_text(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("time_start", "time_end", mode="before")
    @classmethod
    def _check_time(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        if value is not None and not is_valid_time(value):
            raise ValueError(f"time must be HH:MM (24h), got {value!r}")
        return value

    @field_validator("date", "due_date", mode="before")
    @classmethod
    def _check_date(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        if value is not None and not is_iso_date(value):
            raise ValueError(f"date must be YYYY-MM-DD, got {value!r}")
        return value

    @field_validator("repeat", mode="before")
    @classmethod
    def _once_means_no_repeat(cls, value: Any) -> Any:
        # The edit form sends "once" for one-off tasks
        value = _blank_to_none(value)
        return None if value == "once" else value

    @field_validator("days", mode="before")
    @classmethod
    def _days_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("days")
    @classmethod
    def _unique_days(cls, value: list[Weekday]) -> list[Weekday]:
        return sorted(set(value))


class Task(TaskFields):
    id: str
    completed: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def _canonical_id(cls, value: Any) -> str:
        return normalize_task_id(value)

    @model_validator(mode="after")
    def _check_schedule(self) -> "Task":
        if self.repeat == Repeat.DAYS and not self.days:
            raise ValueError('repeat "days" requires at least one weekday')
        if self.repeat != Repeat.DAYS:
            self.days = []
        if self.repeat is None and not self.date:
            raise ValueError("a one-off task needs a date")
        if self.time_start and self.time_end and self.time_start >= self.time_end:
            raise ValueError("timeStart must be before timeEnd")
        return self

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class TaskCreate(TaskFields):
    """Form submission for a new task; date also accepts phrases like "tomorrow"."""

    @model_validator(mode="before")
    @classmethod
    def _resolve_phrase(cls, data: Any) -> Any:
        if isinstance(data, dict):
            value = data.get("date")
            if isinstance(value, str) and value.strip() and not is_iso_date(value.strip()):
                data = {**data, "date": parse_date_expression(value) or value}
        return data


class TaskUpdate(BaseModel):
    """Partial edit; only fields that were sent are applied."""
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    details: Optional[str] = None
    category: Optional[Category] = None
    priority: Optional[Priority] = None
    time_start: Optional[str] = Field(default=None, alias="timeStart")
    time_end: Optional[str] = Field(default=None, alias="timeEnd")
    date: Optional[str] = None
    due_date: Optional[str] = Field(default=None, alias="dueDate")
    repeat: Optional[str] = None
    days: Optional[list[int]] = None

    def changes(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class TaskDraft(BaseModel):
    """
    A task as proposed by the generation layer.

    Everything is optional except category and priority, which are always
    filled in (unknown labels fall back to Uncategorized / medium).
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    title: Optional[str] = None
    details: Optional[str] = None
    description: Optional[str] = Field(default=None, exclude=True)
    category: Category = Category.UNCATEGORIZED
    priority: Priority = Priority.MEDIUM
    time_start: Optional[str] = Field(default=None, alias="timeStart")
    time_end: Optional[str] = Field(default=None, alias="timeEnd")
    date: Optional[str] = None
    due_date: Optional[str] = Field(default=None, alias="dueDate")
    repeat: Optional[str] = None
    days: list[int] = Field(default_factory=list)
    completed: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def _id_text(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> Category:
        return Category.coerce(value)

    @field_validator("priority", mode="before")
    @classmethod
    def _coerce_priority(cls, value: Any) -> Priority:
        return Priority.coerce(value)

    @field_validator("title", "details", "description", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return None

    # Wrongly typed schedule fields are dropped here and repaired by to_task()
    @field_validator("time_start", "time_end", "date", "due_date", "repeat", mode="before")
    @classmethod
    def _string_or_none(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None

    @field_validator("days", mode="before")
    @classmethod
    def _weekday_numbers(cls, value: Any) -> list[int]:
        if not isinstance(value, list):
            return []
        return [d for d in value if isinstance(d, int) and not isinstance(d, bool) and 0 <= d <= 6]

    @field_validator("completed", mode="before")
    @classmethod
    def _completed_flag(cls, value: Any) -> bool:
        return value is True

    def to_task(self, task_id: str, today: str) -> Task:
        """Build a stored Task, dropping whatever the draft got wrong."""
        repeat = self.repeat if self.repeat in (Repeat.EVERYDAY.value, Repeat.DAYS.value) else None
        days = sorted({d for d in self.days if 0 <= d <= 6}) if repeat == Repeat.DAYS.value else []
        if repeat == Repeat.DAYS.value and not days:
            repeat = None

        time_start = self.time_start if is_valid_time(self.time_start) else None
        time_end = self.time_end if is_valid_time(self.time_end) else None
        if time_start and time_end and time_start >= time_end:
            time_start = time_end = None

        return Task(
            id=task_id,
            title=(self.title or "").strip() or "AI Generated Task",
            details=self.details or self.description or "",
            category=self.category,
            priority=self.priority,
            time_start=time_start,
            time_end=time_end,
            date=self.date if is_iso_date(self.date) else today,
            due_date=self.due_date if is_iso_date(self.due_date) else None,
            repeat=repeat,
            days=days,
            completed=False,
        )

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
