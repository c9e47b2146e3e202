import math
import re
import uuid
from datetime import date, timedelta
from typing import Callable, Optional

from dates import date_string
from models import Category, Priority, TaskDraft

# Checked in order; the first class with a matching word wins
CATEGORY_KEYWORDS = [
    (Category.WORK, {"work", "job", "business", "office", "meeting", "project", "client"}),
    (Category.PERSONAL, {"personal", "family", "home", "house"}),
    (Category.HEALTH, {"health", "exercise", "gym", "workout", "diet"}),
    (Category.EDUCATION, {"study", "learn", "course", "education", "school"}),
]

URGENT_KEYWORDS = {"urgent", "asap", "immediate", "critical", "emergency"}
LOW_URGENCY_KEYWORDS = {"low", "sometime", "when"}

MIN_TASKS = 3
MAX_TASKS = 5
CHARS_PER_TASK = 50
FIRST_START_HOUR = 9
HOURS_BETWEEN_TASKS = 2

WORD_PATTERN = re.compile(r"[a-z0-9']+")


def tokenize(content: str) -> set[str]:
    return set(WORD_PATTERN.findall(content.lower()))


def classify_category(words: set[str]) -> Category:
    for category, keywords in CATEGORY_KEYWORDS:
        if words & keywords:
            return category
    return Category.UNCATEGORIZED


def classify_priority(words: set[str]) -> Priority:
    if words & URGENT_KEYWORDS:
        return Priority.HIGH
    if words & LOW_URGENCY_KEYWORDS:
        return Priority.LOW
    return Priority.MEDIUM


def task_count_for(content: str) -> int:
    return min(MAX_TASKS, max(MIN_TASKS, math.ceil(len(content) / CHARS_PER_TASK)))


class FallbackGenerator:
    """
    Offline task synthesis used when the AI service is unavailable or its
    answer is unusable.

    Output only depends on the content and today's date (apart from the
    batch token in the ids): 3-5 one-hour tasks on consecutive days,
    starting today at 09:00 and two hours later each day.
    """

    def __init__(self, today: Callable[[], date] = date.today):
        self._today = today

    def generate(self, content: str, batch: Optional[str] = None) -> list[TaskDraft]:
        content = content or ""
        words = tokenize(content)
        category = classify_category(words)
        priority = classify_priority(words)
        batch = batch or uuid.uuid4().hex[:12]
        today = self._today()

        tasks = []
        for i in range(task_count_for(content)):
            start_hour = FIRST_START_HOUR + i * HOURS_BETWEEN_TASKS
            tasks.append(TaskDraft(
                id=f"fallback-{batch}-{i}",
                title=f"Task {i + 1} for {content[:30]}...",
                details=f"Generated fallback task based on: {content}",
                category=category,
                priority=priority,
                time_start=f"{start_hour:02d}:00",
                time_end=f"{start_hour + 1:02d}:00",
                date=date_string(today + timedelta(days=i)),
                due_date=None,
                repeat=None,
                days=[],
                completed=False,
            ))
        return tasks
