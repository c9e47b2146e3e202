from typing import Iterable

from dates import DateLike, Weekday, date_string, to_date
from models import Repeat, Task


def occurs_on(task: Task, target_date: DateLike) -> bool:
    """
    Check whether a task is scheduled on a specific date.

    "everyday" tasks occur on every date, "days" tasks on the listed
    weekdays (Weekday convention, Monday=0), anything else only on its
    fixed date. Returns False for an unparseable date.
    """
    try:
        target = to_date(target_date)
    except (TypeError, ValueError):
        return False

    if task.repeat == Repeat.EVERYDAY:
        return True
    if task.repeat == Repeat.DAYS:
        return Weekday.of(target) in task.days
    return task.date == date_string(target)


def tasks_for_date(tasks: Iterable[Task], target_date: DateLike) -> list[Task]:
    """Tasks occurring on target_date, in their original order."""
    return [task for task in tasks if occurs_on(task, target_date)]
