import logging
import threading
import uuid
from datetime import date
from typing import Iterable, Optional

from pydantic import ValidationError

from dates import DateLike, date_string
from database import TaskRepository
from errors import StorageFailure, TaskNotFound
from models import Task, TaskCreate, TaskDraft, normalize_task_id
from recurrence import occurs_on, tasks_for_date

logger = logging.getLogger(__name__)


def new_task_id() -> str:
    return str(uuid.uuid4())


class TaskStore:
    """
    Ordered task list plus the completion map.

    Every mutation is written through the repository before the in-memory
    state changes; when the write fails the StorageFailure reaches the
    caller and the store keeps its previous state. Mutations are
    serialized with a lock so concurrent requests cannot interleave.
    """

    def __init__(self, repository: TaskRepository):
        self._repository = repository
        self._tasks: list[Task] = []
        self._completion: dict[str, bool] = {}
        self._lock = threading.RLock()

    # ---- loading ----

    def load(self) -> None:
        """
        Read tasks and completion state from the repository.

        Legacy identifiers (JSON numbers, numeric strings) are converted to
        the canonical string form here, once; if anything changed the
        migrated documents are written back.
        """
        with self._lock:
            raw_tasks = self._repository.load_tasks()
            raw_completion = self._repository.load_completion()

            completion: dict[str, bool] = {}
            for key, value in raw_completion.items():
                try:
                    task_id = normalize_task_id(key)
                except ValueError:
                    logger.warning("Dropping completion entry with invalid id %r", key)
                    continue
                if value:
                    completion[task_id] = True

            tasks: list[Task] = []
            seen: set[str] = set()
            for index, raw in enumerate(raw_tasks):
                try:
                    task = Task.model_validate(raw)
                except ValidationError as e:
                    raise StorageFailure(f"Stored task #{index} is invalid: {e}") from e
                if task.id in seen:
                    raise StorageFailure(f"Stored task id {task.id!r} is not unique")
                seen.add(task.id)
                tasks.append(task.model_copy(update={"completed": completion.get(task.id, False)}))

            self._tasks = tasks
            self._completion = completion

            stored_tasks = [task.to_json() for task in tasks]
            if stored_tasks != raw_tasks or completion != raw_completion:
                logger.info("Migrating stored tasks to canonical form (%d tasks)", len(tasks))
                self._repository.save(stored_tasks, dict(completion))

            logger.info("Loaded %d tasks (%d completed)", len(tasks), len(completion))

    # ---- queries ----

    def all(self) -> list[Task]:
        with self._lock:
            return list(self._tasks)

    def get(self, task_id) -> Task:
        task_id = normalize_task_id(task_id)
        with self._lock:
            for task in self._tasks:
                if task.id == task_id:
                    return task
        raise TaskNotFound(task_id)

    def is_completed(self, task_id) -> bool:
        with self._lock:
            return self._completion.get(normalize_task_id(task_id), False)

    def tasks_for_date(self, target_date: DateLike) -> list[Task]:
        with self._lock:
            return tasks_for_date(self._tasks, target_date)

    def completed_count_for_date(self, target_date: DateLike) -> int:
        """How many tasks occurring on target_date are checked off."""
        return sum(1 for task in self.tasks_for_date(target_date) if task.completed)

    # ---- mutations ----

    def _commit(self, tasks: list[Task], completion: Optional[dict[str, bool]] = None) -> None:
        # Persist first; only swap in-memory state once the write succeeded
        self._repository.save(
            [task.to_json() for task in tasks],
            dict(completion) if completion is not None else None,
        )
        self._tasks = tasks
        if completion is not None:
            self._completion = completion

    def _index_of(self, task_id: str) -> int:
        for index, task in enumerate(self._tasks):
            if task.id == task_id:
                return index
        raise TaskNotFound(task_id)

    def add(self, task: Task) -> Task:
        with self._lock:
            if any(existing.id == task.id for existing in self._tasks):
                raise ValueError(f"Task id {task.id!r} already exists")
            task = task.model_copy(update={"completed": self._completion.get(task.id, False)})
            self._commit(self._tasks + [task])
            logger.info("Added task %s (%s)", task.id, task.title)
            return task

    def create(self, data: TaskCreate, today: Optional[date] = None) -> Task:
        """Add a task from a form submission; one-off tasks default to today."""
        fields = data.model_dump(by_alias=True)
        if not fields.get("date"):
            fields["date"] = date_string(today or date.today())
        return self.add(Task.model_validate({**fields, "id": new_task_id()}))

    def add_drafts(self, drafts: Iterable[TaskDraft], today: Optional[date] = None) -> list[Task]:
        """Append generated drafts as new tasks with fresh ids, in one write."""
        today_str = date_string(today or date.today())
        with self._lock:
            new_tasks = [draft.to_task(new_task_id(), today_str) for draft in drafts]
            self._commit(self._tasks + new_tasks)
            logger.info("Added %d generated tasks", len(new_tasks))
            return new_tasks

    def update(self, task_id, changes: dict) -> Task:
        """
        Apply field changes (JSON names, e.g. "timeStart") to a task.

        The id is immutable; completion state is owned by the completion map
        and cannot be changed here.
        """
        task_id = normalize_task_id(task_id)
        with self._lock:
            index = self._index_of(task_id)
            current = self._tasks[index]
            if "id" in changes and normalize_task_id(changes["id"]) != task_id:
                raise ValueError("Task id cannot be changed")

            merged = {**current.to_json(), **changes, "id": task_id, "completed": current.completed}
            updated = Task.model_validate(merged)

            tasks = list(self._tasks)
            tasks[index] = updated
            self._commit(tasks)
            logger.info("Updated task %s", task_id)
            return updated

    def delete(self, task_id) -> Task:
        task_id = normalize_task_id(task_id)
        with self._lock:
            index = self._index_of(task_id)
            removed = self._tasks[index]
            tasks = self._tasks[:index] + self._tasks[index + 1:]
            completion = {k: v for k, v in self._completion.items() if k != task_id}
            self._commit(tasks, completion)
            logger.info("Deleted task %s", task_id)
            return removed

    def delete_for_date(self, target_date: DateLike) -> list[Task]:
        """
        Delete every task occurring on target_date and purge its completion entry.

        Recurring tasks occur on the date too, so they are removed entirely,
        not just for that day.
        """
        with self._lock:
            removed = [task for task in self._tasks if occurs_on(task, target_date)]
            if not removed:
                return []
            removed_ids = {task.id for task in removed}
            tasks = [task for task in self._tasks if task.id not in removed_ids]
            completion = {k: v for k, v in self._completion.items() if k not in removed_ids}
            self._commit(tasks, completion)
            logger.info("Deleted %d tasks for %s", len(removed), target_date)
            return removed

    def set_completed(self, task_id, completed: bool) -> Task:
        task_id = normalize_task_id(task_id)
        with self._lock:
            index = self._index_of(task_id)
            completion = dict(self._completion)
            if completed:
                completion[task_id] = True
            else:
                completion.pop(task_id, None)

            tasks = list(self._tasks)
            tasks[index] = tasks[index].model_copy(update={"completed": completed})
            self._commit(tasks, completion)
            return tasks[index]

    def toggle_completed(self, task_id) -> Task:
        with self._lock:
            return self.set_completed(task_id, not self.is_completed(task_id))
