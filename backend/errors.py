class PlannerError(Exception):
    """Base class for errors raised by the planner backend."""


class InvalidInput(PlannerError):
    """No usable content was supplied to a generation request."""


class AuthFailure(PlannerError):
    """The generation service rejected the configured credential."""


class MalformedModelOutput(PlannerError):
    """The generation service answered, but not with a usable task list."""


class TransportFailure(PlannerError):
    """Network error, timeout or unexpected status from the generation service."""


class ContentExtractionError(PlannerError):
    """Text could not be extracted from an uploaded file."""


class StorageFailure(PlannerError):
    """Reading or writing the persisted task list failed."""


class TaskNotFound(PlannerError):
    def __init__(self, task_id: str):
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id
