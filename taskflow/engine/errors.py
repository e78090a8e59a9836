"""Domain errors raised by the taskflow engine.

Every failure is a typed exception carrying the offending entity so the
calling layer can map it to a user-facing response without parsing text.
"""

from typing import List, Optional, Sequence


class TaskflowError(Exception):
    """Base class for all engine errors."""


class ValidationError(TaskflowError):
    """A field failed validation (e.g. nested subtask, invalid interval)."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        if field:
            super().__init__(f"validation error: {field} - {message}")
        else:
            super().__init__(f"validation error: {message}")


class NotFoundError(TaskflowError):
    """Unknown (or foreign) task, series or owner reference."""

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        self.resource = resource
        self.resource_id = resource_id
        if resource_id:
            super().__init__(f"{resource} not found: {resource_id}")
        else:
            super().__init__(f"{resource} not found")


class ConflictError(TaskflowError):
    """The operation conflicts with current state.

    ``entity_ids`` names the blocking entities (incomplete blockers,
    incomplete subtasks, an existing edge, ...).
    """

    def __init__(self, resource: str, message: str, entity_ids: Optional[Sequence[str]] = None):
        self.resource = resource
        self.message = message
        self.entity_ids: List[str] = list(entity_ids or [])
        detail = f"conflict: {resource} - {message}"
        if self.entity_ids:
            detail = f"{detail} ({', '.join(self.entity_ids)})"
        super().__init__(detail)


class SelfDependencyError(TaskflowError):
    """A task cannot be blocked by itself."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"a task cannot depend on itself: {task_id}")


class CycleDetectedError(TaskflowError):
    """Adding ``task_id`` blocked-by ``blocked_by_id`` would close a cycle.

    ``path`` is the existing chain from ``blocked_by_id`` back to ``task_id``.
    """

    def __init__(self, task_id: str, blocked_by_id: str, path: Optional[Sequence[str]] = None):
        self.task_id = task_id
        self.blocked_by_id = blocked_by_id
        self.path: List[str] = list(path or [])
        message = f"adding dependency {task_id} -> {blocked_by_id} would create a cycle"
        if self.path:
            message = f"{message} (existing chain: {' -> '.join(self.path)})"
        super().__init__(message)

    @property
    def edge(self) -> tuple:
        return (self.task_id, self.blocked_by_id)
