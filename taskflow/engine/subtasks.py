"""Subtask aggregation for taskflow.

Single-level hierarchy: a regular task may own subtasks, a subtask may not.
A parent can only be completed once every subtask is done.
"""

import logging
from typing import List

from taskflow.engine.clock import Clock, SystemClock
from taskflow.engine.errors import ConflictError, NotFoundError, ValidationError
from taskflow.engine.ports import TaskStore
from taskflow.engine.priority import calculate_score
from taskflow.engine.validation import validate_user_priority
from taskflow.models.subtask import CreateSubtaskRequest, SubtaskCompletionResult, SubtaskProgress
from taskflow.models.task import Task, TaskKind, TaskStatus
from taskflow.models.task_factory import create_task_base

logger = logging.getLogger(__name__)


class SubtaskService:
    def __init__(self, task_store: TaskStore, clock: Clock = None):
        self.task_store = task_store
        self.clock = clock or SystemClock()

    def _require_parent(self, user_id: str, parent_id: str) -> Task:
        parent = self.task_store.get(user_id, parent_id)
        if parent is None:
            raise NotFoundError("parent task", parent_id)
        return parent

    def create_subtask(self, user_id: str, parent_id: str, request: CreateSubtaskRequest) -> Task:
        """Create a subtask under ``parent_id``.

        The subtask inherits the parent's category unless the request
        overrides it.

        Raises:
            NotFoundError: unknown parent
            ValidationError: the parent is itself a subtask, or a field is invalid
        """
        parent = self._require_parent(user_id, parent_id)
        if not parent.can_have_subtasks():
            raise ValidationError(
                "parent_task_id", "subtasks cannot have subtasks (single-level nesting only)"
            )

        if request.user_priority is not None:
            validate_user_priority(request.user_priority)

        now = self.clock.now()
        subtask = create_task_base(
            user_id=user_id,
            title=request.title,
            now=now,
            description=request.description,
            user_priority=request.user_priority,
            estimated_effort=request.estimated_effort,
            category=request.category if request.category is not None else parent.category,
            due_date=request.due_date,
            task_kind=TaskKind.SUBTASK,
            parent_task_id=parent.id,
        )
        subtask = subtask.model_copy(update={"priority_score": calculate_score(subtask, now)})
        created = self.task_store.create(subtask)
        logger.debug(f"Created subtask {created.id} under {parent.id}")
        return created

    def get_subtasks(self, user_id: str, parent_id: str) -> List[Task]:
        self._require_parent(user_id, parent_id)
        return self.task_store.get_subtasks(user_id, parent_id)

    def get_progress(self, user_id: str, parent_id: str) -> SubtaskProgress:
        subtasks = self.get_subtasks(user_id, parent_id)
        total = len(subtasks)
        if total == 0:
            return SubtaskProgress(parent_id=parent_id)
        completed = sum(1 for s in subtasks if s.is_done)
        return SubtaskProgress(
            parent_id=parent_id,
            completed_count=completed,
            total_count=total,
            percentage=round(completed / total * 100.0, 2),
            has_subtasks=True,
        )

    def can_complete_parent(self, user_id: str, parent_id: str) -> bool:
        self._require_parent(user_id, parent_id)
        return not self.task_store.list_incomplete_subtask_ids(user_id, parent_id)

    def validate_parent_completion(self, user_id: str, task_id: str) -> None:
        """Raise ConflictError naming the incomplete subtasks, if any."""
        incomplete = self.task_store.list_incomplete_subtask_ids(user_id, task_id)
        if incomplete:
            raise ConflictError(
                "task",
                "cannot complete task with incomplete subtasks",
                entity_ids=incomplete,
            )

    def complete_subtask(self, user_id: str, subtask_id: str) -> SubtaskCompletionResult:
        """Mark a subtask done and report whether its parent is now completable.

        The parent itself is never completed here.
        """
        subtask = self.task_store.get(user_id, subtask_id)
        if subtask is None:
            raise NotFoundError("subtask", subtask_id)
        if not subtask.is_subtask or subtask.parent_task_id is None:
            raise ValidationError("task_id", "task is not a subtask")

        if not subtask.is_done:
            now = self.clock.now()
            subtask = self.task_store.update(
                subtask.model_copy(
                    update={"status": TaskStatus.DONE, "completed_at": now, "updated_at": now}
                )
            )
            logger.debug(f"Completed subtask {subtask.id}")

        remaining = self.task_store.list_incomplete_subtask_ids(user_id, subtask.parent_task_id)
        return SubtaskCompletionResult(
            subtask=subtask,
            parent_id=subtask.parent_task_id,
            all_siblings_done=not remaining,
        )
