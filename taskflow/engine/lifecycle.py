"""Task lifecycle orchestration.

Wires the priority calculator, dependency manager, subtask service and
recurrence engine together for create / bump / edit / complete.

Completion order:
1. subtask gate (ConflictError naming incomplete subtasks)
2. dependency gate (ConflictError naming incomplete blockers)
3. mark done + completed_at
4. project the next occurrence when the task belongs to a series
5. report dependents that are now unblocked
"""

import logging
from typing import Optional

from taskflow.engine.clock import Clock, SystemClock, as_naive_utc
from taskflow.engine.dependencies import DependencyGraphManager
from taskflow.engine.errors import ConflictError, NotFoundError, ValidationError
from taskflow.engine.ports import TaskStore
from taskflow.engine.priority import PriorityResult, calculate, calculate_score
from taskflow.engine.recurrence import RecurrenceEngine
from taskflow.engine.subtasks import SubtaskService
from taskflow.engine.validation import (
    validate_category,
    validate_due_date_calculation,
    validate_interval,
    validate_pattern,
    validate_title,
    validate_user_priority,
)
from taskflow.models.lifecycle import CompletionOptions, TaskCompletionResult, TaskCreate, TaskUpdate
from taskflow.models.recurrence import RecurrenceRule, TaskSeries
from taskflow.models.task import Task, TaskStatus
from taskflow.models.task_factory import create_task_base

logger = logging.getLogger(__name__)


class TaskLifecycleService:
    def __init__(
        self,
        task_store: TaskStore,
        dependencies: DependencyGraphManager,
        subtasks: SubtaskService,
        recurrence: RecurrenceEngine,
        clock: Clock = None,
    ):
        self.task_store = task_store
        self.dependencies = dependencies
        self.subtasks = subtasks
        self.recurrence = recurrence
        self.clock = clock or SystemClock()

    def _require_task(self, user_id: str, task_id: str) -> Task:
        task = self.task_store.get(user_id, task_id)
        if task is None:
            raise NotFoundError("task", task_id)
        return task

    def _rescore(self, task: Task) -> Task:
        return task.model_copy(update={"priority_score": calculate_score(task, self.clock.now())})

    def create_task(
        self, user_id: str, request: TaskCreate, *, recurrence: Optional[RecurrenceRule] = None
    ) -> Task:
        """Create a regular task with its priority score computed immediately.

        When ``recurrence`` is given the task becomes the first occurrence of
        a new series. The rule is validated before anything is written.
        """
        title = validate_title(request.title)
        category = validate_category(request.category)
        if request.user_priority is not None:
            validate_user_priority(request.user_priority)
        if recurrence is not None:
            validate_pattern(recurrence.pattern)
            validate_interval(recurrence.interval)
            if recurrence.due_date_calculation is not None:
                validate_due_date_calculation(recurrence.due_date_calculation)

        now = self.clock.now()
        task = create_task_base(
            user_id=user_id,
            title=title,
            now=now,
            description=request.description,
            user_priority=request.user_priority,
            estimated_effort=request.estimated_effort,
            category=category,
            due_date=as_naive_utc(request.due_date),
        )
        task = self.task_store.create(self._rescore(task))
        logger.debug(f"Created task {task.id} for user {user_id} (score {task.priority_score})")

        if recurrence is not None:
            try:
                series = self.recurrence.create_series(user_id, task, recurrence)
            except Exception:
                # Without its series the new task would be a stray one-off.
                logger.warning(f"Creating the series for task {task.id} failed; removing the task")
                self.task_store.delete(user_id, task.id)
                raise
            task = self._require_task(user_id, task.id)
            logger.debug(f"Task {task.id} starts series {series.id}")
        return task

    def bump(self, user_id: str, task_id: str) -> Task:
        """Defer a task: increments bump_count and recomputes the score."""
        task = self._require_task(user_id, task_id)
        if task.is_done:
            raise ConflictError("task", "cannot bump a completed task", entity_ids=[task_id])

        bumped = task.model_copy(
            update={"bump_count": task.bump_count + 1, "updated_at": self.clock.now()}
        )
        updated = self.task_store.update(self._rescore(bumped))
        logger.debug(f"Bumped task {task_id} (bump_count={updated.bump_count}, score={updated.priority_score})")
        return updated

    def update_task(self, user_id: str, task_id: str, changes: TaskUpdate) -> Task:
        """Apply a partial edit and recompute the score.

        A transition to done is routed through ``complete`` so that the
        completion gates always apply.
        """
        task = self._require_task(user_id, task_id)
        provided = changes.model_fields_set
        update = {}

        if "title" in provided and changes.title is not None:
            update["title"] = validate_title(changes.title)
        if "description" in provided:
            update["description"] = changes.description
        if "user_priority" in provided and changes.user_priority is not None:
            update["user_priority"] = validate_user_priority(changes.user_priority)
        if "due_date" in provided:
            update["due_date"] = as_naive_utc(changes.due_date)
        if "estimated_effort" in provided:
            update["estimated_effort"] = changes.estimated_effort
        if "category" in provided:
            update["category"] = validate_category(changes.category)

        new_status = changes.status if "status" in provided else None
        if new_status is not None and TaskStatus(new_status) == TaskStatus.DONE and not task.is_done:
            # Gate before writing anything.
            self.subtasks.validate_parent_completion(user_id, task_id)
            self.dependencies.validate_completion(user_id, task_id)
            if update:
                self._save_edit(task, update)
            return self.complete(user_id, task_id).completed_task

        if new_status is not None:
            update["status"] = TaskStatus(new_status)
            if task.is_done and TaskStatus(new_status) != TaskStatus.DONE:
                # Reopened
                update["completed_at"] = None

        if not update:
            return task
        return self._save_edit(task, update)

    def _save_edit(self, task: Task, update: dict) -> Task:
        update["updated_at"] = self.clock.now()
        # Re-validate through the model so enum fields are normalized.
        edited = Task(**{**task.model_dump(), **update})
        saved = self.task_store.update(self._rescore(edited))
        logger.debug(f"Updated task {task.id} fields: {', '.join(sorted(k for k in update if k != 'updated_at'))}")
        return saved

    def recalculate(self, user_id: str, task_id: str) -> PriorityResult:
        """Recompute a task's score, persisting it when it changed."""
        task = self._require_task(user_id, task_id)
        result = calculate(task, self.clock.now())
        if result.score != task.priority_score:
            self.task_store.update(task.model_copy(update={"priority_score": result.score}))
        return result

    def complete(
        self, user_id: str, task_id: str, options: Optional[CompletionOptions] = None
    ) -> TaskCompletionResult:
        """Complete a task and run the follow-up steps.

        Raises:
            NotFoundError: unknown task
            ConflictError: already done, incomplete subtasks or incomplete blockers
            ValidationError: invalid due-date calculation override
        """
        options = options or CompletionOptions()
        task = self._require_task(user_id, task_id)
        if task.is_done:
            raise ConflictError("task", "task is already completed", entity_ids=[task_id])

        mode_override = None
        if options.due_date_calculation is not None:
            mode_override = validate_due_date_calculation(options.due_date_calculation)

        self.subtasks.validate_parent_completion(user_id, task_id)
        self.dependencies.validate_completion(user_id, task_id)

        now = self.clock.now()
        completed = self.task_store.update(
            task.model_copy(update={"status": TaskStatus.DONE, "completed_at": now, "updated_at": now})
        )
        logger.info(f"Completed task {task_id} for user {user_id}")

        next_task = None
        series = None
        if completed.series_id is not None:
            try:
                next_task, series = self._advance_series(user_id, completed, options, mode_override)
            except Exception as e:
                # Completion stands.
                logger.warning(f"Recurrence step failed for task {task_id} (completion kept): {type(e).__name__}: {str(e)}")

        unblocked = self.dependencies.on_blocker_completed(user_id, task_id)

        return TaskCompletionResult(
            completed_task=completed,
            next_task=next_task,
            series=series,
            unblocked_task_ids=unblocked.unblocked_task_ids,
        )

    def _advance_series(self, user_id, completed: Task, options: CompletionOptions, mode_override):
        series: Optional[TaskSeries] = self.recurrence.series_store.get(user_id, completed.series_id)
        if series is None:
            logger.warning(f"Task {completed.id} references missing series {completed.series_id}")
            return None, None

        if options.stop_recurrence:
            return None, self.recurrence.deactivate_series(user_id, series.id)

        if options.skip_next_occurrence:
            logger.info(f"Not generating the next occurrence of series {series.id} (skipped on completion)")
            return None, series

        if mode_override is not None:
            self._save_mode_preferences(user_id, completed, options, mode_override)

        next_task = self.recurrence.create_next_occurrence(series, completed, mode=mode_override)
        return next_task, self.recurrence.get_series(user_id, series.id)

    def _save_mode_preferences(self, user_id, completed: Task, options: CompletionOptions, mode) -> None:
        try:
            if options.save_as_default:
                self.recurrence.set_default_preference(user_id, mode)
            if options.save_for_category and completed.category:
                self.recurrence.set_category_preference(user_id, completed.category, mode)
        except ValidationError as e:
            logger.warning(f"Could not save due date preference for user {user_id}: {str(e)}")
