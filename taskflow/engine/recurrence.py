"""Recurrence engine for taskflow.

Projects the next occurrence of a recurring series when an instance is
completed, and advances an open instance when the owner skips it.

Due-date modes:
- from_original:   next due = prior due date + interval * unit
- from_completion: next due = completion time + interval * unit

Series lifecycle: active -> inactive (terminal), either on explicit stop or
once the next projected due date would fall after ``end_date``.
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from dateutil.relativedelta import relativedelta

from taskflow.engine.clock import Clock, SystemClock, as_naive_utc
from taskflow.engine.errors import ConflictError, NotFoundError, ValidationError
from taskflow.engine.ports import PreferenceStore, SeriesStore, TaskStore
from taskflow.engine.priority import calculate_score
from taskflow.engine.validation import (
    validate_due_date_calculation,
    validate_interval,
    validate_pattern,
)
from taskflow.models.recurrence import (
    DEFAULT_DUE_DATE_CALCULATION,
    CategoryPreference,
    DueDateCalculation,
    RecurrencePattern,
    RecurrenceRule,
    SeriesHistory,
    SeriesHistoryEntry,
    SeriesUpdate,
    SkipResult,
    TaskSeries,
    UserPreferences,
)
from taskflow.models.task import Task, TaskKind
from taskflow.models.task_factory import create_task_base

logger = logging.getLogger(__name__)


def calculate_next_due_date(series: TaskSeries, base: datetime) -> datetime:
    """Add ``series.interval`` days, weeks or calendar months to ``base``.

    Monthly steps clamp to the last day of shorter months (Jan 31 -> Feb 28).
    """
    pattern = RecurrencePattern(series.pattern)
    if pattern == RecurrencePattern.DAILY:
        return base + relativedelta(days=series.interval)
    if pattern == RecurrencePattern.WEEKLY:
        return base + relativedelta(weeks=series.interval)
    if pattern == RecurrencePattern.MONTHLY:
        return base + relativedelta(months=series.interval)
    raise ValidationError("pattern", f"invalid recurrence pattern: {series.pattern}")


class RecurrenceEngine:
    def __init__(
        self,
        task_store: TaskStore,
        series_store: SeriesStore,
        preference_store: PreferenceStore,
        clock: Clock = None,
    ):
        self.task_store = task_store
        self.series_store = series_store
        self.preference_store = preference_store
        self.clock = clock or SystemClock()

    # Series management

    def create_series(self, user_id: str, task: Task, rule: RecurrenceRule) -> TaskSeries:
        """Make ``task`` the first occurrence of a new series."""
        pattern = validate_pattern(rule.pattern)
        interval = validate_interval(rule.interval)
        if rule.due_date_calculation is not None:
            mode = validate_due_date_calculation(rule.due_date_calculation)
        else:
            mode = self.get_effective_due_date_calculation(user_id, task.category)

        now = self.clock.now()
        series = self.series_store.create(
            TaskSeries(
                id=str(uuid.uuid4()),
                user_id=user_id,
                original_task_id=task.id,
                pattern=pattern,
                interval=interval,
                due_date_calculation=mode,
                end_date=as_naive_utc(rule.end_date),
                is_active=True,
                created_at=now,
                updated_at=now,
            )
        )
        try:
            self.task_store.update(task.model_copy(update={"series_id": series.id, "updated_at": now}))
        except Exception:
            logger.warning(f"Linking task {task.id} to series {series.id} failed; removing the series")
            self.series_store.delete(user_id, series.id)
            raise
        logger.info(f"Created {series.pattern} series {series.id} (every {series.interval}) for task {task.id}")
        return series

    def get_series(self, user_id: str, series_id: str) -> TaskSeries:
        series = self.series_store.get(user_id, series_id)
        if series is None:
            raise NotFoundError("task series", series_id)
        return series

    def list_series(self, user_id: str, active_only: bool = False) -> List[TaskSeries]:
        return self.series_store.list_for_user(user_id, active_only=active_only)

    def update_series(self, user_id: str, series_id: str, changes: SeriesUpdate) -> TaskSeries:
        series = self.get_series(user_id, series_id)
        update = {}
        if changes.pattern is not None:
            update["pattern"] = validate_pattern(changes.pattern)
        if changes.interval is not None:
            update["interval"] = validate_interval(changes.interval)
        if changes.end_date is not None:
            update["end_date"] = as_naive_utc(changes.end_date)
        if changes.due_date_calculation is not None:
            update["due_date_calculation"] = validate_due_date_calculation(changes.due_date_calculation)
        if changes.is_active is not None:
            if changes.is_active and not series.is_active:
                # Inactive is terminal.
                raise ConflictError("task series", "an inactive series cannot be reactivated", entity_ids=[series_id])
            update["is_active"] = changes.is_active
        update["updated_at"] = self.clock.now()
        return self.series_store.update(series.model_copy(update=update))

    def deactivate_series(self, user_id: str, series_id: str) -> TaskSeries:
        series = self.get_series(user_id, series_id)
        if series.is_active:
            self.series_store.deactivate(user_id, series_id)
            logger.info(f"Deactivated series {series_id}")
        return self.get_series(user_id, series_id)

    def get_series_history(self, user_id: str, series_id: str) -> SeriesHistory:
        series = self.get_series(user_id, series_id)
        tasks = self.task_store.list_by_series(user_id, series_id)
        entries = [
            SeriesHistoryEntry(
                task_id=t.id,
                title=t.title,
                status=t.status,
                due_date=t.due_date,
                completed_at=t.completed_at,
                created_at=t.created_at,
            )
            for t in tasks
        ]
        return SeriesHistory(series=series, tasks=entries, total=len(entries))

    # Occurrence projection

    def create_next_occurrence(
        self,
        series: TaskSeries,
        completed_instance: Task,
        mode: Optional[DueDateCalculation] = None,
    ) -> Optional[Task]:
        """Create the occurrence following ``completed_instance``.

        Args:
            series: Series the instance belongs to
            completed_instance: The instance that was just completed
            mode: Overrides the series' due-date mode for this projection

        Returns:
            The new task, or None when the series is inactive or has ended
            (an ended series is deactivated)
        """
        now = self.clock.now()
        if not series.is_active:
            return None
        if not series.can_generate_next(now):
            self._end_series(series, reason="end date passed")
            return None

        effective_mode = DueDateCalculation(mode or series.due_date_calculation)
        completed_at = as_naive_utc(completed_instance.completed_at) or now
        next_due = self._project(series, completed_instance, effective_mode, completed_at)

        if series.end_date is not None and next_due > series.end_date:
            self._end_series(series, reason=f"next due {next_due.isoformat()} after end date")
            return None

        next_task = create_task_base(
            user_id=completed_instance.user_id,
            title=completed_instance.title,
            now=now,
            description=completed_instance.description,
            user_priority=completed_instance.user_priority,
            estimated_effort=completed_instance.estimated_effort,
            category=completed_instance.category,
            due_date=next_due,
            task_kind=TaskKind.RECURRING_INSTANCE,
            series_id=series.id,
        )
        next_task = next_task.model_copy(update={"priority_score": calculate_score(next_task, now)})
        created = self.task_store.create(next_task)
        logger.info(f"Generated occurrence {created.id} of series {series.id} due {next_due.isoformat()}")
        return created

    def skip_occurrence(self, user_id: str, task_id: str) -> SkipResult:
        """Advance an open occurrence to its next slot without completing it.

        Only the schedule moves: bump count, completion timestamp, dependency
        edges and subtasks are untouched. If the next slot is past the end
        date the series ends and the instance keeps its date.
        """
        task = self.task_store.get(user_id, task_id)
        if task is None:
            raise NotFoundError("task", task_id)
        if task.series_id is None:
            raise ValidationError("task_id", "task is not part of a recurring series")
        if task.is_done:
            raise ConflictError("task", "cannot skip a completed occurrence", entity_ids=[task_id])

        series = self.get_series(user_id, task.series_id)
        if not series.is_active:
            raise ConflictError("task series", "task series is not active", entity_ids=[series.id])

        now = self.clock.now()
        next_due = self._project(series, task, DueDateCalculation(series.due_date_calculation), now)
        if series.end_date is not None and next_due > series.end_date:
            self._end_series(series, reason="skip moved past end date")
            return SkipResult(task_id=task_id, previous_due_date=task.due_date, series_ended=True)

        advanced = task.model_copy(update={"due_date": next_due, "updated_at": now})
        advanced = advanced.model_copy(update={"priority_score": calculate_score(advanced, now)})
        self.task_store.update(advanced)
        logger.info(f"Skipped occurrence {task_id}: due {task.due_date} -> {next_due}")
        return SkipResult(task_id=task_id, previous_due_date=task.due_date, new_due_date=next_due)

    def _project(
        self,
        series: TaskSeries,
        instance: Task,
        mode: DueDateCalculation,
        completion_time: datetime,
    ) -> datetime:
        prior_due = as_naive_utc(instance.due_date)
        if mode == DueDateCalculation.FROM_ORIGINAL and prior_due is not None:
            base = prior_due
        else:
            # from_completion, or an instance without a due date to anchor on
            base = completion_time
        return calculate_next_due_date(series, base)

    def _end_series(self, series: TaskSeries, reason: str) -> None:
        self.series_store.deactivate(series.user_id, series.id)
        logger.info(f"Series {series.id} ended: {reason}")

    # Preferences

    def get_effective_due_date_calculation(self, user_id: str, category: Optional[str]) -> DueDateCalculation:
        """Resolve category override -> owner default -> from_original."""
        if category:
            pref = self.preference_store.get_category_preference(user_id, category)
            if pref is not None:
                return DueDateCalculation(pref.due_date_calculation)

        prefs = self.preference_store.get_user_preferences(user_id)
        if prefs is not None:
            return DueDateCalculation(prefs.default_due_date_calculation)

        return DEFAULT_DUE_DATE_CALCULATION

    def set_default_preference(self, user_id: str, mode: str) -> UserPreferences:
        calc = validate_due_date_calculation(mode)
        return self.preference_store.upsert_user_preferences(
            UserPreferences(user_id=user_id, default_due_date_calculation=calc)
        )

    def set_category_preference(self, user_id: str, category: str, mode: str) -> CategoryPreference:
        if not category or not category.strip():
            raise ValidationError("category", "is required")
        calc = validate_due_date_calculation(mode)
        return self.preference_store.upsert_category_preference(
            CategoryPreference(user_id=user_id, category=category.strip(), due_date_calculation=calc)
        )

    def delete_category_preference(self, user_id: str, category: str) -> bool:
        return self.preference_store.delete_category_preference(user_id, category)
