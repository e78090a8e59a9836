"""Tests for the recurrence engine."""

import pytest
from datetime import datetime

from taskflow.engine.errors import ConflictError, NotFoundError, ValidationError
from taskflow.engine.recurrence import calculate_next_due_date
from taskflow.models.recurrence import (
    DueDateCalculation,
    RecurrencePattern,
    RecurrenceRule,
    SeriesUpdate,
    TaskSeries,
)
from taskflow.models.task import TaskEffort, TaskKind, TaskStatus


def _series(pattern, interval=1, end_date=None):
    now = datetime(2025, 1, 1)
    return TaskSeries(
        id="series-1",
        user_id="test-user-123",
        pattern=pattern,
        interval=interval,
        end_date=end_date,
        created_at=now,
        updated_at=now,
    )


def _complete(task_repository, task, at):
    return task_repository.update(
        task.model_copy(update={"status": TaskStatus.DONE, "completed_at": at, "updated_at": at})
    )


class TestCalculateNextDueDate:
    def test_daily_weekly_monthly(self):
        base = datetime(2025, 1, 15, 9, 30)
        assert calculate_next_due_date(_series(RecurrencePattern.DAILY, 3), base) == datetime(2025, 1, 18, 9, 30)
        assert calculate_next_due_date(_series(RecurrencePattern.WEEKLY, 2), base) == datetime(2025, 1, 29, 9, 30)
        assert calculate_next_due_date(_series(RecurrencePattern.MONTHLY, 1), base) == datetime(2025, 2, 15, 9, 30)

    def test_month_end_is_clamped(self):
        series = _series(RecurrencePattern.MONTHLY)
        assert calculate_next_due_date(series, datetime(2025, 1, 31)) == datetime(2025, 2, 28)
        assert calculate_next_due_date(series, datetime(2024, 1, 31)) == datetime(2024, 2, 29)

    def test_monthly_crosses_year(self):
        series = _series(RecurrencePattern.MONTHLY, interval=2)
        assert calculate_next_due_date(series, datetime(2025, 11, 30)) == datetime(2026, 1, 30)


class TestCreateSeries:
    def test_links_task_to_series(self, recurrence_engine, task_repository, make_task, test_user_id):
        task = make_task(due_date=datetime(2025, 1, 1))

        series = recurrence_engine.create_series(test_user_id, task, RecurrenceRule(pattern="weekly"))

        assert series.is_active is True
        assert series.pattern == RecurrencePattern.WEEKLY
        assert series.interval == 1
        assert series.due_date_calculation == DueDateCalculation.FROM_ORIGINAL
        assert series.original_task_id == task.id
        assert task_repository.get(test_user_id, task.id).series_id == series.id

    @pytest.mark.parametrize("interval", [0, -1, 366])
    def test_invalid_interval(self, recurrence_engine, make_task, test_user_id, interval):
        task = make_task()
        with pytest.raises(ValidationError) as exc_info:
            recurrence_engine.create_series(test_user_id, task, RecurrenceRule(pattern="daily", interval=interval))
        assert exc_info.value.field == "interval"

    def test_invalid_pattern(self, recurrence_engine, make_task, test_user_id):
        task = make_task()
        with pytest.raises(ValidationError) as exc_info:
            recurrence_engine.create_series(test_user_id, task, RecurrenceRule(pattern="hourly"))
        assert exc_info.value.field == "pattern"

    def test_mode_defaults_to_owner_preference(self, recurrence_engine, make_task, test_user_id):
        recurrence_engine.set_default_preference(test_user_id, "from_completion")
        task = make_task()
        series = recurrence_engine.create_series(test_user_id, task, RecurrenceRule(pattern="daily"))
        assert series.due_date_calculation == DueDateCalculation.FROM_COMPLETION

    def test_link_failure_removes_series(
        self, recurrence_engine, task_repository, series_repository, make_task, monkeypatch, test_user_id
    ):
        task = make_task()

        def fail(*args, **kwargs):
            raise RuntimeError("task update failed")

        monkeypatch.setattr(task_repository, "update", fail)

        with pytest.raises(RuntimeError):
            recurrence_engine.create_series(test_user_id, task, RecurrenceRule(pattern="weekly"))

        assert series_repository.list_for_user(test_user_id) == []
        assert task_repository.get(test_user_id, task.id).series_id is None


class TestCreateNextOccurrence:
    def _recurring(self, recurrence_engine, make_task, test_user_id, rule, **task_fields):
        task = make_task(**task_fields)
        series = recurrence_engine.create_series(test_user_id, task, rule)
        return recurrence_engine.get_series(test_user_id, series.id), task

    def test_weekly_from_original_ignores_late_completion(
        self, recurrence_engine, task_repository, make_task, clock, test_user_id
    ):
        series, task = self._recurring(
            recurrence_engine, make_task, test_user_id,
            RecurrenceRule(pattern="weekly", due_date_calculation="from_original"),
            due_date=datetime(2025, 1, 1),
        )
        clock.set(datetime(2025, 1, 5, 18, 0))
        done = _complete(task_repository, task_repository.get(test_user_id, task.id), clock.now())

        next_task = recurrence_engine.create_next_occurrence(series, done)

        assert next_task.due_date == datetime(2025, 1, 8)
        assert next_task.series_id == series.id
        assert next_task.task_kind == TaskKind.RECURRING_INSTANCE
        assert next_task.status == TaskStatus.TODO
        assert next_task.id != task.id

    def test_weekly_from_completion(self, recurrence_engine, task_repository, make_task, clock, test_user_id):
        series, task = self._recurring(
            recurrence_engine, make_task, test_user_id,
            RecurrenceRule(pattern="weekly", due_date_calculation="from_completion"),
            due_date=datetime(2025, 1, 1),
        )
        clock.set(datetime(2025, 1, 5, 18, 0))
        done = _complete(task_repository, task_repository.get(test_user_id, task.id), clock.now())

        next_task = recurrence_engine.create_next_occurrence(series, done)

        assert next_task.due_date == datetime(2025, 1, 12, 18, 0)

    def test_mode_override(self, recurrence_engine, task_repository, make_task, clock, test_user_id):
        series, task = self._recurring(
            recurrence_engine, make_task, test_user_id,
            RecurrenceRule(pattern="daily", due_date_calculation="from_original"),
            due_date=datetime(2025, 1, 1),
        )
        clock.set(datetime(2025, 1, 5))
        done = _complete(task_repository, task_repository.get(test_user_id, task.id), clock.now())

        next_task = recurrence_engine.create_next_occurrence(
            series, done, mode=DueDateCalculation.FROM_COMPLETION
        )

        assert next_task.due_date == datetime(2025, 1, 6)

    def test_copies_fields_and_resets_bumps(self, recurrence_engine, task_repository, make_task, clock, test_user_id):
        series, task = self._recurring(
            recurrence_engine, make_task, test_user_id,
            RecurrenceRule(pattern="daily"),
            title="Water plants",
            description="Both balconies",
            user_priority=8,
            estimated_effort=TaskEffort.SMALL,
            category="home",
            bump_count=4,
            due_date=datetime(2025, 1, 10),
        )
        done = _complete(task_repository, task_repository.get(test_user_id, task.id), clock.now())

        next_task = recurrence_engine.create_next_occurrence(series, done)

        assert next_task.title == "Water plants"
        assert next_task.description == "Both balconies"
        assert next_task.user_priority == 8
        assert next_task.estimated_effort == TaskEffort.SMALL
        assert next_task.category == "home"
        assert next_task.bump_count == 0
        assert next_task.priority_score > 0

    def test_end_date_deactivates_series(self, recurrence_engine, task_repository, make_task, clock, test_user_id):
        series, task = self._recurring(
            recurrence_engine, make_task, test_user_id,
            RecurrenceRule(pattern="weekly", end_date=datetime(2025, 1, 20)),
            due_date=datetime(2025, 1, 15),
        )
        clock.set(datetime(2025, 1, 15))
        done = _complete(task_repository, task_repository.get(test_user_id, task.id), clock.now())

        assert recurrence_engine.create_next_occurrence(series, done) is None
        assert recurrence_engine.get_series(test_user_id, series.id).is_active is False
        assert len(task_repository.list_by_series(test_user_id, series.id)) == 1

    def test_inactive_series_generates_nothing(self, recurrence_engine, task_repository, make_task, clock, test_user_id):
        series, task = self._recurring(
            recurrence_engine, make_task, test_user_id, RecurrenceRule(pattern="daily"),
            due_date=datetime(2025, 1, 10),
        )
        series = recurrence_engine.deactivate_series(test_user_id, series.id)
        done = _complete(task_repository, task_repository.get(test_user_id, task.id), clock.now())

        assert recurrence_engine.create_next_occurrence(series, done) is None

    def test_instance_without_due_date_anchors_on_completion(
        self, recurrence_engine, task_repository, make_task, clock, test_user_id
    ):
        series, task = self._recurring(
            recurrence_engine, make_task, test_user_id, RecurrenceRule(pattern="daily"),
        )
        done = _complete(task_repository, task_repository.get(test_user_id, task.id), clock.now())

        next_task = recurrence_engine.create_next_occurrence(series, done)

        assert next_task.due_date == datetime(2025, 1, 11, 12, 0)


class TestSkipOccurrence:
    def test_skip_advances_schedule_only(self, recurrence_engine, task_repository, make_task, test_user_id):
        task = make_task(due_date=datetime(2025, 1, 1), bump_count=2)
        series = recurrence_engine.create_series(test_user_id, task, RecurrenceRule(pattern="weekly"))

        result = recurrence_engine.skip_occurrence(test_user_id, task.id)

        assert result.previous_due_date == datetime(2025, 1, 1)
        assert result.new_due_date == datetime(2025, 1, 8)
        assert result.series_ended is False
        skipped = task_repository.get(test_user_id, task.id)
        assert skipped.due_date == datetime(2025, 1, 8)
        assert skipped.status == TaskStatus.TODO
        assert skipped.completed_at is None
        assert skipped.bump_count == 2
        assert len(task_repository.list_by_series(test_user_id, series.id)) == 1

    def test_skip_past_end_date_ends_series(self, recurrence_engine, task_repository, make_task, test_user_id):
        task = make_task(due_date=datetime(2025, 1, 1))
        series = recurrence_engine.create_series(
            test_user_id, task, RecurrenceRule(pattern="weekly", end_date=datetime(2025, 1, 5))
        )

        result = recurrence_engine.skip_occurrence(test_user_id, task.id)

        assert result.series_ended is True
        assert result.new_due_date is None
        assert task_repository.get(test_user_id, task.id).due_date == datetime(2025, 1, 1)
        assert recurrence_engine.get_series(test_user_id, series.id).is_active is False

    def test_skip_requires_recurring_open_task(self, recurrence_engine, task_repository, make_task, clock, test_user_id):
        plain = make_task()
        with pytest.raises(ValidationError):
            recurrence_engine.skip_occurrence(test_user_id, plain.id)

        task = make_task(due_date=datetime(2025, 1, 1))
        recurrence_engine.create_series(test_user_id, task, RecurrenceRule(pattern="daily"))
        _complete(task_repository, task_repository.get(test_user_id, task.id), clock.now())
        with pytest.raises(ConflictError):
            recurrence_engine.skip_occurrence(test_user_id, task.id)

        with pytest.raises(NotFoundError):
            recurrence_engine.skip_occurrence(test_user_id, "missing")


class TestPreferences:
    def test_resolution_order(self, recurrence_engine, test_user_id):
        assert (
            recurrence_engine.get_effective_due_date_calculation(test_user_id, "work")
            == DueDateCalculation.FROM_ORIGINAL
        )

        recurrence_engine.set_default_preference(test_user_id, "from_completion")
        assert (
            recurrence_engine.get_effective_due_date_calculation(test_user_id, "work")
            == DueDateCalculation.FROM_COMPLETION
        )

        recurrence_engine.set_category_preference(test_user_id, "work", "from_original")
        assert (
            recurrence_engine.get_effective_due_date_calculation(test_user_id, "work")
            == DueDateCalculation.FROM_ORIGINAL
        )
        assert (
            recurrence_engine.get_effective_due_date_calculation(test_user_id, "home")
            == DueDateCalculation.FROM_COMPLETION
        )
        assert (
            recurrence_engine.get_effective_due_date_calculation(test_user_id, None)
            == DueDateCalculation.FROM_COMPLETION
        )

    def test_delete_category_preference(self, recurrence_engine, test_user_id):
        recurrence_engine.set_category_preference(test_user_id, "work", "from_completion")
        assert recurrence_engine.delete_category_preference(test_user_id, "work") is True
        assert recurrence_engine.delete_category_preference(test_user_id, "work") is False
        assert (
            recurrence_engine.get_effective_due_date_calculation(test_user_id, "work")
            == DueDateCalculation.FROM_ORIGINAL
        )

    def test_invalid_mode_rejected(self, recurrence_engine, test_user_id):
        with pytest.raises(ValidationError) as exc_info:
            recurrence_engine.set_default_preference(test_user_id, "whenever")
        assert exc_info.value.field == "due_date_calculation"


class TestSeriesManagement:
    def test_update_series(self, recurrence_engine, make_task, test_user_id):
        task = make_task()
        series = recurrence_engine.create_series(test_user_id, task, RecurrenceRule(pattern="daily"))

        updated = recurrence_engine.update_series(
            test_user_id, series.id, SeriesUpdate(pattern="monthly", interval=2, due_date_calculation="from_completion")
        )

        assert updated.pattern == RecurrencePattern.MONTHLY
        assert updated.interval == 2
        assert updated.due_date_calculation == DueDateCalculation.FROM_COMPLETION

    def test_inactive_is_terminal(self, recurrence_engine, make_task, test_user_id):
        task = make_task()
        series = recurrence_engine.create_series(test_user_id, task, RecurrenceRule(pattern="daily"))
        recurrence_engine.deactivate_series(test_user_id, series.id)

        with pytest.raises(ConflictError):
            recurrence_engine.update_series(test_user_id, series.id, SeriesUpdate(is_active=True))

    def test_unknown_series(self, recurrence_engine, test_user_id):
        with pytest.raises(NotFoundError):
            recurrence_engine.get_series(test_user_id, "missing")

    def test_history_and_listing(self, recurrence_engine, task_repository, make_task, clock, test_user_id):
        task = make_task(due_date=datetime(2025, 1, 10))
        series = recurrence_engine.create_series(test_user_id, task, RecurrenceRule(pattern="daily"))
        done = _complete(task_repository, task_repository.get(test_user_id, task.id), clock.now())
        clock.advance(minutes=1)
        recurrence_engine.create_next_occurrence(recurrence_engine.get_series(test_user_id, series.id), done)

        history = recurrence_engine.get_series_history(test_user_id, series.id)

        assert history.total == 2
        assert history.tasks[0].task_id == task.id
        assert history.tasks[0].status == TaskStatus.DONE
        assert history.tasks[1].due_date == datetime(2025, 1, 11)
        assert [s.id for s in recurrence_engine.list_series(test_user_id, active_only=True)] == [series.id]
