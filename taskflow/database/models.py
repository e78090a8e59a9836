"""SQLAlchemy database models for taskflow."""

from datetime import datetime
import uuid
from typing import Union, TypeVar, Type

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    PrimaryKeyConstraint,
    String,
)

from taskflow.database.database import Base
from taskflow.models.task import TaskStatus, TaskEffort, TaskKind
from taskflow.models.recurrence import RecurrencePattern, DueDateCalculation, DEFAULT_DUE_DATE_CALCULATION

T = TypeVar('T')


def enum_to_value(enum_obj: Union[str, T]) -> str:
    """Convert enum to string value (handles both enum and string).

    Args:
        enum_obj: Enum instance or string value

    Returns:
        String value of the enum, or the string itself if already a string
    """
    if hasattr(enum_obj, 'value'):
        return enum_obj.value
    return str(enum_obj)


def optional_enum_to_value(enum_obj) -> Union[str, None]:
    return None if enum_obj is None else enum_to_value(enum_obj)


def value_to_enum(value: str, enum_class: Type[T], default: T) -> T:
    """Convert string to enum with fallback to default.

    Args:
        value: String value to convert
        enum_class: Enum class to convert to
        default: Default enum value if conversion fails

    Returns:
        Enum instance, or default if conversion fails
    """
    if not value:
        return default
    try:
        return enum_class(value.lower())
    except (ValueError, AttributeError):
        return default


class TaskDB(Base):
    """Database model for Task."""

    __tablename__ = "tasks"
    __table_args__ = (
        CheckConstraint("user_priority BETWEEN 1 AND 10", name="ck_tasks_user_priority_range"),
        CheckConstraint("priority_score BETWEEN 0 AND 100", name="ck_tasks_priority_score_range"),
        CheckConstraint("bump_count >= 0", name="ck_tasks_bump_count_non_negative"),
        # Keyset scan of active tasks for the recompute pass.
        Index("ix_tasks_status_id", "status", "id"),
    )

    # Primary key
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    # Owner (opaque identifier)
    user_id = Column(String, nullable=False, index=True)

    # Basic fields
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    status = Column(String, nullable=False, default=TaskStatus.TODO.value)

    # Priority inputs and cached score
    user_priority = Column(Integer, nullable=False, default=5)
    priority_score = Column(Integer, nullable=False, default=0)
    estimated_effort = Column(String, nullable=True)
    category = Column(String, nullable=True, index=True)
    bump_count = Column(Integer, nullable=False, default=0)

    # Timestamps
    due_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)

    # Hierarchy / recurrence linkage
    task_kind = Column(String, nullable=False, default=TaskKind.REGULAR.value)
    parent_task_id = Column(String, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True, index=True)
    series_id = Column(String, ForeignKey("task_series.id", ondelete="SET NULL"), nullable=True, index=True)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from taskflow.models.task import Task

        return Task(
            id=self.id,
            user_id=self.user_id,
            title=self.title,
            description=self.description,
            status=value_to_enum(self.status, TaskStatus, TaskStatus.TODO),
            user_priority=self.user_priority,
            priority_score=self.priority_score,
            estimated_effort=value_to_enum(self.estimated_effort, TaskEffort, None),
            category=self.category,
            due_date=self.due_date,
            created_at=self.created_at,
            updated_at=self.updated_at,
            completed_at=self.completed_at,
            bump_count=self.bump_count,
            task_kind=value_to_enum(self.task_kind, TaskKind, TaskKind.REGULAR),
            parent_task_id=self.parent_task_id,
            series_id=self.series_id,
        )

    @classmethod
    def from_pydantic(cls, task):
        """Create database model from Pydantic model."""
        row = cls(id=task.id, user_id=task.user_id, created_at=task.created_at)
        row.apply(task)
        return row

    def apply(self, task) -> None:
        """Copy every mutable field from a Pydantic task onto this row."""
        # Pydantic with use_enum_values=True returns strings; model_copy keeps enums.
        self.title = task.title
        self.description = task.description
        self.status = enum_to_value(task.status)
        self.user_priority = task.user_priority
        self.priority_score = task.priority_score
        self.estimated_effort = optional_enum_to_value(task.estimated_effort)
        self.category = task.category
        self.bump_count = task.bump_count
        self.due_date = task.due_date
        self.updated_at = task.updated_at
        self.completed_at = task.completed_at
        self.task_kind = enum_to_value(task.task_kind)
        self.parent_task_id = task.parent_task_id
        self.series_id = task.series_id


class TaskDependencyDB(Base):
    """Blocked-by edge: ``task_id`` cannot complete until ``blocked_by_id`` is done."""

    __tablename__ = "task_dependencies"
    __table_args__ = (
        PrimaryKeyConstraint("task_id", "blocked_by_id", name="pk_task_dependencies"),
        CheckConstraint("task_id <> blocked_by_id", name="ck_task_dependencies_no_self"),
    )

    task_id = Column(String, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False)
    blocked_by_id = Column(String, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class TaskSeriesDB(Base):
    """Database model for a recurring task series."""

    __tablename__ = "task_series"
    __table_args__ = (
        CheckConstraint("recurrence_interval BETWEEN 1 AND 365", name="ck_task_series_interval_range"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False, index=True)
    # Plain reference: tasks already point at task_series.
    original_task_id = Column(String, nullable=True)

    pattern = Column(String, nullable=False)
    interval = Column("recurrence_interval", Integer, nullable=False, default=1)
    due_date_calculation = Column(String, nullable=False, default=DEFAULT_DUE_DATE_CALCULATION.value)
    end_date = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def to_pydantic(self):
        from taskflow.models.recurrence import TaskSeries

        return TaskSeries(
            id=self.id,
            user_id=self.user_id,
            original_task_id=self.original_task_id,
            pattern=value_to_enum(self.pattern, RecurrencePattern, RecurrencePattern.DAILY),
            interval=self.interval,
            due_date_calculation=value_to_enum(
                self.due_date_calculation, DueDateCalculation, DEFAULT_DUE_DATE_CALCULATION
            ),
            end_date=self.end_date,
            is_active=self.is_active,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_pydantic(cls, series):
        return cls(
            id=series.id,
            user_id=series.user_id,
            original_task_id=series.original_task_id,
            pattern=enum_to_value(series.pattern),
            interval=series.interval,
            due_date_calculation=enum_to_value(series.due_date_calculation),
            end_date=series.end_date,
            is_active=series.is_active,
            created_at=series.created_at,
            updated_at=series.updated_at,
        )


class UserPreferencesDB(Base):
    """Per-owner default for recurring due-date calculation."""

    __tablename__ = "user_preferences"

    user_id = Column(String, primary_key=True)
    default_due_date_calculation = Column(
        String, nullable=False, default=DEFAULT_DUE_DATE_CALCULATION.value
    )
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        from taskflow.models.recurrence import UserPreferences

        return UserPreferences(
            user_id=self.user_id,
            default_due_date_calculation=value_to_enum(
                self.default_due_date_calculation, DueDateCalculation, DEFAULT_DUE_DATE_CALCULATION
            ),
        )


class CategoryPreferenceDB(Base):
    """Per-owner, per-category override of the due-date calculation."""

    __tablename__ = "category_preferences"
    __table_args__ = (
        PrimaryKeyConstraint("user_id", "category", name="pk_category_preferences"),
    )

    user_id = Column(String, nullable=False)
    category = Column(String, nullable=False)
    due_date_calculation = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        from taskflow.models.recurrence import CategoryPreference

        return CategoryPreference(
            user_id=self.user_id,
            category=self.category,
            due_date_calculation=value_to_enum(
                self.due_date_calculation, DueDateCalculation, DEFAULT_DUE_DATE_CALCULATION
            ),
        )
