"""Ports (interfaces) used by the engine.

The engine depends on Protocols instead of concrete repositories. The
SQLAlchemy repositories in ``taskflow.database`` implement them; tests may
substitute in-memory fakes.
"""

from datetime import datetime
from typing import Dict, List, Optional, Protocol, Sequence

from taskflow.models.dependency import DependencySummary
from taskflow.models.recurrence import CategoryPreference, TaskSeries, UserPreferences
from taskflow.models.task import Task


class TaskStore(Protocol):
    def create(self, task: Task) -> Task: ...

    def get(self, user_id: str, task_id: str) -> Optional[Task]: ...

    def update(self, task: Task) -> Task: ...

    def delete(self, user_id: str, task_id: str) -> bool: ...

    def get_subtasks(self, user_id: str, parent_task_id: str) -> List[Task]: ...

    def list_incomplete_subtask_ids(self, user_id: str, parent_task_id: str) -> List[str]: ...

    def list_by_series(self, user_id: str, series_id: str) -> List[Task]: ...

    def list_active_chunk(self, *, after_id: Optional[str], limit: int) -> List[Task]: ...

    def update_priority_scores(self, scores: Dict[str, int], updated_at: datetime) -> int: ...


class DependencyStore(Protocol):
    def lock_owner(self, user_id: str) -> None: ...

    def release_owner(self, user_id: str) -> None: ...

    def add(self, user_id: str, task_id: str, blocked_by_id: str) -> None: ...

    def remove(self, user_id: str, task_id: str, blocked_by_id: str) -> bool: ...

    def exists(self, user_id: str, task_id: str, blocked_by_id: str) -> bool: ...

    def get_graph(self, user_id: str) -> Dict[str, List[str]]: ...

    def get_dependent_ids(self, user_id: str, blocked_by_id: str) -> List[str]: ...

    def get_blockers(self, user_id: str, task_id: str) -> List[DependencySummary]: ...

    def get_dependents(self, user_id: str, task_id: str) -> List[DependencySummary]: ...

    def list_incomplete_blocker_ids(self, user_id: str, task_id: str) -> List[str]: ...

    def count_incomplete_blockers_batch(
        self,
        user_id: str,
        task_ids: Sequence[str],
        exclude_blocker_id: Optional[str] = None,
    ) -> Dict[str, int]: ...


class SeriesStore(Protocol):
    def create(self, series: TaskSeries) -> TaskSeries: ...

    def get(self, user_id: str, series_id: str) -> Optional[TaskSeries]: ...

    def update(self, series: TaskSeries) -> TaskSeries: ...

    def deactivate(self, user_id: str, series_id: str) -> bool: ...

    def delete(self, user_id: str, series_id: str) -> bool: ...

    def list_for_user(self, user_id: str, active_only: bool = False) -> List[TaskSeries]: ...


class PreferenceStore(Protocol):
    def get_user_preferences(self, user_id: str) -> Optional[UserPreferences]: ...

    def get_category_preference(self, user_id: str, category: str) -> Optional[CategoryPreference]: ...

    def upsert_user_preferences(self, prefs: UserPreferences) -> UserPreferences: ...

    def upsert_category_preference(self, pref: CategoryPreference) -> CategoryPreference: ...

    def delete_category_preference(self, user_id: str, category: str) -> bool: ...
