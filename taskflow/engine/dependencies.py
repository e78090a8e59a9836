"""Dependency (blocked-by) management for taskflow.

Maintains the per-owner graph of "task is blocked by blocker" edges, keeps it
acyclic, and answers completion-gating questions.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List

from taskflow.engine.errors import (
    ConflictError,
    CycleDetectedError,
    NotFoundError,
    SelfDependencyError,
    ValidationError,
)
from taskflow.engine.graph import DependencyGraph
from taskflow.engine.ports import DependencyStore, TaskStore
from taskflow.models.dependency import BlockerCompletionInfo, DependencyInfo
from taskflow.models.task import Task

logger = logging.getLogger(__name__)


class OwnerLocks:
    """One re-entrant lock per owner.

    Graph mutations for a single owner are serialized so two concurrent
    additions cannot each pass the reachability check and together close a
    cycle. Different owners never contend. An owner's entry lives only while
    some thread holds or waits for it.
    """

    def __init__(self):
        self._guard = threading.Lock()
        # user_id -> [lock, number of holders and waiters]
        self._locks: Dict[str, list] = {}

    @contextmanager
    def hold(self, user_id: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(user_id)
            if entry is None:
                entry = [threading.RLock(), 0]
                self._locks[user_id] = entry
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[user_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


# Shared by every manager in the process; managers are built per session.
DEFAULT_OWNER_LOCKS = OwnerLocks()


class DependencyGraphManager:
    """Service for blocked-by relationships between tasks of one owner."""

    def __init__(self, task_store: TaskStore, dependency_store: DependencyStore, locks: OwnerLocks = None):
        self.task_store = task_store
        self.dependency_store = dependency_store
        self.locks = locks if locks is not None else DEFAULT_OWNER_LOCKS

    def _require_task(self, user_id: str, task_id: str, resource: str = "task") -> Task:
        task = self.task_store.get(user_id, task_id)
        if task is None:
            raise NotFoundError(resource, task_id)
        return task

    def add_dependency(self, user_id: str, task_id: str, blocked_by_id: str) -> DependencyInfo:
        """Record that ``task_id`` is blocked by ``blocked_by_id``.

        Raises:
            SelfDependencyError: task_id == blocked_by_id
            NotFoundError: either task is unknown to this owner
            ValidationError: either side is a subtask
            ConflictError: the edge already exists
            CycleDetectedError: task_id is already a transitive blocker of blocked_by_id
        """
        if task_id == blocked_by_id:
            raise SelfDependencyError(task_id)

        task = self._require_task(user_id, task_id)
        blocker = self._require_task(user_id, blocked_by_id, resource="blocker task")

        # Subtasks are gated by their parent instead.
        if task.is_subtask:
            raise ValidationError("task_id", "subtasks cannot have dependencies")
        if blocker.is_subtask:
            raise ValidationError("blocked_by_id", "subtasks cannot block other tasks")

        # In-process lock first, then the store lock for other processes. The
        # graph read and the insert share the store transaction; add() commits.
        with self.locks.hold(user_id):
            self.dependency_store.lock_owner(user_id)
            try:
                if self.dependency_store.exists(user_id, task_id, blocked_by_id):
                    raise ConflictError(
                        "dependency", "dependency already exists", entity_ids=[task_id, blocked_by_id]
                    )

                graph = DependencyGraph(self.dependency_store.get_graph(user_id))
                path = graph.find_path(blocked_by_id, task_id, max_nodes=graph.node_count + 2)
                if path is not None:
                    logger.info(
                        f"Rejected dependency {task_id} -> {blocked_by_id} for user {user_id}: "
                        f"cycle via {' -> '.join(path)}"
                    )
                    raise CycleDetectedError(task_id, blocked_by_id, path=path)

                self.dependency_store.add(user_id, task_id, blocked_by_id)
            except Exception:
                self.dependency_store.release_owner(user_id)
                raise
            logger.debug(f"Added dependency {task_id} blocked by {blocked_by_id}")

        return self.get_dependency_info(user_id, task_id)

    def remove_dependency(self, user_id: str, task_id: str, blocked_by_id: str) -> bool:
        """Remove an edge. Returns False when the edge did not exist."""
        self._require_task(user_id, task_id)
        with self.locks.hold(user_id):
            removed = self.dependency_store.remove(user_id, task_id, blocked_by_id)
        if removed:
            logger.debug(f"Removed dependency {task_id} blocked by {blocked_by_id}")
        return removed

    def is_blocked(self, user_id: str, task_id: str) -> bool:
        self._require_task(user_id, task_id)
        return bool(self.dependency_store.list_incomplete_blocker_ids(user_id, task_id))

    def get_dependency_info(self, user_id: str, task_id: str) -> DependencyInfo:
        self._require_task(user_id, task_id)
        blockers = self.dependency_store.get_blockers(user_id, task_id)
        dependents = self.dependency_store.get_dependents(user_id, task_id)
        return DependencyInfo.build(task_id, blockers, dependents)

    def validate_completion(self, user_id: str, task_id: str) -> None:
        """Raise ConflictError naming the incomplete blockers, if any."""
        incomplete = self.dependency_store.list_incomplete_blocker_ids(user_id, task_id)
        if incomplete:
            raise ConflictError(
                "task",
                "cannot complete task with unresolved blockers",
                entity_ids=incomplete,
            )

    def on_blocker_completed(self, user_id: str, blocker_id: str) -> BlockerCompletionInfo:
        """Find dependents of ``blocker_id`` that have no other incomplete blocker.

        Remaining-blocker counts for every dependent come from a single
        batched store call, whatever the fan-out.
        """
        dependent_ids: List[str] = self.dependency_store.get_dependent_ids(user_id, blocker_id)
        if not dependent_ids:
            return BlockerCompletionInfo(completed_task_id=blocker_id)

        counts = self.dependency_store.count_incomplete_blockers_batch(
            user_id, dependent_ids, exclude_blocker_id=blocker_id
        )
        remaining = {task_id: int(counts.get(task_id, 0)) for task_id in dependent_ids}
        unblocked = [task_id for task_id in dependent_ids if remaining[task_id] == 0]

        if unblocked:
            logger.info(f"Completing {blocker_id} unblocked {len(unblocked)} task(s): {', '.join(unblocked)}")

        return BlockerCompletionInfo(
            completed_task_id=blocker_id,
            unblocked_task_ids=unblocked,
            remaining_blocker_counts=remaining,
        )
