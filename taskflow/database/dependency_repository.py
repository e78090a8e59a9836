"""Repository for blocked-by dependency edges."""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy import func, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from taskflow.engine.errors import ConflictError
from taskflow.models.dependency import DependencySummary
from taskflow.models.task import TaskStatus
from taskflow.database.models import TaskDB, TaskDependencyDB, value_to_enum

logger = logging.getLogger(__name__)


class DependencyRepository:
    def __init__(self, db: Session):
        self.db = db

    def lock_owner(self, user_id: str) -> None:
        """Take the owner's graph-write lock in the current transaction.

        PostgreSQL uses a transaction-scoped advisory lock keyed on the owner;
        SQLite takes the database write lock with BEGIN IMMEDIATE. The lock
        is released by the commit in ``add`` or by ``release_owner``.
        """
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            self.db.execute(text("SELECT pg_advisory_xact_lock(hashtext(:owner))"), {"owner": user_id})
        elif dialect == "sqlite":
            driver_conn = self.db.connection().connection.driver_connection
            if not driver_conn.in_transaction:
                self.db.execute(text("BEGIN IMMEDIATE"))

    def release_owner(self, user_id: str) -> None:
        self.db.rollback()

    def add(self, user_id: str, task_id: str, blocked_by_id: str) -> None:
        row = TaskDependencyDB(
            task_id=task_id,
            blocked_by_id=blocked_by_id,
            user_id=user_id,
            created_at=datetime.utcnow(),
        )
        try:
            self.db.add(row)
            self.db.commit()
            logger.debug(f"Created dependency {task_id} blocked by {blocked_by_id}")
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"Failed to create dependency {task_id} -> {blocked_by_id}: {type(e).__name__}: {str(e)}")
            raise ConflictError(
                "dependency", "dependency already exists", entity_ids=[task_id, blocked_by_id]
            ) from e
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create dependency {task_id} -> {blocked_by_id}: {type(e).__name__}: {str(e)}")
            raise

    def remove(self, user_id: str, task_id: str, blocked_by_id: str) -> bool:
        try:
            deleted = (
                self.db.query(TaskDependencyDB)
                .filter(
                    TaskDependencyDB.user_id == user_id,
                    TaskDependencyDB.task_id == task_id,
                    TaskDependencyDB.blocked_by_id == blocked_by_id,
                )
                .delete(synchronize_session=False)
            )
            self.db.commit()
            return deleted > 0
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to remove dependency {task_id} -> {blocked_by_id}: {type(e).__name__}: {str(e)}")
            raise

    def exists(self, user_id: str, task_id: str, blocked_by_id: str) -> bool:
        return (
            self.db.query(TaskDependencyDB.task_id)
            .filter(
                TaskDependencyDB.user_id == user_id,
                TaskDependencyDB.task_id == task_id,
                TaskDependencyDB.blocked_by_id == blocked_by_id,
            )
            .first()
            is not None
        )

    def get_graph(self, user_id: str) -> Dict[str, List[str]]:
        """Whole edge set for an owner as ``task_id -> [blocked_by_id, ...]``."""
        rows = (
            self.db.query(TaskDependencyDB.task_id, TaskDependencyDB.blocked_by_id)
            .filter(TaskDependencyDB.user_id == user_id)
            .all()
        )
        graph: Dict[str, List[str]] = {}
        for task_id, blocked_by_id in rows:
            graph.setdefault(task_id, []).append(blocked_by_id)
        return graph

    def get_dependent_ids(self, user_id: str, blocked_by_id: str) -> List[str]:
        rows = (
            self.db.query(TaskDependencyDB.task_id)
            .filter(TaskDependencyDB.user_id == user_id, TaskDependencyDB.blocked_by_id == blocked_by_id)
            .order_by(TaskDependencyDB.created_at, TaskDependencyDB.task_id)
            .all()
        )
        return [row[0] for row in rows]

    def get_blockers(self, user_id: str, task_id: str) -> List[DependencySummary]:
        """Tasks blocking ``task_id`` with id, title and status."""
        rows = (
            self.db.query(TaskDB.id, TaskDB.title, TaskDB.status)
            .join(TaskDependencyDB, TaskDependencyDB.blocked_by_id == TaskDB.id)
            .filter(TaskDependencyDB.user_id == user_id, TaskDependencyDB.task_id == task_id)
            .order_by(TaskDependencyDB.created_at, TaskDB.id)
            .all()
        )
        return [_summary(row) for row in rows]

    def get_dependents(self, user_id: str, task_id: str) -> List[DependencySummary]:
        """Tasks that ``task_id`` is blocking."""
        rows = (
            self.db.query(TaskDB.id, TaskDB.title, TaskDB.status)
            .join(TaskDependencyDB, TaskDependencyDB.task_id == TaskDB.id)
            .filter(TaskDependencyDB.user_id == user_id, TaskDependencyDB.blocked_by_id == task_id)
            .order_by(TaskDependencyDB.created_at, TaskDB.id)
            .all()
        )
        return [_summary(row) for row in rows]

    def count_incomplete_blockers_batch(
        self,
        user_id: str,
        task_ids: Sequence[str],
        exclude_blocker_id: Optional[str] = None,
    ) -> Dict[str, int]:
        """Incomplete-blocker counts for many tasks in one GROUP BY query.

        Args:
            user_id: Owner of the tasks
            task_ids: Tasks to count blockers for
            exclude_blocker_id: Blocker to leave out (the one just completed)

        Returns:
            ``task_id -> count`` for every requested id (0 when none)
        """
        unique_ids = list(dict.fromkeys(task_ids))
        if not unique_ids:
            return {}

        blocker = aliased(TaskDB)
        query = (
            self.db.query(TaskDependencyDB.task_id, func.count(blocker.id))
            .join(blocker, blocker.id == TaskDependencyDB.blocked_by_id)
            .filter(
                TaskDependencyDB.user_id == user_id,
                TaskDependencyDB.task_id.in_(unique_ids),
                blocker.status != TaskStatus.DONE.value,
            )
        )
        if exclude_blocker_id is not None:
            query = query.filter(TaskDependencyDB.blocked_by_id != exclude_blocker_id)

        counts = {task_id: 0 for task_id in unique_ids}
        for task_id, count in query.group_by(TaskDependencyDB.task_id).all():
            counts[task_id] = int(count)
        return counts

    def list_incomplete_blocker_ids(self, user_id: str, task_id: str) -> List[str]:
        rows = (
            self.db.query(TaskDB.id)
            .join(TaskDependencyDB, TaskDependencyDB.blocked_by_id == TaskDB.id)
            .filter(
                TaskDependencyDB.user_id == user_id,
                TaskDependencyDB.task_id == task_id,
                TaskDB.status != TaskStatus.DONE.value,
            )
            .order_by(TaskDependencyDB.created_at, TaskDB.id)
            .all()
        )
        return [row[0] for row in rows]


def _summary(row) -> DependencySummary:
    task_id, title, status = row
    return DependencySummary(
        task_id=task_id,
        title=title,
        status=value_to_enum(status, TaskStatus, TaskStatus.TODO),
    )
