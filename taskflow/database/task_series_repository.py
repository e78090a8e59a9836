"""Repository for TaskSeries database operations."""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from taskflow.engine.errors import NotFoundError
from taskflow.models.recurrence import TaskSeries
from taskflow.database.models import TaskSeriesDB, enum_to_value

logger = logging.getLogger(__name__)


class TaskSeriesRepository:
    def __init__(self, db: Session):
        self.db = db

    def _row(self, user_id: str, series_id: str) -> Optional[TaskSeriesDB]:
        return (
            self.db.query(TaskSeriesDB)
            .filter(TaskSeriesDB.user_id == user_id, TaskSeriesDB.id == series_id)
            .first()
        )

    def create(self, series: TaskSeries) -> TaskSeries:
        row = TaskSeriesDB.from_pydantic(series)
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Created task series {row.id}")
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create task series: {type(e).__name__}: {str(e)}")
            raise

    def get(self, user_id: str, series_id: str) -> Optional[TaskSeries]:
        row = self._row(user_id, series_id)
        return row.to_pydantic() if row else None

    def list_for_user(self, user_id: str, active_only: bool = False) -> List[TaskSeries]:
        query = self.db.query(TaskSeriesDB).filter(TaskSeriesDB.user_id == user_id)
        if active_only:
            query = query.filter(TaskSeriesDB.is_active.is_(True))
        return [row.to_pydantic() for row in query.order_by(TaskSeriesDB.created_at.desc()).all()]

    def update(self, series: TaskSeries) -> TaskSeries:
        row = self._row(series.user_id, series.id)
        if row is None:
            raise NotFoundError("task series", series.id)
        row.pattern = enum_to_value(series.pattern)
        row.interval = series.interval
        row.due_date_calculation = enum_to_value(series.due_date_calculation)
        row.end_date = series.end_date
        row.is_active = series.is_active
        row.updated_at = series.updated_at
        try:
            self.db.commit()
            self.db.refresh(row)
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update task series {series.id}: {type(e).__name__}: {str(e)}")
            raise

    def deactivate(self, user_id: str, series_id: str) -> bool:
        """Mark a series inactive. Returns False if it was unknown or already inactive."""
        row = self._row(user_id, series_id)
        if row is None or not row.is_active:
            return False
        row.is_active = False
        row.updated_at = datetime.utcnow()
        try:
            self.db.commit()
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to deactivate task series {series_id}: {type(e).__name__}: {str(e)}")
            raise

    def delete(self, user_id: str, series_id: str) -> bool:
        try:
            deleted = (
                self.db.query(TaskSeriesDB)
                .filter(TaskSeriesDB.user_id == user_id, TaskSeriesDB.id == series_id)
                .delete(synchronize_session=False)
            )
            self.db.commit()
            return deleted > 0
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete task series {series_id}: {type(e).__name__}: {str(e)}")
            raise
