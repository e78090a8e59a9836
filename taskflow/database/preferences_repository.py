"""Repository for recurring due-date calculation preferences."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from taskflow.models.recurrence import CategoryPreference, UserPreferences
from taskflow.database.models import CategoryPreferenceDB, UserPreferencesDB, enum_to_value

logger = logging.getLogger(__name__)


class PreferencesRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_user_preferences(self, user_id: str) -> Optional[UserPreferences]:
        row = self.db.query(UserPreferencesDB).filter(UserPreferencesDB.user_id == user_id).first()
        return row.to_pydantic() if row else None

    def get_category_preference(self, user_id: str, category: str) -> Optional[CategoryPreference]:
        row = (
            self.db.query(CategoryPreferenceDB)
            .filter(CategoryPreferenceDB.user_id == user_id, CategoryPreferenceDB.category == category)
            .first()
        )
        return row.to_pydantic() if row else None

    def upsert_user_preferences(self, prefs: UserPreferences) -> UserPreferences:
        row = self.db.query(UserPreferencesDB).filter(UserPreferencesDB.user_id == prefs.user_id).first()
        if row is None:
            row = UserPreferencesDB(user_id=prefs.user_id)
            self.db.add(row)
        row.default_due_date_calculation = enum_to_value(prefs.default_due_date_calculation)
        row.updated_at = datetime.utcnow()
        try:
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Saved default due date calculation for user {prefs.user_id}")
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to save preferences for user {prefs.user_id}: {type(e).__name__}: {str(e)}")
            raise

    def upsert_category_preference(self, pref: CategoryPreference) -> CategoryPreference:
        row = (
            self.db.query(CategoryPreferenceDB)
            .filter(CategoryPreferenceDB.user_id == pref.user_id, CategoryPreferenceDB.category == pref.category)
            .first()
        )
        if row is None:
            row = CategoryPreferenceDB(user_id=pref.user_id, category=pref.category)
            self.db.add(row)
        row.due_date_calculation = enum_to_value(pref.due_date_calculation)
        row.updated_at = datetime.utcnow()
        try:
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Saved due date calculation for user {pref.user_id} category {pref.category}")
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(
                f"Failed to save category preference {pref.category} for user {pref.user_id}: "
                f"{type(e).__name__}: {str(e)}"
            )
            raise

    def delete_category_preference(self, user_id: str, category: str) -> bool:
        try:
            deleted = (
                self.db.query(CategoryPreferenceDB)
                .filter(CategoryPreferenceDB.user_id == user_id, CategoryPreferenceDB.category == category)
                .delete(synchronize_session=False)
            )
            self.db.commit()
            return deleted > 0
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete category preference {category} for user {user_id}: {type(e).__name__}: {str(e)}")
            raise
