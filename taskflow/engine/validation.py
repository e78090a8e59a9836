"""Field validation shared by engine services.

Failures raise ``ValidationError`` with the offending field name.
"""

from typing import Optional

from taskflow.engine.errors import ValidationError
from taskflow.models.constants import (
    MAX_CATEGORY_LENGTH,
    MAX_TITLE_LENGTH,
    MAX_USER_PRIORITY,
    MIN_USER_PRIORITY,
)
from taskflow.models.recurrence import (
    MAX_INTERVAL,
    MIN_INTERVAL,
    DueDateCalculation,
    RecurrencePattern,
)


def validate_user_priority(value: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError("user_priority", "must be an integer")
    if value < MIN_USER_PRIORITY or value > MAX_USER_PRIORITY:
        raise ValidationError(
            "user_priority", f"must be between {MIN_USER_PRIORITY} and {MAX_USER_PRIORITY}"
        )
    return value


def validate_title(value: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError("title", "is required")
    if len(cleaned) > MAX_TITLE_LENGTH:
        raise ValidationError("title", f"must be {MAX_TITLE_LENGTH} characters or less")
    return cleaned


def validate_category(value: Optional[str]) -> Optional[str]:
    """Trim the category; blank becomes None."""
    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    if len(cleaned) > MAX_CATEGORY_LENGTH:
        raise ValidationError("category", f"must be {MAX_CATEGORY_LENGTH} characters or less")
    return cleaned


def validate_pattern(value: str) -> RecurrencePattern:
    try:
        return RecurrencePattern(str(getattr(value, "value", value)).lower())
    except ValueError:
        raise ValidationError("pattern", f"invalid recurrence pattern: {value}")


def validate_interval(value: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError("interval", "must be an integer")
    if value < MIN_INTERVAL or value > MAX_INTERVAL:
        raise ValidationError("interval", f"must be between {MIN_INTERVAL} and {MAX_INTERVAL}")
    return value


def validate_due_date_calculation(value: str) -> DueDateCalculation:
    try:
        return DueDateCalculation(str(getattr(value, "value", value)).lower())
    except ValueError:
        raise ValidationError("due_date_calculation", f"invalid due date calculation mode: {value}")
