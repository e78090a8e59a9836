"""Priority scoring for taskflow.

Computes an explainable 0-100 score from four weighted factors and an effort
multiplier:

    score = clamp(0, 100, (user_priority*0.4 + time_decay*0.3
                           + deadline_urgency*0.2 + bump_penalty*0.1) * effort_boost)

The calculation is pure: the same task and ``now`` always produce the same
result. Dependency and subtask state do not feed the score.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from taskflow.engine.clock import as_naive_utc
from taskflow.models.constants import (
    AT_RISK_BUMP_COUNT,
    AT_RISK_OVERDUE_DAYS,
    BUMP_PENALTY_CAP,
    BUMP_PENALTY_PER_BUMP,
    DEADLINE_WINDOW_DAYS,
    MAX_PRIORITY_SCORE,
    MIN_PRIORITY_SCORE,
    TIME_DECAY_FULL_DAYS,
    WEIGHT_BUMP_PENALTY,
    WEIGHT_DEADLINE_URGENCY,
    WEIGHT_TIME_DECAY,
    WEIGHT_USER_PRIORITY,
)
from taskflow.models.task import Task, effort_multiplier

SECONDS_PER_DAY = 86400.0


class PriorityBreakdown(BaseModel):
    """Individual components of a priority calculation.

    Raw values are on a 0-100 scale (bump penalty 0-50). ``*_weighted`` are
    the raw values times their weight; ``*_boosted`` additionally include the
    effort multiplier, so ``sum(*_boosted) == total`` before clamping.
    """

    user_priority: float
    time_decay: float
    deadline_urgency: float
    bump_penalty: float
    effort_boost: float

    user_priority_weighted: float
    time_decay_weighted: float
    deadline_urgency_weighted: float
    bump_penalty_weighted: float

    user_priority_boosted: float
    time_decay_boosted: float
    deadline_urgency_boosted: float
    bump_penalty_boosted: float

    total: float
    score: int


class PriorityResult(BaseModel):
    score: int
    breakdown: PriorityBreakdown


def calculate(task: Task, now: datetime) -> PriorityResult:
    """Calculate the priority score and factor breakdown for a task.

    Args:
        task: Task to score
        now: Reference instant (from the injected clock)

    Returns:
        PriorityResult with the clamped integer score and full breakdown
    """
    now = as_naive_utc(now)

    user_priority = float(task.user_priority) * 10.0
    time_decay = _time_decay(as_naive_utc(task.created_at), now)
    deadline_urgency = _deadline_urgency(as_naive_utc(task.due_date), now)
    bump_penalty = _bump_penalty(task.bump_count)
    effort_boost = effort_multiplier(task.estimated_effort)

    user_priority_weighted = user_priority * WEIGHT_USER_PRIORITY
    time_decay_weighted = time_decay * WEIGHT_TIME_DECAY
    deadline_urgency_weighted = deadline_urgency * WEIGHT_DEADLINE_URGENCY
    bump_penalty_weighted = bump_penalty * WEIGHT_BUMP_PENALTY

    user_priority_boosted = user_priority_weighted * effort_boost
    time_decay_boosted = time_decay_weighted * effort_boost
    deadline_urgency_boosted = deadline_urgency_weighted * effort_boost
    bump_penalty_boosted = bump_penalty_weighted * effort_boost

    total = (
        user_priority_boosted
        + time_decay_boosted
        + deadline_urgency_boosted
        + bump_penalty_boosted
    )
    score = clamp_score(total)

    breakdown = PriorityBreakdown(
        user_priority=user_priority,
        time_decay=time_decay,
        deadline_urgency=deadline_urgency,
        bump_penalty=bump_penalty,
        effort_boost=effort_boost,
        user_priority_weighted=user_priority_weighted,
        time_decay_weighted=time_decay_weighted,
        deadline_urgency_weighted=deadline_urgency_weighted,
        bump_penalty_weighted=bump_penalty_weighted,
        user_priority_boosted=user_priority_boosted,
        time_decay_boosted=time_decay_boosted,
        deadline_urgency_boosted=deadline_urgency_boosted,
        bump_penalty_boosted=bump_penalty_boosted,
        total=total,
        score=score,
    )
    return PriorityResult(score=score, breakdown=breakdown)


def calculate_score(task: Task, now: datetime) -> int:
    """Return only the clamped score for a task."""
    return calculate(task, now).score


def clamp_score(value: float) -> int:
    """Clamp to [0, 100] and truncate to an integer."""
    return int(min(MAX_PRIORITY_SCORE, max(MIN_PRIORITY_SCORE, value)))


def _days_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / SECONDS_PER_DAY


def _time_decay(created_at: datetime, now: datetime) -> float:
    """Linear growth over 30 days: 0 days = 0, 30+ days = 100.

    A creation timestamp in the future (clock skew) counts as zero age.
    """
    days = max(0.0, _days_between(created_at, now))
    return min(100.0, days / TIME_DECAY_FULL_DAYS * 100.0)


def _deadline_urgency(due_date: Optional[datetime], now: datetime) -> float:
    """Quadratic urgency inside the final 7 days.

    Args:
        due_date: Due instant, or None when the task has no deadline
        now: Reference instant

    Returns:
        0 with no due date or more than 7 days left, 100 at or past the due
        instant, otherwise 100 * (1 - (days_remaining / 7) ** 2)
    """
    if due_date is None:
        return 0.0
    if now >= due_date:
        return 100.0

    days_remaining = _days_between(now, due_date)
    if days_remaining > DEADLINE_WINDOW_DAYS:
        return 0.0

    urgency = 100.0 * (1.0 - (days_remaining / DEADLINE_WINDOW_DAYS) ** 2)
    return max(0.0, urgency)


def _bump_penalty(bump_count: int) -> float:
    """+10 points per bump, capped at 50."""
    return float(min(BUMP_PENALTY_CAP, max(0, bump_count) * BUMP_PENALTY_PER_BUMP))


def is_at_risk(task: Task, now: datetime) -> bool:
    """Reporting helper: bumped 3+ times or overdue by 3+ days.

    Not enforced anywhere in the engine.
    """
    if task.bump_count >= AT_RISK_BUMP_COUNT:
        return True
    if task.due_date is not None:
        overdue_days = _days_between(as_naive_utc(task.due_date), as_naive_utc(now))
        if overdue_days >= AT_RISK_OVERDUE_DAYS:
            return True
    return False
