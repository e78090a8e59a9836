"""Dependency (blocked-by) data models for taskflow."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from taskflow.models.task import TaskStatus


class DependencyEdge(BaseModel):
    """``task_id`` cannot reach done while ``blocked_by_id`` is not done."""

    task_id: str
    blocked_by_id: str
    created_at: Optional[datetime] = None


class DependencySummary(BaseModel):
    """Task details shown on either side of an edge."""

    task_id: str
    title: str
    status: TaskStatus

    class Config:
        use_enum_values = True

    @property
    def is_done(self) -> bool:
        return self.status == TaskStatus.DONE


class DependencyInfo(BaseModel):
    task_id: str
    blockers: List[DependencySummary] = Field(default_factory=list, description="Tasks blocking this task")
    dependents: List[DependencySummary] = Field(default_factory=list, description="Tasks this task is blocking")
    is_blocked: bool = False
    can_complete: bool = True

    @classmethod
    def build(
        cls,
        task_id: str,
        blockers: List[DependencySummary],
        dependents: List[DependencySummary],
    ) -> "DependencyInfo":
        incomplete = [b for b in blockers if not b.is_done]
        return cls(
            task_id=task_id,
            blockers=blockers,
            dependents=dependents,
            is_blocked=bool(incomplete),
            can_complete=not incomplete,
        )


class BlockerCompletionInfo(BaseModel):
    """Returned when a blocker completes: which dependents are now free."""

    completed_task_id: str
    unblocked_task_ids: List[str] = Field(default_factory=list)
    remaining_blocker_counts: Dict[str, int] = Field(
        default_factory=dict, description="Dependent id -> incomplete blockers still outstanding"
    )

    @property
    def unblocked_count(self) -> int:
        return len(self.unblocked_task_ids)
