"""Create tasks, dependencies, series and preference tables

Revision ID: 4a6e1c2b9d10
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4a6e1c2b9d10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "task_series",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("original_task_id", sa.String(), nullable=True),
        sa.Column("pattern", sa.String(), nullable=False),
        sa.Column("recurrence_interval", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("due_date_calculation", sa.String(), nullable=False, server_default="from_original"),
        sa.Column("end_date", sa.DateTime(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("recurrence_interval BETWEEN 1 AND 365", name="ck_task_series_interval_range"),
    )
    op.create_index(op.f("ix_task_series_user_id"), "task_series", ["user_id"], unique=False)
    op.create_index(op.f("ix_task_series_is_active"), "task_series", ["is_active"], unique=False)

    op.create_table(
        "tasks",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="todo"),
        sa.Column("user_priority", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("priority_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("estimated_effort", sa.String(), nullable=True),
        sa.Column("category", sa.String(), nullable=True),
        sa.Column("bump_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("due_date", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("task_kind", sa.String(), nullable=False, server_default="regular"),
        sa.Column("parent_task_id", sa.String(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True),
        sa.Column("series_id", sa.String(), sa.ForeignKey("task_series.id", ondelete="SET NULL"), nullable=True),
        sa.CheckConstraint("user_priority BETWEEN 1 AND 10", name="ck_tasks_user_priority_range"),
        sa.CheckConstraint("priority_score BETWEEN 0 AND 100", name="ck_tasks_priority_score_range"),
        sa.CheckConstraint("bump_count >= 0", name="ck_tasks_bump_count_non_negative"),
    )
    op.create_index(op.f("ix_tasks_user_id"), "tasks", ["user_id"], unique=False)
    op.create_index(op.f("ix_tasks_category"), "tasks", ["category"], unique=False)
    op.create_index(op.f("ix_tasks_parent_task_id"), "tasks", ["parent_task_id"], unique=False)
    op.create_index(op.f("ix_tasks_series_id"), "tasks", ["series_id"], unique=False)
    op.create_index("ix_tasks_status_id", "tasks", ["status", "id"], unique=False)

    op.create_table(
        "task_dependencies",
        sa.Column("task_id", sa.String(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("blocked_by_id", sa.String(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("task_id", "blocked_by_id", name="pk_task_dependencies"),
        sa.CheckConstraint("task_id <> blocked_by_id", name="ck_task_dependencies_no_self"),
    )
    op.create_index(op.f("ix_task_dependencies_blocked_by_id"), "task_dependencies", ["blocked_by_id"], unique=False)
    op.create_index(op.f("ix_task_dependencies_user_id"), "task_dependencies", ["user_id"], unique=False)

    op.create_table(
        "user_preferences",
        sa.Column("user_id", sa.String(), primary_key=True),
        sa.Column("default_due_date_calculation", sa.String(), nullable=False, server_default="from_original"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "category_preferences",
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("due_date_calculation", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("user_id", "category", name="pk_category_preferences"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("category_preferences")
    op.drop_table("user_preferences")

    op.drop_index(op.f("ix_task_dependencies_user_id"), table_name="task_dependencies")
    op.drop_index(op.f("ix_task_dependencies_blocked_by_id"), table_name="task_dependencies")
    op.drop_table("task_dependencies")

    op.drop_index("ix_tasks_status_id", table_name="tasks")
    op.drop_index(op.f("ix_tasks_series_id"), table_name="tasks")
    op.drop_index(op.f("ix_tasks_parent_task_id"), table_name="tasks")
    op.drop_index(op.f("ix_tasks_category"), table_name="tasks")
    op.drop_index(op.f("ix_tasks_user_id"), table_name="tasks")
    op.drop_table("tasks")

    op.drop_index(op.f("ix_task_series_is_active"), table_name="task_series")
    op.drop_index(op.f("ix_task_series_user_id"), table_name="task_series")
    op.drop_table("task_series")
