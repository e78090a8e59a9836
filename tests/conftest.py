"""Pytest fixtures and configuration for taskflow tests."""

import pytest
from datetime import datetime
import uuid

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from taskflow.database.database import Base
import taskflow.database.models  # noqa: F401
from taskflow.database.repository import TaskRepository
from taskflow.database.dependency_repository import DependencyRepository
from taskflow.database.task_series_repository import TaskSeriesRepository
from taskflow.database.preferences_repository import PreferencesRepository
from taskflow.engine.clock import FixedClock
from taskflow.engine.dependencies import DependencyGraphManager
from taskflow.engine.lifecycle import TaskLifecycleService
from taskflow.engine.recurrence import RecurrenceEngine
from taskflow.engine.subtasks import SubtaskService
from taskflow.models.task import Task, TaskStatus, TaskKind


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

# Reference instant used by the fixed clock
FIXED_NOW = datetime(2025, 1, 10, 12, 0, 0)


@pytest.fixture(scope="function")
def db_engine():
    """In-memory SQLite engine shared by every session of one test."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragmas(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Create a database session for testing."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sql_statements(db_engine):
    """Record every SQL statement executed on the test engine.

    Clear the list right before the call under test, then assert on it.
    """
    statements = []

    def _record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(db_engine, "before_cursor_execute", _record)
    try:
        yield statements
    finally:
        event.remove(db_engine, "before_cursor_execute", _record)


@pytest.fixture
def test_user_id():
    """Test owner ID for multi-user testing."""
    return "test-user-123"


@pytest.fixture
def other_user_id():
    return "other-user-456"


@pytest.fixture
def clock():
    return FixedClock(FIXED_NOW)


@pytest.fixture
def task_repository(db_session: Session):
    """Create a TaskRepository instance for testing."""
    return TaskRepository(db_session)


@pytest.fixture
def dependency_repository(db_session: Session):
    return DependencyRepository(db_session)


@pytest.fixture
def series_repository(db_session: Session):
    return TaskSeriesRepository(db_session)


@pytest.fixture
def preferences_repository(db_session: Session):
    return PreferencesRepository(db_session)


@pytest.fixture
def dependency_manager(task_repository, dependency_repository):
    return DependencyGraphManager(task_repository, dependency_repository)


@pytest.fixture
def subtask_service(task_repository, clock):
    return SubtaskService(task_repository, clock=clock)


@pytest.fixture
def recurrence_engine(task_repository, series_repository, preferences_repository, clock):
    return RecurrenceEngine(task_repository, series_repository, preferences_repository, clock=clock)


@pytest.fixture
def lifecycle(task_repository, dependency_manager, subtask_service, recurrence_engine, clock):
    return TaskLifecycleService(
        task_repository, dependency_manager, subtask_service, recurrence_engine, clock=clock
    )


@pytest.fixture
def sample_task_base(test_user_id):
    """Base task data for creating test tasks.

    Returns a dict with default task attributes that can be overridden.
    """
    return {
        "id": str(uuid.uuid4()),
        "user_id": test_user_id,
        "title": "Test Task",
        "description": "Test description",
        "status": TaskStatus.TODO,
        "user_priority": 5,
        "priority_score": 0,
        "estimated_effort": None,
        "category": None,
        "due_date": None,
        "created_at": FIXED_NOW,
        "updated_at": FIXED_NOW,
        "completed_at": None,
        "bump_count": 0,
        "task_kind": TaskKind.REGULAR,
        "parent_task_id": None,
        "series_id": None,
    }


@pytest.fixture
def sample_task(sample_task_base):
    """Create a sample Task object for testing."""
    return Task(**sample_task_base)


@pytest.fixture
def make_task(task_repository, sample_task_base):
    """Persist a task built from ``sample_task_base`` plus overrides."""

    def _make(**overrides) -> Task:
        data = {**sample_task_base, "id": str(uuid.uuid4()), **overrides}
        return task_repository.create(Task(**data))

    return _make
