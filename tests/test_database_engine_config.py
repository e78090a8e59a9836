import os


def test_get_engine_kwargs_sqlite_has_check_same_thread(monkeypatch):
    # Import lazily so monkeypatch can affect env usage deterministically.
    from taskflow.database import database as db

    kwargs = db.get_engine_kwargs("sqlite:///./taskflow.db")
    assert "connect_args" in kwargs
    assert kwargs["connect_args"]["check_same_thread"] is False
    # SQLite should not require pool sizing knobs.
    assert "pool_size" not in kwargs
    assert "max_overflow" not in kwargs
    assert kwargs["pool_pre_ping"] is True


def test_get_engine_kwargs_postgres_has_conservative_pooling(monkeypatch):
    from taskflow.database import database as db

    monkeypatch.setenv("DB_POOL_SIZE", "8")
    monkeypatch.setenv("DB_MAX_OVERFLOW", "2")
    monkeypatch.setenv("DB_POOL_TIMEOUT_SEC", "15")

    kwargs = db.get_engine_kwargs("postgresql+psycopg://u:p@localhost:5432/db")
    assert "connect_args" not in kwargs
    assert kwargs["pool_pre_ping"] is True
    assert kwargs["pool_size"] == 8
    assert kwargs["max_overflow"] == 2
    assert kwargs["pool_timeout"] == 15


def test_debug_enables_echo(monkeypatch):
    from taskflow.database import database as db

    monkeypatch.setenv("DEBUG", "true")
    assert db.get_engine_kwargs("sqlite://")["echo"] is True
    monkeypatch.setenv("DEBUG", "false")
    assert db.get_engine_kwargs("sqlite://")["echo"] is False


def test_sqlite_pragmas_listener_is_guarded():
    # Verify the helper used by the connect event guard behaves as expected.
    from taskflow.database import database as db

    assert db._is_sqlite_url("sqlite:///./taskflow.db") is True
    assert db._is_sqlite_url("postgresql+psycopg://u:p@localhost/db") is False


def test_schema_creates_all_tables(tmp_path):
    """create_all on a fresh SQLite file produces every table."""
    from sqlalchemy import create_engine, inspect
    from taskflow.database.database import Base
    import taskflow.database.models  # noqa: F401

    url = f"sqlite:///{os.path.join(str(tmp_path), 'schema.db')}"
    engine = create_engine(url, connect_args={"check_same_thread": False})
    try:
        Base.metadata.create_all(bind=engine)
        tables = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()

    assert {
        "tasks",
        "task_dependencies",
        "task_series",
        "user_preferences",
        "category_preferences",
    } <= tables
