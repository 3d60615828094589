"""
Pytest configuration for rowmapper.

Provides fixtures for:
- An in-memory fake of the database collaborator (pool -> connection -> cursor)
  that understands the four statement shapes the builder emits
- Database connection management for integration tests
- Settings override for integration tests
"""

from __future__ import annotations

import os
import re
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Generator, Iterator, List, Optional, Sequence, Tuple

import psycopg
import pytest

from rowmapper.config import Settings
from rowmapper.infrastructure.db_factory import get_sync_connection

DB_NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
ARTICLE_COLUMNS = ("id", "title", "text", "created_at", "updated_at")

_INSERT = re.compile(r"^INSERT INTO (\w+) \(([^)]*)\) VALUES \(([^)]*)\) RETURNING \*$")
_UPDATE = re.compile(r"^UPDATE (\w+) SET (.*) WHERE (\w+) = (\$\d+) RETURNING \*$")
_SELECT = re.compile(r"^SELECT \* FROM (\w+)(?: WHERE (\w+) = (\$\d+))?$")
_DELETE = re.compile(r"^DELETE FROM (\w+) WHERE (\w+) = (\$\d+)$")


def _arg(placeholder: str, args: Sequence[Any]) -> Any:
    return args[int(placeholder.lstrip("$")) - 1]


class FakeDatabase:
    """
    Tiny in-memory stand-in for PostgreSQL.

    Resolves every ``$n`` against the argument list, so a statement whose
    placeholders and arguments disagree writes the wrong values, exactly as
    the real server would.
    """

    def __init__(self, columns: Sequence[str] = ARTICLE_COLUMNS) -> None:
        self.columns = tuple(columns)
        self.tables: Dict[str, Dict[int, Dict[str, Any]]] = {}
        self.executed: List[Tuple[str, Tuple[Any, ...]]] = []
        self.fail_with: Optional[BaseException] = None
        self._next_id = 1

    def seed(self, table: str, **row: Any) -> Dict[str, Any]:
        full = {column: None for column in self.columns}
        full.update(row)
        if full["id"] is None:
            full["id"] = self._next_id
        self._next_id = max(self._next_id, full["id"] + 1)
        self.tables.setdefault(table, {})[full["id"]] = full
        return dict(full)

    def run(self, sql: str, args: Sequence[Any]) -> Tuple[List[Dict[str, Any]], int]:
        self.executed.append((sql, tuple(args)))
        if self.fail_with is not None:
            raise self.fail_with

        match = _INSERT.match(sql)
        if match:
            table, columns, placeholders = match.groups()
            row = {
                column: _arg(placeholder, args)
                for column, placeholder in zip(columns.split(","), placeholders.split(","))
            }
            row.setdefault("created_at", DB_NOW)
            row.setdefault("updated_at", DB_NOW)
            stored = self.seed(table, **row)
            return [stored], 1

        match = _UPDATE.match(sql)
        if match:
            table, assignments, key, placeholder = match.groups()
            row = self._lookup(table, key, _arg(placeholder, args))
            if row is None:
                return [], 0
            for assignment in assignments.split(", "):
                column, value = assignment.split(" = ")
                row[column] = _arg(value, args)
            return [dict(row)], 1

        match = _SELECT.match(sql)
        if match:
            table, key, placeholder = match.groups()
            rows = list(self.tables.get(table, {}).values())
            if key is not None:
                row = self._lookup(table, key, _arg(placeholder, args))
                rows = [row] if row is not None else []
            return [dict(row) for row in rows], len(rows)

        match = _DELETE.match(sql)
        if match:
            table, key, placeholder = match.groups()
            row = self._lookup(table, key, _arg(placeholder, args))
            if row is None:
                return [], 0
            del self.tables[table][row["id"]]
            return [], 1

        raise AssertionError(f"unexpected SQL: {sql}")

    def _lookup(self, table: str, key: str, value: Any) -> Optional[Dict[str, Any]]:
        for row in self.tables.get(table, {}).values():
            if row.get(key) == value:
                return row
        return None


class FakeCursor:
    def __init__(self, db: FakeDatabase, row_factory: Any = None) -> None:
        self._db = db
        self.row_factory = row_factory
        self._rows: List[Dict[str, Any]] = []
        self.rowcount = -1

    def execute(self, sql: str, params: Sequence[Any] = ()) -> None:
        self._rows, self.rowcount = self._db.run(sql, params)

    def fetchall(self) -> List[Dict[str, Any]]:
        return list(self._rows)

    def fetchone(self) -> Optional[Dict[str, Any]]:
        return self._rows[0] if self._rows else None

    def __enter__(self) -> FakeCursor:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        del exc_type, exc, tb
        return False


class FakeConnection:
    def __init__(self, db: FakeDatabase) -> None:
        self._db = db

    def cursor(self, row_factory: Any = None) -> FakeCursor:
        return FakeCursor(self._db, row_factory=row_factory)


class FakePool:
    def __init__(self, db: FakeDatabase) -> None:
        self.db = db
        self.borrowed = 0
        self.closed = False

    @contextmanager
    def connection(self) -> Iterator[FakeConnection]:
        self.borrowed += 1
        yield FakeConnection(self.db)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def fake_pool(fake_db: FakeDatabase) -> FakePool:
    return FakePool(fake_db)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "blog_development"),
        db_connect_attempts=1,
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_settings: Settings, test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped database connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = get_sync_connection(test_settings, dsn_override=test_dsn)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="session")
def db_schema_initialized(db_connection: psycopg.Connection) -> bool:
    """
    Ensure the articles table exists, creating it from db/init.sql if necessary.
    """
    init_sql_path = Path(__file__).parent.parent / "db" / "init.sql"
    with db_connection.cursor() as cur:
        cur.execute(init_sql_path.read_text(encoding="utf-8"))
    db_connection.commit()
    return True


@pytest.fixture(scope="function")
def clean_articles_table(db_connection: psycopg.Connection, db_schema_initialized: bool):
    """
    Clean the articles table before and after each test function.
    """
    with db_connection.cursor() as cur:
        cur.execute("TRUNCATE TABLE public.articles RESTART IDENTITY CASCADE;")
    db_connection.commit()
    yield
    with db_connection.cursor() as cur:
        cur.execute("TRUNCATE TABLE public.articles RESTART IDENTITY CASCADE;")
    db_connection.commit()
