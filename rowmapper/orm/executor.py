"""
Statement execution and row decoding.

The executor borrows a connection from the pool for each statement, runs it,
and decodes the result into records. Every call is timed and reported to a
query logger; logging is advisory and never changes the outcome of a call.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Protocol, Sequence, Type, TypeVar

import psycopg
from psycopg.errors import QueryCanceled
from psycopg.rows import dict_row
from rich.console import Console
from rich.markup import escape

from rowmapper.orm.errors import ExecutionError, ExecutionKind, NotFoundError
from rowmapper.orm.fields import assign_row, build_record
from rowmapper.orm.statements import Statement
from rowmapper.utils.logging import get_logger
from rowmapper.utils.profiler import profile_block

log = get_logger(__name__)
sql_log = get_logger("rowmapper.sql")

R = TypeVar("R")

# (elapsed seconds, sql text, bind arguments)
QueryLogger = Callable[[float, str, Sequence[Any]], None]


class ConnectionSource(Protocol):
    """Anything handing out connections as a context manager (psycopg_pool.ConnectionPool)."""

    def connection(self) -> Any:
        ...


def log_query(elapsed: float, sql: str, args: Sequence[Any]) -> None:
    """Default query logger: one DEBUG line on the ``rowmapper.sql`` logger."""
    sql_log.debug(
        f"({elapsed * 1000:.3f}ms) {sql} {list(args)!r}",
        extra={"duration_ms": round(elapsed * 1000, 3), "sql": sql, "params": list(args)},
    )


class RichQueryLogger:
    """
    Console query logger in the style of web-framework development logs:

        Article Load (1.234ms) SELECT * FROM articles WHERE id = $1 [2]
    """

    def __init__(self, label: str = "Query", console: Optional[Console] = None) -> None:
        self.label = label
        self.console = console or Console(highlight=False)

    def __call__(self, elapsed: float, sql: str, args: Sequence[Any]) -> None:
        self.console.print(
            f"[bold bright_cyan]{self.label} Load ({elapsed * 1000:.3f}ms)[/] "
            f"[bold bright_blue]{escape(sql)}[/] {escape(repr(list(args)))}",
            markup=True,
        )


def _classify(exc: psycopg.Error) -> ExecutionKind:
    if isinstance(exc, QueryCanceled):
        return ExecutionKind.CANCELLED
    if isinstance(exc, psycopg.IntegrityError):
        return ExecutionKind.CONSTRAINT
    if isinstance(exc, (psycopg.OperationalError, psycopg.InterfaceError)):
        return ExecutionKind.CONNECTION
    return ExecutionKind.OTHER


class Executor:
    """
    Runs built statements against a connection pool.

    Parameters
    ----------
    pool : ConnectionSource
        Usually a psycopg_pool.ConnectionPool whose cursor factory matches the
        builder's placeholder style.
    query_logger : QueryLogger, optional
        Receives timing and statement details after every call. None disables
        query logging.
    """

    def __init__(
        self, pool: ConnectionSource, query_logger: Optional[QueryLogger] = log_query
    ) -> None:
        self.pool = pool
        self.query_logger = query_logger

    def _report(self, elapsed: float, statement: Statement) -> None:
        if self.query_logger is None:
            return
        try:
            self.query_logger(elapsed, statement.sql, statement.args)
        except Exception:  # noqa: BLE001 - query logging must never affect the caller
            log.warning("Query logger failed", exc_info=True, extra={"sql": statement.sql})

    def _run(self, statement: Statement, fetch: Callable[[Any], Any]) -> Any:
        """Borrow a connection, execute the statement and return ``fetch(cursor)``."""
        try:
            with profile_block(statement.sql) as stats:
                with self.pool.connection() as conn:
                    with conn.cursor(row_factory=dict_row) as cur:
                        cur.execute(statement.sql, statement.args)
                        return fetch(cur)
        except psycopg.Error as exc:
            raise ExecutionError(
                _classify(exc),
                exc,
                statement.sql,
                table=statement.table,
                operation=statement.operation,
            ) from exc
        finally:
            self._report(stats.duration_seconds, statement)

    def select_all(self, statement: Statement, record_type: Type[R]) -> List[R]:
        """Execute a SELECT and build one record per returned row."""
        rows = self._run(statement, lambda cur: cur.fetchall())
        return [build_record(record_type, row) for row in rows]

    def get(self, statement: Statement, record: Any, table: str, identity: Any = None) -> Any:
        """
        Execute a statement expected to return one row and decode it into ``record``.

        Used for SELECT by id as well as INSERT/UPDATE ... RETURNING *, which is
        how server-generated values reach the caller's record.

        Raises
        ------
        NotFoundError
            When no row comes back; ``record`` is left untouched.
        """
        row = self._run(statement, lambda cur: cur.fetchone())
        if row is None:
            raise NotFoundError(table, identity)
        assign_row(record, row)
        return record

    def exec(self, statement: Statement) -> int:
        """Execute a statement without decoding; returns the affected row count."""
        return self._run(statement, lambda cur: cur.rowcount)


__all__ = [
    "ConnectionSource",
    "Executor",
    "QueryLogger",
    "RichQueryLogger",
    "log_query",
]
