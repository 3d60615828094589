"""
Mapper façade: All, Find, Save, Update and Destroy for mapped records.

Each operation runs the same pipeline: describe the record, apply the clause
policy, build the statement, execute it, and decode the returned row back into
the caller's record. The mapper keeps no reference to records after a call.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

import psycopg

from rowmapper.config import Settings, get_settings
from rowmapper.infrastructure.db_factory import open_pool
from rowmapper.orm.clauses import Operation, build_clauses, identity_of, utcnow
from rowmapper.orm.errors import ExecutionError, ExecutionKind
from rowmapper.orm.executor import ConnectionSource, Executor, QueryLogger, log_query
from rowmapper.orm.fields import (
    TableBinding,
    binding_for,
    describe,
    mapping_for,
    mapping_for_instance,
)
from rowmapper.orm.statements import StatementBuilder
from rowmapper.utils.logging import get_logger

log = get_logger(__name__)

R = TypeVar("R")


class Mapper:
    """
    Object-relational mapper over a single connection pool.

    Safe to share between threads: the only shared state is the pool (which
    synchronizes itself) and the binding table, which should be filled with
    bind() before concurrent use.

    Example
    -------
        with Mapper.connect() as db:
            article = Article(title="Hey!!", text="A test.")
            db.save(article)
            article.id  # assigned by the database
    """

    def __init__(
        self,
        pool: ConnectionSource,
        builder: Optional[StatementBuilder] = None,
        query_logger: Optional[QueryLogger] = log_query,
        clock: Optional[Callable[[], Any]] = None,
    ) -> None:
        self.pool = pool
        self.builder = builder or StatementBuilder()
        self.executor = Executor(pool, query_logger=query_logger)
        self.clock = clock or utcnow
        self._bindings: Dict[type, TableBinding] = {}

    @classmethod
    def connect(
        cls,
        settings: Optional[Settings] = None,
        dsn_override: Optional[str] = None,
        **kwargs: Any,
    ) -> "Mapper":
        """
        Open a connection pool and return a mapper bound to it.

        Pooled connections get the cursor class matching the placeholder style
        of ``builder`` (RawCursor for the default ``$n`` style).

        Raises
        ------
        ExecutionError
            With kind CONNECTION when the pool cannot be opened; retry policy
            beyond ``db_connect_attempts`` is left to the caller.
        """
        settings = settings or get_settings()
        builder = kwargs.get("builder") or StatementBuilder()
        try:
            pool = open_pool(
                settings,
                dsn_override=dsn_override,
                cursor_factory=builder.style.cursor_factory,
            )
        except psycopg.Error as exc:
            raise ExecutionError(ExecutionKind.CONNECTION, exc, operation="connect") from exc
        if not settings.log_queries:
            kwargs.setdefault("query_logger", None)
        log.info("Mapper connected", extra={"host": settings.db_host, "db": settings.db_name})
        return cls(pool, **kwargs)

    def close(self) -> None:
        close = getattr(self.pool, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> "Mapper":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def bind(self, record_type: type, **overrides: Any) -> TableBinding:
        """
        Configure the table binding for a record type.

        Accepts ``table``, ``identity_column``, ``created_column`` and
        ``updated_column``; anything not given keeps its declared or derived
        default.
        """
        mapping_for(record_type, "bind")
        binding = dataclasses.replace(binding_for(record_type), **overrides)
        self._bindings[record_type] = binding
        return binding

    def binding(self, record_type: type) -> TableBinding:
        return self._bindings.get(record_type) or binding_for(record_type)

    def all(self, record_type: Type[R], into: Optional[List[R]] = None) -> List[R]:
        """
        Load every row of the record type's table.

        When ``into`` is given, the records are appended to it (only once all
        rows decoded) and it is returned.
        """
        mapping_for(record_type, "all")
        binding = self.binding(record_type)
        records = self.executor.select_all(self.builder.select(binding.table), record_type)
        if into is None:
            return records
        into.extend(records)
        return into

    def find(self, record: R, id: Any) -> R:
        """
        Load the row with the given primary key into ``record``.

        Raises NotFoundError, leaving ``record`` unmodified, when no row matches.
        """
        mapping_for_instance(record, "find")
        binding = self.binding(type(record))
        statement = self.builder.select(binding.table, where=(binding.identity_column, id))
        return self.executor.get(statement, record, binding.table, id)

    def save(self, record: R) -> R:
        """
        Insert the record. Values set by the database (identity, timestamps)
        are written back onto ``record`` from the RETURNING clause.
        """
        descriptors = describe(record, "save")
        binding = self.binding(type(record))
        _, clauses = build_clauses(descriptors, Operation.CREATE, binding, now=self.clock())
        statement = self.builder.insert(binding.table, clauses)
        return self.executor.get(statement, record, binding.table)

    def update(self, record: R) -> R:
        """
        Update the record by its primary key, refreshing ``updated_at``.

        ``created_at`` is never rewritten.
        """
        descriptors = describe(record, "update")
        binding = self.binding(type(record))
        identity, clauses = build_clauses(
            descriptors, Operation.UPDATE, binding, now=self.clock()
        )
        statement = self.builder.update(
            binding.table, clauses, where=(binding.identity_column, identity)
        )
        return self.executor.get(statement, record, binding.table, identity)

    def destroy(self, record: Any) -> int:
        """Delete the record's row by primary key; returns the number of rows deleted."""
        descriptors = describe(record, "destroy")
        binding = self.binding(type(record))
        identity = identity_of(descriptors, binding)
        statement = self.builder.delete(binding.table, where=(binding.identity_column, identity))
        return self.executor.exec(statement)


__all__ = ["Mapper"]
