"""
Error taxonomy for the mapper.

Every stage raises a subclass of ORMError so callers can tell which stage
failed: record shape, clause policy, statement assembly, or execution.
"""

from __future__ import annotations

import enum
from typing import Any, Optional


class ORMError(Exception):
    """Base class for all mapper errors."""


class ShapeKind(str, enum.Enum):
    NOT_A_MUTABLE_RECORD = "not_a_mutable_record"
    NOT_A_RECORD = "not_a_record"


class ShapeError(ORMError, TypeError):
    """
    The value handed to the mapper is not a usable record instance.

    No table is known at this stage; ``operation`` names the mapper call
    (``save``, ``find``, ...) when the error came through one.
    """

    def __init__(self, kind: ShapeKind, found: str, operation: Optional[str] = None) -> None:
        self.kind = kind
        self.found = found
        self.operation = operation
        if kind is ShapeKind.NOT_A_MUTABLE_RECORD:
            message = f"expected a mutable record instance, but got a {found}"
        else:
            message = f"expected a dataclass or pydantic record, but got a {found}"
        if operation:
            message = f"{operation}: {message}"
        super().__init__(message)


class MissingIdentityError(ORMError, ValueError):
    """UPDATE or DESTROY was attempted on a record whose identity is unset."""

    def __init__(self, table: str, column: str) -> None:
        self.table = table
        self.column = column
        super().__init__(f"{table}: identity column '{column}' is not set")


class NoFieldsError(ORMError, ValueError):
    """An INSERT or UPDATE had nothing to write."""

    def __init__(self, table: str, operation: str) -> None:
        self.table = table
        self.operation = operation
        super().__init__(f"{table}: no fields to write for {operation}")


class NotFoundError(ORMError, LookupError):
    """A by-id lookup (or RETURNING statement) produced no rows."""

    def __init__(self, table: str, identity: Any) -> None:
        self.table = table
        self.identity = identity
        super().__init__(f"{table}: no row with id={identity!r}")


class StatementBuildError(ORMError):
    """SQL assembly failed; indicates a defect in the caller's configuration."""

    def __init__(
        self, message: str, table: Optional[str] = None, operation: Optional[str] = None
    ) -> None:
        self.table = table
        self.operation = operation
        if operation:
            message = f"{operation} on {table}: {message}"
        super().__init__(message)


class ExecutionKind(str, enum.Enum):
    CONNECTION = "connection"
    CONSTRAINT = "constraint"
    CANCELLED = "cancelled"
    OTHER = "other"


class ExecutionError(ORMError):
    """
    The database collaborator failed.

    The original driver exception is kept unmodified on ``error`` and chained
    as ``__cause__``.
    """

    def __init__(
        self,
        kind: ExecutionKind,
        error: BaseException,
        sql: Optional[str] = None,
        table: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> None:
        self.kind = kind
        self.error = error
        self.sql = sql
        self.table = table
        self.operation = operation
        detail = f" while executing: {sql}" if sql else ""
        prefix = f"{operation} on {table}: " if operation and table else ""
        super().__init__(f"{prefix}{kind.value} error{detail}: {error}")


__all__ = [
    "ORMError",
    "ShapeKind",
    "ShapeError",
    "MissingIdentityError",
    "NoFieldsError",
    "NotFoundError",
    "StatementBuildError",
    "ExecutionKind",
    "ExecutionError",
]
