"""
Parameterized SQL assembly.

The builder is a pure function of its inputs. Placeholders are numbered in the
order they appear in the text and ``Statement.args`` follows that same order;
a mismatch would bind values to the wrong columns.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Tuple, Type

import psycopg

from rowmapper.orm.errors import NoFieldsError, StatementBuildError

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")

Predicate = Tuple[str, Any]


class PlaceholderStyle(str, enum.Enum):
    """
    Placeholder syntax, tied to the psycopg cursor class that can execute it.

    ``RawCursor`` sends the text to the server untouched, so it takes ``$n``;
    the default ``Cursor`` rewrites ``%s`` itself.
    """

    DOLLAR = "dollar"  # $1, $2
    PYFORMAT = "pyformat"  # %s

    def render(self, position: int) -> str:
        if self is PlaceholderStyle.DOLLAR:
            return f"${position}"
        return "%s"

    @property
    def cursor_factory(self) -> Type[psycopg.Cursor]:
        if self is PlaceholderStyle.DOLLAR:
            return psycopg.RawCursor
        return psycopg.Cursor


@dataclass(frozen=True)
class Statement:
    """
    SQL text plus positionally-corresponding bind arguments.

    ``table`` and ``operation`` are context for error reports only and do not
    take part in equality.
    """

    sql: str
    args: Tuple[Any, ...] = ()
    table: Optional[str] = field(default=None, compare=False)
    operation: Optional[str] = field(default=None, compare=False)

    def __str__(self) -> str:
        return self.sql


def _identifier(name: str, table: str, operation: str) -> str:
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise StatementBuildError(f"invalid SQL identifier: {name!r}", table, operation)
    return name


class _Placeholders:
    """Hands out placeholders in textual order and collects their arguments."""

    def __init__(self, style: PlaceholderStyle) -> None:
        self._style = style
        self.args: List[Any] = []

    def bind(self, value: Any) -> str:
        self.args.append(value)
        return self._style.render(len(self.args))


class StatementBuilder:
    """
    Builds SELECT, INSERT, UPDATE and DELETE statements for a single table.
    """

    def __init__(self, style: PlaceholderStyle = PlaceholderStyle.DOLLAR) -> None:
        self.style = style

    def _where(self, table: str, operation: str, where: Predicate, params: _Placeholders) -> str:
        column, value = where
        return f"WHERE {_identifier(column, table, operation)} = {params.bind(value)}"

    def select(self, table: str, where: Optional[Predicate] = None) -> Statement:
        params = _Placeholders(self.style)
        parts = [f"SELECT * FROM {_identifier(table, table, 'select')}"]
        if where is not None:
            parts.append(self._where(table, "select", where, params))
        return Statement(" ".join(parts), tuple(params.args), table, "select")

    def insert(self, table: str, clauses: Mapping[str, Any]) -> Statement:
        if not clauses:
            raise NoFieldsError(table, "insert")
        params = _Placeholders(self.style)
        columns: List[str] = []
        placeholders: List[str] = []
        # One traversal feeds both lists so column i always pairs with $i.
        for column, value in clauses.items():
            columns.append(_identifier(column, table, "insert"))
            placeholders.append(params.bind(value))
        sql = (
            f"INSERT INTO {_identifier(table, table, 'insert')} ({','.join(columns)}) "
            f"VALUES ({','.join(placeholders)}) RETURNING *"
        )
        return Statement(sql, tuple(params.args), table, "insert")

    def update(self, table: str, clauses: Mapping[str, Any], where: Predicate) -> Statement:
        if not clauses:
            raise NoFieldsError(table, "update")
        params = _Placeholders(self.style)
        assignments = [
            f"{_identifier(column, table, 'update')} = {params.bind(value)}"
            for column, value in clauses.items()
        ]
        sql = (
            f"UPDATE {_identifier(table, table, 'update')} SET {', '.join(assignments)} "
            f"{self._where(table, 'update', where, params)} RETURNING *"
        )
        return Statement(sql, tuple(params.args), table, "update")

    def delete(self, table: str, where: Predicate) -> Statement:
        params = _Placeholders(self.style)
        sql = (
            f"DELETE FROM {_identifier(table, table, 'delete')} "
            f"{self._where(table, 'delete', where, params)}"
        )
        return Statement(sql, tuple(params.args), table, "delete")


__all__ = ["PlaceholderStyle", "Statement", "StatementBuilder"]
