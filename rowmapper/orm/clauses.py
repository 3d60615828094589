"""
Clause policy: which columns a CREATE or UPDATE writes, and with what values.

Rules, evaluated per field in priority order:

    identity    CREATE: written when set and writable, otherwise left to the
                database.
                UPDATE: never written; its value becomes the row filter, even
                when the field is read-only.
    created-at  CREATE: written as-is, or stamped with now when unset.
                UPDATE: never written.
    updated-at  CREATE: written as-is, or stamped with now when unset.
                UPDATE: always stamped with now, even when set by the caller.
    others      written when set, skipped when unset.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence, Tuple

from rowmapper.orm.errors import MissingIdentityError
from rowmapper.orm.fields import FieldDescriptor, TableBinding


class Operation(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_clauses(
    descriptors: Sequence[FieldDescriptor],
    operation: Operation,
    binding: TableBinding,
    now: Optional[datetime] = None,
) -> Tuple[Optional[Any], Dict[str, Any]]:
    """
    Decide the clause set for a CREATE or UPDATE.

    Parameters
    ----------
    descriptors : Sequence[FieldDescriptor]
        Output of describe() for the record being written.
    operation : Operation
        CREATE (INSERT) or UPDATE.
    binding : TableBinding
        Supplies the identity and timestamp column names.
    now : datetime, optional
        Timestamp used for stamped columns. Defaults to the current UTC time,
        taken once so both lifecycle columns agree.

    Returns
    -------
    tuple
        ``(identity, clauses)``. ``identity`` is the row filter for UPDATE and
        None for CREATE. ``clauses`` maps column -> value in field order.

    Raises
    ------
    MissingIdentityError
        On UPDATE when the identity field is unset.
    """
    stamp = now if now is not None else utcnow()
    creating = operation is Operation.CREATE
    identity: Optional[Any] = None
    clauses: Dict[str, Any] = {}

    for field in descriptors:
        column = field.column

        if column == binding.identity_column:
            if field.is_zero:
                continue
            if not creating:
                identity = field.value
            elif field.writable:
                clauses[column] = field.value
            continue

        if not field.writable:
            continue

        if column == binding.created_column:
            if creating:
                clauses[column] = stamp if field.is_zero else field.value
            continue

        if column == binding.updated_column:
            if creating and not field.is_zero:
                clauses[column] = field.value
            else:
                clauses[column] = stamp
            continue

        if not field.is_zero:
            clauses[column] = field.value

    if not creating and identity is None:
        raise MissingIdentityError(binding.table, binding.identity_column)

    return identity, clauses


def identity_of(descriptors: Sequence[FieldDescriptor], binding: TableBinding) -> Any:
    """Return the record's identity value, or raise MissingIdentityError when unset."""
    for field in descriptors:
        if field.column == binding.identity_column and not field.is_zero:
            return field.value
    raise MissingIdentityError(binding.table, binding.identity_column)


__all__ = ["Operation", "build_clauses", "identity_of", "utcnow"]
