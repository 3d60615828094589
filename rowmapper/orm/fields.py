"""
Field descriptor extraction for mapped records.

A record is a mutable dataclass or pydantic model instance. The shape of each
record type is inspected once and cached as a RecordMapping (logical field
name -> column name), so per-call work is limited to reading current values.

Field metadata understood by the mapper:

    {"db": "column_name"}   override the derived column name
    {"db": "-"}             never map this field
    {"db_readonly": True}   decode from rows but never write (server-computed)

Dataclasses carry it in ``field(metadata=...)``; pydantic models in
``Field(json_schema_extra=...)``.
"""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, List, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel

from rowmapper.orm.errors import ShapeError, ShapeKind

R = TypeVar("R")

_MISSING = object()

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")


def camel_to_snake(name: str) -> str:
    """
    Convert a CamelCase name to snake_case (``CreatedAt`` -> ``created_at``).

    Acronym runs stay together (``UserID`` -> ``user_id``). Already snake_case
    names come back unchanged.
    """
    name = _ACRONYM_BOUNDARY.sub(r"\1_\2", name)
    name = _WORD_BOUNDARY.sub(r"\1_\2", name)
    return name.lower()


def _pluralize(word: str) -> str:
    if word.endswith("y") and len(word) > 1 and word[-2] not in "aeiou":
        return word[:-1] + "ies"
    if word.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    return word + "s"


def table_name_for(record_type: type) -> str:
    """Derive the default table name: snake_case, pluralized type name."""
    return _pluralize(camel_to_snake(record_type.__name__))


@dataclass(frozen=True)
class TableBinding:
    """
    Binds a record type to its table.

    These are the only configuration options the mapper recognizes.
    """

    table: str
    identity_column: str = "id"
    created_column: str = "created_at"
    updated_column: str = "updated_at"


def binding_for(record_type: type) -> TableBinding:
    """
    Resolve the binding declared on a record type.

    ``__binding__`` wins over ``__table__``; otherwise the table name is
    derived from the type name.
    """
    declared = getattr(record_type, "__binding__", None)
    if isinstance(declared, TableBinding):
        return declared
    table = getattr(record_type, "__table__", None)
    if isinstance(table, str) and table:
        return TableBinding(table=table)
    return TableBinding(table=table_name_for(record_type))


@dataclass(frozen=True)
class FieldSpec:
    name: str
    column: str
    writable: bool = True
    # Key the record constructor expects for this field (pydantic alias).
    init_key: Optional[str] = None


@dataclass(frozen=True)
class RecordMapping:
    """Per-type field mapping table, built once by mapping_for()."""

    record_type: type
    fields: Tuple[FieldSpec, ...]
    frozen: bool = False
    is_pydantic: bool = False


@dataclass(frozen=True)
class FieldDescriptor:
    """One field of one record, as seen during a single mapper call."""

    name: str
    column: str
    value: Any
    is_zero: bool
    writable: bool = True


def _spec_from_metadata(
    name: str, metadata: Mapping[str, Any], init_key: Optional[str] = None
) -> Optional[FieldSpec]:
    # Leading underscore means private; the field is not visible to the mapper.
    if name.startswith("_"):
        return None
    column = metadata.get("db") or camel_to_snake(name)
    if column == "-":
        return None
    return FieldSpec(
        name=name,
        column=column,
        writable=not metadata.get("db_readonly", False),
        init_key=init_key or name,
    )


def _dataclass_mapping(record_type: type) -> RecordMapping:
    specs = []
    for f in dataclasses.fields(record_type):
        spec = _spec_from_metadata(f.name, f.metadata)
        if spec is not None:
            specs.append(spec)
    params = getattr(record_type, "__dataclass_params__", None)
    return RecordMapping(
        record_type=record_type,
        fields=tuple(specs),
        frozen=bool(params and params.frozen),
    )


def _pydantic_mapping(record_type: Type[BaseModel]) -> RecordMapping:
    specs = []
    for name, info in record_type.model_fields.items():
        if info.frozen:
            continue
        extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
        alias = info.validation_alias if isinstance(info.validation_alias, str) else info.alias
        spec = _spec_from_metadata(name, extra, alias)
        if spec is not None:
            specs.append(spec)
    return RecordMapping(
        record_type=record_type,
        fields=tuple(specs),
        frozen=bool(record_type.model_config.get("frozen", False)),
        is_pydantic=True,
    )


def mapping_for(record_type: type, operation: Optional[str] = None) -> RecordMapping:
    """
    Build (once) and return the field mapping table for a record type.

    Raises
    ------
    ShapeError
        If the type is neither a dataclass nor a pydantic model.
    """
    if not isinstance(record_type, type):
        raise ShapeError(
            ShapeKind.NOT_A_RECORD, f"{type(record_type).__name__} instance", operation
        )
    mapping = _build_mapping(record_type)
    if mapping is None:
        raise ShapeError(ShapeKind.NOT_A_RECORD, record_type.__name__, operation)
    return mapping


@lru_cache(maxsize=None)
def _build_mapping(record_type: type) -> Optional[RecordMapping]:
    if dataclasses.is_dataclass(record_type):
        return _dataclass_mapping(record_type)
    if issubclass(record_type, BaseModel):
        return _pydantic_mapping(record_type)
    return None


def mapping_for_instance(record: Any, operation: Optional[str] = None) -> RecordMapping:
    """Return the mapping for a record instance, validating that it can be mutated."""
    if isinstance(record, type):
        raise ShapeError(ShapeKind.NOT_A_MUTABLE_RECORD, f"class {record.__name__}", operation)
    mapping = mapping_for(type(record), operation)
    if mapping.frozen:
        raise ShapeError(
            ShapeKind.NOT_A_MUTABLE_RECORD, f"frozen {type(record).__name__}", operation
        )
    return mapping


def describe(record: Any, operation: Optional[str] = None) -> List[FieldDescriptor]:
    """
    Describe every visible field of a record, in declaration order.

    A field is zero (unset) when its current value is None, or when it has no
    value at all yet (a dataclass ``field(init=False)`` without a default).
    """
    mapping = mapping_for_instance(record, operation)
    descriptors = []
    for spec in mapping.fields:
        value = getattr(record, spec.name, None)
        descriptors.append(
            FieldDescriptor(
                name=spec.name,
                column=spec.column,
                value=value,
                is_zero=value is None,
                writable=spec.writable,
            )
        )
    return descriptors


def assign_row(record: Any, row: Mapping[str, Any]) -> None:
    """
    Write a decoded row into a record in place.

    Columns without a matching field are ignored. If any assignment fails,
    the fields already written are restored before the error propagates.
    """
    mapping = mapping_for_instance(record)
    updates = [(spec.name, row[spec.column]) for spec in mapping.fields if spec.column in row]
    previous = {name: getattr(record, name, _MISSING) for name, _ in updates}
    written: List[str] = []
    try:
        for name, value in updates:
            setattr(record, name, value)
            written.append(name)
    except Exception:
        for name in written:
            if previous[name] is _MISSING:
                delattr(record, name)
            else:
                setattr(record, name, previous[name])
        raise


def build_record(record_type: Type[R], row: Mapping[str, Any]) -> R:
    """Construct a new record of ``record_type`` from a decoded row."""
    mapping = mapping_for(record_type)
    if mapping.is_pydantic:
        # model_validate looks fields up by alias.
        payload = {
            spec.init_key: row[spec.column] for spec in mapping.fields if spec.column in row
        }
        return record_type.model_validate(payload)  # type: ignore[attr-defined]

    values = {spec.name: row[spec.column] for spec in mapping.fields if spec.column in row}
    init_names = {f.name for f in dataclasses.fields(record_type) if f.init}
    record = record_type(**{k: v for k, v in values.items() if k in init_names})
    for name, value in values.items():
        if name not in init_names:
            setattr(record, name, value)
    return record


__all__ = [
    "camel_to_snake",
    "table_name_for",
    "TableBinding",
    "binding_for",
    "FieldSpec",
    "RecordMapping",
    "FieldDescriptor",
    "mapping_for",
    "mapping_for_instance",
    "describe",
    "assign_row",
    "build_record",
]
