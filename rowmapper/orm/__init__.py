"""
The mapping engine: field descriptors, clause policy, statement building,
execution and the Mapper façade.
"""

from rowmapper.orm.clauses import Operation, build_clauses, identity_of
from rowmapper.orm.errors import (
    ExecutionError,
    ExecutionKind,
    MissingIdentityError,
    NoFieldsError,
    NotFoundError,
    ORMError,
    ShapeError,
    ShapeKind,
    StatementBuildError,
)
from rowmapper.orm.executor import Executor, QueryLogger, RichQueryLogger, log_query
from rowmapper.orm.fields import (
    FieldDescriptor,
    TableBinding,
    camel_to_snake,
    describe,
    mapping_for,
    table_name_for,
)
from rowmapper.orm.mapper import Mapper
from rowmapper.orm.statements import PlaceholderStyle, Statement, StatementBuilder

__all__ = [
    # Façade
    "Mapper",
    # Stages
    "FieldDescriptor",
    "TableBinding",
    "camel_to_snake",
    "describe",
    "mapping_for",
    "table_name_for",
    "Operation",
    "build_clauses",
    "identity_of",
    "PlaceholderStyle",
    "Statement",
    "StatementBuilder",
    "Executor",
    "QueryLogger",
    "RichQueryLogger",
    "log_query",
    # Errors
    "ORMError",
    "ShapeError",
    "ShapeKind",
    "MissingIdentityError",
    "NoFieldsError",
    "NotFoundError",
    "StatementBuildError",
    "ExecutionError",
    "ExecutionKind",
]
