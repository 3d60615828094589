"""
rowmapper - a minimal object-relational mapper for PostgreSQL.

Maps dataclass and pydantic records onto a single table each:

- All / Find (by primary key)
- Save (INSERT ... RETURNING *)
- Update (UPDATE ... RETURNING *, refreshing updated_at)
- Destroy (DELETE by primary key)

Server-generated values (identity, lifecycle timestamps) are scanned back into
the caller's record after every write.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from rowmapper.config import Settings, get_settings
from rowmapper.orm import (
    ExecutionError,
    Mapper,
    MissingIdentityError,
    NoFieldsError,
    NotFoundError,
    ORMError,
    ShapeError,
    StatementBuildError,
    TableBinding,
)
from rowmapper.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Mapper
    "Mapper",
    "TableBinding",
    # Errors
    "ORMError",
    "ShapeError",
    "MissingIdentityError",
    "NoFieldsError",
    "NotFoundError",
    "StatementBuildError",
    "ExecutionError",
    # Logging
    "configure_logging",
    "get_logger",
]
