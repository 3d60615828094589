"""
Infrastructure package for rowmapper.

Centralizes database connectivity concerns (DSN, pool, one-off connections).
Keep this layer focused on I/O and resource management, decoupled from the
mapping logic.
"""

from rowmapper.infrastructure.db_factory import (
    build_dsn,
    connection_kwargs,
    get_sync_connection,
    open_pool,
)

__all__ = [
    "build_dsn",
    "connection_kwargs",
    "get_sync_connection",
    "open_pool",
]
