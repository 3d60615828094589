"""
Database connection factory utilities for rowmapper.

Builds the psycopg connection pool the mapper runs on. Connections are created
with ``RawCursor`` as their cursor factory by default so statements can use
PostgreSQL's native ``$n`` placeholders (``%s`` statements need the default
``psycopg.Cursor`` instead), and with ``prepare_threshold`` so psycopg caches
prepared statements per connection.

Opening is retried with tenacity for transient connection failures; how many
attempts to make is the caller's decision (``Settings.db_connect_attempts``).
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Type

import psycopg
from psycopg import Connection
from psycopg_pool import ConnectionPool
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from rowmapper.config import Settings, get_settings
from rowmapper.utils.logging import get_logger

log = get_logger(__name__)

_TRANSIENT_ERRORS = (psycopg.OperationalError, psycopg.InterfaceError)


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a DSN string from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


def connection_kwargs(
    settings: Optional[Settings] = None,
    cursor_factory: Type[psycopg.Cursor] = psycopg.RawCursor,
) -> Dict[str, Any]:
    """Keyword arguments passed to every ``psycopg.connect`` call."""
    settings = settings or get_settings()
    return {
        "cursor_factory": cursor_factory,
        "prepare_threshold": settings.db_prepare_threshold,
    }


def _retrying(settings: Settings) -> Retrying:
    return Retrying(
        stop=stop_after_attempt(settings.db_connect_attempts),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(_TRANSIENT_ERRORS),
        reraise=True,
    )


def open_pool(
    settings: Optional[Settings] = None,
    dsn_override: Optional[str] = None,
    cursor_factory: Type[psycopg.Cursor] = psycopg.RawCursor,
) -> ConnectionPool:
    """
    Create and open a synchronous connection pool.

    Parameters
    ----------
    settings : Settings, optional
        Pool sizing, retry and timeout configuration. Defaults to get_settings().
    dsn_override : str, optional
        Connection string to use instead of the one built from settings.
    cursor_factory : type, optional
        Cursor class for pooled connections; must match the placeholder style
        of the statements run on them.

    Returns
    -------
    ConnectionPool
        An opened pool with at least ``db_pool_min_size`` connections ready.

    Raises
    ------
    psycopg.OperationalError
        If the pool cannot be filled after all attempts (``PoolTimeout`` is a
        subclass).
    """
    settings = settings or get_settings()
    dsn = dsn_override or build_dsn(settings)

    for attempt in _retrying(settings):
        with attempt:
            pool = ConnectionPool(
                conninfo=dsn,
                min_size=settings.db_pool_min_size,
                max_size=settings.db_pool_max_size,
                kwargs=connection_kwargs(settings, cursor_factory),
                open=False,
            )
            try:
                pool.open(wait=True, timeout=settings.db_connect_timeout)
            except _TRANSIENT_ERRORS:
                log.warning(
                    "Connection pool failed to open",
                    extra={"attempt": attempt.retry_state.attempt_number, "host": settings.db_host},
                )
                pool.close()
                raise
    return pool


def get_sync_connection(
    settings: Optional[Settings] = None,
    dsn_override: Optional[str] = None,
    cursor_factory: Type[psycopg.Cursor] = psycopg.RawCursor,
) -> Connection:
    """
    Acquire a dedicated synchronous connection with automatic retry.

    Use this for one-off operations (schema setup in tests, scripts). The
    mapper itself runs on a pool from open_pool().
    """
    settings = settings or get_settings()
    dsn = dsn_override or build_dsn(settings)
    for attempt in _retrying(settings):
        with attempt:
            return psycopg.connect(dsn, **connection_kwargs(settings, cursor_factory))
    raise AssertionError("unreachable")  # pragma: no cover


__all__ = [
    "build_dsn",
    "connection_kwargs",
    "open_pool",
    "get_sync_connection",
]
