"""
DB connection helpers for the SQL clients.

Uses psycopg (PostgreSQL) or pymysql (MySQL) based on the dialect.
Driver errors are translated into ``DatabaseConnectionError`` (transport) or
``QueryError`` (statement rejected).
"""

import logging
from typing import Any

import psycopg
import pymysql
from pydantic import BaseModel, Field

from boilerplate.db.dialects import DialectEnum, get_dialect
from boilerplate.db.errors import DatabaseConnectionError, QueryError
from boilerplate.db.named_params import BoundQuery

logger = logging.getLogger(__name__)

# MySQL client-side error numbers (CR_*) live in 2000..2999
_MYSQL_CLIENT_ERRNO = range(2000, 3000)


class ConnectionOptions(BaseModel):
    """Connection and pool settings shared by both dialects."""

    host: str
    user: str
    password: str = ""
    database: str
    port: int | None = None
    connect_timeout: int = 10
    # pool sizing: mysql2 calls it connectionLimit, pg calls it max
    max_connections: int = Field(default=10, ge=1)
    max_age_sec: float = Field(default=600.0, gt=0)


def connect(options: ConnectionOptions, dialect: DialectEnum | str) -> Any:
    """Open a new autocommit connection for *dialect*."""
    d = get_dialect(dialect)
    port = options.port or d.default_port
    try:
        if d.name == DialectEnum.POSTGRES:
            return psycopg.connect(
                host=options.host,
                port=port,
                dbname=options.database,
                user=options.user,
                password=options.password,
                connect_timeout=options.connect_timeout,
                autocommit=True,
                cursor_factory=psycopg.RawCursor,
            )
        return pymysql.connect(
            host=options.host,
            port=port,
            database=options.database,
            user=options.user,
            password=options.password,
            connect_timeout=options.connect_timeout,
            charset="utf8mb4",
            autocommit=True,
        )
    except (psycopg.Error, pymysql.err.MySQLError) as exc:
        logger.warning(
            "Could not connect to %s at %s:%s: %s", d.name.value, options.host, port, exc
        )
        raise DatabaseConnectionError(
            f"Could not connect to {d.name.value} database at {options.host}:{port}",
            cause=exc,
        ) from exc


def is_transport_error(exc: BaseException, conn: Any = None) -> bool:
    """True when *exc* means the connection itself is unusable."""
    if isinstance(exc, (psycopg.InterfaceError, pymysql.err.InterfaceError)):
        return True
    if isinstance(exc, psycopg.OperationalError):
        if conn is None:
            return True
        return bool(getattr(conn, "broken", False) or getattr(conn, "closed", False))
    if isinstance(exc, pymysql.err.OperationalError):
        errno = exc.args[0] if exc.args else None
        return errno in _MYSQL_CLIENT_ERRNO
    return False


def cursor_to_dicts(cursor: Any) -> list[dict[str, Any]]:
    """Convert cursor result to list of dicts. Works for both psycopg and pymysql."""
    desc = cursor.description
    if not desc:
        return []
    names = [d[0] for d in desc]
    return [dict(zip(names, row, strict=True)) for row in cursor.fetchall()]


def run(conn: Any, bound: BoundQuery) -> list[dict[str, Any]]:
    """Execute *bound* on *conn* and return the rows as dicts (``[]`` for DML)."""
    cur = None
    try:
        cur = conn.cursor()
        if bound.values:
            cur.execute(bound.text, bound.values)
        else:
            cur.execute(bound.text)
        return cursor_to_dicts(cur)
    except (psycopg.Error, pymysql.err.MySQLError) as exc:
        if is_transport_error(exc, conn):
            raise DatabaseConnectionError(
                f"Database connection lost: {exc}", cause=exc
            ) from exc
        raise QueryError(f"Query failed: {exc}", cause=exc) from exc
    finally:
        if cur is not None:
            try:
                cur.close()
            except Exception as exc:
                logger.debug("Cursor close failed: %s", exc)
