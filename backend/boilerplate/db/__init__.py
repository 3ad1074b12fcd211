"""
SQL clients with ``:key`` named parameters for MySQL (pymysql) and PostgreSQL (psycopg).
"""

from .client import SQLClient, mysql_client, pgsql_client
from .connect import ConnectionOptions
from .dialects import DialectEnum, get_dialect
from .errors import (
    DatabaseConnectionError,
    DatabaseError,
    InvalidStatement,
    QueryError,
)
from .named_params import BoundQuery, bind_inline, bind_positional, scan
from .pool import ConnectionPool
from .safety import validate_statement

__all__ = [
    "SQLClient",
    "mysql_client",
    "pgsql_client",
    "ConnectionOptions",
    "ConnectionPool",
    "DialectEnum",
    "get_dialect",
    "BoundQuery",
    "bind_inline",
    "bind_positional",
    "scan",
    "validate_statement",
    "DatabaseError",
    "DatabaseConnectionError",
    "InvalidStatement",
    "QueryError",
]
