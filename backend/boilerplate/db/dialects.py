"""
SQL dialects: how ``:key`` placeholders are bound for each driver.

- MySQL (PyMySQL): values are escaped and inlined into the SQL text.
- PostgreSQL (psycopg): values are sent separately as ``$n`` parameters.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pymysql.converters import escape_item

from boilerplate.db.named_params import BoundQuery, bind_inline, bind_positional

MYSQL_CHARSET = "utf8mb4"


class DialectEnum(str, Enum):
    MYSQL = "mysql"
    POSTGRES = "postgres"


def escape_mysql(value: Any) -> str:
    """Escape a Python value into a MySQL literal (``'a\\'b'``, ``NULL``, ``1`` ...)."""
    return escape_item(value, MYSQL_CHARSET)


class MySQLDialect:
    name = DialectEnum.MYSQL
    default_port = 3306

    def bind(self, template: str, params: Mapping[str, Any] | None = None) -> BoundQuery:
        return bind_inline(template, params, escape_mysql)


class PostgresDialect:
    name = DialectEnum.POSTGRES
    default_port = 5432

    def bind(self, template: str, params: Mapping[str, Any] | None = None) -> BoundQuery:
        return bind_positional(template, params)


_DIALECTS: dict[DialectEnum, MySQLDialect | PostgresDialect] = {
    DialectEnum.MYSQL: MySQLDialect(),
    DialectEnum.POSTGRES: PostgresDialect(),
}

_ALIASES = {"postgresql": DialectEnum.POSTGRES, "pg": DialectEnum.POSTGRES}


def get_dialect(name: DialectEnum | str) -> MySQLDialect | PostgresDialect:
    """Resolve a dialect by enum or name (``mysql``, ``postgres``, ``postgresql``, ``pg``)."""
    if isinstance(name, str) and not isinstance(name, DialectEnum):
        key = name.strip().lower()
        try:
            name = _ALIASES.get(key) or DialectEnum(key)
        except ValueError:
            raise ValueError(f"Unsupported dialect: {name}") from None
    return _DIALECTS[name]
