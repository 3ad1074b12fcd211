"""
SQL client with ``:key`` named parameters for MySQL and PostgreSQL.

One class, the dialect is chosen at construction::

    db = SQLClient("postgres", ConnectionOptions(host="localhost", user="postgres",
                                                 database="test"))
    rows = db.query("SELECT * FROM users WHERE id = :id", {"id": 1})
    db.close()

    with pgsql_client(options, use_pool=True) as db:
        rows = db.query("SELECT * FROM users")

Single-connection mode opens the connection lazily on first use and serializes
concurrent calls on it. Pool mode borrows and returns a connection per call.
"""

import logging
import threading
from collections.abc import Mapping
from typing import Any

from boilerplate.db.connect import ConnectionOptions, connect, run
from boilerplate.db.dialects import DialectEnum, get_dialect
from boilerplate.db.errors import DatabaseConnectionError, DatabaseError
from boilerplate.db.named_params import BoundQuery
from boilerplate.db.pool import ConnectionPool
from boilerplate.db.safety import validate_statement

logger = logging.getLogger(__name__)


class SQLClient:
    def __init__(
        self,
        dialect: DialectEnum | str,
        options: ConnectionOptions | Mapping[str, Any],
        use_pool: bool = False,
    ) -> None:
        self.dialect = get_dialect(dialect)
        self.options = (
            options
            if isinstance(options, ConnectionOptions)
            else ConnectionOptions.model_validate(dict(options))
        )
        self.use_pool = use_pool
        self._conn: Any = None
        self._lock = threading.Lock()
        self._closed = False
        self._pool: ConnectionPool | None = None
        if use_pool:
            self._pool = ConnectionPool(
                self._connect,
                max_size=self.options.max_connections,
                max_age_sec=self.options.max_age_sec,
            )

    def __enter__(self) -> "SQLClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        mode = "pool" if self.use_pool else "single"
        return (
            f"<SQLClient {self.dialect.name.value} {self.options.host}/"
            f"{self.options.database} {mode}>"
        )

    @property
    def closed(self) -> bool:
        return self._closed

    def bind(self, template: str, params: Mapping[str, Any] | None = None) -> BoundQuery:
        """Rewrite ``:key`` placeholders for this client's dialect."""
        return self.dialect.bind(template, params)

    def validate(self, template: Any) -> list[dict[str, Any]]:
        """Reject malformed statements; return (and log) injection advisories."""
        return validate_statement(template, self.dialect.name)

    def execute(self, bound: BoundQuery) -> list[dict[str, Any]]:
        """Run a bound query and return its rows as dicts."""
        if self._closed:
            raise DatabaseConnectionError("SQL client is closed")
        if self._pool is not None:
            with self._pool.connection() as conn:
                return run(conn, bound)

        with self._lock:
            if self._closed:
                raise DatabaseConnectionError("SQL client is closed")
            if self._conn is None:
                self._conn = self._connect()
            try:
                return run(self._conn, bound)
            except DatabaseConnectionError:
                # reconnect lazily on the next call
                self._close_conn()
                raise

    def query(self, sql: str, params: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        """Validate, bind and execute in one call."""
        self.validate(sql)
        return self.execute(self.bind(sql, params))

    def health_check(self) -> bool:
        try:
            self.execute(BoundQuery("SELECT 1"))
            return True
        except DatabaseError:
            logger.warning("Health check failed for %r", self, exc_info=True)
            return False

    def close(self) -> None:
        """Release the connection or drain the pool. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._close_conn()
        if self._pool is not None:
            self._pool.close()

    def _connect(self) -> Any:
        return connect(self.options, self.dialect.name)

    def _close_conn(self) -> None:
        conn, self._conn = self._conn, None
        if conn is None:
            return
        try:
            conn.close()
        except Exception:
            logger.debug("Error closing connection", exc_info=True)


def mysql_client(
    options: ConnectionOptions | Mapping[str, Any], use_pool: bool = False
) -> SQLClient:
    """MySQL client; values are escaped inline."""
    return SQLClient(DialectEnum.MYSQL, options, use_pool)


def pgsql_client(
    options: ConnectionOptions | Mapping[str, Any], use_pool: bool = False
) -> SQLClient:
    """PostgreSQL client; values are sent as ``$n`` parameters."""
    return SQLClient(DialectEnum.POSTGRES, options, use_pool)
