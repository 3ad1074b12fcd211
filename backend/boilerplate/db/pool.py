"""
Connection pool for the SQL clients.

Reuses connections to avoid open/close on every query. Includes a liveness
ping on checkout of long-idle connections, max-age eviction and a hard cap on
checked-out connections (callers block until one is released).
"""

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, NamedTuple

from boilerplate.db.errors import DatabaseConnectionError
from boilerplate.db.health import ping

_log = logging.getLogger(__name__)

_DEFAULT_MAX_AGE_SEC = 600  # 10 minutes

_PING_IDLE_THRESHOLD = 30.0  # only ping connections idle longer than this (seconds)


class _PoolEntry(NamedTuple):
    conn: Any
    created_at: float  # time.monotonic() when the connection was opened
    last_used: float   # time.monotonic() when last returned to pool


class ConnectionPool:
    """Bounded, thread-safe pool of DB-API connections opened by *factory*."""

    def __init__(
        self,
        factory: Callable[[], Any],
        *,
        max_size: int = 10,
        max_age_sec: float = _DEFAULT_MAX_AGE_SEC,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self._factory = factory
        self._max_size = max_size
        self._max_age = float(max_age_sec)
        self._idle: list[_PoolEntry] = []
        self._born: dict[int, float] = {}
        self._in_use = 0
        self._closed = False
        self._cond = threading.Condition(threading.Lock())

    @property
    def closed(self) -> bool:
        return self._closed

    def acquire(self) -> Any:
        """Borrow a healthy connection, opening one if none is idle.

        Blocks while ``max_size`` connections are checked out.
        """
        with self._cond:
            while True:
                if self._closed:
                    raise DatabaseConnectionError("Connection pool is closed")
                if self._idle:
                    entry: _PoolEntry | None = self._idle.pop()
                    break
                if self._in_use < self._max_size:
                    entry = None
                    break
                self._cond.wait()
            # the slot is reserved from here on
            self._in_use += 1

        try:
            if entry is not None and self._usable(entry):
                return entry.conn
            if entry is not None:
                self._forget(entry.conn)
                self._close_quiet(entry.conn)
            return self._open()
        except BaseException:
            with self._cond:
                self._in_use -= 1
                self._cond.notify()
            raise

    def release(self, conn: Any) -> None:
        """Return a connection to the pool (or close it if the pool is closed)."""
        with self._cond:
            self._in_use -= 1
            if not self._closed:
                now = time.monotonic()
                created_at = self._born.get(id(conn), now)
                self._idle.append(_PoolEntry(conn=conn, created_at=created_at, last_used=now))
                self._cond.notify()
                return
            self._cond.notify()
        self._forget(conn)
        self._close_quiet(conn)

    def discard(self, conn: Any) -> None:
        """Close a checked-out connection instead of returning it (e.g. it is broken)."""
        with self._cond:
            self._in_use -= 1
            self._cond.notify()
        self._forget(conn)
        self._close_quiet(conn)

    @contextmanager
    def connection(self) -> Iterator[Any]:
        """``with pool.connection() as conn:`` borrow and give back."""
        conn = self.acquire()
        try:
            yield conn
        except DatabaseConnectionError:
            self.discard(conn)
            raise
        except BaseException:
            self.release(conn)
            raise
        else:
            self.release(conn)

    def close(self) -> None:
        """Close idle connections and refuse new checkouts. Idempotent.

        Connections still checked out are closed when they are released.
        """
        with self._cond:
            if self._closed:
                return
            self._closed = True
            entries = self._idle
            self._idle = []
            self._cond.notify_all()
        for e in entries:
            self._forget(e.conn)
            self._close_quiet(e.conn)
        _log.debug("Connection pool closed (%d idle connections)", len(entries))

    def stats(self) -> dict[str, int]:
        """Return pool statistics for monitoring."""
        with self._cond:
            return {
                "idle": len(self._idle),
                "in_use": self._in_use,
                "max_size": self._max_size,
            }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _open(self) -> Any:
        conn = self._factory()
        with self._cond:
            self._born[id(conn)] = time.monotonic()
        return conn

    def _forget(self, conn: Any) -> None:
        with self._cond:
            self._born.pop(id(conn), None)

    def _usable(self, entry: _PoolEntry) -> bool:
        now = time.monotonic()
        if (now - entry.created_at) > self._max_age:
            _log.debug("Evicting pooled connection past max age")
            return False
        if (now - entry.last_used) > _PING_IDLE_THRESHOLD and not ping(entry.conn):
            _log.warning("Evicting pooled connection that failed liveness ping")
            return False
        return True

    @staticmethod
    def _close_quiet(conn: Any) -> None:
        try:
            conn.close()
        except Exception:
            pass
