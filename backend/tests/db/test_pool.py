"""Unit tests for db.pool.ConnectionPool."""

import threading
from unittest.mock import MagicMock, patch

import pytest

from boilerplate.db.errors import DatabaseConnectionError
from boilerplate.db.pool import ConnectionPool


def _factory() -> MagicMock:
    return MagicMock(side_effect=lambda: MagicMock())


def test_release_then_acquire_reuses_connection() -> None:
    factory = _factory()
    pool = ConnectionPool(factory, max_size=2)

    c1 = pool.acquire()
    pool.release(c1)
    c2 = pool.acquire()

    assert c2 is c1
    assert factory.call_count == 1
    assert pool.stats() == {"idle": 0, "in_use": 1, "max_size": 2}


def test_distinct_connections_when_busy() -> None:
    factory = _factory()
    pool = ConnectionPool(factory, max_size=2)

    c1 = pool.acquire()
    c2 = pool.acquire()

    assert c1 is not c2
    assert factory.call_count == 2


def test_acquire_blocks_at_max_size() -> None:
    pool = ConnectionPool(_factory(), max_size=1)
    c1 = pool.acquire()
    got = threading.Event()
    result: list = []

    def _worker() -> None:
        result.append(pool.acquire())
        got.set()

    t = threading.Thread(target=_worker, daemon=True)
    t.start()
    assert not got.wait(0.2)

    pool.release(c1)
    assert got.wait(2.0)
    t.join(2.0)
    assert result == [c1]


@patch("boilerplate.db.pool.time")
def test_expired_connection_is_replaced(mock_time: MagicMock) -> None:
    mock_time.monotonic.return_value = 0.0
    factory = _factory()
    pool = ConnectionPool(factory, max_size=1, max_age_sec=60)

    old = pool.acquire()
    pool.release(old)
    mock_time.monotonic.return_value = 120.0
    new = pool.acquire()

    assert new is not old
    old.close.assert_called_once()
    assert factory.call_count == 2


@patch("boilerplate.db.pool.ping", return_value=False)
@patch("boilerplate.db.pool.time")
def test_idle_connection_failing_ping_is_replaced(
    mock_time: MagicMock, mock_ping: MagicMock
) -> None:
    mock_time.monotonic.return_value = 0.0
    pool = ConnectionPool(_factory(), max_size=1, max_age_sec=600)

    old = pool.acquire()
    pool.release(old)
    mock_time.monotonic.return_value = 45.0
    new = pool.acquire()

    mock_ping.assert_called_once_with(old)
    assert new is not old
    old.close.assert_called_once()


@patch("boilerplate.db.pool.ping")
def test_recently_used_connection_not_pinged(mock_ping: MagicMock) -> None:
    pool = ConnectionPool(_factory(), max_size=1)
    c = pool.acquire()
    pool.release(c)
    assert pool.acquire() is c
    mock_ping.assert_not_called()


def test_factory_failure_frees_slot() -> None:
    factory = MagicMock(side_effect=DatabaseConnectionError("down"))
    pool = ConnectionPool(factory, max_size=1)

    for _ in range(2):
        with pytest.raises(DatabaseConnectionError):
            pool.acquire()
    assert pool.stats()["in_use"] == 0


def test_connection_context_manager_releases() -> None:
    pool = ConnectionPool(_factory(), max_size=1)
    with pool.connection() as conn:
        assert pool.stats()["in_use"] == 1
    assert pool.stats() == {"idle": 1, "in_use": 0, "max_size": 1}
    conn.close.assert_not_called()


def test_connection_context_manager_discards_on_transport_error() -> None:
    pool = ConnectionPool(_factory(), max_size=1)
    with pytest.raises(DatabaseConnectionError):
        with pool.connection() as conn:
            raise DatabaseConnectionError("lost")
    conn.close.assert_called_once()
    assert pool.stats() == {"idle": 0, "in_use": 0, "max_size": 1}


def test_connection_context_manager_keeps_conn_on_other_errors() -> None:
    pool = ConnectionPool(_factory(), max_size=1)
    with pytest.raises(ValueError):
        with pool.connection():
            raise ValueError("bad row")
    assert pool.stats()["idle"] == 1


def test_close_is_idempotent_and_closes_idle() -> None:
    pool = ConnectionPool(_factory(), max_size=2)
    c = pool.acquire()
    pool.release(c)

    pool.close()
    pool.close()

    assert pool.closed
    c.close.assert_called_once()
    with pytest.raises(DatabaseConnectionError, match="closed"):
        pool.acquire()


def test_release_after_close_closes_connection() -> None:
    pool = ConnectionPool(_factory(), max_size=1)
    c = pool.acquire()
    pool.close()
    pool.release(c)
    c.close.assert_called_once()
    assert pool.stats()["idle"] == 0


def test_close_wakes_waiters() -> None:
    pool = ConnectionPool(_factory(), max_size=1)
    pool.acquire()
    errors: list = []

    def _worker() -> None:
        try:
            pool.acquire()
        except DatabaseConnectionError as exc:
            errors.append(exc)

    t = threading.Thread(target=_worker, daemon=True)
    t.start()
    t.join(0.1)
    pool.close()
    t.join(2.0)
    assert len(errors) == 1


def test_invalid_max_size() -> None:
    with pytest.raises(ValueError):
        ConnectionPool(_factory(), max_size=0)
