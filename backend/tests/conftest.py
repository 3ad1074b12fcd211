from collections.abc import Callable, Sequence
from typing import Any
from unittest.mock import MagicMock

import pytest

from boilerplate.core.security import TokenService


@pytest.fixture
def token_service() -> TokenService:
    return TokenService(
        issuer="test-app",
        audience="test-users",
        subject="user-auth",
        access_secret="access-secret-for-tests-0123456789",
        refresh_secret="refresh-secret-for-tests-0123456789",
        access_expires_in="15m",
        refresh_expires_in="7d",
    )


@pytest.fixture
def make_conn() -> Callable[..., MagicMock]:
    """Build a DB-API connection mock whose cursor returns *rows* for *columns*."""

    def _make(
        rows: Sequence[tuple[Any, ...]] = (),
        columns: Sequence[str] = ("id",),
    ) -> MagicMock:
        conn = MagicMock()
        conn.broken = False
        conn.closed = False
        cur = conn.cursor.return_value
        cur.description = [(c,) for c in columns] if columns else None
        cur.fetchall.return_value = list(rows)
        return conn

    return _make
