"""
Error taxonomy for the SQL clients.

Every error carries ``message``, ``code`` and the underlying ``cause`` (the
driver exception, when there is one) so the HTTP layer can decide what to
expose. Nothing here is retried.
"""

from typing import Any


class DatabaseError(Exception):
    """Base class for all SQL client errors."""

    code = "ER_DATABASE"

    def __init__(
        self,
        message: str,
        *,
        cause: BaseException | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        if code is not None:
            self.code = code

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "cause": repr(self.cause) if self.cause is not None else None,
        }


class InvalidStatement(DatabaseError):
    """Statement is not a string or has malformed quoting."""

    code = "ER_INVALID_STATEMENT"


class DatabaseConnectionError(DatabaseError):
    """Database unreachable, or the client/pool was already closed."""

    code = "ER_CONNECTION"


class QueryError(DatabaseError):
    """The driver rejected the bound query."""

    code = "ER_QUERY"
