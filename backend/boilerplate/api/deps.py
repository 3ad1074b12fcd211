"""
FastAPI dependencies: SQL client, token service and bearer-token verification,
all built from ``settings``.
"""

import threading
from collections.abc import Generator
from functools import lru_cache
from typing import Annotated, Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from boilerplate.core.config import settings
from boilerplate.core.security import TokenService
from boilerplate.db.client import SQLClient

reusable_bearer = HTTPBearer(auto_error=False)

_db_client: SQLClient | None = None
_db_lock = threading.Lock()


@lru_cache
def get_token_service() -> TokenService:
    return TokenService(
        issuer=settings.JWT_ISSUER,
        audience=settings.JWT_AUDIENCE,
        subject=settings.JWT_SUBJECT,
        access_secret=settings.JWT_ACCESS_SECRET,
        refresh_secret=settings.JWT_REFRESH_SECRET,
        access_expires_in=settings.JWT_ACCESS_EXPIRES_IN,
        refresh_expires_in=settings.JWT_REFRESH_EXPIRES_IN,
        leeway=settings.JWT_LEEWAY_SEC,
    )


def get_db_client() -> SQLClient:
    """Return the process-wide SQLClient (thread-safe double-checked locking)."""
    global _db_client
    if _db_client is None or _db_client.closed:
        with _db_lock:
            if _db_client is None or _db_client.closed:
                _db_client = SQLClient(
                    settings.DB_DIALECT,
                    settings.db_options,
                    use_pool=settings.DB_USE_POOL,
                )
    return _db_client


def close_db() -> None:
    """Close the process-wide SQLClient; call from the host's shutdown hook."""
    global _db_client
    with _db_lock:
        client, _db_client = _db_client, None
    if client is not None:
        client.close()


def get_db() -> Generator[SQLClient, None, None]:
    yield get_db_client()


TokenServiceDep = Annotated[TokenService, Depends(get_token_service)]
DbDep = Annotated[SQLClient, Depends(get_db)]
CredentialsDep = Annotated[
    HTTPAuthorizationCredentials | None, Depends(reusable_bearer)
]


def get_access_payload(
    tokens: TokenServiceDep, credentials: CredentialsDep
) -> dict[str, Any]:
    """Verified claims of the request's bearer access token.

    Invalid tokens raise ``InvalidAccessToken``, handled as 401 by the
    registered exception handlers.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return tokens.verify_access(credentials.credentials)


AccessPayloadDep = Annotated[dict[str, Any], Depends(get_access_payload)]
