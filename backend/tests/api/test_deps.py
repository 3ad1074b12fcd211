"""Tests for api.deps: bearer access-token dependency and settings-built clients."""

from collections.abc import Generator
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from boilerplate.api import deps
from boilerplate.api.deps import AccessPayloadDep, get_token_service
from boilerplate.api.exception_handlers import register_exception_handlers
from boilerplate.core.config import settings
from boilerplate.core.security import TokenService


@pytest.fixture
def client(token_service: TokenService) -> TestClient:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/me")
    def me(payload: AccessPayloadDep) -> Any:
        return payload["data"]

    app.dependency_overrides[get_token_service] = lambda: token_service
    return TestClient(app)


def test_valid_access_token(client: TestClient, token_service: TokenService) -> None:
    token = token_service.issue_access({"user_id": 7})
    r = client.get("/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json() == {"user_id": 7}


def test_missing_token(client: TestClient) -> None:
    r = client.get("/me")
    assert r.status_code == 401
    assert r.json()["error"] == "Not authenticated"
    assert r.headers["www-authenticate"] == "Bearer"


def test_refresh_token_rejected(client: TestClient, token_service: TokenService) -> None:
    token = token_service.issue_refresh({"user_id": 7})
    r = client.get("/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json()["data"] == {"code": "ER_INVALID_ACCESS_TOKEN"}


def test_get_token_service_uses_settings() -> None:
    get_token_service.cache_clear()
    try:
        service = get_token_service()
        assert service.issuer == settings.JWT_ISSUER
        assert service.audience == settings.JWT_AUDIENCE
        assert get_token_service() is service
    finally:
        get_token_service.cache_clear()


@pytest.fixture
def reset_db_client() -> Generator[None, None, None]:
    deps.close_db()
    yield
    deps.close_db()


@patch("boilerplate.api.deps.SQLClient")
def test_db_client_is_shared_and_closed(mock_cls: MagicMock, reset_db_client: None) -> None:
    mock_cls.return_value.closed = False

    first = deps.get_db_client()
    assert next(deps.get_db()) is first
    mock_cls.assert_called_once_with(
        settings.DB_DIALECT, settings.db_options, use_pool=settings.DB_USE_POOL
    )

    deps.close_db()
    first.close.assert_called_once()
