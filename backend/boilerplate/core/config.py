import logging
from typing import Literal

from pydantic import computed_field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self

from boilerplate.db.connect import ConnectionOptions
from boilerplate.db.dialects import DialectEnum

_logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    ENVIRONMENT: Literal["local", "staging", "production"] = "local"

    # Database
    DB_DIALECT: DialectEnum = DialectEnum.POSTGRES
    DB_HOST: str = "localhost"
    DB_PORT: int | None = None
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    DB_NAME: str = "app"
    DB_USE_POOL: bool = True
    DB_POOL_MAX_SIZE: int = 10
    DB_POOL_MAX_AGE_SEC: float = 600.0
    DB_CONNECT_TIMEOUT: int = 10

    @computed_field  # type: ignore[prop-decorator]
    @property
    def db_options(self) -> ConnectionOptions:
        return ConnectionOptions(
            host=self.DB_HOST,
            port=self.DB_PORT,
            user=self.DB_USER,
            password=self.DB_PASSWORD,
            database=self.DB_NAME,
            connect_timeout=self.DB_CONNECT_TIMEOUT,
            max_connections=self.DB_POOL_MAX_SIZE,
            max_age_sec=self.DB_POOL_MAX_AGE_SEC,
        )

    # JWT
    JWT_ISSUER: str = "fastapi-rest-boilerplate"
    JWT_AUDIENCE: str = "fastapi-rest-boilerplate-users"
    JWT_SUBJECT: str = "user-auth"
    JWT_ACCESS_SECRET: str = "changethis"
    JWT_REFRESH_SECRET: str = "changethis-refresh"
    JWT_ACCESS_EXPIRES_IN: str = "15m"
    JWT_REFRESH_EXPIRES_IN: str = "7d"
    JWT_LEEWAY_SEC: int = 0

    def _check_default_secret(self, var_name: str, value: str | None) -> None:
        if value is not None and value.startswith("changethis"):
            message = (
                f'The value of {var_name} is "{value}", '
                "for security, please change it, at least for deployments."
            )
            if self.ENVIRONMENT == "local":
                _logger.warning(message)
            else:
                raise ValueError(message)

    @model_validator(mode="after")
    def _enforce_non_default_secrets(self) -> Self:
        self._check_default_secret("JWT_ACCESS_SECRET", self.JWT_ACCESS_SECRET)
        self._check_default_secret("JWT_REFRESH_SECRET", self.JWT_REFRESH_SECRET)
        if (
            self.ENVIRONMENT != "local"
            and self.JWT_ACCESS_SECRET == self.JWT_REFRESH_SECRET
        ):
            raise ValueError(
                "JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must differ, "
                "otherwise access and refresh tokens are interchangeable."
            )
        return self


settings = Settings()  # type: ignore
