"""
JWT issuing and verification for access and refresh tokens.

Usage::

    tokens = TokenService(
        issuer="my-app",
        audience="my-users",
        subject="user-auth",
        access_secret="access_secret",
        refresh_secret="refresh_secret",
        access_expires_in="15m",
        refresh_expires_in="7d",
    )
    access = tokens.issue_access({"user_id": 123})
    claims = tokens.verify_access(access)  # claims["data"] == {"user_id": 123}

Access and refresh tokens are signed with different secrets, so one can never
be verified as the other.
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from jwt.exceptions import InvalidTokenError
from pydantic import BaseModel
from uuid6 import uuid7

_logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"

_REQUIRED_CLAIMS = ["iss", "aud", "sub", "iat", "nbf", "exp", "jti", "type"]

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TokenError(Exception):
    """Token could not be verified. ``data`` is always None: no unverified claims leak."""

    code = "JWT_ERROR"

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.data = None

    @property
    def reason(self) -> str | None:
        """Message of the underlying verification failure, if any."""
        return str(self.cause) if self.cause is not None else None


class InvalidAccessToken(TokenError):
    code = "ER_INVALID_ACCESS_TOKEN"


class InvalidRefreshToken(TokenError):
    code = "ER_INVALID_REFRESH_TOKEN"


# ---------------------------------------------------------------------------
# Durations ("15m", "7d", ...)
# ---------------------------------------------------------------------------

_MS_PER = {
    "y": 365.25 * 86_400_000,
    "w": 7 * 86_400_000,
    "d": 86_400_000,
    "h": 3_600_000,
    "m": 60_000,
    "s": 1000,
    "ms": 1,
}

_UNIT_ALIASES = {
    "years": "y", "year": "y", "yrs": "y", "yr": "y", "y": "y",
    "weeks": "w", "week": "w", "w": "w",
    "days": "d", "day": "d", "d": "d",
    "hours": "h", "hour": "h", "hrs": "h", "hr": "h", "h": "h",
    "minutes": "m", "minute": "m", "mins": "m", "min": "m", "m": "m",
    "seconds": "s", "second": "s", "secs": "s", "sec": "s", "s": "s",
    "milliseconds": "ms", "millisecond": "ms", "msecs": "ms", "msec": "ms", "ms": "ms",
}

_DURATION = re.compile(r"^(?P<num>-?\d*\.?\d+)\s*(?P<unit>[a-z]+)?$", re.IGNORECASE)


def parse_duration(value: str | int | float | timedelta) -> float:
    """Resolve a lifetime to seconds.

    Numbers and timedeltas are seconds. Strings follow the ``ms`` package
    format: ``"15m"``, ``"7d"``, ``"2 hours"``; a bare numeric string is
    milliseconds.
    """
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, int | float):
        return float(value)
    if not isinstance(value, str):
        raise ValueError(f"Invalid duration: {value!r}")
    match = _DURATION.match(value.strip())
    if match is None:
        raise ValueError(f"Invalid duration: {value!r}")
    unit = _UNIT_ALIASES.get((match.group("unit") or "ms").lower())
    if unit is None:
        raise ValueError(f"Invalid duration unit: {value!r}")
    return float(match.group("num")) * _MS_PER[unit] / 1000


# ---------------------------------------------------------------------------
# Token service
# ---------------------------------------------------------------------------


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenService:
    """Issue and verify access/refresh JWTs with per-class secret and lifetime."""

    def __init__(
        self,
        *,
        issuer: str,
        audience: str,
        subject: str,
        access_secret: str,
        refresh_secret: str,
        access_expires_in: str | int | float | timedelta,
        refresh_expires_in: str | int | float | timedelta,
        leeway: int | float = 0,
    ) -> None:
        for name, val in [
            ("issuer", issuer),
            ("audience", audience),
            ("subject", subject),
            ("access_secret", access_secret),
            ("refresh_secret", refresh_secret),
        ]:
            if not val:
                raise ValueError(f"{name} is required")
        # fail fast on bad lifetimes; they are resolved again at issuance
        parse_duration(access_expires_in)
        parse_duration(refresh_expires_in)
        if access_secret == refresh_secret:
            _logger.warning(
                "Access and refresh secrets are identical; "
                "tokens are only told apart by their type claim"
            )

        self.issuer = issuer
        self.audience = audience
        self.subject = subject
        self.access_secret = access_secret
        self.refresh_secret = refresh_secret
        self.access_expires_in = access_expires_in
        self.refresh_expires_in = refresh_expires_in
        self.leeway = leeway

    def __repr__(self) -> str:
        return f"<TokenService iss={self.issuer!r} aud={self.audience!r}>"

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def _claims(self, token_type: str, lifetime: Any, data: Any) -> dict[str, Any]:
        now = self._now().timestamp()
        iat = int(now)
        return {
            "iss": self.issuer,
            "aud": self.audience,
            "sub": self.subject,
            "iat": iat,
            "nbf": iat,
            "jti": str(uuid7()),
            "exp": int(now + parse_duration(lifetime)),
            "type": token_type,
            "data": data,
        }

    def issue_access(self, data: Any = None) -> str:
        """Sign an access token carrying *data*."""
        claims = self._claims(TOKEN_TYPE_ACCESS, self.access_expires_in, data)
        return jwt.encode(claims, self.access_secret, algorithm=ALGORITHM)

    def issue_refresh(self, data: Any = None) -> str:
        """Sign a refresh token carrying *data*."""
        claims = self._claims(TOKEN_TYPE_REFRESH, self.refresh_expires_in, data)
        return jwt.encode(claims, self.refresh_secret, algorithm=ALGORITHM)

    def issue_pair(self, data: Any = None) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access(data),
            refresh_token=self.issue_refresh(data),
        )

    def _verify(
        self,
        token: str,
        secret: str,
        token_type: str,
        error_cls: type[TokenError],
    ) -> dict[str, Any]:
        label = f"Invalid or expired {token_type} token"
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[ALGORITHM],
                audience=self.audience,
                issuer=self.issuer,
                leeway=self.leeway,
                options={"require": _REQUIRED_CLAIMS},
            )
        except InvalidTokenError as exc:
            raise error_cls(label, cause=exc) from exc
        if payload.get("type") != token_type:
            raise error_cls(
                label,
                cause=InvalidTokenError(
                    f"Token type is {payload.get('type')!r}, expected {token_type!r}"
                ),
            )
        return payload

    def verify_access(self, token: str) -> dict[str, Any]:
        """Return the verified claims of an access token or raise ``InvalidAccessToken``."""
        return self._verify(token, self.access_secret, TOKEN_TYPE_ACCESS, InvalidAccessToken)

    def verify_refresh(self, token: str) -> dict[str, Any]:
        """Return the verified claims of a refresh token or raise ``InvalidRefreshToken``."""
        return self._verify(
            token, self.refresh_secret, TOKEN_TYPE_REFRESH, InvalidRefreshToken
        )
