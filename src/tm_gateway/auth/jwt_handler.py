"""HS256 access and refresh tokens signed with JWT_SECRET.

Access tokens carry the role claim; ``get_current_session`` still re-reads the
users row, so a demotion or deactivation applies on the next request.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from config.settings import settings
from src.tm_common.errors import AppError, InvalidCredentialsError, InvalidRefreshTokenError

ACCESS = "access"
REFRESH = "refresh"

_TTL: dict[str, timedelta] = {
    ACCESS: timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
    REFRESH: timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS),
}

_REJECTION: dict[str, type[AppError]] = {
    ACCESS: InvalidCredentialsError,
    REFRESH: InvalidRefreshTokenError,
}


def _issue(user_id: str, kind: str, **claims: Any) -> str:
    issued_at = datetime.now(UTC)
    payload = {"sub": user_id, "type": kind, "iat": issued_at, "exp": issued_at + _TTL[kind]}
    payload.update(claims)
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM))


def create_access_token(user_id: str, role: str = "USER") -> str:
    return _issue(user_id, ACCESS, role=role)


def create_refresh_token(user_id: str) -> str:
    return _issue(user_id, REFRESH)


def decode_token(token: str, expected_type: str) -> dict[str, Any]:
    """Verify signature, expiry and token kind.

    A bad access token raises InvalidCredentialsError, a bad refresh token
    InvalidRefreshTokenError. A token of the other kind counts as bad.
    """
    rejection = _REJECTION[expected_type]
    try:
        claims: dict[str, Any] = jwt.decode(
            token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError:
        raise rejection() from None
    if claims.get("type") != expected_type or not claims.get("sub"):
        raise rejection()
    return claims
