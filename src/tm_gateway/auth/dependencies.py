"""Route dependencies resolving the Bearer token into a Session.

    @router.get("/orders")
    async def list_orders(session: Annotated[Session, Depends(get_current_session)]): ...
"""

import uuid
from typing import Annotated

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_common.database import get_db_session
from src.tm_common.errors import (
    AccountDisabledError,
    AdminRequiredError,
    InvalidAccessTokenError,
    InvalidCredentialsError,
)
from src.tm_gateway.auth.jwt_handler import ACCESS, decode_token
from src.tm_gateway.auth.session import Session
from src.tm_gateway.user.db_models import UserModel

# auto_error=False so a missing header goes through the AppError envelope too
_bearer = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


async def get_current_session(
    token: Annotated[str | None, Depends(_bearer)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> Session:
    if not token:
        raise InvalidAccessTokenError()
    try:
        claims = decode_token(token, expected_type=ACCESS)
    except InvalidCredentialsError:
        raise InvalidAccessTokenError() from None

    try:
        user_id = uuid.UUID(str(claims["sub"]))
    except ValueError:
        raise InvalidAccessTokenError() from None

    user = await db.get(UserModel, user_id)
    if user is None:
        raise InvalidAccessTokenError()
    if not user.is_active:
        raise AccountDisabledError()
    # Role comes from the row, not the claim
    return Session(id=str(user.id), email=user.email, role=user.role)


async def require_admin(
    session: Annotated[Session, Depends(get_current_session)],
) -> Session:
    if not session.is_admin:
        raise AdminRequiredError()
    return session
