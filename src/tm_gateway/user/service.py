"""Registration, login and token refresh.

The router owns the transaction (``async with db.begin()``). bcrypt work runs
in the threadpool so it does not stall the event loop.
"""

import uuid

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from src.tm_account.domain.repository import WalletRepositoryProtocol
from src.tm_account.infrastructure.persistence import WalletRepository
from src.tm_common.enums import UserRole
from src.tm_common.errors import (
    AccountDisabledError,
    EmailExistsError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    UsernameExistsError,
)
from src.tm_gateway.auth.jwt_handler import (
    REFRESH,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from src.tm_gateway.auth.password import hash_password, verify_password
from src.tm_gateway.user.db_models import UserModel


class UserService:
    def __init__(self, wallet_repo: WalletRepositoryProtocol | None = None) -> None:
        self._wallets = wallet_repo or WalletRepository()

    async def register(
        self, username: str, email: str, password: str, db: AsyncSession
    ) -> UserModel:
        """Insert the user plus an empty wallet; username clashes win over email clashes."""
        clashes = (
            await db.execute(
                select(UserModel).where(
                    or_(UserModel.username == username, UserModel.email == email)
                )
            )
        ).scalars().all()
        if any(u.username == username for u in clashes):
            raise UsernameExistsError()
        if clashes:
            raise EmailExistsError()

        user = UserModel(
            username=username,
            email=email,
            password_hash=await run_in_threadpool(hash_password, password),
            role=UserRole.USER.value,
            is_active=True,
        )
        db.add(user)
        await db.flush()
        await self._wallets.create_wallet(str(user.id), db)
        return user

    async def login(
        self, username: str, password: str, db: AsyncSession
    ) -> tuple[UserModel, str, str]:
        """Return the user with a fresh (access, refresh) pair.

        Unknown usernames and wrong passwords are indistinguishable to the caller.
        """
        user = (
            await db.execute(select(UserModel).where(UserModel.username == username))
        ).scalar_one_or_none()
        if user is None or not await run_in_threadpool(
            verify_password, password, user.password_hash
        ):
            raise InvalidCredentialsError()
        if not user.is_active:
            raise AccountDisabledError()
        user_id = str(user.id)
        return user, create_access_token(user_id, user.role), create_refresh_token(user_id)

    async def refresh(self, refresh_token: str, db: AsyncSession) -> str:
        claims = decode_token(refresh_token, expected_type=REFRESH)
        try:
            user_id = uuid.UUID(str(claims["sub"]))
        except ValueError:
            raise InvalidRefreshTokenError() from None
        user = await db.get(UserModel, user_id)
        if user is None:
            raise InvalidRefreshTokenError()
        if not user.is_active:
            raise AccountDisabledError()
        # Role is re-read so a promotion or demotion shows up in the new token
        return create_access_token(str(user.id), user.role)
