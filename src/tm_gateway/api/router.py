"""Auth API router: register, login, refresh. Public endpoints, rate limited per IP."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tm_common.database import get_db_session
from src.tm_common.response import ApiResponse, respond
from src.tm_gateway.user.schemas import (
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    TokenPair,
    UserInfo,
)
from src.tm_gateway.user.service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])
_service = UserService()

_ACCESS_TTL_SECONDS = settings.JWT_EXPIRE_MINUTES * 60


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=ApiResponse)
async def register(
    request: Request,
    body: RegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    """Create the user and an empty wallet atomically."""
    async with db.begin():
        user = await _service.register(body.username, body.email, body.password, db)
    return respond(
        request, RegisterResponse.from_model(user).model_dump(mode="json"), "User registered successfully"
    )


@router.post("/login", response_model=ApiResponse)
async def login(
    request: Request,
    body: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    user, access_token, refresh_token = await _service.login(body.username, body.password, db)
    data = LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=_ACCESS_TTL_SECONDS,
        user=UserInfo.from_model(user),
    )
    return respond(request, data.model_dump(mode="json"), "Login successful")


@router.post("/refresh", response_model=ApiResponse)
async def refresh_token(
    request: Request,
    body: RefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    access_token = await _service.refresh(body.refresh_token, db)
    data = TokenPair(access_token=access_token, expires_in=_ACCESS_TTL_SECONDS)
    return respond(request, data.model_dump(mode="json", exclude_none=True), "Token refreshed")
