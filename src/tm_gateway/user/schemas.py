"""Auth request/response schemas. Routers wrap every response in ApiResponse."""

import re

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.tm_gateway.user.db_models import UserModel

_PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "an uppercase letter"),
    (re.compile(r"[a-z]"), "a lowercase letter"),
    (re.compile(r"\d"), "a digit"),
)


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=64, pattern=r"^[a-zA-Z0-9_]+$")
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("password")
    @classmethod
    def password_complexity(cls, v: str) -> str:
        missing = [label for pattern, label in _PASSWORD_RULES if not pattern.search(v)]
        if missing:
            raise ValueError(f"Password must contain {', '.join(missing)}")
        return v


class LoginRequest(BaseModel):
    username: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class UserInfo(BaseModel):
    user_id: str
    username: str
    email: str
    role: str

    @classmethod
    def from_model(cls, user: UserModel) -> "UserInfo":
        return cls(
            user_id=str(user.id), username=user.username, email=user.email, role=user.role
        )


class RegisterResponse(UserInfo):
    created_at: str | None = None

    @classmethod
    def from_model(cls, user: UserModel) -> "RegisterResponse":
        created = user.created_at.isoformat() if user.created_at is not None else None
        return cls(**UserInfo.from_model(user).model_dump(), created_at=created)


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str | None = None
    token_type: str = "Bearer"
    expires_in: int


class LoginResponse(TokenPair):
    user: UserInfo
