"""Caller identity passed into authorization-sensitive operations."""

from dataclasses import dataclass

from src.tm_common.enums import UserRole


@dataclass(frozen=True)
class Session:
    id: str
    email: str
    role: str = UserRole.USER.value

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
