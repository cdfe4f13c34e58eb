from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: User (plain data, no DB access)."""

    user_id: int
    full_name: str
    username: str
    email: Optional[str]
    password_hash: str
    role: Role
    is_active: bool = True


@dataclass(frozen=True)
class SessionUser:
    """What we store into the Flask session after login.

    Services receive it as the acting user.
    """

    user_id: int
    full_name: str
    role: Role

    @classmethod
    def from_user(cls, user: User) -> "SessionUser":
        return cls(user_id=user.user_id, full_name=user.full_name, role=user.role)
