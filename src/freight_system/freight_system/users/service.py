from __future__ import annotations

import logging
from typing import Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..audit.observer import AuditObserver
from ..audit.service import AuditService
from ..common.validators import require_min_length, require_non_empty
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from .model import SessionUser, User
from .permissions import can_manage_roles
from .repository import UserRepository

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class AuthService:
    """Use case: authenticate user (login)."""

    def __init__(self, users: UserRepository, *, audit: Optional[AuditService] = None):
        self._users = users
        self._audit = audit

    def _audit_login(self, action: str, *, user_id: Optional[int], username: str) -> None:
        if self._audit:
            self._audit.log_authentication(action, user_id=user_id, additional_data={"username": username})

    def authenticate(self, username: str, password: str) -> SessionUser:
        user = self._users.get_by_username((username or "").strip())
        if not user or not user.is_active:
            self._audit_login("login_failed", user_id=None, username=username)
            raise AuthenticationError("Invalid username or password")

        try:
            ok = check_password_hash(user.password_hash, password)
        except ValueError:
            # placeholder or corrupted hash values
            ok = False

        if not ok:
            self._audit_login("login_failed", user_id=user.user_id, username=username)
            raise AuthenticationError("Invalid username or password")

        self._audit_login("login", user_id=user.user_id, username=username)
        return SessionUser.from_user(user)

    def logout(self, actor: SessionUser) -> None:
        if self._audit:
            self._audit.log_authentication("logout", user_id=actor.user_id)


class UserService:
    """Use case: manage accounts and roles."""

    def __init__(self, users: UserRepository, *, observer: Optional[AuditObserver] = None):
        self._users = users
        self._observer = observer

    def create_account(
        self,
        *,
        actor: Optional[SessionUser],
        full_name: str,
        username: str,
        email: Optional[str],
        password: str,
        role: Role = Role.CUSTOMER,
    ) -> int:
        full_name = require_non_empty(full_name, "Full name")
        username = require_non_empty(username, "Username")
        require_min_length(password, "Password", MIN_PASSWORD_LENGTH)

        if role.is_staff and (actor is None or not can_manage_roles(actor)):
            raise AuthorizationError("Only a superadmin can create staff accounts")

        if self._users.get_by_username(username):
            raise ValidationError("Username already exists")

        user_id = self._users.create_user(
            full_name=full_name,
            username=username,
            email=(email or "").strip() or None,
            password_hash=generate_password_hash(password),
            role=role,
        )
        if self._observer:
            created = self._users.get_by_id(user_id)
            if created:
                self._observer.created("User", user_id, created, user_id=actor.user_id if actor else None)
        logger.info("Created %s account %s (id=%s)", role.value, username, user_id)
        return user_id

    def change_role(self, *, actor: SessionUser, user_id: int, role: Role) -> User:
        if not can_manage_roles(actor):
            raise AuthorizationError("You do not have permission to change user roles")
        if actor.user_id == int(user_id):
            raise ValidationError("You cannot change your own role")

        before = self._users.get_by_id(int(user_id))
        if not before:
            raise NotFoundError("User not found")
        if before.role == role:
            return before

        if not self._users.update_role(int(user_id), role):
            raise ValidationError("Failed to update role")

        after = User(
            user_id=before.user_id,
            full_name=before.full_name,
            username=before.username,
            email=before.email,
            password_hash=before.password_hash,
            role=role,
            is_active=before.is_active,
        )
        if self._observer:
            self._observer.updated("User", before.user_id, before, after, user_id=actor.user_id)
        logger.info("User %s role changed %s -> %s by %s", user_id, before.role.value, role.value, actor.user_id)
        return after

    def list_users(self) -> Sequence[User]:
        return self._users.list_all()

    def get_display_name(self, user_id: int) -> Optional[str]:
        user = self._users.get_by_id(int(user_id))
        return user.full_name if user else None
