from __future__ import annotations

from dataclasses import replace
from typing import Optional

import pytest
from werkzeug.security import generate_password_hash

from src.freight_system.freight_system.core.enums import Role
from src.freight_system.freight_system.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ValidationError,
)
from src.freight_system.freight_system.users.model import User
from src.freight_system.freight_system.users.service import AuthService, UserService
from tests.fakes import ADMIN, SUPERADMIN


class InMemoryUsers:
    def __init__(self, *users: User):
        self.by_id = {u.user_id: u for u in users}

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.by_id.get(user_id)

    def get_by_username(self, username: str) -> Optional[User]:
        return next((u for u in self.by_id.values() if u.username == username), None)

    def create_user(self, *, full_name, username, email, password_hash, role) -> int:
        user_id = max(self.by_id, default=0) + 1
        self.by_id[user_id] = User(user_id, full_name, username, email, password_hash, role)
        return user_id

    def update_role(self, user_id: int, role: Role) -> bool:
        self.by_id[user_id] = replace(self.by_id[user_id], role=role)
        return True

    def list_all(self):
        return list(self.by_id.values())


class RecordingAudit:
    def __init__(self):
        self.events = []

    def log_authentication(self, action, *, user_id, additional_data=None):
        self.events.append((action, user_id))


def _customer(**kw):
    values = dict(
        user_id=10,
        full_name="Kim Reid",
        username="kim",
        email="kim@example.com",
        password_hash=generate_password_hash("correct horse"),
        role=Role.CUSTOMER,
    )
    values.update(kw)
    return User(**values)


def test_login_success_is_audited():
    audit = RecordingAudit()
    user = AuthService(InMemoryUsers(_customer()), audit=audit).authenticate(" kim ", "correct horse")

    assert user.user_id == 10
    assert user.role == Role.CUSTOMER
    assert audit.events == [("login", 10)]


def test_wrong_password_is_rejected_and_audited():
    audit = RecordingAudit()
    with pytest.raises(AuthenticationError):
        AuthService(InMemoryUsers(_customer()), audit=audit).authenticate("kim", "guess")
    assert audit.events == [("login_failed", 10)]


def test_inactive_user_cannot_login():
    with pytest.raises(AuthenticationError):
        AuthService(InMemoryUsers(_customer(is_active=False))).authenticate("kim", "correct horse")


def test_admin_creates_customer_accounts_only():
    users = InMemoryUsers()
    service = UserService(users)

    user_id = service.create_account(
        actor=ADMIN, full_name="New Customer", username="newbie", email="", password="longenough", role=Role.CUSTOMER
    )
    assert users.get_by_id(user_id).email is None

    with pytest.raises(AuthorizationError):
        service.create_account(
            actor=ADMIN, full_name="Staff", username="staff", email=None, password="longenough", role=Role.ADMIN
        )


def test_duplicate_username_and_short_password():
    service = UserService(InMemoryUsers(_customer()))
    with pytest.raises(ValidationError, match="Username already exists"):
        service.create_account(actor=SUPERADMIN, full_name="K", username="kim", email=None, password="longenough")
    with pytest.raises(ValidationError, match="at least 8 characters"):
        service.create_account(actor=SUPERADMIN, full_name="K", username="kim2", email=None, password="short")


def test_only_superadmin_changes_roles():
    users = InMemoryUsers(_customer())
    service = UserService(users)

    with pytest.raises(AuthorizationError):
        service.change_role(actor=ADMIN, user_id=10, role=Role.ADMIN)

    updated = service.change_role(actor=SUPERADMIN, user_id=10, role=Role.ADMIN)
    assert updated.role == Role.ADMIN
    assert users.get_by_id(10).role == Role.ADMIN


def test_superadmin_cannot_demote_self():
    service = UserService(InMemoryUsers())
    with pytest.raises(ValidationError, match="your own role"):
        service.change_role(actor=SUPERADMIN, user_id=SUPERADMIN.user_id, role=Role.CUSTOMER)
