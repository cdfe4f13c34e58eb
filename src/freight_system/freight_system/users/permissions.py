"""Role checks shared by services and controllers."""

from __future__ import annotations

from ..core.enums import Role
from .model import SessionUser


def is_staff(user: SessionUser) -> bool:
    return user.role.is_staff


def can_edit_manifest(user: SessionUser) -> bool:
    return user.role.is_staff


def can_unlock_manifest(user: SessionUser) -> bool:
    return user.role.is_staff


def can_view_audit_logs(user: SessionUser) -> bool:
    return user.role == Role.SUPERADMIN


def can_manage_roles(user: SessionUser) -> bool:
    return user.role == Role.SUPERADMIN


def can_view_package(user: SessionUser, *, owner_id: int) -> bool:
    return user.role.is_staff or user.user_id == owner_id
