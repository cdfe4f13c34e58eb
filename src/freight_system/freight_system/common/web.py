"""Session helpers shared by the feature controllers."""

from __future__ import annotations

from functools import wraps
from typing import Optional

from flask import current_app, flash, redirect, render_template, request, session, url_for

from ..core.enums import Role
from ..users.model import SessionUser


def current_actor() -> Optional[SessionUser]:
    if "user_id" not in session:
        return None
    return SessionUser(
        user_id=int(session["user_id"]),
        full_name=session.get("name", ""),
        role=Role(session.get("role", Role.CUSTOMER.value)),
    )


def render_forbidden():
    audit = current_app.extensions.get("audit_service")
    if audit is not None:
        audit.log_authorization(
            "access_denied",
            {"endpoint": request.endpoint, "role": session.get("role")},
            user_id=session.get("user_id"),
        )

    current_user = {"full_name": session.get("name"), "role": session.get("role")}
    return render_template("403.html", current_user=current_user), 403


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            flash("Please log in to continue.", "warning")
            return redirect(url_for("login"))
        return view(*args, **kwargs)

    return wrapper


def roles_required(*roles: Role):
    allowed = {r.value for r in roles}

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return redirect(url_for("login"))
            if session.get("role") not in allowed:
                return render_forbidden()
            return view(*args, **kwargs)

        return wrapper

    return decorator


staff_required = roles_required(Role.ADMIN, Role.SUPERADMIN)
superadmin_required = roles_required(Role.SUPERADMIN)
