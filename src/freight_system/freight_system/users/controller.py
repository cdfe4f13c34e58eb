from __future__ import annotations

import logging
from datetime import timedelta

from flask import Flask, flash, redirect, render_template, request, session, url_for

from ..common.web import current_actor, login_required, staff_required, superadmin_required
from ..core.constants import DEFAULT_SESSION_DAYS
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def register(app: Flask, container) -> None:
    app.jinja_env.globals["csrf_token"] = lambda: ""

    @app.route("/", methods=["GET", "POST"], endpoint="login")
    def login():
        if "user_id" in session:
            return redirect(url_for("dashboard"))

        if request.method == "POST":
            username = request.form.get("username", "")
            password = request.form.get("password", "")
            remember = request.form.get("remember_me")

            try:
                s_user = container.auth_service.authenticate(username, password)

                session.permanent = bool(remember)
                app.permanent_session_lifetime = timedelta(days=DEFAULT_SESSION_DAYS)

                session["user_id"] = s_user.user_id
                session["name"] = s_user.full_name
                session["role"] = s_user.role.value

                flash("Logged in successfully.", "success")
                return redirect(url_for("dashboard"))
            except AuthenticationError as e:
                flash(str(e), "danger")
            except Exception as e:
                logger.exception("Login failed")
                if bool(app.config.get("DEBUG", False)):
                    flash(f"System error during login: {e}", "danger")
                else:
                    flash("System error during login", "danger")

        return render_template("login.html")

    @app.route("/logout", endpoint="logout")
    def logout():
        actor = current_actor()
        if actor:
            container.auth_service.logout(actor)
        session.clear()
        flash("You have been logged out.", "info")
        return redirect(url_for("login"))

    @app.route("/dashboard", endpoint="dashboard")
    @login_required
    def dashboard():
        if session.get("role") == Role.CUSTOMER.value:
            return redirect(url_for("my_packages"))
        return redirect(url_for("admin_manifests"))

    @app.route("/admin/users", endpoint="admin_users")
    @staff_required
    def admin_users():
        users = container.user_service.list_users()
        return render_template("admin/users.html", users=users, roles=list(Role), active_page="admin_users")

    @app.route("/admin/users/add", methods=["GET", "POST"], endpoint="add_user")
    @staff_required
    def add_user():
        if request.method == "POST":
            try:
                try:
                    role = Role(request.form.get("role", Role.CUSTOMER.value))
                except ValueError:
                    raise ValidationError("Invalid account type")

                container.user_service.create_account(
                    actor=current_actor(),
                    full_name=request.form.get("full_name", ""),
                    username=request.form.get("username", ""),
                    email=request.form.get("email", ""),
                    password=request.form.get("password", ""),
                    role=role,
                )
                flash("Account created.", "success")
                return redirect(url_for("admin_users"))
            except (ValidationError, AuthorizationError) as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("Failed to create account")
                flash("System error while creating the account", "danger")

        return render_template("admin/add_user.html", roles=list(Role), active_page="add_user")

    @app.route("/admin/users/<int:user_id>/role", methods=["POST"], endpoint="change_user_role")
    @superadmin_required
    def change_user_role(user_id: int):
        try:
            try:
                role = Role(request.form.get("role", ""))
            except ValueError:
                raise ValidationError("Invalid role")
            container.user_service.change_role(actor=current_actor(), user_id=user_id, role=role)
            flash("Role updated.", "success")
        except (ValidationError, AuthorizationError, NotFoundError) as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Failed to change role for user %s", user_id)
            flash("System error while changing the role", "danger")

        return redirect(url_for("admin_users"))
