from __future__ import annotations

import logging

from flask import Flask, flash, redirect, render_template, request, url_for

from ..common.web import current_actor, login_required, render_forbidden, staff_required
from ..core.exceptions import AuthorizationError, DomainError, NotFoundError
from ..core.enums import PackageStatus

logger = logging.getLogger(__name__)


def register(app: Flask, container) -> None:
    @app.route("/admin/consolidate", methods=["POST"], endpoint="consolidate_packages")
    @staff_required
    def consolidate_packages():
        try:
            ids = [int(x) for x in request.form.getlist("package_ids") if str(x).strip()]
            group = container.consolidation_service.consolidate_packages(ids, current_actor(), request.form.get("notes") or None)
            flash(f"Packages consolidated as {group.consolidated_tracking_number}.", "success")
            return redirect(url_for("consolidated_detail", group_id=group.consolidated_package_id))
        except (DomainError, ValueError) as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Consolidation failed")
            flash("System error while consolidating packages", "danger")
        return redirect(url_for("admin_packages"))

    @app.route("/consolidated/<int:group_id>", endpoint="consolidated_detail")
    @login_required
    def consolidated_detail(group_id: int):
        actor = current_actor()
        try:
            group = container.consolidation_service.get_group(group_id)
            history = container.consolidation_service.get_consolidation_history(group, actor)
        except NotFoundError as e:
            flash(str(e), "danger")
            return redirect(url_for("dashboard"))
        except AuthorizationError:
            return render_forbidden()

        return render_template(
            "consolidation/detail.html",
            group=group,
            members=container.consolidation_service.list_members(group),
            history=history,
            statuses=list(PackageStatus),
            is_staff=actor.role.is_staff,
            active_page="admin_packages",
        )

    @app.route("/admin/consolidated/<int:group_id>/unconsolidate", methods=["POST"], endpoint="unconsolidate_packages")
    @staff_required
    def unconsolidate_packages(group_id: int):
        try:
            group = container.consolidation_service.get_group(group_id)
            container.consolidation_service.unconsolidate_packages(group, current_actor(), request.form.get("notes") or None)
            flash("Packages unconsolidated successfully.", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Unconsolidation of group %s failed", group_id)
            flash("System error while unconsolidating packages", "danger")
        return redirect(url_for("consolidated_detail", group_id=group_id))

    @app.route("/admin/consolidated/<int:group_id>/status", methods=["POST"], endpoint="consolidated_status")
    @staff_required
    def consolidated_status(group_id: int):
        try:
            group = container.consolidation_service.get_group(group_id)
            result = container.consolidation_service.update_consolidated_status(
                group, request.form.get("status", ""), current_actor(), request.form.get("notes") or None
            )
            flash(result.message, "success" if result.success else "warning")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Status update for group %s failed", group_id)
            flash("System error while updating status", "danger")
        return redirect(url_for("consolidated_detail", group_id=group_id))
