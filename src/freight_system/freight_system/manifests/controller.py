from __future__ import annotations

import logging

from flask import Flask, flash, redirect, render_template, request, url_for

from ..common.web import current_actor, staff_required
from ..core.exceptions import DomainError

logger = logging.getLogger(__name__)


def register(app: Flask, container) -> None:
    @app.route("/admin/manifests", endpoint="admin_manifests")
    @staff_required
    def admin_manifests():
        manifests = container.manifest_repo.list_all()
        return render_template("admin/manifests.html", manifests=manifests, active_page="admin_manifests")

    @app.route("/admin/manifests/<int:manifest_id>", endpoint="manifest_detail")
    @staff_required
    def manifest_detail(manifest_id: int):
        manifest = container.manifest_repo.get_by_id(manifest_id)
        if not manifest:
            flash("Manifest not found", "danger")
            return redirect(url_for("admin_manifests"))

        lock = container.manifest_lock_service
        return render_template(
            "admin/manifest_detail.html",
            manifest=manifest,
            packages=container.package_repo.list_for_manifest(manifest_id),
            lock_status=lock.get_lock_status(manifest, current_actor()),
            activity=lock.get_recent_activity(manifest),
            active_page="admin_manifests",
        )

    def _toggle(manifest_id: int, *, unlock: bool):
        manifest = container.manifest_repo.get_by_id(manifest_id)
        if not manifest:
            flash("Manifest not found", "danger")
            return redirect(url_for("admin_manifests"))

        lock = container.manifest_lock_service
        reason = request.form.get("reason", "")
        try:
            if unlock:
                result = lock.unlock_manifest(manifest, current_actor(), reason)
            else:
                result = lock.lock_manifest(manifest, current_actor(), reason)
            flash(result.message, "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Failed to change lock state of manifest %s", manifest_id)
            flash("System error while updating the manifest", "danger")

        return redirect(url_for("manifest_detail", manifest_id=manifest_id))

    @app.route("/admin/manifests/<int:manifest_id>/lock", methods=["POST"], endpoint="lock_manifest")
    @staff_required
    def lock_manifest(manifest_id: int):
        return _toggle(manifest_id, unlock=False)

    @app.route("/admin/manifests/<int:manifest_id>/unlock", methods=["POST"], endpoint="unlock_manifest")
    @staff_required
    def unlock_manifest(manifest_id: int):
        return _toggle(manifest_id, unlock=True)
