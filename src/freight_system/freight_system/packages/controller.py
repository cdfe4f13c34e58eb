from __future__ import annotations

import logging

from flask import Flask, flash, redirect, render_template, request, send_file, url_for

from ..common.formatting import format_money
from ..common.web import current_actor, login_required, staff_required
from ..core.enums import PackageStatus, Role
from ..core.exceptions import DomainError, ManifestLockedError, NotFoundError, ValidationError
from .export import EXCEL_MIMETYPE, packages_to_excel

logger = logging.getLogger(__name__)


def _parse_status(value: str) -> PackageStatus:
    try:
        return PackageStatus(value)
    except ValueError:
        raise ValidationError("Invalid status")


def register(app: Flask, container) -> None:
    app.jinja_env.filters["money"] = format_money

    @app.route("/my/packages", endpoint="my_packages")
    @login_required
    def my_packages():
        actor = current_actor()
        packages = container.package_repo.list_for_customer(actor.user_id)
        groups = container.consolidation_service.get_active_consolidated_packages_for_customer(actor.user_id, actor)
        return render_template(
            "packages/my_packages.html",
            packages=packages,
            consolidated=groups,
            active_page="my_packages",
        )

    @app.route("/admin/packages", endpoint="admin_packages")
    @staff_required
    def admin_packages():
        status_param = request.args.get("status") or None
        status = None
        if status_param:
            try:
                status = PackageStatus(status_param)
            except ValueError:
                flash("Unknown status filter ignored.", "warning")

        packages = container.package_repo.list_all(status=status)
        status_service = container.package_status_service
        return render_template(
            "admin/packages.html",
            packages=packages,
            statuses=list(PackageStatus),
            transitions={s: status_service.get_valid_transitions(s) for s in PackageStatus},
            statistics=status_service.get_status_statistics(),
            selected_status=status,
            active_page="admin_packages",
        )

    @app.route("/admin/packages/export", endpoint="export_packages")
    @staff_required
    def export_packages():
        packages = container.package_repo.list_all(limit=10000)
        names = {u.user_id: u.full_name for u in container.user_service.list_users() if u.role == Role.CUSTOMER}
        output = packages_to_excel(packages, names)
        return send_file(
            output,
            download_name="packages.xlsx",
            as_attachment=True,
            mimetype=EXCEL_MIMETYPE,
        )

    @app.route("/admin/packages/<int:package_id>/status", methods=["POST"], endpoint="update_package_status")
    @staff_required
    def update_package_status(package_id: int):
        try:
            package = container.package_repo.get_by_id(package_id)
            if not package:
                raise NotFoundError("Package not found")
            new_status = _parse_status(request.form.get("status", ""))
            ok = container.package_status_service.update_status(
                package, new_status, current_actor(), request.form.get("notes") or None
            )
            if ok:
                flash(f"Package {package.tracking_number} set to {new_status.label}.", "success")
            else:
                flash("Status change not allowed for this package.", "warning")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Failed to update status for package %s", package_id)
            flash("System error while updating status", "danger")

        return redirect(request.referrer or url_for("admin_packages"))

    @app.route("/admin/packages/bulk-status", methods=["POST"], endpoint="bulk_package_status")
    @staff_required
    def bulk_package_status():
        try:
            ids = [int(x) for x in request.form.getlist("package_ids") if str(x).strip()]
            if not ids:
                raise ValidationError("Select at least one package")
            new_status = _parse_status(request.form.get("status", ""))
            results = container.package_status_service.bulk_update_status(
                ids, new_status, current_actor(), request.form.get("notes") or None
            )
            flash(f"Updated {len(results['success'])} of {results['total']} packages.", "success")
            for failure in results["failed"]:
                flash(f"Package {failure['package_id']}: {failure['reason']}", "warning")
        except (DomainError, ValueError) as e:
            flash(str(e), "danger")

        return redirect(url_for("admin_packages"))

    @app.route("/admin/distribution", methods=["GET", "POST"], endpoint="distribution")
    @staff_required
    def distribution():
        status_service = container.package_status_service
        if request.method == "POST":
            try:
                ids = [int(x) for x in request.form.getlist("package_ids") if str(x).strip()]
                if not ids:
                    raise ValidationError("Select at least one package")

                check = status_service.can_distribute_packages(ids)
                for item in check["invalid"]:
                    flash(f"Package {item['package_id']}: {item['reason']}", "warning")

                actor = current_actor()
                notes = request.form.get("notes") or None
                delivered = []
                for package in container.package_repo.get_many(check["valid"]):
                    try:
                        if status_service.mark_delivered_through_distribution(package, actor, notes):
                            delivered.append(package.tracking_number)
                    except ManifestLockedError as e:
                        flash(f"Package {package.package_id}: {e}", "warning")
                if delivered:
                    flash(f"Delivered {len(delivered)} package(s): {', '.join(delivered)}.", "success")
            except (DomainError, ValueError) as e:
                flash(str(e), "danger")
            except Exception:
                logger.exception("Distribution failed")
                flash("System error while distributing packages", "danger")
            return redirect(url_for("distribution"))

        return render_template(
            "admin/distribution.html",
            packages=status_service.get_distributable_packages(),
            active_page="distribution",
        )

    @app.route("/admin/packages/<int:package_id>/fees", methods=["GET", "POST"], endpoint="update_package_fees")
    @staff_required
    def update_package_fees(package_id: int):
        package = container.package_repo.get_by_id(package_id)
        if not package:
            flash("Package not found", "danger")
            return redirect(url_for("admin_packages"))

        preview = None
        if request.method == "POST":
            fees = {k: request.form.get(k) for k in ("customs_duty", "storage_fee", "delivery_fee")}
            if request.form.get("preview"):
                preview = container.package_fee_service.get_fee_update_preview(package, fees)
            else:
                try:
                    result = container.package_fee_service.update_fees_and_set_ready(package, fees, current_actor())
                    if result.success:
                        flash(f"{result.message} (total {result.total_cost:.2f}).", "success")
                        return redirect(url_for("admin_packages"))
                    flash(result.message, "danger")
                except DomainError as e:
                    flash(str(e), "danger")
                except Exception:
                    logger.exception("Failed to update fees for package %s", package_id)
                    flash("System error while updating fees", "danger")

        breakdown, breakdown_error = None, None
        try:
            breakdown = container.rate_service.get_breakdown(package_id)
        except DomainError as e:
            breakdown_error = str(e)

        return render_template(
            "admin/package_fees.html",
            package=package,
            preview=preview,
            breakdown=breakdown,
            breakdown_error=breakdown_error,
            active_page="admin_packages",
        )

    @app.route("/admin/packages/<int:package_id>/freight", methods=["POST"], endpoint="calculate_freight")
    @staff_required
    def calculate_freight(package_id: int):
        try:
            charge = container.rate_service.calculate_freight(package_id, user_id=current_actor().user_id)
            flash(f"Freight price set to {charge:.2f}.", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Failed to calculate freight for package %s", package_id)
            flash("System error while calculating freight", "danger")

        return redirect(request.referrer or url_for("admin_packages"))
