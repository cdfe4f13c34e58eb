from __future__ import annotations

import logging
from typing import Mapping

from flask import Flask, abort, flash, redirect, render_template, request, send_file, url_for

from ..common.datetime_utils import parse_iso_date
from ..common.web import current_actor, superadmin_required
from ..core.enums import AuditEventType
from ..core.exceptions import NotFoundError, ValidationError
from .model import AuditFilters

logger = logging.getLogger(__name__)

_MIMETYPES = {"csv": "text/csv", "pdf": "application/pdf"}


def filters_from(params: Mapping[str, str]) -> AuditFilters:
    """Build search filters from query-string/form values; blanks are ignored."""

    def _get(key: str):
        value = (params.get(key) or "").strip()
        return value or None

    try:
        event_type = AuditEventType(_get("event_type")) if _get("event_type") else None
        user_id = int(_get("user_id")) if _get("user_id") else None
        auditable_id = int(_get("auditable_id")) if _get("auditable_id") else None
        date_from = parse_iso_date(_get("date_from")) if _get("date_from") else None
        date_to = parse_iso_date(_get("date_to")) if _get("date_to") else None
    except ValueError:
        raise ValidationError("Invalid audit log filter")

    return AuditFilters(
        search=_get("search"),
        event_type=event_type,
        action=_get("action"),
        user_id=user_id,
        auditable_type=_get("auditable_type"),
        auditable_id=auditable_id,
        ip_address=_get("ip_address"),
        date_from=date_from,
        date_to=date_to,
    )


def register(app: Flask, container) -> None:
    # render_forbidden looks the audit service up here.
    app.extensions["audit_service"] = container.audit_service

    @app.route("/admin/audit-logs", endpoint="audit_logs")
    @superadmin_required
    def audit_logs():
        try:
            filters = filters_from(request.args)
        except ValidationError as e:
            flash(str(e), "danger")
            filters = AuditFilters()

        logs = container.audit_service.search(filters, limit=200)
        return render_template(
            "admin/audit_logs.html",
            logs=logs,
            filters=filters,
            event_types=list(AuditEventType),
            active_page="audit_logs",
        )

    @app.route("/admin/audit-logs/export", methods=["POST"], endpoint="export_audit_logs")
    @superadmin_required
    def export_audit_logs():
        fmt = (request.form.get("format") or "csv").lower()
        exporter = container.audit_export_service
        try:
            filters = filters_from(request.form)
            logs = container.audit_service.search(filters, limit=exporter.max_records)
            content = exporter.render(logs, fmt)
            filename = exporter.save_export(content, fmt)
        except ValidationError as e:
            flash(str(e), "danger")
            return redirect(url_for("audit_logs"))

        container.audit_service.log_security_event(
            "audit_logs_exported",
            {"format": fmt, "records": len(logs), "filename": filename},
            user_id=current_actor().user_id,
        )
        return redirect(url_for("download_audit_export", filename=filename))

    @app.route("/admin/audit-logs/download/<path:filename>", endpoint="download_audit_export")
    @superadmin_required
    def download_audit_export(filename: str):
        try:
            path = container.audit_export_service.resolve_download(filename)
        except ValidationError:
            abort(400)
        except NotFoundError:
            abort(404)

        return send_file(
            path,
            as_attachment=True,
            download_name=path.name,
            mimetype=_MIMETYPES[path.suffix.lstrip(".")],
        )
