from __future__ import annotations

import csv
import io
import logging
import re
from collections import Counter
from pathlib import Path
from typing import Callable, Optional, Sequence

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..common.datetime_utils import now_local
from ..common.formatting import to_json
from ..core.exceptions import NotFoundError, ValidationError
from .model import AuditLog

logger = logging.getLogger(__name__)

CSV_HEADERS = [
    "ID",
    "Date/Time",
    "Event Type",
    "Action",
    "User",
    "Auditable Type",
    "Auditable ID",
    "IP Address",
    "URL",
    "User Agent",
    "Old Values",
    "New Values",
    "Additional Data",
]

EXPORT_FORMATS = ("csv", "pdf")

_SAFE_FILENAME = re.compile(r"[A-Za-z0-9_\-]+\.(csv|pdf)")


class AuditExportService:
    """Render audit logs as CSV/PDF and serve saved exports back safely."""

    def __init__(
        self,
        *,
        export_dir: str | Path,
        max_records: int = 10000,
        user_names: Optional[Callable[[int], Optional[str]]] = None,
        clock: Callable = now_local,
    ):
        self._export_dir = Path(export_dir)
        self._max_records = int(max_records)
        self._user_names = user_names
        self._clock = clock

    @property
    def max_records(self) -> int:
        return self._max_records

    @property
    def export_dir(self) -> Path:
        return self._export_dir

    def _user_label(self, user_id: Optional[int]) -> str:
        if user_id is None:
            return "System"
        if self._user_names:
            name = self._user_names(user_id)
            if name:
                return name
        return f"User #{user_id}"

    def _cap(self, logs: Sequence[AuditLog]) -> Sequence[AuditLog]:
        return logs[: self._max_records]

    def export_to_csv(self, logs: Sequence[AuditLog]) -> bytes:
        out = io.StringIO()
        writer = csv.writer(out)
        writer.writerow(CSV_HEADERS)
        for log in self._cap(logs):
            writer.writerow(
                [
                    log.audit_log_id,
                    log.created_at.strftime("%Y-%m-%d %H:%M:%S"),
                    log.event_type.value,
                    log.action,
                    self._user_label(log.user_id),
                    log.auditable_type or "",
                    log.auditable_id or "",
                    log.ip_address or "",
                    log.url or "",
                    log.user_agent or "",
                    to_json(log.old_values) if log.old_values else "",
                    to_json(log.new_values) if log.new_values else "",
                    to_json(log.additional_data) if log.additional_data else "",
                ]
            )
        return out.getvalue().encode("utf-8-sig")

    def export_to_pdf(self, logs: Sequence[AuditLog], *, title: Optional[str] = None) -> bytes:
        logs = self._cap(logs)
        generated_at = self._clock()

        buf = io.BytesIO()
        doc = SimpleDocTemplate(buf, pagesize=landscape(A4))
        styles = getSampleStyleSheet()
        story = [
            Paragraph(title or f"Audit Log Report - {generated_at.strftime('%B %d, %Y')}", styles["Heading1"]),
            Paragraph(f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M:%S')}", styles["Normal"]),
            Paragraph(f"Total records: {len(logs)}", styles["Normal"]),
            Spacer(1, 0.2 * inch),
        ]

        by_type = Counter(log.event_type.value for log in logs)
        if by_type:
            summary = [["Event Type", "Count"]] + [[k, str(v)] for k, v in sorted(by_type.items())]
            summary_table = Table(summary)
            summary_table.setStyle(_table_style())
            story += [summary_table, Spacer(1, 0.3 * inch)]

        rows = [["ID", "Date/Time", "Event Type", "Action", "User", "Auditable", "IP Address"]]
        for log in logs:
            auditable = f"{log.auditable_type} #{log.auditable_id}" if log.auditable_type else ""
            rows.append(
                [
                    str(log.audit_log_id),
                    log.created_at.strftime("%Y-%m-%d %H:%M"),
                    log.event_type.value,
                    log.action,
                    self._user_label(log.user_id),
                    auditable,
                    log.ip_address or "",
                ]
            )
        table = Table(rows, repeatRows=1)
        table.setStyle(_table_style(font_size=8))
        story.append(table)

        doc.build(story)
        return buf.getvalue()

    def render(self, logs: Sequence[AuditLog], fmt: str, *, title: Optional[str] = None) -> bytes:
        if fmt == "csv":
            return self.export_to_csv(logs)
        if fmt == "pdf":
            return self.export_to_pdf(logs, title=title)
        raise ValidationError("Export format must be csv or pdf")

    def save_export(self, content: bytes, fmt: str) -> str:
        """Write an export to the export dir and return its filename."""
        if fmt not in EXPORT_FORMATS:
            raise ValidationError("Export format must be csv or pdf")
        self._export_dir.mkdir(parents=True, exist_ok=True)
        filename = f"audit_logs_{self._clock().strftime('%Y-%m-%d_%H-%M-%S')}.{fmt}"
        (self._export_dir / filename).write_bytes(content)
        logger.info("Audit export saved: %s (%d bytes)", filename, len(content))
        return filename

    def resolve_download(self, filename: str) -> Path:
        """Map a download filename to a file inside the export dir.

        Raises ValidationError for anything that is not a plain export name
        (path separators, '..', other extensions) and NotFoundError when the
        file does not exist.
        """
        if not filename or not _SAFE_FILENAME.fullmatch(filename):
            raise ValidationError("Invalid filename")

        base = self._export_dir.resolve()
        path = (base / filename).resolve()
        if path.parent != base:
            raise ValidationError("Invalid filename")
        if not path.is_file():
            raise NotFoundError("Export file not found")
        return path


def _table_style(*, font_size: int = 10) -> TableStyle:
    return TableStyle(
        [
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#1f3b57")),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), font_size),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ]
    )
