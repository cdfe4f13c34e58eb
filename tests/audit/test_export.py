from __future__ import annotations

from datetime import datetime

import pytest

from src.freight_system.freight_system.audit.export import CSV_HEADERS, AuditExportService
from src.freight_system.freight_system.audit.model import AuditLog
from src.freight_system.freight_system.core.enums import AuditEventType
from src.freight_system.freight_system.core.exceptions import NotFoundError, ValidationError
from tests.fakes import FIXED_NOW


def _log(log_id, user_id=None, **kw):
    values = dict(
        audit_log_id=log_id,
        user_id=user_id,
        event_type=AuditEventType.SECURITY_EVENT,
        action="audit_logs_exported",
        auditable_type=None,
        auditable_id=None,
        old_values=None,
        new_values=None,
        url=None,
        ip_address="10.0.0.1",
        user_agent=None,
        additional_data={"format": "csv"},
        created_at=datetime(2025, 3, 1, 8, 0, 0),
    )
    values.update(kw)
    return AuditLog(**values)


def _service(tmp_path, **kw):
    names = {2: "Root"}
    return AuditExportService(export_dir=tmp_path, user_names=names.get, clock=lambda: FIXED_NOW, **kw)


def test_csv_has_header_and_user_labels(tmp_path):
    content = _service(tmp_path).export_to_csv([_log(1, user_id=2), _log(2), _log(3, user_id=9)])
    lines = content.decode("utf-8-sig").splitlines()

    assert lines[0] == ",".join(CSV_HEADERS)
    assert ",Root," in lines[1]
    assert ",System," in lines[2]
    assert ",User #9," in lines[3]
    assert '"{""format"": ""csv""}"' in lines[1]


def test_export_is_capped(tmp_path):
    content = _service(tmp_path, max_records=2).export_to_csv([_log(i) for i in range(5)])
    assert len(content.decode("utf-8-sig").splitlines()) == 3


def test_pdf_render_produces_a_pdf(tmp_path):
    assert _service(tmp_path).render([_log(1)], "pdf").startswith(b"%PDF")


def test_unknown_format_is_rejected(tmp_path):
    with pytest.raises(ValidationError):
        _service(tmp_path).render([], "xml")


def test_saved_export_can_be_downloaded(tmp_path):
    service = _service(tmp_path)
    filename = service.save_export(b"data", "csv")

    assert filename == "audit_logs_2025-03-14_09-30-00.csv"
    assert service.resolve_download(filename).read_bytes() == b"data"


@pytest.mark.parametrize("filename", ["../secret.csv", "..", "a/b.csv", "notes.txt", "", "audit_logs_x.csv\n"])
def test_download_rejects_unsafe_names(tmp_path, filename):
    with pytest.raises(ValidationError):
        _service(tmp_path).resolve_download(filename)


def test_download_of_missing_export(tmp_path):
    with pytest.raises(NotFoundError):
        _service(tmp_path).resolve_download("audit_logs_missing.csv")
