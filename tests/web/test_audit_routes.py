from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest
from flask import Flask

from src.freight_system.freight_system.audit.controller import filters_from
from src.freight_system.freight_system.audit.controller import register as register_audit
from src.freight_system.freight_system.audit.export import AuditExportService
from src.freight_system.freight_system.consolidation.controller import register as register_consolidation
from src.freight_system.freight_system.core.enums import AuditEventType
from src.freight_system.freight_system.core.exceptions import ValidationError
from src.freight_system.freight_system.manifests.controller import register as register_manifests
from src.freight_system.freight_system.packages.controller import register as register_packages
from src.freight_system.freight_system.users.controller import register as register_users
from src.freight_system.freight_system.core.enums import PackageStatus
from src.freight_system.freight_system.packages.status_service import PackageStatusService
from tests.fakes import ADMIN, FIXED_NOW, InMemoryManifests, InMemoryPackages, manifest, package

TEMPLATES = Path(__file__).resolve().parents[2] / "templates"


class StubAuditService:
    def __init__(self):
        self.security_events = []
        self.authorization_events = []

    def search(self, filters, *, limit=100):
        return []

    def log_security_event(self, action, additional_data=None, *, user_id=None):
        self.security_events.append((action, additional_data, user_id))

    def log_authorization(self, action, additional_data=None, *, user_id=None):
        self.authorization_events.append((action, additional_data, user_id))


@pytest.fixture
def app(tmp_path):
    app = Flask(__name__, template_folder=str(TEMPLATES))
    app.secret_key = "test"
    pkgs = InMemoryPackages(package(1, status=PackageStatus.READY), package(2, status=PackageStatus.PENDING))
    container = SimpleNamespace(
        audit_service=StubAuditService(),
        audit_export_service=AuditExportService(export_dir=tmp_path, clock=lambda: FIXED_NOW),
        package_repo=pkgs,
        package_status_service=PackageStatusService(pkgs, InMemoryManifests(manifest()), clock=lambda: FIXED_NOW),
    )
    for register in (register_users, register_manifests, register_packages, register_consolidation, register_audit):
        register(app, container)
    app.extensions["test_container"] = container
    return app


def _login(client, role, user_id=2):
    with client.session_transaction() as sess:
        sess["user_id"] = user_id
        sess["name"] = "Root"
        sess["role"] = role


def test_admin_gets_forbidden_page(app):
    client = app.test_client()
    _login(client, "admin")

    response = client.get("/admin/audit-logs")

    assert response.status_code == 403
    assert b"Access denied" in response.data


def test_anonymous_is_sent_to_login(app):
    response = app.test_client().get("/admin/audit-logs/download/audit_logs_x.csv")
    assert response.status_code == 302


def test_download_rejects_path_tricks(app):
    client = app.test_client()
    _login(client, "superadmin")

    assert client.get("/admin/audit-logs/download/nested/audit_logs_x.csv").status_code == 400
    assert client.get("/admin/audit-logs/download/report.exe").status_code == 400
    assert client.get("/admin/audit-logs/download/audit_logs_x.csv%0A").status_code == 400


def test_download_of_missing_file_is_404(app):
    client = app.test_client()
    _login(client, "superadmin")
    assert client.get("/admin/audit-logs/download/audit_logs_none.csv").status_code == 404


def test_export_saves_file_and_logs_security_event(app):
    client = app.test_client()
    _login(client, "superadmin")

    response = client.post("/admin/audit-logs/export", data={"format": "csv", "event_type": "security_event"})

    assert response.status_code == 302
    assert response.headers["Location"].endswith("/admin/audit-logs/download/audit_logs_2025-03-14_09-30-00.csv")
    container = app.extensions["test_container"]
    action, data, user_id = container.audit_service.security_events[0]
    assert action == "audit_logs_exported"
    assert data["format"] == "csv"
    assert user_id == 2

    download = client.get("/admin/audit-logs/download/audit_logs_2025-03-14_09-30-00.csv")
    assert download.status_code == 200
    assert download.data.decode("utf-8-sig").startswith("ID,Date/Time")


def test_filters_parse_query_values():
    filters = filters_from({"event_type": "security_event", "date_from": "2025-01-01", "search": "  "})
    assert filters.event_type == AuditEventType.SECURITY_EVENT
    assert filters.date_from.isoformat() == "2025-01-01"
    assert filters.search is None

    with pytest.raises(ValidationError):
        filters_from({"date_to": "01/02/2025"})


@pytest.mark.parametrize("path", ["/admin/manifests", "/admin/packages", "/admin/distribution", "/admin/users"])
def test_customer_is_forbidden_on_staff_pages(app, path):
    client = app.test_client()
    _login(client, "customer", user_id=10)

    response = client.get(path)

    assert response.status_code == 403
    assert b"Access denied" in response.data
    action, data, user_id = app.extensions["test_container"].audit_service.authorization_events[-1]
    assert action == "access_denied"
    assert data["role"] == "customer"
    assert user_id == 10


def test_distribution_lists_ready_packages(app):
    client = app.test_client()
    _login(client, "admin", user_id=ADMIN.user_id)

    response = client.get("/admin/distribution")

    assert response.status_code == 200
    assert b"TRK0001" in response.data
    assert b"TRK0002" not in response.data


def test_distribution_delivers_only_ready_packages(app):
    client = app.test_client()
    _login(client, "admin", user_id=ADMIN.user_id)

    response = client.post("/admin/distribution", data={"package_ids": ["1", "2"]})

    assert response.status_code == 302
    pkgs = app.extensions["test_container"].package_repo
    assert pkgs.get_by_id(1).status == PackageStatus.DELIVERED
    assert pkgs.get_by_id(2).status == PackageStatus.PENDING
    assert pkgs.history[0].changed_by == ADMIN.user_id
