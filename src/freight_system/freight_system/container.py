from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from config.defaults import AUDITABLE_MODELS

from .audit.export import AuditExportService
from .audit.mysql_audit_repository import MySQLAuditLogRepository
from .audit.observer import AuditObserver
from .audit.retention import AuditRetentionService
from .audit.service import AuditService
from .backups.handlers import DatabaseBackupHandler, FileBackupHandler
from .backups.mysql_backup_repository import MySQLBackupRepository
from .backups.service import BackupService
from .backups.settings import BackupSettings
from .backups.storage import BackupStorageManager
from .consolidation.mysql_consolidation_repository import MySQLConsolidationRepository
from .consolidation.service import PackageConsolidationService
from .database.connection import DBConfig, DatabaseConnection
from .manifests.lock_service import ManifestLockService
from .manifests.mysql_manifest_repository import MySQLManifestRepository
from .packages.fee_service import PackageFeeService
from .packages.mysql_package_repository import MySQLPackageRepository
from .packages.observer import PackageAuditObserver
from .packages.status_service import PackageStatusService
from .rates.calculators.factory import RateCalculatorFactory
from .rates.mysql_rate_repository import MySQLRateRepository
from .rates.service import RateService
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    users_repo: MySQLUserRepository
    manifest_repo: MySQLManifestRepository
    package_repo: MySQLPackageRepository
    rate_repo: MySQLRateRepository
    consolidation_repo: MySQLConsolidationRepository
    audit_repo: MySQLAuditLogRepository
    backup_repo: MySQLBackupRepository

    audit_service: AuditService
    audit_observer: AuditObserver
    audit_export_service: AuditExportService
    audit_retention_service: AuditRetentionService
    auth_service: AuthService
    user_service: UserService
    manifest_lock_service: ManifestLockService
    package_status_service: PackageStatusService
    package_fee_service: PackageFeeService
    rate_service: RateService
    consolidation_service: PackageConsolidationService
    backup_service: BackupService
    backup_storage: BackupStorageManager


def build_container(
    *,
    db_config: dict,
    audit_config: Optional[dict] = None,
    backup_config: Optional[dict] = None,
) -> Container:
    audit_config = audit_config or {}
    config = DBConfig.from_dict(db_config)
    conn = DatabaseConnection.get_instance(config)

    users_repo = MySQLUserRepository(conn)
    manifest_repo = MySQLManifestRepository(conn)
    package_repo = MySQLPackageRepository(conn)
    rate_repo = MySQLRateRepository(conn)
    consolidation_repo = MySQLConsolidationRepository(conn)
    audit_repo = MySQLAuditLogRepository(conn)
    backup_repo = MySQLBackupRepository(conn)

    audit_service = AuditService(audit_repo, enabled=bool(audit_config.get("enabled", True)))
    audit_observer = AuditObserver(
        audit_service,
        auditable_models=audit_config.get("auditable_models") or AUDITABLE_MODELS,
    )
    export_config = audit_config.get("export") or {}
    user_service = UserService(users_repo, observer=audit_observer)
    audit_export_service = AuditExportService(
        export_dir=Path(export_config.get("directory") or "storage/audit_exports"),
        max_records=int(export_config.get("max_records", 10000)),
        user_names=user_service.get_display_name,
    )
    audit_retention_service = AuditRetentionService(audit_repo, retention_days=audit_config.get("retention"))

    auth_service = AuthService(users_repo, audit=audit_service)
    manifest_lock_service = ManifestLockService(manifest_repo, package_repo, audit_observer=audit_observer)
    package_observer = PackageAuditObserver(audit_service, audit_observer, manifest_repo, manifest_lock_service)
    package_status_service = PackageStatusService(package_repo, manifest_repo, observer=package_observer)
    package_fee_service = PackageFeeService(package_repo, manifest_repo, audit_service, observer=package_observer)
    rate_service = RateService(package_repo, manifest_repo, RateCalculatorFactory(rate_repo), observer=package_observer)
    consolidation_service = PackageConsolidationService(
        consolidation_repo,
        package_repo,
        package_status_service,
        audit_service,
        observer=package_observer,
        audit_observer=audit_observer,
    )

    backup_settings = BackupSettings.from_dict(backup_config or {})
    backup_storage = BackupStorageManager(backup_repo, backup_settings)
    backup_service = BackupService(
        backup_repo,
        DatabaseBackupHandler(backup_settings, config),
        FileBackupHandler(backup_settings),
        backup_storage,
        backup_settings,
    )

    return Container(
        conn=conn,
        users_repo=users_repo,
        manifest_repo=manifest_repo,
        package_repo=package_repo,
        rate_repo=rate_repo,
        consolidation_repo=consolidation_repo,
        audit_repo=audit_repo,
        backup_repo=backup_repo,
        audit_service=audit_service,
        audit_observer=audit_observer,
        audit_export_service=audit_export_service,
        audit_retention_service=audit_retention_service,
        auth_service=auth_service,
        user_service=user_service,
        manifest_lock_service=manifest_lock_service,
        package_status_service=package_status_service,
        package_fee_service=package_fee_service,
        rate_service=rate_service,
        consolidation_service=consolidation_service,
        backup_service=backup_service,
        backup_storage=backup_storage,
    )
