from __future__ import annotations

import json
from datetime import timedelta
from types import SimpleNamespace

from src.freight_system.freight_system.backups.model import Backup, split_file_paths
from src.freight_system.freight_system.backups.settings import BackupSettings
from src.freight_system.freight_system.backups.storage import BackupStorageManager
from src.freight_system.freight_system.core.enums import BackupStatus, BackupType
from tests.fakes import FIXED_NOW, InMemoryBackups


def _artifact(path, size):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)
    return path


def _setup(tmp_path):
    settings = BackupSettings(storage_path=tmp_path, database_retention_days=30, files_retention_days=14)
    repo = InMemoryBackups()
    old_dump = _artifact(tmp_path / "database" / "old.sql", 100)
    new_dump = _artifact(tmp_path / "database" / "new.sql", 50)
    old_zip = _artifact(tmp_path / "files" / "old.zip", 20)
    repo.add(Backup(1, "old-db", BackupType.DATABASE, BackupStatus.COMPLETED, FIXED_NOW - timedelta(days=40), str(old_dump), 100))
    repo.add(Backup(2, "new-db", BackupType.DATABASE, BackupStatus.COMPLETED, FIXED_NOW - timedelta(days=2), str(new_dump), 50))
    repo.add(Backup(3, "old-files", BackupType.FILES, BackupStatus.COMPLETED, FIXED_NOW - timedelta(days=15), str(old_zip), 20))
    disk = SimpleNamespace(total=1000, used=850, free=150)
    manager = BackupStorageManager(repo, settings, clock=lambda: FIXED_NOW, disk_usage=lambda _: disk)
    return manager, repo, old_dump, new_dump, old_zip


def test_dry_run_reports_without_deleting(tmp_path):
    manager, repo, old_dump, _, old_zip = _setup(tmp_path)

    result = manager.cleanup_old_backups(dry_run=True)

    assert result.dry_run
    assert [f["name"] for f in result.deleted_files] == ["old.sql", "old.zip"]
    assert result.total_freed_space == 120
    assert result.deleted_files[0]["age_days"] == 40
    assert old_dump.exists() and old_zip.exists()
    assert repo.get_by_id(1).status == BackupStatus.COMPLETED


def test_cleanup_deletes_expired_artifacts_only(tmp_path):
    manager, repo, old_dump, new_dump, old_zip = _setup(tmp_path)

    result = manager.cleanup_old_backups()

    assert result.retention == {"database": 30, "files": 14}
    assert not old_dump.exists() and not old_zip.exists()
    assert new_dump.exists()
    assert repo.get_by_id(1).status == BackupStatus.CLEANED_UP
    assert repo.get_by_id(2).status == BackupStatus.COMPLETED


def test_storage_info_includes_disk_numbers(tmp_path):
    manager, *_ = _setup(tmp_path)

    info = manager.get_storage_info()

    assert info["total_files"] == 3
    assert info["total_size"] == 170
    assert info["available_space"] == 150
    assert info["disk_usage_percent"] == 85.0
    assert info["breakdown"]["files"] == {"files": 1, "size": 20}


def test_file_path_variants():
    assert split_file_paths("/b/db.sql") == ["/b/db.sql"]
    assert split_file_paths(json.dumps(["/b/a.zip", "/b/b.zip"])) == ["/b/a.zip", "/b/b.zip"]
    assert split_file_paths(json.dumps({"database": "/b/db.sql", "files": ["/b/a.zip"]})) == ["/b/db.sql", "/b/a.zip"]
    assert split_file_paths(None) == []
