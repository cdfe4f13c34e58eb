"""Artifact producers for backups.

``DatabaseBackupHandler`` shells out to ``mysqldump``; ``FileBackupHandler``
zips directories with the standard library.
"""

from __future__ import annotations

import logging
import os
import subprocess
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..core.exceptions import BackupError
from ..database.connection import DBConfig
from .settings import BackupSettings

logger = logging.getLogger(__name__)

_DUMP_MARKERS = ("-- MySQL dump", "-- Dump completed on", "CREATE TABLE", "INSERT INTO")
_DUMP_CONTENT = ("SET @@", "CREATE", "INSERT")


class DatabaseBackupHandler:
    def __init__(
        self,
        settings: BackupSettings,
        db_config: DBConfig,
        *,
        runner: Callable = subprocess.run,
        clock: Callable[[], datetime] = now_local,
    ):
        self._settings = settings
        self._db = db_config
        self._runner = runner
        self._clock = clock

    def build_command(self) -> list[str]:
        return [
            self._settings.mysqldump_binary,
            f"--host={self._db.host}",
            f"--port={self._db.port}",
            f"--user={self._db.user}",
            "--single-transaction",
            "--routines",
            "--triggers",
            "--hex-blob",
            "--default-character-set=utf8mb4",
            self._db.database,
        ]

    def create_dump(self, filename: Optional[str] = None) -> Path:
        filename = filename or f"database_backup_{self._db.database}_{self._clock():%Y-%m-%d_%H-%M-%S}.sql"
        out_dir = self._settings.database_dir
        out_dir.mkdir(parents=True, exist_ok=True)
        out_file = out_dir / filename

        # Password goes through the environment so it never shows in `ps`.
        env = dict(os.environ, MYSQL_PWD=self._db.password)
        try:
            with out_file.open("wb") as f:
                self._runner(
                    self.build_command(),
                    stdout=f,
                    stderr=subprocess.PIPE,
                    check=True,
                    env=env,
                    timeout=self._settings.timeout_seconds,
                )
        except FileNotFoundError:
            out_file.unlink(missing_ok=True)
            raise BackupError(f"{self._settings.mysqldump_binary} not found; install the MySQL client tools")
        except subprocess.CalledProcessError as e:
            out_file.unlink(missing_ok=True)
            detail = (e.stderr or b"").decode("utf-8", "replace").strip()
            raise BackupError(f"mysqldump failed: {detail or e.returncode}")
        except subprocess.TimeoutExpired:
            out_file.unlink(missing_ok=True)
            raise BackupError("mysqldump timed out")

        if not out_file.exists() or out_file.stat().st_size == 0:
            raise BackupError("Database dump file was not created or is empty")

        logger.info("Database dump written: %s (%d bytes)", out_file, out_file.stat().st_size)
        return out_file

    def validate_dump(self, path: Path) -> bool:
        path = Path(path)
        if not path.is_file() or path.stat().st_size == 0:
            logger.warning("Dump file missing or empty: %s", path)
            return False

        with path.open("r", encoding="utf-8", errors="replace") as f:
            head = [f.readline().strip() for _ in range(20)]
        if not any(marker in line for line in head for marker in _DUMP_MARKERS):
            logger.warning("Dump file has no MySQL dump headers: %s", path)
            return False

        with path.open("r", encoding="utf-8", errors="replace") as f:
            content = f.read(2048)
        return any(token in content for token in _DUMP_CONTENT)


class FileBackupHandler:
    def __init__(self, settings: BackupSettings, *, clock: Callable[[], datetime] = now_local):
        self._settings = settings
        self._clock = clock

    def backup_directory(self, directory: str | Path, archive_name: Optional[str] = None) -> Path:
        source = Path(directory)
        if not source.exists():
            raise BackupError(f"Directory does not exist: {source}")
        if not source.is_dir():
            raise BackupError(f"Path is not a directory: {source}")

        archive_name = archive_name or f"{source.name}_backup_{self._clock():%Y-%m-%d_%H-%M-%S}.zip"
        if not archive_name.endswith(".zip"):
            archive_name += ".zip"

        out_dir = self._settings.files_dir
        out_dir.mkdir(parents=True, exist_ok=True)
        archive = out_dir / archive_name

        with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for path in sorted(source.rglob("*")):
                if path.is_file():
                    zf.write(path, arcname=str(Path(source.name) / path.relative_to(source)))

        if not archive.exists() or archive.stat().st_size == 0:
            raise BackupError("Archive creation failed or resulted in empty file")

        logger.info("Archived %s -> %s", source, archive)
        return archive

    def validate_archive(self, path: Path) -> bool:
        path = Path(path)
        if not path.is_file():
            return False
        try:
            with zipfile.ZipFile(path) as zf:
                return zf.testzip() is None
        except zipfile.BadZipFile:
            logger.warning("Corrupt archive: %s", path)
            return False
