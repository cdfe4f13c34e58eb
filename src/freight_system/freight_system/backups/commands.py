from __future__ import annotations

import logging
from typing import Sequence

import click
from flask import Flask

from ..common.formatting import format_bytes
from ..core.enums import BackupStatus

logger = logging.getLogger(__name__)

_STATUS_LABELS = {
    BackupStatus.COMPLETED: "✓ Completed",
    BackupStatus.FAILED: "✗ Failed",
    BackupStatus.PENDING: "⏳ Pending",
    BackupStatus.CLEANED_UP: "🗑 Cleaned up",
}

DISK_WARNING_PERCENT = 80


def echo_table(headers: Sequence[str], rows: Sequence[Sequence]) -> None:
    cells = [[str(c) for c in row] for row in rows]
    widths = [max([len(h)] + [len(r[i]) for r in cells]) for i, h in enumerate(headers)]
    line = "+" + "+".join("-" * (w + 2) for w in widths) + "+"

    click.echo(line)
    click.echo("| " + " | ".join(h.ljust(w) for h, w in zip(headers, widths)) + " |")
    click.echo(line)
    for row in cells:
        click.echo("| " + " | ".join(c.ljust(w) for c, w in zip(row, widths)) + " |")
    click.echo(line)


def _when(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else "Never"


def register(app: Flask, container) -> None:
    @app.cli.group("backup")
    def backup():
        """Database and file backups."""

    @backup.command("create")
    @click.option("--database", "database_only", is_flag=True, help="Back up the database only.")
    @click.option("--files", "files_only", is_flag=True, help="Back up the configured directories only.")
    @click.option("--name", default=None, help="Custom backup name.")
    def create(database_only: bool, files_only: bool, name):
        if database_only and files_only:
            click.echo("Cannot specify both --database and --files options")
            raise SystemExit(1)

        backup_type = "database" if database_only else "files" if files_only else "full"
        click.echo(f"Starting backup process ({backup_type})...")
        try:
            result = container.backup_service.create_manual_backup(backup_type, name)
        except Exception as e:
            logger.exception("Backup command failed")
            click.echo(f"Backup failed with exception: {e}")
            raise SystemExit(1)

        if not result.success:
            click.echo(result.message)
            raise SystemExit(1)

        click.echo("Backup completed successfully")
        echo_table(
            ["Property", "Value"],
            [
                ["Backup Type", result.type],
                ["File Path", result.file_path or ""],
                ["File Size", format_bytes(result.file_size)],
                ["Duration", f"{result.duration:g} seconds"],
            ],
        )

    @backup.command("cleanup")
    @click.option("--dry-run", is_flag=True, help="Show what would be deleted.")
    def cleanup(dry_run: bool):
        click.echo("Starting backup cleanup process")
        if dry_run:
            click.echo("Running in dry-run mode - no files will be deleted")

        try:
            result = container.backup_storage.cleanup_old_backups(dry_run)
        except Exception as e:
            logger.exception("Backup cleanup command failed")
            click.echo(f"Cleanup failed with exception: {e}")
            raise SystemExit(1)

        click.echo("Cleanup completed successfully")
        if result.deleted_files:
            click.echo("Would delete files:" if dry_run else "Deleted files:")
            echo_table(
                ["File Name", "Type", "Size", "Age"],
                [
                    [f["name"], f["type"], format_bytes(f["size"]), f"{f['age_days']} days old"]
                    for f in result.deleted_files
                ],
            )
            label = "Total space that would be freed:" if dry_run else "Total space freed:"
            click.echo(f"{label} {format_bytes(result.total_freed_space)}")
        else:
            click.echo("No files found for cleanup")

        click.echo("Current retention policy:")
        click.echo(f"  Database backups: {result.retention.get('database')} days")
        click.echo(f"  File backups: {result.retention.get('files')} days")

        if result.errors:
            click.echo("Errors encountered:")
            for error in result.errors:
                click.echo(f"  - {error}")

    @backup.command("status")
    def status():
        try:
            report = container.backup_service.get_backup_status()
            history = container.backup_service.get_backup_history(10)
            storage = container.backup_storage.get_storage_info()
        except Exception as e:
            logger.exception("Backup status command failed")
            click.echo(f"Failed to retrieve backup status: {e}")
            raise SystemExit(1)

        click.echo("Backup System Status")
        click.echo("=" * 20)
        click.echo("System Status: " + ("✓ Healthy" if report.is_healthy() else "✗ Issues Detected"))
        issues = report.get_health_issues()
        if issues:
            click.echo("Health Issues:")
            for issue in issues:
                click.echo(f"  - {issue}")

        click.echo("")
        echo_table(
            ["Metric", "Value"],
            [
                ["Last Backup", _when(report.last_backup_date)],
                ["Last Successful Backup", _when(report.last_successful_backup_date)],
                ["Total Backups", report.total_backups],
                ["Recent Failures (7 days)", report.failed_backups],
                ["Pending Backups", report.pending_backups],
            ],
        )

        click.echo("")
        click.echo("Recent Backup History:")
        if history:
            echo_table(
                ["Name", "Type", "Status", "Size", "Created"],
                [
                    [b.name, b.type.value, _STATUS_LABELS.get(b.status, b.status.value), format_bytes(b.file_size), _when(b.created_at)]
                    for b in history
                ],
            )
        else:
            click.echo("No backups found")

        click.echo("")
        click.echo("Storage Information:")
        echo_table(
            ["Property", "Value"],
            [
                ["Backup Directory", storage["path"]],
                ["Total Backup Files", storage["total_files"]],
                ["Total Storage Used", format_bytes(storage["total_size"])],
                ["Available Disk Space", format_bytes(storage["available_space"])],
                ["Disk Usage", f"{storage['disk_usage_percent']}%"],
            ],
        )
        if storage["disk_usage_percent"] > DISK_WARNING_PERCENT:
            click.echo("⚠ Warning: Disk usage is high")

        click.echo("")
        click.echo("Retention Policy:")
        retention = storage.get("retention") or report.retention_policy
        click.echo(f"  Database Backups: {retention.get('database')} days")
        click.echo(f"  File Backups: {retention.get('files')} days")
