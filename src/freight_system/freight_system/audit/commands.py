from __future__ import annotations

import click
from flask import Flask


def register(app: Flask, container) -> None:
    @app.cli.group("audit")
    def audit():
        """Audit log maintenance."""

    @audit.command("cleanup")
    @click.option("--dry-run", is_flag=True, help="Only report what would be deleted.")
    def cleanup(dry_run: bool):
        retention = container.audit_retention_service
        if dry_run:
            preview = retention.get_cleanup_preview()
            click.echo(f"Audit logs eligible for deletion: {preview['total_to_delete']}")
            for group, info in preview["by_group"].items():
                oldest = info["oldest_record"] or "-"
                click.echo(
                    f"  {group}: {info['count']} (older than {info['retention_days']} days, oldest {oldest})"
                )
            return

        result = retention.run_cleanup()
        container.audit_service.log_system_event(
            "audit_logs_cleaned_up",
            {"total_deleted": result.total_deleted, "deleted_by_group": result.deleted_by_group, "errors": result.errors},
        )
        click.echo(f"Deleted {result.total_deleted} audit log entries")
        for group, count in result.deleted_by_group.items():
            click.echo(f"  {group}: {count}")
        if result.errors:
            for error in result.errors:
                click.echo(f"  ! {error}")
            raise SystemExit(1)
