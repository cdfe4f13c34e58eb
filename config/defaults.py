"""Settings blocks shared by every environment module."""

import os

AUDIT_RETENTION_DAYS = {
    "authentication": 365,
    "security_events": 1095,
    "model_changes": 730,
    "business_actions": 1095,
    "financial_transactions": 2555,
    "system_events": 365,
    "default": 365,
}

AUDITABLE_MODELS = {
    "User": {"excluded_fields": ["password_hash", "remember_token"]},
    "Package": {"excluded_fields": []},
    "Manifest": {"excluded_fields": []},
    "ConsolidatedPackage": {"excluded_fields": []},
}


def audit_settings(*, enabled: bool = True) -> dict:
    return {
        "enabled": bool(int(os.getenv("AUDIT_ENABLED", "1" if enabled else "0"))),
        "retention": dict(AUDIT_RETENTION_DAYS),
        "export": {
            "max_records": int(os.getenv("AUDIT_EXPORT_MAX_RECORDS", "10000")),
            "formats": ["csv", "pdf"],
            "directory": os.getenv("AUDIT_EXPORT_DIR", "storage/audit_exports"),
        },
        "auditable_models": {name: dict(settings) for name, settings in AUDITABLE_MODELS.items()},
    }


def backup_settings() -> dict:
    return {
        "storage_path": os.getenv("BACKUP_STORAGE_PATH", "storage/backups"),
        "retention": {
            "database_days": int(os.getenv("BACKUP_DATABASE_RETENTION_DAYS", "30")),
            "files_days": int(os.getenv("BACKUP_FILES_RETENTION_DAYS", "14")),
        },
        "directories": [d for d in os.getenv("BACKUP_DIRECTORIES", "storage/uploads").split(",") if d],
        "mysqldump_binary": os.getenv("MYSQLDUMP_BINARY", "mysqldump"),
        "retry_attempts": int(os.getenv("BACKUP_RETRY_ATTEMPTS", "1")),
        "retry_delay_seconds": float(os.getenv("BACKUP_RETRY_DELAY", "5")),
    }
