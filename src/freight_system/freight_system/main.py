from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .database.bootstrap import apply_schema, apply_seed_sql, ensure_demo_users, list_tables
from .container import build_container
from .audit.commands import register as register_audit_commands
from .audit.controller import register as register_audit
from .backups.commands import register as register_backup_commands
from .consolidation.controller import register as register_consolidation
from .manifests.controller import register as register_manifests
from .packages.controller import register as register_packages
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

ROOT = Path(__file__).resolve().parents[3]


def create_app() -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__, template_folder="../../../templates", static_folder="../../../static")

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["AUDIT"] = dict(getattr(settings, "AUDIT", {}))
    app.config["BACKUP"] = dict(getattr(settings, "BACKUP", {}))

    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config, schema_path=ROOT / "database" / "schema.sql")
        logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))
    if bool(getattr(settings, "AUTO_SEED_DB", False)):
        apply_seed_sql(db_config, seed_path=ROOT / "database" / "seed.sql")
        ensure_demo_users(db_config)
        logger.info("Demo seed ready")

    container = build_container(
        db_config=db_config,
        audit_config=app.config["AUDIT"],
        backup_config=app.config["BACKUP"],
    )

    register_users(app, container)
    register_manifests(app, container)
    register_packages(app, container)
    register_consolidation(app, container)
    register_audit(app, container)
    register_audit_commands(app, container)
    register_backup_commands(app, container)

    return app
