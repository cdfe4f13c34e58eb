"""Load starter rates and manifests, then upsert the demo accounts."""

from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.freight_system.freight_system.database.bootstrap import DEMO_USERS, apply_seed_sql, ensure_demo_users

logger = logging.getLogger("seed_db")


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")
    ensure_demo_users(db_config)
    for _, username, _, password, role in DEMO_USERS:
        logger.info("Demo login: %s / %s (%s)", username, password, role)


if __name__ == "__main__":
    main()
