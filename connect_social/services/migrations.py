"""Schema preparation run from application startup.

Server databases are brought to the Alembic head revision; SQLite files used
for development and tests are built with ``create_all`` instead. Either way,
requests are only served once every table carrying a row security policy is
present, since a missing table would surface as a 500 on the first guarded read.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect
from sqlalchemy.engine import Connection, Engine, make_url

from ..security import row_security

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]

_ENABLED = {"1", "true", "yes", "on"}


class SchemaNotReadyError(RuntimeError):
    """Tables guarded by row security are missing from the database."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"database schema is missing policy tables: {', '.join(missing)}")


def _flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in _ENABLED


def should_upgrade(database_url: str) -> bool:
    """Decide whether startup applies Alembic revisions to ``database_url``."""

    if _flag("CONNECT_SOCIAL_SKIP_MIGRATIONS"):
        return False
    if _flag("CONNECT_SOCIAL_FORCE_MIGRATIONS"):
        return True
    return make_url(database_url).get_backend_name() != "sqlite"


def alembic_config(database_url: str) -> Config:
    ini_path = PROJECT_ROOT / "alembic.ini"
    config = Config(str(ini_path) if ini_path.exists() else None)
    # Absolute so startup works from any working directory.
    config.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    config.set_main_option("sqlalchemy.url", database_url)
    return config


def upgrade_schema(database_url: str) -> bool:
    """Apply pending revisions when enabled; returns True if Alembic ran."""

    if not should_upgrade(database_url):
        logger.info("Skipping Alembic upgrade for %s backend", make_url(database_url).get_backend_name())
        return False

    logger.info("Upgrading schema to Alembic head")
    command.upgrade(alembic_config(database_url), "head")
    return True


def missing_policy_tables(bind: Engine | Connection) -> list[str]:
    present = set(inspect(bind).get_table_names())
    return sorted(
        model.__tablename__ for model in row_security.registered() if model.__tablename__ not in present
    )


def ensure_policy_tables(bind: Engine | Connection) -> None:
    missing = missing_policy_tables(bind)
    if missing:
        logger.error("Policy tables missing after schema preparation: %s", ", ".join(missing))
        raise SchemaNotReadyError(missing)
    logger.debug("All %d policy tables present", len(row_security.registered()))


__all__ = [
    "SchemaNotReadyError",
    "alembic_config",
    "ensure_policy_tables",
    "missing_policy_tables",
    "should_upgrade",
    "upgrade_schema",
]
