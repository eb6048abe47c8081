"""Startup schema preparation: when Alembic runs and which tables must exist."""
from __future__ import annotations

import pytest
from sqlalchemy import create_engine

from connect_social.database import engine
from connect_social.security import row_security
from connect_social.services.migrations import (
    SchemaNotReadyError,
    alembic_config,
    ensure_policy_tables,
    missing_policy_tables,
    should_upgrade,
)


@pytest.fixture(autouse=True)
def _clear_migration_flags(monkeypatch):
    monkeypatch.delenv("CONNECT_SOCIAL_SKIP_MIGRATIONS", raising=False)
    monkeypatch.delenv("CONNECT_SOCIAL_FORCE_MIGRATIONS", raising=False)


def test_upgrade_targets_server_databases_only(monkeypatch):
    assert should_upgrade("postgresql+psycopg2://app@db/connect")
    assert not should_upgrade("sqlite+pysqlite:///./local.db")

    monkeypatch.setenv("CONNECT_SOCIAL_FORCE_MIGRATIONS", "yes")
    assert should_upgrade("sqlite+pysqlite:///./local.db")

    monkeypatch.setenv("CONNECT_SOCIAL_SKIP_MIGRATIONS", "1")
    assert not should_upgrade("postgresql+psycopg2://app@db/connect")


def test_alembic_config_points_at_project_scripts():
    config = alembic_config("postgresql+psycopg2://app@db/connect")
    assert config.get_main_option("sqlalchemy.url") == "postgresql+psycopg2://app@db/connect"
    assert config.get_main_option("script_location").endswith("alembic")


def test_prepared_database_has_every_policy_table():
    assert missing_policy_tables(engine) == []
    ensure_policy_tables(engine)


def test_empty_database_is_refused():
    empty = create_engine("sqlite+pysqlite:///:memory:")
    expected = sorted(model.__tablename__ for model in row_security.registered())

    assert missing_policy_tables(empty) == expected
    with pytest.raises(SchemaNotReadyError) as excinfo:
        ensure_policy_tables(empty)
    assert excinfo.value.missing == expected
    assert "follow_requests" in expected
