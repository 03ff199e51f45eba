"""Tests for the Alembic migrations — run against a scratch SQLite file."""
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from db.models import Base

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "db" / "migrations"


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = tmp_path / "migrations.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{path}")
    return path


@pytest.fixture
def alembic_config():
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_DIR))
    return config


def _inspect(path):
    engine = create_engine(f"sqlite:///{path}")
    try:
        inspector = inspect(engine)
        return {
            table: {
                "columns": {c["name"] for c in inspector.get_columns(table)},
                "indexes": {i["name"] for i in inspector.get_indexes(table)},
                "foreign_keys": {
                    (tuple(fk["constrained_columns"]), fk["referred_table"])
                    for fk in inspector.get_foreign_keys(table)
                },
            }
            for table in inspector.get_table_names()
            if table != "alembic_version"
        }
    finally:
        engine.dispose()


def test_upgrade_head_matches_models(db_path, alembic_config):
    command.upgrade(alembic_config, "head")

    schema = _inspect(db_path)
    assert set(schema) == set(Base.metadata.tables)
    for name, table in Base.metadata.tables.items():
        assert schema[name]["columns"] == {c.name for c in table.columns}, name
        assert schema[name]["indexes"] == {i.name for i in table.indexes}, name
        assert schema[name]["foreign_keys"] == {
            (tuple(c.name for c in fk.columns), fk.referred_table.name)
            for fk in table.foreign_key_constraints
        }, name


def test_downgrade_base_drops_everything(db_path, alembic_config):
    command.upgrade(alembic_config, "head")
    command.downgrade(alembic_config, "base")

    assert _inspect(db_path) == {}
