"""Alembic helper utilities for programmatic migrations."""
from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config

BASE_PATH = Path(__file__).resolve().parents[2]


def alembic_config(database_url: str) -> Config:
    """Alembic config pointing at this repo's scripts and ``database_url``."""
    cfg = Config(str(BASE_PATH / "alembic.ini"))
    cfg.set_main_option("script_location", str(BASE_PATH / "alembic"))
    cfg.set_main_option("sqlalchemy.url", database_url)
    return cfg


def run_migrations(database_url: str, revision: str = "head") -> None:
    """Upgrade the schema at ``database_url`` to ``revision``."""
    command.upgrade(alembic_config(database_url), revision)


def downgrade_migrations(database_url: str, revision: str = "base") -> None:
    command.downgrade(alembic_config(database_url), revision)
