"""Alembic schema migration against a throwaway SQLite file."""

import sqlite3
from pathlib import Path

from alembic import command
from alembic.config import Config

ROOT = Path(__file__).resolve().parent.parent


def _alembic_config() -> Config:
    # No ini file: keeps alembic's fileConfig from reconfiguring test logging
    config = Config()
    config.set_main_option("script_location", str(ROOT / "alembic"))
    return config


def _foreign_keys(path: Path, table: str) -> set[tuple[str, str]]:
    conn = sqlite3.connect(path)
    try:
        rows = conn.execute(f"PRAGMA foreign_key_list({table})").fetchall()
    finally:
        conn.close()
    # (id, seq, table, from, to, ...)
    return {(row[3], row[2]) for row in rows}


def test_upgrade_and_downgrade_on_sqlite(tmp_path, monkeypatch):
    path = tmp_path / "billing.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{path}")
    config = _alembic_config()

    command.upgrade(config, "head")

    assert ("promo_code_id", "reseller_promo_codes") in _foreign_keys(path, "user_profiles")
    assert ("reseller_id", "user_profiles") in _foreign_keys(path, "user_profiles")

    command.downgrade(config, "base")

    conn = sqlite3.connect(path)
    try:
        tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
    finally:
        conn.close()
    assert tables <= {"alembic_version"}
