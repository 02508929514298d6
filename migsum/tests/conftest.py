"""
Shared test fixtures for migsum.

No database or network dependency: migrations are plain byte strings
written to ``tmp_path``.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

# ── Ensure project root is on sys.path for direct ``pytest`` execution ──
_project_root = str(Path(__file__).resolve().parents[2])
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from migsum.src.config_loader import _apply_defaults
from migsum.src.directory import MigrationFile

SAMPLE_MIGRATIONS = [
    ("0001_init.sql", b"CREATE TABLE t (id INT);\n"),
    ("0002_users.sql", b"CREATE TABLE users (id INT, name TEXT);\n"),
    ("0003_index.sql", b"CREATE INDEX users_name ON users (name);\n"),
    ("0004_orders.sql", b"CREATE TABLE orders (id INT, user_id INT);\n"),
]


@pytest.fixture()
def migration_files() -> list[MigrationFile]:
    return [MigrationFile(name=n, content=c) for n, c in SAMPLE_MIGRATIONS]


@pytest.fixture()
def migrations_dir(tmp_path: Path) -> Path:
    """A directory holding the sample migrations plus an unrelated file."""
    d = tmp_path / "migrations"
    d.mkdir()
    for name, content in SAMPLE_MIGRATIONS:
        (d / name).write_bytes(content)
    (d / "README.md").write_text("not a migration\n", encoding="utf-8")
    return d


@pytest.fixture()
def cfg(migrations_dir: Path, tmp_path: Path) -> dict:
    return _apply_defaults({
        "migrations": {"dir": str(migrations_dir)},
        "report": {"output_dir": str(tmp_path / "reports")},
    })


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """``configure_logging`` replaces root handlers; undo it after each test."""
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)
