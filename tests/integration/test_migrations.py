import sqlite3

import pytest

from cdp_engine.adapters.sqlite.migrator import SQLiteMigrator


@pytest.fixture
def temp_db_path(tmp_path):
    return str(tmp_path / "test_db.sqlite")


@pytest.fixture
def migrations_dir():
    # Real migrations so the shipped SQL is exercised
    return "migrations"


def test_migrator_creates_migration_table(temp_db_path, migrations_dir):
    SQLiteMigrator(temp_db_path, migrations_dir).run_migrations()

    conn = sqlite3.connect(temp_db_path)
    cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table' AND name='_migrations'")
    assert cursor.fetchone() is not None
    conn.close()


def test_migrator_applies_events_schema(temp_db_path, migrations_dir):
    applied = SQLiteMigrator(temp_db_path, migrations_dir).run_migrations()

    assert "001_events.sql" in applied
    conn = sqlite3.connect(temp_db_path)
    cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table' AND name='events'")
    assert cursor.fetchone() is not None

    indexes = {
        row[0]
        for row in conn.execute(
            "SELECT name FROM sqlite_master WHERE type='index' AND tbl_name='events'"
        )
    }
    assert len([name for name in indexes if not name.startswith("sqlite_autoindex")]) >= 3
    conn.close()


def test_migrator_is_idempotent(temp_db_path, migrations_dir):
    migrator = SQLiteMigrator(temp_db_path, migrations_dir)

    assert migrator.run_migrations()
    assert migrator.run_migrations() == []
    assert migrator.pending_migrations() == []

    conn = sqlite3.connect(temp_db_path)
    cursor = conn.execute("SELECT count(*) FROM _migrations WHERE filename='001_events.sql'")
    assert cursor.fetchone()[0] == 1
    conn.close()


def test_down_section_is_not_applied(tmp_path, temp_db_path):
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "001_t.sql").write_text(
        "CREATE TABLE t (id INTEGER);\n-- Down\nDROP TABLE t;\n"
    )

    SQLiteMigrator(temp_db_path, str(migrations)).run_migrations()

    conn = sqlite3.connect(temp_db_path)
    assert conn.execute("SELECT name FROM sqlite_master WHERE name='t'").fetchone() is not None
    conn.close()


def test_broken_migration_raises(tmp_path, temp_db_path):
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "001_bad.sql").write_text("CREATE TABLE (;")

    with pytest.raises(RuntimeError, match="001_bad.sql"):
        SQLiteMigrator(temp_db_path, str(migrations)).run_migrations()
