import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError

from boxsocial import migrate


def _write(directory, name, sql):
    (directory / name).write_text(sql, encoding="utf-8")


def test_files_apply_in_name_order(tmp_path, engine, session_factory):
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    _write(migrations, "002_badge.sql", "CREATE TABLE IF NOT EXISTS badge (id TEXT PRIMARY KEY, kind_id TEXT REFERENCES badge_kind(id))")
    _write(migrations, "001_badge_kind.sql", "CREATE TABLE IF NOT EXISTS badge_kind (id TEXT PRIMARY KEY)")
    _write(migrations, "README.md", "not sql")

    assert migrate.run_migrations(session_factory, migrations) == ["001_badge_kind.sql", "002_badge.sql"]
    assert {"badge", "badge_kind"} <= set(inspect(engine).get_table_names())

    # Replaying idempotent files is a no-op.
    assert migrate.run_migrations(session_factory, migrations) == ["001_badge_kind.sql", "002_badge.sql"]


def test_failing_file_keeps_earlier_files(tmp_path, engine, session_factory):
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    _write(migrations, "001_ok.sql", "CREATE TABLE IF NOT EXISTS kept (id TEXT PRIMARY KEY)")
    _write(migrations, "002_broken.sql", "CREATE TABLE oops (")

    with pytest.raises(OperationalError):
        migrate.run_migrations(session_factory, migrations)
    assert "kept" in inspect(engine).get_table_names()


def test_configured_dir_wins_and_must_exist(tmp_path):
    assert migrate.resolve_migrations_dir(str(tmp_path)) == tmp_path
    with pytest.raises(FileNotFoundError, match="missing"):
        migrate.resolve_migrations_dir(str(tmp_path / "missing"))


def test_packaged_migrations_are_found_by_default(monkeypatch, tmp_path):
    monkeypatch.setattr(migrate, "CONTAINER_MIGRATIONS_DIR", tmp_path / "absent")
    found = migrate.resolve_migrations_dir("")
    assert found == migrate.PACKAGE_MIGRATIONS_DIR
    assert [p.name for p in migrate.migration_files(found)] == ["001_social_engine.sql"]


class FlakySession:
    def __init__(self, owner):
        self.owner = owner

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, stmt):
        self.owner.calls += 1
        if self.owner.calls <= self.owner.failures:
            raise OperationalError(str(stmt), None, Exception("connection refused"))
        return None


class FlakyFactory:
    def __init__(self, failures):
        self.failures = failures
        self.calls = 0

    def __call__(self):
        return FlakySession(self)


def test_wait_for_db_retries_until_reachable(monkeypatch):
    monkeypatch.setattr(migrate.time, "sleep", lambda _: None)
    assert migrate.wait_for_db(FlakyFactory(failures=2), attempts=5, delay_seconds=0) == 3


def test_wait_for_db_gives_up(monkeypatch):
    monkeypatch.setattr(migrate.time, "sleep", lambda _: None)
    factory = FlakyFactory(failures=10)
    with pytest.raises(OperationalError):
        migrate.wait_for_db(factory, attempts=3, delay_seconds=0)
    assert factory.calls == 3
