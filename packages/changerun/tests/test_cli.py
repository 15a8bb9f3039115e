"""
Tests for the changerun command line.

Validates:
- Exit codes: 0 success, 1 changeset failure, 2 load/store error
- --tag, --dry-run, --no-fail-fast, --db-url, --config
- Precedence: config file < environment < flags
"""

import pytest

from changerun import ExecutionStatus, SqlPersistEngine
from changerun.cli import build_configuration, build_parser, main


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'cli.db'}"


@pytest.fixture
def records(db_url):
    store = SqlPersistEngine(db_url)
    yield lambda: {r.execution_id.rsplit("_", 1)[-1]: r.status for r in store.list_records()}
    store.dispose()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("DRY_RUN", "FAIL_FAST", "DB_URL", "LIST_FILES_RECURSIVELY", "CAPTURE_LEVEL"):
        monkeypatch.delenv(f"CHANGERUN_{name}", raising=False)


def test_single_file_success(resources, db_url, records):
    code = main([str(resources / "changelogs" / "changelog.yaml"), "--db-url", db_url])

    assert code == 0
    assert records() == {"ChangeSet-1": ExecutionStatus.OK}


def test_directory_with_tag(resources, db_url, records):
    code = main([
        str(resources / "changelogs"),
        "--pattern", r"changelog(.*)\.yaml",
        "--tag", "hello",
        "--db-url", db_url,
    ])

    assert code == 0
    assert records() == {"ChangeSet-2": ExecutionStatus.OK}


def test_failed_changeset_exits_1(resources, db_url, records, capsys):
    code = main([str(resources / "changelogs" / "failed_changelog.yaml"), "--db-url", db_url])

    assert code == 1
    assert "FAILED" in capsys.readouterr().err
    assert records() == {"ChangeSet-1": ExecutionStatus.OK, "ChangeSet-2": ExecutionStatus.KO}


def test_no_fail_fast(resources, db_url, records):
    code = main([str(resources / "changelogs" / "failed_changelog.yaml"), "--db-url", db_url, "--no-fail-fast"])

    assert code == 1
    assert records()["ChangeSet-3"] is ExecutionStatus.OK


def test_dry_run_writes_nothing(resources, db_url, records):
    code = main([str(resources / "changelogs" / "failed_changelog.yaml"), "--db-url", db_url, "--dry-run"])

    assert code == 0
    assert records() == {}


def test_invalid_changelog_exits_2(tmp_path, capsys):
    broken = tmp_path / "broken.yaml"
    broken.write_text("changesets: [{author: nobody}]\n", encoding="utf-8")

    assert main([str(broken)]) == 2
    assert "ERROR" in capsys.readouterr().err


def test_configuration_precedence(tmp_path, monkeypatch):
    config_file = tmp_path / "changerun.yaml"
    config_file.write_text("changerun:\n  dry_run: true\n  fail_fast: false\n", encoding="utf-8")
    monkeypatch.setenv("CHANGERUN_FAIL_FAST", "true")

    args = build_parser().parse_args([str(tmp_path), "--config", str(config_file), "--no-recursive"])
    configuration = build_configuration(args)

    assert configuration.dry_run is True
    assert configuration.fail_fast is True
    assert configuration.list_files_recursively is False

    args = build_parser().parse_args([str(tmp_path), "--config", str(config_file), "--no-fail-fast"])
    assert build_configuration(args).fail_fast is False


def test_unreachable_db_url_exits_2(resources, tmp_path, capsys):
    bad_url = f"sqlite:///{tmp_path / 'missing' / 'sub' / 'cli.db'}"

    code = main([str(resources / "changelogs" / "changelog.yaml"), "--db-url", bad_url])

    assert code == 2
    assert "ERROR" in capsys.readouterr().err


def test_unreachable_env_db_url_exits_2(resources, tmp_path, monkeypatch):
    monkeypatch.setenv("CHANGERUN_DB_URL", f"sqlite:///{tmp_path / 'missing' / 'sub' / 'env.db'}")

    assert main([str(resources / "changelogs" / "changelog.yaml")]) == 2


def test_db_url_flag_wins_without_touching_env_database(tmp_path, monkeypatch, db_url):
    # An unopenable env database would fail if it were ever connected to
    monkeypatch.setenv("CHANGERUN_DB_URL", f"sqlite:///{tmp_path / 'missing' / 'sub' / 'env.db'}")

    args = build_parser().parse_args([str(tmp_path), "--db-url", db_url])
    configuration = build_configuration(args)

    try:
        assert isinstance(configuration.persist_engine, SqlPersistEngine)
        assert configuration.persist_engine.url == db_url
    finally:
        configuration.persist_engine.dispose()


def test_env_db_url_wins_over_config_file(tmp_path, monkeypatch, db_url):
    config_file = tmp_path / "changerun.yaml"
    config_file.write_text(
        f"changerun:\n  db_url: sqlite:///{tmp_path / 'missing' / 'sub' / 'file.db'}\n",
        encoding="utf-8"
    )
    monkeypatch.setenv("CHANGERUN_DB_URL", db_url)

    args = build_parser().parse_args([str(tmp_path), "--config", str(config_file)])
    configuration = build_configuration(args)

    try:
        assert configuration.persist_engine.url == db_url
    finally:
        configuration.persist_engine.dispose()
