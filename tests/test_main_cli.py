from __future__ import annotations

import logging
from pathlib import Path

import pytest

import main
from main import _parse_args


def test_default_command_invokes_serve() -> None:
    args = _parse_args([])
    assert args.command == "serve"


def test_default_command_accepts_options_without_subcommand() -> None:
    args = _parse_args(["--host", "127.0.0.1", "--port", "8080"])
    assert args.command == "serve"
    assert args.host == "127.0.0.1"
    assert args.port == 8080


def test_config_option_precedes_implicit_serve() -> None:
    args = _parse_args(["--config", "conf.yaml", "--port", "9000"])
    assert args.command == "serve"
    assert args.config == "conf.yaml"
    assert args.port == 9000


def test_serve_accepts_config_after_subcommand() -> None:
    args = _parse_args(["serve", "--config", "conf.yaml", "--port", "9000"])
    assert args.command == "serve"
    assert args.config == "conf.yaml"
    assert args.port == 9000

    args = _parse_args(["--config", "top.yaml", "serve"])
    assert args.config == "top.yaml"


def test_create_user_subcommand() -> None:
    args = _parse_args(["create-user", "alice01", "a@x.com", "Alice", "A"])
    assert args.command == "create-user"
    assert (args.username, args.email, args.first_name, args.last_name) == ("alice01", "a@x.com", "Alice", "A")


def test_create_user_command_writes_and_reports_conflicts(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setenv("USERMGMT_DB_PATH", str(tmp_path / "users.sqlite3"))
    config = str(tmp_path / "missing.yaml")

    assert main.main(["--config", config, "create-user", "alice01", "a@x.com", "Alice", "A"]) == 0
    assert "alice01 <a@x.com>" in capsys.readouterr().out

    assert main.main(["--config", config, "create-user", "alice01", "b@x.com", "Alice", "A"]) == 1
    assert "Username 'alice01' already exists" in capsys.readouterr().err

    assert main.main(["--config", config, "create-user", "al", "c@x.com", "Alice", "A"]) == 1
    assert "Invalid" in capsys.readouterr().err


def test_init_db_creates_database(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    db_path = tmp_path / "nested" / "users.sqlite3"
    monkeypatch.setenv("USERMGMT_DB_PATH", str(db_path))

    assert main.main(["--config", str(tmp_path / "missing.yaml"), "init-db"]) == 0
    assert db_path.exists()


def test_create_user_command_initialises_service(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    monkeypatch.setenv("USERMGMT_DB_PATH", str(tmp_path / "users.sqlite3"))
    caplog.set_level(logging.INFO, logger="usermgmt.service")

    assert main.main(["--config", str(tmp_path / "missing.yaml"), "create-user", "bob0001", "b@x.com", "Bob", "B"]) == 0
    assert "Initializing UserService" in caplog.text
