from unittest.mock import patch

import pytest
import responses

from popcorn_cli.cli import build_parser, execute, main
from popcorn_cli.config import ConfigError, load_config

API_URL = "http://api.example.com"


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    return tmp_path


@pytest.fixture
def api_url(monkeypatch):
    monkeypatch.setenv("POPCORN_API_URL", API_URL)
    return API_URL


def test_parser_register_provider():
    args = build_parser().parse_args(["register", "discord"])
    assert (args.command, args.provider) == ("register", "discord")


def test_parser_submit_with_path():
    args = build_parser().parse_args(["submit", "solution.py"])
    assert args.command == "submit"
    assert args.submit_filepath == "solution.py"
    assert args.filepath is None


def test_parser_rejects_unknown_provider():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["register", "gitlab"])


def test_parser_requires_provider():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["reregister"])


def test_main_requires_api_url(monkeypatch, capsys):
    monkeypatch.delenv("POPCORN_API_URL", raising=False)
    assert main(["submit"]) == 1
    assert "POPCORN_API_URL is not set" in capsys.readouterr().err


def test_execute_without_config(home):
    with pytest.raises(ConfigError, match="Config file not found"):
        execute(build_parser().parse_args(["submit"]))


def test_execute_without_cli_id(home):
    (home / ".popcorn.yaml").write_text("cli_id: null\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="cli_id not found in config file"):
        execute(build_parser().parse_args([]))


def test_main_leading_filepath_missing(home, api_url, capsys):
    (home / ".popcorn.yaml").write_text("cli_id: abc\n", encoding="utf-8")
    assert main(["missing.py"]) == 1
    assert "Application error: File not found: missing.py" in capsys.readouterr().err


def test_main_submit_multiple_gpus(home, api_url, capsys):
    (home / ".popcorn.yaml").write_text("cli_id: abc\n", encoding="utf-8")
    solution = home / "sol.py"
    solution.write_text("#!POPCORN gpu H100 A100\n", encoding="utf-8")
    assert main(["submit", str(solution)]) == 1
    assert "Multiple GPUs are not supported yet" in capsys.readouterr().err


def test_main_register_saves_cli_id(home, api_url, capsys):
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.GET,
            f"{API_URL}/auth/init?provider=github",
            json={"state": "cli-123"},
        )
        with patch("webbrowser.open", return_value=True):
            assert main(["register", "github"]) == 0
    assert load_config().cli_id == "cli-123"
    assert "Received CLI ID: cli-123" in capsys.readouterr().out


def test_main_register_reports_server_failure(home, api_url, capsys):
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.GET,
            f"{API_URL}/auth/init?provider=discord",
            status=500,
            body="boom",
        )
        assert main(["reregister", "discord"]) == 1
    assert "Failed to initialize auth" in capsys.readouterr().err
    assert not (home / ".popcorn.yaml").exists()