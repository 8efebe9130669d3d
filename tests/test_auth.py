import base64
import json
from unittest import mock

import pytest
import responses

from popcorn_cli.auth import AuthError, build_auth_url, encode_state, run_auth
from popcorn_cli.config import load_config

BASE = "http://api.example.com"


@pytest.fixture(autouse=True)
def environment(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    monkeypatch.setenv("POPCORN_API_URL", BASE)
    return tmp_path


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def _decode(state):
    padded = state + "=" * (-len(state) % 4)
    return json.loads(base64.urlsafe_b64decode(padded))


@pytest.mark.parametrize("reset", [True, False])
def test_encode_state_round_trip(reset):
    state = encode_state("cli-7", reset)
    assert "=" not in state
    assert "+" not in state and "/" not in state
    assert _decode(state) == {"cli_id": "cli-7", "is_reset": reset}


def test_encode_state_is_compact_json():
    state = encode_state("abc", False)
    padded = state + "=" * (-len(state) % 4)
    assert base64.urlsafe_b64decode(padded) == b'{"cli_id":"abc","is_reset":false}'


def test_discord_url_carries_state():
    url = build_auth_url("discord", "STATE")
    assert url.startswith("https://discord.com/oauth2/authorize?client_id=1361364685491802243")
    assert url.endswith("&state=STATE")


def test_github_url_encodes_redirect():
    url = build_auth_url("github", "STATE")
    assert url.startswith("https://github.com/login/oauth/authorize?client_id=Ov23lieFd2onYk4OnKIR")
    assert "&state=STATE&" in url
    assert url.endswith(
        "redirect_uri=https%3A%2F%2Fdiscord-cluster-manager-1f6c4782e60a.herokuapp.com"
        "%2Fauth%2Fcli%2Fgithub"
    )


def test_unsupported_provider():
    with pytest.raises(AuthError, match="Unsupported authentication provider: gitlab"):
        build_auth_url("gitlab", "STATE")


def test_run_auth_saves_cli_id(mocked, capsys):
    mocked.get(f"{BASE}/auth/init", json={"state": "cli-99"})
    with mock.patch("webbrowser.open", return_value=True) as opened:
        run_auth(True, "github")
    assert "provider=github" in mocked.calls[0].request.url
    url = opened.call_args[0][0]
    assert url.startswith("https://github.com/login/oauth/authorize")
    state = url.split("&state=")[1].split("&")[0]
    assert _decode(state) == {"cli_id": "cli-99", "is_reset": True}
    assert load_config().cli_id == "cli-99"
    assert "Received CLI ID: cli-99" in capsys.readouterr().out


def test_run_auth_reports_unopened_browser(mocked, capsys):
    mocked.get(f"{BASE}/auth/init", json={"state": "cli-1"})
    with mock.patch("webbrowser.open", return_value=False):
        run_auth(False, "discord")
    assert "Could not automatically open the browser" in capsys.readouterr().out
    assert load_config().cli_id == "cli-1"


def test_run_auth_error_status(mocked):
    mocked.get(f"{BASE}/auth/init", body="denied", status=403)
    with pytest.raises(AuthError, match="Failed to initialize auth") as info:
        run_auth(False, "github")
    assert str(info.value).endswith(": denied")


def test_run_auth_unsupported_provider_saves_nothing(mocked, environment):
    mocked.get(f"{BASE}/auth/init", json={"state": "cli-2"})
    with pytest.raises(AuthError, match="Unsupported authentication provider"):
        run_auth(False, "gitlab")
    assert not (environment / ".popcorn.yaml").exists()


def test_run_auth_missing_env(monkeypatch):
    monkeypatch.delenv("POPCORN_API_URL")
    with pytest.raises(AuthError, match="POPCORN_API_URL environment variable not set"):
        run_auth(False, "github")