"""Registering this machine with the Popcorn API through an OAuth provider."""

from __future__ import annotations

import base64
import json
import os
from http import HTTPStatus
from urllib.parse import quote

import requests

from .config import get_config_path, load_config_or_default, save_config
from .service import CLIENT_TIMEOUT, create_client

_DISCORD_AUTH_URL = (
    "https://discord.com/oauth2/authorize?client_id=1361364685491802243"
    "&response_type=code&redirect_uri=https%3A%2F%2Fdiscord-cluster-manager-1f6c4782e60a"
    ".herokuapp.com%2Fauth%2Fcli%2Fdiscord&scope=identify"
)
_GITHUB_CLIENT_ID = "Ov23lieFd2onYk4OnKIR"
_GITHUB_REDIRECT_URI = "https://discord-cluster-manager-1f6c4782e60a.herokuapp.com/auth/cli/github"


class AuthError(Exception):
    """Authentication could not be started."""


def encode_state(cli_id: str, reset: bool) -> str:
    """Return the OAuth state: compact JSON in unpadded URL-safe base64."""
    state_json = json.dumps({"cli_id": cli_id, "is_reset": reset}, separators=(",", ":"))
    return base64.urlsafe_b64encode(state_json.encode("utf-8")).rstrip(b"=").decode("ascii")


def build_auth_url(auth_provider: str, state_b64: str) -> str:
    """Return the provider's login URL carrying the given state."""
    if auth_provider == "discord":
        return f"{_DISCORD_AUTH_URL}&state={state_b64}"
    if auth_provider == "github":
        redirect = quote(_GITHUB_REDIRECT_URI, safe="")
        return (
            "https://github.com/login/oauth/authorize"
            f"?client_id={_GITHUB_CLIENT_ID}&state={state_b64}&redirect_uri={redirect}"
        )
    raise AuthError(f"Unsupported authentication provider: {auth_provider}")


def _status_line(code: int) -> str:
    try:
        return f"{code} {HTTPStatus(code).phrase}"
    except ValueError:
        return f"{code} <unknown status code>"


def _request_cli_id(base_url: str, auth_provider: str) -> str:
    init_url = f"{base_url}/auth/init?provider={auth_provider}"
    print(f"Requesting CLI ID from {init_url}")
    with create_client(None) as client:
        try:
            response = client.get(init_url, timeout=CLIENT_TIMEOUT)
        except requests.RequestException as exc:
            raise AuthError(f"Failed to initialize auth: {exc}") from exc

    if not 200 <= response.status_code < 300:
        raise AuthError(
            f"Failed to initialize auth ({_status_line(response.status_code)}): {response.text}"
        )
    try:
        payload = response.json()
    except ValueError as exc:
        raise AuthError(f"Invalid auth init response: {exc}") from exc
    state = payload.get("state") if isinstance(payload, dict) else None
    if not isinstance(state, str):
        raise AuthError("Invalid auth init response: missing 'state'")
    return state


def run_auth(reset: bool, auth_provider: str) -> None:
    """Obtain a CLI id, show the provider's login URL and save the id."""
    print(f"Attempting authentication via {auth_provider}...")

    base_url = os.environ.get("POPCORN_API_URL")
    if base_url is None:
        raise AuthError("POPCORN_API_URL environment variable not set")

    cli_id = _request_cli_id(base_url, auth_provider)
    print(f"Received CLI ID: {cli_id}")

    auth_url = build_auth_url(auth_provider, encode_state(cli_id, reset))

    print(f"\n>>> Please open the following URL in your browser to log in via {auth_provider}:")
    print(auth_url)
    print("\nWaiting for you to complete the authentication in your browser...")
    print(f"After successful authentication with {auth_provider}, the CLI ID will be saved.")
    print("Please copy the URL above and paste it into your browser.")

    config = load_config_or_default()
    config.cli_id = cli_id
    save_config(config)

    print(
        f"\nSuccessfully initiated authentication. Your CLI ID ({cli_id}) has been saved to "
        f"{get_config_path()}. To use the CLI on different machines, you can copy the config file."
    )
    print("You can now use other commands that require authentication.")