"""Calls to the Popcorn API: leaderboards, GPUs and submissions."""

from __future__ import annotations

import codecs
import json
import os
import sys
from collections.abc import Iterable, Iterator
from http import HTTPStatus
from os import PathLike
from pathlib import Path
from typing import Any

import requests

from .models import GpuItem, LeaderboardItem

CLI_ID_HEADER = "X-Popcorn-Cli-Id"
CLIENT_TIMEOUT = 180
LEADERBOARDS_TIMEOUT = 30
GPUS_TIMEOUT = 120
SUBMIT_TIMEOUT = 300


class ServiceError(Exception):
    """A request to the API failed or returned something unusable."""


def api_base_url() -> str:
    """Return the API base URL from ``POPCORN_API_URL``."""
    try:
        return os.environ["POPCORN_API_URL"]
    except KeyError:
        raise ServiceError("POPCORN_API_URL is not set") from None


def _valid_header_value(value: str) -> bool:
    return all(ch == "\t" or (ord(ch) >= 32 and ord(ch) != 127) for ch in value)


def create_client(cli_id: str | None = None) -> requests.Session:
    """Return a session that sends the CLI id with every request, if one is given."""
    session = requests.Session()
    if cli_id is not None:
        if not _valid_header_value(cli_id):
            raise ServiceError("Invalid cli_id format for HTTP header")
        session.headers[CLI_ID_HEADER] = cli_id
    return session


def _status_line(code: int) -> str:
    try:
        phrase = HTTPStatus(code).phrase
    except ValueError:
        phrase = "<unknown status code>"
    return f"{code} {phrase}"


def _is_success(response: requests.Response) -> bool:
    return 200 <= response.status_code < 300


def _request(client: requests.Session, method: str, url: str, **kwargs: Any) -> requests.Response:
    try:
        return client.request(method, url, **kwargs)
    except requests.RequestException as exc:
        raise ServiceError(f"Request to {url} failed: {exc}") from exc


def _decode_json(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise ServiceError(f"Failed to decode response: {exc}") from exc


def _loads(data: str) -> Any:
    try:
        return json.loads(data)
    except ValueError as exc:
        raise ServiceError(f"Failed to decode event data: {exc}") from exc


def _pretty(value: Any) -> str:
    return json.dumps(value, indent=2, sort_keys=True, ensure_ascii=False)


def fetch_leaderboards(client: requests.Session) -> list[LeaderboardItem]:
    """Return all leaderboards known to the server."""
    url = f"{api_base_url()}/leaderboards"
    response = _request(client, "GET", url, timeout=LEADERBOARDS_TIMEOUT)
    if not _is_success(response):
        raise ServiceError(
            f"Server returned status {_status_line(response.status_code)}: {response.text}"
        )
    payload = _decode_json(response)
    if not isinstance(payload, list):
        raise ServiceError("Invalid JSON structure")

    items = []
    for entry in payload:
        if not isinstance(entry, dict):
            raise ServiceError("Invalid JSON structure")
        task = entry.get("task")
        name = entry.get("name")
        if not isinstance(task, dict) or not isinstance(name, str):
            raise ServiceError("Invalid JSON structure")
        description = task.get("description")
        if not isinstance(description, str):
            raise ServiceError("Invalid JSON structure")
        items.append(LeaderboardItem(name, description))
    return items


def fetch_gpus(client: requests.Session, leaderboard: str) -> list[GpuItem]:
    """Return the GPUs a leaderboard can run on."""
    url = f"{api_base_url()}/gpus/{leaderboard}"
    response = _request(client, "GET", url, timeout=GPUS_TIMEOUT)
    if not _is_success(response):
        raise ServiceError(
            f"Server returned status {_status_line(response.status_code)}: {response.text}"
        )
    payload = _decode_json(response)
    if not isinstance(payload, list) or not all(isinstance(gpu, str) for gpu in payload):
        raise ServiceError("Invalid JSON structure")
    return [GpuItem(gpu) for gpu in payload]


def _server_events(chunks: Iterable[bytes]) -> Iterator[tuple[str, str]]:
    """Yield (event, data) pairs from a server-sent event stream."""
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""
    for chunk in chunks:
        buffer += decoder.decode(chunk)
        while (pos := buffer.find("\n\n")) != -1:
            message, buffer = buffer[: pos + 2], buffer[pos + 2 :]
            event = data = None
            for line in message.split("\n"):
                line = line.removesuffix("\r")
                if line.startswith("event:"):
                    event = line[len("event:") :].strip()
                elif line.startswith("data:"):
                    data = line[len("data:") :].strip()
            if event is not None and data is not None:
                yield event, data


def _error_event_message(data: str) -> str:
    error = _loads(data)
    if not isinstance(error, dict):
        error = {}
    detail = error.get("detail")
    if not isinstance(detail, str):
        detail = "Unknown server error"
    message = f"Server processing error: {detail}"
    status_code = error.get("status_code")
    if isinstance(status_code, int) and not isinstance(status_code, bool):
        message += f" (Status Code: {status_code})"
    raw_error = error.get("raw_error")
    if isinstance(raw_error, str):
        message += f" | Raw Error: {raw_error}"
    return message


def _read_stream(response: requests.Response) -> str:
    try:
        for event, data in _server_events(response.iter_content(chunk_size=None)):
            if event == "status":
                continue
            if event == "result":
                result = _loads(data)
                if not isinstance(result, dict) or "results" not in result:
                    raise ServiceError(
                        "Invalid 'result' event structure: missing 'results' field"
                    )
                return _pretty(result["results"])
            if event == "error":
                raise ServiceError(_error_event_message(data))
            print(f"Ignoring unknown SSE event: {event}", file=sys.stderr, flush=True)
    except requests.RequestException as exc:
        raise ServiceError(f"Reading the event stream failed: {exc}") from exc
    raise ServiceError("Stream ended unexpectedly without a final result or error event.")


def submit_solution(
    client: requests.Session,
    filepath: str | PathLike[str],
    file_content: str,
    leaderboard: str,
    gpu: str,
    submission_mode: str,
) -> str:
    """Upload a solution and return the server's results as indented JSON."""
    base_url = api_base_url()
    filename = Path(filepath).name
    if not filename or filename == "..":
        raise ServiceError("Invalid filepath")

    url = f"{base_url}/{leaderboard.lower()}/{gpu}/{submission_mode.lower()}"
    files = {"file": (filename, file_content.encode("utf-8"))}
    response = _request(
        client, "POST", url, files=files, timeout=SUBMIT_TIMEOUT, stream=True
    )
    with response:
        if not _is_success(response):
            text = response.text
            try:
                body = json.loads(text)
            except ValueError:
                body = None
            detail = body.get("detail") if isinstance(body, dict) else None
            if not isinstance(detail, str):
                detail = text
            raise ServiceError(
                f"Server returned status {_status_line(response.status_code)}: {detail}"
            )

        content_type = response.headers.get("Content-Type", "")
        if content_type.startswith("text/event-stream"):
            return _read_stream(response)

        result = _decode_json(response)
        if not isinstance(result, dict) or "results" not in result:
            raise ServiceError("Invalid non-streaming response structure")
        return _pretty(result["results"])