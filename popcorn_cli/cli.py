"""Command line entry point: register with the API or submit a solution."""

from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Sequence

from .auth import run_auth
from .config import ConfigError, get_config_path, load_config
from .tui import run_submit_tui

COMMANDS = ("reregister", "register", "submit")
PROVIDERS = ("discord", "github")


def build_parser() -> argparse.ArgumentParser:
    """Return the parser for the subcommands."""
    parser = argparse.ArgumentParser(
        prog="popcorn",
        description="Submit solutions to Popcorn leaderboards. "
        "A solution file may be given instead of a command.",
    )
    parser.set_defaults(command=None, filepath=None, submit_filepath=None, provider=None)
    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    for name, help_text in (
        ("reregister", "register again, replacing the saved CLI id"),
        ("register", "register this machine through an OAuth provider"),
    ):
        command = commands.add_parser(name, help=help_text)
        providers = command.add_subparsers(dest="provider", metavar="PROVIDER", required=True)
        for provider in PROVIDERS:
            providers.add_parser(provider, help=f"log in with {provider}")

    submit = commands.add_parser("submit", help="submit a solution file")
    submit.add_argument(
        "submit_filepath", nargs="?", metavar="filepath", help="path to the solution file"
    )
    return parser


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    args = list(sys.argv[1:] if argv is None else argv)
    filepath = None
    if args and args[0] not in COMMANDS and not args[0].startswith("-"):
        filepath = args.pop(0)
    namespace = build_parser().parse_args(args)
    if filepath is not None:
        namespace.filepath = filepath
    return namespace


def _require_cli_id() -> str:
    config = load_config()
    if config.cli_id is None:
        try:
            where = str(get_config_path())
        except ConfigError:
            where = "unknown path"
        raise ConfigError(
            f"cli_id not found in config file ({where}). Please run `popcorn register` first."
        )
    return config.cli_id


def execute(args: argparse.Namespace) -> None:
    """Run the command the parsed arguments describe."""
    command = getattr(args, "command", None)
    if command == "reregister":
        run_auth(True, args.provider)
        return
    if command == "register":
        run_auth(False, args.provider)
        return

    cli_id = _require_cli_id()
    filepath = getattr(args, "filepath", None)
    if command == "submit":
        submit_filepath = getattr(args, "submit_filepath", None)
        if submit_filepath is not None:
            filepath = submit_filepath
    run_submit_tui(filepath, cli_id)


def main(argv: Sequence[str] | None = None) -> int:
    """Parse the arguments, run the command and return the exit status."""
    args = _parse_args(argv)

    if "POPCORN_API_URL" not in os.environ:
        print(
            "POPCORN_API_URL is not set. Please set it to the URL of the Popcorn API.",
            file=sys.stderr,
        )
        return 1

    try:
        execute(args)
    except Exception as exc:
        print(f"Application error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())