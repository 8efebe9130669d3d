"""Reading ``POPCORN`` directives from solution files."""

from __future__ import annotations

from dataclasses import dataclass, field
from os import PathLike

_DIRECTIVE_MARKERS = ("//!POPCORN", "#!POPCORN")
_BANNER_WIDTH = 41


@dataclass
class PopcornDirectives:
    """Leaderboard and GPUs named in a solution file."""

    leaderboard_name: str = ""
    gpus: list[str] = field(default_factory=list)


def _lines(content: str):
    """Split text into lines on LF, dropping a trailing CR from each."""
    parts = content.split("\n")
    if parts and parts[-1] == "":
        parts.pop()
    for part in parts:
        yield part.removesuffix("\r")


def get_popcorn_directives(
    filepath: str | PathLike[str],
) -> tuple[PopcornDirectives, bool]:
    """Read the directives of a file; the flag tells whether several GPUs were named.

    Only the first GPU is kept when several are given.
    """
    with open(filepath, encoding="utf-8") as handle:
        content = handle.read()

    directives = PopcornDirectives()
    for line in _lines(content):
        if not line.startswith(("//", "#")):
            continue
        parts = line.split()
        if len(parts) < 2 or parts[0] not in _DIRECTIVE_MARKERS:
            continue
        arg = parts[1].lower()
        if arg in ("gpu", "gpus"):
            directives.gpus = parts[2:]
        elif arg == "leaderboard" and len(parts) > 2:
            directives.leaderboard_name = parts[2]

    has_multiple_gpus = len(directives.gpus) > 1
    if has_multiple_gpus:
        directives.gpus = directives.gpus[:1]
    return directives, has_multiple_gpus


def _banner() -> str:
    """Build a boxed banner with a drop shadow."""
    width = _BANNER_WIDTH
    rows = ["", "POPCORN CLI - GPU MODE", "", "POPCORN GPU COMPUTE", ""]
    lines = [" ┌" + "─" * width + "┐"]
    lines.extend(f" │{row.center(width)}│▒" for row in rows)
    lines.append(" └" + "─" * width + "┘▒")
    lines.append("  " + "▒" * (width + 2))
    return "\n" + "\n".join(lines) + "\n"


def display_ascii_art() -> None:
    """Print the banner shown after a run."""
    print(_banner())