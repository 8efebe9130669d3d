"""Terminal front end of the submission picker."""

from __future__ import annotations

import curses
from pathlib import Path

from .app import App, Key
from .directives import display_ascii_art, get_popcorn_directives
from .models import ModelState
from .service import ServiceError

_SPAWN_ERRORS = (ServiceError, ValueError, OSError)
_POLL_MS = 50


def wrap_description(text: str, width: int) -> list[str]:
    """Wrap text on whitespace into lines of at most ``width`` characters.

    A word longer than the width gets a line of its own. With no width the
    text is returned unchanged as a single line.
    """
    if width <= 0:
        return [text]
    lines: list[str] = []
    current = ""
    for word in text.split():
        if len(word) > width:
            if current:
                lines.append(current)
                current = ""
            lines.append(word)
        elif not current:
            current = word
        elif len(current) + len(word) + 1 <= width:
            current = f"{current} {word}"
        else:
            lines.append(current)
            current = word
    if current:
        lines.append(current)
    return lines


def centered_rect(
    percent_x: int, percent_y: int, width: int, height: int
) -> tuple[int, int, int, int]:
    """Return (x, y, width, height) of a box centred in an area of the given size."""

    def split(total: int, percent: int) -> tuple[int, int]:
        margin = total * ((100 - percent) // 2) // 100
        size = total * percent // 100
        return margin, size

    y, h = split(height, percent_y)
    x, w = split(width, percent_x)
    return x, y, w, h


def _render(app: App, width: int) -> list[tuple[str, bool]]:
    """Return the screen as (text, highlighted) rows; the first row is the title."""
    if app.loading_message is not None:
        return [("Loading", False), (app.loading_message, False)]

    available_width = max(width - 4, 0)
    leaderboard = app.selected_leaderboard or "N/A"
    gpu = app.selected_gpu or "N/A"
    state = app.modal_state

    if state is ModelState.LEADERBOARD_SELECTION:
        title = "Select Leaderboard"
        entries = [
            [lb.title_text, *lb.task_description.split("\n")] for lb in app.leaderboards
        ]
        selected = app.leaderboards_selected
    elif state is ModelState.GPU_SELECTION:
        title = f"Select GPU for '{leaderboard}'"
        entries = [[item.title_text] for item in app.gpus]
        selected = app.gpus_selected
    elif state is ModelState.SUBMISSION_MODE_SELECTION:
        title = f"Select Submission Mode for '{leaderboard}' on '{gpu}'"
        entries = [
            [mode.title_text, *wrap_description(mode.description_text, available_width)]
            for mode in app.submission_modes
        ]
        selected = app.submission_modes_selected
    else:
        return []

    rows = [(title, False)]
    for index, entry in enumerate(entries):
        highlighted = index == selected
        for position, text in enumerate(entry):
            prefix = "> " if highlighted and position == 0 else "  "
            rows.append((prefix + text, highlighted))
    return rows


def render_lines(app: App, width: int) -> list[str]:
    """Return the text of the screen for a terminal of the given width."""
    return [text for text, _ in _render(app, width)]


def _put(window, y: int, x: int, text: str, attr: int = 0) -> None:
    try:
        window.addstr(y, x, text, attr)
    except curses.error:
        pass


def _box(window, x: int, y: int, w: int, h: int, title: str) -> None:
    if w < 2 or h < 2:
        return
    try:
        frame = window.derwin(h, w, y, x)
        frame.box()
        if title:
            frame.addnstr(0, 1, title, w - 2)
    except curses.error:
        pass


def _draw(stdscr, app: App) -> None:
    stdscr.erase()
    height, width = stdscr.getmaxyx()
    rows = _render(app, width)

    if app.loading_message is not None:
        x, y, w, h = centered_rect(60, 20, width, height)
        _box(stdscr, x, y, w, h, "Loading")
        message = app.loading_message[: max(w - 2, 0)]
        _put(stdscr, y + h // 2, x + max((w - len(message)) // 2, 0), message)
    elif rows:
        (title, _), *body = rows
        _box(stdscr, 0, 0, width, height, title)
        visible = max(height - 2, 0)
        highlighted = [i for i, (_, hl) in enumerate(body) if hl]
        last = highlighted[-1] if highlighted else 0
        offset = max(last - visible + 1, 0)
        for row, (text, hl) in enumerate(body[offset : offset + visible], start=1):
            attr = curses.A_REVERSE if hl else curses.A_NORMAL
            _put(stdscr, row, 1, text[: max(width - 2, 0)], attr)
    stdscr.refresh()


def _read_key(stdscr) -> Key | None:
    try:
        ch = stdscr.get_wch()
    except curses.error:
        return None
    if ch == curses.KEY_UP:
        return Key(Key.UP)
    if ch == curses.KEY_DOWN:
        return Key(Key.DOWN)
    if ch in (curses.KEY_ENTER, "\n", "\r"):
        return Key(Key.ENTER)
    if isinstance(ch, str):
        if ch == "\x03":
            return Key("c", ctrl=True)
        return Key(ch)
    return None


def _event_loop(stdscr, app: App) -> None:
    curses.raw()
    stdscr.keypad(True)
    stdscr.timeout(_POLL_MS)
    try:
        curses.curs_set(0)
    except curses.error:
        pass

    while not app.should_quit:
        _draw(stdscr, app)
        app.check_leaderboard_task()
        app.check_gpu_task()
        app.check_submission_task()
        key = _read_key(stdscr)
        if key is not None:
            app.handle_key_event(key)


def run_submit_tui(filepath: str | None, cli_id: str) -> None:
    """Let the user pick where to submit a solution file, submit it and print the result."""
    if filepath is None:
        print("Please enter the path to your solution file:")
        try:
            filepath = input().strip()
        except EOFError:
            filepath = ""

    if not Path(filepath).exists():
        raise FileNotFoundError(f"File not found: {filepath}")

    directives, has_multiple_gpus = get_popcorn_directives(filepath)
    if has_multiple_gpus:
        raise ValueError("Multiple GPUs are not supported yet. Please specify only one GPU.")

    with App(filepath, cli_id) as app:
        app.initialize_with_directives(directives)

        if app.modal_state is ModelState.LEADERBOARD_SELECTION:
            try:
                app.spawn_load_leaderboards()
            except _SPAWN_ERRORS as exc:
                raise RuntimeError(f"Error starting leaderboard fetch: {exc}") from exc
        elif app.modal_state is ModelState.GPU_SELECTION:
            try:
                app.spawn_load_gpus()
            except _SPAWN_ERRORS as exc:
                raise RuntimeError(f"Error starting GPU fetch: {exc}") from exc

        curses.wrapper(_event_loop, app)
        final_status = app.final_status

    display_ascii_art()
    print(final_status if final_status is not None else "Operation cancelled.")