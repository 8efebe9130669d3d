"""State and key handling of the interactive submission picker."""

from __future__ import annotations

import os
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from dataclasses import dataclass
from os import PathLike
from typing import Any, Callable, ClassVar

from .directives import PopcornDirectives
from .models import GpuItem, LeaderboardItem, ModelState, SubmissionModeItem
from .service import (
    ServiceError,
    create_client,
    fetch_gpus,
    fetch_leaderboards,
    submit_solution,
)

SUBMISSION_MODES = (
    SubmissionModeItem(
        "Test",
        "Test the solution and give detailed results about passed/failed tests.",
        "test",
    ),
    SubmissionModeItem(
        "Benchmark",
        "Benchmark the solution, this also runs the tests and afterwards runs the "
        "benchmark, returning detailed timing results",
        "benchmark",
    ),
    SubmissionModeItem(
        "Leaderboard",
        "Submit to the leaderboard, this first runs public tests and then private "
        "tests. If both pass, the submission is evaluated and submit to the leaderboard.",
        "leaderboard",
    ),
    SubmissionModeItem("Profile", "Work in progress...", "profile"),
)

_SPAWN_ERRORS = (ServiceError, ValueError, OSError)


@dataclass(frozen=True)
class Key:
    """A key press: a character or one of ENTER, UP and DOWN, with the Ctrl flag."""

    code: str
    ctrl: bool = False

    ENTER: ClassVar[str] = "enter"
    UP: ClassVar[str] = "up"
    DOWN: ClassVar[str] = "down"


class App:
    """Walks the user from leaderboard to GPU to submission mode, then submits."""

    def __init__(self, filepath: str | PathLike[str], cli_id: str) -> None:
        self.filepath = os.fspath(filepath)
        self.cli_id = cli_id
        self.leaderboards: list[LeaderboardItem] = []
        self.leaderboards_selected: int | None = 0
        self.selected_leaderboard: str | None = None
        self.gpus: list[GpuItem] = []
        self.gpus_selected: int | None = 0
        self.selected_gpu: str | None = None
        self.submission_modes: list[SubmissionModeItem] = list(SUBMISSION_MODES)
        self.submission_modes_selected: int | None = 0
        self.selected_submission_mode: str | None = None
        self.modal_state = ModelState.LEADERBOARD_SELECTION
        self.final_status: str | None = None
        self.loading_message: str | None = None
        self.should_quit = False
        self.submission_task: Future[str] | None = None
        self.leaderboards_task: Future[list[LeaderboardItem]] | None = None
        self.gpus_task: Future[list[GpuItem]] | None = None
        self._executor: ThreadPoolExecutor | None = None

    def __enter__(self) -> App:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()

    def initialize_with_directives(self, directives: PopcornDirectives) -> None:
        """Preselect the leaderboard and GPU named in the solution file."""
        if directives.leaderboard_name:
            self.selected_leaderboard = directives.leaderboard_name
            if directives.gpus:
                self.selected_gpu = directives.gpus[0]
                self.modal_state = ModelState.SUBMISSION_MODE_SELECTION
            else:
                self.modal_state = ModelState.GPU_SELECTION
        elif directives.gpus:
            self.selected_gpu = directives.gpus[0]
            self.modal_state = ModelState.LEADERBOARD_SELECTION
        else:
            self.modal_state = ModelState.LEADERBOARD_SELECTION

    def handle_key_event(self, key: Key) -> bool:
        """Apply a key press; return True if it changed anything."""
        if key.code == "c" and key.ctrl:
            self.should_quit = True
            return True

        if self.loading_message is not None:
            return False

        if key.code == "q":
            self.should_quit = True
            return True
        if key.code == Key.ENTER:
            return self._confirm_selection()
        if key.code == Key.UP:
            self.move_selection_up()
            return True
        if key.code == Key.DOWN:
            self.move_selection_down()
            return True
        return False

    def _confirm_selection(self) -> bool:
        state = self.modal_state
        if state is ModelState.LEADERBOARD_SELECTION:
            idx = self.leaderboards_selected
            if idx is None or idx >= len(self.leaderboards):
                return False
            self.selected_leaderboard = self.leaderboards[idx].title_text
            if self.selected_gpu is None:
                self.modal_state = ModelState.GPU_SELECTION
                try:
                    self.spawn_load_gpus()
                except _SPAWN_ERRORS as exc:
                    self._set_error_and_quit(f"Error starting GPU fetch: {exc}")
            else:
                self.modal_state = ModelState.SUBMISSION_MODE_SELECTION
            return True
        if state is ModelState.GPU_SELECTION:
            idx = self.gpus_selected
            if idx is None or idx >= len(self.gpus):
                return False
            self.selected_gpu = self.gpus[idx].title_text
            self.modal_state = ModelState.SUBMISSION_MODE_SELECTION
            return True
        if state is ModelState.SUBMISSION_MODE_SELECTION:
            idx = self.submission_modes_selected
            if idx is None or idx >= len(self.submission_modes):
                return False
            self.selected_submission_mode = self.submission_modes[idx].value
            self.modal_state = ModelState.WAITING_FOR_RESULT
            try:
                self.spawn_submit_solution()
            except _SPAWN_ERRORS as exc:
                self._set_error_and_quit(f"Error starting submission: {exc}")
            return True
        return False

    def _set_error_and_quit(self, message: str) -> None:
        self.final_status = message
        self.should_quit = True
        self.loading_message = None

    def _selection_slot(self) -> tuple[int, str] | None:
        """Return the length of the current list and the attribute holding its index."""
        state = self.modal_state
        if state is ModelState.LEADERBOARD_SELECTION:
            return len(self.leaderboards), "leaderboards_selected"
        if state is ModelState.GPU_SELECTION:
            return len(self.gpus), "gpus_selected"
        if state is ModelState.SUBMISSION_MODE_SELECTION:
            return len(self.submission_modes), "submission_modes_selected"
        return None

    def move_selection_up(self) -> None:
        """Move the highlight of the current list one item up."""
        slot = self._selection_slot()
        if slot is None:
            return
        _, attr = slot
        idx = getattr(self, attr)
        if idx is not None and idx > 0:
            setattr(self, attr, idx - 1)

    def move_selection_down(self) -> None:
        """Move the highlight of the current list one item down."""
        slot = self._selection_slot()
        if slot is None:
            return
        length, attr = slot
        idx = getattr(self, attr)
        if idx is not None and idx < max(length - 1, 0):
            setattr(self, attr, idx + 1)

    def _spawn(self, func: Callable[..., Any], *args: Any) -> Future[Any]:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=3)
        return self._executor.submit(func, *args)

    def spawn_load_leaderboards(self) -> None:
        """Start fetching the leaderboards in the background."""
        client = create_client(self.cli_id)
        self.leaderboards_task = self._spawn(fetch_leaderboards, client)
        self.loading_message = "Loading leaderboards..."

    def spawn_load_gpus(self) -> None:
        """Start fetching the GPUs of the selected leaderboard in the background."""
        client = create_client(self.cli_id)
        if self.selected_leaderboard is None:
            raise ValueError("Leaderboard not selected")
        self.gpus_task = self._spawn(fetch_gpus, client, self.selected_leaderboard)
        self.loading_message = "Loading GPUs..."

    def spawn_submit_solution(self) -> None:
        """Read the solution file and start submitting it in the background."""
        client = create_client(self.cli_id)
        if self.selected_leaderboard is None:
            raise ValueError("Leaderboard not selected")
        if self.selected_gpu is None:
            raise ValueError("GPU not selected")
        if self.selected_submission_mode is None:
            raise ValueError("Submission mode not selected")

        with open(self.filepath, encoding="utf-8") as handle:
            file_content = handle.read()

        self.submission_task = self._spawn(
            submit_solution,
            client,
            self.filepath,
            file_content,
            self.selected_leaderboard,
            self.selected_gpu,
            self.selected_submission_mode,
        )
        self.loading_message = "Submitting solution..."

    @staticmethod
    def _outcome(task: Future[Any]) -> tuple[Any, str | None, bool]:
        """Return (result, error text, whether the task itself broke)."""
        try:
            return task.result(), None, False
        except CancelledError as exc:
            return None, str(exc) or "task was cancelled", True
        except Exception as exc:  # the task's own failure
            return None, str(exc), False

    def check_leaderboard_task(self) -> None:
        """Take the leaderboards if their fetch has finished."""
        task = self.leaderboards_task
        if task is None or not task.done():
            return
        self.leaderboards_task = None
        leaderboards, error, broken = self._outcome(task)
        if broken:
            self._set_error_and_quit(f"Task join error: {error}")
            return
        if error is not None:
            self._set_error_and_quit(f"Error fetching leaderboards: {error}")
            return

        self.leaderboards = leaderboards
        if self.selected_leaderboard is not None:
            index = next(
                (
                    i
                    for i, lb in enumerate(self.leaderboards)
                    if lb.title_text == self.selected_leaderboard
                ),
                None,
            )
            if index is not None:
                self.leaderboards_selected = index
                if self.selected_gpu is not None:
                    self.modal_state = ModelState.SUBMISSION_MODE_SELECTION
                else:
                    self.modal_state = ModelState.GPU_SELECTION
                    try:
                        self.spawn_load_gpus()
                    except _SPAWN_ERRORS as exc:
                        self._set_error_and_quit(f"Error starting GPU fetch: {exc}")
                        return
            else:
                self.selected_leaderboard = None
                self.leaderboards_selected = 0
                self.modal_state = ModelState.LEADERBOARD_SELECTION
        else:
            self.leaderboards_selected = 0

        self.loading_message = None

    def check_gpu_task(self) -> None:
        """Take the GPUs if their fetch has finished."""
        task = self.gpus_task
        if task is None or not task.done():
            return
        self.gpus_task = None
        gpus, error, broken = self._outcome(task)
        if broken:
            self._set_error_and_quit(f"Task join error: {error}")
            return
        if error is not None:
            self._set_error_and_quit(f"Error fetching GPUs: {error}")
            return

        self.gpus = gpus
        if self.selected_gpu is not None:
            index = next(
                (i for i, gpu in enumerate(self.gpus) if gpu.title_text == self.selected_gpu),
                None,
            )
            if index is not None:
                self.gpus_selected = index
                self.modal_state = ModelState.SUBMISSION_MODE_SELECTION
            else:
                self.selected_gpu = None
                self.gpus_selected = 0
                self.modal_state = ModelState.GPU_SELECTION
        else:
            self.gpus_selected = 0

        self.loading_message = None

    def check_submission_task(self) -> None:
        """Take the submission result if it has arrived, and finish."""
        task = self.submission_task
        if task is None or not task.done():
            return
        self.submission_task = None
        status, error, broken = self._outcome(task)
        if broken:
            self._set_error_and_quit(f"Task join error: {error}")
        elif error is not None:
            self._set_error_and_quit(f"Submission error: {error}")
        else:
            self.final_status = status
            self.should_quit = True
            self.loading_message = None

    def shutdown(self) -> None:
        """Stop the background workers, dropping tasks not yet started."""
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None