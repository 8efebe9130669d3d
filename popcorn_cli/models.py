"""Items shown in the submission picker and the picker's states."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


@dataclass(frozen=True)
class LeaderboardItem:
    """A leaderboard and the description of its task."""

    title_text: str
    task_description: str


@dataclass(frozen=True)
class GpuItem:
    """A GPU that a leaderboard can run on."""

    title_text: str


@dataclass(frozen=True)
class SubmissionModeItem:
    """A way of submitting a solution, with the value sent to the server."""

    title_text: str
    description_text: str
    value: str


class ModelState(Enum):
    """The step the submission picker is at."""

    LEADERBOARD_SELECTION = auto()
    GPU_SELECTION = auto()
    SUBMISSION_MODE_SELECTION = auto()
    WAITING_FOR_RESULT = auto()