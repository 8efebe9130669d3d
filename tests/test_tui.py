import pytest

from popcorn_cli.app import SUBMISSION_MODES, App
from popcorn_cli.models import GpuItem, LeaderboardItem, ModelState
from popcorn_cli.tui import centered_rect, render_lines, run_submit_tui, wrap_description


def _fits(lines, width):
    return all(len(line) <= width or " " not in line for line in lines)


def test_wrap_without_width_keeps_text():
    text = "Work in progress..."
    assert wrap_description(text, 0) == [text]


def test_wrap_empty_text_gives_no_lines():
    assert wrap_description("", 20) == []


def test_wrap_puts_long_word_on_its_own_line():
    assert wrap_description("a verylongword b", 5) == ["a", "verylongword", "b"]


@pytest.mark.parametrize("width", [5, 10, 17, 30, 60, 200])
@pytest.mark.parametrize("mode", SUBMISSION_MODES)
def test_wrap_preserves_words_and_respects_width(mode, width):
    lines = wrap_description(mode.description_text, width)
    assert " ".join(lines) == " ".join(mode.description_text.split())
    assert _fits(lines, width)


def test_centered_rect_pinned_value():
    assert centered_rect(60, 20, 100, 100) == (20, 40, 60, 20)


@pytest.mark.parametrize("size", [(0, 0), (7, 3), (80, 24), (213, 57)])
def test_centered_rect_lies_inside_area(size):
    width, height = size
    x, y, w, h = centered_rect(60, 20, width, height)
    assert 0 <= x and x + w <= width
    assert 0 <= y and y + h <= height
    assert abs(x - (width - x - w)) <= 1


def test_render_leaderboards_with_descriptions(tmp_path):
    app = App(tmp_path / "sol.py", "cli")
    app.leaderboards = [
        LeaderboardItem("grayscale", "line one\nline two"),
        LeaderboardItem("matmul", "fast"),
    ]
    assert render_lines(app, 80) == [
        "Select Leaderboard",
        "> grayscale",
        "  line one",
        "  line two",
        "  matmul",
        "  fast",
    ]


def test_render_follows_highlight(tmp_path):
    app = App(tmp_path / "sol.py", "cli")
    app.leaderboards = [LeaderboardItem("a", "x"), LeaderboardItem("b", "y")]
    app.move_selection_down()
    lines = render_lines(app, 80)
    assert "> b" in lines
    assert "  a" in lines


def test_render_gpu_title_without_leaderboard(tmp_path):
    app = App(tmp_path / "sol.py", "cli")
    app.modal_state = ModelState.GPU_SELECTION
    app.gpus = [GpuItem("H100")]
    assert render_lines(app, 80) == ["Select GPU for 'N/A'", "> H100"]


def test_render_submission_modes_wraps_to_width(tmp_path):
    app = App(tmp_path / "sol.py", "cli")
    app.modal_state = ModelState.SUBMISSION_MODE_SELECTION
    app.selected_leaderboard = "grayscale"
    app.selected_gpu = "H100"
    lines = render_lines(app, 40)
    assert lines[0] == "Select Submission Mode for 'grayscale' on 'H100'"
    assert lines[1] == "> Test"
    assert all(len(line) <= 40 for line in lines[1:])
    body = " ".join(line.strip() for line in lines[1:])
    for mode in SUBMISSION_MODES:
        assert mode.title_text in body


def test_render_loading_message(tmp_path):
    app = App(tmp_path / "sol.py", "cli")
    app.loading_message = "Loading GPUs..."
    assert render_lines(app, 80) == ["Loading", "Loading GPUs..."]


def test_render_waiting_state_is_empty(tmp_path):
    app = App(tmp_path / "sol.py", "cli")
    app.modal_state = ModelState.WAITING_FOR_RESULT
    assert render_lines(app, 80) == []


def test_run_rejects_missing_file(tmp_path):
    missing = tmp_path / "missing.py"
    with pytest.raises(FileNotFoundError, match="File not found"):
        run_submit_tui(str(missing), "cli")


def test_run_rejects_multiple_gpus(tmp_path):
    solution = tmp_path / "sol.py"
    solution.write_text("#!POPCORN gpus H100 A100\nprint(1)\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Multiple GPUs are not supported yet"):
        run_submit_tui(str(solution), "cli")


def test_run_prompts_for_path(monkeypatch, capsys):
    monkeypatch.setattr("builtins.input", lambda: "  nope.py  ")
    with pytest.raises(FileNotFoundError) as info:
        run_submit_tui(None, "cli")
    assert str(info.value) == "File not found: nope.py"
    assert "Please enter the path to your solution file:" in capsys.readouterr().out