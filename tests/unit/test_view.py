"""Rendering tests using a plain theme so frames compare as text."""

import pytest

from zsm.models import Session, UiState
from zsm.tui.events import KeyPressed, PreviewReady, SessionsListed
from zsm.tui.model import Model
from zsm.tui.text_layout import line_width, plain_text
from zsm.tui.theme import Theme
from zsm.tui.view import render, render_help, render_list


@pytest.fixture
def theme():
    return Theme.plain()


def frame_text(model, theme):
    return [plain_text(line) for line in render(model, theme)]


class TestScreens:
    def test_loading_before_first_resize(self, settings, theme):
        assert frame_text(Model(settings), theme) == ["  Loading..."]

    def test_error_screen(self, make_model, theme):
        model = make_model("a")
        model.update(SessionsListed(error="zmx list: exit status 1\nsocket missing"))

        text = frame_text(model, theme)

        assert "  Error: zmx list: exit status 1" in text
        assert "  socket missing" in text
        assert text[-1] == "  Is zmx installed and in your PATH?"


class TestFrame:
    def test_fills_terminal_exactly(self, make_model, theme):
        model = make_model("a", "b", "c", width=120, height=40)
        frame = render(model, theme)

        assert len(frame) == 40
        assert all(line_width(line) == 120 for line in frame)

    def test_narrow_terminal_still_fits(self, make_model, theme):
        model = make_model("alpha", "beta", width=40, height=20)
        frame = render(model, theme)

        assert len(frame) == 20
        assert all(line_width(line) == 40 for line in frame)

    def test_list_titles(self, make_model, theme):
        model = make_model("a", "b", "c")
        top = frame_text(model, theme)[0]

        assert " zmx sessions (3) " in top
        assert " ↑ name " in top

    def test_filtered_title_and_sort_direction(self, make_model, theme):
        model = make_model("api", "web", "worker")
        for key in ("/", "a", "enter", "s"):
            model.update(KeyPressed(key, key) if len(key) == 1 else KeyPressed(key))

        top = frame_text(model, theme)[0]

        assert " zmx (1/3) " in top
        assert " ↓ name " in top

    def test_selection_count_in_bottom_border(self, make_model, theme):
        model = make_model("a", "b", "c")
        model.selected = {"a", "c"}
        text = frame_text(model, theme)
        bottom = text[model.main_content_height(1) + 1]

        assert bottom.startswith("╰")
        assert " 2 sel ╯" in bottom

    def test_preview_pane(self, make_model, theme):
        model = make_model(Session(name="api", pid="7", started_in="/srv/app"))
        model.update(PreviewReady(name="api", content="$ make test\nok"))

        text = frame_text(model, theme)

        assert " api " in text[0]
        assert " 📂 /srv/app " in text[0]
        assert "$ make test" in text[1]
        assert "ok" in text[2]

    def test_activity_log(self, make_model, theme):
        model = make_model("a")
        model.add_log("  ✓ a", "status")

        text = "\n".join(frame_text(model, theme))

        assert " Activity Log " in text
        assert "  ✓ a" in text

    def test_empty_log_hint(self, make_model, theme):
        assert any("No activity yet." in row for row in frame_text(make_model("a"), theme))

    def test_killing_log_title(self, make_model, theme):
        model = make_model("a")
        model.state = UiState.KILLING
        assert any(" Killing... " in row for row in frame_text(model, theme))


class TestRenderList:
    def test_cursor_and_selection_indicators(self, make_model, theme):
        model = make_model("a", "b", "c")
        model.selected = {"a", "b"}
        rows = [plain_text(row) for row in render_list(model, theme, 10)]

        assert rows[0].startswith("▸●a")
        assert rows[1].startswith(" ●b")
        assert rows[2].startswith("  c")

    def test_columns(self, make_model, theme):
        model = make_model(Session(name="a", pid="4242", clients=2, memory=3 << 20, uptime=7200))
        row = plain_text(render_list(model, theme, 10)[0])

        assert row.rstrip().endswith("4242 3M 2h ●2")

    def test_unknown_stats_are_dashes(self, make_model, theme):
        model = make_model(Session(name="a", pid="1"))
        row = plain_text(render_list(model, theme, 10)[0])
        assert row.rstrip().endswith("1 - - ○0")

    def test_long_names_truncated(self, make_model, theme):
        model = make_model("x" * 80)
        row = plain_text(render_list(model, theme, 10)[0])
        assert "..." in row
        assert "x" * 80 not in row

    def test_scrolls_to_cursor(self, make_model, theme):
        model = make_model(*[f"s{idx}" for idx in range(10)])
        model.cursor = 7
        rows = [plain_text(row) for row in render_list(model, theme, 3)]

        assert len(rows) == 3
        assert rows[-1].startswith("▸ s7")

    def test_empty_messages(self, make_model, theme):
        model = make_model()
        assert plain_text(render_list(model, theme, 5)[0]) == "  No sessions found. Press r to refresh."

        model = make_model("a")
        model.update(KeyPressed("/"))
        model.update(KeyPressed("z", "z"))
        assert plain_text(render_list(model, theme, 5)[0]) == "  No matches. Esc to clear filter."

    def test_filter_match_highlighted(self, make_model):
        theme = Theme(filter_match=7)
        model = make_model("my-session")
        model.update(KeyPressed("/", "/"))
        model.update(KeyPressed("s", "s"))
        model.update(KeyPressed("e", "e"))

        row = render_list(model, theme, 5)[0]

        assert ("se", 7) in row


class TestHelp:
    def test_normal_help(self, make_model, theme):
        text = plain_text(render_help(make_model("a"), theme)[0])
        assert "K kill" in text
        assert "/ filter" in text
        assert "q quit" in text

    def test_clear_hint_when_filtered(self, make_model, theme):
        model = make_model("a")
        model.filter_text = "a"
        text = "".join(plain_text(line) for line in render_help(model, theme))
        assert "esc clear" in text
        assert "/ filter" not in text

    def test_status_appended(self, make_model, theme):
        model = make_model("a")
        model.status = "Copied!"
        text = "".join(plain_text(line) for line in render_help(model, theme))
        assert text.endswith("Copied!")

    def test_filter_prompt(self, make_model, theme):
        model = make_model("a")
        model.state = UiState.FILTER
        model.filter_text = "we"
        assert plain_text(render_help(model, theme)[0]).startswith(" /we█")

    def test_confirm_single(self, make_model, theme):
        model = make_model("api")
        model.state = UiState.CONFIRM_KILL
        assert plain_text(render_help(model, theme)[0]) == " Kill api? y/n "

    def test_confirm_many(self, make_model, theme):
        model = make_model("a", "b")
        model.selected = {"a", "b"}
        model.state = UiState.CONFIRM_KILL
        assert plain_text(render_help(model, theme)[0]) == " Kill 2 sessions? y/n "

    def test_wraps_on_narrow_terminal(self, make_model, theme):
        lines = render_help(make_model("a", width=40), theme)
        assert len(lines) > 1
        assert all(line_width(line) <= 40 for line in lines)
