"""Tests for Model event handling: listings, previews, kills and status."""

import pytest

from zsm.models import ProcessInfo, Session, UiState
from zsm.tui.events import (
    AllConfirmedGone,
    ClearStatusAfter,
    ClipboardCopied,
    FetchPreview,
    FetchProcessInfo,
    FetchSessions,
    KeyPressed,
    KillCompleted,
    KillSession,
    PollTick,
    PreviewReady,
    ProcessInfoReady,
    SessionsListed,
    StatusExpired,
    WaitForGone,
    WindowResized,
)
from zsm.tui.model import Model


def _log_texts(model):
    return [entry.text for entry in model.log_lines]


class TestListing:
    def test_init_fetches_sessions(self, settings):
        assert Model(settings).init() == [FetchSessions()]

    def test_listing_requests_stats_and_preview(self, settings):
        model = Model(settings)
        model.update(WindowResized(width=120, height=40))
        sessions = [Session(name="b", pid="2"), Session(name="a", pid="1")]

        commands = model.update(SessionsListed(sessions=sessions))

        assert commands == [
            FetchProcessInfo(sessions=tuple(sessions)),
            FetchPreview(name="a", lines=31),
        ]

    def test_empty_listing_clears_preview(self, make_model):
        model = make_model("a")
        model.preview = "stale"

        commands = model.update(SessionsListed(sessions=[]))

        assert commands == [FetchProcessInfo(sessions=())]
        assert model.preview == ""

    def test_error_then_recovery(self, make_model):
        model = make_model("a")

        assert model.update(SessionsListed(error="zmx list: exit status 1")) == []
        assert model.error == "zmx list: exit status 1"

        model.update(SessionsListed(sessions=[Session(name="a")]))
        assert model.error is None

    def test_selection_pruned_to_live_sessions(self, make_model):
        model = make_model("a", "b", "c")
        model.selected = {"a", "c"}

        model.update(SessionsListed(sessions=[Session(name="a"), Session(name="b")]))

        assert model.selected == {"a"}

    def test_cursor_clamped_when_list_shrinks(self, make_model):
        model = make_model("a", "b", "c")
        model.cursor = 2

        model.update(SessionsListed(sessions=[Session(name="a")]))

        assert model.cursor == 0


class TestProcessInfo:
    def test_merges_by_name(self, make_model):
        model = make_model("a", "b")

        model.update(ProcessInfoReady(info={"b": ProcessInfo(memory=4096, uptime=90)}))

        stats = {s.name: (s.memory, s.uptime) for s in model.visible_sessions()}
        assert stats == {"a": (0, 0), "b": (4096, 90)}
        assert model.all_metrics().memory == 2

    def test_error_is_logged(self, make_model):
        model = make_model("a")

        model.update(ProcessInfoReady(error="ps: timed out after 5s"))

        assert _log_texts(model) == ["  ✗ process stats: ps: timed out after 5s"]


class TestPreview:
    def test_applied_for_current_session(self, make_model):
        model = make_model("a", "b")

        model.update(PreviewReady(name="a", content="hello"))

        assert model.preview == "hello"

    def test_stale_preview_ignored(self, make_model):
        """A preview for a session the cursor has left must not be shown."""
        model = make_model("a", "b")
        model.update(PreviewReady(name="a", content="for a"))

        model.update(KeyPressed("j", "j"))
        model.update(PreviewReady(name="a", content="late result for a"))

        assert model.current_session().name == "b"
        assert model.preview == "for a"

    def test_resize_refetches_preview(self, make_model):
        model = make_model("a")
        assert model.update(WindowResized(width=80, height=20)) == [FetchPreview(name="a", lines=11)]


class TestKillFlow:
    def _confirm(self, model):
        model.update(KeyPressed("K", "K"))
        assert model.state == UiState.CONFIRM_KILL
        return model.update(KeyPressed("y", "y"))

    def test_three_targets_middle_fails(self, make_model):
        model = make_model("A", "B", "C", "D")
        model.selected = {"A", "B", "C"}

        assert self._confirm(model) == [KillSession(name="A")]
        assert model.state == UiState.KILLING

        assert model.update(KillCompleted(name="A")) == [KillSession(name="B")]
        assert model.update(KillCompleted(name="B", error="zmx kill B: exit status 1\nboom")) == [
            KillSession(name="C")
        ]
        assert model.update(KillCompleted(name="C")) == [
            WaitForGone(names=("A", "C"), attempt=0, delay=0.0)
        ]

        texts = _log_texts(model)
        assert texts[0] == "Killing 3 session(s)..."
        assert "  ✓ A" in texts
        assert "  ✗ B (zmx kill B: exit status 1)" in texts
        assert texts[-1] == "  Waiting for cleanup..."

    def test_poll_ticks_until_gone(self, make_model):
        model = make_model("A", "B")
        model.selected = {"A"}
        self._confirm(model)
        model.update(KillCompleted(name="A"))

        assert model.update(PollTick(names=("A",), attempt=1)) == [
            WaitForGone(names=("A",), attempt=1, delay=0.0)
        ]

        commands = model.update(AllConfirmedGone())

        assert commands == [FetchSessions(), ClearStatusAfter(delay=3.0, generation=model.status_generation)]
        assert model.state == UiState.NORMAL
        assert model.selected == set()
        assert model.cursor == 0
        assert _log_texts(model)[-1] == "  Done. Killed 1 session(s)."
        assert not model.kills.polling

    def test_poll_gives_up_after_max_attempts(self, make_model):
        model = make_model("A")
        self._confirm(model)
        model.update(KillCompleted(name="A"))

        commands = model.update(PollTick(names=("A",), attempt=20))

        assert commands[0] == FetchSessions()
        assert model.state == UiState.NORMAL

    def test_all_failed_finishes_without_polling(self, make_model):
        model = make_model("A")
        self._confirm(model)

        commands = model.update(KillCompleted(name="A", error="nope"))

        assert commands[0] == FetchSessions()
        assert _log_texts(model)[-1] == "  Done. Killed 0 session(s)."

    def test_kill_clears_filter(self, make_model):
        model = make_model("api", "web")
        model.filter_text = "api"
        model.mark_visible_changed()
        self._confirm(model)
        model.update(KillCompleted(name="api"))
        model.update(AllConfirmedGone())

        assert model.filter_text == ""

    def test_cursor_session_is_default_target(self, make_model):
        model = make_model("a", "b")
        model.update(KeyPressed("j", "j"))

        assert self._confirm(model) == [KillSession(name="b")]

    def test_targets_follow_list_order(self, make_model):
        model = make_model("a", "b", "c")
        model.selected = {"c", "a"}
        assert model.kill_targets() == ["a", "c"]

    def test_late_confirmation_ignored_outside_killing(self, make_model):
        model = make_model("a")
        assert model.update(AllConfirmedGone()) == []
        assert model.update(PollTick(names=("a",), attempt=1)) == []

    def test_stray_results_mid_batch_ignored(self, make_model):
        model = make_model("A", "B")
        model.selected = {"A", "B"}
        self._confirm(model)

        assert model.update(AllConfirmedGone()) == []
        assert model.update(PollTick(names=("A",), attempt=1)) == []
        assert model.update(KillCompleted(name="B")) == []
        assert model.state == UiState.KILLING
        assert model.kills.current == "A"

        assert model.update(KillCompleted(name="A")) == [KillSession(name="B")]

    def test_resize_during_kill_skips_preview(self, make_model):
        model = make_model("a")
        self._confirm(model)
        assert model.update(WindowResized(width=100, height=30)) == []


class TestStatus:
    def test_copy_sets_status_with_generation(self, make_model):
        model = make_model("a")

        commands = model.update(ClipboardCopied(text="zmx attach a"))

        assert model.status == "Copied!"
        assert commands == [ClearStatusAfter(delay=2.0, generation=model.status_generation)]
        assert _log_texts(model)[-1] == "  Copied: zmx attach a"

    def test_copy_failure_status(self, make_model):
        model = make_model("a")

        model.update(ClipboardCopied(text="x", error="no clipboard tool found"))

        assert model.status == "Copy failed: no clipboard tool found"

    def test_older_timer_does_not_clear_newer_status(self, make_model):
        model = make_model("a")
        first = model.set_status("one", 2.0)
        second = model.set_status("two", 2.0)

        model.update(StatusExpired(generation=first.generation))
        assert model.status == "two"

        model.update(StatusExpired(generation=second.generation))
        assert model.status == ""


class TestLog:
    def test_log_follows_tail(self, make_model):
        model = make_model("a")
        for idx in range(10):
            model.add_log(f"line {idx}")

        assert model.log_offset == 6
        assert model.log_lines[0].timestamp.count(":") == 2


def test_unknown_event_raises(make_model):
    with pytest.raises(TypeError):
        make_model().update(object())
