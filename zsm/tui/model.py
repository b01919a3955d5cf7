"""Dashboard state machine.

The Model owns all mutable dashboard state. update() handles one event to
completion and returns the commands the runtime should start next; it never
performs I/O itself, so every transition can be driven from tests.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

from ..config import Settings
from ..models import Session, SortMode, UiState
from .events import (
    AllConfirmedGone,
    ClearStatusAfter,
    ClipboardCopied,
    Command,
    CopyToClipboard,
    Event,
    FetchPreview,
    FetchProcessInfo,
    FetchSessions,
    KeyPressed,
    KillCompleted,
    KillSession,
    PollTick,
    PreviewReady,
    ProcessInfoReady,
    Quit,
    SessionsListed,
    StatusExpired,
    WindowResized,
)
from .keys import is_quit, is_rune
from .kill_sequencer import KillSequencer
from .text_layout import preview_max_width
from .view_cache import ListMetrics, ViewCache

logger = logging.getLogger(__name__)

PREVIEW_SCROLL_STEP = 4
# " zmx sessions (N) " is 17 cells plus digits, " ↓ clients " is 11, border chrome 4
_TITLE_LEFT_BASE = 17
_TITLE_RIGHT_MAX = 11
_TITLE_CHROME = 4


@dataclass(frozen=True)
class LogEntry:
    """One activity log line; style names a Theme field."""
    timestamp: str
    text: str
    style: str = "normal"


class Model:
    """State for one dashboard run."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()

        self.sessions: list[Session] = []
        self.cursor = 0
        self.list_offset = 0
        self.selected: set[str] = set()

        self.filter_text = ""
        self.sort_mode = SortMode.NAME
        self.sort_asc = True
        self.attach_target = ""

        self.preview = ""
        self.preview_scroll_x = 0
        self.state = UiState.NORMAL
        self.status = ""
        self.status_generation = 0
        self.pending_go_top = False

        self.log_lines: list[LogEntry] = []
        self.log_offset = 0

        self.width = 0
        self.height = 0
        self.error: Optional[str] = None

        self.kills = KillSequencer(
            poll_interval=self.settings.poll_interval_seconds,
            max_attempts=self.settings.poll_max_attempts,
        )
        self._cache = ViewCache()

    # Derived view

    def visible_sessions(self) -> list[Session]:
        return self._cache.visible(self.sessions, self.filter_text, self.sort_mode, self.sort_asc)

    def visible_metrics(self) -> ListMetrics:
        return self._cache.visible_metrics(self.sessions, self.filter_text, self.sort_mode, self.sort_asc)

    def all_metrics(self) -> ListMetrics:
        return self._cache.all_metrics(self.sessions)

    def mark_sessions_changed(self):
        self._cache.mark_sessions_changed()

    def mark_visible_changed(self):
        self._cache.mark_visible_changed()

    def current_session(self) -> Optional[Session]:
        visible = self.visible_sessions()
        if self.cursor < len(visible):
            return visible[self.cursor]
        return None

    # Layout

    @property
    def log_height(self) -> int:
        return self.settings.log_height

    def main_content_height(self, help_lines: int = 1) -> int:
        # 4 = list/preview borders + log borders
        return max(1, self.height - self.log_height - 4 - help_lines)

    def list_outer_width(self) -> int:
        """List pane width from full-set metrics, so filtering never resizes it."""
        digits = len(str(len(self.sessions)))
        title_min = (_TITLE_LEFT_BASE + digits) + _TITLE_RIGHT_MAX + _TITLE_CHROME
        m = self.all_metrics()
        # indicator(2) + name + pid + mem + uptime + client, single spaces between, borders(2)
        w = 2 + m.name + 1 + m.pid + 1 + m.memory + 1 + m.uptime + 1 + m.client + 2
        w = max(w, title_min)
        w = min(w, self.settings.list_max_width)
        half = self.width // 2
        if w > half >= title_min:
            w = half
        return w

    def list_inner_width(self) -> int:
        return self.list_outer_width() - 2

    def preview_outer_width(self) -> int:
        return max(10, self.width - self.list_outer_width())

    def preview_inner_width(self) -> int:
        return self.preview_outer_width() - 2

    # Bookkeeping

    def add_log(self, text: str, style: str = "normal"):
        self.log_lines.append(LogEntry(time.strftime("%H:%M:%S"), text, style))
        self.log_offset = max(0, len(self.log_lines) - self.log_height)

    def set_status(self, text: str, delay: float) -> ClearStatusAfter:
        self.status_generation += 1
        self.status = text
        return ClearStatusAfter(delay=delay, generation=self.status_generation)

    def clamp_cursor(self):
        visible = self.visible_sessions()
        if self.cursor >= len(visible):
            self.cursor = max(0, len(visible) - 1)
        if self.list_offset > self.cursor:
            self.list_offset = self.cursor

    def ensure_visible(self):
        h = self.main_content_height(1)
        if self.cursor < self.list_offset:
            self.list_offset = self.cursor
        if self.cursor >= self.list_offset + h:
            self.list_offset = self.cursor - h + 1

    def reset_cursor(self):
        self.cursor = 0
        self.list_offset = 0

    def kill_targets(self) -> list[str]:
        """Selected names in list order, else the session under the cursor."""
        if self.selected:
            visible_names = [s.name for s in self.visible_sessions()]
            ordered = [name for name in visible_names if name in self.selected]
            ordered += sorted(self.selected.difference(ordered))
            return ordered
        current = self.current_session()
        return [current.name] if current else []

    def preview_commands(self) -> list[Command]:
        current = self.current_session()
        if current is None:
            return []
        return [FetchPreview(name=current.name, lines=self.main_content_height(1))]

    # Event dispatch

    def init(self) -> list[Command]:
        return [FetchSessions()]

    def update(self, event: Event) -> list[Command]:
        if isinstance(event, WindowResized):
            return self._on_resize(event)
        if isinstance(event, SessionsListed):
            return self._on_sessions(event)
        if isinstance(event, ProcessInfoReady):
            return self._on_process_info(event)
        if isinstance(event, PreviewReady):
            return self._on_preview(event)
        if isinstance(event, KillCompleted):
            return self._on_kill_completed(event)
        if isinstance(event, PollTick):
            return self._on_poll_tick(event)
        if isinstance(event, AllConfirmedGone):
            return self._finish_kill() if self._kill_polling() else []
        if isinstance(event, StatusExpired):
            if event.generation == self.status_generation:
                self.status = ""
            return []
        if isinstance(event, ClipboardCopied):
            return self._on_clipboard(event)
        if isinstance(event, KeyPressed):
            return self._on_key(event)
        raise TypeError(f"unhandled event: {event!r}")

    def _on_resize(self, event: WindowResized) -> list[Command]:
        self.width = event.width
        self.height = event.height
        self.clamp_cursor()
        self.ensure_visible()
        if self.state != UiState.KILLING:
            return self.preview_commands()
        return []

    def _on_sessions(self, event: SessionsListed) -> list[Command]:
        if event.error is not None:
            logger.error(f"Session listing failed: {event.error}")
            self.error = event.error
            return []

        self.error = None
        self.sessions = list(event.sessions)
        self.mark_sessions_changed()
        live = {s.name for s in self.sessions}
        self.selected.intersection_update(live)
        self.clamp_cursor()

        commands: list[Command] = [FetchProcessInfo(sessions=tuple(self.sessions))]
        preview = self.preview_commands()
        if preview:
            commands += preview
        else:
            self.preview = ""
        return commands

    def _on_process_info(self, event: ProcessInfoReady) -> list[Command]:
        if event.error is not None:
            logger.warning(f"Process stats unavailable: {event.error}")
            detail = event.error.splitlines()[0] if event.error else "unknown error"
            self.add_log(f"  ✗ process stats: {detail}", "confirm")
            return []
        updated = False
        for session in self.sessions:
            info = event.info.get(session.name)
            if info is not None:
                session.memory = info.memory
                session.uptime = info.uptime
                updated = True
        if updated:
            self.mark_sessions_changed()
        return []

    def _on_preview(self, event: PreviewReady) -> list[Command]:
        current = self.current_session()
        if current is not None and current.name == event.name:
            self.preview = event.content
        return []

    def _on_clipboard(self, event: ClipboardCopied) -> list[Command]:
        if event.error is not None:
            logger.warning(f"Copy failed: {event.error}")
            self.add_log(f"  ✗ Copy failed: {event.error}", "confirm")
            return [self.set_status(f"Copy failed: {event.error}", self.settings.status_clear_seconds)]
        self.add_log(f"  Copied: {event.text}", "status")
        return [self.set_status("Copied!", self.settings.status_clear_seconds)]

    # Kill sequencing

    def _start_kill(self) -> list[Command]:
        targets = self.kill_targets()
        if not targets:
            self.state = UiState.NORMAL
            return []
        self.state = UiState.KILLING
        first = self.kills.start(targets)
        self.add_log(f"Killing {self.kills.total} session(s)...", "title")
        self.add_log(f"  ⋯ {first}", "help")
        logger.info(f"Killing {self.kills.total} session(s): {', '.join(targets)}")
        return [KillSession(name=first)]

    def _kill_polling(self) -> bool:
        return self.state == UiState.KILLING and self.kills.polling

    def _on_kill_completed(self, event: KillCompleted) -> list[Command]:
        if self.state != UiState.KILLING or event.name != self.kills.current:
            return []
        if event.error is not None:
            detail = event.error.splitlines()[0] if event.error else ""
            logger.warning(f"Kill failed for {event.name}: {event.error}")
            self.add_log(f"  ✗ {event.name}" + (f" ({detail})" if detail else ""), "confirm")
        else:
            self.add_log(f"  ✓ {event.name}", "status")

        next_name = self.kills.complete(event.name, ok=event.error is None)
        if next_name is not None:
            self.add_log(f"  ⋯ {next_name}", "help")
            return [KillSession(name=next_name)]

        poll = self.kills.poll(0)
        if poll is not None:
            self.add_log("  Waiting for cleanup...", "log_dim")
            return [poll]
        return self._finish_kill()

    def _on_poll_tick(self, event: PollTick) -> list[Command]:
        if not self._kill_polling():
            return []
        poll = self.kills.poll(event.attempt)
        if poll is not None:
            return [poll]
        logger.warning(f"Sessions still listed after {event.attempt} polls: {', '.join(event.names)}")
        return self._finish_kill()

    def _finish_kill(self) -> list[Command]:
        killed = len(self.kills.killed)
        self.add_log(f"  Done. Killed {killed} session(s).", "status")
        logger.info(f"Kill batch finished: {killed} killed, {len(self.kills.failed)} failed")
        self.state = UiState.NORMAL
        self.selected.clear()
        self.filter_text = ""
        self.mark_visible_changed()
        self.reset_cursor()
        self.kills.reset()
        return [
            FetchSessions(),
            ClearStatusAfter(delay=self.settings.kill_status_clear_seconds, generation=self.status_generation),
        ]

    # Keys

    def _on_key(self, key: KeyPressed) -> list[Command]:
        if self.state == UiState.KILLING:
            if is_quit(key):
                return [Quit()]
            self._handle_log_scroll(key)
            return []
        if self.state == UiState.FILTER:
            return self._handle_filter_key(key)
        if self.state == UiState.CONFIRM_KILL:
            return self._handle_confirm_key(key)
        return self._handle_key(key)

    def _handle_key(self, key: KeyPressed) -> list[Command]:
        if is_quit(key):
            return [Quit()]

        self._handle_log_scroll(key)
        if key.key != "g":
            self.pending_go_top = False

        if key.key in ("esc", "backspace") and self.filter_text:
            self.filter_text = ""
            self.mark_visible_changed()
            self.reset_cursor()
            return self.preview_commands()

        visible = self.visible_sessions()

        if key.key == "ctrl+a":
            self._toggle_select_all(visible)
            return []

        if key.key in ("up", "k"):
            return self.preview_commands() if self._move_cursor_up(True) else []
        if key.key in ("down", "j"):
            return self.preview_commands() if self._move_cursor_down(True) else []

        if key.key == "left":
            self.preview_scroll_x = max(0, self.preview_scroll_x - PREVIEW_SCROLL_STEP)
            return []
        if key.key == "right":
            limit = max(0, preview_max_width(self.preview) - self.preview_inner_width())
            self.preview_scroll_x = min(self.preview_scroll_x + PREVIEW_SCROLL_STEP, limit)
            return []

        if key.key == "space":
            current = self.current_session()
            if current is not None:
                if current.name in self.selected:
                    self.selected.discard(current.name)
                else:
                    self.selected.add(current.name)
                self.mark_visible_changed()
            return []

        if key.key == "enter":
            current = self.current_session()
            if current is not None:
                self.attach_target = current.name
                return [Quit()]
            return []

        if key.key == "g":
            if not self.pending_go_top:
                self.pending_go_top = True
                return []
            self.pending_go_top = False
            if visible:
                self.reset_cursor()
                self.preview_scroll_x = 0
                return self.preview_commands()
            return []

        if key.key == "G":
            if visible:
                self.cursor = len(visible) - 1
                self.preview_scroll_x = 0
                self.ensure_visible()
                return self.preview_commands()
            return []

        if key.key == "K":
            if self.kill_targets():
                self.state = UiState.CONFIRM_KILL
            return []

        if key.key == "c":
            current = self.current_session()
            if current is not None:
                return [CopyToClipboard(text=f"{self.settings.attach_command} {current.name}")]
            return []

        if key.key == "r":
            return [FetchSessions()]

        if key.key == "/":
            self.state = UiState.FILTER
            return []

        if key.key == "s":
            if self.sort_asc:
                self.sort_asc = False
            else:
                self.sort_asc = True
                self.sort_mode = self.sort_mode.next()
            self.mark_visible_changed()
            self.reset_cursor()
            return self.preview_commands()

        return []

    def _handle_filter_key(self, key: KeyPressed) -> list[Command]:
        if is_quit(key, allow_q=False):
            return [Quit()]

        if key.key == "esc":
            self.filter_text = ""
            self.mark_visible_changed()
            self.state = UiState.NORMAL
            self.reset_cursor()
            return self.preview_commands()

        if key.key == "enter":
            self.state = UiState.NORMAL
            self.clamp_cursor()
            return self.preview_commands()

        if key.key == "backspace":
            if self.filter_text:
                self.filter_text = self.filter_text[:-1]
                self._filter_changed()
                return []
            self.state = UiState.NORMAL
            return self.preview_commands()

        if key.key == "up":
            return self.preview_commands() if self._move_cursor_up(False) else []
        if key.key == "down":
            return self.preview_commands() if self._move_cursor_down(False) else []

        if key.text:
            self.filter_text += key.text
            self._filter_changed()
        return []

    def _handle_confirm_key(self, key: KeyPressed) -> list[Command]:
        if is_quit(key):
            return [Quit()]
        if key.key in ("esc", "backspace") or is_rune(key, "n"):
            self.state = UiState.NORMAL
            return []
        if is_rune(key, "y"):
            return self._start_kill()
        return []

    def _handle_log_scroll(self, key: KeyPressed):
        max_offset = max(0, len(self.log_lines) - self.log_height)
        if is_rune(key, "[") and self.log_offset > 0:
            self.log_offset -= 1
        elif is_rune(key, "]") and self.log_offset < max_offset:
            self.log_offset += 1

    def _filter_changed(self):
        self.mark_visible_changed()
        self._prune_selections()
        self.reset_cursor()

    def _prune_selections(self):
        self.selected.intersection_update(s.name for s in self.visible_sessions())

    def _toggle_select_all(self, visible: list[Session]):
        if not visible:
            return
        names = {s.name for s in visible}
        if names <= self.selected:
            self.selected -= names
        else:
            self.selected |= names
        self.mark_visible_changed()

    def _move_cursor_up(self, reset_preview_scroll: bool) -> bool:
        if self.cursor <= 0:
            return False
        self.cursor -= 1
        if reset_preview_scroll:
            self.preview_scroll_x = 0
        self.ensure_visible()
        return True

    def _move_cursor_down(self, reset_preview_scroll: bool) -> bool:
        if self.cursor >= len(self.visible_sessions()) - 1:
            return False
        self.cursor += 1
        if reset_preview_scroll:
            self.preview_scroll_x = 0
        self.ensure_visible()
        return True
