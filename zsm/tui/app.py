"""Curses runtime for the zsm dashboard.

The main loop reads keys and drains an event queue, feeding each event to
the Model one at a time. Commands returned by the Model run on background
threads (or timers) and report back by putting events on the same queue.
"""

from __future__ import annotations

import curses
import logging
import os
import queue
import threading
import time
from typing import Callable, Optional

from ..config import Settings
from ..zmx_controller import ClipboardError, ZmxController, ZmxError
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
    KillCompleted,
    KillSession,
    PollTick,
    PreviewReady,
    ProcessInfoReady,
    Quit,
    SessionsListed,
    StatusExpired,
    WaitForGone,
    WindowResized,
)
from .keys import key_from_curses
from .kill_sequencer import still_alive
from .model import Model
from .text_layout import Line, measure_width
from .theme import Theme
from .view import render

logger = logging.getLogger(__name__)

_INPUT_TIMEOUT_MS = 50


class CommandRunner:
    """Executes model commands off the event loop and posts result events."""

    def __init__(self, controller: ZmxController, events: "queue.Queue[Event]"):
        self.controller = controller
        self.events = events
        self._timers: list[threading.Timer] = []
        self._lock = threading.Lock()

    def submit(self, command: Command):
        if isinstance(command, ClearStatusAfter):
            self._after(command.delay, StatusExpired(generation=command.generation))
        elif isinstance(command, FetchSessions):
            self._spawn(self._fetch_sessions)
        elif isinstance(command, FetchProcessInfo):
            self._spawn(self._fetch_process_info, command)
        elif isinstance(command, FetchPreview):
            self._spawn(self._fetch_preview, command)
        elif isinstance(command, KillSession):
            self._spawn(self._kill, command)
        elif isinstance(command, WaitForGone):
            self._spawn(self._wait_for_gone, command)
        elif isinstance(command, CopyToClipboard):
            self._spawn(self._copy, command)
        elif isinstance(command, Quit):
            pass
        else:
            raise TypeError(f"unhandled command: {command!r}")

    def stop(self):
        with self._lock:
            for timer in self._timers:
                timer.cancel()
            self._timers.clear()

    def _spawn(self, target: Callable, *args):
        def run():
            event = target(*args)
            if event is not None:
                self.events.put(event)

        threading.Thread(target=run, daemon=True).start()

    def _after(self, delay: float, event: Event):
        timer = threading.Timer(delay, self.events.put, args=(event,))
        timer.daemon = True
        with self._lock:
            self._timers = [t for t in self._timers if t.is_alive()]
            self._timers.append(timer)
        timer.start()

    def _fetch_sessions(self) -> SessionsListed:
        try:
            return SessionsListed(sessions=self.controller.list_sessions())
        except ZmxError as e:
            return SessionsListed(error=str(e))
        except Exception as e:
            logger.exception("Session listing crashed")
            return SessionsListed(error=f"zmx list: {e}")

    def _fetch_process_info(self, command: FetchProcessInfo) -> ProcessInfoReady:
        try:
            return ProcessInfoReady(info=self.controller.fetch_process_info(list(command.sessions)))
        except ZmxError as e:
            return ProcessInfoReady(error=str(e))
        except Exception as e:
            logger.exception("Process stats fetch crashed")
            return ProcessInfoReady(error=str(e) or type(e).__name__)

    def _fetch_preview(self, command: FetchPreview) -> PreviewReady:
        try:
            content = self.controller.fetch_preview(command.name, command.lines)
        except Exception as e:
            logger.exception(f"Preview for {command.name} crashed")
            content = f"(preview unavailable: {e})"
        return PreviewReady(name=command.name, content=content)

    def _kill(self, command: KillSession) -> KillCompleted:
        try:
            self.controller.kill_session(command.name)
        except ZmxError as e:
            return KillCompleted(name=command.name, error=str(e))
        except Exception as e:
            logger.exception(f"Kill of {command.name} crashed")
            return KillCompleted(name=command.name, error=str(e) or type(e).__name__)
        return KillCompleted(name=command.name)

    def _wait_for_gone(self, command: WaitForGone) -> Event:
        time.sleep(command.delay)
        try:
            sessions = self.controller.list_sessions()
        except ZmxError as e:
            # A failed listing ends the poll.
            logger.warning(f"Listing during kill cleanup failed: {e}")
            return AllConfirmedGone()
        except Exception:
            logger.exception("Listing during kill cleanup crashed")
            return AllConfirmedGone()
        alive = still_alive(command.names, sessions)
        if alive:
            return PollTick(names=alive, attempt=command.attempt + 1)
        return AllConfirmedGone()

    def _copy(self, command: CopyToClipboard) -> ClipboardCopied:
        try:
            self.controller.copy_to_clipboard(command.text)
        except ClipboardError as e:
            return ClipboardCopied(text=command.text, error=str(e))
        except Exception as e:
            logger.exception("Clipboard copy crashed")
            return ClipboardCopied(text=command.text, error=str(e) or type(e).__name__)
        return ClipboardCopied(text=command.text)


def _paint(stdscr, frame: list[Line]):
    stdscr.erase()
    height, width = stdscr.getmaxyx()
    for y, line in enumerate(frame[:height]):
        x = 0
        for text, attr in line:
            if x >= width:
                break
            try:
                stdscr.addstr(y, x, text, attr)
            except curses.error:
                # Writing the bottom-right cell moves the cursor off screen.
                pass
            x += measure_width(text)
    stdscr.refresh()


def dispatch(model: Model, runner: CommandRunner, event: Event) -> bool:
    """Feed one event to the model and start its commands; False once it asks to quit."""
    keep_running = True
    for command in model.update(event):
        if isinstance(command, Quit):
            keep_running = False
        else:
            runner.submit(command)
    return keep_running


def run_dashboard(settings: Optional[Settings] = None, controller: Optional[ZmxController] = None) -> Model:
    """Run the dashboard until the user quits; returns the final model."""
    settings = settings or Settings()
    controller = controller or ZmxController(settings)
    model = Model(settings)
    os.environ.setdefault("ESCDELAY", "25")

    def _loop(stdscr):
        curses.curs_set(0)
        curses.raw()
        stdscr.keypad(True)
        stdscr.timeout(_INPUT_TIMEOUT_MS)
        theme = Theme.from_curses()

        events: "queue.Queue[Event]" = queue.Queue()
        runner = CommandRunner(controller, events)
        try:
            for command in model.init():
                runner.submit(command)
            height, width = stdscr.getmaxyx()
            events.put(WindowResized(width=width, height=height))

            running = True
            dirty = True
            while running:
                while running:
                    try:
                        event = events.get_nowait()
                    except queue.Empty:
                        break
                    running = dispatch(model, runner, event)
                    dirty = True
                if not running:
                    break

                if dirty:
                    _paint(stdscr, render(model, theme))
                    dirty = False

                try:
                    raw = stdscr.get_wch()
                except curses.error:
                    continue

                if raw == curses.KEY_RESIZE:
                    height, width = stdscr.getmaxyx()
                    running = dispatch(model, runner, WindowResized(width=width, height=height))
                    dirty = True
                    continue

                key = key_from_curses(raw)
                if key is not None:
                    running = dispatch(model, runner, key)
                    dirty = True
        finally:
            runner.stop()

    curses.wrapper(_loop)
    return model
