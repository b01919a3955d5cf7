"""Keyboard normalization between curses input and the dashboard model."""

from __future__ import annotations

import curses
from typing import Optional, Union

from .events import KeyPressed

_SPECIAL_KEYS = {
    curses.KEY_UP: "up",
    curses.KEY_DOWN: "down",
    curses.KEY_LEFT: "left",
    curses.KEY_RIGHT: "right",
    curses.KEY_ENTER: "enter",
    curses.KEY_BACKSPACE: "backspace",
    curses.KEY_DC: "delete",
    curses.KEY_HOME: "home",
    curses.KEY_END: "end",
    curses.KEY_PPAGE: "pgup",
    curses.KEY_NPAGE: "pgdown",
}

_CONTROL_CHARS = {
    "\n": "enter",
    "\r": "enter",
    "\x1b": "esc",
    "\x7f": "backspace",
    "\x08": "backspace",
    "\t": "tab",
}


def key_from_curses(raw: Union[int, str]) -> Optional[KeyPressed]:
    """Map a get_wch() result to a KeyPressed; None for keys the dashboard ignores."""
    if isinstance(raw, int):
        name = _SPECIAL_KEYS.get(raw)
        return KeyPressed(name) if name else None
    if raw in _CONTROL_CHARS:
        return KeyPressed(_CONTROL_CHARS[raw])
    if raw == " ":
        return KeyPressed("space", " ")
    if len(raw) == 1 and ord(raw) < 0x20:
        return KeyPressed(f"ctrl+{chr(ord(raw) + 0x60)}")
    return KeyPressed(raw, raw)


def is_quit(key: KeyPressed, allow_q: bool = True) -> bool:
    if key.key == "ctrl+c":
        return True
    return allow_q and key.text == "q"


def is_rune(key: KeyPressed, char: str) -> bool:
    return key.text == char
