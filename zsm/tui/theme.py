"""Color theme for the dashboard.

A Theme is built once at startup and passed to the renderer. Each field is
a curses attribute (color pair OR'd with text attributes); Theme.plain()
gives an all-zero theme for tests and monochrome terminals.
"""

from __future__ import annotations

import curses
from dataclasses import dataclass, fields

# field -> (256-color foreground, 8-color fallback, extra attrs)
_PALETTE = {
    "border": (240, curses.COLOR_WHITE, "dim"),
    "selected": (212, curses.COLOR_MAGENTA, "bold"),
    "normal": (252, curses.COLOR_WHITE, ""),
    "active_client": (76, curses.COLOR_GREEN, ""),
    "inactive_client": (240, curses.COLOR_WHITE, "dim"),
    "directory": (245, curses.COLOR_WHITE, "italic"),
    "title": (99, curses.COLOR_BLUE, "bold"),
    "help": (241, curses.COLOR_WHITE, "dim"),
    "help_key": (252, curses.COLOR_WHITE, "bold"),
    "status": (76, curses.COLOR_GREEN, ""),
    "confirm": (196, curses.COLOR_RED, "bold"),
    "log_dim": (241, curses.COLOR_WHITE, "dim"),
    "pid": (245, curses.COLOR_WHITE, ""),
    "memory": (180, curses.COLOR_YELLOW, ""),
    "uptime": (109, curses.COLOR_CYAN, ""),
    "filter_match": (228, curses.COLOR_YELLOW, "bold underline"),
    "sort": (75, curses.COLOR_BLUE, "bold"),
}


def _text_attrs(names: str) -> int:
    attr = 0
    for name in names.split():
        if name == "bold":
            attr |= curses.A_BOLD
        elif name == "dim":
            attr |= curses.A_DIM
        elif name == "underline":
            attr |= curses.A_UNDERLINE
        elif name == "italic":
            attr |= getattr(curses, "A_ITALIC", 0)
    return attr


@dataclass(frozen=True)
class Theme:
    border: int = 0
    selected: int = 0
    normal: int = 0
    active_client: int = 0
    inactive_client: int = 0
    directory: int = 0
    title: int = 0
    help: int = 0
    help_key: int = 0
    status: int = 0
    confirm: int = 0
    log_dim: int = 0
    pid: int = 0
    memory: int = 0
    uptime: int = 0
    filter_match: int = 0
    sort: int = 0

    @classmethod
    def plain(cls) -> "Theme":
        return cls()

    @classmethod
    def from_curses(cls) -> "Theme":
        """Allocate color pairs; call only after curses.initscr()."""
        if not curses.has_colors():
            return cls(**{f.name: _text_attrs(_PALETTE[f.name][2]) for f in fields(cls)})

        try:
            curses.start_color()
            curses.use_default_colors()
        except curses.error:
            return cls.plain()

        rich = curses.COLORS >= 256
        pairs: dict[int, int] = {}
        values = {}
        for f in fields(cls):
            color256, color8, extra = _PALETTE[f.name]
            color = color256 if rich else color8
            if color not in pairs:
                pair_id = len(pairs) + 1
                try:
                    curses.init_pair(pair_id, color, -1)
                    pairs[color] = curses.color_pair(pair_id)
                except curses.error:
                    pairs[color] = 0
            values[f.name] = pairs[color] | _text_attrs(extra)
        return cls(**values)
