"""Data models for the zmx session dashboard."""

import os
from dataclasses import dataclass
from enum import Enum


class UiState(Enum):
    """Dashboard input mode."""
    NORMAL = "normal"
    CONFIRM_KILL = "confirm_kill"
    KILLING = "killing"
    FILTER = "filter"


class SortMode(Enum):
    """Session list sort keys, in cycle order."""
    NAME = "name"
    CLIENTS = "clients"
    PID = "pid"
    MEMORY = "memory"
    UPTIME = "uptime"

    @property
    def label(self) -> str:
        return self.value

    def next(self) -> "SortMode":
        members = list(SortMode)
        return members[(members.index(self) + 1) % len(members)]


@dataclass
class Session:
    """A zmx session as reported by `zmx list`, enriched with process stats."""
    name: str
    pid: str = ""
    clients: int = 0
    started_in: str = ""
    cmd: str = ""
    memory: int = 0  # RSS of the process tree in bytes, 0 = unknown
    uptime: int = 0  # elapsed seconds, 0 = unknown

    @property
    def pid_number(self) -> int:
        try:
            return int(self.pid)
        except ValueError:
            return 0

    def display_dir(self) -> str:
        """started_in with the home directory shortened to ~."""
        home = os.path.expanduser("~")
        if home and home != "~" and self.started_in.startswith(home):
            return "~" + self.started_in[len(home):]
        return self.started_in


@dataclass(frozen=True)
class ProcessInfo:
    """Per-session process stats fetched after a listing."""
    memory: int = 0
    uptime: int = 0
