"""Filtered/sorted projection of the session list, memoized by version key."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..models import Session, SortMode
from ..process_tree import format_bytes, format_uptime
from .text_layout import measure_width

_SORT_KEYS = {
    SortMode.NAME: lambda s: s.name,
    SortMode.CLIENTS: lambda s: s.clients,
    SortMode.PID: lambda s: s.pid_number,
    SortMode.MEMORY: lambda s: s.memory,
    SortMode.UPTIME: lambda s: s.uptime,
}


def memory_label(session: Session) -> str:
    return format_bytes(session.memory) if session.memory > 0 else "-"


def uptime_label(session: Session) -> str:
    return format_uptime(session.uptime) if session.uptime > 0 else "-"


def client_label(session: Session) -> str:
    if session.clients > 0:
        return f"●{session.clients}"
    return "○0"


def compute_visible(
    sessions: list[Session],
    filter_text: str,
    sort_mode: SortMode,
    ascending: bool,
) -> list[Session]:
    """Sessions whose name or start directory contains filter_text, sorted.

    Ties on the primary key are always broken by name ascending; the
    direction flag only reverses the primary key.
    """
    if not filter_text:
        filtered = list(sessions)
    else:
        needle = filter_text.lower()
        filtered = [
            s for s in sessions
            if needle in s.name.lower() or needle in s.started_in.lower()
        ]

    filtered.sort(key=lambda s: s.name)
    # list.sort stays stable with reverse=True, so name order survives among ties
    filtered.sort(key=_SORT_KEYS[sort_mode], reverse=not ascending)
    return filtered


@dataclass(frozen=True)
class ListMetrics:
    """Column widths in cells for the session table."""
    name: int = 0
    pid: int = 1
    memory: int = 1
    uptime: int = 1
    client: int = 2


def compute_list_metrics(sessions: list[Session]) -> ListMetrics:
    name_w, pid_w, mem_w, uptime_w, client_w = 0, 1, 1, 1, 2
    for s in sessions:
        name_w = max(name_w, measure_width(s.name))
        pid_w = max(pid_w, measure_width(s.pid))
        mem_w = max(mem_w, measure_width(memory_label(s)))
        uptime_w = max(uptime_w, measure_width(uptime_label(s)))
        client_w = max(client_w, measure_width(client_label(s)))
    return ListMetrics(name=name_w, pid=pid_w, memory=mem_w, uptime=uptime_w, client=client_w)


class ViewCache:
    """Memoizes the visible projection and the two metric sets.

    Any change to the session snapshot must go through mark_sessions_changed(),
    which bumps the snapshot version and invalidates everything. Filter/sort
    inputs are part of the visible key, and mark_visible_changed() forces a
    rebuild of the visible projection only.
    """

    def __init__(self):
        self._sessions_version = 0
        self._visible_version = 0
        self._visible_key: Optional[tuple] = None
        self._visible: list[Session] = []
        self._visible_metrics = ListMetrics()
        self._all_key: Optional[int] = None
        self._all_metrics = ListMetrics()

    def mark_sessions_changed(self):
        self._sessions_version += 1

    def mark_visible_changed(self):
        self._visible_version += 1

    def _ensure_visible(self, sessions, filter_text, sort_mode, ascending):
        key = (self._sessions_version, self._visible_version, filter_text, sort_mode, ascending)
        if key != self._visible_key:
            self._visible = compute_visible(sessions, filter_text, sort_mode, ascending)
            self._visible_metrics = compute_list_metrics(self._visible)
            self._visible_key = key

    def visible(
        self,
        sessions: list[Session],
        filter_text: str,
        sort_mode: SortMode,
        ascending: bool,
    ) -> list[Session]:
        self._ensure_visible(sessions, filter_text, sort_mode, ascending)
        return self._visible

    def visible_metrics(
        self,
        sessions: list[Session],
        filter_text: str,
        sort_mode: SortMode,
        ascending: bool,
    ) -> ListMetrics:
        self._ensure_visible(sessions, filter_text, sort_mode, ascending)
        return self._visible_metrics

    def all_metrics(self, sessions: list[Session]) -> ListMetrics:
        """Widths over the unfiltered set, so pane width holds steady while filtering."""
        if self._all_key != self._sessions_version:
            self._all_metrics = compute_list_metrics(sessions)
            self._all_key = self._sessions_version
        return self._all_metrics
