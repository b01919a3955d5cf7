"""Serialized kill of a set of sessions followed by a bounded liveness poll."""

from __future__ import annotations

from typing import Iterable, Optional

from ..models import Session
from .events import WaitForGone


def still_alive(names: Iterable[str], sessions: Iterable[Session]) -> tuple[str, ...]:
    """Names from names that still appear in a listing."""
    listed = {s.name for s in sessions}
    return tuple(name for name in names if name in listed)


class KillSequencer:
    """Tracks one batch kill: one kill in flight at a time, then polling.

    Phases: idle -> killing (queue drains one completion at a time) ->
    polling (attempt counter up to max_attempts) -> idle via reset().
    """

    def __init__(self, poll_interval: float = 0.2, max_attempts: int = 20):
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.reset()

    def reset(self):
        self.queue: list[str] = []
        self.current: Optional[str] = None
        self.killed: list[str] = []
        self.failed: list[str] = []
        self.total = 0
        self.polling = False

    def start(self, targets: list[str]) -> str:
        """Begin a batch and return the first name to kill."""
        if not targets:
            raise ValueError("kill batch needs at least one target")
        self.reset()
        self.total = len(targets)
        self.current = targets[0]
        self.queue = list(targets[1:])
        return self.current

    def complete(self, name: str, ok: bool) -> Optional[str]:
        """Record one kill result and return the next name to kill, if any."""
        if ok:
            self.killed.append(name)
        else:
            self.failed.append(name)
        self.current = None
        if self.queue:
            self.current = self.queue.pop(0)
            return self.current
        return None

    def poll(self, attempt: int = 0) -> Optional[WaitForGone]:
        """Next poll step for the confirmed-killed names, or None when polling is over."""
        if not self.killed or attempt >= self.max_attempts:
            self.polling = False
            return None
        self.polling = True
        return WaitForGone(names=tuple(self.killed), attempt=attempt, delay=self.poll_interval)
