"""Events consumed by the dashboard model and commands it asks the runtime to run.

Events arrive on one queue and are handled one at a time. Commands are
descriptions of side effects; the runtime executes them off the event loop
and reports back with events.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from ..models import ProcessInfo, Session


# Events

@dataclass(frozen=True)
class WindowResized:
    width: int
    height: int


@dataclass(frozen=True)
class SessionsListed:
    sessions: list[Session] = field(default_factory=list)
    error: Optional[str] = None


@dataclass(frozen=True)
class ProcessInfoReady:
    info: dict[str, ProcessInfo] = field(default_factory=dict)
    error: Optional[str] = None


@dataclass(frozen=True)
class PreviewReady:
    name: str
    content: str


@dataclass(frozen=True)
class KillCompleted:
    name: str
    error: Optional[str] = None


@dataclass(frozen=True)
class PollTick:
    """Some confirmed-killed sessions were still listed after a poll."""
    names: tuple[str, ...]
    attempt: int


@dataclass(frozen=True)
class AllConfirmedGone:
    pass


@dataclass(frozen=True)
class StatusExpired:
    generation: int = 0


@dataclass(frozen=True)
class ClipboardCopied:
    text: str
    error: Optional[str] = None


@dataclass(frozen=True)
class KeyPressed:
    """A normalized key: key is a name like "up", "enter", "ctrl+a" or the character itself."""
    key: str
    text: str = ""


Event = Union[
    WindowResized,
    SessionsListed,
    ProcessInfoReady,
    PreviewReady,
    KillCompleted,
    PollTick,
    AllConfirmedGone,
    StatusExpired,
    ClipboardCopied,
    KeyPressed,
]


# Commands

@dataclass(frozen=True)
class FetchSessions:
    pass


@dataclass(frozen=True)
class FetchProcessInfo:
    sessions: tuple[Session, ...]


@dataclass(frozen=True)
class FetchPreview:
    name: str
    lines: int


@dataclass(frozen=True)
class KillSession:
    name: str


@dataclass(frozen=True)
class WaitForGone:
    """Re-list after delay and report whether any of names is still alive."""
    names: tuple[str, ...]
    attempt: int
    delay: float


@dataclass(frozen=True)
class ClearStatusAfter:
    delay: float
    generation: int = 0


@dataclass(frozen=True)
class CopyToClipboard:
    text: str


@dataclass(frozen=True)
class Quit:
    pass


Command = Union[
    FetchSessions,
    FetchProcessInfo,
    FetchPreview,
    KillSession,
    WaitForGone,
    ClearStatusAfter,
    CopyToClipboard,
    Quit,
]
