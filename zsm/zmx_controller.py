"""zmx operations for listing, previewing and killing sessions."""

import logging
import subprocess
from collections import deque
from typing import Iterable, Optional

from .config import Settings
from .models import ProcessInfo, Session
from .process_tree import ProcessTable
from .tui.text_layout import strip_control_sequences

logger = logging.getLogger(__name__)

# Tried in order when no clipboard command is configured.
CLIPBOARD_COMMANDS = [
    ["pbcopy"],
    ["wl-copy"],
    ["xclip", "-selection", "clipboard"],
    ["xsel", "--clipboard", "--input"],
]


class ZmxError(RuntimeError):
    """A zmx or ps invocation failed."""


class ClipboardError(RuntimeError):
    """No clipboard tool accepted the text."""


def parse_session_list(output: str) -> list[Session]:
    """Parse `zmx list` output: one session per line, tab-separated key=value pairs.

    Records without a session_name are dropped; unknown keys are ignored.
    """
    sessions = []
    for line in output.strip().splitlines():
        line = line.strip()
        if not line:
            continue
        fields = {}
        for token in line.split("\t"):
            key, sep, value = token.partition("=")
            if sep:
                fields[key] = value
        name = fields.get("session_name", "")
        if not name:
            continue
        try:
            clients = int(fields.get("clients", "0"))
        except ValueError:
            clients = 0
        sessions.append(
            Session(
                name=name,
                pid=fields.get("pid", ""),
                clients=max(0, clients),
                started_in=fields.get("started_in", ""),
                cmd=fields.get("cmd", ""),
            )
        )
    return sessions


def split_output_lines(output: str) -> list[str]:
    """Split on newline characters only; a trailing newline adds no empty line."""
    lines = output.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def tail_lines(lines: Iterable[str], count: int) -> str:
    """Keep the last count lines (at least one), stripped of escape sequences."""
    tail = deque(maxlen=max(1, count))
    for line in lines:
        tail.append(strip_control_sequences(line))
    return "\n".join(tail)


class ZmxController:
    """Runs zmx, ps and clipboard commands on behalf of the dashboard."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.binary = self.settings.zmx_binary

    def _run_zmx(self, *args: str, timeout: float) -> subprocess.CompletedProcess:
        """Run a zmx command with stdout and stderr combined."""
        cmd = [self.binary] + list(args)
        logger.debug(f"Running zmx command: {' '.join(cmd)}")
        return subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            timeout=timeout,
        )

    def _checked(self, label: str, *args: str, timeout: float) -> str:
        try:
            result = self._run_zmx(*args, timeout=timeout)
        except subprocess.TimeoutExpired:
            raise ZmxError(f"{label}: timed out after {timeout:g}s")
        except OSError as e:
            raise ZmxError(f"{label}: {e}") from e
        if result.returncode != 0:
            raise ZmxError(f"{label}: exit status {result.returncode}\n{result.stdout.strip()}")
        return result.stdout

    def list_sessions(self) -> list[Session]:
        """List sessions; raises ZmxError when zmx fails."""
        output = self._checked("zmx list", "list", timeout=self.settings.list_timeout_seconds)
        sessions = parse_session_list(output)
        logger.debug(f"Listed {len(sessions)} sessions")
        return sessions

    def kill_session(self, name: str) -> None:
        """Kill one session; raises ZmxError with zmx's output on failure."""
        self._checked(f"zmx kill {name}", "kill", name, timeout=self.settings.kill_timeout_seconds)
        logger.info(f"Killed session {name}")

    def fetch_preview(self, name: str, lines: int) -> str:
        """
        Return the last lines of the session's rendered scrollback.

        Escape sequences are stripped but lines are not cut horizontally.
        Never raises: failures produce a "(preview unavailable: ...)" line.
        """
        cmd = [self.binary, "history", name, "--vt"]
        logger.debug(f"Running zmx command: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                timeout=self.settings.preview_timeout_seconds,
            )
        except subprocess.TimeoutExpired:
            logger.warning(f"Preview for {name} timed out")
            return "(preview unavailable: timed out)"
        except OSError as e:
            logger.warning(f"Preview for {name} failed: {e}")
            return f"(preview unavailable: {e})"

        if result.returncode != 0:
            return f"(preview unavailable: exit status {result.returncode})"
        # Read as bytes: text mode would turn a lone \r into a line break.
        output = result.stdout.decode("utf-8", errors="replace")
        return tail_lines(split_output_lines(output), lines)

    def read_process_table(self) -> ProcessTable:
        cmd = ["ps", "-eo", "pid,ppid,rss,etime"]
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.settings.ps_timeout_seconds,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ZmxError(f"ps: {e}") from e
        if result.returncode != 0:
            raise ZmxError(f"ps: exit status {result.returncode}\n{result.stderr.strip()}")
        return ProcessTable.parse(result.stdout)

    def fetch_process_info(self, sessions: list[Session]) -> dict[str, ProcessInfo]:
        """Memory (summed over the process tree) and uptime per session name."""
        table = self.read_process_table()
        info = {}
        for session in sessions:
            try:
                pid = int(session.pid)
            except ValueError:
                continue
            info[session.name] = ProcessInfo(
                memory=table.sum_subtree_memory(pid),
                uptime=table.elapsed.get(pid, 0),
            )
        return info

    def copy_to_clipboard(self, text: str) -> None:
        """Write text to the system clipboard; raises ClipboardError if nothing works."""
        if self.settings.clipboard_command:
            candidates = [list(self.settings.clipboard_command)]
        else:
            candidates = CLIPBOARD_COMMANDS

        errors = []
        for cmd in candidates:
            try:
                subprocess.run(
                    cmd,
                    input=text.encode("utf-8"),
                    capture_output=True,
                    timeout=self.settings.clipboard_timeout_seconds,
                    check=True,
                )
                logger.debug(f"Copied to clipboard via {cmd[0]}")
                return
            except FileNotFoundError:
                continue
            except (subprocess.TimeoutExpired, subprocess.CalledProcessError) as e:
                errors.append(f"{cmd[0]}: {e}")

        if errors:
            raise ClipboardError("; ".join(errors))
        raise ClipboardError("no clipboard tool found")
