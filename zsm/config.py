"""Configuration loading for zsm."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "~/.config/zsm/config.yaml"


class ConfigError(RuntimeError):
    """Raised when the config file exists but cannot be used."""


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> dict:
    """Load configuration from a YAML file; a missing file yields defaults."""
    path = Path(config_path).expanduser()

    if not path.exists():
        logger.debug(f"Config file not found: {path}, using defaults")
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    return data


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings with defaults applied."""

    zmx_binary: str = "zmx"
    list_timeout_seconds: float = 10.0
    preview_timeout_seconds: float = 2.0
    kill_timeout_seconds: float = 10.0
    ps_timeout_seconds: float = 5.0
    clipboard_timeout_seconds: float = 1.0
    poll_interval_seconds: float = 0.2
    poll_max_attempts: int = 20
    status_clear_seconds: float = 2.0
    kill_status_clear_seconds: float = 3.0
    log_height: int = 4
    list_max_width: int = 56
    clipboard_command: Optional[tuple[str, ...]] = None
    log_file: Optional[str] = "/tmp/zsm.log"

    @property
    def attach_command(self) -> str:
        return f"{Path(self.zmx_binary).name} attach"

    @classmethod
    def from_config(cls, config: Optional[dict] = None) -> "Settings":
        config = config or {}
        zmx = config.get("zmx", {}) or {}
        timeouts = config.get("timeouts", {}) or {}
        kill = config.get("kill", {}) or {}
        ui = config.get("ui", {}) or {}
        clipboard = config.get("clipboard", {}) or {}
        logging_config = config.get("logging", {}) or {}

        clipboard_command = clipboard.get("command")
        if isinstance(clipboard_command, str):
            clipboard_command = clipboard_command.split()

        defaults = cls()
        try:
            return cls(
                zmx_binary=zmx.get("binary", defaults.zmx_binary),
                list_timeout_seconds=float(timeouts.get("list_seconds", defaults.list_timeout_seconds)),
                preview_timeout_seconds=float(timeouts.get("preview_seconds", defaults.preview_timeout_seconds)),
                kill_timeout_seconds=float(timeouts.get("kill_seconds", defaults.kill_timeout_seconds)),
                ps_timeout_seconds=float(timeouts.get("ps_seconds", defaults.ps_timeout_seconds)),
                clipboard_timeout_seconds=float(
                    timeouts.get("clipboard_seconds", defaults.clipboard_timeout_seconds)
                ),
                poll_interval_seconds=float(kill.get("poll_interval_seconds", defaults.poll_interval_seconds)),
                poll_max_attempts=int(kill.get("poll_max_attempts", defaults.poll_max_attempts)),
                status_clear_seconds=float(ui.get("status_clear_seconds", defaults.status_clear_seconds)),
                kill_status_clear_seconds=float(
                    ui.get("kill_status_clear_seconds", defaults.kill_status_clear_seconds)
                ),
                log_height=max(1, int(ui.get("log_height", defaults.log_height))),
                list_max_width=int(ui.get("list_max_width", defaults.list_max_width)),
                clipboard_command=tuple(clipboard_command) if clipboard_command else None,
                log_file=logging_config.get("file", defaults.log_file),
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise ConfigError(f"invalid setting: {e}") from e
