"""Shared pytest fixtures for zsm tests."""

from typing import Callable
from unittest.mock import MagicMock

import pytest

from zsm.config import Settings
from zsm.models import Session
from zsm.tui.model import Model
from zsm.tui.events import SessionsListed, WindowResized
from zsm.zmx_controller import ZmxController


@pytest.fixture
def mock_controller() -> MagicMock:
    """
    Mock ZmxController for testing without a real zmx binary.

    Returns:
        MagicMock with common zmx methods configured
    """
    mock = MagicMock(spec=ZmxController)
    mock.list_sessions.return_value = []
    mock.fetch_preview.return_value = "Mock preview output"
    mock.fetch_process_info.return_value = {}
    mock.kill_session.return_value = None
    mock.copy_to_clipboard.return_value = None
    return mock


@pytest.fixture
def settings() -> Settings:
    """Settings with a fast poll loop and the default layout."""
    return Settings(poll_interval_seconds=0.0, log_file=None)


@pytest.fixture
def make_model(settings: Settings) -> Callable[..., Model]:
    """
    Build a Model that has already received a window size and a listing.

    Returns:
        Factory taking session names (or Session objects) plus optional width/height
    """

    def _make(*sessions, width: int = 120, height: int = 40) -> Model:
        model = Model(settings)
        model.update(WindowResized(width=width, height=height))
        listed = [s if isinstance(s, Session) else Session(name=s, pid="1") for s in sessions]
        model.update(SessionsListed(sessions=listed))
        return model

    return _make
