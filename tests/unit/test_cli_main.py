"""Tests for the zsm command line entry point."""

from unittest.mock import MagicMock, patch

import pytest

from zsm.cli.main import build_parser, main
from zsm.config import Settings


@pytest.fixture
def no_config(tmp_path):
    return ["--config", str(tmp_path / "missing.yaml")]


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.version is False
        assert args.debug is False
        assert args.log_file is None

    def test_flags(self):
        args = build_parser().parse_args(["-v", "--debug", "--log-file", "/tmp/x.log"])
        assert args.version is True
        assert args.debug is True
        assert args.log_file == "/tmp/x.log"


class TestMain:
    def test_version(self, capsys):
        assert main(["--version"]) == 0
        assert capsys.readouterr().out.startswith("zsm ")

    def test_bad_config(self, tmp_path, capsys):
        path = tmp_path / "config.yaml"
        path.write_text("- not a mapping\n")

        assert main(["--config", str(path)]) == 1
        assert "Error:" in capsys.readouterr().err

    @patch("zsm.cli.main.setup_logging")
    @patch("zsm.cli.main.shutil.which", return_value=None)
    def test_missing_zmx(self, mock_which, mock_logging, no_config, capsys):
        assert main(no_config) == 1
        assert "zmx not found in PATH" in capsys.readouterr().err

    @patch("zsm.cli.main.os.execve")
    @patch("zsm.tui.app.run_dashboard")
    @patch("zsm.cli.main.setup_logging")
    @patch("zsm.cli.main.shutil.which", return_value="/usr/bin/zmx")
    def test_attach_after_exit(self, mock_which, mock_logging, mock_run, mock_execve, no_config):
        mock_run.return_value = MagicMock(attach_target="api")

        assert main(no_config) == 0

        mock_execve.assert_called_once()
        path, argv, _env = mock_execve.call_args[0]
        assert path == "/usr/bin/zmx"
        assert argv == ["zmx", "attach", "api"]
        assert isinstance(mock_run.call_args[0][0], Settings)

    @patch("zsm.cli.main.os.execve")
    @patch("zsm.tui.app.run_dashboard")
    @patch("zsm.cli.main.setup_logging")
    @patch("zsm.cli.main.shutil.which", return_value="/usr/bin/zmx")
    def test_plain_quit_does_not_attach(self, mock_which, mock_logging, mock_run, mock_execve, no_config):
        mock_run.return_value = MagicMock(attach_target="")

        assert main(no_config) == 0
        mock_execve.assert_not_called()

    @patch("zsm.tui.app.run_dashboard", side_effect=RuntimeError("terminal too small"))
    @patch("zsm.cli.main.setup_logging")
    @patch("zsm.cli.main.shutil.which", return_value="/usr/bin/zmx")
    def test_dashboard_crash(self, mock_which, mock_logging, mock_run, no_config, capsys):
        assert main(no_config) == 1
        assert "terminal too small" in capsys.readouterr().err

    @patch("zsm.cli.main.setup_logging")
    @patch("zsm.cli.main.shutil.which", return_value=None)
    def test_log_file_flag_wins(self, mock_which, mock_logging, no_config):
        main(no_config + ["--log-file", "/tmp/other.log", "--debug"])
        mock_logging.assert_called_once_with("/tmp/other.log", debug=True)
