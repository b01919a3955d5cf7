"""Main entry point for the zsm CLI tool."""

import argparse
import logging
import os
import shutil
import sys
from importlib import metadata
from typing import Optional

from ..config import DEFAULT_CONFIG_PATH, ConfigError, Settings, load_config

logger = logging.getLogger(__name__)


def get_version() -> str:
    try:
        return metadata.version("zsm")
    except metadata.PackageNotFoundError:
        return "dev"


def setup_logging(log_file: Optional[str], debug: bool = False):
    """Send Python logging to a file; the terminal belongs to the dashboard."""
    level = logging.DEBUG if debug else logging.INFO
    fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    if log_file:
        try:
            logging.basicConfig(level=level, format=fmt, filename=os.path.expanduser(log_file))
            return
        except OSError as e:
            print(f"Warning: cannot open log file {log_file}: {e}", file=sys.stderr)
    logging.basicConfig(level=level, format=fmt, handlers=[logging.NullHandler()])


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zsm",
        description="zmx session manager - browse, preview, kill and attach to zmx sessions",
    )
    parser.add_argument("-v", "--version", action="store_true", help="Print version and exit")
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to YAML config (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument("--log-file", default=None, help="Write debug log to this file")
    parser.add_argument("--debug", action="store_true", help="Log at DEBUG level")
    return parser


def main(argv: Optional[list] = None) -> int:
    """Main entry point for zsm."""
    args = build_parser().parse_args(argv)

    if args.version:
        print(f"zsm {get_version()}")
        return 0

    try:
        settings = Settings.from_config(load_config(args.config))
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(args.log_file or settings.log_file, debug=args.debug)

    zmx_path = shutil.which(settings.zmx_binary)
    if zmx_path is None:
        print(f"Error: {settings.zmx_binary} not found in PATH", file=sys.stderr)
        return 1

    from ..tui.app import run_dashboard

    logger.info(f"Starting zsm {get_version()} with {zmx_path}")
    try:
        model = run_dashboard(settings)
    except Exception as e:
        logger.exception("Dashboard crashed")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if model.attach_target:
        logger.info(f"Attaching to {model.attach_target}")
        os.execve(zmx_path, [settings.zmx_binary, "attach", model.attach_target], os.environ)
    return 0


def run():
    """Entry point for console script."""
    sys.exit(main())


if __name__ == "__main__":
    run()
