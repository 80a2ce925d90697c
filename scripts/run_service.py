#!/usr/bin/env python3
"""Entry point: run the minting service (scheduler + status server)."""

import logging
import os
import sys

# Project root: always resolve relative to script location, not cwd
_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _PROJECT_ROOT)
os.chdir(_PROJECT_ROOT)  # Ensure config paths resolve from project root

# ANSI color codes
_RESET = "\033[0m"
_BOLD = "\033[1m"
_GRAY = "\033[90m"
_YELLOW = "\033[33m"
_RED = "\033[31m"
_CYAN = "\033[36m"

_LEVEL_COLORS = {
    logging.DEBUG: _GRAY,
    logging.INFO: _CYAN,
    logging.WARNING: _YELLOW,
    logging.ERROR: _RED + _BOLD,
    logging.CRITICAL: _RED + _BOLD,
}


class ColoredFormatter(logging.Formatter):
    """Formatter that adds colors per log level (only when stdout is a terminal)."""

    def __init__(self, *args, use_color: bool = True, **kwargs):
        super().__init__(*args, **kwargs)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        if self.use_color:
            color = _LEVEL_COLORS.get(record.levelno, _RESET)
            record.levelname = f"{color}[{record.levelname}]{_RESET}"
        else:
            record.levelname = f"[{record.levelname}]"
        return super().format(record)


def setup_logging(debug: bool = False) -> None:
    """Configure stdout logging; colors only on a TTY (container logs stay plain)."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ColoredFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            use_color=sys.stdout.isatty(),
        )
    )
    logging.root.handlers.clear()
    logging.root.addHandler(handler)
    level = logging.DEBUG if debug else logging.INFO
    logging.root.setLevel(level)
    # web3 request logging is very chatty at DEBUG
    logging.getLogger("web3").setLevel(logging.DEBUG if debug else logging.WARNING)


if __name__ == "__main__":
    args = [a for a in sys.argv[1:] if not a.startswith("--")]
    setup_logging(debug="--debug" in sys.argv)

    from mint_service.app.supervisor import run_service

    config_path = args[0] if args else None
    if config_path and not os.path.isabs(config_path):
        config_path = os.path.join(_PROJECT_ROOT, config_path)
    sys.exit(run_service(config_path))
