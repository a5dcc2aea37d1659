"""Shared logging for gitnotify.

All components log to ~/.local/state/gitnotify/logs/gitnotify.log via
Python's logging module. Filter with grep: grep 'gitnotify.engine' <log>
"""

import logging

from .paths import get_log_path

_root = logging.getLogger("gitnotify")
_root.setLevel(logging.DEBUG)
# don't propagate to root logger (avoids duplicate output if someone
# configures the root logger elsewhere)
_root.propagate = False

_configured = False


def _configure() -> None:
    global _configured
    if _configured:
        return
    _configured = True
    try:
        handler: logging.Handler = logging.FileHandler(get_log_path("gitnotify"))
    except OSError:
        handler = logging.NullHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s", datefmt="%H:%M:%S")
    )
    _root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    _configure()
    return _root.getChild(name)
