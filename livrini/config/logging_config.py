# livrini/config/logging_config.py

"""Per-run logging for the LIVRINI client.

Every launch writes ``logs/run_YYYYMMDD_HHMMSS.log`` at DEBUG level.
The ``livrini`` logger does not propagate, so records from the API
client, cart, tracker, CLI and TUI reach only this file and a stderr
console whose threshold comes from ``Settings.CONSOLE_LOG_LEVEL``.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from livrini.config.settings import Settings

_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "%(module)s:%(funcName)s:%(lineno)d | %(message)s"
)
_CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _console_level() -> int:
    level = logging.getLevelName(Settings.CONSOLE_LOG_LEVEL)
    return level if isinstance(level, int) else logging.WARNING


def _run_log_path() -> Path:
    Settings.LOGS_DIR.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return Settings.LOGS_DIR / f"run_{stamp}.log"


def setup_logging() -> Path:
    """Attach the run file and console handlers to the ``livrini`` logger.

    Safe to call more than once: when handlers are already attached the
    existing pair is kept and only a fresh path is returned.

    Returns:
        Path of the log file for this run.
    """
    log_file = _run_log_path()

    logger = logging.getLogger("livrini")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    if logger.handlers:
        return log_file

    to_file = logging.FileHandler(log_file, encoding="utf-8")
    to_file.setLevel(logging.DEBUG)
    to_file.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT))

    to_console = logging.StreamHandler(sys.stderr)
    to_console.setLevel(_console_level())
    to_console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))

    logger.addHandler(to_file)
    logger.addHandler(to_console)
    logger.debug("Run log opened at %s", log_file)
    return log_file
