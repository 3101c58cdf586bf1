"""Logging configuration for command-line runs."""

import logging
import sys
import tempfile
from datetime import datetime
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(message)s"
DEBUG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d %(message)s"
DATE_FORMAT = "%Y/%m/%d %H:%M:%S"
PACKAGE_LOGGER = "transav1"

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False) -> logging.Logger:
    """Configure the ``transav1`` logger to write to stdout."""
    root = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.DEBUG if debug else logging.INFO)
    root.propagate = False

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(_formatter(debug))
    root.addHandler(console)

    logger.info("--- Logging started ---")
    if debug:
        logger.debug("Debug mode enabled")
    return root


def add_log_file(dest_dir: Path, start_time: datetime, debug: bool = False) -> Path | None:
    """Also write the log into ``dest_dir``. Returns the log file path, if any."""
    if not _check_log_dir(dest_dir):
        return None
    log_path = dest_dir / f"TransAV1_Log_{start_time:%Y%m%d_%H%M%S}.log"
    try:
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError as e:
        logger.warning("Cannot open log file '%s' (%s); logging to stdout only.", log_path, e)
        return None
    file_handler.setFormatter(_formatter(debug))
    logging.getLogger(PACKAGE_LOGGER).addHandler(file_handler)
    logger.info("Log file: %s", log_path)
    return log_path


def _formatter(debug: bool) -> logging.Formatter:
    return logging.Formatter(DEBUG_FORMAT if debug else LOG_FORMAT, DATE_FORMAT)


def _check_log_dir(dir_path: Path) -> bool:
    """The directory must exist and be writable for a log file to be created."""
    if not dir_path.is_dir():
        logger.warning("Log directory '%s' is not a directory; no log file is written.", dir_path)
        return False
    try:
        with tempfile.NamedTemporaryFile(dir=dir_path, prefix=".logcheck_"):
            pass
    except OSError as e:
        logger.warning(
            "Cannot write to log directory '%s' (%s); no log file is written.", dir_path, e
        )
        return False
    return True
