"""Destination maintenance passes run before a batch: restart and force."""

import logging
import os
import shutil
from collections.abc import Callable
from pathlib import Path

from transav1.batch.discovery import is_video
from transav1.models.errors import FilesystemError
from transav1.models.item import is_in_progress_output
from transav1.processing.markers import is_marker_file

logger = logging.getLogger(__name__)


def remove_restart_files(dest_dir: Path) -> int:
    """Delete failure markers, zero-byte videos and leftover in-progress outputs.

    Returns the number of files removed. Per-file failures are warnings.
    """
    logger.info("Restart: removing failure markers and incomplete videos under %s", dest_dir)
    removed = 0

    def on_error(err: OSError) -> None:
        logger.warning("Cannot access %s: %s; skipping", err.filename, err)

    for dirpath, _dirnames, filenames in os.walk(dest_dir, onerror=on_error):
        for name in filenames:
            path = Path(dirpath) / name
            if is_marker_file(path):
                reason = "marker"
            elif is_in_progress_output(path):
                reason = "in-progress output"
            elif is_video(path):
                try:
                    if path.stat().st_size != 0:
                        continue
                except OSError as e:
                    logger.warning("Cannot stat %s: %s; skipping", path, e)
                    continue
                reason = "zero-byte video"
            else:
                continue
            try:
                path.unlink()
            except OSError as e:
                logger.warning("Failed to delete %s %s: %s", reason, path, e)
                continue
            logger.info("Restart: deleted %s: %s", reason, path)
            removed += 1

    logger.info("Restart: %d file(s) removed.", removed)
    return removed


def force_clear_destination(
    dest_dir: Path, confirm: Callable[[str], str] | None = None
) -> bool:
    """Delete the whole destination tree after an interactive ``yes``.

    ``confirm`` defaults to ``input``. Returns False when the operator declines.
    """
    confirm = confirm or input
    logger.warning("--force given: the output directory '%s' will be removed entirely.", dest_dir)
    answer = confirm("Are you sure? (yes/no): ").strip().lower()
    if answer != "yes":
        logger.info("Removal cancelled.")
        return False
    if dest_dir.exists():
        logger.info("Removing output directory '%s'...", dest_dir)
        try:
            shutil.rmtree(dest_dir)
        except OSError as e:
            raise FilesystemError(f"Failed to remove output directory {dest_dir}: {e}")
    logger.info("Output directory removed.")
    return True
