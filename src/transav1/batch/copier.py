"""Verbatim copy of non-video files into the destination tree."""

import logging
from pathlib import Path

from transav1.models.errors import FilesystemError
from transav1.storage.files import copy_file, file_exists

logger = logging.getLogger(__name__)


def copy_verbatim(source: Path, destination: Path) -> bool:
    """Copy one file unless the destination already exists.

    Returns True when a copy was made. Raises FilesystemError on failure.
    """
    if source.is_dir():
        raise FilesystemError(f"Source path '{source}' is a directory")
    if file_exists(destination):
        logger.info("Skipped (exists): %s", destination.name)
        return False
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"Cannot create output directory {destination.parent}: {e}")
    logger.info("Copying: %s -> %s", source.name, destination.name)
    copy_file(source, destination)
    return True
