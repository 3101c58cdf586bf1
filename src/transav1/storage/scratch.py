"""Scratch area lifecycle management."""

import logging
import shutil
import tempfile
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)


class ScratchArea:
    """Process-lifetime scratch directory with one subdirectory per in-flight item.

    Use as a context manager so the whole tree is removed on every exit path.
    """

    def __init__(self, prefix: str = "transav1_", base_dir: Path | None = None):
        self.prefix = prefix
        self.base_dir = base_dir
        self.root: Path | None = None
        self._item_dirs: dict[str, Path] = {}

    def __enter__(self) -> "ScratchArea":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> Path:
        """Create the scratch root."""
        if self.base_dir is not None:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        self.root = Path(tempfile.mkdtemp(prefix=self.prefix, dir=self.base_dir))
        logger.info("Scratch directory: %s", self.root)
        return self.root

    def create_item_dir(self) -> tuple[str, Path]:
        """Create an isolated directory for one item."""
        if self.root is None:
            raise RuntimeError("ScratchArea is not open")
        item_id = uuid.uuid4().hex
        item_dir = self.root / item_id
        item_dir.mkdir()
        self._item_dirs[item_id] = item_dir
        return item_id, item_dir

    def cleanup_item(self, item_id: str) -> None:
        """Remove an item's scratch directory."""
        item_dir = self._item_dirs.pop(item_id, None)
        if item_dir is None or not item_dir.exists():
            return
        try:
            shutil.rmtree(item_dir)
        except OSError as e:
            logger.warning("Failed to remove scratch files %s: %s", item_dir, e)
        else:
            logger.debug("Cleaned up scratch files for item %s", item_id)

    def close(self) -> None:
        """Remove the whole scratch tree."""
        if self.root is None:
            return
        logger.debug("Removing scratch directory: %s", self.root)
        try:
            shutil.rmtree(self.root)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to remove scratch directory %s: %s", self.root, e)
        self._item_dirs.clear()
        self.root = None
