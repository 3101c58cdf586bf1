"""Source tree discovery, classification and output path mapping."""

import logging
import os
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, Field

from transav1.models.errors import DiscoveryError
from transav1.models.item import original_source_path

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = frozenset(
    {
        ".mp4", ".avi", ".mov", ".mkv", ".wmv", ".flv", ".webm", ".m4v",
        ".mpeg", ".mpg", ".ts", ".mts", ".m2ts", ".3gp", ".asf", ".divx",
    }
)
IMAGE_EXTENSIONS = frozenset(
    {
        ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tif", ".tiff", ".webp", ".heic",
        ".heif", ".raw", ".cr2", ".nef", ".orf", ".sr2", ".svg", ".avif",
    }
)

SCAN_PROGRESS_INTERVAL = 1000


class FileKind(StrEnum):
    VIDEO = "video"
    IMAGE = "image"
    OTHER = "other"


class SourceInventory(BaseModel):
    """Classified files found under a source root, in walk order."""

    root: Path
    videos: list[Path] = Field(default_factory=list)
    images: list[Path] = Field(default_factory=list)
    others: list[Path] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.videos) + len(self.images) + len(self.others)


def classify(path: Path) -> FileKind:
    ext = path.suffix.lower()
    if ext in VIDEO_EXTENSIONS:
        return FileKind.VIDEO
    if ext in IMAGE_EXTENSIONS:
        return FileKind.IMAGE
    return FileKind.OTHER


def is_video(path: Path) -> bool:
    return classify(path) == FileKind.VIDEO


def scan_source(root: Path) -> SourceInventory:
    """Walk ``root`` recursively and classify every regular file.

    Unreadable directories are logged and skipped.
    """
    inventory = SourceInventory(root=root)
    buckets = {
        FileKind.VIDEO: inventory.videos,
        FileKind.IMAGE: inventory.images,
        FileKind.OTHER: inventory.others,
    }
    scanned = 0

    def on_error(err: OSError) -> None:
        logger.warning("Cannot access %s: %s; skipping", err.filename, err)

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        dirnames.sort()
        for name in sorted(filenames):
            path = Path(dirpath) / name
            original = original_source_path(path)
            if original is not None:
                path = _recover_source(path, original)
                if path is None:
                    continue
            kind = classify(path)
            buckets[kind].append(path)
            if kind == FileKind.OTHER:
                logger.debug("Listed as other file: %s", path)
            scanned += 1
            if scanned % SCAN_PROGRESS_INTERVAL == 0:
                logger.info("Building file list... %d files scanned", scanned)

    logger.info(
        "File list complete. Videos: %d, images: %d, other: %d (total: %d)",
        len(inventory.videos),
        len(inventory.images),
        len(inventory.others),
        inventory.total,
    )
    return inventory


def video_output_path(source: Path, source_root: Path, dest_root: Path, suffix: str) -> Path:
    """Map a source video to ``<dest>/<relative dir>/<stem><suffix>``."""
    rel = _relative(source, source_root)
    name = rel.name
    # Hidden files without an extension keep their whole name.
    stem = name if not rel.suffix else name[: -len(rel.suffix)]
    return dest_root / rel.parent / f"{stem}{suffix}"


def copy_output_path(source: Path, source_root: Path, dest_root: Path) -> Path:
    """Map a non-video file to the same relative path under ``dest_root``."""
    return dest_root / _relative(source, source_root)


def _relative(source: Path, source_root: Path) -> Path:
    try:
        return source.relative_to(source_root)
    except ValueError:
        raise DiscoveryError(
            f"Cannot compute relative path ('{source}' is not inside '{source_root}')",
            details={"source": str(source), "root": str(source_root)},
        )


def _recover_source(renamed: Path, original: Path) -> Path | None:
    """Undo a direct-mode rename left by an interrupted run.

    Returns the path to list, or None when the file must be left alone.
    """
    if original.exists():
        logger.warning(
            "Both '%s' and '%s' exist; skipping the leftover from an interrupted run. "
            "Please check and delete one of them manually.",
            renamed,
            original,
        )
        return None
    try:
        os.rename(renamed, original)
    except OSError as e:
        logger.warning("Cannot rename '%s' back to '%s': %s; skipping", renamed, original, e)
        return None
    logger.info("Restored source renamed by an interrupted run: %s", original)
    return original
