"""Low-level file operations shared by staging, publish and verbatim copy."""

import logging
import os
import shutil
import uuid
from pathlib import Path

from transav1.models.errors import FilesystemError

logger = logging.getLogger(__name__)

_COPY_CHUNK = 1024 * 1024


def file_exists(path: Path) -> bool:
    """True when ``path`` is an existing non-directory.

    Stat errors other than "missing" are logged and treated as absent.
    """
    try:
        return not path.is_dir() and path.exists()
    except OSError as e:
        logger.warning("Cannot check file state of %s: %s", path, e)
        return False


def copy_file(src: Path, dst: Path) -> int:
    """Copy bytes and permission bits of a regular file, fsync'd.

    A partially written destination is removed on failure.
    """
    try:
        st = src.stat()
    except OSError as e:
        raise FilesystemError(f"Cannot stat copy source {src}: {e}", details={"src": str(src)})
    if not src.is_file():
        raise FilesystemError(f"{src} is not a regular file", details={"src": str(src)})

    try:
        with open(src, "rb") as fin, open(dst, "wb") as fout:
            shutil.copyfileobj(fin, fout, _COPY_CHUNK)
            copied = fout.tell()
            fout.flush()
            os.fsync(fout.fileno())
        os.chmod(dst, st.st_mode & 0o7777)
    except OSError as e:
        _remove_quietly(dst)
        raise FilesystemError(
            f"Copy failed ({src} -> {dst}): {e}", details={"src": str(src), "dst": str(dst)}
        )
    logger.debug("Copied %d bytes: %s -> %s", copied, src, dst)
    return copied


def move_file(src: Path, dst: Path) -> None:
    """Move ``src`` onto ``dst`` so ``dst`` is never seen half-written.

    Tries a rename first. When that is impossible (e.g. across devices) the
    file is copied to a hidden sibling of ``dst``, its size is verified, the
    sibling is renamed into place and ``src`` is deleted. Only a failed copy
    or verification raises.
    """
    try:
        os.replace(src, dst)
        return
    except OSError as e:
        logger.debug("Rename %s -> %s not possible (%s); copying instead", src, dst, e)

    partial = dst.with_name(f".{dst.name}.{uuid.uuid4().hex[:8]}.partial")
    copy_file(src, partial)
    expected = src.stat().st_size
    actual = partial.stat().st_size
    if actual != expected:
        _remove_quietly(partial)
        raise FilesystemError(
            f"Copy verification failed for {dst}: {actual} of {expected} bytes",
            details={"src": str(src), "dst": str(dst)},
        )
    try:
        os.replace(partial, dst)
    except OSError as e:
        _remove_quietly(partial)
        raise FilesystemError(f"Cannot move {partial} into place as {dst}: {e}")
    try:
        src.unlink()
    except OSError as e:
        logger.warning("Published %s but could not delete %s: %s", dst, src, e)


def remove_file(path: Path, what: str = "file") -> bool:
    """Delete a file if present; failures are warnings. Returns True if removed."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning("Failed to delete %s %s: %s", what, path, e)
        logger.warning("  Please check and delete '%s' manually.", path)
        return False
    logger.debug("Deleted %s: %s", what, path)
    return True


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.debug("Could not remove partial file %s: %s", path, e)
