"""Failure recorder — sidecar markers that make failures idempotent across runs."""

import logging
from pathlib import Path

from transav1.config import Settings
from transav1.models.encode import EncodeResult
from transav1.models.marker import MARKER_SUFFIXES, FailureMarker, MarkerKind

logger = logging.getLogger(__name__)


class FailureRecorder:
    """Writes and looks up failure markers next to would-be outputs."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def build_marker(
        self, output_path: Path, result: EncodeResult, encoder_options: str
    ) -> FailureMarker:
        return FailureMarker(
            output_path=output_path,
            kind=MarkerKind.for_exit_class(result.exit_class),
            encoder_id=result.encoder_id,
            encoder_options=encoder_options,
            exit_class=result.exit_class,
            exit_code=result.exit_code,
            diagnostic_text=result.diagnostic_text,
            max_length=self.settings.marker_max_length,
        )

    def record(self, marker: FailureMarker) -> Path | None:
        """Write the marker file. Write failures are logged, not raised."""
        path = marker.path
        content = marker.content()
        logger.debug("Writing failure marker %s (content: %s)", path, content)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.warning("Failed to write failure marker %s: %s", path, e)
            return None
        return path

    def existing_markers(self, output_path: Path) -> list[Path]:
        """Markers already present for ``output_path``, suffix case ignored."""
        try:
            siblings = sorted(output_path.parent.iterdir())
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.warning("Cannot list %s for failure markers: %s", output_path.parent, e)
            return []
        return [p for p in siblings if marker_for(p) == output_path]


def marker_for(path: Path) -> Path | None:
    """The output a marker file belongs to, or None if ``path`` is not a marker."""
    lowered = path.name.lower()
    for suffix in MARKER_SUFFIXES:
        if lowered.endswith(suffix) and len(lowered) > len(suffix):
            return path.with_name(path.name[: -len(suffix)])
    return None


def is_marker_file(path: Path) -> bool:
    return marker_for(path) is not None
